from typing import Optional

from fastapi import Request


def get_client_ip(request: Request) -> Optional[str]:
    """클라이언트 IP 주소 추출

    프록시 환경에서는 X-Forwarded-For의 첫 번째 값을 사용합니다.
    IP는 익명 사용자의 약한 남용 방지 신호로만 쓰입니다 (NAT 공유 가능).
    알 수 없으면 None - IP 기준 집계를 건너뜁니다.
    """
    x_forwarded_for = request.headers.get("X-Forwarded-For")
    if x_forwarded_for:
        first = x_forwarded_for.split(",")[0].strip()
        if first:
            return first

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    cf_ip = request.headers.get("CF-Connecting-IP")
    if cf_ip:
        return cf_ip.strip()

    if request.client and request.client.host:
        return request.client.host

    return None
