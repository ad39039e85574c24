import logging
import time
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from starsapi.utils.request_utils import get_client_ip

logger = logging.getLogger("starsapi.request")


def describe_request_state(request: Request) -> str:
    """
    라우터 의존성과 예외 핸들러가 request.state에 남긴 값 요약

    - identity_kind: 확인된 아이덴티티 종류 (device / user)
    - device_issued: 이번 요청에서 디바이스 쿠키를 새로 발급했는지
    - error_code: 에러 응답의 코드 (INSUFFICIENT_BALANCE 등)
    """
    state = request.state
    parts = []
    identity_kind = getattr(state, "identity_kind", None)
    if identity_kind:
        parts.append(f"identity={identity_kind}")
    if getattr(state, "device_issued", False):
        parts.append("device_cookie=issued")
    error_code = getattr(state, "error_code", None)
    if error_code:
        parts.append(f"code={error_code}")
    return f" [{' '.join(parts)}]" if parts else ""


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    요청/응답 로그

    경로만 기록하고 쿼리 문자열은 남기지 않습니다.
    클라이언트는 프록시 헤더 기준 IP (알 수 없으면 "-").
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        start = time.time()
        method = request.method
        path = request.url.path
        client = get_client_ip(request) or "-"

        logger.info(f"[Request] {method} {path} from {client}")
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(f"[Unhandled Error] {method} {path} from {client}")
            raise

        duration_ms = (time.time() - start) * 1000
        message = (
            f"[Response] {method} {path} from {client} -> {response.status_code} "
            f"in {duration_ms:.1f}ms{describe_request_state(request)}"
        )
        if response.status_code >= 500:
            logger.error(message)
        elif response.status_code >= 400:
            logger.warning(message)
        else:
            logger.info(message)
        return response
