"""
요청 아이덴티티 확인

- 인증된 사용자 ID가 있으면 항상 우선
- 없으면 서명된 디바이스 쿠키(`<token>.<base64url HMAC-SHA256>`)를 검증
- 쿠키가 없거나 위조되었으면 새 토큰을 발급하고 응답에 쿠키를 써야 함을 표시
"""

import base64
import hashlib
import hmac
import logging
import uuid
from typing import Optional

from starsapi.core.exceptions import IdentityUnresolvedError
from starsapi.core.identity import Identity, RequestContext

logger = logging.getLogger(__name__)


class DeviceTokenSigner:
    """익명 디바이스 토큰 서명/검증"""

    def __init__(self, secret: str):
        self._secret = secret.encode("utf-8") if secret else b""

    @property
    def enabled(self) -> bool:
        return bool(self._secret)

    @staticmethod
    def mint() -> str:
        return str(uuid.uuid4())

    def signature(self, token: str) -> str:
        if not self.enabled:
            raise IdentityUnresolvedError("Device cookie signing secret is not configured")
        digest = hmac.new(self._secret, token.encode("utf-8"), hashlib.sha256).digest()
        return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")

    def sign(self, token: str) -> str:
        """쿠키 값 생성"""
        return f"{token}.{self.signature(token)}"

    def verify(self, cookie_value: Optional[str]) -> Optional[str]:
        """서명이 유효하면 토큰, 아니면 None"""
        if not cookie_value or not self.enabled:
            return None

        parts = cookie_value.split(".")
        if len(parts) != 2 or not parts[0] or not parts[1]:
            return None

        token, sig = parts
        if not hmac.compare_digest(sig, self.signature(token)):
            return None
        return token


class IdentityResolver:
    def __init__(self, signer: DeviceTokenSigner):
        self.signer = signer

    def resolve(
        self,
        user_id: Optional[str] = None,
        cookie_value: Optional[str] = None,
        client_ip: Optional[str] = None,
        can_write_cookie: bool = True,
    ) -> RequestContext:
        """
        요청 하나에 대해 정확히 하나의 아이덴티티 결정

        Raises:
            IdentityUnresolvedError: 익명 아이덴티티를 확립할 수 없는 경우
                (서명 키 미설정 또는 쿠키를 쓸 수 없는 응답)
        """
        if user_id:
            return RequestContext(identity=Identity.user(user_id), client_ip=client_ip)

        if not self.signer.enabled:
            logger.error("Device cookie secret missing, anonymous identity unavailable")
            raise IdentityUnresolvedError()

        token = self.signer.verify(cookie_value)
        if token:
            return RequestContext(identity=Identity.device(token), client_ip=client_ip)

        if not can_write_cookie:
            raise IdentityUnresolvedError("Device cookie missing and cannot be issued")

        if cookie_value:
            logger.warning(f"Invalid device cookie signature from {client_ip or '-'}, issuing new token")

        token = self.signer.mint()
        return RequestContext(
            identity=Identity.device(token),
            client_ip=client_ip,
            issued_device_token=token,
        )
