from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from starsapi.core.exceptions import AuthenticationError
from starsapi.core.security import decode_access_token
from starsapi.schemas.auth import AuthenticatedUser

# JWT Bearer 토큰 스킴
security = HTTPBearer(auto_error=False)


def get_current_user_optional(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[AuthenticatedUser]:
    """선택적 사용자 인증 - 토큰이 없거나 유효하지 않아도 None 반환

    None이면 익명 디바이스 아이덴티티로 처리됩니다.
    """
    if not credentials:
        return None

    try:
        payload = decode_access_token(credentials.credentials)
    except AuthenticationError:
        return None
    return AuthenticatedUser(user_id=payload.sub)
