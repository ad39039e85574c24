from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from pydantic import ValidationError

from starsapi.config import Settings, settings as default_settings
from starsapi.core.exceptions import AuthenticationError
from starsapi.schemas.auth import TokenPayload


def create_access_token(
    user_id: str,
    expires_delta: Optional[timedelta] = None,
    settings: Optional[Settings] = None,
) -> str:
    """사용자 ID를 sub로 담은 JWT 발급 (로컬 개발/테스트용, 운영에서는 인증 제공자가 발급)"""
    settings = settings or default_settings
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
        )
    to_encode = {"sub": str(user_id), "exp": expire}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str, settings: Optional[Settings] = None) -> TokenPayload:
    """JWT 검증 후 클레임 반환

    Raises:
        AuthenticationError: 서명 키 미설정, 서명/만료 검증 실패, sub 누락
    """
    settings = settings or default_settings
    if not settings.SECRET_KEY:
        raise AuthenticationError("Token verification is not configured")

    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
        return TokenPayload.model_validate(payload)
    except (JWTError, ValidationError):
        raise AuthenticationError("Invalid or expired token")
