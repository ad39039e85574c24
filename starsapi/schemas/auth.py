from pydantic import BaseModel, Field
from typing import Optional


class TokenPayload(BaseModel):
    """인증 제공자가 발급한 JWT 클레임"""

    sub: str = Field(..., min_length=1, description="사용자 ID")
    exp: Optional[int] = None


class AuthenticatedUser(BaseModel):
    user_id: str


class DeviceInitResponse(BaseModel):
    ok: bool = True
    identity_kind: str
    issued: bool = Field(..., description="이번 요청에서 새 디바이스 쿠키를 발급했는지 여부")
