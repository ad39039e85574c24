"""Identity types shared by the ledger, the cadence policy and the reward engine."""

from dataclasses import dataclass
from typing import Optional

from starsapi.models.stars import IdentityKind


@dataclass(frozen=True)
class Identity:
    """잔액 소유자 - Device(token) | User(id) 태그드 유니온"""

    kind: IdentityKind
    value: str

    def __post_init__(self):
        if not isinstance(self.kind, IdentityKind):
            object.__setattr__(self, "kind", IdentityKind(self.kind))
        if not self.value or not str(self.value).strip():
            raise ValueError("Identity value must be a non-empty string")

    @classmethod
    def device(cls, token: str) -> "Identity":
        return cls(IdentityKind.DEVICE, token)

    @classmethod
    def user(cls, user_id: str) -> "Identity":
        return cls(IdentityKind.USER, str(user_id))

    @property
    def is_user(self) -> bool:
        return self.kind is IdentityKind.USER

    @property
    def is_device(self) -> bool:
        return self.kind is IdentityKind.DEVICE

    @property
    def key(self) -> str:
        """canonical identity key (e.g. "user:42", "device:9f1c...")"""
        return f"{self.kind.value}:{self.value}"

    def __str__(self) -> str:
        return self.key


@dataclass
class RequestContext:
    """
    요청 단위 컨텍스트 - 요청마다 생성되며 요청 간 공유되지 않음

    issued_device_token이 설정되어 있으면 응답에 새 서명 쿠키를 써야 합니다.
    """

    identity: Identity
    client_ip: Optional[str] = None
    issued_device_token: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.identity.is_user
