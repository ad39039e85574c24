from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class AdWatchResponse(BaseModel):
    success: bool = True
    message: str
    stars: int = Field(..., description="적립 후 잔액")
    stars_earned: int
    daily_ad_watches: int = Field(..., description="오늘 광고 시청 횟수 (이번 포함)")
    max_daily_ad_watches: int


class SocialShareRequest(BaseModel):
    platform: Optional[str] = Field(None, max_length=50, description="공유 플랫폼 (facebook, line, x ...)")
    share_url: Optional[str] = Field(None, max_length=2048)


class SocialShareResponse(BaseModel):
    success: bool = True
    message: str
    stars: int
    stars_earned: int
    daily_social_shares: int


class ReferralCodeResponse(BaseModel):
    success: bool = True
    code: str
    message: str = ""


class ReferralProcessRequest(BaseModel):
    referral_code: str = Field(..., min_length=1, max_length=255, description="추천인 키 (추천 코드)")


class ReferralProcessResponse(BaseModel):
    success: bool = True
    message: str
    referrer_id: str
    bonus_amount: int
    welcome_amount: int
    stars: int = Field(..., description="피추천인의 적립 후 잔액")


class SharedContentCreateRequest(BaseModel):
    content_id: str = Field(..., min_length=1, max_length=255)


class SharedContentResponse(BaseModel):
    content_id: str
    created: bool = Field(..., description="이번 요청으로 등록되었는지 여부")
    owned_by_caller: bool = Field(..., description="호출자가 소유자인지 여부")


class AwardOutcome(str, Enum):
    CREDITED = "credited"
    ALREADY_AWARDED = "already_awarded"
    PER_CONTENT_CAP_REACHED = "per_content_cap_reached"
    OWNER_UNRESOLVED = "owner_unresolved"
    SELF_VISIT = "self_visit"


class ShareVisitAwardResponse(BaseModel):
    credited: bool
    outcome: AwardOutcome
    stars_awarded: int = 0
    content_awarded_total: int = Field(..., description="해당 콘텐츠에서 지급된 누적 스타")
    max_stars: int


class ShareEarnedStarsResponse(BaseModel):
    content_id: str
    earned_stars: int
    max_stars: int


# ---------------------------------------------------------------------------
# Repository records
# ---------------------------------------------------------------------------


class AdWatchRecord(BaseModel):
    id: int
    identity_kind: str
    identity_key: str
    ip_address: Optional[str] = None
    ad_count: int
    stars_earned: int
    day_key: date

    class Config:
        from_attributes = True


class SocialShareRecord(BaseModel):
    id: int
    identity_kind: str
    identity_key: str
    platform: str
    share_url: Optional[str] = None
    stars_earned: int
    day_key: date

    class Config:
        from_attributes = True


class ReferralCodeRecord(BaseModel):
    user_id: str
    code: str

    class Config:
        from_attributes = True


class SharedContentRecord(BaseModel):
    id: str
    owner_kind: Optional[str] = None
    owner_key: Optional[str] = None

    class Config:
        from_attributes = True


class ShareVisitAwardRecord(BaseModel):
    shared_content_id: str
    viewer_kind: str
    viewer_key: str
    owner_kind: Optional[str] = None
    owner_key: Optional[str] = None
    stars_awarded: int
    outcome: str

    class Config:
        from_attributes = True
