"""
보상 이벤트 기록 모델

각 테이블은 보상 지급의 동시성 가드 역할을 합니다.
유니크 제약이 걸린 insert가 성공한 요청만 잔액을 적립합니다.
"""

from datetime import date, datetime
from typing import Optional

from sqlalchemy import CheckConstraint, Date, DateTime, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.schema import UniqueConstraint

from starsapi.models.base import Base, BigIntId


class AdWatch(Base):
    """광고 시청 기록 - 일일 시청 횟수 집계용 (IP는 익명 디바이스 보조 키)"""

    __tablename__ = "ad_watches"
    __table_args__ = (
        Index("idx_ad_watches_identity_day", "identity_kind", "identity_key", "day_key"),
        Index("idx_ad_watches_ip_day", "ip_address", "day_key"),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    identity_kind: Mapped[str] = mapped_column(String(16), nullable=False)
    identity_key: Mapped[str] = mapped_column(String(255), nullable=False)
    ip_address: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    ad_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    stars_earned: Mapped[int] = mapped_column(Integer, nullable=False)
    day_key: Mapped[date] = mapped_column(Date, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


class SocialShare(Base):
    __tablename__ = "social_shares"
    __table_args__ = (
        Index("idx_social_shares_identity_day", "identity_kind", "identity_key", "day_key"),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    identity_kind: Mapped[str] = mapped_column(String(16), nullable=False)
    identity_key: Mapped[str] = mapped_column(String(255), nullable=False)
    ip_address: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    platform: Mapped[str] = mapped_column(String(50), nullable=False)
    share_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    stars_earned: Mapped[int] = mapped_column(Integer, nullable=False)
    day_key: Mapped[date] = mapped_column(Date, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


class ReferralCode(Base):
    """사용자별 추천 코드 - 사용자당 1개, 코드 전역 유니크"""

    __tablename__ = "referral_codes"
    __table_args__ = (
        UniqueConstraint("user_id", name="uq_referral_code_user"),
        UniqueConstraint("code", name="uq_referral_code_code"),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[str] = mapped_column(String(32), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


class ReferralBonus(Base):
    """
    추천 보상 지급 기록

    (referrer_id, referred_user_id) 조합당 1회이며, 피추천인은 추천 코드를
    한 번만 사용할 수 있으므로 referred_user_id도 유니크합니다.
    """

    __tablename__ = "referral_bonuses"
    __table_args__ = (
        UniqueConstraint("referrer_id", "referred_user_id", name="uq_referral_bonus_pair"),
        UniqueConstraint("referred_user_id", name="uq_referral_bonus_referred"),
        Index("idx_referral_bonuses_referrer_day", "referrer_id", "day_key"),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    referrer_id: Mapped[str] = mapped_column(String(255), nullable=False)
    referred_user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    bonus_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    day_key: Mapped[date] = mapped_column(Date, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


class SharedContent(Base):
    """
    공유된 콘텐츠(리딩)와 소유자

    owner_kind/owner_key는 둘 다 NULL이거나 둘 다 설정되어야 합니다.
    """

    __tablename__ = "shared_contents"
    __table_args__ = (
        CheckConstraint(
            "(owner_kind IS NULL AND owner_key IS NULL) OR "
            "(owner_kind IS NOT NULL AND owner_key IS NOT NULL)",
            name="ck_shared_content_owner",
        ),
    )

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    owner_kind: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    owner_key: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


class ShareVisitAward(Base):
    """
    공유 콘텐츠 방문 보상 기록

    (shared_content_id, viewer_kind, viewer_key) 유니크 - 같은 방문자가 같은
    콘텐츠를 다시 방문해도 보상이 재지급되지 않습니다. 적립되지 않은 방문도
    stars_awarded=0, outcome과 함께 기록되어 재처리를 막습니다.
    """

    __tablename__ = "share_visit_awards"
    __table_args__ = (
        UniqueConstraint(
            "shared_content_id", "viewer_kind", "viewer_key", name="uq_share_visit_viewer"
        ),
        Index("idx_share_visit_content", "shared_content_id"),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    shared_content_id: Mapped[str] = mapped_column(String(255), nullable=False)
    viewer_kind: Mapped[str] = mapped_column(String(16), nullable=False)
    viewer_key: Mapped[str] = mapped_column(String(255), nullable=False)
    owner_kind: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    owner_key: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    stars_awarded: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    outcome: Mapped[str] = mapped_column(String(32), nullable=False)
    day_key: Mapped[date] = mapped_column(Date, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
