"""
스타(Stars) 잔액 및 거래 원장 데이터 모델

잔액 테이블(star_balances)은 아이덴티티별 현재 잔액의 단일 진실 공급원이며,
거래 원장(star_transactions)은 모든 잔액 변동을 기록하는 append-only 테이블입니다.
일일 클레임/광고 시청 등 주기 제한은 이 원장에서 집계하여 계산합니다.
"""

import enum
from datetime import date, datetime
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.schema import UniqueConstraint

from starsapi.models.base import Base, BaseModel, BigIntId

# current_stars, amount, balance_after 는 32비트 Integer 컬럼
MAX_STARS = 2**31 - 1


class IdentityKind(str, enum.Enum):
    """잔액 소유자 종류 - 익명 디바이스 또는 인증된 사용자"""

    DEVICE = "device"
    USER = "user"


class TransactionType(str, enum.Enum):
    REFILL = "refill"  # 상한 적용 add
    SPEND = "spend"
    SET = "set"  # 구매/관리자 보정 (상한 없음)
    REFRESH = "refresh"  # 상한까지 충전
    DAILY_CLAIM = "daily_claim"
    AD_WATCH = "ad_watch"
    SOCIAL_SHARE = "social_share"
    REFERRAL_BONUS = "referral_bonus"  # 추천인 보상
    REFERRAL_WELCOME = "referral_welcome"  # 피추천인 보상
    SHARE_VISIT = "share_visit"


class StarBalance(BaseModel):
    """
    아이덴티티별 스타 잔액

    - (identity_kind, identity_key) 유니크: 동시 get-or-create 시에도 한 행만 생성
    - current_stars >= 0 (DB 레벨 체크 제약)
    """

    __tablename__ = "star_balances"
    __table_args__ = (
        UniqueConstraint("identity_kind", "identity_key", name="uq_star_balance_identity"),
        CheckConstraint("current_stars >= 0", name="ck_star_balance_non_negative"),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    identity_kind: Mapped[str] = mapped_column(String(16), nullable=False)
    identity_key: Mapped[str] = mapped_column(String(255), nullable=False)
    current_stars: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<StarBalance({self.identity_kind}:{self.identity_key}, stars={self.current_stars})>"


class StarTransaction(Base):
    """
    스타 거래 원장 - 불변(Immutable) 레코드

    - amount: 실제 적용된 변동량 (양수=적립, 음수=차감)
    - balance_after: 거래 직후 잔액 (amount 합계와 항상 일치해야 함)
    - ref_id: 중복 방지 키 (일일 클레임, 광고 시청 슬롯 등). 없으면 NULL
    - day_key: UTC 기준 날짜 (일/주 단위 집계용)
    """

    __tablename__ = "star_transactions"
    __table_args__ = (
        UniqueConstraint("ref_id", name="uq_star_transaction_ref_id"),
        Index("idx_star_tx_identity_day", "identity_kind", "identity_key", "day_key"),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    identity_kind: Mapped[str] = mapped_column(String(16), nullable=False)
    identity_key: Mapped[str] = mapped_column(String(255), nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    balance_after: Mapped[int] = mapped_column(Integer, nullable=False)
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    ref_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    day_key: Mapped[date] = mapped_column(Date, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
