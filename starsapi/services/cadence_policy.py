"""
주기 제한(Cadence) 정책

일일/주간 한도를 별도 카운터 없이 거래 원장과 보상 기록 테이블에서 집계해 판단합니다.
이 모듈은 조회만 하며 어떤 쓰기도 하지 않습니다.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from starsapi.config import Settings
from starsapi.core.identity import Identity
from starsapi.models.stars import TransactionType
from starsapi.repositories.reward_repository import (
    AdWatchRepository,
    ReferralRepository,
    SocialShareRepository,
)
from starsapi.repositories.star_repository import StarRepository
from starsapi.utils.date_utils import day_key, week_bounds


@dataclass(frozen=True)
class CadenceDecision:
    """집계 결과와 한도 비교"""

    count: int
    limit: int

    @property
    def allowed(self) -> bool:
        return self.count < self.limit

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.count)

    @property
    def next_slot(self) -> int:
        """이번 요청이 차지할 순번 (1부터)"""
        return self.count + 1


def evaluate(count: int, limit: int) -> CadenceDecision:
    return CadenceDecision(count=max(0, count), limit=limit)


def ad_watch_count(identity_count: int, ip_count: Optional[int]) -> int:
    """
    익명 디바이스는 IP 기준 집계와 비교해 큰 값을 사용

    쿠키를 지우고 다시 받는 방식의 우회를 줄이기 위한 보조 신호입니다.
    같은 IP를 공유하는 다른 사용자의 시청도 합산될 수 있습니다.
    """
    if ip_count is None:
        return identity_count
    return max(identity_count, ip_count)


class CadencePolicy:
    def __init__(self, db: Session, settings: Settings):
        self.settings = settings
        self.star_repo = StarRepository(db)
        self.ad_repo = AdWatchRepository(db)
        self.share_repo = SocialShareRepository(db)
        self.referral_repo = ReferralRepository(db)

    def daily_claimed_stars(self, identity: Identity, now: datetime) -> int:
        return self.star_repo.sum_for_day(identity, TransactionType.DAILY_CLAIM, day_key(now))

    def can_claim_daily(self, identity: Identity, now: datetime) -> bool:
        claims = self.star_repo.count_for_day(identity, TransactionType.DAILY_CLAIM, day_key(now))
        return claims == 0

    def daily_ad_watches(
        self, identity: Identity, now: datetime, client_ip: Optional[str] = None
    ) -> CadenceDecision:
        today = day_key(now)
        identity_count = self.ad_repo.count_for_day(identity, today)
        ip_count = None
        if identity.is_device and client_ip:
            ip_count = self.ad_repo.count_for_ip(client_ip, today)
        return evaluate(
            ad_watch_count(identity_count, ip_count),
            self.settings.MAX_DAILY_AD_WATCHES,
        )

    def daily_social_shares(self, identity: Identity, now: datetime) -> CadenceDecision:
        count = self.share_repo.count_for_day(identity, day_key(now))
        return evaluate(count, self.settings.MAX_DAILY_SOCIAL_SHARES)

    def weekly_referrals(self, referrer_id: str, now: datetime) -> CadenceDecision:
        start, end = week_bounds(now)
        count = self.referral_repo.count_bonuses_between(referrer_id, start, end)
        return evaluate(count, self.settings.MAX_WEEKLY_REFERRALS)
