"""
보상 지급 서비스

외부 이벤트(광고 시청, 소셜 공유, 추천 완료, 공유 콘텐츠 방문)에 대한 스타 적립을 담당합니다.

- 광고/공유: 일일 한도 확인 → 적립 → 기록 (한 트랜잭션)
- 추천/방문: 유니크 기록 insert 성공 시에만 적립 (insert-then-credit, 한 트랜잭션)
"""

import logging
import secrets
import string
from typing import Optional

from sqlalchemy.orm import Session

from starsapi.config import Settings, get_settings
from starsapi.core.exceptions import (
    AlreadyProcessedError,
    AuthorizationRequiredError,
    ConflictError,
    DailyLimitReachedError,
    DailyShareLimitReachedError,
    InvalidReferralCodeError,
    MissingPlatformError,
    SelfReferralError,
    WeeklyReferralCapReachedError,
)
from starsapi.core.identity import Identity
from starsapi.database.session import unit_of_work
from starsapi.models.stars import StarBalance, TransactionType
from starsapi.repositories.reward_repository import (
    AdWatchRepository,
    ReferralRepository,
    SharedContentRepository,
    SocialShareRepository,
)
from starsapi.repositories.star_repository import AppliedChange, StarRepository
from starsapi.schemas.rewards import (
    AdWatchResponse,
    AwardOutcome,
    ReferralCodeResponse,
    ReferralProcessResponse,
    SharedContentResponse,
    ShareEarnedStarsResponse,
    ShareVisitAwardResponse,
    SocialShareResponse,
)
from starsapi.services.cadence_policy import CadencePolicy
from starsapi.utils.date_utils import Clock, day_key, to_utc, utc_now

logger = logging.getLogger(__name__)

REFERRAL_CODE_ALPHABET = string.ascii_uppercase + string.digits
REFERRAL_CODE_ATTEMPTS = 5
VISIT_PENDING = "recorded"


class RewardService:
    """보상 이벤트 처리 서비스"""

    def __init__(
        self,
        db: Session,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None,
    ):
        self.db = db
        self.settings = settings or get_settings()
        self.clock = clock or utc_now
        self.star_repo = StarRepository(db)
        self.ad_repo = AdWatchRepository(db)
        self.share_repo = SocialShareRepository(db)
        self.referral_repo = ReferralRepository(db)
        self.content_repo = SharedContentRepository(db)
        self.policy = CadencePolicy(db, self.settings)

    def _now(self):
        return to_utc(self.clock())

    def _credit(
        self,
        row: StarBalance,
        amount: int,
        tx_type: TransactionType,
        now,
        description: str,
        ref_id: Optional[str] = None,
    ) -> AppliedChange:
        """잠긴 잔액 행에 적립 (상한 없음)"""
        return self.star_repo.apply_change(
            row,
            row.current_stars + amount,
            tx_type,
            now,
            description=description,
            ref_id=ref_id,
        )

    # ------------------------------------------------------------------
    # Ad watch / social share
    # ------------------------------------------------------------------

    def watch_ad(self, identity: Identity, client_ip: Optional[str] = None) -> AdWatchResponse:
        """
        광고 시청 보상

        익명 디바이스는 IP 기준 집계도 함께 확인합니다 (약한 보조 신호).

        Raises:
            DailyLimitReachedError: 오늘 시청 한도 도달
        """
        now = self._now()
        today = day_key(now)
        per_watch = self.settings.STARS_PER_AD_WATCH
        max_watches = self.settings.MAX_DAILY_AD_WATCHES

        with unit_of_work(self.db):
            row = self.star_repo.lock_balance(identity)
            decision = self.policy.daily_ad_watches(identity, now, client_ip)
            if not decision.allowed:
                raise DailyLimitReachedError(
                    f"Daily ad watch limit reached ({max_watches})",
                    details={"daily_ad_watches": decision.count, "max_daily_ad_watches": max_watches},
                )

            slot = self.ad_repo.count_for_day(identity, today) + 1
            change = self._credit(
                row,
                per_watch,
                TransactionType.AD_WATCH,
                now,
                description=f"Ad watch #{slot}",
                ref_id=f"ad_watch:{identity.key}:{today.isoformat()}:{slot}",
            )
            if not change.recorded:
                raise ConflictError("Concurrent ad watch in progress, please retry")

            self.ad_repo.create(identity, client_ip, slot, per_watch, today)

        watched = decision.count + 1
        logger.info(f"Ad watch credited for {identity}: +{per_watch}, watches today={watched}")
        return AdWatchResponse(
            message=f"Earned {per_watch} stars",
            stars=change.current,
            stars_earned=per_watch,
            daily_ad_watches=watched,
            max_daily_ad_watches=max_watches,
        )

    def social_share(
        self,
        identity: Identity,
        platform: Optional[str],
        share_url: Optional[str] = None,
        client_ip: Optional[str] = None,
    ) -> SocialShareResponse:
        platform = (platform or "").strip().lower()
        if not platform:
            raise MissingPlatformError()

        now = self._now()
        today = day_key(now)
        per_share = self.settings.STARS_PER_SOCIAL_SHARE

        with unit_of_work(self.db):
            row = self.star_repo.lock_balance(identity)
            decision = self.policy.daily_social_shares(identity, now)
            if not decision.allowed:
                raise DailyShareLimitReachedError(
                    details={"daily_social_shares": decision.count, "max": decision.limit}
                )

            change = self._credit(
                row,
                per_share,
                TransactionType.SOCIAL_SHARE,
                now,
                description=f"Shared on {platform}",
                ref_id=f"social_share:{identity.key}:{today.isoformat()}:{decision.next_slot}",
            )
            if not change.recorded:
                raise ConflictError("Concurrent share in progress, please retry")

            self.share_repo.create(identity, platform, share_url, client_ip, per_share, today)

        return SocialShareResponse(
            message=f"Earned {per_share} stars for sharing",
            stars=change.current,
            stars_earned=per_share,
            daily_social_shares=decision.next_slot,
        )

    # ------------------------------------------------------------------
    # Referral
    # ------------------------------------------------------------------

    def _generate_code(self) -> str:
        length = self.settings.REFERRAL_CODE_LENGTH
        return "".join(secrets.choice(REFERRAL_CODE_ALPHABET) for _ in range(length))

    def get_referral_code(self, identity: Identity) -> ReferralCodeResponse:
        """사용자의 추천 코드 조회 (없으면 생성)"""
        if not identity.is_user:
            raise AuthorizationRequiredError("Referral codes are only available to signed-in users")

        existing = self.referral_repo.get_code_for_user(identity.value)
        if existing:
            return ReferralCodeResponse(code=existing.code)

        for _ in range(REFERRAL_CODE_ATTEMPTS):
            with unit_of_work(self.db):
                created = self.referral_repo.create_code(identity.value, self._generate_code())
                record = self.referral_repo.get_code_for_user(identity.value)
            if record:
                if created:
                    logger.info(f"Referral code created for {identity}")
                return ReferralCodeResponse(code=record.code)
            # 코드 충돌 - 다른 코드로 재시도

        raise ConflictError("Could not allocate a referral code, please retry")

    def process_referral(self, identity: Identity, referral_code: str) -> ReferralProcessResponse:
        """
        추천 보상 처리 - 추천인에게 보너스, 피추천인에게 환영 보상

        검증 순서: 자기 추천 → 코드 유효성 → 주간 한도 → 피추천인 중복 (코드는 1회만 사용 가능)
        """
        if not identity.is_user:
            raise AuthorizationRequiredError("Referral requires a signed-in user")

        referred_id = identity.value
        raw_code = (referral_code or "").strip()
        if raw_code == referred_id:
            raise SelfReferralError()

        code = raw_code.upper()
        now = self._now()
        today = day_key(now)
        bonus = self.settings.REFERRAL_BONUS_STARS
        welcome = self.settings.REFERRAL_WELCOME_STARS

        with unit_of_work(self.db):
            # 추천 코드 행 잠금으로 같은 추천인의 주간 한도 검사를 직렬화
            record = self.referral_repo.get_by_code(code, lock=True)
            if record is None:
                raise InvalidReferralCodeError(details={"referral_code": raw_code})

            referrer_id = record.user_id
            if referrer_id == referred_id:
                raise SelfReferralError()

            decision = self.policy.weekly_referrals(referrer_id, now)
            if not decision.allowed:
                raise WeeklyReferralCapReachedError(
                    details={"weekly_referrals": decision.count, "max": decision.limit}
                )

            if not self.referral_repo.record_bonus(referrer_id, referred_id, bonus, today):
                previous = self.referral_repo.get_bonus_for_referred(referred_id)
                if previous is not None and previous.referrer_id != referrer_id:
                    raise AlreadyProcessedError("You have already used a referral code")
                raise AlreadyProcessedError()

            referrer = Identity.user(referrer_id)
            # 서로를 동시에 추천하는 경우의 교착을 피하기 위해 키 순서로 잠금
            rows = {
                i.key: self.star_repo.lock_balance(i)
                for i in sorted([referrer, identity], key=lambda i: i.key)
            }

            self._credit(
                rows[referrer.key],
                bonus,
                TransactionType.REFERRAL_BONUS,
                now,
                description=f"Referral bonus for {referred_id}",
                ref_id=f"referral_bonus:{referrer_id}:{referred_id}",
            )
            referred_stars = rows[identity.key].current_stars
            if welcome > 0:
                change = self._credit(
                    rows[identity.key],
                    welcome,
                    TransactionType.REFERRAL_WELCOME,
                    now,
                    description="Referral welcome bonus",
                    ref_id=f"referral_welcome:{referred_id}",
                )
                referred_stars = change.current

        logger.info(f"Referral processed: referrer={referrer_id}, referred={referred_id}")
        return ReferralProcessResponse(
            message="Referral processed",
            referrer_id=referrer_id,
            bonus_amount=bonus,
            welcome_amount=max(0, welcome),
            stars=referred_stars,
        )

    # ------------------------------------------------------------------
    # Shared content visit
    # ------------------------------------------------------------------

    def register_shared_content(self, owner: Identity, content_id: str) -> SharedContentResponse:
        """
        공유 콘텐츠 소유자 등록

        이미 등록된 콘텐츠는 기존 소유자를 유지합니다.
        """
        with unit_of_work(self.db):
            created = self.content_repo.register(content_id, owner)
            content = self.content_repo.get_content(content_id)

        owned = bool(
            content
            and content.owner_kind == owner.kind.value
            and content.owner_key == owner.value
        )
        return SharedContentResponse(content_id=content_id, created=created, owned_by_caller=owned)

    def award_on_visit(self, viewer: Identity, content_id: str) -> ShareVisitAwardResponse:
        """
        공유 콘텐츠 방문 보상

        1. (content_id, viewer) 방문 기록 insert - 실패하면 이미 처리된 방문
        2. 소유자 확인 (없으면 OWNER_UNRESOLVED, 본인이면 SELF_VISIT)
        3. 콘텐츠 행을 잠그고 누적 지급량을 다시 집계해 상한 확인
        4. 소유자에게 적립하고 방문 기록에 결과 저장

        적립되지 않은 방문도 결과와 함께 기록되어 재처리되지 않습니다.
        """
        now = self._now()
        cap = self.settings.SHARE_VISIT_CONTENT_CAP
        reward = self.settings.SHARE_VISIT_REWARD

        with unit_of_work(self.db):
            if not self.content_repo.record_visit(content_id, viewer, VISIT_PENDING, day_key(now)):
                return ShareVisitAwardResponse(
                    credited=False,
                    outcome=AwardOutcome.ALREADY_AWARDED,
                    content_awarded_total=self.content_repo.sum_awarded(content_id),
                    max_stars=cap,
                )

            content = self.content_repo.get_content(content_id, lock=True)
            owner = None
            if content and content.owner_kind and content.owner_key:
                owner = Identity(content.owner_kind, content.owner_key)

            stars_awarded = 0
            if owner is None:
                outcome = AwardOutcome.OWNER_UNRESOLVED
            elif owner == viewer:
                outcome = AwardOutcome.SELF_VISIT
            else:
                awarded_total = self.content_repo.sum_awarded(content_id)
                stars_awarded = max(0, min(reward, cap - awarded_total))
                if stars_awarded == 0:
                    outcome = AwardOutcome.PER_CONTENT_CAP_REACHED
                else:
                    row = self.star_repo.lock_balance(owner)
                    self._credit(
                        row,
                        stars_awarded,
                        TransactionType.SHARE_VISIT,
                        now,
                        description=f"Shared reading visited ({content_id})",
                        ref_id=f"share_visit:{content_id}:{viewer.key}",
                    )
                    outcome = AwardOutcome.CREDITED

            self.content_repo.finalize_visit(content_id, viewer, owner, stars_awarded, outcome.value)
            total = self.content_repo.sum_awarded(content_id)

        if outcome is AwardOutcome.OWNER_UNRESOLVED:
            logger.warning(f"Share visit for {content_id} recorded without owner")
        elif outcome is AwardOutcome.CREDITED:
            logger.info(f"Share visit credited: content={content_id}, owner={owner}, total={total}")

        return ShareVisitAwardResponse(
            credited=outcome is AwardOutcome.CREDITED,
            outcome=outcome,
            stars_awarded=stars_awarded,
            content_awarded_total=total,
            max_stars=cap,
        )

    def get_earned_stars(self, content_id: str) -> ShareEarnedStarsResponse:
        return ShareEarnedStarsResponse(
            content_id=content_id,
            earned_stars=self.content_repo.sum_awarded(content_id),
            max_stars=self.settings.SHARE_VISIT_CONTENT_CAP,
        )
