from typing import List, Optional
from sqlalchemy.orm import Session
import logging

from starsapi.config import Settings, get_settings
from starsapi.core.exceptions import (
    AuthorizationRequiredError,
    InsufficientBalanceError,
    InvalidAmountError,
)
from starsapi.core.identity import Identity
from starsapi.database.session import unit_of_work
from starsapi.models.stars import MAX_STARS, TransactionType
from starsapi.repositories.star_repository import StarRepository
from starsapi.schemas.stars import (
    DailyClaimResponse,
    StarBalanceResponse,
    StarBalanceSchema,
    StarIntegrityCheckResponse,
    StarMutationResponse,
    StarTransactionEntry,
)
from starsapi.services.cadence_policy import CadencePolicy
from starsapi.utils.date_utils import Clock, day_key, to_utc, utc_now

logger = logging.getLogger(__name__)


def _require_positive_int(value, field: str = "amount") -> int:
    # bool은 int의 서브클래스라서 별도로 거부
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidAmountError(
            f"{field} must be a positive integer", details={field: value}
        )
    if value > MAX_STARS:
        raise InvalidAmountError(
            f"{field} must not exceed {MAX_STARS}", details={field: value}
        )
    return value


class StarService:
    """스타 잔액 관련 비즈니스 로직을 담당하는 서비스

    모든 잔액 변경은 잔액 행을 잠근 상태에서 계산되고,
    거래 원장 기록과 함께 하나의 트랜잭션으로 commit 됩니다.
    """

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
        self.policy = CadencePolicy(db, self.settings)

    def _now(self):
        return to_utc(self.clock())

    @property
    def ceiling(self) -> int:
        return self.settings.STARS_REFILL_CEILING

    def get_balance(self, identity: Identity) -> StarBalanceResponse:
        """잔액과 오늘의 클레임/광고 시청 현황 조회 (행이 없으면 0으로 생성)"""
        now = self._now()
        with unit_of_work(self.db):
            balance = self.star_repo.get_or_create(identity)

        return StarBalanceResponse(
            stars=balance.current_stars,
            can_claim_daily=self.policy.can_claim_daily(identity, now),
            daily_stars_claimed=self.policy.daily_claimed_stars(identity, now),
            daily_ad_watches=self.policy.daily_ad_watches(identity, now).count,
        )

    def get_or_create(self, identity: Identity) -> StarBalanceSchema:
        with unit_of_work(self.db):
            return self.star_repo.get_or_create(identity)

    def add(self, identity: Identity, amount: int) -> StarMutationResponse:
        """상한이 적용되는 충전 - 결과는 항상 [0, ceiling] 범위

        구매 등 상한 없는 변경은 set을 사용합니다.
        """
        _require_positive_int(amount)
        now = self._now()

        with unit_of_work(self.db):
            row = self.star_repo.lock_balance(identity)
            new_balance = min(self.ceiling, max(0, row.current_stars + amount))
            change = self.star_repo.apply_change(
                row,
                new_balance,
                TransactionType.REFILL,
                now,
                description=f"Refill +{amount}",
            )

        logger.info(
            f"Refill for {identity}: requested={amount}, applied={change.delta}, balance={change.current}"
        )
        message = "" if change.delta else f"Balance is already at the refill limit ({self.ceiling})"
        return StarMutationResponse(stars=change.current, delta=change.delta, message=message)

    def spend(
        self, identity: Identity, amount: int, reason: Optional[str] = None
    ) -> StarMutationResponse:
        _require_positive_int(amount)
        now = self._now()

        with unit_of_work(self.db):
            row = self.star_repo.lock_balance(identity)
            if row.current_stars < amount:
                raise InsufficientBalanceError(
                    f"Insufficient stars. Required: {amount}, Available: {row.current_stars}",
                    details={"required": amount, "available": row.current_stars},
                )
            change = self.star_repo.apply_change(
                row,
                row.current_stars - amount,
                TransactionType.SPEND,
                now,
                description=reason or "Stars spent",
            )

        logger.info(f"Spent {amount} stars for {identity}: balance={change.current}")
        return StarMutationResponse(stars=change.current, delta=change.delta)

    def set_balance(self, identity: Identity, balance: int) -> StarMutationResponse:
        """절대값 설정 (구매, 관리자 보정, 익명 잔액 병합 등) - 리필 상한은 적용하지 않음"""
        if not identity.is_user:
            raise AuthorizationRequiredError("Setting an absolute balance requires a signed-in user")
        if isinstance(balance, bool) or not isinstance(balance, int) or balance < 0:
            raise InvalidAmountError(
                "balance must be a non-negative integer", details={"balance": balance}
            )
        if balance > MAX_STARS:
            raise InvalidAmountError(
                f"balance must not exceed {MAX_STARS}", details={"balance": balance}
            )
        now = self._now()

        with unit_of_work(self.db):
            row = self.star_repo.lock_balance(identity)
            change = self.star_repo.apply_change(
                row,
                balance,
                TransactionType.SET,
                now,
                description=f"Balance set to {balance}",
            )

        logger.info(f"Balance set for {identity}: {change.previous} -> {change.current}")
        return StarMutationResponse(stars=change.current, delta=change.delta)

    def refresh(self, identity: Identity) -> StarMutationResponse:
        """상한까지 충전 - 이미 상한 이상이면 아무것도 하지 않음"""
        now = self._now()

        with unit_of_work(self.db):
            row = self.star_repo.lock_balance(identity)
            if row.current_stars >= self.ceiling:
                return StarMutationResponse(
                    stars=row.current_stars,
                    delta=0,
                    message="Balance is already at or above the refill limit",
                )
            change = self.star_repo.apply_change(
                row,
                self.ceiling,
                TransactionType.REFRESH,
                now,
                description=f"Refreshed to {self.ceiling}",
            )

        return StarMutationResponse(stars=change.current, delta=change.delta)

    def claim_daily(self, identity: Identity) -> DailyClaimResponse:
        """일일 스타 수령 - 같은 UTC 날짜에 한 번만 적립

        이미 수령한 경우 예외 없이 success=False로 응답합니다.
        """
        now = self._now()
        today = day_key(now)
        amount = (
            self.settings.DAILY_CLAIM_STARS_USER
            if identity.is_user
            else self.settings.DAILY_CLAIM_STARS_DEVICE
        )
        ref_id = f"daily_claim:{identity.key}:{today.isoformat()}"

        with unit_of_work(self.db):
            row = self.star_repo.lock_balance(identity)
            if self.policy.can_claim_daily(identity, now):
                change = self.star_repo.apply_change(
                    row,
                    row.current_stars + amount,
                    TransactionType.DAILY_CLAIM,
                    now,
                    description="Daily stars",
                    ref_id=ref_id,
                )
                claimed = change.recorded
                stars = change.current
            else:
                claimed = False
                stars = row.current_stars

        daily_claimed = self.policy.daily_claimed_stars(identity, now)
        if not claimed:
            return DailyClaimResponse(
                success=False,
                message="Daily stars already claimed today",
                stars=stars,
                daily_stars_claimed=daily_claimed,
            )

        logger.info(f"Daily claim for {identity}: +{amount}, balance={stars}")
        return DailyClaimResponse(
            success=True,
            message=f"Claimed {amount} daily stars",
            stars=stars,
            daily_stars_claimed=daily_claimed,
        )

    def list_transactions(
        self, identity: Identity, limit: Optional[int] = None
    ) -> List[StarTransactionEntry]:
        if limit is None:
            limit = self.settings.TRANSACTIONS_DEFAULT_LIMIT
        limit = max(1, min(limit, self.settings.TRANSACTIONS_MAX_LIMIT))
        return self.star_repo.list_transactions(identity, limit)

    def verify_integrity(self, identity: Identity) -> StarIntegrityCheckResponse:
        result = self.star_repo.verify_integrity(identity, self._now())
        if result.status != "OK":
            logger.warning(
                f"Ledger mismatch for {identity}: calculated={result.calculated_balance}, recorded={result.recorded_balance}"
            )
        return result
