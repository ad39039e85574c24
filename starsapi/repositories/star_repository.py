"""
스타 리포지토리 - 잔액(Ledger Store) 및 거래 원장(Transaction Log) 접근

핵심 특징:
- 아이덴티티당 잔액 행은 하나뿐이며 동시 생성 요청도 같은 행으로 수렴합니다
- 잔액 변경은 항상 거래 원장 1행 추가와 같은 트랜잭션에서 일어납니다
- ref_id 유니크 제약으로 일일 클레임/광고 슬롯 등의 중복 적립을 막습니다
- commit은 호출하지 않습니다 (서비스의 작업 단위가 결정)
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import asc, desc, func
from sqlalchemy.orm import Session

from starsapi.core.identity import Identity
from starsapi.models.stars import StarBalance as StarBalanceModel
from starsapi.models.stars import StarTransaction as StarTransactionModel
from starsapi.models.stars import MAX_STARS, TransactionType
from starsapi.repositories.base import BaseRepository
from starsapi.schemas.stars import (
    StarBalanceSchema,
    StarIntegrityCheckResponse,
    StarTransactionEntry,
)
from starsapi.utils.date_utils import day_key


@dataclass
class AppliedChange:
    """apply_change 결과"""

    previous: int
    current: int
    recorded: bool

    @property
    def delta(self) -> int:
        return self.current - self.previous


class StarRepository(BaseRepository[StarBalanceModel, StarBalanceSchema]):
    def __init__(self, db: Session):
        super().__init__(StarBalanceModel, StarBalanceSchema, db)

    # ------------------------------------------------------------------
    # Ledger Store
    # ------------------------------------------------------------------

    def _balance_query(self, identity: Identity):
        return self.db.query(self.model_class).filter(
            self.model_class.identity_kind == identity.kind.value,
            self.model_class.identity_key == identity.value,
        )

    def get_balance_value(self, identity: Identity) -> int:
        row = self._balance_query(identity).first()
        return row.current_stars if row else 0

    def ensure_balance(self, identity: Identity) -> bool:
        """
        잔액 행이 없으면 0으로 생성

        동시에 호출되어도 유니크 제약 때문에 한 행만 남습니다.

        Returns:
            bool: 이번 호출로 생성되었는지 여부
        """
        if self._balance_query(identity).first() is not None:
            return False

        return self._insert_ignoring_conflict(
            self.model_class,
            {
                "identity_kind": identity.kind.value,
                "identity_key": identity.value,
                "current_stars": 0,
            },
            index_elements=["identity_kind", "identity_key"],
        )

    def get_or_create(self, identity: Identity) -> StarBalanceSchema:
        self.ensure_balance(identity)
        return self._to_schema(self._balance_query(identity).one())

    def lock_balance(self, identity: Identity) -> StarBalanceModel:
        """
        잔액 행을 SELECT ... FOR UPDATE로 잠그고 반환 (없으면 생성)

        같은 아이덴티티의 read-modify-write는 이 잠금으로 직렬화됩니다.
        """
        self.ensure_balance(identity)
        # 잠금 획득 후의 값으로 identity map을 갱신
        return self._balance_query(identity).with_for_update().populate_existing().one()

    def apply_change(
        self,
        balance_row: StarBalanceModel,
        new_balance: int,
        tx_type: TransactionType,
        now: datetime,
        description: str = "",
        ref_id: Optional[str] = None,
    ) -> AppliedChange:
        """
        잠긴 잔액 행에 새 잔액을 적용하고 거래 원장에 1행 추가

        - 변동량이 0이면 원장에 기록하지 않습니다
        - ref_id가 이미 존재하면 잔액도 바꾸지 않고 recorded=False를 반환합니다

        Raises:
            ValueError: new_balance가 음수이거나 컬럼 범위를 넘는 경우 (호출 측 정책 검증 누락)
        """
        if new_balance < 0:
            raise ValueError(f"Balance cannot go negative: {new_balance}")
        if new_balance > MAX_STARS:
            raise ValueError(f"Balance exceeds {MAX_STARS}: {new_balance}")

        previous = balance_row.current_stars
        if new_balance == previous:
            return AppliedChange(previous=previous, current=previous, recorded=False)

        inserted = self._insert_ignoring_conflict(
            StarTransactionModel,
            {
                "identity_kind": balance_row.identity_kind,
                "identity_key": balance_row.identity_key,
                "amount": new_balance - previous,
                "balance_after": new_balance,
                "type": tx_type.value,
                "description": description or "",
                "ref_id": ref_id,
                "day_key": day_key(now),
                "created_at": now,
            },
            index_elements=["ref_id"] if ref_id else None,
        )
        if not inserted:
            return AppliedChange(previous=previous, current=previous, recorded=False)

        balance_row.current_stars = new_balance
        self.db.flush()
        return AppliedChange(previous=previous, current=new_balance, recorded=True)

    # ------------------------------------------------------------------
    # Transaction Log
    # ------------------------------------------------------------------

    def _transaction_query(self, identity: Identity):
        return self.db.query(StarTransactionModel).filter(
            StarTransactionModel.identity_kind == identity.kind.value,
            StarTransactionModel.identity_key == identity.value,
        )

    def list_transactions(self, identity: Identity, limit: int) -> List[StarTransactionEntry]:
        """최신순 거래 내역"""
        rows = (
            self._transaction_query(identity)
            .order_by(desc(StarTransactionModel.id))
            .limit(limit)
            .all()
        )
        return [StarTransactionEntry.model_validate(row) for row in rows]

    def count_for_day(self, identity: Identity, tx_type: TransactionType, day: date) -> int:
        return (
            self._transaction_query(identity)
            .filter(
                StarTransactionModel.type == tx_type.value,
                StarTransactionModel.day_key == day,
            )
            .count()
        )

    def sum_for_day(self, identity: Identity, tx_type: TransactionType, day: date) -> int:
        total = (
            self.db.query(func.coalesce(func.sum(StarTransactionModel.amount), 0))
            .filter(
                StarTransactionModel.identity_kind == identity.kind.value,
                StarTransactionModel.identity_key == identity.value,
                StarTransactionModel.type == tx_type.value,
                StarTransactionModel.day_key == day,
            )
            .scalar()
        )
        return int(total or 0)

    def verify_integrity(self, identity: Identity, now: datetime) -> StarIntegrityCheckResponse:
        """
        잔액 정합성 검증

        1. 모든 거래의 amount 합계 계산
        2. 최신 거래의 balance_after와 잔액 테이블 값 비교
        3. 어느 하나라도 다르면 MISMATCH
        """
        entries = (
            self._transaction_query(identity)
            .order_by(asc(StarTransactionModel.id))
            .all()
        )
        recorded_balance = self.get_balance_value(identity)
        calculated_balance = sum(entry.amount for entry in entries)

        status = "OK"
        if calculated_balance != recorded_balance:
            status = "MISMATCH"
        elif entries and entries[-1].balance_after != recorded_balance:
            status = "MISMATCH"

        return StarIntegrityCheckResponse(
            status=status,
            identity_key=identity.key,
            calculated_balance=calculated_balance,
            recorded_balance=recorded_balance,
            entry_count=len(entries),
            verified_at=now.strftime("%Y-%m-%d %H:%M:%S"),
        )
