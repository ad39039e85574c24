import pytest

from starsapi.core.exceptions import (
    AuthorizationRequiredError,
    InsufficientBalanceError,
    InvalidAmountError,
)
from starsapi.core.identity import Identity
from starsapi.models.stars import MAX_STARS, StarBalance, StarTransaction, TransactionType
from starsapi.repositories.star_repository import StarRepository
from starsapi.services.star_service import StarService


@pytest.fixture
def star_service(db, settings, clock):
    return StarService(db, settings=settings, clock=clock)


@pytest.fixture
def device():
    return Identity.device("0b6a8c52-3c1e-4c53-9a5e-2f1f7a1d9e10")


@pytest.fixture
def user():
    return Identity.user("user-42")


def _transactions(db, identity, tx_type=None):
    query = db.query(StarTransaction).filter(
        StarTransaction.identity_kind == identity.kind.value,
        StarTransaction.identity_key == identity.value,
    )
    if tx_type is not None:
        query = query.filter(StarTransaction.type == tx_type.value)
    return query.order_by(StarTransaction.id).all()


class TestLedgerOperations:
    """잔액 변경 연산 테스트"""

    def test_get_or_create_starts_at_zero(self, star_service, device):
        balance = star_service.get_or_create(device)

        assert balance.current_stars == 0
        assert balance.identity_kind == "device"

    def test_get_or_create_is_idempotent(self, star_service, db, device):
        star_service.get_or_create(device)
        star_service.get_or_create(device)

        assert db.query(StarBalance).count() == 1

    def test_refill_clamps_at_ceiling(self, star_service, device):
        """0 → +2 → +2 x6 → 12에서 멈춤"""
        star_service.get_or_create(device)
        result = star_service.add(device, 2)
        assert result.stars == 2

        balances = [star_service.add(device, 2).stars for _ in range(6)]

        assert balances[-1] == 12
        assert max(balances) == 12

    def test_refill_at_ceiling_records_nothing(self, star_service, db, device):
        star_service.add(device, 12)
        result = star_service.add(device, 2)

        assert result.stars == 12
        assert result.delta == 0
        assert len(_transactions(db, device, TransactionType.REFILL)) == 1

    @pytest.mark.parametrize("amount", [0, -3, 2.5, "2", True])
    def test_add_rejects_invalid_amount(self, star_service, db, device, amount):
        with pytest.raises(InvalidAmountError):
            star_service.add(device, amount)

        assert _transactions(db, device) == []

    def test_spend_decrements(self, star_service, db, device):
        star_service.add(device, 10)

        result = star_service.spend(device, 3, reason="reading_cost")

        assert result.stars == 7
        assert result.delta == -3
        spends = _transactions(db, device, TransactionType.SPEND)
        assert len(spends) == 1
        assert spends[0].amount == -3
        assert spends[0].balance_after == 7
        assert spends[0].description == "reading_cost"

    def test_spend_insufficient_leaves_balance(self, star_service, db, device):
        star_service.add(device, 2)

        with pytest.raises(InsufficientBalanceError):
            star_service.spend(device, 5)

        assert star_service.get_or_create(device).current_stars == 2
        assert _transactions(db, device, TransactionType.SPEND) == []

    def test_set_exceeds_ceiling_for_user(self, star_service, user):
        result = star_service.set_balance(user, 150)

        assert result.stars == 150
        assert result.delta == 150

    def test_set_requires_user(self, star_service, db, device):
        with pytest.raises(AuthorizationRequiredError):
            star_service.set_balance(device, 50)

        assert _transactions(db, device) == []

    def test_set_rejects_negative(self, star_service, user):
        with pytest.raises(InvalidAmountError):
            star_service.set_balance(user, -1)

    @pytest.mark.parametrize("balance", [MAX_STARS + 1, 2**63])
    def test_set_rejects_balance_beyond_column_range(self, star_service, db, user, balance):
        with pytest.raises(InvalidAmountError):
            star_service.set_balance(user, balance)

        assert _transactions(db, user) == []

    def test_set_accepts_column_maximum(self, star_service, user):
        result = star_service.set_balance(user, MAX_STARS)

        assert result.stars == MAX_STARS

    def test_spend_rejects_amount_beyond_column_range(self, star_service, user):
        star_service.set_balance(user, 5)

        with pytest.raises(InvalidAmountError):
            star_service.spend(user, 2**63)

        assert star_service.get_or_create(user).current_stars == 5

    def test_refresh_tops_up_to_ceiling(self, star_service, device):
        star_service.add(device, 4)

        result = star_service.refresh(device)

        assert result.stars == 12
        assert result.delta == 8

    def test_refresh_above_ceiling_is_noop(self, star_service, db, user):
        star_service.set_balance(user, 30)

        result = star_service.refresh(user)

        assert result.stars == 30
        assert result.delta == 0
        assert _transactions(db, user, TransactionType.REFRESH) == []

    def test_balance_never_negative(self, star_service, user):
        star_service.set_balance(user, 5)
        star_service.spend(user, 5)
        with pytest.raises(InsufficientBalanceError):
            star_service.spend(user, 1)
        star_service.refresh(user)
        star_service.spend(user, 12)

        assert star_service.get_or_create(user).current_stars == 0

    def test_every_change_appends_matching_transaction(self, star_service, db, user):
        star_service.add(user, 5)
        star_service.spend(user, 2)
        star_service.set_balance(user, 40)
        star_service.claim_daily(user)

        entries = _transactions(db, user)
        assert len(entries) == 4
        assert sum(entry.amount for entry in entries) == 50
        assert entries[-1].balance_after == 50


class TestDailyClaim:
    def test_claim_credits_once_per_day(self, star_service, db, device, settings):
        first = star_service.claim_daily(device)
        second = star_service.claim_daily(device)

        assert first.success is True
        assert first.stars == settings.DAILY_CLAIM_STARS_DEVICE
        assert second.success is False
        assert second.stars == settings.DAILY_CLAIM_STARS_DEVICE
        assert second.daily_stars_claimed == settings.DAILY_CLAIM_STARS_DEVICE
        assert len(_transactions(db, device, TransactionType.DAILY_CLAIM)) == 1

    def test_user_claim_amount(self, star_service, user, settings):
        result = star_service.claim_daily(user)

        assert result.stars == settings.DAILY_CLAIM_STARS_USER

    def test_claim_again_after_utc_midnight(self, star_service, device, clock):
        star_service.claim_daily(device)
        clock.advance(hours=14)  # 다음날 00:00 UTC

        result = star_service.claim_daily(device)

        assert result.success is True
        assert result.stars == 10

    def test_claim_is_not_capped_by_refill_ceiling(self, star_service, user):
        star_service.add(user, 12)

        result = star_service.claim_daily(user)

        assert result.stars == 22

    def test_balance_reports_claim_status(self, star_service, device):
        before = star_service.get_balance(device)
        star_service.claim_daily(device)
        after = star_service.get_balance(device)

        assert before.can_claim_daily is True
        assert before.stars == 0
        assert after.can_claim_daily is False
        assert after.daily_stars_claimed == 5


class TestTransactionsAndIntegrity:
    def test_list_transactions_newest_first(self, star_service, user):
        star_service.add(user, 1)
        star_service.add(user, 2)
        star_service.spend(user, 1)

        entries = star_service.list_transactions(user)

        assert [e.type for e in entries] == ["spend", "refill", "refill"]
        assert [e.balance_after for e in entries] == [2, 3, 1]

    def test_list_transactions_limit(self, star_service, user):
        for _ in range(5):
            star_service.add(user, 1)

        assert len(star_service.list_transactions(user, limit=2)) == 2
        assert len(star_service.list_transactions(user, limit=1000)) == 5

    def test_transactions_are_scoped_to_identity(self, star_service, user, device):
        star_service.add(user, 1)
        star_service.add(device, 1)

        entries = star_service.list_transactions(device)

        assert len(entries) == 1
        assert entries[0].identity_kind == "device"

    def test_integrity_ok(self, star_service, user):
        star_service.add(user, 7)
        star_service.spend(user, 2)

        result = star_service.verify_integrity(user)

        assert result.status == "OK"
        assert result.calculated_balance == 5
        assert result.recorded_balance == 5
        assert result.entry_count == 2

    def test_integrity_detects_mismatch(self, star_service, db, user):
        star_service.add(user, 7)
        row = db.query(StarBalance).filter(StarBalance.identity_key == user.value).one()
        row.current_stars = 9
        db.commit()

        result = star_service.verify_integrity(user)

        assert result.status == "MISMATCH"


class TestApplyChange:
    """StarRepository.apply_change 직접 호출"""

    def test_duplicate_ref_id_leaves_balance(self, db, user, clock):
        repo = StarRepository(db)
        row = repo.lock_balance(user)

        first = repo.apply_change(row, 5, TransactionType.DAILY_CLAIM, clock.now, ref_id="claim-1")
        second = repo.apply_change(row, 10, TransactionType.DAILY_CLAIM, clock.now, ref_id="claim-1")
        db.commit()

        assert first.recorded is True
        assert (second.previous, second.current, second.recorded) == (5, 5, False)
        assert second.delta == 0
        assert row.current_stars == 5
        assert [e.amount for e in _transactions(db, user)] == [5]

    def test_same_balance_records_nothing(self, db, user, clock):
        repo = StarRepository(db)
        row = repo.lock_balance(user)

        change = repo.apply_change(row, 0, TransactionType.SET, clock.now)

        assert change.recorded is False
        assert _transactions(db, user) == []

    @pytest.mark.parametrize("new_balance", [-1, MAX_STARS + 1])
    def test_out_of_range_balance_rejected(self, db, user, clock, new_balance):
        repo = StarRepository(db)
        row = repo.lock_balance(user)

        with pytest.raises(ValueError):
            repo.apply_change(row, new_balance, TransactionType.SET, clock.now)
