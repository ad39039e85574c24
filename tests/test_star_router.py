import pytest
from fastapi.testclient import TestClient
from unittest.mock import Mock

from starsapi.config import get_settings
from starsapi.core.exceptions import (
    AuthorizationRequiredError,
    DailyLimitReachedError,
    InsufficientBalanceError,
)
from starsapi.core.security import create_access_token
from starsapi.database.session import get_db
from starsapi.deps import get_reward_service, get_star_service
from starsapi.main import create_app
from starsapi.schemas.rewards import AdWatchResponse
from starsapi.schemas.stars import (
    DailyClaimResponse,
    StarBalanceResponse,
    StarMutationResponse,
)

COOKIE_NAME = get_settings().DEVICE_COOKIE_NAME


@pytest.fixture
def app():
    return create_app()


@pytest.fixture
def star_service():
    return Mock()


@pytest.fixture
def reward_service():
    return Mock()


@pytest.fixture
def client(app, star_service, reward_service):
    """테스트 클라이언트 픽스처 - 서비스는 Mock으로 대체"""
    app.dependency_overrides[get_star_service] = lambda: star_service
    app.dependency_overrides[get_reward_service] = lambda: reward_service
    return TestClient(app)


@pytest.fixture
def auth_headers():
    token = create_access_token("user-42")
    return {"Authorization": f"Bearer {token}"}


class TestStarRoutes:
    """스타 라우터 테스트"""

    def test_balance_issues_device_cookie(self, client, star_service):
        # Given
        star_service.get_balance.return_value = StarBalanceResponse(
            stars=0, can_claim_daily=True
        )

        # When
        response = client.get("/api/v1/stars/balance")

        # Then
        assert response.status_code == 200
        assert response.json()["stars"] == 0
        assert COOKIE_NAME in response.cookies
        identity = star_service.get_balance.call_args[0][0]
        assert identity.is_device

    def test_device_cookie_is_reused(self, client, star_service):
        star_service.get_balance.return_value = StarBalanceResponse(
            stars=0, can_claim_daily=True
        )

        client.get("/api/v1/stars/balance")
        response = client.get("/api/v1/stars/balance")

        assert response.status_code == 200
        assert COOKIE_NAME not in response.cookies
        first = star_service.get_balance.call_args_list[0][0][0]
        second = star_service.get_balance.call_args_list[1][0][0]
        assert first == second

    def test_bearer_token_resolves_user(self, client, star_service, auth_headers):
        star_service.get_balance.return_value = StarBalanceResponse(
            stars=3, can_claim_daily=False
        )

        response = client.get("/api/v1/stars/balance", headers=auth_headers)

        assert response.status_code == 200
        identity = star_service.get_balance.call_args[0][0]
        assert identity.is_user
        assert identity.value == "user-42"

    def test_add(self, client, star_service):
        star_service.add.return_value = StarMutationResponse(stars=2, delta=2)

        response = client.post("/api/v1/stars/add", json={"amount": 2})

        assert response.status_code == 200
        assert response.json()["stars"] == 2
        assert star_service.add.call_args[0][1] == 2

    @pytest.mark.parametrize("body", [{"amount": "2"}, {"amount": 2.5}, {}])
    def test_add_rejects_malformed_amount(self, client, star_service, body):
        response = client.post("/api/v1/stars/add", json=body)

        assert response.status_code == 422
        assert response.json()["success"] is False
        star_service.add.assert_not_called()

    def test_spend_insufficient(self, client, star_service):
        star_service.spend.side_effect = InsufficientBalanceError()

        response = client.post("/api/v1/stars/spend", json={"amount": 5})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INSUFFICIENT_BALANCE"

    def test_set_requires_auth(self, client, star_service):
        star_service.set_balance.side_effect = AuthorizationRequiredError()

        response = client.post("/api/v1/stars/set", json={"balance": 100})

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "AUTH_REQUIRED"

    def test_claim_daily_already_claimed(self, client, star_service):
        star_service.claim_daily.return_value = DailyClaimResponse(
            success=False, message="Daily stars already claimed today", stars=5, daily_stars_claimed=5
        )

        response = client.post("/api/v1/stars/claim-daily")

        assert response.status_code == 200
        assert response.json()["success"] is False

    def test_watch_ad_limit(self, client, reward_service):
        reward_service.watch_ad.side_effect = DailyLimitReachedError()

        response = client.post("/api/v1/stars/watch-ad")

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "DAILY_LIMIT_REACHED"

    def test_watch_ad_passes_client_ip(self, client, reward_service):
        reward_service.watch_ad.return_value = AdWatchResponse(
            message="ok", stars=2, stars_earned=2, daily_ad_watches=1, max_daily_ad_watches=10
        )

        response = client.post(
            "/api/v1/stars/watch-ad", headers={"X-Forwarded-For": "203.0.113.7, 10.0.0.1"}
        )

        assert response.status_code == 200
        assert reward_service.watch_ad.call_args[1]["client_ip"] == "203.0.113.7"

    def test_transactions_limit_validation(self, client, star_service):
        response = client.get("/api/v1/stars/transactions", params={"limit": 0})

        assert response.status_code == 422
        star_service.list_transactions.assert_not_called()


class TestStarApiFlow:
    """실제 서비스 + sqlite 세션으로 전체 흐름 확인"""

    @pytest.fixture
    def client(self, app, db):
        app.dependency_overrides[get_db] = lambda: db
        return TestClient(app)

    def test_refill_then_spend(self, client):
        for _ in range(7):
            response = client.post("/api/v1/stars/add", json={"amount": 2})
        assert response.json()["stars"] == 12

        response = client.post("/api/v1/stars/spend", json={"amount": 5, "reason": "reading_cost"})
        assert response.json()["stars"] == 7

        response = client.get("/api/v1/stars/transactions", params={"limit": 2})
        entries = response.json()["transactions"]
        assert [e["type"] for e in entries] == ["spend", "refill"]

        response = client.get("/api/v1/stars/integrity")
        assert response.json()["status"] == "OK"

    def test_invalid_amount_code(self, client):
        response = client.post("/api/v1/stars/add", json={"amount": 0})

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "INVALID_AMOUNT"

    def test_set_with_device_identity(self, client):
        response = client.post("/api/v1/stars/set", json={"balance": 100})

        assert response.status_code == 401

    def test_set_oversized_balance_is_invalid_amount(self, client, auth_headers):
        response = client.post("/api/v1/stars/set", json={"balance": 2**63}, headers=auth_headers)

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "INVALID_AMOUNT"

    def test_set_with_user(self, client, auth_headers):
        response = client.post("/api/v1/stars/set", json={"balance": 100}, headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["stars"] == 100

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
