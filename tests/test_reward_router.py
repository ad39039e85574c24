import pytest
from fastapi.testclient import TestClient
from unittest.mock import Mock

from starsapi.config import get_settings
from starsapi.core.exceptions import SelfReferralError
from starsapi.core.security import create_access_token
from starsapi.database.session import get_db
from starsapi.deps import get_reward_service
from starsapi.main import create_app
from starsapi.schemas.rewards import (
    AwardOutcome,
    ReferralCodeResponse,
    ShareVisitAwardResponse,
)

COOKIE_NAME = get_settings().DEVICE_COOKIE_NAME


def _bearer(user_id: str) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


@pytest.fixture
def app():
    return create_app()


@pytest.fixture
def reward_service():
    return Mock()


@pytest.fixture
def client(app, reward_service):
    app.dependency_overrides[get_reward_service] = lambda: reward_service
    return TestClient(app)


class TestRewardRoutes:
    """리워드 라우터 테스트"""

    def test_referral_code(self, client, reward_service):
        reward_service.get_referral_code.return_value = ReferralCodeResponse(code="ABCD1234")

        response = client.get("/api/v1/referral/code", headers=_bearer("user-1"))

        assert response.status_code == 200
        assert response.json()["code"] == "ABCD1234"

    def test_self_referral(self, client, reward_service):
        reward_service.process_referral.side_effect = SelfReferralError()

        response = client.post(
            "/api/v1/referral/process",
            json={"referral_code": "user-1"},
            headers=_bearer("user-1"),
        )

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "SELF_REFERRAL"

    def test_visit_outcome(self, client, reward_service):
        reward_service.award_on_visit.return_value = ShareVisitAwardResponse(
            credited=False,
            outcome=AwardOutcome.ALREADY_AWARDED,
            content_awarded_total=1,
            max_stars=5,
        )

        response = client.post("/api/v1/shares/reading-1/visit")

        assert response.status_code == 200
        assert response.json()["outcome"] == "already_awarded"
        assert reward_service.award_on_visit.call_args[0][1] == "reading-1"

    def test_device_init(self, client):
        response = client.post("/api/v1/device/init")

        assert response.status_code == 200
        assert response.json() == {"ok": True, "identity_kind": "device", "issued": True}
        assert COOKIE_NAME in response.cookies

        again = client.post("/api/v1/device/init")
        assert again.json()["issued"] is False


class TestShareApiFlow:
    """공유 등록 → 방문 보상 전체 흐름"""

    @pytest.fixture
    def client(self, app, db):
        app.dependency_overrides[get_db] = lambda: db
        return TestClient(app)

    def test_owner_credited_by_distinct_viewers(self, app, db):
        owner = TestClient(app)
        app.dependency_overrides[get_db] = lambda: db

        assert owner.post("/api/v1/shares", json={"content_id": "reading-9"}).json()["created"] is True

        outcomes = []
        for _ in range(7):
            viewer = TestClient(app)  # 새 쿠키 = 새 방문자
            outcomes.append(viewer.post("/api/v1/shares/reading-9/visit").json()["outcome"])

        assert outcomes.count("credited") == 5
        assert outcomes.count("per_content_cap_reached") == 2
        assert owner.get("/api/v1/stars/balance").json()["stars"] == 5
        assert owner.get("/api/v1/shares/reading-9/earned").json()["earned_stars"] == 5

    def test_owner_visit_is_self_visit(self, client):
        client.post("/api/v1/shares", json={"content_id": "reading-1"})

        response = client.post("/api/v1/shares/reading-1/visit")

        assert response.json()["outcome"] == "self_visit"

    def test_referral_flow(self, client):
        code = client.get("/api/v1/referral/code", headers=_bearer("referrer")).json()["code"]

        response = client.post(
            "/api/v1/referral/process",
            json={"referral_code": code},
            headers=_bearer("newbie"),
        )

        assert response.status_code == 200
        assert response.json()["stars"] == 5

        duplicate = client.post(
            "/api/v1/referral/process",
            json={"referral_code": code},
            headers=_bearer("newbie"),
        )
        assert duplicate.status_code == 409
        assert duplicate.json()["error"]["code"] == "ALREADY_PROCESSED"

    def test_referral_code_requires_login(self, client):
        response = client.get("/api/v1/referral/code")

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "AUTH_REQUIRED"
