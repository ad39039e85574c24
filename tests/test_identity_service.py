import pytest
from starlette.requests import Request

from starsapi.core.exceptions import IdentityUnresolvedError
from starsapi.models.stars import IdentityKind
from starsapi.services.identity_service import DeviceTokenSigner, IdentityResolver
from starsapi.utils.request_utils import get_client_ip


@pytest.fixture
def signer():
    return DeviceTokenSigner("unit-test-secret")


@pytest.fixture
def resolver(signer):
    return IdentityResolver(signer)


class TestDeviceTokenSigner:
    def test_sign_and_verify(self, signer):
        token = signer.mint()

        assert signer.verify(signer.sign(token)) == token

    def test_signature_is_base64url_without_padding(self, signer):
        sig = signer.signature("abc")

        assert "=" not in sig and "+" not in sig and "/" not in sig

    @pytest.mark.parametrize(
        "cookie",
        [None, "", "no-dot", "a.b.c", ".sig", "token."],
    )
    def test_malformed_cookie(self, signer, cookie):
        assert signer.verify(cookie) is None

    def test_tampered_token_rejected(self, signer):
        cookie = signer.sign("token-a")
        _, sig = cookie.split(".")

        assert signer.verify(f"token-b.{sig}") is None

    def test_other_secret_rejected(self, signer):
        cookie = DeviceTokenSigner("another-secret").sign("token-a")

        assert signer.verify(cookie) is None


class TestIdentityResolver:
    def test_user_wins_over_cookie(self, resolver, signer):
        ctx = resolver.resolve(user_id="user-1", cookie_value=signer.sign("dev-1"))

        assert ctx.identity.kind is IdentityKind.USER
        assert ctx.identity.value == "user-1"
        assert ctx.is_authenticated is True
        assert ctx.issued_device_token is None

    def test_valid_cookie_resolves_device(self, resolver, signer):
        ctx = resolver.resolve(cookie_value=signer.sign("dev-1"), client_ip="1.2.3.4")

        assert ctx.identity.kind is IdentityKind.DEVICE
        assert ctx.identity.value == "dev-1"
        assert ctx.client_ip == "1.2.3.4"
        assert ctx.issued_device_token is None

    def test_missing_cookie_mints_token(self, resolver):
        ctx = resolver.resolve()

        assert ctx.identity.is_device
        assert ctx.issued_device_token == ctx.identity.value
        assert ctx.client_ip is None

    def test_forged_cookie_mints_new_token(self, resolver):
        ctx = resolver.resolve(cookie_value="dev-1.forged")

        assert ctx.identity.value != "dev-1"
        assert ctx.issued_device_token == ctx.identity.value

    def test_unresolved_when_cookie_cannot_be_written(self, resolver):
        with pytest.raises(IdentityUnresolvedError):
            resolver.resolve(can_write_cookie=False)

    def test_unresolved_without_secret(self):
        resolver = IdentityResolver(DeviceTokenSigner(""))

        with pytest.raises(IdentityUnresolvedError):
            resolver.resolve(cookie_value="dev-1.sig")

    def test_user_resolves_without_secret(self):
        resolver = IdentityResolver(DeviceTokenSigner(""))

        assert resolver.resolve(user_id="user-1").identity.is_user


def _request(headers=None, client=None):
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
    }
    return Request(scope)


class TestClientIp:
    def test_forwarded_for_first_hop(self):
        request = _request({"X-Forwarded-For": "203.0.113.7, 10.0.0.1"}, client=("10.0.0.1", 5000))

        assert get_client_ip(request) == "203.0.113.7"

    def test_socket_peer(self):
        assert get_client_ip(_request(client=("198.51.100.2", 5000))) == "198.51.100.2"

    def test_unknown_ip_is_none(self):
        assert get_client_ip(_request()) is None
