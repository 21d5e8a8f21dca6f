"""Unit tests for identity token formats and the AuthGate."""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from newsroom_api.auth.gate import AuthGate, parse_bearer
from newsroom_api.auth.tokens import BearerTokenFormat, IDTokenFormat
from newsroom_api.config import JWTSettings
from newsroom_api.domain.exceptions import Unauthenticated
from newsroom_api.domain.identity import Identity

SECRET = "unit-test-secret-with-enough-length-0123456789"


@pytest.fixture
def jwt_settings():
    return JWTSettings(secret=SECRET)


@pytest.fixture
def bearer(jwt_settings):
    return BearerTokenFormat(jwt_settings)


@pytest.fixture
def id_token(jwt_settings):
    return IDTokenFormat(jwt_settings)


@pytest.fixture
def gate(bearer, id_token):
    return AuthGate(bearer, id_token, cookie_name="id_token")


@pytest.fixture
def alice():
    return Identity(user_id=1, email="alice@example.org")


@pytest.fixture
def bob():
    return Identity(user_id=2, email="bob@example.org")


class TestTokenFormats:
    def test_bearer_round_trip(self, bearer, alice):
        claims = bearer.verify(bearer.issue(alice))

        assert claims.identity == alice
        assert claims.expires_at > datetime.now(timezone.utc)

    def test_id_token_round_trip(self, id_token, alice):
        assert id_token.verify(id_token.issue(alice)).identity == alice

    def test_cookie_token_is_not_a_bearer_token(self, bearer, id_token, alice):
        with pytest.raises(Unauthenticated):
            bearer.verify(id_token.issue(alice))

    def test_bearer_token_is_not_a_cookie_token(self, bearer, id_token, alice):
        with pytest.raises(Unauthenticated):
            id_token.verify(bearer.issue(alice))

    def test_expired_token_rejected(self, bearer, alice):
        issued = datetime.now(timezone.utc) - timedelta(days=30)

        with pytest.raises(Unauthenticated):
            bearer.verify(bearer.issue(alice, now=issued))

    def test_wrong_secret_rejected(self, bearer, alice):
        other = BearerTokenFormat(JWTSettings(secret="another-secret-with-enough-length-9876543210"))

        with pytest.raises(Unauthenticated):
            bearer.verify(other.issue(alice))

    def test_wrong_audience_rejected(self, bearer, alice):
        other = BearerTokenFormat(JWTSettings(secret=SECRET, audience="someone-else"))

        with pytest.raises(Unauthenticated):
            bearer.verify(other.issue(alice))

    def test_missing_claims_rejected(self, bearer):
        token = jwt.encode({"user_id": 1}, SECRET, algorithm="HS256")

        with pytest.raises(Unauthenticated):
            bearer.verify(token)

    def test_garbage_rejected(self, bearer):
        with pytest.raises(Unauthenticated):
            bearer.verify("not-a-jwt")

    def test_empty_rejected(self, bearer):
        with pytest.raises(Unauthenticated):
            bearer.verify("")


class TestParseBearer:
    def test_valid_header(self):
        assert parse_bearer("Bearer abc.def.ghi") == "abc.def.ghi"

    def test_scheme_is_case_insensitive(self):
        assert parse_bearer("bearer abc") == "abc"

    @pytest.mark.parametrize("header", ["abc", "Basic abc", "Bearer", "Bearer a b"])
    def test_malformed_header(self, header):
        with pytest.raises(Unauthenticated):
            parse_bearer(header)


class TestAuthGate:
    """Either carrier authenticates; both must agree when both are sent."""

    def test_bearer_only(self, gate, bearer, alice):
        identity = gate.authenticate(f"Bearer {bearer.issue(alice)}", {})

        assert identity == alice

    def test_cookie_only(self, gate, id_token, alice):
        identity = gate.authenticate(None, {"id_token": id_token.issue(alice)})

        assert identity == alice

    def test_both_agree(self, gate, bearer, id_token, alice):
        identity = gate.authenticate(
            f"Bearer {bearer.issue(alice)}",
            {"id_token": id_token.issue(alice)},
        )

        assert identity == alice

    def test_both_disagree(self, gate, bearer, id_token, alice, bob):
        with pytest.raises(Unauthenticated):
            gate.authenticate(f"Bearer {bearer.issue(alice)}", {"id_token": id_token.issue(bob)})

    def test_invalid_bearer_does_not_fall_back_to_cookie(self, gate, id_token, alice):
        with pytest.raises(Unauthenticated):
            gate.authenticate("Bearer not-a-jwt", {"id_token": id_token.issue(alice)})

    def test_no_credentials(self, gate):
        with pytest.raises(Unauthenticated):
            gate.authenticate(None, {})

    def test_unrelated_cookies_ignored(self, gate):
        with pytest.raises(Unauthenticated):
            gate.authenticate(None, {"session": "abc"})
