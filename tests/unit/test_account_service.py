"""Unit tests for AccountService."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock
from urllib.parse import parse_qs, urlparse

import pytest

from newsroom_api.auth.tokens import BearerTokenFormat
from newsroom_api.config import ActivationSettings, JWTSettings
from newsroom_api.domain.accounts import AccountService
from newsroom_api.domain.exceptions import (
    Forbidden,
    MailServiceError,
    Unauthenticated,
    ValidationError,
)
from newsroom_api.domain.identity import Identity
from newsroom_api.infrastructure.repository import UserRepository


@pytest.fixture
def mailer():
    return AsyncMock()


@pytest.fixture
def bearer():
    return BearerTokenFormat(JWTSettings(secret="account-tests-secret-0123456789-abcdefghij"))


@pytest.fixture
def service(db_session, mailer, bearer):
    return AccountService(
        session=db_session,
        mailer=mailer,
        bearer=bearer,
        settings=ActivationSettings(
            activate_url="https://api.example.org/v2/auth/activate",
            default_destination="https://www.example.org/",
            allowed_destination_hosts=["www.example.org"],
        ),
    )


def sent_link(mailer) -> dict:
    email, link = mailer.send_signin.await_args.args
    return {key: values[0] for key, values in parse_qs(urlparse(link).query).items()}


@pytest.mark.asyncio
class TestSignin:
    async def test_new_account_created(self, service, mailer, db_session):
        account, created = await service.signin({"email": "reader@example.org"})

        assert created is True
        assert account.active is False
        mailer.send_signin.assert_awaited_once()
        query = sent_link(mailer)
        assert query["email"] == "reader@example.org"
        assert query["token"] == UserRepository(db_session).get_by_id(account.id).activate_token
        assert query["destination"] == "https://www.example.org/"

    async def test_existing_account(self, service):
        await service.signin({"email": "reader@example.org"})

        _, created = await service.signin({"email": "reader@example.org"})

        assert created is False

    async def test_allowed_destination_kept(self, service, mailer):
        await service.signin(
            {"email": "reader@example.org", "destination": "https://www.example.org/topics"}
        )

        assert sent_link(mailer)["destination"] == "https://www.example.org/topics"

    async def test_foreign_destination_replaced(self, service, mailer):
        await service.signin({"email": "reader@example.org", "destination": "https://evil.test/"})

        assert sent_link(mailer)["destination"] == "https://www.example.org/"

    async def test_invalid_email(self, service):
        with pytest.raises(ValidationError) as exc_info:
            await service.signin({"email": "nope"})

        assert exc_info.value.field == "email"

    async def test_non_object_body(self, service):
        with pytest.raises(ValidationError):
            await service.signin("reader@example.org")

    async def test_mail_failure_propagates(self, service, mailer):
        mailer.send_signin.side_effect = MailServiceError("down")

        with pytest.raises(MailServiceError):
            await service.signin({"email": "reader@example.org"})


@pytest.mark.asyncio
class TestActivate:
    async def test_activation_is_one_time(self, service, mailer):
        await service.signin({"email": "reader@example.org"})
        token = sent_link(mailer)["token"]

        identity = service.activate("reader@example.org", token)

        assert identity.email == "reader@example.org"
        with pytest.raises(Unauthenticated):
            service.activate("reader@example.org", token)

    async def test_wrong_token(self, service):
        await service.signin({"email": "reader@example.org"})

        with pytest.raises(Unauthenticated):
            service.activate("reader@example.org", "wrong")

    async def test_expired_token(self, service, mailer, db_session):
        account, _ = await service.signin({"email": "reader@example.org"})
        token = sent_link(mailer)["token"]
        users = UserRepository(db_session)
        stored = users.get_by_id(account.id)
        stored.activate_token_expires_at = datetime.now(timezone.utc) - timedelta(minutes=1)
        users.save(stored)

        with pytest.raises(Unauthenticated):
            service.activate("reader@example.org", token)

    def test_unknown_email(self, service):
        with pytest.raises(Unauthenticated):
            service.activate("nobody@example.org", "token")

    def test_missing_parameters(self, service):
        with pytest.raises(Unauthenticated):
            service.activate(None, None)


class TestRenew:
    def test_renew_for_self(self, service, bearer):
        identity = Identity(user_id=7, email="reader@example.org")

        token = service.renew(identity, 7)

        assert bearer.verify(token).identity == identity

    def test_renew_for_someone_else(self, service):
        with pytest.raises(Forbidden):
            service.renew(Identity(user_id=7, email="reader@example.org"), 8)


class TestSafeDestination:
    @pytest.mark.parametrize(
        "destination",
        [None, "", "javascript:alert(1)", "https://evil.test/", "//evil.test/path"],
    )
    def test_falls_back_to_default(self, service, destination):
        assert service.safe_destination(destination) == "https://www.example.org/"

    def test_allowed(self, service):
        assert service.safe_destination("https://www.example.org/a?b=c") == "https://www.example.org/a?b=c"
