"""Pytest configuration and shared fixtures for all tests.

This module provides shared test fixtures including:
- Test settings backed by an in-memory SQLite database
- An application wired to the mock gateway and a recording mail transport
- Accounts and identity tokens for them
"""

import json

import httpx
import pytest
from fastapi.testclient import TestClient

from newsroom_api.api.main import create_app
from newsroom_api.config import (
    ActivationSettings,
    CookieSettings,
    DatabaseSettings,
    JWTSettings,
    Settings,
)
from newsroom_api.domain.identity import Identity
from newsroom_api.gateway.mock import SANDBOX_TEST_PRIME, MockGateway
from newsroom_api.infrastructure.database import (
    create_db_engine,
    create_session_factory,
    get_db_session,
    init_db,
)
from newsroom_api.infrastructure.mailer import MailServiceClient
from newsroom_api.infrastructure.repository import UserRepository

TEST_JWT_SECRET = "test-secret-for-newsroom-api-unit-tests-0123456789"


@pytest.fixture
def test_settings() -> Settings:
    """Settings for an isolated in-memory application."""
    return Settings(
        environment="test",
        payment_gateway="mock",
        database=DatabaseSettings(url="sqlite://"),
        jwt=JWTSettings(secret=TEST_JWT_SECRET),
        cookie=CookieSettings(secure=False),
        activation=ActivationSettings(
            activate_url="http://testserver/v2/auth/activate",
            default_destination="http://localhost:3000/",
            allowed_destination_hosts=["localhost", "www.example.org"],
        ),
    )


@pytest.fixture
def mail_requests() -> list[dict]:
    """Requests received by the fake mail service, in order."""
    return []


@pytest.fixture
def mail_transport(mail_requests) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        mail_requests.append({"path": request.url.path, "json": json.loads(request.content)})
        return httpx.Response(200, json={"status": "success"})

    return httpx.MockTransport(handler)


@pytest.fixture
def mock_gateway() -> MockGateway:
    return MockGateway()


@pytest.fixture
def app(test_settings, mock_gateway, mail_transport):
    """Application with its schema created."""
    application = create_app(
        test_settings,
        gateway=mock_gateway,
        mailer=MailServiceClient(base_url="http://mail.test", transport=mail_transport),
    )
    init_db(application.state.engine)
    yield application
    application.state.engine.dispose()


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def session_factory(app):
    return app.state.session_factory


def _create_user(session_factory, email: str) -> Identity:
    with get_db_session(session_factory) as session:
        account = UserRepository(session).create(email)
    return account.identity()


@pytest.fixture
def donor(session_factory) -> Identity:
    return _create_user(session_factory, "developer@twreporter.org")


@pytest.fixture
def other_user(session_factory) -> Identity:
    return _create_user(session_factory, "someone-else@twreporter.org")


@pytest.fixture
def bearer_for(app):
    """Build an Authorization header for an identity."""

    def _bearer(identity: Identity) -> dict[str, str]:
        return {"Authorization": f"Bearer {app.state.auth_gate.bearer.issue(identity)}"}

    return _bearer


@pytest.fixture
def cookie_for(app):
    """Build a Cookie header carrying an id_token for an identity."""

    def _cookie(identity: Identity) -> dict[str, str]:
        return {"Cookie": f"id_token={app.state.id_token_format.issue(identity)}"}

    return _cookie


@pytest.fixture
def prime_payload(donor) -> dict:
    """A valid prime donation request body for ``donor``."""
    return {
        "amount": 500,
        "currency": "TWD",
        "details": "報導者小額捐款",
        "donor": {
            "phone_number": "+886912345678",
            "name": "Nick",
            "email": "developer@twreporter.org",
            "zip_code": "104",
            "address": "台北市南京東路一段",
            "national_id": "A123456789",
        },
        "merchant_id": "GlobalTesting_CTBC",
        "pay_method": "credit_card",
        "prime": SANDBOX_TEST_PRIME,
        "user_id": donor.user_id,
    }


@pytest.fixture
def periodic_payload(prime_payload) -> dict:
    body = dict(prime_payload)
    body.pop("pay_method")
    body["frequency"] = "monthly"
    return body


@pytest.fixture
def db_session():
    """A session on a fresh in-memory database, without the application."""
    engine = create_db_engine(DatabaseSettings(url="sqlite://"))
    init_db(engine)
    factory = create_session_factory(engine)
    session = factory()
    yield session
    session.close()
    engine.dispose()
