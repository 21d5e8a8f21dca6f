"""FastAPI dependencies for authentication and dependency injection.

Application-wide objects (settings, session factory, token formats, gateway,
mail client) live on ``app.state`` and are built once by ``create_app``.
"""

import json
from typing import Annotated, Any, Generator

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from newsroom_api.auth.gate import AuthGate, parse_bearer
from newsroom_api.config import Settings
from newsroom_api.domain.accounts import AccountService
from newsroom_api.domain.exceptions import Unauthenticated, ValidationError
from newsroom_api.domain.identity import Identity
from newsroom_api.domain.services import DonationService
from newsroom_api.infrastructure.database import get_db_session
from newsroom_api.infrastructure.mailer import MailServiceClient


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


AppSettings = Annotated[Settings, Depends(get_settings)]


# Database session dependency
def get_db(request: Request) -> Generator[Session, None, None]:
    """Provide database session for request.

    Yields:
        SQLAlchemy session that is automatically committed/rolled back
    """
    with get_db_session(request.app.state.session_factory) as session:
        yield session


# Type alias for database session dependency
DBSession = Annotated[Session, Depends(get_db)]


# Authentication dependency
def get_identity(
    request: Request,
    authorization: Annotated[str | None, Header()] = None,
) -> Identity:
    """Authenticate a request from its bearer token or id_token cookie.

    Raises:
        Unauthenticated: 401 if no carrier verifies
    """
    gate: AuthGate = request.app.state.auth_gate
    return gate.authenticate(authorization, request.cookies)


# Type alias for authenticated identity dependency
CurrentIdentity = Annotated[Identity, Depends(get_identity)]


def get_bearer_identity(
    request: Request,
    authorization: Annotated[str | None, Header()] = None,
) -> Identity:
    """Authenticate from the ``Authorization`` header only.

    Raises:
        Unauthenticated: 401 if the header is missing or the token is invalid
    """
    if not authorization:
        raise Unauthenticated("missing Authorization header")
    gate: AuthGate = request.app.state.auth_gate
    return gate.bearer.verify(parse_bearer(authorization)).identity


# Type alias for bearer-only identity dependency
BearerIdentity = Annotated[Identity, Depends(get_bearer_identity)]


def get_mailer(request: Request) -> MailServiceClient:
    return request.app.state.mailer


Mailer = Annotated[MailServiceClient, Depends(get_mailer)]


# Donation service dependency
def get_donation_service(request: Request, session: DBSession) -> DonationService:
    """Provide the donation service bound to this request's session."""
    settings: Settings = request.app.state.settings
    return DonationService(
        session=session,
        gateway=request.app.state.gateway,
        settings=settings.donation,
        merchant_ids=settings.tappay.merchant_ids,
    )


DonationSvc = Annotated[DonationService, Depends(get_donation_service)]


# Account service dependency
def get_account_service(request: Request, session: DBSession) -> AccountService:
    """Provide the account service bound to this request's session."""
    settings: Settings = request.app.state.settings
    return AccountService(
        session=session,
        mailer=request.app.state.mailer,
        bearer=request.app.state.auth_gate.bearer,
        settings=settings.activation,
    )


AccountSvc = Annotated[AccountService, Depends(get_account_service)]


async def read_json_body(request: Request) -> Any:
    """Read and decode a JSON request body.

    Raises:
        ValidationError: 400 if the body is empty or not valid JSON
    """
    raw = await request.body()
    if not raw:
        raise ValidationError("body", "request body is required")
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ValidationError("body", f"invalid JSON: {e}") from e
