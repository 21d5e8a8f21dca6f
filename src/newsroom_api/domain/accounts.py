"""Account service: sign-in by email, activation and token renewal.

Sign-in never authenticates by itself. It mails a one-time activation link;
following the link proves control of the address and yields an identity
token (a bearer token on the legacy endpoint, an ``id_token`` cookie on the
current one).
"""

import hmac
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from urllib.parse import urlencode, urlparse

import structlog
from pydantic import BaseModel, ConfigDict, EmailStr, StrictStr
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from newsroom_api.auth.tokens import BearerTokenFormat
from newsroom_api.config import ActivationSettings
from newsroom_api.domain.exceptions import Forbidden, Unauthenticated, ValidationError
from newsroom_api.domain.identity import Account, Identity
from newsroom_api.infrastructure.mailer import MailServiceClient
from newsroom_api.infrastructure.repository import UserRepository

logger = structlog.get_logger(__name__)


class SigninRequest(BaseModel):
    """Body of ``POST /v1/signin`` (JSON or form encoded)."""

    model_config = ConfigDict(extra="ignore")

    email: EmailStr
    destination: Optional[StrictStr] = None


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class AccountService:
    """Domain service for the account session bootstrap.

    Args:
        session: Database session for this request
        mailer: Mail service client
        bearer: Bearer token format
        settings: Activation settings
    """

    def __init__(
        self,
        session: Session,
        mailer: MailServiceClient,
        bearer: BearerTokenFormat,
        settings: ActivationSettings,
    ):
        self.users = UserRepository(session)
        self.mailer = mailer
        self.bearer = bearer
        self.settings = settings

    def safe_destination(self, destination: Optional[str]) -> str:
        """Return ``destination`` if it targets an allowed host, else the default."""
        if destination:
            parsed = urlparse(destination)
            if parsed.scheme in ("http", "https") and parsed.hostname in (
                self.settings.allowed_destination_hosts
            ):
                return destination
            logger.warning("activation_destination_rejected", destination=destination)
        return self.settings.default_destination

    def _activation_link(self, email: str, token: str, destination: str) -> str:
        query = urlencode({"email": email, "token": token, "destination": destination})
        return f"{self.settings.activate_url}?{query}"

    async def signin(self, data: Any) -> tuple[Account, bool]:
        """
        Start a sign-in: ensure the account exists and mail an activation link.

        Args:
            data: Decoded request body with ``email`` and optional ``destination``

        Returns:
            Tuple of (account, created) where ``created`` is True for a new account

        Raises:
            ValidationError: Body is not an object or the email is invalid (400)
            MailServiceError: The activation mail could not be sent (500)
        """
        if not isinstance(data, dict):
            raise ValidationError("body", "request body must be an object")
        try:
            request = SigninRequest.model_validate(data)
        except PydanticValidationError as e:
            error = e.errors()[0]
            raise ValidationError(
                ".".join(str(part) for part in error["loc"]) or "body", error["msg"]
            ) from e

        account = self.users.get_by_email(request.email)
        created = account is None
        if account is None:
            account = self.users.create(request.email)

        account.activate_token = secrets.token_urlsafe(32)
        account.activate_token_expires_at = datetime.now(timezone.utc) + timedelta(
            minutes=self.settings.token_ttl_minutes
        )
        self.users.save(account)

        link = self._activation_link(
            account.email,
            account.activate_token,
            self.safe_destination(request.destination),
        )
        await self.mailer.send_signin(account.email, link)

        logger.info("signin_requested", user_id=account.id, created=created)
        return account, created

    def activate(self, email: Optional[str], token: Optional[str]) -> Identity:
        """
        Redeem a one-time activation credential.

        The credential is cleared on success, so a link works once.

        Raises:
            Unauthenticated: Unknown email, wrong, used or expired credential
        """
        if not email or not token:
            raise Unauthenticated("email and token are required")

        account = self.users.get_by_email(email)
        if account is None or not account.activate_token:
            logger.info("activation_rejected", reason="no_pending_credential")
            raise Unauthenticated("invalid activation credential")

        if not hmac.compare_digest(account.activate_token.encode(), token.encode()):
            logger.info("activation_rejected", reason="mismatch", user_id=account.id)
            raise Unauthenticated("invalid activation credential")

        expires_at = account.activate_token_expires_at
        if expires_at is None or _as_utc(expires_at) <= datetime.now(timezone.utc):
            logger.info("activation_rejected", reason="expired", user_id=account.id)
            raise Unauthenticated("activation credential has expired")

        account.active = True
        account.activate_token = None
        account.activate_token_expires_at = None
        self.users.save(account)

        logger.info("account_activated", user_id=account.id)
        return account.identity()

    def renew(self, identity: Identity, user_id: int) -> str:
        """
        Re-issue a bearer token for the identity named in the path.

        Args:
            identity: Identity from a currently valid bearer token
            user_id: User the caller asks a token for

        Returns:
            Fresh bearer token

        Raises:
            Forbidden: ``user_id`` is not the token's user
        """
        if identity.user_id != user_id:
            logger.warning(
                "token_renew_denied",
                user_id=identity.user_id,
                requested_user_id=user_id,
            )
            raise Forbidden("token does not belong to this user")
        return self.bearer.issue(identity)
