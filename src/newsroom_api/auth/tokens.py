"""Identity token formats.

Two signed token formats coexist: bearer tokens carried in the
``Authorization`` header and id-tokens carried in the ``id_token`` cookie.
Both are JWTs signed with the same secret but are told apart by the
``token_use`` claim, so a cookie token cannot be replayed as a bearer token
and vice versa. Call sites only ever see the ``TokenFormat`` interface.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt

from newsroom_api.config import JWTSettings
from newsroom_api.domain.exceptions import Unauthenticated
from newsroom_api.domain.identity import Identity
from newsroom_api.logging_config import get_logger

logger = get_logger(__name__)

REQUIRED_CLAIMS = ["exp", "iat", "iss", "aud", "sub", "user_id", "email", "token_use"]


@dataclass(frozen=True)
class TokenClaims:
    """Verified content of an identity token."""

    identity: Identity
    expires_at: datetime


class TokenFormat(ABC):
    """Issue and verify one kind of identity token."""

    token_use: str

    def __init__(self, settings: JWTSettings, ttl_seconds: int):
        self._settings = settings
        self._ttl = timedelta(seconds=ttl_seconds)

    @property
    @abstractmethod
    def name(self) -> str:
        """Carrier name used in logs."""
        pass

    def issue(self, identity: Identity, now: datetime | None = None) -> str:
        """
        Sign a token for an identity.

        Args:
            identity: Identity to embed
            now: Issue time, defaults to the current UTC time

        Returns:
            Encoded JWT
        """
        issued_at = now or datetime.now(timezone.utc)
        payload = {
            "iss": self._settings.issuer,
            "aud": self._settings.audience,
            "sub": str(identity.user_id),
            "iat": issued_at,
            "exp": issued_at + self._ttl,
            "user_id": identity.user_id,
            "email": identity.email,
            "token_use": self.token_use,
        }
        return jwt.encode(payload, self._settings.secret, algorithm=self._settings.algorithm)

    def verify(self, token: str) -> TokenClaims:
        """
        Verify a token and extract its identity.

        Args:
            token: Encoded JWT

        Returns:
            TokenClaims for a valid token of this format

        Raises:
            Unauthenticated: Bad signature, expired, wrong issuer or audience,
                missing claims, or a token of another format
        """
        if not token:
            raise Unauthenticated(f"missing {self.name}")

        try:
            payload = jwt.decode(
                token,
                self._settings.secret,
                algorithms=[self._settings.algorithm],
                audience=self._settings.audience,
                issuer=self._settings.issuer,
                options={"require": REQUIRED_CLAIMS},
            )
        except jwt.ExpiredSignatureError as e:
            logger.info("identity_token_expired", carrier=self.name)
            raise Unauthenticated(f"{self.name} has expired") from e
        except jwt.PyJWTError as e:
            logger.info("identity_token_invalid", carrier=self.name, reason=str(e))
            raise Unauthenticated(f"invalid {self.name}") from e

        if payload["token_use"] != self.token_use:
            logger.warning(
                "identity_token_wrong_use",
                carrier=self.name,
                token_use=payload["token_use"],
            )
            raise Unauthenticated(f"invalid {self.name}")

        try:
            identity = Identity(user_id=payload["user_id"], email=payload["email"])
        except ValueError as e:
            raise Unauthenticated(f"invalid {self.name}") from e

        return TokenClaims(
            identity=identity,
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )


class BearerTokenFormat(TokenFormat):
    """Token sent as ``Authorization: Bearer <token>``."""

    token_use = "access"

    def __init__(self, settings: JWTSettings):
        super().__init__(settings, settings.access_token_ttl_seconds)

    @property
    def name(self) -> str:
        return "bearer token"


class IDTokenFormat(TokenFormat):
    """Token stored in the http-only ``id_token`` cookie."""

    token_use = "id"

    def __init__(self, settings: JWTSettings):
        super().__init__(settings, settings.id_token_ttl_seconds)

    @property
    def name(self) -> str:
        return "id token"
