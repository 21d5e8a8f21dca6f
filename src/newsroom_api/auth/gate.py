"""Request authentication across both identity carriers."""

from typing import Mapping

from newsroom_api.auth.tokens import BearerTokenFormat, IDTokenFormat
from newsroom_api.domain.exceptions import Unauthenticated
from newsroom_api.domain.identity import Identity
from newsroom_api.logging_config import get_logger

logger = get_logger(__name__)


def parse_bearer(authorization: str) -> str:
    """Extract the token from an ``Authorization`` header value.

    Raises:
        Unauthenticated: Header is not of the form ``Bearer <token>``
    """
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise Unauthenticated("invalid Authorization header format, expected: Bearer <token>")
    return parts[1]


class AuthGate:
    """Establish the identity behind a request.

    Either carrier alone is sufficient. When both are presented they must both
    verify and name the same user; a request is never authenticated by one
    carrier while the other is rejected.
    """

    def __init__(self, bearer: BearerTokenFormat, id_token: IDTokenFormat, cookie_name: str):
        self.bearer = bearer
        self.id_token = id_token
        self.cookie_name = cookie_name

    def authenticate(
        self,
        authorization: str | None,
        cookies: Mapping[str, str],
    ) -> Identity:
        """
        Resolve the identity of a request.

        Args:
            authorization: Raw ``Authorization`` header, if any
            cookies: Request cookies

        Returns:
            Authenticated identity

        Raises:
            Unauthenticated: No carrier present, a carrier fails verification,
                or the two carriers disagree
        """
        cookie_token = cookies.get(self.cookie_name)

        if not authorization and not cookie_token:
            raise Unauthenticated("missing credentials")

        from_bearer = None
        if authorization:
            from_bearer = self.bearer.verify(parse_bearer(authorization)).identity

        from_cookie = None
        if cookie_token:
            from_cookie = self.id_token.verify(cookie_token).identity

        if from_bearer and from_cookie and from_bearer.user_id != from_cookie.user_id:
            logger.warning(
                "identity_carriers_disagree",
                bearer_user_id=from_bearer.user_id,
                cookie_user_id=from_cookie.user_id,
            )
            raise Unauthenticated("credentials identify different users")

        return from_bearer or from_cookie
