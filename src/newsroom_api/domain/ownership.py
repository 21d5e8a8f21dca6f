"""Ownership authorization for donation records."""

from enum import Enum
from typing import Any

from newsroom_api.domain.exceptions import Forbidden
from newsroom_api.domain.identity import Identity
from newsroom_api.logging_config import get_logger

logger = get_logger(__name__)


class Decision(str, Enum):
    ALLOW = "allow"
    DENY = "deny"


class OwnershipGuard:
    """Decide whether an identity may act on a donation.

    Two checks exist. The claim check compares a ``user_id`` stated in the
    request with the authenticated identity and runs before the payload is
    validated. The owner check compares the stored owner of a record with the
    identity and runs after the record is found.
    """

    @staticmethod
    def evaluate(identity: Identity, owner_id: int) -> Decision:
        return Decision.ALLOW if identity.user_id == owner_id else Decision.DENY

    def check_claim(self, identity: Identity, claimed: Any) -> None:
        """
        Reject a request whose ``user_id`` claim names another user.

        An absent claim passes. A claim that is not an integer is left for
        payload validation to reject.

        Raises:
            Forbidden: Claim is an integer different from the identity
        """
        if claimed is None or isinstance(claimed, bool) or not isinstance(claimed, int):
            return
        if self.evaluate(identity, claimed) is Decision.DENY:
            logger.warning(
                "ownership_denied",
                check="claim",
                user_id=identity.user_id,
                claimed_user_id=claimed,
            )
            raise Forbidden("user_id does not match the authenticated user")

    def check_owner(self, identity: Identity, owner_id: int) -> None:
        """
        Reject access to a record owned by another user.

        Raises:
            Forbidden: Stored owner differs from the identity
        """
        if self.evaluate(identity, owner_id) is Decision.DENY:
            logger.warning(
                "ownership_denied",
                check="owner",
                user_id=identity.user_id,
                owner_id=owner_id,
            )
            raise Forbidden("donation belongs to another user")
