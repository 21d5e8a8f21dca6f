"""Authenticated identity and account value objects."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class Identity:
    """The user a request acts on behalf of.

    Only produced by verifying an identity token. A ``user_id`` found in a
    request body or query is a claim to be checked against this, never a
    source of it.

    Attributes:
        user_id: Account primary key
        email: Account email address
    """

    user_id: int
    email: str

    def __post_init__(self):
        if not isinstance(self.user_id, int) or isinstance(self.user_id, bool):
            raise ValueError("user_id must be an integer")
        if not self.email:
            raise ValueError("email cannot be empty")


@dataclass
class Account:
    """A site account.

    Attributes:
        id: Primary key
        email: Unique sign-in address
        active: Whether the account has completed activation at least once
        activate_token: Pending one-time activation credential
        activate_token_expires_at: When the pending credential stops working
    """

    id: int
    email: str
    active: bool = False
    activate_token: Optional[str] = None
    activate_token_expires_at: Optional[datetime] = None

    def identity(self) -> Identity:
        return Identity(user_id=self.id, email=self.email)
