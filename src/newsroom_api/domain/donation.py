"""Domain models for donations.

Prime donations are one-time charges against a tokenized card ("prime").
Periodic donations are subscriptions whose first charge asks the gateway to
remember the card; the remembered card secret is stored but never returned to
clients.
"""

import secrets
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class DonationKind(str, Enum):
    """Which donation table and rule set an operation applies to."""

    PRIME = "prime"
    PERIODIC = "periodic"


class Frequency(str, Enum):
    ONE_TIME = "one_time"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class PayMethod(str, Enum):
    CREDIT_CARD = "credit_card"
    LINE = "line"
    APPLE = "apple"
    GOOGLE = "google"
    SAMSUNG = "samsung"


class SendReceipt(str, Enum):
    NO = "no"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class PeriodicStatus(str, Enum):
    """Subscription state. Only ``ACTIVE`` is ever assigned by this service."""

    ACTIVE = "active"
    STOPPED = "stopped"
    INVALID = "invalid"


ORDER_NUMBER_MAX_LENGTH = 50

# Largest value of the integer columns amounts and ids are stored in
INT32_MAX = 2**31 - 1


@dataclass
class Cardholder:
    """Donor contact details sent to the gateway and kept for receipts."""

    email: str
    name: Optional[str] = None
    phone_number: Optional[str] = None
    address: Optional[str] = None
    national_id: Optional[str] = None
    zip_code: Optional[str] = None

    def __post_init__(self):
        if not self.email:
            raise ValueError("cardholder email cannot be empty")


@dataclass(frozen=True)
class CardInfo:
    """Card metadata reported by the gateway for a successful charge.

    Never supplied by clients and never changed after the donation is stored.

    Attributes:
        bin_code: First six digits of the card
        last_four: Last four digits of the card
        issuer: Issuing bank
        funding: 0 credit, 1 debit, 2 prepaid
        type: Card network code
        level: Card level (e.g. "PLATINUM")
        country: Issuing country name
        country_code: Issuing country code
        expiry_date: YYYYMM
    """

    bin_code: str = ""
    last_four: str = ""
    issuer: str = ""
    funding: Optional[int] = None
    type: Optional[int] = None
    level: str = ""
    country: str = ""
    country_code: str = ""
    expiry_date: str = ""


@dataclass
class Donation:
    """A one-time donation charged by prime.

    ``user_id`` is the owner and is always the identity that created it.
    """

    order_number: str
    amount: int
    currency: str
    details: str
    pay_method: PayMethod
    merchant_id: str
    cardholder: Cardholder
    user_id: int
    card_info: CardInfo = field(default_factory=CardInfo)
    notes: str = ""
    send_receipt: SendReceipt = SendReceipt.MONTHLY
    to_feedback: bool = False
    rec_trade_id: Optional[str] = None
    bank_transaction_id: Optional[str] = None
    transaction_time: Optional[datetime] = None
    # Payment page of a redirect-based pay method; returned on creation only
    payment_url: Optional[str] = None
    id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if self.amount < 1:
            raise ValueError("amount must be at least 1")
        if not self.order_number or len(self.order_number) > ORDER_NUMBER_MAX_LENGTH:
            raise ValueError("order_number must be 1-50 characters")

    @property
    def frequency(self) -> Frequency:
        return Frequency.ONE_TIME


@dataclass
class PeriodicDonation(Donation):
    """A recurring donation.

    ``card_token`` and ``card_key`` are the gateway's remembered-card secret,
    needed only by a future re-charge job.
    """

    frequency: Frequency = Frequency.MONTHLY
    periodic_status: PeriodicStatus = PeriodicStatus.ACTIVE
    card_token: Optional[str] = None
    card_key: Optional[str] = None


def generate_order_number(prefix: str, user_id: int) -> str:
    """Generate a globally unique order number.

    Format: ``{prefix}-{epoch millis}{user_id}{random hex}``, trimmed to
    the column width. Uniqueness is also enforced by the storage layer.

    Args:
        prefix: Configured order number prefix
        user_id: Owner of the donation

    Returns:
        Order number of at most 50 characters
    """
    millis = int(time.time() * 1000)
    order_number = f"{prefix}-{millis}{user_id}{secrets.token_hex(4)}"
    return order_number[-ORDER_NUMBER_MAX_LENGTH:]
