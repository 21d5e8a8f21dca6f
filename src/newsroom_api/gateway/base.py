"""Base interface for payment gateways."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from newsroom_api.domain.donation import CardInfo, Cardholder


@dataclass(frozen=True)
class ChargeRequest:
    """A single pay-by-prime charge.

    Attributes:
        prime: One-time card token produced by the gateway's front-end SDK
        amount: Amount in the currency's major unit
        currency: ISO 4217 code
        merchant_id: Merchant account to charge into
        details: Description shown on the statement
        order_number: Our order number, echoed back by the gateway
        cardholder: Donor details
        remember: Ask the gateway to keep the card for later charges
        frontend_redirect_url: Where redirect-based pay methods send the donor
        backend_notify_url: Where redirect-based pay methods report the result
    """

    prime: str
    amount: int
    currency: str
    merchant_id: str
    details: str
    order_number: str
    cardholder: Cardholder
    remember: bool = False
    frontend_redirect_url: Optional[str] = None
    backend_notify_url: Optional[str] = None


@dataclass(frozen=True)
class ChargeResult:
    """Outcome of a successful charge."""

    rec_trade_id: str
    card_info: CardInfo = field(default_factory=CardInfo)
    bank_transaction_id: Optional[str] = None
    transaction_time: Optional[datetime] = None
    card_token: Optional[str] = None
    card_key: Optional[str] = None
    payment_url: Optional[str] = None


class PaymentGateway(ABC):
    """
    Abstract base class for payment gateway integrations.

    A charge is attempted exactly once. Implementations bound the call with
    their own timeout, which is configured shorter than the request deadline.
    """

    @abstractmethod
    async def charge(self, request: ChargeRequest) -> ChargeResult:
        """
        Charge a prime.

        Args:
            request: Charge parameters

        Returns:
            ChargeResult describing the accepted transaction

        Raises:
            GatewayError: The gateway declined the charge, returned an
                unexpected response, timed out, or could not be reached
        """
        pass

    async def close(self) -> None:
        """Release any pooled connections."""
        return None
