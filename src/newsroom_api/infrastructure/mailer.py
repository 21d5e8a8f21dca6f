"""Mail delivery service client."""

from typing import Any

import httpx
import structlog

from newsroom_api.domain.donation import Donation
from newsroom_api.domain.exceptions import MailServiceError

logger = structlog.get_logger(__name__)


class MailServiceClient:
    """
    Client for the mail delivery service.

    Sends sign-in links and donation-success notices. The mail service owns
    templates and delivery; this client only posts the data they need.
    """

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the mail service client.

        Args:
            base_url: Mail service base URL
            timeout_seconds: Request timeout in seconds
            transport: Optional httpx transport, used by tests
        """
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.http_client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout_seconds,
            transport=transport,
        )

    async def close(self) -> None:
        """Close the HTTP client connection pool."""
        await self.http_client.aclose()

    async def _post(self, path: str, payload: dict[str, Any]) -> None:
        try:
            response = await self.http_client.post(path, json=payload)
        except httpx.TimeoutException as e:
            logger.error("mail_service_timeout", path=path, timeout_seconds=self.timeout_seconds)
            raise MailServiceError("mail service timed out") from e
        except httpx.RequestError as e:
            logger.error("mail_service_request_error", path=path, error=str(e))
            raise MailServiceError("mail service unreachable") from e

        if response.status_code >= 400:
            logger.error("mail_service_error", path=path, status_code=response.status_code)
            raise MailServiceError(f"mail service returned HTTP {response.status_code}")

    async def send_signin(self, email: str, sign_in_url: str) -> None:
        """
        Send a sign-in (activation) link.

        Raises:
            MailServiceError: The mail service did not accept the request
        """
        await self._post("/v1/signin", {"email": email, "sign_in_url": sign_in_url})
        logger.info("signin_mail_sent", email=email)

    async def send_donation_success(self, donation: Donation) -> None:
        """
        Send the donation thank-you mail.

        Raises:
            MailServiceError: The mail service did not accept the request
        """
        payload = {
            "email": donation.cardholder.email,
            "name": donation.cardholder.name or "",
            "order_number": donation.order_number,
            "amount": donation.amount,
            "currency": donation.currency,
            "pay_method": donation.pay_method.value,
            "donation_type": "one_time" if donation.frequency.value == "one_time" else "periodic",
            "donation_timestamp": int(donation.transaction_time.timestamp())
            if donation.transaction_time
            else None,
            "card_last_four": donation.card_info.last_four,
        }
        await self._post("/v1/donation-success", payload)
        logger.info("donation_success_mail_sent", order_number=donation.order_number)

    async def notify_donation_success(self, donation: Donation) -> None:
        """Send the thank-you mail, logging instead of raising on failure.

        Runs after the donation is stored; a mail failure never undoes it.
        """
        try:
            await self.send_donation_success(donation)
        except MailServiceError as e:
            logger.warning(
                "donation_success_mail_failed",
                order_number=donation.order_number,
                error=e.message,
            )
