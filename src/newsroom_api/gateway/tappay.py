"""TapPay pay-by-prime gateway client."""

from datetime import datetime, timezone
from typing import Any

import httpx
import structlog

from newsroom_api.domain.donation import CardInfo
from newsroom_api.domain.exceptions import GatewayError
from newsroom_api.gateway.base import ChargeRequest, ChargeResult, PaymentGateway

logger = structlog.get_logger(__name__)

PAY_BY_PRIME_PATH = "/tpc/payment/pay-by-prime"

# TapPay reports success as status 0; every other status is a rejection
STATUS_SUCCESS = 0


class TapPayGateway(PaymentGateway):
    """
    Charge primes through TapPay's ``pay-by-prime`` endpoint.

    One pooled ``httpx.AsyncClient`` is shared by all charges. Each charge is
    a single POST bounded by ``timeout_seconds``; timeouts, transport errors,
    non-2xx responses and non-zero TapPay statuses all surface as
    ``GatewayError`` and are not retried.
    """

    def __init__(
        self,
        base_url: str,
        partner_key: str,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the TapPay client.

        Args:
            base_url: TapPay API base URL (sandbox or production)
            partner_key: Partner key, sent as ``x-api-key`` and in the body
            timeout_seconds: Charge request timeout in seconds
            transport: Optional httpx transport, used by tests
        """
        self.base_url = base_url.rstrip("/")
        self.partner_key = partner_key
        self.timeout_seconds = timeout_seconds
        self.http_client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout_seconds,
            headers={"x-api-key": partner_key},
            transport=transport,
        )

        logger.info(
            "tappay_gateway_initialized",
            base_url=self.base_url,
            timeout_seconds=timeout_seconds,
        )

    async def close(self) -> None:
        """Close the HTTP client connection pool."""
        await self.http_client.aclose()

    def _build_body(self, request: ChargeRequest) -> dict[str, Any]:
        cardholder = request.cardholder
        body: dict[str, Any] = {
            "prime": request.prime,
            "partner_key": self.partner_key,
            "merchant_id": request.merchant_id,
            "amount": request.amount,
            "currency": request.currency,
            "details": request.details,
            "order_number": request.order_number,
            "cardholder": {
                "phone_number": cardholder.phone_number or "",
                "name": cardholder.name or "",
                "email": cardholder.email,
                "zip_code": cardholder.zip_code or "",
                "address": cardholder.address or "",
                "national_id": cardholder.national_id or "",
            },
            "remember": request.remember,
        }
        if request.frontend_redirect_url or request.backend_notify_url:
            body["result_url"] = {
                "frontend_redirect_url": request.frontend_redirect_url or "",
                "backend_notify_url": request.backend_notify_url or "",
            }
        return body

    async def charge(self, request: ChargeRequest) -> ChargeResult:
        """
        Charge a prime with TapPay.

        Args:
            request: Charge parameters

        Returns:
            ChargeResult built from the TapPay response

        Raises:
            GatewayError: Declined, malformed response, HTTP error, timeout or
                connection failure
        """
        logger.info(
            "tappay_charge_starting",
            order_number=request.order_number,
            merchant_id=request.merchant_id,
            amount=request.amount,
            currency=request.currency,
            remember=request.remember,
        )

        try:
            response = await self.http_client.post(
                PAY_BY_PRIME_PATH,
                json=self._build_body(request),
            )
        except httpx.TimeoutException as e:
            logger.error(
                "tappay_charge_timeout",
                order_number=request.order_number,
                timeout_seconds=self.timeout_seconds,
            )
            raise GatewayError(
                "payment gateway timed out",
                code="timeout",
                order_number=request.order_number,
            ) from e
        except httpx.RequestError as e:
            logger.error(
                "tappay_charge_request_error",
                order_number=request.order_number,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise GatewayError(
                "payment gateway unreachable",
                code="connection_error",
                order_number=request.order_number,
            ) from e

        if response.status_code != 200:
            logger.error(
                "tappay_charge_http_error",
                order_number=request.order_number,
                status_code=response.status_code,
            )
            raise GatewayError(
                f"payment gateway returned HTTP {response.status_code}",
                code=f"http_{response.status_code}",
                order_number=request.order_number,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise GatewayError(
                "payment gateway returned a malformed response",
                code="malformed_response",
                order_number=request.order_number,
            ) from e

        status = data.get("status")
        if status != STATUS_SUCCESS:
            logger.warning(
                "tappay_charge_declined",
                order_number=request.order_number,
                tappay_status=status,
                tappay_msg=data.get("msg"),
                bank_result_code=data.get("bank_result_code"),
            )
            raise GatewayError(
                data.get("msg") or "charge declined",
                code=str(status),
                order_number=request.order_number,
            )

        result = self._to_charge_result(data)

        logger.info(
            "tappay_charge_success",
            order_number=request.order_number,
            rec_trade_id=result.rec_trade_id,
            bank_transaction_id=result.bank_transaction_id,
        )
        return result

    @staticmethod
    def _to_charge_result(data: dict[str, Any]) -> ChargeResult:
        card = data.get("card_info") or {}
        secret = data.get("card_secret") or {}

        transaction_time = None
        millis = data.get("transaction_time_millis")
        if millis is not None:
            transaction_time = datetime.fromtimestamp(millis / 1000, tz=timezone.utc)

        return ChargeResult(
            rec_trade_id=data.get("rec_trade_id", ""),
            bank_transaction_id=data.get("bank_transaction_id"),
            transaction_time=transaction_time,
            card_info=CardInfo(
                bin_code=card.get("bin_code", ""),
                last_four=card.get("last_four", ""),
                issuer=card.get("issuer", ""),
                funding=card.get("funding"),
                type=card.get("type"),
                level=card.get("level", ""),
                country=card.get("country", ""),
                country_code=card.get("country_code", ""),
                expiry_date=card.get("expiry_date", ""),
            ),
            card_token=secret.get("card_token"),
            card_key=secret.get("card_key"),
            payment_url=data.get("payment_url"),
        )
