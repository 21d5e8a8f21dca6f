"""
Mock payment gateway for local development and tests.

Behaves like TapPayGateway without network calls. Behaviors are keyed by
prime, following TapPay's sandbox: the published sandbox test prime charges
a Visa ending in 4242 and everything unknown is declined.

Keep TEST_PRIME_BEHAVIORS in step with tappay.py when the response mapping
there changes.
"""

import asyncio
import uuid
from datetime import datetime, timezone
from typing import Any

import structlog

from newsroom_api.domain.donation import CardInfo
from newsroom_api.domain.exceptions import GatewayError
from newsroom_api.gateway.base import ChargeRequest, ChargeResult, PaymentGateway

logger = structlog.get_logger(__name__)

# Redirect-based charges (those with result URLs) get a payment page here
MOCK_PAYMENT_PAGE = "https://sandbox-redirect.tappaysdk.com/redirect"

SANDBOX_TEST_PRIME ="test_3a2fb2b7e892b914a03c95dd4dd5dc7970c908df67a49527c0a648b2bc9"

VISA_4242 = {
    "bin_code": "424242",
    "last_four": "4242",
    "issuer": "JPMORGAN CHASE BANK NA",
    "funding": 0,
    "type": 1,
    "level": "",
    "country": "UNITED STATES",
    "country_code": "US",
    "expiry_date": "203001",
}

TEST_PRIME_BEHAVIORS: dict[str, dict[str, Any]] = {
    SANDBOX_TEST_PRIME: {"type": "success", "card_info": VISA_4242},
    "test_prime_which_will_occurs_error": {
        "type": "decline",
        "status": 121,
        "msg": "Invalid arguments : prime",
    },
    "test_prime_insufficient_funds": {
        "type": "decline",
        "status": 10003,
        "msg": "Card Error",
    },
    "test_prime_gateway_timeout": {"type": "timeout"},
}


class MockGateway(PaymentGateway):
    """
    Deterministic in-process gateway.

    Args:
        behaviors: Override the prime behavior table
        latency_ms: Simulated latency per charge
    """

    def __init__(
        self,
        behaviors: dict[str, dict[str, Any]] | None = None,
        latency_ms: int = 0,
    ) -> None:
        self.behaviors = behaviors if behaviors is not None else TEST_PRIME_BEHAVIORS
        self.latency_ms = latency_ms
        self.charges: list[ChargeRequest] = []

        logger.info(
            "mock_gateway_initialized",
            latency_ms=latency_ms,
            behaviors=len(self.behaviors),
        )

    async def charge(self, request: ChargeRequest) -> ChargeResult:
        if self.latency_ms > 0:
            await asyncio.sleep(self.latency_ms / 1000.0)

        self.charges.append(request)
        behavior = self.behaviors.get(request.prime)

        if behavior is None:
            logger.info("mock_unknown_prime", order_number=request.order_number)
            raise GatewayError(
                "Invalid arguments : prime",
                code="121",
                order_number=request.order_number,
            )

        if behavior["type"] == "timeout":
            logger.warning("mock_gateway_timeout", order_number=request.order_number)
            raise GatewayError(
                "payment gateway timed out",
                code="timeout",
                order_number=request.order_number,
            )

        if behavior["type"] == "decline":
            logger.info(
                "mock_charge_declined",
                order_number=request.order_number,
                status=behavior["status"],
            )
            raise GatewayError(
                behavior["msg"],
                code=str(behavior["status"]),
                order_number=request.order_number,
            )

        rec_trade_id = f"D{uuid.uuid4().hex[:18].upper()}"
        result = ChargeResult(
            rec_trade_id=rec_trade_id,
            bank_transaction_id=f"TP{uuid.uuid4().hex[:16].upper()}",
            transaction_time=datetime.now(timezone.utc),
            card_info=CardInfo(**behavior["card_info"]),
            card_token=f"card_token_{uuid.uuid4().hex}" if request.remember else None,
            card_key=f"card_key_{uuid.uuid4().hex}" if request.remember else None,
            payment_url=f"{MOCK_PAYMENT_PAGE}/{rec_trade_id}"
            if request.frontend_redirect_url
            else None,
        )

        logger.info(
            "mock_charge_success",
            order_number=request.order_number,
            rec_trade_id=rec_trade_id,
        )
        return result
