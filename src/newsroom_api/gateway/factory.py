"""
Gateway factory.

Selects the PaymentGateway implementation named by ``settings.payment_gateway``.
"""

from typing import Callable

import structlog

from newsroom_api.config import Settings
from newsroom_api.gateway.base import PaymentGateway
from newsroom_api.gateway.mock import MockGateway
from newsroom_api.gateway.tappay import TapPayGateway

logger = structlog.get_logger(__name__)


def _tappay(settings: Settings) -> PaymentGateway:
    return TapPayGateway(
        base_url=settings.tappay.base_url,
        partner_key=settings.tappay.partner_key,
        timeout_seconds=settings.tappay.timeout_seconds,
    )


def _mock(settings: Settings) -> PaymentGateway:
    return MockGateway()


class GatewayFactory:
    """Registry of gateway builders keyed by name."""

    _GATEWAYS: dict[str, Callable[[Settings], PaymentGateway]] = {
        "tappay": _tappay,
        "mock": _mock,
    }

    @classmethod
    def create_gateway(cls, settings: Settings) -> PaymentGateway:
        """
        Build the configured gateway.

        Args:
            settings: Application settings

        Returns:
            PaymentGateway instance

        Raises:
            ValueError: If ``settings.payment_gateway`` is not registered
        """
        name = settings.payment_gateway.lower()
        if name not in cls._GATEWAYS:
            available = ", ".join(sorted(cls._GATEWAYS))
            raise ValueError(
                f"Unknown payment gateway: {settings.payment_gateway}. "
                f"Available gateways: {available}"
            )

        gateway = cls._GATEWAYS[name](settings)
        logger.info("gateway_created", gateway=name, gateway_class=type(gateway).__name__)
        return gateway

    @classmethod
    def list_gateways(cls) -> list[str]:
        return sorted(cls._GATEWAYS)
