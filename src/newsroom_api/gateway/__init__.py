"""Payment gateway integrations."""

from newsroom_api.gateway.base import ChargeRequest, ChargeResult, PaymentGateway

__all__ = ["ChargeRequest", "ChargeResult", "PaymentGateway"]
