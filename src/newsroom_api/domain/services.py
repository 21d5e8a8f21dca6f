"""Donation service: the create, patch and fetch lifecycle.

Every operation applies its checks in one fixed order so that a request
failing several of them always gets the same answer:

1. body framing (400)
2. ``user_id`` claim against the authenticated identity (403)
3. structural validation (400)
4. existence of the addressed record (404)
5. stored owner against the authenticated identity (403)
6. the action itself

Authentication (401) happens before any of this, in the API dependencies.
"""

from typing import Any, Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from newsroom_api.config import DonationSettings
from newsroom_api.domain.donation import (
    Cardholder,
    Donation,
    DonationKind,
    PayMethod,
    PeriodicDonation,
    PeriodicStatus,
    SendReceipt,
    generate_order_number,
)
from newsroom_api.domain.exceptions import GatewayError, NotFound, ValidationError
from newsroom_api.domain.identity import Identity
from newsroom_api.domain.ownership import OwnershipGuard
from newsroom_api.domain.validation import (
    DonationCreate,
    parse_user_id_query,
    require_object,
    validate_create,
    validate_update,
)
from newsroom_api.gateway.base import ChargeRequest, ChargeResult, PaymentGateway
from newsroom_api.infrastructure.repository import DonationRepository

logger = structlog.get_logger(__name__)


class DonationService:
    """Orchestrates donations across validation, the gateway and storage.

    Args:
        session: Database session for this request
        gateway: Payment gateway shared by the application
        settings: Donation defaults
        merchant_ids: Configured merchant per pay method
        guard: Ownership guard
    """

    def __init__(
        self,
        session: Session,
        gateway: PaymentGateway,
        settings: DonationSettings,
        merchant_ids: dict[str, str],
        guard: OwnershipGuard | None = None,
    ):
        self.session = session
        self.gateway = gateway
        self.settings = settings
        self.merchant_ids = merchant_ids
        self.guard = guard or OwnershipGuard()

    def _repository(self, kind: DonationKind) -> DonationRepository:
        return DonationRepository(self.session, kind)

    def _resolve_merchant(self, request: DonationCreate) -> str:
        configured = self.merchant_ids.get(request.pay_method.value)
        if request.merchant_id is not None:
            if request.merchant_id not in self.merchant_ids.values():
                raise ValidationError("merchant_id", "unknown merchant_id")
            return request.merchant_id
        if not configured:
            raise ValidationError("pay_method", "pay method is not available")
        return configured

    async def create(self, identity: Identity, kind: DonationKind, body: Any) -> Donation:
        """
        Charge and store a new donation.

        Args:
            identity: Authenticated donor
            kind: Prime or periodic
            body: Decoded JSON request body

        Returns:
            The stored donation

        Raises:
            ValidationError: Malformed body or failing field (400)
            Forbidden: ``user_id`` claim names another user (403)
            GatewayError: The charge failed; nothing is stored (500)
        """
        data = require_object(body)
        self.guard.check_claim(identity, data.get("user_id"))
        request = validate_create(kind, data)
        merchant_id = self._resolve_merchant(request)

        order_number = generate_order_number(self.settings.order_number_prefix, identity.user_id)
        cardholder = Cardholder(**request.donor.model_dump())
        currency = request.currency or self.settings.default_currency
        details = request.details or self.settings.default_details

        charge = ChargeRequest(
            prime=request.prime,
            amount=request.amount,
            currency=currency,
            merchant_id=merchant_id,
            details=details,
            order_number=order_number,
            cardholder=cardholder,
            remember=kind is DonationKind.PERIODIC,
            frontend_redirect_url=request.result_url.frontend_redirect_url
            if request.result_url
            else None,
            backend_notify_url=request.result_url.backend_redirect_url
            if request.result_url
            else None,
        )

        logger.info(
            "donation_charging",
            kind=kind.value,
            order_number=order_number,
            user_id=identity.user_id,
            amount=request.amount,
            currency=currency,
            pay_method=request.pay_method.value,
        )

        try:
            result = await self.gateway.charge(charge)
        except GatewayError as e:
            e.order_number = order_number
            logger.error(
                "donation_charge_failed",
                kind=kind.value,
                order_number=order_number,
                user_id=identity.user_id,
                code=e.code,
                error=e.message,
            )
            raise

        donation = self._build_donation(kind, identity, request, charge, result)

        try:
            stored = self._repository(kind).insert(donation)
        except SQLAlchemyError:
            # Charged but not stored
            logger.exception(
                "donation_persist_failed",
                kind=kind.value,
                order_number=order_number,
                rec_trade_id=result.rec_trade_id,
                user_id=identity.user_id,
            )
            raise

        stored.payment_url = result.payment_url

        logger.info(
            "donation_created",
            kind=kind.value,
            donation_id=stored.id,
            order_number=order_number,
            rec_trade_id=result.rec_trade_id,
            awaiting_payment=result.payment_url is not None,
        )
        return stored

    def _build_donation(
        self,
        kind: DonationKind,
        identity: Identity,
        request: DonationCreate,
        charge: ChargeRequest,
        result: ChargeResult,
    ) -> Donation:
        fields: dict[str, Any] = dict(
            order_number=charge.order_number,
            amount=charge.amount,
            currency=charge.currency,
            details=charge.details,
            pay_method=PayMethod(request.pay_method),
            merchant_id=charge.merchant_id,
            cardholder=charge.cardholder,
            # Owner comes from the token, never from the body
            user_id=identity.user_id,
            card_info=result.card_info,
            send_receipt=request.send_receipt or SendReceipt.MONTHLY,
            to_feedback=bool(request.to_feedback),
            rec_trade_id=result.rec_trade_id,
            bank_transaction_id=result.bank_transaction_id,
            transaction_time=result.transaction_time,
            payment_url=result.payment_url,
        )
        if kind is DonationKind.PERIODIC:
            return PeriodicDonation(
                **fields,
                frequency=request.frequency,
                periodic_status=PeriodicStatus.ACTIVE,
                card_token=result.card_token,
                card_key=result.card_key,
            )
        return Donation(**fields)

    def patch(self, identity: Identity, kind: DonationKind, donation_id: int, body: Any) -> None:
        """
        Apply a partial update to a donation the identity owns.

        Raises:
            ValidationError: Malformed body, unknown or mistyped field (400)
            Forbidden: Claim or stored owner mismatch (403)
            NotFound: No such donation (404)
        """
        data = require_object(body)
        self.guard.check_claim(identity, data.get("user_id"))
        update = validate_update(data)

        repository = self._repository(kind)
        donation = repository.find_by_id(donation_id)
        if donation is None:
            raise NotFound(f"{kind.value} donation {donation_id} not found")
        self.guard.check_owner(identity, donation.user_id)

        updates = update.to_field_updates()
        repository.update_fields(donation_id, updates)

        logger.info(
            "donation_updated",
            kind=kind.value,
            donation_id=donation_id,
            fields=sorted(updates),
        )

    def fetch(
        self,
        identity: Identity,
        kind: DonationKind,
        donation_id: int,
        claimed_user_id: Optional[str] = None,
    ) -> Donation:
        """
        Read a donation the identity owns.

        Args:
            identity: Authenticated user
            kind: Prime or periodic
            donation_id: Donation primary key
            claimed_user_id: Raw ``user_id`` query parameter, if given

        Raises:
            ValidationError: ``user_id`` query is not an integer (400)
            Forbidden: Claim or stored owner mismatch (403)
            NotFound: No such donation (404)
        """
        claimed = parse_user_id_query(claimed_user_id)
        self.guard.check_claim(identity, claimed)

        donation = self._repository(kind).find_by_id(donation_id)
        if donation is None:
            raise NotFound(f"{kind.value} donation {donation_id} not found")
        self.guard.check_owner(identity, donation.user_id)
        return donation
