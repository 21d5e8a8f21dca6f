"""Unit tests for DonationService against an in-memory database."""

from unittest.mock import AsyncMock

import pytest

from newsroom_api.config import DonationSettings, TapPaySettings
from newsroom_api.domain.donation import (
    DonationKind,
    Frequency,
    PeriodicDonation,
    PeriodicStatus,
    SendReceipt,
)
from newsroom_api.domain.exceptions import Forbidden, GatewayError, NotFound, ValidationError
from newsroom_api.domain.identity import Identity
from newsroom_api.domain.services import DonationService
from newsroom_api.gateway.mock import SANDBOX_TEST_PRIME, MockGateway
from newsroom_api.infrastructure.repository import DonationRepository, UserRepository


@pytest.fixture
def owner(db_session):
    return UserRepository(db_session).create("owner@example.org").identity()


@pytest.fixture
def stranger(db_session):
    return UserRepository(db_session).create("stranger@example.org").identity()


@pytest.fixture
def gateway():
    return MockGateway()


@pytest.fixture
def service(db_session, gateway):
    return DonationService(
        session=db_session,
        gateway=gateway,
        settings=DonationSettings(),
        merchant_ids=TapPaySettings().merchant_ids,
    )


def make_body(identity: Identity, **overrides) -> dict:
    body = {
        "amount": 300,
        "donor": {"email": "owner@example.org", "name": "Owner"},
        "pay_method": "credit_card",
        "prime": SANDBOX_TEST_PRIME,
        "user_id": identity.user_id,
    }
    body.update(overrides)
    return body


@pytest.mark.asyncio
class TestCreate:
    async def test_prime_donation_stored_with_gateway_card_info(self, service, owner, db_session):
        donation = await service.create(owner, DonationKind.PRIME, make_body(owner))

        assert donation.id is not None
        assert donation.user_id == owner.user_id
        assert donation.card_info.last_four == "4242"
        assert donation.card_info.bin_code == "424242"
        assert donation.currency == "TWD"
        assert donation.send_receipt is SendReceipt.MONTHLY
        assert donation.to_feedback is False
        assert donation.notes == ""
        assert donation.frequency is Frequency.ONE_TIME
        assert donation.order_number.startswith("twreporter-")

        stored = DonationRepository(db_session, DonationKind.PRIME).find_by_id(donation.id)
        assert stored.order_number == donation.order_number

    async def test_client_card_info_ignored(self, service, owner):
        body = make_body(owner, card_info={"last_four": "0000", "bin_code": "000000"})

        donation = await service.create(owner, DonationKind.PRIME, body)

        assert donation.card_info.last_four == "4242"

    async def test_periodic_donation_remembers_card(self, service, owner, gateway):
        body = make_body(owner, frequency="yearly")
        del body["pay_method"]

        donation = await service.create(owner, DonationKind.PERIODIC, body)

        assert isinstance(donation, PeriodicDonation)
        assert donation.frequency is Frequency.YEARLY
        assert donation.periodic_status is PeriodicStatus.ACTIVE
        assert donation.card_token
        assert gateway.charges[-1].remember is True

    async def test_line_pay_returns_payment_url(self, service, owner, gateway, db_session):
        body = make_body(
            owner,
            pay_method="line",
            result_url={
                "frontend_redirect_url": "https://www.example.org/thanks",
                "backend_redirect_url": "https://api.example.org/notify",
            },
        )

        donation = await service.create(owner, DonationKind.PRIME, body)

        assert donation.payment_url
        assert donation.merchant_id == "GlobalTesting_LINEPAY"
        assert gateway.charges[-1].backend_notify_url == "https://api.example.org/notify"
        stored = DonationRepository(db_session, DonationKind.PRIME).find_by_id(donation.id)
        assert stored.payment_url is None

    async def test_claim_checked_before_validation(self, service, owner):
        with pytest.raises(Forbidden):
            await service.create(owner, DonationKind.PRIME, {"user_id": 1000})

    async def test_validation_before_gateway(self, service, owner, gateway):
        with pytest.raises(ValidationError):
            await service.create(owner, DonationKind.PRIME, make_body(owner, amount=0))

        assert gateway.charges == []

    async def test_unknown_merchant_rejected(self, service, owner, gateway):
        with pytest.raises(ValidationError) as exc_info:
            await service.create(owner, DonationKind.PRIME, make_body(owner, merchant_id="nope"))

        assert exc_info.value.field == "merchant_id"
        assert gateway.charges == []

    async def test_failed_charge_persists_nothing(self, service, owner, db_session):
        body = make_body(owner, prime="test_prime_which_will_occurs_error")

        with pytest.raises(GatewayError) as exc_info:
            await service.create(owner, DonationKind.PRIME, body)

        assert exc_info.value.order_number.startswith("twreporter-")
        assert DonationRepository(db_session, DonationKind.PRIME).find_by_owner(owner.user_id) == []

    async def test_owner_taken_from_identity(self, db_session, owner):
        gateway = AsyncMock(wraps=MockGateway())
        service = DonationService(
            session=db_session,
            gateway=gateway,
            settings=DonationSettings(),
            merchant_ids=TapPaySettings().merchant_ids,
        )

        donation = await service.create(owner, DonationKind.PRIME, make_body(owner))

        assert donation.user_id == owner.user_id
        gateway.charge.assert_awaited_once()

    async def test_order_numbers_unique(self, service, owner):
        first = await service.create(owner, DonationKind.PRIME, make_body(owner))
        second = await service.create(owner, DonationKind.PRIME, make_body(owner))

        assert first.order_number != second.order_number


@pytest.mark.asyncio
class TestPatchAndFetch:
    async def test_patch_updates_supplied_fields(self, service, owner):
        donation = await service.create(owner, DonationKind.PRIME, make_body(owner))

        service.patch(
            owner,
            DonationKind.PRIME,
            donation.id,
            {"donor": {"address": "台北市"}, "send_receipt": "no", "to_feedback": True},
        )

        updated = service.fetch(owner, DonationKind.PRIME, donation.id)
        assert updated.cardholder.address == "台北市"
        assert updated.cardholder.name == "Owner"
        assert updated.send_receipt is SendReceipt.NO
        assert updated.to_feedback is True
        assert updated.card_info == donation.card_info

    async def test_patch_is_idempotent(self, service, owner):
        donation = await service.create(owner, DonationKind.PRIME, make_body(owner))
        body = {"notes": "thanks"}

        service.patch(owner, DonationKind.PRIME, donation.id, body)
        service.patch(owner, DonationKind.PRIME, donation.id, body)

        assert service.fetch(owner, DonationKind.PRIME, donation.id).notes == "thanks"

    async def test_patch_missing_record(self, service, owner):
        with pytest.raises(NotFound):
            service.patch(owner, DonationKind.PRIME, 1000, {"to_feedback": True})

    async def test_patch_other_users_record(self, service, owner, stranger):
        donation = await service.create(owner, DonationKind.PRIME, make_body(owner))

        with pytest.raises(Forbidden):
            service.patch(stranger, DonationKind.PRIME, donation.id, {"to_feedback": True})

    async def test_patch_claim_before_validation(self, service, owner):
        with pytest.raises(Forbidden):
            service.patch(owner, DonationKind.PRIME, 1000, {"user_id": 1000, "to_feedback": "x"})

    async def test_patch_validation_before_existence(self, service, owner):
        with pytest.raises(ValidationError):
            service.patch(owner, DonationKind.PRIME, 1000, {"to_feedback": "x"})

    async def test_fetch_other_users_record(self, service, owner, stranger):
        donation = await service.create(owner, DonationKind.PRIME, make_body(owner))

        with pytest.raises(Forbidden):
            service.fetch(stranger, DonationKind.PRIME, donation.id)

    async def test_fetch_with_mismatching_claim(self, service, owner):
        donation = await service.create(owner, DonationKind.PRIME, make_body(owner))

        with pytest.raises(Forbidden):
            service.fetch(owner, DonationKind.PRIME, donation.id, claimed_user_id="1000")

    async def test_fetch_missing(self, service, owner):
        with pytest.raises(NotFound):
            service.fetch(owner, DonationKind.PERIODIC, 1000)

    async def test_kinds_are_separate(self, service, owner):
        donation = await service.create(owner, DonationKind.PRIME, make_body(owner))

        with pytest.raises(NotFound):
            service.fetch(owner, DonationKind.PERIODIC, donation.id)
