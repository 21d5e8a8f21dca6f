"""Repository layer for account and donation storage.

Repositories wrap a SQLAlchemy session and translate between ORM rows and
domain entities. Write methods commit before returning so a stored donation
is durable before the API reports success.
"""

import logging
from enum import Enum
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from newsroom_api.domain.donation import (
    INT32_MAX,
    CardInfo,
    Cardholder,
    Donation,
    DonationKind,
    Frequency,
    PayMethod,
    PeriodicDonation,
    PeriodicStatus,
    SendReceipt,
)
from newsroom_api.domain.identity import Account
from newsroom_api.infrastructure.models import (
    PayByPrimeDonation as PrimeDonationModel,
    PeriodicDonation as PeriodicDonationModel,
    User as UserModel,
)

logger = logging.getLogger(__name__)

# Updatable domain fields and the column each one is stored in
UPDATABLE_COLUMNS = {
    "cardholder.email": "cardholder_email",
    "cardholder.name": "cardholder_name",
    "cardholder.phone_number": "cardholder_phone_number",
    "cardholder.address": "cardholder_address",
    "cardholder.national_id": "cardholder_national_id",
    "cardholder.zip_code": "cardholder_zip_code",
    "notes": "notes",
    "send_receipt": "send_receipt",
    "to_feedback": "to_feedback",
}


class UserRepository:
    """Repository for site accounts."""

    def __init__(self, session: Session):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy database session
        """
        self.session = session

    def get_by_id(self, user_id: int) -> Optional[Account]:
        model = self.session.get(UserModel, user_id)
        return self._to_domain_entity(model) if model else None

    def get_by_email(self, email: str) -> Optional[Account]:
        model = self.session.execute(
            select(UserModel).where(UserModel.email == email)
        ).scalar_one_or_none()
        return self._to_domain_entity(model) if model else None

    def create(self, email: str) -> Account:
        """Insert a new, inactive account.

        Raises:
            IntegrityError: If the email is already registered
        """
        model = UserModel(email=email, active=False)
        self.session.add(model)
        self.session.commit()
        logger.info(f"Created account {model.id}")
        return self._to_domain_entity(model)

    def save(self, account: Account) -> None:
        """Persist the mutable fields of an account.

        Raises:
            LookupError: If the account no longer exists
        """
        model = self.session.get(UserModel, account.id)
        if model is None:
            raise LookupError(f"account {account.id} not found")
        model.active = account.active
        model.activate_token = account.activate_token
        model.activate_token_expires_at = account.activate_token_expires_at
        self.session.commit()

    @staticmethod
    def _to_domain_entity(model: UserModel) -> Account:
        return Account(
            id=model.id,
            email=model.email,
            active=model.active,
            activate_token=model.activate_token,
            activate_token_expires_at=model.activate_token_expires_at,
        )


class DonationRepository:
    """Repository for one kind of donation.

    Args:
        session: SQLAlchemy database session
        kind: Selects the prime or periodic table
    """

    def __init__(self, session: Session, kind: DonationKind):
        self.session = session
        self.kind = kind
        self.model = PrimeDonationModel if kind is DonationKind.PRIME else PeriodicDonationModel

    def _get(self, donation_id: int) -> Any:
        # Ids outside the key column's range cannot exist
        if not 1 <= donation_id <= INT32_MAX:
            return None
        return self.session.get(self.model, donation_id)

    def find_by_id(self, donation_id: int) -> Optional[Donation]:
        """Retrieve a donation by primary key.

        Returns:
            Donation if found, None otherwise
        """
        logger.debug(f"Retrieving {self.kind.value} donation {donation_id}")
        model = self._get(donation_id)
        if model is None:
            return None
        return self._to_domain_entity(model)

    def find_by_owner(self, user_id: int) -> list[Donation]:
        """Retrieve all donations owned by a user, newest first."""
        rows = self.session.execute(
            select(self.model)
            .where(self.model.user_id == user_id)
            .order_by(self.model.created_at.desc(), self.model.id.desc())
        ).scalars()
        return [self._to_domain_entity(row) for row in rows]

    def insert(self, donation: Donation) -> Donation:
        """Store a charged donation.

        Args:
            donation: Donation without ``id``

        Returns:
            The stored donation with ``id`` and timestamps populated

        Raises:
            IntegrityError: Duplicate order number or unknown owner
        """
        card = donation.card_info
        holder = donation.cardholder
        values: dict[str, Any] = dict(
            order_number=donation.order_number,
            user_id=donation.user_id,
            amount=donation.amount,
            currency=donation.currency,
            details=donation.details,
            pay_method=donation.pay_method.value,
            merchant_id=donation.merchant_id,
            cardholder_email=holder.email,
            cardholder_name=holder.name,
            cardholder_phone_number=holder.phone_number,
            cardholder_address=holder.address,
            cardholder_national_id=holder.national_id,
            cardholder_zip_code=holder.zip_code,
            card_bin_code=card.bin_code,
            card_last_four=card.last_four,
            card_issuer=card.issuer,
            card_funding=card.funding,
            card_type=card.type,
            card_level=card.level,
            card_country=card.country,
            card_country_code=card.country_code,
            card_expiry_date=card.expiry_date,
            rec_trade_id=donation.rec_trade_id,
            bank_transaction_id=donation.bank_transaction_id,
            transaction_time=donation.transaction_time,
            notes=donation.notes,
            send_receipt=donation.send_receipt.value,
            to_feedback=donation.to_feedback,
        )
        if isinstance(donation, PeriodicDonation):
            values.update(
                frequency=donation.frequency.value,
                periodic_status=donation.periodic_status.value,
                card_token=donation.card_token,
                card_key=donation.card_key,
            )

        model = self.model(**values)
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)

        logger.info(f"Stored {self.kind.value} donation {model.id} ({model.order_number})")
        return self._to_domain_entity(model)

    def update_fields(self, donation_id: int, updates: dict[str, Any]) -> None:
        """Apply a partial update.

        Args:
            donation_id: Donation to update
            updates: Domain field name to new value, as produced by
                ``DonationUpdate.to_field_updates``

        Raises:
            ValueError: A field is not updatable
            LookupError: The donation does not exist
        """
        unknown = set(updates) - set(UPDATABLE_COLUMNS)
        if unknown:
            raise ValueError(f"fields are not updatable: {', '.join(sorted(unknown))}")

        model = self._get(donation_id)
        if model is None:
            raise LookupError(f"{self.kind.value} donation {donation_id} not found")

        if not updates:
            return

        for field_name, value in updates.items():
            if isinstance(value, Enum):
                value = value.value
            setattr(model, UPDATABLE_COLUMNS[field_name], value)
        self.session.commit()

        logger.info(
            f"Updated {self.kind.value} donation {donation_id}: {', '.join(sorted(updates))}"
        )

    def _to_domain_entity(self, model: Any) -> Donation:
        common: dict[str, Any] = dict(
            id=model.id,
            order_number=model.order_number,
            amount=model.amount,
            currency=model.currency,
            details=model.details,
            pay_method=PayMethod(model.pay_method),
            merchant_id=model.merchant_id,
            user_id=model.user_id,
            cardholder=Cardholder(
                email=model.cardholder_email,
                name=model.cardholder_name,
                phone_number=model.cardholder_phone_number,
                address=model.cardholder_address,
                national_id=model.cardholder_national_id,
                zip_code=model.cardholder_zip_code,
            ),
            card_info=CardInfo(
                bin_code=model.card_bin_code,
                last_four=model.card_last_four,
                issuer=model.card_issuer,
                funding=model.card_funding,
                type=model.card_type,
                level=model.card_level,
                country=model.card_country,
                country_code=model.card_country_code,
                expiry_date=model.card_expiry_date,
            ),
            notes=model.notes,
            send_receipt=SendReceipt(model.send_receipt),
            to_feedback=model.to_feedback,
            rec_trade_id=model.rec_trade_id,
            bank_transaction_id=model.bank_transaction_id,
            transaction_time=model.transaction_time,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )
        if self.kind is DonationKind.PERIODIC:
            return PeriodicDonation(
                **common,
                frequency=Frequency(model.frequency),
                periodic_status=PeriodicStatus(model.periodic_status),
                card_token=model.card_token,
                card_key=model.card_key,
            )
        return Donation(**common)
