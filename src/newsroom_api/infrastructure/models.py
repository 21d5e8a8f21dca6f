"""SQLAlchemy ORM models for the Newsroom API."""

from datetime import datetime

from sqlalchemy import (
    TIMESTAMP,
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from newsroom_api.infrastructure.database import Base


class User(Base):
    """
    Site account.

    Accounts are created on first sign-in and activated through the one-time
    credential mailed to the address.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(254), nullable=False, unique=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # One-time activation credential, cleared after use
    activate_token: Mapped[str | None] = mapped_column(String(128), nullable=True)
    activate_token_expires_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )


class DonationColumns:
    """Columns shared by one-time and periodic donations."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False, index=True, comment="Owner"
    )

    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    details: Mapped[str] = mapped_column(String(100), nullable=False)
    pay_method: Mapped[str] = mapped_column(String(16), nullable=False)
    merchant_id: Mapped[str] = mapped_column(String(64), nullable=False)

    # Donor ("cardholder" in gateway terms)
    cardholder_email: Mapped[str] = mapped_column(String(254), nullable=False)
    cardholder_name: Mapped[str | None] = mapped_column(String(64), nullable=True)
    cardholder_phone_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    cardholder_address: Mapped[str | None] = mapped_column(String(255), nullable=True)
    cardholder_national_id: Mapped[str | None] = mapped_column(String(20), nullable=True)
    cardholder_zip_code: Mapped[str | None] = mapped_column(String(10), nullable=True)

    # Card metadata reported by the gateway, write-once
    card_bin_code: Mapped[str] = mapped_column(String(6), nullable=False, default="")
    card_last_four: Mapped[str] = mapped_column(String(4), nullable=False, default="")
    card_issuer: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    card_funding: Mapped[int | None] = mapped_column(Integer, nullable=True)
    card_type: Mapped[int | None] = mapped_column(Integer, nullable=True)
    card_level: Mapped[str] = mapped_column(String(32), nullable=False, default="")
    card_country: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    card_country_code: Mapped[str] = mapped_column(String(8), nullable=False, default="")
    card_expiry_date: Mapped[str] = mapped_column(String(6), nullable=False, default="")

    # Gateway transaction references
    rec_trade_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    bank_transaction_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    transaction_time: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )

    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    send_receipt: Mapped[str] = mapped_column(String(8), nullable=False, default="monthly")
    to_feedback: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )


class PayByPrimeDonation(DonationColumns, Base):
    """One-time donation charged by prime."""

    __tablename__ = "pay_by_prime_donations"

    __table_args__ = (
        CheckConstraint("amount >= 1", name="ck_prime_amount_positive"),
        Index("idx_prime_user_created", "user_id", "created_at"),
    )


class PeriodicDonation(DonationColumns, Base):
    """
    Recurring donation.

    ``card_token`` and ``card_key`` hold the gateway's remembered-card secret
    for later charges and are never returned by the API.
    """

    __tablename__ = "periodic_donations"

    frequency: Mapped[str] = mapped_column(String(16), nullable=False)
    periodic_status: Mapped[str] = mapped_column(String(16), nullable=False, default="active")
    card_token: Mapped[str | None] = mapped_column(String(128), nullable=True)
    card_key: Mapped[str | None] = mapped_column(String(128), nullable=True)

    __table_args__ = (
        CheckConstraint("amount >= 1", name="ck_periodic_amount_positive"),
        Index("idx_periodic_user_created", "user_id", "created_at"),
    )
