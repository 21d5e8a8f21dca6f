"""API response models and JSend envelopes.

Successful responses are ``{"status": "success", "data": ...}``. Client errors
are ``{"status": "fail", "data": {...}}`` and server errors are
``{"status": "error", "message": ...}``.
"""

from typing import Any, Optional

from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from newsroom_api.domain.donation import Donation, PeriodicDonation


class CardholderJSON(BaseModel):
    """Donor details as returned to clients."""

    email: str
    name: Optional[str] = None
    phone_number: Optional[str] = None
    address: Optional[str] = None
    national_id: Optional[str] = None
    zip_code: Optional[str] = None


class CardInfoJSON(BaseModel):
    """Card metadata reported by the gateway."""

    bin_code: str = Field(..., description="First six digits")
    last_four: str = Field(..., description="Last four digits")
    issuer: str = ""
    funding: Optional[int] = Field(None, description="0 credit, 1 debit, 2 prepaid")
    type: Optional[int] = None
    level: str = ""
    country: str = ""
    country_code: str = ""
    expiry_date: str = ""


class DonationRecordJSON(BaseModel):
    """A stored donation. The remembered card secret is never included."""

    id: int
    order_number: str
    user_id: int
    amount: int
    currency: str
    details: str
    frequency: str
    pay_method: str
    merchant_id: str
    cardholder: CardholderJSON
    card_info: CardInfoJSON
    notes: str
    send_receipt: str
    to_feedback: bool
    periodic_status: Optional[str] = None
    payment_url: Optional[str] = Field(
        None, description="Where to send the donor to finish a LINE Pay payment"
    )

    @classmethod
    def from_domain(cls, donation: Donation) -> "DonationRecordJSON":
        holder = donation.cardholder
        card = donation.card_info
        return cls(
            id=donation.id,
            order_number=donation.order_number,
            user_id=donation.user_id,
            amount=donation.amount,
            currency=donation.currency,
            details=donation.details,
            frequency=donation.frequency.value,
            pay_method=donation.pay_method.value,
            merchant_id=donation.merchant_id,
            cardholder=CardholderJSON(
                email=holder.email,
                name=holder.name,
                phone_number=holder.phone_number,
                address=holder.address,
                national_id=holder.national_id,
                zip_code=holder.zip_code,
            ),
            card_info=CardInfoJSON(
                bin_code=card.bin_code,
                last_four=card.last_four,
                issuer=card.issuer,
                funding=card.funding,
                type=card.type,
                level=card.level,
                country=card.country,
                country_code=card.country_code,
                expiry_date=card.expiry_date,
            ),
            notes=donation.notes,
            send_receipt=donation.send_receipt.value,
            to_feedback=donation.to_feedback,
            periodic_status=donation.periodic_status.value
            if isinstance(donation, PeriodicDonation)
            else None,
            payment_url=donation.payment_url,
        )


class TokenJSON(BaseModel):
    token: str
    token_type: str = "Bearer"


class ActivationJSON(BaseModel):
    id: int
    email: str
    jwt: str


def success(data: Any, status_code: int = 200) -> JSONResponse:
    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json", exclude_none=False)
    return JSONResponse(status_code=status_code, content={"status": "success", "data": data})


def fail(data: dict[str, Any], status_code: int = 400, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"status": "fail", "data": data},
        headers=headers,
    )


def error(message: str, status_code: int = 500, data: dict[str, Any] | None = None) -> JSONResponse:
    content: dict[str, Any] = {"status": "error", "message": message}
    if data:
        content["data"] = data
    return JSONResponse(status_code=status_code, content=content)
