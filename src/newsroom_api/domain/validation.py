"""Validation of donation request payloads.

Pure functions over already-decoded JSON. Create payloads are validated with
pydantic models whose field order is the rule order: when several rules fail,
the first one in that order is the one reported. Unknown keys in a create body
are dropped, so a client cannot smuggle in ``card_info`` or ``order_number``.
Update payloads are an explicit allow-list and reject anything else.

Clients send every key of a create body and leave the ones they do not use
as empty strings, so an empty optional value counts as absent.
"""

from typing import Annotated, Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    StrictBool,
    StrictInt,
    StrictStr,
    StringConstraints,
    field_validator,
    model_validator,
)
from pydantic import ValidationError as PydanticValidationError

from newsroom_api.domain.donation import (
    INT32_MAX,
    DonationKind,
    Frequency,
    PayMethod,
    SendReceipt,
)
from newsroom_api.domain.exceptions import ValidationError

E164_PATTERN = r"^\+[1-9]\d{1,14}$"

PhoneNumber = Annotated[StrictStr, StringConstraints(pattern=E164_PATTERN)]
CurrencyCode = Annotated[StrictStr, StringConstraints(pattern=r"^[A-Z]{3}$")]
Amount = Annotated[StrictInt, Field(ge=1, le=INT32_MAX)]


def _drop_blank(data: Any, fields: tuple[str, ...]) -> Any:
    """Remove ``fields`` sent as empty strings so their defaults apply.

    A ``result_url`` whose members are all empty is removed too.
    """
    if not isinstance(data, dict):
        return data
    cleaned = {key: value for key, value in data.items() if not (key in fields and value == "")}
    result_url = cleaned.get("result_url")
    if isinstance(result_url, dict) and all(value == "" for value in result_url.values()):
        del cleaned["result_url"]
    return cleaned


class CardholderPayload(BaseModel):
    """Donor details on a create request (``donor`` in the body)."""

    model_config = ConfigDict(extra="ignore")

    email: EmailStr
    phone_number: Optional[PhoneNumber] = None
    name: Optional[StrictStr] = None
    address: Optional[StrictStr] = None
    national_id: Optional[StrictStr] = None
    zip_code: Optional[StrictStr] = None

    @model_validator(mode="before")
    @classmethod
    def blank_is_absent(cls, data: Any) -> Any:
        return _drop_blank(data, ("phone_number", "name", "address", "national_id", "zip_code"))


class ResultURL(BaseModel):
    """Redirect targets required by redirect-based pay methods (LINE Pay)."""

    model_config = ConfigDict(extra="ignore")

    frontend_redirect_url: StrictStr = Field(min_length=1)
    backend_redirect_url: StrictStr = Field(min_length=1)


class PrimeDonationCreate(BaseModel):
    """Body of ``POST /v1/donations/prime``."""

    model_config = ConfigDict(extra="ignore")

    amount: Amount
    donor: CardholderPayload
    pay_method: PayMethod
    frequency: Optional[Frequency] = None
    prime: StrictStr = Field(min_length=1)
    user_id: StrictInt
    currency: Optional[CurrencyCode] = None
    details: Optional[StrictStr] = None
    merchant_id: Optional[StrictStr] = None
    send_receipt: Optional[SendReceipt] = None
    to_feedback: Optional[StrictBool] = None
    result_url: Optional[ResultURL] = None

    @model_validator(mode="before")
    @classmethod
    def blank_is_absent(cls, data: Any) -> Any:
        return _drop_blank(
            data, ("frequency", "currency", "details", "merchant_id", "send_receipt")
        )

    @field_validator("frequency")
    @classmethod
    def only_one_time(cls, value: Optional[Frequency]) -> Optional[Frequency]:
        if value is not None and value != Frequency.ONE_TIME:
            raise ValueError("a prime donation is always one_time")
        return value


class PeriodicDonationCreate(BaseModel):
    """Body of ``POST /v1/periodic-donations``."""

    model_config = ConfigDict(extra="ignore")

    amount: Amount
    donor: CardholderPayload
    pay_method: PayMethod = PayMethod.CREDIT_CARD
    frequency: Frequency
    prime: StrictStr = Field(min_length=1)
    user_id: StrictInt
    currency: Optional[CurrencyCode] = None
    details: Optional[StrictStr] = None
    merchant_id: Optional[StrictStr] = None
    send_receipt: Optional[SendReceipt] = None
    to_feedback: Optional[StrictBool] = None
    result_url: Optional[ResultURL] = None

    @model_validator(mode="before")
    @classmethod
    def blank_is_absent(cls, data: Any) -> Any:
        return _drop_blank(
            data, ("pay_method", "currency", "details", "merchant_id", "send_receipt")
        )

    @field_validator("frequency")
    @classmethod
    def recurring_only(cls, value: Frequency) -> Frequency:
        if value == Frequency.ONE_TIME:
            raise ValueError("frequency must be monthly or yearly")
        return value


DonationCreate = PrimeDonationCreate | PeriodicDonationCreate


class CardholderUpdate(BaseModel):
    """Donor fields a client may change. ``null`` clears an optional field."""

    model_config = ConfigDict(extra="forbid")

    email: Optional[EmailStr] = None
    phone_number: Optional[PhoneNumber] = None
    name: Optional[StrictStr] = None
    address: Optional[StrictStr] = None
    national_id: Optional[StrictStr] = None
    zip_code: Optional[StrictStr] = None

    @field_validator("email")
    @classmethod
    def email_not_null(cls, value: Optional[str]) -> str:
        if value is None:
            raise ValueError("email cannot be cleared")
        return value


class DonationUpdate(BaseModel):
    """Body of a donation ``PATCH``: the complete set of updatable fields."""

    model_config = ConfigDict(extra="forbid")

    donor: Optional[CardholderUpdate] = None
    notes: Optional[StrictStr] = None
    send_receipt: Optional[SendReceipt] = None
    to_feedback: Optional[StrictBool] = None
    user_id: Optional[StrictInt] = None

    @field_validator("donor", "send_receipt", "to_feedback")
    @classmethod
    def not_null(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("value cannot be null")
        return value

    def to_field_updates(self) -> dict[str, Any]:
        """Flatten the supplied fields into storage field names.

        Only fields present in the request are included, so an absent field is
        left alone and an explicit ``null`` clears it.

        Returns:
            Mapping such as ``{"cardholder.name": "...", "to_feedback": True}``
        """
        updates: dict[str, Any] = {}
        for name in ("notes", "send_receipt", "to_feedback"):
            if name in self.model_fields_set:
                updates[name] = getattr(self, name)
        if updates.get("notes", "") is None:
            updates["notes"] = ""
        if self.donor is not None:
            for name in self.donor.model_fields_set:
                updates[f"cardholder.{name}"] = getattr(self.donor, name)
        return updates


def _first_error(exc: PydanticValidationError) -> ValidationError:
    error = exc.errors()[0]
    field = ".".join(str(part) for part in error["loc"]) or "body"
    if error["type"] == "extra_forbidden":
        return ValidationError(field, "field is not updatable")
    return ValidationError(field, error["msg"])


def require_object(data: Any) -> dict[str, Any]:
    """Ensure a decoded body is a JSON object.

    Raises:
        ValidationError: Body is not an object
    """
    if not isinstance(data, dict):
        raise ValidationError("body", "request body must be a JSON object")
    return data


def validate_create(kind: DonationKind, data: Any) -> DonationCreate:
    """
    Validate a donation create payload.

    Args:
        kind: Prime or periodic rule set
        data: Decoded JSON body

    Returns:
        Validated create request

    Raises:
        ValidationError: First failing rule, naming the field
    """
    body = require_object(data)
    model = PrimeDonationCreate if kind is DonationKind.PRIME else PeriodicDonationCreate
    try:
        request = model.model_validate(body)
    except PydanticValidationError as e:
        raise _first_error(e) from e

    if request.pay_method is PayMethod.LINE and request.result_url is None:
        raise ValidationError("result_url", "result_url is required for line pay")
    return request


def validate_update(data: Any) -> DonationUpdate:
    """
    Validate a donation patch payload.

    Raises:
        ValidationError: Unknown key, wrong type, or a forbidden null
    """
    body = require_object(data)
    try:
        return DonationUpdate.model_validate(body)
    except PydanticValidationError as e:
        raise _first_error(e) from e


def parse_user_id_query(raw: str | None) -> int | None:
    """Parse the ``user_id`` query parameter of a donation read.

    Raises:
        ValidationError: Value is present but not an integer
    """
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError as e:
        raise ValidationError("user_id", "user_id must be an integer") from e
