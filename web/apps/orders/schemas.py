"""Pydantic schemas for orders and payments.

This module exposes the request/validation schemas used by the orders,
payments and proof-upload services, plus small helpers that turn
pydantic error entries into the short field messages returned to
clients.
"""

import re
from datetime import date, datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


NIK_RE = re.compile(r"^\d{16}$")

PaymentMethodIn = Literal["cash", "credit"]
PaymentStatusIn = Literal["pending", "paid", "failed", "expired"]

_FRIENDLY = {
    "int_parsing": "must be a number",
    "int_type": "must be a number",
    "int_from_float": "must be a whole number",
    "decimal_parsing": "must be a valid number",
    "decimal_type": "must be a valid number",
    "date_from_datetime_parsing": "must be a date (YYYY-MM-DD)",
    "date_parsing": "must be a date (YYYY-MM-DD)",
    "date_type": "must be a date (YYYY-MM-DD)",
    "datetime_parsing": "must be a date-time",
    "datetime_from_date_parsing": "must be a date-time",
    "string_too_short": "must not be blank",
    "extra_forbidden": "is not an updatable field",
}


def is_blank(value) -> bool:
    """Return True for values treated as absent: None or a blank string."""
    return value is None or (isinstance(value, str) and not value.strip())


def describe_error(err: dict) -> str:
    """Render a single pydantic error entry as ``"<field> <problem>"``."""
    field = ".".join(str(p) for p in err.get("loc", ())) or "body"
    kind = err.get("type", "")
    if kind == "value_error":
        return str(err["ctx"]["error"])
    if kind in _FRIENDLY:
        return f"{field} {_FRIENDLY[kind]}"
    if kind == "greater_than":
        return f"{field} must be greater than {err['ctx']['gt']}"
    if kind == "greater_than_equal":
        return f"{field} must be at least {err['ctx']['ge']}"
    if kind == "less_than_equal":
        return f"{field} must be at most {err['ctx']['le']}"
    if kind == "literal_error":
        return f"{field} must be one of {err['ctx']['expected']}"
    return f"{field}: {err.get('msg', 'invalid value')}"


def check_nik(value: Optional[str], field_name: str) -> Optional[str]:
    """Validate a national identity number (16 digits).

    Raises:
        ValueError: When the value is not exactly 16 digits.
    """
    if value is not None and not NIK_RE.match(value):
        raise ValueError(f"{field_name} must be a 16-digit number")
    return value


class OrderCreateIn(BaseModel):
    """Schema for creating an order.

    Every field without a default is required. Unknown keys in the
    payload are ignored rather than persisted. Numbers sent for text
    fields (NIK, phone) are accepted as their decimal string.
    """

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore", coerce_numbers_to_str=True)

    customer_name: str
    nik_ktp: str
    birth_place: str
    birth_date: date
    occupation: str
    address: str
    customer_phone: str
    stnk_name: str
    motorcycle_id: int = Field(gt=0)
    motorcycle_name: str
    total_price: Decimal = Field(gt=0)
    quantity: Optional[int] = Field(default=None, gt=0)
    user_id: Optional[str] = None
    nik_kk: Optional[str] = None
    status: Optional[str] = None

    @field_validator("nik_ktp", "nik_kk")
    @classmethod
    def validate_nik(cls, v: Optional[str], info) -> Optional[str]:
        return check_nik(v, info.field_name)

    @field_validator("user_id", mode="before")
    @classmethod
    def coerce_user_id(cls, v):
        return None if v is None else str(v)


class OrderUpdateIn(BaseModel):
    """Schema for an administrative patch of an order.

    Every field is optional and only the fields sent are written. Keys
    that are not order columns, or that may not be changed, are
    rejected.
    """

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid", coerce_numbers_to_str=True)

    customer_name: Optional[str] = Field(default=None, min_length=1)
    nik_ktp: Optional[str] = None
    nik_kk: Optional[str] = None
    birth_place: Optional[str] = Field(default=None, min_length=1)
    birth_date: Optional[date] = None
    occupation: Optional[str] = Field(default=None, min_length=1)
    address: Optional[str] = Field(default=None, min_length=1)
    customer_phone: Optional[str] = Field(default=None, min_length=1)
    stnk_name: Optional[str] = Field(default=None, min_length=1)
    motorcycle_id: Optional[int] = Field(default=None, gt=0)
    motorcycle_name: Optional[str] = Field(default=None, min_length=1)
    total_price: Optional[Decimal] = Field(default=None, gt=0)
    quantity: Optional[int] = Field(default=None, gt=0)
    user_id: Optional[str] = None
    status: Optional[str] = Field(default=None, min_length=1)
    payment_status: Optional[PaymentStatusIn] = None
    payment_method: Optional[PaymentMethodIn] = None
    payment_proof: Optional[str] = None
    payment_date: Optional[datetime] = None
    down_payment: Optional[Decimal] = Field(default=None, gt=0)
    down_payment_percent: Optional[Decimal] = Field(default=None, ge=0, le=100)
    loan_term: Optional[int] = Field(default=None, gt=0)
    monthly_installment: Optional[Decimal] = Field(default=None, gt=0)

    @field_validator("nik_ktp", "nik_kk")
    @classmethod
    def validate_nik(cls, v: Optional[str], info) -> Optional[str]:
        return check_nik(v, info.field_name)


class PaymentCreateIn(BaseModel):
    """Schema for submitting a payment against an order.

    Attributes:
        order_id: Identity of the order being paid.
        amount: Amount paid now (the down payment for credit).
        payment_method: ``cash`` (default) or ``credit``.
        down_payment_percent: Credit only, share of the price paid upfront.
        loan_term: Credit only, number of monthly installments.
        monthly_installment: Credit only, amount of each installment.
    """

    order_id: int = Field(gt=0)
    amount: Decimal = Field(gt=0)
    payment_method: Optional[PaymentMethodIn] = None
    down_payment_percent: Optional[Decimal] = None
    loan_term: Optional[int] = Field(default=None, gt=0)
    monthly_installment: Optional[Decimal] = None


class PaymentUpdateIn(BaseModel):
    """Schema for changing the status of a payment."""

    order_id: int = Field(gt=0)
    status: PaymentStatusIn
    payment_proof: Optional[str] = None
    manual_payment_id: Optional[int] = Field(default=None, gt=0)


class ProofUploadIn(BaseModel):
    """Schema for a proof-of-payment upload.

    Attributes:
        order_id: Identity of the order; must parse as a positive integer.
        filename: Original file name, used only for its extension.
        file: Base64 payload, optionally prefixed with a data URI header.
        payment_method: Optional method to record on the order.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    order_id: int = Field(gt=0)
    filename: str
    file: str
    payment_method: Optional[PaymentMethodIn] = None
