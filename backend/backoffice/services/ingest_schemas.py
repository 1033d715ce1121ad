from __future__ import annotations

from dataclasses import MISSING, dataclass, field, fields
from decimal import Decimal
from typing import Any, ClassVar

from ..models import GovernmentDiscount, Header, ItemDetail, PaymentDetail
from ..validation import (
    FieldError,
    ValidationError,
    coerce_amount,
    coerce_count,
    coerce_date,
    coerce_text,
    coerce_time,
)


ZERO = Decimal("0.00")


def _field(kind: str, *, required: bool, default: Any, **rules):
    return field(default=default, metadata={"kind": kind, "required": required, **rules})


def text_field(*, required: bool = False, default: Any = None, max_length: int = 255):
    return _field("text", required=required, default=default, max_length=max_length)


def amount_field(*, required: bool = False, default: Any = None):
    return _field("amount", required=required, default=default)


def count_field(*, required: bool = False, default: Any = None):
    return _field("count", required=required, default=default)


def date_field(*, required: bool = False):
    return _field("date", required=required, default=None)


def time_field(*, required: bool = False):
    return _field("time", required=required, default=None)


def _coerce(kind: str, label: str, raw: Any, meta) -> Any:
    if kind == "text":
        return coerce_text(label, raw, max_length=meta.get("max_length"))
    if kind == "amount":
        return coerce_amount(label, raw)
    if kind == "count":
        return coerce_count(label, raw)
    if kind == "date":
        return coerce_date(label, raw)
    if kind == "time":
        return coerce_time(label, raw)
    raise ValueError(f"Unknown field kind {kind!r}")


@dataclass(frozen=True, kw_only=True)
class IngestRecord:
    """
    Parsed POS payload.

    Field metadata carries the rules (kind, required, max_length). Optional
    fields fall back to their dataclass default, which is how "" stands in
    for an absent natural-key part.
    """
    MODEL: ClassVar[type] = None
    LABEL: ClassVar[str] = "record"

    branch_name: str = text_field(required=True)
    store_name: str = text_field(required=True)

    @classmethod
    def from_payload(cls, payload: Any) -> "IngestRecord":
        """Coerce a JSON/form payload; raises ValidationError listing every field problem."""
        if not isinstance(payload, dict):
            raise ValidationError("Validation error", errors={"payload": ["The request body must be a JSON object."]})

        errors: dict[str, list[str]] = {}
        values: dict[str, Any] = {}
        for f in fields(cls):
            meta = f.metadata
            label = f.name.replace("_", " ")
            try:
                value = _coerce(meta["kind"], label, payload.get(f.name), meta)
            except FieldError as exc:
                errors.setdefault(f.name, []).append(str(exc))
                continue

            if value is None:
                if meta.get("required"):
                    errors.setdefault(f.name, []).append(f"The {label} field is required.")
                    continue
                value = None if f.default is MISSING else f.default
            values[f.name] = value

        if errors:
            raise ValidationError("Validation error", errors=errors)
        return cls(**values)

    def natural_key(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in self.MODEL.NATURAL_KEY}

    def values(self) -> dict[str, Any]:
        """Every non-key column; these are overwritten when the key already exists."""
        key = set(self.MODEL.NATURAL_KEY)
        return {f.name: getattr(self, f.name) for f in fields(self) if f.name not in key}


@dataclass(frozen=True, kw_only=True)
class HeaderRecord(IngestRecord):
    MODEL: ClassVar[type] = Header
    LABEL: ClassVar[str] = "Header"

    terminal_number: str = text_field(required=True, max_length=64)
    si_number: str = text_field(required=True, max_length=64)
    date: Any = date_field(required=True)
    time: Any = time_field(required=True)

    transaction_type: str = text_field(required=True, max_length=64)
    void_flag: str = text_field(required=True, max_length=8)
    guest_count: int = count_field(required=True)
    male_count: int = count_field(required=True)
    female_count: int = count_field(required=True)
    guest_count_senior: int = count_field(required=True)
    guest_count_pwd: int = count_field(required=True)

    gross_amount: Decimal = amount_field(required=True)
    net_amount: Decimal = amount_field(required=True)
    vatable_sales: Decimal = amount_field(required=True)
    vat_amount: Decimal = amount_field(required=True)
    service_charge: Decimal = amount_field(required=True)
    tip: Decimal = amount_field(required=True)
    total_discount: Decimal = amount_field(required=True)
    less_vat: Decimal = amount_field(required=True)
    vat_exempt_sales: Decimal = amount_field(required=True)
    zero_rated_sales: Decimal = amount_field(required=True)
    delivery_charge: Decimal = amount_field(default=ZERO)
    other_charges: Decimal = amount_field(default=ZERO)

    cashier_name: str = text_field(required=True)
    approved_by: str | None = text_field()
    void_reason: str | None = text_field(max_length=250)


@dataclass(frozen=True, kw_only=True)
class ItemRecord(IngestRecord):
    MODEL: ClassVar[type] = ItemDetail
    LABEL: ClassVar[str] = "Item details"

    terminal_number: str = text_field(required=True, max_length=64)
    si_number: str = text_field(required=True, max_length=64)
    combo_header: str = text_field(default="")
    product_code: str = text_field(required=True, max_length=64)

    description: str = text_field(required=True)
    category_code: str = text_field(required=True, max_length=64)
    category_description: str = text_field(required=True)
    qty: int = count_field(required=True)
    net_total: Decimal = amount_field(required=True)
    menu_price: Decimal = amount_field(required=True)
    discount_code: str | None = text_field(max_length=64)
    discount_amount: Decimal = amount_field(default=ZERO)
    void_flag: str = text_field(required=True, max_length=8)
    void_amount: Decimal = amount_field(default=ZERO)


@dataclass(frozen=True, kw_only=True)
class PaymentRecord(IngestRecord):
    MODEL: ClassVar[type] = PaymentDetail
    LABEL: ClassVar[str] = "Payment detail"

    terminal_number: str = text_field(required=True, max_length=64)
    si_number: str = text_field(required=True, max_length=64)
    payment_type: str = text_field(required=True, max_length=64)
    amount: Decimal = amount_field(required=True)


@dataclass(frozen=True, kw_only=True)
class GovernmentDiscountRecord(IngestRecord):
    MODEL: ClassVar[type] = GovernmentDiscount
    LABEL: ClassVar[str] = "Government discount"

    date: Any = date_field(required=True)
    si_number: str = text_field(required=True, max_length=64)
    id_no: str = text_field(default="", max_length=64)
    id_type: str | None = text_field(max_length=64)
    name: str | None = text_field()
    gross_amount: Decimal | None = amount_field()
    discount_amount: Decimal | None = amount_field()
