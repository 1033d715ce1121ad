from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from backoffice.time_utils import to_utc_z


def _money(value: Decimal | None) -> str | None:
    if value is None:
        return None
    return f"{Decimal(value):.2f}"


def _iso(value) -> str | None:
    return value.isoformat() if value is not None else None


class Header(db.Model):
    """
    One POS transaction (sales invoice) as pushed by a terminal.

    NATURAL KEY: (branch, store, terminal, SI number, date, time). Terminals
    resend after network failures, so the key is unique-constrained and a
    resend overwrites the row instead of duplicating it.
    """
    __tablename__ = "header"
    NATURAL_KEY = ("branch_name", "store_name", "terminal_number", "si_number", "date", "time")
    __table_args__ = (
        db.UniqueConstraint(*NATURAL_KEY, name="uq_header_natural_key"),
        db.Index("ix_header_date_branch", "date", "branch_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    branch_name = db.Column(db.String(255), db.ForeignKey("branches.branch_name", ondelete="CASCADE"), nullable=False)
    store_name = db.Column(db.String(255), db.ForeignKey("stores.store_name", ondelete="CASCADE"), nullable=False)
    terminal_number = db.Column(db.String(64), nullable=False)
    si_number = db.Column(db.String(64), nullable=False, index=True)
    date = db.Column(db.Date, nullable=False)
    time = db.Column(db.Time, nullable=False)

    transaction_type = db.Column(db.String(64), nullable=True)
    void_flag = db.Column(db.String(8), nullable=True)
    guest_count = db.Column(db.Integer, nullable=True)
    male_count = db.Column(db.Integer, nullable=True)
    female_count = db.Column(db.Integer, nullable=True)
    guest_count_senior = db.Column(db.Integer, nullable=True)
    guest_count_pwd = db.Column(db.Integer, nullable=True)

    gross_amount = db.Column(db.Numeric(10, 2), nullable=True)
    net_amount = db.Column(db.Numeric(10, 2), nullable=True)
    vatable_sales = db.Column(db.Numeric(10, 2), nullable=True)
    vat_amount = db.Column(db.Numeric(10, 2), nullable=True)
    service_charge = db.Column(db.Numeric(10, 2), nullable=True)
    tip = db.Column(db.Numeric(10, 2), nullable=True)
    total_discount = db.Column(db.Numeric(10, 2), nullable=True)
    less_vat = db.Column(db.Numeric(10, 2), nullable=True)
    vat_exempt_sales = db.Column(db.Numeric(10, 2), nullable=True)
    zero_rated_sales = db.Column(db.Numeric(10, 2), nullable=True)
    delivery_charge = db.Column(db.Numeric(10, 2), nullable=True, default=Decimal("0.00"))
    other_charges = db.Column(db.Numeric(10, 2), nullable=True, default=Decimal("0.00"))

    cashier_name = db.Column(db.String(255), nullable=False, index=True)
    approved_by = db.Column(db.String(255), nullable=True)
    void_reason = db.Column(db.String(250), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "branch_name": self.branch_name,
            "store_name": self.store_name,
            "terminal_number": self.terminal_number,
            "si_number": self.si_number,
            "date": _iso(self.date),
            "time": _iso(self.time),
            "transaction_type": self.transaction_type,
            "void_flag": self.void_flag,
            "guest_count": self.guest_count,
            "male_count": self.male_count,
            "female_count": self.female_count,
            "guest_count_senior": self.guest_count_senior,
            "guest_count_pwd": self.guest_count_pwd,
            "gross_amount": _money(self.gross_amount),
            "net_amount": _money(self.net_amount),
            "vatable_sales": _money(self.vatable_sales),
            "vat_amount": _money(self.vat_amount),
            "service_charge": _money(self.service_charge),
            "tip": _money(self.tip),
            "total_discount": _money(self.total_discount),
            "less_vat": _money(self.less_vat),
            "vat_exempt_sales": _money(self.vat_exempt_sales),
            "zero_rated_sales": _money(self.zero_rated_sales),
            "delivery_charge": _money(self.delivery_charge),
            "other_charges": _money(self.other_charges),
            "cashier_name": self.cashier_name,
            "approved_by": self.approved_by,
            "void_reason": self.void_reason,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class ItemDetail(db.Model):
    """
    Line item of a POS transaction.

    NATURAL KEY: (branch, store, terminal, SI number, combo header, product code).
    combo_header is "" for items outside a combo so the unique constraint
    does not treat every standalone item as distinct (NULL != NULL).
    """
    __tablename__ = "item_details"
    NATURAL_KEY = ("branch_name", "store_name", "terminal_number", "si_number", "combo_header", "product_code")
    __table_args__ = (
        db.UniqueConstraint(*NATURAL_KEY, name="uq_item_details_natural_key"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    branch_name = db.Column(db.String(255), db.ForeignKey("branches.branch_name", ondelete="CASCADE"), nullable=False)
    store_name = db.Column(db.String(255), db.ForeignKey("stores.store_name", ondelete="CASCADE"), nullable=False)
    terminal_number = db.Column(db.String(64), nullable=False)
    si_number = db.Column(db.String(64), nullable=False, index=True)
    combo_header = db.Column(db.String(255), nullable=False, default="")
    product_code = db.Column(db.String(64), nullable=False, index=True)

    description = db.Column(db.String(255), nullable=True)
    category_code = db.Column(db.String(64), nullable=True, index=True)
    category_description = db.Column(db.String(255), nullable=True)
    qty = db.Column(db.Integer, nullable=True)
    net_total = db.Column(db.Numeric(10, 2), nullable=True)
    menu_price = db.Column(db.Numeric(10, 2), nullable=True)
    discount_code = db.Column(db.String(64), nullable=True)
    discount_amount = db.Column(db.Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    void_flag = db.Column(db.String(8), nullable=False, default="0")
    void_amount = db.Column(db.Numeric(10, 2), nullable=False, default=Decimal("0.00"))

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "branch_name": self.branch_name,
            "store_name": self.store_name,
            "terminal_number": self.terminal_number,
            "si_number": self.si_number,
            "combo_header": self.combo_header or None,
            "product_code": self.product_code,
            "description": self.description,
            "category_code": self.category_code,
            "category_description": self.category_description,
            "qty": self.qty,
            "net_total": _money(self.net_total),
            "menu_price": _money(self.menu_price),
            "discount_code": self.discount_code,
            "discount_amount": _money(self.discount_amount),
            "void_flag": self.void_flag,
            "void_amount": _money(self.void_amount),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class PaymentDetail(db.Model):
    """Tender line of a POS transaction. One row per payment type per invoice."""
    __tablename__ = "payment_details"
    NATURAL_KEY = ("branch_name", "store_name", "terminal_number", "si_number", "payment_type")
    __table_args__ = (
        db.UniqueConstraint(*NATURAL_KEY, name="uq_payment_details_natural_key"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    branch_name = db.Column(db.String(255), db.ForeignKey("branches.branch_name", ondelete="CASCADE"), nullable=False)
    store_name = db.Column(db.String(255), db.ForeignKey("stores.store_name", ondelete="CASCADE"), nullable=False)
    terminal_number = db.Column(db.String(64), nullable=False)
    si_number = db.Column(db.String(64), nullable=False, index=True)
    payment_type = db.Column(db.String(64), nullable=False, index=True)
    amount = db.Column(db.Numeric(10, 2), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "branch_name": self.branch_name,
            "store_name": self.store_name,
            "terminal_number": self.terminal_number,
            "si_number": self.si_number,
            "payment_type": self.payment_type,
            "amount": _money(self.amount),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class GovernmentDiscount(db.Model):
    """
    Senior citizen / PWD discount granted on an invoice, with the beneficiary's ID.

    NATURAL KEY: (branch, store, date, SI number, id number). id_no is "" when
    the terminal did not capture one.
    """
    __tablename__ = "government_discount"
    NATURAL_KEY = ("branch_name", "store_name", "date", "si_number", "id_no")
    __table_args__ = (
        db.UniqueConstraint(*NATURAL_KEY, name="uq_government_discount_natural_key"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    branch_name = db.Column(db.String(255), db.ForeignKey("branches.branch_name", ondelete="CASCADE"), nullable=False)
    store_name = db.Column(db.String(255), db.ForeignKey("stores.store_name", ondelete="CASCADE"), nullable=False)
    date = db.Column(db.Date, nullable=False, index=True)
    si_number = db.Column(db.String(64), nullable=False, index=True)
    id_no = db.Column(db.String(64), nullable=False, default="")

    id_type = db.Column(db.String(64), nullable=True)
    name = db.Column(db.String(255), nullable=True)
    gross_amount = db.Column(db.Numeric(10, 2), nullable=True)
    discount_amount = db.Column(db.Numeric(10, 2), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "branch_name": self.branch_name,
            "store_name": self.store_name,
            "date": _iso(self.date),
            "si_number": self.si_number,
            "id_no": self.id_no or None,
            "id_type": self.id_type,
            "name": self.name,
            "gross_amount": _money(self.gross_amount),
            "discount_amount": _money(self.discount_amount),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
