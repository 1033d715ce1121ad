from __future__ import annotations

from ..extensions import db
from backoffice.time_utils import to_utc_z


class Category(db.Model):
    """
    Menu category, keyed by the POS category code.

    Rows are created on the fly when a line item references an unknown code;
    the item's category_description becomes the name.
    """
    __tablename__ = "categories"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    category_code = db.Column(db.String(64), nullable=False, unique=True, index=True)
    category_name = db.Column(db.String(255), nullable=False)
    category_description = db.Column(db.String(255), nullable=True)
    active = db.Column(db.String(8), nullable=False, default="yes")
    store_name = db.Column(db.String(255), db.ForeignKey("stores.store_name", ondelete="CASCADE"), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "category_code": self.category_code,
            "category_name": self.category_name,
            "category_description": self.category_description,
            "active": self.active,
            "store_name": self.store_name,
            "created_at": to_utc_z(self.created_at),
        }


class Product(db.Model):
    """
    Menu product, keyed by the POS product code.

    A Product always belongs to an existing Category: item ingestion resolves
    the category first.
    """
    __tablename__ = "products"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    product_code = db.Column(db.String(64), nullable=False, unique=True, index=True)
    product_name = db.Column(db.String(255), nullable=False, index=True)
    product_description = db.Column(db.String(255), nullable=True)
    active = db.Column(db.String(8), nullable=False, default="yes")
    category_code = db.Column(db.String(64), db.ForeignKey("categories.category_code", ondelete="CASCADE"), nullable=False)
    branch_name = db.Column(db.String(255), nullable=False)
    store_name = db.Column(db.String(255), db.ForeignKey("stores.store_name", ondelete="CASCADE"), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    category = db.relationship("Category", backref=db.backref("products", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_code": self.product_code,
            "product_name": self.product_name,
            "product_description": self.product_description,
            "active": self.active,
            "category_code": self.category_code,
            "branch_name": self.branch_name,
            "store_name": self.store_name,
            "created_at": to_utc_z(self.created_at),
        }
