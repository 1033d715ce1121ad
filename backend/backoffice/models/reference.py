from __future__ import annotations

from ..extensions import db
from backoffice.time_utils import to_utc_z


class Store(db.Model):
    """
    Restaurant brand / tenant. POS payloads reference it by store_name.
    """
    __tablename__ = "stores"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    store_name = db.Column(db.String(255), nullable=False, unique=True, index=True)
    store_description = db.Column(db.String(255), nullable=True)
    active = db.Column(db.String(8), nullable=False, default="yes")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def __repr__(self) -> str:
        return f"<Store id={self.id} store_name={self.store_name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_name": self.store_name,
            "store_description": self.store_description,
            "active": self.active,
            "created_at": to_utc_z(self.created_at),
        }


class Branch(db.Model):
    """
    Physical outlet of a store. POS payloads reference it by branch_name.
    """
    __tablename__ = "branches"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    branch_name = db.Column(db.String(255), nullable=False, unique=True, index=True)
    branch_description = db.Column(db.String(255), nullable=True)
    store_name = db.Column(db.String(255), db.ForeignKey("stores.store_name", ondelete="CASCADE"), nullable=False, index=True)
    status = db.Column(db.String(16), nullable=False, default="active")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    store = db.relationship("Store", backref=db.backref("branches", lazy=True))

    def __repr__(self) -> str:
        return f"<Branch id={self.id} branch_name={self.branch_name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "branch_name": self.branch_name,
            "branch_description": self.branch_description,
            "store_name": self.store_name,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }
