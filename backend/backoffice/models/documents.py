from __future__ import annotations

from ..extensions import db
from backoffice.time_utils import to_utc_z


class Receipt(db.Model):
    """
    Receipt text file printed by a terminal, stored as a content blob.

    File name convention: "SI_NUMBER - DATE - BRANCH_NAME.txt". A re-upload of
    the same (branch, SI, date, type) replaces the stored content.
    """
    __tablename__ = "receipts"
    NATURAL_KEY = ("branch_name", "si_number", "date", "type")
    __table_args__ = (
        db.UniqueConstraint(*NATURAL_KEY, name="uq_receipts_natural_key"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    branch_name = db.Column(db.String(255), db.ForeignKey("branches.branch_name", ondelete="CASCADE"), nullable=False, index=True)
    si_number = db.Column(db.String(64), nullable=False, index=True)
    date = db.Column(db.Date, nullable=False, index=True)
    type = db.Column(db.String(255), nullable=False, default="")

    file_name = db.Column(db.String(255), nullable=False)
    file_content = db.Column(db.LargeBinary, nullable=False)
    mime_type = db.Column(db.String(100), nullable=False, default="text/plain")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "branch_name": self.branch_name,
            "si_number": self.si_number,
            "date": self.date.isoformat() if self.date else None,
            "type": self.type or None,
            "file_name": self.file_name,
            "mime_type": self.mime_type,
            "size": len(self.file_content) if self.file_content is not None else 0,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Zread(db.Model):
    """
    End-of-day terminal summary. One per branch per business date.

    File name convention: "DATE - BRANCH_NAME.txt".
    """
    __tablename__ = "zread"
    NATURAL_KEY = ("date", "branch_name")
    __table_args__ = (
        db.UniqueConstraint(*NATURAL_KEY, name="uq_zread_date_branch"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    date = db.Column(db.Date, nullable=False, index=True)
    branch_name = db.Column(db.String(255), db.ForeignKey("branches.branch_name", ondelete="CASCADE"), nullable=False, index=True)

    file_name = db.Column(db.String(255), nullable=False)
    file_content = db.Column(db.LargeBinary, nullable=False)
    mime_type = db.Column(db.String(100), nullable=False, default="text/plain")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": self.date.isoformat() if self.date else None,
            "branch_name": self.branch_name,
            "file_name": self.file_name,
            "mime_type": self.mime_type,
            "size": len(self.file_content) if self.file_content is not None else 0,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
