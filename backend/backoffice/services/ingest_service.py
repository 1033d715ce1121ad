# Overview: Service-layer operations for POS ingestion; idempotent upserts keyed by natural key.

"""
Idempotent POS Ingestion

WHY: Terminals resend after timeouts and flaky links. Every record type has a
natural key backed by a unique constraint, and a resend overwrites the
existing row (last write wins) instead of duplicating it.

TRANSACTION MODEL:
- One unit of work per request: locked lookup, update or insert, commit
- A unique-constraint violation means a concurrent request inserted the same
  key first; the whole unit of work is rolled back and run once more, and
  the second run finds the row and updates it
- Line items resolve-or-create their Category and Product in the same unit
  of work, so a failed item insert leaves no dimension rows behind
- Anything else rolls back and surfaces IngestionError with a correlation id
"""

from dataclasses import dataclass
from typing import Callable
from uuid import uuid4

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Branch, Category, ItemDetail, Product, Store
from ..validation import ValidationError
from .concurrency import TRANSIENT_ERRORS, lock_for_update, run_with_retry
from .ingest_schemas import (
    GovernmentDiscountRecord,
    HeaderRecord,
    IngestRecord,
    ItemRecord,
    PaymentRecord,
)


# First attempt plus one retry after a lost insert race
INGEST_ATTEMPTS = 2
RETRYABLE_ERRORS = (IntegrityError,) + TRANSIENT_ERRORS


class IngestionError(Exception):
    """Unexpected failure while persisting a record; nothing was written."""

    def __init__(self, message: str, correlation_id: str | None = None):
        super().__init__(message)
        self.message = message
        self.correlation_id = correlation_id or uuid4().hex


@dataclass
class IngestResult:
    row: object
    created: bool
    category_created: bool = False
    product_created: bool = False


def parse_record(record_cls: type[IngestRecord], payload) -> IngestRecord:
    """
    Parse a payload and check its branch/store references.

    Reference problems are reported alongside field problems in one
    ValidationError.
    """
    errors: dict[str, list[str]] = {}
    record = None
    try:
        record = record_cls.from_payload(payload)
    except ValidationError as exc:
        errors = dict(exc.errors)

    if isinstance(payload, dict):
        branch_name = payload.get("branch_name")
        store_name = payload.get("store_name")
        if "branch_name" not in errors and not _exists(Branch, Branch.branch_name, branch_name):
            errors.setdefault("branch_name", []).append("The selected branch name is invalid.")
        if "store_name" not in errors and not _exists(Store, Store.store_name, store_name):
            errors.setdefault("store_name", []).append("The selected store name is invalid.")

    if errors:
        raise ValidationError("Validation error", errors=errors)
    return record


def _exists(model, column, value) -> bool:
    if value is None:
        return False
    return db.session.query(model.id).filter(column == str(value).strip()).first() is not None


def upsert_by_key(model, key: dict, values: dict) -> tuple[object, bool]:
    """
    Update the row with this natural key, or insert it.

    The flush surfaces a duplicate-key IntegrityError here, inside the unit
    of work, so the caller's retry can take the update path.
    """
    row = lock_for_update(db.session.query(model).filter_by(**key)).first()
    if row is not None:
        for name, value in values.items():
            setattr(row, name, value)
        db.session.flush()
        return row, False

    row = model(**key, **values)
    db.session.add(row)
    db.session.flush()
    return row, True


def _resolve_category(record: ItemRecord) -> bool:
    exists = lock_for_update(
        db.session.query(Category).filter_by(category_code=record.category_code)
    ).first()
    if exists is not None:
        return False
    db.session.add(Category(
        category_code=record.category_code,
        category_name=record.category_description,
        category_description=record.category_description,
        store_name=record.store_name,
        active="yes",
    ))
    db.session.flush()
    return True


def _resolve_product(record: ItemRecord) -> bool:
    exists = lock_for_update(
        db.session.query(Product).filter_by(product_code=record.product_code)
    ).first()
    if exists is not None:
        return False
    db.session.add(Product(
        product_code=record.product_code,
        product_name=record.description,
        product_description=record.description,
        category_code=record.category_code,
        branch_name=record.branch_name,
        store_name=record.store_name,
        active="yes",
    ))
    db.session.flush()
    return True


def _insert_item(key: dict, values: dict) -> ItemDetail:
    row = ItemDetail(**key, **values)
    db.session.add(row)
    db.session.flush()
    return row


def run_ingest(label: str, work: Callable[[], IngestResult]) -> IngestResult:
    def unit_of_work() -> IngestResult:
        result = work()
        db.session.commit()
        return result

    try:
        return run_with_retry(
            unit_of_work,
            attempts=INGEST_ATTEMPTS,
            backoff_base=0.05,
            retry_on=RETRYABLE_ERRORS,
        )
    except Exception as exc:
        db.session.rollback()
        error = IngestionError(f"Error processing {label.lower()}")
        current_app.logger.exception(
            "Failed to ingest %s (correlation_id=%s)", label.lower(), error.correlation_id
        )
        raise error from exc


def _ingest_simple(record: IngestRecord) -> IngestResult:
    def work() -> IngestResult:
        row, created = upsert_by_key(record.MODEL, record.natural_key(), record.values())
        return IngestResult(row=row, created=created)

    result = run_ingest(record.LABEL, work)
    current_app.logger.info(
        "%s %s for SI %s",
        record.LABEL, "created" if result.created else "updated", record.si_number,
    )
    return result


def ingest_header(record: HeaderRecord) -> IngestResult:
    return _ingest_simple(record)


def ingest_payment(record: PaymentRecord) -> IngestResult:
    return _ingest_simple(record)


def ingest_government_discount(record: GovernmentDiscountRecord) -> IngestResult:
    return _ingest_simple(record)


def ingest_item(record: ItemRecord) -> IngestResult:
    """
    Upsert a line item; on insert, create the Category and Product it
    references when their codes are new.

    Existing Category/Product rows are never overwritten by item payloads.
    """
    def work() -> IngestResult:
        key = record.natural_key()
        existing = lock_for_update(db.session.query(ItemDetail).filter_by(**key)).first()
        if existing is not None:
            for name, value in record.values().items():
                setattr(existing, name, value)
            db.session.flush()
            return IngestResult(row=existing, created=False)

        category_created = _resolve_category(record)
        product_created = _resolve_product(record)
        row = _insert_item(key, record.values())
        return IngestResult(
            row=row,
            created=True,
            category_created=category_created,
            product_created=product_created,
        )

    result = run_ingest(record.LABEL, work)
    current_app.logger.info(
        "Item %s for SI %s (category_created=%s product_created=%s)",
        "created" if result.created else "updated",
        record.si_number, result.category_created, result.product_created,
    )
    return result
