# Overview: Service-layer operations for document; receipt and Z-read uploads stored as blobs.

from __future__ import annotations

import os
from dataclasses import dataclass

from flask import current_app

from ..extensions import db
from ..models import Branch, Receipt, Zread
from ..validation import ValidationError, coerce_text, FieldError
from backoffice.time_utils import parse_business_date
from .ingest_service import IngestResult, run_ingest, upsert_by_key


FILENAME_SEPARATOR = " - "


@dataclass(frozen=True)
class UploadedDocument:
    filename: str
    content: bytes
    mime_type: str | None = None


def _file_error(message: str) -> ValidationError:
    return ValidationError("Validation Error", errors={"file": [message]})


def check_upload(upload: UploadedDocument | None) -> None:
    """Extension and size rules shared by receipts and Z-reads."""
    if upload is None or not upload.filename:
        raise _file_error("The file field is required.")

    extension = os.path.splitext(upload.filename)[1].lstrip(".").lower()
    allowed = current_app.config.get("DOCUMENT_EXTENSIONS", ("txt", "log"))
    if extension not in allowed:
        raise _file_error("The file must be a TXT or LOG file.")

    max_kb = current_app.config.get("MAX_DOCUMENT_KB", 2048)
    if len(upload.content) > max_kb * 1024:
        raise _file_error(f"The file field must not be greater than {max_kb} kilobytes.")


def _stem_parts(filename: str) -> list[str]:
    stem = os.path.splitext(os.path.basename(filename))[0]
    return [part.strip() for part in stem.split(FILENAME_SEPARATOR)]


def _parse_date_part(raw: str):
    # Only YYYYMMDD or YYYY-MM-DD; parse_business_date also takes timestamps
    if not (len(raw) == 8 and raw.isdigit()) and not (len(raw) == 10 and raw[4] == "-" and raw[7] == "-"):
        return None
    try:
        return parse_business_date(raw)
    except ValueError:
        return None


def parse_receipt_filename(filename: str):
    """"SI_NUMBER - DATE - BRANCH_NAME.txt" -> (si_number, date, branch_name)."""
    parts = _stem_parts(filename)
    if len(parts) != 3 or not all(parts):
        raise _file_error('Unable to derive si_number/date/branch_name from filename. Expected "SI_NUMBER - DATE - BRANCH_NAME.txt".')
    si_number, raw_date, branch_name = parts
    business_date = _parse_date_part(raw_date)
    if business_date is None:
        raise _file_error("Unable to derive date from filename. Use YYYYMMDD or YYYY-MM-DD.")
    return si_number, business_date, branch_name


def parse_zread_filename(filename: str, fallback_branch: str | None = None):
    """
    "DATE - BRANCH_NAME.txt" -> (date, branch_name).

    The branch falls back to the form's branch_name when the file name only
    carries a date.
    """
    parts = _stem_parts(filename)
    raw_date = parts[0]
    branch_name = parts[1] if len(parts) > 1 and parts[1] else (fallback_branch or "").strip()
    business_date = _parse_date_part(raw_date)
    if business_date is None or not branch_name:
        raise _file_error("Unable to derive date/branch_name from filename.")
    return business_date, branch_name


def _require_branch(branch_name: str) -> None:
    if db.session.query(Branch.id).filter_by(branch_name=branch_name).first() is None:
        raise ValidationError("Validation Error", errors={"branch_name": ["The selected branch name is invalid."]})


def _optional_text(field: str, value) -> str | None:
    try:
        return coerce_text(field, value)
    except FieldError as exc:
        raise ValidationError("Validation Error", errors={field.replace(" ", "_"): [str(exc)]})


def store_receipt(upload: UploadedDocument | None, receipt_type=None) -> IngestResult:
    """Upsert a receipt by (branch, SI number, date, type); a re-upload replaces the content."""
    check_upload(upload)
    receipt_type = _optional_text("type", receipt_type) or ""
    si_number, business_date, branch_name = parse_receipt_filename(upload.filename)
    _require_branch(branch_name)

    key = {
        "branch_name": branch_name,
        "si_number": si_number,
        "date": business_date,
        "type": receipt_type,
    }
    values = {
        "file_name": os.path.basename(upload.filename),
        "file_content": upload.content,
        "mime_type": upload.mime_type or "text/plain",
    }

    def work() -> IngestResult:
        row, created = upsert_by_key(Receipt, key, values)
        return IngestResult(row=row, created=created)

    result = run_ingest("Receipt", work)
    current_app.logger.info(
        "Receipt %s for SI %s (%s)", "created" if result.created else "updated", si_number, branch_name
    )
    return result


def store_zread(upload: UploadedDocument | None, branch_name=None) -> IngestResult:
    """Upsert the Z-read for (date, branch)."""
    check_upload(upload)
    fallback = _optional_text("branch name", branch_name)
    business_date, branch = parse_zread_filename(upload.filename, fallback)
    _require_branch(branch)

    key = {"date": business_date, "branch_name": branch}
    values = {
        "file_name": os.path.basename(upload.filename),
        "file_content": upload.content,
        "mime_type": upload.mime_type or "text/plain",
    }

    def work() -> IngestResult:
        row, created = upsert_by_key(Zread, key, values)
        return IngestResult(row=row, created=created)

    result = run_ingest("Zread", work)
    current_app.logger.info(
        "Zread %s for %s (%s)", "created" if result.created else "updated", business_date, branch
    )
    return result


def get_receipt(receipt_id: int) -> Receipt | None:
    return db.session.get(Receipt, receipt_id)


def get_zread(zread_id: int) -> Zread | None:
    return db.session.get(Zread, zread_id)


def find_receipt(si_number, branch_name) -> Receipt | None:
    """Latest receipt for an SI number at a branch."""
    errors: dict[str, list[str]] = {}
    for field, value in (("si_number", si_number), ("branch_name", branch_name)):
        if value is None or not str(value).strip():
            errors.setdefault(field, []).append(f"The {field.replace('_', ' ')} field is required.")
    if errors:
        raise ValidationError("Validation Error", errors=errors)

    return (
        db.session.query(Receipt)
        .filter_by(si_number=str(si_number).strip(), branch_name=str(branch_name).strip())
        .order_by(Receipt.date.desc(), Receipt.id.desc())
        .first()
    )
