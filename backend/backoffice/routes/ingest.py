# Overview: Flask API routes for POS terminal ingestion; parses input and returns JSON responses.

"""
POS ingestion endpoints

Terminals push one record per call. Responses:
- 201 created, 200 updated (same natural key resent)
- 422 with a field -> messages map
- 500 with a correlation_id when persisting failed (nothing was written)

When INGEST_API_KEY is set every call needs a matching X-Api-Key header.
"""

from flask import Blueprint, Response, current_app, jsonify, request

from ..decorators import require_ingest_key
from ..services import document_service, ingest_service
from ..services.document_service import UploadedDocument
from ..services.ingest_schemas import (
    GovernmentDiscountRecord,
    HeaderRecord,
    ItemRecord,
    PaymentRecord,
)
from ..services.ingest_service import IngestionError
from ..validation import ValidationError


ingest_bp = Blueprint("ingest", __name__, url_prefix="/api")


def _payload() -> dict:
    if request.is_json:
        return request.get_json(silent=True)
    return request.form.to_dict()


def _ingestion_failed(exc: IngestionError):
    return jsonify({"message": exc.message, "correlation_id": exc.correlation_id}), 500


def _ingest(record_cls, ingest, *, item: bool = False):
    try:
        record = ingest_service.parse_record(record_cls, _payload())
        result = ingest(record)
    except ValidationError as exc:
        return jsonify(exc.to_dict()), 422
    except IngestionError as exc:
        return _ingestion_failed(exc)

    verb = "created" if result.created else "updated"
    body = {
        "message": f"{record_cls.LABEL} {verb} successfully",
        "data": result.row.to_dict(),
        "id": result.row.id,
    }
    if item:
        body["categoryCreated"] = result.category_created
        body["productCreated"] = result.product_created
    return jsonify(body), 201 if result.created else 200


@ingest_bp.post("/header")
@require_ingest_key
def ingest_header_route():
    return _ingest(HeaderRecord, ingest_service.ingest_header)


@ingest_bp.post("/item-details")
@require_ingest_key
def ingest_item_route():
    return _ingest(ItemRecord, ingest_service.ingest_item, item=True)


@ingest_bp.post("/payment")
@require_ingest_key
def ingest_payment_route():
    return _ingest(PaymentRecord, ingest_service.ingest_payment)


@ingest_bp.post("/government-discount")
@require_ingest_key
def ingest_government_discount_route():
    return _ingest(GovernmentDiscountRecord, ingest_service.ingest_government_discount)


def _uploaded_document() -> UploadedDocument | None:
    file = request.files.get("file")
    if file is None or not file.filename:
        return None
    return UploadedDocument(
        filename=file.filename,
        content=file.read(),
        mime_type=file.mimetype or None,
    )


@ingest_bp.post("/receipts")
@require_ingest_key
def upload_receipt_route():
    try:
        result = document_service.store_receipt(_uploaded_document(), request.form.get("type"))
    except ValidationError as exc:
        current_app.logger.warning("Receipt validation failed: %s", exc.errors)
        return jsonify(exc.to_dict()), 422
    except IngestionError as exc:
        return _ingestion_failed(exc)

    verb = "uploaded" if result.created else "replaced"
    return jsonify({
        "message": f"Receipt file {verb} successfully!",
        "data": result.row.to_dict(),
        "id": result.row.id,
    }), 201 if result.created else 200


@ingest_bp.post("/zread")
@require_ingest_key
def upload_zread_route():
    try:
        result = document_service.store_zread(_uploaded_document(), request.form.get("branch_name"))
    except ValidationError as exc:
        current_app.logger.warning("Zread validation failed: %s", exc.errors)
        return jsonify(exc.to_dict()), 422
    except IngestionError as exc:
        return _ingestion_failed(exc)

    verb = "uploaded" if result.created else "replaced"
    return jsonify({
        "message": f"Zread file {verb} successfully!",
        "data": result.row.to_dict(),
        "id": result.row.id,
    }), 201 if result.created else 200


@ingest_bp.get("/receipts/search")
@require_ingest_key
def search_receipt_route():
    try:
        receipt = document_service.find_receipt(
            request.args.get("si_number"),
            request.args.get("branch_name"),
        )
    except ValidationError as exc:
        return jsonify(exc.to_dict()), 422

    if receipt is None:
        return jsonify({"message": "Receipt not found", "data": None}), 404
    return jsonify({"message": "Receipt found!", "data": receipt.to_dict()}), 200


def _file_response(document):
    return Response(
        document.file_content,
        mimetype=document.mime_type or "text/plain",
        headers={"Content-Disposition": f'inline; filename="{document.file_name}"'},
    )


@ingest_bp.get("/receipts/<int:receipt_id>/file")
@require_ingest_key
def receipt_file_route(receipt_id: int):
    receipt = document_service.get_receipt(receipt_id)
    if receipt is None:
        return jsonify({"message": "Receipt not found"}), 404
    return _file_response(receipt)


@ingest_bp.get("/zreads/<int:zread_id>/file")
@require_ingest_key
def zread_file_route(zread_id: int):
    zread = document_service.get_zread(zread_id)
    if zread is None:
        return jsonify({"message": "Zread not found"}), 404
    return _file_response(zread)
