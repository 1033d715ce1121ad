"""
Receipt and Z-read upload tests.

Verifies:
- Keys are derived from the file name ("SI - DATE - BRANCH.txt", "DATE - BRANCH.txt")
- Re-uploading the same key replaces the content in place
- Extension, size, date format and branch are validated
- Stored files can be searched for and downloaded
"""

import io

import pytest

from backoffice.extensions import db
from backoffice.models import Receipt, Zread
from backoffice.services.document_service import (
    parse_receipt_filename,
    parse_zread_filename,
)
from backoffice.validation import ValidationError


def upload(client, url, filename, content=b"RECEIPT\nTOTAL 100.00\n", **form):
    data = {"file": (io.BytesIO(content), filename), **form}
    return client.post(url, data=data, content_type="multipart/form-data")


class TestFilenameParsing:
    def test_receipt_filename(self):
        si, business_date, branch = parse_receipt_filename("100 - 20250818 - B1.txt")
        assert si == "100"
        assert business_date.isoformat() == "2025-08-18"
        assert branch == "B1"

    def test_receipt_filename_with_iso_date(self):
        _, business_date, _ = parse_receipt_filename("100 - 2025-08-18 - B1.log")
        assert business_date.isoformat() == "2025-08-18"

    @pytest.mark.parametrize("filename", [
        "100 - 20250818.txt",
        "100 - 20250818 - B1 - extra.txt",
        "100 - 18-08-2025 - B1.txt",
        "100 - 20251318 - B1.txt",
    ])
    def test_bad_receipt_filenames(self, filename):
        with pytest.raises(ValidationError) as exc_info:
            parse_receipt_filename(filename)
        assert "file" in exc_info.value.errors

    def test_zread_filename_falls_back_to_form_branch(self):
        business_date, branch = parse_zread_filename("20250818.txt", "B1")
        assert business_date.isoformat() == "2025-08-18"
        assert branch == "B1"

    def test_zread_filename_branch_wins_over_fallback(self):
        _, branch = parse_zread_filename("20250818 - B2.txt", "B1")
        assert branch == "B2"

    def test_zread_without_any_branch(self):
        with pytest.raises(ValidationError):
            parse_zread_filename("20250818.txt")


class TestReceiptUpload:
    def test_upload_then_replace(self, client, seed):
        resp = upload(client, "/api/receipts", "100 - 20250818 - B1.txt")
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["message"] == "Receipt file uploaded successfully!"
        assert body["data"]["si_number"] == "100"
        assert body["data"]["date"] == "2025-08-18"
        first_id = body["id"]

        resp = upload(client, "/api/receipts", "100 - 20250818 - B1.txt", content=b"REPRINT\n")
        assert resp.status_code == 200
        assert resp.get_json()["message"] == "Receipt file replaced successfully!"
        assert resp.get_json()["id"] == first_id

        db.session.expire_all()
        row = db.session.query(Receipt).one()
        assert row.file_content == b"REPRINT\n"

    def test_type_is_part_of_the_key(self, client, seed):
        upload(client, "/api/receipts", "100 - 20250818 - B1.txt")
        resp = upload(client, "/api/receipts", "100 - 20250818 - B1.txt", type="VOID")
        assert resp.status_code == 201
        assert resp.get_json()["data"]["type"] == "VOID"
        assert db.session.query(Receipt).count() == 2

    def test_download(self, client, seed):
        receipt_id = upload(client, "/api/receipts", "100 - 20250818 - B1.txt").get_json()["id"]

        resp = client.get(f"/api/receipts/{receipt_id}/file")
        assert resp.status_code == 200
        assert resp.mimetype == "text/plain"
        assert resp.data == b"RECEIPT\nTOTAL 100.00\n"

    def test_download_unknown_id(self, client, seed):
        assert client.get("/api/receipts/999/file").status_code == 404

    def test_missing_file(self, client, seed):
        resp = client.post("/api/receipts", data={}, content_type="multipart/form-data")
        assert resp.status_code == 422
        assert resp.get_json()["errors"] == {"file": ["The file field is required."]}

    def test_bad_extension(self, client, seed):
        resp = upload(client, "/api/receipts", "100 - 20250818 - B1.pdf")
        assert resp.status_code == 422
        assert resp.get_json()["errors"] == {"file": ["The file must be a TXT or LOG file."]}

    def test_too_large(self, app, client, seed):
        app.config["MAX_DOCUMENT_KB"] = 1
        resp = upload(client, "/api/receipts", "100 - 20250818 - B1.txt", content=b"x" * 2048)
        assert resp.status_code == 422
        assert "file" in resp.get_json()["errors"]

    def test_bad_date(self, client, seed):
        resp = upload(client, "/api/receipts", "100 - 2025-13-45 - B1.txt")
        assert resp.status_code == 422
        assert db.session.query(Receipt).count() == 0

    def test_unknown_branch(self, client, seed):
        resp = upload(client, "/api/receipts", "100 - 20250818 - B9.txt")
        assert resp.status_code == 422
        assert resp.get_json()["errors"] == {"branch_name": ["The selected branch name is invalid."]}


class TestReceiptSearch:
    def test_found(self, client, seed):
        upload(client, "/api/receipts", "100 - 20250818 - B1.txt")
        resp = client.get("/api/receipts/search", query_string={"si_number": "100", "branch_name": "B1"})
        assert resp.status_code == 200
        assert resp.get_json()["message"] == "Receipt found!"
        assert resp.get_json()["data"]["branch_name"] == "B1"

    def test_latest_date_wins(self, client, seed):
        upload(client, "/api/receipts", "100 - 20250818 - B1.txt")
        upload(client, "/api/receipts", "100 - 20250820 - B1.txt")
        resp = client.get("/api/receipts/search", query_string={"si_number": "100", "branch_name": "B1"})
        assert resp.get_json()["data"]["date"] == "2025-08-20"

    def test_not_found(self, client, seed):
        resp = client.get("/api/receipts/search", query_string={"si_number": "404", "branch_name": "B1"})
        assert resp.status_code == 404
        assert resp.get_json() == {"message": "Receipt not found", "data": None}

    def test_parameters_required(self, client, seed):
        resp = client.get("/api/receipts/search")
        assert resp.status_code == 422
        assert set(resp.get_json()["errors"]) == {"si_number", "branch_name"}


class TestZreadUpload:
    def test_upload_then_replace(self, client, seed):
        resp = upload(client, "/api/zread", "20250818 - B1.txt", content=b"Z-READ #1\n")
        assert resp.status_code == 201
        assert resp.get_json()["message"] == "Zread file uploaded successfully!"
        zread_id = resp.get_json()["id"]

        resp = upload(client, "/api/zread", "20250818 - B1.txt", content=b"Z-READ #2\n")
        assert resp.status_code == 200
        assert resp.get_json()["message"] == "Zread file replaced successfully!"

        assert db.session.query(Zread).count() == 1
        assert client.get(f"/api/zreads/{zread_id}/file").data == b"Z-READ #2\n"

    def test_branch_from_form(self, client, seed):
        resp = upload(client, "/api/zread", "2025-08-18.txt", branch_name="B1")
        assert resp.status_code == 201
        assert resp.get_json()["data"]["branch_name"] == "B1"

    def test_no_branch_anywhere(self, client, seed):
        resp = upload(client, "/api/zread", "20250818.txt")
        assert resp.status_code == 422
        assert "file" in resp.get_json()["errors"]

    def test_unknown_branch(self, client, seed):
        resp = upload(client, "/api/zread", "20250818 - B9.txt")
        assert resp.status_code == 422
        assert "branch_name" in resp.get_json()["errors"]
