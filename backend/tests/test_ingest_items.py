"""
Line item ingestion tests.

Verifies:
- A new item creates its Category and Product when their codes are unknown
- Repeated submissions never duplicate items, categories or products
- Existing Category/Product rows are not overwritten by item payloads
- A failed item insert leaves no dimension rows behind
"""

import sqlalchemy as sa

from backoffice.extensions import db
from backoffice.models import Category, ItemDetail, Product
from backoffice.services import ingest_service


def item_payload(**overrides):
    payload = {
        "branch_name": "B1",
        "store_name": "S1",
        "terminal_number": "T1",
        "si_number": "SI-0001",
        "product_code": "P-100",
        "description": "Chicken Adobo",
        "category_code": "C-10",
        "category_description": "Mains",
        "qty": 2,
        "net_total": "250.00",
        "menu_price": "125.00",
        "void_flag": "0",
    }
    payload.update(overrides)
    return payload


class TestItemIngestion:
    def test_new_item_creates_category_and_product(self, client, seed):
        resp = client.post("/api/item-details", json=item_payload())
        assert resp.status_code == 201

        body = resp.get_json()
        assert body["message"] == "Item details created successfully"
        assert body["categoryCreated"] is True
        assert body["productCreated"] is True
        assert body["data"]["discount_amount"] == "0.00"
        assert body["data"]["combo_header"] is None

        category = db.session.query(Category).one()
        assert category.category_code == "C-10"
        assert category.category_name == "Mains"
        product = db.session.query(Product).one()
        assert product.product_code == "P-100"
        assert product.product_name == "Chicken Adobo"
        assert product.category_code == "C-10"

    def test_resubmission_updates_the_item(self, client, seed):
        first = client.post("/api/item-details", json=item_payload()).get_json()

        resp = client.post("/api/item-details", json=item_payload(qty=3, net_total="375.00"))
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["message"] == "Item details updated successfully"
        assert body["id"] == first["id"]
        assert body["categoryCreated"] is False
        assert body["productCreated"] is False
        assert body["data"]["qty"] == 3

    def test_repeat_submissions_keep_one_of_each(self, client, seed):
        for _ in range(3):
            client.post("/api/item-details", json=item_payload())
        client.post("/api/item-details", json=item_payload(si_number="SI-0002"))

        assert db.session.query(ItemDetail).count() == 2
        assert db.session.query(Category).count() == 1
        assert db.session.query(Product).count() == 1

    def test_known_codes_are_resolved_not_overwritten(self, client, seed):
        client.post("/api/item-details", json=item_payload())

        resp = client.post("/api/item-details", json=item_payload(
            si_number="SI-0002",
            description="Adobo (large)",
            category_description="Main Dishes",
        ))
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["categoryCreated"] is False
        assert body["productCreated"] is False
        assert body["data"]["description"] == "Adobo (large)"

        db.session.expire_all()
        assert db.session.query(Product.product_name).scalar() == "Chicken Adobo"
        assert db.session.query(Category.category_name).scalar() == "Mains"

    def test_new_product_in_known_category(self, client, seed):
        client.post("/api/item-details", json=item_payload())
        resp = client.post("/api/item-details", json=item_payload(product_code="P-200", description="Sinigang"))

        body = resp.get_json()
        assert body["categoryCreated"] is False
        assert body["productCreated"] is True
        assert db.session.query(Product).count() == 2

    def test_combo_components_are_separate_items(self, client, seed):
        client.post("/api/item-details", json=item_payload())
        resp = client.post("/api/item-details", json=item_payload(combo_header="MEAL-1"))
        assert resp.status_code == 201
        assert resp.get_json()["data"]["combo_header"] == "MEAL-1"
        assert db.session.query(ItemDetail).count() == 2

    def test_missing_category_code(self, client, seed):
        payload = item_payload()
        del payload["category_code"]
        resp = client.post("/api/item-details", json=payload)
        assert resp.status_code == 422
        assert resp.get_json()["errors"] == {"category_code": ["The category code field is required."]}
        assert db.session.query(Category).count() == 0


class TestItemIngestionFailures:
    def test_lost_race_on_item_insert_retries_as_update(self, client, seed, monkeypatch):
        client.post("/api/item-details", json=item_payload())

        real = ingest_service.lock_for_update
        calls = []

        def blind_first_lookup(query):
            calls.append(query)
            if len(calls) == 1:
                return real(query).filter(sa.false())
            return real(query)

        monkeypatch.setattr(ingest_service, "lock_for_update", blind_first_lookup)

        resp = client.post("/api/item-details", json=item_payload(qty=5))
        assert resp.status_code == 200
        assert resp.get_json()["data"]["qty"] == 5
        assert db.session.query(ItemDetail).count() == 1
        assert db.session.query(Product).count() == 1

    def test_lost_race_on_product_insert_resolves_existing_product(self, client, seed, monkeypatch):
        client.post("/api/item-details", json=item_payload())

        real = ingest_service.lock_for_update
        product_lookups = []

        def blind_first_product_lookup(query):
            # another item with the same product code committed between our
            # product lookup and our product insert
            if query.column_descriptions[0]["entity"] is Product:
                product_lookups.append(query)
                if len(product_lookups) == 1:
                    return real(query).filter(sa.false())
            return real(query)

        monkeypatch.setattr(ingest_service, "lock_for_update", blind_first_product_lookup)

        resp = client.post("/api/item-details", json=item_payload(si_number="SI-0002"))
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["productCreated"] is False
        assert body["categoryCreated"] is False
        assert len(product_lookups) == 2

        assert db.session.query(Product).count() == 1
        assert db.session.query(Category).count() == 1
        assert db.session.query(ItemDetail).count() == 2

    def test_failed_insert_leaves_no_dimension_rows(self, client, seed, monkeypatch):
        def broken_insert(key, values):
            raise RuntimeError("disk full")

        monkeypatch.setattr(ingest_service, "_insert_item", broken_insert)

        resp = client.post("/api/item-details", json=item_payload())
        assert resp.status_code == 500
        body = resp.get_json()
        assert body["message"] == "Error processing item details"
        assert body["correlation_id"]

        assert db.session.query(Category).count() == 0
        assert db.session.query(Product).count() == 0
        assert db.session.query(ItemDetail).count() == 0
