"""
Category API tests: listing, stats, validation, usage report.
"""

from sqlalchemy import text

from siteadmin.extensions import db
from siteadmin.models import Product


class TestCategoryListing:

    def test_sorted_by_usage_then_name(self, client, make_product):
        make_product(name="A1", category="Switchgear")
        make_product(name="B1", category="Drives")
        make_product(name="B2", category="Drives")
        make_product(name="C1", category="Cables")

        resp = client.get("/api/categories")

        assert resp.status_code == 200
        assert [c["name"] for c in resp.json["data"]] == ["Drives", "Cables", "Switchgear"]
        assert resp.json["count"] == 3

    def test_stats(self, client, admin_headers, make_product):
        make_product(name="A1", category="Drives")
        make_product(name="A2", category="Drives")
        client.post("/api/categories", json={"name": "Empty"}, headers=admin_headers)

        stats = client.get("/api/categories").json["stats"]

        assert stats == {"total": 2, "used": 1, "unused": 1, "totalUsage": 2}

    def test_type_filter(self, client, admin_headers, make_product):
        make_product(name="A1", category="Drives")
        client.post("/api/categories", json={"name": "Installations", "type": "gallery"}, headers=admin_headers)

        gallery = client.get("/api/categories", query_string={"type": "gallery"}).json["data"]
        assert [c["name"] for c in gallery] == ["Installations"]

    def test_unknown_type_rejected(self, client):
        resp = client.get("/api/categories", query_string={"type": "bogus"})
        assert resp.status_code == 400
        assert resp.json["success"] is False


class TestCategoryWrites:

    def test_create_requires_auth(self, client):
        resp = client.post("/api/categories", json={"name": "Drives"})
        assert resp.status_code == 401
        assert resp.json["message"] == "Not authorized, no token"

    def test_create(self, client, admin_headers):
        resp = client.post(
            "/api/categories",
            json={"name": "  Drives  ", "description": "Variable frequency drives"},
            headers=admin_headers,
        )

        assert resp.status_code == 201
        data = resp.json["data"]
        assert data["name"] == "Drives"
        assert data["type"] == "product"
        assert data["usageCount"] == 0

    def test_blank_name_rejected(self, client, admin_headers):
        resp = client.post("/api/categories", json={"name": "   "}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json["message"] == "Category name is required"

    def test_duplicate_is_case_insensitive(self, client, admin_headers):
        client.post("/api/categories", json={"name": "Drives"}, headers=admin_headers)

        resp = client.post("/api/categories", json={"name": "DRIVES"}, headers=admin_headers)

        assert resp.status_code == 400
        assert resp.json["message"] == "Category already exists"

    def test_sentinel_name_reserved(self, client, admin_headers):
        resp = client.post("/api/categories", json={"name": "Uncategorized"}, headers=admin_headers)
        assert resp.status_code == 400

    def test_create_counts_products_already_labelled(self, client, admin_headers, db_session):
        db_session.add(Product(name="Imported", category="Legacy", sku="IMP-1"))
        db_session.commit()

        resp = client.post("/api/categories", json={"name": "Legacy"}, headers=admin_headers)

        assert resp.json["data"]["usageCount"] == 1

    def test_rename_to_existing_name_rejected(self, client, admin_headers):
        client.post("/api/categories", json={"name": "Drives"}, headers=admin_headers)
        other = client.post("/api/categories", json={"name": "Cables"}, headers=admin_headers).json["data"]

        resp = client.patch(f"/api/categories/{other['id']}", json={"name": "drives"}, headers=admin_headers)

        assert resp.status_code == 400
        assert resp.json["message"] == "Category name already exists"

    def test_recasing_own_name_allowed(self, client, admin_headers):
        created = client.post("/api/categories", json={"name": "drives"}, headers=admin_headers).json["data"]

        resp = client.patch(f"/api/categories/{created['id']}", json={"name": "Drives"}, headers=admin_headers)

        assert resp.status_code == 200
        assert resp.json["data"]["name"] == "Drives"

    def test_not_found(self, client, admin_headers):
        assert client.get("/api/categories/999").status_code == 404
        assert client.put("/api/categories/999", json={"name": "X"}, headers=admin_headers).status_code == 404
        assert client.delete("/api/categories/999", headers=admin_headers).status_code == 404

    def test_malformed_id(self, client):
        resp = client.get("/api/categories/abc")
        assert resp.status_code == 400
        assert resp.json["message"] == "Invalid category ID"


class TestUsageReport:

    def test_live_counts_next_to_stored(self, client, make_product):
        make_product(name="A1", category="Drives")
        make_product(name="A2", category="Drives")
        make_product(name="Loose")

        report = client.get("/api/categories/usage").json["data"]

        assert report[0] == {
            "id": report[0]["id"],
            "name": "Drives",
            "count": 2,
            "usageCount": 2,
        }
        assert report[-1] == {"id": None, "name": "Uncategorized", "count": 1, "usageCount": 1}

    def test_drift_visible(self, client, make_product):
        make_product(name="A1", category="Drives")
        db.session.execute(text("UPDATE categories SET usage_count = 7 WHERE name = 'Drives'"))
        db.session.commit()

        report = client.get("/api/categories/usage").json["data"]

        assert report == [{"id": report[0]["id"], "name": "Drives", "count": 1, "usageCount": 7}]
