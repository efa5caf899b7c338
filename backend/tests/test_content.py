"""
Services, gallery and client portfolio tests.
"""

import pytest


# =============================================================================
# SERVICES
# =============================================================================


class TestServices:

    def _create(self, client, headers, **fields):
        payload = {"title": "Panel Maintenance", "description": "Annual preventive maintenance"}
        payload.update(fields)
        resp = client.post("/api/services", json=payload, headers=headers)
        assert resp.status_code == 201, resp.json
        return resp.json["data"]

    def test_create_defaults(self, client, admin_headers):
        service = self._create(client, admin_headers)

        assert service["status"] == "Active"
        assert service["duration"] == "2-4 hours"
        assert service["category"] == "Other"
        assert service["featured"] is False

    def test_create_requires_auth(self, client):
        resp = client.post("/api/services", json={"title": "X", "description": "Y"})
        assert resp.status_code == 401

    @pytest.mark.parametrize(
        "fields,message",
        [
            ({"category": "Demolition"}, "Demolition is not a valid category. Must be one of: Repair, Maintenance, Installation, Consultation, Other"),
            ({"price": -5}, "Price cannot be negative"),
        ],
    )
    def test_validation(self, client, admin_headers, fields, message):
        payload = {"title": "X", "description": "Y", **fields}
        resp = client.post("/api/services", json=payload, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json["message"] == message

    def test_featured_status_sets_flag(self, client, admin_headers):
        service = self._create(client, admin_headers, status="Featured")
        assert service["featured"] is True

    def test_toggle_featured(self, client, admin_headers):
        service = self._create(client, admin_headers)

        on = client.patch(f"/api/services/{service['id']}/featured", headers=admin_headers).json["data"]
        assert on["featured"] is True
        assert on["status"] == "Featured"

        off = client.patch(f"/api/services/{service['id']}/featured", headers=admin_headers).json["data"]
        assert off["featured"] is False
        assert off["status"] == "Active"

    def test_toggle_status(self, client, admin_headers):
        service = self._create(client, admin_headers)

        resp = client.patch(f"/api/services/{service['id']}/status", headers=admin_headers)

        assert resp.json["data"]["status"] == "Inactive"
        assert resp.json["message"] == "Service inactive"

    def test_list_stats_and_bulk_delete(self, client, admin_headers):
        a = self._create(client, admin_headers, title="A")
        b = self._create(client, admin_headers, title="B", status="Inactive")

        listed = client.get("/api/services", query_string={"status": "Active"}).json
        assert [s["title"] for s in listed["data"]] == ["A"]
        assert listed["stats"] == {"total": 2, "active": 1, "inactive": 1, "featured": 0}

        resp = client.post("/api/services/bulk-delete", json={"ids": [a["id"], b["id"]]}, headers=admin_headers)
        assert resp.json["data"] == {"deletedCount": 2}

    def test_not_found(self, client, admin_headers):
        assert client.get("/api/services/999").status_code == 404
        assert client.patch("/api/services/999/featured", headers=admin_headers).status_code == 404


# =============================================================================
# GALLERY
# =============================================================================


class TestGallery:

    def test_alt_defaults_to_title(self, client, admin_headers):
        resp = client.post(
            "/api/gallery",
            json={"title": "Substation commissioning", "url": "https://cdn.example.com/s.jpg"},
            headers=admin_headers,
        )

        assert resp.status_code == 201
        assert resp.json["message"] == "Image uploaded successfully"
        assert resp.json["data"]["alt"] == "Substation commissioning"
        assert resp.json["data"]["category"] == "Uncategorized"

    def test_required_fields(self, client, admin_headers):
        resp = client.post("/api/gallery", json={"title": "No url"}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json["message"] == "Missing required fields: url"

    def test_category_filter_and_counts(self, client, admin_headers):
        for title, category in (("a", "Installations"), ("b", "Installations"), ("c", "Workshop")):
            client.post(
                "/api/gallery",
                json={"title": title, "url": f"https://cdn.example.com/{title}.jpg", "category": category},
                headers=admin_headers,
            )

        listed = client.get("/api/gallery", query_string={"category": "Workshop"}).json
        assert [g["title"] for g in listed["data"]] == ["c"]

        counts = client.get("/api/gallery/categories").json["data"]
        assert counts == [{"category": "Installations", "count": 2}, {"category": "Workshop", "count": 1}]

    def test_update_and_delete(self, client, admin_headers):
        image = client.post(
            "/api/gallery",
            json={"title": "a", "url": "https://cdn.example.com/a.jpg"},
            headers=admin_headers,
        ).json["data"]

        resp = client.put(f"/api/gallery/{image['id']}", json={"alt": "Control room"}, headers=admin_headers)
        assert resp.json["data"]["alt"] == "Control room"

        assert client.delete(f"/api/gallery/{image['id']}", headers=admin_headers).status_code == 200
        assert client.get(f"/api/gallery/{image['id']}").status_code == 404


# =============================================================================
# CLIENTS
# =============================================================================


class TestClients:

    def _create(self, client, headers, name, **fields):
        resp = client.post("/api/clients", json={"name": name, **fields}, headers=headers)
        assert resp.status_code == 201, resp.json
        return resp.json["data"]

    def test_create(self, client, admin_headers):
        created = self._create(client, admin_headers, "Tata Steel", since="2015", projectValue=250000)

        assert created["status"] == "Active"
        assert created["rating"] == 5
        assert created["projectValue"] == 250000

    def test_duplicate_name_is_case_insensitive(self, client, admin_headers):
        self._create(client, admin_headers, "Tata Steel")

        resp = client.post("/api/clients", json={"name": "TATA STEEL"}, headers=admin_headers)

        assert resp.status_code == 400
        assert resp.json["message"] == "Client with this name already exists"

    @pytest.mark.parametrize(
        "fields,message",
        [
            ({"since": "20x4"}, "Please enter a valid year (YYYY format)"),
            ({"rating": 7}, "Rating must be between 1 and 5"),
            ({"status": "Dormant"}, "Dormant is not a valid status. Must be one of: Active, Inactive"),
        ],
    )
    def test_validation(self, client, admin_headers, fields, message):
        resp = client.post("/api/clients", json={"name": "Acme", **fields}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json["message"] == message

    def test_rename_conflict(self, client, admin_headers):
        self._create(client, admin_headers, "Tata Steel")
        other = self._create(client, admin_headers, "Acme")

        resp = client.put(f"/api/clients/{other['id']}", json={"name": "tata steel"}, headers=admin_headers)

        assert resp.status_code == 400

    def test_stats(self, client, admin_headers):
        self._create(client, admin_headers, "A", rating=4)
        self._create(client, admin_headers, "B", rating=5, status="Inactive")

        stats = client.get("/api/clients/stats").json["data"]

        assert stats == {"total": 2, "active": 1, "inactive": 1, "averageRating": "4.5"}

    def test_bulk_status_update(self, client, admin_headers):
        a = self._create(client, admin_headers, "A")
        b = self._create(client, admin_headers, "B", status="Inactive")

        resp = client.patch(
            "/api/clients/status",
            json={"ids": [a["id"], b["id"]], "status": "Inactive"},
            headers=admin_headers,
        )

        assert resp.status_code == 200
        assert resp.json["data"] == {"modifiedCount": 1}
        assert resp.json["message"] == "1 clients updated to Inactive"

    def test_bulk_status_rejects_unknown_status(self, client, admin_headers):
        a = self._create(client, admin_headers, "A")
        resp = client.patch("/api/clients/status", json={"ids": [a["id"]], "status": "Gone"}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json["message"] == "Invalid status. Must be Active or Inactive"

    def test_list_search(self, client, admin_headers):
        self._create(client, admin_headers, "Tata Steel")
        self._create(client, admin_headers, "Acme Foods")

        listed = client.get("/api/clients", query_string={"search": "tata"}).json

        assert [c["name"] for c in listed["data"]] == ["Tata Steel"]
        assert listed["stats"]["total"] == 2
