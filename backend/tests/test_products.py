"""
Product API tests.

Verifies:
- Auth boundary (reads public, writes admin-only)
- Validation and SKU handling
- Listing filters, search, pagination
- Toggles, counters, ratings, bulk operations
"""

import pytest

from siteadmin.services.products_service import generate_sku


# =============================================================================
# AUTH BOUNDARY
# =============================================================================


class TestAuthBoundary:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("POST", "/api/products"),
            ("PUT", "/api/products/1"),
            ("PATCH", "/api/products/1"),
            ("DELETE", "/api/products/1"),
            ("PATCH", "/api/products/1/toggle/featured"),
            ("POST", "/api/products/bulk-delete"),
            ("POST", "/api/products/bulk-update"),
        ],
    )
    def test_writes_require_auth(self, client, method, path):
        resp = getattr(client, method.lower())(path, json={})
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_bad_token_rejected(self, client):
        resp = client.post("/api/products", json={"name": "X"}, headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401
        assert resp.json["message"] == "Not authorized, token failed"

    def test_reads_are_public(self, client, make_product):
        product = make_product(name="Panel A")
        assert client.get("/api/products").status_code == 200
        assert client.get(f"/api/products/{product['id']}").status_code == 200


# =============================================================================
# CREATE / UPDATE
# =============================================================================


class TestCreateUpdate:

    def test_create_defaults(self, make_product):
        product = make_product(name="Panel A")

        assert product["category"] == "Uncategorized"
        assert product["status"] == "Active"
        assert product["sku"].startswith("PRD-")
        assert product["views"] == 0
        assert product["badgeType"] is None

    def test_generated_sku_uses_category_prefix(self):
        assert generate_sku("Automation & Control").startswith("ATC-")
        assert generate_sku("Something Else").startswith("PRD-")

    def test_explicit_sku_is_upper_cased(self, make_product):
        product = make_product(name="Panel A", sku="pdp-001")
        assert product["sku"] == "PDP-001"

    def test_duplicate_sku_rejected(self, client, admin_headers, make_product):
        make_product(name="Panel A", sku="PDP-001")

        resp = client.post("/api/products", json={"name": "Panel B", "sku": "pdp-001"}, headers=admin_headers)

        assert resp.status_code == 400
        assert resp.json["message"] == "Duplicate key error - SKU already exists"

    @pytest.mark.parametrize(
        "payload,message",
        [
            ({}, "Missing required fields: name"),
            ({"name": "X", "price": -1}, "Price cannot be negative"),
            ({"name": "X", "status": "Retired"}, "Retired is not a valid status. Must be one of: Active, Inactive"),
            ({"name": "X", "imageUrl": "ftp://host/img.png"}, "Invalid image format. Must be a base64 string or valid URL"),
            ({"name": "X", "views": 10}, "Field not allowed: views"),
            ({"name": "X", "stock": "1.5"}, "stock must be an integer"),
        ],
    )
    def test_validation(self, client, admin_headers, payload, message):
        resp = client.post("/api/products", json=payload, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json["message"] == message

    def test_camel_case_keys_accepted(self, make_product):
        product = make_product(name="Panel A", imageUrl="https://cdn.example.com/a.png", tags=["MCC", " Panel "])
        assert product["imageUrl"] == "https://cdn.example.com/a.png"
        assert product["tags"] == ["mcc", "panel"]

    def test_put_requires_name_and_resets_category(self, client, admin_headers, make_product):
        product = make_product(name="Panel A", category="Drives")

        resp = client.put(f"/api/products/{product['id']}", json={"price": 10}, headers=admin_headers)
        assert resp.status_code == 400

        resp = client.put(f"/api/products/{product['id']}", json={"name": "Panel A2"}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["data"]["category"] == "Uncategorized"

    def test_patch_is_partial(self, client, admin_headers, make_product):
        product = make_product(name="Panel A", category="Drives", price=100)

        resp = client.patch(f"/api/products/{product['id']}", json={"price": 250}, headers=admin_headers)

        data = resp.json["data"]
        assert data["price"] == 250
        assert data["name"] == "Panel A"
        assert data["category"] == "Drives"

    def test_not_found_and_malformed(self, client, admin_headers):
        assert client.get("/api/products/999").status_code == 404
        assert client.patch("/api/products/999", json={"price": 1}, headers=admin_headers).status_code == 404
        assert client.delete("/api/products/999", headers=admin_headers).status_code == 404

        resp = client.get("/api/products/not-a-number")
        assert resp.status_code == 400
        assert resp.json["message"] == "Invalid product ID"


# =============================================================================
# LISTING
# =============================================================================


class TestListing:

    def test_filters(self, client, make_product):
        make_product(name="Panel A", category="Drives", featured=True)
        make_product(name="Panel B", category="Drives", status="Inactive")
        make_product(name="Panel C", category="Cables")

        assert client.get("/api/products", query_string={"category": "Drives"}).json["count"] == 2
        assert client.get("/api/products", query_string={"category": "all"}).json["count"] == 3
        assert client.get("/api/products", query_string={"status": "Inactive"}).json["count"] == 1
        assert client.get("/api/products", query_string={"featured": "true"}).json["count"] == 1
        assert client.get("/api/products", query_string={"featured": "false"}).json["count"] == 2

    def test_search_matches_name_sku_and_tags(self, client, make_product):
        make_product(name="Motor Starter", sku="MCP-9")
        make_product(name="Panel", tags=["harmonic"])
        make_product(name="Cable Tray")

        def names(term):
            return {p["name"] for p in client.get("/api/products", query_string={"search": term}).json["data"]}

        assert names("starter") == {"Motor Starter"}
        assert names("mcp-9") == {"Motor Starter"}
        assert names("harmon") == {"Panel"}

    def test_sort_and_pagination(self, client, make_product):
        for price in (300, 100, 200):
            make_product(name=f"P{price}", price=price)

        resp = client.get("/api/products", query_string={"sortBy": "price", "order": "asc", "page": 2, "limit": 2})

        assert [p["price"] for p in resp.json["data"]] == [300]
        assert resp.json["pagination"] == {"page": 2, "limit": 2, "total": 3, "pages": 2}

    def test_bad_pagination(self, client):
        resp = client.get("/api/products", query_string={"page": "two"})
        assert resp.status_code == 400

    def test_category_stats(self, client, make_product):
        make_product(name="A", category="Drives", stock=5)
        make_product(name="B", category="Drives", stock=3, popular=True)
        make_product(name="C", category="Cables")

        stats = client.get("/api/products/stats/categories").json["data"]

        assert stats[0]["category"] == "Drives"
        assert stats[0]["count"] == 2
        assert stats[0]["totalStock"] == 8
        assert stats[0]["popularCount"] == 1

    def test_category_labels(self, client, admin_headers, make_product):
        client.post("/api/categories", json={"name": "Empty"}, headers=admin_headers)
        make_product(name="A", category="Drives")
        make_product(name="B")

        labels = client.get("/api/products/categories/list").json["data"]

        assert labels["all"] == ["Drives", "Empty"]
        assert labels["inUse"] == ["Drives"]


# =============================================================================
# TOGGLES / COUNTERS / RATINGS
# =============================================================================


class TestToggles:

    def test_toggle_status(self, client, admin_headers, make_product):
        product = make_product(name="Panel A")

        resp = client.patch(f"/api/products/{product['id']}/toggle/status", headers=admin_headers)

        assert resp.json["data"]["status"] == "Inactive"
        assert resp.json["message"] == "Product status changed to Inactive"

    def test_toggle_badge(self, client, admin_headers, make_product):
        product = make_product(name="Panel A")

        resp = client.patch(f"/api/products/{product['id']}/toggle/certified", headers=admin_headers)
        assert resp.json["data"]["certified"] is True
        assert resp.json["data"]["badgeType"] == "certified"

        resp = client.patch(f"/api/products/{product['id']}/toggle/certified", headers=admin_headers)
        assert resp.json["data"]["certified"] is False

    def test_unknown_flag(self, client, admin_headers, make_product):
        product = make_product(name="Panel A")
        resp = client.patch(f"/api/products/{product['id']}/toggle/price", headers=admin_headers)
        assert resp.status_code == 400


class TestCounters:

    def test_get_counts_a_view(self, client, make_product):
        product = make_product(name="Panel A")

        client.get(f"/api/products/{product['id']}")
        resp = client.get(f"/api/products/{product['id']}")

        assert resp.json["data"]["views"] == 2

    def test_views_and_downloads(self, client, make_product):
        product = make_product(name="Panel A")

        assert client.post(f"/api/products/{product['id']}/views").json["views"] == 1
        assert client.post(f"/api/products/{product['id']}/downloads").json["downloads"] == 1
        assert client.post("/api/products/999/downloads").status_code == 404

    def test_rating_running_average(self, client, make_product):
        product = make_product(name="Panel A")

        client.post(f"/api/products/{product['id']}/rating", json={"rating": 5})
        resp = client.post(f"/api/products/{product['id']}/rating", json={"rating": 2})

        assert resp.json["rating"] == pytest.approx(3.5)
        assert resp.json["reviewCount"] == 2

    @pytest.mark.parametrize("rating", [0, 6, None, "great"])
    def test_rating_out_of_range(self, client, make_product, rating):
        product = make_product(name="Panel A")
        resp = client.post(f"/api/products/{product['id']}/rating", json={"rating": rating})
        assert resp.status_code == 400
        assert resp.json["message"] == "Rating must be between 1 and 5"


class TestBulk:

    def test_bulk_update_rejects_identity_fields(self, client, admin_headers, make_product):
        product = make_product(name="Panel A")

        resp = client.post(
            "/api/products/bulk-update",
            json={"ids": [product["id"]], "updates": {"sku": "SAME-1"}},
            headers=admin_headers,
        )
        assert resp.status_code == 400

    def test_bulk_requires_ids(self, client, admin_headers):
        resp = client.post("/api/products/bulk-delete", json={"ids": []}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json["message"] == "Please provide product IDs"

    def test_bulk_delete_ignores_unknown_ids(self, client, admin_headers, make_product):
        product = make_product(name="Panel A")

        resp = client.post("/api/products/bulk-delete", json={"ids": [product["id"], 999]}, headers=admin_headers)

        assert resp.json["data"] == {"deletedCount": 1}
