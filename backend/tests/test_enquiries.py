"""
Enquiry and response sub-ledger tests.

Verifies:
- Public submission and its validation
- First response promotes new -> in-progress; later responses never touch status
- Fetch marks read; read/star toggles flip unconditionally
- Notification failures do not fail the append
- Bulk operations, stats, export
"""

import pytest

from siteadmin.extensions import db
from siteadmin.models import DomainEvent, Enquiry
from siteadmin.services import notification_service

CONTACT_FORM = {
    "name": "Asha Rao",
    "email": "Asha@Example.com",
    "phone": "9876543210",
    "subject": "Panel quote",
    "message": "Need a quote for an MCC panel",
}


@pytest.fixture
def submit(client):
    def _submit(**overrides) -> dict:
        payload = dict(CONTACT_FORM, **overrides)
        resp = client.post("/api/enquiries", json=payload)
        assert resp.status_code == 201, resp.json
        return resp.json["data"]
    return _submit


def respond(client, headers, enquiry_id, message="Thanks, quote attached", **extra):
    return client.post(
        f"/api/enquiries/{enquiry_id}/responses",
        json={"message": message, **extra},
        headers=headers,
    )


# =============================================================================
# PUBLIC SUBMISSION
# =============================================================================


class TestSubmission:

    def test_public_create(self, client):
        resp = client.post("/api/enquiries", json=dict(CONTACT_FORM, productInterested="MCC Panel"))

        assert resp.status_code == 201
        assert resp.json["message"] == "Enquiry submitted successfully. We will get back to you soon!"
        data = resp.json["data"]
        assert data["status"] == "new"
        assert data["priority"] == "medium"
        assert data["email"] == "asha@example.com"
        assert data["productInterested"] == "MCC Panel"
        assert data["responses"] == []

    def test_client_cannot_choose_status(self, client):
        resp = client.post("/api/enquiries", json=dict(CONTACT_FORM, status="resolved"))
        assert resp.status_code == 400

    @pytest.mark.parametrize("missing", ["name", "email", "phone", "subject", "message"])
    def test_required_fields(self, client, missing):
        payload = {k: v for k, v in CONTACT_FORM.items() if k != missing}
        resp = client.post("/api/enquiries", json=payload)
        assert resp.status_code == 400
        assert resp.json["message"] == f"Missing required fields: {missing}"

    def test_invalid_email(self, client):
        resp = client.post("/api/enquiries", json=dict(CONTACT_FORM, email="not-an-email"))
        assert resp.status_code == 400
        assert resp.json["message"] == "Please enter a valid email"

    def test_creation_is_logged_as_event(self, submit):
        enquiry = submit()
        db.session.expire_all()
        event = db.session.query(DomainEvent).filter_by(event_type="enquiry.created").one()
        assert event.entity_id == enquiry["id"]
        assert event.summary == "New enquiry from Asha Rao"

    def test_notification_failure_does_not_fail_submission(self, app, client, monkeypatch):
        def boom(enquiry):
            raise notification_service.NotificationError("smtp down")

        monkeypatch.setattr(notification_service, "notify_new_enquiry", boom)

        resp = client.post("/api/enquiries", json=CONTACT_FORM)
        assert resp.status_code == 201


# =============================================================================
# RESPONSE SUB-LEDGER
# =============================================================================


class TestResponses:

    def test_first_response_promotes_new(self, client, admin_headers, submit):
        enquiry = submit()

        resp = respond(client, admin_headers, enquiry["id"])

        assert resp.status_code == 200
        data = resp.json["data"]
        assert data["status"] == "in-progress"
        assert data["responseCount"] == 1
        assert data["responses"][0]["message"] == "Thanks, quote attached"
        assert data["responses"][0]["respondedByName"] == "Test Admin"

    def test_later_responses_append_in_order(self, client, admin_headers, submit):
        enquiry = submit()
        for text in ("first", "second", "third"):
            respond(client, admin_headers, enquiry["id"], message=text)

        data = client.get(f"/api/enquiries/{enquiry['id']}", headers=admin_headers).json["data"]

        assert [r["message"] for r in data["responses"]] == ["first", "second", "third"]
        assert data["status"] == "in-progress"

    def test_response_never_reopens_resolved(self, client, admin_headers, submit):
        enquiry = submit()
        client.put(f"/api/enquiries/{enquiry['id']}", json={"status": "resolved"}, headers=admin_headers)

        resp = respond(client, admin_headers, enquiry["id"])

        assert resp.json["data"]["status"] == "resolved"

    def test_later_response_does_not_undo_manual_status(self, client, admin_headers, submit):
        enquiry = submit()
        respond(client, admin_headers, enquiry["id"])
        client.put(f"/api/enquiries/{enquiry['id']}", json={"status": "new"}, headers=admin_headers)

        resp = respond(client, admin_headers, enquiry["id"])

        assert resp.json["data"]["status"] == "new"

    @pytest.mark.parametrize("message", ["", "   ", None])
    def test_blank_message_rejected(self, client, admin_headers, submit, message):
        enquiry = submit()
        resp = respond(client, admin_headers, enquiry["id"], message=message)
        assert resp.status_code == 400
        assert resp.json["message"] == "Response message is required"

    def test_unknown_enquiry(self, client, admin_headers):
        assert respond(client, admin_headers, 999).status_code == 404

    def test_send_email_failure_keeps_response(self, client, admin_headers, submit, monkeypatch):
        enquiry = submit()
        calls = []

        def boom(e, message):
            calls.append(message)
            raise notification_service.NotificationError("smtp down")

        monkeypatch.setattr(notification_service, "send_enquiry_response", boom)

        resp = respond(client, admin_headers, enquiry["id"], sendEmail=True)

        assert resp.status_code == 200
        assert calls == ["Thanks, quote attached"]
        assert resp.json["data"]["responses"][0]["sendEmail"] is True

    def test_send_email_not_called_by_default(self, client, admin_headers, submit, monkeypatch):
        enquiry = submit()
        calls = []
        monkeypatch.setattr(notification_service, "send_enquiry_response", lambda e, m: calls.append(m))

        respond(client, admin_headers, enquiry["id"])

        assert calls == []

    @pytest.mark.parametrize("flag,expected_calls", [("false", 0), ("0", 0), (False, 0), ("true", 1), (True, 1)])
    def test_send_email_flag_is_parsed_strictly(self, client, admin_headers, submit, monkeypatch, flag, expected_calls):
        enquiry = submit()
        calls = []
        monkeypatch.setattr(notification_service, "send_enquiry_response", lambda e, m: calls.append(m))

        resp = respond(client, admin_headers, enquiry["id"], sendEmail=flag)

        assert resp.status_code == 200
        assert len(calls) == expected_calls
        assert resp.json["data"]["responses"][0]["sendEmail"] is bool(expected_calls)

    def test_send_email_rejects_non_boolean(self, client, admin_headers, submit):
        enquiry = submit()
        resp = respond(client, admin_headers, enquiry["id"], sendEmail="maybe")
        assert resp.status_code == 400
        assert resp.json["message"] == "sendEmail must be a boolean"

    def test_requires_auth(self, client, submit):
        enquiry = submit()
        resp = client.post(f"/api/enquiries/{enquiry['id']}/responses", json={"message": "hi"})
        assert resp.status_code == 401


# =============================================================================
# READ / STAR / UPDATE
# =============================================================================


class TestFlags:

    def test_fetch_marks_read(self, client, admin_headers, submit):
        enquiry = submit()
        assert enquiry["isRead"] is False

        data = client.get(f"/api/enquiries/{enquiry['id']}", headers=admin_headers).json["data"]
        assert data["isRead"] is True

        data = client.get(f"/api/enquiries/{enquiry['id']}", headers=admin_headers).json["data"]
        assert data["isRead"] is True

    def test_read_toggle_flips(self, client, admin_headers, submit):
        enquiry = submit()

        first = client.patch(f"/api/enquiries/{enquiry['id']}/read", headers=admin_headers).json
        second = client.patch(f"/api/enquiries/{enquiry['id']}/read", headers=admin_headers).json

        assert first["data"]["isRead"] is True
        assert first["message"] == "Enquiry marked as read"
        assert second["data"]["isRead"] is False

    def test_star_toggle_flips(self, client, admin_headers, submit):
        enquiry = submit()

        first = client.patch(f"/api/enquiries/{enquiry['id']}/star", headers=admin_headers).json
        second = client.patch(f"/api/enquiries/{enquiry['id']}/star", headers=admin_headers).json

        assert first["data"]["isStarred"] is True
        assert second["data"]["isStarred"] is False

    def test_update_validates_choices(self, client, admin_headers, submit):
        enquiry = submit()

        resp = client.put(f"/api/enquiries/{enquiry['id']}", json={"status": "closed"}, headers=admin_headers)
        assert resp.status_code == 400

        resp = client.put(f"/api/enquiries/{enquiry['id']}", json={"name": "Someone"}, headers=admin_headers)
        assert resp.status_code == 400

        resp = client.put(
            f"/api/enquiries/{enquiry['id']}",
            json={"priority": "urgent", "tags": ["VIP"]},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.json["data"]["priority"] == "urgent"
        assert resp.json["data"]["tags"] == ["VIP"]

    def test_delete_cascades_responses(self, client, admin_headers, submit):
        enquiry = submit()
        respond(client, admin_headers, enquiry["id"])

        resp = client.delete(f"/api/enquiries/{enquiry['id']}", headers=admin_headers)

        assert resp.status_code == 200
        assert client.get(f"/api/enquiries/{enquiry['id']}", headers=admin_headers).status_code == 404


# =============================================================================
# LIST / STATS / BULK / EXPORT
# =============================================================================


class TestListing:

    def test_list_requires_auth(self, client):
        assert client.get("/api/enquiries").status_code == 401

    def test_filters_and_histogram(self, client, admin_headers, submit):
        a = submit(name="Asha")
        submit(name="Ravi", subject="Maintenance visit")
        submit(name="Meena")
        respond(client, admin_headers, a["id"])

        resp = client.get("/api/enquiries", query_string={"status": "new"}, headers=admin_headers)

        assert {e["name"] for e in resp.json["data"]} == {"Ravi", "Meena"}
        assert resp.json["stats"] == {"total": 3, "new": 2, "inProgress": 1, "resolved": 0, "spam": 0}
        assert resp.json["pagination"]["total"] == 2

    def test_search(self, client, admin_headers, submit):
        submit(name="Asha")
        submit(name="Ravi", subject="Maintenance visit")

        resp = client.get("/api/enquiries", query_string={"search": "mainten"}, headers=admin_headers)

        assert [e["name"] for e in resp.json["data"]] == ["Ravi"]

    def test_default_limit_is_ten(self, client, admin_headers, submit):
        for i in range(12):
            submit(name=f"Person {i}")

        resp = client.get("/api/enquiries", headers=admin_headers)

        assert len(resp.json["data"]) == 10
        assert resp.json["pagination"]["pages"] == 2

    def test_stats(self, client, admin_headers, submit):
        submit()
        resp = client.get("/api/enquiries/stats", headers=admin_headers)
        assert resp.json["data"]["total"] == 1

    def test_bulk_update_and_delete(self, client, admin_headers, submit):
        ids = [submit(name=f"P{i}")["id"] for i in range(3)]

        resp = client.put(
            "/api/enquiries/bulk",
            json={"ids": ids[:2], "updates": {"status": "spam"}},
            headers=admin_headers,
        )
        assert resp.json["data"] == {"matchedCount": 2, "modifiedCount": 2}

        resp = client.post("/api/enquiries/bulk/delete", json={"ids": ids}, headers=admin_headers)
        assert resp.json["data"] == {"deletedCount": 3}
        db.session.expire_all()
        assert db.session.query(Enquiry).count() == 0

    def test_bulk_update_rejects_other_fields(self, client, admin_headers, submit):
        enquiry = submit()
        resp = client.put(
            "/api/enquiries/bulk",
            json={"ids": [enquiry["id"]], "updates": {"email": "x@y.z"}},
            headers=admin_headers,
        )
        assert resp.status_code == 400

    def test_export_csv(self, client, admin_headers, submit):
        submit()

        resp = client.get("/api/enquiries/export", headers=admin_headers)

        assert resp.status_code == 200
        assert resp.mimetype == "text/csv"
        assert "attachment" in resp.headers["Content-Disposition"]
        lines = resp.get_data(as_text=True).splitlines()
        assert lines[0] == "Name,Email,Phone,Company,Subject,Message,Status,Priority,Date"
        assert lines[1].startswith("Asha Rao,asha@example.com,9876543210,,Panel quote,")

    def test_export_json(self, client, admin_headers, submit):
        submit()
        resp = client.get("/api/enquiries/export", query_string={"format": "json"}, headers=admin_headers)
        assert resp.json["count"] == 1
        assert "responses" not in resp.json["data"][0]

    def test_export_unknown_format(self, client, admin_headers):
        resp = client.get("/api/enquiries/export", query_string={"format": "xml"}, headers=admin_headers)
        assert resp.status_code == 400
