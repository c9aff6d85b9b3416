"""
Tests for /api/admin/users and the allowlist gate across every admin resource.
"""
import pytest
from sqlalchemy import func, select

from msarchive.auth import create_access_token
from msarchive.config_loader import sync_admins_to_db
from msarchive.models import AdminAllowlistEntry, AuditLogEntry, Incident, Legislation

URL = "/api/admin/users"

ADMIN_ENDPOINTS = [
    "/api/admin/incidents",
    "/api/admin/legislation",
    "/api/admin/suspects",
    "/api/admin/weapons",
    "/api/admin/corrections",
    "/api/admin/users",
    "/api/admin/audit",
]


def _emails(db):
    db.expire_all()
    return set(db.execute(select(AdminAllowlistEntry.email)).scalars())


class TestAllowlistGate:
    """A caller not on the allowlist is refused by every admin resource."""

    @pytest.mark.parametrize("path", ADMIN_ENDPOINTS)
    @pytest.mark.parametrize("method", ["GET", "POST", "PUT", "DELETE"])
    def test_refused_without_mutation(self, client, db, admin_email, make_incident, make_legislation, path, method):
        incident_id = make_incident()
        make_legislation()
        db.expire_all()
        audit_rows_before = db.execute(select(func.count(AuditLogEntry.id))).scalar_one()

        headers = {"Authorization": f"Bearer {create_access_token('outsider@example.org')}"}
        body = {"id": incident_id, "action": "add", "email": "outsider@example.org", "status": "accepted"}
        response = client.request(method, path, json=body if method != "GET" else None, headers=headers)

        assert response.status_code in (401, 405)
        if response.status_code == 401:
            assert response.json() == {"data": None, "error": "unauthorized"}

        db.expire_all()
        assert db.execute(select(func.count(AuditLogEntry.id))).scalar_one() == audit_rows_before
        assert db.execute(select(func.count(Incident.id))).scalar_one() == 1
        assert db.execute(select(func.count(Legislation.id))).scalar_one() == 1
        assert _emails(db) == {admin_email}


class TestAllowlistManagement:
    """Test add/remove/list."""

    def test_add_and_list(self, client, db, admin_headers, admin_email):
        response = client.post(URL, json={"action": "add", "email": "New.Editor@Example.org"}, headers=admin_headers)
        assert response.status_code == 200
        assert _emails(db) == {admin_email, "new.editor@example.org"}

        entries = client.get(URL, headers=admin_headers).json()["data"]
        added = next(e for e in entries if e["email"] == "new.editor@example.org")
        assert added["added_by"] == admin_email

    def test_new_admin_can_act(self, client, admin_headers):
        client.post(URL, json={"action": "add", "email": "second@example.org"}, headers=admin_headers)
        headers = {"Authorization": f"Bearer {create_access_token('second@example.org')}"}
        assert client.get("/api/admin/incidents", headers=headers).status_code == 200

    def test_duplicate_add_is_store_error(self, client, admin_headers):
        client.post(URL, json={"action": "add", "email": "dup@example.org"}, headers=admin_headers)
        response = client.post(URL, json={"action": "add", "email": "dup@example.org"}, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["data"] is None

    def test_remove(self, client, db, admin_headers, admin_email):
        client.post(URL, json={"action": "add", "email": "temp@example.org"}, headers=admin_headers)
        response = client.post(URL, json={"action": "remove", "email": "temp@example.org"}, headers=admin_headers)
        assert response.status_code == 200
        assert _emails(db) == {admin_email}

    def test_unknown_action(self, client, admin_headers):
        response = client.post(URL, json={"action": "promote", "email": "x@example.org"}, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_action"

    def test_invalid_email(self, client, admin_headers):
        response = client.post(URL, json={"action": "add", "email": "not-an-email"}, headers=admin_headers)
        assert response.status_code == 400


class TestSelfRemoval:
    """Removing one's own entry is allowed by default and can be switched off."""

    def test_self_removal_not_blocked_by_default(self, client, db, admin_headers, admin_email):
        response = client.post(URL, json={"action": "remove", "email": admin_email}, headers=admin_headers)
        assert response.status_code == 200
        assert _emails(db) == set()

        # The removed admin is locked out from then on
        assert client.get(URL, headers=admin_headers).status_code == 401

    def test_self_removal_blocked_when_configured(self, client, db, admin_headers, admin_email, use_settings):
        use_settings(allow_self_removal=False)
        response = client.post(URL, json={"action": "remove", "email": admin_email}, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["error"] == "cannot_remove_self"
        assert _emails(db) == {admin_email}


class TestBootstrapSync:
    """Bootstrap emails from the settings file are synced into the allowlist."""

    def test_sync_inserts_missing_only(self, db, admin_email):
        count = sync_admins_to_db(db, emails=[admin_email, "ops@example.org"])
        assert count == 1
        assert _emails(db) == {admin_email, "ops@example.org"}
        assert db.get(AdminAllowlistEntry, "ops@example.org").added_by == "config"
