"""
Tests for /api/admin/suspects and /api/admin/weapons: composite writes in
both write modes, reads and cascading deletes.
"""
from sqlalchemy import func, select

from msarchive.models import Suspect, SuspectPriorHistory, SuspectWeapon
from msarchive.suspects import BEST_EFFORT

URL = "/api/admin/suspects"
WEAPONS_URL = "/api/admin/weapons"


def _count(db, model):
    db.expire_all()
    return db.execute(select(func.count()).select_from(model)).scalar_one()


def _suspect_payload(incident_id, **overrides):
    payload = {
        "incident_id": incident_id,
        "name": "John Doe",
        "age": 33,
        "gender": "male",
        "race": "White",
        "status": "killed_by_police",
        "weapons": [
            {"type": "AR-15 style rifle", "legally_purchased": True, "source": "gun store"},
            {"type": "handgun", "legally_purchased": None},
        ],
        "history": {"criminal_record": False, "prior_mental_health_issues": True},
    }
    payload.update(overrides)
    return payload


class TestAtomicCompositeWrite:
    """Default mode: suspect, weapons and history are written together or not at all."""

    def test_create_with_children(self, client, make_incident, admin_headers):
        incident_id = make_incident()
        response = client.post(URL, json=_suspect_payload(incident_id), headers=admin_headers)
        assert response.status_code == 200

        suspect = response.json()["data"]
        assert suspect["incident_id"] == incident_id
        assert [w["type"] for w in suspect["weapons"]] == ["AR-15 style rifle", "handgun"]
        assert suspect["weapons"][1]["legally_purchased"] is None
        assert suspect["history"]["prior_mental_health_issues"] is True
        assert suspect["history"]["prior_domestic_violence"] is None

    def test_defaults_for_enumerations(self, client, make_incident, admin_headers):
        incident_id = make_incident()
        suspect = client.post(URL, json={"incident_id": incident_id}, headers=admin_headers).json()["data"]
        assert suspect["gender"] == "unknown"
        assert suspect["race"] == "Unknown"
        assert suspect["status"] == "unknown"
        assert suspect["weapons"] == []
        assert suspect["history"] is None

    def test_malformed_weapon_rolls_back_everything(self, client, db, make_incident, admin_headers):
        incident_id = make_incident()
        payload = _suspect_payload(incident_id, weapons=[{"type": "rifle"}, {"legally_purchased": "maybe"}])

        response = client.post(URL, json=payload, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["error"].startswith("weapons[1]")
        assert _count(db, Suspect) == 0
        assert _count(db, SuspectWeapon) == 0

    def test_malformed_history_rolls_back_everything(self, client, db, make_incident, admin_headers):
        incident_id = make_incident()
        payload = _suspect_payload(incident_id, history={"criminal_record": "maybe"})

        response = client.post(URL, json=payload, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["error"].startswith("history: criminal_record")
        assert _count(db, Suspect) == 0
        assert _count(db, SuspectWeapon) == 0
        assert _count(db, SuspectPriorHistory) == 0

    def test_incident_id_required(self, client, admin_headers):
        response = client.post(URL, json={"name": "x"}, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["error"] == "incident_id required"

    def test_unknown_incident_is_store_error(self, client, db, admin_headers):
        response = client.post(URL, json=_suspect_payload("no-such-incident"), headers=admin_headers)
        assert response.status_code == 400
        assert "FOREIGN KEY" in response.json()["error"]
        assert _count(db, Suspect) == 0

    def test_age_out_of_range(self, client, make_incident, admin_headers):
        response = client.post(URL, json=_suspect_payload(make_incident(), age=150), headers=admin_headers)
        assert response.status_code == 400

    def test_update_replaces_weapons_and_upserts_history(self, client, db, make_incident, admin_headers):
        incident_id = make_incident()
        suspect_id = client.post(URL, json=_suspect_payload(incident_id), headers=admin_headers).json()["data"]["id"]

        response = client.put(
            URL,
            json={
                "id": suspect_id,
                "name": "John Q. Doe",
                "status": "apprehended",
                "weapons": [{"type": "shotgun"}],
                "history": {"criminal_record": True},
            },
            headers=admin_headers,
        )
        assert response.status_code == 200
        suspect = response.json()["data"]
        assert suspect["name"] == "John Q. Doe"
        assert suspect["status"] == "apprehended"
        assert [w["type"] for w in suspect["weapons"]] == ["shotgun"]
        assert suspect["history"]["criminal_record"] is True
        assert _count(db, SuspectWeapon) == 1
        assert _count(db, SuspectPriorHistory) == 1

    def test_update_without_history_keeps_existing(self, client, make_incident, admin_headers):
        incident_id = make_incident()
        suspect_id = client.post(URL, json=_suspect_payload(incident_id), headers=admin_headers).json()["data"]["id"]

        suspect = client.put(URL, json={"id": suspect_id, "weapons": []}, headers=admin_headers).json()["data"]
        assert suspect["weapons"] == []
        assert suspect["history"]["prior_mental_health_issues"] is True

    def test_failed_update_leaves_suspect_untouched(self, client, make_incident, admin_headers):
        incident_id = make_incident()
        suspect_id = client.post(URL, json=_suspect_payload(incident_id), headers=admin_headers).json()["data"]["id"]

        response = client.put(
            URL, json={"id": suspect_id, "name": "Changed", "weapons": [{"type": ""}]}, headers=admin_headers
        )
        assert response.status_code == 400

        suspect = client.get(URL, params={"suspect_id": suspect_id}, headers=admin_headers).json()["data"]
        assert suspect["name"] == "John Doe"
        assert len(suspect["weapons"]) == 2

    def test_update_requires_id(self, client, admin_headers):
        response = client.put(URL, json={"name": "x"}, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["error"] == "missing_id"


class TestBestEffortCompositeWrite:
    """best_effort mode: children are written one by one, failures are skipped."""

    def test_malformed_second_weapon_is_skipped(self, client, db, make_incident, admin_headers, use_settings):
        use_settings(suspect_write_mode=BEST_EFFORT)
        incident_id = make_incident()
        payload = _suspect_payload(incident_id, weapons=[{"type": "handgun"}, {"type": 42, "legally_purchased": "x"}])

        response = client.post(URL, json=payload, headers=admin_headers)
        assert response.status_code == 200
        suspect_id = response.json()["data"]["id"]

        stored = client.get(URL, params={"suspect_id": suspect_id}, headers=admin_headers).json()["data"]
        assert stored["id"] == suspect_id
        assert [w["type"] for w in stored["weapons"]] == ["handgun"]
        assert _count(db, Suspect) == 1

    def test_malformed_history_is_skipped(self, client, db, make_incident, admin_headers, use_settings):
        use_settings(suspect_write_mode=BEST_EFFORT)
        incident_id = make_incident()
        payload = _suspect_payload(incident_id, weapons=[{"type": "rifle"}], history={"criminal_record": "maybe"})

        response = client.post(URL, json=payload, headers=admin_headers)
        assert response.status_code == 200
        suspect = response.json()["data"]
        assert [w["type"] for w in suspect["weapons"]] == ["rifle"]
        assert suspect["history"] is None
        assert _count(db, Suspect) == 1
        assert _count(db, SuspectWeapon) == 1
        assert _count(db, SuspectPriorHistory) == 0

    def test_update_replaces_weapons(self, client, make_incident, admin_headers, use_settings):
        use_settings(suspect_write_mode=BEST_EFFORT)
        incident_id = make_incident()
        suspect_id = client.post(URL, json=_suspect_payload(incident_id), headers=admin_headers).json()["data"]["id"]

        suspect = client.put(
            URL,
            json={"id": suspect_id, "weapons": [{"type": "shotgun"}, "not-an-object"], "history": {"criminal_record": True}},
            headers=admin_headers,
        ).json()["data"]
        assert [w["type"] for w in suspect["weapons"]] == ["shotgun"]
        assert suspect["history"]["criminal_record"] is True


class TestSuspectReadsAndDelete:
    """Test GET variants and cascading delete."""

    def test_get_requires_a_key(self, client, admin_headers):
        response = client.get(URL, headers=admin_headers)
        assert response.status_code == 400

    def test_get_unknown_suspect(self, client, admin_headers):
        response = client.get(URL, params={"suspect_id": "missing"}, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["error"] == "not_found"

    def test_list_by_incident(self, client, make_incident, admin_headers):
        incident_id = make_incident()
        other_incident = make_incident(city="Elsewhere")
        client.post(URL, json=_suspect_payload(incident_id, name="A"), headers=admin_headers)
        client.post(URL, json=_suspect_payload(incident_id, name="B"), headers=admin_headers)
        client.post(URL, json=_suspect_payload(other_incident, name="C"), headers=admin_headers)

        data = client.get(URL, params={"incident_id": incident_id}, headers=admin_headers).json()["data"]
        assert sorted(s["name"] for s in data) == ["A", "B"]
        assert all(len(s["weapons"]) == 2 and s["history"] for s in data)

    def test_delete_cascades_to_children(self, client, db, make_incident, admin_headers):
        incident_id = make_incident()
        suspect_id = client.post(URL, json=_suspect_payload(incident_id), headers=admin_headers).json()["data"]["id"]
        assert _count(db, SuspectWeapon) == 2

        response = client.request("DELETE", URL, json={"id": suspect_id}, headers=admin_headers)
        assert response.status_code == 200
        assert _count(db, Suspect) == 0
        assert _count(db, SuspectWeapon) == 0
        assert _count(db, SuspectPriorHistory) == 0

    def test_store_level_cascade_without_orm(self, client, db, make_incident, admin_headers):
        """The foreign keys themselves cascade, not only the ORM relationships."""
        incident_id = make_incident()
        client.post(URL, json=_suspect_payload(incident_id), headers=admin_headers)

        db.execute(Suspect.__table__.delete())
        db.commit()
        assert _count(db, SuspectWeapon) == 0
        assert _count(db, SuspectPriorHistory) == 0

    def test_deleting_incident_removes_suspects(self, client, db, make_incident, admin_headers):
        incident_id = make_incident()
        client.post(URL, json=_suspect_payload(incident_id), headers=admin_headers)

        client.request("DELETE", "/api/admin/incidents", json={"id": incident_id}, headers=admin_headers)
        assert _count(db, Suspect) == 0
        assert _count(db, SuspectWeapon) == 0


class TestWeaponsEndpoint:
    """Test /api/admin/weapons."""

    def _suspect(self, client, make_incident, admin_headers):
        incident_id = make_incident()
        return client.post(
            URL, json=_suspect_payload(incident_id, weapons=[]), headers=admin_headers
        ).json()["data"]["id"]

    def test_create_get_update_delete(self, client, db, make_incident, admin_headers):
        suspect_id = self._suspect(client, make_incident, admin_headers)

        created = client.post(WEAPONS_URL, json={"suspect_id": suspect_id, "type": "rifle"}, headers=admin_headers)
        assert created.status_code == 200
        weapon_id = created.json()["data"]["id"]

        updated = client.put(
            WEAPONS_URL, json={"id": weapon_id, "legally_purchased": False, "source": "private sale"}, headers=admin_headers
        ).json()["data"]
        assert updated["type"] == "rifle"
        assert updated["legally_purchased"] is False

        single = client.get(WEAPONS_URL, params={"weapon_id": weapon_id}, headers=admin_headers).json()["data"]
        assert single["source"] == "private sale"

        listed = client.get(WEAPONS_URL, params={"suspect_id": suspect_id}, headers=admin_headers).json()["data"]
        assert [w["id"] for w in listed] == [weapon_id]

        deleted = client.request("DELETE", WEAPONS_URL, json={"id": weapon_id}, headers=admin_headers)
        assert deleted.status_code == 200
        assert _count(db, SuspectWeapon) == 0

    def test_create_requires_suspect_and_type(self, client, admin_headers):
        response = client.post(WEAPONS_URL, json={"type": "rifle"}, headers=admin_headers)
        assert response.status_code == 400

    def test_get_requires_a_key(self, client, admin_headers):
        response = client.get(WEAPONS_URL, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["error"] == "suspect_id or weapon_id required"

    def test_update_and_delete_require_id(self, client, admin_headers):
        assert client.put(WEAPONS_URL, json={"type": "x"}, headers=admin_headers).json()["error"] == "weapon id required"
        assert client.request("DELETE", WEAPONS_URL, json={}, headers=admin_headers).json()["error"] == "weapon id required"

    def test_unknown_suspect_is_store_error(self, client, admin_headers):
        response = client.post(WEAPONS_URL, json={"suspect_id": "nope", "type": "rifle"}, headers=admin_headers)
        assert response.status_code == 400
        assert "FOREIGN KEY" in response.json()["error"]
