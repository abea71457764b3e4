"""
HTTP API tests for the participant, guidance and health blueprints.

Error mapping:
    404 unknown id · 400 missing actor/field · 422 invalid input
    409 invalid transition / stale write · 503 store outage (+ Retry-After)
"""

import pytest
from sqlalchemy.exc import OperationalError

from pathway.models import db

BASE = "/api/v1/participants"
BRIDGE = {"user_id": "bridge-1", "user_name": "Bea Bridge"}
LEADER = {"user_id": "leader-1", "user_name": "Lee Leader"}
MENTOR = {"user_id": "mentor-1", "user_name": "Max Mentor"}


# ═════════════════════════════════════════════════════════════════════════════
# Helpers
# ═════════════════════════════════════════════════════════════════════════════


def _create(client, **fields):
    payload = {"first_name": "Ada", "last_name": "Lovelace", **fields}
    res = client.post(BASE, json=payload)
    assert res.status_code == 201
    return res.get_json()["id"]


def _contact(client, pid, outcome="successful", actor=BRIDGE):
    return client.post(f"{BASE}/{pid}/contact", json={
        "outcome_type": outcome, "contact_method": "phone", "contact_notes": "Spoke briefly", **actor,
    })


def _activate(client, pid, guidance=False):
    assert _contact(client, pid).status_code == 200
    res = client.post(f"{BASE}/{pid}/assign-mentor", json={"mentor_id": "mentor-1", **LEADER})
    assert res.status_code == 200
    payload = {"contact_outcome": "successful", **MENTOR}
    if guidance:
        payload.update(guidance_needed=True, guidance_notes="Housing fell through")
    res = client.post(f"{BASE}/{pid}/initial-contact", json=payload)
    assert res.status_code == 200
    return res.get_json()


def _outage(*args, **kwargs):
    raise OperationalError("SELECT", {}, Exception("database is locked"))


@pytest.fixture(autouse=True)
def _engine(service):
    """Every API test runs against the fixed-clock engine."""
    return service


# ═════════════════════════════════════════════════════════════════════════════
# Participants
# ═════════════════════════════════════════════════════════════════════════════


class TestParticipantCrud:

    def test_create(self, client):
        res = client.post(BASE, json={"first_name": "Ada", "last_name": "Lovelace",
                                      "phone_number": "555-0100"})
        assert res.status_code == 201
        body = res.get_json()
        assert body["status"] == "pending_bridge"
        assert body["phoneNumber"] == "555-0100"
        assert body["graduationProgress"] == 0
        assert body["history"][0]["type"] == "form_submitted"

    def test_create_missing_name(self, client):
        res = client.post(BASE, json={"first_name": "Ada"})
        assert res.status_code == 422
        assert res.get_json()["code"] == "ERR_VALIDATION_INVALID"
        assert res.get_json()["details"] == {"last_name": "required"}

    def test_get_and_404(self, client):
        pid = _create(client)
        assert client.get(f"{BASE}/{pid}").get_json()["id"] == pid
        res = client.get(f"{BASE}/missing")
        assert res.status_code == 404
        assert res.get_json()["code"] == "ERR_NOT_FOUND"

    def test_list_filters(self, client):
        first = _create(client)
        second = _create(client, first_name="Grace")
        _contact(client, second)

        body = client.get(BASE).get_json()
        assert body["total"] == 2
        pending = client.get(f"{BASE}?status=pending_bridge").get_json()
        assert [p["id"] for p in pending["items"]] == [first]
        leader_queue = client.get(f"{BASE}?queue=mentor_leader").get_json()
        assert [p["id"] for p in leader_queue["items"]] == [second]
        assert client.get(f"{BASE}?queue=nobody").status_code == 422
        assert client.get(f"{BASE}?status=on_hold").status_code == 422

    def test_delete(self, client):
        pid = _create(client)
        assert client.delete(f"{BASE}/{pid}", json=LEADER).get_json() == {"deleted": True, "id": pid}
        assert client.get(f"{BASE}/{pid}").status_code == 404
        assert client.delete(f"{BASE}/{pid}", json=LEADER).status_code == 404

    def test_actor_required(self, client):
        pid = _create(client)
        res = client.post(f"{BASE}/{pid}/notes", json={"content": "hi"})
        assert res.status_code == 400
        assert res.get_json()["details"] == {"user_id": "required"}

    def test_actor_from_headers(self, client):
        pid = _create(client)
        res = client.post(f"{BASE}/{pid}/notes", json={"content": "hi"},
                          headers={"X-User-Id": "leader-1", "X-User-Name": "Lee Leader"})
        assert res.status_code == 201
        note = res.get_json()["notes"][0]
        assert note["createdBy"] == "leader-1"
        assert note["createdByName"] == "Lee Leader"

    def test_contact_info(self, client):
        pid = _create(client)
        res = client.patch(f"{BASE}/{pid}/contact-info", json={"email": "ada@example.org", **LEADER})
        assert res.status_code == 200
        assert res.get_json()["email"] == "ada@example.org"


# ═════════════════════════════════════════════════════════════════════════════
# Lifecycle
# ═════════════════════════════════════════════════════════════════════════════


class TestLifecycleRoutes:

    def test_contact_form(self, client):
        pid = _create(client)
        res = _contact(client, pid, outcome="attempted")
        assert res.status_code == 200
        body = res.get_json()
        assert body["status"] == "bridge_attempted"
        assert body["numberOfContactAttempts"] == 1

    def test_form_validation_422(self, client):
        pid = _create(client)
        res = client.post(f"{BASE}/{pid}/contact", json={"outcome_type": "successful",
                                                          "contact_method": "phone", **BRIDGE})
        assert res.status_code == 422
        assert res.get_json()["details"] == {"contact_notes": "required"}

    def test_invalid_transition_409(self, client):
        pid = _create(client)
        res = client.post(f"{BASE}/{pid}/weekly-update", json={"progress_update": "Good week", **MENTOR})
        assert res.status_code == 409
        body = res.get_json()
        assert body["code"] == "ERR_INVALID_TRANSITION"
        assert body["details"] == {"event": "weekly_update_recorded", "current_status": "pending_bridge"}
        assert client.get(f"{BASE}/{pid}").get_json()["history"][-1]["type"] == "form_submitted"

    def test_status_update(self, client):
        pid = _create(client)
        res = client.post(f"{BASE}/{pid}/status", json={"status": "bridge_contacted", **LEADER})
        assert res.status_code == 200
        assert res.get_json()["status"] == "bridge_contacted"
        assert client.post(f"{BASE}/{pid}/status", json=LEADER).status_code == 400

    def test_transitions(self, client):
        pid = _create(client)
        body = client.get(f"{BASE}/{pid}/transitions").get_json()
        assert body["status"] == "pending_bridge"
        assert "bridge_contact_successful" in body["events"]

    def test_full_path_to_graduation(self, client):
        pid = _create(client)
        assert _activate(client, pid)["status"] == "active_mentorship"

        res = client.post(f"{BASE}/{pid}/weekly-update", json={"progress_update": "Good week", **MENTOR})
        assert res.status_code == 200
        res = client.post(f"{BASE}/{pid}/monthly-check-in",
                          json={"completed_steps": ["step_1", "step_2"], **MENTOR})
        assert res.get_json()["graduationProgress"] == 20
        res = client.post(f"{BASE}/{pid}/graduation-steps", json={"step_id": "step_3", **MENTOR})
        assert res.get_json()["completedGraduationSteps"] == ["step_1", "step_2", "step_3"]

        early = client.post(f"{BASE}/{pid}/graduate", json=LEADER)
        assert early.status_code == 422
        assert early.get_json()["details"]["missing_steps"][0] == "step_4"

        rest = [f"step_{i}" for i in range(4, 11)]
        res = client.post(f"{BASE}/{pid}/monthly-check-in", json={"completed_steps": rest, **MENTOR})
        assert res.get_json()["graduationProgress"] == 100

        res = client.post(f"{BASE}/{pid}/graduate", json={"notes": "Well done", **LEADER})
        assert res.status_code == 200
        body = res.get_json()
        assert body["status"] == "graduated"
        assert body["graduationApproval"]["approvedBy"] == "leader-1"

    def test_unknown_graduation_step(self, client):
        pid = _create(client)
        _activate(client, pid)
        res = client.post(f"{BASE}/{pid}/graduation-steps", json={"step_id": "step_42", **MENTOR})
        assert res.status_code == 422

    def test_assignments(self, client):
        pid = _create(client)
        res = client.post(f"{BASE}/{pid}/assign-bridge", json={"assignee_id": "bridge-1", **LEADER})
        assert res.get_json()["assignedBridgeTeamMember"] == "bridge-1"
        res = client.post(f"{BASE}/{pid}/assign-leader", json={"assignee_id": "leader-2", **LEADER})
        assert res.get_json()["assignedMentorLeader"] == "leader-2"
        assert client.post(f"{BASE}/{pid}/assign-leader", json=LEADER).status_code == 400


# ═════════════════════════════════════════════════════════════════════════════
# Merge, bulk, reporting
# ═════════════════════════════════════════════════════════════════════════════


class TestMergeAndBulk:

    def test_merge(self, client):
        source = _create(client, phone_number="555-0100")
        target = _create(client, phone_number="555-0100")
        client.post(f"{BASE}/{source}/notes", json={"content": "from source", **LEADER})

        res = client.post(f"{BASE}/merge", json={"source_id": source, "target_id": target, **LEADER})
        assert res.status_code == 200
        body = res.get_json()
        assert [n["content"] for n in body["notes"]] == ["from source"]
        assert body["history"][-1]["metadata"] == {"sourceId": source}
        assert client.get(f"{BASE}/{source}").status_code == 404

    def test_merge_needs_both_ids(self, client):
        assert client.post(f"{BASE}/merge", json={"source_id": "a", **LEADER}).status_code == 400

    def test_bulk_move(self, client):
        ready = _create(client)
        _contact(client, ready, outcome="attempted")
        stuck = _create(client)
        _activate(client, stuck)

        res = client.post(f"{BASE}/bulk/move-to-mentorship",
                          json={"participant_ids": [ready, stuck, "missing"], **LEADER})
        assert res.status_code == 200
        body = res.get_json()
        assert body["updated"] == [ready]
        assert {s["id"] for s in body["skipped"]} == {stuck, "missing"}

    def test_bulk_needs_ids(self, client):
        res = client.post(f"{BASE}/bulk/assign-mentor", json={"participant_ids": [], **LEADER})
        assert res.status_code == 400

    def test_duplicates(self, client):
        pid = _create(client, phone_number=" 555-0100 ", email="Ada@Example.org")
        _create(client, first_name="Grace")
        body = client.get(f"{BASE}/duplicates?email=ada@example.org").get_json()
        assert [p["id"] for p in body["items"]] == [pid]
        assert client.get(f"{BASE}/duplicates").status_code == 400


class TestReporting:

    def test_dashboard_counts(self, client):
        _create(client)
        body = client.get(f"{BASE}/metrics").get_json()
        assert body["total"] == 1
        assert body["by_status"]["pending_bridge"] == 1

    def test_bridge_metrics_default_month(self, client):
        _create(client)
        body = client.get(f"{BASE}/metrics/bridge").get_json()
        assert body["month"] == 11 and body["year"] == 2025
        assert body["participantsReceived"] == 1
        assert body["formsByDayOfWeek"]["topDay"] == "Monday"

    def test_bridge_metrics_before_cutoff(self, client):
        body = client.get(f"{BASE}/metrics/bridge?month=10&year=2025").get_json()
        assert body["metrics"] is None

    def test_bridge_metrics_bad_month(self, client):
        assert client.get(f"{BASE}/metrics/bridge?month=13").status_code == 422

    @pytest.mark.parametrize("year", ["0", "-3", "10000"])
    def test_bridge_metrics_bad_year(self, client, year):
        res = client.get(f"{BASE}/metrics/bridge?month=11&year={year}")
        assert res.status_code == 422
        assert res.get_json()["details"] == {"year": "invalid"}

    def test_overdue(self, client, clock):
        pid = _create(client)
        _activate(client, pid)
        clock.advance(days=8)
        body = client.get(f"{BASE}/overdue").get_json()
        assert body["overdue_count"] == 1
        assert body["participants"][0]["participant_id"] == pid


# ═════════════════════════════════════════════════════════════════════════════
# Guidance tasks
# ═════════════════════════════════════════════════════════════════════════════


class TestGuidanceRoutes:

    def test_task_created_and_completed(self, client):
        pid = _create(client)
        _activate(client, pid, guidance=True)

        listing = client.get(f"/api/v1/guidance-tasks?participant_id={pid}").get_json()
        assert listing["total"] == 1
        task = listing["items"][0]
        assert task["status"] == "pending"
        assert task["guidanceNotes"] == "Housing fell through"

        res = client.post(f"/api/v1/guidance-tasks/{task['id']}/complete",
                          json={"response": "Call the shelter", **LEADER})
        assert res.status_code == 200
        assert res.get_json()["completedBy"] == "leader-1"

        again = client.post(f"/api/v1/guidance-tasks/{task['id']}/complete",
                            json={"response": "Again", **LEADER})
        assert again.status_code == 422
        assert client.get("/api/v1/guidance-tasks?status=pending").get_json()["total"] == 0

    def test_unknown_task(self, client):
        assert client.get("/api/v1/guidance-tasks/nope").status_code == 404

    def test_bad_status_filter(self, client):
        assert client.get("/api/v1/guidance-tasks?status=archived").status_code == 422


# ═════════════════════════════════════════════════════════════════════════════
# Infrastructure
# ═════════════════════════════════════════════════════════════════════════════


class TestInfrastructure:

    def test_store_outage_503(self, client, monkeypatch):
        pid = _create(client)
        monkeypatch.setattr(type(db.session), "execute", _outage)
        res = client.get(f"{BASE}/{pid}")
        assert res.status_code == 503
        assert res.headers["Retry-After"] == "5"
        assert res.get_json()["code"] == "ERR_PERSISTENCE_UNAVAILABLE"

    def test_request_id_header(self, client):
        res = client.get(BASE, headers={"X-Request-ID": "req-123"})
        assert res.headers["X-Request-ID"] == "req-123"
        assert "X-Request-Duration-Ms" in res.headers

    def test_health(self, client):
        assert client.get("/api/v1/health/ready").get_json() == {"status": "ok"}
        body = client.get("/api/v1/health/live").get_json()
        assert body["status"] == "healthy"
        assert body["checks"]["database"]["status"] == "ok"
        assert any(j["job_name"] == "due_date_sweep" for j in body["checks"]["scheduler"]["jobs"])

    def test_unknown_route(self, client):
        res = client.get("/api/v1/nowhere")
        assert res.status_code == 404
        assert res.get_json()["code"] == "ERR_NOT_FOUND"
