"""
HTTP contract tests: authentication, store scope, and how confirmations
and conflicts are rendered.
"""

import pytest

from conftest import auth_headers, make_token
from shiftkeeper.extensions import db
from shiftkeeper.models import Shift
from shiftkeeper.services import session_service, store_access_service, store_service


@pytest.fixture
def employee_headers(employee):
    return auth_headers(make_token(employee))


@pytest.fixture
def manager_headers(manager):
    return auth_headers(make_token(manager, kind="manager"))


def _clock_in(client, store, headers, **body):
    payload = {"store_id": store.id, "planned_start_at": "2026-03-10T09:03"}
    payload.update(body)
    return client.post("/api/shifts/clock-in", json=payload, headers=headers)


def test_health(client, db_session):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.get_json()["status"] == "healthy"


def test_requires_bearer_session(client, store):
    response = client.post("/api/shifts/clock-in", json={"store_id": store.id})
    assert response.status_code == 401

    response = client.get("/api/shifts/current", headers=auth_headers("not-a-token"))
    assert response.status_code == 401


def test_revoked_or_inactive_sessions_rejected(client, db_session, employee):
    revoked = make_token(employee)
    assert session_service.revoke_session(revoked) is True
    assert client.get("/api/shifts/current", headers=auth_headers(revoked)).status_code == 401

    token = make_token(employee)
    employee.is_active = False
    db_session.commit()
    assert client.get("/api/shifts/current", headers=auth_headers(token)).status_code == 401


def test_admin_routes_need_manager_session(client, employee_headers):
    response = client.get("/api/admin/overrides", headers=employee_headers)
    assert response.status_code == 403
    assert response.get_json()["error"] == "Manager access required"


def test_unscheduled_clock_in_is_409_until_forced(client, store, employee_headers):
    response = _clock_in(client, store, employee_headers)
    assert response.status_code == 409
    body = response.get_json()
    assert body["code"] == "UNSCHEDULED"
    assert body["requires_approval"] is True
    assert db.session.query(Shift).count() == 0

    response = _clock_in(client, store, employee_headers, force=True)
    assert response.status_code == 201
    assert response.get_json()["requires_override"] is True


def test_two_fifty_drawer_needs_confirm_and_manager(client, store, open_slot, employee_headers):
    response = _clock_in(client, store, employee_headers, start_drawer_cents=25000)
    assert response.status_code == 400
    body = response.get_json()
    assert body["code"] == "DRAWER_THRESHOLD"
    assert body["requires_confirm"] is True
    assert "OVER" in body["error"]
    assert db.session.query(Shift).count() == 0

    response = _clock_in(
        client, store, employee_headers,
        start_drawer_cents=25000, confirmed=True, notified_manager=True,
    )
    assert response.status_code == 201
    body = response.get_json()
    assert body["match"]["reason"] == "exact"
    assert body["drawer_count"]["out_of_threshold"] is True

    response = _clock_in(client, store, employee_headers)
    assert response.status_code == 409
    assert response.get_json()["code"] == "ALREADY_ACTIVE"
    assert response.get_json()["shift_id"] == body["shift_id"]


def test_clock_in_by_qr_token(client, store, open_slot, employee_headers):
    response = client.post(
        "/api/shifts/clock-in",
        json={"qr_token": "qr-downtown", "planned_start_at": "2026-03-10T09:00"},
        headers=employee_headers,
    )
    assert response.status_code == 201

    response = client.post(
        "/api/shifts/clock-in",
        json={"qr_token": "unknown", "planned_start_at": "2026-03-10T09:00"},
        headers=employee_headers,
    )
    assert response.status_code == 404


def test_employee_cannot_clock_in_someone_else(client, store, closer, employee_headers):
    response = _clock_in(client, store, employee_headers, profile_id=closer.id, force=True)
    assert response.status_code == 403


def test_clock_window_violation(app, monkeypatch, client, store, open_slot, employee_headers):
    monkeypatch.setitem(app.config, "CLOCK_WINDOW_ENFORCEMENT", True)
    response = _clock_in(client, store, employee_headers, planned_start_at="2026-03-10T09:40")
    assert response.status_code == 400
    body = response.get_json()
    assert body["code"] == "CLOCK_WINDOW_VIOLATION"
    assert body["window_label"] == "Open window 8:55 AM-9:05 AM"


def test_current_shift_and_clock_out(client, store, open_slot, employee_headers):
    shift_id = _clock_in(client, store, employee_headers, start_drawer_cents=20000).get_json()["shift_id"]

    current = client.get("/api/shifts/current", headers=employee_headers).get_json()
    assert current["shift"]["id"] == shift_id
    assert [c["count_type"] for c in current["drawer_counts"]] == ["start"]

    response = client.post(
        f"/api/shifts/{shift_id}/clock-out",
        json={"end_at": "2026-03-10T17:00", "end_drawer_cents": 20000},
        headers=employee_headers,
    )
    assert response.status_code == 200
    assert response.get_json()["shift"]["ended_at"] == "2026-03-10T22:00:00Z"

    response = client.post(f"/api/shifts/{shift_id}/clock-out", json={}, headers=employee_headers)
    assert response.status_code == 409
    assert response.get_json()["code"] == "ALREADY_ENDED"

    current = client.get("/api/shifts/current", headers=employee_headers).get_json()
    assert current["shift"] is None


def test_override_approval_flow(client, store, employee_headers, manager_headers):
    shift_id = _clock_in(client, store, employee_headers, force=True).get_json()["shift_id"]

    pending = client.get("/api/admin/overrides", headers=manager_headers).get_json()
    assert [s["id"] for s in pending["shifts"]] == [shift_id]

    response = client.post(f"/api/admin/overrides/{shift_id}/approve", json={}, headers=manager_headers)
    assert response.status_code == 400

    response = client.post(
        f"/api/admin/overrides/{shift_id}/approve",
        json={"note": "Covering a call-out"},
        headers=manager_headers,
    )
    assert response.status_code == 200
    assert response.get_json()["shift"]["requires_override"] is False

    # Approving again is a no-op success
    response = client.post(f"/api/admin/overrides/{shift_id}/approve", json={}, headers=manager_headers)
    assert response.status_code == 200
    assert client.get("/api/admin/overrides", headers=manager_headers).get_json()["count"] == 0


def test_manager_scope_is_per_store(client, store, other_store, employee_headers):
    shift_id = _clock_in(client, store, employee_headers, force=True).get_json()["shift_id"]

    outsider = store_access_service.create_profile("Other Manager")
    store_access_service.grant_manager_access(profile_id=outsider.id, store_id=other_store.id)
    headers = auth_headers(make_token(outsider, kind="manager"))

    response = client.post(
        f"/api/admin/overrides/{shift_id}/approve", json={"note": "ok"}, headers=headers,
    )
    assert response.status_code == 403
    response = client.get(f"/api/admin/shifts/open?store_id={store.id}", headers=headers)
    assert response.status_code == 403
    assert client.get("/api/admin/shifts/open", headers=headers).get_json()["count"] == 0


def test_manager_end_and_review(client, store, open_slot, employee_headers, manager_headers):
    shift_id = _clock_in(client, store, employee_headers).get_json()["shift_id"]

    response = client.post(
        f"/api/admin/shifts/{shift_id}/end", json={"end_at": "2026-03-10T16:00"}, headers=manager_headers,
    )
    assert response.status_code == 200
    assert response.get_json()["shift"]["lifecycle_state"] == "manual_closed"

    listed = client.get("/api/admin/shifts/manual-closed", headers=manager_headers).get_json()
    assert listed["count"] == 1

    response = client.post(
        f"/api/admin/shifts/{shift_id}/manual-close-review",
        json={"disposition": "approved", "note": "Confirmed with employee"},
        headers=manager_headers,
    )
    assert response.status_code == 200
    assert response.get_json()["shift"]["manual_close_review_status"] == "approved"


def test_sales_mismatch_renders_confirmation(client, store, closer, close_slot, open_slot, employee_headers):
    store_service.update_settings(store.id, sales_tracking_enabled=True)
    closer_headers = auth_headers(make_token(closer))

    open_id = _clock_in(client, store, employee_headers).get_json()["shift_id"]
    close_id = _clock_in(client, store, closer_headers, planned_start_at="2026-03-10T15:00").get_json()["shift_id"]

    response = client.post(
        "/api/sales/x-report", json={"shift_id": open_id, "x_report_cents": 50000}, headers=employee_headers,
    )
    assert response.status_code == 200

    body = {"shift_id": close_id, "z_report_cents": 120000, "prior_x_report_cents": 48000}
    response = client.post("/api/sales/close-checkpoint", json=body, headers=closer_headers)
    assert response.status_code == 400
    assert response.get_json()["code"] == "SALES_MISMATCH"
    assert response.get_json()["requires_confirm"] is True

    body["sales_confirmed"] = True
    response = client.post("/api/sales/close-checkpoint", json=body, headers=closer_headers)
    assert response.status_code == 200
    assert response.get_json()["out_of_balance"] is True

    summary = client.get(f"/api/sales/shifts/{close_id}/summary", headers=closer_headers).get_json()
    assert summary["sales_cents"] == 72000

    response = client.post(
        "/api/sales/x-report", json={"shift_id": close_id, "x_report_cents": 1.5}, headers=closer_headers,
    )
    assert response.status_code == 400


def test_closeout_submit_and_review(client, store, closer, close_slot, manager_headers):
    closer_headers = auth_headers(make_token(closer))
    shift_id = _clock_in(client, store, closer_headers, planned_start_at="2026-03-10T15:00").get_json()["shift_id"]

    context = client.get(f"/api/closeout/context?shift_id={shift_id}", headers=closer_headers).get_json()
    assert context["business_date"] == "2026-03-10"
    assert context["window"]["is_open"] is True

    response = client.post(
        "/api/closeout/save-draft",
        json={"shift_id": shift_id, "cash_sales_cents": 30000},
        headers=closer_headers,
    )
    assert response.status_code == 200
    closeout_id = response.get_json()["closeout_id"]

    submission = {
        "shift_id": shift_id,
        "denoms": {"100": 2, "20": 1, "1": 3},
        "drawer_count_cents": 20000,
        "photos": [{"photo_type": "deposit_required", "storage_path": "closeouts/slip.jpg"}],
    }
    response = client.post("/api/closeout/submit", json=submission, headers=closer_headers)
    assert response.status_code == 400
    body = response.get_json()
    assert body["code"] == "DEPOSIT_VARIANCE"
    assert body["status"] == "fail"
    assert body["variance_cents"] == -7700

    submission["variance_justification"] = "Paid produce vendor from the till"
    response = client.post("/api/closeout/submit", json=submission, headers=closer_headers)
    assert response.status_code == 200
    assert response.get_json()["status"] == "warn"
    assert response.get_json()["requires_manager_review"] is True

    queue = client.get("/api/admin/closeouts?needs_review=true", headers=manager_headers).get_json()
    assert [c["id"] for c in queue["closeouts"]] == [closeout_id]

    response = client.post(f"/api/admin/closeouts/{closeout_id}/review", json={"note": "ok"}, headers=manager_headers)
    assert response.status_code == 200
    assert response.get_json()["closeout"]["status"] == "locked"

    response = client.post("/api/closeout/save-draft", json={"shift_id": shift_id}, headers=closer_headers)
    assert response.status_code == 409
    assert response.get_json()["code"] == "READ_ONLY"


def test_backfill_route(client, store, manager_headers):
    payload = {"store_id": store.id, "business_date": "2026-02-01", "cash_sales_cents": 5000, "denoms": {"50": 1}}
    response = client.post("/api/admin/closeouts", json=payload, headers=manager_headers)
    assert response.status_code == 201
    assert response.get_json()["closeout"]["is_historical_backfill"] is True

    response = client.post("/api/admin/closeouts", json=payload, headers=manager_headers)
    assert response.status_code == 409
    assert response.get_json()["code"] == "DUPLICATE_CLOSEOUT"
