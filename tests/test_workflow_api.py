"""
Workflow API tests — /api/v1/projects/<id>/workflow and /api/v1/steps/<id>/*.
"""

import json

from metrica.models import db
from metrica.models.workflow import COMPLETED, IN_PROGRESS, WAITING_APPROVAL
from tests.conftest import OTHER_USER_ID, make_project


def _step_url(step, action=""):
    return f"/api/v1/steps/{step.id}{action}"


def _move_to(project, index):
    for step in project.steps[:index]:
        step.status = COMPLETED
    project.steps[index].status = IN_PROGRESS
    project.current_step_index = index
    db.session.commit()
    return project.steps[index]


# ═════════════════════════════════════════════════════════════════════════════
# Project workflow
# ═════════════════════════════════════════════════════════════════════════════


class TestGetWorkflow:
    def test_returns_steps_and_progress(self, client, auth_headers, project):
        res = client.get(f"/api/v1/projects/{project.id}/workflow", headers=auth_headers)
        assert res.status_code == 200
        data = res.get_json()
        assert len(data["steps"]) == 12
        assert data["progress"] == 0
        assert data["reconciled"] is False
        assert data["steps"][0]["locked"] is False
        assert data["steps"][1]["locked"] is True
        assert data["steps"][4]["checklist"][0]["id"] == "1"

    def test_repairs_project_without_steps(self, client, auth_headers):
        project = make_project()
        db.session.commit()

        res = client.get(f"/api/v1/projects/{project.id}/workflow", headers=auth_headers)

        assert res.status_code == 200
        data = res.get_json()
        assert data["reconciled"] is True
        assert len(data["steps"]) == 12

    def test_other_users_project_is_404(self, client, project):
        res = client.get(
            f"/api/v1/projects/{project.id}/workflow",
            headers={"X-User-ID": OTHER_USER_ID},
        )
        assert res.status_code == 404

    def test_missing_identity_is_401(self, client, project):
        res = client.get(f"/api/v1/projects/{project.id}/workflow")
        assert res.status_code == 401
        assert res.get_json()["code"] == "ERR_UNAUTHENTICATED"

    def test_reinit_resets_progress(self, client, auth_headers, project):
        _move_to(project, 6)
        res = client.post(f"/api/v1/projects/{project.id}/workflow/init", headers=auth_headers)
        assert res.status_code == 200
        assert res.get_json()["project"]["current_step_index"] == 0

    def test_budget_defaults(self, client, auth_headers, project):
        res = client.get(f"/api/v1/projects/{project.id}/budget", headers=auth_headers)
        assert res.status_code == 200
        data = res.get_json()
        assert data["items"] == [{
            "description": "Serviços Técnicos - Fazenda Boa Vista", "qty": 1, "price": 5000.0,
        }]
        assert data["total"] == 5000.0


# ═════════════════════════════════════════════════════════════════════════════
# Step transitions
# ═════════════════════════════════════════════════════════════════════════════


class TestStepTransitions:
    def test_request_then_approve_advances(self, client, auth_headers, project):
        step = project.steps[0]
        res = client.post(
            _step_url(step, "/request-approval"), headers=auth_headers,
            json={"payload": [{"description": "GNSS", "qty": 1, "price": 3000}]},
        )
        assert res.status_code == 200
        assert res.get_json()["step"]["status"] == WAITING_APPROVAL

        res = client.post(_step_url(step, "/approve"), headers=auth_headers)
        assert res.status_code == 200
        data = res.get_json()
        assert data["step"]["status"] == COMPLETED
        assert data["current_step_index"] == 1
        assert data["progress"] == 9

    def test_document_number_saved_on_approve(self, client, auth_headers, project):
        step = project.steps[0]
        client.post(
            _step_url(step, "/request-approval"), headers=auth_headers,
            json={"document_number": "ORC-001/2026"},
        )

        res = client.post(
            _step_url(step, "/approve"), headers=auth_headers,
            json={"document_number": "ORC-001A/2026"},
        )

        assert res.status_code == 200
        assert res.get_json()["step"]["document_number"] == "ORC-001A/2026"
        assert res.get_json()["step"]["status"] == COMPLETED

    def test_approving_receipt_books_income(self, client, auth_headers, project):
        project.steps[0].notes = json.dumps([{"description": "Georref", "qty": 1, "price": 6500}])
        step = _move_to(project, 11)
        client.post(_step_url(step, "/request-approval"), headers=auth_headers)

        res = client.post(
            _step_url(step, "/approve"), headers=auth_headers,
            json={"document_number": "REC-004/2026"},
        )

        assert res.status_code == 200
        ledger = client.get("/api/v1/records/financial_transactions", headers=auth_headers).get_json()
        assert ledger["total"] == 1
        tx = ledger["items"][0]
        assert (tx["type"], tx["status"], tx["amount"]) == ("income", "paid", 6500)
        assert tx["project_id"] == project.id

    def test_approve_not_waiting_is_409(self, client, auth_headers, project):
        res = client.post(_step_url(project.steps[0], "/approve"), headers=auth_headers)
        assert res.status_code == 409
        assert res.get_json()["code"] == "ERR_CONFLICT_STATE"

    def test_reject(self, client, auth_headers, project):
        step = project.steps[0]
        client.post(_step_url(step, "/request-approval"), headers=auth_headers)
        res = client.post(_step_url(step, "/reject"), headers=auth_headers)
        assert res.status_code == 200
        assert res.get_json()["step"]["status"] == "rejected"

    def test_locked_step_is_409(self, client, auth_headers, project):
        res = client.post(_step_url(project.steps[5], "/request-approval"), headers=auth_headers)
        assert res.status_code == 409
        assert "locked" in res.get_json()["error"]

    def test_approve_requires_admin(self, client, auth_headers, project, monkeypatch):
        step = project.steps[0]
        client.post(_step_url(step, "/request-approval"), headers=auth_headers)

        monkeypatch.setenv("API_AUTH_ENABLED", "true")
        monkeypatch.setenv("API_KEYS", "ed-key:editor,adm-key:admin")

        res = client.post(
            _step_url(step, "/approve"),
            headers={**auth_headers, "X-API-Key": "ed-key"},
        )
        assert res.status_code == 403

        res = client.post(
            _step_url(step, "/approve"),
            headers={**auth_headers, "X-API-Key": "adm-key"},
        )
        assert res.status_code == 200

    def test_unknown_api_key_is_401(self, client, auth_headers, project, monkeypatch):
        monkeypatch.setenv("API_AUTH_ENABLED", "true")
        monkeypatch.setenv("API_KEYS", "adm-key:admin")
        res = client.get(_step_url(project.steps[0]), headers={**auth_headers, "X-API-Key": "nope"})
        assert res.status_code == 401

    def test_api_key_bound_user(self, client, project, monkeypatch):
        monkeypatch.setenv("API_AUTH_ENABLED", "true")
        monkeypatch.setenv("API_KEYS", f"svc-key:editor:{project.user_id}")
        res = client.get(_step_url(project.steps[0]), headers={"X-API-Key": "svc-key"})
        assert res.status_code == 200


# ═════════════════════════════════════════════════════════════════════════════
# Step payloads
# ═════════════════════════════════════════════════════════════════════════════


class TestStepPayloadEndpoints:
    def test_checklist_toggle(self, client, auth_headers, project):
        step = _move_to(project, 4)
        res = client.post(_step_url(step, "/checklist/3/toggle"), headers=auth_headers)
        assert res.status_code == 200
        assert res.get_json()["step"]["payload"]["items"] == {"3": True}

    def test_checklist_toggle_unknown_item(self, client, auth_headers, project):
        step = _move_to(project, 4)
        res = client.post(_step_url(step, "/checklist/77/toggle"), headers=auth_headers)
        assert res.status_code == 409

    def test_save_notes(self, client, auth_headers, project):
        step = _move_to(project, 3)
        res = client.put(
            _step_url(step, "/notes"), headers=auth_headers,
            json={"notes": "ART nº 1020304050", "document_number": "1020304050"},
        )
        assert res.status_code == 200
        data = res.get_json()
        assert data["message"] == "Notes saved"
        assert data["step"]["document_number"] == "1020304050"

    def test_save_notes_requires_field(self, client, auth_headers, project):
        res = client.put(_step_url(project.steps[0], "/notes"), headers=auth_headers, json={})
        assert res.status_code == 400

    def test_point_control_notes(self, client, auth_headers, project):
        step = _move_to(project, 10)
        res = client.put(
            _step_url(step, "/notes"), headers=auth_headers,
            json={"notes": {"m": "4", "p": "18", "v": "2"}},
        )
        assert res.status_code == 200
        assert json.loads(res.get_json()["step"]["notes"]) == {"m": "4", "p": "18", "v": "2"}

    def test_budget_items(self, client, auth_headers, project):
        res = client.put(
            _step_url(project.steps[0], "/budget-items"), headers=auth_headers,
            json={"items": [{"description": "Levantamento", "qty": 2, "price": 2500}]},
        )
        assert res.status_code == 200
        assert res.get_json()["step"]["payload"]["total"] == 5000.0

    def test_budget_items_must_be_list(self, client, auth_headers, project):
        res = client.put(
            _step_url(project.steps[0], "/budget-items"), headers=auth_headers,
            json={"items": {"description": "x"}},
        )
        assert res.status_code == 400

    def test_document_payload(self, client, auth_headers, project):
        res = client.get(_step_url(project.steps[1], "/document"), headers=auth_headers)
        assert res.status_code == 200
        data = res.get_json()
        assert data["step_kind"] == "contract"
        assert data["payload"] == {"type": "text", "text": ""}

    def test_step_of_other_user_is_404(self, client, project):
        res = client.get(_step_url(project.steps[0]), headers={"X-User-ID": OTHER_USER_ID})
        assert res.status_code == 404
