"""
Project Workflow Blueprint.

Endpoints:
  Workflow:   GET  /projects/<id>/workflow            (reconciles, then returns steps + progress)
              POST /projects/<id>/workflow/init       (destructive re-initialization)
              GET  /projects/<id>/budget              (saved or default budget items + total)
  Step:       GET  /steps/<id>
              GET  /steps/<id>/document               (payload for the document renderer)
              POST /steps/<id>/request-approval
              POST /steps/<id>/approve                (admin)
              POST /steps/<id>/reject                 (admin)
              POST /steps/<id>/checklist/<item_id>/toggle
              PUT  /steps/<id>/notes
              PUT  /steps/<id>/budget-items

Every route acts for the user in X-User-ID; records of other users are 404.
request-approval and approve accept {"payload", "document_number"}; approving
the RECIBO step books the budget total as paid income.
"""

import logging

from flask import Blueprint, jsonify, request

from metrica.auth import require_role
from metrica.blueprints import owned_or_404, require_user
from metrica.models.catalog import BudgetItemTemplate
from metrica.models.workflow import Project, ProjectStep
from metrica.services.step_payloads import BudgetPayload
from metrica.services.workflow_engine import WorkflowEngine
from metrica.utils.errors import E, api_error

logger = logging.getLogger(__name__)

workflow_bp = Blueprint("workflow", __name__, url_prefix="/api/v1")


def _engine() -> WorkflowEngine:
    return WorkflowEngine()


def _load_step(step_id):
    """Return ``(step, None)`` or ``(None, error response)`` for the current user."""
    uid, err = require_user()
    if err:
        return None, err
    return owned_or_404(ProjectStep, step_id, uid, "Step")


def _step_result(engine, step, ok, msg):
    if not ok:
        return api_error(E.CONFLICT_STATE, msg)
    project = step.project
    return jsonify({
        "message": msg,
        "step": engine.step_view(step),
        "current_step_index": project.current_step_index,
        "progress": engine.progress(project),
    })


# ═════════════════════════════════════════════════════════════════════════════
# Project workflow
# ═════════════════════════════════════════════════════════════════════════════


@workflow_bp.route("/projects/<int:project_id>/workflow", methods=["GET"])
def get_workflow(project_id):
    uid, err = require_user()
    if err:
        return err
    project, err = owned_or_404(Project, project_id, uid, "Project")
    if err:
        return err

    engine = _engine()
    repaired = engine.reconcile(project)
    result = engine.project_view(project)
    result["reconciled"] = repaired
    return jsonify(result)


@workflow_bp.route("/projects/<int:project_id>/workflow/init", methods=["POST"])
def init_workflow(project_id):
    """Rebuild the project's steps from its template. Discards all step progress."""
    uid, err = require_user()
    if err:
        return err
    project, err = owned_or_404(Project, project_id, uid, "Project")
    if err:
        return err

    engine = _engine()
    ok, msg = engine.initialize(project)
    if not ok:
        return api_error(E.BUSINESS_RULE, msg)
    return jsonify({"message": msg, "project": engine.project_view(project)})


@workflow_bp.route("/projects/<int:project_id>/budget", methods=["GET"])
def get_budget(project_id):
    uid, err = require_user()
    if err:
        return err
    project, err = owned_or_404(Project, project_id, uid, "Project")
    if err:
        return err

    templates = BudgetItemTemplate.query.filter(
        (BudgetItemTemplate.user_id == uid) | (BudgetItemTemplate.user_id.is_(None))
    ).order_by(BudgetItemTemplate.id).all()
    payload = BudgetPayload(items=_engine().budget_items_for(project, templates))
    return jsonify(payload.to_dict())


# ═════════════════════════════════════════════════════════════════════════════
# Steps
# ═════════════════════════════════════════════════════════════════════════════


@workflow_bp.route("/steps/<int:step_id>", methods=["GET"])
def get_step(step_id):
    step, err = _load_step(step_id)
    if err:
        return err
    return jsonify(_engine().step_view(step))


@workflow_bp.route("/steps/<int:step_id>/document", methods=["GET"])
def get_step_document(step_id):
    step, err = _load_step(step_id)
    if err:
        return err
    return jsonify(_engine().step_document_payload(step))


@workflow_bp.route("/steps/<int:step_id>/request-approval", methods=["POST"])
def request_approval(step_id):
    step, err = _load_step(step_id)
    if err:
        return err
    data = request.get_json(silent=True) or {}

    engine = _engine()
    ok, msg = engine.request_approval(step, data.get("payload"), data.get("document_number"))
    return _step_result(engine, step, ok, msg)


@workflow_bp.route("/steps/<int:step_id>/approve", methods=["POST"])
@require_role("admin")
def approve_step(step_id):
    step, err = _load_step(step_id)
    if err:
        return err
    data = request.get_json(silent=True) or {}

    engine = _engine()
    ok, msg = engine.approve_step(step, data.get("payload"), data.get("document_number"))
    return _step_result(engine, step, ok, msg)


@workflow_bp.route("/steps/<int:step_id>/reject", methods=["POST"])
@require_role("admin")
def reject_step(step_id):
    step, err = _load_step(step_id)
    if err:
        return err
    data = request.get_json(silent=True) or {}

    engine = _engine()
    ok, msg = engine.reject_step(step, data.get("payload"))
    return _step_result(engine, step, ok, msg)


@workflow_bp.route("/steps/<int:step_id>/checklist/<item_id>/toggle", methods=["POST"])
def toggle_checklist_item(step_id, item_id):
    step, err = _load_step(step_id)
    if err:
        return err

    engine = _engine()
    ok, msg = engine.toggle_checklist_item(step, item_id)
    return _step_result(engine, step, ok, msg)


@workflow_bp.route("/steps/<int:step_id>/notes", methods=["PUT"])
def save_notes(step_id):
    step, err = _load_step(step_id)
    if err:
        return err
    data = request.get_json(silent=True) or {}
    if "notes" not in data:
        return api_error(E.VALIDATION_REQUIRED, "notes is required")

    engine = _engine()
    ok, msg = engine.save_notes(step, data["notes"], data.get("document_number"))
    return _step_result(engine, step, ok, msg)


@workflow_bp.route("/steps/<int:step_id>/budget-items", methods=["PUT"])
def save_budget_items(step_id):
    step, err = _load_step(step_id)
    if err:
        return err
    data = request.get_json(silent=True) or {}
    items = data.get("items")
    if not isinstance(items, list):
        return api_error(E.VALIDATION_INVALID, "items must be a list")

    engine = _engine()
    ok, msg = engine.save_budget_items(step, items)
    return _step_result(engine, step, ok, msg)
