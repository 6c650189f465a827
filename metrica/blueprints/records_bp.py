"""
Records Blueprint — generic CRUD over the record store.

Endpoints:
  GET    /records/<kind>               list the user's records (+ shared reference rows)
  POST   /records/<kind>               create
  GET    /records/<kind>/<id>
  PUT    /records/<kind>/<id>
  DELETE /records/<kind>/<id>
  GET    /workspace                    projects with steps + every reference table

Kinds: clients, properties, professionals, services, registries,
budget_templates, projects, credit_cards, credit_card_expenses,
financial_transactions.

Foreign keys must point at rows the caller can see, on create and on update.
Creating a project assigns its number and builds the workflow. Step rows are
owned by the workflow engine and are not writable here; neither is a
project's step pointer.
"""

import logging

from flask import Blueprint, jsonify, request

from metrica.blueprints import require_user
from metrica.core.exceptions import ValidationError
from metrica.models.audit import write_audit
from metrica.services import project_service
from metrica.services.record_store import ENTITY_MODELS, RecordStore
from metrica.services.workflow_engine import WorkflowEngine
from metrica.utils.errors import E, api_error

logger = logging.getLogger(__name__)

records_bp = Blueprint("records", __name__, url_prefix="/api/v1")

WRITABLE_KINDS = set(ENTITY_MODELS) - {"project_steps"}

# Maintained by the workflow engine only
_ENGINE_FIELDS = {"current_step_index"}


def _check_kind(kind):
    if kind not in WRITABLE_KINDS:
        return api_error(
            E.NOT_FOUND, f"Unknown record kind '{kind}'",
            details={"kinds": sorted(WRITABLE_KINDS)},
        )
    return None


def _payload():
    data = request.get_json(silent=True) or {}
    return {k: v for k, v in data.items() if k not in _ENGINE_FIELDS}


def _require_card(data):
    if data.get("card_id") is None:
        raise ValidationError("card_id is required", details={"card_id": "required"})


@records_bp.route("/workspace", methods=["GET"])
def workspace():
    uid, err = require_user()
    if err:
        return err
    return jsonify(RecordStore().load_workspace(uid))


@records_bp.route("/records/<kind>", methods=["GET"])
def list_records(kind):
    uid, err = require_user()
    if err:
        return err
    err = _check_kind(kind)
    if err:
        return err

    items = RecordStore().list(kind, user_id=uid)
    return jsonify({"items": [r.to_dict() for r in items], "total": len(items)})


@records_bp.route("/records/<kind>", methods=["POST"])
def create_record(kind):
    uid, err = require_user()
    if err:
        return err
    err = _check_kind(kind)
    if err:
        return err
    data = _payload()

    if kind == "projects":
        engine = WorkflowEngine()
        project, ok, msg = project_service.create_project(data, uid, engine)
        body = engine.project_view(project)
        body["workflow_message"] = msg
        return jsonify(body), 201

    store = RecordStore()
    if kind == "credit_card_expenses":
        _require_card(data)
    store.check_references(kind, data, uid)
    obj = store.upsert(kind, data, user_id=uid, commit=False)
    write_audit(
        entity_type="record", entity_id=f"{kind}:{obj.id}",
        action="create", actor_user_id=uid,
    )
    store.commit()
    logger.info("Created %s id=%s", kind, obj.id, extra={"user_id": uid})
    return jsonify(obj.to_dict()), 201


@records_bp.route("/records/<kind>/<int:record_id>", methods=["GET"])
def get_record(kind, record_id):
    uid, err = require_user()
    if err:
        return err
    err = _check_kind(kind)
    if err:
        return err
    return jsonify(RecordStore().get(kind, record_id, user_id=uid).to_dict())


@records_bp.route("/records/<kind>/<int:record_id>", methods=["PUT"])
def update_record(kind, record_id):
    uid, err = require_user()
    if err:
        return err
    err = _check_kind(kind)
    if err:
        return err
    data = _payload()

    store = RecordStore()
    if kind == "credit_card_expenses" and "card_id" in data:
        _require_card(data)
    store.check_references(kind, data, uid)
    obj = store.upsert(kind, data, record_id, user_id=uid, commit=False)
    write_audit(
        entity_type="record", entity_id=f"{kind}:{record_id}",
        action="update", actor_user_id=uid,
        diff={"fields": sorted(data)},
    )
    store.commit()
    return jsonify(obj.to_dict())


@records_bp.route("/records/<kind>/<int:record_id>", methods=["DELETE"])
def delete_record(kind, record_id):
    uid, err = require_user()
    if err:
        return err
    err = _check_kind(kind)
    if err:
        return err

    if kind == "projects":
        project_service.delete_project(record_id, uid)
    else:
        store = RecordStore()
        store.get(kind, record_id, user_id=uid)
        write_audit(
            entity_type="record", entity_id=f"{kind}:{record_id}",
            action="delete", actor_user_id=uid,
        )
        store.delete(kind, record_id, user_id=uid)
    return jsonify({"message": f"{kind} {record_id} deleted"}), 200
