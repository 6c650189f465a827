"""
Record store — the read / write collaborator behind the workflow engine.

Generic record-level CRUD keyed by entity kind name:

    store.upsert("clients", {"name": "João"}, user_id=uid)
    store.upsert("project_steps", {"status": "completed"}, step.id, commit=False)
    store.delete("registries", 3, user_id=uid)
    store.replace_steps(project, rows)        # transactional delete + insert
    store.load_workspace(uid)                 # projects (+ steps) and reference tables

Ownership: records carry the identity-provider ``user_id``. Reads are scoped
to the owner; reference rows with a NULL owner are shared seed data.
"""

from __future__ import annotations

import json
import logging

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError

from metrica.core.exceptions import ConflictError, NotFoundError, ValidationError
from metrica.models import db
from metrica.models.catalog import (
    BudgetItemTemplate,
    Client,
    Professional,
    Registry,
    RuralProperty,
    Service,
)
from metrica.models.finance import CreditCard, CreditCardExpense, FinancialTransaction
from metrica.models.workflow import Project, ProjectStep
from metrica.utils.helpers import parse_date

logger = logging.getLogger(__name__)

ENTITY_MODELS = {
    "clients": Client,
    "properties": RuralProperty,
    "professionals": Professional,
    "services": Service,
    "registries": Registry,
    "budget_templates": BudgetItemTemplate,
    "projects": Project,
    "project_steps": ProjectStep,
    "credit_cards": CreditCard,
    "credit_card_expenses": CreditCardExpense,
    "financial_transactions": FinancialTransaction,
}

REFERENCE_KINDS = (
    "clients", "properties", "professionals",
    "services", "registries", "budget_templates",
)

# Never taken from client payloads
_PROTECTED_FIELDS = {"id", "user_id", "created_at", "updated_at"}

_DATE_FIELDS = {"deadline", "certification_date", "date", "due_date", "payment_date"}

# Foreign keys a user may only point at rows they can see
REFERENCE_FIELDS = {
    "projects": {
        "client_id": "clients",
        "property_id": "properties",
        "professional_id": "professionals",
        "service_id": "services",
        "registry_id": "registries",
    },
    "properties": {"client_id": "clients"},
    "credit_card_expenses": {"card_id": "credit_cards", "project_id": "projects"},
    "financial_transactions": {"project_id": "projects"},
}


class RecordStore:
    """SQLAlchemy-backed implementation of the generic record collaborator."""

    def __init__(self, session=None):
        self.session = session or db.session

    # ── Lookup ───────────────────────────────────────────────────────────

    def model_for(self, kind: str):
        model = ENTITY_MODELS.get(kind)
        if model is None:
            raise ValidationError(
                f"Unknown entity kind '{kind}'",
                details={"kind": f"must be one of: {', '.join(sorted(ENTITY_MODELS))}"},
            )
        return model

    def get(self, kind: str, record_id, *, user_id: str | None = None):
        """Fetch one record, hiding records owned by someone else."""
        model = self.model_for(kind)
        obj = self.session.get(model, record_id)
        if obj is None or not self._visible_to(obj, user_id):
            raise NotFoundError(resource=model.__name__, resource_id=record_id)
        return obj

    def list(self, kind: str, *, user_id: str | None = None) -> list:
        model = self.model_for(kind)
        stmt = sa.select(model)
        if user_id is not None:
            owner = model.__table__.c.user_id
            if owner.nullable:
                stmt = stmt.where(sa.or_(owner == user_id, owner.is_(None)))
            else:
                stmt = stmt.where(owner == user_id)
        stmt = stmt.order_by(model.id)
        return list(self.session.execute(stmt).scalars())

    @staticmethod
    def _visible_to(obj, user_id) -> bool:
        if user_id is None:
            return True
        owner = getattr(obj, "user_id", None)
        return owner is None or owner == user_id

    # ── Writes ───────────────────────────────────────────────────────────

    def _clean(self, model, data: dict) -> dict:
        columns = set(sa.inspect(model).columns.keys()) - _PROTECTED_FIELDS
        values = {}
        for key, val in (data or {}).items():
            if model is Service and key == "items":
                key, val = "items_json", json.dumps(list(val or []), ensure_ascii=False)
            if key not in columns:
                continue
            if key in _DATE_FIELDS:
                parsed = parse_date(val)
                if parsed is None and val not in (None, ""):
                    raise ValidationError(
                        f"Invalid date for '{key}': {val!r}",
                        details={key: "expected YYYY-MM-DD or DD/MM/YYYY"},
                    )
                val = parsed
            values[key] = val
        return values

    def check_references(self, kind: str, data: dict, user_id: str | None) -> None:
        """Raise NotFoundError when ``data`` references a row hidden from ``user_id``."""
        for field, ref_kind in REFERENCE_FIELDS.get(kind, {}).items():
            if (data or {}).get(field) is not None:
                self.get(ref_kind, data[field], user_id=user_id)

    def upsert(self, kind: str, data: dict, record_id=None, *,
               user_id: str | None = None, commit: bool = True):
        """
        Insert a record, or update the one identified by ``record_id``.
        Unknown and protected fields in ``data`` are ignored.
        """
        model = self.model_for(kind)
        values = self._clean(model, data)

        if record_id is not None:
            obj = self.get(kind, record_id, user_id=user_id)
            for key, val in values.items():
                setattr(obj, key, val)
        else:
            if "user_id" in model.__table__.c:
                values["user_id"] = user_id
            obj = model(**values)
            self.session.add(obj)

        try:
            self.session.flush()
            if commit:
                self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            logger.warning("Integrity error on %s upsert: %s", kind, exc.orig)
            raise ConflictError(resource=model.__name__, field="constraint", value=str(exc.orig)) from exc
        return obj

    def delete(self, kind: str, record_id, *, user_id: str | None = None, commit: bool = True):
        obj = self.get(kind, record_id, user_id=user_id)
        self.session.delete(obj)
        self.session.flush()
        if commit:
            self.session.commit()
        logger.info("Deleted %s id=%s", kind, record_id)

    def replace_steps(self, project: Project, rows: list[dict]) -> list[ProjectStep]:
        """
        Replace the project's whole step set: delete every existing step,
        insert ``rows`` and reset the pointer. Does not commit; the caller
        owns the transaction so a failure leaves the previous set intact.
        """
        project.steps.clear()
        self.session.flush()

        steps = [ProjectStep(**row) for row in rows]
        project.steps.extend(steps)
        project.current_step_index = 0
        self.session.flush()
        return steps

    def commit(self):
        self.session.commit()

    def rollback(self):
        self.session.rollback()

    # ── Reads ────────────────────────────────────────────────────────────

    def load_workspace(self, user_id: str) -> dict:
        """
        Full pull for one user: projects with their steps embedded plus
        every reference table. No caching — callers re-pull after writes.
        """
        from metrica.services.deadline_service import classify_project
        from metrica.services.workflow_engine import compute_progress

        projects = []
        for project in self.list("projects", user_id=user_id):
            item = project.to_dict(include_steps=True)
            item["progress"] = compute_progress(project)
            item["urgency"] = classify_project(project)
            projects.append(item)

        workspace = {"projects": projects}
        for kind in REFERENCE_KINDS:
            workspace[kind] = [r.to_dict() for r in self.list(kind, user_id=user_id)]
        return workspace
