"""
Workflow engine — step-sequence state machine for surveying projects.

A project's workflow is a fixed, ordered list of steps built from a template
(standard or CAR). ``project.current_step_index`` points at the furthest step
the project has reached; steps after it are locked.

Operations (all return ``(success, message)``; a failed guard is a no-op):
    initialize(project, service)       destructive: replace the whole step set
    reconcile(project)                 re-initialize a partial/duplicated set
    request_approval(step, payload)    self-certifying kinds complete directly
    approve_step(step, payload)        waiting_approval → completed, advance;
                                       completing the RECIBO books the income
    reject_step(step, payload)         waiting_approval → rejected
    toggle_checklist_item(step, id)    documentation checklist flag flip
    save_notes(step, payload)          payload write, skipped when unchanged
    save_budget_items(step, items)     itemized budget write

The pointer advances by exactly one, only when the step being completed is
the current one and is not the last. The newly unlocked step moves to
in_progress. Status, payload and document number are written in the same
commit, together with the audit row and any booked income.

``WorkflowSession`` holds per-editor view state: the selected step and the
debounced autosave timer.
"""

import logging
import threading
from datetime import date, datetime, timezone

from sqlalchemy.exc import SQLAlchemyError

from metrica.models.audit import write_audit
from metrica.models.finance import INCOME, PAYMENT_PIX, TX_PAID
from metrica.models.workflow import (
    BUDGET,
    COMPLETED,
    DOCUMENTATION,
    IN_PROGRESS,
    NOT_STARTED,
    RECEIPT,
    REJECTED,
    SELF_CERTIFYING_KINDS,
    WAITING_APPROVAL,
    validate_step_transition,
)
from metrica.services.autosave import DebouncedAutosave
from metrica.services.checklists import checklist_for
from metrica.services.record_store import RecordStore
from metrica.services.step_payloads import (
    BudgetItem,
    BudgetPayload,
    PointControlPayload,
    TextPayload,
    coerce_payload,
    decode_payload,
    payload_type,
)
from metrica.services.workflow_templates import (
    CAR_TEMPLATE,
    STANDARD_TEMPLATE,
    build_step_rows,
    select_template,
)

logger = logging.getLogger(__name__)

DEFAULT_BUDGET_PRICE = 5000.0
RECEIPT_CATEGORY = "Serviços"

# Payload variants edited as free text and saved by the debounced autosave.
AUTOSAVE_PAYLOADS = (TextPayload, PointControlPayload)


# ── Derived views ────────────────────────────────────────────────────────────


def compute_progress(project) -> int:
    """Percentage of the workflow reached by the pointer (0-100)."""
    steps = project.steps
    if not steps:
        return 0
    if len(steps) == 1:
        return 100 if steps[0].status == COMPLETED else 0
    return round(project.current_step_index / (len(steps) - 1) * 100)


def default_budget_items(templates, property_name=None, service=None) -> list[BudgetItem]:
    """
    Starting items for a budget with nothing saved yet.

    Precedence: budget item templates (qty 1 each), then the service's item
    names (first one carries the base price), then a single generic line.
    """
    if templates:
        return [
            BudgetItem(description=t.description, qty=1, price=float(t.default_price or 0))
            for t in templates
        ]
    service_items = getattr(service, "items", None) or []
    if service_items:
        base = float(getattr(service, "base_price", None) or DEFAULT_BUDGET_PRICE)
        return [
            BudgetItem(description=str(name), qty=1, price=base if i == 0 else 0.0)
            for i, name in enumerate(service_items)
        ]
    return [BudgetItem(
        description=f"Serviços Técnicos - {property_name or 'Imóvel'}",
        qty=1,
        price=DEFAULT_BUDGET_PRICE,
    )]


def _is_complete_set(steps) -> bool:
    """True when ``steps`` is exactly one of the known templates, in order."""
    kinds = tuple(s.step_kind for s in steps)
    positions = [s.position for s in steps]
    if positions != list(range(len(steps))):
        return False
    return any(
        kinds == tuple(t.step_kind for t in template)
        for template in (STANDARD_TEMPLATE, CAR_TEMPLATE)
    )


def _default_identity():
    from metrica.auth import get_current_user_id

    return get_current_user_id()


# ═════════════════════════════════════════════════════════════════════════════
# Engine
# ═════════════════════════════════════════════════════════════════════════════


class WorkflowEngine:
    """Step transitions over the record store. Keeps no cache between calls."""

    def __init__(self, store: RecordStore | None = None, identity=None):
        self.store = store or RecordStore()
        self.identity = identity or _default_identity

    def _actor(self):
        try:
            return self.identity()
        except RuntimeError:
            # Called outside a request (autosave timer, CLI).
            return None

    # ── Initialize / reconcile ───────────────────────────────────────────

    def initialize(self, project, service=None) -> tuple[bool, str]:
        """
        Replace the project's steps with a fresh copy of its template.
        Runs in one transaction; on failure the previous step set is kept.
        """
        user_id = self._actor()
        if not user_id:
            logger.warning("Workflow init refused: no identity", extra={"project_id": project.id})
            return False, "User not identified; cannot initialize workflow"

        service = service if service is not None else project.service
        template = select_template(service)
        previous = len(project.steps)

        try:
            self.store.replace_steps(project, build_step_rows(template, user_id))
            write_audit(
                entity_type="project",
                entity_id=str(project.id),
                action="workflow.initialize",
                project_id=project.id,
                actor_user_id=user_id,
                diff={"steps": [previous, len(template)]},
            )
            self.store.commit()
        except SQLAlchemyError:
            self.store.rollback()
            logger.exception("Workflow init failed", extra={"project_id": project.id})
            return False, "Failed to initialize workflow"

        logger.info(
            "Workflow initialized with %d steps", len(template),
            extra={"project_id": project.id, "user_id": user_id},
        )
        return True, f"Workflow initialized with {len(template)} steps"

    def reconcile(self, project) -> bool:
        """
        Repair a project whose step set is empty, partial or duplicated by
        re-running initialize. Returns True when a repair happened.
        """
        if project.steps and _is_complete_set(project.steps):
            if project.current_step_index >= len(project.steps):
                project.current_step_index = len(project.steps) - 1
                self.store.commit()
                return True
            return False

        logger.warning(
            "Inconsistent step set (%d steps), re-initializing", len(project.steps),
            extra={"project_id": project.id},
        )
        ok, _ = self.initialize(project)
        return ok

    # ── Guards ───────────────────────────────────────────────────────────

    @staticmethod
    def _guard_mutable(step) -> str | None:
        project = step.project
        if step.status == COMPLETED:
            return "Step is already completed"
        if step.position > project.current_step_index:
            return "Step is locked until the previous steps are completed"
        return None

    def _has_checklist(self, step) -> bool:
        if step.step_kind != DOCUMENTATION:
            return False
        return bool(self.checklist_for_project(step.project))

    # ── Transitions ──────────────────────────────────────────────────────

    def _advance(self, step):
        project = step.project
        if step.position != project.current_step_index or step.is_last:
            return
        new_index = project.current_step_index + 1
        self.store.upsert("projects", {"current_step_index": new_index}, project.id, commit=False)
        nxt = project.steps[new_index]
        if nxt.status == NOT_STARTED:
            self.store.upsert("project_steps", {"status": IN_PROGRESS}, nxt.id, commit=False)

    def _book_receipt(self, step):
        """Income entry for the project's budget total, paid today by PIX."""
        project = step.project
        templates = self.store.list("budget_templates", user_id=project.user_id)
        total = sum(item.subtotal for item in self.budget_items_for(project, templates))
        subject = project.title or getattr(project.rural_property, "name", None) or "Projeto"
        client = getattr(project.client, "name", None)
        description = f"Recebimento - {subject}" + (f" ({client})" if client else "")
        today = date.today()
        self.store.upsert(
            "financial_transactions",
            {
                "project_id": project.id,
                "description": description,
                "amount": total,
                "type": INCOME,
                "category": RECEIPT_CATEGORY,
                "status": TX_PAID,
                "payment_method": PAYMENT_PIX,
                "due_date": today,
                "payment_date": today,
                "scope": "Empresa",
            },
            user_id=project.user_id, commit=False,
        )
        return total

    def _transition(self, step, new_status: str, action: str, payload=None,
                    document_number=None) -> tuple[bool, str]:
        old = step.status
        if not validate_step_transition(old, new_status):
            return False, f"Invalid transition: {old} → {new_status}"

        values = {"status": new_status}
        if payload is not None:
            values["notes"] = coerce_payload(
                step.step_kind, payload, self._has_checklist(step),
            ).encode()
        if document_number is not None:
            values["document_number"] = document_number
        if new_status == COMPLETED:
            values["completed_at"] = datetime.now(timezone.utc)

        try:
            self.store.upsert("project_steps", values, step.id, commit=False)
            diff = {"status": [old, new_status]}
            if new_status == COMPLETED:
                self._advance(step)
                if step.step_kind == RECEIPT:
                    diff["income"] = self._book_receipt(step)
            write_audit(
                entity_type="project_step",
                entity_id=str(step.id),
                action=action,
                project_id=step.project_id,
                actor_user_id=self._actor(),
                diff=diff,
            )
            self.store.commit()
        except SQLAlchemyError:
            self.store.rollback()
            logger.exception("Step transition failed", extra={"step_id": step.id})
            return False, "Failed to save step"

        logger.info(
            "Step %s: %s → %s", step.step_kind, old, new_status,
            extra={"project_id": step.project_id, "step_id": step.id},
        )
        return True, f"Step transitioned: {old} → {new_status}"

    def request_approval(self, step, payload=None, document_number=None) -> tuple[bool, str]:
        """
        Submit a step. Documentation and point control certify themselves
        and complete at once; every other kind waits for an approver.
        """
        reason = self._guard_mutable(step)
        if reason:
            return False, reason
        if step.step_kind in SELF_CERTIFYING_KINDS:
            return self._transition(step, COMPLETED, "step.complete", payload, document_number)
        return self._transition(
            step, WAITING_APPROVAL, "step.request_approval", payload, document_number,
        )

    def approve_step(self, step, payload=None, document_number=None) -> tuple[bool, str]:
        if step.status != WAITING_APPROVAL:
            return False, f"Step is not waiting for approval (status: {step.status})"
        return self._transition(step, COMPLETED, "step.approve", payload, document_number)

    def reject_step(self, step, payload=None) -> tuple[bool, str]:
        if step.status != WAITING_APPROVAL:
            return False, f"Step is not waiting for approval (status: {step.status})"
        return self._transition(step, REJECTED, "step.reject", payload)

    # ── Payload writes ───────────────────────────────────────────────────

    def toggle_checklist_item(self, step, item_id) -> tuple[bool, str]:
        if step.step_kind != DOCUMENTATION:
            return False, "Only the documentation step has a checklist"
        reason = self._guard_mutable(step)
        if reason:
            return False, reason
        if step.status != IN_PROGRESS and not validate_step_transition(step.status, IN_PROGRESS):
            return False, f"Checklist is read-only while {step.status}"

        checklist = self.checklist_for_project(step.project)
        if not checklist:
            return False, "No checklist for this registry; use notes instead"
        if str(item_id) not in {item["id"] for item in checklist}:
            return False, f"Unknown checklist item: {item_id}"

        payload = decode_payload(step.step_kind, step.notes).toggle(item_id)
        # An empty map is stored as NULL, the state of an untouched step
        try:
            self.store.upsert(
                "project_steps",
                {"status": IN_PROGRESS, "notes": payload.encode() if payload.items else None},
                step.id, commit=False,
            )
            self.store.commit()
        except SQLAlchemyError:
            self.store.rollback()
            logger.exception("Checklist toggle failed", extra={"step_id": step.id})
            return False, "Failed to save checklist"
        return True, f"Checklist item {item_id} {'checked' if payload.is_checked(item_id) else 'unchecked'}"

    def save_notes(self, step, payload, document_number=None) -> tuple[bool, str]:
        """Persist a step payload. Writes nothing when the value is unchanged."""
        reason = self._guard_mutable(step)
        if reason:
            return False, reason

        encoded = coerce_payload(step.step_kind, payload, self._has_checklist(step)).encode()
        values = {}
        if encoded != (step.notes or ""):
            values["notes"] = encoded
        if document_number is not None and document_number != step.document_number:
            values["document_number"] = document_number
        if not values:
            return True, "No changes"

        try:
            self.store.upsert("project_steps", values, step.id, commit=False)
            self.store.commit()
        except SQLAlchemyError:
            self.store.rollback()
            logger.exception("Saving step notes failed", extra={"step_id": step.id})
            return False, "Failed to save notes"
        logger.debug("Notes saved", extra={"step_id": step.id})
        return True, "Notes saved"

    def save_budget_items(self, step, items) -> tuple[bool, str]:
        if step.step_kind != BUDGET:
            return False, "Budget items belong to the budget step"
        if not isinstance(items, list):
            return False, "items must be a list"
        return self.save_notes(step, BudgetPayload.from_obj(items))

    # ── Read side ────────────────────────────────────────────────────────

    def progress(self, project) -> int:
        return compute_progress(project)

    def checklist_for_project(self, project) -> list[dict]:
        return checklist_for(project.service, project.registry)

    def budget_items_for(self, project, templates) -> list[BudgetItem]:
        """Saved budget items when present, otherwise the defaults."""
        budget = next((s for s in project.steps if s.step_kind == BUDGET), None)
        if budget is not None:
            saved = decode_payload(BUDGET, budget.notes)
            if saved.items:
                return saved.items
        prop = project.rural_property
        return default_budget_items(templates, getattr(prop, "name", None), project.service)

    def step_payload(self, step):
        return decode_payload(step.step_kind, step.notes, self._has_checklist(step))

    def step_document_payload(self, step) -> dict:
        """Everything a document renderer needs for one step."""
        project = step.project
        return {
            "project_id": project.id,
            "project_number": project.project_number,
            "step_kind": step.step_kind,
            "label": step.label,
            "has_document": step.has_document,
            "document_number": step.document_number,
            "payload": self.step_payload(step).to_dict(),
        }

    def step_view(self, step) -> dict:
        result = step.to_dict()
        result["payload"] = self.step_payload(step).to_dict()
        result["locked"] = step.position > step.project.current_step_index
        if step.step_kind == DOCUMENTATION:
            result["checklist"] = self.checklist_for_project(step.project)
        return result

    def project_view(self, project) -> dict:
        from metrica.services.deadline_service import classify_project

        result = project.to_dict()
        result["progress"] = compute_progress(project)
        result["urgency"] = classify_project(project)
        result["steps"] = [self.step_view(s) for s in project.steps]
        return result


# ═════════════════════════════════════════════════════════════════════════════
# Editing session
# ═════════════════════════════════════════════════════════════════════════════


class WorkflowSession:
    """
    Editing-session API for clients that embed the engine in-process (a
    server-rendered editor, a CLI). The HTTP routes are stateless and do not
    use it; there the client debounces and calls PUT /steps/<id>/notes.

    Holds one user's view of one project: the selected step and its pending
    autosave. Fired autosaves write to the step id captured at edit time. Pass
    ``app`` so the timer thread runs the write inside an application context.
    """

    def __init__(self, engine: WorkflowEngine, project_id, app=None,
                 autosave_delay: float = 1.5, timer_factory=threading.Timer):
        self.engine = engine
        self.project_id = project_id
        self.app = app
        self.selected_index = self.project.current_step_index
        self.autosave = DebouncedAutosave(autosave_delay, self._flush_notes, timer_factory)

    @property
    def project(self):
        return self.engine.store.get("projects", self.project_id)

    @property
    def selected_step(self):
        steps = self.project.steps
        if not steps or self.selected_index >= len(steps):
            return None
        return steps[self.selected_index]

    def select_step(self, index: int) -> bool:
        """Move the view pointer. Steps beyond the current one are not selectable."""
        if not 0 <= index <= self.project.current_step_index:
            return False
        self.autosave.cancel()
        self.selected_index = index
        return True

    def buffer_notes(self, value) -> bool:
        """Buffer an edit to the selected step's free-text notes."""
        step = self.selected_step
        if step is None:
            return False
        variant = payload_type(step.step_kind, self.engine._has_checklist(step))
        if not issubclass(variant, AUTOSAVE_PAYLOADS):
            return False
        self.autosave.schedule(step.id, value)
        return True

    def flush(self) -> bool:
        return self.autosave.flush_now()

    def close(self) -> None:
        self.autosave.cancel()

    def _flush_notes(self, step_id, value):
        if self.app is not None:
            with self.app.app_context():
                self._write(step_id, value)
        else:
            self._write(step_id, value)

    def _write(self, step_id, value):
        step = self.engine.store.get("project_steps", step_id)
        ok, msg = self.engine.save_notes(step, value)
        if not ok:
            logger.warning("Autosave skipped: %s", msg, extra={"step_id": step_id})
