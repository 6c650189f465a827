"""
MétricaAgro Workflow Service
Project workflow domain models.

Models:
    - Project:      one surveying engagement (client + property + service + registry)
    - ProjectStep:  one step instance of the project's workflow, owned by the project

Architecture:
    Project ──1:N──▶ ProjectStep   (ordered by position, delete-orphan cascade)

Lifecycle states:
    ProjectStep:  not_started → in_progress → waiting_approval → completed
                  waiting_approval → rejected → waiting_approval | completed
                  documentation / point_control go straight to completed
"""

from datetime import datetime, timezone

from metrica.models import db


# ── Constants ────────────────────────────────────────────────────────────────

NOT_STARTED = "not_started"
IN_PROGRESS = "in_progress"
PENDING = "pending"
WAITING_APPROVAL = "waiting_approval"
REJECTED = "rejected"
COMPLETED = "completed"

STEP_STATUSES = {
    NOT_STARTED, IN_PROGRESS, PENDING,
    WAITING_APPROVAL, REJECTED, COMPLETED,
}

BUDGET = "budget"
CONTRACT = "contract"
SERVICE_ORDER = "service_order"
ART_CREA = "art_crea"
DOCUMENTATION = "documentation"
SIGEF = "sigef"
CONFRONTANTS = "confrontants"
GEO_REPORT = "geo_report"
CARTORY_REQ = "cartory_req"
CRI_REGISTRATION = "cri_registration"
POINT_CONTROL = "point_control"
RECEIPT = "receipt"

STEP_KINDS = (
    BUDGET, CONTRACT, SERVICE_ORDER, ART_CREA, DOCUMENTATION, SIGEF,
    CONFRONTANTS, GEO_REPORT, CARTORY_REQ, CRI_REGISTRATION,
    POINT_CONTROL, RECEIPT,
)

# Completing these kinds does not go through an approver.
SELF_CERTIFYING_KINDS = {DOCUMENTATION, POINT_CONTROL}


# ── Lifecycle Transition Guards ──────────────────────────────────────────────

STEP_TRANSITIONS = {
    NOT_STARTED:      [IN_PROGRESS, WAITING_APPROVAL, COMPLETED],
    IN_PROGRESS:      [IN_PROGRESS, PENDING, WAITING_APPROVAL, COMPLETED],
    PENDING:          [IN_PROGRESS, WAITING_APPROVAL, COMPLETED],
    WAITING_APPROVAL: [COMPLETED, REJECTED],
    REJECTED:         [IN_PROGRESS, WAITING_APPROVAL, COMPLETED],
    COMPLETED:        [],
}


def validate_step_transition(old_status, new_status):
    """Return True if ProjectStep status transition is valid."""
    return new_status in STEP_TRANSITIONS.get(old_status, [])


# ═════════════════════════════════════════════════════════════════════════════
# 1. Project
# ═════════════════════════════════════════════════════════════════════════════


class Project(db.Model):
    """
    One surveying engagement.
    Owns its workflow steps exclusively; deleting a project deletes them.
    Number format: 001/2026 (per owner and year, assigned in the service layer).
    """

    __tablename__ = "projects"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.String(64), nullable=False, index=True,
        comment="Owner id issued by the identity provider",
    )
    client_id = db.Column(
        db.Integer, db.ForeignKey("clients.id", ondelete="SET NULL"), nullable=True,
    )
    property_id = db.Column(
        db.Integer, db.ForeignKey("rural_properties.id", ondelete="SET NULL"), nullable=True,
    )
    professional_id = db.Column(
        db.Integer, db.ForeignKey("professionals.id", ondelete="SET NULL"), nullable=True,
    )
    service_id = db.Column(
        db.Integer, db.ForeignKey("services.id", ondelete="SET NULL"), nullable=True,
    )
    registry_id = db.Column(
        db.Integer, db.ForeignKey("registries.id", ondelete="SET NULL"), nullable=True,
    )

    title = db.Column(db.String(200), nullable=False)
    project_number = db.Column(db.String(20), nullable=True)
    certification_number = db.Column(db.String(60), nullable=True)
    certification_date = db.Column(db.Date, nullable=True)
    art_number = db.Column(db.String(60), nullable=True)

    current_step_index = db.Column(
        db.Integer, nullable=False, default=0,
        comment="0-based pointer into the ordered steps",
    )
    deadline = db.Column(db.Date, nullable=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.CheckConstraint("current_step_index >= 0", name="ck_project_step_index"),
    )

    # ── Relationships ────────────────────────────────────────────────────
    steps = db.relationship(
        "ProjectStep", backref="project",
        cascade="all, delete-orphan", order_by="ProjectStep.position",
    )
    client = db.relationship("Client")
    rural_property = db.relationship("RuralProperty")
    professional = db.relationship("Professional")
    service = db.relationship("Service")
    registry = db.relationship("Registry")

    @property
    def is_completed(self) -> bool:
        """A project is finished when its last step is completed."""
        return bool(self.steps) and self.steps[-1].status == COMPLETED

    @property
    def current_step(self):
        if not self.steps or self.current_step_index >= len(self.steps):
            return None
        return self.steps[self.current_step_index]

    def to_dict(self, include_steps=False) -> dict:
        result = {
            "id": self.id,
            "user_id": self.user_id,
            "client_id": self.client_id,
            "property_id": self.property_id,
            "professional_id": self.professional_id,
            "service_id": self.service_id,
            "registry_id": self.registry_id,
            "title": self.title,
            "project_number": self.project_number,
            "certification_number": self.certification_number,
            "certification_date": (
                self.certification_date.isoformat() if self.certification_date else None
            ),
            "art_number": self.art_number,
            "current_step_index": self.current_step_index,
            "deadline": self.deadline.isoformat() if self.deadline else None,
            "is_completed": self.is_completed,
            "step_count": len(self.steps),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_steps:
            result["steps"] = [s.to_dict() for s in self.steps]
        return result

    def __repr__(self) -> str:
        return f"<Project {self.id}: {self.title} [step {self.current_step_index}]>"


# ═════════════════════════════════════════════════════════════════════════════
# 2. ProjectStep
# ═════════════════════════════════════════════════════════════════════════════


class ProjectStep(db.Model):
    """
    One workflow step of a project, created in bulk from a template.
    ``notes`` holds a kind-dependent payload (see services/step_payloads.py).
    """

    __tablename__ = "project_steps"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    user_id = db.Column(db.String(64), nullable=False)

    position = db.Column(db.Integer, nullable=False, comment="0-based order in the template")
    step_kind = db.Column(
        db.String(30), nullable=False,
        comment="budget | contract | ... | receipt",
    )
    label = db.Column(db.String(200), nullable=False)
    status = db.Column(db.String(30), nullable=False, default=NOT_STARTED)
    notes = db.Column(db.Text, nullable=True)
    has_document = db.Column(db.Boolean, nullable=False, default=False)
    document_number = db.Column(db.String(60), nullable=True)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.UniqueConstraint("project_id", "position", name="uq_project_step_position"),
        db.CheckConstraint(
            "status IN ('not_started','in_progress','pending',"
            "'waiting_approval','rejected','completed')",
            name="ck_project_step_status",
        ),
    )

    @property
    def is_last(self) -> bool:
        return self.project is not None and self.position == len(self.project.steps) - 1

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "position": self.position,
            "step_kind": self.step_kind,
            "label": self.label,
            "status": self.status,
            "notes": self.notes,
            "has_document": self.has_document,
            "document_number": self.document_number,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<ProjectStep {self.id}: {self.step_kind} [{self.status}]>"
