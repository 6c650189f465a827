"""Project service layer — project creation, numbering and deletion.

Transaction policy: public functions commit on success. The workflow engine
commits its own step set after the project row exists.

Provides:
- next_project_number: sequential NNN/YYYY per owner and year
- create_project: validate, number, persist and initialize the workflow
- delete_project: remove a project and (by cascade) its steps
"""
import logging
from datetime import date

import sqlalchemy as sa

from metrica.core.exceptions import ValidationError
from metrica.models import db
from metrica.models.audit import write_audit
from metrica.models.workflow import Project
from metrica.services.record_store import RecordStore

logger = logging.getLogger(__name__)


def next_project_number(user_id: str, year: int | None = None) -> str:
    """Next free number for the owner in ``year``, e.g. ``"007/2026"``."""
    year = year or date.today().year
    suffix = f"/{year}"
    numbers = db.session.execute(
        sa.select(Project.project_number).where(
            Project.user_id == user_id,
            Project.project_number.like(f"%{suffix}"),
        )
    ).scalars()

    highest = 0
    for number in numbers:
        head = number[: -len(suffix)]
        if head.isdigit():
            highest = max(highest, int(head))
    return f"{highest + 1:03d}{suffix}"


def create_project(data: dict, user_id: str, engine) -> tuple[Project, bool, str]:
    """
    Create a project and build its workflow.

    Returns ``(project, workflow_ok, message)``. The project row is kept even
    when workflow initialization fails; reads repair it later.
    """
    title = (data.get("title") or "").strip()
    if not title:
        raise ValidationError("title is required", details={"title": "required"})

    store: RecordStore = engine.store
    store.check_references("projects", data, user_id)

    values = dict(data, title=title)
    if not values.get("project_number"):
        values["project_number"] = next_project_number(user_id)

    project = store.upsert("projects", values, user_id=user_id, commit=False)
    write_audit(
        entity_type="project",
        entity_id=str(project.id),
        action="create",
        project_id=project.id,
        actor_user_id=user_id,
        diff={"title": [None, title]},
    )
    store.commit()
    logger.info(
        "Project %s created (%s)", project.id, project.project_number,
        extra={"project_id": project.id, "user_id": user_id},
    )

    ok, msg = engine.initialize(project)
    return project, ok, msg


def delete_project(project_id, user_id: str, store: RecordStore | None = None) -> None:
    store = store or RecordStore()
    project = store.get("projects", project_id, user_id=user_id)
    write_audit(
        entity_type="project",
        entity_id=str(project.id),
        action="delete",
        actor_user_id=user_id,
        diff={"title": [project.title, None]},
    )
    store.delete("projects", project.id, user_id=user_id)
