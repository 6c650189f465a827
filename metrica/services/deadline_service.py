"""
Deadline / urgency classification and the dashboard summary built on it.

    classify(deadline, is_completed, now) → "normal" | "warning" | "critical" | "expired"

        completed or no deadline   normal
        deadline already passed    expired
        less than 3 days left      critical
        less than 7 days left      warning
        otherwise                  normal

Deadlines are calendar dates; they are compared as midnight UTC of that day.
"""

import logging
from datetime import date, datetime, time, timedelta, timezone

from metrica.models.workflow import CRI_REGISTRATION, DOCUMENTATION

logger = logging.getLogger(__name__)

NORMAL = "normal"
WARNING = "warning"
CRITICAL = "critical"
EXPIRED = "expired"

CRITICAL_WINDOW = timedelta(days=3)
WARNING_WINDOW = timedelta(days=7)

URGENCY_SEVERITY = {
    NORMAL: 0,
    WARNING: 1,
    CRITICAL: 2,
    EXPIRED: 3,
}

# Current steps that stall a project when left idle.
STAGNATION_PRONE_KINDS = {DOCUMENTATION, CRI_REGISTRATION}


def _as_utc(value) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    raise TypeError(f"Expected date or datetime, got {type(value).__name__}")


def classify(deadline, is_completed: bool, now=None) -> str:
    """Urgency class of a deadline relative to ``now``. Pure."""
    if is_completed or deadline is None:
        return NORMAL
    now = _as_utc(now) or datetime.now(timezone.utc)
    diff = _as_utc(deadline) - now
    if diff < timedelta(0):
        return EXPIRED
    if diff < CRITICAL_WINDOW:
        return CRITICAL
    if diff < WARNING_WINDOW:
        return WARNING
    return NORMAL


def urgency_sort_key(urgency: str) -> int:
    """Sort key putting the most severe class first."""
    return -URGENCY_SEVERITY.get(urgency, 0)


def classify_project(project, now=None) -> str:
    return classify(project.deadline, project.is_completed, now)


def last_activity(project) -> datetime | None:
    """Latest update on the project row or its current step."""
    stamps = [_as_utc(project.updated_at)]
    step = project.current_step
    if step is not None:
        stamps.append(_as_utc(step.updated_at))
    stamps = [s for s in stamps if s is not None]
    return max(stamps) if stamps else None


def dashboard_summary(projects, now=None, urgent_days: int = 7, stagnant_days: int = 5) -> dict:
    """
    Counters and attention lists for the dashboard.

    A project with no steps counts as in progress. Urgent deadlines include
    already expired ones, sorted by deadline.
    """
    now = _as_utc(now) or datetime.now(timezone.utc)
    urgent_window = timedelta(days=urgent_days)
    stagnant_window = timedelta(days=stagnant_days)

    completed = 0
    urgent, stagnant = [], []
    for project in projects:
        if project.is_completed:
            completed += 1
            continue

        current = project.current_step
        current_label = current.label if current is not None else None

        if project.deadline is not None:
            diff = _as_utc(project.deadline) - now
            if diff < urgent_window:
                urgent.append({
                    "project_id": project.id,
                    "title": project.title,
                    "deadline": project.deadline.isoformat(),
                    "days_left": diff.days,
                    "urgency": classify(project.deadline, False, now),
                    "current_step": current_label,
                })

        if current is not None and current.step_kind in STAGNATION_PRONE_KINDS:
            idle_since = last_activity(project)
            if idle_since is not None and now - idle_since > stagnant_window:
                stagnant.append({
                    "project_id": project.id,
                    "title": project.title,
                    "current_step": current_label,
                    "idle_days": (now - idle_since).days,
                })

    urgent.sort(key=lambda item: item["deadline"])
    total = len(projects)
    logger.debug("Dashboard: %d projects, %d urgent, %d stagnant", total, len(urgent), len(stagnant))
    return {
        "total_projects": total,
        "completed": completed,
        "in_progress": total - completed,
        "urgent_deadlines": urgent,
        "stagnant_steps": stagnant,
    }
