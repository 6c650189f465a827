"""Urgency classification and dashboard summary tests."""

from datetime import date, datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from metrica.models.workflow import COMPLETED, CRI_REGISTRATION, DOCUMENTATION, SIGEF
from metrica.services.deadline_service import (
    CRITICAL,
    EXPIRED,
    NORMAL,
    WARNING,
    classify,
    dashboard_summary,
    urgency_sort_key,
)

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def _project(pid, deadline=None, completed=False, step_kind=SIGEF, idle_days=0, title=None):
    touched = NOW - timedelta(days=idle_days)
    step = SimpleNamespace(
        label=f"step-{step_kind}", step_kind=step_kind, updated_at=touched,
        status=COMPLETED if completed else "in_progress",
    )
    return SimpleNamespace(
        id=pid, title=title or f"Projeto {pid}", deadline=deadline,
        is_completed=completed, current_step=step, updated_at=touched,
    )


# ═════════════════════════════════════════════════════════════════════════════
# classify
# ═════════════════════════════════════════════════════════════════════════════


class TestClassify:
    @pytest.mark.parametrize("offset,expected", [
        (timedelta(days=-1), EXPIRED),
        (timedelta(seconds=-1), EXPIRED),
        (timedelta(days=2), CRITICAL),
        (timedelta(days=3) - timedelta(seconds=1), CRITICAL),
        (timedelta(days=3), WARNING),
        (timedelta(days=5), WARNING),
        (timedelta(days=7), NORMAL),
        (timedelta(days=10), NORMAL),
    ])
    def test_windows(self, offset, expected):
        assert classify(NOW + offset, False, NOW) == expected

    def test_completed_is_normal(self):
        assert classify(NOW - timedelta(days=30), True, NOW) == NORMAL

    def test_no_deadline_is_normal(self):
        assert classify(None, False, NOW) == NORMAL

    def test_date_deadline_is_midnight_utc(self):
        # 2026-03-12 00:00 is 1.5 days after NOW
        assert classify(date(2026, 3, 12), False, NOW) == CRITICAL
        # today's midnight has already passed
        assert classify(date(2026, 3, 10), False, NOW) == EXPIRED

    def test_naive_datetime_treated_as_utc(self):
        assert classify(datetime(2026, 3, 20), False, NOW) == NORMAL

    def test_sort_key_puts_expired_first(self):
        ordered = sorted([NORMAL, EXPIRED, WARNING, CRITICAL], key=urgency_sort_key)
        assert ordered == [EXPIRED, CRITICAL, WARNING, NORMAL]


# ═════════════════════════════════════════════════════════════════════════════
# dashboard_summary
# ═════════════════════════════════════════════════════════════════════════════


class TestDashboardSummary:
    def test_counters(self):
        projects = [
            _project(1),
            _project(2, completed=True),
            _project(3, deadline=date(2026, 5, 1)),
        ]
        summary = dashboard_summary(projects, now=NOW)
        assert summary["total_projects"] == 3
        assert summary["completed"] == 1
        assert summary["in_progress"] == 2

    def test_urgent_sorted_by_deadline_and_includes_expired(self):
        projects = [
            _project(1, deadline=date(2026, 3, 15)),
            _project(2, deadline=date(2026, 3, 1)),
            _project(3, deadline=date(2026, 4, 30)),
            _project(4, deadline=date(2026, 3, 1), completed=True),
        ]
        urgent = dashboard_summary(projects, now=NOW)["urgent_deadlines"]

        assert [u["project_id"] for u in urgent] == [2, 1]
        assert urgent[0]["urgency"] == EXPIRED
        assert urgent[0]["days_left"] < 0
        assert urgent[1]["urgency"] == WARNING
        assert urgent[1]["current_step"] == f"step-{SIGEF}"

    @pytest.mark.parametrize("kind,idle,expected", [
        (DOCUMENTATION, 6, True),
        (CRI_REGISTRATION, 10, True),
        (DOCUMENTATION, 3, False),
        (SIGEF, 30, False),
    ])
    def test_stagnant_steps(self, kind, idle, expected):
        summary = dashboard_summary([_project(1, step_kind=kind, idle_days=idle)], now=NOW)
        assert bool(summary["stagnant_steps"]) is expected

    def test_stagnation_uses_latest_touch(self):
        project = _project(1, step_kind=DOCUMENTATION, idle_days=20)
        project.current_step.updated_at = NOW - timedelta(days=1)
        assert dashboard_summary([project], now=NOW)["stagnant_steps"] == []

    def test_custom_windows(self):
        projects = [_project(1, deadline=date(2026, 3, 25), step_kind=DOCUMENTATION, idle_days=2)]
        summary = dashboard_summary(projects, now=NOW, urgent_days=30, stagnant_days=1)
        assert len(summary["urgent_deadlines"]) == 1
        assert summary["stagnant_steps"][0]["idle_days"] == 2

    def test_empty(self):
        assert dashboard_summary([], now=NOW) == {
            "total_projects": 0,
            "completed": 0,
            "in_progress": 0,
            "urgent_deadlines": [],
            "stagnant_steps": [],
        }
