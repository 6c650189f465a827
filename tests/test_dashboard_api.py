"""Dashboard + health endpoint tests."""

from datetime import date, datetime, timedelta, timezone

from metrica.models import db
from metrica.models.workflow import COMPLETED
from tests.conftest import OTHER_USER_ID, make_project


class TestDashboard:
    def test_counts_and_urgent(self, client, auth_headers, engine):
        soon = make_project(title="Prazo curto", deadline=date.today() + timedelta(days=2))
        done = make_project(title="Concluído", deadline=date.today() - timedelta(days=30))
        make_project(title="Sem prazo")
        make_project(title="Outro dono", user_id=OTHER_USER_ID)
        engine.initialize(soon)
        engine.initialize(done)
        for step in done.steps:
            step.status = COMPLETED
        done.current_step_index = len(done.steps) - 1
        db.session.commit()

        res = client.get("/api/v1/dashboard", headers=auth_headers)

        assert res.status_code == 200
        data = res.get_json()
        assert data["total_projects"] == 3
        assert data["completed"] == 1
        assert data["in_progress"] == 2
        assert [u["title"] for u in data["urgent_deadlines"]] == ["Prazo curto"]
        assert data["urgent_deadlines"][0]["current_step"] == "Orçamento"

    def test_stagnant_documentation_step(self, client, auth_headers, project):
        old = datetime.now(timezone.utc) - timedelta(days=9)
        for step in project.steps[:4]:
            step.status = COMPLETED
        # explicit values win over onupdate, so the rows look idle
        for step in project.steps:
            step.updated_at = old
        project.current_step_index = 4
        project.updated_at = old
        db.session.commit()

        res = client.get("/api/v1/dashboard", headers=auth_headers)

        stagnant = res.get_json()["stagnant_steps"]
        assert len(stagnant) == 1
        assert stagnant[0]["current_step"] == "Documentação (Checklist)"
        assert stagnant[0]["idle_days"] >= 8

    def test_requires_identity(self, client):
        assert client.get("/api/v1/dashboard").status_code == 401


class TestHealth:
    def test_ready(self, client):
        res = client.get("/api/v1/health/ready")
        assert res.status_code == 200
        assert res.get_json() == {"status": "ok"}

    def test_live_checks_database(self, client):
        res = client.get("/api/v1/health/live")
        assert res.status_code == 200
        data = res.get_json()
        assert data["checks"]["database"]["status"] == "ok"

    def test_timing_headers(self, client):
        res = client.get("/api/v1/health/ready", headers={"X-Request-ID": "abc123"})
        assert res.headers["X-Request-ID"] == "abc123"
        assert "X-Request-Duration-Ms" in res.headers
