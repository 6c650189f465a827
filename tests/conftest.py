"""
Shared pytest fixtures for the MétricaAgro workflow test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - auth_headers: X-User-ID header of the default test user
    - engine: WorkflowEngine bound to the default test user
    - project / car_project: projects with an initialized workflow
"""

import pytest

from metrica import create_app
from metrica.models import db as _db
from metrica.models.catalog import Registry, RuralProperty, Service
from metrica.models.workflow import Project
from metrica.services.checklists import MONTIVIDIU_CNS
from metrica.services.workflow_engine import WorkflowEngine

TEST_USER_ID = "user-test-1"
OTHER_USER_ID = "user-test-2"


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    return create_app("testing")


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture()
def auth_headers():
    return {"X-User-ID": TEST_USER_ID}


# ── Convenience fixtures ─────────────────────────────────────────────────


def make_project(service_name="Georreferenciamento de Imóvel Rural", cns=MONTIVIDIU_CNS,
                 user_id=TEST_USER_ID, **fields) -> Project:
    """Create and flush a Project with service, registry and property rows."""
    service = Service(name=service_name, user_id=user_id)
    registry = Registry(name="CRI", cns=cns, user_id=user_id)
    prop = RuralProperty(name="Fazenda Boa Vista", user_id=user_id)
    _db.session.add_all([service, registry, prop])
    _db.session.flush()

    project = Project(
        user_id=user_id,
        title=fields.pop("title", "Georreferenciamento Fazenda Boa Vista"),
        service_id=service.id,
        registry_id=registry.id,
        property_id=prop.id,
        **fields,
    )
    _db.session.add(project)
    _db.session.flush()
    return project


@pytest.fixture()
def engine():
    """WorkflowEngine acting as the default test user."""
    return WorkflowEngine(identity=lambda: TEST_USER_ID)


@pytest.fixture()
def project(engine):
    """Standard (12-step) project with an initialized workflow."""
    p = make_project()
    ok, msg = engine.initialize(p)
    assert ok, msg
    return p


@pytest.fixture()
def car_project(engine):
    """CAR (6-step) project with an initialized workflow."""
    p = make_project(service_name="CAR - Cadastro Ambiental Rural - SIGCAR GO")
    ok, msg = engine.initialize(p)
    assert ok, msg
    return p
