"""
Shared pytest fixtures for the workboard test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - admin, author, outsider: Users with ADMIN / SALES_REP / SALES_REP roles
    - project, other_project: Projects owned by the admin
    - auth_headers: factory returning Bearer headers for a user
    - make_stage / make_incident / make_request / make_task: row factories
"""

import pytest

from workboard import create_app
from workboard.models import db as _db
from workboard.models.auth import User
from workboard.models.project import Project
from workboard.models.workflow import Incident, ResourceRequest, Stage, Task
from workboard.services.jwt_service import generate_access_token


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


# ── Users & projects ─────────────────────────────────────────────────────


def _make_user(email, role, name):
    user = User(email=email, full_name=name, role=role)
    _db.session.add(user)
    _db.session.commit()
    return user


@pytest.fixture()
def admin():
    return _make_user("admin@example.com", "ADMIN", "Ada Admin")


@pytest.fixture()
def author():
    return _make_user("author@example.com", "SALES_REP", "Sam Author")


@pytest.fixture()
def outsider():
    return _make_user("outsider@example.com", "SALES_REP", "Olu Outsider")


@pytest.fixture()
def project(admin):
    proj = Project(name="Warehouse refit", owner_id=admin.id, created_by=admin.id)
    _db.session.add(proj)
    _db.session.commit()
    return proj


@pytest.fixture()
def other_project(admin):
    proj = Project(name="Office move", owner_id=admin.id, created_by=admin.id)
    _db.session.add(proj)
    _db.session.commit()
    return proj


@pytest.fixture()
def auth_headers():
    """Return a function building an Authorization header for a user."""

    def _headers(user):
        return {"Authorization": f"Bearer {generate_access_token(user.id, user.role)}"}

    return _headers


# ── Row factories (bypass services so tests can set up any state) ────────


@pytest.fixture()
def make_stage():
    def _make(project_id, name="Stage", stage_type="TASK", order=0, color="#6366F1"):
        stage = Stage(
            project_id=project_id, name=name, stage_type=stage_type, order=order, color=color,
        )
        _db.session.add(stage)
        _db.session.commit()
        return stage

    return _make


@pytest.fixture()
def make_task():
    def _make(project_id, title="Task", stage_id=None, **fields):
        task = Task(project_id=project_id, title=title, stage_id=stage_id, **fields)
        _db.session.add(task)
        _db.session.commit()
        return task

    return _make


@pytest.fixture()
def make_incident():
    def _make(project_id, title="Incident", stage_id=None, **fields):
        incident = Incident(project_id=project_id, title=title, stage_id=stage_id, **fields)
        _db.session.add(incident)
        _db.session.commit()
        return incident

    return _make


@pytest.fixture()
def make_request():
    def _make(project_id, title="Pallets", stage_id=None, **fields):
        request = ResourceRequest(project_id=project_id, title=title, stage_id=stage_id, **fields)
        _db.session.add(request)
        _db.session.commit()
        return request

    return _make
