"""
Shared pytest fixtures for the Launch Orchestration Engine test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - fake_task_creator: in-memory TaskCreator installed on the app
    - sample_document / sample_project: SETUP/LAUNCH sample markup registered and composed
"""

import pytest

from launch_engine import create_app
from launch_engine.core.exceptions import TaskCreationError
from launch_engine.integrations import EXTENSION_KEY
from launch_engine.integrations.task_gateway import TaskCreator
from launch_engine.models import db as _db


SAMPLE_MARKUP = (
    "# PHASE 1: SETUP\n"
    "## Accounts\n"
    "- [ ] Register domain [CRITICAL]\n"
    "- [ ] Buy domain [DUE:LAUNCH-30]\n"
    "# PHASE 2: LAUNCH\n"
    "- [ ] Go live [DAILY]"
)


class FakeTaskCreator(TaskCreator):
    """Records calls; ids are task-1, task-2, ...

    ``fail_titles`` makes create_task raise for those item texts.
    """

    def __init__(self):
        self.created = []
        self.done = []
        self.fail_titles = set()

    def create_task(self, title, priority, notes=None, project=None):
        if title in self.fail_titles:
            raise TaskCreationError(f"rejected: {title}")
        self.created.append({"title": title, "priority": priority, "notes": notes, "project": project})
        return f"task-{len(self.created)}"

    def mark_done(self, task_id):
        self.done.append(task_id)


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


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
def fake_task_creator(app):
    """Install a FakeTaskCreator for the duration of one test."""
    original = app.extensions.get(EXTENSION_KEY)
    fake = FakeTaskCreator()
    app.extensions[EXTENSION_KEY] = fake
    yield fake
    app.extensions[EXTENSION_KEY] = original


# ── Convenience fixtures ─────────────────────────────────────────────────


@pytest.fixture()
def sample_document():
    """Register the SETUP/LAUNCH sample markup and return its summary dict."""
    from launch_engine.services.document_service import add_document
    return add_document("Author Launch Engine", "engine", SAMPLE_MARKUP)


@pytest.fixture()
def sample_project(sample_document):
    """Compose a project from the sample document (no target date)."""
    from launch_engine.services.project_composer import create_project
    return create_project([sample_document["id"]])


@pytest.fixture()
def items_by_text(sample_project):
    """Map item_text -> ChecklistItem for the sample project."""
    from launch_engine.models.launch import ChecklistItem

    def _lookup():
        rows = ChecklistItem.query.filter_by(project_id=sample_project.id).all()
        return {i.item_text: i for i in rows}
    return _lookup
