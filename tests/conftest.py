"""Pytest configuration and shared fixtures."""

import threading
import time

import pytest
from fastapi.testclient import TestClient

from clearance.api.main import create_app
from clearance.core.config import Settings
from clearance.core.exceptions import GenerationFailedError
from clearance.core.security import AuthConfig, TokenAuthenticator
from clearance.core.workflow import Department, IssuanceTrigger
from clearance.core.workflow.states import is_fully_approved
from clearance.db.base import Base
from clearance.db.session import build_engine, build_session_factory
from clearance.services.clearance import ClearanceService
from clearance.services.dispatch import CollaboratorPool
from clearance.services.notifications import ClearanceNotifications

ADMIN_API_KEY = "test-admin-key"
ALL_DEPARTMENTS = [d.value for d in Department]


class RecordingNotifier:
    """Notifier that keeps every message it is asked to send."""

    def __init__(self):
        self.messages = []
        self._lock = threading.Lock()

    def notify(self, address, subject_line, body):
        with self._lock:
            self.messages.append((address, subject_line, body))

    def subjects_for(self, address):
        return [s for a, s, _ in self.messages if a == address]


class FailingNotifier:
    def notify(self, address, subject_line, body):
        raise ConnectionError("SMTP server unreachable")


class RecordingGenerator:
    """Certificate generator that counts invocations per subject."""

    def __init__(self):
        self.generated = []
        self._lock = threading.Lock()

    def generate(self, subject):
        with self._lock:
            self.generated.append(subject.id)
        return f"certificates/{subject.id}.html"

    def count(self, subject_id):
        return self.generated.count(subject_id)


class FailingGenerator:
    def __init__(self):
        self.calls = 0

    def generate(self, subject):
        self.calls += 1
        raise GenerationFailedError("renderer offline")


class SlowGenerator:
    def __init__(self, delay: float):
        self.delay = delay

    def generate(self, subject):
        time.sleep(self.delay)
        return "late.html"


def assert_invariant(subject):
    """artifact_issued holds exactly when every department approved."""
    assert subject.artifact_issued == is_fully_approved(subject.status_by_department)
    assert set(subject.status_by_department) == set(ALL_DEPARTMENTS)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        database_url=f"sqlite:///{tmp_path / 'clearance-test.db'}",
        secret_key="test-secret-key",
        admin_api_key=ADMIN_API_KEY,
        certificate_dir=str(tmp_path / "certificates"),
        collaborator_timeout=5.0,
        log_level="WARNING",
    )


@pytest.fixture
def engine(settings):
    engine = build_engine(settings.database_url)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def pool():
    pool = CollaboratorPool(timeout=5.0, max_workers=4)
    yield pool
    pool.shutdown(wait=True)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def generator():
    return RecordingGenerator()


@pytest.fixture
def service_factory(session_factory, pool):
    """Build a ClearanceService with the given collaborators."""

    def _build(notifier=None, generator=None):
        notifications = ClearanceNotifications(notifier or RecordingNotifier(), pool)
        issuance = IssuanceTrigger(generator or RecordingGenerator(), pool, notifications)
        return ClearanceService(session_factory, issuance, notifications)

    return _build


@pytest.fixture
def service(service_factory, notifier, generator):
    return service_factory(notifier=notifier, generator=generator)


@pytest.fixture
def subject(service):
    return service.register("S1", "Ada Obi", "ada@example.edu")


@pytest.fixture
def submit_all(service):
    """Submit one request per department; returns {department: request}."""

    def _submit(subject_id):
        return {
            d.value: service.submit(subject_id, d).request
            for d in Department
        }

    return _submit


@pytest.fixture
def app(settings, notifier, generator):
    return create_app(settings, notifier=notifier, generator=generator)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def authenticator(settings):
    return TokenAuthenticator(AuthConfig.from_settings(settings))


@pytest.fixture
def auth_headers(authenticator):
    def _headers(subject_id):
        return {"Authorization": f"Bearer {authenticator.issue_token(subject_id)}"}

    return _headers


@pytest.fixture
def admin_headers():
    return {"X-API-Key": ADMIN_API_KEY}
