"""Tests for subject registration and lookup."""

import pytest

from clearance.core.exceptions import DuplicateSubjectError, NotFoundError
from clearance.core.workflow import SubjectRegistry
from clearance.db.models import Subject

from conftest import ALL_DEPARTMENTS


class TestSubjectRegistry:
    """Test SubjectRegistry against a real session."""

    def test_register_starts_all_departments_pending(self, db_session):
        """Test a new subject has every department pending and no certificate."""
        subject = SubjectRegistry(db_session).register("S1", "Ada Obi", "ada@example.edu")

        assert subject.id == "S1"
        assert subject.status_by_department == {d: "pending" for d in ALL_DEPARTMENTS}
        assert subject.artifact_issued is False
        assert subject.issued_at is None

    def test_register_duplicate(self, db_session):
        """Test registering the same identity twice fails."""
        registry = SubjectRegistry(db_session)
        registry.register("S1", "Ada Obi", "ada@example.edu")

        with pytest.raises(DuplicateSubjectError):
            registry.register("S1", "Someone Else", "else@example.edu")

        assert db_session.get(Subject, "S1").name == "Ada Obi"

    def test_find(self, db_session):
        registry = SubjectRegistry(db_session)
        registry.register("S1", "Ada Obi", "ada@example.edu")

        assert registry.find("S1").contact == "ada@example.edu"

    def test_find_unknown(self, db_session):
        with pytest.raises(NotFoundError):
            SubjectRegistry(db_session).find("nobody")

    def test_lock_returns_fresh_row(self, db_session):
        """Test lock reloads the row instead of trusting the identity map."""
        registry = SubjectRegistry(db_session)
        subject = registry.register("S1", "Ada Obi", "ada@example.edu")
        db_session.commit()

        subject.name = "stale in-memory edit"
        locked = registry.lock("S1")

        assert locked is subject
        assert locked.name == "Ada Obi"

    def test_lock_unknown(self, db_session):
        with pytest.raises(NotFoundError):
            SubjectRegistry(db_session).lock("nobody")
