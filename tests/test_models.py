"""
Unit Tests for Tracker Models

Test coverage for:
- TaskStatus parsing (values, alias, default, rejection)
- Permissive status transition graph
- Record serialization
"""

import pytest

from tracker.errors import InvalidStatusError
from tracker.models import (
    STATUS_TRANSITIONS,
    Project,
    Task,
    TaskStatus,
    User,
)


# -----------------------------------------------------------------------------
# TaskStatus
# -----------------------------------------------------------------------------
class TestTaskStatusParse:
    """Tests for resolving caller-supplied statuses."""

    @pytest.mark.parametrize("raw,expected", [
        ("Pending", TaskStatus.PENDING),
        ("In Progress", TaskStatus.IN_PROGRESS),
        ("Completed", TaskStatus.COMPLETED),
    ])
    def test_stored_values(self, raw, expected):
        assert TaskStatus.parse(raw) is expected

    def test_compact_alias(self):
        assert TaskStatus.parse("InProgress") is TaskStatus.IN_PROGRESS

    def test_member_passthrough(self):
        assert TaskStatus.parse(TaskStatus.COMPLETED) is TaskStatus.COMPLETED

    def test_none_uses_default(self):
        assert TaskStatus.parse(None, default=TaskStatus.PENDING) is TaskStatus.PENDING

    def test_none_without_default_rejected(self):
        with pytest.raises(InvalidStatusError):
            TaskStatus.parse(None)

    @pytest.mark.parametrize("raw", ["Done", "pending", "", "COMPLETED", 3, ["Pending"]])
    def test_unknown_values_rejected(self, raw):
        with pytest.raises(InvalidStatusError) as exc_info:
            TaskStatus.parse(raw)

        assert exc_info.value.code == "INVALID_STATUS"
        assert exc_info.value.details["allowed"] == ["Pending", "In Progress", "Completed"]


class TestStatusTransitions:
    """Every status may move to every other; nothing is terminal."""

    def test_all_edges_permitted(self):
        for source in TaskStatus:
            for target in TaskStatus:
                assert TaskStatus.can_transition(source, target)

    def test_no_terminal_state(self):
        for status in TaskStatus:
            assert len(STATUS_TRANSITIONS[status]) == 3


# -----------------------------------------------------------------------------
# Serialization
# -----------------------------------------------------------------------------
class TestRecords:

    def test_task_from_dict_defaults(self):
        task = Task.from_dict({
            "id": "t1",
            "project_id": "p1",
            "created_at": "2024-01-01T00:00:00+00:00",
        })
        assert task.status == "Pending"
        assert task.completed_at is None
        assert task.title is None
        assert task.description is None

    def test_project_to_dict(self):
        project = Project(id="p1", owner_id="u1", title="Website")
        assert project.to_dict() == {"id": "p1", "owner_id": "u1", "title": "Website"}

    def test_user_public_dict_hides_secrets(self):
        user = User(
            id="u1",
            name="Alice",
            email="alice@example.com",
            password_hash="abc",
            salt="00",
            created_at="2024-01-01T00:00:00+00:00",
        )
        public = user.to_public_dict()
        assert "password_hash" not in public
        assert "salt" not in public
        assert public["email"] == "alice@example.com"
