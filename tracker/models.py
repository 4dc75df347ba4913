"""
Tracker Models

Domain records persisted by the stores and returned by the lifecycle
service. Records are plain dataclasses with to_dict/from_dict for JSON
serialization; statuses are stored by their string value.
"""

from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from .errors import InvalidStatusError

# -----------------------------------------------------------------------------
# Constants
# -----------------------------------------------------------------------------
MAX_PROJECTS_PER_OWNER = 4


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_timestamp(moment: datetime) -> str:
    return moment.isoformat()


# -----------------------------------------------------------------------------
# Task Status
# -----------------------------------------------------------------------------
class TaskStatus(str, Enum):
    """Task lifecycle status."""
    PENDING = "Pending"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"

    @classmethod
    def values(cls) -> List[str]:
        return [s.value for s in cls]

    @classmethod
    def parse(cls, value: Any, default: Optional["TaskStatus"] = None) -> "TaskStatus":
        """
        Resolve a caller-supplied status.

        Accepts the stored values ("In Progress") and the compact alias
        ("InProgress"). None resolves to ``default`` when one is given.

        Raises:
            InvalidStatusError: value is not one of the three statuses
        """
        if value is None and default is not None:
            return default
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            if value in _STATUS_ALIASES:
                return _STATUS_ALIASES[value]
            try:
                return cls(value)
            except ValueError:
                pass
        raise InvalidStatusError(value, cls.values())

    @classmethod
    def can_transition(cls, source: "TaskStatus", target: "TaskStatus") -> bool:
        return target in STATUS_TRANSITIONS.get(source, ())


_STATUS_ALIASES: Dict[str, TaskStatus] = {
    "InProgress": TaskStatus.IN_PROGRESS,
}

# Permissive graph: every status reachable from every other, no terminal state
STATUS_TRANSITIONS: Dict[TaskStatus, tuple] = {
    status: tuple(TaskStatus) for status in TaskStatus
}


# -----------------------------------------------------------------------------
# Identity
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class AuthenticatedIdentity:
    """Caller identity resolved from a bearer credential."""
    user_id: str
    email: str


@dataclass
class User:
    """Registered account held by the identity provider."""
    id: str
    name: str
    email: str
    password_hash: str
    salt: str
    created_at: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_public_dict(self) -> Dict[str, Any]:
        """Account fields that are safe to return to clients."""
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        return cls(**data)


# -----------------------------------------------------------------------------
# Project / Task
# -----------------------------------------------------------------------------
@dataclass
class Project:
    """Project owned by a single user. Never updated after creation."""
    id: str
    owner_id: str
    title: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Project":
        return cls(
            id=data["id"],
            owner_id=data["owner_id"],
            title=data.get("title"),
        )


@dataclass
class Task:
    """
    Task scoped to a project.

    completed_at is derived from status by the lifecycle service on every
    update and is never set at creation.
    """
    id: str
    project_id: str
    title: Optional[str]
    description: Optional[str]
    status: str
    created_at: str
    completed_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        return cls(
            id=data["id"],
            project_id=data["project_id"],
            title=data.get("title"),
            description=data.get("description"),
            status=data.get("status", TaskStatus.PENDING.value),
            created_at=data["created_at"],
            completed_at=data.get("completed_at"),
        )
