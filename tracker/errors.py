"""
Tracker Errors

Structured error taxonomy shared by the stores, the lifecycle service and
the identity provider. Every error carries a machine-stable code, a
human-readable message and the HTTP status the API boundary answers with.
"""

from typing import Any, Dict, Optional


# -----------------------------------------------------------------------------
# Base Error
# -----------------------------------------------------------------------------
class TrackerError(Exception):
    """Base tracker error with structured details."""

    status_code = 400

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.code,
            "message": self.message,
        }


# -----------------------------------------------------------------------------
# User-Caused Errors (4xx)
# -----------------------------------------------------------------------------
class QuotaExceededError(TrackerError):
    def __init__(self, owner_id: str, limit: int):
        super().__init__(
            code="QUOTA_EXCEEDED",
            message=f"Project limit reached (max {limit} projects)",
            details={"owner_id": owner_id, "limit": limit}
        )


class TaskNotFoundError(TrackerError):
    status_code = 404

    def __init__(self, task_id: str):
        super().__init__(
            code="NOT_FOUND",
            message="Task not found",
            details={"task_id": task_id}
        )


class InvalidStatusError(TrackerError):
    def __init__(self, value: Any, allowed: list):
        super().__init__(
            code="INVALID_STATUS",
            message=f"Invalid task status {value!r}. Allowed: {', '.join(allowed)}",
            details={"status": value, "allowed": allowed}
        )


class InvalidTransitionError(TrackerError):
    def __init__(self, task_id: str, source: str, target: str):
        super().__init__(
            code="INVALID_TRANSITION",
            message=f"Cannot move task from {source} to {target}",
            details={"task_id": task_id, "from": source, "to": target}
        )


class UserAlreadyExistsError(TrackerError):
    def __init__(self, email: str):
        super().__init__(
            code="USER_EXISTS",
            message="A user with this email already exists",
            details={"email": email}
        )


class InvalidCredentialsError(TrackerError):
    status_code = 401

    def __init__(self):
        super().__init__(
            code="INVALID_CREDENTIALS",
            message="Invalid email or password"
        )


class UnauthorizedError(TrackerError):
    status_code = 401

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(code="UNAUTHORIZED", message=message)


# -----------------------------------------------------------------------------
# System-Caused Errors (5xx)
# -----------------------------------------------------------------------------
class StorageUnavailableError(TrackerError):
    status_code = 500

    def __init__(self, operation: str, reason: str = ""):
        super().__init__(
            code="STORAGE_UNAVAILABLE",
            message=f"Storage unavailable during {operation}",
            details={"operation": operation, "reason": reason}
        )


class ConfigError(Exception):
    """Raised when configuration values cannot be parsed."""
