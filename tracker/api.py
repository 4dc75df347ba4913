"""
API Boundary

FastAPI routers for the tracker:
- /auth      signup, login, logout
- /projects  create and list the caller's projects
- /tasks     create, list, update and delete tasks

Every route except signup/login resolves the bearer token into an
AuthenticatedIdentity before the lifecycle service is called. Errors map
to responses as follows:
- user-caused TrackerError  -> its status, {"error": code, "message": text}
- malformed request body    -> 400, {"error": "VALIDATION_ERROR", "message": text}
- storage/unexpected errors -> 500, {"error": "<generic operation message>"}
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from fastapi import APIRouter, Depends, FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator

from .errors import TrackerError
from .identity import IdentityProvider
from .lifecycle_service import LifecycleService
from .models import AuthenticatedIdentity

logger = logging.getLogger("tracker_api")


# -----------------------------------------------------------------------------
# Request Models
# -----------------------------------------------------------------------------
class SignupRequest(BaseModel):
    """Request model for account signup."""
    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., pattern=r"^\S+@\S+\.\S+$", max_length=254)
    password: str = Field(..., min_length=6)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Name is required")
        return value


class LoginRequest(BaseModel):
    """Request model for login."""
    email: str
    password: str


class ProjectCreateRequest(BaseModel):
    """Request model for project creation. Title emptiness is not checked."""
    title: Optional[str] = None


class TaskWriteRequest(BaseModel):
    """
    Request model for task create/update.

    status is left untyped so that unknown values reach the lifecycle
    service and come back as INVALID_STATUS rather than a schema error.
    """
    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[Any] = None


# -----------------------------------------------------------------------------
# Operation Failures
# -----------------------------------------------------------------------------
class OperationFailed(Exception):
    """A system-side failure answered with a generic message only."""

    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


@contextmanager
def operation_guard(failure_message: str) -> Iterator[None]:
    """
    Let user-caused errors through; turn system-side errors into an
    OperationFailed carrying only ``failure_message``.
    """
    try:
        yield
    except TrackerError as e:
        if e.status_code < 500:
            raise
        logger.error(f"{failure_message}: {e.code} {e.details}")
        raise OperationFailed(failure_message, e.status_code) from e
    except OperationFailed:
        raise
    except Exception as e:
        logger.exception(f"{failure_message}: unexpected error")
        raise OperationFailed(failure_message) from e


def describe_validation_errors(errors: List[Dict[str, Any]]) -> str:
    """Flatten pydantic error entries into "field: reason; ..." text."""
    parts = []
    for err in errors:
        field = ".".join(str(p) for p in err.get("loc", ()) if p != "body") or "body"
        parts.append(f"{field}: {err.get('msg', 'invalid value')}")
    return "; ".join(parts) or "Invalid request"


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        message = describe_validation_errors(exc.errors())
        logger.warning(f"Rejected request to {request.url.path}: {message}")
        return JSONResponse(
            status_code=400,
            content={"error": "VALIDATION_ERROR", "message": message},
        )

    @app.exception_handler(TrackerError)
    async def tracker_error_handler(request: Request, exc: TrackerError):
        if exc.status_code >= 500:
            logger.error(f"Unhandled {exc.code} on {request.url.path}: {exc.details}")
            return JSONResponse(status_code=exc.status_code, content={"error": "Internal server error"})
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(OperationFailed)
    async def operation_failed_handler(request: Request, exc: OperationFailed):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


# -----------------------------------------------------------------------------
# Dependencies
# -----------------------------------------------------------------------------
def get_lifecycle_service(request: Request) -> LifecycleService:
    return request.app.state.lifecycle_service


def get_identity_provider(request: Request) -> IdentityProvider:
    return request.app.state.identity_provider


def get_bearer_token(authorization: Optional[str] = Header(None)) -> Optional[str]:
    """Extract the token from an "Authorization: Bearer <token>" header."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def require_identity(
    token: Optional[str] = Depends(get_bearer_token),
    identity_provider: IdentityProvider = Depends(get_identity_provider),
) -> AuthenticatedIdentity:
    """Dependency to require a valid bearer credential."""
    return identity_provider.resolve(token)


# -----------------------------------------------------------------------------
# Auth Routes
# -----------------------------------------------------------------------------
auth_router = APIRouter(prefix="/auth", tags=["Auth"])


@auth_router.post("/signup", status_code=201)
def signup(
    body: SignupRequest,
    identity_provider: IdentityProvider = Depends(get_identity_provider),
) -> Dict[str, Any]:
    with operation_guard("Failed to register user"):
        user = identity_provider.signup(body.name, body.email, body.password)
    return {"message": "User registered", "user": user.to_public_dict()}


@auth_router.post("/login")
def login(
    body: LoginRequest,
    identity_provider: IdentityProvider = Depends(get_identity_provider),
) -> Dict[str, Any]:
    with operation_guard("Failed to log in"):
        token, user = identity_provider.login(body.email, body.password)
    return {"token": token, "user": user.to_public_dict()}


@auth_router.post("/logout")
def logout(
    identity: AuthenticatedIdentity = Depends(require_identity),
    token: Optional[str] = Depends(get_bearer_token),
    identity_provider: IdentityProvider = Depends(get_identity_provider),
) -> Dict[str, str]:
    identity_provider.logout(token)
    return {"message": "Logged out"}


# -----------------------------------------------------------------------------
# Project Routes
# -----------------------------------------------------------------------------
projects_router = APIRouter(prefix="/projects", tags=["Projects"])


@projects_router.post("", status_code=201)
def create_project(
    body: Optional[ProjectCreateRequest] = None,
    identity: AuthenticatedIdentity = Depends(require_identity),
    service: LifecycleService = Depends(get_lifecycle_service),
) -> Dict[str, Any]:
    body = body or ProjectCreateRequest()
    with operation_guard("Failed to create project"):
        project = service.create_project(identity, body.title)
    return project.to_dict()


@projects_router.get("")
def list_projects(
    identity: AuthenticatedIdentity = Depends(require_identity),
    service: LifecycleService = Depends(get_lifecycle_service),
) -> List[Dict[str, Any]]:
    with operation_guard("Failed to fetch projects"):
        projects = service.list_projects(identity)
    return [p.to_dict() for p in projects]


# -----------------------------------------------------------------------------
# Task Routes
# -----------------------------------------------------------------------------
tasks_router = APIRouter(prefix="/tasks", tags=["Tasks"])


@tasks_router.post("/{project_id}", status_code=201)
def create_task(
    project_id: str,
    body: Optional[TaskWriteRequest] = None,
    identity: AuthenticatedIdentity = Depends(require_identity),
    service: LifecycleService = Depends(get_lifecycle_service),
) -> Dict[str, Any]:
    body = body or TaskWriteRequest()
    with operation_guard("Failed to create task"):
        task = service.create_task(
            identity, project_id, body.title, body.description, body.status
        )
    return {"message": "Task created", "task": task.to_dict()}


@tasks_router.get("/{project_id}")
def list_tasks(
    project_id: str,
    identity: AuthenticatedIdentity = Depends(require_identity),
    service: LifecycleService = Depends(get_lifecycle_service),
) -> List[Dict[str, Any]]:
    with operation_guard("Failed to fetch tasks"):
        tasks = service.list_tasks(identity, project_id)
    return [t.to_dict() for t in tasks]


@tasks_router.put("/{task_id}")
def update_task(
    task_id: str,
    body: TaskWriteRequest,
    identity: AuthenticatedIdentity = Depends(require_identity),
    service: LifecycleService = Depends(get_lifecycle_service),
) -> Dict[str, Any]:
    with operation_guard("Failed to update task"):
        task = service.update_task(
            identity, task_id, body.title, body.description, body.status
        )
    return task.to_dict()


@tasks_router.delete("/{task_id}")
def delete_task(
    task_id: str,
    identity: AuthenticatedIdentity = Depends(require_identity),
    service: LifecycleService = Depends(get_lifecycle_service),
) -> Dict[str, str]:
    with operation_guard("Failed to delete task"):
        service.delete_task(identity, task_id)
    return {"message": "Task deleted successfully"}


ROUTERS = (auth_router, projects_router, tasks_router)
