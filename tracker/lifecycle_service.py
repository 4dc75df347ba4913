"""
Lifecycle Service

Project and task lifecycle operations for authenticated callers.

Rules enforced here:
- An owner holds at most MAX_PROJECTS_PER_OWNER projects
- Task status is one of Pending / In Progress / Completed; updates follow
  STATUS_TRANSITIONS, which lets any status move to any other
- completed_at is never set at creation; every update recomputes it from
  the new status (refreshed to "now" when re-saved as Completed, cleared
  otherwise)

Deliberately NOT enforced:
- Non-empty titles
- Ownership of the project a task route targets
- Existence of the project a task is created under

Every operation performs at most one store mutation and never retries;
store failures propagate as StorageUnavailableError.
"""

import logging
import uuid
from datetime import datetime
from typing import Callable, List, Optional

from .errors import InvalidTransitionError, QuotaExceededError, TaskNotFoundError
from .models import (
    MAX_PROJECTS_PER_OWNER,
    AuthenticatedIdentity,
    Project,
    Task,
    TaskStatus,
    to_timestamp,
    utc_now,
)
from .project_store import ProjectStore
from .task_store import TaskStore

logger = logging.getLogger("lifecycle_service")


class LifecycleService:
    """
    Core project/task operations.

    Holds no per-request state. The stores are handed in at construction
    and shared across requests.
    """

    def __init__(
        self,
        projects: ProjectStore,
        tasks: TaskStore,
        clock: Callable[[], datetime] = utc_now,
        atomic_quota_check: bool = True,
        project_quota: int = MAX_PROJECTS_PER_OWNER,
    ):
        self._projects = projects
        self._tasks = tasks
        self._clock = clock
        self._atomic_quota_check = atomic_quota_check
        self._project_quota = project_quota

    # -------------------------------------------------------------------------
    # Project Operations
    # -------------------------------------------------------------------------

    def create_project(self, identity: AuthenticatedIdentity, title: Optional[str]) -> Project:
        """
        Create a project owned by the caller.

        Raises:
            QuotaExceededError: the caller already owns the maximum number of projects
            StorageUnavailableError: the store could not be read or written
        """
        owner_id = identity.user_id
        project = Project(id=str(uuid.uuid4()), owner_id=owner_id, title=title)

        if self._atomic_quota_check:
            if not self._projects.insert_within_quota(project, self._project_quota):
                logger.warning(f"Project quota reached for owner {owner_id}")
                raise QuotaExceededError(owner_id, self._project_quota)
        else:
            # Count and insert are separate store calls; concurrent creates
            # near the limit can both pass the check.
            if self._projects.count_for_owner(owner_id) >= self._project_quota:
                logger.warning(f"Project quota reached for owner {owner_id}")
                raise QuotaExceededError(owner_id, self._project_quota)
            project = self._projects.insert(project)

        logger.info(f"Created project {project.id} for owner {owner_id}")
        return project

    def list_projects(self, identity: AuthenticatedIdentity) -> List[Project]:
        """All projects owned by the caller, in store order."""
        projects = self._projects.list_for_owner(identity.user_id)
        logger.debug(f"Listed {len(projects)} projects for owner {identity.user_id}")
        return projects

    # -------------------------------------------------------------------------
    # Task Operations
    # -------------------------------------------------------------------------

    def create_task(
        self,
        identity: AuthenticatedIdentity,
        project_id: str,
        title: Optional[str],
        description: Optional[str] = None,
        status: Optional[str] = None,
    ) -> Task:
        """
        Create a task under ``project_id``.

        status defaults to Pending. completed_at stays unset even when the
        task is created as Completed.

        Raises:
            InvalidStatusError: status is not one of the three task statuses
            StorageUnavailableError: the store could not be written
        """
        resolved = TaskStatus.parse(status, default=TaskStatus.PENDING)
        task = Task(
            id=str(uuid.uuid4()),
            project_id=project_id,
            title=title,
            description=description,
            status=resolved.value,
            created_at=to_timestamp(self._clock()),
            completed_at=None,
        )
        task = self._tasks.insert(task)

        logger.info(
            f"Created task {task.id} in project {project_id} "
            f"(status={task.status}, by={identity.user_id})"
        )
        return task

    def list_tasks(self, identity: AuthenticatedIdentity, project_id: str) -> List[Task]:
        """All tasks of ``project_id``, in store order."""
        tasks = self._tasks.list_for_project(project_id)
        logger.debug(f"Listed {len(tasks)} tasks for project {project_id}")
        return tasks

    def update_task(
        self,
        identity: AuthenticatedIdentity,
        task_id: str,
        title: Optional[str],
        description: Optional[str],
        status: Optional[str],
    ) -> Task:
        """
        Replace title, description and status of a task.

        completed_at becomes the update time when the new status is
        Completed and None otherwise, whatever the previous status was.

        A missing task is reported before the new status is looked at.

        Raises:
            TaskNotFoundError: no task has this id (nothing is written)
            InvalidStatusError: status is missing or not one of the three statuses
            InvalidTransitionError: STATUS_TRANSITIONS has no edge to the new status
            StorageUnavailableError: the store could not be read or written
        """
        existing = self._tasks.get(task_id)
        if existing is None:
            logger.info(f"Update rejected, task {task_id} not found")
            raise TaskNotFoundError(task_id)

        resolved = TaskStatus.parse(status)
        current = TaskStatus.parse(existing.status)
        if not TaskStatus.can_transition(current, resolved):
            logger.warning(
                f"Update rejected, task {task_id} cannot move "
                f"from {current.value} to {resolved.value}"
            )
            raise InvalidTransitionError(task_id, current.value, resolved.value)

        completed_at = (
            to_timestamp(self._clock()) if resolved is TaskStatus.COMPLETED else None
        )

        task = self._tasks.replace_fields(task_id, {
            "title": title,
            "description": description,
            "status": resolved.value,
            "completed_at": completed_at,
        })
        if task is None:
            logger.info(f"Update rejected, task {task_id} removed during update")
            raise TaskNotFoundError(task_id)

        logger.info(f"Updated task {task_id} (status={task.status}, by={identity.user_id})")
        return task

    def delete_task(self, identity: AuthenticatedIdentity, task_id: str) -> Task:
        """
        Remove a task.

        Returns:
            The removed task

        Raises:
            TaskNotFoundError: no task has this id
            StorageUnavailableError: the store could not be read or written
        """
        task = self._tasks.delete(task_id)
        if task is None:
            logger.info(f"Delete rejected, task {task_id} not found")
            raise TaskNotFoundError(task_id)

        logger.info(f"Deleted task {task_id} from project {task.project_id} (by={identity.user_id})")
        return task
