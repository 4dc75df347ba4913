"""
Task Store

Persistence for Task records. project_id is a plain reference: the store
does not check that the project exists and project removal (not offered)
would not cascade here.
"""

from typing import Any, Dict, List, Optional

from .document_store import DocumentStore
from .models import Task


COLLECTION_NAME = "tasks"


class TaskStore:
    """Task collection keyed by generated id, indexed by project_id."""

    def __init__(self, store: DocumentStore):
        self._collection = store.collection(COLLECTION_NAME)

    def insert(self, task: Task) -> Task:
        stored = self._collection.insert_one(task.to_dict())
        return Task.from_dict(stored)

    def list_for_project(self, project_id: str) -> List[Task]:
        return [
            Task.from_dict(doc)
            for doc in self._collection.find({"project_id": project_id})
        ]

    def get(self, task_id: str) -> Optional[Task]:
        doc = self._collection.find_one({"id": task_id})
        return Task.from_dict(doc) if doc else None

    def replace_fields(self, task_id: str, fields: Dict[str, Any]) -> Optional[Task]:
        """
        Overwrite mutable fields of a task.

        Returns:
            The post-update task, or None if no task has this id
        """
        doc = self._collection.find_one_and_update({"id": task_id}, fields)
        return Task.from_dict(doc) if doc else None

    def delete(self, task_id: str) -> Optional[Task]:
        """
        Remove a task.

        Returns:
            The removed task, or None if no task has this id
        """
        doc = self._collection.find_one_and_delete({"id": task_id})
        return Task.from_dict(doc) if doc else None
