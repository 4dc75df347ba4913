"""
Project Store

Persistence for Project records and the per-owner quota guard.
Projects are never updated or deleted once inserted.
"""

from typing import List

from .document_store import DocumentStore
from .models import Project


COLLECTION_NAME = "projects"


class ProjectStore:
    """Project collection keyed by generated id, indexed by owner_id."""

    def __init__(self, store: DocumentStore):
        self._collection = store.collection(COLLECTION_NAME)

    def count_for_owner(self, owner_id: str) -> int:
        return self._collection.count({"owner_id": owner_id})

    def insert(self, project: Project) -> Project:
        stored = self._collection.insert_one(project.to_dict())
        return Project.from_dict(stored)

    def insert_within_quota(self, project: Project, limit: int) -> bool:
        """
        Insert the project only if its owner holds fewer than ``limit``
        projects, checked and written under one store lock.

        Returns:
            True if inserted, False if the owner is at quota
        """
        return self._collection.insert_one_guarded(
            project.to_dict(),
            count_query={"owner_id": project.owner_id},
            limit=limit,
        )

    def list_for_owner(self, owner_id: str) -> List[Project]:
        return [
            Project.from_dict(doc)
            for doc in self._collection.find({"owner_id": owner_id})
        ]
