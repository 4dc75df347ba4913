"""
Document Store

JSON-file backed document collections with the query surface the tracker
needs: count, insert, find, find_one_and_update and find_one_and_delete,
plus a guarded insert that performs a count check and the insert under one
lock.

Storage layout:
    <data_dir>/<collection>.json  ->  {"version": ..., "updated_at": ..., "documents": [...]}

Guarantees:
- Writes are atomic (temp file + fsync + replace)
- The in-memory view only changes after the file write succeeded
- Lock timeouts and I/O failures surface as StorageUnavailableError
- Documents are copied in and out; callers never share references with the store
"""

import json
import logging
import os
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from .errors import StorageUnavailableError

logger = logging.getLogger("document_store")

# -----------------------------------------------------------------------------
# Constants
# -----------------------------------------------------------------------------
STORE_VERSION = "1.0"
DEFAULT_TIMEOUT_SECONDS = 5.0

Document = Dict[str, Any]


def _matches(document: Document, query: Dict[str, Any]) -> bool:
    return all(document.get(key) == value for key, value in query.items())


# -----------------------------------------------------------------------------
# Collection
# -----------------------------------------------------------------------------
class Collection:
    """
    A named set of documents persisted to a single JSON file.

    Documents are loaded lazily on first access. Every operation holds the
    collection lock; acquiring it waits at most ``timeout_seconds``.
    """

    def __init__(self, name: str, path: Path, timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS):
        self.name = name
        self._path = path
        self._timeout = timeout_seconds
        self._lock = threading.RLock()
        self._documents: Optional[List[Document]] = None

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    @contextmanager
    def _locked(self, operation: str) -> Iterator[List[Document]]:
        if not self._lock.acquire(timeout=self._timeout):
            logger.error(f"Lock timeout on {self.name}.{operation} after {self._timeout}s")
            raise StorageUnavailableError(f"{self.name}.{operation}", "lock timeout")
        try:
            yield self._load(operation)
        finally:
            self._lock.release()

    def _load(self, operation: str) -> List[Document]:
        if self._documents is not None:
            return self._documents

        if not self._path.exists():
            logger.debug(f"No file for collection {self.name}, starting empty")
            self._documents = []
            return self._documents

        try:
            with open(self._path, "r") as f:
                data = json.load(f)
            self._documents = list(data.get("documents", []))
        except (OSError, ValueError, AttributeError) as e:
            logger.error(f"Failed to load collection {self.name}: {e}")
            raise StorageUnavailableError(f"{self.name}.{operation}", str(e)) from e

        logger.info(f"Loaded {len(self._documents)} documents into {self.name}")
        return self._documents

    def _save(self, documents: List[Document], operation: str) -> None:
        """Write the full collection, then swap it into memory."""
        data = {
            "version": STORE_VERSION,
            "updated_at": datetime.now(timezone.utc).isoformat(),
            "documents": documents,
        }
        temp_file = self._path.with_suffix(".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_file, "w") as f:
                json.dump(data, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_file, self._path)
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to save collection {self.name}: {e}")
            raise StorageUnavailableError(f"{self.name}.{operation}", str(e)) from e

        self._documents = documents

    # -------------------------------------------------------------------------
    # Read Operations
    # -------------------------------------------------------------------------

    def count(self, query: Dict[str, Any]) -> int:
        with self._locked("count") as documents:
            return sum(1 for doc in documents if _matches(doc, query))

    def find(self, query: Dict[str, Any]) -> List[Document]:
        with self._locked("find") as documents:
            return [dict(doc) for doc in documents if _matches(doc, query)]

    def find_one(self, query: Dict[str, Any]) -> Optional[Document]:
        with self._locked("find_one") as documents:
            for doc in documents:
                if _matches(doc, query):
                    return dict(doc)
        return None

    # -------------------------------------------------------------------------
    # Write Operations
    # -------------------------------------------------------------------------

    def insert_one(self, document: Document) -> Document:
        with self._locked("insert_one") as documents:
            stored = dict(document)
            self._save(documents + [stored], "insert_one")
            return dict(stored)

    def insert_one_guarded(
        self,
        document: Document,
        count_query: Dict[str, Any],
        limit: int,
    ) -> bool:
        """
        Insert only while fewer than ``limit`` documents match ``count_query``.

        The count and the insert run under the same lock hold, so concurrent
        callers cannot both pass the guard at the boundary.

        Returns:
            True if inserted, False if the guard rejected the insert
        """
        with self._locked("insert_one_guarded") as documents:
            current = sum(1 for doc in documents if _matches(doc, count_query))
            if current >= limit:
                return False
            self._save(documents + [dict(document)], "insert_one_guarded")
            return True

    def find_one_and_update(
        self,
        query: Dict[str, Any],
        fields: Dict[str, Any],
    ) -> Optional[Document]:
        """
        Set ``fields`` on the first matching document.

        Returns:
            The post-update document, or None (and no write) when nothing matches
        """
        with self._locked("find_one_and_update") as documents:
            for index, doc in enumerate(documents):
                if _matches(doc, query):
                    updated = {**doc, **fields}
                    new_documents = list(documents)
                    new_documents[index] = updated
                    self._save(new_documents, "find_one_and_update")
                    return dict(updated)
        return None

    def find_one_and_delete(self, query: Dict[str, Any]) -> Optional[Document]:
        """
        Remove the first matching document.

        Returns:
            The removed document, or None (and no write) when nothing matches
        """
        with self._locked("find_one_and_delete") as documents:
            for index, doc in enumerate(documents):
                if _matches(doc, query):
                    new_documents = documents[:index] + documents[index + 1:]
                    self._save(new_documents, "find_one_and_delete")
                    return dict(doc)
        return None


# -----------------------------------------------------------------------------
# Document Store
# -----------------------------------------------------------------------------
class DocumentStore:
    """
    Set of collections rooted at one data directory.

    Created once at application start-up and handed to the stores that
    need it; there is no explicit teardown.
    """

    def __init__(self, data_dir: Path, timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS):
        self.data_dir = Path(data_dir)
        self.timeout_seconds = timeout_seconds
        self._collections: Dict[str, Collection] = {}
        self._lock = threading.Lock()

    def collection(self, name: str) -> Collection:
        """Get (or open) a collection by name."""
        with self._lock:
            if name not in self._collections:
                self._collections[name] = Collection(
                    name=name,
                    path=self.data_dir / f"{name}.json",
                    timeout_seconds=self.timeout_seconds,
                )
            return self._collections[name]
