from __future__ import annotations

import logging
import uuid
from abc import ABC, abstractmethod
from threading import RLock
from typing import Dict, List, Optional

from .models import TaskEntity
from .schemas import TaskCreate, TaskUpdate
from .settings import Settings
from .utils import utc_now

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
class Repository(ABC):
    """Abstract repository contract for task storage backends."""

    @abstractmethod
    def list(self) -> List[TaskEntity]:
        """Return every task, newest first (created_at descending)."""

    @abstractmethod
    def get(self, task_id: str) -> Optional[TaskEntity]:
        """Return a TaskEntity by id, or None if not found."""

    @abstractmethod
    def create(self, data: TaskCreate) -> TaskEntity:
        """Create and return a new TaskEntity."""

    @abstractmethod
    def update(self, task_id: str, data: TaskUpdate) -> Optional[TaskEntity]:
        """
        Apply the fields present in `data` to an existing task and refresh updated_at.
        Return the updated entity, or None if not found.
        """

    @abstractmethod
    def delete(self, task_id: str) -> bool:
        """Delete a task by id. Return True if deleted, False if not found."""

    def close(self) -> None:
        """Release any resources held by the backend."""


# PUBLIC_INTERFACE
def new_task_id() -> str:
    return str(uuid.uuid4())


class InMemoryRepository(Repository):
    """
    Thread-safe in-memory repository suitable for testing.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._items: Dict[str, TaskEntity] = {}

    def list(self) -> List[TaskEntity]:
        with self._lock:
            items = sorted(self._items.values(), key=lambda t: t["created_at"], reverse=True)
            # Return copies to avoid external mutation
            return [t.copy() for t in items]

    def get(self, task_id: str) -> Optional[TaskEntity]:
        with self._lock:
            item = self._items.get(task_id)
            return None if item is None else item.copy()

    def create(self, data: TaskCreate) -> TaskEntity:
        now = utc_now()
        entity: TaskEntity = {
            "id": new_task_id(),
            "title": data.title,
            "description": data.description,
            "status": data.status,
            "due_date": data.due_date,
            "created_at": now,
            "updated_at": now,
        }
        with self._lock:
            self._items[entity["id"]] = entity
        return entity.copy()

    def update(self, task_id: str, data: TaskUpdate) -> Optional[TaskEntity]:
        with self._lock:
            existing = self._items.get(task_id)
            if existing is None:
                return None

            updated = existing.copy()
            updated.update(data.changes())  # type: ignore[typeddict-item]
            updated["updated_at"] = utc_now()

            self._items[task_id] = updated
            return updated.copy()

    def delete(self, task_id: str) -> bool:
        with self._lock:
            return self._items.pop(task_id, None) is not None


# PUBLIC_INTERFACE
def build_repository(settings: Settings) -> Repository:
    """
    Factory returning the repository selected by settings.
    - memory: InMemoryRepository
    - sqlite / postgres: SQLRepository over the configured database URL
    """
    if settings.persistence_backend == "memory":
        logger.info("Using in-memory task storage")
        return InMemoryRepository()

    from .db import SQLRepository

    url = settings.database_url
    assert url is not None
    logger.info("Using %s task storage", settings.persistence_backend)
    return SQLRepository(url, echo=settings.db_echo)
