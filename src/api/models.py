from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import List, Optional, TypedDict


# PUBLIC_INTERFACE
class TaskStatus(str, Enum):
    """Workflow state of a task."""

    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"

    @classmethod
    def values(cls) -> List[str]:
        return [s.value for s in cls]


# PUBLIC_INTERFACE
class TaskEntity(TypedDict):
    """
    Storage-neutral representation of a Task, returned by every repository.

    Fields:
    - id: Opaque unique identifier (UUID4 string), generated on creation
    - title: Trimmed, non-empty title
    - description: Optional trimmed description; None when absent
    - status: One of TaskStatus
    - due_date: Optional due date
    - created_at: UTC creation timestamp, never mutated
    - updated_at: UTC timestamp of the last successful mutation
    """

    id: str
    title: str
    description: Optional[str]
    status: TaskStatus
    due_date: Optional[date]
    created_at: datetime
    updated_at: datetime
