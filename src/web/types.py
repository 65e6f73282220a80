from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class TaskStatus(str, Enum):
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"

    @property
    def label(self) -> str:
        return STATUS_LABELS[self]


STATUS_LABELS = {
    TaskStatus.TODO: "To Do",
    TaskStatus.IN_PROGRESS: "In Progress",
    TaskStatus.DONE: "Done",
}


class Task(BaseModel):
    """A task as returned by the backend API."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    title: str
    description: Optional[str] = None
    status: TaskStatus
    due_date: Optional[date] = None
    created_at: datetime
    updated_at: datetime


class TaskPayload(BaseModel):
    """
    Body for create/update calls.

    Only fields that were explicitly set are sent, so an update built with
    `TaskPayload(status="done")` leaves every other field untouched, while
    `TaskPayload(description=None)` clears the description.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    due_date: Optional[date] = None

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)
