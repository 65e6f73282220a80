from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .models import TaskStatus
from .utils import clean_optional_text

TITLE_MAX_LENGTH = 255


def _parse_due_date(value: Any) -> Optional[date]:
    """
    Normalize dueDate input into a date.
    - None or an empty string clears the value.
    - A datetime (or ISO8601 datetime string) is truncated to its date.
    - A date or 'YYYY-MM-DD' string is taken as-is.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        return value.date()

    if isinstance(value, date):
        return value

    if isinstance(value, str):
        s = value.strip()
        if not s:
            return None
        try:
            return date.fromisoformat(s)
        except ValueError:
            try:
                return datetime.fromisoformat(s.replace("Z", "+00:00")).date()
            except ValueError as e:
                raise ValueError(
                    "Invalid dueDate format. Use an ISO8601 date or datetime string (e.g., '2025-01-31')."
                ) from e

    raise ValueError("Invalid type for dueDate; expected an ISO8601 date string.")


def _clean_description(value: Any) -> Any:
    # Non-string input is left for the type check to reject.
    if value is None or isinstance(value, str):
        return clean_optional_text(value)
    return value


def _check_status(value: Any) -> Any:
    if isinstance(value, TaskStatus):
        return value
    if not isinstance(value, str) or value not in TaskStatus.values():
        raise ValueError("Invalid status value")
    return value


class _CamelModel(BaseModel):
    # Accept both camelCase (wire) and snake_case (Python) keys.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# PUBLIC_INTERFACE
class TaskCreate(_CamelModel):
    """
    Schema for creating a new Task.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Buy groceries",
                "description": "Milk, eggs, bread",
                "status": "todo",
                "dueDate": "2025-02-01",
            }
        }
    )

    title: Optional[str] = Field(
        default=None,
        validate_default=True,
        description="Short title for the task; required and trimmed",
    )
    description: Optional[str] = Field(default=None, description="Optional detailed description")
    status: TaskStatus = Field(default=TaskStatus.TODO, description="Workflow state; defaults to 'todo'")
    due_date: Optional[date] = Field(
        default=None,
        description="Due date. Accepts an ISO8601 date or datetime; datetimes are truncated to the date",
    )

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: Optional[str]) -> str:
        """
        Strip whitespace; reject missing or blank titles.
        """
        if v is None or not v.strip():
            raise ValueError("Title is required")
        s = v.strip()
        if len(s) > TITLE_MAX_LENGTH:
            raise ValueError(f"Title must be {TITLE_MAX_LENGTH} characters or less")
        return s

    @field_validator("description", mode="before")
    @classmethod
    def clean_description(cls, v: Any) -> Any:
        return _clean_description(v)

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, v: Any) -> Any:
        """
        An explicit null falls back to the default status.
        """
        if v is None:
            return TaskStatus.TODO
        return _check_status(v)

    @field_validator("due_date", mode="before")
    @classmethod
    def parse_due_date(cls, v: Any) -> Optional[date]:
        return _parse_due_date(v)


# PUBLIC_INTERFACE
class TaskUpdate(_CamelModel):
    """
    Schema for updating an existing Task.

    All fields are optional. Omitted fields are left unchanged; fields that are
    present overwrite the stored value. For description and dueDate, null or an
    empty string clears the field.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status": "done",
                "dueDate": None,
            }
        }
    )

    title: Optional[str] = Field(default=None, description="Short title for the task")
    description: Optional[str] = Field(default=None, description="Optional detailed description")
    status: Optional[TaskStatus] = Field(default=None, description="Workflow state")
    due_date: Optional[date] = Field(default=None, description="Due date as an ISO8601 date")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: Optional[str]) -> str:
        """
        If title is provided, it must be non-blank; it is stored trimmed.
        """
        if v is None or not v.strip():
            raise ValueError("Title cannot be empty")
        s = v.strip()
        if len(s) > TITLE_MAX_LENGTH:
            raise ValueError(f"Title must be {TITLE_MAX_LENGTH} characters or less")
        return s

    @field_validator("description", mode="before")
    @classmethod
    def clean_description(cls, v: Any) -> Any:
        return _clean_description(v)

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, v: Any) -> Any:
        return _check_status(v)

    @field_validator("due_date", mode="before")
    @classmethod
    def parse_due_date(cls, v: Any) -> Optional[date]:
        return _parse_due_date(v)

    def changes(self) -> Dict[str, Any]:
        """Return only the fields present in the request, keyed by attribute name."""
        return {name: getattr(self, name) for name in self.model_fields_set}


# PUBLIC_INTERFACE
class TaskOut(_CamelModel):
    """
    Schema returned by the API for a Task.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "0b7f6c1e-2f55-4d4b-9f0e-6f1c8a3b2d10",
                "title": "Buy groceries",
                "description": "Milk, eggs, bread",
                "status": "todo",
                "dueDate": "2025-02-01",
                "createdAt": "2025-01-25T10:15:30.123456Z",
                "updatedAt": "2025-01-26T09:00:00.000001Z",
            }
        }
    )

    id: str = Field(..., description="Unique identifier of the task")
    title: str = Field(..., description="Short title for the task")
    description: Optional[str] = Field(default=None, description="Optional detailed description")
    status: TaskStatus = Field(..., description="Workflow state")
    due_date: Optional[date] = Field(default=None, description="Due date, if any")
    created_at: datetime = Field(..., description="Creation timestamp (UTC)")
    updated_at: datetime = Field(..., description="Last update timestamp (UTC)")


class HealthOut(BaseModel):
    status: str
    message: str


class ErrorOut(BaseModel):
    """Body of every non-2xx response."""

    error: str = Field(..., description="Human-readable reason")
    detail: Optional[List[Dict[str, Any]]] = Field(
        default=None, description="Per-field validation errors, when the request body was rejected"
    )
