from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Generator, List, Optional

from sqlalchemy import CheckConstraint, Column, Date, DateTime, String, Text, create_engine, delete, select
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from .models import TaskEntity, TaskStatus
from .repositories import Repository, new_task_id
from .schemas import TaskCreate, TaskUpdate
from .utils import as_utc, utc_now

logger = logging.getLogger(__name__)

Base = declarative_base()

_STATUS_CHECK = "status IN ({})".format(", ".join(f"'{v}'" for v in TaskStatus.values()))


class TaskRow(Base):
    __tablename__ = "tasks"
    __table_args__ = (CheckConstraint(_STATUS_CHECK, name="ck_tasks_status"),)

    id = Column(String(36), primary_key=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=TaskStatus.TODO.value)
    due_date = Column(Date, nullable=True)
    # Naive UTC; tagged back to UTC on read.
    created_at = Column(DateTime, nullable=False, index=True)
    updated_at = Column(DateTime, nullable=False)

    def __repr__(self):
        return f"<TaskRow(id={self.id}, title='{self.title}', status='{self.status}')>"


def _naive_utc(value: datetime) -> datetime:
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _column_value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


class SQLRepository(Repository):
    """
    SQLAlchemy repository implementing the Repository interface.

    The same code serves the embedded SQLite file used in development and the
    PostgreSQL server used in production; only the URL differs.
    """

    def __init__(self, url: str, echo: bool = False) -> None:
        parsed = make_url(url)
        engine_kwargs: dict = {"pool_pre_ping": True}

        if parsed.get_backend_name() == "sqlite":
            db_path = parsed.database
            # FastAPI runs sync handlers in a threadpool.
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if not db_path or db_path == ":memory:":
                engine_kwargs["poolclass"] = StaticPool
            else:
                os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)

        if echo:
            logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)

        self._engine = create_engine(url, **engine_kwargs)
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False)
        self._init_db()

    @property
    def engine(self) -> Engine:
        return self._engine

    @contextmanager
    def _session(self) -> Generator[Session, None, None]:
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def _init_db(self) -> None:
        Base.metadata.create_all(self._engine)
        logger.info("Database schema ready (%s)", self._engine.url.render_as_string(hide_password=True))

    @staticmethod
    def _row_to_entity(row: TaskRow) -> TaskEntity:
        return {
            "id": row.id,
            "title": row.title,
            "description": row.description,
            "status": TaskStatus(row.status),
            "due_date": row.due_date,
            "created_at": as_utc(row.created_at),  # type: ignore[typeddict-item]
            "updated_at": as_utc(row.updated_at),  # type: ignore[typeddict-item]
        }

    def list(self) -> List[TaskEntity]:
        with self._session() as session:
            rows = session.scalars(select(TaskRow).order_by(TaskRow.created_at.desc())).all()
            return [self._row_to_entity(r) for r in rows]

    def get(self, task_id: str) -> Optional[TaskEntity]:
        with self._session() as session:
            row = session.get(TaskRow, task_id)
            return self._row_to_entity(row) if row else None

    def create(self, data: TaskCreate) -> TaskEntity:
        now = _naive_utc(utc_now())
        row = TaskRow(
            id=new_task_id(),
            title=data.title,
            description=data.description,
            status=_column_value(data.status),
            due_date=data.due_date,
            created_at=now,
            updated_at=now,
        )
        with self._session() as session:
            session.add(row)
            session.flush()
            return self._row_to_entity(row)

    def update(self, task_id: str, data: TaskUpdate) -> Optional[TaskEntity]:
        with self._session() as session:
            row = session.get(TaskRow, task_id)
            if row is None:
                return None
            for field, value in data.changes().items():
                setattr(row, field, _column_value(value))
            row.updated_at = _naive_utc(utc_now())
            session.flush()
            return self._row_to_entity(row)

    def delete(self, task_id: str) -> bool:
        with self._session() as session:
            result = session.execute(delete(TaskRow).where(TaskRow.id == task_id))
            return result.rowcount > 0

    def close(self) -> None:
        self._engine.dispose()
