"""
Create the tasks schema in the configured database and print it.

Connects with the same settings the API uses (or an explicit URL), runs the
idempotent schema setup, then prints the DDL of the tasks table and how many
rows it currently holds. Safe to run against a database that already has the
table.

Usage:
    python -m src.api.init_db
    python -m src.api.init_db --database-url sqlite:///./data/tasks.db
"""
from __future__ import annotations

import argparse
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.schema import CreateTable

from .db import SQLRepository, TaskRow
from .settings import get_settings


def _parse_args(argv: Optional[List[str]]) -> argparse.Namespace:
    ap = argparse.ArgumentParser(prog="python -m src.api.init_db", description="Create the tasks schema and print it.")
    ap.add_argument(
        "--database-url",
        default=None,
        help="SQLAlchemy URL to initialise; defaults to the URL built from the environment",
    )
    args = ap.parse_args(argv)
    if args.database_url is None:
        args.database_url = get_settings().database_url
    if args.database_url is None:
        ap.error("PERSISTENCE_BACKEND is 'memory'; there is no database to initialise")
    return args


# PUBLIC_INTERFACE
def main(argv: Optional[List[str]] = None) -> int:
    """Create the schema if missing and print it with the current row count."""
    args = _parse_args(argv)
    repo = SQLRepository(args.database_url)
    try:
        engine = repo.engine
        print(str(CreateTable(TaskRow.__table__).compile(engine)).strip())
        with engine.connect() as conn:
            count = conn.execute(select(func.count()).select_from(TaskRow.__table__)).scalar_one()
        print(f"Table 'tasks' ready at {engine.url.render_as_string(hide_password=True)} ({count} rows)")
    finally:
        repo.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
