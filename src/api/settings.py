from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List, Optional

from dotenv import load_dotenv
from sqlalchemy.engine import URL

load_dotenv(override=False)

BACKENDS = {"memory", "sqlite", "postgres"}


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - APP_ENV: 'development' (default) or 'production'
    - PERSISTENCE_BACKEND: 'memory', 'sqlite' or 'postgres'. Default depends on APP_ENV:
      'sqlite' in development, 'postgres' in production
    - DATABASE_URL: full SQLAlchemy URL, overrides the SQLite/PostgreSQL settings below
    - SQLITE_DB_PATH: path to sqlite db file. Default './data/tasks.db'
    - DB_HOST, DB_PORT, DB_USERNAME, DB_PASSWORD, DB_DATABASE: PostgreSQL connection
    - DB_SSLMODE: PostgreSQL sslmode. Default 'require'
    - DB_ECHO: log SQL statements. Default true in development
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    - LOG_LEVEL: root log level. Default 'INFO'
    - HOST, PORT: bind address for uvicorn. Default 0.0.0.0:3001
    """

    app_env: str
    persistence_backend: str
    sqlite_db_path: str
    db_host: str
    db_port: int
    db_username: Optional[str]
    db_password: Optional[str]
    db_database: str
    db_sslmode: str
    db_echo: bool
    database_url_override: Optional[str]
    cors_allow_origins: List[str]
    log_level: str
    host: str
    port: int

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def database_url(self) -> Optional[str]:
        """SQLAlchemy URL for the selected backend, or None for the memory backend."""
        if self.persistence_backend == "memory":
            return None
        if self.database_url_override:
            return self.database_url_override
        if self.persistence_backend == "sqlite":
            return f"sqlite:///{self.sqlite_db_path}"
        url = URL.create(
            "postgresql+psycopg",
            username=self.db_username,
            password=self.db_password,
            host=self.db_host,
            port=self.db_port,
            database=self.db_database,
            query={"sslmode": self.db_sslmode} if self.db_sslmode else {},
        )
        return url.render_as_string(hide_password=False)


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_bool(value: str, default: bool = False) -> bool:
    v = value.strip().lower()
    if v in {"1", "true", "yes", "on"}:
        return True
    if v in {"0", "false", "no", "off"}:
        return False
    return default


def _parse_int(value: str, default: int) -> int:
    try:
        return int(value.strip())
    except ValueError:
        return default


def _parse_origins(origins_value: str) -> List[str]:
    """
    Parse CORS origins from env. Supports:
    - '*' to allow all origins
    - Comma-separated list of origins
    """
    value = origins_value.strip()
    if value == "*":
        return ["*"]
    return [o.strip() for o in value.split(",") if o.strip()]


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return application settings loaded from environment variables."""
    app_env = _get_env("APP_ENV", "development").strip().lower()
    if app_env not in {"development", "production"}:
        app_env = "development"
    default_backend = "postgres" if app_env == "production" else "sqlite"

    backend = _get_env("PERSISTENCE_BACKEND", default_backend).strip().lower()
    if backend not in BACKENDS:
        backend = default_backend

    return Settings(
        app_env=app_env,
        persistence_backend=backend,
        sqlite_db_path=_get_env("SQLITE_DB_PATH", "./data/tasks.db").strip(),
        db_host=_get_env("DB_HOST", "localhost").strip(),
        db_port=_parse_int(_get_env("DB_PORT", "5432"), 5432),
        db_username=os.getenv("DB_USERNAME") or None,
        db_password=os.getenv("DB_PASSWORD") or None,
        db_database=_get_env("DB_DATABASE", "tasks").strip(),
        db_sslmode=_get_env("DB_SSLMODE", "require").strip(),
        db_echo=_parse_bool(_get_env("DB_ECHO", "true" if app_env == "development" else "false")),
        database_url_override=os.getenv("DATABASE_URL") or None,
        cors_allow_origins=_parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*")),
        log_level=_get_env("LOG_LEVEL", "INFO").strip().upper(),
        host=_get_env("HOST", "0.0.0.0").strip(),
        port=_parse_int(_get_env("PORT", "3001"), 3001),
    )
