import os
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Default to the memory backend so importing the apps never touches the filesystem
os.environ.setdefault("PERSISTENCE_BACKEND", "memory")

from src.api.db import SQLRepository  # noqa: E402
from src.api.main import create_app  # noqa: E402
from src.api.repositories import InMemoryRepository  # noqa: E402
from src.api.settings import get_settings  # noqa: E402
from src.web.client import TaskApiClient  # noqa: E402
from src.web.main import create_app as create_web_app  # noqa: E402
from src.web.settings import get_web_settings  # noqa: E402


@pytest.fixture()
def repo() -> InMemoryRepository:
    return InMemoryRepository()


@pytest.fixture()
def client(repo: InMemoryRepository):
    """API client over a fresh in-memory store."""
    app = create_app(get_settings(), repository=repo)
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def sqlite_repo(tmp_path: Path):
    r = SQLRepository(f"sqlite:///{tmp_path / 'tasks.db'}")
    yield r
    r.close()


@pytest.fixture()
def sqlite_client(sqlite_repo: SQLRepository):
    """API client over an SQLite file in tmp_path."""
    app = create_app(get_settings(), repository=sqlite_repo)
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def api(client: TestClient) -> TaskApiClient:
    """REST client talking to the in-process API."""
    return TaskApiClient(http=client)


@pytest.fixture()
def web(api: TaskApiClient):
    """Frontend wired to the in-process API."""
    app = create_web_app(api=api, settings=get_web_settings())
    with TestClient(app) as c:
        yield c
