import dataclasses
import logging
import uuid
from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from src.api.main import create_app
from src.api.repositories import InMemoryRepository
from src.api.settings import get_settings


def create_task_payload(title="Test Task", description=None, status=None, due_date=None):
    payload = {"title": title}
    if description is not None:
        payload["description"] = description
    if status is not None:
        payload["status"] = status
    if due_date is not None:
        payload["dueDate"] = due_date
    return payload


def parse_ts(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def assert_task_shape(task: dict):
    for key in ["id", "title", "description", "status", "dueDate", "createdAt", "updatedAt"]:
        assert key in task
    uuid.UUID(task["id"])
    assert isinstance(task["title"], str) and task["title"]
    assert task["status"] in ("todo", "in_progress", "done")
    assert parse_ts(task["createdAt"]) <= parse_ts(task["updatedAt"])


class TestHealth:
    def test_health_check(self, client):
        res = client.get("/health")
        assert res.status_code == 200
        assert res.json() == {"status": "OK", "message": "Task Manager API is running"}

    def test_unknown_route_is_404_with_generic_body(self, client):
        res = client.get("/nope")
        assert res.status_code == 404
        assert res.json() == {"error": "Route not found"}

    def test_unsupported_method(self, client):
        res = client.patch("/tasks/abc", json={})
        assert res.status_code == 405
        assert "error" in res.json()


class TestCreate:
    def test_create_minimal_applies_defaults(self, client):
        res = client.post("/tasks", json={"title": "Buy milk"})
        assert res.status_code == 201
        task = res.json()
        assert_task_shape(task)
        assert task["title"] == "Buy milk"
        assert task["status"] == "todo"
        assert task["description"] is None
        assert task["dueDate"] is None
        assert task["createdAt"] == task["updatedAt"]

    def test_create_trims_and_keeps_all_fields(self, client):
        payload = create_task_payload(
            title="  Pay bills ", description="  Electricity  ", status="in_progress", due_date="2099-12-25"
        )
        res = client.post("/tasks", json=payload)
        assert res.status_code == 201
        task = res.json()
        assert task["title"] == "Pay bills"
        assert task["description"] == "Electricity"
        assert task["status"] == "in_progress"
        assert task["dueDate"] == "2099-12-25"

    def test_blank_description_is_stored_as_null(self, client):
        res = client.post("/tasks", json={"title": "Read", "description": "   "})
        assert res.status_code == 201
        assert res.json()["description"] is None

    def test_null_status_defaults_to_todo(self, client):
        res = client.post("/tasks", json={"title": "Read", "status": None})
        assert res.status_code == 201
        assert res.json()["status"] == "todo"

    def test_datetime_due_date_is_truncated(self, client):
        res = client.post("/tasks", json={"title": "Ship", "dueDate": "2030-03-01T13:45:00Z"})
        assert res.status_code == 201
        assert res.json()["dueDate"] == "2030-03-01"

    @pytest.mark.parametrize("title", ["", "   ", None])
    def test_blank_title_rejected(self, client, title):
        res = client.post("/tasks", json={"title": title, "description": "x"})
        assert res.status_code == 400
        body = res.json()
        assert body["error"] == "Title is required"
        assert isinstance(body["detail"], list)
        assert client.get("/tasks").json() == []

    def test_missing_title_rejected(self, client):
        res = client.post("/tasks", json={"description": "no title"})
        assert res.status_code == 400
        assert res.json()["error"] == "Title is required"
        assert client.get("/tasks").json() == []

    def test_overlong_title_rejected(self, client):
        res = client.post("/tasks", json={"title": "x" * 256})
        assert res.status_code == 400
        assert "255" in res.json()["error"]

    def test_invalid_status_rejected(self, client):
        res = client.post("/tasks", json={"title": "Valid", "status": "bogus"})
        assert res.status_code == 400
        assert res.json()["error"] == "Invalid status value"
        assert client.get("/tasks").json() == []

    def test_invalid_due_date_rejected(self, client):
        res = client.post("/tasks", json={"title": "Valid", "dueDate": "not-a-date"})
        assert res.status_code == 400
        assert res.json()["error"].startswith("Invalid dueDate format")

    def test_non_string_title_rejected(self, client):
        res = client.post("/tasks", json={"title": 42})
        assert res.status_code == 400
        assert res.json()["error"].startswith("title:")

    def test_malformed_json_rejected(self, client):
        res = client.post("/tasks", content="{not json", headers={"Content-Type": "application/json"})
        assert res.status_code == 400
        assert "error" in res.json()

    def test_create_trailing_slash(self, client):
        res = client.post("/tasks/", json={"title": "x"})
        assert res.status_code == 201
        assert res.json()["title"] == "x"
        assert len(client.get("/tasks").json()) == 1


class TestReadAndList:
    def test_round_trip_create_then_get(self, client):
        created = client.post("/tasks", json=create_task_payload(title="Read book", due_date="2031-01-02")).json()
        res = client.get(f"/tasks/{created['id']}")
        assert res.status_code == 200
        assert res.json() == created

    def test_get_unknown_id(self, client):
        res = client.get(f"/tasks/{uuid.uuid4()}")
        assert res.status_code == 404
        assert res.json() == {"error": "Task not found"}

    def test_list_is_newest_first(self, client):
        a = client.post("/tasks", json={"title": "A"}).json()
        b = client.post("/tasks", json={"title": "B"}).json()
        ids = [t["id"] for t in client.get("/tasks").json()]
        assert ids == [b["id"], a["id"]]

    def test_list_trailing_slash(self, client):
        client.post("/tasks", json={"title": "A"})
        res = client.get("/tasks/")
        assert res.status_code == 200
        assert len(res.json()) == 1


class TestUpdate:
    def test_status_only_update_leaves_other_fields(self, client):
        created = client.post(
            "/tasks", json=create_task_payload(title="Write", description="Draft", due_date="2030-05-05")
        ).json()
        res = client.put(f"/tasks/{created['id']}", json={"status": "done"})
        assert res.status_code == 200
        updated = res.json()
        assert updated["status"] == "done"
        for key in ("id", "title", "description", "dueDate", "createdAt"):
            assert updated[key] == created[key]
        assert parse_ts(updated["updatedAt"]) > parse_ts(created["updatedAt"])

    def test_explicit_null_and_empty_clear_optional_fields(self, client):
        created = client.post(
            "/tasks", json=create_task_payload(title="Write", description="Draft", due_date="2030-05-05")
        ).json()
        res = client.put(f"/tasks/{created['id']}", json={"description": "", "dueDate": None})
        assert res.status_code == 200
        updated = res.json()
        assert updated["description"] is None
        assert updated["dueDate"] is None
        assert updated["title"] == "Write"

    def test_update_trims_title(self, client):
        created = client.post("/tasks", json={"title": "Old"}).json()
        res = client.put(f"/tasks/{created['id']}", json={"title": "  New  "})
        assert res.json()["title"] == "New"

    def test_empty_body_only_refreshes_updated_at(self, client):
        created = client.post("/tasks", json={"title": "Same"}).json()
        updated = client.put(f"/tasks/{created['id']}", json={}).json()
        assert updated["title"] == "Same"
        assert parse_ts(updated["updatedAt"]) > parse_ts(created["updatedAt"])

    @pytest.mark.parametrize("status", ["bogus", None])
    def test_invalid_status_rejected(self, client, status):
        created = client.post("/tasks", json={"title": "Keep"}).json()
        res = client.put(f"/tasks/{created['id']}", json={"status": status})
        assert res.status_code == 400
        assert res.json()["error"] == "Invalid status value"
        assert client.get(f"/tasks/{created['id']}").json() == created

    def test_blank_title_rejected(self, client):
        created = client.post("/tasks", json={"title": "Keep"}).json()
        res = client.put(f"/tasks/{created['id']}", json={"title": "  "})
        assert res.status_code == 400
        assert res.json()["error"] == "Title cannot be empty"

    def test_update_unknown_id(self, client):
        res = client.put(f"/tasks/{uuid.uuid4()}", json={"status": "done"})
        assert res.status_code == 404
        assert res.json() == {"error": "Task not found"}
        assert client.get("/tasks").json() == []

    def test_invalid_body_on_unknown_id_is_400(self, client):
        res = client.put(f"/tasks/{uuid.uuid4()}", json={"status": "bogus"})
        assert res.status_code == 400
        assert res.json()["error"] == "Invalid status value"
        assert client.get("/tasks").json() == []


class TestDelete:
    def test_delete_then_get_and_delete_again(self, client):
        tid = client.post("/tasks", json={"title": "ToDelete"}).json()["id"]

        res_del = client.delete(f"/tasks/{tid}")
        assert res_del.status_code == 204
        assert res_del.text == ""

        assert client.get(f"/tasks/{tid}").status_code == 404
        res_again = client.delete(f"/tasks/{tid}")
        assert res_again.status_code == 404
        assert res_again.json() == {"error": "Task not found"}

    def test_delete_leaves_other_tasks(self, client):
        keep = client.post("/tasks", json={"title": "Keep"}).json()
        drop = client.post("/tasks", json={"title": "Drop"}).json()
        client.delete(f"/tasks/{drop['id']}")
        assert [t["id"] for t in client.get("/tasks").json()] == [keep["id"]]


class BrokenRepository(InMemoryRepository):
    def list(self):
        raise OperationalError("SELECT * FROM tasks", {}, Exception("database is locked"))


class TestInternalErrors:
    def test_store_failure_is_generic_500(self):
        app = create_app(get_settings(), repository=BrokenRepository())
        with TestClient(app, raise_server_exceptions=False) as c:
            res = c.get("/tasks")
        assert res.status_code == 500
        assert res.json() == {"error": "Internal server error"}
        assert "locked" not in res.text

    def test_failed_request_is_still_logged(self, caplog):
        app = create_app(get_settings(), repository=BrokenRepository())
        with caplog.at_level(logging.INFO, logger="src.api.main"):
            with TestClient(app, raise_server_exceptions=False) as c:
                c.get("/tasks")
        messages = [r.getMessage() for r in caplog.records if r.name == "src.api.main"]
        assert any(m.startswith("GET /tasks -> 500") for m in messages)


class TestStartup:
    def test_storage_is_opened_at_startup_not_at_build(self, tmp_path):
        db_file = tmp_path / "data" / "tasks.db"
        settings = dataclasses.replace(
            get_settings(),
            persistence_backend="sqlite",
            database_url_override=None,
            sqlite_db_path=str(db_file),
        )
        app = create_app(settings)
        assert app.state.repository is None
        assert not db_file.exists()

        with TestClient(app) as c:
            assert c.post("/tasks", json={"title": "Persisted"}).status_code == 201
        assert db_file.exists()
