from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from src.api.logging_setup import setup_logging

from .client import ApiError, TaskApiClient
from .settings import WebSettings, get_web_settings
from .types import STATUS_LABELS, Task, TaskStatus

logger = logging.getLogger(__name__)

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))

FILTERS = ["all"] + [s.value for s in TaskStatus]


def get_api(request: Request) -> TaskApiClient:
    return request.app.state.api


def _list_url(status_filter: str) -> str:
    return "/" if status_filter == "all" else f"/?status={status_filter}"


def _render_list(
    request: Request,
    api: TaskApiClient,
    status_filter: str,
    error: Optional[str] = None,
) -> HTMLResponse:
    """
    Fetch every task and filter by status here; the API has no server-side filtering.
    """
    tasks = []
    try:
        tasks = api.get_tasks()
    except ApiError as e:
        logger.error("Error fetching tasks: %s", e.message)
        error = error or "Failed to fetch tasks"

    if status_filter != "all":
        tasks = [t for t in tasks if t.status.value == status_filter]

    return templates.TemplateResponse(
        request,
        "list.html",
        {
            "tasks": tasks,
            "active_filter": status_filter,
            "filters": FILTERS,
            "labels": {s.value: label for s, label in STATUS_LABELS.items()},
            "error": error,
        },
    )


def _task_values(task: Task) -> Dict[str, Any]:
    return {
        "title": task.title,
        "description": task.description or "",
        "status": task.status.value,
        "due_date": task.due_date.isoformat() if task.due_date else "",
    }


def _form_values(title: str, description: str, status: str, due_date: str) -> Dict[str, Any]:
    return {"title": title, "description": description, "status": status, "due_date": due_date}


def _payload(values: Dict[str, Any]) -> Dict[str, Any]:
    # Empty optional inputs are sent as null, which clears them on update.
    return {
        "title": values["title"].strip(),
        "description": values["description"].strip() or None,
        "status": values["status"],
        "dueDate": values["due_date"].strip() or None,
    }


def _render_form(
    request: Request,
    mode: str,
    values: Optional[Dict[str, Any]],
    error: Optional[str] = None,
    task_id: Optional[str] = None,
) -> HTMLResponse:
    return templates.TemplateResponse(
        request,
        "form.html",
        {
            "mode": mode,
            "values": values,
            "task_id": task_id,
            "statuses": [(s.value, s.label) for s in TaskStatus],
            "error": error,
        },
    )


@asynccontextmanager
async def _lifespan(app: FastAPI):
    yield
    app.state.api.close()


# PUBLIC_INTERFACE
def create_app(api: Optional[TaskApiClient] = None, settings: Optional[WebSettings] = None) -> FastAPI:
    """
    Build the Task Manager web frontend.

    Args:
        api: REST client for the backend; built from settings when omitted.
        settings: Frontend settings; read from the environment when omitted.
    """
    settings = settings or get_web_settings()
    if api is None:
        api = TaskApiClient(settings.api_url, timeout=settings.api_timeout)

    app = FastAPI(title="Task Manager", docs_url=None, redoc_url=None, lifespan=_lifespan)
    app.state.api = api

    @app.get("/", response_class=HTMLResponse)
    def list_page(request: Request, status: str = "all", api: TaskApiClient = Depends(get_api)):
        status_filter = status if status in FILTERS else "all"
        return _render_list(request, api, status_filter)

    @app.post("/tasks/{task_id}/delete")
    def delete_task(
        request: Request,
        task_id: str,
        status: str = Form("all"),
        api: TaskApiClient = Depends(get_api),
    ):
        status_filter = status if status in FILTERS else "all"
        try:
            api.delete_task(task_id)
        except ApiError as e:
            logger.error("Error deleting task %s: %s", task_id, e.message)
            return _render_list(request, api, status_filter, error="Failed to delete task")
        return RedirectResponse(url=_list_url(status_filter), status_code=303)

    @app.get("/add", response_class=HTMLResponse)
    def add_page(request: Request):
        return _render_form(request, "add", _form_values("", "", TaskStatus.TODO.value, ""))

    @app.post("/add")
    def add_task(
        request: Request,
        title: str = Form(""),
        description: str = Form(""),
        status: str = Form(TaskStatus.TODO.value),
        due_date: str = Form(""),
        api: TaskApiClient = Depends(get_api),
    ):
        values = _form_values(title, description, status, due_date)
        if not title.strip():
            return _render_form(request, "add", values, error="Title is required")
        try:
            api.create_task(_payload(values))
        except ApiError as e:
            logger.error("Error creating task: %s", e.message)
            return _render_form(request, "add", values, error=f"Failed to create task: {e.message}")
        return RedirectResponse(url="/", status_code=303)

    @app.get("/edit/{task_id}", response_class=HTMLResponse)
    def edit_page(request: Request, task_id: str, api: TaskApiClient = Depends(get_api)):
        try:
            task = api.get_task(task_id)
        except ApiError as e:
            logger.error("Error fetching task %s: %s", task_id, e.message)
            message = "Task not found" if e.not_found else "Failed to fetch task"
            return _render_form(request, "edit", None, error=message, task_id=task_id)
        return _render_form(request, "edit", _task_values(task), task_id=task_id)

    @app.post("/edit/{task_id}")
    def edit_task(
        request: Request,
        task_id: str,
        title: str = Form(""),
        description: str = Form(""),
        status: str = Form(TaskStatus.TODO.value),
        due_date: str = Form(""),
        api: TaskApiClient = Depends(get_api),
    ):
        values = _form_values(title, description, status, due_date)
        if not title.strip():
            return _render_form(request, "edit", values, error="Title is required", task_id=task_id)
        try:
            api.update_task(task_id, _payload(values))
        except ApiError as e:
            logger.error("Error updating task %s: %s", task_id, e.message)
            return _render_form(
                request, "edit", values, error=f"Failed to update task: {e.message}", task_id=task_id
            )
        return RedirectResponse(url="/", status_code=303)

    return app


_settings = get_web_settings()
setup_logging(_settings.log_level)
app = create_app(settings=_settings)


def run() -> None:
    """Serve the frontend with uvicorn on WEB_HOST:WEB_PORT."""
    import uvicorn

    uvicorn.run(
        "src.web.main:app",
        host=_settings.host,
        port=_settings.port,
        log_level=_settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
