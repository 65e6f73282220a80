from __future__ import annotations

import logging
from typing import Any, List, Optional, Union

import httpx

from .types import Task, TaskPayload

logger = logging.getLogger(__name__)

PayloadLike = Union[TaskPayload, dict]


class ApiError(Exception):
    """A backend call failed; `message` is suitable for showing to the user."""

    def __init__(self, status_code: Optional[int], message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message

    @property
    def not_found(self) -> bool:
        return self.status_code == 404


# PUBLIC_INTERFACE
class TaskApiClient:
    """
    Thin typed wrapper over the Task Manager REST API.

    Args:
        base_url: Root URL of the backend, e.g. 'http://localhost:3001'.
        http: Pre-built httpx.Client (tests pass FastAPI's TestClient here).
        timeout: Request timeout in seconds for the client built here.
    """

    def __init__(self, base_url: str = "http://localhost:3001", http: Optional[httpx.Client] = None, timeout: float = 10.0) -> None:
        self._owns_http = http is None
        self._http = http or httpx.Client(base_url=base_url.rstrip("/"), timeout=timeout)

    def __enter__(self) -> "TaskApiClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    def _request(self, method: str, endpoint: str, payload: Optional[PayloadLike] = None) -> Any:
        body = payload.to_json() if isinstance(payload, TaskPayload) else payload
        try:
            response = self._http.request(
                method,
                endpoint,
                json=body,
                headers={"Content-Type": "application/json"},
            )
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s", method, endpoint, e)
            raise ApiError(None, "Network error") from e

        if response.is_error:
            raise ApiError(response.status_code, self._error_message(response))

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            data = response.json()
        except ValueError:
            data = None
        if isinstance(data, dict) and data.get("error"):
            return str(data["error"])
        return f"HTTP error! status: {response.status_code}"

    def get_tasks(self) -> List[Task]:
        return [Task.model_validate(t) for t in self._request("GET", "/tasks")]

    def get_task(self, task_id: str) -> Task:
        return Task.model_validate(self._request("GET", f"/tasks/{task_id}"))

    def create_task(self, data: PayloadLike) -> Task:
        return Task.model_validate(self._request("POST", "/tasks", data))

    def update_task(self, task_id: str, data: PayloadLike) -> Task:
        return Task.model_validate(self._request("PUT", f"/tasks/{task_id}", data))

    def delete_task(self, task_id: str) -> None:
        self._request("DELETE", f"/tasks/{task_id}")
