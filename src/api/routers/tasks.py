from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from ..repositories import Repository
from ..schemas import ErrorOut, TaskCreate, TaskOut, TaskUpdate

router = APIRouter(
    prefix="/tasks",
    tags=["tasks"],
)

TASK_NOT_FOUND = "Task not found"


def get_repository(request: Request) -> Repository:
    """
    Dependency returning the repository built once at application startup.
    """
    return request.app.state.repository


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[TaskOut],
    summary="List Tasks",
    description="Return every task, newest first. Filtering is left to the client.",
    responses={500: {"model": ErrorOut, "description": "Internal server error"}},
)
def list_tasks(repo: Repository = Depends(get_repository)) -> List[TaskOut]:
    return [TaskOut(**t) for t in repo.list()]


# PUBLIC_INTERFACE
@router.get(
    "/{task_id}",
    response_model=TaskOut,
    summary="Get Task",
    description="Get a single task by ID.",
    responses={
        404: {"model": ErrorOut, "description": "Task not found"},
        500: {"model": ErrorOut, "description": "Internal server error"},
    },
)
def get_task(task_id: str, repo: Repository = Depends(get_repository)) -> TaskOut:
    """
    Retrieve a single task by its ID.
    """
    item = repo.get(task_id)
    if not item:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=TASK_NOT_FOUND)
    return TaskOut(**item)


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=TaskOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create Task",
    description="Create a new task and return the created resource.",
    responses={
        400: {"model": ErrorOut, "description": "Missing/invalid title, status or dueDate"},
        500: {"model": ErrorOut, "description": "Internal server error"},
    },
)
def create_task(payload: TaskCreate, repo: Repository = Depends(get_repository)) -> TaskOut:
    created = repo.create(payload)
    return TaskOut(**created)


# PUBLIC_INTERFACE
@router.put(
    "/{task_id}",
    response_model=TaskOut,
    summary="Update Task",
    description=(
        "Update the fields present in the body; omitted fields are left unchanged. "
        "A null or empty description/dueDate clears that field."
    ),
    responses={
        400: {"model": ErrorOut, "description": "Invalid title, status or dueDate"},
        404: {"model": ErrorOut, "description": "Task not found"},
        500: {"model": ErrorOut, "description": "Internal server error"},
    },
)
def update_task(task_id: str, payload: TaskUpdate, repo: Repository = Depends(get_repository)) -> TaskOut:
    """
    Partial update of a task. Always refreshes updatedAt.
    """
    updated = repo.update(task_id, payload)
    if not updated:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=TASK_NOT_FOUND)
    return TaskOut(**updated)


# PUBLIC_INTERFACE
@router.delete(
    "/{task_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete Task",
    description="Delete a task by ID.",
    responses={
        404: {"model": ErrorOut, "description": "Task not found"},
        500: {"model": ErrorOut, "description": "Internal server error"},
    },
)
def delete_task(task_id: str, repo: Repository = Depends(get_repository)) -> Response:
    """
    Delete a task. Returns 204 on success, 404 if not found.
    """
    if not repo.delete(task_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=TASK_NOT_FOUND)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
