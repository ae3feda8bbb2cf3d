"""Task CRUD endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.api.deps import get_db
from taskhub.api.schemas import (
    TaskCreate,
    TaskListResponse,
    TaskReplace,
    TaskResponse,
    TaskUpdate,
)
from taskhub.core.logging import get_logger
from taskhub.repositories import tasks as task_repository

logger = get_logger(__name__)

router = APIRouter(prefix="/tasks", tags=["Tasks"])


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")


@router.get("", response_model=TaskListResponse)
async def list_tasks(
    completed: bool | None = None,
    limit: int = 100,
    offset: int = 0,
    db: AsyncSession = Depends(get_db),
) -> TaskListResponse:
    """List tasks, optionally filtered by completion."""
    tasks = await task_repository.list_tasks(db, completed=completed, offset=offset, limit=limit)
    return TaskListResponse(
        data=[TaskResponse.model_validate(t) for t in tasks],
        total=await task_repository.count_tasks(db, completed=completed),
    )


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(task_id: int, db: AsyncSession = Depends(get_db)) -> TaskResponse:
    task = await task_repository.get_task_by_id(db, task_id)
    if task is None:
        raise _not_found()
    return TaskResponse.model_validate(task)


@router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(payload: TaskCreate, db: AsyncSession = Depends(get_db)) -> TaskResponse:
    """Create a task.  An explicit id that already exists is a 409."""
    if payload.id is not None and await task_repository.get_task_by_id(db, payload.id):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Task id already exists")

    task = await task_repository.create_task(
        db,
        title=payload.title,
        description=payload.description,
        completed=payload.completed,
        task_id=payload.id,
    )
    logger.info("Task created", task_id=task.id)
    return TaskResponse.model_validate(task)


@router.put("/{task_id}", response_model=TaskResponse)
async def replace_task(
    task_id: int,
    payload: TaskReplace,
    db: AsyncSession = Depends(get_db),
) -> TaskResponse:
    """Overwrite title, description and completed of an existing task."""
    task = await task_repository.update_task(db, task_id, **payload.model_dump())
    if task is None:
        raise _not_found()
    return TaskResponse.model_validate(task)


@router.patch("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: int,
    payload: TaskUpdate,
    db: AsyncSession = Depends(get_db),
) -> TaskResponse:
    """Change only the fields present in the request body."""
    task = await task_repository.update_task(db, task_id, **payload.model_dump(exclude_unset=True))
    if task is None:
        raise _not_found()
    return TaskResponse.model_validate(task)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(task_id: int, db: AsyncSession = Depends(get_db)) -> Response:
    if not await task_repository.delete_task(db, task_id):
        raise _not_found()
    logger.info("Task deleted", task_id=task_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
