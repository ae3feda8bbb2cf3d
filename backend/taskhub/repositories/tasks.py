"""
Task repository containing all data-access operations for the tasks table.

Repository rules:
- Pure data-access logic only
- Every function receives AsyncSession explicitly
- Functions flush, but never commit
"""

from __future__ import annotations

from typing import Any, Sequence

from sqlalchemy import func, select, text
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.db.models.base import utcnow
from taskhub.db.models.task import Task

# Rows per INSERT statement; keeps SQLite under its bound-parameter limit.
UPSERT_CHUNK_SIZE = 500

_MUTABLE_FIELDS = {"title", "description", "completed", "extra"}


async def create_task(
    db: AsyncSession,
    *,
    title: str,
    description: str = "",
    completed: bool = False,
    task_id: int | None = None,
) -> Task:
    """Insert a new task. `task_id` is optional; the store assigns one otherwise."""
    task = Task(title=title, description=description, completed=completed, extra={})
    if task_id is not None:
        task.id = task_id
    db.add(task)
    await db.flush()
    return task


async def get_task_by_id(db: AsyncSession, task_id: int) -> Task | None:
    """Fetch a task by primary key."""
    return await db.get(Task, task_id)


async def list_tasks(
    db: AsyncSession,
    *,
    completed: bool | None = None,
    offset: int = 0,
    limit: int = 100,
) -> list[Task]:
    """List tasks ordered by id, optionally filtered by completion."""
    stmt = select(Task).order_by(Task.id)
    if completed is not None:
        stmt = stmt.where(Task.completed == completed)
    stmt = stmt.offset(offset).limit(limit)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def count_tasks(db: AsyncSession, *, completed: bool | None = None) -> int:
    """Number of tasks matching the filter, ignoring pagination."""
    stmt = select(func.count()).select_from(Task)
    if completed is not None:
        stmt = stmt.where(Task.completed == completed)
    result = await db.execute(stmt)
    return int(result.scalar_one())


async def update_task(
    db: AsyncSession,
    task_id: int,
    **fields: object,
) -> Task | None:
    """Update mutable task fields (None values are ignored) and return the row."""
    task = await get_task_by_id(db, task_id)
    if task is None:
        return None

    for key, value in fields.items():
        if key not in _MUTABLE_FIELDS or value is None:
            continue
        setattr(task, key, value)

    await db.flush()
    return task


async def delete_task(db: AsyncSession, task_id: int) -> bool:
    """Hard-delete a task. Returns True if a row was deleted."""
    task = await get_task_by_id(db, task_id)
    if task is None:
        return False
    await db.delete(task)
    await db.flush()
    return True


def _insert_for(dialect_name: str):
    """Return the dialect's INSERT construct supporting ON CONFLICT."""
    if dialect_name == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect_name == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        raise NotImplementedError(f"Upsert is not supported on dialect '{dialect_name}'")
    return insert


async def upsert_tasks(db: AsyncSession, records: Sequence[dict[str, Any]]) -> int:
    """
    Insert-or-overwrite tasks keyed by id.

    Each record must carry `id`, `title`, `description`, `completed`;
    an optional `extra` mapping is stored as-is.  On conflict every
    field except `created_at` is overwritten (last writer wins, no merge).
    Duplicate ids within `records` collapse to their last occurrence.

    Returns the number of distinct ids written.  Runs inside the caller's
    transaction, so a failure leaves the table untouched.
    """
    by_id: dict[int, dict[str, Any]] = {}
    for record in records:
        by_id[int(record["id"])] = record
    if not by_id:
        return 0

    dialect_name = db.get_bind().dialect.name
    insert = _insert_for(dialect_name)
    now = utcnow()

    rows = [
        {
            "id": task_id,
            "title": record["title"],
            "description": record["description"],
            "completed": record["completed"],
            "extra": dict(record.get("extra") or {}),
            "created_at": now,
            "updated_at": now,
        }
        for task_id, record in by_id.items()
    ]

    for start in range(0, len(rows), UPSERT_CHUNK_SIZE):
        stmt = insert(Task).values(rows[start:start + UPSERT_CHUNK_SIZE])
        stmt = stmt.on_conflict_do_update(
            index_elements=["id"],
            set_={
                "title": stmt.excluded.title,
                "description": stmt.excluded.description,
                "completed": stmt.excluded.completed,
                "extra": stmt.excluded.extra,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        await db.execute(stmt)

    if dialect_name == "postgresql":
        # Explicit ids bypass the serial sequence; move it past the max id
        # so later inserts without an id do not collide.
        await db.execute(text(
            "SELECT setval(pg_get_serial_sequence('tasks', 'id'), "
            "GREATEST((SELECT MAX(id) FROM tasks), 1))"
        ))

    return len(rows)
