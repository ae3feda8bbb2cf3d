"""Task request/response schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from taskhub.core.constants import MAX_TASK_ID, MIN_TASK_ID


class TaskCreate(BaseModel):
    """Request payload for POST /tasks."""

    id: int | None = Field(default=None, ge=MIN_TASK_ID, le=MAX_TASK_ID)
    title: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    completed: bool = False


class TaskReplace(BaseModel):
    """Request payload for PUT /tasks/{id} — every field is overwritten."""

    title: str = Field(..., min_length=1, max_length=255)
    description: str
    completed: bool


class TaskUpdate(BaseModel):
    """Request payload for PATCH /tasks/{id} — only provided fields change."""

    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    completed: bool | None = None


class TaskResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: str
    completed: bool
    extra: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime


class TaskListResponse(BaseModel):
    data: list[TaskResponse]
    total: int


class UploadAccepted(BaseModel):
    """Returned by POST /uploads once the file is queued for ingestion."""

    message: str = "File uploaded and processing started."
    file_name: str
