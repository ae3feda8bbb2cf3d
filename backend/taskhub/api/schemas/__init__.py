"""API schema package."""

from taskhub.api.schemas.tasks import (
    TaskCreate,
    TaskListResponse,
    TaskReplace,
    TaskResponse,
    TaskUpdate,
    UploadAccepted,
)

__all__ = [
    "TaskCreate",
    "TaskReplace",
    "TaskUpdate",
    "TaskResponse",
    "TaskListResponse",
    "UploadAccepted",
]
