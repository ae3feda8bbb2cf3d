"""
Models package — re-exports Base and all models.

Import models here so `Base.metadata.create_all` picks up every table.
"""

from taskhub.db.models.base import Base
from taskhub.db.models.task import Task

__all__ = [
    "Base",
    "Task",
]
