"""Shared dependencies for API routes."""

from __future__ import annotations

from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.db.session import session_scope
from taskhub.ingestion.service import IngestionService


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Yield an async DB session (commit on success, rollback on error)."""
    async for session in session_scope(request.app.state.session_factory):
        yield session


def get_ingestion(request: Request) -> IngestionService:
    """The ingestion core wired at startup."""
    return request.app.state.ingestion
