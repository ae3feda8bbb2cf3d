# tests/conftest.py

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio

from taskhub.db.session import build_engine, build_session_factory, create_tables
from taskhub.ingestion.files import FileLifecycleManager

from .fakes import FakeTaskGateway, MemorySink


@pytest.fixture()
def upload_dir(tmp_path: Path) -> Path:
    path = tmp_path / "uploads"
    path.mkdir()
    return path


@pytest.fixture()
def files(upload_dir: Path) -> FileLifecycleManager:
    return FileLifecycleManager(upload_dir, max_upload_bytes=1024 * 1024)


@pytest.fixture()
def gateway() -> FakeTaskGateway:
    return FakeTaskGateway()


@pytest.fixture()
def sink() -> MemorySink:
    return MemorySink()


@pytest.fixture()
def write_upload(upload_dir: Path) -> Callable[..., Path]:
    """
    Write a payload into the upload directory and return its path.

    Lists/dicts are JSON-encoded; bytes/str are written verbatim.
    """
    counter = {"n": 0}

    def _write(payload: Any, name: str | None = None) -> Path:
        counter["n"] += 1
        path = upload_dir / (name or f"upload-{counter['n']}.json")
        if isinstance(payload, bytes):
            path.write_bytes(payload)
        elif isinstance(payload, str):
            path.write_text(payload, encoding="utf-8")
        else:
            path.write_text(json.dumps(payload), encoding="utf-8")
        return path

    return _write


@pytest_asyncio.fixture()
async def session_factory(tmp_path: Path):
    """
    Real SQLite task store per test.

    The gateway's correctness (atomic upsert, last-writer-wins) is part
    of what we want to test, so it does not get faked here.
    """
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'tasks.sqlite3'}")
    await create_tables(engine)
    try:
        yield build_session_factory(engine)
    finally:
        await engine.dispose()
