# tests/test_files.py

from __future__ import annotations

import io
import os
from pathlib import Path

import pytest

from taskhub.core.constants import FileDisposition
from taskhub.ingestion import files as files_module
from taskhub.ingestion.files import FileLifecycleManager, UploadTooLarge


@pytest.mark.asyncio
async def test_delete_removes_file_once(files: FileLifecycleManager, write_upload, monkeypatch) -> None:
    path = write_upload([])
    files.register(path)

    calls: list[str] = []
    real_remove = os.remove

    def counting_remove(p):
        calls.append(p)
        real_remove(p)

    monkeypatch.setattr(files_module.os, "remove", counting_remove)

    assert await files.delete(path) is True
    assert await files.delete(path) is False

    assert not path.exists()
    assert len(calls) == 1
    assert files.disposition(path) == FileDisposition.DELETED


@pytest.mark.asyncio
async def test_failed_delete_is_reported_not_raised(files: FileLifecycleManager, upload_dir: Path) -> None:
    ghost = upload_dir / "never-written.json"
    files.register(ghost)

    assert await files.delete(ghost) is False

    assert "FileNotFoundError" in (files.last_error(ghost) or "")
    assert files.disposition(ghost) == FileDisposition.ORPHANED


def test_retain_does_not_override_a_terminal_disposition(files: FileLifecycleManager, upload_dir: Path) -> None:
    path = upload_dir / "x.json"
    files.register(path)

    assert files.retain(path, reason="InvalidIdentifier") is True
    assert files.retain(path, reason="again") is False
    assert files.disposition(path) == FileDisposition.ORPHANED


@pytest.mark.asyncio
async def test_register_starts_a_new_cycle_for_orphaned_files(files: FileLifecycleManager, write_upload) -> None:
    path = write_upload([])
    files.register(path)
    files.retain(path, reason="PersistenceFailure")

    files.register(path)
    assert files.disposition(path) == FileDisposition.OWNED
    assert await files.delete(path) is True


def test_store_upload_writes_and_registers(files: FileLifecycleManager, upload_dir: Path) -> None:
    stored = files.store_upload(io.BytesIO(b"[]"), "tasks.json")

    assert stored.parent == upload_dir.absolute()
    assert stored.suffix == ".json"
    assert stored.read_bytes() == b"[]"
    assert files.disposition(stored) == FileDisposition.OWNED
    assert not list(upload_dir.glob("*.part"))


def test_store_upload_sanitizes_suffix(files: FileLifecycleManager) -> None:
    stored = files.store_upload(io.BytesIO(b"[]"), "../../etc/passwd; rm -rf")
    assert stored.suffix == ".json"


def test_store_upload_enforces_size_limit(upload_dir: Path) -> None:
    small = FileLifecycleManager(upload_dir, max_upload_bytes=8)

    with pytest.raises(UploadTooLarge):
        small.store_upload(io.BytesIO(b"x" * 64), "big.json")

    assert list(upload_dir.iterdir()) == []
