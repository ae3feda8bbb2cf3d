"""
FileLifecycleManager — owns uploaded files from hand-off to disposal.

    store_upload() / register()  ->  OWNED
    delete()                     ->  DELETED   (success path)
    retain()                     ->  ORPHANED  (failure path, left for an operator)

A path gets at most one deletion attempt and at most one terminal
disposition per ownership cycle; later calls are logged and ignored.
delete() never raises into the caller.

All bookkeeping happens on the event loop thread; only the blocking
filesystem calls are pushed to worker threads.
"""

from __future__ import annotations

import asyncio
import os
import re
import uuid
from collections import OrderedDict
from pathlib import Path
from typing import BinaryIO

from taskhub.core.constants import FileDisposition
from taskhub.core.logging import get_logger

logger = get_logger(__name__)

_TERMINAL = (FileDisposition.DELETED, FileDisposition.ORPHANED)
_SAFE_SUFFIX = re.compile(r"\.[A-Za-z0-9]{1,10}")
_CHUNK_SIZE = 64 * 1024


class UploadTooLarge(ValueError):
    """The uploaded stream exceeded the configured size limit."""

    def __init__(self, limit: int) -> None:
        self.limit = limit
        super().__init__(f"Upload exceeds {limit} bytes")


class FileLifecycleManager:
    """Tracks the disposition of every uploaded file handed to the core."""

    # Oldest entries are forgotten past this many tracked paths.
    HISTORY_LIMIT = 10_000

    def __init__(self, upload_dir: str | Path, *, max_upload_bytes: int = 10 * 1024 * 1024) -> None:
        self.upload_dir = Path(upload_dir).absolute()
        self.max_upload_bytes = max_upload_bytes
        self._dispositions: OrderedDict[str, FileDisposition] = OrderedDict()
        self._delete_attempted: set[str] = set()
        self._errors: dict[str, str] = {}

    @staticmethod
    def key(path: str | os.PathLike[str]) -> str:
        """Canonical absolute form of `path` used for tracking."""
        return os.path.abspath(os.fspath(path))

    # ─── Queries ───────────────────────────────────────

    def disposition(self, path: str | os.PathLike[str]) -> FileDisposition | None:
        return self._dispositions.get(self.key(path))

    def last_error(self, path: str | os.PathLike[str]) -> str | None:
        """Error text of the failed deletion attempt for `path`, if any."""
        return self._errors.get(self.key(path))

    # ─── Ownership ─────────────────────────────────────

    def ensure_upload_dir(self) -> Path:
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        return self.upload_dir

    def store_upload(self, stream: BinaryIO, original_filename: str | None = None) -> Path:
        """
        Copy `stream` into the upload directory under a unique name and
        take ownership of it.  Blocking; call it from a worker thread.

        The file is fsync'd and renamed into place, so the returned path
        always refers to a complete upload.
        """
        self.ensure_upload_dir()
        suffix = Path(original_filename or "").suffix
        if not _SAFE_SUFFIX.fullmatch(suffix):
            suffix = ".json"

        final_path = self.upload_dir / f"{uuid.uuid4().hex}{suffix}"
        partial_path = final_path.with_name(final_path.name + ".part")

        written = 0
        try:
            with open(partial_path, "wb") as out:
                for chunk in iter(lambda: stream.read(_CHUNK_SIZE), b""):
                    written += len(chunk)
                    if written > self.max_upload_bytes:
                        raise UploadTooLarge(self.max_upload_bytes)
                    out.write(chunk)
                out.flush()
                os.fsync(out.fileno())
            os.replace(partial_path, final_path)
        except BaseException:
            if partial_path.exists():
                partial_path.unlink()
            raise

        self.register(final_path)
        logger.info("Upload stored", path=str(final_path), size_bytes=written)
        return final_path

    def register(self, path: str | os.PathLike[str]) -> str:
        """Take ownership of `path`; starts a new ownership cycle."""
        key = self.key(path)
        if self._dispositions.get(key) == FileDisposition.OWNED:
            return key
        self._delete_attempted.discard(key)
        self._errors.pop(key, None)
        self._set(key, FileDisposition.OWNED)
        return key

    # ─── Terminal dispositions ─────────────────────────

    async def delete(self, path: str | os.PathLike[str]) -> bool:
        """
        Remove the file.  Returns True on success.

        Never raises: a failed removal is logged, remembered in
        last_error(), and the file is marked ORPHANED.
        """
        key = self.key(path)
        log = logger.bind(path=key)

        current = self._dispositions.get(key)
        if current in _TERMINAL or key in self._delete_attempted:
            log.warning("Deletion skipped, already disposed", disposition=current)
            return False
        self._delete_attempted.add(key)

        try:
            await asyncio.to_thread(os.remove, key)
        except OSError as exc:
            self._errors[key] = f"{type(exc).__name__}: {exc}"
            self._set(key, FileDisposition.ORPHANED)
            log.error("File deletion failed", error=self._errors[key])
            return False

        self._set(key, FileDisposition.DELETED)
        log.info("File deleted")
        return True

    def retain(self, path: str | os.PathLike[str], reason: str) -> bool:
        """Leave the file on disk for an operator.  Returns False if already disposed."""
        key = self.key(path)
        current = self._dispositions.get(key)
        if current in _TERMINAL:
            logger.debug("Retain ignored, already disposed", path=key, disposition=current)
            return False
        self._set(key, FileDisposition.ORPHANED)
        logger.warning("File retained for inspection", path=key, reason=reason)
        return True

    # ─── Internals ─────────────────────────────────────

    def _set(self, key: str, disposition: FileDisposition) -> None:
        self._dispositions[key] = disposition
        self._dispositions.move_to_end(key)
        while len(self._dispositions) > self.HISTORY_LIMIT:
            old_key, _ = self._dispositions.popitem(last=False)
            self._delete_attempted.discard(old_key)
            self._errors.pop(old_key, None)
