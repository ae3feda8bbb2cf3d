#!/usr/bin/env python3
"""
Re-run ingestion for files left in the upload directory.

Files stay behind when an ingestion run fails (bad payload, database
down, ...).  After fixing the cause, an operator can push them through
the same worker the API uses, without Docker or a running server.

Usage:
    cd backend
    python -m scripts.reprocess_orphans                 # every stored upload in UPLOAD_DIR
    python -m scripts.reprocess_orphans a.json b.json   # specific files
"""

import asyncio
import sys
from pathlib import Path

from taskhub.core.config import settings
from taskhub.core.logging import setup_logging
from taskhub.db.session import build_engine, build_session_factory, create_tables
from taskhub.ingestion.events import IngestionEvent
from taskhub.ingestion.files import FileLifecycleManager
from taskhub.ingestion.gateway import SqlAlchemyTaskGateway
from taskhub.ingestion.outcome_log import FileOutcomeLog
from taskhub.ingestion.worker import IngestionWorker


def candidates(args: list[str], upload_dir: str | Path) -> list[Path]:
    """Files named on the command line, else every stored upload in `upload_dir`."""
    if args:
        return [Path(a) for a in args]
    upload_dir = Path(upload_dir)
    if not upload_dir.is_dir():
        return []
    # Uploads keep their original suffix; `.part` files are unfinished writes.
    return sorted(p for p in upload_dir.iterdir() if p.is_file() and p.suffix != ".part")


async def reprocess(paths: list[Path]) -> int:
    """Run each file through the worker.  Returns the number of failures."""
    engine = build_engine(settings.DATABASE_URL)
    await create_tables(engine)
    sink = FileOutcomeLog(Path(settings.LOG_DIR) / "ingestion.log")
    files = FileLifecycleManager(settings.UPLOAD_DIR, max_upload_bytes=settings.MAX_UPLOAD_BYTES)
    worker = IngestionWorker(
        SqlAlchemyTaskGateway(build_session_factory(engine)),
        files,
        sink,
        persist_timeout_seconds=settings.INGESTION_PERSIST_TIMEOUT_SECONDS,
    )

    failures = 0
    try:
        for path in paths:
            key = files.register(path)
            outcome = await worker.handle(IngestionEvent(file_path=key))
            if outcome is None:
                continue
            if not outcome.succeeded:
                failures += 1
            print(f"  {outcome.state.value:<6} {outcome.detail}")
    finally:
        sink.close()
        await engine.dispose()
    return failures


def main() -> int:
    setup_logging("WARNING")
    paths = candidates(sys.argv[1:], settings.UPLOAD_DIR)
    if not paths:
        print("Nothing to reprocess.")
        return 0
    print(f"Reprocessing {len(paths)} file(s)...")
    failures = asyncio.run(reprocess(paths))
    print(f"Done: {len(paths) - failures} succeeded, {failures} failed.")
    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
