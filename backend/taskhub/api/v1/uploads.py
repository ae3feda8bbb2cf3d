"""
Bulk upload endpoint — the ingress of the ingestion pipeline.

The handler stores the file, hands its path to the ingestion core and
answers 202 straight away.  Whether the batch is eventually written is
only recorded in the ingestion outcome log.
"""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from taskhub.api.deps import get_ingestion
from taskhub.api.schemas import UploadAccepted
from taskhub.core.logging import get_logger
from taskhub.ingestion.files import UploadTooLarge
from taskhub.ingestion.service import IngestionService

logger = get_logger(__name__)

router = APIRouter(prefix="/uploads", tags=["Uploads"])


@router.post("", response_model=UploadAccepted, status_code=status.HTTP_202_ACCEPTED)
async def upload_tasks_file(
    file: UploadFile | None = File(default=None),
    ingestion: IngestionService = Depends(get_ingestion),
) -> UploadAccepted:
    """Accept a JSON array of tasks for asynchronous ingestion."""
    if file is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file uploaded")

    try:
        stored = await asyncio.to_thread(ingestion.files.store_upload, file.file, file.filename)
    except UploadTooLarge as exc:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=str(exc),
        ) from exc
    finally:
        await file.close()

    if not ingestion.submit_for_ingestion(stored):
        await ingestion.files.delete(stored)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Ingestion queue is full, try again later",
        )

    logger.info("Upload queued for ingestion", file_name=stored.name, original_name=file.filename)
    return UploadAccepted(file_name=stored.name)
