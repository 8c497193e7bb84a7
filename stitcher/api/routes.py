"""
Stitch API - accepts a job, acknowledges immediately, runs it in the background.

The outcome is never returned on the request; clients poll the metadata
store (or GET /stitch/{session_id}/status) for completion.json / error.json.
"""

import json
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query

from stitcher.core.errors import StorageError
from stitcher.schemas import StitchAccepted, StitchRequest
from stitcher.storage import BlobStore, get_storage, paths
from stitcher.workers.job_worker import process_stitch_job

logger = logging.getLogger(__name__)

router = APIRouter(tags=["stitch"])


def get_blob_store():
    """Dependency for endpoints that read the metadata store."""
    try:
        storage = get_storage()
    except StorageError as e:
        raise HTTPException(status_code=503, detail=str(e))
    try:
        yield storage
    finally:
        storage.close()


@router.post("/stitch", response_model=StitchAccepted)
def create_stitch_job(data: StitchRequest, background_tasks: BackgroundTasks):
    """
    Start a stitching job.
    The response only confirms the job was accepted.
    """
    job = data.to_job()
    logger.info(
        f"[{job.session_id}] Accepted stitch request: bucket={job.bucket}, "
        f"vertical_crop={job.vertical_crop}, has_audio={job.has_audio}, "
        f"frame_rate={job.requested_frame_rate}, sample_rate={job.sample_rate}"
    )
    background_tasks.add_task(process_stitch_job, job)
    return StitchAccepted(session_id=job.session_id)


@router.get("/stitch/{session_id}/status")
def get_stitch_status(
    session_id: str,
    bucket: str = Query(..., min_length=1),
    storage: BlobStore = Depends(get_blob_store),
):
    """Return the session's terminal document, or 404 while it is still running."""
    for path in (paths.completion_path(session_id), paths.error_path(session_id)):
        try:
            raw = storage.download(bucket, path)
        except StorageError as e:
            if e.status_code in (400, 404):
                continue
            raise HTTPException(status_code=502, detail=str(e))
        try:
            return json.loads(raw)
        except ValueError as e:
            raise HTTPException(status_code=502, detail=f"Corrupt status document {path}: {e}")

    raise HTTPException(status_code=404, detail="No terminal status for this session yet")
