import logging
import threading
import uuid
from datetime import datetime, timezone
from typing import Optional
from fastapi import APIRouter, UploadFile, File, Form, Depends, HTTPException, Request, BackgroundTasks

from visualrag.core.pipeline.ingestion import IngestionPipeline
from visualrag.core.exceptions import AppError
from visualrag.models.document import (
    ChunkingOptions, ChunkingStrategy, IngestionJob, IngestionStatus, UploadedFile
)

router = APIRouter()
logger = logging.getLogger(__name__)

READ_BLOCK_SIZE = 1024 * 1024

# Dependencies to get components from app state
def get_ingestion_pipeline(request: Request) -> IngestionPipeline:
    return request.app.state.ingestion_pipeline

def _too_large(limit: int) -> HTTPException:
    return HTTPException(status_code=413, detail=f"File exceeds the maximum upload size of {limit} bytes.")

async def read_limited(file: UploadFile, limit: int) -> bytes:
    """Reads the upload block by block, giving up as soon as it passes limit bytes."""
    if file.size is not None and file.size > limit:
        raise _too_large(limit)

    data = bytearray()
    while True:
        block = await file.read(READ_BLOCK_SIZE)
        if not block:
            break
        data.extend(block)
        if len(data) > limit:
            raise _too_large(limit)
    return bytes(data)

@router.post("/ingest", response_model=IngestionJob, summary="Upload a PDF, text or markdown file for processing")
async def ingest_file(
    request: Request,
    background_tasks: BackgroundTasks,
    file: UploadFile = File(...),
    chunking_strategy: Optional[ChunkingStrategy] = Form(None),
    max_chunk_size: Optional[int] = Form(None, gt=0),
    preserve_formatting: Optional[bool] = Form(None),
    extract_images: Optional[bool] = Form(None),
    pipeline: IngestionPipeline = Depends(get_ingestion_pipeline)
):
    """
    1. Rejects unsupported file types from the name and MIME type, before any bytes are read.
    2. Reads the body up to ingestion.max_upload_bytes; larger uploads get a 413.
    3. Dispatches the processing pipeline to BackgroundTasks (immediate response).
    4. Returns an IngestionJob to poll via /ingest/status/{job_id}.
    """
    config = request.app.state.config
    name = file.filename or "upload"
    content_type = file.content_type or ""

    try:
        pipeline.extractor.check_supported(UploadedFile(name=name, content_type=content_type))
        file_bytes = await read_limited(file, config.ingestion.max_upload_bytes)
    except AppError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict()["error"])
    finally:
        await file.close()

    upload = UploadedFile(name=name, content_type=content_type, data=file_bytes)

    defaults = pipeline.default_options()
    options = ChunkingOptions(
        chunking_strategy=defaults.chunking_strategy if chunking_strategy is None else chunking_strategy,
        max_chunk_size=defaults.max_chunk_size if max_chunk_size is None else max_chunk_size,
        preserve_formatting=defaults.preserve_formatting if preserve_formatting is None else preserve_formatting,
        extract_images=defaults.extract_images if extract_images is None else extract_images
    )

    job_id = str(uuid.uuid4())
    logger.info(f"Uploading file '{upload.name}' ({len(file_bytes)} bytes), job_id: {job_id}")

    jobs_db = request.app.state.jobs_db
    job = IngestionJob(
        job_id=job_id,
        filename=upload.name,
        status=IngestionStatus.pending,
        progress=0,
        message="Queued for processing",
        created_at=datetime.now(timezone.utc).isoformat()
    )
    jobs_db[job_id] = job

    # Callback to update the in-memory job state from the background pipeline
    def progress_callback(progress: int, message: str):
        target_job = jobs_db.get(job_id)
        if not target_job:
            return

        target_job.message = message
        if progress < 0:
            target_job.status = IngestionStatus.failed
            target_job.completed_at = datetime.now(timezone.utc).isoformat()
            return

        target_job.progress = progress
        if progress == 100:
            target_job.status = IngestionStatus.completed
            target_job.completed_at = datetime.now(timezone.utc).isoformat()
        else:
            target_job.status = IngestionStatus.processing

    # The request handler owns the time limit; the pipeline only polls the event
    def run_pipeline_with_timeout():
        cancel_event = threading.Event()
        timer = threading.Timer(config.ingestion.timeout_seconds, cancel_event.set)
        timer.start()
        try:
            document = pipeline.run(
                upload,
                options=options,
                progress_callback=progress_callback,
                cancel_event=cancel_event
            )
            jobs_db[job_id].document_id = document.id
        except Exception as e:
            logger.error(f"Background processing failed for job {job_id}: {e}")
            progress_callback(-1, f"Error: {str(e)}")
        finally:
            timer.cancel()

    background_tasks.add_task(run_pipeline_with_timeout)

    return job

@router.get("/ingest/status/{job_id}", response_model=IngestionJob, summary="Get the status of a processing job")
def get_ingest_status(job_id: str, request: Request):
    jobs_db = request.app.state.jobs_db
    if job_id not in jobs_db:
        raise HTTPException(status_code=404, detail="Job ID not found.")
    return jobs_db[job_id]
