import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from fastapi.responses import FileResponse

from ..config import Settings
from ..core.exceptions import StorageError, UploadError
from ..core.processed_file_tracker import ProcessedFileStore
from ..core.processing_gate import ProcessingGate
from ..dependencies import (
    get_directory_lister,
    get_gate,
    get_local_storage,
    get_settings,
    get_tracker,
    get_upload_service,
    get_url_builder,
)
from ..models import FileInfo, FilesResponse, UploadResponse
from ..services.upload_service import UploadService
from ..storage.base import DirectoryLister, UrlBuilder
from ..storage.local_storage import LocalFileStorage
from .listing import list_fingerprinted, safe_url

router = APIRouter(tags=["files"])


@router.get("/api/files", response_model=FilesResponse)
async def list_files(
    settings: Settings = Depends(get_settings),
    lister: DirectoryLister = Depends(get_directory_lister),
    url_builder: UrlBuilder = Depends(get_url_builder),
    tracker: ProcessedFileStore = Depends(get_tracker),
    gate: ProcessingGate = Depends(get_gate),
) -> FilesResponse:
    """List the files in the watched location(s) with their processing state."""
    logging.info("Files endpoint called", extra={"operation": "api_files"})

    entries, disconnected = await list_fingerprinted(lister)
    files = [
        FileInfo(
            name=entry.name,
            size=entry.size,
            state="processed" if tracker.is_processed(file_hash) else "pending",
            url=safe_url(url_builder, entry),
            source=entry.source_tag,
            file_hash=file_hash,
        )
        for entry, file_hash in entries
    ]
    gate_state = gate.state()
    return FilesResponse(
        files=files,
        total_files=len(files),
        hdfs_disconnected=disconnected,
        mode=settings.mode,
        enabled=gate_state.enabled,
        status=gate_state.status,
        consumer_status=gate_state.consumer_status,
    )


@router.post("/api/files/upload", response_model=UploadResponse)
async def upload_file(
    file: Optional[UploadFile] = File(None),
    upload_service: UploadService = Depends(get_upload_service),
) -> UploadResponse:
    """
    Store an uploaded file and send its notification immediately.

    HTTP Status Codes:
        200: File stored (check ``notified`` for the notification outcome)
        400: No file or an empty file was sent
        500: The file could not be stored
    """
    if file is None or not file.filename:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Please select a file to upload")

    content = await file.read()
    if not content:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Please select a file to upload")

    logging.info(
        f"Handling file upload: {file.filename} ({len(content)} bytes)",
        extra={"operation": "api_upload"},
    )
    try:
        url, result = await upload_service.upload(file.filename, content)
    except (StorageError, UploadError) as e:
        logging.error(f"Failed to upload file {file.filename}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to upload file: {file.filename}. Error: {e}",
        )

    return UploadResponse(filename=file.filename, url=url, notified=result.success)


@router.get("/files/{filename}")
async def download_file(
    filename: str,
    local_storage: Optional[LocalFileStorage] = Depends(get_local_storage),
) -> FileResponse:
    """Serve a file from local storage (pseudoop mode only)."""
    if local_storage is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="File downloads are only available in pseudoop mode",
        )
    try:
        path = await local_storage.load(filename)
    except StorageError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    return FileResponse(path, filename=path.name, media_type="application/octet-stream")
