import logging

from fastapi import APIRouter, Depends, HTTPException, status

from ..config import Settings
from ..core.processed_file_tracker import ProcessedFileStore
from ..core.processing_gate import ProcessingGate
from ..dependencies import (
    get_directory_lister,
    get_gate,
    get_manual_ops,
    get_poll_cycle,
    get_settings,
    get_tracker,
)
from ..models import (
    ClearResponse,
    FileHashesRequest,
    LegacyStatusResponse,
    ProcessNowResponse,
    ReprocessAllResponse,
    ReprocessResponse,
    StatusResponse,
)
from ..services.manual_ops import ManualOps
from ..services.poll_cycle import PollCycle
from ..storage.base import DirectoryLister
from .listing import list_fingerprinted

router = APIRouter(tags=["tracking"])


def _require_hashes(request: FileHashesRequest) -> list:
    hashes = [h for h in request.file_hashes if h and h.strip()]
    if not hashes:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No file hashes provided",
        )
    return hashes


@router.get("/api/status", response_model=StatusResponse)
async def get_status(
    settings: Settings = Depends(get_settings),
    lister: DirectoryLister = Depends(get_directory_lister),
    tracker: ProcessedFileStore = Depends(get_tracker),
    gate: ProcessingGate = Depends(get_gate),
    poll_cycle: PollCycle = Depends(get_poll_cycle),
) -> StatusResponse:
    logging.info("Status endpoint called", extra={"operation": "api_status"})

    entries, disconnected = await list_fingerprinted(lister)
    gate_state = gate.state()
    last_report = poll_cycle.last_report
    return StatusResponse(
        mode=settings.mode,
        is_local_mode=settings.is_local_mode,
        hdfs_disconnected=disconnected,
        total_files=len(entries),
        processed_files_count=tracker.count(),
        processed_files_hashes=sorted(tracker.snapshot()),
        enabled=gate_state.enabled,
        status=gate_state.status,
        consumer_status=gate_state.consumer_status,
        last_poll_at=last_report.finished_at if last_report else None,
    )


@router.get("/status", response_model=LegacyStatusResponse)
async def get_legacy_status(tracker: ProcessedFileStore = Depends(get_tracker)) -> LegacyStatusResponse:
    return LegacyStatusResponse(processed_files_count=tracker.count())


@router.post("/api/reprocess", response_model=ReprocessResponse)
async def reprocess_files(
    request: FileHashesRequest,
    manual_ops: ManualOps = Depends(get_manual_ops),
) -> ReprocessResponse:
    """Mark processed files as pending again; the next poll cycle sends them."""
    hashes = _require_hashes(request)
    logging.info(
        f"Reprocess requested for {len(hashes)} file(s)",
        extra={"operation": "api_reprocess"},
    )

    result = manual_ops.reprocess(hashes)
    return ReprocessResponse(
        reprocessed_count=result.count,
        reprocessed_hashes=result.reprocessed,
        message=f"Successfully marked {result.count} files for reprocessing",
    )


@router.post("/api/process-now", response_model=ProcessNowResponse)
async def process_now(
    request: FileHashesRequest,
    manual_ops: ManualOps = Depends(get_manual_ops),
) -> ProcessNowResponse:
    """Send notifications for the given files right away, even while processing is stopped."""
    hashes = _require_hashes(request)
    logging.info(
        f"Process-now requested for {len(hashes)} file(s)",
        extra={"operation": "api_process_now"},
    )

    result = await manual_ops.process_now(hashes)
    return ProcessNowResponse(
        processed_count=result.processed_count,
        processed_hashes=result.processed,
        failed_hashes=result.failed,
        failures=result.failures,
        message=f"Successfully processed {result.processed_count} files immediately",
    )


@router.post("/api/clear", response_model=ClearResponse)
async def clear_processed(manual_ops: ManualOps = Depends(get_manual_ops)) -> ClearResponse:
    cleared = manual_ops.clear_all()
    logging.info(f"Cleared {cleared} processed files", extra={"operation": "api_clear"})
    return ClearResponse(
        cleared_count=cleared,
        message=f"Successfully cleared {cleared} processed files",
    )


@router.post("/reset", response_model=ClearResponse)
async def reset_processed(manual_ops: ManualOps = Depends(get_manual_ops)) -> ClearResponse:
    """Legacy alias of /api/clear."""
    cleared = manual_ops.clear_all()
    return ClearResponse(
        cleared_count=cleared,
        message=f"Successfully cleared {cleared} processed files",
    )


@router.post("/api/reprocess-all", response_model=ReprocessAllResponse)
async def reprocess_all(manual_ops: ManualOps = Depends(get_manual_ops)) -> ReprocessAllResponse:
    """Stop processing and forget every processed file. Start processing again to resend everything."""
    cleared = await manual_ops.reprocess_all()
    logging.info(
        f"Reprocess-all: processing stopped, {cleared} files cleared",
        extra={"operation": "api_reprocess_all"},
    )
    return ReprocessAllResponse(
        cleared_count=cleared,
        message=f"Processing stopped and {cleared} processed files cleared",
    )
