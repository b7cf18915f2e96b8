import logging

from fastapi import APIRouter, Depends

from ..core.processing_gate import ProcessingGate
from ..dependencies import get_gate, get_manual_ops
from ..models import (
    GateSummary,
    ProcessingChangeResponse,
    ProcessingStateResponse,
    ProcessingToggleResponse,
)
from ..services.manual_ops import ManualOps

router = APIRouter(prefix="/api/processing", tags=["processing"])


@router.get("/state", response_model=ProcessingStateResponse)
async def get_processing_state(gate: ProcessingGate = Depends(get_gate)) -> ProcessingStateResponse:
    return ProcessingStateResponse.from_gate_state(gate.state())


@router.post("/start", response_model=ProcessingChangeResponse)
async def start_processing(manual_ops: ManualOps = Depends(get_manual_ops)) -> ProcessingChangeResponse:
    """Enable processing and immediately send pending files."""
    change = await manual_ops.set_gate(True, "api-start")
    logging.info(
        f"File processing ENABLED via API, {change.swept_count} files processed immediately",
        extra={"operation": "api_processing_start"},
    )

    state = change.current
    return ProcessingChangeResponse(
        message=(
            f"Processing started successfully and {change.swept_count} pending files "
            f"were processed immediately"
        ),
        state_changed=change.state_changed,
        immediately_processed_count=change.swept_count,
        enabled=state.enabled,
        status=state.status,
        consumer_status=state.consumer_status,
        last_changed=state.last_changed,
        last_change_reason=state.reason,
    )


@router.post("/stop", response_model=ProcessingChangeResponse)
async def stop_processing(manual_ops: ManualOps = Depends(get_manual_ops)) -> ProcessingChangeResponse:
    """Disable processing. Polling continues, files stay pending."""
    change = await manual_ops.set_gate(False, "api-stop")
    logging.info("File processing DISABLED via API", extra={"operation": "api_processing_stop"})

    state = change.current
    return ProcessingChangeResponse(
        message="Processing stopped successfully. Files will remain in storage.",
        state_changed=change.state_changed,
        enabled=state.enabled,
        status=state.status,
        consumer_status=state.consumer_status,
        last_changed=state.last_changed,
        last_change_reason=state.reason,
    )


@router.post("/toggle", response_model=ProcessingToggleResponse)
async def toggle_processing(manual_ops: ManualOps = Depends(get_manual_ops)) -> ProcessingToggleResponse:
    change = await manual_ops.toggle_gate("api-toggle")
    previous, current = change.previous, change.current
    action = "started" if current.enabled else "stopped"
    logging.info(f"File processing {action} via toggle", extra={"operation": "api_processing_toggle"})

    if current.enabled:
        detail = f"{change.swept_count} pending files were processed immediately."
    else:
        detail = "Files will remain in storage."

    return ProcessingToggleResponse(
        message=(
            f"Processing {action} successfully. "
            f"Previous state: {'enabled' if previous.enabled else 'disabled'}, "
            f"Current state: {'enabled' if current.enabled else 'disabled'}. {detail}"
        ),
        action=action,
        previous_state=GateSummary(
            enabled=previous.enabled,
            status=previous.status,
            consumer_status=previous.consumer_status,
        ),
        current_state=GateSummary(
            enabled=current.enabled,
            status=current.status,
            consumer_status=current.consumer_status,
        ),
        immediately_processed_count=change.swept_count if current.enabled else None,
        last_changed=current.last_changed,
    )
