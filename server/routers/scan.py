from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse, JSONResponse
from typing import Optional
import logging
import os

from ..dependencies import get_scan_machine
from ..errors import (
    ScanApiError,
    error_body,
    SCAN_IN_PROGRESS,
    INVALID_BODY_PART,
    INVALID_SIDE,
    INVALID_FILE_FORMAT,
    DEVICE_NOT_CONNECTED,
    RESULT_NOT_READY,
    RESULT_FILE_MISSING,
)
from ..state import StartScanBody, ScanResultBody, StartScanResponse, ScanStatusResponse
from src.core import result_formats
from src.core.scan_machine import ScanMachine, NO_SCAN_MESSAGE, GENERIC_FAILURE_MESSAGE
from src.data.schemas import BodyPart, Side, ScanRequest

logger = logging.getLogger(__name__)

router = APIRouter(tags=["scan"])

def _parse_enum(enum_cls, value):
    try:
        return enum_cls(value)
    except ValueError:
        return None

@router.post("/startScan", response_model=StartScanResponse)
def start_scan(body: Optional[StartScanBody] = None, machine: ScanMachine = Depends(get_scan_machine)):
    """Start a simulated scan."""
    if machine.snapshot().in_progress:
        raise ScanApiError(400, SCAN_IN_PROGRESS, "Scan already in progress")

    body_part = _parse_enum(BodyPart, body.bodyPart) if body else None
    if body_part is None:
        raise ScanApiError(400, INVALID_BODY_PART, "Invalid or missing bodyPart.")

    side = None
    if body.side is not None:
        side = _parse_enum(Side, body.side)
        if side is None:
            raise ScanApiError(400, INVALID_SIDE, "Invalid side. Must be LEFT or RIGHT.")

    # Device unavailable is an environmental condition, not a bad request:
    # the call itself succeeds and the payload carries the failure.
    if not machine.device_status().connected:
        logger.info("Start refused: device not connected")
        return JSONResponse(status_code=200, content=error_body(DEVICE_NOT_CONNECTED, "Device is not connected."))

    result = machine.start(ScanRequest(body_part, side))
    if not result.accepted:
        raise ScanApiError(400, SCAN_IN_PROGRESS, "Scan already in progress")

    return {"success": True}

@router.get("/getScanStatus", response_model=ScanStatusResponse, response_model_exclude_none=True)
def get_scan_status(machine: ScanMachine = Depends(get_scan_machine)):
    """Poll the current scan. Finishes the scan first if its time is up."""
    state, progress = machine.status()
    if state.in_progress:
        return {"inProgress": True, "progress": progress}
    if state.started_at is not None and state.success:
        return {"inProgress": False, "success": True}
    if state.started_at is not None:
        return {
            "inProgress": False,
            "success": False,
            "message": state.error_message or GENERIC_FAILURE_MESSAGE,
        }
    return {"inProgress": False, "success": False, "message": NO_SCAN_MESSAGE}

@router.get("/getScanState")
def get_scan_state(machine: ScanMachine = Depends(get_scan_machine)):
    """Full snapshot of the scan lifecycle."""
    return machine.snapshot().to_dict()

@router.post("/resetScan")
def reset_scan(machine: ScanMachine = Depends(get_scan_machine)):
    """Discard any scan and return to idle."""
    return machine.reset().to_dict()

@router.post("/getScanResult")
def get_scan_result(body: Optional[ScanResultBody] = None, machine: ScanMachine = Depends(get_scan_machine)):
    """Download the result file of the last successful scan."""
    fmt = result_formats.parse_format(body.fileFormat) if body else None
    if fmt is None:
        raise ScanApiError(400, INVALID_FILE_FORMAT, "Invalid or missing fileFormat.")

    readiness = machine.readiness()
    if not readiness.ready:
        raise ScanApiError(400, RESULT_NOT_READY, readiness.message or "Scan not ready.")

    filename = result_formats.result_filename(fmt)
    path = result_formats.result_path(machine.config.MOCK_RESULTS_DIR, fmt)
    if not os.path.isfile(path):
        logger.error(f"Result file missing on disk: {path}")
        raise ScanApiError(500, RESULT_FILE_MISSING, "Result file not found on server.")

    logger.info(f"Serving scan result {filename}")
    return FileResponse(
        path,
        media_type=result_formats.content_type(fmt),
        filename=filename,
    )
