from fastapi import APIRouter, Depends

from ..dependencies import get_scan_machine
from ..state import DeviceStatusResponse
from src.core.scan_machine import ScanMachine

router = APIRouter(tags=["device"])

@router.get("/getDeviceStatus", response_model=DeviceStatusResponse, response_model_exclude_none=True)
def get_device_status(machine: ScanMachine = Depends(get_scan_machine)):
    """Report whether the (simulated) scanner is connected."""
    return machine.device_status().to_dict()
