from pydantic import BaseModel
from typing import Any, Optional

# Request bodies keep their fields loose so that bad values reach the
# handlers and get a specific error code instead of a generic 422.

class StartScanBody(BaseModel):
    bodyPart: Optional[Any] = None
    side: Optional[Any] = None

class ScanResultBody(BaseModel):
    fileFormat: Optional[Any] = None

class DeviceStatusResponse(BaseModel):
    status: str
    deviceName: Optional[str] = None

class StartScanResponse(BaseModel):
    success: bool = True

class ScanStatusResponse(BaseModel):
    inProgress: bool = False
    progress: Optional[float] = None
    success: Optional[bool] = None
    message: Optional[str] = None
