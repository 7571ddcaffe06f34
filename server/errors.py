import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

# Stable error codes exposed to clients.
MALFORMED_BODY = 1000
SCAN_IN_PROGRESS = 1001
INVALID_BODY_PART = 1002
INVALID_SIDE = 1003
INVALID_FILE_FORMAT = 1004
DEVICE_NOT_CONNECTED = 2001
RESULT_NOT_READY = 3001
RESULT_FILE_MISSING = 5001


class ScanApiError(Exception):
    """A rejected request. Rendered as {success: false, errorCode, message}."""

    def __init__(self, status_code: int, error_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code
        self.message = message


def error_body(error_code: int, message: str) -> dict:
    return {"success": False, "errorCode": error_code, "message": message}


async def scan_api_error_handler(request: Request, exc: ScanApiError):
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.error_code, exc.message))


async def validation_error_handler(request: Request, exc: RequestValidationError):
    logger.info(f"Malformed request to {request.url.path}: {exc.errors()}")
    return JSONResponse(status_code=400, content=error_body(MALFORMED_BODY, "Malformed request body."))


def register_error_handlers(app):
    app.add_exception_handler(ScanApiError, scan_api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
