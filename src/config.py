import os

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Config:
    # Device
    DEVICE_CONNECTED = _env_flag("SCANNER_DEVICE_CONNECTED", True)
    DEVICE_NAME = os.environ.get("SCANNER_DEVICE_NAME", "MockScanner-3000")

    # Scan simulation
    SCAN_DURATION_SECONDS = float(os.environ.get("SCANNER_SCAN_DURATION_SECONDS", "8"))
    SUPPORTS_PROGRESS = _env_flag("SCANNER_SUPPORTS_PROGRESS", True)
    FORCE_FAILURE = _env_flag("SCANNER_FORCE_FAILURE", False)
    FAILURE_MESSAGE = "Scan failed due to a simulated device error."

    # Results
    MOCK_RESULTS_DIR = os.environ.get(
        "SCANNER_MOCK_RESULTS_DIR", os.path.join(PROJECT_ROOT, "mock-data", "results")
    )

    # Server
    HOST = os.environ.get("HOST", "0.0.0.0")
    PORT = int(os.environ.get("PORT", "3000"))

    @classmethod
    def ensure_dirs(cls):
        os.makedirs(cls.MOCK_RESULTS_DIR, exist_ok=True)
