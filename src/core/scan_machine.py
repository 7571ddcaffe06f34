import logging
import threading
import time
from typing import Callable, Optional, Tuple

from ..config import Config
from ..data.schemas import (
    ConnectionStatus,
    DeviceStatus,
    Finished,
    Idle,
    Readiness,
    ScanRequest,
    ScanSnapshot,
    ScanStage,
    Scanning,
    StartResult,
)

logger = logging.getLogger(__name__)

NO_SCAN_MESSAGE = "No scan has been started."
IN_PROGRESS_MESSAGE = "Scan is still in progress."
ALREADY_IN_PROGRESS_MESSAGE = "Scan already in progress"
GENERIC_FAILURE_MESSAGE = "Scan failed."


def derive_current_state(stage: ScanStage, now: float, duration_seconds: float,
                         force_failure: bool = False,
                         failure_message: str = Config.FAILURE_MESSAGE) -> ScanStage:
    """
    Return the stage as it should be at time `now`.
    Only a Scanning stage whose duration has elapsed changes; it becomes Finished.
    Every other stage is returned as-is, so applying this repeatedly is a no-op
    once the scan has finished.
    """
    if not isinstance(stage, Scanning):
        return stage
    if now - stage.started_at < duration_seconds:
        return stage
    if force_failure:
        return Finished(stage.started_at, now, stage.request, success=False,
                        error_message=failure_message)
    return Finished(stage.started_at, now, stage.request, success=True)


def compute_progress(started_at: float, now: float, duration_seconds: float) -> float:
    if duration_seconds <= 0:
        return 1.0
    return max(0.0, min(1.0, (now - started_at) / duration_seconds))


class ScanMachine:
    """
    The simulated scanner: one scan lifecycle, driven only by elapsed time.

    Idle -> Scanning -> Finished(success | failure) -> Scanning ...

    There is no background timer. Every read checks whether the scan duration
    has elapsed and finalizes the scan if so. Reads and writes go through a
    single lock so the check-then-finish step cannot interleave with a start.
    """

    def __init__(self, config=Config, clock: Callable[[], float] = time.time):
        self.config = config
        self.clock = clock
        self._lock = threading.Lock()
        self._stage: ScanStage = Idle()

    def _refresh_locked(self, now: Optional[float] = None) -> ScanStage:
        if now is None:
            now = self.clock()
        stage = derive_current_state(
            self._stage,
            now,
            self.config.SCAN_DURATION_SECONDS,
            force_failure=self.config.FORCE_FAILURE,
            failure_message=self.config.FAILURE_MESSAGE,
        )
        if stage is not self._stage:
            if stage.success:
                logger.info("Scan finished successfully")
            else:
                logger.warning(f"Scan finished with failure: {stage.error_message}")
            self._stage = stage
        return stage

    def device_status(self) -> DeviceStatus:
        if self.config.DEVICE_CONNECTED:
            return DeviceStatus(ConnectionStatus.CONNECTED, self.config.DEVICE_NAME)
        return DeviceStatus(ConnectionStatus.NOT_CONNECTED)

    def start(self, request: ScanRequest) -> StartResult:
        """Start a scan unless one is running. Any finished scan is discarded."""
        with self._lock:
            now = self.clock()
            stage = self._refresh_locked(now)
            if isinstance(stage, Scanning):
                logger.info("Start rejected: a scan is already in progress")
                return StartResult(False, ScanSnapshot.from_stage(stage), ALREADY_IN_PROGRESS_MESSAGE)

            self._stage = Scanning(started_at=now, request=request)
            side = request.side.value if request.side else "-"
            logger.info(f"Scan started: bodyPart={request.body_part.value} side={side}")
            return StartResult(True, ScanSnapshot.from_stage(self._stage))

    def reset(self) -> ScanSnapshot:
        with self._lock:
            self._stage = Idle()
            return ScanSnapshot.from_stage(self._stage)

    def snapshot(self) -> ScanSnapshot:
        with self._lock:
            return ScanSnapshot.from_stage(self._refresh_locked())

    def _progress_at(self, stage: ScanStage, now: float) -> Optional[float]:
        if not self.config.SUPPORTS_PROGRESS or not isinstance(stage, Scanning):
            return None
        return compute_progress(stage.started_at, now, self.config.SCAN_DURATION_SECONDS)

    def progress(self) -> Optional[float]:
        """Fraction of the scan completed, or None if unsupported or not scanning."""
        with self._lock:
            now = self.clock()
            return self._progress_at(self._refresh_locked(now), now)

    def status(self) -> Tuple[ScanSnapshot, Optional[float]]:
        """Snapshot and progress taken from the same instant."""
        with self._lock:
            now = self.clock()
            stage = self._refresh_locked(now)
            return ScanSnapshot.from_stage(stage), self._progress_at(stage, now)

    def readiness(self) -> Readiness:
        with self._lock:
            stage = self._refresh_locked()
        if isinstance(stage, Idle):
            return Readiness(False, NO_SCAN_MESSAGE)
        if isinstance(stage, Scanning):
            return Readiness(False, IN_PROGRESS_MESSAGE)
        if not stage.success:
            return Readiness(False, stage.error_message or GENERIC_FAILURE_MESSAGE)
        return Readiness(True)
