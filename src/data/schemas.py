from dataclasses import dataclass
from enum import Enum
from typing import Optional, Dict, Any, Union


class BodyPart(str, Enum):
    FOOT = "FOOT"
    LEG = "LEG"
    ARM = "ARM"
    TORSO = "TORSO"


class Side(str, Enum):
    LEFT = "LEFT"
    RIGHT = "RIGHT"


class FileFormat(str, Enum):
    OBJ = "obj"
    STL = "stl"
    DRC = "drc"


class ConnectionStatus(str, Enum):
    CONNECTED = "CONNECTED"
    NOT_CONNECTED = "NOT_CONNECTED"


@dataclass(frozen=True)
class ScanRequest:
    """Parameters of a scan: which body part and, optionally, which side."""
    body_part: BodyPart
    side: Optional[Side] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {'bodyPart': self.body_part.value}
        if self.side is not None:
            data['side'] = self.side.value
        return data


@dataclass(frozen=True)
class DeviceStatus:
    status: ConnectionStatus
    device_name: Optional[str] = None

    @property
    def connected(self) -> bool:
        return self.status == ConnectionStatus.CONNECTED

    def to_dict(self) -> Dict[str, Any]:
        data = {'status': self.status.value}
        if self.device_name is not None:
            data['deviceName'] = self.device_name
        return data


# Lifecycle stages. Each stage carries only the fields that are legal in it.

@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Scanning:
    started_at: float
    request: ScanRequest


@dataclass(frozen=True)
class Finished:
    started_at: float
    finished_at: float
    request: ScanRequest
    success: bool
    error_message: Optional[str] = None

    def __post_init__(self):
        if self.success and self.error_message is not None:
            raise ValueError("A successful scan cannot carry an error message")
        if not self.success and not self.error_message:
            raise ValueError("A failed scan must carry an error message")


ScanStage = Union[Idle, Scanning, Finished]


@dataclass(frozen=True)
class ScanSnapshot:
    """
    Flat, read-only view of a scan stage as clients see it.
    Timestamps are unix seconds; to_dict() exports them as epoch milliseconds.
    """
    in_progress: bool = False
    started_at: Optional[float] = None
    finished_at: Optional[float] = None
    success: Optional[bool] = None
    error_message: Optional[str] = None
    request: Optional[ScanRequest] = None

    @classmethod
    def from_stage(cls, stage: ScanStage) -> 'ScanSnapshot':
        if isinstance(stage, Scanning):
            return cls(in_progress=True, started_at=stage.started_at, request=stage.request)
        if isinstance(stage, Finished):
            return cls(
                in_progress=False,
                started_at=stage.started_at,
                finished_at=stage.finished_at,
                success=stage.success,
                error_message=stage.error_message,
                request=stage.request,
            )
        return cls()

    @property
    def is_idle(self) -> bool:
        return not self.in_progress and self.started_at is None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {'inProgress': self.in_progress}
        if self.started_at is not None:
            data['startedAt'] = int(self.started_at * 1000)
        if self.finished_at is not None:
            data['finishedAt'] = int(self.finished_at * 1000)
        if self.success is not None:
            data['success'] = self.success
        if self.error_message is not None:
            data['errorMessage'] = self.error_message
        if self.request is not None:
            data['request'] = self.request.to_dict()
        return data


@dataclass(frozen=True)
class StartResult:
    """Outcome of a start command. `snapshot` is the state after the attempt."""
    accepted: bool
    snapshot: ScanSnapshot
    reason: Optional[str] = None


@dataclass(frozen=True)
class Readiness:
    ready: bool
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {'ready': self.ready}
        if self.message is not None:
            data['message'] = self.message
        return data
