import threading

from src.config import Config
from src.core.scan_machine import (
    ScanMachine,
    derive_current_state,
    compute_progress,
    NO_SCAN_MESSAGE,
    IN_PROGRESS_MESSAGE,
)
from src.data.schemas import (
    BodyPart,
    Side,
    ScanRequest,
    ScanSnapshot,
    Idle,
    Scanning,
    Finished,
    ConnectionStatus,
)


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class TickClock:
    """Moves forward one second every time it is read."""
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        self.now += 1
        return self.now


class ScannerConfig(Config):
    DEVICE_CONNECTED = True
    SCAN_DURATION_SECONDS = 8
    SUPPORTS_PROGRESS = True
    FORCE_FAILURE = False


class FailingConfig(ScannerConfig):
    FORCE_FAILURE = True


class NoProgressConfig(ScannerConfig):
    SUPPORTS_PROGRESS = False


class DisconnectedConfig(ScannerConfig):
    DEVICE_CONNECTED = False


def _machine(config=ScannerConfig):
    clock = FakeClock()
    return ScanMachine(config, clock=clock), clock


def test_initial_state_is_idle():
    machine, _ = _machine()
    snap = machine.snapshot()
    assert snap == ScanSnapshot()
    assert snap.is_idle
    assert snap.to_dict() == {'inProgress': False}


def test_start_marks_in_progress_with_zero_progress():
    for body_part in BodyPart:
        for side in (None, Side.LEFT, Side.RIGHT):
            machine, clock = _machine()
            result = machine.start(ScanRequest(body_part, side))
            assert result.accepted
            snap = machine.snapshot()
            assert snap.in_progress
            assert snap.started_at == clock.now
            assert snap.success is None and snap.finished_at is None and snap.error_message is None
            assert snap.request == ScanRequest(body_part, side)
            assert machine.progress() == 0.0


def test_start_rejected_while_in_progress():
    machine, clock = _machine()
    assert machine.start(ScanRequest(BodyPart.FOOT)).accepted
    clock.advance(3)
    first = machine.snapshot()

    for body_part in BodyPart:
        result = machine.start(ScanRequest(body_part, Side.RIGHT))
        assert not result.accepted
        assert result.reason
        assert result.snapshot == first

    # Rejected starts leave the running scan untouched
    assert machine.snapshot().request == ScanRequest(BodyPart.FOOT)


def test_progress_is_monotonic_and_clamped():
    machine, clock = _machine()
    machine.start(ScanRequest(BodyPart.ARM, Side.LEFT))
    last = -1.0
    for _ in range(8):
        value = machine.progress()
        assert 0.0 <= value <= 1.0
        assert value >= last
        last = value
        clock.advance(0.9)
    assert abs(last - 7 * 0.9 / 8) < 1e-9

    assert compute_progress(100.0, 50.0, 8) == 0.0
    assert compute_progress(100.0, 100.0 + 80, 8) == 1.0
    assert compute_progress(100.0, 104.0, 8) == 0.5


def test_progress_absent_when_unsupported_or_idle():
    machine, _ = _machine(NoProgressConfig)
    machine.start(ScanRequest(BodyPart.LEG))
    assert machine.progress() is None

    machine, clock = _machine()
    assert machine.progress() is None
    machine.start(ScanRequest(BodyPart.LEG))
    clock.advance(8)
    assert machine.progress() is None


def test_lazy_completion_fires_once_and_is_idempotent():
    machine, clock = _machine()
    machine.start(ScanRequest(BodyPart.TORSO))

    clock.advance(7)
    assert machine.snapshot().in_progress

    clock.advance(1)
    finished = machine.snapshot()
    assert not finished.in_progress
    assert finished.success is True
    assert finished.error_message is None
    assert finished.finished_at == clock.now

    clock.advance(60)
    assert machine.snapshot() == finished
    assert machine.snapshot() == finished


def test_forced_failure_ends_every_scan_failed():
    machine, clock = _machine(FailingConfig)
    for body_part in BodyPart:
        machine.start(ScanRequest(body_part))
        clock.advance(10)
        snap = machine.snapshot()
        assert snap.success is False
        assert snap.error_message == Config.FAILURE_MESSAGE
        readiness = machine.readiness()
        assert not readiness.ready
        assert readiness.message == Config.FAILURE_MESSAGE


def test_readiness_through_lifecycle():
    machine, clock = _machine()
    assert machine.readiness().to_dict() == {'ready': False, 'message': NO_SCAN_MESSAGE}

    machine.start(ScanRequest(BodyPart.FOOT))
    assert machine.readiness().message == IN_PROGRESS_MESSAGE

    clock.advance(8)
    # readiness applies the completion check on its own
    assert machine.readiness().to_dict() == {'ready': True}


def test_start_after_finish_overwrites_previous_scan():
    machine, clock = _machine()
    machine.start(ScanRequest(BodyPart.FOOT, Side.LEFT))
    clock.advance(9)
    assert machine.snapshot().success

    result = machine.start(ScanRequest(BodyPart.ARM))
    assert result.accepted
    snap = machine.snapshot()
    assert snap.in_progress
    assert snap.success is None and snap.finished_at is None
    assert snap.request == ScanRequest(BodyPart.ARM)
    assert machine.readiness().message == IN_PROGRESS_MESSAGE


def test_reset_returns_to_idle():
    machine, clock = _machine()
    assert machine.reset() == ScanSnapshot()

    machine.start(ScanRequest(BodyPart.LEG))
    assert machine.reset().is_idle
    assert machine.snapshot() == ScanSnapshot()

    machine.start(ScanRequest(BodyPart.LEG))
    clock.advance(20)
    machine.snapshot()
    assert machine.reset() == ScanSnapshot()
    assert machine.readiness().message == NO_SCAN_MESSAGE


def test_derive_current_state_is_pure():
    request = ScanRequest(BodyPart.FOOT)
    idle = Idle()
    assert derive_current_state(idle, 5000.0, 8) is idle

    scanning = Scanning(started_at=100.0, request=request)
    assert derive_current_state(scanning, 107.0, 8) is scanning

    done = derive_current_state(scanning, 108.0, 8)
    assert done == Finished(100.0, 108.0, request, success=True)
    assert derive_current_state(done, 500.0, 8) is done
    # input stage is not modified
    assert scanning == Scanning(started_at=100.0, request=request)

    failed = derive_current_state(scanning, 200.0, 8, force_failure=True, failure_message="boom")
    assert failed.success is False
    assert failed.error_message == "boom"


def test_finished_stage_rejects_inconsistent_outcome():
    request = ScanRequest(BodyPart.FOOT)
    for kwargs in ({'success': True, 'error_message': "x"}, {'success': False}):
        try:
            Finished(1.0, 2.0, request, **kwargs)
        except ValueError:
            continue
        raise AssertionError(f"Finished accepted {kwargs}")


def test_snapshot_to_dict_uses_epoch_millis():
    machine, clock = _machine()
    machine.start(ScanRequest(BodyPart.ARM, Side.RIGHT))
    clock.advance(8)
    assert machine.snapshot().to_dict() == {
        'inProgress': False,
        'startedAt': 1000000,
        'finishedAt': 1008000,
        'success': True,
        'request': {'bodyPart': 'ARM', 'side': 'RIGHT'},
    }


def test_device_status():
    machine, _ = _machine()
    status = machine.device_status()
    assert status.status == ConnectionStatus.CONNECTED
    assert status.to_dict() == {'status': 'CONNECTED', 'deviceName': 'MockScanner-3000'}

    machine, _ = _machine(DisconnectedConfig)
    assert machine.device_status().to_dict() == {'status': 'NOT_CONNECTED'}
    assert not machine.device_status().connected
    # device status never touches scan state
    assert machine.snapshot().is_idle



def test_status_reads_snapshot_and_progress_at_one_instant():
    clock = TickClock()
    machine = ScanMachine(ScannerConfig, clock=clock)
    started_at = machine.start(ScanRequest(BodyPart.FOOT)).snapshot.started_at

    # The next reading is 7.5 s in; a second reading would cross the 8 s mark
    clock.now = started_at + 6.5
    snap, progress = machine.status()
    assert snap.in_progress
    assert progress == 7.5 / 8

    snap, progress = machine.status()
    assert not snap.in_progress
    assert snap.success is True
    assert progress is None


def test_concurrent_starts_accept_exactly_one():
    machine = ScanMachine(ScannerConfig)
    workers = 16
    barrier = threading.Barrier(workers)
    results = [None] * workers
    parts = list(BodyPart)

    def worker(i):
        request = ScanRequest(parts[i % len(parts)], Side.LEFT if i % 2 else None)
        barrier.wait()
        results[i] = (request, machine.start(request))

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    accepted = [request for request, result in results if result.accepted]
    assert len(accepted) == 1
    for request, result in results:
        if not result.accepted:
            assert result.reason
            assert result.snapshot.in_progress

    snap = machine.snapshot()
    assert snap.in_progress
    assert snap.request == accepted[0]
    assert snap.started_at is not None
    assert snap.success is None and snap.finished_at is None and snap.error_message is None


if __name__ == "__main__":
    print("=== Testing Scan State Machine ===")
    for name, fn in list(globals().items()):
        if name.startswith("test_") and callable(fn):
            fn()
            print(f"{name}: ok")
    print("Scan State Machine Tests Passed!")
