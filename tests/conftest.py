"""
Pytest fixtures for RC guidance tests.

Provides common test fixtures including:
- Fake camera, scheduler and executor for driving the capture loop
- Fake HTTP responses
- Test configuration and calibration asset
"""

import json
from concurrent.futures import Future

import numpy as np
import pytest


class FakeCamera:
    """Camera provider returning synthetic frames."""

    def __init__(self, is_open: bool = True, fail_reads: bool = False):
        self._is_open = is_open
        self.fail_reads = fail_reads
        self.reads = 0
        self.released = False

    def open(self) -> bool:
        self._is_open = True
        return True

    def read(self):
        self.reads += 1
        if self.fail_reads or not self._is_open:
            return None
        return np.zeros((48, 64, 3), dtype=np.uint8)

    def release(self) -> None:
        self._is_open = False
        self.released = True

    @property
    def is_open(self) -> bool:
        return self._is_open


class FakeEvent:
    def __init__(self, callback, interval):
        self.callback = callback
        self.interval = interval
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeScheduler:
    """Records schedule_interval calls; tests fire ticks by hand."""

    def __init__(self):
        self.events: list[FakeEvent] = []

    def schedule_interval(self, callback, timeout):
        event = FakeEvent(callback, timeout)
        self.events.append(event)
        return event


class ManualExecutor:
    """Executor that queues work until run_pending() is called."""

    def __init__(self, max_workers: int = 1):
        self.max_workers = max_workers
        self.pending: list[tuple[Future, object, tuple]] = []
        self.shutdown_called = False

    def submit(self, fn, *args):
        if self.shutdown_called:
            raise RuntimeError("cannot schedule new futures after shutdown")
        future = Future()
        self.pending.append((future, fn, args))
        return future

    def run_pending(self) -> None:
        pending, self.pending = self.pending, []
        for future, fn, args in pending:
            try:
                future.set_result(fn(*args))
            except Exception as e:
                future.set_exception(e)

    def shutdown(self, wait: bool = True, **kwargs) -> None:
        self.shutdown_called = True


class FakeResponse:
    def __init__(self, status_code: int = 200, text: str = ""):
        self.status_code = status_code
        self.text = text


@pytest.fixture
def make_response():
    return FakeResponse


@pytest.fixture
def make_camera():
    return FakeCamera


@pytest.fixture
def fake_camera():
    return FakeCamera()


@pytest.fixture
def fake_scheduler():
    return FakeScheduler()


@pytest.fixture
def manual_executor_factory():
    """Factory that keeps a handle on the executors it builds."""
    created: list[ManualExecutor] = []

    def factory(workers: int) -> ManualExecutor:
        executor = ManualExecutor(workers)
        created.append(executor)
        return executor

    factory.created = created
    return factory


@pytest.fixture
def calibration_data():
    return {
        "camera_matrix": [[800.0, 0.0, 320.0], [0.0, 800.0, 240.0], [0.0, 0.0, 1.0]],
        "dist_coeffs": [0.1, -0.2, 0.0, 0.0, 0.05],
    }


@pytest.fixture
def calibration_file(tmp_path, calibration_data):
    path = tmp_path / "camera_calibration.json"
    path.write_text(json.dumps(calibration_data), encoding="utf-8")
    return path


@pytest.fixture
def test_config(calibration_file):
    """Test configuration dictionary."""
    return {
        "server": {"port": 5000, "timeout": 1.0},
        "capture": {
            "interval_ms": 10,
            "max_in_flight": 2,
            "jpeg_quality": 80,
            "upload_filename": "frame.jpg",
            "calibration_filename": "calib.jpg",
            "send_sequence": False,
        },
        "calibration": {"path": str(calibration_file)},
        "dev_server": {
            "save_frames": False,
            "nest_finish": False,
            "times": {"car1": "3.5s", "car2": "2.1s"},
        },
    }
