"""
Periodic frame capture and upload.

While a session is active, every tick captures one frame and hands it to a
worker pool for upload, so a slow upload never delays the next capture.
Delivery is best-effort: frames may reach the server out of order and
failed captures or uploads are logged and counted, never retried.

The number of uploads in flight is capped. A tick that finds the cap
reached is skipped before capturing, so the camera is not read for a frame
that would have nowhere to go.
"""

import logging
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import asdict, dataclass
from functools import partial
from typing import Any, Callable, Protocol

from .camera import CameraProvider, capture_jpeg

logger = logging.getLogger(__name__)

# upload(image_bytes, filename, extra_fields) -> status code, raises on failure
UploadFn = Callable[[bytes, str, dict[str, str] | None], int]


class ScheduledEvent(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Anything shaped like ``kivy.clock.Clock``."""

    def schedule_interval(self, callback: Callable[[float], Any], timeout: float) -> ScheduledEvent: ...


class _IntervalEvent:
    """Background thread calling a callback every ``interval`` seconds."""

    def __init__(self, callback: Callable[[float], Any], interval: float):
        self._callback = callback
        self._interval = interval
        self._stopped = threading.Event()
        self._thread = threading.Thread(
            target=self._run, name="CaptureTicker", daemon=True
        )
        self._thread.start()

    def _run(self) -> None:
        while not self._stopped.wait(self._interval):
            try:
                self._callback(self._interval)
            except Exception as e:
                logger.error(f"Tick error: {e}")

    def cancel(self) -> None:
        self._stopped.set()
        if self._thread is not threading.current_thread():
            self._thread.join(timeout=2.0)


class IntervalScheduler:
    """
    Thread-based scheduler for running the loop without a Kivy event loop.

    Mirrors ``Clock.schedule_interval``: returns an event with ``cancel()``.
    """

    def schedule_interval(self, callback: Callable[[float], Any], timeout: float) -> _IntervalEvent:
        return _IntervalEvent(callback, timeout)


@dataclass
class UploadStats:
    """Counters for one capture session."""

    ticks: int = 0
    skipped_ticks: int = 0
    captured: int = 0
    capture_failures: int = 0
    uploads_succeeded: int = 0
    upload_failures: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


class CaptureUploadLoop:
    """
    Fixed-interval capture-and-upload loop.

    Usage:
        loop = CaptureUploadLoop(camera, client.upload_image, Clock)
        loop.start()
        ...
        loop.stop()
    """

    def __init__(
        self,
        camera: CameraProvider,
        upload: UploadFn,
        scheduler: Scheduler,
        interval_ms: float = 10,
        max_in_flight: int = 4,
        jpeg_quality: int = 85,
        filename: str = "frame.jpg",
        send_sequence: bool = False,
        executor_factory: Callable[[int], Executor] | None = None,
    ):
        """
        Initialize the loop.

        Args:
            camera: Camera provider to read frames from.
            upload: Callable sending one encoded frame; raises on failure.
            scheduler: Provides ``schedule_interval`` (Kivy Clock or IntervalScheduler).
            interval_ms: Tick interval in milliseconds.
            max_in_flight: Maximum concurrent uploads; 1 means at most one.
            jpeg_quality: JPEG quality for uploaded frames.
            filename: Filename reported in each multipart upload.
            send_sequence: Add a ``frame_index`` form field to each upload.
            executor_factory: Builds the upload executor for a given worker count.
        """
        if max_in_flight < 1:
            raise ValueError("max_in_flight must be at least 1")

        self.camera = camera
        self.upload = upload
        self.scheduler = scheduler
        self.interval = interval_ms / 1000.0
        self.max_in_flight = max_in_flight
        self.jpeg_quality = jpeg_quality
        self.filename = filename
        self.send_sequence = send_sequence
        self._executor_factory = executor_factory or (
            lambda workers: ThreadPoolExecutor(
                max_workers=workers, thread_name_prefix="FrameUpload"
            )
        )

        self._event: ScheduledEvent | None = None
        self._executor: Executor | None = None
        self._lock = threading.Lock()
        self._in_flight = 0
        self._sequence = 0

        self.stats = UploadStats()

    @classmethod
    def from_config(
        cls,
        config: dict,
        camera: CameraProvider,
        upload: UploadFn,
        scheduler: Scheduler,
    ) -> "CaptureUploadLoop":
        """Build a loop from the ``capture`` config section."""
        return cls(
            camera=camera,
            upload=upload,
            scheduler=scheduler,
            interval_ms=config.get("interval_ms", 10),
            max_in_flight=config.get("max_in_flight", 4),
            jpeg_quality=config.get("jpeg_quality", 85),
            filename=config.get("upload_filename", "frame.jpg"),
            send_sequence=config.get("send_sequence", False),
        )

    @property
    def is_running(self) -> bool:
        return self._event is not None

    @property
    def in_flight(self) -> int:
        with self._lock:
            return self._in_flight

    def start(self) -> bool:
        """
        Start ticking.

        Returns:
            True if the loop was started, False if it was already running or
            the camera is not ready.
        """
        if self._event is not None:
            logger.warning("Capture loop already running")
            return False
        if not self.camera.is_open:
            logger.warning("Camera not ready, capture loop not started")
            return False

        self.stats = UploadStats()
        self._sequence = 0
        self._executor = self._executor_factory(self.max_in_flight)
        self._event = self.scheduler.schedule_interval(self.tick, self.interval)
        logger.info(
            f"Capture loop started: interval={self.interval * 1000:.0f}ms, "
            f"max_in_flight={self.max_in_flight}"
        )
        return True

    def stop(self) -> None:
        """Stop ticking. Uploads already in flight are left to finish."""
        if self._event is None:
            return

        self._event.cancel()
        self._event = None

        if self._executor is not None:
            self._executor.shutdown(wait=False)
            self._executor = None

        logger.info(f"Capture loop stopped: {self.stats.to_dict()}")

    def tick(self, dt: float = 0.0) -> None:
        """Capture one frame and submit it for upload."""
        executor = self._executor
        if self._event is None or executor is None:
            return

        stats = self.stats
        with self._lock:
            stats.ticks += 1
            if self._in_flight >= self.max_in_flight:
                stats.skipped_ticks += 1
                return

        image = capture_jpeg(self.camera, self.jpeg_quality)
        if image is None:
            with self._lock:
                stats.capture_failures += 1
            logger.debug("Capture failed, skipping tick")
            return

        with self._lock:
            stats.captured += 1
            self._in_flight += 1
            self._sequence += 1
            sequence = self._sequence

        extra_fields = {"frame_index": str(sequence)} if self.send_sequence else None
        try:
            future = executor.submit(self.upload, image, self.filename, extra_fields)
        except RuntimeError:
            # Executor shut down between the check above and submit
            with self._lock:
                self._in_flight -= 1
            return
        # Counted against the run that captured the frame, even after a restart
        future.add_done_callback(partial(self._on_upload_done, stats))

    def _on_upload_done(self, stats: UploadStats, future: Future) -> None:
        error = future.exception()
        with self._lock:
            self._in_flight -= 1
            if error is None:
                stats.uploads_succeeded += 1
            else:
                stats.upload_failures += 1

        if error is not None:
            logger.debug(f"Upload error: {error}")
