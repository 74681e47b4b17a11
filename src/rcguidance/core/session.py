"""
Tracking session lifecycle.

A session moves through UNINITIALIZED -> INITIALIZED -> ACTIVE -> ENDED.
Initialization registers the session with the server; capture streams
frames while ACTIVE; ending stops capture and fetches the ranked times.
"""

import logging
from enum import Enum
from pathlib import Path

from .calibration import CalibrationError, load_calibration
from .camera import CameraProvider, capture_jpeg
from .config import PROJECT_ROOT
from .client import GuidanceClient, GuidanceClientError, SessionParameters
from .results import RankedResult, ResultsFormatError, rank_entries
from .upload_loop import CaptureUploadLoop, Scheduler

logger = logging.getLogger(__name__)


class SessionState(Enum):
    """Session lifecycle states."""

    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    ACTIVE = "active"
    ENDED = "ended"


class SessionError(Exception):
    """Operator-facing session failure. ``str(error)`` is the message to show."""


class GuidanceSession:
    """
    Glue between the API client, the capture loop and result ranking.

    The camera is owned by the caller; the session only reads from it.
    """

    def __init__(
        self,
        params: SessionParameters,
        config: dict,
        camera: CameraProvider,
        scheduler: Scheduler,
        client: GuidanceClient | None = None,
    ):
        """
        Initialize the session.

        Args:
            params: Validated operator input.
            config: Full configuration dictionary (Config.as_dict).
            camera: Camera provider used for capture.
            scheduler: Tick scheduler for the capture loop.
            client: Optional pre-built client; built from config otherwise.
        """
        self.params = params
        self.config = config
        self.camera = camera

        server_config = config.get("server", {})
        self.client = client or GuidanceClient(
            params.server,
            port=server_config.get("port", 5000),
            timeout=server_config.get("timeout", 5.0),
        )
        self.loop = CaptureUploadLoop.from_config(
            config.get("capture", {}),
            camera=camera,
            upload=self.client.upload_image,
            scheduler=scheduler,
        )
        self.state = SessionState.UNINITIALIZED
        self.results: list[RankedResult] = []

    @property
    def is_sending(self) -> bool:
        return self.loop.is_running

    def initialize(self) -> None:
        """
        Load calibration and register the session with the server.

        Raises:
            SessionError: With the message to show the operator.
        """
        calibration_path = Path(
            self.config.get("calibration", {}).get(
                "path", "assets/camera_calibration.json"
            )
        )
        if not calibration_path.is_absolute():
            calibration_path = PROJECT_ROOT / calibration_path
        try:
            calibration = load_calibration(calibration_path)
        except CalibrationError as e:
            logger.error(f"Calibration load failed: {e}")
            raise SessionError("Failed to load calibration") from e

        try:
            self.client.initialize(self.params, calibration)
        except GuidanceClientError as e:
            logger.error(f"Session initialize failed: {e}")
            if e.status_code is not None:
                raise SessionError(f"Init failed ({e.status_code})") from e
            raise SessionError("Network error") from e

        self.state = SessionState.INITIALIZED

    def start_capture(self) -> bool:
        """
        Start streaming frames.

        Returns:
            True if streaming started; False if already streaming or the
            camera is not ready.
        """
        if self.state not in (SessionState.INITIALIZED, SessionState.ACTIVE):
            raise SessionError(f"Cannot start capture in state: {self.state.value}")

        started = self.loop.start()
        if started:
            self.state = SessionState.ACTIVE
        return started

    def stop_capture(self) -> None:
        self.loop.stop()

    def end(self) -> list[RankedResult]:
        """
        Stop streaming and fetch the ranked results.

        On failure the session stays stopped but not ended, so the operator
        can retry.

        Raises:
            SessionError: If the fetch fails or the response is malformed.
        """
        self.stop_capture()

        try:
            entries = self.client.get_times()
        except GuidanceClientError as e:
            logger.error(f"Fetch error: {e}")
            if e.status_code is not None:
                raise SessionError(f"Fetch failed ({e.status_code})") from e
            raise SessionError("Network error") from e
        except ResultsFormatError as e:
            logger.error(f"Malformed results: {e}")
            raise SessionError("Unexpected response from server") from e

        self.results = rank_entries(entries)
        self.state = SessionState.ENDED
        logger.info(f"Session ended with {len(self.results)} results")
        return self.results

    def close(self) -> None:
        """Stop capture and release the HTTP session. Safe to call repeatedly."""
        self.loop.stop()
        self.client.close()


def send_calibration_frame(
    client: GuidanceClient,
    camera: CameraProvider,
    filename: str = "calib.jpg",
    jpeg_quality: int = 95,
) -> str:
    """
    Capture one frame and upload it for calibration.

    Returns:
        Status message for the operator.
    """
    try:
        image = capture_jpeg(camera, jpeg_quality)
    except Exception as e:
        logger.error(f"Calibration capture error: {e}")
        return f"Error: {e}"
    if image is None:
        return "Error: failed to capture image"

    try:
        client.upload_image(image, filename)
    except GuidanceClientError as e:
        logger.warning(f"Calibration upload failed: {e}")
        if e.status_code is not None:
            return f"Err {e.status_code}"
        return f"Error: {e}"

    logger.info("Calibration image sent")
    return "Image sent"
