"""
Camera abstraction layer for RC guidance.

Provides a consistent capture interface over OpenCV VideoCapture, plus
JPEG encoding for frames that are uploaded to the guidance server.
"""

import logging
import threading
from typing import Any, Protocol, runtime_checkable

import cv2
import numpy as np

logger = logging.getLogger(__name__)


@runtime_checkable
class CameraProvider(Protocol):
    """Protocol for camera providers used by the capture loop and UI."""

    def open(self) -> bool:
        """Open the camera. Returns True on success."""
        ...

    def read(self) -> np.ndarray | None:
        """Read a frame. Returns BGR numpy array or None on failure."""
        ...

    def release(self) -> None:
        """Release the camera resources."""
        ...

    @property
    def is_open(self) -> bool:
        """Check if camera is currently open."""
        ...


class Camera:
    """
    OpenCV camera for video capture.

    Supports:
    - USB webcams and built-in cameras
    - Video files for testing
    - Configurable resolution, FPS, and backend

    Usage:
        camera = Camera(config['camera'])
        camera.open()
        frame = camera.read()
        camera.release()

    Or as context manager:
        with Camera(config['camera']) as camera:
            frame = camera.read()
    """

    BACKENDS = {
        "CAP_ANY": cv2.CAP_ANY,
        "CAP_MSMF": cv2.CAP_MSMF,
        "CAP_DSHOW": cv2.CAP_DSHOW,
        "CAP_V4L2": cv2.CAP_V4L2,
        "CAP_AVFOUNDATION": cv2.CAP_AVFOUNDATION,
        "CAP_ANDROID": cv2.CAP_ANDROID,
    }

    def __init__(self, config: dict[str, Any]):
        """
        Initialize camera with configuration.

        Args:
            config: Camera configuration dictionary with keys:
                - source: int (device index) or str (video file path)
                - backend: str (CAP_ANY, CAP_V4L2, etc.)
                - width: int
                - height: int
                - fps: int
        """
        self.source = config.get("source", 0)
        self.backend_name = config.get("backend", "CAP_ANY")
        self.width = config.get("width", 640)
        self.height = config.get("height", 480)
        self.fps = config.get("fps", 30)

        self._cap: cv2.VideoCapture | None = None
        self._is_open = False
        # Serializes read() and release() across the UI and worker threads
        self._lock = threading.Lock()

    @property
    def backend(self) -> int:
        """Get OpenCV backend constant."""
        return self.BACKENDS.get(self.backend_name, cv2.CAP_ANY)

    @property
    def is_open(self) -> bool:
        """Check if camera is open and ready."""
        return self._is_open and self._cap is not None and self._cap.isOpened()

    def open(self) -> bool:
        """
        Open the camera for capture.

        Returns:
            True if camera opened successfully, False otherwise.
        """
        if self._is_open:
            return True

        try:
            if isinstance(self.source, str):
                self._cap = cv2.VideoCapture(self.source)
            else:
                self._cap = cv2.VideoCapture(self.source, self.backend)

            if not self._cap.isOpened():
                logger.error(f"Failed to open camera source: {self.source}")
                return False

            self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
            self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
            self._cap.set(cv2.CAP_PROP_FPS, self.fps)
            self._cap.set(cv2.CAP_PROP_BUFFERSIZE, 1)  # Minimize latency

            actual_width = int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH))
            actual_height = int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
            if actual_width != self.width or actual_height != self.height:
                logger.warning(
                    f"Camera resolution mismatch: requested {self.width}x{self.height}, "
                    f"got {actual_width}x{actual_height}"
                )

            self._is_open = True
            logger.info(
                f"Camera opened: source={self.source}, "
                f"resolution={actual_width}x{actual_height}"
            )
            return True

        except cv2.error as e:
            logger.error(f"Error opening camera: {e}")
            return False

    def read(self) -> np.ndarray | None:
        """
        Read a frame from the camera.

        Returns:
            BGR image as numpy array, or None if the camera is closed or the
            read failed.
        """
        with self._lock:
            if not self.is_open:
                return None
            ret, frame = self._cap.read()  # type: ignore
        if not ret:
            return None

        return frame

    def release(self) -> None:
        """Release camera resources."""
        with self._lock:
            if self._cap is not None:
                self._cap.release()
                self._cap = None
            self._is_open = False
        logger.info("Camera released")

    def __enter__(self) -> "Camera":
        """Context manager entry."""
        self.open()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Context manager exit."""
        self.release()


def encode_jpeg(frame: np.ndarray, quality: int = 85) -> bytes | None:
    """
    Encode a BGR frame as JPEG.

    Args:
        frame: BGR numpy array.
        quality: JPEG quality 0-100.

    Returns:
        Encoded bytes, or None if encoding failed.
    """
    try:
        ok, buffer = cv2.imencode(".jpg", frame, [cv2.IMWRITE_JPEG_QUALITY, quality])
    except cv2.error as e:
        logger.warning(f"JPEG encoding error: {e}")
        return None
    if not ok:
        return None
    return buffer.tobytes()


def capture_jpeg(camera: CameraProvider, quality: int = 85) -> bytes | None:
    """Read one frame and encode it. Returns None if either step fails."""
    frame = camera.read()
    if frame is None:
        return None
    return encode_jpeg(frame, quality)
