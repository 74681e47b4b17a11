"""
Camera calibration asset loading.

The guidance server needs the phone camera's intrinsics to estimate marker
poses. They are computed offline and bundled with the app as JSON:

    {"camera_matrix": [[fx, 0, cx], [0, fy, cy], [0, 0, 1]],
     "dist_coeffs": [k1, k2, p1, p2, k3]}
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path

import numpy as np

logger = logging.getLogger(__name__)


class CalibrationError(Exception):
    """Raised when the calibration asset cannot be loaded or is malformed."""


@dataclass
class Calibration:
    """Camera intrinsics sent with the session initialize request."""

    camera_matrix: np.ndarray
    dist_coeffs: np.ndarray

    def form_fields(self) -> dict[str, str]:
        """Return the JSON-encoded form fields expected by /api/initialize."""
        return {
            "camera_matrix": json.dumps(self.camera_matrix.tolist()),
            "dist_coeffs": json.dumps(self.dist_coeffs.tolist()),
        }


def parse_calibration(data: dict) -> Calibration:
    """
    Validate decoded calibration JSON.

    Args:
        data: Decoded JSON object.

    Returns:
        Calibration with a 3x3 camera matrix and flat distortion vector.

    Raises:
        CalibrationError: On missing keys or wrong shapes.
    """
    if not isinstance(data, dict):
        raise CalibrationError("Calibration data must be a JSON object")

    for key in ("camera_matrix", "dist_coeffs"):
        if key not in data:
            raise CalibrationError(f"Calibration data missing '{key}'")

    try:
        camera_matrix = np.asarray(data["camera_matrix"], dtype=np.float64)
        dist_coeffs = np.asarray(data["dist_coeffs"], dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise CalibrationError(f"Calibration values must be numeric: {e}") from e

    if camera_matrix.shape != (3, 3):
        raise CalibrationError(
            f"camera_matrix must be 3x3, got shape {camera_matrix.shape}"
        )

    # OpenCV writes distortion as either (N,) or (1, N)
    if dist_coeffs.ndim == 2 and dist_coeffs.shape[0] == 1:
        dist_coeffs = dist_coeffs[0]
    if dist_coeffs.ndim != 1 or dist_coeffs.size == 0:
        raise CalibrationError(
            f"dist_coeffs must be a flat list, got shape {dist_coeffs.shape}"
        )

    return Calibration(camera_matrix=camera_matrix, dist_coeffs=dist_coeffs)


def load_calibration(path: str | Path) -> Calibration:
    """
    Load and validate the calibration asset.

    Args:
        path: Path to the calibration JSON file.

    Raises:
        CalibrationError: If the file is missing, unreadable or malformed.
    """
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise CalibrationError(f"Calibration file not found: {path}") from e
    except (OSError, json.JSONDecodeError) as e:
        raise CalibrationError(f"Failed to read calibration file {path}: {e}") from e

    calibration = parse_calibration(data)
    logger.info(
        f"Calibration loaded from {path}: "
        f"{calibration.dist_coeffs.size} distortion coefficients"
    )
    return calibration
