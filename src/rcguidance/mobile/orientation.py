"""
Scoped screen-orientation lock.

Capture screens run in landscape; everything else runs in portrait. The
lock is acquired when a capture screen is entered and released when it is
left, instead of flipping a process-wide setting and hoping someone resets
it.
"""

import logging
from typing import Any

logger = logging.getLogger(__name__)

# android.content.pm.ActivityInfo constants
SCREEN_ORIENTATION_SENSOR_LANDSCAPE = 6
SCREEN_ORIENTATION_SENSOR_PORTRAIT = 7


class OrientationLock:
    """
    Landscape lock for the lifetime of a capture screen.

    On desktop platforms this only tracks state; on Android it sets the
    activity's requested orientation through pyjnius.

    Usage:
        with OrientationLock("android"):
            ...
    """

    def __init__(self, platform_type: str = "desktop"):
        self.platform_type = platform_type
        self._held = False

    @property
    def is_held(self) -> bool:
        return self._held

    def _set_orientation(self, orientation: int) -> None:
        if self.platform_type != "android":
            return
        from jnius import autoclass

        activity = autoclass("org.kivy.android.PythonActivity").mActivity
        activity.setRequestedOrientation(orientation)

    def acquire(self) -> None:
        """Switch to landscape. Re-acquiring a held lock does nothing."""
        if self._held:
            return
        self._set_orientation(SCREEN_ORIENTATION_SENSOR_LANDSCAPE)
        self._held = True
        logger.debug("Orientation locked to landscape")

    def release(self) -> None:
        """Restore portrait. Safe to call when not held."""
        if not self._held:
            return
        self._set_orientation(SCREEN_ORIENTATION_SENSOR_PORTRAIT)
        self._held = False
        logger.debug("Orientation restored to portrait")

    def __enter__(self) -> "OrientationLock":
        self.acquire()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.release()
