"""
Camera preview widget for RC guidance.

Displays live camera feed as a Kivy Image widget with efficient texture updates.
"""

import logging

import cv2
import numpy as np
from kivy.graphics.texture import Texture
from kivy.uix.image import Image

logger = logging.getLogger(__name__)


class CameraPreview(Image):
    """
    Kivy Image widget for displaying camera frames.

    Converts OpenCV BGR frames to Kivy textures. Must be updated from the
    main thread.
    """

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self._create_placeholder()

    def _create_placeholder(self):
        """Create a placeholder texture for when no frame is available."""
        placeholder = np.full((480, 640, 3), 50, dtype=np.uint8)
        cv2.putText(
            placeholder,
            "Camera Preview",
            (170, 240),
            cv2.FONT_HERSHEY_SIMPLEX,
            1.2,
            (128, 128, 128),
            2,
        )
        self.update_frame(placeholder)

    def update_frame(self, frame: np.ndarray | None) -> None:
        """
        Update the Kivy texture with a BGR frame.

        Args:
            frame: BGR numpy array, ignored if None.
        """
        if frame is None:
            return

        try:
            height, width = frame.shape[:2]

            # Kivy textures are RGB and bottom-up
            frame_rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
            frame_rgb = cv2.flip(frame_rgb, 0)

            if (
                self.texture is None
                or self.texture.width != width
                or self.texture.height != height
            ):
                self.texture = Texture.create(size=(width, height), colorfmt="rgb")

            self.texture.blit_buffer(
                frame_rgb.tobytes(), colorfmt="rgb", bufferfmt="ubyte"
            )
            self.canvas.ask_update()

        except cv2.error as e:
            logger.error(f"Error updating camera preview texture: {e}")
