"""Reusable Kivy widgets."""

from .camera_preview import CameraPreview

__all__ = ["CameraPreview"]
