"""Snap gesture recognition."""
from .snap_detector import SnapDetector, SnapResult

__all__ = ["SnapDetector", "SnapResult"]
