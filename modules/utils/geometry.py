"""
Distance and midpoint helpers over normalized landmarks.

Landmarks live in [0, 1] on both axes, so every distance is measured after
scaling x by the frame width and y by the frame height independently.
"""

import math
from typing import Tuple

from core.types import Landmark


def to_pixel(landmark: Landmark, frame_size: Tuple[int, int]) -> Tuple[int, int]:
    """Normalized landmark -> integer pixel coordinates."""
    width, height = frame_size
    return int(landmark.x * width), int(landmark.y * height)


def distance(a: Landmark, b: Landmark, frame_size: Tuple[int, int]) -> float:
    """Euclidean distance between two landmarks in pixel units.

    Args:
        a, b: Normalized landmarks
        frame_size: (width, height) of the frame the landmarks refer to

    Returns:
        Distance in pixels
    """
    width, height = frame_size
    return math.hypot((a.x - b.x) * width, (a.y - b.y) * height)


def midpoint(a: Landmark, b: Landmark) -> Landmark:
    """Normalized midpoint of two landmarks."""
    return Landmark((a.x + b.x) / 2.0, (a.y + b.y) / 2.0, (a.z + b.z) / 2.0)
