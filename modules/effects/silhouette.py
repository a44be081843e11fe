"""
Filled hand silhouette built from 21 landmarks.

Thick strokes along every bone plus a filled palm polygon, then a round
stamp on every joint so fingertips and knuckles are not cut square.
"""

import logging
from typing import Optional, Tuple

import cv2
import numpy as np

from core.types import HAND_CONNECTIONS, PALM_POLYGON, HandSample

logger = logging.getLogger(__name__)

MASK_ON = 255


class SilhouetteMask:
    """Single-channel opacity mask: 255 inside the hand, 0 elsewhere."""

    __slots__ = ("pixels",)

    def __init__(self, pixels: np.ndarray):
        if pixels.ndim != 2:
            raise ValueError(f"Silhouette mask must be 2-D, got shape {pixels.shape}")
        self.pixels = pixels

    @classmethod
    def empty(cls, frame_size: Tuple[int, int]) -> "SilhouetteMask":
        width, height = frame_size
        return cls(np.zeros((height, width), dtype=np.uint8))

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]

    @property
    def size(self) -> Tuple[int, int]:
        return (self.width, self.height)

    @property
    def area(self) -> int:
        """Number of opaque pixels."""
        return int(np.count_nonzero(self.pixels))

    @property
    def is_empty(self) -> bool:
        return self.area == 0

    @property
    def bounding_box(self) -> Optional[Tuple[int, int, int, int]]:
        """(x, y, w, h) of the opaque region, or None when empty."""
        if self.is_empty:
            return None
        return tuple(int(v) for v in cv2.boundingRect(self.pixels))

    def contains(self, x: int, y: int) -> bool:
        if not (0 <= x < self.width and 0 <= y < self.height):
            return False
        return bool(self.pixels[y, x])

    def __repr__(self):
        return f"SilhouetteMask({self.width}x{self.height}, area={self.area})"


class SilhouetteBuilder:
    """Rasterizes a HandSample into a SilhouetteMask.

    Stateless: the current silhouette is carried in AppState.silhouette.
    """

    def __init__(self, config: dict = None):
        config = config or {}
        self._stroke_width = int(config.get("stroke_width", 15))
        self._joint_radius = int(config.get("joint_radius", 10))

    def build(self, hand: Optional[HandSample],
              frame_size: Tuple[int, int]) -> Optional[SilhouetteMask]:
        """Draw the silhouette of `hand`; None when there is no hand."""
        if hand is None:
            return None

        width, height = frame_size
        pixels = np.zeros((height, width), dtype=np.uint8)
        points = hand.to_pixels(width, height)

        for start, end in HAND_CONNECTIONS:
            cv2.line(pixels, tuple(int(v) for v in points[start]),
                     tuple(int(v) for v in points[end]),
                     MASK_ON, self._stroke_width, cv2.LINE_8)

        palm = points[list(PALM_POLYGON)].reshape((-1, 1, 2))
        cv2.fillPoly(pixels, [palm], MASK_ON)

        for x, y in points:
            cv2.circle(pixels, (int(x), int(y)), self._joint_radius, MASK_ON, -1)

        mask = SilhouetteMask(pixels)
        logger.debug("Silhouette rebuilt: %s", mask)
        return mask
