"""
Turns pipeline draw commands into a BGR image with OpenCV.
"""

import logging
from typing import Iterable, Tuple

import cv2
import numpy as np

from core.types import HAND_CONNECTIONS, DrawCommand, DrawOp, LandmarkIndex

logger = logging.getLogger(__name__)

FINGERTIPS = (
    LandmarkIndex.THUMB_TIP, LandmarkIndex.INDEX_TIP, LandmarkIndex.MIDDLE_TIP,
    LandmarkIndex.RING_TIP, LandmarkIndex.PINKY_TIP,
)


class Renderer:
    """Render collaborator: one fresh canvas per frame, commands applied in order."""

    def __init__(self, config: dict = None):
        config = config or {}
        self._background = tuple(config.get("background", [255, 255, 255]))
        self._connector_color = tuple(config.get("connector_color", [0, 255, 0]))
        self._connector_thickness = int(config.get("connector_thickness", 5))
        self._landmark_color = tuple(config.get("landmark_color", [0, 0, 255]))
        self._landmark_radius = int(config.get("landmark_radius", 4))
        self._silhouette_color = tuple(config.get("silhouette_color", [0, 0, 0]))
        self._silhouette_opacity = float(config.get("silhouette_opacity", 0.5))

        self._handlers = {
            DrawOp.CAMERA_FRAME: self._draw_camera_frame,
            DrawOp.CONNECTORS: self._draw_connectors,
            DrawOp.LANDMARKS: self._draw_landmarks,
            DrawOp.SILHOUETTE: self._draw_silhouette,
            DrawOp.OVERLAY: self._draw_overlay,
            DrawOp.PARTICLES: self._draw_particles,
        }

    def new_canvas(self, frame_size: Tuple[int, int]) -> np.ndarray:
        width, height = frame_size
        canvas = np.empty((height, width, 3), dtype=np.uint8)
        canvas[:] = self._background
        return canvas

    def render(self, commands: Iterable[DrawCommand],
               frame_size: Tuple[int, int]) -> np.ndarray:
        """Apply draw commands to a blank canvas of `frame_size`.

        Returns:
            BGR image (height, width, 3)
        """
        canvas = self.new_canvas(frame_size)
        for command in commands:
            handler = self._handlers.get(command.op)
            if handler is None:
                logger.warning("No renderer for draw op %s", command.op)
                continue
            handler(canvas, **command.payload)
        return canvas

    # -------------------------------------------------------------------------
    # Handlers
    # -------------------------------------------------------------------------

    def _draw_camera_frame(self, canvas, image):
        h, w = canvas.shape[:2]
        if image.shape[:2] != (h, w):
            image = cv2.resize(image, (w, h), interpolation=cv2.INTER_LINEAR)
        if image.ndim == 2:
            image = cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
        canvas[:] = image[:, :, :3]

    def _draw_connectors(self, canvas, hand):
        h, w = canvas.shape[:2]
        points = hand.to_pixels(w, h)
        for start, end in HAND_CONNECTIONS:
            cv2.line(canvas, tuple(int(v) for v in points[start]),
                     tuple(int(v) for v in points[end]),
                     self._connector_color, self._connector_thickness, cv2.LINE_AA)

    def _draw_landmarks(self, canvas, hand):
        h, w = canvas.shape[:2]
        for i, (x, y) in enumerate(hand.to_pixels(w, h)):
            radius = self._landmark_radius + (2 if i in FINGERTIPS else 0)
            cv2.circle(canvas, (int(x), int(y)), radius, self._landmark_color, -1, cv2.LINE_AA)

    def _draw_silhouette(self, canvas, mask):
        if mask.pixels.shape != canvas.shape[:2]:
            logger.debug("Silhouette size %s does not match canvas, skipped", mask.size)
            return
        region = mask.pixels > 0
        color = np.array(self._silhouette_color, dtype=np.float32)
        blended = canvas[region].astype(np.float32) * (1 - self._silhouette_opacity) \
            + color * self._silhouette_opacity
        canvas[region] = blended.astype(np.uint8)

    def _draw_overlay(self, canvas, color=(0, 0, 0), opacity=0.7):
        """Fill the whole surface with a translucent colour."""
        overlay = np.empty_like(canvas)
        overlay[:] = color
        cv2.addWeighted(overlay, opacity, canvas, 1 - opacity, 0, canvas)

    def _draw_particles(self, canvas, particles):
        """Alpha-blend each particle as a size x size square."""
        if particles.is_empty:
            return

        h, w = canvas.shape[:2]
        xs = np.floor(particles.x).astype(np.int64)
        ys = np.floor(particles.y).astype(np.int64)
        alpha = particles.alpha.astype(np.float32)[:, None]
        color = particles.color.astype(np.float32)

        for oy in range(particles.size):
            for ox in range(particles.size):
                px, py = xs + ox, ys + oy
                visible = (px >= 0) & (px < w) & (py >= 0) & (py < h)
                if not visible.any():
                    continue
                vx, vy = px[visible], py[visible]
                a = alpha[visible]
                under = canvas[vy, vx].astype(np.float32)
                canvas[vy, vx] = (a * color[visible] + (1 - a) * under).astype(np.uint8)
