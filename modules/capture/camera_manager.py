"""
Synchronous camera capture.

Frames are read on the caller's loop, one per iteration, so frame
processing never overlaps with the next capture.
"""

import logging
import cv2

logger = logging.getLogger(__name__)


class CameraManager:
    """Camera collaborator wrapping cv2.VideoCapture."""

    _BACKENDS = {
        "auto": cv2.CAP_ANY,
        "v4l2": cv2.CAP_V4L2,
        "gstreamer": cv2.CAP_GSTREAMER,
        "dshow": cv2.CAP_DSHOW,
    }

    def __init__(self, config: dict = None):
        config = config or {}
        self._device_id = config.get("device_id", 0)
        self._width = config.get("width", 640)
        self._height = config.get("height", 480)
        self._fps = config.get("fps", 30)
        self._backend = config.get("backend", "auto")
        self._flip_h = config.get("flip_horizontal", True)
        self._warmup_frames = config.get("warmup_frames", 5)

        self._cap = None
        self._frame_id = 0

    def open(self) -> bool:
        """Open the camera. Returns False if the device is unavailable."""
        backend = self._BACKENDS.get(self._backend, cv2.CAP_ANY)
        self._cap = cv2.VideoCapture(self._device_id, backend)
        if not self._cap.isOpened():
            logger.error("Failed to open camera %d with backend %s", self._device_id, self._backend)
            self._cap = None
            return False

        self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, self._width)
        self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self._height)
        self._cap.set(cv2.CAP_PROP_FPS, self._fps)

        actual_w = int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        actual_h = int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        logger.info(
            "Camera opened: %dx%d (requested %dx%d @ %d)",
            actual_w, actual_h, self._width, self._height, self._fps,
        )

        for _ in range(self._warmup_frames):
            self._cap.read()

        return True

    def read(self):
        """Read the next frame.

        Returns:
            tuple: (frame_id, BGR numpy array) or (None, None)
        """
        if self._cap is None:
            return None, None
        ret, frame = self._cap.read()
        if not ret or frame is None:
            return None, None
        if self._flip_h:
            frame = cv2.flip(frame, 1)
        self._frame_id += 1
        return self._frame_id, frame

    def stop(self):
        """Release the camera."""
        if self._cap:
            self._cap.release()
            self._cap = None
            logger.info("Camera stopped")
