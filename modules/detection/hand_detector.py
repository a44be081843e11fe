"""
MediaPipe HandLandmarker wrapper producing HandSamples.

Uses the MediaPipe Tasks API; the model file is fetched on first start.
"""

import logging
import os
import urllib.request
from pathlib import Path
from typing import List, Optional

import numpy as np
import mediapipe as mp
from mediapipe.tasks import python
from mediapipe.tasks.python import vision

from core.types import HandSample, Landmark

logger = logging.getLogger(__name__)

HAND_LANDMARKER_MODEL_URL = (
    "https://storage.googleapis.com/mediapipe-models/hand_landmarker/"
    "hand_landmarker/float16/1/hand_landmarker.task"
)
DEFAULT_MODEL_PATH = Path(__file__).parent.parent.parent / "models" / "hand_landmarker.task"


def download_model(url: str, save_path: Path) -> bool:
    """Download the hand landmarker model if not present."""
    if save_path.exists():
        logger.debug("Model already exists at %s", save_path)
        return True

    try:
        save_path.parent.mkdir(parents=True, exist_ok=True)
        logger.info("Downloading hand landmarker model to %s...", save_path)
        urllib.request.urlretrieve(url, save_path)
        logger.info("Model download complete")
        return True
    except OSError as e:
        logger.error("Failed to download model: %s", e)
        return False


def to_hand_sample(hand_landmarks, handedness=None) -> HandSample:
    """Convert one MediaPipe landmark list (+ handedness categories)."""
    label, score = "Right", 0.0
    if handedness:
        label = handedness[0].category_name
        score = handedness[0].score
    return HandSample(
        landmarks=tuple(Landmark(lm.x, lm.y, lm.z) for lm in hand_landmarks),
        handedness=label,
        confidence=score,
    )


class HandDetector:
    """Hand-pose estimator collaborator.

    Example:
        >>> detector = HandDetector(config.mediapipe)
        >>> if detector.start():
        ...     hands = detector.detect(rgb_image, timestamp_ms)
        >>> detector.stop()
    """

    def __init__(self, config: dict = None):
        config = config or {}
        self._model_path = config.get("model_path") or str(DEFAULT_MODEL_PATH)
        self._max_hands = config.get("max_num_hands", 2)
        self._min_detect_conf = config.get("min_detection_confidence", 0.5)
        self._min_track_conf = config.get("min_tracking_confidence", 0.5)
        self._min_presence_conf = config.get("min_presence_confidence", 0.5)

        self._landmarker: Optional[vision.HandLandmarker] = None
        self._last_timestamp_ms = -1

    def start(self) -> bool:
        """Create the landmarker. Returns False if the model is unavailable."""
        model_path = Path(self._model_path)
        if not model_path.exists():
            if not download_model(HAND_LANDMARKER_MODEL_URL, model_path):
                logger.error("Could not obtain hand landmarker model")
                return False

        try:
            options = vision.HandLandmarkerOptions(
                base_options=python.BaseOptions(model_asset_path=os.fspath(model_path)),
                running_mode=vision.RunningMode.VIDEO,
                num_hands=self._max_hands,
                min_hand_detection_confidence=self._min_detect_conf,
                min_hand_presence_confidence=self._min_presence_conf,
                min_tracking_confidence=self._min_track_conf,
            )
            self._landmarker = vision.HandLandmarker.create_from_options(options)
        except (RuntimeError, ValueError) as e:
            logger.error("Failed to initialize HandLandmarker: %s", e)
            return False

        logger.info(
            "HandLandmarker initialized (max_hands=%d, detect_conf=%.2f, track_conf=%.2f)",
            self._max_hands, self._min_detect_conf, self._min_track_conf,
        )
        return True

    def detect(self, rgb_frame: np.ndarray, timestamp_ms: int) -> List[HandSample]:
        """Detect hands in an RGB frame.

        Args:
            rgb_frame: Frame in RGB color space (H, W, 3)
            timestamp_ms: Frame timestamp; must increase between calls

        Returns:
            One HandSample per detected hand (possibly empty)
        """
        if self._landmarker is None:
            logger.warning("HandLandmarker not initialized. Call start() first.")
            return []

        # VIDEO mode rejects non-increasing timestamps
        timestamp_ms = max(int(timestamp_ms), self._last_timestamp_ms + 1)
        self._last_timestamp_ms = timestamp_ms

        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=np.ascontiguousarray(rgb_frame))
        result = self._landmarker.detect_for_video(mp_image, timestamp_ms)

        hands = []
        for i, hand_landmarks in enumerate(result.hand_landmarks):
            handedness = result.handedness[i] if result.handedness and len(result.handedness) > i else None
            hands.append(to_hand_sample(hand_landmarks, handedness))
        return hands

    def stop(self):
        """Release MediaPipe resources."""
        if self._landmarker:
            self._landmarker.close()
            self._landmarker = None
            logger.info("HandLandmarker closed")
