"""
Snap gesture detection from thumb-tip / index-tip distance.

A snap is a transition, not a pose: the fingers must be apart on one frame
and nearly touching on the very next. Pinching and holding never fires.

Debouncing is a pull-based cooldown: after a fire, frames arriving before
`cooldown_until` are ignored outright, including the distance update, so
the detector wakes up from the cooldown with the closed-finger distance
from the firing frame and cannot re-fire on the same physical snap.
"""

import logging
from dataclasses import replace
from typing import NamedTuple, Optional, Tuple

from core.types import GestureState, HandSample, LandmarkIndex
from modules.utils.geometry import distance

logger = logging.getLogger(__name__)


class SnapResult(NamedTuple):
    state: GestureState
    fired: bool
    distance: Optional[float]  # None when the frame was skipped


class SnapDetector:
    """Stateless classifier; all memory lives in GestureState."""

    def __init__(self, config: dict = None):
        config = config or {}
        self.high_threshold = float(config.get("high_threshold", 50.0))
        self.low_threshold = float(config.get("low_threshold", 20.0))
        self.cooldown_ms = float(config.get("cooldown_ms", 1000))
        self.reset_on_hand_lost = bool(config.get("reset_on_hand_lost", True))

        if self.low_threshold >= self.high_threshold:
            raise ValueError(
                f"low_threshold ({self.low_threshold}) must be below "
                f"high_threshold ({self.high_threshold})"
            )

    def detect(self, hand: HandSample, state: GestureState, now: float,
               frame_size: Tuple[int, int]) -> SnapResult:
        """Feed one frame's hand through the detector.

        Args:
            hand: Landmarks of the hand to test
            state: Detector state from the previous frame
            now: Current time in seconds (monotonic)
            frame_size: (width, height) used to scale landmarks to pixels

        Returns:
            SnapResult with the next state and whether a snap fired
        """
        if state.cooldown_active:
            if now < state.cooldown_until:
                return SnapResult(state, False, None)
            state = replace(state, cooldown_active=False, cooldown_until=0.0)
            logger.debug("Snap cooldown expired")

        d = distance(hand[LandmarkIndex.THUMB_TIP], hand[LandmarkIndex.INDEX_TIP], frame_size)
        previous = state.previous_distance

        fired = (
            previous > 0
            and previous > self.high_threshold
            and d < self.low_threshold
        )

        if fired:
            state = replace(
                state,
                cooldown_active=True,
                cooldown_until=now + self.cooldown_ms / 1000.0,
            )
            logger.debug("Snap: %.1f -> %.1f px", previous, d)

        return SnapResult(replace(state, previous_distance=d), fired, d)

    def hand_lost(self, state: GestureState) -> GestureState:
        """State to carry over a frame with no hand."""
        if self.reset_on_hand_lost and state.previous_distance != 0.0:
            return replace(state, previous_distance=0.0)
        return state

    def in_cooldown(self, state: GestureState, now: float) -> bool:
        return state.cooldown_active and now < state.cooldown_until
