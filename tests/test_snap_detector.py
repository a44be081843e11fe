"""
Tests for Snap Gesture Detection
=================================
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent))

from core.types import GestureState
from modules.recognition.snap_detector import SnapDetector
from hand_factory import FRAME_SIZE, create_mock_hand


def feed(detector, gaps, start=0.0, step=1 / 30, state=None):
    """Run a sequence of thumb-index gaps through the detector.

    Returns:
        (final state, list of fired flags)
    """
    state = state or GestureState()
    fired = []
    now = start
    for gap in gaps:
        result = detector.detect(create_mock_hand(gap), state, now, FRAME_SIZE)
        state = result.state
        fired.append(result.fired)
        now += step
    return state, fired


class TestSnapDetection:
    """Test suite for the open -> closed transition rule."""

    @pytest.fixture
    def detector(self):
        return SnapDetector({"high_threshold": 50, "low_threshold": 20, "cooldown_ms": 1000})

    def test_fires_on_open_then_closed(self, detector):
        _, fired = feed(detector, [60, 15])
        assert fired == [False, True]

    def test_first_sample_never_fires(self, detector):
        _, fired = feed(detector, [10])
        assert fired == [False]

    def test_only_consecutive_frames_count(self, detector):
        _, fired = feed(detector, [60, 30, 15])
        assert fired == [False, False, False]

    def test_held_pinch_does_not_fire(self, detector):
        _, fired = feed(detector, [15, 15, 15, 15])
        assert not any(fired)

    def test_previous_at_high_threshold_does_not_fire(self, detector):
        state = GestureState(previous_distance=50.0)
        result = detector.detect(create_mock_hand(10), state, 0.0, FRAME_SIZE)
        assert not result.fired

    def test_current_at_low_threshold_does_not_fire(self, detector):
        # 20 / 640 is exact in binary, so the distance is exactly 20
        state = GestureState(previous_distance=80.0)
        result = detector.detect(create_mock_hand(20), state, 0.0, FRAME_SIZE)
        assert result.distance == 20.0
        assert not result.fired

    def test_distance_is_recorded(self, detector):
        state, _ = feed(detector, [40])
        assert state.previous_distance == pytest.approx(40.0)

    def test_fire_starts_cooldown(self, detector):
        state, fired = feed(detector, [60, 15], start=10.0, step=0.1)
        assert fired[-1]
        assert state.cooldown_active
        assert state.cooldown_until == pytest.approx(11.1)


class TestCooldown:
    """Test suite for the post-fire cooldown window."""

    @pytest.fixture
    def detector(self):
        return SnapDetector({"cooldown_ms": 1000})

    @pytest.fixture
    def fired_state(self, detector):
        state, fired = feed(detector, [60, 15], start=0.0, step=0.0)
        assert fired == [False, True]
        return state

    def test_no_refire_within_cooldown(self, detector, fired_state):
        _, fired = feed(detector, [60, 15, 70, 5], start=0.1, step=0.2, state=fired_state)
        assert not any(fired)

    def test_cooldown_skips_distance_update(self, detector, fired_state):
        result = detector.detect(create_mock_hand(90), fired_state, 0.5, FRAME_SIZE)
        assert result.distance is None
        assert result.state == fired_state

    def test_fires_again_after_cooldown(self, detector, fired_state):
        _, fired = feed(detector, [60, 15], start=1.05, step=0.05, state=fired_state)
        assert fired == [False, True]

    def test_cooldown_clears_on_expiry(self, detector, fired_state):
        result = detector.detect(create_mock_hand(40), fired_state, 1.5, FRAME_SIZE)
        assert not result.state.cooldown_active
        assert result.distance == pytest.approx(40.0)

    def test_in_cooldown(self, detector, fired_state):
        assert detector.in_cooldown(fired_state, 0.5)
        assert not detector.in_cooldown(fired_state, 1.0)


class TestHandLost:
    """Test suite for frames without a hand."""

    def test_resets_to_sentinel(self):
        detector = SnapDetector({"reset_on_hand_lost": True})
        state = GestureState(previous_distance=70.0)
        assert detector.hand_lost(state).previous_distance == 0.0

    def test_no_fire_after_hand_reappears_closed(self):
        detector = SnapDetector()
        state, _ = feed(detector, [70])
        state = detector.hand_lost(state)
        _, fired = feed(detector, [10], state=state)
        assert fired == [False]

    def test_keeps_distance_when_disabled(self):
        detector = SnapDetector({"reset_on_hand_lost": False})
        state = GestureState(previous_distance=70.0)
        assert detector.hand_lost(state) == state

    def test_keeps_cooldown(self):
        detector = SnapDetector()
        state = GestureState(previous_distance=10.0, cooldown_active=True, cooldown_until=5.0)
        lost = detector.hand_lost(state)
        assert lost.cooldown_active
        assert lost.cooldown_until == 5.0


class TestConfig:
    """Test suite for detector configuration."""

    def test_defaults(self):
        detector = SnapDetector()
        assert detector.high_threshold == 50.0
        assert detector.low_threshold == 20.0
        assert detector.cooldown_ms == 1000.0

    def test_inverted_thresholds_rejected(self):
        with pytest.raises(ValueError):
            SnapDetector({"high_threshold": 10, "low_threshold": 20})


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
