"""
Tests for the Effect State Machine
===================================
"""

import sys
from pathlib import Path

import numpy as np
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from core.events import EventBus, Events
from core.types import AppState, EffectMode, GestureState
from modules.effects.particles import ParticleSystem
from modules.effects.silhouette import SilhouetteMask
from modules.effects.state_machine import EffectStateMachine


def filled_mask():
    pixels = np.zeros((120, 160), dtype=np.uint8)
    pixels[40:80, 50:110] = 255
    return SilhouetteMask(pixels)


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def events(bus):
    received = []
    bus.subscribe(EventBus.ALL, lambda name, **kw: received.append((name, kw.get("message"))))
    return received


@pytest.fixture
def machine(bus):
    particles = ParticleSystem({"lifetime_min": 0.2, "lifetime_max": 0.4, "seed": 7})
    return EffectStateMachine(particles, bus)


class TestTrigger:
    """Test suite for TRACKING -> DUSTING."""

    def test_refused_without_silhouette(self, machine, events):
        state = AppState()
        after = machine.trigger(state, source="manual")
        assert after is state
        assert after.mode is EffectMode.TRACKING
        assert (Events.EFFECT_REFUSED, "No silhouette to turn to dust!") in events

    def test_enters_dusting(self, machine, events):
        state = machine.trigger(AppState(silhouette=filled_mask()), source="gesture")
        assert state.mode is EffectMode.DUSTING
        assert state.particle_count > 0
        assert (Events.EFFECT_TRIGGERED, "Dust effect triggered!") in events

    def test_manual_trigger_needs_no_gesture(self, machine):
        state = AppState(silhouette=filled_mask(), gesture=GestureState())
        after = machine.trigger(state, source="manual")
        assert after.is_dusting
        assert after.gesture == state.gesture

    def test_ignored_while_dusting(self, machine):
        dusting = machine.trigger(AppState(silhouette=filled_mask()))
        again = machine.trigger(dusting, source="manual")
        assert again is dusting

    def test_unknown_source(self, machine):
        with pytest.raises(ValueError):
            machine.trigger(AppState(silhouette=filled_mask()), source="voice")

    def test_stale_silhouette_is_enough(self, machine):
        state = AppState(silhouette=filled_mask(), hand_present=False)
        assert machine.trigger(state, source="manual").is_dusting


class TestAdvanceAndReset:
    """Test suite for DUSTING -> TRACKING."""

    @pytest.fixture
    def dusting(self, machine):
        return machine.trigger(AppState(silhouette=filled_mask()))

    def test_advance_is_noop_when_tracking(self, machine):
        state = AppState()
        assert machine.advance(state, 0.1) is state

    def test_advance_steps_particles(self, machine, dusting):
        after = machine.advance(dusting, 0.05)
        assert after.is_dusting
        assert np.all(after.particles.age > 0)

    def test_reverts_when_dissipated(self, machine, dusting, events):
        state = dusting
        counts = [state.particle_count]
        for _ in range(50):
            state = machine.advance(state, 0.05)
            counts.append(state.particle_count)
            if not state.is_dusting:
                break
        assert state.mode is EffectMode.TRACKING
        assert state.particles is None
        assert all(b <= a for a, b in zip(counts, counts[1:]))
        names = [name for name, _ in events]
        assert Events.EFFECT_COMPLETE in names
        assert Events.EFFECT_RESET in names

    def test_empty_silhouette_completes_immediately(self, machine):
        state = machine.trigger(AppState(silhouette=SilhouetteMask.empty((160, 120))))
        assert state.is_dusting
        assert state.particle_count == 0
        assert machine.advance(state, 0.016).mode is EffectMode.TRACKING

    def test_manual_reset(self, machine, dusting, events):
        state = machine.reset(dusting, source="manual")
        assert state.mode is EffectMode.TRACKING
        assert state.particles is None
        assert (Events.EFFECT_RESET,
                "Effect reset. Show your hand and make a snap gesture.") in events

    def test_reset_keeps_silhouette_and_gesture(self, machine, dusting):
        state = machine.reset(dusting)
        assert state.silhouette is dusting.silhouette
        assert state.gesture == dusting.gesture

    def test_reset_while_tracking_is_quiet(self, machine, events):
        machine.reset(AppState())
        assert events == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
