"""
Tracking <-> Dusting mode transitions.

    TRACKING --(snap or manual trigger, silhouette required)--> DUSTING
    DUSTING  --(particles dissipated or manual reset)---------> TRACKING

Every transition takes the current AppState and returns a new one; the
machine itself holds only configuration and collaborators.
"""

import logging
from dataclasses import replace
from typing import Optional

import numpy as np

from core.events import EventBus, Events
from core.types import AppState, EffectMode
from modules.effects.particles import ParticleSystem

logger = logging.getLogger(__name__)

TRIGGER_SOURCES = ("gesture", "manual")

MSG_TRIGGERED = "Dust effect triggered!"
MSG_REFUSED = "No silhouette to turn to dust!"
MSG_RESET = "Effect reset. Show your hand and make a snap gesture."


class EffectStateMachine:
    """Owns the rules for entering and leaving the dust effect."""

    def __init__(self, particle_system: ParticleSystem, event_bus: EventBus = None):
        self._particles = particle_system
        self._bus = event_bus or EventBus()

    def trigger(self, state: AppState, source: str = "gesture",
                image: Optional[np.ndarray] = None) -> AppState:
        """Enter DUSTING, seeding particles from the current silhouette.

        Refused (state returned unchanged) when no silhouette has been seen.
        """
        if source not in TRIGGER_SOURCES:
            raise ValueError(f"Unknown trigger source: {source!r}")

        if state.mode is EffectMode.DUSTING:
            logger.debug("Trigger from %s ignored: effect already running", source)
            return state

        if state.silhouette is None:
            logger.warning("Dust trigger (%s) refused: no silhouette", source)
            self._bus.emit(Events.EFFECT_REFUSED, message=MSG_REFUSED, source=source)
            return state

        particles = self._particles.seed(state.silhouette, image=image)
        logger.info("Dust effect triggered by %s: %d particles", source, len(particles))
        self._bus.emit(Events.EFFECT_TRIGGERED, message=MSG_TRIGGERED,
                       source=source, particle_count=len(particles))

        return replace(state, mode=EffectMode.DUSTING, particles=particles)

    def reset(self, state: AppState, source: str = "manual") -> AppState:
        """Return to TRACKING with no particles."""
        was_dusting = state.mode is EffectMode.DUSTING
        state = replace(state, mode=EffectMode.TRACKING, particles=None)
        if was_dusting:
            logger.info("Effect reset (%s)", source)
            self._bus.emit(Events.EFFECT_RESET, message=MSG_RESET, source=source)
        return state

    def advance(self, state: AppState, dt: float) -> AppState:
        """Step the particles while dusting; revert once they are gone."""
        if state.mode is not EffectMode.DUSTING:
            return state

        particles = state.particles
        if particles is None:
            return self.reset(state, source="complete")

        particles, done = self._particles.step(particles, dt)
        if done:
            self._bus.emit(Events.EFFECT_COMPLETE, message="Dust settled")
            return self.reset(replace(state, particles=particles), source="complete")

        return replace(state, particles=particles)
