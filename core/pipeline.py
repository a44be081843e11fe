"""
Per-frame orchestrator for the snap-to-dust demo.

Encapsulates the silhouette -> snap detection -> effect cycle as a single
synchronous function over an explicit state object:

    state', output = pipeline.process_frame(state, frame, now)

Architecture:
    HandSamples -> SilhouetteBuilder -> SnapDetector -> EffectStateMachine
    -> ParticleSystem (while dusting) -> DrawCommands

Nothing here touches a camera, a model or a window; the caller feeds
frames in and hands the returned draw commands to a renderer.
"""

import logging
from dataclasses import replace
from typing import Optional, Tuple

import numpy as np

from core.events import EventBus, Events
from core.types import AppState, DrawOp, FrameInput, FrameOutput
from modules.effects.silhouette import SilhouetteBuilder
from modules.effects.state_machine import EffectStateMachine
from modules.recognition.snap_detector import SnapDetector
from modules.utils.logger import log_timing

logger = logging.getLogger(__name__)

MSG_HAND_DETECTED = "Hand detected"
MSG_HAND_LOST = "No hand detected"
MSG_SNAP = "SNAP DETECTED!"


class Pipeline:
    """Composable frame pipeline.

    Holds collaborators and configuration only. All cross-frame memory is
    in the AppState passed to and returned from process_frame().
    """

    def __init__(
        self,
        silhouette_builder: SilhouetteBuilder,
        snap_detector: SnapDetector,
        state_machine: EffectStateMachine,
        event_bus: EventBus = None,
        config: dict = None,
    ):
        self._builder = silhouette_builder
        self._detector = snap_detector
        self._machine = state_machine
        self._bus = event_bus or EventBus()

        config = config or {}
        self._max_dt = float(config.get("max_dt", 0.1))
        self._show_silhouette = bool(config.get("show_silhouette", False))
        self._overlay_color = tuple(config.get("overlay_color", [0, 0, 0]))
        self._overlay_opacity = float(config.get("overlay_opacity", 0.7))

    def initial_state(self) -> AppState:
        return AppState()

    @property
    def show_silhouette(self) -> bool:
        return self._show_silhouette

    def toggle_silhouette(self) -> bool:
        self._show_silhouette = not self._show_silhouette
        logger.info("Silhouette preview %s", "on" if self._show_silhouette else "off")
        return self._show_silhouette

    # -------------------------------------------------------------------------
    # Frame processing
    # -------------------------------------------------------------------------

    @log_timing
    def process_frame(self, state: AppState, frame: FrameInput,
                      now: float) -> Tuple[AppState, FrameOutput]:
        """Run one frame through the pipeline.

        Args:
            state: State returned by the previous call (or initial_state())
            frame: Camera image and detected hands for this frame
            now: Current time in seconds (monotonic)

        Returns:
            (next state, draw commands and per-frame results)
        """
        output = FrameOutput(frame.frame_id)

        dt = self._elapsed(state, now)
        state = replace(state, last_tick=now)

        # --- 1. Dust effect in progress: no tracking, particles only ---
        if state.is_dusting:
            state = self._machine.advance(state, dt)
            if state.is_dusting:
                self._draw_dust(state, output)
                return state, output
            # No detection ran on this frame: hand presence and gesture carry over
            if frame.image is not None:
                output.draw(DrawOp.CAMERA_FRAME, image=frame.image)
            return state, output

        # --- 2. Camera feed ---
        if frame.image is not None:
            output.draw(DrawOp.CAMERA_FRAME, image=frame.image)

        # --- 3. Hands: overlay, silhouette, snap detection ---
        if frame.hands:
            state = self._track(state, frame, now, output)
        else:
            if state.hand_present:
                self._bus.emit(Events.HAND_LOST, message=MSG_HAND_LOST)
            state = replace(
                state,
                hand_present=False,
                gesture=self._detector.hand_lost(state.gesture),
            )

        # --- 4. Snap fired this frame: switch straight to the effect ---
        if state.is_dusting:
            output.commands.clear()
            self._draw_dust(state, output)
            return state, output

        if self._show_silhouette and state.silhouette is not None:
            output.draw(DrawOp.SILHOUETTE, mask=state.silhouette)

        return state, output

    def _track(self, state: AppState, frame: FrameInput, now: float,
               output: FrameOutput) -> AppState:
        if not state.hand_present:
            self._bus.emit(Events.HAND_DETECTED, message=MSG_HAND_DETECTED,
                           hand_count=len(frame.hands))

        for hand in frame.hands:
            output.draw(DrawOp.CONNECTORS, hand=hand)
            output.draw(DrawOp.LANDMARKS, hand=hand)

        hand = frame.primary_hand
        mask = self._builder.build(hand, frame.size)
        state = replace(state, hand_present=True,
                        silhouette=mask if mask is not None else state.silhouette)

        previous = state.gesture.previous_distance
        result = self._detector.detect(hand, state.gesture, now, frame.size)
        state = replace(state, gesture=result.state)
        output.distance = result.distance

        if result.distance is not None:
            self._bus.emit(
                Events.FINGER_DISTANCE,
                message=f"Finger distance: {result.distance:.1f}, Previous: {previous:.1f}",
                distance=result.distance,
                previous=previous,
            )

        if result.fired:
            output.fired = True
            self._bus.emit(Events.SNAP_DETECTED, message=MSG_SNAP,
                           distance=result.distance, previous=previous)
            state = self._machine.trigger(state, source="gesture", image=frame.image)

        return state

    def _draw_dust(self, state: AppState, output: FrameOutput):
        output.draw(DrawOp.OVERLAY, color=self._overlay_color,
                    opacity=self._overlay_opacity)
        if state.particles is not None:
            output.draw(DrawOp.PARTICLES, particles=state.particles)

    def _elapsed(self, state: AppState, now: float) -> float:
        if state.last_tick is None:
            return 0.0
        return float(np.clip(now - state.last_tick, 0.0, self._max_dt))

    # -------------------------------------------------------------------------
    # Manual controls
    # -------------------------------------------------------------------------

    def force_dust(self, state: AppState, image: Optional[np.ndarray] = None) -> AppState:
        """Manual trigger: same rules as a snap, minus the gesture."""
        return self._machine.trigger(state, source="manual", image=image)

    def force_reset(self, state: AppState) -> AppState:
        """Manual reset back to tracking."""
        return self._machine.reset(state, source="manual")

    def shutdown(self, state: AppState) -> AppState:
        """Terminal state when the input source stops."""
        state = self._machine.reset(state, source="shutdown")
        self._bus.emit(Events.SYSTEM_SHUTDOWN, message="Stopped")
        return state
