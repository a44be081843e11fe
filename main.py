#!/usr/bin/env python3
"""
Snap Dust - snap your fingers, watch your hand turn to dust.

Tracks a hand on the webcam, draws its landmarks over the live feed, and
when the thumb and index fingertips snap together replaces the hand with a
silhouette that crumbles into falling particles.

Usage:
    python main.py                     # Default camera and config
    python main.py --camera 1          # Another camera
    python main.py --seed 7            # Reproducible particle seeding

Keys:
    d   force the dust effect
    r   reset to tracking
    s   toggle silhouette preview
    q   quit (Esc works too)
"""

import sys
import os
import time
import signal
import argparse
import logging

import cv2

# Add project root to path
PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, PROJECT_ROOT)

from core.events import EventBus, Events
from core.pipeline import Pipeline
from core.types import FrameInput
from modules.utils.config import Config
from modules.utils.logger import setup_logging, StatusLogger
from modules.capture.camera_manager import CameraManager
from modules.detection.hand_detector import HandDetector
from modules.effects.particles import ParticleSystem
from modules.effects.silhouette import SilhouetteBuilder
from modules.effects.state_machine import EffectStateMachine
from modules.recognition.snap_detector import SnapDetector
from modules.visualization.renderer import Renderer

logger = logging.getLogger(__name__)


class SnapDustApp:
    """Wires collaborators around the Pipeline and runs the frame loop.

    The loop is the only writer of the AppState: every frame and every key
    press replaces self._state with the value returned by the pipeline.
    """

    def __init__(self, config: Config):
        self._config = config
        self._running = False

        self._bus = EventBus()
        self._status = StatusLogger(self._bus)

        self._camera = CameraManager(config.camera)
        self._detector = HandDetector(config.mediapipe)
        self._renderer = Renderer(config.visualization)

        particles = ParticleSystem(config.particles)
        self._pipeline = Pipeline(
            silhouette_builder=SilhouetteBuilder(config.silhouette),
            snap_detector=SnapDetector(config.gesture),
            state_machine=EffectStateMachine(particles, self._bus),
            event_bus=self._bus,
            config={
                "max_dt": config.get("particles.max_dt", 0.1),
                "show_silhouette": config.get("visualization.show_silhouette", False),
                "overlay_color": config.get("visualization.overlay_color", [0, 0, 0]),
                "overlay_opacity": config.get("visualization.overlay_opacity", 0.7),
            },
        )
        self._state = self._pipeline.initial_state()
        self._last_image = None

    def start(self) -> bool:
        """Start collaborators and run until quit. Returns False on startup failure."""
        self._bus.emit(Events.SYSTEM_STARTING, message="Setting up hand tracking...")
        if not self._detector.start():
            self._bus.emit(Events.DETECTOR_ERROR,
                           message="Hand tracking error: model unavailable")
            return False

        self._bus.emit(Events.CAMERA_STARTING, message="Starting camera...")
        if not self._camera.open():
            self._bus.emit(Events.CAMERA_ERROR,
                           message="Camera error: could not open camera "
                                   f"{self._config.get('camera.device_id', 0)}")
            self._detector.stop()
            return False

        self._bus.emit(Events.CAMERA_STARTED,
                       message="Camera started. Show your hand and make a snap gesture.")

        self._running = True
        try:
            self._run_main_loop()
        finally:
            self._shutdown()
        return True

    def _run_main_loop(self):
        window_name = self._config.get("visualization.window_name", "Snap Dust")
        show_window = self._config.get("visualization.enabled", True)
        max_failures = self._config.get("camera.max_read_failures", 300)
        failures = 0
        t0 = time.monotonic()

        while self._running:
            frame_id, frame = self._camera.read()
            if frame is None:
                failures += 1
                if failures == 1:
                    self._bus.emit(Events.CAMERA_ERROR, message="Camera error: frame read failed")
                if max_failures and failures >= max_failures:
                    logger.error("No camera frames after %d reads, stopping", failures)
                    self._running = False
                    break
                time.sleep(0.01)
                self._handle_key(cv2.waitKey(1) & 0xFF)
                continue
            if failures:
                logger.info("Camera frames resumed after %d failed reads", failures)
                failures = 0

            now = time.monotonic()
            hands = []
            if not self._state.is_dusting:
                rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
                hands = self._detector.detect(rgb, int((now - t0) * 1000))

            frame_input = FrameInput(frame, hands, frame_id=frame_id)
            self._last_image = frame
            self._state, output = self._pipeline.process_frame(self._state, frame_input, now)

            if show_window:
                canvas = self._renderer.render(output.commands, frame_input.size)
                cv2.imshow(window_name, canvas)

            self._handle_key(cv2.waitKey(1) & 0xFF)

    def _handle_key(self, key: int):
        if key in (ord("q"), 27):
            self._running = False
        elif key == ord("d"):
            self._state = self._pipeline.force_dust(self._state, image=self._last_image)
        elif key == ord("r"):
            self._state = self._pipeline.force_reset(self._state)
        elif key == ord("s"):
            self._pipeline.toggle_silhouette()

    def _shutdown(self):
        """Clean shutdown of all collaborators."""
        logger.info("Shutting down...")
        self._running = False
        self._state = self._pipeline.shutdown(self._state)
        self._camera.stop()
        self._detector.stop()
        cv2.destroyAllWindows()
        logger.info("Shutdown complete.")

    def handle_signal(self, signum, frame):
        """Handle SIGINT/SIGTERM for graceful shutdown."""
        logger.info("Signal %d received, shutting down...", signum)
        self._running = False


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Snap Dust - hand tracking with a snap-triggered dust effect"
    )
    parser.add_argument(
        "--config", type=str, default=None,
        help="Path to config.yaml"
    )
    parser.add_argument(
        "--camera", type=int, default=None,
        help="Camera device ID"
    )
    parser.add_argument(
        "--seed", type=int, default=None,
        help="Random seed for particle seeding"
    )
    parser.add_argument(
        "--log-level", type=str, default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override logging level"
    )
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)

    config = Config()
    config.load(config_path=args.config)

    if args.camera is not None:
        config.set("camera.device_id", args.camera)
    if args.seed is not None:
        config.set("particles.seed", args.seed)
    if args.log_level is not None:
        config.set("logging.level", args.log_level)

    log_cfg = config.logging
    setup_logging(
        level=log_cfg.get("level", "INFO"),
        log_file=log_cfg.get("file"),
        max_size_mb=log_cfg.get("max_size_mb", 10),
        backup_count=log_cfg.get("backup_count", 3),
    )

    logger.info("=" * 60)
    logger.info("  %s  v%s", config.get("system.name", "Snap Dust"),
                config.get("system.version", "1.0.0"))
    logger.info("=" * 60)

    app = SnapDustApp(config)

    signal.signal(signal.SIGINT, app.handle_signal)
    signal.signal(signal.SIGTERM, app.handle_signal)

    return 0 if app.start() else 1


if __name__ == "__main__":
    sys.exit(main())
