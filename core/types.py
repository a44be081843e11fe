"""
Shared domain types for the Snap Dust demo.

Centralizes enums, data classes, and type definitions used across modules
to eliminate circular imports and ensure type consistency.
"""

import time
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

import numpy as np


NUM_LANDMARKS = 21


# =============================================================================
# Landmarks
# =============================================================================

class LandmarkIndex(IntEnum):
    """Hand landmark indices following MediaPipe convention."""
    WRIST = 0
    THUMB_CMC = 1
    THUMB_MCP = 2
    THUMB_IP = 3
    THUMB_TIP = 4
    INDEX_MCP = 5
    INDEX_PIP = 6
    INDEX_DIP = 7
    INDEX_TIP = 8
    MIDDLE_MCP = 9
    MIDDLE_PIP = 10
    MIDDLE_DIP = 11
    MIDDLE_TIP = 12
    RING_MCP = 13
    RING_PIP = 14
    RING_DIP = 15
    RING_TIP = 16
    PINKY_MCP = 17
    PINKY_PIP = 18
    PINKY_DIP = 19
    PINKY_TIP = 20


# Finger bones plus palm struts, used for both the skeleton overlay
# and the silhouette strokes.
HAND_CONNECTIONS: Tuple[Tuple[int, int], ...] = (
    (0, 1), (1, 2), (2, 3), (3, 4),          # Thumb
    (0, 5), (5, 6), (6, 7), (7, 8),          # Index
    (0, 9), (9, 10), (10, 11), (11, 12),     # Middle
    (0, 13), (13, 14), (14, 15), (15, 16),   # Ring
    (0, 17), (17, 18), (18, 19), (19, 20),   # Pinky
    (5, 9), (9, 13), (13, 17),               # Palm
)

# Wrist + four knuckle bases
PALM_POLYGON: Tuple[int, ...] = (0, 5, 9, 13, 17)


class Landmark(NamedTuple):
    """A single landmark point with normalized coordinates."""
    x: float  # 0.0 to 1.0, normalized by frame width
    y: float  # 0.0 to 1.0, normalized by frame height
    z: float = 0.0  # Depth relative to wrist

    def to_pixel(self, width: int, height: int) -> Tuple[int, int]:
        """Convert normalized coordinates to pixel coordinates."""
        return (int(self.x * width), int(self.y * height))


@dataclass(frozen=True)
class HandSample:
    """The 21 landmarks of one detected hand in one frame."""
    landmarks: Tuple[Landmark, ...]
    handedness: str = "Right"
    confidence: float = 1.0

    def __post_init__(self):
        if len(self.landmarks) != NUM_LANDMARKS:
            raise ValueError(
                f"HandSample needs {NUM_LANDMARKS} landmarks, got {len(self.landmarks)}"
            )
        # Accept any sequence of (x, y[, z]) but store an immutable tuple
        object.__setattr__(
            self, "landmarks", tuple(Landmark(*lm) for lm in self.landmarks)
        )

    def __getitem__(self, index: int) -> Landmark:
        return self.landmarks[index]

    def __len__(self) -> int:
        return len(self.landmarks)

    def __iter__(self):
        return iter(self.landmarks)

    def to_pixels(self, width: int, height: int) -> np.ndarray:
        """Landmarks as an (21, 2) int32 array of pixel coordinates."""
        pts = np.array([[lm.x * width, lm.y * height] for lm in self.landmarks])
        return pts.astype(np.int32)


# =============================================================================
# Gesture / Effect State
# =============================================================================

class EffectMode(Enum):
    """Top-level mode of the demo."""
    TRACKING = "tracking"
    DUSTING = "dusting"


@dataclass(frozen=True)
class GestureState:
    """Snap detector memory carried between frames.

    previous_distance == 0 means no prior sample.
    """
    previous_distance: float = 0.0
    cooldown_active: bool = False
    cooldown_until: float = 0.0


@dataclass(frozen=True)
class AppState:
    """Everything that persists across frames.

    Owned by the application loop and replaced wholesale after each
    processed frame; never mutated in place.
    """
    mode: EffectMode = EffectMode.TRACKING
    gesture: GestureState = field(default_factory=GestureState)
    silhouette: Optional[Any] = None   # SilhouetteMask
    particles: Optional[Any] = None    # ParticleSet
    hand_present: bool = False
    last_tick: Optional[float] = None

    @property
    def is_dusting(self) -> bool:
        return self.mode is EffectMode.DUSTING

    @property
    def particle_count(self) -> int:
        return len(self.particles) if self.particles is not None else 0


# =============================================================================
# Frame I/O
# =============================================================================

class FrameInput:
    """Bundles one camera frame with the hands detected in it.

    Uses __slots__ since one is created per frame.
    """

    __slots__ = ("image", "hands", "width", "height", "frame_id", "timestamp")

    def __init__(self, image: Optional[np.ndarray], hands: List[HandSample],
                 width: int = None, height: int = None, frame_id: int = 0):
        self.image = image
        self.hands = list(hands or [])
        if image is not None:
            h, w = image.shape[:2]
            width = width or w
            height = height or h
        self.width = int(width or 640)
        self.height = int(height or 480)
        self.frame_id = frame_id
        self.timestamp = time.time()

    @property
    def size(self) -> Tuple[int, int]:
        return (self.width, self.height)

    @property
    def primary_hand(self) -> Optional[HandSample]:
        return self.hands[0] if self.hands else None


class DrawOp(Enum):
    """Drawing intents understood by the renderer."""
    CAMERA_FRAME = "camera_frame"
    CONNECTORS = "connectors"
    LANDMARKS = "landmarks"
    SILHOUETTE = "silhouette"
    OVERLAY = "overlay"
    PARTICLES = "particles"


class DrawCommand(NamedTuple):
    op: DrawOp
    payload: Dict[str, Any]


class FrameOutput:
    """Result of one pipeline iteration."""

    __slots__ = ("commands", "fired", "distance", "frame_id")

    def __init__(self, frame_id: int = 0):
        self.commands: List[DrawCommand] = []
        self.fired = False
        self.distance: Optional[float] = None
        self.frame_id = frame_id

    def draw(self, op: DrawOp, **payload):
        self.commands.append(DrawCommand(op, payload))

    @property
    def ops(self) -> List[DrawOp]:
        return [cmd.op for cmd in self.commands]

    def __repr__(self):
        return f"FrameOutput(ops={[op.value for op in self.ops]}, fired={self.fired})"
