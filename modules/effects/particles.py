"""
Dust particles sampled from a silhouette mask.

Particles are stored as a struct of numpy arrays so one step over a few
thousand grains is a handful of vectorized operations. Seeding is random;
stepping is a pure function of (particles, dt) so the simulation can be
driven at whatever cadence frames arrive.

Units: positions in pixels, velocities in px/s, gravity in px/s^2,
ages and lifetimes in seconds, alpha in [0, 1].
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from modules.effects.silhouette import SilhouetteMask

logger = logging.getLogger(__name__)

# Ashen greys and browns (BGR)
DEFAULT_PALETTE = [
    [58, 66, 79],
    [86, 98, 115],
    [112, 124, 140],
    [40, 46, 54],
    [74, 92, 122],
]


@dataclass(frozen=True, eq=False)
class ParticleSet:
    """N particles as parallel arrays."""
    x: np.ndarray
    y: np.ndarray
    vx: np.ndarray
    vy: np.ndarray
    color: np.ndarray       # (N, 3) uint8, BGR
    base_alpha: np.ndarray
    alpha: np.ndarray
    age: np.ndarray
    lifetime: np.ndarray
    phase: np.ndarray
    size: int = 2

    @classmethod
    def empty(cls, size: int = 2) -> "ParticleSet":
        z = np.zeros(0, dtype=np.float64)
        return cls(x=z, y=z, vx=z, vy=z,
                   color=np.zeros((0, 3), dtype=np.uint8),
                   base_alpha=z, alpha=z, age=z, lifetime=z, phase=z, size=size)

    def __len__(self) -> int:
        return int(self.x.shape[0])

    @property
    def is_empty(self) -> bool:
        return len(self) == 0

    def select(self, keep: np.ndarray) -> "ParticleSet":
        """Subset by boolean mask or index array."""
        return ParticleSet(
            x=self.x[keep], y=self.y[keep], vx=self.vx[keep], vy=self.vy[keep],
            color=self.color[keep], base_alpha=self.base_alpha[keep],
            alpha=self.alpha[keep], age=self.age[keep],
            lifetime=self.lifetime[keep], phase=self.phase[keep], size=self.size,
        )

    def __repr__(self):
        return f"ParticleSet(n={len(self)}, size={self.size})"


class ParticleSystem:
    """Seeds dust from a mask and advances it under gravity and drift."""

    def __init__(self, config: dict = None, rng: Optional[np.random.Generator] = None):
        config = config or {}
        self.density = int(config.get("density", 4))
        self.gravity = float(config.get("gravity", 240.0))
        self.drift = float(config.get("drift", 60.0))
        self.drift_frequency = float(config.get("drift_frequency", 3.0))
        self.speed_min = float(config.get("speed_min", 15.0))
        self.speed_max = float(config.get("speed_max", 90.0))
        self.downward_bias = float(config.get("downward_bias", 40.0))
        self.spread = float(config.get("spread", 0.35))  # radians of direction noise
        self.lifetime_min = float(config.get("lifetime_min", 1.0))
        self.lifetime_max = float(config.get("lifetime_max", 2.5))
        self.alpha_min = float(config.get("alpha_min", 0.6))
        self.alpha_max = float(config.get("alpha_max", 1.0))
        self.particle_size = int(config.get("size", 2))
        self.sample_colors = bool(config.get("sample_colors", True))
        self.palette = np.asarray(config.get("palette") or DEFAULT_PALETTE, dtype=np.uint8)

        if self.density < 1:
            raise ValueError(f"density must be >= 1, got {self.density}")
        if not 0 < self.lifetime_min <= self.lifetime_max:
            raise ValueError(
                f"invalid lifetime range [{self.lifetime_min}, {self.lifetime_max}]"
            )
        if not 0 < self.alpha_min <= self.alpha_max <= 1.0:
            raise ValueError(f"invalid alpha range [{self.alpha_min}, {self.alpha_max}]")

        self._rng = rng if rng is not None else np.random.default_rng(config.get("seed"))

    # -------------------------------------------------------------------------
    # Seeding
    # -------------------------------------------------------------------------

    def seed(self, mask: SilhouetteMask, density: int = None,
             image: Optional[np.ndarray] = None) -> ParticleSet:
        """Sample particles from the opaque region of `mask`.

        Args:
            mask: Silhouette to disintegrate
            density: Grid cell size in pixels (one candidate per cell)
            image: Optional BGR frame the mask was cut from; particle
                colours are sampled from it when colour sampling is on

        Returns:
            New ParticleSet (empty for an empty mask)
        """
        density = self.density if density is None else int(density)
        if density < 1:
            raise ValueError(f"density must be >= 1, got {density}")

        px, py = self._sample_points(mask, density)
        n = px.size
        if n == 0:
            logger.debug("Empty silhouette, no particles seeded")
            return ParticleSet.empty(self.particle_size)

        rng = self._rng
        color = self._colors(px, py, mask, image)

        # Outward from the centroid, with some angular noise
        cx, cy = px.mean(), py.mean()
        dx, dy = px - cx, py - cy
        angle = np.arctan2(dy, dx)
        at_center = (dx == 0) & (dy == 0)
        angle[at_center] = rng.uniform(0.0, 2 * np.pi, size=int(at_center.sum()))
        angle = angle + rng.normal(0.0, self.spread, size=n)
        speed = rng.uniform(self.speed_min, self.speed_max, size=n)

        vx = np.cos(angle) * speed
        vy = np.sin(angle) * speed + rng.uniform(0.0, self.downward_bias, size=n)

        base_alpha = rng.uniform(self.alpha_min, self.alpha_max, size=n)

        particles = ParticleSet(
            x=px.astype(np.float64) + 0.5,
            y=py.astype(np.float64) + 0.5,
            vx=vx,
            vy=vy,
            color=color,
            base_alpha=base_alpha,
            alpha=base_alpha.copy(),
            age=np.zeros(n, dtype=np.float64),
            lifetime=rng.uniform(self.lifetime_min, self.lifetime_max, size=n),
            phase=rng.uniform(0.0, 2 * np.pi, size=n),
            size=self.particle_size,
        )
        logger.debug("Seeded %d particles (density=%d, mask area=%d)",
                     n, density, mask.area)
        return particles

    def _sample_points(self, mask: SilhouetteMask, density: int) -> Tuple[np.ndarray, np.ndarray]:
        """Jittered grid over the mask's bounding box, kept where opaque."""
        bbox = mask.bounding_box
        if bbox is None:
            return np.zeros(0, dtype=np.int64), np.zeros(0, dtype=np.int64)

        bx, by, bw, bh = bbox
        xx, yy = np.meshgrid(np.arange(bx, bx + bw, density),
                             np.arange(by, by + bh, density))
        jx = self._rng.integers(0, density, size=xx.shape)
        jy = self._rng.integers(0, density, size=yy.shape)
        px = np.minimum(xx + jx, bx + bw - 1).ravel()
        py = np.minimum(yy + jy, by + bh - 1).ravel()

        inside = mask.pixels[py, px] > 0
        px, py = px[inside], py[inside]

        if px.size == 0:
            # Region thinner than a grid cell: fall back to its own pixels
            ys, xs = np.nonzero(mask.pixels)
            stride = max(1, density * density)
            px, py = xs[::stride], ys[::stride]

        return px, py

    def _colors(self, px: np.ndarray, py: np.ndarray, mask: SilhouetteMask,
                image: Optional[np.ndarray]) -> np.ndarray:
        if (self.sample_colors and image is not None
                and image.shape[:2] == mask.pixels.shape):
            if image.ndim == 2:
                gray = image[py, px].astype(np.uint8)
                return np.stack([gray, gray, gray], axis=1)
            return image[py, px, :3].astype(np.uint8)
        idx = self._rng.integers(0, len(self.palette), size=px.size)
        return self.palette[idx]

    # -------------------------------------------------------------------------
    # Simulation
    # -------------------------------------------------------------------------

    def step(self, particles: ParticleSet, dt: float) -> Tuple[ParticleSet, bool]:
        """Advance every particle by `dt` seconds and retire the dead ones.

        Pure: the input set is not modified and no randomness is involved.

        Returns:
            (surviving particles, done) where done means none survive
        """
        if particles.is_empty:
            return particles, True

        dt = max(0.0, float(dt))
        p = particles

        x = p.x + p.vx * dt
        y = p.y + p.vy * dt
        vx = p.vx + self.drift * np.sin(p.phase + p.age * self.drift_frequency) * dt
        vy = p.vy + self.gravity * dt
        age = p.age + dt
        alpha = p.base_alpha * (1.0 - age / p.lifetime)

        alive = (age < p.lifetime) & (alpha > 0.0)

        stepped = ParticleSet(
            x=x, y=y, vx=vx, vy=vy, color=p.color, base_alpha=p.base_alpha,
            alpha=np.clip(alpha, 0.0, 1.0), age=age, lifetime=p.lifetime,
            phase=p.phase, size=p.size,
        ).select(alive)

        return stepped, stepped.is_empty
