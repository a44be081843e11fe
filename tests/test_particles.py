"""
Tests for the Particle System
==============================
"""

import sys
from pathlib import Path

import numpy as np
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from modules.effects.particles import DEFAULT_PALETTE, ParticleSet, ParticleSystem
from modules.effects.silhouette import SilhouetteMask


def rect_mask(x=100, y=80, w=60, h=40, frame_size=(320, 240)):
    width, height = frame_size
    pixels = np.zeros((height, width), dtype=np.uint8)
    pixels[y:y + h, x:x + w] = 255
    return SilhouetteMask(pixels)


@pytest.fixture
def system():
    return ParticleSystem({
        "density": 4,
        "lifetime_min": 0.5,
        "lifetime_max": 1.0,
        "seed": 1234,
    })


class TestSeeding:
    """Test suite for sampling particles from a mask."""

    def test_filled_mask_gives_particles(self, system):
        particles = system.seed(rect_mask())
        assert len(particles) > 0

    def test_one_candidate_per_block(self, system):
        particles = system.seed(rect_mask(w=60, h=40), density=4)
        assert len(particles) <= (60 // 4) * (40 // 4)
        assert len(particles) >= (60 // 4) * (40 // 4) // 2

    def test_coarser_density_gives_fewer(self, system):
        fine = system.seed(rect_mask(), density=2)
        coarse = system.seed(rect_mask(), density=8)
        assert len(coarse) < len(fine)

    def test_particles_start_inside_mask(self, system):
        mask = rect_mask()
        particles = system.seed(mask)
        xs = np.floor(particles.x).astype(int)
        ys = np.floor(particles.y).astype(int)
        assert np.all(mask.pixels[ys, xs] > 0)

    def test_empty_mask_gives_empty_set(self, system):
        particles = system.seed(SilhouetteMask.empty((320, 240)))
        assert particles.is_empty
        assert len(particles) == 0

    def test_single_pixel_region(self, system):
        pixels = np.zeros((40, 40), dtype=np.uint8)
        pixels[5, 5] = 255
        particles = system.seed(SilhouetteMask(pixels), density=8)
        assert len(particles) == 1

    def test_initial_state(self, system):
        particles = system.seed(rect_mask())
        assert np.all(particles.age == 0)
        assert np.all((particles.lifetime >= 0.5) & (particles.lifetime <= 1.0))
        assert np.all((particles.alpha >= 0.6) & (particles.alpha <= 1.0))
        np.testing.assert_array_equal(particles.alpha, particles.base_alpha)

    def test_velocity_points_outward(self):
        system = ParticleSystem({"spread": 0.0, "downward_bias": 0.0, "seed": 3})
        particles = system.seed(rect_mask(x=100, y=80, w=60, h=40))
        cx = particles.x.mean()
        left = particles.x < cx - 10
        right = particles.x > cx + 10
        assert np.all(particles.vx[left] < 0)
        assert np.all(particles.vx[right] > 0)

    def test_palette_colors_without_image(self, system):
        particles = system.seed(rect_mask())
        palette = {tuple(c) for c in DEFAULT_PALETTE}
        assert {tuple(int(v) for v in c) for c in particles.color} <= palette

    def test_colors_sampled_from_image(self, system):
        image = np.zeros((240, 320, 3), dtype=np.uint8)
        image[:] = (10, 20, 30)
        particles = system.seed(rect_mask(), image=image)
        assert np.all(particles.color == np.array([10, 20, 30], dtype=np.uint8))

    def test_image_of_wrong_size_falls_back_to_palette(self, system):
        image = np.full((10, 10, 3), 7, dtype=np.uint8)
        particles = system.seed(rect_mask(), image=image)
        assert not np.any(np.all(particles.color == 7, axis=1))

    def test_invalid_density(self, system):
        with pytest.raises(ValueError):
            system.seed(rect_mask(), density=-2)

    def test_zero_density_rejected(self, system):
        with pytest.raises(ValueError):
            system.seed(rect_mask(), density=0)

    def test_invalid_config(self):
        with pytest.raises(ValueError):
            ParticleSystem({"lifetime_min": 2.0, "lifetime_max": 1.0})
        with pytest.raises(ValueError):
            ParticleSystem({"density": 0})


class TestStepping:
    """Test suite for the per-tick simulation."""

    @pytest.fixture
    def particles(self, system):
        return system.seed(rect_mask())

    def test_empty_set_is_done(self, system):
        particles, done = system.step(ParticleSet.empty(), 0.016)
        assert done
        assert particles.is_empty

    def test_step_does_not_mutate_input(self, system, particles):
        x_before = particles.x.copy()
        vy_before = particles.vy.copy()
        age_before = particles.age.copy()
        system.step(particles, 0.1)
        np.testing.assert_array_equal(particles.x, x_before)
        np.testing.assert_array_equal(particles.vy, vy_before)
        np.testing.assert_array_equal(particles.age, age_before)

    def test_step_is_deterministic(self, system, particles):
        a, _ = system.step(particles, 0.05)
        b, _ = system.step(particles, 0.05)
        np.testing.assert_array_equal(a.x, b.x)
        np.testing.assert_array_equal(a.vx, b.vx)
        np.testing.assert_array_equal(a.alpha, b.alpha)

    def test_integrates_position(self, system, particles):
        stepped, _ = system.step(particles, 0.1)
        np.testing.assert_allclose(stepped.x, particles.x + particles.vx * 0.1)
        np.testing.assert_allclose(stepped.y, particles.y + particles.vy * 0.1)

    def test_gravity_pulls_down(self, particles):
        system = ParticleSystem({"gravity": 200.0, "drift": 0.0})
        stepped, _ = system.step(particles, 0.1)
        np.testing.assert_allclose(stepped.vy, particles.vy + 20.0)
        np.testing.assert_allclose(stepped.vx, particles.vx)

    def test_drift_is_bounded(self, particles):
        system = ParticleSystem({"drift": 50.0})
        stepped, _ = system.step(particles, 0.1)
        assert np.all(np.abs(stepped.vx - particles.vx) <= 5.0 + 1e-9)

    def test_alpha_fades_with_age(self, system, particles):
        stepped, _ = system.step(particles, 0.2)
        expected = stepped.base_alpha * (1 - stepped.age / stepped.lifetime)
        np.testing.assert_allclose(stepped.alpha, expected)
        assert np.all(stepped.alpha < stepped.base_alpha)

    def test_zero_dt_changes_nothing(self, system, particles):
        stepped, done = system.step(particles, 0.0)
        assert not done
        assert len(stepped) == len(particles)
        np.testing.assert_array_equal(stepped.x, particles.x)

    def test_negative_dt_treated_as_zero(self, system, particles):
        stepped, _ = system.step(particles, -1.0)
        np.testing.assert_array_equal(stepped.age, particles.age)

    def test_count_never_grows_until_done(self, system, particles):
        counts = [len(particles)]
        done = False
        for _ in range(100):
            particles, done = system.step(particles, 0.05)
            counts.append(len(particles))
            if done:
                break
        assert done
        assert counts[-1] == 0
        assert all(b <= a for a, b in zip(counts, counts[1:]))

    def test_retires_at_lifetime(self, system, particles):
        stepped, done = system.step(particles, 1.0)
        assert done
        assert stepped.is_empty

    def test_select(self, particles):
        keep = np.zeros(len(particles), dtype=bool)
        keep[:3] = True
        subset = particles.select(keep)
        assert len(subset) == 3
        np.testing.assert_array_equal(subset.x, particles.x[:3])


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
