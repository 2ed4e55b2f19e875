"""Tests for the ray marcher and its direct lighting strategy."""

import numpy as np
import pytest

from skylut.parameters import CelestialLight
from skylut.ray_functions import ScatteringIntegrator
from tests.scenes import build_scene

RAYS = np.array([[0.0, 1.0, 0.0], [1.0, 1.0, 0.0], [0.3, 1.0, -0.2], [1.0, 0.05, 0.0]])


class TestScatteringIntegrator:

    def test_vacuum_is_transparent_and_dark(self, vacuum_scene):
        r = vacuum_scene.atmosphere.planet_r + 1.0
        origins = np.tile([0.0, r, 0.0], (4, 1))
        directions = np.array([[0.0, 1.0, 0.0], [1.0, 0.0, 0.0], [0.0, -1.0, 0.0], [0.6, 0.8, 0.0]])
        radiance, transmittance = vacuum_scene.integrator.trace_rays(origins, directions)
        assert np.all(radiance == 0.0)
        assert np.allclose(transmittance, 1.0)

    def test_homogeneous_transmittance(self, homogeneous_scene):
        atmosphere = homogeneous_scene.atmosphere
        origin = [0.0, atmosphere.planet_r + 50.0, 0.0]
        radiance, transmittance = homogeneous_scene.integrator.trace_rays([origin], [[0.0, 1.0, 0.0]])

        path = atmosphere.atmos_upper_limit - origin[1]
        expected = np.exp(-np.array(atmosphere.profile.rayleigh_extinction) * path)
        assert np.allclose(transmittance[0], expected, rtol=1e-4)
        assert np.all(radiance[0] > 0.0)

    def test_downward_ray_stops_at_ground(self, homogeneous_scene):
        atmosphere = homogeneous_scene.atmosphere
        origin = [0.0, atmosphere.planet_r + 10.0, 0.0]
        _, transmittance = homogeneous_scene.integrator.trace_rays([origin], [[0.0, -1.0, 0.0]])

        expected = np.exp(-np.array(atmosphere.profile.rayleigh_extinction) * 10.0)
        assert np.allclose(transmittance[0], expected, rtol=1e-4)

    def test_directions_are_normalised(self, homogeneous_scene):
        origin = [0.0, homogeneous_scene.atmosphere.planet_r + 50.0, 0.0]
        unit = homogeneous_scene.integrator.trace_rays([origin], [[0.0, 1.0, 0.0]])
        scaled = homogeneous_scene.integrator.trace_rays([origin], [[0.0, 5.0, 0.0]])
        assert np.allclose(unit[0], scaled[0])
        assert np.allclose(unit[1], scaled[1])

    def test_zenith_sky_is_blue(self, earth_scene):
        origin = [0.0, earth_scene.atmosphere.planet_r + 1.0, 0.0]
        radiance, _ = earth_scene.integrator.trace_rays([origin], [[0.0, 1.0, 0.0]])
        assert radiance[0, 2] > radiance[0, 0]

    def test_count_mismatch(self, vacuum_scene):
        with pytest.raises(ValueError):
            vacuum_scene.integrator.trace_rays(np.zeros((2, 3)), np.ones((3, 3)))

    def test_rejects_zero_steps(self, vacuum_scene):
        with pytest.raises(ValueError):
            ScatteringIntegrator(vacuum_scene.atmosphere, vacuum_scene.lights, steps=0)


class TestDirectLighting:

    def trace(self, lights):
        scene = build_scene(lights=lights)
        origins = np.tile([0.0, scene.atmosphere.planet_r + 1.0, 0.0], (len(RAYS), 1))
        radiance, _ = scene.integrator.trace_rays(origins, RAYS)
        return radiance

    def test_every_light_contributes(self):
        single = self.trace([CelestialLight((0, 1, 0), (2.0, 2.0, 2.0))])
        pair = self.trace([CelestialLight((0, 1, 0), (1.0, 1.0, 1.0)),
                           CelestialLight((0, 1, 0), (1.0, 1.0, 1.0))])
        assert np.all(single > 0.0)
        assert np.allclose(single, pair, rtol=1e-6)

    def test_color_scales_radiance(self):
        white = self.trace([CelestialLight((1, 1, 0), (1.0, 1.0, 1.0))])
        tinted = self.trace([CelestialLight((1, 1, 0), (0.5, 0.0, 3.0))])
        assert np.allclose(tinted, white * np.array([0.5, 0.0, 3.0]), rtol=1e-5)

    def test_light_below_horizon_adds_nothing(self):
        sun = CelestialLight((0, 1, 0), (1.0, 1.0, 1.0))
        alone = self.trace([sun])
        with_hidden = self.trace([sun, CelestialLight((0, -1, 0), (5.0, 5.0, 5.0))])
        assert np.allclose(alone, with_hidden, rtol=1e-6, atol=0.0)
