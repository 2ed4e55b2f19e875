"""Tests for the low-discrepancy direction sampler and the LUT parameterisation."""

import numpy as np
import pytest

from skylut.sampling import (
    radical_inverse,
    hammersley,
    sample_direction,
    sample_directions,
    cap_discrepancy,
)
from skylut.lut_sampling import (
    PLANET_RADIUS_OFFSET,
    coordinate_to_parameters,
    parameters_to_coordinate,
    lut_parameters,
    observer_positions,
)

PLANET_R = 6360.0
TOP_R = 6460.0


class TestRadicalInverse:

    def test_known_values(self):
        assert radical_inverse(0) == 0.0
        assert radical_inverse(1) == 0.5
        assert radical_inverse(2) == 0.25
        assert radical_inverse(3) == 0.75
        assert radical_inverse(5) == 0.625

    def test_vectorised(self):
        values = radical_inverse(np.arange(8))
        assert np.allclose(values, [0.0, 0.5, 0.25, 0.75, 0.125, 0.625, 0.375, 0.875])

    def test_hammersley_second_coordinate_is_stratified(self):
        points = hammersley(np.arange(4), 4)
        assert np.allclose(points[:, 1], [0.125, 0.375, 0.625, 0.875])


class TestSampleDirection:

    def test_deterministic(self):
        for i in (0, 7, 63):
            assert np.array_equal(sample_direction(i, 64), sample_direction(i, 64))
        assert np.array_equal(sample_directions(64), sample_directions(64))

    def test_matches_batch(self):
        directions = sample_directions(32)
        for i in range(32):
            assert np.array_equal(sample_direction(i, 32), directions[i])

    def test_unit_length(self):
        directions = sample_directions(128)
        assert directions.shape == (128, 3)
        assert np.allclose(np.linalg.norm(directions, axis=1), 1.0)

    def test_index_out_of_range(self):
        with pytest.raises(IndexError):
            sample_direction(64, 64)
        with pytest.raises(IndexError):
            sample_direction(-1, 64)

    def test_polar_caps_are_stratified(self):
        n = 64
        directions = sample_directions(n)
        heights = np.linspace(-0.95, 0.95, 39)
        axes = np.array([[0.0, 0.0, 1.0], [0.0, 0.0, -1.0]])
        assert cap_discrepancy(directions, axes, heights) <= 1.0 / n + 1e-9

    def test_discrepancy_bound(self):
        directions = sample_directions(64)
        rng = np.random.default_rng(7)
        axes = rng.normal(size=(64, 3))
        axes /= np.linalg.norm(axes, axis=1, keepdims=True)
        heights = np.linspace(-0.9, 0.9, 19)
        assert cap_discrepancy(directions, axes, heights) < 0.2

    def test_mean_direction_is_small(self):
        assert np.linalg.norm(sample_directions(64).mean(axis=0)) < 0.05


class TestLutParameterisation:

    def test_ranges_and_monotonicity(self):
        cos_zenith, radial_distance = lut_parameters((32, 16), PLANET_R, TOP_R)
        assert cos_zenith.shape == (32, 16)
        assert np.all(np.diff(cos_zenith[:, 0]) > 0.0)
        assert np.all(np.diff(radial_distance[0, :]) > 0.0)
        assert cos_zenith.min() > -1.0 and cos_zenith.max() < 1.0
        assert radial_distance.min() > PLANET_R and radial_distance.max() < TOP_R

    def test_dense_near_horizon_and_ground(self):
        cos_zenith, radial_distance = lut_parameters((32, 32), PLANET_R, TOP_R)
        cos_steps = np.diff(cos_zenith[:, 0])
        assert cos_steps[15] < cos_steps[0]
        r_steps = np.diff(radial_distance[0, :])
        assert r_steps[0] < r_steps[-1]

    def test_inverse(self):
        x, y = np.meshgrid(np.arange(8), np.arange(4), indexing="ij")
        cos_zenith, radial_distance = coordinate_to_parameters(x, y, (8, 4), PLANET_R, TOP_R)
        u, v = parameters_to_coordinate(cos_zenith, radial_distance, (8, 4), PLANET_R, TOP_R)
        assert np.allclose(u, x)
        assert np.allclose(v, y)

    def test_observer_positions(self):
        light = np.array([0.0, 1.0, 0.0])
        cos_zenith = np.array([1.0, 0.5, -0.3])
        radial_distance = np.array([PLANET_R, 6400.0, TOP_R])
        positions = observer_positions(light, cos_zenith, radial_distance, PLANET_R)

        r = np.linalg.norm(positions, axis=-1)
        assert np.allclose(r, [PLANET_R + PLANET_RADIUS_OFFSET, 6400.0, TOP_R])
        assert np.allclose((positions / r[:, None]) @ light, cos_zenith)

    def test_observer_positions_for_tilted_light(self):
        light = np.array([1.0, 2.0, -2.0]) / 3.0
        positions = observer_positions(light, np.array([[0.25]]), np.array([[6380.0]]), PLANET_R)
        assert positions.shape == (1, 1, 3)
        up = positions[0, 0] / np.linalg.norm(positions[0, 0])
        assert np.isclose(up @ light, 0.25)
