import logging
import time

import taichi as ti
from taichi.math import *
import numpy as np

from skylut.math_utils import is_power_of_two
from skylut.sampling import sample_directions
from skylut.lut_sampling import lut_parameters, observer_positions
from skylut.reduction import GroupScratch, select_reduction

logger = logging.getLogger(__name__)

SPHERE_SOLID_ANGLE = 4.0 * np.pi


@ti.func
def infinite_scattering(radiance, density):
    # geometric series radiance * (1 + D + D^2 + ...), converges only for D < 1
    return radiance * (1.0 / (1.0 - density))


@ti.kernel
def resolve_closure(radiance_sum: ti.template(),
                    density_sum: ti.template(),
                    weight: ti.f32,
                    output: ti.template()):
    for x, y in output:
        output[x, y] = infinite_scattering(radiance_sum[x, y] * weight, density_sum[x, y] * weight)


@ti.data_oriented
class MultipleScatteringSolver:
    """Infinite-bounce multiple scattering for a grid of (sun zenith cosine, radial distance) pairs.

    Every grid cell is computed by a group of ``sample_count`` workers in four
    phases: place the observer, integrate one direction per worker, reduce the
    partial samples, apply the closure. The per-worker partials are kept in
    fields of shape ``shape + (sample_count,)``.
    """

    def __init__(self, integrator, ground, shape, sample_count=64, reduction="auto"):
        if not is_power_of_two(sample_count):
            raise ValueError(f"sample_count must be a power of 2, got {sample_count}")
        self.integrator = integrator
        self.atmosphere = integrator.atmosphere
        self.lights = integrator.lights
        self.ground = ground
        self.shape = tuple(shape)
        self.sample_count = sample_count

        self.directions = ti.Vector.field(3, dtype=ti.f32, shape=sample_count)
        self.directions.from_numpy(sample_directions(sample_count).astype(np.float32))

        self.origins = ti.Vector.field(3, dtype=ti.f32, shape=self.shape)
        self.partial_radiance = ti.Vector.field(3, dtype=ti.f32, shape=self.shape + (sample_count,))
        self.partial_density = ti.Vector.field(3, dtype=ti.f32, shape=self.shape + (sample_count,))
        self.radiance_sum = ti.Vector.field(3, dtype=ti.f32, shape=self.shape)
        self.density_sum = ti.Vector.field(3, dtype=ti.f32, shape=self.shape)
        self.output = ti.Vector.field(3, dtype=ti.f32, shape=self.shape)

        self.reduction = select_reduction(reduction)
        self.scratch = GroupScratch(self.shape, sample_count) if self.reduction.needs_scratch else None

    @property
    def sample_weight(self) -> float:
        # solid angle per sample of a uniform sphere sampling
        return SPHERE_SOLID_ANGLE / self.sample_count

    @ti.kernel
    def integrate_samples(self):
        for x, y, i in self.partial_radiance:
            origin = self.origins[x, y]
            ray_dir = self.directions[i]

            t_max, hits_ground = self.integrator.path_length(origin, ray_dir)
            radiance, transmittance, density = self.integrator.march(origin, ray_dir, t_max,
                                                                     self.integrator.bootstrap)
            if hits_ground:
                radiance += transmittance * self.ground.radiance(origin + ray_dir * t_max)

            phase = self.atmosphere.isotropic_phase()
            self.partial_radiance[x, y, i] = radiance * phase
            self.partial_density[x, y, i] = density * phase

    def solve(self, cos_zenith, radial_distance) -> np.ndarray:
        """Multiple-scattering radiance for every grid cell, shape ``shape + (3,)``."""
        cos_zenith = np.asarray(cos_zenith, dtype=np.float64)
        radial_distance = np.asarray(radial_distance, dtype=np.float64)
        if cos_zenith.shape != self.shape or radial_distance.shape != self.shape:
            raise ValueError(f"parameter grids {cos_zenith.shape} and {radial_distance.shape} "
                             f"do not match solver shape {self.shape}")

        start = time.perf_counter()
        origins = observer_positions(self.lights.primary_direction, cos_zenith, radial_distance,
                                     self.atmosphere.planet_r)
        self.origins.from_numpy(origins.astype(np.float32))

        self.integrate_samples()
        ti.sync()
        logger.debug("integrated %d directions for %s texels", self.sample_count, self.shape)

        self.reduction.reduce(self.partial_radiance, self.radiance_sum, self.scratch)
        self.reduction.reduce(self.partial_density, self.density_sum, self.scratch)
        logger.debug("reduced partial samples with %s strategy", self.reduction.name)

        resolve_closure(self.radiance_sum, self.density_sum, self.sample_weight, self.output)
        result = self.output.to_numpy()
        logger.debug("solved %s texels in %.3fs", self.shape, time.perf_counter() - start)
        return result

    def totals(self):
        """Weighted single-bounce radiance and scattering density of the last solve."""
        weight = self.sample_weight
        return self.radiance_sum.to_numpy() * weight, self.density_sum.to_numpy() * weight


class MultipleScatteringLut:
    """The multiple-scattering LUT, indexed by (sun zenith cosine, radial distance) texels."""

    def __init__(self, integrator, ground, resolution=(32, 32), sample_count=64, reduction="auto"):
        self.resolution = tuple(resolution)
        self.atmosphere = integrator.atmosphere
        self.solver = MultipleScatteringSolver(integrator, ground, self.resolution,
                                               sample_count=sample_count, reduction=reduction)
        self.table = None

    def parameters(self):
        return lut_parameters(self.resolution, self.atmosphere.planet_r, self.atmosphere.atmos_upper_limit)

    def compute(self) -> np.ndarray:
        logger.info("computing %dx%d multiple scattering LUT with %d samples per texel",
                    self.resolution[0], self.resolution[1], self.solver.sample_count)
        cos_zenith, radial_distance = self.parameters()
        self.table = self.solver.solve(cos_zenith, radial_distance)
        return self.table
