import taichi as ti
from taichi.math import *
import numpy as np
from skylut.math_utils import *

# position of the sample point inside each march segment
SEGMENT_OFFSET = 0.5


@ti.data_oriented
class DirectLighting:
    def __init__(self, atmosphere, lights):
        self.atmosphere = atmosphere
        self.lights = lights

    @ti.func
    def light_scattering(self, pos, ray_dir):
        h = self.atmosphere.get_elevation(pos)
        air = self.atmosphere.air_scattering_coefficients(h)
        aerosol = self.atmosphere.aerosol_scattering_coefficients(h)
        r = pos.norm()
        up = pos / r

        scattering = vec3(0.0)
        for l in range(self.lights.count):
            light_dir = self.lights.directions[l]
            cos_theta = ray_dir.dot(light_dir)
            sun_transmittance = self.atmosphere.sun_transmittance_attenuation(light_dir.dot(up), r)
            phase_scattering = air * self.atmosphere.air_phase(cos_theta) + \
                               aerosol * self.atmosphere.aerosol_phase(cos_theta)
            scattering += sun_transmittance * phase_scattering * self.lights.colors[l]
        return scattering

    @ti.func
    def evaluate(self, pos, ray_dir):
        return self.light_scattering(pos, ray_dir), vec3(0.0)


@ti.data_oriented
class ScatteringDensityBootstrap:
    """Direct lighting plus the scattering density seed of the multiple-scattering series.

    The seed is the scattering of unit radiance arriving from every direction:
    integrated against the normalised isotropic phase function it reduces to the
    scattering coefficient itself. The phase normalisation is applied per
    sample, the solid angle after the directional reduction.
    """

    def __init__(self, atmosphere, lights):
        self.atmosphere = atmosphere
        self.direct = DirectLighting(atmosphere, lights)

    @ti.func
    def evaluate(self, pos, ray_dir):
        h = self.atmosphere.get_elevation(pos)
        scattering = self.atmosphere.air_scattering_coefficients(h) + \
                     self.atmosphere.aerosol_scattering_coefficients(h)
        return self.direct.light_scattering(pos, ray_dir), scattering


@ti.data_oriented
class ScatteringIntegrator:
    """Marches rays through the atmosphere accumulating in-scattering and transmittance.

    Each ray is split into ``steps`` segments whose length grows quadratically,
    so that samples are densest next to the ray origin. The lighting strategy
    passed to :meth:`march` decides what is scattered into the ray.
    """

    def __init__(self, atmosphere, lights, steps=16):
        if steps < 1:
            raise ValueError(f"steps must be positive, got {steps}")
        self.atmosphere = atmosphere
        self.lights = lights
        self.steps = int(steps)
        self.direct = DirectLighting(atmosphere, lights)
        self.bootstrap = ScatteringDensityBootstrap(atmosphere, lights)

    @ti.func
    def path_length(self, origin, ray_dir):
        # distance to the ground or, when the ray misses it, out of the atmosphere
        ground = rsi(origin, ray_dir, self.atmosphere.planet_r)
        atmos_isection = self.atmosphere.ray_atmosphere_intersection(origin, ray_dir)
        t_max = ti.max(atmos_isection.y, 0.0)
        hits_ground = ground.y > 0.0
        if hits_ground:
            t_max = ti.max(ground.x, 0.0)
        return t_max, hits_ground

    @ti.func
    def march(self, origin, ray_dir, t_max, lighting: ti.template()):
        radiance = vec3(0.0)
        density = vec3(0.0)
        transmittance = vec3(1.0)

        r_steps = 1.0 / self.steps
        for i in range(self.steps):
            t0 = sqr(i * r_steps) * t_max
            t1 = sqr((i + 1) * r_steps) * t_max
            dt = t1 - t0
            pos = origin + ray_dir * (t0 + dt * SEGMENT_OFFSET)

            extinction = self.atmosphere.extinction_coefficients(self.atmosphere.get_elevation(pos))
            step_transmittance = self.atmosphere.transmittance_from_optical_depth(extinction * dt)
            step_integral = segment_integral(extinction, step_transmittance, dt)

            source_radiance, source_density = lighting.evaluate(pos, ray_dir)
            radiance += transmittance * source_radiance * step_integral
            density += transmittance * source_density * step_integral

            transmittance *= step_transmittance

        return radiance, transmittance, density

    @ti.kernel
    def trace(self,
              origins: ti.template(),
              directions: ti.template(),
              radiance: ti.template(),
              transmittance: ti.template()):
        for i in origins:
            origin = origins[i]
            ray_dir = directions[i].normalized()
            t_max, hits_ground = self.path_length(origin, ray_dir)
            L, T, D = self.march(origin, ray_dir, t_max, self.direct)
            radiance[i] = L
            transmittance[i] = T

    def trace_rays(self, origins, directions):
        """Direct-lighting radiance and transmittance for a batch of rays.

        Origins must lie inside the atmosphere. Returns two ``(n, 3)`` arrays.
        """
        origins = np.asarray(origins, dtype=np.float32).reshape(-1, 3)
        directions = np.asarray(directions, dtype=np.float32).reshape(-1, 3)
        if origins.shape != directions.shape:
            raise ValueError(f"got {len(origins)} origins but {len(directions)} directions")
        n = len(origins)

        origin_field = ti.Vector.field(3, dtype=ti.f32, shape=n)
        direction_field = ti.Vector.field(3, dtype=ti.f32, shape=n)
        radiance = ti.Vector.field(3, dtype=ti.f32, shape=n)
        transmittance = ti.Vector.field(3, dtype=ti.f32, shape=n)
        origin_field.from_numpy(origins)
        direction_field.from_numpy(directions)

        self.trace(origin_field, direction_field, radiance, transmittance)
        return radiance.to_numpy(), transmittance.to_numpy()
