import taichi as ti
from taichi.math import *
import numpy as np
from skylut.math_utils import *


@ti.data_oriented
class GroundReflection:
    def __init__(self, atmosphere, lights, albedo):
        self.atmosphere = atmosphere
        self.lights = lights
        self.albedo = vec3(*albedo)

    @ti.func
    def lambert_brdf(self):
        return self.albedo / np.pi

    @ti.func
    def radiance(self, pos):
        # pos is a point on (or numerically next to) the ground sphere
        normal = pos.normalized()
        r = self.atmosphere.planet_r
        horizon = self.atmosphere.horizon_cosine(r)

        radiance = vec3(0.0)
        for l in range(self.lights.count):
            light_dir = self.lights.directions[l]
            mu = normal.dot(light_dir)
            if mu > horizon:
                sun_transmittance = self.atmosphere.sun_transmittance_attenuation(mu, r)
                radiance += self.lambert_brdf() * ti.max(mu, 0.0) * sun_transmittance * self.lights.colors[l]
        return radiance
