import taichi as ti
import numpy as np
from typing import Sequence
from skylut.parameters import CelestialLight


@ti.data_oriented
class LightSet:
    def __init__(self, lights: Sequence[CelestialLight]):
        if len(lights) == 0:
            raise ValueError("a light set needs at least one light")
        self.lights = list(lights)
        self.count = len(self.lights)

        self.directions = ti.Vector.field(3, dtype=ti.f32, shape=self.count)
        self.colors = ti.Vector.field(3, dtype=ti.f32, shape=self.count)
        self.directions.from_numpy(np.array([l.direction for l in self.lights], dtype=np.float32))
        self.colors.from_numpy(np.array([l.color for l in self.lights], dtype=np.float32))

    @property
    def primary_direction(self) -> np.ndarray:
        return np.asarray(self.lights[0].direction, dtype=np.float64)
