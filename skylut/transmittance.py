import logging

import taichi as ti
from taichi.math import *
import numpy as np

from skylut.lut_sampling import uv_to_mu_r, mu_r_to_uv

logger = logging.getLogger(__name__)


@ti.data_oriented
class TransmittanceLut:
    """Transmittance from a point to the top of the atmosphere, indexed by (mu, r) texels."""

    def __init__(self, atmosphere, resolution=(256, 64)):
        self.atmosphere = atmosphere
        self.resolution = tuple(resolution)
        self.transmittance_lut = ti.Vector.field(3, dtype=ti.f32, shape=self.resolution)

    @ti.kernel
    def _compute(self):
        for x, y in self.transmittance_lut:
            uv = vec2((x + 0.5) / self.resolution[0], (y + 0.5) / self.resolution[1])
            mu, r = uv_to_mu_r(uv, self.resolution[0], self.resolution[1],
                               self.atmosphere.planet_r, self.atmosphere.atmos_upper_limit)
            depth = self.atmosphere.optical_depth(r, mu, False)
            self.transmittance_lut[x, y] = self.atmosphere.transmittance_from_optical_depth(depth)

    def compute(self) -> np.ndarray:
        logger.info("computing %dx%d transmittance LUT", *self.resolution)
        self._compute()
        return self.transmittance_lut.to_numpy()

    def lookup(self, mu, r) -> np.ndarray:
        """Nearest-texel transmittance for zenith cosine(s) ``mu`` at radial distance(s) ``r``."""
        table = self.transmittance_lut.to_numpy()
        u, v = mu_r_to_uv(mu, r, self.resolution, self.atmosphere.planet_r, self.atmosphere.atmos_upper_limit)
        x = np.clip((u * self.resolution[0]).astype(int), 0, self.resolution[0] - 1)
        y = np.clip((v * self.resolution[1]).astype(int), 0, self.resolution[1] - 1)
        return table[x, y]
