import logging
from pathlib import Path

from skylut.parameters import PlanetConfig, AtmosphereProfile, LutConfig
from skylut.volume_rendering_models import Atmosphere
from skylut.lights import LightSet
from skylut.surface_rendering_models import GroundReflection
from skylut.ray_functions import ScatteringIntegrator
from skylut.transmittance import TransmittanceLut
from skylut.multiple_scattering import MultipleScatteringLut
from skylut.lut_io import save_lut, save_preview

logger = logging.getLogger(__name__)

TRANSMITTANCE_LUT_FILE = "transmittance_lut.dat"
MULTIPLE_SCATTERING_LUT_FILE = "multiple_scattering_lut.dat"


class LutPipeline:
    """Builds the atmosphere scene from configuration and precomputes its LUTs.

    Taichi must be initialised before the pipeline is constructed.
    """

    def __init__(self, planet: PlanetConfig = None, profile: AtmosphereProfile = None, lut: LutConfig = None):
        self.planet = planet or PlanetConfig()
        self.profile = profile or AtmosphereProfile.earth_default()
        self.lut_config = lut or LutConfig()

        self.atmosphere = Atmosphere(self.planet, self.profile)
        self.lights = LightSet(self.planet.lights)
        self.ground = GroundReflection(self.atmosphere, self.lights, self.planet.ground_albedo)
        self.integrator = ScatteringIntegrator(self.atmosphere, self.lights, steps=self.lut_config.step_count)

        self.transmittance = TransmittanceLut(self.atmosphere, self.lut_config.transmittance_resolution)
        self.multiple_scattering = MultipleScatteringLut(self.integrator,
                                                         self.ground,
                                                         resolution=self.lut_config.resolution,
                                                         sample_count=self.lut_config.sample_count,
                                                         reduction=self.lut_config.reduction)

    def run(self):
        """Compute both LUTs; returns ``{"transmittance": ..., "multiple_scattering": ...}``."""
        tables = {
            "transmittance": self.transmittance.compute(),
            "multiple_scattering": self.multiple_scattering.compute(),
        }
        logger.info("LUT precomputation finished")
        return tables

    def save(self, tables, output_dir, preview=False):
        output_dir = Path(output_dir)
        written = [
            save_lut(tables["transmittance"], output_dir / TRANSMITTANCE_LUT_FILE),
            save_lut(tables["multiple_scattering"], output_dir / MULTIPLE_SCATTERING_LUT_FILE),
        ]
        if preview:
            written.append(save_preview(tables["transmittance"], output_dir / "transmittance_lut.png", exposure=1.0))
            written.append(save_preview(tables["multiple_scattering"], output_dir / "multiple_scattering_lut.png"))
        return written
