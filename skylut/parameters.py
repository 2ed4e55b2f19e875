"""Host-side configuration for the atmosphere, the planet and the LUT builds.

Distances are in kilometres and scattering/absorption coefficients in 1/km.
"""

import json
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import List, Tuple, Union

import numpy as np

from skylut.math_utils import is_power_of_two

RGB = Tuple[float, float, float]

REDUCTION_STRATEGIES = ("auto", "collective", "tree")


def _rgb(value, name: str) -> RGB:
    if np.isscalar(value):
        value = (value, value, value)
    if len(value) != 3:
        raise ValueError(f"{name} must have 3 channels, got {value!r}")
    return tuple(float(c) for c in value)


def _count(value, name: str) -> int:
    try:
        count = int(value)
    except (TypeError, ValueError, OverflowError):
        raise ValueError(f"{name} must be an integer, got {value!r}") from None
    if count != value:
        raise ValueError(f"{name} must be an integer, got {value!r}")
    return count


def _size_pair(value, name: str) -> Tuple[int, int]:
    if np.isscalar(value) or len(value) != 2:
        raise ValueError(f"{name} must be two positive sizes, got {value!r}")
    sizes = tuple(_count(n, name) for n in value)
    if min(sizes) < 1:
        raise ValueError(f"{name} must be two positive sizes, got {value!r}")
    return sizes


def _check_non_negative(value: RGB, name: str):
    if min(value) < 0.0:
        raise ValueError(f"{name} must be non-negative, got {value}")


@dataclass
class CelestialLight:
    """A directional light (sun, moon, ...) seen from the planet.

    Attributes:
        direction: World-space direction towards the light, normalised on construction
        color: Illuminance per channel
    """

    direction: Tuple[float, float, float] = (0.0, 1.0, 0.0)
    color: RGB = (1.0, 1.0, 1.0)

    def __post_init__(self):
        direction = np.asarray(self.direction, dtype=np.float64)
        if direction.shape != (3,):
            raise ValueError(f"light direction must be a 3-vector, got {self.direction!r}")
        length = np.linalg.norm(direction)
        if length == 0.0 or not np.isfinite(length):
            raise ValueError(f"light direction must be a non-zero finite vector, got {self.direction!r}")
        self.direction = tuple(float(c) for c in direction / length)
        self.color = _rgb(self.color, "light color")
        _check_non_negative(self.color, "light color")


@dataclass
class PlanetConfig:
    """Planet surface and the lights shining on it.

    The first light is the primary light: LUT sun-zenith cosines are measured
    against its direction.
    """

    radius: float = 6360.0
    ground_albedo: RGB = (0.3, 0.3, 0.3)
    lights: List[CelestialLight] = field(default_factory=lambda: [CelestialLight()])

    def __post_init__(self):
        if not self.radius > 0.0:
            raise ValueError(f"planet radius must be positive, got {self.radius}")
        self.ground_albedo = _rgb(self.ground_albedo, "ground albedo")
        if min(self.ground_albedo) < 0.0 or max(self.ground_albedo) > 1.0:
            raise ValueError(f"ground albedo must be in [0, 1], got {self.ground_albedo}")
        self.lights = [l if isinstance(l, CelestialLight) else CelestialLight(**l) for l in self.lights]
        if not self.lights:
            raise ValueError("at least one celestial light is required")

    @property
    def primary_light(self) -> CelestialLight:
        return self.lights[0]


@dataclass
class AtmosphereProfile:
    """Density profiles and optical coefficients of the atmosphere.

    Attributes:
        top_radius: Radius of the upper atmosphere boundary
        rayleigh_scattering: Air scattering coefficients at sea level
        rayleigh_scale_height: Exponential falloff of air density
        mie_scattering: Aerosol scattering coefficients at sea level
        mie_extinction: Aerosol extinction coefficients at sea level
        mie_scale_height: Exponential falloff of aerosol density
        mie_g: Henyey-Greenstein asymmetry of the aerosol phase function
        ozone_absorption: Ozone absorption at the density peak
        ozone_peak_height: Altitude of the ozone density peak
        ozone_half_width: Half width of the ozone tent profile
    """

    top_radius: float = 6460.0
    rayleigh_scattering: RGB = (5.802e-3, 13.558e-3, 33.1e-3)
    rayleigh_scale_height: float = 8.0
    mie_scattering: RGB = (3.996e-3, 3.996e-3, 3.996e-3)
    mie_extinction: RGB = (4.440e-3, 4.440e-3, 4.440e-3)
    mie_scale_height: float = 1.2
    mie_g: float = 0.8
    ozone_absorption: RGB = (0.650e-3, 1.881e-3, 0.085e-3)
    ozone_peak_height: float = 25.0
    ozone_half_width: float = 15.0

    def __post_init__(self):
        for name in ("rayleigh_scattering", "mie_scattering", "mie_extinction", "ozone_absorption"):
            value = _rgb(getattr(self, name), name)
            _check_non_negative(value, name)
            setattr(self, name, value)
        if any(e < s for e, s in zip(self.mie_extinction, self.mie_scattering)):
            raise ValueError("mie_extinction must not be smaller than mie_scattering")
        for name in ("rayleigh_scale_height", "mie_scale_height", "ozone_half_width"):
            if not getattr(self, name) > 0.0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")
        if not -1.0 < self.mie_g < 1.0:
            raise ValueError(f"mie_g must be in (-1, 1), got {self.mie_g}")

    @classmethod
    def earth_default(cls) -> "AtmosphereProfile":
        return cls()

    @classmethod
    def vacuum(cls, top_radius: float = 6460.0) -> "AtmosphereProfile":
        """A non-scattering, non-absorbing atmosphere."""
        zero = (0.0, 0.0, 0.0)
        return cls(top_radius=top_radius,
                   rayleigh_scattering=zero,
                   mie_scattering=zero,
                   mie_extinction=zero,
                   ozone_absorption=zero)

    @property
    def rayleigh_extinction(self) -> RGB:
        # air does not absorb in this model
        return self.rayleigh_scattering


@dataclass
class LutConfig:
    """Resolution and sampling settings of the LUT builds.

    Attributes:
        resolution: Multiple-scattering LUT size (sun zenith cosine, radial distance)
        sample_count: Directions per texel, one per cooperating worker
        step_count: March segments per ray
        reduction: Reduction strategy, "auto", "collective" or "tree"
        transmittance_resolution: Transmittance LUT size (mu, r)
    """

    resolution: Tuple[int, int] = (32, 32)
    sample_count: int = 64
    step_count: int = 16
    reduction: str = "auto"
    transmittance_resolution: Tuple[int, int] = (256, 64)

    def __post_init__(self):
        self.resolution = _size_pair(self.resolution, "resolution")
        self.transmittance_resolution = _size_pair(self.transmittance_resolution, "transmittance_resolution")
        self.sample_count = _count(self.sample_count, "sample_count")
        self.step_count = _count(self.step_count, "step_count")
        if not is_power_of_two(self.sample_count):
            raise ValueError(f"sample_count must be a power of 2, got {self.sample_count}")
        if self.step_count < 1:
            raise ValueError(f"step_count must be positive, got {self.step_count}")
        if self.reduction not in REDUCTION_STRATEGIES:
            raise ValueError(f"reduction must be one of {REDUCTION_STRATEGIES}, got {self.reduction!r}")


def load_config(path: Union[str, Path]):
    """Read planet, atmosphere and LUT settings from a JSON file.

    Every top-level section ("planet", "atmosphere", "lut") is optional and
    falls back to the defaults.
    """
    with open(path, "r") as f:
        data = json.load(f)
    return config_from_dict(data)


def config_from_dict(data: dict):
    unknown = set(data) - {"planet", "atmosphere", "lut"}
    if unknown:
        raise ValueError(f"unknown configuration sections: {sorted(unknown)}")
    planet = PlanetConfig(**data.get("planet", {}))
    profile = AtmosphereProfile(**data.get("atmosphere", {}))
    lut = LutConfig(**data.get("lut", {}))
    return planet, profile, lut


def config_to_dict(planet: PlanetConfig, profile: AtmosphereProfile, lut: LutConfig) -> dict:
    return {"planet": asdict(planet), "atmosphere": asdict(profile), "lut": asdict(lut)}
