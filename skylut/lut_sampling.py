import taichi as ti
from taichi.math import *
import numpy as np
from skylut.math_utils import np_normalize, np_orthonormal_basis

# observers are kept this far above the ground sphere
PLANET_RADIUS_OFFSET = 0.01


# MULTIPLE SCATTERING LUT MAPPING
#
# u -> sun zenith cosine, squared around the horizon: cos = sign(s) * s^2, s = 2u - 1
# v -> radial distance, squared towards the ground: r = R + (R_top - R) * v^2

def coordinate_to_parameters(x, y, resolution, planet_r, atmos_upper_limit):
    """Physical (cos sun zenith, radial distance) of texel centre(s) ``(x, y)``."""
    u = (np.asarray(x, dtype=np.float64) + 0.5) / resolution[0]
    v = (np.asarray(y, dtype=np.float64) + 0.5) / resolution[1]

    s = 2.0 * u - 1.0
    cos_zenith = np.sign(s) * s * s
    radial_distance = planet_r + (atmos_upper_limit - planet_r) * v * v
    return cos_zenith, radial_distance


def parameters_to_coordinate(cos_zenith, radial_distance, resolution, planet_r, atmos_upper_limit):
    """Inverse of :func:`coordinate_to_parameters`, as continuous texel coordinates."""
    cos_zenith = np.clip(np.asarray(cos_zenith, dtype=np.float64), -1.0, 1.0)
    height = np.asarray(radial_distance, dtype=np.float64) - planet_r

    s = np.sign(cos_zenith) * np.sqrt(np.abs(cos_zenith))
    u = (s + 1.0) * 0.5
    v = np.sqrt(np.clip(height / (atmos_upper_limit - planet_r), 0.0, 1.0))
    return u * resolution[0] - 0.5, v * resolution[1] - 0.5


def lut_parameters(resolution, planet_r, atmos_upper_limit):
    """(cos sun zenith, radial distance) grids of shape ``resolution`` for a whole LUT."""
    x, y = np.meshgrid(np.arange(resolution[0]), np.arange(resolution[1]), indexing="ij")
    return coordinate_to_parameters(x, y, resolution, planet_r, atmos_upper_limit)


def observer_positions(primary_direction, cos_zenith, radial_distance, planet_r):
    """Planet-centred observer positions seeing the primary light at the given zenith cosines.

    Observers lie in the plane spanned by the primary light and a fixed
    perpendicular vector, and never closer to the ground than PLANET_RADIUS_OFFSET.
    """
    light = np_normalize(np.asarray(primary_direction, dtype=np.float64))
    perpendicular, _ = np_orthonormal_basis(light)

    cos_zenith = np.clip(np.asarray(cos_zenith, dtype=np.float64), -1.0, 1.0)
    sin_zenith = np.sqrt(1.0 - cos_zenith * cos_zenith)
    r = np.maximum(np.asarray(radial_distance, dtype=np.float64), planet_r + PLANET_RADIUS_OFFSET)

    up = cos_zenith[..., None] * light + sin_zenith[..., None] * perpendicular
    return up * r[..., None]


# TRANSMITTANCE LUT MAPPING
# https://ebruneton.github.io/precomputed_atmospheric_scattering/atmosphere/functions.glsl.html#transmittance_lookup

@ti.func
def tex_coord_to_unit_range(u, tex_size):
    return (u - .5 / tex_size) / (1. - 1. / tex_size)

@ti.func
def uv_to_mu_r(uv, width, height, planet_r, atmos_upper_limit):
    x_mu = tex_coord_to_unit_range(uv.x, width)
    x_r = tex_coord_to_unit_range(uv.y, height)
    H = sqrt(atmos_upper_limit * atmos_upper_limit - planet_r * planet_r)
    rho = H * x_r
    r = sqrt(rho * rho + planet_r * planet_r)
    d_min = atmos_upper_limit - r
    d_max = rho + H
    d = d_min + x_mu * (d_max - d_min)
    mu = 1.0
    if d != 0.0:
        mu = (H * H - rho * rho - d * d) / (2.0 * r * d)
    mu = clamp(mu, -1., 1.)
    return mu, r


def mu_r_to_uv(mu, r, res, planet_r, atmos_upper_limit):
    """Host-side inverse of ``uv_to_mu_r`` for looking up a computed transmittance table."""
    mu = np.asarray(mu, dtype=np.float64)
    r = np.asarray(r, dtype=np.float64)
    H = np.sqrt(atmos_upper_limit * atmos_upper_limit - planet_r * planet_r)
    rho = np.sqrt(np.maximum(r * r - planet_r * planet_r, 0.0))
    discriminant = r * r * (mu * mu - 1.0) + atmos_upper_limit * atmos_upper_limit
    d = np.maximum(-r * mu + np.sqrt(np.maximum(discriminant, 0.0)), 0.0)
    d_min = atmos_upper_limit - r
    d_max = rho + H
    x_mu = (d - d_min) / (d_max - d_min)
    x_r = rho / H
    u = .5 / res[0] + x_mu * (1. - 1. / res[0])
    v = .5 / res[1] + x_r * (1. - 1. / res[1])
    return u, v
