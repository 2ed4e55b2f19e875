import taichi as ti
from taichi.math import *
import numpy as np
from skylut.math_utils import *
from skylut.parameters import AtmosphereProfile, PlanetConfig

OPTICAL_DEPTH_STEPS = 40

# PHASE FUNCTIONS

@ti.func
def isotropic_phase():
    return 1.0/(4.0*np.pi)

@ti.func
def rayleigh_phase(cos_theta):
    return 3.0/(16.0*np.pi)*(1.0 + cos_theta*cos_theta)

@ti.func
def hg_phase(cos_theta, g):
    # Henyey-Greenstein phase
    return (1-g*g)/(4.0*np.pi*pow(1.0 + g*g - 2*g*cos_theta, 1.5))

##############################


@ti.data_oriented
class Atmosphere:
    """Analytic planetary atmosphere: air, aerosol and ozone layers over a sphere.

    All functions are pure in altitude and geometry. Positions are planet
    centred, heights are measured from the ground sphere.
    """

    def __init__(self, planet: PlanetConfig, profile: AtmosphereProfile = None):
        profile = profile or AtmosphereProfile.earth_default()
        if not profile.top_radius > planet.radius:
            raise ValueError(f"atmosphere top radius {profile.top_radius} must exceed "
                             f"planet radius {planet.radius}")
        self.profile = profile

        self.planet_r = float(planet.radius)
        self.atmos_upper_limit = float(profile.top_radius)
        self.atmos_height = self.atmos_upper_limit - self.planet_r

        self.rayleigh_scattering = vec3(*profile.rayleigh_scattering)
        self.rayleigh_extinction = vec3(*profile.rayleigh_extinction)
        self.mie_scattering = vec3(*profile.mie_scattering)
        self.mie_extinction = vec3(*profile.mie_extinction)
        self.ozone_absorption = vec3(*profile.ozone_absorption)

        self.scale_height_rayl = float(profile.rayleigh_scale_height)
        self.scale_height_mie = float(profile.mie_scale_height)
        self.ozone_peak_height = float(profile.ozone_peak_height)
        self.ozone_half_width = float(profile.ozone_half_width)
        self.mie_g = float(profile.mie_g)

    # DENSITY FUNCTIONS

    @ti.func
    def get_ozone_density(self, h):
        # tent centred on the ozone peak
        return ti.max(0.0, 1.0 - ti.abs(h - self.ozone_peak_height) / self.ozone_half_width)

    @ti.func
    def get_density(self, h):
        h = ti.max(h, 0.0)
        return vec3(exp(-h/self.scale_height_rayl), exp(-h/self.scale_height_mie), self.get_ozone_density(h))

    @ti.func
    def get_elevation(self, pos):
        return pos.norm() - self.planet_r

    # COEFFICIENTS

    @ti.func
    def extinction_coefficients(self, h):
        density = self.get_density(h)
        return self.rayleigh_extinction * density.x + \
               self.mie_extinction * density.y + \
               self.ozone_absorption * density.z

    @ti.func
    def air_scattering_coefficients(self, h):
        return self.rayleigh_scattering * self.get_density(h).x

    @ti.func
    def aerosol_scattering_coefficients(self, h):
        return self.mie_scattering * self.get_density(h).y

    @ti.func
    def air_phase(self, cos_theta):
        return rayleigh_phase(cos_theta)

    @ti.func
    def aerosol_phase(self, cos_theta):
        return hg_phase(cos_theta, self.mie_g)

    @ti.func
    def isotropic_phase(self):
        return isotropic_phase()

    # GEOMETRY

    @ti.func
    def ray_atmosphere_intersection(self, pos, dir):
        return rsi(pos, dir, self.atmos_upper_limit)

    @ti.func
    def sphere_intersection(self, radius, mu, r):
        # distance along a ray starting at radius r with zenith cosine mu to the
        # nearest non-negative crossing of a sphere, -1 on a miss
        discriminant = r * r * (mu * mu - 1.0) + radius * radius
        d = -1.0
        if discriminant >= 0.0:
            root = ti.sqrt(discriminant)
            near = -r * mu - root
            far = -r * mu + root
            if near >= 0.0:
                d = near
            elif far >= 0.0:
                d = far
        return d

    @ti.func
    def horizon_cosine(self, r):
        return -ti.sqrt(ti.max(1.0 - sqr(self.planet_r / r), 0.0))

    # TRANSMITTANCE

    @ti.func
    def transmittance_from_optical_depth(self, depth):
        return exp(-depth)

    @ti.func
    def optical_depth(self, r, mu, to_ground: ti.template()):
        t_max = self.sphere_intersection(self.atmos_upper_limit, mu, r)
        if ti.static(to_ground):
            ground = self.sphere_intersection(self.planet_r, mu, r)
            if ground >= 0.0:
                t_max = ground
        t_max = ti.max(t_max, 0.0)

        dt = t_max / OPTICAL_DEPTH_STEPS
        depth = vec3(0.0)
        for i in range(OPTICAL_DEPTH_STEPS):
            t = (i + 0.5) * dt
            h = ti.sqrt(ti.max(r * r + t * t + 2.0 * r * mu * t, 0.0)) - self.planet_r
            depth += self.extinction_coefficients(h) * dt
        return depth

    @ti.func
    def sun_transmittance_attenuation(self, mu, r):
        # the planet occludes lights below the local horizon
        transmittance = vec3(0.0)
        if mu >= self.horizon_cosine(r):
            transmittance = self.transmittance_from_optical_depth(self.optical_depth(r, mu, False))
        return transmittance
