import math
import taichi as ti
from taichi.math import *
import numpy as np

# below this optical depth a segment is integrated with its series expansion
SMALL_OPTICAL_DEPTH = 1e-3

@ti.func
def sqr(x):
    return x*x

@ti.func
def rsi(pos, dir, r):
    # (near, far) distances to a sphere centered at the origin, (-1, -1) on a miss
    b     = pos.dot(dir)
    discr   = b*b - pos.dot(pos) + r*r
    isect = ti.Vector([-1.0, -1.0])
    if discr >= 0.0:
        root = ti.sqrt(discr)
        isect = ti.Vector([-b - root, -b + root])
    return isect

@ti.func
def segment_integral(extinction, step_transmittance, dt):
    # integral of transmittance over one march segment, per channel
    result = vec3(0.0)
    for c in ti.static(range(3)):
        depth = extinction[c] * dt
        if depth > SMALL_OPTICAL_DEPTH:
            result[c] = (1.0 - step_transmittance[c]) / extinction[c]
        else:
            result[c] = dt * (1.0 - 0.5 * depth)
    return result

def np_normalize(v):
    # https://stackoverflow.com/a/51512965/12003165
    return v / np.sqrt(np.sum(v**2))

def np_orthonormal_basis(n):
    """Two unit vectors spanning the plane perpendicular to ``n``."""
    h = np.array([1.0, 0.0, 0.0]) if abs(n[1]) > 0.9 else np.array([0.0, 1.0, 0.0])
    y = np_normalize(np.cross(n, h))
    x = np.cross(n, y)
    return x, y

def is_power_of_two(n):
    return n > 0 and (n & (n - 1)) == 0

def log2_int(n):
    if not is_power_of_two(n):
        raise ValueError(f"{n} is not a power of two")
    return int(math.log2(n))
