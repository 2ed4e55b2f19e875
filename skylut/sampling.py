import numpy as np

## DIRECTION SAMPLING

# Low-discrepancy directions are generated on the host once per LUT build and
# uploaded to the kernels, so every texel sees the exact same sample set.


def radical_inverse(i):
    """Van der Corput radical inverse in base 2 of 32-bit integer(s)."""
    bits = np.asarray(i, dtype=np.uint64) & np.uint64(0xFFFFFFFF)
    bits = ((bits << np.uint64(16)) | (bits >> np.uint64(16))) & np.uint64(0xFFFFFFFF)
    bits = ((bits & np.uint64(0x55555555)) << np.uint64(1)) | ((bits & np.uint64(0xAAAAAAAA)) >> np.uint64(1))
    bits = ((bits & np.uint64(0x33333333)) << np.uint64(2)) | ((bits & np.uint64(0xCCCCCCCC)) >> np.uint64(2))
    bits = ((bits & np.uint64(0x0F0F0F0F)) << np.uint64(4)) | ((bits & np.uint64(0xF0F0F0F0)) >> np.uint64(4))
    bits = ((bits & np.uint64(0x00FF00FF)) << np.uint64(8)) | ((bits & np.uint64(0xFF00FF00)) >> np.uint64(8))
    return bits.astype(np.float64) * 2.3283064365386963e-10  # 1 / 2^32


def hammersley(i, n):
    """2D Hammersley point(s): (radical inverse of i, stratified (i + 0.5) / n)."""
    i = np.asarray(i)
    return np.stack([radical_inverse(i), (i + 0.5) / n], axis=-1)


def sample_sphere(rand):
    """Map points of the unit square to uniformly distributed unit vectors."""
    rand = np.asarray(rand, dtype=np.float64)
    phi = rand[..., 0] * np.pi * 2.0
    z = rand[..., 1] * 2.0 - 1.0
    ground = np.sqrt(np.maximum(1.0 - z * z, 0.0))
    return np.stack([np.sin(phi) * ground, np.cos(phi) * ground, z], axis=-1)


def sample_direction(i: int, n: int) -> np.ndarray:
    """The ``i``-th of ``n`` deterministic, low-discrepancy sphere directions."""
    if n < 1:
        raise ValueError(f"sample count must be positive, got {n}")
    if not 0 <= i < n:
        raise IndexError(f"sample index {i} out of range for {n} samples")
    return sample_sphere(hammersley(i, n))


def sample_directions(n: int) -> np.ndarray:
    """All ``n`` directions of the set, shape ``(n, 3)``."""
    if n < 1:
        raise ValueError(f"sample count must be positive, got {n}")
    return sample_sphere(hammersley(np.arange(n), n))


def cap_discrepancy(directions, axes, heights) -> float:
    """Largest gap between the fraction of directions inside a spherical cap and the cap's area fraction.

    Caps are all combinations of the given unit ``axes`` and ``heights``
    (cosine of the cap's half angle).
    """
    directions = np.asarray(directions, dtype=np.float64)
    axes = np.asarray(axes, dtype=np.float64).reshape(-1, 3)
    heights = np.asarray(heights, dtype=np.float64).reshape(-1)

    cosines = directions @ axes.T
    worst = 0.0
    for h in heights:
        inside = np.mean(cosines >= h, axis=0)
        area = (1.0 - h) / 2.0
        worst = max(worst, float(np.max(np.abs(inside - area))))
    return worst
