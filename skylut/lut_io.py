import logging
from pathlib import Path

import numpy as np
from PIL import Image

logger = logging.getLogger(__name__)


def save_lut(array, path):
    """Write a LUT as raw float32 (``.dat``) or as a numpy ``.npy`` file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    array = np.ascontiguousarray(array, dtype=np.float32)
    if path.suffix == ".npy":
        np.save(path, array)
    elif path.suffix == ".dat":
        array.tofile(path)
    else:
        raise ValueError(f"unsupported LUT file type {path.suffix!r}, expected .dat or .npy")
    logger.info("wrote %s %s", array.shape, path)
    return path


def load_lut(path, shape=None):
    """Read a LUT written by :func:`save_lut`; raw ``.dat`` files need their ``shape``."""
    path = Path(path)
    if path.suffix == ".npy":
        return np.load(path)
    if path.suffix == ".dat":
        if shape is None:
            raise ValueError("reading a .dat LUT requires its shape")
        with open(path, 'rb') as file:
            data = np.fromfile(file, dtype=np.float32)
        return data.reshape(shape)
    raise ValueError(f"unsupported LUT file type {path.suffix!r}, expected .dat or .npy")


def save_preview(array, path, exposure=10.0):
    """8-bit PNG of a (width, height, 3) LUT, scaled by ``exposure``."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    array = np.asarray(array, dtype=np.float32)
    pixels = np.clip(array * 255 * exposure, 0, 255).astype(np.uint8)
    # rows of the image run along the second LUT axis
    image = Image.fromarray(np.ascontiguousarray(pixels.swapaxes(0, 1)))
    image.save(path)
    return path
