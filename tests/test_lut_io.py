"""Tests for LUT file output."""

import numpy as np
import pytest
from PIL import Image

from skylut.lut_io import save_lut, load_lut, save_preview


@pytest.fixture
def table():
    return np.random.default_rng(11).random((6, 4, 3)).astype(np.float32)


def test_dat_is_raw_float32(table, tmp_path):
    path = save_lut(table, tmp_path / "luts" / "table.dat")
    assert path.stat().st_size == table.size * 4
    assert np.array_equal(load_lut(path, shape=table.shape), table)


def test_npy_keeps_shape(table, tmp_path):
    path = save_lut(table, tmp_path / "table.npy")
    assert np.array_equal(load_lut(path), table)


def test_unknown_suffix(table, tmp_path):
    with pytest.raises(ValueError):
        save_lut(table, tmp_path / "table.exr")
    with pytest.raises(ValueError):
        load_lut(tmp_path / "table.exr")


def test_dat_needs_shape(table, tmp_path):
    path = save_lut(table, tmp_path / "table.dat")
    with pytest.raises(ValueError):
        load_lut(path)


def test_preview(table, tmp_path):
    path = save_preview(table, tmp_path / "table.png", exposure=1.0)
    with Image.open(path) as image:
        assert image.size == (6, 4)
        assert image.mode == "RGB"
