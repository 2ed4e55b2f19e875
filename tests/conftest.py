"""Shared fixtures: one taichi CPU runtime per test session and prebuilt scenes."""

import pytest
import taichi as ti

from skylut.parameters import AtmosphereProfile
from tests.scenes import build_scene, homogeneous_profile


@pytest.fixture(scope="session", autouse=True)
def taichi_runtime():
    ti.init(arch=ti.cpu, default_fp=ti.f32, offline_cache=False)
    yield
    ti.reset()


@pytest.fixture(scope="module")
def earth_scene():
    return build_scene()


@pytest.fixture(scope="module")
def vacuum_scene():
    return build_scene(profile=AtmosphereProfile.vacuum(), albedo=(0.0, 0.0, 0.0))


@pytest.fixture(scope="module")
def bright_vacuum_scene():
    return build_scene(profile=AtmosphereProfile.vacuum(), albedo=(1.0, 1.0, 1.0))


@pytest.fixture(scope="module")
def homogeneous_scene():
    return build_scene(profile=homogeneous_profile())
