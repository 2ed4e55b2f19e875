"""Precomputed multiple-scattering LUTs for planetary atmospheres."""

__version__ = "0.1.0"
