"""Utility helpers."""

from retinaforge.utils.io import save_hdf5, save_pytorch, save_results

__all__ = ["save_hdf5", "save_pytorch", "save_results"]
