"""Saving result dictionaries to disk.

Two formats are supported: ``pytorch`` (a ``torch.save`` checkpoint of the
dictionary, tensors moved to CPU) and ``hdf5`` (one gzip-compressed dataset
per array, scalars and strings as file attributes). HDF5 needs the
optional ``h5py`` dependency.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict

import numpy as np
import torch

SUFFIXES = {"pytorch": ".pt", "hdf5": ".h5"}


def _to_cpu(value: Any) -> Any:
    if isinstance(value, torch.Tensor):
        return value.detach().cpu()
    if isinstance(value, dict):
        return {k: _to_cpu(v) for k, v in value.items()}
    return value


def save_pytorch(data: Dict[str, Any], path: str | Path) -> Path:
    """Save ``data`` with ``torch.save``."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    torch.save(_to_cpu(data), path)
    return path


def save_hdf5(data: Dict[str, Any], path: str | Path) -> Path:
    """Save ``data`` to an HDF5 file.

    Tensors and arrays become datasets, scalars and strings become
    attributes, and nested dicts are stored as JSON attributes.

    Raises:
        ImportError: If h5py is not installed.
    """
    try:
        import h5py
    except ImportError:
        raise ImportError(
            "h5py is required for HDF5 output. Install with: pip install h5py"
        )

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with h5py.File(path, "w") as f:
        for key, value in data.items():
            if isinstance(value, torch.Tensor):
                f.create_dataset(
                    key,
                    data=value.detach().cpu().numpy(),
                    compression="gzip",
                    compression_opts=4,
                )
            elif isinstance(value, np.ndarray):
                f.create_dataset(key, data=value, compression="gzip", compression_opts=4)
            elif isinstance(value, (int, float, str, bool)):
                f.attrs[key] = value
            elif value is None:
                continue
            else:
                f.attrs[key] = json.dumps(value)
    return path


def save_results(data: Dict[str, Any], path: str | Path, save_format: str = "pytorch") -> Path:
    """Save ``data`` in ``save_format`` (``pytorch`` or ``hdf5``).

    Raises:
        ValueError: For an unknown format.
    """
    if save_format == "pytorch":
        return save_pytorch(data, path)
    if save_format == "hdf5":
        return save_hdf5(data, path)
    raise ValueError(f"Unknown save format '{save_format}'. Available: {', '.join(SUFFIXES)}")
