"""Cone packing density across the human retina.

Densities are tabulated along the four principal meridians (values after
Curcio et al., 1990, cones/mm²), interpolated linearly in log density
along eccentricity and linearly in polar angle between meridians.

Polar angle convention (degrees, counter-clockwise looking at the retina
from the front): for the left eye 0° is the temporal meridian, 90°
superior, 180° nasal and 270° inferior. The right eye mirrors the
horizontal meridians, so 0° is nasal and 180° temporal.

Example:
    >>> from retinaforge.mosaic.density import cone_density, cone_aperture_size
    >>> d = cone_density(0.0, 0.0, "left")
    >>> round(cone_aperture_size(d) * 1e6, 2)  # µm
    2.24
"""

from __future__ import annotations

import math
from typing import Dict

import numpy as np
from scipy.interpolate import interp1d

ECCENTRICITY_MM = np.array(
    [0.0, 0.05, 0.1, 0.2, 0.3, 0.5, 0.75, 1.0, 1.5, 2.0, 3.0, 4.0, 6.0, 8.0, 10.0, 12.0, 15.0, 18.0]
)

MERIDIAN_DENSITY: Dict[str, np.ndarray] = {
    "temporal": np.array(
        [199000, 150000, 96000, 52000, 36000, 22000, 15000, 11500, 8500,
         7000, 5600, 4900, 4300, 4000, 3800, 3600, 3400, 3300], dtype=float
    ),
    "superior": np.array(
        [199000, 145000, 90000, 48000, 33000, 20000, 13500, 10500, 7700,
         6300, 5000, 4400, 3900, 3600, 3400, 3300, 3200, 3100], dtype=float
    ),
    "nasal": np.array(
        [199000, 150000, 98000, 55000, 39000, 24000, 17000, 13000, 10000,
         8400, 7000, 6300, 5700, 5300, 5100, 4900, 4700, 4500], dtype=float
    ),
    "inferior": np.array(
        [199000, 148000, 93000, 50000, 35000, 21000, 14500, 11000, 8100,
         6700, 5300, 4700, 4100, 3800, 3600, 3400, 3300, 3200], dtype=float
    ),
}

_MERIDIAN_ORDER = {
    "left": ("temporal", "superior", "nasal", "inferior"),
    "right": ("nasal", "superior", "temporal", "inferior"),
}

_LOG_INTERPOLATORS = {
    name: interp1d(
        ECCENTRICITY_MM,
        np.log(values),
        kind="linear",
        bounds_error=False,
        fill_value=(np.log(values[0]), np.log(values[-1])),
    )
    for name, values in MERIDIAN_DENSITY.items()
}


def eccentricity_to_mm(radius_deg: float, focal_length: float) -> float:
    """Convert visual eccentricity in degrees to retinal distance in mm.

    Args:
        radius_deg: Eccentricity in degrees of visual angle.
        focal_length: Focal length of the eye's optics in metres.
    """
    return 2 * math.tan(math.radians(radius_deg / 2)) * focal_length * 1e3


def cone_density(ecc_mm, angle_deg: float = 0.0, side: str = "left"):
    """Cone density (cones/mm²) at a retinal location.

    Args:
        ecc_mm: Eccentricity in mm. Scalars return a float; arrays return
            an array of the same shape. Values past the table are clamped.
        angle_deg: Polar angle in degrees.
        side: ``"left"`` or ``"right"`` eye.

    Raises:
        ValueError: For an unknown eye side or negative eccentricity.
    """
    if side not in _MERIDIAN_ORDER:
        raise ValueError(f"side must be 'left' or 'right', got {side!r}")
    ecc = np.asarray(ecc_mm, dtype=float)
    if np.any(ecc < 0):
        raise ValueError("eccentricity must be non-negative")

    angle = float(angle_deg) % 360.0
    lower = int(angle // 90) % 4
    upper = (lower + 1) % 4
    weight = (angle - 90.0 * (angle // 90)) / 90.0

    meridians = _MERIDIAN_ORDER[side]
    log_lower = _LOG_INTERPOLATORS[meridians[lower]](ecc)
    log_upper = _LOG_INTERPOLATORS[meridians[upper]](ecc)
    density = np.exp((1.0 - weight) * log_lower + weight * log_upper)

    if density.ndim == 0:
        return float(density)
    return density


def cone_aperture_size(density: float) -> float:
    """Average cone spacing (aperture plus gap) in metres for a density."""
    if density <= 0:
        raise ValueError(f"density must be positive, got {density}")
    return math.sqrt(1.0 / density) * 1e-3
