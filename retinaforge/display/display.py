"""Display calibration models.

A :class:`Display` converts RGB frame values in ``[0, 1]`` into linear
primary intensities (through a power-law gamma) and from there into
luminance and cone (LMS) excitations. Profiles are looked up by name with
:func:`create_display`.

Example:
    >>> from retinaforge.display import create_display
    >>> display = create_display("LCD-Apple")
    >>> display.white_luminance
    240.0
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Tuple

import torch


@dataclass(frozen=True)
class Display:
    """Calibration of one display.

    Attributes:
        name: Profile name.
        gamma: Exponent mapping digital values to linear intensity.
        peak_luminance: Luminance of each primary at full drive (cd/m²).
        rgb2lms: 3×3 matrix; row ``i`` gives the L/M/S excitation produced
            by one unit of each linear primary.
        dpi: Pixel density in dots per inch.
        viewing_distance: Eye-to-screen distance in metres.
    """

    name: str
    gamma: float
    peak_luminance: Tuple[float, float, float]
    rgb2lms: Tuple[Tuple[float, float, float], ...]
    dpi: float = 96.0
    viewing_distance: float = 0.5

    @property
    def white_luminance(self) -> float:
        """Luminance of a full-white frame in cd/m²."""
        return float(sum(self.peak_luminance))

    def linearize(self, rgb: torch.Tensor) -> torch.Tensor:
        """Apply the gamma curve to digital values ``[..., 3]`` in ``[0, 1]``."""
        return rgb.clamp(0.0, 1.0) ** self.gamma

    def luminance(self, linear: torch.Tensor) -> torch.Tensor:
        """Luminance map ``[...]`` of linear primaries ``[..., 3]``."""
        weights = torch.tensor(self.peak_luminance, dtype=linear.dtype, device=linear.device)
        return linear @ weights

    def lms(self, linear: torch.Tensor) -> torch.Tensor:
        """Cone excitations ``[..., 3]`` of linear primaries ``[..., 3]``.

        Primaries are weighted by their peak luminance first so that the
        result scales with scene luminance.
        """
        weights = torch.tensor(self.peak_luminance, dtype=linear.dtype, device=linear.device)
        matrix = torch.tensor(self.rgb2lms, dtype=linear.dtype, device=linear.device)
        return (linear * weights) @ matrix.T

    def to_dict(self) -> Dict[str, object]:
        return {
            "name": self.name,
            "gamma": self.gamma,
            "peak_luminance": list(self.peak_luminance),
            "rgb2lms": [list(row) for row in self.rgb2lms],
            "dpi": self.dpi,
            "viewing_distance": self.viewing_distance,
        }


# Cone fundamentals of sRGB-like primaries (Hunt-Pointer-Estevez), rows L, M, S.
_SRGB_LMS = (
    (0.3139, 0.6395, 0.0466),
    (0.1554, 0.7579, 0.0867),
    (0.0178, 0.1094, 0.8728),
)

DISPLAY_PROFILES: Dict[str, Dict[str, object]] = {
    "LCD-Apple": {
        "gamma": 2.2,
        "peak_luminance": (54.0, 168.0, 18.0),
        "rgb2lms": _SRGB_LMS,
        "dpi": 96.0,
        "viewing_distance": 0.5,
    },
    "OLED-Sony": {
        "gamma": 2.4,
        "peak_luminance": (62.0, 215.0, 23.0),
        "rgb2lms": (
            (0.3290, 0.6260, 0.0450),
            (0.1480, 0.7710, 0.0810),
            (0.0160, 0.0970, 0.8870),
        ),
        "dpi": 200.0,
        "viewing_distance": 0.5,
    },
    "CRT-Dell": {
        "gamma": 2.5,
        "peak_luminance": (21.0, 68.0, 11.0),
        "rgb2lms": (
            (0.3010, 0.6520, 0.0470),
            (0.1620, 0.7450, 0.0930),
            (0.0190, 0.1170, 0.8640),
        ),
        "dpi": 72.0,
        "viewing_distance": 0.57,
    },
}


def list_displays() -> List[str]:
    """Names of the built-in display profiles."""
    return sorted(DISPLAY_PROFILES)


def create_display(name: str = "LCD-Apple") -> Display:
    """Build the calibration object for a named display profile.

    Args:
        name: Profile name (see :func:`list_displays`).

    Raises:
        ValueError: If ``name`` is not a known profile.
    """
    if name not in DISPLAY_PROFILES:
        raise ValueError(
            f"Unknown display '{name}'. Available: {', '.join(list_displays())}"
        )
    profile = DISPLAY_PROFILES[name]
    return Display(name=name, **profile)
