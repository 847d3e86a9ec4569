"""Scenes built from RGB frames shown on a calibrated display."""

from __future__ import annotations

import math
from typing import Tuple

import torch

from retinaforge.display.display import Display


class Scene:
    """Radiance of one displayed frame.

    Attributes:
        rgb: Raw digital frame ``[rows, cols, 3]`` exactly as supplied.
        lms: Cone-excitation radiance ``[3, rows, cols]`` (L, M, S planes),
            scaled to the requested mean luminance.
        luminance: Luminance map ``[rows, cols]`` in cd/m².
        display: Display the frame was rendered on.
        distance: Viewing distance in metres.
    """

    def __init__(
        self,
        rgb: torch.Tensor,
        lms: torch.Tensor,
        luminance: torch.Tensor,
        display: Display,
        hfov: float,
        distance: float,
    ) -> None:
        self.rgb = rgb
        self.lms = lms
        self.luminance = luminance
        self.display = display
        self.distance = distance
        self._hfov = 0.0
        self.hfov = hfov

    @property
    def size(self) -> Tuple[int, int]:
        return int(self.rgb.shape[0]), int(self.rgb.shape[1])

    @property
    def rows(self) -> int:
        return self.size[0]

    @property
    def cols(self) -> int:
        return self.size[1]

    @property
    def hfov(self) -> float:
        """Horizontal field of view in degrees."""
        return self._hfov

    @hfov.setter
    def hfov(self, value: float) -> None:
        if not 0 < value < 180:
            raise ValueError(f"hfov must lie in (0, 180) degrees, got {value}")
        self._hfov = float(value)

    @property
    def vfov(self) -> float:
        """Vertical field of view in degrees, from the aspect ratio."""
        half = math.radians(self._hfov / 2)
        return math.degrees(2 * math.atan(math.tan(half) * self.rows / self.cols))

    @property
    def width(self) -> float:
        """Physical width of the scene in metres at ``distance``."""
        return 2 * self.distance * math.tan(math.radians(self._hfov / 2))

    @property
    def mean_luminance(self) -> float:
        return float(self.luminance.mean())

    def __repr__(self) -> str:
        return (
            f"Scene(size={self.size}, hfov={self._hfov:.3f}, "
            f"mean_luminance={self.mean_luminance:.1f}, display={self.display.name!r})"
        )


def scene_from_rgb(
    rgb: torch.Tensor,
    color_space: str,
    mean_luminance: float,
    display: Display,
) -> Scene:
    """Render an RGB frame on ``display`` as a scene.

    The frame is linearised through the display gamma and scaled so that
    the scene's mean luminance equals ``mean_luminance``. The default field
    of view is the angle the frame subtends at the display's viewing
    distance; callers usually override it through :attr:`Scene.hfov`.

    Args:
        rgb: Frame ``[rows, cols, 3]`` with values in ``[0, 1]``.
        color_space: Only ``"rgb"`` is supported.
        mean_luminance: Target mean luminance in cd/m².
        display: Display calibration.

    Raises:
        ValueError: For an unsupported color space, a malformed frame, a
            non-positive luminance or an all-black frame.
    """
    if color_space != "rgb":
        raise ValueError(f"Unsupported color space '{color_space}', expected 'rgb'")
    if rgb.dim() != 3 or rgb.shape[-1] != 3:
        raise ValueError(f"rgb must have shape [rows, cols, 3], got {tuple(rgb.shape)}")
    if mean_luminance <= 0:
        raise ValueError(f"mean_luminance must be positive, got {mean_luminance}")

    linear = display.linearize(rgb.to(torch.float32))
    luminance = display.luminance(linear)
    current_mean = float(luminance.mean())
    if current_mean <= 0:
        raise ValueError("Cannot scale an all-black frame to a mean luminance")
    scale = mean_luminance / current_mean

    lms = display.lms(linear).permute(2, 0, 1).contiguous() * scale
    luminance = luminance * scale

    cols = rgb.shape[1]
    width_m = cols / display.dpi * 0.0254
    hfov = math.degrees(2 * math.atan(width_m / (2 * display.viewing_distance)))

    return Scene(
        rgb=rgb.clone(),
        lms=lms,
        luminance=luminance,
        display=display,
        hfov=hfov,
        distance=display.viewing_distance,
    )
