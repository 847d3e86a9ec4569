"""Receptor-array capability interface.

A receptor array is a two-phase accumulator. During a stimulus it appends
one absorption frame per optical image (:meth:`ReceptorArray.accumulate`).
After the last frame it derives photocurrent from the whole accumulated
history in a single :meth:`ReceptorArray.finalize` call. Geometry is fixed
once, before the first append, with
:meth:`ReceptorArray.configure_geometry`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import torch

from retinaforge.optics.optics import OpticalImage


@dataclass
class PhotocurrentResult:
    """Photocurrent derived from an accumulated absorption history.

    Attributes:
        current: ``[rows, cols, frames]`` photocurrent in pA.
        time_step: Sampling interval in seconds.
        background_rate: Background absorption rate used by adapting
            models (R*/s), ``None`` otherwise.
    """

    current: torch.Tensor
    time_step: float
    background_rate: Optional[float] = None

    @property
    def n_frames(self) -> int:
        return int(self.current.shape[-1])

    @property
    def mean_current(self) -> float:
        return float(self.current.mean())


class ReceptorArray(ABC):
    """Abstract two-phase receptor accumulator."""

    @property
    @abstractmethod
    def requires_background_rate(self) -> bool:
        """Whether :meth:`finalize` needs ``background_rate``."""
        ...

    @abstractmethod
    def configure_geometry(
        self,
        pigment_size: Tuple[float, float],
        fov: Tuple[float, float],
        scene_distance: float,
        focal_length: float,
        integration_time: Optional[float] = None,
    ) -> None:
        """Size the array to cover ``fov`` (degrees) with cones of ``pigment_size`` (m)."""
        ...

    @abstractmethod
    def compute_noise_free(self, oi: OpticalImage) -> torch.Tensor:
        """Absorptions for one optical image, without noise and without appending."""
        ...

    @abstractmethod
    def accumulate(self, oi: OpticalImage, em_path: Sequence[int] = (0, 0)) -> None:
        """Append the absorptions for one optical image."""
        ...

    @abstractmethod
    def mean_absorption_rate(self) -> float:
        """Mean absorption rate (R*/s) over every appended frame."""
        ...

    @abstractmethod
    def finalize(self, background_rate: Optional[float] = None) -> PhotocurrentResult:
        """Derive photocurrent from every appended frame."""
        ...
