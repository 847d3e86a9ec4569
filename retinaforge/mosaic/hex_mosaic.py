"""Hexagonally packed cone mosaic.

The hexagonal lattice is stored on a rectangular grid at twice the column
density, with only alternating positions occupied (a checkerboard): the
column pitch is half the cone spacing and the row pitch is ``√3/2`` of it,
so every cone has six neighbours at one cone spacing. Empty positions are
K entries in :attr:`ConeMosaic.pattern`.

Irradiance is sampled on a ``resampling_factor``-times finer grid and
integrated over each lattice cell, approximating aperture integration.
"""

from __future__ import annotations

import math
from typing import Any, Dict, Optional, Sequence, Tuple

import torch
import torch.nn.functional as F

from retinaforge.mosaic.cone_mosaic import ConeMosaic
from retinaforge.optics.optics import OpticalImage
from retinaforge.outersegment.base import BaseOuterSegment

HEX_SPATIAL_DENSITY = (0.0, 0.62, 0.31, 0.07)
HEX_DEFAULT_SEED = 219347


class HexConeMosaic(ConeMosaic):
    """Cone mosaic on a hexagonal lattice.

    Attributes:
        resampling_factor: Sub-samples per lattice cell along each axis.
        center: Mosaic centre on the retina ``(x, y)`` in metres. Metadata only:
            it is serialised by :meth:`to_dict` but does not affect sampling
            or cone density.
    """

    mosaic_type = "hex"

    def __init__(
        self,
        outer_segment: Optional[BaseOuterSegment] = None,
        rows: int = 72,
        cols: int = 88,
        pigment_width: float = 2e-6,
        pigment_height: float = 2e-6,
        spatial_density: Sequence[float] = HEX_SPATIAL_DENSITY,
        resampling_factor: int = 9,
        center: Tuple[float, float] = (0.5e-3, 0.3e-3),
        integration_time: Optional[float] = None,
        photon_gain: float = 2000.0,
        noise_flag: bool = False,
        seed: Optional[int] = HEX_DEFAULT_SEED,
        device: torch.device | str = "cpu",
    ) -> None:
        if resampling_factor < 1:
            raise ValueError(f"resampling_factor must be at least 1, got {resampling_factor}")
        self.resampling_factor = int(resampling_factor)
        self.center = tuple(center)
        super().__init__(
            outer_segment=outer_segment,
            rows=rows,
            cols=cols,
            pigment_width=pigment_width,
            pigment_height=pigment_height,
            spatial_density=spatial_density,
            integration_time=integration_time,
            photon_gain=photon_gain,
            noise_flag=noise_flag,
            seed=seed,
            device=device,
        )

    @property
    def width(self) -> float:
        return self.cols * self.pigment_width / 2

    @property
    def height(self) -> float:
        return self.rows * self.pigment_height * math.sqrt(3) / 2

    @property
    def occupied(self) -> torch.Tensor:
        """Boolean ``[rows, cols]`` mask of lattice positions holding a cone."""
        r = torch.arange(self.rows, device=self.device).unsqueeze(1)
        c = torch.arange(self.cols, device=self.device).unsqueeze(0)
        return (r + c) % 2 == 0

    @property
    def n_cones(self) -> int:
        return int((self.pattern > 0).sum())

    def _generate_pattern(self) -> torch.Tensor:
        pattern = super()._generate_pattern()
        return torch.where(self.occupied, pattern, torch.zeros_like(pattern))

    def _lattice_size(self, width: float, height: float) -> Tuple[int, int]:
        rows = max(1, int(round(height / (self.pigment_height * math.sqrt(3) / 2))))
        cols = max(1, int(round(width / (self.pigment_width / 2))))
        return rows, cols

    def _sample_irradiance(self, oi: OpticalImage) -> torch.Tensor:
        rf = self.resampling_factor
        irradiance = oi.irradiance.to(self.device).unsqueeze(0)
        fine = F.interpolate(
            irradiance,
            size=(self.rows * rf, self.cols * rf),
            mode="bilinear",
            align_corners=False,
        )
        return F.avg_pool2d(fine, kernel_size=rf)[0]

    def _absorption_frame(self, oi: OpticalImage, em_path: Sequence[int] = (0, 0)) -> torch.Tensor:
        # Eye movements are in cone spacings; one spacing is two lattice columns
        dy, dx = int(em_path[0]), int(em_path[1])
        return super()._absorption_frame(oi, (dy, 2 * dx))

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["resampling_factor"] = self.resampling_factor
        result["center"] = list(self.center)
        return result
