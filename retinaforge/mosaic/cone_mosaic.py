"""Rectangular cone mosaic.

Cones sit on a rectangular lattice with one cone class (K = empty, L, M,
S) per position, drawn from ``spatial_density`` with a seeded generator.
Each appended optical image is resampled onto the lattice, each cone reads
the irradiance plane of its class, and the result is converted into
absorptions over ``integration_time``.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Optional, Sequence, Tuple

import torch
import torch.nn.functional as F

from retinaforge.mosaic.base import PhotocurrentResult, ReceptorArray
from retinaforge.optics.optics import OpticalImage
from retinaforge.outersegment.base import BaseOuterSegment
from retinaforge.outersegment.linear import LinearOuterSegment

logger = logging.getLogger(__name__)

CONE_TYPES = ("K", "L", "M", "S")


class ConeMosaic(ReceptorArray):
    """Rectangular cone mosaic with an attached outer segment.

    Attributes:
        os: Outer-segment model used by :meth:`finalize`.
        rows: Cone rows.
        cols: Cone columns.
        pigment_width: Cone aperture width in metres.
        pigment_height: Cone aperture height in metres.
        spatial_density: Relative frequency of K, L, M, S positions.
        integration_time: Exposure of each appended frame in seconds.
        photon_gain: Absorption rate (R*/s) per unit irradiance per µm²
            of aperture.
        pattern: ``[rows, cols]`` cone-class indices into ``CONE_TYPES``.
        photocurrent: Result of :meth:`finalize`, ``None`` before it.
    """

    mosaic_type = "rect"

    def __init__(
        self,
        outer_segment: Optional[BaseOuterSegment] = None,
        rows: int = 72,
        cols: int = 88,
        pigment_width: float = 2e-6,
        pigment_height: float = 2e-6,
        spatial_density: Sequence[float] = (0.0, 0.6, 0.3, 0.1),
        integration_time: Optional[float] = None,
        photon_gain: float = 2000.0,
        noise_flag: bool = False,
        seed: Optional[int] = 0,
        device: torch.device | str = "cpu",
    ) -> None:
        if len(spatial_density) != len(CONE_TYPES):
            raise ValueError(
                f"spatial_density needs {len(CONE_TYPES)} entries (K, L, M, S), "
                f"got {len(spatial_density)}"
            )
        if sum(spatial_density) <= 0 or min(spatial_density) < 0:
            raise ValueError(f"spatial_density must be non-negative with a positive sum")
        self.os = outer_segment if outer_segment is not None else LinearOuterSegment()
        self.rows = int(rows)
        self.cols = int(cols)
        self.pigment_width = pigment_width
        self.pigment_height = pigment_height
        self.spatial_density = tuple(float(d) for d in spatial_density)
        self.integration_time = integration_time if integration_time is not None else self.os.time_step
        self.photon_gain = photon_gain
        self.noise_flag = noise_flag
        self.seed = seed
        self.device = torch.device(device) if isinstance(device, str) else device

        self._generator = torch.Generator()
        if seed is not None:
            self._generator.manual_seed(seed)
        else:
            self._generator.seed()

        self._frames: List[torch.Tensor] = []
        self._finalized = False
        self.photocurrent: Optional[PhotocurrentResult] = None
        self.pattern = self._generate_pattern()

    # ------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------

    @property
    def requires_background_rate(self) -> bool:
        return self.os.requires_background_rate

    @property
    def size(self) -> Tuple[int, int]:
        return self.rows, self.cols

    @property
    def width(self) -> float:
        """Mosaic width in metres."""
        return self.cols * self.pigment_width

    @property
    def height(self) -> float:
        """Mosaic height in metres."""
        return self.rows * self.pigment_height

    @property
    def aperture_area_um2(self) -> float:
        return self.pigment_width * self.pigment_height * 1e12

    def _generate_pattern(self) -> torch.Tensor:
        probs = torch.tensor(self.spatial_density, dtype=torch.float32)
        draws = torch.multinomial(
            probs / probs.sum(),
            self.rows * self.cols,
            replacement=True,
            generator=self._generator,
        )
        return draws.reshape(self.rows, self.cols).to(self.device)

    def _lattice_size(self, width: float, height: float) -> Tuple[int, int]:
        rows = max(1, int(round(height / self.pigment_height)))
        cols = max(1, int(round(width / self.pigment_width)))
        return rows, cols

    def set_size_to_fov(
        self,
        fov: Tuple[float, float],
        scene_distance: float = math.inf,
        focal_length: float = 0.017,
    ) -> None:
        """Resize the lattice to cover ``fov`` = (horizontal, vertical) degrees.

        The retinal image distance follows the thin-lens equation for an
        object at ``scene_distance``.
        """
        hfov, vfov = fov
        if hfov <= 0 or vfov <= 0:
            raise ValueError(f"fov must be positive, got {fov}")
        if self._frames:
            raise RuntimeError("Cannot resize a mosaic that already holds absorptions")
        if math.isinf(scene_distance):
            image_distance = focal_length
        else:
            if scene_distance <= focal_length:
                raise ValueError(
                    f"scene_distance ({scene_distance}) must exceed focal_length ({focal_length})"
                )
            image_distance = 1.0 / (1.0 / focal_length - 1.0 / scene_distance)
        width = 2 * image_distance * math.tan(math.radians(hfov / 2))
        height = 2 * image_distance * math.tan(math.radians(vfov / 2))
        self.rows, self.cols = self._lattice_size(width, height)
        self.pattern = self._generate_pattern()
        logger.debug("Mosaic resized to %dx%d cones for fov %s", self.rows, self.cols, fov)

    def configure_geometry(
        self,
        pigment_size: Tuple[float, float],
        fov: Tuple[float, float],
        scene_distance: float,
        focal_length: float,
        integration_time: Optional[float] = None,
    ) -> None:
        self.pigment_width, self.pigment_height = pigment_size
        self.set_size_to_fov(fov, scene_distance=scene_distance, focal_length=focal_length)
        self.integration_time = (
            integration_time if integration_time is not None else self.os.time_step
        )

    # ------------------------------------------------------------------
    # Absorptions
    # ------------------------------------------------------------------

    def _sample_irradiance(self, oi: OpticalImage) -> torch.Tensor:
        irradiance = oi.irradiance.to(self.device).unsqueeze(0)
        return F.interpolate(irradiance, size=(self.rows, self.cols), mode="area")[0]

    def _absorption_frame(self, oi: OpticalImage, em_path: Sequence[int] = (0, 0)) -> torch.Tensor:
        sampled = self._sample_irradiance(oi)
        dy, dx = int(em_path[0]), int(em_path[1])
        if dy or dx:
            sampled = torch.roll(sampled, shifts=(dy, dx), dims=(1, 2))
        planes = torch.cat([torch.zeros_like(sampled[:1]), sampled], dim=0)
        per_cone = torch.gather(planes, 0, self.pattern.unsqueeze(0))[0]
        rate = per_cone * self.aperture_area_um2 * self.photon_gain
        return rate * self.integration_time

    def compute_noise_free(self, oi: OpticalImage) -> torch.Tensor:
        return self._absorption_frame(oi)

    def accumulate(self, oi: OpticalImage, em_path: Sequence[int] = (0, 0)) -> None:
        if self._finalized:
            raise RuntimeError("Cannot append absorptions after the mosaic was finalised")
        frame = self._absorption_frame(oi, em_path)
        if self.noise_flag:
            frame = torch.poisson(frame.cpu(), generator=self._generator).to(frame.device)
        self._frames.append(frame)

    @property
    def n_frames(self) -> int:
        return len(self._frames)

    @property
    def absorptions(self) -> torch.Tensor:
        """Accumulated absorptions ``[rows, cols, frames]``."""
        if not self._frames:
            return torch.zeros(self.rows, self.cols, 0, device=self.device)
        return torch.stack(self._frames, dim=-1)

    def mean_absorption_rate(self) -> float:
        """Mean absorptions per outer-segment time step, in R*/s."""
        if not self._frames:
            raise RuntimeError("No absorptions accumulated")
        return float((self.absorptions / self.os.time_step).mean())

    # ------------------------------------------------------------------
    # Photocurrent
    # ------------------------------------------------------------------

    def finalize(self, background_rate: Optional[float] = None) -> PhotocurrentResult:
        if self._finalized:
            raise RuntimeError("Mosaic photocurrent was already computed")
        if not self._frames:
            raise RuntimeError("Cannot compute photocurrent before any absorptions were appended")
        if self.requires_background_rate and background_rate is None:
            raise ValueError(
                f"{type(self.os).__name__} requires a background_rate to compute current"
            )
        rate = self.absorptions / self.integration_time
        current = self.os(rate, background_rate=background_rate)
        self.photocurrent = PhotocurrentResult(
            current=current,
            time_step=self.os.time_step,
            background_rate=background_rate,
        )
        self._finalized = True
        return self.photocurrent

    @property
    def is_finalized(self) -> bool:
        return self._finalized

    def reset(self) -> None:
        """Drop accumulated absorptions and photocurrent."""
        self._frames = []
        self._finalized = False
        self.photocurrent = None
        self.os.reset_state()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mosaic_type": self.mosaic_type,
            "rows": self.rows,
            "cols": self.cols,
            "pigment_width": self.pigment_width,
            "pigment_height": self.pigment_height,
            "spatial_density": list(self.spatial_density),
            "integration_time": self.integration_time,
            "photon_gain": self.photon_gain,
            "noise_flag": self.noise_flag,
            "seed": self.seed,
            "os": {"type": type(self.os).__name__, **self.os.to_dict()},
        }

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(size={self.size}, frames={self.n_frames}, "
            f"os={type(self.os).__name__})"
        )
