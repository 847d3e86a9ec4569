"""Linear-nonlinear-Poisson RGC mosaic.

One mosaic holds a single ganglion-cell class tiling the retinal patch on
a rectangular grid. For a stimulus movie the model computes

1. contrast ``2 · (rgb - 0.5)`` (luminance for most classes, the blue
   channel for small bistratified cells),
2. a spatial difference-of-Gaussians projection per cell,
3. a causal biphasic temporal filter, sign-flipped for OFF cells,
4. an exponential nonlinearity giving a firing rate in Hz,
5. Poisson spike counts per time bin for each trial.

Receptive-field size grows linearly with eccentricity.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, Optional, Tuple

import torch
import torch.nn.functional as F

logger = logging.getLogger(__name__)

# Dendritic-field diameter (µm) = slope · eccentricity (mm) + intercept
_RF_DIAMETER = {
    "on parasol": (20.0, 50.0),
    "off parasol": (18.0, 45.0),
    "on midget": (8.0, 12.0),
    "off midget": (7.0, 10.0),
    "sbc": (25.0, 60.0),
}

_POLARITY = {
    "on parasol": 1.0,
    "off parasol": -1.0,
    "on midget": 1.0,
    "off midget": -1.0,
    "sbc": 1.0,
}


class RGCMosaicLNP:
    """LNP mosaic of one RGC class.

    Attributes:
        cell_type: RGC class name.
        eye_radius: Patch eccentricity in mm.
        number_trials: Spike-generation repeats.
        surround_sigma_ratio: Surround / centre Gaussian width.
        surround_weight: Surround / centre volume.
        tau_1: Fast temporal time constant (s).
        tau_2: Slow temporal time constant (s).
        temporal_ratio: Weight of the slow lobe.
        filter_duration: Length of the temporal filter (s).
        gain: Nonlinearity gain per unit filtered contrast.
        base_rate: Firing rate at zero drive (Hz).
        max_rate: Firing-rate ceiling (Hz).
        seed: Spike generator seed.
    """

    model_name = "LNP"

    def __init__(
        self,
        cell_type: str = "off parasol",
        eye_radius: float = 4.0,
        number_trials: int = 1,
        surround_sigma_ratio: float = 2.0,
        surround_weight: float = 0.5,
        tau_1: float = 0.008,
        tau_2: float = 0.016,
        temporal_ratio: float = 0.6,
        filter_duration: float = 0.3,
        gain: float = 3.0,
        base_rate: float = 10.0,
        max_rate: float = 300.0,
        seed: Optional[int] = None,
    ) -> None:
        if cell_type not in _RF_DIAMETER:
            raise ValueError(
                f"Unknown RGC cell type '{cell_type}'. Available: {', '.join(_RF_DIAMETER)}"
            )
        if number_trials < 1:
            raise ValueError(f"number_trials must be at least 1, got {number_trials}")
        if eye_radius < 0:
            raise ValueError(f"eye_radius must be non-negative, got {eye_radius}")
        self.cell_type = cell_type
        self.eye_radius = float(eye_radius)
        self.number_trials = int(number_trials)
        self.surround_sigma_ratio = surround_sigma_ratio
        self.surround_weight = surround_weight
        self.tau_1 = tau_1
        self.tau_2 = tau_2
        self.temporal_ratio = temporal_ratio
        self.filter_duration = filter_duration
        self.gain = gain
        self.base_rate = base_rate
        self.max_rate = max_rate
        self.seed = seed

        self.cell_grid: Tuple[int, int] = (0, 0)
        self.time_step: Optional[float] = None
        self.linear_response: Optional[torch.Tensor] = None
        self.firing_rate: Optional[torch.Tensor] = None
        self.spikes: Optional[torch.Tensor] = None

    @property
    def rf_diameter(self) -> float:
        """Receptive-field centre diameter in metres."""
        slope, intercept = _RF_DIAMETER[self.cell_type]
        return (slope * self.eye_radius + intercept) * 1e-6

    @property
    def polarity(self) -> float:
        return _POLARITY[self.cell_type]

    def set_number_trials(self, number_trials: int) -> None:
        if number_trials < 1:
            raise ValueError(f"number_trials must be at least 1, got {number_trials}")
        self.number_trials = int(number_trials)

    # ------------------------------------------------------------------
    # Filters
    # ------------------------------------------------------------------

    def spatial_weights(
        self,
        rows: int,
        cols: int,
        patch_width: float,
    ) -> torch.Tensor:
        """Difference-of-Gaussians weights ``[cells, rows * cols]``.

        Cells are spaced one RF radius apart over a patch ``patch_width``
        metres wide. :attr:`cell_grid` is updated to the resulting layout.
        """
        if patch_width <= 0:
            raise ValueError(f"patch_width must be positive, got {patch_width}")
        pixel = patch_width / cols
        sigma_c = self.rf_diameter / 4 / pixel
        sigma_s = sigma_c * self.surround_sigma_ratio
        spacing = self.rf_diameter / 2 / pixel

        n_x = max(1, int(cols // spacing))
        n_y = max(1, int(rows // spacing))
        cx = (torch.arange(n_x, dtype=torch.float32) + 0.5) * cols / n_x
        cy = (torch.arange(n_y, dtype=torch.float32) + 0.5) * rows / n_y
        self.cell_grid = (n_y, n_x)

        yy, xx = torch.meshgrid(
            torch.arange(rows, dtype=torch.float32) + 0.5,
            torch.arange(cols, dtype=torch.float32) + 0.5,
            indexing="ij",
        )
        centers_y, centers_x = torch.meshgrid(cy, cx, indexing="ij")
        dy = yy.reshape(1, -1) - centers_y.reshape(-1, 1)
        dx = xx.reshape(1, -1) - centers_x.reshape(-1, 1)
        d2 = dx**2 + dy**2

        center = torch.exp(-d2 / (2 * sigma_c**2))
        surround = torch.exp(-d2 / (2 * sigma_s**2))
        center = center / center.sum(dim=1, keepdim=True)
        surround = surround / surround.sum(dim=1, keepdim=True)
        return center - self.surround_weight * surround

    def temporal_filter(self, time_step: float) -> torch.Tensor:
        """Biphasic filter sampled at ``time_step``, unit peak."""
        n = max(1, int(math.ceil(self.filter_duration / time_step)))
        t = torch.arange(n, dtype=torch.float32) * time_step
        fast = (t / self.tau_1) ** 3 * torch.exp(-t / self.tau_1)
        slow = (t / self.tau_2) ** 3 * torch.exp(-t / self.tau_2)
        kernel = fast / fast.max().clamp(min=1e-12) - self.temporal_ratio * slow / slow.max().clamp(min=1e-12)
        peak = kernel.abs().max()
        if float(peak) < 1e-12:
            kernel = torch.zeros(n)
            kernel[0] = 1.0
            return kernel
        return kernel / peak

    # ------------------------------------------------------------------
    # Response
    # ------------------------------------------------------------------

    def _contrast(self, rgb: torch.Tensor) -> torch.Tensor:
        if self.cell_type == "sbc":
            intensity = rgb[..., 2]
        else:
            intensity = rgb.mean(dim=-1)
        return 2.0 * (intensity.to(torch.float32) - 0.5)

    def compute(
        self,
        rgb: torch.Tensor,
        patch_width: float,
        time_step: float,
    ) -> Dict[str, torch.Tensor]:
        """Compute firing rates and spikes for a movie.

        Args:
            rgb: Stimulus ``[rows, cols, frames, 3]`` in ``[0, 1]``.
            patch_width: Width of the retinal patch in metres.
            time_step: Frame interval in seconds.

        Returns:
            Dict with ``linear``, ``rate`` and ``spikes``.
        """
        if rgb.dim() != 4 or rgb.shape[-1] != 3:
            raise ValueError(f"rgb must have shape [rows, cols, frames, 3], got {tuple(rgb.shape)}")
        if time_step <= 0:
            raise ValueError(f"time_step must be positive, got {time_step}")
        rows, cols, frames, _ = rgb.shape
        contrast = self._contrast(rgb).reshape(rows * cols, frames)

        weights = self.spatial_weights(rows, cols, patch_width).to(contrast.device)
        drive = (weights @ contrast).unsqueeze(1)  # [cells, 1, frames]

        kernel = self.temporal_filter(time_step).to(contrast.device)
        weight = kernel.flip(0).view(1, 1, -1)
        padded = F.pad(drive, (kernel.numel() - 1, 0))
        linear = F.conv1d(padded, weight)[:, 0, :] * self.polarity

        rate = (self.base_rate * torch.exp(self.gain * linear)).clamp(max=self.max_rate)

        generator = torch.Generator()
        if self.seed is not None:
            generator.manual_seed(self.seed)
        else:
            generator.seed()
        expected = (rate * time_step).unsqueeze(0).expand(self.number_trials, -1, -1)
        spikes = torch.poisson(expected.contiguous(), generator=generator)

        n_y, n_x = self.cell_grid
        self.time_step = time_step
        self.linear_response = linear.reshape(n_y, n_x, frames)
        self.firing_rate = rate.reshape(n_y, n_x, frames)
        self.spikes = spikes.reshape(self.number_trials, n_y, n_x, frames)
        logger.debug(
            "%s mosaic: %dx%d cells, %d frames, %d spikes",
            self.cell_type, n_y, n_x, frames, int(self.spikes.sum()),
        )
        return {"linear": self.linear_response, "rate": self.firing_rate, "spikes": self.spikes}

    def response_psth(self) -> Dict[str, torch.Tensor]:
        """Trial-averaged PSTH (Hz) and spike counts.

        Returns:
            ``psth`` ``[cell_rows, cell_cols, frames]`` and ``spikes``
            ``[trials, cell_rows, cell_cols, frames]``.

        Raises:
            RuntimeError: If :meth:`compute` has not run.
        """
        if self.spikes is None or self.time_step is None:
            raise RuntimeError(f"{self.cell_type} mosaic has no response; call compute() first")
        psth = self.spikes.mean(dim=0) / self.time_step
        return {"psth": psth, "spikes": self.spikes}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "model": self.model_name,
            "cell_type": self.cell_type,
            "eye_radius": self.eye_radius,
            "number_trials": self.number_trials,
            "surround_sigma_ratio": self.surround_sigma_ratio,
            "surround_weight": self.surround_weight,
            "tau_1": self.tau_1,
            "tau_2": self.tau_2,
            "temporal_ratio": self.temporal_ratio,
            "filter_duration": self.filter_duration,
            "gain": self.gain,
            "base_rate": self.base_rate,
            "max_rate": self.max_rate,
            "seed": self.seed,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RGCMosaicLNP":
        kwargs = {k: v for k, v in data.items() if k != "model"}
        return cls(**kwargs)

    def __repr__(self) -> str:
        return f"RGCMosaicLNP(cell_type={self.cell_type!r}, grid={self.cell_grid})"
