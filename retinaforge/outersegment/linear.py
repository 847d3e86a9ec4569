"""Linear outer segment.

Photocurrent is the dark current plus a causal convolution of the
absorption-rate increment (relative to the sequence mean) with a biphasic
cone impulse response

    f(t) = ((t/τ_r)^3 / (1 + t/τ_r)) · exp(-(t/τ_d)^2) · cos(2π t/τ_p + φ)

normalised to unit area, then scaled by ``gain`` (pA per R*/s).
"""

from __future__ import annotations

import math
from typing import Any, Dict, Optional

import torch
import torch.nn.functional as F

from retinaforge.outersegment.base import BaseOuterSegment


class LinearOuterSegment(BaseOuterSegment):
    """Linear cone photocurrent model."""

    def __init__(
        self,
        time_step: float = 1e-3,
        tau_r: float = 0.0216,
        tau_d: float = 0.029,
        tau_p: float = 0.05,
        phi: float = -0.4,
        filter_duration: float = 0.2,
        gain: float = 5e-4,
        dark_current: float = -40.0,
        noise_flag: bool = False,
        noise_std: float = 0.5,
        seed: Optional[int] = None,
    ) -> None:
        """Initialise the linear outer segment.

        Args:
            time_step: Sampling interval in seconds.
            tau_r: Rise time constant (s).
            tau_d: Damping time constant (s).
            tau_p: Oscillation period (s).
            phi: Oscillation phase (rad).
            filter_duration: Length of the impulse response (s).
            gain: Current per unit absorption-rate increment (pA per R*/s).
            dark_current: Current in darkness (pA, inward is negative).
            noise_flag: Add Gaussian current noise.
            noise_std: Noise standard deviation (pA).
            seed: Noise generator seed.
        """
        super().__init__(time_step=time_step, noise_flag=noise_flag, noise_std=noise_std, seed=seed)
        self.tau_r = tau_r
        self.tau_d = tau_d
        self.tau_p = tau_p
        self.phi = phi
        self.filter_duration = filter_duration
        self.gain = gain
        self.dark_current = dark_current

    def impulse_response(self) -> torch.Tensor:
        """Unit-area impulse response sampled at ``time_step``."""
        n = max(1, int(math.ceil(self.filter_duration / self.time_step)))
        t = torch.arange(n, dtype=torch.float32) * self.time_step
        rise = (t / self.tau_r) ** 3 / (1 + t / self.tau_r)
        kernel = rise * torch.exp(-((t / self.tau_d) ** 2)) * torch.cos(
            2 * math.pi * t / self.tau_p + self.phi
        )
        area = kernel.sum() * self.time_step
        if abs(float(area)) < 1e-12:
            kernel = torch.zeros(n)
            kernel[0] = 1.0
            area = torch.tensor(self.time_step)
        return kernel / area

    def forward(
        self,
        absorption_rate: torch.Tensor,
        background_rate: Optional[float] = None,
    ) -> torch.Tensor:
        rows, cols, steps = absorption_rate.shape
        rate = absorption_rate.reshape(rows * cols, 1, steps).to(torch.float32)
        increment = rate - rate.mean(dim=-1, keepdim=True)

        kernel = self.impulse_response().to(rate.device)
        # conv1d is a cross-correlation; flip for a causal convolution
        weight = kernel.flip(0).view(1, 1, -1)
        padded = F.pad(increment, (kernel.numel() - 1, 0))
        response = F.conv1d(padded, weight) * self.time_step

        current = self.dark_current + self.gain * response
        current = current.reshape(rows, cols, steps)
        return self.add_noise(current)

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result.update(
            {
                "tau_r": self.tau_r,
                "tau_d": self.tau_d,
                "tau_p": self.tau_p,
                "phi": self.phi,
                "filter_duration": self.filter_duration,
                "gain": self.gain,
                "dark_current": self.dark_current,
            }
        )
        return result
