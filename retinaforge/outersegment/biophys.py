r"""Biophysical outer segment.

A compact phototransduction cascade (rhodopsin activity ``r``, PDE
activity ``p``, cGMP ``g``, fast calcium ``c`` and slow calcium ``c_s``)
after Angueyra & Rieke (2013):

* dr/dt = γ · stim − σ · r
* dp/dt = r + η − φ · p
* dc/dt = q · I − β · c
* dc_s/dt = −β_slow · (c_s − c)
* s = s_max / (1 + (c / K_gc)^n)
* dg/dt = s − p · g
* I = k · g^h / (1 + c_s / c_dark)

Current is reported with the physiological sign (inward, negative). The
state starts at the steady state for ``background_rate``, which is why the
model requires that rate before it can compute current.
"""

from __future__ import annotations

import math
from typing import Any, Dict, Optional

import torch
from tqdm import tqdm

from retinaforge.outersegment.base import BaseOuterSegment
from retinaforge.session import session_get


class BiophysOuterSegment(BaseOuterSegment):
    """Phototransduction-cascade outer segment (peripheral cone values)."""

    requires_background_rate = True

    def __init__(
        self,
        time_step: float = 1e-3,
        substeps: int = 20,
        sigma: float = 22.0,
        phi: float = 22.0,
        eta: float = 2000.0,
        gdark: float = 20.5,
        k: float = 0.02,
        h: float = 3.0,
        cdark: float = 1.0,
        beta: float = 9.0,
        beta_slow: float = 0.4,
        hill_coef: float = 4.0,
        hill_affinity: float = 0.5,
        gamma: float = 10.0,
        noise_flag: bool = False,
        noise_std: float = 0.5,
        seed: Optional[int] = None,
    ) -> None:
        super().__init__(time_step=time_step, noise_flag=noise_flag, noise_std=noise_std, seed=seed)
        if substeps < 1:
            raise ValueError(f"substeps must be at least 1, got {substeps}")
        self.substeps = substeps
        self.sigma = sigma
        self.phi = phi
        self.eta = eta
        self.gdark = gdark
        self.k = k
        self.h = h
        self.cdark = cdark
        self.beta = beta
        self.beta_slow = beta_slow
        self.hill_coef = hill_coef
        self.hill_affinity = hill_affinity
        self.gamma = gamma

    @property
    def q(self) -> float:
        return 2 * self.beta * self.cdark / (self.k * self.gdark**self.h)

    @property
    def smax(self) -> float:
        return self.eta / self.phi * self.gdark * (1 + (self.cdark / self.hill_affinity) ** self.hill_coef)

    def _calcium_at(self, g: float) -> float:
        # c (1 + c / cdark) = q k g^h / beta at steady state
        a = self.q * self.k * g**self.h / self.beta
        return (-1.0 + math.sqrt(1.0 + 4.0 * a / self.cdark)) * self.cdark / 2.0

    def steady_state(self, background_rate: float) -> Dict[str, float]:
        """Cascade state for a constant absorption rate (R*/s)."""
        if background_rate < 0:
            raise ValueError(f"background_rate must be non-negative, got {background_rate}")
        r = self.gamma * background_rate / self.sigma
        p = (r + self.eta) / self.phi

        def residual(g: float) -> float:
            c = self._calcium_at(g)
            s = self.smax / (1 + (c / self.hill_affinity) ** self.hill_coef)
            return s - p * g

        lo, hi = 0.0, self.smax / p
        for _ in range(100):
            mid = 0.5 * (lo + hi)
            if residual(mid) > 0:
                lo = mid
            else:
                hi = mid
        g = 0.5 * (lo + hi)
        c = self._calcium_at(g)
        current = self.k * g**self.h / (1 + c / self.cdark)
        return {"r": r, "p": p, "g": g, "c": c, "c_slow": c, "current": current}

    def forward(
        self,
        absorption_rate: torch.Tensor,
        background_rate: Optional[float] = None,
    ) -> torch.Tensor:
        if background_rate is None:
            raise ValueError("BiophysOuterSegment requires a background_rate")
        rows, cols, steps = absorption_rate.shape
        stim = absorption_rate.reshape(rows * cols, steps).to(torch.float64)

        init = self.steady_state(float(background_rate))
        r = torch.full_like(stim[:, 0], init["r"])
        p = torch.full_like(r, init["p"])
        g = torch.full_like(r, init["g"])
        c = torch.full_like(r, init["c"])
        c_slow = torch.full_like(r, init["c_slow"])

        dt = self.time_step / self.substeps
        out = torch.empty_like(stim)
        steps_iter = tqdm(
            range(steps),
            desc="Photocurrent",
            unit="step",
            leave=False,
            disable=not session_get("wait_bar"),
        )
        for t in steps_iter:
            drive = stim[:, t]
            for _ in range(self.substeps):
                current = self.k * g.clamp(min=0.0) ** self.h / (1 + c_slow / self.cdark)
                s = self.smax / (1 + (c / self.hill_affinity) ** self.hill_coef)
                r = r + dt * (self.gamma * drive - self.sigma * r)
                p = p + dt * (r + self.eta - self.phi * p)
                c = c + dt * (self.q * current - self.beta * c)
                c_slow = c_slow - dt * self.beta_slow * (c_slow - c)
                g = (g + dt * (s - p * g)).clamp(min=0.0)
            out[:, t] = -self.k * g ** self.h / (1 + c_slow / self.cdark)

        current = out.to(torch.float32).reshape(rows, cols, steps)
        return self.add_noise(current)

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        for name in (
            "substeps", "sigma", "phi", "eta", "gdark", "k", "h", "cdark",
            "beta", "beta_slow", "hill_coef", "hill_affinity", "gamma",
        ):
            result[name] = getattr(self, name)
        return result
