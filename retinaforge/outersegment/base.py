"""Abstract base class for cone outer-segment models.

An outer segment converts a cone's absorption-rate time course into
photocurrent. All implementations inherit from :class:`BaseOuterSegment`
so cone mosaics can swap them freely and the registry can build them from
YAML.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import torch
import torch.nn as nn


class BaseOuterSegment(nn.Module, ABC):
    """Abstract base class for outer-segment models.

    All outer segments must:
    1. Inherit from ``nn.Module``
    2. Implement ``forward(absorption_rate, background_rate=None)``
    3. Implement ``reset_state()`` to rewind noise generators
    4. Provide ``from_config()`` and ``to_dict()`` for YAML round trips

    Subclasses that cannot compute current without an estimate of the
    background absorption rate set ``requires_background_rate = True``.

    Attributes:
        time_step: Sampling interval of the absorption series in seconds.
        noise_flag: Whether Gaussian current noise is added.
        noise_std: Standard deviation of the current noise in pA.
        seed: Seed of the per-instance noise generator.
    """

    requires_background_rate: bool = False

    def __init__(
        self,
        time_step: float = 1e-3,
        noise_flag: bool = False,
        noise_std: float = 0.5,
        seed: Optional[int] = None,
    ) -> None:
        super().__init__()
        if time_step <= 0:
            raise ValueError(f"time_step must be positive, got {time_step}")
        self.time_step = time_step
        self.noise_flag = noise_flag
        self.noise_std = noise_std
        self.seed = seed
        self._generator: Optional[torch.Generator] = None
        if seed is not None:
            self._generator = torch.Generator()
            self._generator.manual_seed(seed)

    @abstractmethod
    def forward(
        self,
        absorption_rate: torch.Tensor,
        background_rate: Optional[float] = None,
    ) -> torch.Tensor:
        """Compute photocurrent.

        Args:
            absorption_rate: ``[rows, cols, steps]`` absorptions per second.
            background_rate: Background absorption rate (R*/s) for models
                that adapt to it.

        Returns:
            Photocurrent in pA, same shape as ``absorption_rate``.
        """
        ...

    def reset_state(self) -> None:
        """Rewind the noise generator to its seed."""
        if self.seed is not None and self._generator is not None:
            self._generator.manual_seed(self.seed)

    def add_noise(self, current: torch.Tensor) -> torch.Tensor:
        """Add Gaussian current noise when ``noise_flag`` is set."""
        if not self.noise_flag:
            return current
        if self._generator is not None:
            noise = torch.randn(
                current.shape,
                generator=self._generator,
                dtype=current.dtype,
            ).to(current.device)
        else:
            noise = torch.randn_like(current)
        return current + noise * self.noise_std

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "BaseOuterSegment":
        return cls(**config)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "time_step": self.time_step,
            "noise_flag": self.noise_flag,
            "noise_std": self.noise_std,
            "seed": self.seed,
        }
