"""Pass-through outer segment for display RGB input.

There is no simulated transduction: the outer segment only carries the
stimulus movie, its time step and the physical size of the retinal patch
to the inner retina.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

import torch

from retinaforge.outersegment.base import BaseOuterSegment


class IdentityOuterSegment(BaseOuterSegment):
    """Holder of an RGB stimulus movie (``displayrgb``).

    Attributes:
        patch_size: Width of the retinal patch in metres.
        rgb_data: Movie ``[rows, cols, frames, 3]`` or ``None``.
    """

    def __init__(
        self,
        time_step: float = 1.0 / 125.0,
        patch_size: float = 0.0,
        rgb_data: Optional[torch.Tensor] = None,
    ) -> None:
        super().__init__(time_step=time_step)
        self.patch_size = patch_size
        self.rgb_data = rgb_data

    def set_rgb_data(self, rgb_data: torch.Tensor) -> None:
        """Attach a ``[rows, cols, frames, 3]`` movie."""
        if rgb_data.dim() != 4 or rgb_data.shape[-1] != 3:
            raise ValueError(
                f"rgb_data must have shape [rows, cols, frames, 3], got {tuple(rgb_data.shape)}"
            )
        self.rgb_data = rgb_data

    @property
    def size(self) -> Tuple[int, int]:
        if self.rgb_data is None:
            return (0, 0)
        return int(self.rgb_data.shape[0]), int(self.rgb_data.shape[1])

    @property
    def n_frames(self) -> int:
        return 0 if self.rgb_data is None else int(self.rgb_data.shape[2])

    def forward(
        self,
        absorption_rate: torch.Tensor,
        background_rate: Optional[float] = None,
    ) -> torch.Tensor:
        return absorption_rate

    def to_dict(self) -> Dict[str, Any]:
        return {"time_step": self.time_step, "patch_size": self.patch_size}
