"""Physiological optics: scene radiance to retinal irradiance.

The eye's optics are modelled as a per-cone-class Gaussian point spread
(wider for S cones, standing in for chromatic aberration), a lens
transmittance and the camera equation for the pupil. Blurring uses
``conv2d`` with replicate padding, so the transform is deterministic for
identical inputs.
"""

from __future__ import annotations

import math
from typing import Tuple

import torch
import torch.nn.functional as F

from retinaforge.scene.scene import Scene


def create_gaussian_kernel_torch(
    sigma: float,
    device: torch.device | str = "cpu",
) -> torch.Tensor:
    """Sum-normalised 2D Gaussian kernel shaped ``(1, 1, k, k)``.

    Args:
        sigma: Standard deviation in pixels.
        device: Torch device for the kernel.
    """
    radius = max(1, int(math.ceil(3 * sigma)))
    x = torch.arange(-radius, radius + 1, device=device, dtype=torch.float32)
    xx, yy = torch.meshgrid(x, x, indexing="ij")
    kernel = torch.exp(-(xx**2 + yy**2) / (2 * sigma**2))
    kernel = kernel / kernel.sum()
    return kernel.unsqueeze(0).unsqueeze(0)


class OpticalImage:
    """Retinal irradiance of one scene.

    Attributes:
        irradiance: ``[3, rows, cols]`` L/M/S-weighted retinal irradiance.
        hfov: Horizontal field of view in degrees.
        vfov: Vertical field of view in degrees.
        focal_length: Focal length of the optics in metres.
    """

    def __init__(
        self,
        irradiance: torch.Tensor,
        hfov: float,
        vfov: float,
        focal_length: float,
    ) -> None:
        self.irradiance = irradiance
        self.hfov = hfov
        self.vfov = vfov
        self.focal_length = focal_length

    @property
    def size(self) -> Tuple[int, int]:
        return int(self.irradiance.shape[1]), int(self.irradiance.shape[2])

    @property
    def width(self) -> float:
        """Width of the image on the retina in metres."""
        return 2 * self.focal_length * math.tan(math.radians(self.hfov / 2))

    @property
    def height(self) -> float:
        """Height of the image on the retina in metres."""
        return 2 * self.focal_length * math.tan(math.radians(self.vfov / 2))

    @property
    def mean_irradiance(self) -> float:
        return float(self.irradiance.mean())

    def __repr__(self) -> str:
        return f"OpticalImage(size={self.size}, hfov={self.hfov:.3f})"


class Optics:
    """Shift-invariant model of the human eye's optics.

    Attributes:
        focal_length: Focal length in metres.
        f_number: Pupil f-number used in the camera equation.
        psf_sigma_arcmin: Gaussian PSF width per cone class (L, M, S).
        transmittance: Lens transmittance per cone class (L, M, S).
    """

    def __init__(
        self,
        focal_length: float = 0.017,
        f_number: float = 4.0,
        psf_sigma_arcmin: Tuple[float, float, float] = (1.0, 1.0, 2.0),
        transmittance: Tuple[float, float, float] = (1.0, 1.0, 0.8),
        device: torch.device | str = "cpu",
    ) -> None:
        if focal_length <= 0:
            raise ValueError(f"focal_length must be positive, got {focal_length}")
        if f_number <= 0:
            raise ValueError(f"f_number must be positive, got {f_number}")
        self.focal_length = focal_length
        self.f_number = f_number
        self.psf_sigma_arcmin = tuple(psf_sigma_arcmin)
        self.transmittance = tuple(transmittance)
        self.device = torch.device(device) if isinstance(device, str) else device

    def compute(self, scene: Scene) -> OpticalImage:
        """Compute the optical image of ``scene``."""
        radiance = scene.lms.to(self.device)
        deg_per_pixel = scene.hfov / scene.cols
        gain = math.pi / (1 + 4 * self.f_number**2)

        planes = []
        for channel in range(radiance.shape[0]):
            plane = radiance[channel].unsqueeze(0).unsqueeze(0)
            sigma_px = self.psf_sigma_arcmin[channel] / 60.0 / deg_per_pixel
            if sigma_px >= 0.1:
                kernel = create_gaussian_kernel_torch(sigma_px, device=self.device)
                pad = kernel.shape[-1] // 2
                plane = F.conv2d(F.pad(plane, (pad, pad, pad, pad), mode="replicate"), kernel)
            planes.append(plane[0, 0] * self.transmittance[channel] * gain)

        return OpticalImage(
            irradiance=torch.stack(planes, dim=0),
            hfov=scene.hfov,
            vfov=scene.vfov,
            focal_length=self.focal_length,
        )

    def to_dict(self) -> dict:
        return {
            "focal_length": self.focal_length,
            "f_number": self.f_number,
            "psf_sigma_arcmin": list(self.psf_sigma_arcmin),
            "transmittance": list(self.transmittance),
        }


def create_optics(kind: str = "wvf human", device: torch.device | str = "cpu") -> Optics:
    """Build a named optics model.

    Args:
        kind: ``"wvf human"`` (typical human eye, 3 mm pupil) or
            ``"diffraction limited"`` (sharp, no lens absorption).

    Raises:
        ValueError: If ``kind`` is unknown.
    """
    if kind == "wvf human":
        return Optics(device=device)
    if kind == "diffraction limited":
        return Optics(
            psf_sigma_arcmin=(0.25, 0.25, 0.25),
            transmittance=(1.0, 1.0, 1.0),
            device=device,
        )
    raise ValueError(f"Unknown optics '{kind}'. Available: diffraction limited, wvf human")
