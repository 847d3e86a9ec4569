"""Inner retina: a set of RGC mosaics sharing one retinal patch."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import torch

from retinaforge.config.schema import EYE_SIDES, InnerRetinaConfig
from retinaforge.innerretina.rgc_lnp import RGCMosaicLNP
from retinaforge.outersegment.identity import IdentityOuterSegment
from retinaforge.registry import RGC_MODEL_REGISTRY

logger = logging.getLogger(__name__)

CHECKPOINT_FORMAT = "retinaforge.inner_retina"
CHECKPOINT_VERSION = 1


class InnerRetina:
    """Collection of RGC mosaics driven by one outer segment.

    Attributes:
        name: Instance name.
        eye_side: ``left`` or ``right``.
        eye_radius: Patch eccentricity in mm.
        eye_angle: Patch polar angle in degrees.
        number_trials: Spike-generation repeats for every mosaic.
        seed: Base seed; mosaic ``i`` uses ``seed + i``.
        mosaics: RGC mosaics in creation order.
    """

    def __init__(
        self,
        name: str = "Macaque inner retina 1",
        eye_side: str = "left",
        eye_radius: float = 4.0,
        eye_angle: float = 90.0,
        number_trials: int = 1,
        seed: Optional[int] = None,
    ) -> None:
        if eye_side not in EYE_SIDES:
            raise ValueError(f"eye_side must be one of {list(EYE_SIDES)}, got {eye_side!r}")
        self.name = name
        self.eye_side = eye_side
        self.eye_radius = float(eye_radius)
        self.eye_angle = float(eye_angle)
        self.number_trials = int(number_trials)
        self.seed = seed
        self.mosaics: List[RGCMosaicLNP] = []

    @classmethod
    def from_config(cls, config: InnerRetinaConfig) -> "InnerRetina":
        """Build an inner retina and all of its mosaics from configuration."""
        config.validate()
        retina = cls(
            name=config.name,
            eye_side=config.eye_side,
            eye_radius=config.eye_radius,
            eye_angle=config.eye_angle,
            number_trials=config.number_trials,
            seed=config.seed,
        )
        for spec in config.mosaics:
            retina.create_mosaic(spec.cell_type, model=spec.model, **spec.params)
        return retina

    def create_mosaic(self, cell_type: str, model: str = "LNP", **params: Any) -> RGCMosaicLNP:
        """Add a mosaic of ``cell_type`` computed with ``model``."""
        seed = None if self.seed is None else self.seed + len(self.mosaics)
        kwargs = {
            "cell_type": cell_type,
            "eye_radius": self.eye_radius,
            "number_trials": self.number_trials,
            "seed": seed,
        }
        kwargs.update(params)
        mosaic = RGC_MODEL_REGISTRY.create(model, **kwargs)
        self.mosaics.append(mosaic)
        return mosaic

    def set_number_trials(self, number_trials: int) -> None:
        """Set the trial count on the retina and every mosaic."""
        for mosaic in self.mosaics:
            mosaic.set_number_trials(number_trials)
        self.number_trials = int(number_trials)

    def reseed(self, offset: int) -> None:
        """Move every seeded mosaic to a fresh block of spike seeds.

        Mosaic ``i`` of an inner retina seeded with ``s`` draws with
        ``s + offset * n_mosaics + i``, so distinct offsets never share a
        seed. Unseeded mosaics are left alone.
        """
        stride = len(self.mosaics)
        for mosaic in self.mosaics:
            if mosaic.seed is not None:
                mosaic.seed += offset * stride

    def compute(self, outer_segment: IdentityOuterSegment) -> "InnerRetina":
        """Compute every mosaic's response to the outer segment's movie.

        Raises:
            ValueError: If the outer segment holds no movie or no patch size.
            RuntimeError: If the inner retina has no mosaics.
        """
        if outer_segment.rgb_data is None:
            raise ValueError("outer segment has no rgb_data")
        if outer_segment.patch_size <= 0:
            raise ValueError(f"outer segment patch_size must be positive, got {outer_segment.patch_size}")
        if not self.mosaics:
            raise RuntimeError(f"inner retina '{self.name}' has no mosaics")
        for mosaic in self.mosaics:
            mosaic.compute(outer_segment.rgb_data, outer_segment.patch_size, outer_segment.time_step)
        logger.info("Computed %d RGC mosaic(s) for '%s'", len(self.mosaics), self.name)
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "eye_side": self.eye_side,
            "eye_radius": self.eye_radius,
            "eye_angle": self.eye_angle,
            "number_trials": self.number_trials,
            "seed": self.seed,
            "mosaics": [mosaic.to_dict() for mosaic in self.mosaics],
        }

    def save(self, path: str | Path) -> Path:
        """Save the model definition (no responses) as a torch checkpoint."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        torch.save(
            {"format": CHECKPOINT_FORMAT, "version": CHECKPOINT_VERSION, **self.to_dict()},
            path,
        )
        return path

    @classmethod
    def load(cls, path: str | Path) -> "InnerRetina":
        """Load an inner retina saved with :meth:`save`.

        Raises:
            FileNotFoundError: If ``path`` does not exist.
            ValueError: If the file is not an inner-retina checkpoint.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Inner retina file not found: {path}")
        data = torch.load(path, weights_only=True)
        if not isinstance(data, dict) or data.get("format") != CHECKPOINT_FORMAT:
            raise ValueError(f"{path} is not an inner retina checkpoint")

        retina = cls(
            name=data["name"],
            eye_side=data["eye_side"],
            eye_radius=data["eye_radius"],
            eye_angle=data["eye_angle"],
            number_trials=data["number_trials"],
            seed=data.get("seed"),
        )
        for mosaic_data in data["mosaics"]:
            model = mosaic_data.get("model", "LNP")
            cls_ = RGC_MODEL_REGISTRY.get_class(model)
            retina.mosaics.append(cls_.from_dict(mosaic_data))
        return retina

    def __repr__(self) -> str:
        types = ", ".join(m.cell_type for m in self.mosaics)
        return f"InnerRetina(name={self.name!r}, mosaics=[{types}])"
