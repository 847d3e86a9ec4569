"""Inner-retina (RGC) models."""

from retinaforge.innerretina.rgc_lnp import RGCMosaicLNP
from retinaforge.innerretina.inner_retina import InnerRetina

__all__ = ["InnerRetina", "RGCMosaicLNP"]
