"""Cone mosaics and cone packing density.

Classes:
    ReceptorArray: Two-phase accumulator interface
    PhotocurrentResult: Output of ``ReceptorArray.finalize``
    ConeMosaic: Rectangular cone lattice
    HexConeMosaic: Hexagonal cone lattice
"""

from retinaforge.mosaic.base import PhotocurrentResult, ReceptorArray
from retinaforge.mosaic.cone_mosaic import CONE_TYPES, ConeMosaic
from retinaforge.mosaic.hex_mosaic import HexConeMosaic
from retinaforge.mosaic.density import cone_aperture_size, cone_density, eccentricity_to_mm
from retinaforge.mosaic.factory import create_cone_mosaic

__all__ = [
    "CONE_TYPES",
    "ConeMosaic",
    "HexConeMosaic",
    "PhotocurrentResult",
    "ReceptorArray",
    "cone_aperture_size",
    "cone_density",
    "create_cone_mosaic",
    "eccentricity_to_mm",
]
