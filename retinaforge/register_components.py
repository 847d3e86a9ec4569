"""Auto-registration of all RetinaForge components.

This module registers all concrete component implementations with their
respective registries. Importing :mod:`retinaforge` runs it once.

Example:
    >>> from retinaforge.register_components import register_all
    >>> register_all()
    >>> from retinaforge.registry import MOSAIC_REGISTRY
    >>> mosaic = MOSAIC_REGISTRY.create("hex", seed=None)
"""

from retinaforge.registry import (
    MOSAIC_REGISTRY,
    OUTER_SEGMENT_REGISTRY,
    RGC_MODEL_REGISTRY,
)

# Cone mosaics
from retinaforge.mosaic.cone_mosaic import ConeMosaic
from retinaforge.mosaic.hex_mosaic import HexConeMosaic
from retinaforge.mosaic.factory import (
    create_biophys_mosaic,
    create_hex_mosaic,
    create_linear_mosaic,
)

# Outer segments
from retinaforge.outersegment.linear import LinearOuterSegment
from retinaforge.outersegment.biophys import BiophysOuterSegment
from retinaforge.outersegment.identity import IdentityOuterSegment

# RGC models
from retinaforge.innerretina.rgc_lnp import RGCMosaicLNP


def register_all() -> None:
    """Register all RetinaForge components with their registries."""
    # Mosaic variants pair a geometry with an outer segment
    MOSAIC_REGISTRY.register("linear", ConeMosaic, create_linear_mosaic)
    MOSAIC_REGISTRY.register("biophys", ConeMosaic, create_biophys_mosaic)
    MOSAIC_REGISTRY.register("hex", HexConeMosaic, create_hex_mosaic)

    OUTER_SEGMENT_REGISTRY.register("linear", LinearOuterSegment)
    OUTER_SEGMENT_REGISTRY.register("biophys", BiophysOuterSegment)
    OUTER_SEGMENT_REGISTRY.register("displayrgb", IdentityOuterSegment)
    OUTER_SEGMENT_REGISTRY.register("identity", IdentityOuterSegment)  # Alias

    RGC_MODEL_REGISTRY.register("LNP", RGCMosaicLNP)
    RGC_MODEL_REGISTRY.register("lnp", RGCMosaicLNP)  # Alias


# Auto-register on import
register_all()
