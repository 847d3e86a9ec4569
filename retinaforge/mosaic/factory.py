"""Cone-mosaic variants selectable by name.

Each variant is a mosaic geometry paired with an outer-segment model:

* ``linear``: rectangular mosaic, linear outer segment
* ``biophys``: rectangular mosaic, biophysical outer segment (noise off)
* ``hex``: hexagonal mosaic, linear outer segment

The variants are registered in :data:`retinaforge.registry.MOSAIC_REGISTRY`
by :mod:`retinaforge.register_components`.
"""

from __future__ import annotations

from typing import Optional

from retinaforge.mosaic.cone_mosaic import ConeMosaic
from retinaforge.mosaic.hex_mosaic import HEX_DEFAULT_SEED, HexConeMosaic
from retinaforge.outersegment.biophys import BiophysOuterSegment
from retinaforge.outersegment.linear import LinearOuterSegment
from retinaforge.registry import MOSAIC_REGISTRY


def create_linear_mosaic(seed: Optional[int] = None, **kwargs) -> ConeMosaic:
    return ConeMosaic(
        outer_segment=LinearOuterSegment(),
        seed=0 if seed is None else seed,
        **kwargs,
    )


def create_biophys_mosaic(seed: Optional[int] = None, **kwargs) -> ConeMosaic:
    return ConeMosaic(
        outer_segment=BiophysOuterSegment(noise_flag=False),
        seed=0 if seed is None else seed,
        **kwargs,
    )


def create_hex_mosaic(seed: Optional[int] = None, **kwargs) -> HexConeMosaic:
    return HexConeMosaic(
        outer_segment=LinearOuterSegment(),
        seed=HEX_DEFAULT_SEED if seed is None else seed,
        noise_flag=False,
        **kwargs,
    )


def create_cone_mosaic(variant: str = "linear", seed: Optional[int] = None, **kwargs) -> ConeMosaic:
    """Build a cone mosaic variant by name.

    Args:
        variant: ``"linear"``, ``"biophys"`` or ``"hex"``.
        seed: Cone-pattern seed. ``None`` picks the variant default.
        **kwargs: Forwarded to the mosaic constructor.

    Raises:
        ValueError: If ``variant`` is not registered.
    """
    if not MOSAIC_REGISTRY.is_registered(variant):
        raise ValueError(
            f"Unknown mosaic variant {variant!r}. "
            f"Available: {', '.join(MOSAIC_REGISTRY.list_registered())}"
        )
    return MOSAIC_REGISTRY.create(variant, seed=seed, **kwargs)
