"""Cone outer-segment models.

Classes:
    BaseOuterSegment: Abstract base class
    LinearOuterSegment: Linear impulse-response model (``linear``)
    BiophysOuterSegment: Phototransduction cascade (``biophys``)
    IdentityOuterSegment: Pass-through RGB holder (``displayrgb``)
"""

from retinaforge.outersegment.base import BaseOuterSegment
from retinaforge.outersegment.linear import LinearOuterSegment
from retinaforge.outersegment.biophys import BiophysOuterSegment
from retinaforge.outersegment.identity import IdentityOuterSegment

__all__ = [
    "BaseOuterSegment",
    "LinearOuterSegment",
    "BiophysOuterSegment",
    "IdentityOuterSegment",
]
