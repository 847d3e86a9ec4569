"""Experiment drivers."""

from retinaforge.experiments.bar_response import BarResponseExperiment, create_inner_retina

__all__ = ["BarResponseExperiment", "create_inner_retina"]
