"""Configuration records and YAML helpers."""

from retinaforge.config.schema import (
    BarStimulusParams,
    MosaicSpec,
    InnerRetinaConfig,
    ExperimentConfig,
    RetinaForgeConfig,
    MOSAIC_VARIANTS,
)
from retinaforge.config.yaml_utils import load_yaml, load_yaml_file

__all__ = [
    "BarStimulusParams",
    "MosaicSpec",
    "InnerRetinaConfig",
    "ExperimentConfig",
    "RetinaForgeConfig",
    "MOSAIC_VARIANTS",
    "load_yaml",
    "load_yaml_file",
]
