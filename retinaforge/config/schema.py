"""Configuration schema for RetinaForge.

This module defines the configuration records consumed by the Python API,
the experiment driver and the CLI. Every record round-trips through plain
dictionaries (and therefore YAML): the parameters stored on a result are
sufficient to regenerate it.

Example:
    >>> from retinaforge.config.schema import RetinaForgeConfig
    >>> config = RetinaForgeConfig.from_yaml(yaml_str)
    >>> config.stimulus.bar_width
    10
    >>> yaml_str2 = config.to_yaml()
"""

from __future__ import annotations

import math
import numbers
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from retinaforge.config.yaml_utils import load_yaml, load_yaml_file
from retinaforge.exceptions import ConfigurationError

#: Receptor-array variants understood by the moving-bar sequencer.
MOSAIC_VARIANTS = ("linear", "biophys", "hex")

EYE_SIDES = ("left", "right")

RGC_CELL_TYPES = ("on parasol", "off parasol", "on midget", "off midget", "sbc")

SAVE_FORMATS = ("pytorch", "hdf5")


def _is_number(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def _is_integer(value: Any) -> bool:
    return isinstance(value, numbers.Integral) and not isinstance(value, bool)


def _known_fields(cls, data: Dict[str, Any]) -> Dict[str, Any]:
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in data.items() if k in names}


@dataclass(frozen=True)
class BarStimulusParams:
    """Parameters of a moving-bar stimulus and the cone mosaic viewing it.

    The record is immutable. It is stored on every
    :class:`~retinaforge.stimuli.bar.BarStimulusResult`, and passing it back
    to :func:`~retinaforge.stimuli.bar.moving_bar_stimulus` regenerates an
    equivalent result.

    Attributes:
        display: Name of the display calibration profile.
        bar_width: Bar width in pixels.
        mean_luminance: Mean scene luminance in cd/m².
        row: Image rows.
        col: Image columns.
        fov: Horizontal field of view in degrees.
        start_frames: Uniform gray frames before the sweep.
        stim_frames: Sweep frames. ``None`` derives it as ``col - bar_width``
            so the bar finishes at the right edge.
        end_frames: Uniform gray frames after the sweep.
        os: Receptor-array variant (``linear``, ``biophys`` or ``hex``).
        radius: Retinal eccentricity of the patch in degrees.
        theta: Polar angle of the patch in degrees.
        side: Eye side (``left`` or ``right``).
        seed: Seed for the cone pattern and any noise. ``None`` uses the
            variant's default.
    """

    display: str = "LCD-Apple"
    bar_width: int = 5
    mean_luminance: float = 200.0
    row: int = 96
    col: int = 96
    fov: float = 0.6
    start_frames: int = 60
    stim_frames: Optional[int] = None
    end_frames: int = 30
    os: str = "linear"
    radius: float = 0.0
    theta: float = 0.0
    side: str = "left"
    seed: Optional[int] = None

    def validate(self) -> "BarStimulusParams":
        """Check types and ranges.

        Returns:
            ``self`` so the call can be chained.

        Raises:
            ConfigurationError: On the first invalid field.
        """
        if not isinstance(self.display, str) or not self.display:
            raise ConfigurationError(f"display must be a non-empty string, got {self.display!r}")
        for name in ("bar_width", "row", "col"):
            value = getattr(self, name)
            if not _is_integer(value) or value < 1:
                raise ConfigurationError(f"{name} must be a positive integer, got {value!r}")
        for name in ("start_frames", "end_frames"):
            value = getattr(self, name)
            if not _is_integer(value) or value < 0:
                raise ConfigurationError(f"{name} must be a non-negative integer, got {value!r}")
        for name in ("mean_luminance", "fov"):
            value = getattr(self, name)
            if not _is_number(value) or not math.isfinite(value) or value <= 0:
                raise ConfigurationError(f"{name} must be a positive number, got {value!r}")
        for name in ("radius", "theta"):
            value = getattr(self, name)
            if not _is_number(value) or not math.isfinite(value):
                raise ConfigurationError(f"{name} must be a finite number, got {value!r}")
        if self.radius < 0:
            raise ConfigurationError(f"radius must be non-negative, got {self.radius}")
        if self.fov >= 180:
            raise ConfigurationError(f"fov must be below 180 degrees, got {self.fov}")
        if self.os not in MOSAIC_VARIANTS:
            raise ConfigurationError(
                f"os must be one of {list(MOSAIC_VARIANTS)}, got {self.os!r}"
            )
        if self.side not in EYE_SIDES:
            raise ConfigurationError(f"side must be one of {list(EYE_SIDES)}, got {self.side!r}")
        if self.seed is not None and not _is_integer(self.seed):
            raise ConfigurationError(f"seed must be an integer or None, got {self.seed!r}")

        if self.bar_width >= self.col:
            raise ConfigurationError(
                f"bar_width ({self.bar_width}) must be smaller than the image "
                f"column count ({self.col}); the bar would have nowhere to move"
            )
        if self.stim_frames is not None:
            if not _is_integer(self.stim_frames) or self.stim_frames < 1:
                raise ConfigurationError(
                    f"stim_frames must be a positive integer or None, got {self.stim_frames!r}"
                )
            max_frames = self.col - self.bar_width
            if self.stim_frames > max_frames:
                raise ConfigurationError(
                    f"stim_frames ({self.stim_frames}) exceeds col - bar_width "
                    f"({max_frames}); the bar would leave the image"
                )
        return self

    def resolved_stim_frames(self, scene_cols: Optional[int] = None) -> int:
        """Return the sweep length, deriving it from the column count if unset."""
        if self.stim_frames is not None:
            return int(self.stim_frames)
        cols = self.col if scene_cols is None else scene_cols
        return int(cols) - int(self.bar_width)

    def total_frames(self, scene_cols: Optional[int] = None) -> int:
        """Total frame count: pre-roll + sweep + post-roll."""
        return self.start_frames + self.resolved_stim_frames(scene_cols) + self.end_frames

    def replace(self, **changes: Any) -> "BarStimulusParams":
        """Return a copy with ``changes`` applied."""
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to plain dict for YAML serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BarStimulusParams":
        """Create from dict (e.g., from YAML).

        An infinite ``stim_frames`` is accepted as the "derive" sentinel.
        """
        kwargs = _known_fields(cls, data)
        stim_frames = kwargs.get("stim_frames")
        if _is_number(stim_frames) and math.isinf(stim_frames):
            kwargs["stim_frames"] = None
        return cls(**kwargs)


@dataclass
class MosaicSpec:
    """One RGC mosaic inside an inner retina.

    Attributes:
        cell_type: RGC class (``on parasol``, ``off parasol``, ``on midget``,
            ``off midget``, ``sbc``).
        model: Computational model name (``LNP``).
        params: Model-specific overrides passed to the model constructor.
    """

    cell_type: str = "off parasol"
    model: str = "LNP"
    params: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to plain dict for YAML serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MosaicSpec":
        """Create from dict (e.g., from YAML)."""
        return cls(**_known_fields(cls, data))


@dataclass
class InnerRetinaConfig:
    """Configuration for building an inner-retina model.

    Attributes:
        name: Instance name.
        eye_side: ``left`` or ``right``.
        eye_radius: Patch eccentricity in mm.
        eye_angle: Patch polar angle in degrees.
        mosaics: RGC mosaics to create.
        number_trials: Spike-generation repeats per stimulus.
        seed: Seed for spike generation.
    """

    name: str = "Macaque inner retina 1"
    eye_side: str = "left"
    eye_radius: float = 4.0
    eye_angle: float = 90.0
    mosaics: List[MosaicSpec] = field(
        default_factory=lambda: [MosaicSpec(cell_type="off parasol")]
    )
    number_trials: int = 1
    seed: Optional[int] = None

    def validate(self) -> "InnerRetinaConfig":
        """Check ranges and names.

        Raises:
            ConfigurationError: On the first invalid field.
        """
        if self.eye_side not in EYE_SIDES:
            raise ConfigurationError(
                f"eye_side must be one of {list(EYE_SIDES)}, got {self.eye_side!r}"
            )
        if not _is_integer(self.number_trials) or self.number_trials < 1:
            raise ConfigurationError(
                f"number_trials must be a positive integer, got {self.number_trials!r}"
            )
        if not self.mosaics:
            raise ConfigurationError("inner retina needs at least one mosaic")
        for spec in self.mosaics:
            if spec.cell_type not in RGC_CELL_TYPES:
                raise ConfigurationError(
                    f"cell_type must be one of {list(RGC_CELL_TYPES)}, got {spec.cell_type!r}"
                )
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Convert to plain dict for YAML serialization."""
        result = asdict(self)
        return {k: v for k, v in result.items() if v is not None}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InnerRetinaConfig":
        """Create from dict (e.g., from YAML)."""
        kwargs = _known_fields(cls, data)
        if "mosaics" in kwargs:
            kwargs["mosaics"] = [
                m if isinstance(m, MosaicSpec) else MosaicSpec.from_dict(m)
                for m in kwargs["mosaics"]
            ]
        return cls(**kwargs)


@dataclass
class ExperimentConfig:
    """Configuration of the stimulus/response experiment driver.

    Attributes:
        inner_retina_path: Inner-retina checkpoint reloaded for every block.
        output_path: Where stimulus/spike pairs are written. With more than
            one block, ``_block{n}`` is appended to the file stem.
        n_blocks: Number of repeated blocks.
        time_step: Outer-segment time step in seconds.
        save_format: ``pytorch`` or ``hdf5``.
    """

    inner_retina_path: Optional[str] = None
    output_path: Optional[str] = None
    n_blocks: int = 1
    time_step: float = 1.0 / 125.0
    save_format: str = "pytorch"

    def validate(self) -> "ExperimentConfig":
        """Check that paths are configured and ranges are sane.

        Raises:
            ConfigurationError: On the first invalid field.
        """
        if not self.inner_retina_path:
            raise ConfigurationError("experiment.inner_retina_path must be set")
        if not self.output_path:
            raise ConfigurationError("experiment.output_path must be set")
        if not _is_integer(self.n_blocks) or self.n_blocks < 1:
            raise ConfigurationError(f"n_blocks must be a positive integer, got {self.n_blocks!r}")
        if not _is_number(self.time_step) or self.time_step <= 0:
            raise ConfigurationError(f"time_step must be positive, got {self.time_step!r}")
        if self.save_format not in SAVE_FORMATS:
            raise ConfigurationError(
                f"save_format must be one of {list(SAVE_FORMATS)}, got {self.save_format!r}"
            )
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Convert to plain dict for YAML serialization."""
        result = asdict(self)
        return {k: v for k, v in result.items() if v is not None}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExperimentConfig":
        """Create from dict (e.g., from YAML)."""
        return cls(**_known_fields(cls, data))


@dataclass
class RetinaForgeConfig:
    """Top-level configuration file.

    Attributes:
        stimulus: Moving-bar stimulus parameters.
        inner_retina: Inner-retina construction settings.
        experiment: Experiment-driver settings.
        metadata: Free-form metadata (name, description, ...).
    """

    stimulus: BarStimulusParams = field(default_factory=BarStimulusParams)
    inner_retina: InnerRetinaConfig = field(default_factory=InnerRetinaConfig)
    experiment: ExperimentConfig = field(default_factory=ExperimentConfig)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to plain dict for YAML serialization."""
        return {
            "metadata": self.metadata,
            "stimulus": self.stimulus.to_dict(),
            "inner_retina": self.inner_retina.to_dict(),
            "experiment": self.experiment.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RetinaForgeConfig":
        """Create from dict (e.g., from YAML)."""
        return cls(
            stimulus=BarStimulusParams.from_dict(data.get("stimulus") or {}),
            inner_retina=InnerRetinaConfig.from_dict(data.get("inner_retina") or {}),
            experiment=ExperimentConfig.from_dict(data.get("experiment") or {}),
            metadata=data.get("metadata") or {},
        )

    def to_yaml(self) -> str:
        """Serialize to YAML string."""
        return yaml.dump(
            self.to_dict(),
            default_flow_style=False,
            allow_unicode=True,
            sort_keys=False,
        )

    @classmethod
    def from_yaml(cls, yaml_str: str) -> "RetinaForgeConfig":
        """Load from YAML string.

        Raises:
            ValueError: If the YAML is not a mapping or has duplicate keys.
        """
        data = load_yaml(yaml_str)
        if not isinstance(data, dict):
            raise ValueError("YAML did not produce a dict")
        return cls.from_dict(data)

    @classmethod
    def from_file(cls, path: str | Path) -> "RetinaForgeConfig":
        """Load from a YAML file on disk."""
        data = load_yaml_file(path)
        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} did not produce a dict")
        return cls.from_dict(data)
