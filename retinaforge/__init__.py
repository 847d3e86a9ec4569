"""RetinaForge: moving-bar stimuli through a simulated primate retina.

RetinaForge is a PyTorch-based toolkit that renders visual stimuli on a
calibrated display, images them through the eye's optics onto a cone
mosaic, converts cone absorptions to photocurrent, and drives
linear-nonlinear-Poisson ganglion-cell mosaics.

Key Components:
    - stimuli: Moving-bar sequencer and frame timeline
    - display / scene / optics: Display calibration, scenes, optical images
    - mosaic: Cone density, rectangular and hexagonal cone mosaics
    - outersegment: Linear, biophysical and pass-through outer segments
    - innerretina: LNP RGC mosaics and the inner-retina container
    - experiments: Stimulus/response experiment driver
    - cli: Command-line interface

Example:
    >>> from retinaforge import moving_bar_stimulus
    >>> result = moving_bar_stimulus(bar_width=10, os="biophys")
    >>> result.photocurrent.current.shape[-1] == result.n_frames
    True
"""

__version__ = "0.1.0"
__author__ = "RetinaForge Contributors"
__license__ = "MIT"

from retinaforge import register_components  # noqa: F401
from retinaforge.config.schema import (
    BarStimulusParams,
    ExperimentConfig,
    InnerRetinaConfig,
    RetinaForgeConfig,
)
from retinaforge.exceptions import ConfigurationError, StimulusGenerationError
from retinaforge.mosaic import ConeMosaic, HexConeMosaic, create_cone_mosaic
from retinaforge.innerretina import InnerRetina, RGCMosaicLNP
from retinaforge.stimuli import (
    BarStimulusResult,
    FrameTimeline,
    MovingBarStimulus,
    moving_bar_stimulus,
)
from retinaforge.experiments import BarResponseExperiment

__all__ = [
    "__version__",
    "__author__",
    "__license__",
    "BarStimulusParams",
    "ExperimentConfig",
    "InnerRetinaConfig",
    "RetinaForgeConfig",
    "ConfigurationError",
    "StimulusGenerationError",
    "ConeMosaic",
    "HexConeMosaic",
    "create_cone_mosaic",
    "InnerRetina",
    "RGCMosaicLNP",
    "BarStimulusResult",
    "FrameTimeline",
    "MovingBarStimulus",
    "moving_bar_stimulus",
    "BarResponseExperiment",
]
