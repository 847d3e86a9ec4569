"""Stimulus generation.

Classes:
    FrameTimeline: Pre-roll / sweep / post-roll frame sequence
    MovingBarStimulus: Moving-bar sequencer
    BarStimulusResult: Result bundle of a moving-bar run
    Toolbox: Collaborators used by the sequencer
"""

from retinaforge.stimuli.timeline import BarSpan, FramePhase, FrameTimeline
from retinaforge.stimuli.bar import (
    BarStimulusResult,
    MovingBarStimulus,
    Toolbox,
    bar_frame,
    moving_bar_stimulus,
)

__all__ = [
    "BarSpan",
    "BarStimulusResult",
    "FramePhase",
    "FrameTimeline",
    "MovingBarStimulus",
    "Toolbox",
    "bar_frame",
    "moving_bar_stimulus",
]
