"""Frame timeline of a moving-bar stimulus.

Frames are numbered ``1..N`` and belong to one of three phases: a uniform
gray pre-roll, the bar sweep, and a uniform gray post-roll. During the
sweep the bar slides one column per frame; frame ``t`` covers the
1-based inclusive column span

    start = t - start_frames + 1
    end   = start + bar_width - 1

Example:
    >>> timeline = FrameTimeline(start_frames=60, stim_frames=86, end_frames=30, bar_width=10)
    >>> len(timeline)
    176
    >>> timeline.bar_span(61)
    BarSpan(start=2, end=11)
    >>> timeline.bar_span(146)
    BarSpan(start=87, end=96)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Optional, Tuple

from retinaforge.config.schema import BarStimulusParams
from retinaforge.exceptions import ConfigurationError


class FramePhase(Enum):
    PRE = "pre"
    SWEEP = "sweep"
    POST = "post"


@dataclass(frozen=True)
class BarSpan:
    """Inclusive 1-based column span covered by the bar."""

    start: int
    end: int

    @property
    def width(self) -> int:
        return self.end - self.start + 1

    def to_slice(self) -> slice:
        """0-based Python slice over the same columns."""
        return slice(self.start - 1, self.end)


@dataclass(frozen=True)
class FrameTimeline:
    """Phase and bar position of every frame.

    Attributes:
        start_frames: Pre-roll length.
        stim_frames: Sweep length.
        end_frames: Post-roll length.
        bar_width: Bar width in columns.
    """

    start_frames: int
    stim_frames: int
    end_frames: int
    bar_width: int

    def __post_init__(self) -> None:
        if self.stim_frames < 1:
            raise ConfigurationError(
                f"stim_frames must be at least 1, got {self.stim_frames}; "
                f"bar_width is too large for the image"
            )
        if self.bar_width < 1:
            raise ConfigurationError(f"bar_width must be at least 1, got {self.bar_width}")
        if self.start_frames < 0 or self.end_frames < 0:
            raise ConfigurationError("start_frames and end_frames must be non-negative")

    @classmethod
    def from_params(
        cls,
        params: BarStimulusParams,
        scene_cols: Optional[int] = None,
    ) -> "FrameTimeline":
        """Build the timeline, deriving the sweep length from ``scene_cols`` if unset."""
        return cls(
            start_frames=params.start_frames,
            stim_frames=params.resolved_stim_frames(scene_cols),
            end_frames=params.end_frames,
            bar_width=params.bar_width,
        )

    @property
    def n_frames(self) -> int:
        return self.start_frames + self.stim_frames + self.end_frames

    def __len__(self) -> int:
        return self.n_frames

    @property
    def first_sweep_frame(self) -> int:
        return self.start_frames + 1

    @property
    def last_sweep_frame(self) -> int:
        return self.start_frames + self.stim_frames

    @property
    def sweep_frames(self) -> range:
        return range(self.first_sweep_frame, self.last_sweep_frame + 1)

    def phase(self, t: int) -> FramePhase:
        """Phase of frame ``t`` (1-based).

        Raises:
            IndexError: If ``t`` is outside ``1..n_frames``.
        """
        if not 1 <= t <= self.n_frames:
            raise IndexError(f"frame {t} outside 1..{self.n_frames}")
        if t <= self.start_frames:
            return FramePhase.PRE
        if t <= self.last_sweep_frame:
            return FramePhase.SWEEP
        return FramePhase.POST

    def is_sweep(self, t: int) -> bool:
        return self.phase(t) is FramePhase.SWEEP

    def bar_span(self, t: int) -> BarSpan:
        """Columns covered by the bar at sweep frame ``t``.

        Raises:
            ValueError: If ``t`` is not a sweep frame.
        """
        if not self.is_sweep(t):
            raise ValueError(f"frame {t} is not a sweep frame ({self.phase(t).value})")
        start = t - self.start_frames + 1
        return BarSpan(start=start, end=start + self.bar_width - 1)

    def __iter__(self) -> Iterator[Tuple[int, FramePhase]]:
        for t in range(1, self.n_frames + 1):
            yield t, self.phase(t)
