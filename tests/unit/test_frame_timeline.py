"""Unit tests for the moving-bar frame timeline.

Tests cover:
- Frame counts and phases
- Bar span arithmetic (one column per frame, constant width)
- Degenerate (no sweep) parameters
- bar_frame rendering
"""

import pytest
import torch

from retinaforge.config.schema import BarStimulusParams
from retinaforge.exceptions import ConfigurationError
from retinaforge.stimuli.bar import bar_frame
from retinaforge.stimuli.timeline import BarSpan, FramePhase, FrameTimeline


@pytest.fixture
def example_timeline():
    """60 pre-roll + 86 sweep + 30 post-roll, bar 10 wide on 96 columns."""
    return FrameTimeline(start_frames=60, stim_frames=86, end_frames=30, bar_width=10)


class TestFrameTimeline:
    def test_total_frames(self, example_timeline):
        assert len(example_timeline) == 176
        assert example_timeline.n_frames == 176

    def test_phases(self, example_timeline):
        phases = [phase for _, phase in example_timeline]
        assert phases[:60] == [FramePhase.PRE] * 60
        assert phases[60:146] == [FramePhase.SWEEP] * 86
        assert phases[146:] == [FramePhase.POST] * 30

    def test_first_and_last_sweep_span(self, example_timeline):
        assert example_timeline.first_sweep_frame == 61
        assert example_timeline.last_sweep_frame == 146
        assert example_timeline.bar_span(61) == BarSpan(start=2, end=11)
        assert example_timeline.bar_span(146) == BarSpan(start=87, end=96)

    def test_sweep_is_linear_with_constant_width(self, example_timeline):
        spans = [example_timeline.bar_span(t) for t in example_timeline.sweep_frames]
        assert all(span.width == 10 for span in spans)
        starts = [span.start for span in spans]
        assert all(b - a == 1 for a, b in zip(starts, starts[1:]))

    def test_bar_span_outside_sweep(self, example_timeline):
        with pytest.raises(ValueError, match="not a sweep frame"):
            example_timeline.bar_span(60)
        with pytest.raises(ValueError):
            example_timeline.bar_span(147)

    def test_frame_out_of_range(self, example_timeline):
        with pytest.raises(IndexError):
            example_timeline.phase(0)
        with pytest.raises(IndexError):
            example_timeline.phase(177)

    def test_from_params_derives_sweep(self):
        timeline = FrameTimeline.from_params(BarStimulusParams(bar_width=10))
        assert timeline == FrameTimeline(60, 86, 30, 10)

    def test_no_pre_or_post_roll(self):
        timeline = FrameTimeline(start_frames=0, stim_frames=3, end_frames=0, bar_width=2)
        assert [t for t, _ in timeline] == [1, 2, 3]
        assert timeline.bar_span(1) == BarSpan(start=2, end=3)

    def test_degenerate_sweep_raises(self):
        params = BarStimulusParams(bar_width=96)
        with pytest.raises(ConfigurationError):
            FrameTimeline.from_params(params)

    def test_span_slice(self):
        span = BarSpan(start=2, end=11)
        assert list(range(96))[span.to_slice()] == list(range(1, 11))


class TestBarFrame:
    def test_gray_background_and_bar(self):
        frame = bar_frame(4, 8, BarSpan(start=3, end=5))
        assert frame.shape == (4, 8, 3)
        assert torch.all(frame[:, 2:5, :] == 1.0)
        assert torch.all(frame[:, :2, :] == 0.5)
        assert torch.all(frame[:, 5:, :] == 0.5)

    def test_span_outside_frame(self):
        with pytest.raises(ValueError):
            bar_frame(4, 8, BarSpan(start=6, end=9))
