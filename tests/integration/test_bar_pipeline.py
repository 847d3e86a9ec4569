"""Integration tests for the moving-bar pipeline with the built-in models.

These run the full chain (display → scene → optics → cone mosaic →
outer segment) on a small image.
"""

import math

import pytest
import torch

from retinaforge.mosaic import ConeMosaic, HexConeMosaic
from retinaforge.mosaic.density import cone_aperture_size, cone_density
from retinaforge.outersegment import BiophysOuterSegment
from retinaforge.stimuli import moving_bar_stimulus


class TestLinearPipeline:
    """Default variant: rectangular mosaic with a linear outer segment."""

    @pytest.fixture
    def result(self, small_params):
        return moving_bar_stimulus(small_params)

    def test_shapes(self, result):
        assert result.n_frames == 17
        assert result.scene_rgb.shape == (16, 16, 17, 3)
        rows, cols = result.cone_mosaic.size
        assert result.absorptions.shape == (rows, cols, 17)
        assert result.photocurrent.current.shape == (rows, cols, 17)

    def test_mosaic_covers_field_of_view(self, result):
        cone = cone_aperture_size(cone_density(0.0, 0.0, "left"))
        # scene at the display's 0.5 m viewing distance
        image_distance = 1.0 / (1.0 / 0.017 - 1.0 / 0.5)
        expected = 2 * image_distance * math.tan(math.radians(0.1)) / cone
        assert result.cone_mosaic.cols == round(expected)
        assert result.metadata["cone_size"] == pytest.approx(cone)

    def test_movie_content(self, result):
        movie = result.scene_rgb
        assert torch.all(movie[:, :, :3] == 0)
        assert torch.all(movie[:, :, 15:] == 0)
        for index in range(3, 15):
            start = index - 2  # 0-based first lit column
            frame = movie[:, :, index, 0]
            assert torch.all(frame[:, start:start + 4] == 1.0)
            assert float(frame.sum()) == pytest.approx(16 * (4 * 1.0 + 12 * 0.5))

    def test_gray_frames_share_absorptions(self, result):
        absorptions = result.absorptions
        assert torch.equal(absorptions[:, :, 0], absorptions[:, :, 2])
        assert torch.equal(absorptions[:, :, 0], absorptions[:, :, 16])
        assert not torch.equal(absorptions[:, :, 0], absorptions[:, :, 8])

    def test_baseline_matches_first_sweep_frame(self, result):
        assert torch.allclose(result.baseline_absorptions, result.absorptions[:, :, 3])

    def test_bar_raises_absorptions_under_lit_columns(self, result):
        # every frame is rescaled to the same mean luminance, so the bar only
        # shifts absorptions locally: up under it, down beside it
        absorptions = result.absorptions
        gray = absorptions[:, :, 0]
        sweep = absorptions[:, :, 8]  # scene columns 7..10 lit, the centre of the image
        cols = result.cone_mosaic.cols
        lit = cols // 2
        unlit = cols // 8
        assert torch.all(gray[:, lit] > 0)
        assert (sweep[:, lit] / gray[:, lit]).mean() > 1.0
        assert (sweep[:, unlit] / gray[:, unlit]).mean() < 1.0
        assert sweep[:, lit].mean() > sweep[:, unlit].mean()

    def test_finalized_once(self, result):
        assert result.cone_mosaic.is_finalized
        assert result.photocurrent.background_rate is None
        assert torch.all(torch.isfinite(result.photocurrent.current))

    def test_deterministic(self, result, small_params):
        again = moving_bar_stimulus(result.params)
        assert torch.equal(result.scene_rgb, again.scene_rgb)
        assert torch.equal(result.absorptions, again.absorptions)
        assert torch.equal(result.photocurrent.current, again.photocurrent.current)

    def test_summary(self, result):
        summary = result.to_dict()
        assert summary["n_frames"] == 17
        assert summary["sweep_frames"] == [4, 15]
        assert summary["display"] == "LCD-Apple"
        assert summary["cone_mosaic"]["mosaic_type"] == "rect"

    def test_save(self, result, tmp_path):
        path = result.save(tmp_path / "bar.pt")
        data = torch.load(path, weights_only=True)
        assert torch.equal(data["scene_rgb"], result.scene_rgb)
        assert data["summary"]["params"]["bar_width"] == 4


class TestVariants:
    def test_biophys(self, small_params):
        result = moving_bar_stimulus(small_params, os="biophys")
        assert isinstance(result.cone_mosaic.os, BiophysOuterSegment)
        mean_rate = result.cone_mosaic.mean_absorption_rate()
        assert result.photocurrent.background_rate == pytest.approx(10 * mean_rate)
        assert torch.all(result.photocurrent.current <= 0)

    def test_hex(self, small_params):
        result = moving_bar_stimulus(small_params, os="hex")
        mosaic = result.cone_mosaic
        assert isinstance(mosaic, HexConeMosaic)
        assert mosaic.seed == 219347
        assert torch.all(result.absorptions[~mosaic.occupied] == 0)
        assert result.to_dict()["cone_mosaic"]["mosaic_type"] == "hex"

    def test_seed_changes_pattern_only(self, small_params):
        first = moving_bar_stimulus(small_params, seed=1)
        second = moving_bar_stimulus(small_params, seed=2)
        assert isinstance(first.cone_mosaic, ConeMosaic)
        assert torch.equal(first.scene_rgb, second.scene_rgb)
        assert not torch.equal(first.cone_mosaic.pattern, second.cone_mosaic.pattern)

    def test_periphery_has_coarser_mosaic(self, small_params):
        fovea = moving_bar_stimulus(small_params)
        periphery = moving_bar_stimulus(small_params, radius=20.0)
        assert periphery.cone_mosaic.cols < fovea.cone_mosaic.cols
