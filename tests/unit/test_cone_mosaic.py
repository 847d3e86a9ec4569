"""Unit tests for rectangular and hexagonal cone mosaics."""

import math

import pytest
import torch

from retinaforge.mosaic import (
    CONE_TYPES,
    ConeMosaic,
    HexConeMosaic,
    create_cone_mosaic,
)
from retinaforge.optics import OpticalImage
from retinaforge.outersegment import BiophysOuterSegment, LinearOuterSegment


def uniform_oi(value=2.0, size=(8, 8)):
    return OpticalImage(torch.full((3, *size), value), hfov=0.6, vfov=0.6, focal_length=0.017)


@pytest.fixture
def l_only_mosaic():
    return ConeMosaic(rows=4, cols=5, spatial_density=(0, 1, 0, 0))


class TestGeometry:
    def test_default_pattern(self):
        mosaic = ConeMosaic()
        assert mosaic.size == (72, 88)
        assert mosaic.pattern.shape == (72, 88)
        assert set(mosaic.pattern.unique().tolist()) <= {1, 2, 3}
        assert CONE_TYPES[0] == "K"

    def test_pattern_deterministic_for_seed(self):
        assert torch.equal(ConeMosaic(seed=3).pattern, ConeMosaic(seed=3).pattern)
        assert not torch.equal(ConeMosaic(seed=3).pattern, ConeMosaic(seed=4).pattern)

    def test_pattern_follows_density(self):
        pattern = ConeMosaic(rows=100, cols=100).pattern
        l_fraction = float((pattern == 1).float().mean())
        assert l_fraction == pytest.approx(0.6, abs=0.03)

    def test_configure_geometry_rect(self):
        mosaic = ConeMosaic()
        mosaic.configure_geometry(
            pigment_size=(2e-6, 2e-6), fov=(0.6, 0.6), scene_distance=math.inf, focal_length=0.017
        )
        assert mosaic.size == (89, 89)
        assert mosaic.pattern.shape == (89, 89)
        assert mosaic.integration_time == mosaic.os.time_step

    def test_finite_scene_distance_enlarges_image(self):
        far = ConeMosaic()
        near = ConeMosaic()
        far.set_size_to_fov((2.0, 2.0))
        near.set_size_to_fov((2.0, 2.0), scene_distance=0.05)
        assert near.cols > far.cols

    def test_invalid_fov(self):
        with pytest.raises(ValueError, match="fov"):
            ConeMosaic().set_size_to_fov((0.0, 0.5))

    def test_cannot_resize_after_append(self, l_only_mosaic):
        l_only_mosaic.accumulate(uniform_oi())
        with pytest.raises(RuntimeError):
            l_only_mosaic.set_size_to_fov((0.6, 0.6))

    @pytest.mark.parametrize("density", [(0.6, 0.3, 0.1), (0, 0, 0, 0), (0, -1, 1, 1)])
    def test_invalid_density(self, density):
        with pytest.raises(ValueError):
            ConeMosaic(spatial_density=density)


class TestAbsorptions:
    def test_uniform_irradiance(self, l_only_mosaic):
        # 2 (irradiance) * 4 µm² * 2000 * 1 ms
        frame = l_only_mosaic.compute_noise_free(uniform_oi(2.0))
        assert frame.shape == (4, 5)
        assert torch.allclose(frame, torch.full((4, 5), 16.0))

    def test_noise_free_does_not_append(self, l_only_mosaic):
        l_only_mosaic.compute_noise_free(uniform_oi())
        assert l_only_mosaic.n_frames == 0

    def test_accumulate_stacks_frames(self, l_only_mosaic):
        for value in (1.0, 2.0, 3.0):
            l_only_mosaic.accumulate(uniform_oi(value))
        absorptions = l_only_mosaic.absorptions
        assert absorptions.shape == (4, 5, 3)
        assert torch.allclose(absorptions[0, 0], torch.tensor([8.0, 16.0, 24.0]))
        assert l_only_mosaic.mean_absorption_rate() == pytest.approx(16000.0)

    def test_cone_class_selects_plane(self):
        mosaic = ConeMosaic(rows=2, cols=2, spatial_density=(0, 0, 0, 1))
        irradiance = torch.stack([torch.full((4, 4), v) for v in (1.0, 2.0, 3.0)])
        oi = OpticalImage(irradiance, hfov=0.6, vfov=0.6, focal_length=0.017)
        assert torch.allclose(mosaic.compute_noise_free(oi), torch.full((2, 2), 24.0))

    def test_eye_movement_shifts_image(self):
        mosaic = ConeMosaic(rows=4, cols=4, spatial_density=(0, 1, 0, 0))
        irradiance = torch.arange(4.0).repeat(3, 4, 1)
        oi = OpticalImage(irradiance, hfov=0.6, vfov=0.6, focal_length=0.017)
        still = mosaic.compute_noise_free(oi)
        mosaic.accumulate(oi, em_path=(0, 1))
        assert torch.allclose(mosaic.absorptions[:, :, 0], torch.roll(still, 1, dims=1))

    def test_poisson_noise_is_seeded(self):
        frames = []
        for _ in range(2):
            mosaic = ConeMosaic(rows=4, cols=4, noise_flag=True, seed=9)
            mosaic.accumulate(uniform_oi(2.0))
            frames.append(mosaic.absorptions)
        assert torch.equal(frames[0], frames[1])
        assert torch.equal(frames[0], frames[0].round())

    def test_mean_rate_needs_frames(self, l_only_mosaic):
        with pytest.raises(RuntimeError):
            l_only_mosaic.mean_absorption_rate()


class TestFinalize:
    def test_linear_photocurrent(self, l_only_mosaic):
        for _ in range(6):
            l_only_mosaic.accumulate(uniform_oi())
        result = l_only_mosaic.finalize()
        assert result.current.shape == (4, 5, 6)
        assert result.mean_current == pytest.approx(-40.0)
        assert result.background_rate is None
        assert l_only_mosaic.is_finalized
        assert l_only_mosaic.photocurrent is result

    def test_finalize_before_append(self, l_only_mosaic):
        with pytest.raises(RuntimeError):
            l_only_mosaic.finalize()

    def test_finalize_twice(self, l_only_mosaic):
        l_only_mosaic.accumulate(uniform_oi())
        l_only_mosaic.finalize()
        with pytest.raises(RuntimeError):
            l_only_mosaic.finalize()

    def test_append_after_finalize(self, l_only_mosaic):
        l_only_mosaic.accumulate(uniform_oi())
        l_only_mosaic.finalize()
        with pytest.raises(RuntimeError):
            l_only_mosaic.accumulate(uniform_oi())

    def test_reset_allows_reuse(self, l_only_mosaic):
        l_only_mosaic.accumulate(uniform_oi())
        l_only_mosaic.finalize()
        l_only_mosaic.reset()
        assert l_only_mosaic.n_frames == 0
        assert not l_only_mosaic.is_finalized

    def test_biophys_needs_background_rate(self):
        mosaic = ConeMosaic(outer_segment=BiophysOuterSegment(), rows=2, cols=2)
        assert mosaic.requires_background_rate
        mosaic.accumulate(uniform_oi())
        with pytest.raises(ValueError, match="background_rate"):
            mosaic.finalize()
        result = mosaic.finalize(background_rate=10 * mosaic.mean_absorption_rate())
        assert result.background_rate == pytest.approx(160000.0)
        assert torch.all(torch.isfinite(result.current))
        assert torch.all(result.current <= 0)


class TestHexConeMosaic:
    def test_configure_geometry_hex(self):
        mosaic = HexConeMosaic()
        mosaic.configure_geometry(
            pigment_size=(2e-6, 2e-6), fov=(0.6, 0.6), scene_distance=math.inf, focal_length=0.017
        )
        assert mosaic.cols == 178
        assert mosaic.rows == 103

    def test_checkerboard_occupancy(self):
        mosaic = HexConeMosaic(rows=6, cols=8)
        assert torch.all(mosaic.pattern[~mosaic.occupied] == 0)
        assert torch.all(mosaic.pattern[mosaic.occupied] > 0)
        assert mosaic.n_cones == 24

    def test_physical_size(self):
        mosaic = HexConeMosaic(rows=10, cols=20, pigment_width=2e-6, pigment_height=2e-6)
        assert mosaic.width == pytest.approx(20e-6)
        assert mosaic.height == pytest.approx(10 * 2e-6 * math.sqrt(3) / 2)

    def test_uniform_irradiance(self):
        mosaic = HexConeMosaic(rows=4, cols=6, spatial_density=(0, 1, 0, 0), resampling_factor=3)
        frame = mosaic.compute_noise_free(uniform_oi(2.0))
        assert torch.allclose(frame[mosaic.occupied], torch.full((12,), 16.0))
        assert torch.all(frame[~mosaic.occupied] == 0)

    def test_invalid_resampling_factor(self):
        with pytest.raises(ValueError, match="resampling_factor"):
            HexConeMosaic(resampling_factor=0)

    def test_to_dict(self):
        data = HexConeMosaic(rows=4, cols=4).to_dict()
        assert data["mosaic_type"] == "hex"
        assert data["resampling_factor"] == 9
        assert data["seed"] == 219347
        assert data["center"] == [0.5e-3, 0.3e-3]

    def test_center_is_metadata_only(self):
        gradient = torch.linspace(1.0, 3.0, 8).expand(3, 8, 8).clone()
        oi = OpticalImage(gradient, hfov=0.6, vfov=0.6, focal_length=0.017)
        here = HexConeMosaic(rows=4, cols=6, center=(0.0, 0.0))
        there = HexConeMosaic(rows=4, cols=6, center=(1e-3, -1e-3))
        assert torch.equal(here.pattern, there.pattern)
        assert torch.equal(here.compute_noise_free(oi), there.compute_noise_free(oi))
        assert there.to_dict()["center"] == [1e-3, -1e-3]


class TestFactory:
    def test_linear_variant(self):
        mosaic = create_cone_mosaic("linear")
        assert type(mosaic) is ConeMosaic
        assert isinstance(mosaic.os, LinearOuterSegment)
        assert mosaic.seed == 0

    def test_biophys_variant(self):
        mosaic = create_cone_mosaic("biophys")
        assert isinstance(mosaic.os, BiophysOuterSegment)
        assert not mosaic.os.noise_flag

    def test_hex_variant(self):
        mosaic = create_cone_mosaic("hex")
        assert isinstance(mosaic, HexConeMosaic)
        assert mosaic.seed == 219347
        assert mosaic.spatial_density == pytest.approx((0.0, 0.62, 0.31, 0.07))

    def test_explicit_seed(self):
        assert create_cone_mosaic("hex", seed=1).seed == 1

    def test_unknown_variant(self):
        with pytest.raises(ValueError, match="Unknown mosaic variant"):
            create_cone_mosaic("rod")
