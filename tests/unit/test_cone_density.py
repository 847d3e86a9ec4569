"""Unit tests for the cone density model."""

import math

import numpy as np
import pytest

from retinaforge.mosaic.density import (
    cone_aperture_size,
    cone_density,
    eccentricity_to_mm,
)


class TestConeDensity:
    def test_foveal_peak(self):
        assert cone_density(0.0, 0.0, "left") == pytest.approx(199000)

    def test_scalar_returns_float(self):
        assert isinstance(cone_density(1.0), float)

    def test_decreases_with_eccentricity(self):
        ecc = np.linspace(0, 10, 21)
        density = cone_density(ecc, 90.0, "left")
        assert density.shape == ecc.shape
        assert np.all(np.diff(density) < 0)

    def test_clamped_beyond_table(self):
        assert cone_density(30.0) == pytest.approx(cone_density(18.0))

    def test_tabulated_meridian(self):
        assert cone_density(1.0, 90.0, "left") == pytest.approx(10500)

    def test_eyes_mirror_horizontal_meridians(self):
        assert cone_density(2.0, 0.0, "left") == pytest.approx(cone_density(2.0, 180.0, "right"))
        assert cone_density(2.0, 90.0, "left") == pytest.approx(cone_density(2.0, 90.0, "right"))

    def test_angle_wraps(self):
        assert cone_density(1.5, 405.0) == pytest.approx(cone_density(1.5, 45.0))

    def test_intermediate_angle_between_meridians(self):
        lower = cone_density(3.0, 0.0)
        upper = cone_density(3.0, 90.0)
        middle = cone_density(3.0, 45.0)
        assert min(lower, upper) < middle < max(lower, upper)

    def test_unknown_side(self):
        with pytest.raises(ValueError, match="side"):
            cone_density(1.0, 0.0, "both")

    def test_negative_eccentricity(self):
        with pytest.raises(ValueError):
            cone_density(-0.1)


class TestGeometryHelpers:
    def test_eccentricity_to_mm(self):
        assert eccentricity_to_mm(10.0, 0.017) == pytest.approx(2.9746, abs=1e-4)
        assert eccentricity_to_mm(0.0, 0.017) == 0.0

    def test_aperture_at_fovea(self):
        assert cone_aperture_size(199000) == pytest.approx(2.2417e-6, rel=1e-3)

    def test_aperture_grows_with_sparser_packing(self):
        assert cone_aperture_size(5000) > cone_aperture_size(50000)
        assert cone_aperture_size(1e6) == pytest.approx(1e-6)

    def test_aperture_rejects_non_positive(self):
        with pytest.raises(ValueError):
            cone_aperture_size(0)
        with pytest.raises(ValueError):
            cone_aperture_size(-math.inf)
