"""Unit tests for component registry system."""

import warnings

import pytest

from retinaforge.registry import (
    ComponentRegistry,
    MOSAIC_REGISTRY,
    OUTER_SEGMENT_REGISTRY,
    RGC_MODEL_REGISTRY,
)
from retinaforge.register_components import register_all
from retinaforge.mosaic import ConeMosaic, HexConeMosaic
from retinaforge.outersegment import BiophysOuterSegment, IdentityOuterSegment, LinearOuterSegment
from retinaforge.innerretina import RGCMosaicLNP


class TestComponentRegistry:
    """Test ComponentRegistry functionality."""

    def test_register_and_get_class(self):
        """Test registering and retrieving a class."""
        registry = ComponentRegistry("test")

        class TestComponent:
            pass

        registry.register("test_component", TestComponent)
        assert registry.is_registered("test_component")
        assert registry.get_class("test_component") == TestComponent

    def test_unregistered_component(self):
        """Unregistered names raise KeyError listing what is available."""
        registry = ComponentRegistry("test")
        registry.register("known", object)

        with pytest.raises(KeyError, match="known"):
            registry.get_class("nonexistent")
        with pytest.raises(KeyError):
            registry.create("nonexistent")

    def test_list_registered_sorted(self):
        registry = ComponentRegistry("test")

        class Component1:
            pass

        class Component2:
            pass

        registry.register("zeta", Component1)
        registry.register("alpha", Component2)

        assert registry.list_registered() == ["alpha", "zeta"]

    def test_factory_function(self):
        """Test using factory function for creation."""
        registry = ComponentRegistry("test")

        class TestComponent:
            def __init__(self, value):
                self.value = value

        def factory(**kwargs):
            return TestComponent(kwargs.get("value", 0))

        registry.register("test", TestComponent, factory)

        instance = registry.create("test", value=42)
        assert instance.value == 42
        assert registry.get_class("test") == TestComponent

    def test_create_from_config(self):
        """A lone ``config`` kwarg goes through ``from_config``."""
        registry = ComponentRegistry("test")
        registry.register("linear", LinearOuterSegment)

        os_model = registry.create("linear", config={"time_step": 2e-3})
        assert isinstance(os_model, LinearOuterSegment)
        assert os_model.time_step == 2e-3

    def test_reregister_same_class_is_silent(self):
        registry = ComponentRegistry("test")
        registry.register("a", LinearOuterSegment)
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            registry.register("a", LinearOuterSegment)

    def test_overwrite_warns(self):
        registry = ComponentRegistry("test")
        registry.register("a", LinearOuterSegment)
        with pytest.warns(UserWarning, match="overwriting"):
            registry.register("a", BiophysOuterSegment)
        assert registry.get_class("a") is BiophysOuterSegment


class TestMosaicRegistry:
    """Test MOSAIC_REGISTRY."""

    def test_registered_variants(self):
        register_all()

        assert MOSAIC_REGISTRY.list_registered() == ["biophys", "hex", "linear"]
        assert MOSAIC_REGISTRY.get_class("hex") is HexConeMosaic
        assert MOSAIC_REGISTRY.get_class("linear") is ConeMosaic

    def test_create_biophys_variant(self):
        register_all()

        mosaic = MOSAIC_REGISTRY.create("biophys", seed=None)
        assert isinstance(mosaic.os, BiophysOuterSegment)
        assert mosaic.os.noise_flag is False


class TestOuterSegmentRegistry:
    """Test OUTER_SEGMENT_REGISTRY."""

    def test_registered_outer_segments(self):
        register_all()

        assert OUTER_SEGMENT_REGISTRY.is_registered("linear")
        assert OUTER_SEGMENT_REGISTRY.is_registered("biophys")
        assert OUTER_SEGMENT_REGISTRY.get_class("displayrgb") is IdentityOuterSegment


class TestRGCModelRegistry:
    """Test RGC_MODEL_REGISTRY."""

    def test_lnp_registered(self):
        register_all()

        assert RGC_MODEL_REGISTRY.get_class("LNP") is RGCMosaicLNP
        mosaic = RGC_MODEL_REGISTRY.create("LNP", cell_type="on midget")
        assert mosaic.cell_type == "on midget"
