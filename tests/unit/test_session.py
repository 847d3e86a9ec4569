"""Unit tests for session settings and scoped overrides."""

import pytest

from retinaforge.session import session_get, session_override, session_reset, session_set


class TestSessionSettings:
    def test_default_wait_bar(self):
        assert session_get("wait_bar") is True

    def test_set_and_reset(self):
        session_set("wait_bar", False)
        assert session_get("wait_bar") is False
        session_reset()
        assert session_get("wait_bar") is True

    def test_unknown_key(self):
        with pytest.raises(KeyError, match="wait_bar"):
            session_get("colour_scheme")
        with pytest.raises(KeyError):
            session_set("colour_scheme", "dark")


class TestSessionOverride:
    """session_override must restore settings on every exit path."""

    def test_override_inside_block(self):
        with session_override(wait_bar=False) as previous:
            assert session_get("wait_bar") is False
            assert previous == {"wait_bar": True}
        assert session_get("wait_bar") is True

    def test_restored_after_exception(self):
        session_set("wait_bar", "custom")
        with pytest.raises(RuntimeError):
            with session_override(wait_bar=False):
                raise RuntimeError("boom")
        assert session_get("wait_bar") == "custom"

    def test_nested_overrides(self):
        with session_override(wait_bar=False):
            with session_override(wait_bar="inner"):
                assert session_get("wait_bar") == "inner"
            assert session_get("wait_bar") is False
        assert session_get("wait_bar") is True

    def test_unknown_key_leaves_state_untouched(self):
        with pytest.raises(KeyError):
            with session_override(nonexistent=1):
                pass
        assert session_get("wait_bar") is True
