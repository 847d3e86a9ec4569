"""Process-wide session settings.

A handful of toggles (currently only the progress/wait bar) are shared by
every computation in the process. Long-running routines that need a
different value for the duration of one call use :func:`session_override`,
which always restores the previous values, including when the wrapped
block raises.

Example:
    >>> from retinaforge.session import session_get, session_override
    >>> with session_override(wait_bar=False):
    ...     session_get("wait_bar")
    False
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterator

_DEFAULTS: Dict[str, Any] = {
    "wait_bar": True,
}

_SESSION: Dict[str, Any] = dict(_DEFAULTS)


def session_get(key: str) -> Any:
    """Return the current value of a session setting.

    Raises:
        KeyError: If ``key`` is not a known setting.
    """
    if key not in _SESSION:
        raise KeyError(
            f"Unknown session setting '{key}'. Available: {', '.join(sorted(_SESSION))}"
        )
    return _SESSION[key]


def session_set(key: str, value: Any) -> None:
    """Set a session setting.

    Raises:
        KeyError: If ``key`` is not a known setting.
    """
    if key not in _SESSION:
        raise KeyError(
            f"Unknown session setting '{key}'. Available: {', '.join(sorted(_SESSION))}"
        )
    _SESSION[key] = value


def session_reset() -> None:
    """Restore every setting to its default."""
    _SESSION.clear()
    _SESSION.update(_DEFAULTS)


@contextmanager
def session_override(**settings: Any) -> Iterator[Dict[str, Any]]:
    """Temporarily override session settings.

    Args:
        **settings: Setting names mapped to the values to use inside the
            ``with`` block.

    Yields:
        The previous values of the overridden settings.
    """
    previous = {key: session_get(key) for key in settings}
    try:
        for key, value in settings.items():
            session_set(key, value)
        yield dict(previous)
    finally:
        for key, value in previous.items():
            _SESSION[key] = value
