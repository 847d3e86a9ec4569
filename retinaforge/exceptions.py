"""Exception types raised by RetinaForge."""

from __future__ import annotations


class ConfigurationError(ValueError):
    """Raised when stimulus or experiment parameters are invalid.

    Subclasses ``ValueError`` so callers that already guard parameter
    parsing with ``except ValueError`` keep working.
    """


class StimulusGenerationError(RuntimeError):
    """Raised when a collaborator fails while a stimulus is being generated.

    The originating exception is always chained as ``__cause__``. No partial
    result is retained: the receptor accumulator of the failed run is
    discarded along with the rest of the invocation state.
    """
