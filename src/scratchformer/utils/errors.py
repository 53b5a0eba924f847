"""
Error taxonomy for scratchformer.

Every failure raised by the engine derives from ScratchformerError and also
from the closest builtin exception, so callers can catch either. The only
non-fatal condition, NumericInstability, is a warning category: it is logged
and emitted through the warnings module while execution continues.

Author: Oliver Perrin
Date: December 2025
"""

from __future__ import annotations

import warnings

from .logging import get_logger

logger = get_logger(__name__)


class ScratchformerError(Exception):
    """Base class for all scratchformer errors."""


class DimensionMismatch(ScratchformerError, ValueError):
    """Operand shapes are incompatible for the requested operation."""

    def __init__(self, operation: str, expected: object, actual: object) -> None:
        self.operation = operation
        self.expected = expected
        self.actual = actual
        super().__init__(f"{operation}: expected shape {expected}, got {actual}")


class InvalidIndex(ScratchformerError, IndexError):
    """A token id or class label lies outside its valid range."""


class ConfigurationError(ScratchformerError, ValueError):
    """Invalid architecture or optimizer configuration."""


class SerializationError(ScratchformerError, OSError):
    """A checkpoint could not be written or read back."""


class NumericInstability(RuntimeWarning):
    """Non-finite values were sanitised or a probability was clamped."""


def report_instability(operation: str, detail: str) -> None:
    """Log and warn about a recoverable numeric problem."""

    message = f"{operation}: {detail}"
    logger.warning(message)
    warnings.warn(message, NumericInstability, stacklevel=3)

