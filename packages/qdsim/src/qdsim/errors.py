"""Error types raised by qdsim.

Every error is fatal for the invocation that raised it. The classes also
derive from the builtin exception the condition would naturally raise, so
callers catching ``ValueError`` / ``LookupError`` keep working.
"""

from __future__ import annotations

__all__ = [
    "QDSimError",
    "ConfigurationError",
    "UnsupportedCalculation",
    "UnsupportedMethod",
    "NotFoundError",
    "DimensionMismatch",
    "LengthMismatch",
    "InsufficientTransferTensors",
]


class QDSimError(Exception):
    """Base class for all qdsim errors."""


class ConfigurationError(QDSimError, ValueError):
    """Missing or invalid field in a system or simulation config."""


class UnsupportedCalculation(ConfigurationError):
    """Calculation kind is not one of the registered kinds."""


class UnsupportedMethod(ConfigurationError):
    """Method is not registered for the requested calculation kind."""


class NotFoundError(QDSimError, LookupError):
    """Output file, store group or dataset is absent."""


class DimensionMismatch(QDSimError, ValueError):
    """Operator shape does not match the Hamiltonian dimension."""


class LengthMismatch(QDSimError, ValueError):
    """Two paired config lists differ in length."""


class InsufficientTransferTensors(QDSimError, ValueError):
    """Transfer-tensor cache entry is empty or shorter than requested."""
