"""Exception types raised for invalid inputs and configuration.

Insufficient or noisy data is never an error: it is reported through
quality checks, ``None`` results and the formula fallback. These
exceptions are reserved for values that cannot be interpreted at all.
"""

from __future__ import annotations


class MetabolicError(Exception):
    """Base class for engine errors."""


class InvalidInputError(MetabolicError, ValueError):
    """An input value is outside its allowed domain."""


class ConfigError(MetabolicError, ValueError):
    """Settings are inconsistent or out of range."""
