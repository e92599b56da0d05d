"""Utility modules for the background engine."""

from .config import BackgroundConfig, CosmologicalParameters, NumericalSettings
from .numerics import (
    BackgroundError,
    DomainError,
    OutOfRangeError,
    NumericalDivergenceError,
    NonMonotoneInverseError,
    NonFiniteResultError,
    check_divergence,
    scoped_quad,
)

__all__ = [
    "BackgroundConfig",
    "CosmologicalParameters",
    "NumericalSettings",
    "BackgroundError",
    "DomainError",
    "OutOfRangeError",
    "NumericalDivergenceError",
    "NonMonotoneInverseError",
    "NonFiniteResultError",
    "check_divergence",
    "scoped_quad",
]
