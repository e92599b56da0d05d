"""Numerical utilities and error types for background computations."""

from dataclasses import dataclass
import logging
from typing import Callable, Optional, Tuple
import numpy as np
from numpy.typing import NDArray
from scipy.integrate import quad


logger = logging.getLogger(__name__)


class BackgroundError(Exception):
    """Base class for failures while building or querying a background."""


class DomainError(BackgroundError, ValueError):
    """Raised when a sample table cannot define an interpolant."""


class OutOfRangeError(BackgroundError, ValueError):
    """Raised when a query lies outside the domain an interpolant was built on.

    No extrapolation is ever attempted.
    """

    def __init__(
        self,
        x: float,
        domain: Tuple[float, float],
        name: Optional[str] = None,
        message: Optional[str] = None,
    ):
        self.x = x
        self.domain = domain
        self.name = name

        if message is None:
            label = f" of {name}" if name else ""
            message = (
                f"x={x!r} lies outside the domain{label} "
                f"[{domain[0]:.6g}, {domain[1]:.6g}]"
            )

        super().__init__(message)


class NumericalDivergenceError(BackgroundError):
    """Raised when the growth ODE stepper cannot meet its tolerance."""

    def __init__(self, z: float, message: Optional[str] = None):
        self.z = z
        if message is None:
            message = f"growth integration diverged at z={z:.6g}"
        super().__init__(message)


class NonMonotoneInverseError(BackgroundError):
    """Raised when comoving distance is not strictly increasing in z.

    This means the inverse z(χ) does not exist, which signals degenerate
    parameters.
    """

    def __init__(self, index: int, message: Optional[str] = None):
        self.index = index
        if message is None:
            message = (
                f"comoving distance is not strictly increasing "
                f"(first violation at bin {index})"
            )
        super().__init__(message)


class NonFiniteResultError(BackgroundError):
    """Raised when a computed background quantity is NaN or infinite."""

    def __init__(self, quantity: str, z: float, value: float):
        self.quantity = quantity
        self.z = z
        self.value = value
        super().__init__(
            f"{quantity} is non-finite ({value}) at z={z:.6g}; "
            f"check the density parameters"
        )


@dataclass
class DivergenceResult:
    """Result of divergence check."""

    has_divergence: bool
    divergence_indices: Optional[NDArray[np.intp]] = None
    divergence_values: Optional[NDArray[np.floating]] = None
    message: str = ""


def check_divergence(
    values: NDArray[np.floating],
    threshold: float = np.inf,
) -> DivergenceResult:
    """Check array for NaN, Inf, or values beyond a magnitude threshold.

    Args:
        values: Array to check
        threshold: Value magnitude threshold for divergence (inf disables it)

    Returns:
        DivergenceResult with divergence information
    """
    values = np.asarray(values, dtype=float)
    divergent = ~np.isfinite(values)
    if np.isfinite(threshold):
        with np.errstate(invalid="ignore"):
            divergent |= np.abs(values) > threshold

    if np.any(divergent):
        indices = np.where(divergent)[0]
        return DivergenceResult(
            has_divergence=True,
            divergence_indices=indices,
            divergence_values=values[divergent],
            message=f"Divergence detected at {len(indices)} points; "
            f"first at index {indices[0]}, value = {values[indices[0]]:.3e}",
        )

    return DivergenceResult(has_divergence=False, message="No divergence detected")


def first_non_increasing(values: NDArray[np.floating]) -> Optional[int]:
    """Index of the first element not strictly greater than its predecessor.

    Returns None when the array is strictly increasing.
    """
    steps = np.diff(np.asarray(values, dtype=float))
    bad = np.where(~(steps > 0))[0]
    if bad.size:
        return int(bad[0]) + 1
    return None


def scoped_quad(
    func: Callable[[float], float],
    lower: float,
    upper: float,
    epsabs: float = 0.0,
    epsrel: float = 1e-5,
    limit: int = 1000,
) -> float:
    """Adaptive Gauss-Kronrod integral with call-local error handling.

    QUADPACK status messages are returned by ``quad`` itself
    (``full_output=1``) instead of being raised as ``IntegrationWarning``,
    so nothing touches the process-wide warnings filters. A tolerance
    shortfall is accepted and only logged.

    Args:
        func: Integrand
        lower: Lower limit
        upper: Upper limit
        epsabs: Absolute tolerance
        epsrel: Relative tolerance
        limit: Maximum number of subintervals

    Returns:
        Best estimate of the integral
    """
    out = quad(
        func, lower, upper,
        epsabs=epsabs, epsrel=epsrel, limit=limit, full_output=1,
    )
    result, abserr = out[0], out[1]
    if len(out) > 3:
        # TODO: decide whether abserr above tolerance should be surfaced
        # to callers once a reference precision study exists.
        logger.debug(
            f"quad on [{lower:g}, {upper:g}] returned {result:g} +- {abserr:g}: {out[3]}"
        )
    return result
