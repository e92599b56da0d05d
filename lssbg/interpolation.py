"""Interpolants over fixed sample tables.

Each interpolant is stored as a piecewise polynomial in the local power
basis, the same layout ``scipy.interpolate.PPoly`` uses:

    y(x) = Σ_m c[m, i] (x - x_i)^(k - m)    for x_i <= x <= x_{i+1}

Scalar queries go through a pure-Python path that remembers the interval
of the previous lookup, so sweeps over nearby points (quadrature nodes, ODE
stages) cost O(1) per call. Array queries use ``np.searchsorted``.
"""

from bisect import bisect_right
from typing import Optional, Tuple, Union
import numpy as np
from numpy.typing import NDArray
from scipy.interpolate import CubicSpline, PchipInterpolator

from .utils.constants import INTERP_METHODS
from .utils.numerics import DomainError, OutOfRangeError


ArrayLike = Union[float, NDArray[np.floating]]


def _linear_coefficients(
    x: NDArray[np.floating],
    y: NDArray[np.floating],
) -> NDArray[np.floating]:
    """Power-basis coefficients (2, n-1) of the piecewise-linear interpolant."""
    slopes = np.diff(y) / np.diff(x)
    return np.vstack([slopes, y[:-1]])


def _spline_coefficients(
    x: NDArray[np.floating],
    y: NDArray[np.floating],
    method: str,
) -> NDArray[np.floating]:
    """Power-basis coefficients for the requested interpolation method."""
    if method == "linear" or len(x) == 2:
        # Natural cubic and PCHIP through two points are both the chord
        return _linear_coefficients(x, y)
    if method == "cubic":
        return CubicSpline(x, y, bc_type="natural").c
    if method == "pchip":
        return PchipInterpolator(x, y).c
    raise DomainError(
        f"Unknown interpolation method {method!r}; choose from {INTERP_METHODS}"
    )


class Interpolant:
    """Continuous function defined by a strictly increasing sample table.

    Evaluation outside [x[0], x[-1]] raises OutOfRangeError; there is no
    extrapolation. The object is immutable apart from the last-interval
    cache, which never affects returned values.

    Example:
        >>> f = Interpolant.build([0.0, 1.0, 2.0], [0.0, 1.0, 4.0], "linear")
        >>> f(1.5)
        2.5
    """

    def __init__(
        self,
        x: NDArray[np.floating],
        y: NDArray[np.floating],
        method: str = "cubic",
        name: Optional[str] = None,
    ):
        """Build interpolant from samples.

        Args:
            x: Sample abscissae, strictly increasing, at least 2 points
            y: Sample values, same length as x
            method: 'linear', 'cubic' (natural spline) or 'pchip'
            name: Optional label used in error messages
        """
        x = np.array(x, dtype=float)
        y = np.array(y, dtype=float)

        if x.ndim != 1 or y.ndim != 1:
            raise DomainError("Sample arrays must be one-dimensional")
        if len(x) != len(y):
            raise DomainError(
                f"Sample arrays differ in length: {len(x)} vs {len(y)}"
            )
        if len(x) < 2:
            raise DomainError(f"Need at least 2 samples, got {len(x)}")
        if not (np.all(np.isfinite(x)) and np.all(np.isfinite(y))):
            raise DomainError("Sample table contains non-finite values")
        if np.any(np.diff(x) <= 0):
            raise DomainError("Sample abscissae must be strictly increasing")
        if method not in INTERP_METHODS:
            raise DomainError(
                f"Unknown interpolation method {method!r}; "
                f"choose from {INTERP_METHODS}"
            )

        self.method = method
        self.name = name

        x.setflags(write=False)
        y.setflags(write=False)
        self._x = x
        self._y = y

        self._c = _spline_coefficients(x, y, method)
        self._c.setflags(write=False)
        self._order = self._c.shape[0] - 1

        # Plain-Python copies for the scalar fast path
        self._x_list = x.tolist()
        self._c_rows = self._c.T.tolist()
        self._last = 0

    @classmethod
    def build(
        cls,
        x: NDArray[np.floating],
        y: NDArray[np.floating],
        method: str = "cubic",
        name: Optional[str] = None,
    ) -> "Interpolant":
        """Build an interpolant; raises DomainError for malformed tables."""
        return cls(x, y, method=method, name=name)

    @property
    def x(self) -> NDArray[np.floating]:
        """Sample abscissae (read-only)."""
        return self._x

    @property
    def y(self) -> NDArray[np.floating]:
        """Sample values (read-only)."""
        return self._y

    @property
    def domain(self) -> Tuple[float, float]:
        return self._x_list[0], self._x_list[-1]

    def __len__(self) -> int:
        return len(self._x_list)

    def __repr__(self) -> str:
        label = f"{self.name!r}, " if self.name else ""
        lo, hi = self.domain
        return f"Interpolant({label}{self.method}, n={len(self)}, [{lo:g}, {hi:g}])"

    def _locate(self, x: float) -> int:
        """Interval index containing x, using the cached previous index."""
        xs = self._x_list
        i = self._last
        # Same interval choice as bisect_right so knots always resolve alike
        if xs[i] <= x < xs[i + 1] or (x == xs[i + 1] and i == len(xs) - 2):
            return i
        i = bisect_right(xs, x) - 1
        i = min(max(i, 0), len(xs) - 2)
        self._last = i
        return i

    def _check_scalar(self, x: float) -> None:
        lo, hi = self._x_list[0], self._x_list[-1]
        if not lo <= x <= hi:
            raise OutOfRangeError(x, (lo, hi), self.name)

    def _check_array(self, x: NDArray[np.floating]) -> None:
        lo, hi = self._x_list[0], self._x_list[-1]
        outside = ~((x >= lo) & (x <= hi))
        if np.any(outside):
            raise OutOfRangeError(float(x[outside].flat[0]), (lo, hi), self.name)

    def _indices(self, x: NDArray[np.floating]) -> NDArray[np.intp]:
        idx = np.searchsorted(self._x, x, side="right") - 1
        return np.clip(idx, 0, len(self._x) - 2)

    def evaluate(self, x: ArrayLike) -> ArrayLike:
        """Evaluate at x (scalar or array).

        Raises:
            OutOfRangeError: If any x lies outside the sample range
        """
        if np.ndim(x) == 0:
            x = float(x)
            self._check_scalar(x)
            i = self._locate(x)
            dx = x - self._x_list[i]
            result = 0.0
            for coeff in self._c_rows[i]:
                result = result * dx + coeff
            return result

        x = np.asarray(x, dtype=float)
        self._check_array(x)
        idx = self._indices(x)
        dx = x - self._x[idx]
        result = np.zeros_like(dx)
        for m in range(self._order + 1):
            result = result * dx + self._c[m, idx]
        return result

    def derivative(self, x: ArrayLike) -> ArrayLike:
        """First derivative dy/dx at x (scalar or array).

        Raises:
            OutOfRangeError: If any x lies outside the sample range
        """
        k = self._order
        if np.ndim(x) == 0:
            x = float(x)
            self._check_scalar(x)
            i = self._locate(x)
            dx = x - self._x_list[i]
            row = self._c_rows[i]
            result = 0.0
            for m in range(k):
                result = result * dx + (k - m) * row[m]
            return result

        x = np.asarray(x, dtype=float)
        self._check_array(x)
        idx = self._indices(x)
        dx = x - self._x[idx]
        result = np.zeros_like(dx)
        for m in range(k):
            result = result * dx + (k - m) * self._c[m, idx]
        return result

    __call__ = evaluate


def constant_interpolant(
    value: float,
    x_min: float,
    x_max: float,
    name: Optional[str] = None,
) -> Interpolant:
    """Interpolant equal to value everywhere on [x_min, x_max]."""
    return Interpolant(
        np.array([x_min, x_max]),
        np.array([value, value]),
        method="linear",
        name=name,
    )
