"""Dark-energy equation of state and the integrals derived from it.

Given w(z), two auxiliary functions enter the background:

    W(z) = exp(3 ∫₀ᶻ (1 + w(z'))/(1 + z') dz')

scales the dark-energy density, ρ_de(z) = ρ_de,0 W(z), and

    X(z) = Ω_m/(1 - Ω_m) · exp(-3 ∫_{1/(1+z)}^{1} w(a)/a da)

is the matter to dark-energy density ratio entering the growth equation.
Both are tabulated on a fixed fine grid z ∈ [0, 100] so growth accuracy does
not depend on how many output bins are requested.
"""

from dataclasses import dataclass
import logging
import time
from typing import Optional
import numpy as np
from numpy.typing import NDArray

from .interpolation import Interpolant, constant_interpolant
from .utils.config import CosmologicalParameters, NumericalSettings
from .utils.constants import EOS_Z_MAX, EOS_GRID_POINTS
from .utils.numerics import OutOfRangeError, scoped_quad


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EquationOfStateBundle:
    """Read-only w(z), W(z) and X(z) interpolants on the fine grid."""

    w: Interpolant
    W: Interpolant
    X: Interpolant

    @property
    def z_max(self) -> float:
        return self.W.domain[1]


class EquationOfStateModel:
    """Builds W(z) and X(z) from a supplied w(z).

    Each integral is accumulated over consecutive fine-grid intervals with
    adaptive Gauss-Kronrod quadrature (absolute tolerance 0, relative 1e-5
    per interval), which keeps every quadrature call on a smooth stretch of
    the w spline.
    """

    def __init__(
        self,
        w: Interpolant,
        params: CosmologicalParameters,
        numerics: Optional[NumericalSettings] = None,
    ):
        """Initialize EOS model.

        Args:
            w: Equation of state w(z), must cover [0, eos_z_max]
            params: Density parameters
            numerics: Grid and quadrature settings

        Raises:
            OutOfRangeError: If w does not cover the fine grid
        """
        self.w = w
        self.params = params
        self.numerics = numerics or NumericalSettings()

        lo, hi = w.domain
        if lo > 0.0 or hi < self.numerics.eos_z_max:
            raise OutOfRangeError(
                hi if hi < self.numerics.eos_z_max else lo,
                (lo, hi),
                name="w",
                message=(
                    f"w(z) is defined on [{lo:g}, {hi:g}] but must cover "
                    f"[0, {self.numerics.eos_z_max:g}]"
                ),
            )
        self._w_lo, self._w_hi = lo, hi

    @property
    def matter_ratio_today(self) -> float:
        """X(0) = Ω_m/(1 - Ω_m)."""
        Om = self.params.Omega_m
        return Om / (1.0 - Om)

    def _integrand_w(self, z: float) -> float:
        """(1 + w(z))/(1 + z)."""
        return (1.0 + self.w(z)) / (1.0 + z)

    def _integrand_x(self, a: float) -> float:
        """w(a)/a with the scale factor as integration variable."""
        # Clamp round-off from 1/a - 1 at the grid edges
        z = min(max(1.0 / a - 1.0, self._w_lo), self._w_hi)
        return self.w(z) / a

    def _quad(self, func, lower: float, upper: float) -> float:
        num = self.numerics
        return scoped_quad(
            func, lower, upper,
            epsabs=num.quad_epsabs, epsrel=num.quad_epsrel, limit=num.quad_limit,
        )

    def integral_w(self, z: float) -> float:
        """∫₀ᶻ (1 + w)/(1 + z') dz' computed in a single quadrature call."""
        if z == 0:
            return 0.0
        return self._quad(self._integrand_w, 0.0, z)

    def integral_x(self, z: float) -> float:
        """∫_{1/(1+z)}^{1} w(a)/a da computed in a single quadrature call."""
        if z == 0:
            return 0.0
        return self._quad(self._integrand_x, 1.0 / (1.0 + z), 1.0)

    def _cumulative_w(self, z: NDArray[np.floating]) -> NDArray[np.floating]:
        pieces = np.array([
            self._quad(self._integrand_w, z[k - 1], z[k])
            for k in range(1, len(z))
        ])
        return np.concatenate([[0.0], np.cumsum(pieces)])

    def _cumulative_x(self, z: NDArray[np.floating]) -> NDArray[np.floating]:
        a = 1.0 / (1.0 + z)
        pieces = np.array([
            self._quad(self._integrand_x, a[k], a[k - 1])
            for k in range(1, len(z))
        ])
        return np.concatenate([[0.0], np.cumsum(pieces)])

    def W_values(self, z: NDArray[np.floating]) -> NDArray[np.floating]:
        """W(z) on an increasing grid starting at z = 0."""
        return np.exp(3.0 * self._cumulative_w(z))

    def X_values(self, z: NDArray[np.floating]) -> NDArray[np.floating]:
        """X(z) on an increasing grid starting at z = 0; X(0) is exact."""
        X = self.matter_ratio_today * np.exp(-3.0 * self._cumulative_x(z))
        X[0] = self.matter_ratio_today
        return X

    def build(self) -> EquationOfStateBundle:
        """Tabulate W and X on the fine grid and wrap them as interpolants."""
        start = time.perf_counter()
        z = self.numerics.get_eos_z_array()

        W = Interpolant(z, self.W_values(z), method="cubic", name="W")
        X = Interpolant(z, self.X_values(z), method="cubic", name="X")

        logger.debug(
            f"EOS tables built on {len(z)} points in {time.perf_counter() - start:.2f} s"
        )
        return EquationOfStateBundle(w=self.w, W=W, X=X)


def constant_w(
    w0: float = -1.0,
    z_max: float = EOS_Z_MAX,
) -> Interpolant:
    """Redshift-independent equation of state w(z) = w0."""
    return constant_interpolant(w0, 0.0, z_max, name="w")


def cpl_w(
    w0: float = -1.0,
    wa: float = 0.0,
    z_max: float = EOS_Z_MAX,
    n_points: int = EOS_GRID_POINTS,
) -> Interpolant:
    """CPL equation of state w(a) = w0 + wa(1 - a), sampled on the fine grid.

    In redshift, 1 - a = z/(1 + z).
    """
    z = np.linspace(0.0, z_max, n_points)
    w = w0 + wa * z / (1.0 + z)
    return Interpolant(z, w, method="cubic", name="w")
