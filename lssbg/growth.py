"""Linear growth factor D1 and growth rate f.

The growing mode satisfies, with the scale factor a as time variable and
' = d/da,

    D1'' = -3/(2a) (1 - w/(1 + X)) D1' + 3/(2a²) X/(1 + X) D1

where w = w(z), X = X(z) and z = 1/a - 1. Deep in matter domination
X → ∞ and D1 ∝ a, so every integration starts from D1 = a = 0.05,
D1' = 1.
"""

from dataclasses import dataclass
import logging
from typing import Optional, List
import numpy as np
from numpy.typing import NDArray
from scipy.integrate import solve_ivp

from .equation_of_state import EquationOfStateBundle
from .utils.config import NumericalSettings
from .utils.constants import IMPLICIT_ODE_METHODS
from .utils.numerics import NumericalDivergenceError, OutOfRangeError


logger = logging.getLogger(__name__)


@dataclass
class GrowthResult:
    """Growth quantities at one redshift."""

    z: float
    a: float
    D1: float  # Growth factor, D1 = a deep in matter domination
    D1_prime: float  # dD1/da
    f: float  # Growth rate f = d ln D1 / d ln a
    g: float  # (1 + z) D1


class GrowthSolver:
    """Integrates the growth ODE from a_initial to each requested redshift.

    Every call to solve() starts from the same initial state, so results do
    not depend on the order of queries.
    """

    def __init__(
        self,
        eos: EquationOfStateBundle,
        numerics: Optional[NumericalSettings] = None,
    ):
        self.eos = eos
        self.numerics = numerics or NumericalSettings()
        self._z_lo, self._z_hi = eos.X.domain

    def _redshift(self, a: float) -> float:
        # Round-off can push stage evaluations just past a = 1
        z = 1.0 / a - 1.0
        if z < self._z_lo:
            z = self._z_lo
        return z

    def _coefficients(self, a: float):
        """Friction and source coefficients (P, Q) of the growth equation.

        P = 1 - w/(1 + X), Q = X/(1 + X).
        """
        z = self._redshift(a)
        w = self.eos.w(z)
        X = self.eos.X(z)
        return 1.0 - w / (1.0 + X), X / (1.0 + X)

    def rhs(self, a: float, y: NDArray[np.floating]) -> NDArray[np.floating]:
        """Right-hand side d(D1, D1')/da."""
        P, Q = self._coefficients(a)
        return np.array([
            y[1],
            -1.5 * P * y[1] / a + 1.5 * Q * y[0] / a**2,
        ])

    def jacobian(self, a: float, y: NDArray[np.floating]) -> NDArray[np.floating]:
        """∂(rhs)/∂y."""
        P, Q = self._coefficients(a)
        return np.array([
            [0.0, 1.0],
            [1.5 * Q / a**2, -1.5 * P / a],
        ])

    def time_derivative(
        self,
        a: float,
        y: NDArray[np.floating],
    ) -> NDArray[np.floating]:
        """Explicit ∂(rhs)/∂a at fixed y.

        Uses dz/da = -1/a² and the interpolant derivatives of w and X.
        """
        z = self._redshift(a)
        w = self.eos.w(z)
        X = self.eos.X(z)
        dw = self.eos.w.derivative(z)
        dX = self.eos.X.derivative(z)

        P = 1.0 - w / (1.0 + X)
        Q = X / (1.0 + X)
        dP_dz = -(dw * (1.0 + X) - w * dX) / (1.0 + X) ** 2
        dQ_dz = dX / (1.0 + X) ** 2
        dz_da = -1.0 / a**2

        d1 = (
            1.5 * P * y[1] / a**2
            - 1.5 * y[1] / a * dP_dz * dz_da
            - 3.0 * Q * y[0] / a**3
            + 1.5 * y[0] / a**2 * dQ_dz * dz_da
        )
        return np.array([0.0, d1])

    def solve(self, z: float) -> GrowthResult:
        """Integrate from a_initial to a = 1/(1+z).

        Args:
            z: Target redshift

        Returns:
            GrowthResult at z

        Raises:
            OutOfRangeError: If z lies before the initial condition
            NumericalDivergenceError: If the stepper fails or yields
                non-finite values
        """
        num = self.numerics
        a_target = 1.0 / (1.0 + z)
        a_start = num.a_initial
        y_start = np.array([num.D1_initial, num.D1_prime_initial])

        if a_target < a_start:
            raise OutOfRangeError(
                z, (0.0, 1.0 / a_start - 1.0), name="growth factor"
            )

        if a_target == a_start:
            y = y_start
        else:
            kwargs = {}
            if num.ode_method in IMPLICIT_ODE_METHODS:
                kwargs["jac"] = self.jacobian

            sol = solve_ivp(
                self.rhs,
                t_span=(a_start, a_target),
                y0=y_start,
                method=num.ode_method,
                rtol=num.ode_rtol,
                atol=num.ode_atol,
                first_step=min(num.ode_first_step, a_target - a_start),
                **kwargs,
            )

            if not sol.success:
                raise NumericalDivergenceError(
                    z, f"growth integration failed at z={z:.6g}: {sol.message}"
                )

            y = sol.y[:, -1]
            logger.debug(f"growth to z={z:.4g}: {sol.nfev} RHS evaluations")

        D1, D1_prime = float(y[0]), float(y[1])
        if not (np.isfinite(D1) and np.isfinite(D1_prime)) or D1 == 0.0:
            raise NumericalDivergenceError(
                z, f"growth integration produced D1={D1}, D1'={D1_prime} at z={z:.6g}"
            )

        return GrowthResult(
            z=z,
            a=a_target,
            D1=D1,
            D1_prime=D1_prime,
            f=D1_prime * a_target / D1,
            g=(1.0 + z) * D1,
        )

    def solve_many(self, z: NDArray[np.floating]) -> List[GrowthResult]:
        """Independent solve() for each redshift, in the given order."""
        return [self.solve(float(zi)) for zi in np.asarray(z, dtype=float)]
