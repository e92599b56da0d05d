"""Hubble rate and comoving distance.

All distances are dimensionless (units of c/H0):
    χ(z) = ∫₀ᶻ dz' / E(z')
with
    E(z) = sqrt(Ω_m(1+z)³ + Ω_γ(1+z)⁴ + Ω_de W(z))
"""

from typing import Optional
import numpy as np
from numpy.typing import NDArray

from .interpolation import Interpolant
from .utils.config import CosmologicalParameters, NumericalSettings
from .utils.numerics import NonMonotoneInverseError, first_non_increasing, scoped_quad


class DistanceIntegrator:
    """Comoving distance by adaptive quadrature of 1/E(z).

    Args:
        params: Density parameters
        W: Dark-energy density scaling W(z) from the EOS bundle
        numerics: Quadrature settings
    """

    def __init__(
        self,
        params: CosmologicalParameters,
        W: Interpolant,
        numerics: Optional[NumericalSettings] = None,
    ):
        self.params = params
        self.W = W
        self.numerics = numerics or NumericalSettings()

    def E(self, z: float) -> float:
        """Dimensionless Hubble rate E(z) = H(z)/H0."""
        p = self.params
        zp1 = 1.0 + z
        return np.sqrt(
            p.Omega_m * zp1**3
            + p.Omega_gamma * zp1**4
            + p.Omega_de * self.W(z)
        )

    hubble_rate = E

    def _integrand(self, z: float) -> float:
        return 1.0 / self.E(z)

    def comoving_distance(self, z: float) -> float:
        """χ(z) = ∫₀ᶻ dz'/E(z'); exactly 0 at z = 0."""
        if z == 0:
            return 0.0
        num = self.numerics
        return scoped_quad(
            self._integrand, 0.0, z,
            epsabs=num.quad_epsabs, epsrel=num.quad_epsrel, limit=num.quad_limit,
        )

    def comoving_distances(self, z: NDArray[np.floating]) -> NDArray[np.floating]:
        """χ on an increasing redshift grid.

        Raises:
            NonMonotoneInverseError: If the result is not strictly increasing
        """
        chi = np.array([self.comoving_distance(float(zi)) for zi in z])
        bad = first_non_increasing(chi)
        if bad is not None:
            raise NonMonotoneInverseError(bad)
        return chi
