"""Background evolution table.

This module assembles, for one parameter set, every background function of
redshift the correlation-function terms need:

    a(z), H(z), 𝓗(z) = aH, 𝓗'(z), D1(z), f(z), g(z), χ(z), G1(z), G2(z)

and the inverse z(χ). Rates are in units of H0, distances in c/H0.

The build is a single pass:

    UNINITIALIZED → BUILDING_EOS → INTEGRATING_GRID → FINALIZED

A parameter change means building a new table from scratch.
"""

from dataclasses import dataclass
from enum import Enum
import logging
import time
from typing import Dict, Optional, Tuple
import numpy as np
from numpy.typing import NDArray

from .bias import BiasProvider, TracerBiases
from .distances import DistanceIntegrator
from .equation_of_state import EquationOfStateBundle, EquationOfStateModel
from .growth import GrowthSolver
from .interpolation import ArrayLike, Interpolant
from .utils.config import BackgroundConfig
from .utils.constants import G_TERMS_Z_MIN
from .utils.numerics import (
    NonFiniteResultError,
    NonMonotoneInverseError,
    check_divergence,
    first_non_increasing,
)


logger = logging.getLogger(__name__)


class BuildState(Enum):
    """Stages of a background build."""
    UNINITIALIZED = "uninitialized"
    BUILDING_EOS = "building_eos"
    INTEGRATING_GRID = "integrating_grid"
    FINALIZED = "finalized"


@dataclass(frozen=True)
class BackgroundTable:
    """Read-only background functions of z over [0, z_max].

    Every entry is an Interpolant; z_of_chi is defined over [0, χ_max].
    Queries outside the domain raise OutOfRangeError.
    """

    z_max: float
    a: Interpolant
    H: Interpolant
    conformal_H: Interpolant
    conformal_H_prime: Interpolant  # d𝓗/dτ in units of H0², stored in closed form
    D1: Interpolant
    f: Interpolant
    g: Interpolant
    comoving_distance: Interpolant
    G1: Interpolant
    G2: Interpolant
    z_of_chi: Interpolant

    names = (
        "a", "H", "conformal_H", "conformal_H_prime", "D1", "f", "g",
        "comoving_distance", "G1", "G2", "z_of_chi",
    )

    @property
    def chi_max(self) -> float:
        """Comoving distance to z_max."""
        return self.z_of_chi.domain[1]

    def __getitem__(self, name: str) -> Interpolant:
        if name not in self.names:
            raise KeyError(f"Unknown background function {name!r}")
        return getattr(self, name)

    def evaluate(self, name: str, x: ArrayLike) -> ArrayLike:
        """Evaluate a named function at z (or at χ for z_of_chi)."""
        return self[name].evaluate(x)

    def derivative(self, name: str, x: ArrayLike) -> ArrayLike:
        """Derivative of a named function with respect to its argument."""
        return self[name].derivative(x)

    def samples(self, name: str) -> Tuple[NDArray[np.floating], NDArray[np.floating]]:
        """Sample arrays (x, y) a named function was built from."""
        interp = self[name]
        return interp.x, interp.y


class BackgroundAssembler:
    """Builds a BackgroundTable once per parameter set.

    Args:
        config: Parameters, output grid and numerical settings
        w: Equation of state w(z) covering the EOS fine grid
        biases: Bias interpolants of the two sources, used by G1 and G2

    Raises:
        ValueError: If the configuration is invalid
    """

    def __init__(
        self,
        config: BackgroundConfig,
        w: Interpolant,
        biases: BiasProvider,
    ):
        valid, errors = config.validate()
        if not valid:
            raise ValueError(f"Invalid background configuration: {errors}")

        self.config = config
        self.w = w
        self.biases = biases
        self.state = BuildState.UNINITIALIZED
        self._table: Optional[BackgroundTable] = None

    @property
    def table(self) -> Optional[BackgroundTable]:
        """The finalized table, or None before build() has succeeded."""
        return self._table

    def build(self) -> BackgroundTable:
        """Run the full build; a finalized assembler returns its table.

        Any failure resets the state to UNINITIALIZED and propagates; no
        partial table is kept.
        """
        if self.state is BuildState.FINALIZED:
            return self._table

        cfg = self.config
        logger.info(
            f"Initializing the background ({cfg.background_bins} bins, "
            f"z_max={cfg.z_max}, {cfg.interp_method} interpolation)..."
        )
        start = time.perf_counter()

        try:
            self.state = BuildState.BUILDING_EOS
            eos = EquationOfStateModel(self.w, cfg.params, cfg.numerics).build()

            self.state = BuildState.INTEGRATING_GRID
            z, columns = self._integrate_grid(eos)

            table = self._finalize(z, columns)
        except Exception:
            self.state = BuildState.UNINITIALIZED
            raise

        self._table = table
        self.state = BuildState.FINALIZED
        logger.info(f"Background initialized in {time.perf_counter() - start:.2f} s")
        return table

    def _integrate_grid(
        self,
        eos: EquationOfStateBundle,
    ) -> Tuple[NDArray[np.floating], Dict[str, NDArray[np.floating]]]:
        """Raw background arrays on the output grid."""
        cfg = self.config
        p = cfg.params
        z = cfg.get_z_array()
        n = len(z)

        growth = GrowthSolver(eos, cfg.numerics)
        distances = DistanceIntegrator(p, eos.W, cfg.numerics)

        a = 1.0 / (1.0 + z)
        w = eos.w(z)
        W = eos.W(z)

        H = np.sqrt(
            p.Omega_m * (1 + z) ** 3
            + p.Omega_gamma * (1 + z) ** 4
            + p.Omega_de * W
        )
        conformal_H = a * H
        conformal_H_prime = -(
            (1 + z) ** 3 * (2 * (1 + z) * p.Omega_gamma + p.Omega_m)
            + (1 + 3 * w) * p.Omega_de * W
        ) / (1 + z) ** 2 / 2.0

        D1 = np.zeros(n)
        f = np.zeros(n)
        g = np.zeros(n)
        chi = np.zeros(n)

        for i in range(n):
            result = growth.solve(float(z[i]))
            D1[i] = result.D1
            f[i] = result.f
            g[i] = result.g
            chi[i] = distances.comoving_distance(float(z[i]))

        G1 = self._relativistic_term(
            self.biases.first, z, conformal_H, conformal_H_prime, chi
        )
        G2 = self._relativistic_term(
            self.biases.second, z, conformal_H, conformal_H_prime, chi
        )

        columns = {
            "a": a,
            "H": H,
            "conformal_H": conformal_H,
            "conformal_H_prime": conformal_H_prime,
            "D1": D1,
            "f": f,
            "g": g,
            "comoving_distance": chi,
            "G1": G1,
            "G2": G2,
        }
        return z, columns

    @staticmethod
    def _relativistic_term(
        biases: TracerBiases,
        z: NDArray[np.floating],
        conformal_H: NDArray[np.floating],
        conformal_H_prime: NDArray[np.floating],
        chi: NDArray[np.floating],
    ) -> NDArray[np.floating]:
        """G = 𝓗'/𝓗² + (2 - 5s)/(χ𝓗) + 5s - f_evo, zero at z <= 1e-10."""
        G = np.zeros_like(z)
        mask = z > G_TERMS_Z_MIN
        if not np.any(mask):
            return G

        s = biases.magnification_bias(z[mask])
        f_evo = biases.evolution_bias(z[mask])
        Hc = conformal_H[mask]

        G[mask] = (
            conformal_H_prime[mask] / Hc**2
            + (2 - 5 * s) / (chi[mask] * Hc)
            + 5 * s
            - f_evo
        )
        return G

    def _finalize(
        self,
        z: NDArray[np.floating],
        columns: Dict[str, NDArray[np.floating]],
    ) -> BackgroundTable:
        """Check the raw arrays and wrap them as interpolants of z."""
        for name, values in columns.items():
            check = check_divergence(values)
            if check.has_divergence:
                i = check.divergence_indices[0]
                raise NonFiniteResultError(name, float(z[i]), float(values[i]))

        chi = columns["comoving_distance"]
        bad = first_non_increasing(chi)
        if bad is not None:
            raise NonMonotoneInverseError(bad)

        method = self.config.interp_method
        interpolants = {
            name: Interpolant(z, values, method=method, name=name)
            for name, values in columns.items()
        }
        z_of_chi = Interpolant(chi, z, method=method, name="z_of_chi")

        return BackgroundTable(
            z_max=float(z[-1]),
            z_of_chi=z_of_chi,
            **interpolants,
        )


def compute_background(
    config: BackgroundConfig,
    w: Interpolant,
    biases: BiasProvider,
) -> BackgroundTable:
    """Build the background table for one parameter set.

    Example:
        >>> from lssbg import BackgroundConfig, BiasProvider, TracerBiases, constant_w
        >>> cfg = BackgroundConfig(background_bins=50)
        >>> biases = BiasProvider.identical(TracerBiases.constant())
        >>> table = compute_background(cfg, constant_w(-1.0), biases)
        >>> round(table.H(0.0), 12)
        1.0
    """
    return BackgroundAssembler(config, w, biases).build()
