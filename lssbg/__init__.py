"""Background evolution for relativistic large-scale-structure statistics.

For one cosmological parameter set this package builds a read-only table of
smooth background functions of redshift, which correlation-function code
then queries pointwise:

- Scale factor a(z), Hubble rate H(z), conformal Hubble rate 𝓗(z) and 𝓗'(z)
- Linear growth factor D1(z), growth rate f(z) and g(z) = (1+z)D1(z)
- Comoving distance χ(z) and its inverse z(χ)
- Relativistic terms G1(z), G2(z) for two tracer populations

Key modules:
    interpolation: Interpolant over fixed sample tables
    equation_of_state: w(z) and the derived W(z), X(z)
    growth: Growth ODE with analytic Jacobian
    distances: Comoving distance quadrature
    background: Build orchestration and the final table
    bias: Tracer bias inputs
    plots: Diagnostic figures

Example usage:
    >>> from lssbg import BackgroundConfig, BiasProvider, TracerBiases
    >>> from lssbg import compute_background, constant_w
    >>> config = BackgroundConfig(background_bins=50)
    >>> biases = BiasProvider.identical(TracerBiases.constant(magnification_bias=0.2))
    >>> table = compute_background(config, constant_w(-1.0), biases)
    >>> print(f"chi(z=1) = {table.comoving_distance(1.0):.3f} c/H0")
"""

__version__ = "1.0.0"

from .utils.config import BackgroundConfig, CosmologicalParameters, NumericalSettings
from .utils.numerics import (
    BackgroundError,
    DomainError,
    OutOfRangeError,
    NumericalDivergenceError,
    NonMonotoneInverseError,
    NonFiniteResultError,
)

from .interpolation import Interpolant, constant_interpolant
from .bias import TracerBiases, BiasProvider
from .equation_of_state import (
    EquationOfStateModel,
    EquationOfStateBundle,
    constant_w,
    cpl_w,
)
from .growth import GrowthSolver, GrowthResult
from .distances import DistanceIntegrator
from .background import (
    BackgroundAssembler,
    BackgroundTable,
    BuildState,
    compute_background,
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
    "Interpolant",
    "constant_interpolant",
    "TracerBiases",
    "BiasProvider",
    "EquationOfStateModel",
    "EquationOfStateBundle",
    "constant_w",
    "cpl_w",
    "GrowthSolver",
    "GrowthResult",
    "DistanceIntegrator",
    "BackgroundAssembler",
    "BackgroundTable",
    "BuildState",
    "compute_background",
]
