"""Fixed numerical constants for the background evolution.

All quantities are dimensionless: rates in units of H0, distances in
units of c/H0.
"""

from typing import Final


# Equation-of-state fine grid, decoupled from the output grid
EOS_Z_MAX: Final[float] = 100.0
EOS_GRID_POINTS: Final[int] = 16385

# Output grid
Z_MAX_DEFAULT: Final[float] = 15.0
BACKGROUND_BINS_DEFAULT: Final[int] = 1000

# Below this redshift G1 and G2 are set to zero (χ → 0 there)
G_TERMS_Z_MIN: Final[float] = 1e-10

# Adaptive quadrature (QUADPACK qags, 21-point Gauss-Kronrod)
QUAD_EPSABS: Final[float] = 0.0
QUAD_EPSREL: Final[float] = 1e-5
QUAD_LIMIT: Final[int] = 1000

# Growth ODE: growing mode D1 = a deep in matter domination
A_INITIAL: Final[float] = 0.05
D1_INITIAL: Final[float] = 0.05
D1_PRIME_INITIAL: Final[float] = 1.0
ODE_RTOL: Final[float] = 1e-6
ODE_ATOL: Final[float] = 0.0
ODE_FIRST_STEP: Final[float] = 1e-6
ODE_METHOD: Final[str] = "DOP853"

# solve_ivp methods that make use of an analytic Jacobian
IMPLICIT_ODE_METHODS: Final[tuple] = ("Radau", "BDF", "LSODA")

INTERP_METHODS: Final[tuple] = ("linear", "cubic", "pchip")
