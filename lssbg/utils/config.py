"""Configuration and parameter classes for the background engine."""

from dataclasses import dataclass, field
from typing import Literal
import numpy as np

from . import constants as const


@dataclass
class CosmologicalParameters:
    """Density fractions today.

    Attributes:
        Omega_cdm: Cold dark matter density
        Omega_baryon: Baryon density
        Omega_gamma: Photon (radiation) density
        Omega_de: Dark-energy-like density

    Physical constraints:
        - All fractions non-negative
        - 0 < Ω_m < 1, since X(z) carries Ω_m/(1 - Ω_m)
        - Ω_cdm + Ω_baryon + Ω_γ + Ω_de ≈ 1 (flat universe)
    """

    Omega_cdm: float = 0.25
    Omega_baryon: float = 0.05
    Omega_gamma: float = 5.0e-5
    Omega_de: float = 0.69995

    @property
    def Omega_m(self) -> float:
        """Total matter density."""
        return self.Omega_cdm + self.Omega_baryon

    @property
    def Omega_total(self) -> float:
        """Sum of all density fractions."""
        return self.Omega_m + self.Omega_gamma + self.Omega_de

    def validate(self, flatness_tol: float = 1e-3) -> tuple[bool, list[str]]:
        """Validate parameter values.

        Returns:
            Tuple of (is_valid, list of error messages)
        """
        errors = []

        for name in ("Omega_cdm", "Omega_baryon", "Omega_gamma", "Omega_de"):
            value = getattr(self, name)
            if not np.isfinite(value) or value < 0:
                errors.append(f"Unphysical {name} = {value}")

        if self.Omega_m <= 0:
            errors.append(f"Omega_m = {self.Omega_m} must be positive")
        elif self.Omega_m >= 1:
            errors.append(
                f"Omega_m = {self.Omega_m} >= 1; Omega_m/(1 - Omega_m) is undefined"
            )

        if abs(self.Omega_total - 1.0) > flatness_tol:
            errors.append(
                f"Omega_total = {self.Omega_total:.6f} deviates from 1 "
                f"by more than {flatness_tol}"
            )

        return len(errors) == 0, errors


@dataclass
class NumericalSettings:
    """Tolerances and grids for quadrature and the growth ODE."""

    quad_epsabs: float = const.QUAD_EPSABS
    quad_epsrel: float = const.QUAD_EPSREL
    quad_limit: int = const.QUAD_LIMIT

    ode_method: str = const.ODE_METHOD
    ode_rtol: float = const.ODE_RTOL
    ode_atol: float = const.ODE_ATOL
    ode_first_step: float = const.ODE_FIRST_STEP

    a_initial: float = const.A_INITIAL
    D1_initial: float = const.D1_INITIAL
    D1_prime_initial: float = const.D1_PRIME_INITIAL

    eos_z_max: float = const.EOS_Z_MAX
    eos_grid_points: int = const.EOS_GRID_POINTS

    def get_eos_z_array(self) -> np.ndarray:
        """Return the fine redshift grid the EOS integrals are tabulated on."""
        return np.linspace(0.0, self.eos_z_max, self.eos_grid_points)

    def validate(self) -> tuple[bool, list[str]]:
        errors = []

        if self.quad_epsabs < 0 or self.quad_epsrel < 0:
            errors.append("Quadrature tolerances must be non-negative")
        if self.quad_epsabs == 0 and self.quad_epsrel == 0:
            errors.append("At least one quadrature tolerance must be positive")
        if self.ode_rtol <= 0:
            errors.append(f"ode_rtol = {self.ode_rtol} must be positive")
        if self.ode_atol < 0:
            errors.append(f"ode_atol = {self.ode_atol} must be non-negative")
        if self.ode_first_step <= 0:
            errors.append(f"ode_first_step = {self.ode_first_step} must be positive")
        if not 0 < self.a_initial < 1:
            errors.append(f"a_initial = {self.a_initial} must lie in (0, 1)")
        if self.eos_grid_points < 2:
            errors.append(f"eos_grid_points = {self.eos_grid_points} too small")
        if 1.0 / self.a_initial - 1.0 > self.eos_z_max:
            errors.append(
                f"a_initial = {self.a_initial} lies beyond the EOS grid "
                f"(z_max = {self.eos_z_max})"
            )

        return len(errors) == 0, errors


@dataclass
class BackgroundConfig:
    """Full background configuration combining parameters and settings."""

    params: CosmologicalParameters = field(default_factory=CosmologicalParameters)
    numerics: NumericalSettings = field(default_factory=NumericalSettings)

    background_bins: int = const.BACKGROUND_BINS_DEFAULT
    z_max: float = const.Z_MAX_DEFAULT
    interp_method: Literal["linear", "cubic", "pchip"] = "cubic"

    @property
    def a_min(self) -> float:
        """Smallest scale factor on the output grid."""
        return 1.0 / (1.0 + self.z_max)

    def get_z_array(self) -> np.ndarray:
        """Return the output redshift grid z_i = z_max*i/(N-1)."""
        n = self.background_bins
        return self.z_max * np.arange(n) / (n - 1)

    def validate(self) -> tuple[bool, list[str]]:
        """Validate full configuration."""
        valid, errors = self.params.validate()
        num_valid, num_errors = self.numerics.validate()
        errors = errors + num_errors
        valid = valid and num_valid

        if self.background_bins < 2:
            errors.append(f"background_bins = {self.background_bins} must be >= 2")
            valid = False

        if self.z_max <= 0:
            errors.append(f"z_max = {self.z_max} must be > 0")
            valid = False
        else:
            if self.a_min < self.numerics.a_initial:
                errors.append(
                    f"z_max = {self.z_max} reaches before the growth initial "
                    f"condition a = {self.numerics.a_initial}"
                )
                valid = False
            if self.z_max > self.numerics.eos_z_max:
                errors.append(
                    f"z_max = {self.z_max} exceeds the EOS grid bound "
                    f"{self.numerics.eos_z_max}"
                )
                valid = False

        if self.interp_method not in const.INTERP_METHODS:
            errors.append(
                f"Unknown interp_method {self.interp_method!r}; "
                f"choose from {const.INTERP_METHODS}"
            )
            valid = False

        return valid, errors
