"""Tests for the background table assembler."""

import logging

import pytest
import numpy as np
from numpy.testing import assert_allclose

from lssbg.background import (
    BackgroundAssembler,
    BackgroundTable,
    BuildState,
    compute_background,
)
from lssbg.bias import BiasProvider, TracerBiases
from lssbg.equation_of_state import constant_w, cpl_w
from lssbg.utils.config import BackgroundConfig, CosmologicalParameters, NumericalSettings
from lssbg.utils.numerics import (
    NonFiniteResultError,
    NonMonotoneInverseError,
    NumericalDivergenceError,
    OutOfRangeError,
)


PARAMS = CosmologicalParameters(
    Omega_cdm=0.25, Omega_baryon=0.05, Omega_gamma=5e-5, Omega_de=0.69995
)


@pytest.fixture(scope="module")
def biases():
    """Different magnification and evolution biases for the two sources."""
    return BiasProvider(
        first=TracerBiases.constant(magnification_bias=0.2, evolution_bias=0.0),
        second=TracerBiases.constant(magnification_bias=0.4, evolution_bias=1.0),
    )


@pytest.fixture(scope="module")
def lcdm_table(biases):
    """ΛCDM table on 50 bins up to z = 15 with the full EOS grid."""
    config = BackgroundConfig(params=PARAMS, background_bins=50, z_max=15.0)
    return compute_background(config, constant_w(-1.0), biases)


def small_config(**kwargs):
    """Coarse configuration for tests that build repeatedly."""
    kwargs.setdefault("params", PARAMS)
    kwargs.setdefault("background_bins", 30)
    return BackgroundConfig(numerics=NumericalSettings(eos_grid_points=1025), **kwargs)


def analytic_H(z):
    return np.sqrt(0.3 * (1 + z) ** 3 + 5e-5 * (1 + z) ** 4 + 0.69995)


class TestBackgroundTable:
    """Tests for the finalized ΛCDM table."""

    def test_table_type(self, lcdm_table):
        assert isinstance(lcdm_table, BackgroundTable)
        assert lcdm_table.z_max == 15.0

    def test_hubble_today(self, lcdm_table):
        """H(0) = 1 in units of H0 for a flat universe."""
        assert abs(lcdm_table.H(0.0) - 1.0) < 1e-12

    def test_hubble_rate(self, lcdm_table):
        """H matches the closed form at the grid points."""
        z, H = lcdm_table.samples("H")
        assert_allclose(H, analytic_H(z), rtol=1e-12)

    def test_output_grid(self, lcdm_table):
        """Grid z_i = z_max i/(N-1) with exact endpoints."""
        z, _ = lcdm_table.samples("a")
        assert len(z) == 50
        assert z[0] == 0.0
        assert z[-1] == 15.0

    def test_scale_factor(self, lcdm_table):
        """a = 1/(1+z) at samples, and interpolated accurately."""
        z, a = lcdm_table.samples("a")
        assert_allclose(a, 1.0 / (1.0 + z), rtol=1e-15)
        z_test = np.linspace(1.0, 15.0, 57)
        assert_allclose(lcdm_table.a(z_test), 1.0 / (1.0 + z_test), rtol=2e-3)

    def test_conformal_hubble(self, lcdm_table):
        """𝓗 = aH."""
        z, Hc = lcdm_table.samples("conformal_H")
        assert_allclose(Hc, analytic_H(z) / (1 + z), rtol=1e-12)

    def test_conformal_hubble_derivative(self, lcdm_table):
        """𝓗' = d𝓗/dτ = -H d𝓗/dz."""
        z, Hcp = lcdm_table.samples("conformal_H_prime")
        expected = -(0.5 * 0.3 * (1 + z) ** 3 + 5e-5 * (1 + z) ** 4 - 0.69995) / (1 + z) ** 2
        assert_allclose(Hcp, expected, rtol=1e-12)

        z_test = np.linspace(2.0, 10.0, 17)
        numeric = -lcdm_table.H(z_test) * lcdm_table.derivative("conformal_H", z_test)
        assert_allclose(lcdm_table.conformal_H_prime(z_test), numeric, rtol=1e-2)

    def test_comoving_distance_monotone(self, lcdm_table):
        """χ(0) = 0 and χ strictly increasing."""
        z, chi = lcdm_table.samples("comoving_distance")
        assert chi[0] == 0.0
        assert np.all(np.diff(chi) > 0)
        assert lcdm_table.chi_max == chi[-1]

    def test_inverse_at_samples(self, lcdm_table):
        """z(χ(z_i)) = z_i exactly at the grid points."""
        z, chi = lcdm_table.samples("comoving_distance")
        assert_allclose(lcdm_table.z_of_chi(chi), z, rtol=0, atol=1e-12)

    def test_inverse_round_trip(self, lcdm_table):
        """z(χ(z)) ≈ z between the grid points."""
        z = np.linspace(0.5, 14.9, 41)
        chi = lcdm_table.comoving_distance(z)
        assert_allclose(lcdm_table.z_of_chi(chi), z, atol=5e-3)

    def test_growth_factor(self, lcdm_table):
        """D1 decreases with z and tends to a at high z."""
        z, D1 = lcdm_table.samples("D1")
        assert np.all(np.diff(D1) < 0)
        assert_allclose(lcdm_table.D1(15.0) * 16.0, 1.0, rtol=1e-2)

    def test_g_function(self, lcdm_table):
        """g = (1 + z) D1."""
        z, g = lcdm_table.samples("g")
        _, D1 = lcdm_table.samples("D1")
        assert_allclose(g, (1 + z) * D1, rtol=1e-14)

    def test_growth_rate(self, lcdm_table):
        """f lies in (0, 1.2) and follows Ω_m(z)^0.55."""
        z, f = lcdm_table.samples("f")
        assert np.all((f > 0) & (f < 1.2))

        z_test = np.array([0.0, 0.5, 1.0, 2.0, 5.0, 10.0])
        Om_z = 0.3 * (1 + z_test) ** 3 / lcdm_table.H(z_test) ** 2
        assert_allclose(lcdm_table.f(z_test), Om_z**0.55, rtol=0.02)

    def test_relativistic_terms_vanish_today(self, lcdm_table):
        """G1 and G2 are set to zero at z = 0."""
        assert lcdm_table.G1(0.0) == 0.0
        assert lcdm_table.G2(0.0) == 0.0

    def test_relativistic_terms(self, lcdm_table):
        """G = 𝓗'/𝓗² + (2 - 5s)/(χ𝓗) + 5s - f_evo at the grid points."""
        z, Hc = lcdm_table.samples("conformal_H")
        _, Hcp = lcdm_table.samples("conformal_H_prime")
        _, chi = lcdm_table.samples("comoving_distance")
        _, G1 = lcdm_table.samples("G1")
        _, G2 = lcdm_table.samples("G2")

        for G, s, f_evo in ((G1, 0.2, 0.0), (G2, 0.4, 1.0)):
            expected = Hcp[1:] / Hc[1:] ** 2 + (2 - 5 * s) / (chi[1:] * Hc[1:]) + 5 * s - f_evo
            assert_allclose(G[1:], expected, rtol=1e-12)

        assert not np.allclose(G1[1:], G2[1:])

    def test_out_of_range_queries(self, lcdm_table):
        """No extrapolation beyond z_max or χ_max."""
        with pytest.raises(OutOfRangeError):
            lcdm_table.H(16.0)
        with pytest.raises(OutOfRangeError):
            lcdm_table.D1(np.array([1.0, 15.5]))
        with pytest.raises(OutOfRangeError):
            lcdm_table.z_of_chi(lcdm_table.chi_max * 1.01)

    def test_named_access(self, lcdm_table):
        """Functions are reachable by name."""
        assert lcdm_table["H"] is lcdm_table.H
        assert lcdm_table.evaluate("D1", 1.0) == lcdm_table.D1(1.0)
        with pytest.raises(KeyError):
            lcdm_table["bogus"]


class TestBackgroundAssembler:
    """Tests for build orchestration."""

    def test_state_machine(self, biases):
        """UNINITIALIZED → FINALIZED; a second build returns the same table."""
        assembler = BackgroundAssembler(small_config(), constant_w(-1.0), biases)
        assert assembler.state is BuildState.UNINITIALIZED
        assert assembler.table is None

        table = assembler.build()
        assert assembler.state is BuildState.FINALIZED
        assert assembler.table is table
        assert assembler.build() is table

    def test_idempotent(self, biases):
        """Two builds with the same inputs agree exactly."""
        w = cpl_w(-0.9, 0.2, n_points=1025)
        first = compute_background(small_config(), w, biases)
        second = compute_background(small_config(), w, biases)
        for name in BackgroundTable.names:
            assert np.array_equal(first.samples(name)[1], second.samples(name)[1])

    def test_invalid_config(self, biases):
        """Configurations are validated before any work."""
        with pytest.raises(ValueError, match="initial condition"):
            BackgroundAssembler(small_config(z_max=25.0), constant_w(-1.0), biases)

        bad_params = CosmologicalParameters(Omega_cdm=0.5, Omega_de=0.9)
        with pytest.raises(ValueError, match="Omega_total"):
            BackgroundAssembler(small_config(params=bad_params), constant_w(-1.0), biases)

    def test_failure_resets_state(self, biases, monkeypatch):
        """A failed build leaves no table and can be retried."""
        def diverge(self, z):
            raise NumericalDivergenceError(z)

        monkeypatch.setattr("lssbg.background.GrowthSolver.solve", diverge)
        assembler = BackgroundAssembler(small_config(), constant_w(-1.0), biases)
        with pytest.raises(NumericalDivergenceError):
            assembler.build()
        assert assembler.state is BuildState.UNINITIALIZED
        assert assembler.table is None

        monkeypatch.undo()
        assembler.build()
        assert assembler.state is BuildState.FINALIZED

    def test_short_equation_of_state(self, biases):
        """w(z) must cover the EOS grid."""
        assembler = BackgroundAssembler(small_config(), constant_w(-1.0, z_max=50.0), biases)
        with pytest.raises(OutOfRangeError):
            assembler.build()
        assert assembler.state is BuildState.UNINITIALIZED

    def test_non_finite_column(self, biases):
        """NaN in any column is reported with its name and redshift."""
        config = small_config()
        assembler = BackgroundAssembler(config, constant_w(-1.0), biases)
        z = config.get_z_array()
        columns = {name: np.ones_like(z) for name in BackgroundTable.names[:-1]}
        columns["comoving_distance"] = z.copy()
        columns["H"][3] = np.nan

        with pytest.raises(NonFiniteResultError) as excinfo:
            assembler._finalize(z, columns)
        assert excinfo.value.quantity == "H"
        assert excinfo.value.z == z[3]

    def test_non_monotone_distance(self, biases):
        """A χ that fails to increase has no inverse."""
        config = small_config()
        assembler = BackgroundAssembler(config, constant_w(-1.0), biases)
        z = config.get_z_array()
        columns = {name: np.ones_like(z) for name in BackgroundTable.names[:-1]}
        chi = z.copy()
        chi[5] = chi[4]
        columns["comoving_distance"] = chi

        with pytest.raises(NonMonotoneInverseError) as excinfo:
            assembler._finalize(z, columns)
        assert excinfo.value.index == 5

    @pytest.mark.parametrize("method", ["linear", "pchip"])
    def test_interpolation_methods(self, biases, method):
        """Other interpolation methods reproduce the samples."""
        table = compute_background(small_config(interp_method=method), constant_w(-1.0), biases)
        z, H = table.samples("H")
        assert table.H.method == method
        assert_allclose(table.H(z), H, rtol=1e-14)
        assert_allclose(table.H(0.0), 1.0, rtol=1e-12)

    def test_build_logging(self, biases, caplog):
        """Start and end of the build are logged at INFO."""
        with caplog.at_level(logging.INFO, logger="lssbg.background"):
            compute_background(small_config(), constant_w(-1.0), biases)
        messages = [r.getMessage() for r in caplog.records]
        assert any("Initializing the background" in m for m in messages)
        assert any("Background initialized in" in m for m in messages)
