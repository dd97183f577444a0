"""Test the background expansion history and cosmic time.

Checks analytic limits: photon density from T_cmb, massless and
non-relativistic neutrino limits, flatness, matter-dominated t(a), and the
age of a fiducial universe.
"""

import math

import jax.numpy as jnp
import numpy as np
import pytest

from nlcemu import constants as const
from nlcemu.background import (
    Hubble,
    Omega_DE,
    Omega_gamma,
    Omega_matter,
    Omega_nu,
    a2t_integrand,
    age_Gyr,
    background_solve,
    cosmic_time,
    rho_nu_i_integrand,
)
from nlcemu.params import CosmoParams, PrecisionParams
from tests.conftest import assert_close

PREC = PrecisionParams.fast()


@pytest.fixture(scope="module")
def bg():
    """Massless-neutrino fiducial background, computed once for this module."""
    return background_solve(CosmoParams(), PREC)


@pytest.fixture(scope="module")
def bg_massive():
    return background_solve(CosmoParams(Sum_m_nu=0.15, w_0=-0.9, w_a=0.3), PREC)


class TestDensities:

    def test_omega_gamma_h2(self, bg):
        """Omega_g h^2 = 2.4728e-5 for T_cmb = 2.7255 K."""
        val = bg.Omega_gamma_0 * bg.h**2
        assert abs(val / 2.4728e-5 - 1.0) < 1e-3, f"Omega_g h^2 = {val:.6e}"

    def test_massless_neutrinos(self, bg):
        ratio = bg.Omega_nu_rel_0 / bg.Omega_gamma_0
        expected = const.N_eff_default * 7.0 / 8.0 * (4.0 / 11.0) ** (4.0 / 3.0)
        assert abs(ratio - expected) < 1e-12
        assert bg.y_nu_0 == 0.0
        assert abs(bg.Omega_nu_0 - bg.Omega_nu_rel_0) < 1e-15

    def test_flatness_today(self, bg_massive):
        a = 1.0
        total = (Omega_matter(a, bg_massive) + Omega_gamma(a, bg_massive)
                 + Omega_nu(a, bg_massive) + Omega_DE(a, bg_massive))
        assert abs(float(total) - 1.0) < 1e-10
        assert abs(float(Hubble(a, bg_massive)) - 1.0) < 1e-10

    def test_massive_neutrinos_nonrelativistic(self, bg_massive):
        """Today Omega_nu h^2 ~ Sum_m_nu / 93.14 eV for Sum_m_nu = 0.15 eV."""
        val = bg_massive.Omega_nu_0 * bg_massive.h**2
        expected = 0.15 / 93.14
        assert abs(val / expected - 1.0) < 0.02, f"Omega_nu h^2 = {val:.5e}, expected ~{expected:.5e}"

    def test_neutrinos_relativistic_early(self, bg_massive):
        """At a = 1e-6 massive neutrinos behave as radiation."""
        a = 1e-6
        ratio = float(Omega_nu(a, bg_massive)) * a**4 / bg_massive.Omega_nu_rel_0
        assert abs(ratio - 1.0) < 1e-5

    def test_neutrinos_below_table(self, bg_massive):
        a = 1e-12
        assert float(Omega_nu(a, bg_massive)) * a**4 == pytest.approx(bg_massive.Omega_nu_rel_0, rel=1e-14)

    def test_matter_includes_neutrinos(self, bg_massive):
        assert abs(bg_massive.Omega_cb_0 + bg_massive.Omega_nu_0 - 0.32) < 1e-14

    def test_cpl_dark_energy(self, bg_massive):
        a = 0.5
        w0, wa = -0.9, 0.3
        expected = bg_massive.Omega_DE_0 * a ** (-3 * (1 + w0 + wa)) * math.exp(-3 * wa * (1 - a))
        assert float(Omega_DE(a, bg_massive)) == pytest.approx(expected, rel=1e-13)

    def test_hubble_decreasing(self, bg_massive):
        a = jnp.logspace(-6, 0, 200)
        H = np.asarray(Hubble(a, bg_massive))
        assert np.all(np.diff(H) < 0)


class TestIntegrands:

    def test_rho_nu_integrand_massless(self):
        p = jnp.array([0.5, 2.0, 7.0])
        assert jnp.allclose(rho_nu_i_integrand(p, 0.0), p**3 / (jnp.exp(p) + 1.0))

    def test_a2t_integrand_at_zero(self, bg_massive):
        """dt/da -> 0 as a -> 0, with no division by zero."""
        val = float(a2t_integrand(0.0, bg_massive))
        assert val == 0.0

    def test_a2t_integrand_matches_hubble(self, bg_massive):
        a = jnp.array([1e-3, 0.1, 0.7, 1.0])
        assert_close(a2t_integrand(a, bg_massive), 1.0 / (a * Hubble(a, bg_massive)), 1e-12, "dt/da")


class TestCosmicTime:

    def test_increasing(self, bg):
        a = jnp.linspace(0.05, 1.0, 40)
        t = np.asarray(cosmic_time(a, bg, PREC))
        assert np.all(np.diff(t) > 0)

    def test_matter_dominated_limit(self, bg):
        """Between equality and dark energy, t(a) ~ (2/3) a^{3/2} / sqrt(Omega_m)."""
        a = jnp.array([0.02, 0.05])
        t = np.asarray(cosmic_time(a, bg, PREC))
        t_md = 2.0 / 3.0 * np.asarray(a) ** 1.5 / math.sqrt(bg.Omega_cb_0 + bg.Omega_nu_0)
        assert_close(t, t_md, 0.03, "t(a) vs matter domination")

    def test_fiducial_age(self, bg):
        """Flat LCDM with Omega_m = 0.32, h = 0.67: age ~ 13.7 Gyr."""
        t0 = float(cosmic_time(jnp.array([1.0]), bg, PREC)[-1])
        Om = 0.32
        OL = 1.0 - Om
        # Analytic flat matter + Lambda age; radiation lowers it by ~Omega_r / Omega_m^1.5
        t0_exact = 2.0 / (3.0 * math.sqrt(OL)) * math.asinh(math.sqrt(OL / Om))
        assert abs(t0 / t0_exact - 1.0) < 2e-3, f"H0 t0 = {t0:.6f}, expected {t0_exact:.6f}"
        assert 13.4 < age_Gyr(t0, bg.h) < 14.0
