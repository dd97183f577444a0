"""Background cosmology for nlcemu.

Expansion history of a flat w0waCDM universe with photons and three
degenerate massive neutrinos, and the cosmic time t(a) obtained by
integrating dt/da = 1/(a H(a)).

All densities Omega_x(a) are in units of the critical density TODAY, so
that (H(a)/H0)^2 = sum_x Omega_x(a). Times are in units of 1/H0.

Key functions:
    background_solve(params, prec) -> BackgroundResult
    Hubble(a, bg), Omega_matter/gamma/nu/DE(a, bg)
    cosmic_time(a, bg, prec)

Design choices:
    - The massive-neutrino energy integral is tabulated once per cosmology
      on a log(a) grid (DISCO-EB pattern) by adaptive quadrature over
      momentum, and stored as a spline of log F(a), F = I(y)/I(0).
    - Below nu_a_min neutrinos are relativistic and follow the a^-4
      scaling law without any integral.
    - The time integrand is written as a / sqrt(a^4 H^2/H0^2); a^4 H^2 is
      finite at a = 0, so the integrand never divides by zero.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import jax
import jax.numpy as jnp
import numpy as np
from jaxtyping import Array, Float

from nlcemu import constants as const
from nlcemu.interpolation import CubicSpline
from nlcemu.log import get_logger
from nlcemu.params import CosmoParams, PrecisionParams
from nlcemu.quadrature import integrate

log = get_logger()


# ---------------------------------------------------------------------------
# BackgroundResult
# ---------------------------------------------------------------------------

@jax.tree_util.register_pytree_node_class
@dataclass(frozen=True)
class BackgroundResult:
    """Output of the background module.

    Present-day densities (units of the critical density today) plus the
    tabulated neutrino integral. Everything a density function needs, so
    the functions below are pure functions of (a, bg).
    """

    h: float
    Omega_gamma_0: float      # photons
    Omega_nu_rel_0: float     # neutrinos if they were massless
    Omega_nu_0: float         # massive neutrinos today
    Omega_cb_0: float         # cold dark matter + baryons
    Omega_DE_0: float         # dark energy (flatness)
    w_0: float
    w_a: float
    y_nu_0: float             # m_nu / (k_B T_nu) today, per species
    loga_nu_min: float        # below this, relativistic neutrinos
    log_F_nu_of_loga: CubicSpline  # log(I(y)/I(0)) as a function of log(a)

    def tree_flatten(self):
        fields = [
            self.h, self.Omega_gamma_0, self.Omega_nu_rel_0, self.Omega_nu_0,
            self.Omega_cb_0, self.Omega_DE_0, self.w_0, self.w_a,
            self.y_nu_0, self.loga_nu_min, self.log_F_nu_of_loga,
        ]
        return fields, None

    @classmethod
    def tree_unflatten(cls, aux, fields):
        return cls(*fields)


# ---------------------------------------------------------------------------
# Present-day densities
# ---------------------------------------------------------------------------

def _H0_SI(h: float) -> float:
    """H0 in s^-1: h * 100 km/s/Mpc = h * 1e5 m/s / Mpc."""
    return h * 1e5 / const.Mpc_over_m


def _compute_omega_gamma(T_cmb: float, h: float) -> float:
    """Photon density parameter from the CMB temperature.

    Omega_g = rho_g / rho_crit with
        rho_g    = 4 sigma_B T^4 / c^3        [kg/m^3]
        rho_crit = 3 H0^2 / (8 pi G)          [kg/m^3]
    Omega_g h^2 = 2.4728e-5 for T_cmb = 2.7255 K.
    """
    rho_g = 4.0 * const.sigma_B * T_cmb**4 / const.c_SI**3
    rho_crit = 3.0 * _H0_SI(h) ** 2 / (8.0 * math.pi * const.G_SI)
    return rho_g / rho_crit


def _compute_omega_nu_rel(N_eff: float, Omega_gamma: float) -> float:
    """Massless-limit neutrino density: N_eff * (7/8) * (4/11)^(4/3) * Omega_g."""
    return N_eff * (7.0 / 8.0) * (4.0 / 11.0) ** (4.0 / 3.0) * Omega_gamma


def _neutrino_mass_ratio(Sum_m_nu: float, T_cmb: float, N_eff: float) -> float:
    """Dimensionless mass y0 = m_nu / (k_B T_nu0) of one of the degenerate species.

    T_nu0 = (4/11)^(1/3) (N_eff/3)^(1/4) T_cmb, so that the massless limit
    reproduces Omega_nu_rel_0.
    """
    m_nu_eV = Sum_m_nu / const.N_nu_massive
    T_nu0 = (
        const.T_ncdm_over_T_cmb_default
        * (N_eff / const.N_nu_massive) ** 0.25
        * T_cmb
    )
    return m_nu_eV * const.eV_SI / (const.k_B_SI * T_nu0)


# ---------------------------------------------------------------------------
# Massive neutrino energy integral
# ---------------------------------------------------------------------------

def rho_nu_i_integrand(p: Float[Array, "..."], y: Float[Array, "..."]) -> Float[Array, "..."]:
    """Fermi-Dirac energy integrand p^2 sqrt(p^2 + y^2) / (e^p + 1).

    p is the comoving momentum in units of k_B T_nu0, y = m_nu a / (k_B T_nu0).
    Integrated over p in [0, inf) it gives I(y), with I(0) = 7 pi^4 / 120.
    """
    return p**2 * jnp.sqrt(p**2 + y**2) / (jnp.exp(p) + 1.0)


def _tabulate_neutrino_integral(
    y_nu_0: float,
    prec: PrecisionParams,
) -> tuple[Float[Array, "N"], Float[Array, "N"]]:
    """Return (log a grid, log F) with F(a) = I(y_nu_0 a) / I(0).

    All grid points share one adaptive quadrature over momentum; the error
    control is on the worst grid point.
    """
    loga_grid = jnp.linspace(math.log(prec.nu_a_min), 0.0, prec.nu_n_points)
    if y_nu_0 == 0.0:
        log.debug("massless neutrinos: F(a) = 1, no momentum integral")
        return loga_grid, jnp.zeros_like(loga_grid)

    y_grid = y_nu_0 * jnp.exp(loga_grid)
    I_grid = integrate(
        rho_nu_i_integrand,
        0.0,
        prec.nu_p_max,
        name="rho_nu_i",
        y0=jnp.zeros_like(y_grid),
        args=y_grid,
        rtol=prec.nu_rtol,
        atol=prec.nu_atol,
        max_steps=prec.max_steps,
    )
    log_F = jnp.log(I_grid / const.rho_nu_integral_relativistic)
    log.debug(
        "neutrino integral tabulated on {} points, F(a=1) = {:.6g}",
        prec.nu_n_points, float(jnp.exp(log_F[-1])),
    )
    return loga_grid, log_F


def _F_nu(a, bg: BackgroundResult):
    """I(y(a)) / I(0); exactly 1 in the relativistic regime a < nu_a_min."""
    loga = jnp.log(jnp.maximum(a, jnp.exp(bg.loga_nu_min)))
    F = jnp.exp(bg.log_F_nu_of_loga.evaluate(loga))
    return jnp.where(loga <= bg.loga_nu_min, 1.0, F)


# ---------------------------------------------------------------------------
# Expansion history
# ---------------------------------------------------------------------------

def Omega_gamma(a, bg: BackgroundResult):
    """Photon density at scale factor a: Omega_g0 / a^4."""
    return bg.Omega_gamma_0 / a**4


def Omega_nu(a, bg: BackgroundResult):
    """Massive neutrino density: Omega_nu_rel0 * F(a) / a^4."""
    return bg.Omega_nu_rel_0 * _F_nu(a, bg) / a**4


def Omega_matter(a, bg: BackgroundResult):
    """Cold matter (CDM + baryons) density: Omega_cb0 / a^3."""
    return bg.Omega_cb_0 / a**3


def _rho_de_ratio(a, w_0, w_a):
    """rho_DE(a)/rho_DE0 for CPL: a^{-3(1+w0+wa)} exp(-3 wa (1-a))."""
    return a ** (-3.0 * (1.0 + w_0 + w_a)) * jnp.exp(-3.0 * w_a * (1.0 - a))


def Omega_DE(a, bg: BackgroundResult):
    """Dark energy density with CPL w(a) = w0 + wa (1-a)."""
    return bg.Omega_DE_0 * _rho_de_ratio(a, bg.w_0, bg.w_a)


def Hubble(a, bg: BackgroundResult):
    """Normalized expansion rate H(a)/H0."""
    return jnp.sqrt(
        Omega_matter(a, bg) + Omega_gamma(a, bg) + Omega_nu(a, bg) + Omega_DE(a, bg)
    )


def _a4_hubble2(a, bg: BackgroundResult):
    """a^4 (H/H0)^2, finite down to a = 0.

    The dark energy term becomes Omega_DE0 a^{1-3(w0+wa)} exp(-3 wa (1-a));
    its exponent is >= 1 inside the parameter box.
    """
    de = (
        bg.Omega_DE_0
        * a ** (1.0 - 3.0 * (bg.w_0 + bg.w_a))
        * jnp.exp(-3.0 * bg.w_a * (1.0 - a))
    )
    return bg.Omega_gamma_0 + bg.Omega_nu_rel_0 * _F_nu(a, bg) + bg.Omega_cb_0 * a + de


def a2t_integrand(a, bg: BackgroundResult):
    """dt/da = 1/(a H(a)) in units of 1/H0, written as a / sqrt(a^4 H^2)."""
    return a / jnp.sqrt(_a4_hubble2(a, bg))


# ---------------------------------------------------------------------------
# Cosmic time
# ---------------------------------------------------------------------------

def cosmic_time(
    a_points: Float[Array, "N"],
    bg: BackgroundResult,
    prec: PrecisionParams = PrecisionParams(),
) -> Float[Array, "N"]:
    """Cosmic time t(a) in units of 1/H0 at increasing scale factors a_points.

    Integrated from the reference early scale factor a_ini, where the
    universe is radiation dominated and t = 1/(2H).

    Raises:
        IntegrationFailure: if the quadrature does not converge.
    """
    a_points = jnp.asarray(a_points, dtype=jnp.float64)
    t_ini = 1.0 / (2.0 * Hubble(prec.a_ini, bg))
    return integrate(
        a2t_integrand,
        prec.a_ini,
        float(a_points[-1]),
        name="a2t",
        y0=t_ini,
        save_points=a_points,
        args=bg,
        rtol=prec.a2t_rtol,
        atol=prec.a2t_atol,
        max_steps=prec.max_steps,
    )


def age_Gyr(t0: float, h: float) -> float:
    """Convert a cosmic time in units of 1/H0 to Gyr."""
    return float(t0) / _H0_SI(h) / const.Gyr_over_s


# ---------------------------------------------------------------------------
# Main solver
# ---------------------------------------------------------------------------

def background_solve(
    params: CosmoParams,
    prec: PrecisionParams = PrecisionParams(),
) -> BackgroundResult:
    """Derive present-day densities and tabulate the neutrino integral.

    Args:
        params: validated cosmological parameters
        prec: precision parameters (static)

    Returns:
        BackgroundResult

    Raises:
        IntegrationFailure: if the neutrino momentum integral does not converge.
    """
    Omega_gamma_0 = _compute_omega_gamma(const.T_cmb_default, params.h)
    Omega_nu_rel_0 = _compute_omega_nu_rel(const.N_eff_default, Omega_gamma_0)
    y_nu_0 = _neutrino_mass_ratio(params.Sum_m_nu, const.T_cmb_default, const.N_eff_default)

    loga_grid, log_F = _tabulate_neutrino_integral(y_nu_0, prec)
    log_F_spline = CubicSpline(loga_grid, log_F)

    # Omega_m includes massive neutrinos; cold matter is the remainder.
    Omega_nu_0 = Omega_nu_rel_0 * float(np.exp(log_F[-1]))
    Omega_cb_0 = params.Omega_m - Omega_nu_0
    # Flatness: Omega_cb + Omega_nu + Omega_g + Omega_DE = 1.
    Omega_DE_0 = 1.0 - params.Omega_m - Omega_gamma_0

    log.debug(
        "background: Omega_g0={:.4e} Omega_nu0={:.4e} Omega_cb0={:.5f} Omega_DE0={:.5f}",
        Omega_gamma_0, Omega_nu_0, Omega_cb_0, Omega_DE_0,
    )

    return BackgroundResult(
        h=params.h,
        Omega_gamma_0=Omega_gamma_0,
        Omega_nu_rel_0=Omega_nu_rel_0,
        Omega_nu_0=Omega_nu_0,
        Omega_cb_0=Omega_cb_0,
        Omega_DE_0=Omega_DE_0,
        w_0=params.w_0,
        w_a=params.w_a,
        y_nu_0=y_nu_0,
        loga_nu_min=float(loga_grid[0]),
        log_F_nu_of_loga=log_F_spline,
    )
