"""Physical constants and emulator layout constants for nlcemu.

Physical constants follow the CLASS v3.3.4 values (include/background.h).
Layout constants describe the precomputed coefficient table: 15 principal
components on a (613 k-modes x 101 step numbers) grid, with PCE expansions
for components 1..14.

References:
    CLASS source: include/background.h
    Knabenhans et al. (2021), MNRAS 505, 2840 (EuclidEmulator2)
"""

import math

# --- Conversion factors ---
Mpc_over_m = 3.085677581282e22
"""Conversion factor from meters to megaparsecs."""

Gyr_over_s = 365.25 * 24.0 * 3600.0 * 1e9
"""One gigayear (Julian years) in seconds."""

# --- Fundamental constants (SI) ---
c_SI = 2.99792458e8
"""Speed of light in m/s."""

G_SI = 6.67428e-11
"""Newton's gravitational constant in m^3/kg/s^2."""

eV_SI = 1.602176487e-19
"""1 eV expressed in Joules."""

k_B_SI = 1.3806504e-23
"""Boltzmann constant in J/K."""

h_P_SI = 6.62606896e-34
"""Planck constant in J*s."""

# --- Derived constants ---
sigma_B = 2.0 * math.pi**5 * k_B_SI**4 / (15.0 * h_P_SI**3 * c_SI**2)
"""Stefan-Boltzmann constant in W/m^2/K^4, 5.670400e-8."""

# --- CMB and neutrinos ---
T_cmb_default = 2.7255
"""CMB temperature today in Kelvin (Fixsen 2009)."""

N_eff_default = 3.046
"""Effective number of relativistic neutrino species."""

N_nu_massive = 3
"""Number of (degenerate) massive neutrino species sharing Sum_m_nu."""

T_ncdm_over_T_cmb_default = (4.0 / 11.0) ** (1.0 / 3.0)
"""Neutrino temperature relative to photon temperature, instantaneous decoupling."""

zeta3 = 1.2020569031595942853997381615114499907649862923404988817922
"""Riemann zeta(3), sets the non-relativistic limit of the neutrino integral."""

rho_nu_integral_relativistic = 7.0 * math.pi**4 / 120.0
"""int_0^inf p^3 / (e^p + 1) dp, the massless limit of the neutrino energy integral."""

# --- Coefficient table layout ---
N_PC = 15
"""Number of principal components (component 0 is the PCA mean)."""

NK = 613
"""Number of tabulated wavenumbers."""

NZ = 101
"""Number of tabulated step numbers (0..100)."""

N_PARAMS = 8
"""Number of cosmological parameters."""

PCE_LENGTHS = (53, 53, 117, 117, 53, 117, 117, 117, 117, 521, 117, 1539, 173, 457)
"""Number of PCE coefficients for principal components 1..14."""

LMAX = 16
"""Maximum Legendre degree appearing in the PCE multi-indices."""

# --- Admissible parameter ranges (inclusive) ---
PARAM_NAMES = ("Omega_b", "Omega_m", "Sum_m_nu", "n_s", "h", "w_0", "w_a", "A_s")
PARAM_MINIMA = (0.04, 0.24, 0.00, 0.92, 0.61, -1.3, -0.7, 1.7e-9)
PARAM_MAXIMA = (0.06, 0.40, 0.15, 1.00, 0.73, -0.7, 0.7, 2.5e-9)
