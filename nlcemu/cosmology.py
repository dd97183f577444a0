"""Cosmology: validated parameters, expansion history and the step-number clock.

The emulator's time coordinate is the N-body "step number": cosmic time
since z_max, in units of (t_0 - t(z_max)) / n_steps, so that z_max maps to
step 0 and z = 0 to step n_steps. A Cosmology integrates t(a) once on a
scale-factor grid and keeps a monotone spline t -> step number; lookups
integrate t at the query redshifts and evaluate that spline.

Usage:
    cosmo = Cosmology(CosmoParams(Omega_m=0.31))
    cosmo.compute_step_number(1.0)
"""

from __future__ import annotations

import jax.numpy as jnp
import numpy as np

from nlcemu import background as bkg
from nlcemu import constants as const
from nlcemu.errors import SplineDomainError
from nlcemu.interpolation import MonotoneCubicSpline
from nlcemu.log import get_logger
from nlcemu.params import CosmoParams, PrecisionParams

log = get_logger()


class Cosmology:
    """A w0waCDM + massive-neutrino cosmology inside the emulator's parameter box.

    Args:
        params: CosmoParams, or an ordered 8-sequence
            (Omega_b, Omega_m, Sum_m_nu, n_s, h, w_0, w_a, A_s)
        prec: precision parameters

    Raises:
        ParameterOutOfRange: if a parameter is outside its admissible range.
        IntegrationFailure: if a background integral does not converge.
    """

    def __init__(self, params=None, prec: PrecisionParams = PrecisionParams()):
        if params is None:
            params = CosmoParams()
        elif not isinstance(params, CosmoParams):
            params = CosmoParams.from_sequence(params)
        self.params = params
        self.prec = prec
        self.background = bkg.background_solve(params, prec)
        self._build_step_table()

    def _build_step_table(self):
        prec = self.prec
        a_start = 1.0 / (1.0 + prec.z_max)
        self.a_table = jnp.linspace(a_start, 1.0, prec.n_table)
        self.t_table = bkg.cosmic_time(self.a_table, self.background, prec)

        self.t_start = float(self.t_table[0])
        self.t_0 = float(self.t_table[-1])
        self.Delta_t = (self.t_0 - self.t_start) / prec.n_steps
        steps = (self.t_table - self.t_start) / self.Delta_t
        self._step_spline = MonotoneCubicSpline(self.t_table, steps)

        log.debug(
            "step table: {} samples, t_start={:.6g}, t_0={:.6g}, Delta_t={:.6g} (1/H0)",
            prec.n_table, self.t_start, self.t_0, self.Delta_t,
        )

    # -- parameters --------------------------------------------------------

    @property
    def cosmo(self) -> np.ndarray:
        """Ordered parameter 8-vector."""
        return self.params.as_array()

    @property
    def cosmo_normalized(self) -> np.ndarray:
        """Parameters mapped onto [-1, 1]."""
        return self.params.normalized()

    # -- expansion history -------------------------------------------------

    def Hubble(self, a):
        """H(a)/H0."""
        return bkg.Hubble(jnp.asarray(a, dtype=jnp.float64), self.background)

    def Omega_matter(self, a):
        return bkg.Omega_matter(jnp.asarray(a, dtype=jnp.float64), self.background)

    def Omega_gamma(self, a):
        return bkg.Omega_gamma(jnp.asarray(a, dtype=jnp.float64), self.background)

    def Omega_nu(self, a):
        return bkg.Omega_nu(jnp.asarray(a, dtype=jnp.float64), self.background)

    def Omega_DE(self, a):
        return bkg.Omega_DE(jnp.asarray(a, dtype=jnp.float64), self.background)

    def a2t(self, a) -> np.ndarray:
        """Cosmic time t(a) in units of 1/H0, for scalar or array a in [a_ini, 1].

        Every call integrates up to a = 1 and reads the queries off the same
        solution, so t(a) does not depend on which other points are requested.

        Raises:
            ValueError: if any a is outside [a_ini, 1].
            IntegrationFailure: if the quadrature does not converge.
        """
        a = np.asarray(a, dtype=np.float64)
        if not np.all((a >= self.prec.a_ini) & (a <= 1.0)):
            raise ValueError(f"scale factor must lie in [{self.prec.a_ini}, 1]")
        if a.size == 0:
            return np.empty(a.shape)
        a_unique, inverse = np.unique(np.append(a.ravel(), 1.0), return_inverse=True)
        t = np.asarray(bkg.cosmic_time(a_unique, self.background, self.prec))
        return t[inverse[:-1]].reshape(a.shape)

    # -- step-number clock -------------------------------------------------

    def _check_redshifts(self, z: np.ndarray) -> None:
        z_max = self.prec.z_max
        outside = ~((z >= 0.0) & (z <= z_max))
        if np.any(outside):
            bad = z[outside][0]
            raise SplineDomainError(
                f"redshift {bad!r} outside the step-number table range [0, {z_max}]"
            )

    def compute_step_numbers(self, redshifts) -> np.ndarray:
        """Step numbers for an array of redshifts in [0, z_max].

        Integrates t(a) at the requested scale factors and maps time to step
        number through the table spline.

        Raises:
            SplineDomainError: if any redshift lies outside [0, z_max].
            IntegrationFailure: if the quadrature does not converge.
        """
        z = np.asarray(redshifts, dtype=np.float64)
        self._check_redshifts(z)
        t = self.a2t(1.0 / (1.0 + z))
        steps = np.asarray(self._step_spline.evaluate(jnp.asarray(t)))
        # roundoff at the table ends
        return np.clip(steps, 0.0, self.prec.n_steps).reshape(z.shape)

    def compute_step_number(self, z: float) -> float:
        """Step number at redshift z: 0 at z_max, n_steps today.

        Raises:
            SplineDomainError: if z lies outside [0, z_max].
        """
        return float(self.compute_step_numbers(z))

    def cosmic_time(self, z) -> np.ndarray:
        """Cosmic time in units of 1/H0 at redshift(s) z."""
        z = np.asarray(z, dtype=np.float64)
        return self.a2t(1.0 / (1.0 + z))

    @property
    def age_Gyr(self) -> float:
        """Age of the universe today in Gyr."""
        return bkg.age_Gyr(self.t_0, self.params.h)

    def __repr__(self):
        fields = ", ".join(f"{k}={v:.6g}" for k, v in zip(const.PARAM_NAMES, self.params.as_tuple()))
        return f"Cosmology({fields})"
