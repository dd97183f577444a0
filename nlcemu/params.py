"""Parameter containers for nlcemu.

CosmoParams: the 8 emulator parameters, validated against the admissible
    ranges at construction.
PrecisionParams: numerical precision settings, static (grid sizes,
    quadrature tolerances, step budgets).

Both are frozen dataclasses; a CosmoParams instance that exists is always
inside the emulator's parameter box.
"""

from __future__ import annotations

from dataclasses import dataclass, fields

import numpy as np

from nlcemu import constants as const
from nlcemu.errors import ParameterOutOfRange


# ---------------------------------------------------------------------------
# CosmoParams
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CosmoParams:
    """Cosmological parameters of the emulator, in table order.

    Units:
        - Omega_b, Omega_m: density parameters today (Omega_m includes
          baryons and massive neutrinos)
        - Sum_m_nu: sum of neutrino masses in eV (three degenerate species)
        - n_s: scalar spectral index
        - h: dimensionless Hubble parameter H0/(100 km/s/Mpc)
        - w_0, w_a: CPL dark energy, w(a) = w_0 + w_a*(1-a)
        - A_s: primordial scalar amplitude

    Defaults are the fiducial cosmology the emulator is centred on.
    """

    Omega_b: float = 0.05
    Omega_m: float = 0.32
    Sum_m_nu: float = 0.0
    n_s: float = 0.96
    h: float = 0.67
    w_0: float = -1.0
    w_a: float = 0.0
    A_s: float = 2.1e-9

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Raise ParameterOutOfRange for the first parameter outside its range.

        NaN fails both comparisons and is reported against the minimum.
        """
        for i, (name, value) in enumerate(zip(const.PARAM_NAMES, self.as_tuple())):
            lo = const.PARAM_MINIMA[i]
            hi = const.PARAM_MAXIMA[i]
            if not value >= lo:
                raise ParameterOutOfRange(i, name, value, "minimum", lo)
            if not value <= hi:
                raise ParameterOutOfRange(i, name, value, "maximum", hi)

    def as_tuple(self) -> tuple[float, ...]:
        return tuple(float(getattr(self, f.name)) for f in fields(self))

    def as_array(self) -> np.ndarray:
        """Ordered 8-vector (Omega_b, Omega_m, Sum_m_nu, n_s, h, w_0, w_a, A_s)."""
        return np.array(self.as_tuple(), dtype=np.float64)

    def normalized(self) -> np.ndarray:
        """Parameters mapped affinely from their admissible ranges onto [-1, 1].

        These are the Legendre-polynomial evaluation points of the PCE.
        """
        lo = np.asarray(const.PARAM_MINIMA)
        hi = np.asarray(const.PARAM_MAXIMA)
        return 2.0 * (self.as_array() - lo) / (hi - lo) - 1.0

    @classmethod
    def from_sequence(cls, values) -> CosmoParams:
        """Build from an ordered 8-sequence."""
        values = tuple(float(v) for v in values)
        if len(values) != const.N_PARAMS:
            raise ValueError(
                f"expected {const.N_PARAMS} parameters {const.PARAM_NAMES}, got {len(values)}"
            )
        return cls(*values)

    def replace(self, **kwargs) -> CosmoParams:
        """Return a new (validated) CosmoParams with specified fields replaced."""
        current = {f.name: getattr(self, f.name) for f in fields(self)}
        current.update(kwargs)
        return CosmoParams(**current)


# ---------------------------------------------------------------------------
# PrecisionParams: static numerical settings
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PrecisionParams:
    """Numerical precision parameters.

    They control grid sizes, quadrature tolerances and step budgets. The
    step-number layout (n_steps, z_max) must match the coefficient table the
    emulator was trained on.
    """

    # PCE
    lmax: int = const.LMAX          # maximum Legendre degree

    # Step-number clock
    n_steps: int = const.NZ - 1     # step numbers run 0..n_steps
    z_max: float = 10.0             # redshift of step 0
    n_table: int = 100              # scale-factor samples for the step spline

    # Cosmic time integration
    a_ini: float = 1e-8             # reference early scale factor
    a2t_rtol: float = 1e-10
    a2t_atol: float = 1e-14

    # Massive neutrino energy integral
    nu_n_points: int = 256          # log(a) points for the tabulated integral
    nu_a_min: float = 1e-8          # below this, relativistic scaling law
    nu_p_max: float = 100.0         # momentum cutoff (e^-100 is negligible)
    nu_rtol: float = 1e-10
    nu_atol: float = 1e-12

    # Adaptive quadrature budget
    max_steps: int = 16384

    @staticmethod
    def fast():
        """Fast preset for tests and quick looks (~1e-6 relative accuracy)."""
        return PrecisionParams(
            n_table=60,
            nu_n_points=96,
            a2t_rtol=1e-8,
            a2t_atol=1e-12,
            nu_rtol=1e-8,
            nu_atol=1e-10,
        )
