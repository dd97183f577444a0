"""Nonlinear correction (NLC) reconstruction.

B(k, z) = PC_0(log k, s) + sum_{p >= 1} w_p(theta) PC_p(log k, s)

where s is the step number of redshift z, PC_p are bicubic interpolants of
the principal-component surfaces over (log k, step number), and w_p are the
PCE weights of the cosmology theta.

Usage:
    emu = Emulator.from_file("ee2_bindata.dat")
    B = emu.compute_nlc(Cosmology(CosmoParams()), [0.0, 1.0], k)
"""

from __future__ import annotations

import jax
import jax.numpy as jnp
import numpy as np

from nlcemu.cosmology import Cosmology
from nlcemu.errors import LoadError, SplineDomainError
from nlcemu.interpolation import BicubicSpline
from nlcemu.io import CoefficientTable, load_coefficient_table
from nlcemu.log import get_logger
from nlcemu.params import PrecisionParams
from nlcemu.pce import legendre_basis, pce_weights

log = get_logger()


@jax.jit
def _reconstruct(surfaces, weights, logk, steps):
    """(n_z, n_k) matrix of PC_0 + sum_p w_p PC_p at (log k, step) pairs."""
    lk = logk[None, :]
    st = steps[:, None]
    nlc = surfaces[0].evaluate(lk, st)
    for p, surface in enumerate(surfaces[1:]):
        nlc = nlc + weights[p] * surface.evaluate(lk, st)
    return nlc


def _check_domain(values, lo, hi, what):
    outside = ~((values >= lo) & (values <= hi))
    if np.any(outside):
        raise SplineDomainError(
            f"{what} {values[outside][0]!r} outside the interpolation range [{lo!r}, {hi!r}]"
        )


class Emulator:
    """Reconstructs B(k, z) from a coefficient table.

    The table and the interpolators built from it are immutable; one
    Emulator can serve any number of cosmologies.

    Args:
        table: parsed coefficient table
        prec: precision parameters; lmax and n_steps must match the table

    Raises:
        LoadError: if the table does not match the expected layout.
    """

    def __init__(self, table: CoefficientTable, prec: PrecisionParams = PrecisionParams()):
        if table.nz != prec.n_steps + 1:
            raise LoadError(
                f"table has {table.nz} step numbers, expected {prec.n_steps + 1}"
            )
        if table.max_degree > prec.lmax:
            raise LoadError(
                f"multi-index degree {table.max_degree} exceeds lmax = {prec.lmax}"
            )
        self.table = table
        self.prec = prec

        self._logk_bounds = (float(np.log(table.k[0])), float(np.log(table.k[-1])))
        self.logk = jnp.asarray(np.log(table.k))
        self.steps = jnp.arange(table.nz, dtype=jnp.float64)
        self.surfaces = [
            BicubicSpline(self.logk, self.steps, pc) for pc in table.principal_components
        ]
        self._coefficients = [jnp.asarray(c) for c in table.pce_coefficients]
        self._multi_indices = [jnp.asarray(m) for m in table.pce_multi_indices]

        log.debug(
            "emulator: {} surfaces over log k in [{:.4g}, {:.4g}], steps 0..{}",
            len(self.surfaces), float(self.logk[0]), float(self.logk[-1]), table.nz - 1,
        )

    @classmethod
    def from_file(cls, path, prec: PrecisionParams = PrecisionParams(), **layout) -> Emulator:
        """Load a binary coefficient file and build the emulator.

        Keyword arguments (nk, nz, pce_lengths) override the file layout.
        """
        return cls(load_coefficient_table(path, **layout), prec)

    @property
    def n_components(self) -> int:
        return len(self.surfaces)

    @property
    def k_range(self) -> tuple[float, float]:
        return float(self.table.k[0]), float(self.table.k[-1])

    def _check_logk(self, logk: np.ndarray) -> None:
        _check_domain(logk, *self._logk_bounds, "log k")

    def evaluate_component(self, i: int, logk, step) -> np.ndarray:
        """Principal component i at (log k, step), broadcast together.

        Raises:
            SplineDomainError: if log k or step is outside the tabulated grid.
        """
        logk = np.asarray(logk, dtype=np.float64)
        step = np.asarray(step, dtype=np.float64)
        self._check_logk(logk)
        _check_domain(step, 0.0, float(self.steps[-1]), "step number")
        return np.asarray(self.surfaces[i].evaluate(logk, step))

    def pce_weights(self, cosmology: Cosmology) -> np.ndarray:
        """PCE weights w_1..w_{n_pc-1} of a cosmology."""
        basis = legendre_basis(cosmology.cosmo_normalized, self.prec.lmax)
        return np.asarray(pce_weights(basis, self._coefficients, self._multi_indices))

    def compute_nlc(self, cosmology: Cosmology, redshifts, k) -> np.ndarray:
        """Nonlinear correction B(k, z) on the redshift x wavenumber grid.

        Args:
            cosmology: a Cosmology (parameters already validated)
            redshifts: redshifts in [0, z_max]
            k: wavenumbers in h/Mpc within the table's k range

        Returns:
            Array of shape (len(redshifts), len(k)).

        Raises:
            SplineDomainError: if a redshift or wavenumber is outside the
                tabulated range.
        """
        z = np.atleast_1d(np.asarray(redshifts, dtype=np.float64)).ravel()
        k = np.atleast_1d(np.asarray(k, dtype=np.float64)).ravel()
        if z.size == 0 or k.size == 0:
            return np.empty((z.size, k.size))

        if np.any(~(k > 0.0)):
            raise SplineDomainError(f"wavenumbers must be positive, got {k[~(k > 0.0)][0]!r}")
        logk = np.log(k)
        self._check_logk(logk)
        if cosmology.prec.n_steps != self.prec.n_steps:
            raise ValueError(
                f"cosmology clock has {cosmology.prec.n_steps} steps, emulator table {self.prec.n_steps}"
            )
        steps = cosmology.compute_step_numbers(z)

        weights = self.pce_weights(cosmology)
        nlc = _reconstruct(self.surfaces, jnp.asarray(weights), jnp.asarray(logk), jnp.asarray(steps))
        return np.array(nlc)
