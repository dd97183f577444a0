"""Adaptive quadrature on top of Diffrax.

A definite integral I(x) = int_{x0}^{x} f(s) ds is the solution of the ODE
dI/dx = f(x), I(x0) = I0. Solving it with an embedded Runge-Kutta pair and a
PID step-size controller gives adaptive quadrature with a bounded error per
step and a fixed step budget (max_steps). Vector-valued integrands share the
step sequence, which is how whole tables are integrated in one pass.

Convergence is checked at the Python boundary: a solve that exhausts its
budget or produces non-finite values raises IntegrationFailure.

References:
    Diffrax docs: https://docs.kidger.site/diffrax/
"""

import diffrax
import jax.numpy as jnp
import numpy as np
from jaxtyping import Array, Float

from nlcemu.errors import IntegrationFailure
from nlcemu.log import get_logger

log = get_logger()


def _max_norm(x):
    """Error norm: worst component, so every entry of a table meets the tolerance."""
    return jnp.max(jnp.abs(x))


def _integrand_field(x, y, args):
    """dI/dx = f(x, args), with the integrand carried in args."""
    integrand, integrand_args = args
    return integrand(x, integrand_args)


def integrate(
    integrand,
    lower: float,
    upper: float,
    name: str,
    y0=0.0,
    save_points=None,
    args=None,
    rtol: float = 1e-10,
    atol: float = 1e-12,
    max_steps: int = 16384,
) -> Float[Array, "..."]:
    """Integrate integrand(x, args) from lower to upper adaptively.

    Args:
        integrand: callable (x, args) -> f(x), scalar or array-valued
        lower: lower integration limit
        upper: upper integration limit
        name: name of the integral, reported in IntegrationFailure
        y0: value of the integral at `lower` (same shape as f)
        save_points: optional increasing array of abscissae in [lower, upper];
            if given, the running integral is returned at each of them
        args: additional arguments passed to integrand
        rtol: relative tolerance per step
        atol: absolute tolerance per step
        max_steps: maximum number of accepted + rejected steps

    Returns:
        The integral at `upper`, or an array of running integrals at
        `save_points` (leading axis = points).

    Raises:
        IntegrationFailure: if the step budget is exhausted or the result is
            not finite.
    """
    if save_points is None:
        saveat = diffrax.SaveAt(t1=True)
    else:
        saveat = diffrax.SaveAt(ts=jnp.asarray(save_points))

    sol = diffrax.diffeqsolve(
        diffrax.ODETerm(_integrand_field),
        solver=diffrax.Tsit5(),
        t0=lower,
        t1=upper,
        dt0=None,
        y0=jnp.asarray(y0, dtype=jnp.float64),
        saveat=saveat,
        stepsize_controller=diffrax.PIDController(rtol=rtol, atol=atol, norm=_max_norm),
        max_steps=max_steps,
        args=(integrand, args),
        throw=False,
    )
    check_converged(sol, name)

    log.debug("{}: {} steps over [{:.3g}, {:.3g}]", name, int(sol.stats["num_steps"]), lower, upper)
    if save_points is None:
        return sol.ys[0]
    return sol.ys


def check_converged(sol, name: str) -> None:
    """Raise IntegrationFailure unless `sol` finished successfully with finite values."""
    if not bool(sol.result == diffrax.RESULTS.successful):
        raise IntegrationFailure(name, f"solver stopped with '{sol.result}'")
    if not bool(np.all(np.isfinite(np.asarray(sol.ys)))):
        raise IntegrationFailure(name, "non-finite result")
