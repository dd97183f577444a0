"""Spline interpolation for nlcemu, registered as JAX pytrees.

Three interpolants, all pure JAX so they can be closed over by jitted kernels
and passed through diffrax as ODE arguments:

- CubicSpline: natural cubic spline (Thomas algorithm via jax.lax.fori_loop).
  Used for the tabulated neutrino integral and as the derivative estimator of
  the bicubic scheme.
- MonotoneCubicSpline: piecewise cubic Hermite with Fritsch-Carlson slopes
  (PCHIP). Preserves monotonicity of the data; used for the time -> step number
  clock.
- BicubicSpline: bicubic Hermite patches on a rectilinear grid, with partial
  derivatives z_x, z_y, z_xy taken from natural cubic splines along each axis
  (the scheme of GSL's interp2d_bicubic). Used for the principal-component
  surfaces.

Evaluation clamps to the knot range. Callers that must not extrapolate check
the domain before evaluating (see Cosmology and Emulator), so jitted kernels
never branch on data.

References:
    DISCO-EB: src/discoeb/spline_interpolation.py
    Fritsch & Carlson (1980), SIAM J. Numer. Anal. 17, 238
    GSL: interpolation/bicubic.c
"""

from __future__ import annotations

import jax
import jax.numpy as jnp
from jaxtyping import Array, Float


def _locate(knots, x_eval):
    """Clamp x_eval to the knot range; return (clamped x, interval index, width)."""
    x_clamped = jnp.clip(x_eval, knots[0], knots[-1])
    idx = jnp.searchsorted(knots, x_clamped, side="right") - 1
    idx = jnp.clip(idx, 0, knots.shape[0] - 2)
    h = knots[idx + 1] - knots[idx]
    return x_clamped, idx, h


def _hermite_basis(t):
    """Cubic Hermite basis (h00, h10, h01, h11) on the unit interval."""
    t2 = t * t
    t3 = t2 * t
    h00 = 2.0 * t3 - 3.0 * t2 + 1.0
    h10 = t3 - 2.0 * t2 + t
    h01 = -2.0 * t3 + 3.0 * t2
    h11 = t3 - t2
    return h00, h10, h01, h11


# ---------------------------------------------------------------------------
# Natural cubic spline
# ---------------------------------------------------------------------------

@jax.tree_util.register_pytree_node_class
class CubicSpline:
    """Natural cubic spline interpolation, registered as a JAX pytree.

    The spline satisfies: S''(x[0]) = S''(x[-1]) = 0 (natural boundary conditions).

    Attributes:
        x: knot positions, shape (N,), strictly increasing
        y: knot values, shape (N,)
        d2y: second derivatives at knots, shape (N,), from tridiagonal solve
    """

    def __init__(self, x: Float[Array, "N"], y: Float[Array, "N"]):
        self.x = jnp.asarray(x)
        self.y = jnp.asarray(y)
        self.d2y = _compute_natural_spline_coeffs(self.x, self.y)

    def evaluate(self, x_eval: Float[Array, "..."]) -> Float[Array, "..."]:
        """Evaluate the spline at given points.

        S(x) = A*y_i + B*y_{i+1} + (A^3 - A)*d2y_i*h^2/6 + (B^3 - B)*d2y_{i+1}*h^2/6
        where A = (x_{i+1} - x) / h, B = (x - x_i) / h, h = x_{i+1} - x_i.
        """
        x_clamped, idx, h = _locate(self.x, jnp.asarray(x_eval))
        A = (self.x[idx + 1] - x_clamped) / h
        B = (x_clamped - self.x[idx]) / h
        return (
            A * self.y[idx]
            + B * self.y[idx + 1]
            + ((A**3 - A) * self.d2y[idx] + (B**3 - B) * self.d2y[idx + 1])
            * h**2
            / 6.0
        )

    def derivative(self, x_eval: Float[Array, "..."]) -> Float[Array, "..."]:
        """Evaluate the first derivative of the spline.

        S'(x) = (y_{i+1} - y_i)/h - (3A^2 - 1)*d2y_i*h/6 + (3B^2 - 1)*d2y_{i+1}*h/6
        """
        x_clamped, idx, h = _locate(self.x, jnp.asarray(x_eval))
        A = (self.x[idx + 1] - x_clamped) / h
        B = (x_clamped - self.x[idx]) / h
        return (
            (self.y[idx + 1] - self.y[idx]) / h
            - (3.0 * A**2 - 1.0) * self.d2y[idx] * h / 6.0
            + (3.0 * B**2 - 1.0) * self.d2y[idx + 1] * h / 6.0
        )

    def tree_flatten(self):
        return (self.x, self.y, self.d2y), None

    @classmethod
    def tree_unflatten(cls, aux_data, children):
        obj = object.__new__(cls)
        obj.x, obj.y, obj.d2y = children
        return obj


def _compute_natural_spline_coeffs(
    x: Float[Array, "N"], y: Float[Array, "N"]
) -> Float[Array, "N"]:
    """Second derivatives of the natural cubic spline via the Thomas algorithm.

    The tridiagonal system for interior knots is:
        h_{i-1} * d2y_{i-1} + 2(h_{i-1} + h_i) * d2y_i + h_i * d2y_{i+1} = rhs_i
    with rhs_i = 6 * [(y_{i+1}-y_i)/h_i - (y_i-y_{i-1})/h_{i-1}] and
    d2y[0] = d2y[-1] = 0.
    """
    n = x.shape[0]
    if n < 3:
        # Two knots: the natural spline is the straight line.
        return jnp.zeros_like(y)

    h = x[1:] - x[:-1]
    rhs = 6.0 * ((y[2:] - y[1:-1]) / h[1:] - (y[1:-1] - y[:-2]) / h[:-1])
    diag = 2.0 * (h[:-1] + h[1:])
    lower = h[:-1]
    upper = h[1:]

    def forward_step(i, carry):
        d, r = carry
        w = lower[i] / d[i - 1]
        d = d.at[i].set(d[i] - w * upper[i - 1])
        r = r.at[i].set(r[i] - w * r[i - 1])
        return (d, r)

    diag_mod, rhs_mod = jax.lax.fori_loop(1, n - 2, forward_step, (diag, rhs))

    d2y_interior = jnp.zeros(n - 2, dtype=rhs.dtype)
    d2y_interior = d2y_interior.at[-1].set(rhs_mod[-1] / diag_mod[-1])

    def backward_step(i, d2y):
        j = n - 4 - i  # counts down from n-4 to 0
        return d2y.at[j].set((rhs_mod[j] - upper[j] * d2y[j + 1]) / diag_mod[j])

    d2y_interior = jax.lax.fori_loop(0, n - 3, backward_step, d2y_interior)

    zero = jnp.zeros(1, dtype=rhs.dtype)
    return jnp.concatenate([zero, d2y_interior, zero])


# ---------------------------------------------------------------------------
# Monotone cubic spline (PCHIP)
# ---------------------------------------------------------------------------

@jax.tree_util.register_pytree_node_class
class MonotoneCubicSpline:
    """Monotonicity-preserving piecewise cubic Hermite interpolant.

    Interior slopes are the weighted harmonic mean of the neighbouring
    secants (zero at local extrema); end slopes use the shape-preserving
    three-point formula. If the knot values are monotone, so is the spline.

    Attributes:
        x: knot positions, shape (N,), strictly increasing, N >= 2
        y: knot values, shape (N,)
        dy: slopes at knots, shape (N,)
    """

    def __init__(self, x: Float[Array, "N"], y: Float[Array, "N"]):
        self.x = jnp.asarray(x)
        self.y = jnp.asarray(y)
        self.dy = _pchip_slopes(self.x, self.y)

    def evaluate(self, x_eval: Float[Array, "..."]) -> Float[Array, "..."]:
        x_clamped, idx, h = _locate(self.x, jnp.asarray(x_eval))
        t = (x_clamped - self.x[idx]) / h
        h00, h10, h01, h11 = _hermite_basis(t)
        return (
            h00 * self.y[idx]
            + h10 * h * self.dy[idx]
            + h01 * self.y[idx + 1]
            + h11 * h * self.dy[idx + 1]
        )

    def derivative(self, x_eval: Float[Array, "..."]) -> Float[Array, "..."]:
        x_clamped, idx, h = _locate(self.x, jnp.asarray(x_eval))
        t = (x_clamped - self.x[idx]) / h
        t2 = t * t
        return (
            (6.0 * t2 - 6.0 * t) * (self.y[idx] - self.y[idx + 1]) / h
            + (3.0 * t2 - 4.0 * t + 1.0) * self.dy[idx]
            + (3.0 * t2 - 2.0 * t) * self.dy[idx + 1]
        )

    def tree_flatten(self):
        return (self.x, self.y, self.dy), None

    @classmethod
    def tree_unflatten(cls, aux_data, children):
        obj = object.__new__(cls)
        obj.x, obj.y, obj.dy = children
        return obj


def _pchip_end_slope(h0, h1, m0, m1):
    """Shape-preserving one-sided three-point slope at an end knot."""
    d = ((2.0 * h0 + h1) * m0 - h0 * m1) / (h0 + h1)
    d = jnp.where(jnp.sign(d) != jnp.sign(m0), 0.0, d)
    overshoot = (jnp.sign(m0) != jnp.sign(m1)) & (jnp.abs(d) > 3.0 * jnp.abs(m0))
    return jnp.where(overshoot, 3.0 * m0, d)


def _pchip_slopes(x: Float[Array, "N"], y: Float[Array, "N"]) -> Float[Array, "N"]:
    """Fritsch-Carlson slopes, as in scipy.interpolate.PchipInterpolator."""
    h = x[1:] - x[:-1]
    m = (y[1:] - y[:-1]) / h
    if x.shape[0] == 2:
        return jnp.array([m[0], m[0]])

    w1 = 2.0 * h[1:] + h[:-1]
    w2 = h[1:] + 2.0 * h[:-1]
    extremum = (m[:-1] * m[1:]) <= 0.0
    m_prev = jnp.where(extremum, 1.0, m[:-1])
    m_next = jnp.where(extremum, 1.0, m[1:])
    interior = jnp.where(extremum, 0.0, (w1 + w2) / (w1 / m_prev + w2 / m_next))

    first = _pchip_end_slope(h[0], h[1], m[0], m[1])
    last = _pchip_end_slope(h[-1], h[-2], m[-1], m[-2])
    return jnp.concatenate([first[None], interior, last[None]])


# ---------------------------------------------------------------------------
# Bicubic spline on a rectilinear grid
# ---------------------------------------------------------------------------

def _axis_derivative(knots, values, axis):
    """d(values)/d(knots) at the knots, from natural splines along `axis`."""
    deriv = lambda col: CubicSpline(knots, col).derivative(knots)
    return jax.vmap(deriv, in_axes=axis, out_axes=axis)(values)


@jax.tree_util.register_pytree_node_class
class BicubicSpline:
    """Bicubic Hermite interpolation of z(x, y) on a rectilinear grid.

    Attributes:
        x: first-axis knots, shape (Nx,), strictly increasing
        y: second-axis knots, shape (Ny,), strictly increasing
        z: values, shape (Nx, Ny), z[i, j] = z(x_i, y_j)
        zx, zy, zxy: partial derivatives at the knots, shape (Nx, Ny)
    """

    def __init__(self, x: Float[Array, "Nx"], y: Float[Array, "Ny"], z: Float[Array, "Nx Ny"]):
        self.x = jnp.asarray(x)
        self.y = jnp.asarray(y)
        self.z = jnp.asarray(z)
        self.zx = _axis_derivative(self.x, self.z, 1)
        self.zy = _axis_derivative(self.y, self.z, 0)
        self.zxy = _axis_derivative(self.x, self.zy, 1)

    @property
    def domain(self) -> tuple[float, float, float, float]:
        """(x_min, x_max, y_min, y_max) of the tabulated grid."""
        return (float(self.x[0]), float(self.x[-1]), float(self.y[0]), float(self.y[-1]))

    def evaluate(self, x_eval: Float[Array, "..."], y_eval: Float[Array, "..."]) -> Float[Array, "..."]:
        """Evaluate at broadcast-compatible point arrays x_eval, y_eval."""
        x_eval, y_eval = jnp.broadcast_arrays(jnp.asarray(x_eval), jnp.asarray(y_eval))
        xc, i, dx = _locate(self.x, x_eval)
        yc, j, dy = _locate(self.y, y_eval)
        hx = _hermite_basis((xc - self.x[i]) / dx)
        hy = _hermite_basis((yc - self.y[j]) / dy)

        # Corner p (x side) / q (y side): value basis at index 2p, slope basis at 2p+1.
        result = jnp.zeros_like(xc)
        for p in (0, 1):
            for q in (0, 1):
                ip = i + p
                jq = j + q
                result = result + (
                    hx[2 * p] * hy[2 * q] * self.z[ip, jq]
                    + hx[2 * p + 1] * hy[2 * q] * dx * self.zx[ip, jq]
                    + hx[2 * p] * hy[2 * q + 1] * dy * self.zy[ip, jq]
                    + hx[2 * p + 1] * hy[2 * q + 1] * dx * dy * self.zxy[ip, jq]
                )
        return result

    def evaluate_grid(self, x_eval: Float[Array, "Mx"], y_eval: Float[Array, "My"]) -> Float[Array, "Mx My"]:
        """Evaluate on the outer product grid of x_eval and y_eval."""
        xx, yy = jnp.meshgrid(jnp.asarray(x_eval), jnp.asarray(y_eval), indexing="ij")
        return self.evaluate(xx, yy)

    def tree_flatten(self):
        return (self.x, self.y, self.z, self.zx, self.zy, self.zxy), None

    @classmethod
    def tree_unflatten(cls, aux_data, children):
        obj = object.__new__(cls)
        obj.x, obj.y, obj.z, obj.zx, obj.zy, obj.zxy = children
        return obj
