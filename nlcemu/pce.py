"""Polynomial chaos expansion (PCE) of the principal-component weights.

Each weight w_p(theta) is a sum of products of orthonormal Legendre
polynomials in the normalized parameters x = normalized(theta) in [-1, 1]:

    w_p = sum_c coeff[p][c] * prod_i  sqrt(2 l + 1) P_l(x_i),   l = mi[p][c, i]

The basis matrix is computed once per cosmology; each weight is then a
gather, a product over parameters and a dot product over terms.
"""

from __future__ import annotations

import jax
import jax.numpy as jnp
from jaxtyping import Array, Float, Int


def legendre_basis(x: Float[Array, "P"], lmax: int) -> Float[Array, "P L"]:
    """Orthonormal Legendre basis sqrt(2l+1) P_l(x) for l = 0..lmax.

    Uses the Bonnet recurrence (l+1) P_{l+1} = (2l+1) x P_l - l P_{l-1}.

    Returns:
        Array of shape (len(x), lmax + 1), entry [i, l] = sqrt(2l+1) P_l(x_i).
    """
    x = jnp.asarray(x, dtype=jnp.float64)
    P = [jnp.ones_like(x), x]
    for l in range(1, lmax):
        P.append(((2 * l + 1) * x * P[l] - l * P[l - 1]) / (l + 1))
    P = jnp.stack(P[: lmax + 1], axis=-1)
    norm = jnp.sqrt(2.0 * jnp.arange(lmax + 1) + 1.0)
    return P * norm


@jax.jit
def pce_weight(
    basis: Float[Array, "P L"],
    coefficients: Float[Array, "C"],
    multi_index: Int[Array, "C P"],
) -> Float[Array, ""]:
    """One PCE weight: sum_c coefficients[c] * prod_i basis[i, multi_index[c, i]]."""
    n_params = basis.shape[0]
    factors = basis[jnp.arange(n_params)[None, :], multi_index]
    return jnp.dot(coefficients, jnp.prod(factors, axis=1))


def pce_weights(
    basis: Float[Array, "P L"],
    coefficients,
    multi_indices,
) -> Float[Array, "W"]:
    """All PCE weights, one per (coefficients, multi_index) pair.

    The expansions have different lengths, so they are evaluated one by one.
    """
    if len(coefficients) == 0:
        return jnp.zeros(0)
    return jnp.stack([
        pce_weight(basis, c, mi) for c, mi in zip(coefficients, multi_indices)
    ])
