"""
Tridiagonal linear solver.

Thomas algorithm (Gaussian elimination without pivoting, specialised to a
tridiagonal band) written with ``jax.lax.scan`` so it compiles inside
``jax.jit`` and vectorises with ``jax.vmap``.
"""

import jax
import jax.numpy as jnp


def solve_tridiagonal(system, pivot_tolerance=0.0):
    """
    Solve a tridiagonal system with the Thomas algorithm.

    Parameters
    ----------
    system : TridiagonalSystem
        Row-aligned diagonals ``lower``, ``main``, ``upper`` and ``rhs``,
        all of shape (n,). ``lower[0]`` and ``upper[-1]`` are ignored by the
        recurrences (they multiply non-existent unknowns).
    pivot_tolerance : float, optional
        A pivot whose magnitude is at or below ``pivot_tolerance`` times the
        largest magnitude in its row is reported as singular (default: 0,
        only exact zeros)

    Returns
    -------
    solution : array, shape (n,)
    singular : bool scalar
        True if any pivot was singular. The solution is then meaningless
        (singular pivots are replaced by 1 to keep it finite).

    Notes
    -----
    Forward elimination:
        p_i  = b_i - a_i c'_{i-1}
        c'_i = c_i / p_i
        d'_i = (d_i - a_i d'_{i-1}) / p_i

    Back substitution:
        x_{n-1} = d'_{n-1}
        x_i     = d'_i - c'_i x_{i+1}

    The two-stream band is diagonally dominant for physical parameters,
    so no row exchanges are needed.
    """
    dtype = system.main.dtype
    zero = jnp.zeros((), dtype=dtype)

    def eliminate(carry, row):
        upper_prev, rhs_prev = carry
        lower, main, upper, rhs = row

        pivot = main - lower * upper_prev
        row_scale = jnp.maximum(jnp.maximum(jnp.abs(lower), jnp.abs(main)), jnp.abs(upper))
        singular = jnp.abs(pivot) <= pivot_tolerance * row_scale
        pivot = jnp.where(singular, 1.0, pivot)

        upper_norm = upper / pivot
        rhs_norm = (rhs - lower * rhs_prev) / pivot
        return (upper_norm, rhs_norm), (upper_norm, rhs_norm, singular)

    rows = (system.lower.at[0].set(0.0), system.main,
            system.upper.at[-1].set(0.0), system.rhs)
    _, (upper_norm, rhs_norm, singular) = jax.lax.scan(eliminate, (zero, zero), rows)

    def substitute(x_next, row):
        c, d = row
        x = d - c * x_next
        return x, x

    _, solution = jax.lax.scan(substitute, zero, (upper_norm, rhs_norm), reverse=True)

    return solution, jnp.any(singular)
