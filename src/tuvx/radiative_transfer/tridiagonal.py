"""
Assembly of the tridiagonal two-stream system.

Each layer n carries two unknowns, the integration constants Y1_n and Y2_n
of its homogeneous solution, stored at rows 2n and 2n + 1. With the
eigen-coefficients e1..e4 of the layer, the diffuse fluxes are

    top of layer:     F⁺ = Y1 e3 - Y2 e4 + C⁺_top
                      F⁻ = Y1 e1 - Y2 e2 + C⁻_top
    bottom of layer:  F⁺ = Y1 e1 + Y2 e2 + C⁺_bottom
                      F⁻ = Y1 e3 + Y2 e4 + C⁻_bottom

Continuity of F⁺ and F⁻ across every interior interface gives two
equations per interface; combining them to eliminate one unknown each keeps
the matrix tridiagonal. The first row holds the top boundary condition and
the last row the Lambertian surface condition.

Reference: Toon et al. (1989), J. Geophys. Res. 94, 16287, eqs. 39-45
"""

from typing import NamedTuple

import jax.numpy as jnp


class EigenCoefficients(NamedTuple):
    """Exponential growth/decay combinations of one column, shape (n_layers,)."""
    e1: jnp.ndarray
    e2: jnp.ndarray
    e3: jnp.ndarray
    e4: jnp.ndarray


class TridiagonalSystem(NamedTuple):
    """
    Banded linear system of one column, all arrays of shape (2 * n_layers,).

    Storage is row-aligned: row i reads

        lower[i] * x[i-1] + main[i] * x[i] + upper[i] * x[i+1] = rhs[i]

    so ``lower[0]`` and ``upper[-1]`` are always zero.
    """
    lower: jnp.ndarray
    main: jnp.ndarray
    upper: jnp.ndarray
    rhs: jnp.ndarray


def eigen_coefficients(params):
    """
    Eigen-coefficients of the two-stream homogeneous solution.

    Parameters
    ----------
    params : DeltaEddingtonParameters

    Returns
    -------
    EigenCoefficients

    Notes
    -----
    With x = exp(-λτ'):
    e1 = 1 + Γx, e2 = 1 - Γx, e3 = Γ + x, e4 = Γ - x
    """
    decay = jnp.exp(-params.lambda_ * params.tau)
    Gamma = params.Gamma
    return EigenCoefficients(
        e1=1.0 + Gamma * decay,
        e2=1.0 - Gamma * decay,
        e3=Gamma + decay,
        e4=Gamma - decay,
    )


def assemble_tridiagonal_system(eigen, source_terms, surface_reflectivity,
                                top_diffuse_flux=0.0):
    """
    Build the 2N x 2N banded system for one column.

    Parameters
    ----------
    eigen : EigenCoefficients
        Eigen-coefficients per layer
    source_terms : SourceTerms
        Particular-solution terms per layer
    surface_reflectivity : float
        Lambertian surface albedo R_sfc
    top_diffuse_flux : float, optional
        Diffuse downwelling irradiance entering at the top (default: 0)

    Returns
    -------
    TridiagonalSystem

    Notes
    -----
    Rows are filled in a fixed order: the first row (top boundary), the
    odd rows 1, 3, ..., 2N-3, the even rows 2, 4, ..., 2N-2, and the last
    row (surface). For a single layer only the two boundary rows exist.
    """
    e1, e2, e3, e4 = eigen
    R = surface_reflectivity
    n_rows = 2 * e1.shape[0]
    dtype = e1.dtype

    C_up_top = source_terms.C_upwelling
    C_down_top = source_terms.C_downwelling
    C_up_bottom = source_terms.C_upwelling_bottom
    C_down_bottom = source_terms.C_downwelling_bottom

    lower = jnp.zeros(n_rows, dtype=dtype)
    main = jnp.zeros(n_rows, dtype=dtype)
    upper = jnp.zeros(n_rows, dtype=dtype)
    rhs = jnp.zeros(n_rows, dtype=dtype)

    # First row: no diffuse downwelling beyond the prescribed top input
    main = main.at[0].set(e1[0])
    upper = upper.at[0].set(-e2[0])
    rhs = rhs.at[0].set(top_diffuse_flux - C_down_top[0])

    # Interface n sits between layer n (above) and layer n + 1 (below)
    e1_a, e2_a, e3_a, e4_a = e1[:-1], e2[:-1], e3[:-1], e4[:-1]
    e1_b, e2_b, e3_b, e4_b = e1[1:], e2[1:], e3[1:], e4[1:]
    up_jump = C_up_top[1:] - C_up_bottom[:-1]
    down_jump = C_down_top[1:] - C_down_bottom[:-1]

    # Odd rows: unknowns Y1_n, Y2_n, Y1_{n+1}
    odd = slice(1, n_rows - 2, 2)
    lower = lower.at[odd].set(e1_a * e2_b - e3_a * e4_b)
    main = main.at[odd].set(e2_a * e2_b - e4_a * e4_b)
    upper = upper.at[odd].set(e1_b * e4_b - e2_b * e3_b)
    rhs = rhs.at[odd].set(up_jump * e2_b - down_jump * e4_b)

    # Even rows: unknowns Y2_n, Y1_{n+1}, Y2_{n+1}
    even = slice(2, n_rows - 1, 2)
    lower = lower.at[even].set(e2_a * e3_a - e4_a * e1_a)
    main = main.at[even].set(e1_a * e1_b - e3_a * e3_b)
    upper = upper.at[even].set(e3_a * e4_b - e1_a * e2_b)
    rhs = rhs.at[even].set(e3_a * up_jump - e1_a * down_jump)

    # Last row: upwelling = R_sfc * downwelling + surface sources
    surface_source = source_terms.surface_solar_source + source_terms.surface_emission
    lower = lower.at[-1].set(e1[-1] - R * e3[-1])
    main = main.at[-1].set(e2[-1] - R * e4[-1])
    upper = upper.at[-1].set(0.0)
    rhs = rhs.at[-1].set(surface_source - C_up_bottom[-1] + R * C_down_bottom[-1])

    # Explicit zero: no neighbour above the first row
    lower = lower.at[0].set(0.0)

    return TridiagonalSystem(lower=lower, main=main, upper=upper, rhs=rhs)
