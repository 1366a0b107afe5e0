"""
Reconstruction of the radiation field from the solved integration constants.

The direct beam follows Beer's law and needs no linear solve. The diffuse
fluxes combine each layer's integration constants with its
eigen-coefficients and particular-solution terms. Actinic fluxes follow
from the irradiances through fixed scalar relations.
"""

import jax.numpy as jnp

from ..constants import EDDINGTON_MU1
from ..radiation_field import FluxComponents, RadiationField
from .source_terms import direct_beam_transmission


def layer_boundary_fluxes(integration_constants, eigen, source_terms):
    """
    Diffuse fluxes at the top and bottom of every layer.

    Parameters
    ----------
    integration_constants : array, shape (2 * n_layers,)
        Solution of the tridiagonal system, [Y1_0, Y2_0, Y1_1, Y2_1, ...]
    eigen : EigenCoefficients
    source_terms : SourceTerms

    Returns
    -------
    up_top, down_top, up_bottom, down_bottom : arrays, shape (n_layers,)
        Diffuse upwelling / downwelling irradiance evaluated inside each
        layer at its upper and lower boundary
    """
    Y1 = integration_constants[0::2]
    Y2 = integration_constants[1::2]
    e1, e2, e3, e4 = eigen

    up_top = Y1 * e3 - Y2 * e4 + source_terms.C_upwelling
    down_top = Y1 * e1 - Y2 * e2 + source_terms.C_downwelling
    up_bottom = Y1 * e1 + Y2 * e2 + source_terms.C_upwelling_bottom
    down_bottom = Y1 * e3 + Y2 * e4 + source_terms.C_downwelling_bottom
    return up_top, down_top, up_bottom, down_bottom


def reconstruct_radiation_field(integration_constants, params, eigen, source_terms,
                                solar_flux, top_diffuse_flux=0.0):
    """
    Irradiance and actinic flux at every layer boundary of one column.

    Parameters
    ----------
    integration_constants : array, shape (2 * n_layers,)
    params : DeltaEddingtonParameters
    eigen : EigenCoefficients
    source_terms : SourceTerms
    solar_flux : float
        Incident solar flux F₀ normal to the beam
    top_diffuse_flux : float, optional
        Diffuse downwelling irradiance prescribed at the top (default: 0)

    Returns
    -------
    RadiationField
        Arrays of shape (n_layers + 1,)

    Notes
    -----
    Boundary 0 takes its upwelling flux from the top of layer 0 and its
    downwelling flux from the boundary condition; boundary k >= 1 takes both
    from the bottom of layer k - 1.

    Direct irradiance: μ₀ F₀ exp(-τ_c/μ₀). Direct actinic flux:
    F₀ exp(-τ_c/μ₀), i.e. the irradiance over μ₀ without dividing by μ₀.
    Diffuse actinic flux: diffuse irradiance / μ₁ with μ₁ = 1/2.
    """
    up_top, _, up_bottom, down_bottom = layer_boundary_fluxes(
        integration_constants, eigen, source_terms)

    dtype = up_top.dtype
    upwelling = jnp.concatenate([up_top[:1], up_bottom])
    downwelling = jnp.concatenate([jnp.full(1, top_diffuse_flux, dtype=dtype), down_bottom])

    beam = solar_flux * direct_beam_transmission(source_terms.tau_cumulative, params.mu_0)

    irradiance = FluxComponents(
        direct=params.mu_0 * beam,
        upwelling=upwelling,
        downwelling=downwelling,
    )
    actinic = FluxComponents(
        direct=beam,
        upwelling=upwelling / EDDINGTON_MU1,
        downwelling=downwelling / EDDINGTON_MU1,
    )
    return RadiationField(spectral_irradiance=irradiance, actinic_flux=actinic)
