"""
Particular-solution source terms driven by the direct solar beam.

The direct beam attenuated along the column acts as a source of diffuse
radiation in every scattering layer. The particular solution of the
two-stream equations for that source is evaluated at the top and at the
bottom of each layer.

Reference: Toon et al. (1989), J. Geophys. Res. 94, 16287, eqs. 23-24
"""

from typing import NamedTuple

import jax.numpy as jnp


class SourceTerms(NamedTuple):
    """
    Source terms of one column.

    Per-layer arrays have shape (n_layers,); ``tau_cumulative`` has shape
    (n_layers + 1,) and the surface terms are scalars.
    """
    C_upwelling: jnp.ndarray           # C⁺ at the top of each layer
    C_downwelling: jnp.ndarray         # C⁻ at the top of each layer
    C_upwelling_bottom: jnp.ndarray    # C⁺ at the bottom of each layer
    C_downwelling_bottom: jnp.ndarray  # C⁻ at the bottom of each layer
    tau_cumulative: jnp.ndarray        # optical depth at each layer boundary
    surface_solar_source: jnp.ndarray  # direct beam reflected by the surface
    surface_emission: jnp.ndarray      # isotropic surface emission


def cumulative_optical_depth(tau):
    """
    Optical depth at each layer boundary.

    Parameters
    ----------
    tau : array, shape (n_layers,)
        Layer optical depth, top layer first

    Returns
    -------
    tau_cumulative : array, shape (n_layers + 1,)
        tau_cumulative[0] = 0 at the top of the atmosphere,
        tau_cumulative[k] = sum(tau[:k])
    """
    return jnp.concatenate([jnp.zeros(1, dtype=tau.dtype), jnp.cumsum(tau)])


def direct_beam_transmission(tau_cumulative, mu_0):
    """Beer's law transmission exp(-τ/μ₀) of the direct beam."""
    return jnp.exp(-tau_cumulative / mu_0)


def compute_source_terms(params, solar_flux, surface_reflectivity,
                         surface_emission=0.0, resonance_tolerance=0.0):
    """
    Compute the particular-solution source terms of one column.

    Parameters
    ----------
    params : DeltaEddingtonParameters
        Delta-scaled properties and two-stream coefficients
    solar_flux : float
        Incident solar flux F₀ at the top of the atmosphere, normal to the beam
    surface_reflectivity : float
        Lambertian surface albedo R_sfc
    surface_emission : float, optional
        Isotropic diffuse surface emission (default: 0)
    resonance_tolerance : float, optional
        Relative threshold on |λ² - 1/μ₀²|

    Returns
    -------
    terms : SourceTerms
    resonant : bool array, shape (n_layers,)
        Layers where λ² - 1/μ₀² is too close to zero. Their source terms are
        finite placeholders and must not be used.

    Notes
    -----
    With τ_c the optical depth at the evaluation point,

        C⁻ = ω' F₀ exp(-τ_c/μ₀) [(γ₁ + 1/μ₀) γ₄ + γ₂ γ₃] / (λ² - 1/μ₀²)
        C⁺ = ω' F₀ exp(-τ_c/μ₀) [(γ₁ - 1/μ₀) γ₃ + γ₄ γ₂] / (λ² - 1/μ₀²)

    F₀ here is the πF_s of Toon et al. (flux normal to the beam), so no
    extra π μ₀ factor appears and the direct irradiance on a horizontal
    plane is μ₀ F₀ exp(-τ_c/μ₀). The 1/μ₀ terms add to γ₁ before
    multiplying γ₃ or γ₄, as in eqs. 23-24.
    """
    mu_0 = params.mu_0
    inverse_mu_0 = 1.0 / mu_0

    tau_cumulative = cumulative_optical_depth(params.tau)
    transmission = direct_beam_transmission(tau_cumulative, mu_0)

    lambda_squared = params.lambda_ * params.lambda_
    denominator = lambda_squared - inverse_mu_0 * inverse_mu_0
    scale = jnp.maximum(lambda_squared, inverse_mu_0 * inverse_mu_0)
    # Non-scattering layers carry no beam source and cannot resonate
    resonant = (jnp.abs(denominator) <= resonance_tolerance * scale) & (params.omega > 0.0)
    denominator = jnp.where(resonant, 1.0, denominator)

    amplitude = params.omega * solar_flux / denominator
    downwelling_amplitude = amplitude * ((params.gamma1 + inverse_mu_0) * params.gamma4 +
                                         params.gamma2 * params.gamma3)
    upwelling_amplitude = amplitude * ((params.gamma1 - inverse_mu_0) * params.gamma3 +
                                       params.gamma4 * params.gamma2)

    top = transmission[:-1]
    bottom = transmission[1:]

    terms = SourceTerms(
        C_upwelling=upwelling_amplitude * top,
        C_downwelling=downwelling_amplitude * top,
        C_upwelling_bottom=upwelling_amplitude * bottom,
        C_downwelling_bottom=downwelling_amplitude * bottom,
        tau_cumulative=tau_cumulative,
        surface_solar_source=surface_reflectivity * mu_0 * solar_flux * transmission[-1],
        surface_emission=jnp.asarray(surface_emission, dtype=tau_cumulative.dtype),
    )
    return terms, resonant
