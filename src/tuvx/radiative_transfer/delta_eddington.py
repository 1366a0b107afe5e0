"""
Delta-Eddington parameter derivation.

Delta-scales the layer optical properties to remove the forward-scattering
peak of the phase function, then evaluates the two-stream coefficients of
the Eddington closure for one column.

References:
- Joseph, Wiscombe & Weinman (1976), J. Atmos. Sci. 33, 2452
- Toon et al. (1989), J. Geophys. Res. 94, 16287, Table 1 and eqs. 21-22
"""

from typing import NamedTuple

import jax.numpy as jnp


class DeltaEddingtonParameters(NamedTuple):
    """
    Delta-scaled optical properties and two-stream coefficients of one column.

    All arrays have shape (n_layers,); ``mu_0`` is a scalar.
    """
    tau: jnp.ndarray      # delta-scaled layer optical depth τ'
    omega: jnp.ndarray    # delta-scaled single-scattering albedo ω'
    g: jnp.ndarray        # delta-scaled asymmetry parameter g'
    gamma1: jnp.ndarray
    gamma2: jnp.ndarray
    gamma3: jnp.ndarray
    gamma4: jnp.ndarray
    lambda_: jnp.ndarray  # two-stream eigenvalue λ
    Gamma: jnp.ndarray    # coupling ratio Γ = γ₂ / (γ₁ + λ)
    mu_0: jnp.ndarray     # cosine of the solar zenith angle


class ScalingDiagnostics(NamedTuple):
    """Per-layer boolean flags raised while deriving the parameters."""
    out_of_range: jnp.ndarray  # ω', g' or τ' outside the physical range, or non-finite input
    degenerate: jnp.ndarray    # 1 - ωf or 1 + g vanishes
    capped: jnp.ndarray        # ω' was capped below 1


def delta_scale(tau, omega, g, denominator_tolerance=0.0):
    """
    Apply delta-scaling to the layer optical properties.

    With the forward-scattering fraction f = g², the scaled properties are

        ω' = ω (1 - f) / (1 - ω f)
        g' = g / (1 + g)
        τ' = (1 - ω f) τ

    Every expression uses the unscaled inputs.

    Parameters
    ----------
    tau : array, shape (n_layers,)
        Layer optical depth τ
    omega : array, shape (n_layers,)
        Single-scattering albedo ω
    g : array, shape (n_layers,)
        Asymmetry parameter g
    denominator_tolerance : float, optional
        |1 - ω f| or |1 + g| at or below this is reported as degenerate

    Returns
    -------
    tau_scaled, omega_scaled, g_scaled : arrays, shape (n_layers,)
    degenerate : bool array, shape (n_layers,)
        Layers whose scaling denominators vanish. Their scaled values are
        finite placeholders and must not be used.
    """
    f = g * g
    extinction_factor = 1.0 - omega * f
    forward_factor = 1.0 + g

    degenerate = ((jnp.abs(extinction_factor) <= denominator_tolerance) |
                  (jnp.abs(forward_factor) <= denominator_tolerance))
    extinction_factor_safe = jnp.where(degenerate, 1.0, extinction_factor)
    forward_factor_safe = jnp.where(degenerate, 1.0, forward_factor)

    omega_scaled = omega * (1.0 - f) / extinction_factor_safe
    g_scaled = g / forward_factor_safe
    tau_scaled = extinction_factor * tau

    return tau_scaled, omega_scaled, g_scaled, degenerate


def two_stream_coefficients(omega, g, mu_0):
    """
    Eddington-closure coefficients for delta-scaled properties.

    Parameters
    ----------
    omega : array
        Delta-scaled single-scattering albedo ω'
    g : array
        Delta-scaled asymmetry parameter g'
    mu_0 : float
        Cosine of the solar zenith angle

    Returns
    -------
    gamma1, gamma2, gamma3, gamma4, lambda_, Gamma : arrays

    Notes
    -----
    γ₁ = (7 - ω'(4 + 3g')) / 4
    γ₂ = -(1 - ω'(4 - 3g')) / 4
    γ₃ = (2 - 3g'μ₀) / 4
    γ₄ = 1 - γ₃
    λ  = sqrt(γ₁² - γ₂²)
    Γ  = γ₂ / (γ₁ + λ)

    Γ is algebraically equal to (γ₁ - λ)/γ₂ but stays finite when γ₂ = 0.
    """
    gamma1 = (7.0 - omega * (4.0 + 3.0 * g)) / 4.0
    gamma2 = -(1.0 - omega * (4.0 - 3.0 * g)) / 4.0
    gamma3 = (2.0 - 3.0 * g * mu_0) / 4.0
    gamma4 = 1.0 - gamma3

    lambda_ = jnp.sqrt(gamma1 * gamma1 - gamma2 * gamma2)
    Gamma = gamma2 / (gamma1 + lambda_)

    return gamma1, gamma2, gamma3, gamma4, lambda_, Gamma


def derive_parameters(tau, omega, g, mu_0, tolerances):
    """
    Compute the delta-Eddington parameters of one column.

    Parameters
    ----------
    tau, omega, g : arrays, shape (n_layers,)
        Unscaled optical depth, single-scattering albedo and asymmetry
        parameter, top layer first
    mu_0 : float
        Cosine of the solar zenith angle (must be > 0)
    tolerances : Tolerances
        Numerical tolerances (see SolverParameters.tolerances)

    Returns
    -------
    params : DeltaEddingtonParameters
    diagnostics : ScalingDiagnostics

    Notes
    -----
    Scaled values outside ω' ∈ [0, 1], g' ∈ [-1, 1] or τ' >= 0 are flagged,
    never clamped. Asymmetry parameters below -0.5 scale to g' < -1 and are
    therefore flagged as well.

    In-range albedos above 1 - albedo_precision are capped at that value:
    at ω' = 1 the eigenvalue λ vanishes and the layer equations become
    singular.
    """
    tau_s, omega_s, g_s, degenerate = delta_scale(
        tau, omega, g, tolerances.denominator_tolerance)

    slack = tolerances.range_tolerance
    finite_input = jnp.isfinite(tau) & jnp.isfinite(omega) & jnp.isfinite(g)
    out_of_range = (~finite_input |
                    (omega_s < -slack) | (omega_s > 1.0 + slack) |
                    (g_s < -1.0 - slack) | (g_s > 1.0 + slack) |
                    (tau_s < 0.0))
    out_of_range = out_of_range & ~degenerate

    omega_max = 1.0 - tolerances.albedo_precision
    capped = (omega_s > omega_max) & ~out_of_range & ~degenerate
    omega_s = jnp.clip(omega_s, 0.0, omega_max)

    gamma1, gamma2, gamma3, gamma4, lambda_, Gamma = two_stream_coefficients(
        omega_s, g_s, mu_0)

    params = DeltaEddingtonParameters(
        tau=tau_s, omega=omega_s, g=g_s,
        gamma1=gamma1, gamma2=gamma2, gamma3=gamma3, gamma4=gamma4,
        lambda_=lambda_, Gamma=Gamma, mu_0=mu_0,
    )
    return params, ScalingDiagnostics(out_of_range, degenerate, capped)
