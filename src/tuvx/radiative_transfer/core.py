"""
Core delta-Eddington solver.

Main orchestration that runs the five stages for every column:

1. delta-scaling and two-stream coefficients (delta_eddington)
2. particular-solution source terms (source_terms)
3. tridiagonal assembly (tridiagonal)
4. tridiagonal solve (linear_algebra)
5. radiation field reconstruction (reconstruction)

Columns are independent. The batch runs the column pipeline under
``jax.vmap`` inside ``jax.jit``; numerical diagnostics are returned as
per-column flags and checked on the host before any result is handed back.
"""

import warnings
from dataclasses import replace
from typing import NamedTuple

import jax
import jax.numpy as jnp
import numpy as np

from ..radiation_field import FluxComponents, RadiationField, stack_radiation_fields
from .delta_eddington import DeltaEddingtonParameters, derive_parameters
from .errors import DimensionMismatch, NumericalInstability, RadiativeTransferWarning
from .linear_algebra import solve_tridiagonal
from .reconstruction import reconstruct_radiation_field
from .source_terms import SourceTerms, compute_source_terms
from .tridiagonal import (EigenCoefficients, TridiagonalSystem,
                          assemble_tridiagonal_system, eigen_coefficients)


class ColumnDiagnostics(NamedTuple):
    """Boolean flags describing the numerical health of one column."""
    invalid_optical_properties: jnp.ndarray
    degenerate_scaling: jnp.ndarray
    horizon: jnp.ndarray
    resonance: jnp.ndarray
    singular_pivot: jnp.ndarray
    non_finite: jnp.ndarray
    albedo_capped: jnp.ndarray


class ColumnSolution(NamedTuple):
    """Every intermediate product of one column solve."""
    parameters: DeltaEddingtonParameters
    source_terms: SourceTerms
    eigen_coefficients: EigenCoefficients
    system: TridiagonalSystem
    integration_constants: jnp.ndarray
    radiation_field: RadiationField
    diagnostics: ColumnDiagnostics


# Fatal checks, in the order they are reported
_FATAL_CHECKS = (
    ("invalid_optical_properties",
     "Delta-scaled optical properties left their physical range "
     "(ω' ∈ [0, 1], g' ∈ [-1, 1], τ' >= 0) or inputs are not finite"),
    ("degenerate_scaling",
     "Delta-scaling denominator 1 - ω g² or 1 + g vanishes"),
    ("horizon",
     "Sun at or below the horizon: cos(zenith) <= {min_cosine_zenith}"),
    ("resonance",
     "Two-stream eigenvalue resonates with the direct beam: λ² ≈ 1/μ₀²"),
    ("singular_pivot",
     "Near-zero pivot in the tridiagonal solve"),
    ("non_finite",
     "Non-finite value in the reconstructed radiation field"),
)


def _column_pipeline(tau, omega, g, mu_0, solar_flux, surface_reflectivity,
                     top_diffuse_flux, surface_emission, tolerances):
    """
    Run all five stages for one column.

    mu_0 is the raw cosine of the zenith angle. Horizon columns are solved
    with μ₀ = 1 and no direct beam, so they stay finite whatever the policy.
    """
    horizon = ~(mu_0 > tolerances.min_cosine_zenith)
    mu_0 = jnp.where(horizon, 1.0, mu_0)
    solar_flux = jnp.where(horizon, 0.0, solar_flux)

    params, scaling = derive_parameters(tau, omega, g, mu_0, tolerances)

    source_terms, resonant = compute_source_terms(
        params, solar_flux, surface_reflectivity, surface_emission,
        tolerances.resonance_tolerance)

    eigen = eigen_coefficients(params)
    system = assemble_tridiagonal_system(eigen, source_terms, surface_reflectivity,
                                         top_diffuse_flux)

    integration_constants, singular = solve_tridiagonal(system, tolerances.pivot_tolerance)

    field = reconstruct_radiation_field(integration_constants, params, eigen, source_terms,
                                        solar_flux, top_diffuse_flux)

    non_finite = ~jnp.all(jnp.stack([jnp.all(jnp.isfinite(values))
                                     for group in field for values in group]))

    diagnostics = ColumnDiagnostics(
        invalid_optical_properties=jnp.any(scaling.out_of_range),
        degenerate_scaling=jnp.any(scaling.degenerate),
        horizon=horizon,
        resonance=jnp.any(resonant) & ~horizon,
        singular_pivot=singular,
        non_finite=non_finite,
        albedo_capped=jnp.any(scaling.capped),
    )
    return ColumnSolution(params, source_terms, eigen, system, integration_constants,
                          field, diagnostics)


# Columns are mapped over axis 1 of the (n_layers, n_columns) inputs and
# axis 0 of the zenith cosines; every output gets a leading column axis.
_solve_batch = jax.jit(jax.vmap(
    _column_pipeline,
    in_axes=(1, 1, 1, 0, None, None, None, None, None),
))


def check_diagnostics(diagnostics, parameters):
    """
    Raise or warn according to per-column diagnostics.

    Parameters
    ----------
    diagnostics : ColumnDiagnostics
        Flags of a whole batch (arrays of shape (n_columns,)) or of a
        single column (scalars)
    parameters : SolverParameters

    Raises
    ------
    NumericalInstability
        For the first failed fatal check, listing every offending column.
        Horizon columns are fatal only under ``horizon_policy="raise"``.
    """
    for name, message in _FATAL_CHECKS:
        flags = np.atleast_1d(np.asarray(getattr(diagnostics, name)))
        if name == "horizon" and parameters.horizon_policy != "raise":
            continue
        columns = np.flatnonzero(flags)
        if columns.size:
            raise NumericalInstability(
                message.format(min_cosine_zenith=parameters.min_cosine_zenith),
                quantity=name, columns=columns)

    horizon = np.flatnonzero(np.atleast_1d(np.asarray(diagnostics.horizon)))
    if horizon.size:
        warnings.warn(
            f"Sun at or below the horizon in columns {horizon.tolist()}; "
            "solving them without a direct beam",
            RadiativeTransferWarning, stacklevel=3)

    capped = np.flatnonzero(np.atleast_1d(np.asarray(diagnostics.albedo_capped)))
    if capped.size:
        warnings.warn(
            f"Single-scattering albedo capped at "
            f"1 - {parameters.tolerances.albedo_precision:g} in columns {capped.tolist()}",
            RadiativeTransferWarning, stacklevel=3)


def _as_array(values, dtype):
    return jnp.asarray(np.asarray(values, dtype=float), dtype=dtype)


def solve_column(optical_depth, single_scattering_albedo, asymmetry_parameter,
                 solar_zenith_angle, parameters, check=True):
    """
    Solve a single column and return every intermediate product.

    Parameters
    ----------
    optical_depth, single_scattering_albedo, asymmetry_parameter : array, shape (n_layers,)
        Unscaled layer optical properties, top layer first
    solar_zenith_angle : float
        Solar zenith angle [radians]
    parameters : SolverParameters
        Named configuration values
    check : bool, optional
        If True (default), raise or warn on the column diagnostics

    Returns
    -------
    ColumnSolution
        Arrays indexed by layer (or row, or boundary) only
    """
    dtype = parameters.dtype
    tau = _as_array(optical_depth, dtype)
    omega = _as_array(single_scattering_albedo, dtype)
    g = _as_array(asymmetry_parameter, dtype)
    if not (tau.ndim == 1 and tau.shape == omega.shape == g.shape):
        raise DimensionMismatch(
            f"Column optical properties must be 1D arrays of equal length, got shapes "
            f"{tau.shape}, {omega.shape}, {g.shape}")
    if tau.shape[0] < 1:
        raise DimensionMismatch("A column needs at least one layer")
    if np.ndim(solar_zenith_angle) != 0:
        raise DimensionMismatch("solve_column takes a single solar zenith angle")
    if not np.isfinite(solar_zenith_angle):
        raise ValueError(f"solar zenith angle must be finite, got {solar_zenith_angle}")

    mu_0 = jnp.cos(_as_array(solar_zenith_angle, dtype))
    solution = _column_pipeline(
        tau, omega, g, mu_0,
        _as_array(parameters.solar_flux, dtype),
        _as_array(parameters.surface_reflectivity, dtype),
        _as_array(parameters.top_diffuse_flux, dtype),
        _as_array(parameters.surface_emission, dtype),
        parameters.tolerances,
    )
    if check:
        check_diagnostics(solution.diagnostics, parameters)
    return solution


def solve(solar_zenith_angles, vertical_grid, wavelength_grid, radiator_state, parameters):
    """
    Solve the delta-Eddington radiative transfer for one wavelength.

    Parameters
    ----------
    solar_zenith_angles : array, shape (n_columns,)
        Solar zenith angle of each column [radians]. μ₀ = cos(angle).
    vertical_grid : VerticalGrid
        Provides ``number_of_layers`` and ``number_of_columns``
    wavelength_grid : WavelengthGrid
        Must hold exactly one wavelength
    radiator_state : RadiatorState
        Layer optical properties, arrays of shape (n_layers, n_columns), or
        (1, n_layers, n_columns). Never modified.
    parameters : SolverParameters
        Surface reflectivity, solar flux, precision and tolerances

    Returns
    -------
    RadiationField
        Six arrays of shape (n_layers + 1, n_columns)

    Raises
    ------
    DimensionMismatch
        If the grids, the radiator state and the zenith angles disagree.
        Raised before any numerical work.
    ValueError
        If a solar zenith angle is NaN or infinite. Raised before any
        numerical work.
    NumericalInstability
        If any column fails a numerical check. The whole call fails and no
        partial result is returned; the exception lists the offending
        columns.

    Examples
    --------
    >>> grid = VerticalGrid.uniform(n_layers=3, n_columns=2)
    >>> state = RadiatorState.homogeneous(3, 2, optical_depth=0.2,
    ...                                   single_scattering_albedo=0.9,
    ...                                   asymmetry_parameter=0.7)
    >>> params = SolverParameters(surface_reflectivity=0.1, solar_flux=1.0)
    >>> field = solve([0.0, 0.5], grid, WavelengthGrid([400e-9, 401e-9]), state, params)
    >>> field.spectral_irradiance.direct.shape
    (4, 2)
    """
    zenith = np.asarray(solar_zenith_angles, dtype=float)
    if zenith.ndim != 1:
        raise DimensionMismatch(
            f"solar_zenith_angles must be 1D (n_columns,), got shape {zenith.shape}")
    bad = np.flatnonzero(~np.isfinite(zenith))
    if bad.size:
        raise ValueError(f"solar zenith angles must be finite, got non-finite values "
                         f"in columns {bad.tolist()}")
    n_columns = zenith.shape[0]

    if vertical_grid.number_of_columns != n_columns:
        raise DimensionMismatch(
            f"Vertical grid has {vertical_grid.number_of_columns} columns but "
            f"{n_columns} solar zenith angles were given")
    if wavelength_grid.number_of_wavelengths != 1:
        raise DimensionMismatch(
            f"solve handles exactly one wavelength per call, the wavelength grid has "
            f"{wavelength_grid.number_of_wavelengths}. Use solve_spectrum instead.")

    n_wavelengths = radiator_state.number_of_wavelengths
    if n_wavelengths is not None:
        if n_wavelengths != 1:
            raise DimensionMismatch(
                f"Radiator state holds {n_wavelengths} wavelengths, expected 1")
        radiator_state = radiator_state.at_wavelength(0)

    expected = (vertical_grid.number_of_layers, n_columns)
    actual = radiator_state.optical_depth.shape
    if actual != expected:
        raise DimensionMismatch(
            f"Radiator state has shape {actual}, expected (n_layers, n_columns) = {expected}")

    dtype = parameters.dtype
    solution = _solve_batch(
        _as_array(radiator_state.optical_depth, dtype),
        _as_array(radiator_state.single_scattering_albedo, dtype),
        _as_array(radiator_state.asymmetry_parameter, dtype),
        jnp.cos(_as_array(zenith, dtype)),
        _as_array(parameters.solar_flux, dtype),
        _as_array(parameters.surface_reflectivity, dtype),
        _as_array(parameters.top_diffuse_flux, dtype),
        _as_array(parameters.surface_emission, dtype),
        parameters.tolerances,
    )
    check_diagnostics(solution.diagnostics, parameters)

    # (n_columns, n_layers + 1) -> (n_layers + 1, n_columns)
    field = solution.radiation_field
    return RadiationField(
        spectral_irradiance=FluxComponents(*(values.T for values in field.spectral_irradiance)),
        actinic_flux=FluxComponents(*(values.T for values in field.actinic_flux)),
    )


def solve_spectrum(solar_zenith_angles, vertical_grid, wavelength_grid, radiator_state,
                   parameters, solar_flux=None):
    """
    Solve the radiative transfer at every wavelength of a grid.

    Each wavelength is an independent call of ``solve``.

    Parameters
    ----------
    solar_zenith_angles : array, shape (n_columns,)
        Solar zenith angle of each column [radians]
    vertical_grid : VerticalGrid
    wavelength_grid : WavelengthGrid
        n_wavelengths bins
    radiator_state : RadiatorState
        Arrays of shape (n_wavelengths, n_layers, n_columns)
    parameters : SolverParameters
        Shared configuration. ``parameters.solar_flux`` is used at every
        wavelength unless ``solar_flux`` is given.
    solar_flux : array, shape (n_wavelengths,), optional
        Spectral incident solar flux, normal to the beam

    Returns
    -------
    RadiationField
        Six arrays of shape (n_wavelengths, n_layers + 1, n_columns)
    """
    n_wavelengths = wavelength_grid.number_of_wavelengths
    state_wavelengths = radiator_state.number_of_wavelengths or 1
    if state_wavelengths != n_wavelengths:
        raise DimensionMismatch(
            f"Radiator state holds {state_wavelengths} wavelengths but the wavelength "
            f"grid has {n_wavelengths}")

    if solar_flux is None:
        fluxes = np.full(n_wavelengths, parameters.solar_flux)
    else:
        fluxes = np.asarray(solar_flux, dtype=float)
        if fluxes.shape != (n_wavelengths,):
            raise DimensionMismatch(
                f"solar_flux must have shape ({n_wavelengths},), got {fluxes.shape}")

    fields = []
    for i in range(n_wavelengths):
        fields.append(solve(
            solar_zenith_angles,
            vertical_grid,
            wavelength_grid.subgrid(i),
            radiator_state.at_wavelength(i),
            replace(parameters, solar_flux=float(fluxes[i])),
        ))

    return stack_radiation_fields(fields)
