"""End-to-end tests of the batched delta-Eddington solver."""

import jax.numpy as jnp
import numpy as np
import pytest

import tuvx
from tuvx import (DimensionMismatch, NumericalInstability, RadiativeTransferWarning,
                  RadiatorState, SolverParameters, VerticalGrid, WavelengthGrid)
from tuvx.radiative_transfer import solve_column, two_stream_coefficients


def _solve(tau, omega, g, zenith, parameters, wavelength):
    """Solve identical columns, one per zenith angle."""
    zenith = np.atleast_1d(zenith)
    n_layers = len(np.atleast_1d(tau))
    state = RadiatorState.homogeneous(n_layers, len(zenith), tau, omega, g)
    grid = VerticalGrid.uniform(n_layers, len(zenith))
    return tuvx.solve(zenith, grid, wavelength, state, parameters)


def _resonant_zenith(omega, g):
    """Zenith angle with 1/μ₀ equal to the eigenvalue of an isotropic layer."""
    _, _, _, _, lambda_, _ = two_stream_coefficients(jnp.array(omega), jnp.array(g), 1.0)
    return float(np.arccos(1.0 / float(lambda_)))


class TestReferenceScenarios:
    """Physically known configurations."""

    def test_single_scattering_layer(self, parameters, wavelength):
        """τ = 0.5, ω = 0.9, g = 0.8, overhead sun, R_sfc = 0.1, F₀ = 1."""
        field = _solve([0.5], [0.9], [0.8], [0.0], parameters, wavelength)
        irradiance = field.spectral_irradiance

        assert field.shape == (2, 1)
        assert np.isclose(irradiance.direct[0, 0], 1.0)
        assert irradiance.downwelling[0, 0] == 0.0
        for group in field:
            for values in group:
                assert values[-1, 0] > 0.0
                assert np.all(np.isfinite(values))
        assert irradiance.downwelling[-1, 0] <= 1.0

    def test_pure_absorber_has_no_diffuse_field(self, wavelength):
        """ω = 0 and R_sfc = 0: Beer's law only."""
        parameters = SolverParameters(surface_reflectivity=0.0, solar_flux=1.0)
        tau = [0.2, 0.3, 0.5]
        field = _solve(tau, [0.0] * 3, [0.0] * 3, [0.4], parameters, wavelength)

        for name in ("upwelling", "downwelling"):
            np.testing.assert_allclose(getattr(field.spectral_irradiance, name), 0.0, atol=1e-15)
            np.testing.assert_allclose(getattr(field.actinic_flux, name), 0.0, atol=1e-15)

        mu_0 = np.cos(0.4)
        expected = mu_0 * np.exp(-np.concatenate([[0.0], np.cumsum(tau)]) / mu_0)
        np.testing.assert_allclose(field.spectral_irradiance.direct[:, 0], expected)

    def test_transparent_column(self, wavelength):
        """τ = 0 everywhere: the beam reaches the surface untouched."""
        R = 0.2
        parameters = SolverParameters(surface_reflectivity=R, solar_flux=1.0)
        mu_0 = np.cos(0.3)
        field = _solve([0.0] * 4, [0.5] * 4, [0.3] * 4, [0.3], parameters, wavelength)
        irradiance = field.spectral_irradiance

        assert irradiance.direct[-1, 0] == pytest.approx(mu_0, rel=1e-15)
        np.testing.assert_allclose(irradiance.upwelling[:, 0], R * mu_0, rtol=1e-10)
        np.testing.assert_allclose(irradiance.downwelling[:, 0], 0.0, atol=1e-12)

    def test_energy_conservation(self, wavelength):
        """ω = 1 over a black surface: everything entering leaves at top or bottom."""
        parameters = SolverParameters(surface_reflectivity=0.0, solar_flux=1.0)
        with pytest.warns(RadiativeTransferWarning, match="capped"):
            field = _solve([0.5, 1.0, 2.0], [1.0] * 3, [0.0, 0.5, 0.8], [0.6],
                           parameters, wavelength)

        net = tuvx.net_flux(field)[:, 0]
        np.testing.assert_allclose(net, net[0], rtol=1e-5)

        irradiance = field.spectral_irradiance
        incoming = np.cos(0.6)
        outgoing = (irradiance.upwelling[0, 0] + irradiance.direct[-1, 0]
                    + irradiance.downwelling[-1, 0])
        assert outgoing == pytest.approx(incoming, rel=1e-5)

    def test_absorbing_column_loses_energy(self, parameters, scattering_column, wavelength):
        """With absorption the net flux at the surface is below the net flux at the top."""
        field = _solve(*scattering_column, [0.2], parameters, wavelength)
        net = tuvx.net_flux(field)[:, 0]
        assert net[-1] < net[0]
        assert field.spectral_irradiance.upwelling[0, 0] < np.cos(0.2)

    def test_identical_columns(self, parameters, scattering_column, wavelength):
        """Ten identical columns give ten identical results."""
        field = _solve(*scattering_column, [0.5] * 10, parameters, wavelength)
        assert field.shape == (4, 10)
        for group in field:
            for values in group:
                np.testing.assert_allclose(values, np.repeat(values[:, :1], 10, axis=1),
                                           rtol=1e-14)

    def test_columns_are_independent(self, parameters, scattering_column, wavelength):
        """A column's result does not depend on its neighbours."""
        batch = _solve(*scattering_column, [0.1, 0.7, 1.2], parameters, wavelength)
        single = _solve(*scattering_column, [0.7], parameters, wavelength)

        for batch_group, single_group in zip(batch, single):
            for batch_values, single_values in zip(batch_group, single_group):
                np.testing.assert_allclose(batch_values[:, 1], single_values[:, 0], rtol=1e-12)

    def test_repeat_calls_identical(self, parameters, scattering_column, wavelength):
        first = _solve(*scattering_column, [0.3, 0.9], parameters, wavelength)
        second = _solve(*scattering_column, [0.3, 0.9], parameters, wavelength)
        for first_group, second_group in zip(first, second):
            for a, b in zip(first_group, second_group):
                np.testing.assert_array_equal(a, b)

    def test_top_diffuse_and_surface_emission(self, scattering_column, wavelength):
        parameters = SolverParameters(surface_reflectivity=0.3, solar_flux=1.0,
                                      top_diffuse_flux=0.2, surface_emission=0.1)
        field = _solve(*scattering_column, [0.5], parameters, wavelength)
        irradiance = field.spectral_irradiance

        assert np.isclose(irradiance.downwelling[0, 0], 0.2)
        assert np.isclose(irradiance.upwelling[-1, 0],
                          0.3 * (irradiance.downwelling[-1, 0] + irradiance.direct[-1, 0]) + 0.1,
                          rtol=1e-9)


class TestHorizon:
    """Sun at or near the horizon."""

    def test_horizon_raises(self, parameters, scattering_column, wavelength):
        with pytest.raises(NumericalInstability) as excinfo:
            _solve(*scattering_column, [0.3, np.pi / 2, 2.0], parameters, wavelength)

        assert excinfo.value.quantity == "horizon"
        assert excinfo.value.columns == (1, 2)

    def test_dark_policy(self, scattering_column, wavelength):
        """Horizon columns are dark; the others are untouched."""
        dark = SolverParameters(surface_reflectivity=0.1, solar_flux=1.0, horizon_policy="dark")
        with pytest.warns(RadiativeTransferWarning, match="horizon"):
            field = _solve(*scattering_column, [0.3, np.pi / 2], dark, wavelength)
        reference = _solve(*scattering_column, [0.3], dark, wavelength)

        for group, reference_group in zip(field, reference):
            for values, reference_values in zip(group, reference_group):
                np.testing.assert_allclose(values[:, 1], 0.0, atol=1e-15)
                np.testing.assert_allclose(values[:, 0], reference_values[:, 0], rtol=1e-12)

    def test_near_horizon_is_finite(self, parameters, scattering_column, wavelength):
        zenith = np.arccos(1e-3)
        field = _solve(*scattering_column, [zenith], parameters, wavelength)

        for group in field:
            for values in group:
                assert np.all(np.isfinite(values))
        assert field.spectral_irradiance.direct[-1, 0] < 1e-100


class TestNumericalFailures:
    """Inputs the solver must refuse rather than return garbage for."""

    def test_strong_backscattering(self, parameters, wavelength):
        with pytest.raises(NumericalInstability) as excinfo:
            _solve([1.0], [0.5], [-0.6], [0.0], parameters, wavelength)
        assert excinfo.value.quantity == "invalid_optical_properties"
        assert excinfo.value.columns == (0,)

    def test_albedo_above_one(self, parameters, wavelength):
        with pytest.raises(NumericalInstability) as excinfo:
            _solve([1.0], [1.5], [0.0], [0.0], parameters, wavelength)
        assert excinfo.value.quantity == "invalid_optical_properties"

    def test_negative_optical_depth(self, parameters, wavelength):
        with pytest.raises(NumericalInstability):
            _solve([-0.1], [0.5], [0.0], [0.0], parameters, wavelength)

    def test_non_finite_input(self, parameters, wavelength):
        with pytest.raises(NumericalInstability):
            _solve([np.nan], [0.5], [0.0], [0.0], parameters, wavelength)

    def test_resonance(self, parameters, wavelength):
        zenith = _resonant_zenith(0.5, 0.0)
        with pytest.raises(NumericalInstability) as excinfo:
            _solve([1.0], [0.5], [0.0], [0.1, zenith], parameters, wavelength)
        assert excinfo.value.quantity == "resonance"
        assert excinfo.value.columns == (1,)

    def test_pure_absorber_never_resonates(self, parameters, wavelength):
        """λ = √3 for ω = 0, but there is no beam source to resonate with."""
        zenith = float(np.arccos(1.0 / np.sqrt(3.0)))
        field = _solve([1.0], [0.0], [0.0], [zenith], parameters, wavelength)
        assert np.all(np.isfinite(field.spectral_irradiance.direct))

    def test_first_failed_check_reported(self, parameters, wavelength):
        """Range violations are reported before resonance."""
        zenith = _resonant_zenith(0.5, 0.0)
        tau = np.ones((1, 2))
        omega = np.full((1, 2), 0.5)
        g = np.array([[0.0, -0.7]])
        state = RadiatorState(tau, omega, g)

        with pytest.raises(NumericalInstability) as excinfo:
            tuvx.solve([zenith, 0.0], VerticalGrid.uniform(1, 2), wavelength, state, parameters)
        assert excinfo.value.quantity == "invalid_optical_properties"
        assert excinfo.value.columns == (1,)

    def test_error_message_lists_columns(self, parameters, wavelength):
        g = np.array([[-0.9, 0.5, -0.9]])
        state = RadiatorState(np.ones((1, 3)), np.full((1, 3), 0.5), g)
        with pytest.raises(NumericalInstability, match=r"columns: \[0, 2\]"):
            tuvx.solve([0.0, 0.0, 0.0], VerticalGrid.uniform(1, 3), wavelength, state, parameters)


class TestInputs:
    """Shape validation and input handling."""

    @pytest.mark.parametrize("policy", ["raise", "dark"])
    @pytest.mark.parametrize("bad_angle", [np.nan, np.inf, -np.inf])
    def test_non_finite_zenith_rejected(self, policy, bad_angle, scattering_column, wavelength):
        """NaN or infinite angles are rejected, never treated as a horizon column."""
        parameters = SolverParameters(surface_reflectivity=0.1, solar_flux=1.0,
                                      horizon_policy=policy)
        with pytest.raises(ValueError, match=r"finite.*columns \[1\]"):
            _solve(*scattering_column, [0.3, bad_angle], parameters, wavelength)

    def test_non_finite_zenith_is_not_numerical_instability(self, parameters,
                                                            scattering_column, wavelength):
        with pytest.raises(ValueError) as excinfo:
            _solve(*scattering_column, [np.nan], parameters, wavelength)
        assert not isinstance(excinfo.value, NumericalInstability)

    def test_caller_state_not_modified(self, parameters, wavelength):
        tau = np.array([[0.2, 0.4], [0.6, 0.8]])
        omega = np.full((2, 2), 0.9)
        g = np.full((2, 2), 0.7)
        originals = [x.copy() for x in (tau, omega, g)]

        state = RadiatorState(tau, omega, g)
        tuvx.solve([0.2, 0.4], VerticalGrid.uniform(2, 2), wavelength, state, parameters)

        for array, original in zip((tau, omega, g), originals):
            np.testing.assert_array_equal(array, original)
        np.testing.assert_array_equal(state.optical_depth, originals[0])
        assert not state.optical_depth.flags.writeable

    def test_zenith_must_be_1d(self, parameters, scattering_column, wavelength):
        state = RadiatorState.homogeneous(3, 2, *scattering_column)
        with pytest.raises(DimensionMismatch):
            tuvx.solve([[0.1, 0.2]], VerticalGrid.uniform(3, 2), wavelength, state, parameters)

    def test_grid_column_mismatch(self, parameters, scattering_column, wavelength):
        state = RadiatorState.homogeneous(3, 2, *scattering_column)
        with pytest.raises(DimensionMismatch):
            tuvx.solve([0.1, 0.2], VerticalGrid.uniform(3, 3), wavelength, state, parameters)

    def test_layer_mismatch(self, parameters, scattering_column, wavelength):
        state = RadiatorState.homogeneous(3, 2, *scattering_column)
        with pytest.raises(DimensionMismatch):
            tuvx.solve([0.1, 0.2], VerticalGrid.uniform(4, 2), wavelength, state, parameters)

    def test_one_wavelength_per_solve(self, parameters, scattering_column):
        state = RadiatorState.homogeneous(3, 1, *scattering_column)
        with pytest.raises(DimensionMismatch):
            tuvx.solve([0.1], VerticalGrid.uniform(3, 1), WavelengthGrid([400e-9, 401e-9, 402e-9]),
                       state, parameters)

    def test_single_wavelength_spectrum_state(self, parameters, scattering_column, wavelength):
        """A (1, n_layers, n_columns) state is accepted by solve."""
        state = RadiatorState.homogeneous(3, 2, *scattering_column)
        spectral = RadiatorState(state.optical_depth[np.newaxis],
                                 state.single_scattering_albedo[np.newaxis],
                                 state.asymmetry_parameter[np.newaxis])
        grid = VerticalGrid.uniform(3, 2)

        expected = tuvx.solve([0.1, 0.2], grid, wavelength, state, parameters)
        field = tuvx.solve([0.1, 0.2], grid, wavelength, spectral, parameters)
        np.testing.assert_allclose(field.spectral_irradiance.upwelling,
                                   expected.spectral_irradiance.upwelling)

    def test_float32(self, scattering_column, wavelength):
        single = SolverParameters(surface_reflectivity=0.1, solar_flux=1.0, dtype="float32")
        double = SolverParameters(surface_reflectivity=0.1, solar_flux=1.0)

        field32 = _solve(*scattering_column, [0.2, 0.8], single, wavelength)
        field64 = _solve(*scattering_column, [0.2, 0.8], double, wavelength)

        for group32, group64 in zip(field32, field64):
            for values32, values64 in zip(group32, group64):
                assert values32.dtype == jnp.float32
                np.testing.assert_allclose(values32, values64, rtol=1e-4, atol=1e-6)


class TestSolveColumn:
    """Single-column solve with intermediate products."""

    def test_intermediate_products(self, parameters, scattering_column):
        solution = solve_column(*scattering_column, 0.4, parameters)

        assert solution.system.main.shape == (6,)
        assert solution.integration_constants.shape == (6,)
        assert solution.source_terms.tau_cumulative.shape == (4,)
        assert solution.radiation_field.spectral_irradiance.direct.shape == (4,)
        assert not solution.diagnostics.singular_pivot

    def test_matches_batch(self, parameters, scattering_column, wavelength):
        solution = solve_column(*scattering_column, 0.4, parameters)
        field = _solve(*scattering_column, [0.4], parameters, wavelength)
        np.testing.assert_allclose(solution.radiation_field.actinic_flux.downwelling,
                                   field.actinic_flux.downwelling[:, 0], rtol=1e-12)

    def test_mismatched_profiles(self, parameters):
        with pytest.raises(DimensionMismatch):
            solve_column([0.1, 0.2], [0.5], [0.0, 0.0], 0.4, parameters)

    @pytest.mark.parametrize("bad_angle", [np.nan, np.inf])
    def test_non_finite_zenith(self, bad_angle, scattering_column):
        dark = SolverParameters(surface_reflectivity=0.1, solar_flux=1.0, horizon_policy="dark")
        with pytest.raises(ValueError, match="finite"):
            solve_column(*scattering_column, bad_angle, dark)

    def test_unchecked_solve_returns_flags(self, parameters):
        solution = solve_column([1.0], [0.5], [-0.6], 0.0, parameters, check=False)
        assert solution.diagnostics.invalid_optical_properties


class TestSolveSpectrum:
    """Multi-wavelength solves."""

    def test_spectrum(self, parameters):
        n_wavelengths, n_layers, n_columns = 3, 4, 2
        tau = np.stack([np.full((n_layers, n_columns), 0.1 * (i + 1))
                        for i in range(n_wavelengths)])
        omega = np.full_like(tau, 0.8)
        g = np.full_like(tau, 0.6)
        state = RadiatorState(tau, omega, g)
        grid = VerticalGrid.uniform(n_layers, n_columns)
        wavelengths = WavelengthGrid([300e-9, 310e-9, 320e-9, 330e-9])
        solar_flux = np.array([0.5, 1.0, 1.5])

        field = tuvx.solve_spectrum([0.2, 0.6], grid, wavelengths, state, parameters,
                                    solar_flux=solar_flux)
        assert field.shape == (n_wavelengths, n_layers + 1, n_columns)

        for i in range(n_wavelengths):
            single = tuvx.solve([0.2, 0.6], grid, wavelengths.subgrid(i),
                                state.at_wavelength(i),
                                SolverParameters(surface_reflectivity=0.1,
                                                 solar_flux=float(solar_flux[i])))
            np.testing.assert_allclose(field.spectral_irradiance.upwelling[i],
                                       single.spectral_irradiance.upwelling, rtol=1e-12)
            np.testing.assert_allclose(field.actinic_flux.direct[i],
                                       single.actinic_flux.direct, rtol=1e-12)

    def test_wavelength_count_mismatch(self, parameters, scattering_column):
        state = RadiatorState.homogeneous(3, 1, *scattering_column)
        with pytest.raises(DimensionMismatch):
            tuvx.solve_spectrum([0.1], VerticalGrid.uniform(3, 1),
                                WavelengthGrid([300e-9, 310e-9, 320e-9]), state, parameters)

    def test_solar_flux_shape(self, parameters):
        state = RadiatorState(np.ones((2, 3, 1)), np.zeros((2, 3, 1)), np.zeros((2, 3, 1)))
        with pytest.raises(DimensionMismatch):
            tuvx.solve_spectrum([0.1], VerticalGrid.uniform(3, 1),
                                WavelengthGrid([300e-9, 310e-9, 320e-9]), state, parameters,
                                solar_flux=[1.0, 2.0, 3.0])
