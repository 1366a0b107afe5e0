#!/usr/bin/env python3
"""
Demo script for the delta-Eddington column solver.

Solves a hazy 40-layer atmosphere for a few solar zenith angles in one
batch and plots the irradiance and actinic flux profiles.
"""

import numpy as np
import matplotlib.pyplot as plt

import tuvx


def main():
    """Run the column solver demo."""
    print("=" * 60)
    print("tuvx Delta-Eddington Column Demo")
    print("=" * 60)

    n_layers = 40
    zenith_degrees = np.array([0.0, 30.0, 60.0, 80.0])
    n_columns = len(zenith_degrees)

    grid = tuvx.VerticalGrid.uniform(n_layers, n_columns, top=60e3)
    altitude_km = grid.boundary_altitudes[:, 0] / 1e3

    # Rayleigh-like scattering decaying with an 8 km scale height,
    # plus an absorbing aerosol layer below 2 km
    mid_altitude = 0.5 * (grid.boundary_altitudes[:-1, 0] + grid.boundary_altitudes[1:, 0])
    rayleigh = 0.5 * grid.layer_thickness[:, 0] / 8e3 * np.exp(-mid_altitude / 8e3)
    aerosol = np.where(mid_altitude < 2e3, 0.15, 0.0)
    tau = rayleigh + aerosol
    omega = (rayleigh + 0.85 * aerosol) / tau
    g = 0.7 * aerosol / tau

    state = tuvx.RadiatorState.homogeneous(n_layers, n_columns, tau, omega, g)
    parameters = tuvx.SolverParameters(surface_reflectivity=0.1, solar_flux=1.0)

    print(f"\nSolving {n_columns} columns of {n_layers} layers...")
    field = tuvx.solve(np.deg2rad(zenith_degrees), grid, tuvx.WavelengthGrid([400e-9, 401e-9]),
                       state, parameters)
    field = field.to_numpy()

    irradiance = field.spectral_irradiance
    for i, zenith in enumerate(zenith_degrees):
        print(f"  SZA {zenith:4.0f}°: surface direct {irradiance.direct[-1, i]:.4f}, "
              f"diffuse {irradiance.downwelling[-1, i]:.4f}, "
              f"reflected to space {irradiance.upwelling[0, i]:.4f}")

    print("\nPlotting profiles...")
    fig, axes = plt.subplots(1, 2, figsize=(12, 6), sharey=True)
    for i, zenith in enumerate(zenith_degrees):
        line, = axes[0].plot(tuvx.net_flux(field)[:, i], altitude_km, label=f"SZA {zenith:.0f}°")
        axes[1].plot(tuvx.total_actinic_flux(field)[:, i], altitude_km, color=line.get_color())

    axes[0].set_xlabel('Net irradiance / F₀', fontsize=12)
    axes[0].set_ylabel('Altitude [km]', fontsize=12)
    axes[1].set_xlabel('Actinic flux / F₀', fontsize=12)
    for ax in axes:
        ax.grid(True, alpha=0.3)
    axes[0].legend()
    plt.tight_layout()

    output_file = 'column_profiles.png'
    plt.savefig(output_file, dpi=150)
    print(f"  Saved plot to {output_file}")

    print("\n" + "=" * 60)
    print("Demo complete!")
    print("=" * 60)
    return 0


if __name__ == '__main__':
    import sys
    sys.exit(main())
