"""
Pytest configuration for tuvx tests.

This file ensures JAX x64 mode is enabled before any tests run.
"""

import os

# Set x64 mode via environment variable BEFORE any imports
os.environ["JAX_ENABLE_X64"] = "true"

# Now import tuvx which will also set x64 mode
import numpy as np  # noqa: E402
import pytest  # noqa: E402

import tuvx  # noqa: E402
from tuvx.radiative_transfer import SolverParameters  # noqa: E402


@pytest.fixture
def parameters():
    """Reference configuration: R_sfc = 0.1, F₀ = 1."""
    return SolverParameters(surface_reflectivity=0.1, solar_flux=1.0)


@pytest.fixture
def tolerances(parameters):
    return parameters.tolerances


@pytest.fixture
def scattering_column():
    """Three-layer column with a mix of optical properties, top layer first."""
    tau = np.array([0.1, 0.5, 1.2])
    omega = np.array([0.2, 0.9, 0.99])
    g = np.array([0.0, 0.7, 0.85])
    return tau, omega, g


@pytest.fixture
def wavelength():
    """Single 1 nm bin at 400 nm."""
    return tuvx.WavelengthGrid([400e-9, 401e-9])
