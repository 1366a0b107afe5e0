"""
tuvx: delta-Eddington two-stream radiative transfer in Python/JAX.

Computes direct and diffuse spectral irradiance and actinic flux through
plane-parallel atmospheric columns, for photolysis-rate and heating
calculations.
"""

# Enable 64-bit precision in JAX for accurate radiative transfer.
# This MUST be done before any other JAX imports or operations.
# Note: If jax has already been imported elsewhere, you may need to set
# the environment variable JAX_ENABLE_X64=true before running Python.
import os
os.environ.setdefault("JAX_ENABLE_X64", "true")
import jax
jax.config.update("jax_enable_x64", True)

__version__ = "0.1.0"

# Import submodules
from . import constants
from . import radiative_transfer

# Import key functions and classes for convenience
from .grids import VerticalGrid, WavelengthGrid
from .radiator import RadiatorState
from .radiation_field import (FluxComponents, RadiationField, net_flux, total_actinic_flux,
                              stack_radiation_fields, save_radiation_field,
                              load_radiation_field)
from .radiative_transfer import (solve, solve_spectrum, solve_column, SolverParameters,
                                 RadiativeTransferError, DimensionMismatch,
                                 MissingParameter, NumericalInstability,
                                 RadiativeTransferWarning)

__all__ = [
    # Version
    "__version__",
    # Submodules
    "constants",
    "radiative_transfer",
    # Key functions
    "solve",
    "solve_spectrum",
    "solve_column",
    "net_flux",
    "total_actinic_flux",
    "stack_radiation_fields",
    "save_radiation_field",
    "load_radiation_field",
    # Key classes
    "VerticalGrid",
    "WavelengthGrid",
    "RadiatorState",
    "SolverParameters",
    "RadiationField",
    "FluxComponents",
    # Errors
    "RadiativeTransferError",
    "DimensionMismatch",
    "MissingParameter",
    "NumericalInstability",
    "RadiativeTransferWarning",
]
