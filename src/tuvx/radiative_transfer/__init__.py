"""
Delta-Eddington two-stream radiative transfer solver.

This module computes the direct and diffuse spectral irradiance and actinic
flux at every layer boundary of a batch of independent atmospheric columns.

Main functions:
- solve: Radiation field of a column batch at one wavelength
- solve_spectrum: Same, looped over a wavelength grid
- solve_column: Single column with every intermediate product
"""

from .errors import (RadiativeTransferError, DimensionMismatch, MissingParameter,
                     NumericalInstability, RadiativeTransferWarning)
from .parameters import SolverParameters, Tolerances, HORIZON_POLICIES
from .delta_eddington import (DeltaEddingtonParameters, ScalingDiagnostics, delta_scale,
                              two_stream_coefficients, derive_parameters)
from .source_terms import (SourceTerms, cumulative_optical_depth, direct_beam_transmission,
                           compute_source_terms)
from .tridiagonal import (EigenCoefficients, TridiagonalSystem, eigen_coefficients,
                          assemble_tridiagonal_system)
from .linear_algebra import solve_tridiagonal
from .reconstruction import layer_boundary_fluxes, reconstruct_radiation_field
from .core import (ColumnDiagnostics, ColumnSolution, check_diagnostics, solve_column,
                   solve, solve_spectrum)

__all__ = [
    'solve',
    'solve_spectrum',
    'solve_column',
    'check_diagnostics',
    'ColumnDiagnostics',
    'ColumnSolution',
    'SolverParameters',
    'Tolerances',
    'HORIZON_POLICIES',
    'DeltaEddingtonParameters',
    'ScalingDiagnostics',
    'delta_scale',
    'two_stream_coefficients',
    'derive_parameters',
    'SourceTerms',
    'cumulative_optical_depth',
    'direct_beam_transmission',
    'compute_source_terms',
    'EigenCoefficients',
    'TridiagonalSystem',
    'eigen_coefficients',
    'assemble_tridiagonal_system',
    'solve_tridiagonal',
    'layer_boundary_fluxes',
    'reconstruct_radiation_field',
    'RadiativeTransferError',
    'DimensionMismatch',
    'MissingParameter',
    'NumericalInstability',
    'RadiativeTransferWarning',
]
