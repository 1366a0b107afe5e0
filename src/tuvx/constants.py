"""
Numerical constants used throughout tuvx.

Physical quantities are in SI units unless otherwise specified.
"""

# Enable 64-bit precision in JAX for accurate radiative transfer.
# This must be done before any JAX operations are performed.
import jax
jax.config.update("jax_enable_x64", True)

import numpy as np

# Hemispheric mean cosine of the diffuse radiation for the Eddington closure.
# Diffuse actinic flux = diffuse irradiance / EDDINGTON_MU1.
EDDINGTON_MU1 = 0.5

# Floor on the distance of the scaled single-scattering albedo from 1.
# Conservative scattering (ω' = 1) makes the two-stream eigenvalue vanish.
ALBEDO_PRECISION = 1e-7

# Default cosine of the solar zenith angle below which the sun is treated
# as being at (or below) the horizon.
MIN_COSINE_ZENITH = 1e-6

# Floating-point precisions accepted at the solver boundary
SUPPORTED_DTYPES = (np.dtype(np.float32), np.dtype(np.float64))


def machine_epsilon(dtype):
    """
    Machine epsilon for a floating-point dtype.

    Parameters
    ----------
    dtype : dtype-like
        np.float32 or np.float64

    Returns
    -------
    float
    """
    return float(np.finfo(np.dtype(dtype)).eps)


def albedo_precision(dtype):
    """
    Albedo cap distance appropriate for ``dtype``.

    64-bit arithmetic uses ALBEDO_PRECISION; 32-bit arithmetic cannot
    resolve 1 - 1e-7, so the cap is widened to a few ulps.
    """
    return max(ALBEDO_PRECISION, 10.0 * machine_epsilon(dtype))
