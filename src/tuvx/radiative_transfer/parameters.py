"""
Solver configuration.

SolverParameters collects the named scalar inputs of a solve (surface
reflectivity, incident solar flux, boundary inputs) together with the
floating-point precision and the numerical tolerances. Tolerances that are
not given explicitly are derived from the chosen precision.
"""

import math
from dataclasses import dataclass, fields
from typing import Mapping, NamedTuple, Optional

import numpy as np

from ..constants import (MIN_COSINE_ZENITH, SUPPORTED_DTYPES, albedo_precision,
                         machine_epsilon)
from .errors import MissingParameter

HORIZON_POLICIES = ("raise", "dark")


class Tolerances(NamedTuple):
    """
    Numerical tolerances passed into the compiled column pipeline.

    A NamedTuple of floats, so it can be passed straight through
    ``jax.jit`` / ``jax.vmap`` as a pytree.
    """
    albedo_precision: float      # cap distance of ω' from 1
    range_tolerance: float       # slack on the [0, 1] / [-1, 1] range checks
    denominator_tolerance: float  # |1 - ωf|, |1 + g| below this are degenerate
    resonance_tolerance: float   # relative |λ² - 1/μ₀²| threshold
    pivot_tolerance: float       # relative Thomas pivot threshold
    min_cosine_zenith: float     # μ₀ at or below this is the horizon


@dataclass(frozen=True)
class SolverParameters:
    """
    Named configuration values for a delta-Eddington solve.

    Attributes
    ----------
    surface_reflectivity : float
        Lambertian surface albedo R_sfc, in [0, 1]
    solar_flux : float
        Incident solar flux at the top of the atmosphere, measured normal
        to the beam [W m⁻² nm⁻¹ or any consistent unit]. The direct
        irradiance on a horizontal plane is μ₀ times this value.
    top_diffuse_flux : float, optional
        Diffuse downwelling irradiance entering at the top (default: 0)
    surface_emission : float, optional
        Isotropic diffuse irradiance emitted by the surface (default: 0)
    dtype : str or dtype, optional
        Floating-point precision for the whole solve: "float64" (default)
        or "float32"
    horizon_policy : str, optional
        "raise" (default): columns with μ₀ <= min_cosine_zenith raise
        NumericalInstability. "dark": such columns get no direct beam.
    min_cosine_zenith : float, optional
        Horizon threshold on μ₀ = cos(zenith)
    range_tolerance, resonance_tolerance, pivot_tolerance : float, optional
        Override the precision-derived tolerances
    """
    surface_reflectivity: float
    solar_flux: float
    top_diffuse_flux: float = 0.0
    surface_emission: float = 0.0
    dtype: object = "float64"
    horizon_policy: str = "raise"
    min_cosine_zenith: float = MIN_COSINE_ZENITH
    range_tolerance: Optional[float] = None
    resonance_tolerance: Optional[float] = None
    pivot_tolerance: Optional[float] = None

    def __post_init__(self):
        dtype = np.dtype(self.dtype)
        if dtype not in SUPPORTED_DTYPES:
            raise ValueError(f"Unsupported dtype {dtype}; use float32 or float64")
        object.__setattr__(self, "dtype", dtype)

        if not 0.0 <= self.surface_reflectivity <= 1.0:
            raise ValueError(f"surface_reflectivity must be in [0, 1], "
                             f"got {self.surface_reflectivity}")
        if not (math.isfinite(self.solar_flux) and self.solar_flux >= 0.0):
            raise ValueError(f"solar_flux must be finite and non-negative, got {self.solar_flux}")
        if not (math.isfinite(self.top_diffuse_flux) and self.top_diffuse_flux >= 0.0):
            raise ValueError(f"top_diffuse_flux must be finite and non-negative, "
                             f"got {self.top_diffuse_flux}")
        if not (math.isfinite(self.surface_emission) and self.surface_emission >= 0.0):
            raise ValueError(f"surface_emission must be finite and non-negative, "
                             f"got {self.surface_emission}")
        if self.horizon_policy not in HORIZON_POLICIES:
            raise ValueError(f"Unknown horizon_policy: {self.horizon_policy}. "
                             f"Use one of {HORIZON_POLICIES}")
        if not 0.0 < self.min_cosine_zenith < 1.0:
            raise ValueError("min_cosine_zenith must be in (0, 1)")

    @classmethod
    def from_mapping(cls, values: Mapping[str, object]) -> "SolverParameters":
        """
        Build parameters from a name-keyed mapping.

        Parameters
        ----------
        values : mapping
            Keys are the attribute names of SolverParameters. Unknown keys
            are rejected; missing optional keys take their defaults.

        Returns
        -------
        SolverParameters

        Raises
        ------
        MissingParameter
            If ``surface_reflectivity`` or ``solar_flux`` is absent.
        """
        known = {f.name for f in fields(cls)}
        unknown = set(values) - known
        if unknown:
            raise ValueError(f"Unknown solver parameters: {sorted(unknown)}")

        kwargs = {}
        for name in ("surface_reflectivity", "solar_flux"):
            if name not in values:
                raise MissingParameter(name, available=values.keys())
            kwargs[name] = float(values[name])
        for name in known - {"surface_reflectivity", "solar_flux"}:
            if name in values:
                kwargs[name] = values[name]
        return cls(**kwargs)

    @property
    def tolerances(self) -> Tolerances:
        """Tolerances for the configured precision."""
        eps = machine_epsilon(self.dtype)
        return Tolerances(
            albedo_precision=albedo_precision(self.dtype),
            range_tolerance=(self.range_tolerance if self.range_tolerance is not None
                             else 100.0 * eps),
            denominator_tolerance=100.0 * eps,
            resonance_tolerance=(self.resonance_tolerance if self.resonance_tolerance is not None
                                 else math.sqrt(eps)),
            pivot_tolerance=(self.pivot_tolerance if self.pivot_tolerance is not None
                             else 10.0 * eps),
            min_cosine_zenith=self.min_cosine_zenith,
        )
