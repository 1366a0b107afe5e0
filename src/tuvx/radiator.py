"""
Accumulated optical properties of all radiators.

RadiatorState holds the optical depth, single-scattering albedo and
asymmetry parameter of every layer of every column, for one or several
wavelengths. The solver only reads it.
"""

from dataclasses import dataclass

import numpy as np

from .radiative_transfer.errors import DimensionMismatch


@dataclass(frozen=True)
class RadiatorState:
    """
    Layer optical properties of a column batch.

    Arrays have shape (n_layers, n_columns) for a single wavelength or
    (n_wavelengths, n_layers, n_columns) for a spectrum. Layer 0 is the
    top layer.

    Attributes
    ----------
    optical_depth : array
        Layer optical depth τ (dimensionless, >= 0)
    single_scattering_albedo : array
        Single-scattering albedo ω, in [0, 1]
    asymmetry_parameter : array
        Asymmetry parameter g, in [-1, 1]

    Notes
    -----
    The arrays are copied on construction and made read-only, so a solve
    can never modify the caller's values.
    """
    optical_depth: np.ndarray
    single_scattering_albedo: np.ndarray
    asymmetry_parameter: np.ndarray

    def __post_init__(self):
        arrays = {}
        for name in ("optical_depth", "single_scattering_albedo", "asymmetry_parameter"):
            values = np.array(getattr(self, name), dtype=float)
            if values.ndim not in (2, 3):
                raise DimensionMismatch(
                    f"{name} must have shape (n_layers, n_columns) or "
                    f"(n_wavelengths, n_layers, n_columns), got {values.shape}")
            values.setflags(write=False)
            arrays[name] = values

        shapes = {values.shape for values in arrays.values()}
        if len(shapes) != 1:
            raise DimensionMismatch(
                "optical_depth, single_scattering_albedo and asymmetry_parameter "
                f"must have the same shape, got {[v.shape for v in arrays.values()]}")
        shape = shapes.pop()
        if shape[-2] < 1 or shape[-1] < 1:
            raise DimensionMismatch(f"RadiatorState needs at least one layer and column, got {shape}")

        for name, values in arrays.items():
            object.__setattr__(self, name, values)

    @classmethod
    def homogeneous(cls, n_layers, n_columns=1, optical_depth=0.0,
                    single_scattering_albedo=0.0, asymmetry_parameter=0.0):
        """
        Single-wavelength state with the same properties in every column.

        Each property may be a scalar (same value in every layer) or a
        profile of length n_layers (top layer first).
        """
        def broadcast(values):
            profile = np.broadcast_to(np.asarray(values, dtype=float), (n_layers,))
            return np.tile(profile[:, np.newaxis], (1, n_columns))

        return cls(broadcast(optical_depth), broadcast(single_scattering_albedo),
                   broadcast(asymmetry_parameter))

    @property
    def number_of_wavelengths(self):
        """Number of wavelengths, or None for a single-wavelength state."""
        if self.optical_depth.ndim == 3:
            return self.optical_depth.shape[0]
        return None

    @property
    def number_of_layers(self):
        return self.optical_depth.shape[-2]

    @property
    def number_of_columns(self):
        return self.optical_depth.shape[-1]

    def at_wavelength(self, index):
        """
        Single-wavelength state for wavelength ``index``.

        A single-wavelength state returns itself for index 0.
        """
        if self.number_of_wavelengths is None:
            if index not in (0, -1):
                raise IndexError(f"wavelength index {index} out of range for a "
                                 "single-wavelength radiator state")
            return self
        return RadiatorState(self.optical_depth[index],
                             self.single_scattering_albedo[index],
                             self.asymmetry_parameter[index])

    def __repr__(self):
        wavelengths = self.number_of_wavelengths or 1
        return (f"RadiatorState with {wavelengths} wavelength(s), "
                f"{self.number_of_layers} layers and {self.number_of_columns} columns")
