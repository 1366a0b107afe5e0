"""
Vertical and wavelength grids.

Minimal read interfaces for the grids a solve needs: the layer and column
counts of the vertical grid and the wavelength count of the wavelength grid.
"""

from dataclasses import dataclass

import numpy as np

from .radiative_transfer.errors import DimensionMismatch


@dataclass(frozen=True)
class VerticalGrid:
    """
    Layer boundary altitudes of a batch of columns.

    Attributes
    ----------
    boundary_altitudes : array, shape (n_layers + 1, n_columns)
        Altitude [m] of every layer boundary, top of atmosphere first.
        Altitudes must strictly decrease towards the surface.
    """
    boundary_altitudes: np.ndarray

    def __post_init__(self):
        altitudes = np.array(self.boundary_altitudes, dtype=float)
        if altitudes.ndim == 1:
            altitudes = altitudes[:, np.newaxis]
        if altitudes.ndim != 2:
            raise DimensionMismatch(
                f"boundary_altitudes must be 2D (n_layers + 1, n_columns), "
                f"got shape {altitudes.shape}")
        if altitudes.shape[0] < 2:
            raise DimensionMismatch("A vertical grid needs at least one layer (two boundaries)")
        if altitudes.shape[1] < 1:
            raise DimensionMismatch("A vertical grid needs at least one column")
        if not np.all(np.diff(altitudes, axis=0) < 0):
            raise ValueError("boundary altitudes must strictly decrease from top to surface")
        altitudes.setflags(write=False)
        object.__setattr__(self, "boundary_altitudes", altitudes)

    @classmethod
    def uniform(cls, n_layers, n_columns=1, top=50e3, bottom=0.0):
        """
        Evenly spaced grid shared by all columns.

        Parameters
        ----------
        n_layers : int
            Number of layers
        n_columns : int, optional
            Number of columns (default: 1)
        top, bottom : float, optional
            Altitudes [m] of the top of atmosphere and of the surface
        """
        boundaries = np.linspace(top, bottom, n_layers + 1)
        return cls(np.tile(boundaries[:, np.newaxis], (1, n_columns)))

    @property
    def number_of_layers(self):
        """Number of layers per column."""
        return self.boundary_altitudes.shape[0] - 1

    @property
    def number_of_columns(self):
        """Number of columns in the batch."""
        return self.boundary_altitudes.shape[1]

    @property
    def layer_thickness(self):
        """Layer thickness [m], shape (n_layers, n_columns)."""
        return -np.diff(self.boundary_altitudes, axis=0)

    def __repr__(self):
        return (f"VerticalGrid with {self.number_of_layers} layers "
                f"and {self.number_of_columns} columns")


@dataclass(frozen=True)
class WavelengthGrid:
    """
    Wavelength bins defined by their edges.

    Attributes
    ----------
    edges : array, shape (n_wavelengths + 1,)
        Bin edges [m], strictly increasing
    """
    edges: np.ndarray

    def __post_init__(self):
        edges = np.array(self.edges, dtype=float)
        if edges.ndim != 1 or edges.size < 2:
            raise DimensionMismatch(
                f"wavelength edges must be 1D with at least two values, got shape {edges.shape}")
        if not np.all(np.diff(edges) > 0):
            raise ValueError("wavelength edges must be strictly increasing")
        edges.setflags(write=False)
        object.__setattr__(self, "edges", edges)

    @property
    def number_of_wavelengths(self):
        """Number of wavelength bins."""
        return self.edges.size - 1

    @property
    def midpoints(self):
        """Bin centres [m]."""
        return 0.5 * (self.edges[:-1] + self.edges[1:])

    @property
    def widths(self):
        """Bin widths [m]."""
        return np.diff(self.edges)

    def subgrid(self, index):
        """Single-bin grid holding bin ``index``."""
        if not -self.number_of_wavelengths <= index < self.number_of_wavelengths:
            raise IndexError(f"wavelength index {index} out of range "
                             f"for {self.number_of_wavelengths} bins")
        index = index % self.number_of_wavelengths
        return WavelengthGrid(self.edges[index:index + 2])

    def __len__(self):
        return self.number_of_wavelengths

    def __repr__(self):
        return f"WavelengthGrid with {self.number_of_wavelengths} bins"
