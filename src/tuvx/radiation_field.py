"""
Radiation field container and helpers.

A RadiationField holds six arrays: the direct, upwelling and downwelling
components of the spectral irradiance and of the actinic flux. For a single
wavelength each array has shape (n_layers + 1, n_columns), indexed by layer
boundary (0 = top of atmosphere, n_layers = surface) and column.
Multi-wavelength results carry an extra leading wavelength axis.
"""

from typing import NamedTuple, Sequence

import h5py
import jax.numpy as jnp
import numpy as np


class FluxComponents(NamedTuple):
    """Direct, upwelling and downwelling parts of one radiometric quantity."""
    direct: jnp.ndarray
    upwelling: jnp.ndarray
    downwelling: jnp.ndarray


class RadiationField(NamedTuple):
    """
    Radiation field at every layer boundary of every column.

    Attributes
    ----------
    spectral_irradiance : FluxComponents
        Irradiance on a horizontal plane. ``downwelling`` is the diffuse
        part only; the direct beam is reported separately.
    actinic_flux : FluxComponents
        Spherically integrated radiance. The direct part is the beam flux
        normal to the sun; the diffuse parts are the diffuse irradiances
        divided by the Eddington hemispheric mean cosine.
    """
    spectral_irradiance: FluxComponents
    actinic_flux: FluxComponents

    @property
    def shape(self):
        """Shape shared by all six arrays."""
        return self.spectral_irradiance.direct.shape

    def column(self, index):
        """Radiation field of a single column (arrays indexed by boundary)."""
        return _map_arrays(self, lambda values: values[..., index])

    def to_numpy(self):
        """Copy of the field with every array converted to numpy."""
        return _map_arrays(self, np.asarray)


def _map_arrays(field, func):
    return RadiationField(
        spectral_irradiance=FluxComponents(*(func(v) for v in field.spectral_irradiance)),
        actinic_flux=FluxComponents(*(func(v) for v in field.actinic_flux)),
    )


def net_flux(field):
    """
    Net downward irradiance (direct + diffuse down - diffuse up).

    Parameters
    ----------
    field : RadiationField

    Returns
    -------
    array
        Same shape as the field arrays. Its decrease between two boundaries
        is the power absorbed in between.
    """
    irradiance = field.spectral_irradiance
    return irradiance.direct + irradiance.downwelling - irradiance.upwelling


def total_actinic_flux(field):
    """Sum of the direct, upwelling and downwelling actinic flux."""
    actinic = field.actinic_flux
    return actinic.direct + actinic.upwelling + actinic.downwelling


def stack_radiation_fields(fields: Sequence[RadiationField]):
    """
    Stack per-wavelength fields along a new leading wavelength axis.

    Parameters
    ----------
    fields : sequence of RadiationField
        Fields of identical shape, one per wavelength

    Returns
    -------
    RadiationField
        Arrays of shape (n_wavelengths, n_layers + 1, n_columns)
    """
    if len(fields) == 0:
        raise ValueError("Can't stack an empty sequence of radiation fields")

    def stack(group, component):
        return jnp.stack([getattr(getattr(f, group), component) for f in fields])

    return RadiationField(
        spectral_irradiance=FluxComponents(
            *(stack("spectral_irradiance", c) for c in FluxComponents._fields)),
        actinic_flux=FluxComponents(
            *(stack("actinic_flux", c) for c in FluxComponents._fields)),
    )


def save_radiation_field(field, filename):
    """
    Write a radiation field to an HDF5 file.

    The file holds two groups, ``spectral_irradiance`` and
    ``actinic_flux``, each with ``direct``, ``upwelling`` and
    ``downwelling`` datasets.

    Parameters
    ----------
    field : RadiationField
    filename : str or Path
    """
    with h5py.File(filename, 'w') as f:
        for group_name, components in zip(RadiationField._fields, field):
            group = f.create_group(group_name)
            for name, values in zip(FluxComponents._fields, components):
                group.create_dataset(name, data=np.asarray(values))


def load_radiation_field(filename):
    """
    Read a radiation field written by save_radiation_field.

    Parameters
    ----------
    filename : str or Path

    Returns
    -------
    RadiationField
        Arrays are returned as JAX arrays.
    """
    groups = []
    with h5py.File(filename, 'r') as f:
        for group_name in RadiationField._fields:
            if group_name not in f:
                raise KeyError(f"{filename} has no '{group_name}' group")
            group = f[group_name]
            groups.append(FluxComponents(
                *(jnp.asarray(group[name][()]) for name in FluxComponents._fields)))
    return RadiationField(*groups)
