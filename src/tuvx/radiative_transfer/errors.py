"""
Exceptions and warnings raised by the radiative transfer solver.

All errors derive from RadiativeTransferError so that callers can catch the
whole family at once. Each concrete error also derives from the closest
built-in exception, so generic ``except ValueError`` / ``except KeyError``
handlers keep working.
"""


class RadiativeTransferError(Exception):
    """Base class for all radiative transfer solver errors."""
    pass


class DimensionMismatch(RadiativeTransferError, ValueError):
    """Raised when grid, profile or array shapes disagree."""
    pass


class MissingParameter(RadiativeTransferError, KeyError):
    """Raised when a required named parameter is absent."""

    def __init__(self, name, available=()):
        self.name = name
        self.available = tuple(available)
        message = f"Required parameter '{name}' is missing"
        if self.available:
            message += f" (available: {', '.join(sorted(self.available))})"
        super().__init__(message)

    def __str__(self):
        # KeyError quotes its argument; keep the message readable.
        return self.args[0]


class NumericalInstability(RadiativeTransferError, ArithmeticError):
    """
    Raised when a derived quantity leaves its physical range, a denominator
    or pivot is near zero, or a non-finite value appears.

    Attributes
    ----------
    quantity : str
        Name of the failed check (e.g. ``"resonance"``, ``"pivot"``).
    columns : tuple of int
        Indices of the offending columns within the batch.
    """

    def __init__(self, message, quantity=None, columns=()):
        self.quantity = quantity
        self.columns = tuple(int(c) for c in columns)
        if self.columns:
            message = f"{message} (columns: {list(self.columns)})"
        super().__init__(message)


class RadiativeTransferWarning(UserWarning):
    """Warning category for recoverable solver conditions."""
    pass
