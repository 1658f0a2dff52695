"""Failure modes of a two-component mixture fit.

Every failure derives from `MixtureError`, so callers can catch the whole family at once. The numerical failures also derive from the builtin exception they most resemble.
"""

from __future__ import annotations


class MixtureError(Exception):
    """Base class for all fitting failures."""


class InvalidSample(MixtureError, ValueError):
    """The sample is not a finite 1-D array with at least two observations."""


class DegenerateInitialization(MixtureError):
    """The initial partition left a group with fewer than two members or no spread."""


class InvalidParameter(MixtureError, ValueError):
    """Component parameters outside their domain (e.g. a non-positive standard deviation)."""


class NumericalUnderflow(MixtureError, ArithmeticError):
    """The joint density of at least one observation underflowed under both components."""

    def __init__(self, n_underflow: int, floor: float):
        super().__init__(
            f"Mixture density underflowed below {floor:.3g} for {n_underflow} observation(s)"
        )
        self.n_underflow = n_underflow
        self.floor = floor


class CollapsedComponent(MixtureError, ArithmeticError):
    """A component lost (almost) all responsibility in the M-step."""

    def __init__(self, component: int, effective_count: float):
        super().__init__(
            f"Component {component} collapsed (effective count {effective_count:.3g})"
        )
        self.component = component
        self.effective_count = effective_count


class NotConverged(MixtureError):
    """Raised on request when a fit ended without certified convergence."""
