"""Exceptions raised by the resilience model."""


class PsresError(Exception):
    """Base class for all psres errors."""


class DataError(PsresError, ValueError):
    """Malformed or missing input data (fragility curves, durations, event state)."""


class InvalidTransitionError(PsresError, ValueError):
    """A component status change or crew allocation that the model does not allow."""
