"""Exception types raised by pulsebase.

Only contract violations raise.  Missing data degrades to neutral values or
``None`` results and is never an exception.
"""


class PulsebaseError(Exception):
    """Base class for all pulsebase errors."""


class InvalidInputError(PulsebaseError, ValueError):
    """A caller passed arguments that violate an engine's contract."""


class ConfigError(InvalidInputError):
    """A scoring configuration is inconsistent (e.g. weights not summing to 1)."""
