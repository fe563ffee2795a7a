"""
Exception hierarchy for anthstat.

Every error raised for bad input or bad reference data derives from
``AnthStatError`` and from the matching builtin, so callers may catch either
``ValueError``/``LookupError`` or the package-specific class.
"""


class AnthStatError(Exception):
    """Base class for all anthstat errors."""


class InvalidDistributionParameterError(AnthStatError, ValueError):
    """An LMS parameter makes the Box-Cox transform undefined (S or M is zero)."""


class OutOfRangeError(AnthStatError, ValueError):
    """Indicator, measurement or age/length falls outside the reference window."""


class LookupExhaustedError(AnthStatError, LookupError):
    """No exact entry and no bracketing neighbors for an in-range measurement."""


class ReferenceDataError(AnthStatError, FileNotFoundError):
    """The packaged growth reference data could not be located."""
