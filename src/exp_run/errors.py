"""
Error taxonomy for exp-run.

Every condition is reported back to the shell as a rejected command; none of
them terminates the process.
"""


class ExpRunError(Exception):
    """Base class for errors surfaced to the user."""


class ValidationError(ExpRunError, ValueError):
    """A command argument was rejected; no state was changed."""


class DuplicateValues(ValidationError):
    """Range candidate contains a repeated value."""


class NonNumeric(ValidationError):
    """Range candidate contains something that is not a finite integer."""


class ConfigurationMissing(ExpRunError):
    """A command depends on configuration that has not been set."""


class NoRangeConfigured(ConfigurationMissing):
    """Experiment range is absent or empty."""


class TransientIOError(ExpRunError, OSError):
    """Network or storage failure. Logged and reported, never retried."""
