"""
TEMPOLUX Errors - Exception taxonomy

ConfigError and StartupError happen while a show is being built;
NotFoundError and InvalidArgumentError reject live mutation requests;
OutputError wraps hardware sink failures.
"""


class TempoluxError(Exception):
    """Base class for all tempolux errors."""


class ConfigError(TempoluxError, ValueError):
    """Unknown effect type or missing/invalid constructor argument."""


class NotFoundError(TempoluxError, LookupError):
    """Unknown chain, effect or event id referenced by an action."""

    def __str__(self) -> str:
        # LookupError would repr() the message
        return str(self.args[0]) if self.args else ""


class InvalidArgumentError(TempoluxError, ValueError):
    """Bad global parameter key, type or range."""


class OutputError(TempoluxError, IOError):
    """Output send failure."""


class StartupError(TempoluxError, RuntimeError):
    """Fatal problem while building the process (e.g. duplicate registration)."""
