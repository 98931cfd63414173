"""
Error taxonomy for mesoscli.

Every error raised by a module derives from MesosCLIError and carries the
process exit code the command layer terminates with.
"""

EXIT_OK = 0
EXIT_USAGE = 1
EXIT_RUNTIME = 2


class MesosCLIError(Exception):
    """Base class for all mesoscli errors."""

    exit_code = EXIT_RUNTIME


class ValidationError(MesosCLIError):
    """Invalid user input, detected before any network call where possible."""

    exit_code = EXIT_USAGE


class PatternError(ValidationError):
    """A --name regular expression does not compile."""


class UsageError(ValidationError):
    """A command was invoked without enough information to do anything."""


class AmbiguousError(ValidationError):
    """An identifier matched more than one task or agent."""


class ConfigError(ValidationError):
    """The config file or the requested profile cannot be loaded."""


class NotFoundError(MesosCLIError):
    """No matching task, agent or executor."""


class TransportError(MesosCLIError):
    """A request to the cluster failed or returned an unusable response."""


class LocalClusterError(MesosCLIError):
    """The container engine failed while managing the local cluster."""


__all__ = [
    "EXIT_OK",
    "EXIT_USAGE",
    "EXIT_RUNTIME",
    "MesosCLIError",
    "ValidationError",
    "PatternError",
    "UsageError",
    "AmbiguousError",
    "ConfigError",
    "NotFoundError",
    "TransportError",
    "LocalClusterError",
]
