"""Exception types for sysdash."""


class SysdashError(Exception):
    """Base class for sysdash errors."""


class ConfigError(SysdashError):
    """Configuration is missing, malformed or out of range.

    Raised before the dashboard starts; the CLI turns it into a non-zero exit.
    """


class TerminalError(SysdashError):
    """The terminal could not be put into or taken out of dashboard mode."""
