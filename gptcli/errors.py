"""
Error types raised by gptcli.

Each error also subclasses the closest builtin so callers that only
care about ValueError / OSError keep working.
"""


class GPTCLIError(Exception):
    """Base class for all gptcli errors."""


class InvalidArgumentError(GPTCLIError, ValueError):
    """A caller supplied an out-of-range argument (chunk size, vector, ...)."""


class NotFoundError(GPTCLIError, FileNotFoundError):
    """An embedding file or directory does not exist."""


class StoreIOError(GPTCLIError, OSError):
    """An embedding file, directory or stream could not be read or written."""


class CorruptDataError(GPTCLIError, ValueError):
    """An embedding source could not be parsed into documents."""


class ProviderError(GPTCLIError, RuntimeError):
    """The completion or embedding provider reported a failure."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
