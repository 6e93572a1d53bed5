"""
Exception types and error message extraction.
"""


class ScanError(Exception):
    """Base class for all errors raised by pageprobe."""


class PageMissingError(ScanError):
    """No page handle was supplied to start a scan."""


class ChannelSetupError(ScanError):
    """The DevTools channel to the page could not be established."""


class CommandError(ScanError):
    """A DevTools command failed or returned an error payload."""

    def __init__(self, method: str, message: str) -> None:
        super().__init__(f"{method} failed: {message}")
        self.method = method


def get_error_message(error: BaseException | object) -> str:
    """
    Safely extract an error message from an unknown error type.
    """
    if isinstance(error, Exception):
        return str(error) or type(error).__name__
    return "Unknown error"
