"""Exceptions raised by pysling."""


class SlingError(Exception):
    """Base exception for all pysling errors."""


class SlingConfigError(SlingError):
    """Raised when the input configuration is invalid.

    Configuration errors are detected before any network activity and abort
    the whole run.
    """


class SlingFileNotFoundError(SlingConfigError):
    """Raised when a local input path does not exist."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"The path {path} does not exist.")


class SlingAPIError(SlingError):
    """Base exception for errors talking to the POST servlet."""


class SlingNetworkError(SlingAPIError):
    """Raised when a request could not be delivered (connection, DNS, stream)."""


class SlingInvalidResponseError(SlingAPIError):
    """Raised when the servlet returned a body that is not valid JSON."""


class SlingCycleError(SlingError):
    """Raised when a directory links back to one of its own ancestors."""
