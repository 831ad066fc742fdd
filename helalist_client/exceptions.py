"""
Defines custom exceptions for the application to allow for more specific error handling.
"""


class HelaListError(Exception):
    """Base exception for all application-specific errors."""


class ApiError(HelaListError):
    """Base class for failures produced while talking to the HelaList API."""


class TransportError(ApiError):
    """
    Raised when the server answers with a non-2xx HTTP status.

    The message is always ``HTTP <status>: <body>``.
    """

    def __init__(self, status: int, body: str = "", message: str | None = None):
        super().__init__(message or f"HTTP {status}: {body}")
        self.status = status
        self.body = body


class DownloadHTTPError(TransportError):
    """Raised when a streamed download is refused before any bytes are read."""

    def __init__(self, status: int):
        super().__init__(status, message=f"HTTP error! status: {status}")


class EnvelopeError(ApiError):
    """
    Raised for a 2xx response whose JSON envelope carries a failure code.
    """

    FALLBACK_MESSAGE = "api error"

    def __init__(self, code: object, message: str | None = None):
        super().__init__(message or self.FALLBACK_MESSAGE)
        self.code = code


class ResponseDecodeError(ApiError):
    """Raised when a response declared as JSON cannot be parsed."""


class DownloadCancelledError(HelaListError):
    """Raised when a download is abandoned through its cancellation token."""


class AuthenticationError(HelaListError):
    """Raised when login fails or the server rejects the stored token."""


class ConfigurationError(HelaListError):
    """Raised for issues related to configuration loading or validation."""
