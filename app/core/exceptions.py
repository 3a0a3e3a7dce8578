"""Custom application exceptions."""


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, status_code: int = 500):
        """Initialize exception with message and status code."""
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class UnauthorizedException(AppException):
    """No valid session for a protected operation.

    Answered with a redirect to the login page rather than an error payload.
    """

    def __init__(self, message: str = "Unauthorized"):
        """Initialize with 401 status code."""
        super().__init__(message, status_code=401)


class BadRequestException(AppException):
    """Bad request exception."""

    def __init__(self, message: str = "Bad request"):
        """Initialize with 400 status code."""
        super().__init__(message, status_code=400)


class InvalidRequestException(BadRequestException):
    """OAuth callback is missing code, state or one of the stashed cookies."""

    def __init__(self, message: str = "Invalid request"):
        super().__init__(message)


class CsrfMismatchException(BadRequestException):
    """OAuth callback state does not match the stashed state cookie."""

    def __init__(self, message: str = "Invalid state"):
        super().__init__(message)


class ExchangeFailedException(BadRequestException):
    """Identity provider rejected the authorization code exchange."""

    def __init__(self, message: str = "Failed to validate authorization code"):
        super().__init__(message)


class ConflictException(AppException):
    """Conflict exception."""

    def __init__(self, message: str = "Conflict"):
        """Initialize with 409 status code."""
        super().__init__(message, status_code=409)


class StoreException(AppException):
    """Persistence failure surfaced from the session or bookmark store.

    Retryable from the caller's point of view.
    """

    def __init__(self, message: str = "Storage is temporarily unavailable"):
        """Initialize with 503 status code."""
        super().__init__(message, status_code=503)
