"""Exception classes for Firebase admin API operations.

Every failure surfaced by the account and instance clients derives from
APIClientError so callers can catch the whole family in one place.
"""

from typing import Optional


class APIClientError(Exception):
    """Base exception for API client errors."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class TransportError(APIClientError):
    """Exception raised when a request never produced a response."""

    def __init__(self, message: str, user_guidance: Optional[str] = None):
        super().__init__(message)
        self.user_guidance = user_guidance or ""


class NetworkConnectionError(TransportError):
    """Exception raised for connection-related network failures."""

    pass


class NetworkTimeoutError(TransportError):
    """Exception raised for timeout-related network failures."""

    pass


class DNSResolutionError(TransportError):
    """Exception raised for DNS resolution failures."""

    pass


class SSLCertificateError(TransportError):
    """Exception raised for SSL certificate verification failures."""

    pass


class HttpStatusError(APIClientError):
    """Exception raised when the server answers with a non-success status."""

    def __init__(self, status_code: int):
        super().__init__(f"HTTP {status_code}", status_code=status_code)


class RemoteError(APIClientError):
    """Exception raised when the server reports a structured error."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message, status_code=status_code)
        self.code = code


class CredentialOrServerError(APIClientError):
    """Exception raised when a legacy endpoint answers ``success: false``."""

    def __init__(self, message: str = "Bad credentials or server error."):
        super().__init__(message)


class AuthenticationError(APIClientError):
    """Exception raised when logging in to an account fails."""

    pass


class DeletedInstanceError(APIClientError):
    """Exception raised when operating on an instance known to be deleted."""

    pass


class AlreadyDeletedError(DeletedInstanceError):
    """Exception raised when deleting an instance a second time."""

    pass


class UnknownTokenError(APIClientError):
    """Exception raised when removing a token the instance does not have."""

    pass


class MalformedResponseError(APIClientError):
    """Exception raised when a response body violates its expected shape."""

    pass


class MissingTokenError(MalformedResponseError):
    """Exception raised when a token field is absent from a response."""

    pass
