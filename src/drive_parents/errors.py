"""Error taxonomy shared by the credential, Drive and resolution layers."""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Machine-readable error classification surfaced to callers."""

    AUTH_UNAVAILABLE = "auth_unavailable"
    AUTH_DENIED = "auth_denied"
    AUTH_REQUIRED = "auth_required"
    API_UNAUTHORIZED = "api_unauthorized"
    API_NOT_FOUND = "api_not_found"
    API_FORBIDDEN = "api_forbidden"
    API_REQUEST_FAILED = "api_request_failed"
    NETWORK_ERROR = "network_error"
    STORE_FAILED = "store_failed"


# Kinds for which the caller should start a fresh sign-in.
_AUTH_PROMPT_KINDS = frozenset({ErrorKind.AUTH_REQUIRED, ErrorKind.AUTH_DENIED})


class ResolverError(Exception):
    """Base class for every error raised while resolving a document."""

    kind: ErrorKind = ErrorKind.API_REQUEST_FAILED

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    @property
    def requires_auth(self) -> bool:
        """True when the caller should prompt the user to re-authenticate."""
        return self.kind in _AUTH_PROMPT_KINDS


class AuthUnavailableError(ResolverError):
    """Raised when the identity authority is not configured or not reachable."""

    kind = ErrorKind.AUTH_UNAVAILABLE


class AuthDeniedError(ResolverError):
    """Raised when the user declined sign-in or the flow produced no token."""

    kind = ErrorKind.AUTH_DENIED


class AuthenticationRequiredError(ResolverError):
    """Raised when no usable credential is held, or a rejected one was invalidated."""

    kind = ErrorKind.AUTH_REQUIRED

    def __init__(self, message: str = "Authentication expired. Please re-authenticate.") -> None:
        super().__init__(message)


class DriveApiError(ResolverError):
    """Raised when the Drive API returns a non-2xx response."""

    def __init__(self, status_code: int, message: str, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ApiUnauthorizedError(DriveApiError):
    """HTTP 401: the bearer credential is stale or invalid."""

    kind = ErrorKind.API_UNAUTHORIZED


class ApiNotFoundError(DriveApiError):
    """HTTP 404: the file does not exist or is not visible to the caller."""

    kind = ErrorKind.API_NOT_FOUND

    def __init__(self, file_id: str, body: str = "") -> None:
        super().__init__(
            404,
            f"File not found or access denied. File ID: {file_id}\nAPI Response: {body}",
            body,
        )
        self.file_id = file_id


class ApiForbiddenError(DriveApiError):
    """HTTP 403: access to the file was refused."""

    kind = ErrorKind.API_FORBIDDEN

    def __init__(self, file_id: str, body: str = "") -> None:
        super().__init__(
            403,
            f"Access forbidden. File ID: {file_id}\n"
            "Possible causes:\n"
            "- File is private\n"
            "- API quota exceeded\n"
            "- Insufficient permissions\n"
            f"API Response: {body}",
            body,
        )
        self.file_id = file_id


class ApiRequestFailedError(DriveApiError):
    """Any other non-2xx response."""

    kind = ErrorKind.API_REQUEST_FAILED


class NetworkError(ResolverError):
    """Raised on transport-level failures that produced no HTTP response."""

    kind = ErrorKind.NETWORK_ERROR


class StoreError(ResolverError):
    """Raised when the durable key-value store cannot be read or written."""

    kind = ErrorKind.STORE_FAILED
