"""Request and response types exchanged with the presentation layer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

# Request type tags
FILE_DETECTED = "FILE_DETECTED"
GET_FOLDER_INFO = "GET_FOLDER_INFO"
AUTHENTICATE = "AUTHENTICATE"
SIGN_OUT = "SIGN_OUT"
CLEAR_CACHE = "CLEAR_CACHE"
CHECK_STORAGE_STATUS = "CHECK_STORAGE_STATUS"
TEST_DRIVE_ACCESS = "TEST_DRIVE_ACCESS"

# Request JSON keys
KEY_TYPE = "type"
KEY_ID = "id"
KEY_FORCE_REFRESH = "forceRefresh"


class InvalidRequestError(ValueError):
    """Raised when a request message cannot be parsed."""


@dataclass(frozen=True)
class FileDetected:
    id: str


@dataclass(frozen=True)
class GetFolderInfo:
    id: str
    force_refresh: bool = False


@dataclass(frozen=True)
class Authenticate:
    pass


@dataclass(frozen=True)
class SignOut:
    pass


@dataclass(frozen=True)
class ClearCache:
    pass


@dataclass(frozen=True)
class CheckStorageStatus:
    pass


@dataclass(frozen=True)
class CheckDriveAccess:
    pass


Request = Union[
    FileDetected,
    GetFolderInfo,
    Authenticate,
    SignOut,
    ClearCache,
    CheckStorageStatus,
    CheckDriveAccess,
]


@dataclass(frozen=True)
class Response:
    """Tagged response: ``data`` on success, ``error`` text and kind otherwise.

    Attributes:
        success: Whether the request was handled without error.
        data: Handler payload on success.
        error: Human-readable error message on failure.
        error_kind: Machine-readable error classification on failure.
        requires_auth: True when the user must sign in again.
    """

    success: bool
    data: Any = None
    error: str | None = None
    error_kind: str | None = None
    requires_auth: bool = False

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"success": self.success}
        if self.data is not None:
            body["data"] = self.data
        if self.error is not None:
            body["error"] = self.error
            body["errorKind"] = self.error_kind
            body["requiresAuth"] = self.requires_auth
        return body


def _file_id(message: dict[str, Any]) -> str:
    file_id = message.get(KEY_ID)
    if not isinstance(file_id, str) or not file_id:
        raise InvalidRequestError(f"Request field '{KEY_ID}' must be a non-empty string")
    return file_id


def _force_refresh(message: dict[str, Any]) -> bool:
    force_refresh = message.get(KEY_FORCE_REFRESH, False)
    if not isinstance(force_refresh, bool):
        raise InvalidRequestError(f"Request field '{KEY_FORCE_REFRESH}' must be a boolean")
    return force_refresh


def parse_request(message: Any) -> Request:
    """Turn a decoded JSON message into its request variant.

    Args:
        message: Decoded JSON object with a ``type`` tag.

    Returns:
        The matching request dataclass.

    Raises:
        InvalidRequestError: If the message is not an object, the type is
            unknown, or a field is missing or of the wrong type.
    """
    if not isinstance(message, dict):
        raise InvalidRequestError("Request must be a JSON object")

    kind = message.get(KEY_TYPE)
    if kind == FILE_DETECTED:
        return FileDetected(id=_file_id(message))
    if kind == GET_FOLDER_INFO:
        return GetFolderInfo(
            id=_file_id(message),
            force_refresh=_force_refresh(message),
        )
    if kind == AUTHENTICATE:
        return Authenticate()
    if kind == SIGN_OUT:
        return SignOut()
    if kind == CLEAR_CACHE:
        return ClearCache()
    if kind == CHECK_STORAGE_STATUS:
        return CheckStorageStatus()
    if kind == TEST_DRIVE_ACCESS:
        return CheckDriveAccess()
    raise InvalidRequestError("Unknown message type")
