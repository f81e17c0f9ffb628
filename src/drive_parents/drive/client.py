"""Google Drive v3 metadata client."""

from __future__ import annotations

import http.client
import json
import logging
from typing import TYPE_CHECKING, Any
from urllib import request as urllib_request
from urllib.error import HTTPError
from urllib.parse import quote, urlencode

from drive_parents.drive.models import (
    FIELD_ID,
    FIELD_NAME,
    FIELD_PARENTS,
    FIELD_USER,
    FIELD_WEB_VIEW_LINK,
    FileSummary,
    FolderSummary,
    ResolutionResult,
)
from drive_parents.errors import (
    ApiForbiddenError,
    ApiNotFoundError,
    ApiRequestFailedError,
    ApiUnauthorizedError,
    DriveApiError,
    NetworkError,
)

if TYPE_CHECKING:
    from drive_parents.config import AppConfig

logger = logging.getLogger(__name__)

DRIVE_BASE_URL = "https://www.googleapis.com/drive/v3"

FILE_FIELDS = (FIELD_ID, FIELD_NAME, FIELD_PARENTS, FIELD_WEB_VIEW_LINK)
FOLDER_FIELDS = (FIELD_ID, FIELD_NAME, FIELD_WEB_VIEW_LINK)


class DriveClient:
    """Read-only client for the Drive files and about endpoints.

    The client holds no credential of its own: every call takes the bearer
    token to use, so refresh and invalidation stay with the caller. No call is
    retried.
    """

    def __init__(self, base_url: str = DRIVE_BASE_URL) -> None:
        self._base_url = base_url.rstrip("/")

    def get(self, path: str, credential: str, fields: tuple[str, ...] = ()) -> dict[str, Any]:
        """Perform an authenticated GET request against the Drive API.

        Args:
            path: URL path relative to the base URL (must start with '/').
            credential: Bearer access token.
            fields: Partial-response field selector; omitted when empty.

        Returns:
            Parsed JSON response body as a dict.

        Raises:
            ApiUnauthorizedError: On HTTP 401.
            ApiRequestFailedError: On any other non-2xx status, or a 2xx
                response whose body is not a JSON object.
            NetworkError: If no complete HTTP response was received.
        """
        url = f"{self._base_url}{path}"
        if fields:
            url = f"{url}?{urlencode({'fields': ','.join(fields)}, safe=',()')}"
        req = urllib_request.Request(
            url,
            headers={
                "Authorization": f"Bearer {credential}",
                "Accept": "application/json",
            },
            method="GET",
        )
        try:
            with urllib_request.urlopen(req) as resp:
                status = resp.status
                body = resp.read()
        except HTTPError as exc:
            raw = exc.read().decode("utf-8", errors="replace")
            logger.warning("[drive_get] request failed; path:%s;status:%d", path, exc.code)
            if exc.code == 401:
                raise ApiUnauthorizedError(
                    401, f"Credential rejected by Drive API\nAPI Response: {raw}", raw
                ) from exc
            raise ApiRequestFailedError(
                exc.code, f"API request failed: {exc.code} {exc.reason}\nAPI Response: {raw}", raw
            ) from exc
        except (OSError, http.client.HTTPException) as exc:
            # URLError, socket errors and truncated or dropped responses.
            reason = getattr(exc, "reason", None) or exc
            logger.warning(
                "[drive_get] transport failure; path:%s;error:%s", path, type(exc).__name__
            )
            raise NetworkError(f"Network error contacting Drive API: {reason}") from exc

        try:
            data = json.loads(body)
        except ValueError as exc:
            raise ApiRequestFailedError(
                status, "Drive API returned a response that is not JSON"
            ) from exc
        if not isinstance(data, dict):
            raise ApiRequestFailedError(status, "Drive API returned an unexpected JSON document")
        return data

    def get_file(self, file_id: str, credential: str) -> dict[str, Any]:
        """Fetch a file record, mapping 404 and 403 to their file-scoped errors.

        Raises:
            ApiUnauthorizedError: On HTTP 401.
            ApiNotFoundError: On HTTP 404.
            ApiForbiddenError: On HTTP 403.
            ApiRequestFailedError: On any other non-2xx status.
            NetworkError: If no complete HTTP response was received.
        """
        try:
            return self.get(f"/files/{quote(file_id, safe='')}", credential, FILE_FIELDS)
        except ApiRequestFailedError as exc:
            if exc.status_code == 404:
                raise ApiNotFoundError(file_id, exc.body) from exc
            if exc.status_code == 403:
                raise ApiForbiddenError(file_id, exc.body) from exc
            raise

    def get_folder(self, folder_id: str, credential: str) -> FolderSummary | None:
        """Fetch one parent folder, or None if it cannot be read for any reason."""
        try:
            record = self.get(f"/files/{quote(folder_id, safe='')}", credential, FOLDER_FIELDS)
        except (DriveApiError, NetworkError) as exc:
            logger.info(
                "[get_folder] skipping unreadable parent; folder_id:%s;error:%s",
                folder_id,
                exc.kind.value,
            )
            return None
        return FolderSummary.from_api(record)

    def fetch_resolution(self, file_id: str, credential: str) -> ResolutionResult:
        """Resolve a file to its metadata and its readable parent folders.

        Parents are fetched one at a time in the order the file record lists
        them. A parent that cannot be fetched is left out of the result; only
        a failure on the file itself aborts the resolution.

        Args:
            file_id: Drive file ID.
            credential: Bearer access token.

        Returns:
            ResolutionResult for the file.

        Raises:
            ResolverError: Any classified error from fetching the file record.
        """
        record = self.get_file(file_id, credential)
        parent_ids = record.get(FIELD_PARENTS) or []

        folders: list[FolderSummary] = []
        for parent_id in parent_ids:
            folder = self.get_folder(parent_id, credential)
            if folder is not None:
                folders.append(folder)

        logger.info(
            "[fetch_resolution] resolved file; file_id:%s;parent_count:%d;folder_count:%d",
            file_id,
            len(parent_ids),
            len(folders),
        )
        return ResolutionResult(file=FileSummary.from_api(record), folders=tuple(folders))

    def fetch_about(self, credential: str) -> dict[str, Any]:
        """Fetch the signed-in user's profile from the about endpoint.

        Raises:
            ResolverError: Any classified error from the request.
        """
        return self.get("/about", credential, (FIELD_USER,))


def drive_client_from_config(config: AppConfig) -> DriveClient:
    """Construct a DriveClient from application configuration.

    Args:
        config: Application configuration instance.

    Returns:
        Configured DriveClient instance.
    """
    return DriveClient(base_url=config.drive_base_url)
