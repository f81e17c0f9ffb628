"""Routes parsed requests to the engine, one handler per request type."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from drive_parents.errors import ResolverError
from drive_parents.messaging.requests import (
    Authenticate,
    CheckDriveAccess,
    CheckStorageStatus,
    ClearCache,
    FileDetected,
    GetFolderInfo,
    InvalidRequestError,
    Request,
    Response,
    SignOut,
    parse_request,
)

if TYPE_CHECKING:
    from drive_parents.resolution.engine import ResolutionEngine

logger = logging.getLogger(__name__)


class MessageDispatcher:
    """Turns request messages into tagged responses.

    Every ResolverError raised by a handler becomes a failed Response;
    nothing a single request does leaves the dispatcher unusable.
    """

    def __init__(self, engine: ResolutionEngine) -> None:
        self._engine = engine

    def dispatch(self, message: Any) -> Response:
        """Parse a decoded JSON message and handle it.

        Args:
            message: Decoded JSON request object.

        Returns:
            Response describing the outcome.
        """
        try:
            request = parse_request(message)
        except InvalidRequestError as exc:
            logger.warning("[dispatch] rejected request; reason:%s", exc)
            return Response(success=False, error=str(exc))
        return self.handle(request)

    def handle(self, request: Request) -> Response:
        """Run the handler for a parsed request."""
        logger.info("[dispatch] handling request; type:%s", type(request).__name__)
        try:
            if isinstance(request, FileDetected):
                return self._file_detected(request)
            if isinstance(request, GetFolderInfo):
                return self._get_folder_info(request)
            if isinstance(request, Authenticate):
                return self._authenticate()
            if isinstance(request, SignOut):
                return self._sign_out()
            if isinstance(request, ClearCache):
                return self._clear_cache()
            if isinstance(request, CheckStorageStatus):
                return self._check_storage_status()
            if isinstance(request, CheckDriveAccess):
                return self._test_drive_access()
        except ResolverError as exc:
            logger.warning(
                "[dispatch] request failed; type:%s;error:%s",
                type(request).__name__,
                exc.kind.value,
            )
            return Response(
                success=False,
                error=exc.message,
                error_kind=exc.kind.value,
                requires_auth=exc.requires_auth,
            )
        raise TypeError(f"No handler for request {request!r}")

    def _file_detected(self, request: FileDetected) -> Response:
        return Response(success=True, data={"cached": self._engine.prefetch(request.id)})

    def _get_folder_info(self, request: GetFolderInfo) -> Response:
        result = self._engine.resolve(request.id, force_refresh=request.force_refresh)
        return Response(success=True, data=result.to_dict())

    def _authenticate(self) -> Response:
        url = self._engine.provider.begin_sign_in()
        return Response(success=True, data={"authorizationUrl": url})

    def _sign_out(self) -> Response:
        self._engine.provider.invalidate()
        return Response(success=True, data={"authenticated": False})

    def _clear_cache(self) -> Response:
        return Response(success=True, data={"cleared": self._engine.cache.invalidate_all()})

    def _check_storage_status(self) -> Response:
        return Response(
            success=True,
            data={
                "authenticated": self._engine.provider.has_credential(),
                "cachedEntries": self._engine.cache.count(),
            },
        )

    def _test_drive_access(self) -> Response:
        user = self._engine.check_access()
        return Response(success=True, data={"accessible": True, "user": user})
