"""Resolution engine — serves cached results or resolves through the Drive API."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from drive_parents.auth.credentials import CredentialProvider, credential_provider_from_config
from drive_parents.auth.identity import identity_authority_from_config
from drive_parents.drive.client import DriveClient, drive_client_from_config
from drive_parents.errors import (
    ApiUnauthorizedError,
    AuthenticationRequiredError,
    ResolverError,
    StoreError,
)
from drive_parents.resolution.cache import ResultCache, result_cache_from_config
from drive_parents.store.blob import blob_store_from_config

if TYPE_CHECKING:
    from drive_parents.config import AppConfig
    from drive_parents.drive.models import ResolutionResult

logger = logging.getLogger(__name__)


class ResolutionEngine:
    """Resolves file IDs to their parent folders, one metadata fetch per call."""

    def __init__(
        self,
        provider: CredentialProvider,
        client: DriveClient,
        cache: ResultCache,
    ) -> None:
        """Initialise the engine.

        Args:
            provider: Source of the bearer credential.
            client: Drive metadata client.
            cache: Result cache consulted before and written after each fetch.
        """
        self._provider = provider
        self._client = client
        self._cache = cache

    @property
    def provider(self) -> CredentialProvider:
        return self._provider

    @property
    def cache(self) -> ResultCache:
        return self._cache

    def resolve(self, file_id: str, force_refresh: bool = False) -> ResolutionResult:
        """Return a file's metadata and parent folders.

        Steps:
            1. Unless ``force_refresh`` is set, return a fresh cached result.
            2. Acquire a credential; none held raises AuthenticationRequiredError.
            3. Fetch the file and its parents from the Drive API.
            4. Cache the result and return it.

        A credential rejected by the API is invalidated and reported as
        AuthenticationRequiredError; the call is not retried and no new
        sign-in is started. The caller decides when to re-authenticate and
        resolve again.

        Args:
            file_id: Drive file ID.
            force_refresh: Skip the cache lookup (the result is still cached).

        Returns:
            ResolutionResult for the file.

        Raises:
            AuthenticationRequiredError: If no credential is held or the API
                rejected it.
            ResolverError: Any other classified failure, unchanged.
        """
        if not force_refresh:
            cached = self._cached(file_id)
            if cached is not None:
                return cached

        credential = self._provider.acquire()
        try:
            result = self._client.fetch_resolution(file_id, credential)
        except ApiUnauthorizedError as exc:
            logger.warning("[resolve] credential rejected; file_id:%s", file_id)
            self._provider.invalidate()
            raise AuthenticationRequiredError() from exc

        try:
            self._cache.put(file_id, result)
        except StoreError:
            logger.warning("[resolve] could not cache result; file_id:%s", file_id, exc_info=True)
        return result

    def prefetch(self, file_id: str) -> bool:
        """Warm the cache for a newly detected file.

        Failures are logged and swallowed so detection never surfaces an error.

        Returns:
            True if a result for the file is now available.
        """
        try:
            self.resolve(file_id)
        except ResolverError as exc:
            logger.warning(
                "[prefetch] failed to cache file info; file_id:%s;error:%s",
                file_id,
                exc.kind.value,
            )
            return False
        return True

    def check_access(self) -> dict[str, Any]:
        """Verify that the current credential can read from Drive.

        Returns:
            The ``user`` object reported by the about endpoint.

        Raises:
            AuthenticationRequiredError: If no credential is held or the API
                rejected it.
            ResolverError: Any other classified failure.
        """
        credential = self._provider.acquire()
        try:
            about = self._client.fetch_about(credential)
        except ApiUnauthorizedError as exc:
            self._provider.invalidate()
            raise AuthenticationRequiredError() from exc
        return dict(about.get("user") or {})

    def _cached(self, file_id: str) -> ResolutionResult | None:
        try:
            return self._cache.get(file_id)
        except StoreError:
            logger.warning("[resolve] cache unreadable; file_id:%s", file_id, exc_info=True)
            return None


def resolution_engine_from_config(config: AppConfig) -> ResolutionEngine:
    """Construct a ResolutionEngine from application configuration.

    Creates one blob store shared by the credential store and the result
    cache, then wires the provider, client and cache together.

    Args:
        config: Application configuration instance.

    Returns:
        Configured ResolutionEngine instance.
    """
    store = blob_store_from_config(config)
    provider = credential_provider_from_config(
        config, store, identity_authority_from_config(config)
    )
    return ResolutionEngine(
        provider=provider,
        client=drive_client_from_config(config),
        cache=result_cache_from_config(config, store),
    )
