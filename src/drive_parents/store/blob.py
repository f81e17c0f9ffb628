"""Durable JSON key-value store backed by Azure Blob Storage."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from azure.core.exceptions import AzureError, ResourceExistsError, ResourceNotFoundError
from azure.storage.blob import BlobServiceClient

from drive_parents.errors import StoreError

if TYPE_CHECKING:
    from drive_parents.config import AppConfig

logger = logging.getLogger(__name__)

DEFAULT_STATE_CONTAINER = "drive-parents-state"


class BlobKeyValueStore:
    """Key-value store mapping each key to one JSON blob in a single container.

    Values are opaque JSON documents; the store knows nothing about their
    shape. A missing key reads as None and deleting a missing key is a no-op.
    Every other storage failure is raised as StoreError.
    """

    def __init__(
        self,
        storage_connection_string: str,
        container: str = DEFAULT_STATE_CONTAINER,
    ) -> None:
        """Initialise the store.

        Args:
            storage_connection_string: Azure Storage connection string.
            container: Blob container holding one blob per key.
        """
        self._blob_service = BlobServiceClient.from_connection_string(storage_connection_string)
        self._container = container

    def _container_client(self) -> Any:
        return self._blob_service.get_container_client(self._container)

    def get(self, key: str) -> Any | None:
        """Read and decode the JSON value stored under a key.

        Args:
            key: Store key (used verbatim as the blob name).

        Returns:
            Decoded JSON value, or None if the key is absent.

        Raises:
            StoreError: If the blob cannot be read or does not hold valid JSON.
        """
        try:
            blob_client = self._container_client().get_blob_client(key)
            data = blob_client.download_blob().readall()
        except ResourceNotFoundError:
            return None
        except AzureError as exc:
            logger.error("[store_get] read failed; key:%s", key)
            raise StoreError(f"Failed to read key {key}: {exc}") from exc

        try:
            return json.loads(data)
        except ValueError as exc:
            raise StoreError(f"Stored value for key {key} is not valid JSON") from exc

    def set(self, key: str, value: Any) -> None:
        """Write a JSON value under a key, creating the container if needed.

        Args:
            key: Store key (used verbatim as the blob name).
            value: JSON-serialisable value; replaces any previous value.

        Raises:
            StoreError: If the blob cannot be written.
        """
        container_client = self._container_client()
        try:
            container_client.create_container()
            logger.info("[store_set] created blob container; container:%s", self._container)
        except ResourceExistsError:
            # Container already exists.
            pass
        except AzureError as exc:
            raise StoreError(f"Failed to create container {self._container}: {exc}") from exc

        payload = json.dumps(value).encode("utf-8")
        try:
            container_client.get_blob_client(key).upload_blob(payload, overwrite=True)
        except AzureError as exc:
            logger.error("[store_set] write failed; key:%s", key)
            raise StoreError(f"Failed to write key {key}: {exc}") from exc

    def delete(self, key: str) -> None:
        """Remove a key. Removing an absent key is not an error.

        Raises:
            StoreError: If the blob exists but cannot be deleted.
        """
        try:
            self._container_client().get_blob_client(key).delete_blob()
        except ResourceNotFoundError:
            return
        except AzureError as exc:
            logger.error("[store_delete] delete failed; key:%s", key)
            raise StoreError(f"Failed to delete key {key}: {exc}") from exc

    def keys(self, prefix: str = "") -> list[str]:
        """List stored keys, optionally restricted to those starting with a prefix.

        Raises:
            StoreError: If the container listing fails for any reason other
                than the container not existing yet.
        """
        try:
            blobs = self._container_client().list_blobs(name_starts_with=prefix or None)
            return [blob.name for blob in blobs]
        except ResourceNotFoundError:
            return []
        except AzureError as exc:
            raise StoreError(f"Failed to list keys with prefix {prefix!r}: {exc}") from exc


def blob_store_from_config(config: AppConfig) -> BlobKeyValueStore:
    """Construct a BlobKeyValueStore from application configuration.

    Args:
        config: Application configuration instance.

    Returns:
        Configured BlobKeyValueStore instance.
    """
    return BlobKeyValueStore(
        storage_connection_string=config.storage_connection_string,
        container=config.state_container,
    )
