"""Unit tests for store/blob.py — BlobKeyValueStore behaviour."""

from unittest.mock import MagicMock, patch

import pytest
from azure.core.exceptions import (
    HttpResponseError,
    ResourceExistsError,
    ResourceNotFoundError,
)

from drive_parents.errors import StoreError
from drive_parents.store.blob import (
    DEFAULT_STATE_CONTAINER,
    BlobKeyValueStore,
    blob_store_from_config,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_store(
    container: str = DEFAULT_STATE_CONTAINER,
) -> tuple[BlobKeyValueStore, MagicMock, MagicMock]:
    """Return (store, mock_container_client, mock_blob_client)."""
    with patch("drive_parents.store.blob.BlobServiceClient") as mock_bsc_cls:
        mock_bsc = MagicMock()
        mock_bsc_cls.from_connection_string.return_value = mock_bsc
        store = BlobKeyValueStore(
            storage_connection_string="DefaultEndpointsProtocol=https;AccountName=test",
            container=container,
        )
    mock_container = MagicMock()
    mock_bsc.get_container_client.return_value = mock_container
    mock_blob = MagicMock()
    mock_container.get_blob_client.return_value = mock_blob
    return store, mock_container, mock_blob


def _named_blob(name: str) -> MagicMock:
    blob = MagicMock()
    blob.name = name
    return blob


# ---------------------------------------------------------------------------
# get tests
# ---------------------------------------------------------------------------


class TestGet:
    def test_returns_none_when_key_missing(self) -> None:
        store, _, mock_blob = _make_store()
        mock_blob.download_blob.side_effect = ResourceNotFoundError("Not found")

        assert store.get("accessToken") is None

    def test_decodes_json_value(self) -> None:
        store, mock_container, mock_blob = _make_store()
        mock_blob.download_blob.return_value.readall.return_value = b'{"timestamp": 1}'

        assert store.get("folderInfo_doc1") == {"timestamp": 1}
        mock_container.get_blob_client.assert_called_once_with("folderInfo_doc1")

    def test_raises_store_error_on_invalid_json(self) -> None:
        store, _, mock_blob = _make_store()
        mock_blob.download_blob.return_value.readall.return_value = b"not-json"

        with pytest.raises(StoreError):
            store.get("accessToken")

    def test_raises_store_error_on_storage_failure(self) -> None:
        store, _, mock_blob = _make_store()
        mock_blob.download_blob.side_effect = HttpResponseError("Server busy")

        with pytest.raises(StoreError, match="accessToken"):
            store.get("accessToken")


# ---------------------------------------------------------------------------
# set tests
# ---------------------------------------------------------------------------


class TestSet:
    def test_uploads_json_encoded_value(self) -> None:
        store, _, mock_blob = _make_store()

        store.set("accessToken", "ya29.token")

        mock_blob.upload_blob.assert_called_once_with(b'"ya29.token"', overwrite=True)

    def test_creates_container_if_not_exists(self) -> None:
        store, mock_container, _ = _make_store()

        store.set("accessToken", "ya29.token")

        mock_container.create_container.assert_called_once()

    def test_ignores_container_already_exists_error(self) -> None:
        store, mock_container, mock_blob = _make_store()
        mock_container.create_container.side_effect = ResourceExistsError("exists")

        store.set("accessToken", "ya29.token")

        mock_blob.upload_blob.assert_called_once()

    def test_raises_store_error_when_upload_fails(self) -> None:
        store, _, mock_blob = _make_store()
        mock_blob.upload_blob.side_effect = HttpResponseError("Forbidden")

        with pytest.raises(StoreError):
            store.set("accessToken", "ya29.token")


# ---------------------------------------------------------------------------
# delete tests
# ---------------------------------------------------------------------------


class TestDelete:
    def test_deletes_blob(self) -> None:
        store, _, mock_blob = _make_store()

        store.delete("accessToken")

        mock_blob.delete_blob.assert_called_once()

    def test_missing_key_is_not_an_error(self) -> None:
        store, _, mock_blob = _make_store()
        mock_blob.delete_blob.side_effect = ResourceNotFoundError("Not found")

        store.delete("accessToken")

    def test_raises_store_error_on_storage_failure(self) -> None:
        store, _, mock_blob = _make_store()
        mock_blob.delete_blob.side_effect = HttpResponseError("Server busy")

        with pytest.raises(StoreError):
            store.delete("accessToken")


# ---------------------------------------------------------------------------
# keys tests
# ---------------------------------------------------------------------------


class TestKeys:
    def test_lists_blob_names_with_prefix(self) -> None:
        store, mock_container, _ = _make_store()
        mock_container.list_blobs.return_value = [
            _named_blob("folderInfo_a"),
            _named_blob("folderInfo_b"),
        ]

        assert store.keys("folderInfo_") == ["folderInfo_a", "folderInfo_b"]
        mock_container.list_blobs.assert_called_once_with(name_starts_with="folderInfo_")

    def test_returns_empty_list_when_container_missing(self) -> None:
        store, mock_container, _ = _make_store()
        mock_container.list_blobs.side_effect = ResourceNotFoundError("No container")

        assert store.keys("folderInfo_") == []


# ---------------------------------------------------------------------------
# blob_store_from_config tests
# ---------------------------------------------------------------------------


class TestBlobStoreFromConfig:
    def test_passes_correct_config_fields(self) -> None:
        config = MagicMock()
        config.storage_connection_string = "DefaultEndpointsProtocol=https;AccountName=test"
        config.state_container = "my-container"

        with patch("drive_parents.store.blob.BlobServiceClient") as mock_bsc_cls:
            store = blob_store_from_config(config)

        mock_bsc_cls.from_connection_string.assert_called_once_with(
            "DefaultEndpointsProtocol=https;AccountName=test"
        )
        assert store._container == "my-container"
