"""Unit tests for resolution/engine.py — ResolutionEngine behaviour."""

from unittest.mock import MagicMock, patch

import pytest

from drive_parents.auth.credentials import CredentialProvider, CredentialState, CredentialStore
from drive_parents.drive.models import FileSummary, FolderSummary, ResolutionResult
from drive_parents.errors import (
    ApiForbiddenError,
    ApiNotFoundError,
    ApiUnauthorizedError,
    AuthenticationRequiredError,
    ErrorKind,
    NetworkError,
    StoreError,
)
from drive_parents.resolution.cache import ResultCache
from drive_parents.resolution.engine import ResolutionEngine, resolution_engine_from_config

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _result(file_id: str = "doc123") -> ResolutionResult:
    return ResolutionResult(
        file=FileSummary(id=file_id, name="Budget.xlsx", url=f"https://x/{file_id}"),
        folders=(FolderSummary(id="fA", name="Reports", url="https://x/fA"),),
    )


def _make_engine(store) -> tuple[ResolutionEngine, MagicMock, MagicMock]:
    """Return (engine, mock_drive_client, mock_authority) over a shared store."""
    authority = MagicMock()
    authority.authorization_url.return_value = ("https://accounts.google.com/auth", None)
    authority.exchange_code.return_value = "ya29.fresh"
    provider = CredentialProvider(CredentialStore(store), authority)
    client = MagicMock()
    client.fetch_resolution.side_effect = lambda file_id, credential: _result(file_id)
    engine = ResolutionEngine(provider=provider, client=client, cache=ResultCache(store))
    return engine, client, authority


# ---------------------------------------------------------------------------
# resolve() tests
# ---------------------------------------------------------------------------


class TestResolve:
    def test_returns_result_from_client(self, memory_store) -> None:
        engine, client, _ = _make_engine(memory_store)
        memory_store.data["accessToken"] = "ya29.stored"

        result = engine.resolve("doc123")

        assert result == _result()
        client.fetch_resolution.assert_called_once_with("doc123", "ya29.stored")

    def test_second_call_within_ttl_is_served_from_cache(self, memory_store) -> None:
        engine, client, _ = _make_engine(memory_store)
        memory_store.data["accessToken"] = "ya29.stored"

        first = engine.resolve("doc123")
        second = engine.resolve("doc123")

        assert first == second
        assert client.fetch_resolution.call_count == 1

    def test_cache_hit_needs_no_credential(self, memory_store) -> None:
        engine, client, authority = _make_engine(memory_store)
        engine.cache.put("doc123", _result())

        assert engine.resolve("doc123") == _result()
        client.fetch_resolution.assert_not_called()
        assert authority.method_calls == []

    def test_force_refresh_fetches_and_overwrites_fresh_entry(self, memory_store) -> None:
        engine, client, _ = _make_engine(memory_store)
        memory_store.data["accessToken"] = "ya29.stored"
        stale = ResolutionResult(file=FileSummary(id="doc123", name="Old", url="u"))
        engine.cache.put("doc123", stale)

        result = engine.resolve("doc123", force_refresh=True)

        assert result == _result()
        client.fetch_resolution.assert_called_once()
        assert engine.cache.get("doc123") == _result()

    def test_requires_auth_without_fetch_when_no_credential(self, memory_store) -> None:
        engine, client, authority = _make_engine(memory_store)

        with pytest.raises(AuthenticationRequiredError) as exc_info:
            engine.resolve("doc123")

        assert exc_info.value.requires_auth
        client.fetch_resolution.assert_not_called()
        assert authority.method_calls == []

    def test_unauthorized_invalidates_and_requires_auth(self, memory_store) -> None:
        engine, client, authority = _make_engine(memory_store)
        memory_store.data["accessToken"] = "ya29.stale"
        client.fetch_resolution.side_effect = ApiUnauthorizedError(401, "Invalid Credentials")

        with pytest.raises(AuthenticationRequiredError) as exc_info:
            engine.resolve("doc123")

        assert exc_info.value.kind is ErrorKind.AUTH_REQUIRED
        assert exc_info.value.requires_auth
        assert "authenticate" in exc_info.value.message.lower()
        assert "accessToken" not in memory_store.data
        assert engine.provider.state is CredentialState.INVALIDATED
        assert client.fetch_resolution.call_count == 1
        assert authority.method_calls == []

    def test_unauthorized_does_not_write_cache(self, memory_store) -> None:
        engine, client, _ = _make_engine(memory_store)
        memory_store.data["accessToken"] = "ya29.stale"
        client.fetch_resolution.side_effect = ApiUnauthorizedError(401, "Invalid Credentials")

        with pytest.raises(AuthenticationRequiredError):
            engine.resolve("doc123")

        assert engine.cache.count() == 0

    @pytest.mark.parametrize(
        "error",
        [
            ApiNotFoundError("doc123"),
            ApiForbiddenError("doc123"),
            NetworkError("timed out"),
        ],
    )
    def test_other_errors_propagate_unchanged(self, memory_store, error) -> None:
        engine, client, _ = _make_engine(memory_store)
        memory_store.data["accessToken"] = "ya29.stored"
        client.fetch_resolution.side_effect = error

        with pytest.raises(type(error)) as exc_info:
            engine.resolve("doc123")

        assert exc_info.value is error
        assert memory_store.data["accessToken"] == "ya29.stored"
        assert engine.cache.count() == 0

    def test_rejected_token_left_in_store_is_not_reused(self) -> None:
        store = MagicMock()
        store.get.side_effect = lambda key: "ya29.stale" if key == "accessToken" else None
        store.delete.side_effect = StoreError("Server busy")
        engine, client, _ = _make_engine(store)
        client.fetch_resolution.side_effect = ApiUnauthorizedError(401, "Invalid Credentials")

        with pytest.raises(AuthenticationRequiredError):
            engine.resolve("doc123", force_refresh=True)
        with pytest.raises(AuthenticationRequiredError):
            engine.resolve("doc123", force_refresh=True)

        assert client.fetch_resolution.call_count == 1

    def test_engine_recovers_after_reauthentication(self, memory_store) -> None:
        engine, client, authority = _make_engine(memory_store)
        memory_store.data["accessToken"] = "ya29.stale"
        client.fetch_resolution.side_effect = [
            ApiUnauthorizedError(401, "Invalid Credentials"),
            _result(),
        ]

        with pytest.raises(AuthenticationRequiredError):
            engine.resolve("doc123")
        engine.provider.begin_sign_in()
        state = authority.authorization_url.call_args[0][0]
        engine.provider.complete_sign_in("4/code", state)
        result = engine.resolve("doc123")

        assert result == _result()
        assert client.fetch_resolution.call_args[0][1] == "ya29.fresh"

    def test_cache_write_failure_still_returns_result(self, memory_store) -> None:
        engine, _, _ = _make_engine(memory_store)
        memory_store.data["accessToken"] = "ya29.stored"

        with patch.object(engine.cache, "put", side_effect=StoreError("Forbidden")):
            assert engine.resolve("doc123") == _result()

    def test_cache_read_failure_falls_back_to_fetch(self, memory_store) -> None:
        engine, client, _ = _make_engine(memory_store)
        memory_store.data["accessToken"] = "ya29.stored"

        with patch.object(engine.cache, "get", side_effect=StoreError("Server busy")):
            engine.resolve("doc123")

        client.fetch_resolution.assert_called_once()


# ---------------------------------------------------------------------------
# prefetch() / check_access() tests
# ---------------------------------------------------------------------------


class TestPrefetch:
    def test_warms_cache(self, memory_store) -> None:
        engine, _, _ = _make_engine(memory_store)
        memory_store.data["accessToken"] = "ya29.stored"

        assert engine.prefetch("doc123") is True
        assert engine.cache.get("doc123") == _result()

    def test_swallows_errors(self, memory_store) -> None:
        engine, client, _ = _make_engine(memory_store)
        memory_store.data["accessToken"] = "ya29.stored"
        client.fetch_resolution.side_effect = ApiNotFoundError("doc123")

        assert engine.prefetch("doc123") is False


class TestCheckAccess:
    def test_returns_user(self, memory_store) -> None:
        engine, client, _ = _make_engine(memory_store)
        memory_store.data["accessToken"] = "ya29.stored"
        client.fetch_about.return_value = {"user": {"displayName": "Ada"}}

        assert engine.check_access() == {"displayName": "Ada"}
        client.fetch_about.assert_called_once_with("ya29.stored")

    def test_unauthorized_invalidates(self, memory_store) -> None:
        engine, client, _ = _make_engine(memory_store)
        memory_store.data["accessToken"] = "ya29.stale"
        client.fetch_about.side_effect = ApiUnauthorizedError(401, "Invalid Credentials")

        with pytest.raises(AuthenticationRequiredError):
            engine.check_access()

        assert "accessToken" not in memory_store.data


# ---------------------------------------------------------------------------
# resolution_engine_from_config tests
# ---------------------------------------------------------------------------


class TestResolutionEngineFromConfig:
    def test_shares_one_store_between_provider_and_cache(self) -> None:
        config = MagicMock()
        config.credential_key = "accessToken"
        config.cache_prefix = "folderInfo_"
        config.drive_base_url = "https://www.googleapis.com/drive/v3"

        with patch("drive_parents.resolution.engine.blob_store_from_config") as mock_store_factory:
            engine = resolution_engine_from_config(config)

        mock_store_factory.assert_called_once_with(config)
        store = mock_store_factory.return_value
        assert engine.cache._store is store
        assert engine.provider._store._store is store
