"""Access credential lifecycle: durable copy, in-memory slot and sign-in."""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol

from drive_parents.errors import AuthDeniedError, AuthenticationRequiredError, StoreError

if TYPE_CHECKING:
    from drive_parents.config import AppConfig
    from drive_parents.store.blob import BlobKeyValueStore

logger = logging.getLogger(__name__)

DEFAULT_CREDENTIAL_KEY = "accessToken"
DEFAULT_SIGN_IN_KEY = "signInState"

# Pending sign-in record keys
SIGN_IN_STATE = "state"
SIGN_IN_CODE_VERIFIER = "codeVerifier"


class IdentityAuthority(Protocol):
    def authorization_url(self, state: str) -> tuple[str, str | None]: ...

    def exchange_code(self, code: str, state: str, code_verifier: str | None = None) -> str: ...


class CredentialState(str, Enum):
    """Lifecycle of the current credential."""

    ABSENT = "absent"
    CACHED_UNVERIFIED = "cached_unverified"
    INVALIDATED = "invalidated"


@dataclass(frozen=True)
class CredentialSlot:
    """The in-memory credential: a state plus the token when one is held.

    An invalidated slot remembers the token that was rejected so that a
    durable copy which could not be cleared is never adopted again.
    """

    state: CredentialState
    token: str | None = None
    rejected: str | None = None

    @classmethod
    def absent(cls) -> CredentialSlot:
        return cls(CredentialState.ABSENT)

    @classmethod
    def invalidated(cls, rejected: str | None = None) -> CredentialSlot:
        return cls(CredentialState.INVALIDATED, rejected=rejected)

    @classmethod
    def cached(cls, token: str) -> CredentialSlot:
        return cls(CredentialState.CACHED_UNVERIFIED, token)


@dataclass(frozen=True)
class PendingSignIn:
    """A started sign-in waiting for its callback."""

    state: str
    code_verifier: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {SIGN_IN_STATE: self.state, SIGN_IN_CODE_VERIFIER: self.code_verifier}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PendingSignIn:
        return cls(state=str(data[SIGN_IN_STATE]), code_verifier=data.get(SIGN_IN_CODE_VERIFIER))


class CredentialStore:
    """Durable copy of the single access credential and of a pending sign-in."""

    def __init__(
        self,
        store: BlobKeyValueStore,
        key: str = DEFAULT_CREDENTIAL_KEY,
        sign_in_key: str = DEFAULT_SIGN_IN_KEY,
    ) -> None:
        self._store = store
        self._key = key
        self._sign_in_key = sign_in_key

    def load(self) -> str | None:
        """Return the persisted token, or None if nothing usable is stored.

        Accepts both a bare token string and an object with a ``token`` field.

        Raises:
            StoreError: If the store cannot be read.
        """
        value: Any = self._store.get(self._key)
        if isinstance(value, dict):
            value = value.get("token")
        if isinstance(value, str) and value:
            return value
        return None

    def save(self, token: str) -> None:
        """Persist a token, replacing any previous one.

        Raises:
            StoreError: If the store cannot be written.
        """
        self._store.set(self._key, token)

    def clear(self) -> None:
        """Remove the persisted token.

        Raises:
            StoreError: If the store cannot be written.
        """
        self._store.delete(self._key)

    def save_sign_in(self, pending: PendingSignIn) -> None:
        """Persist a started sign-in, replacing any earlier one.

        Raises:
            StoreError: If the store cannot be written.
        """
        self._store.set(self._sign_in_key, pending.to_dict())

    def take_sign_in(self) -> PendingSignIn | None:
        """Remove and return the pending sign-in, if a readable one exists.

        Raises:
            StoreError: If the store cannot be read or written.
        """
        value = self._store.get(self._sign_in_key)
        if value is None:
            return None
        self._store.delete(self._sign_in_key)
        try:
            return PendingSignIn.from_dict(value)
        except (KeyError, TypeError, AttributeError):
            logger.warning("[credential_store] dropping malformed sign-in record")
            return None


class CredentialProvider:
    """Hands out the current access credential and runs the two-step sign-in.

    The credential is never validated up front; a rejected credential is
    reported by the caller through invalidate(). acquire() never prompts:
    when no credential is held it raises AuthenticationRequiredError and the
    caller starts a sign-in with begin_sign_in().
    """

    def __init__(self, store: CredentialStore, authority: IdentityAuthority) -> None:
        self._store = store
        self._authority = authority
        self._slot = CredentialSlot.absent()

    @property
    def state(self) -> CredentialState:
        return self._slot.state

    def acquire(self) -> str:
        """Return a credential to use for the next API call.

        Lookup order is memory, then the durable store.

        Returns:
            Bearer access token string.

        Raises:
            AuthenticationRequiredError: If no usable credential is held.
        """
        if self._slot.token is not None:
            return self._slot.token

        stored = self._load_stored()
        if stored is not None:
            self._slot = CredentialSlot.cached(stored)
            logger.info("[acquire] adopted stored credential")
            return stored

        logger.info("[acquire] no credential available; state:%s", self._slot.state.value)
        raise AuthenticationRequiredError("Not signed in. Please authenticate.")

    def begin_sign_in(self) -> str:
        """Start a sign-in and return the URL the user must open.

        The current credential stays in use until the sign-in completes.

        Returns:
            Google authorization URL.

        Raises:
            AuthUnavailableError: If the identity authority cannot be used.
            StoreError: If the pending sign-in cannot be persisted.
        """
        state = secrets.token_urlsafe(32)
        url, code_verifier = self._authority.authorization_url(state)
        self._store.save_sign_in(PendingSignIn(state=state, code_verifier=code_verifier))
        logger.info("[begin_sign_in] sign-in pending")
        return url

    def complete_sign_in(self, code: str, state: str) -> None:
        """Finish a sign-in started by begin_sign_in() and adopt the new token.

        The pending sign-in is consumed whether or not the exchange succeeds.

        Args:
            code: Authorization code from the callback.
            state: State echoed back by the callback.

        Raises:
            AuthDeniedError: If no matching sign-in is pending or the code
                exchange failed.
            AuthUnavailableError: If the identity authority cannot be used.
            StoreError: If the new token cannot be persisted; it is then not
                adopted.
        """
        pending = self._store.take_sign_in()
        if pending is None or not secrets.compare_digest(pending.state, state):
            logger.warning("[complete_sign_in] no matching sign-in pending")
            raise AuthDeniedError("Sign-in state did not match. Please authenticate again.")

        token = self._authority.exchange_code(code, state, pending.code_verifier)
        self._store.save(token)
        self._slot = CredentialSlot.cached(token)
        logger.info("[complete_sign_in] adopted new credential")

    def invalidate(self) -> None:
        """Forget the current credential in memory and, best effort, in the store.

        Safe to call repeatedly. Does not start a new sign-in.
        """
        rejected = self._slot.token or self._slot.rejected
        self._slot = CredentialSlot.invalidated(rejected)
        try:
            self._store.clear()
        except StoreError:
            logger.warning("[invalidate] could not clear stored credential", exc_info=True)
        logger.info("[invalidate] credential invalidated")

    def has_credential(self) -> bool:
        """Report whether a usable credential is held in memory or in the durable store."""
        if self._slot.token is not None:
            return True
        return self._load_stored() is not None

    def _load_stored(self) -> str | None:
        try:
            stored = self._store.load()
        except StoreError:
            logger.warning("[acquire] could not read stored credential", exc_info=True)
            return None
        if stored is not None and stored == self._slot.rejected:
            logger.warning("[acquire] ignoring stored credential that was rejected")
            try:
                self._store.clear()
            except StoreError:
                logger.warning("[acquire] could not clear rejected credential", exc_info=True)
            return None
        return stored


def credential_provider_from_config(
    config: AppConfig,
    store: BlobKeyValueStore,
    authority: IdentityAuthority,
) -> CredentialProvider:
    """Construct a CredentialProvider from application configuration.

    Args:
        config: Application configuration instance.
        store: Durable store shared with the result cache.
        authority: Identity authority used for sign-in.

    Returns:
        Configured CredentialProvider instance.
    """
    return CredentialProvider(
        CredentialStore(store, config.credential_key, config.sign_in_key), authority
    )
