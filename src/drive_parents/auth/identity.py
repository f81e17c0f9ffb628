"""Google sign-in via the OAuth authorization-code redirect flow.

Sign-in is split in two so that no request ever waits on a user: the
authorization URL is handed back to the caller, and the code Google redirects
back with is exchanged for a token by a separate request.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from google_auth_oauthlib.flow import InstalledAppFlow

from drive_parents.errors import AuthDeniedError, AuthUnavailableError

if TYPE_CHECKING:
    from drive_parents.config import AppConfig

logger = logging.getLogger(__name__)

GOOGLE_AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"
DRIVE_READONLY_SCOPE = "https://www.googleapis.com/auth/drive.readonly"
DEFAULT_REDIRECT_URI = "http://localhost:7071/api/auth/callback"


class GoogleIdentityAuthority:
    """Builds Google consent URLs and exchanges the returned codes for tokens."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str = DEFAULT_REDIRECT_URI,
        scope: str = DRIVE_READONLY_SCOPE,
    ) -> None:
        """Initialise the authority.

        Args:
            client_id: OAuth client ID.
            client_secret: OAuth client secret.
            redirect_uri: Callback URL Google redirects to after consent.
            scope: Scope requested on every sign-in.
        """
        self._client_id = client_id
        self._client_secret = client_secret
        self._redirect_uri = redirect_uri
        self._scope = scope

    def authorization_url(self, state: str) -> tuple[str, str | None]:
        """Build the consent page URL for a new sign-in.

        Args:
            state: Opaque value Google echoes back to the callback.

        Returns:
            Tuple of (authorization URL, PKCE code verifier or None). The
            verifier must be handed back to exchange_code().

        Raises:
            AuthUnavailableError: If no usable OAuth client is configured.
        """
        flow = self._flow(state=state)
        url, _ = flow.authorization_url(
            access_type="online",
            include_granted_scopes="true",
            prompt="consent",
        )
        logger.info("[authorization_url] sign-in started")
        return url, flow.code_verifier

    def exchange_code(self, code: str, state: str, code_verifier: str | None = None) -> str:
        """Exchange an authorization code for an access token.

        Args:
            code: Authorization code from the callback.
            state: The state the sign-in was started with.
            code_verifier: PKCE verifier returned by authorization_url().

        Returns:
            Bearer access token string.

        Raises:
            AuthUnavailableError: If no usable OAuth client is configured.
            AuthDeniedError: If the exchange failed or returned no token.
        """
        flow = self._flow(state=state, code_verifier=code_verifier)
        try:
            flow.fetch_token(code=code)
        except Exception as exc:
            logger.warning("[exchange_code] token exchange failed; error:%s", type(exc).__name__)
            raise AuthDeniedError(f"Sign-in failed: {exc}") from exc

        token = getattr(flow.credentials, "token", None)
        if not token:
            raise AuthDeniedError("No access token received from Google")
        logger.info("[exchange_code] sign-in completed")
        return str(token)

    def _flow(self, **kwargs: Any) -> InstalledAppFlow:
        if not self._client_id or not self._client_secret:
            logger.error("[identity] missing Google OAuth client credentials")
            raise AuthUnavailableError("Google OAuth client credentials are not configured")

        try:
            return InstalledAppFlow.from_client_config(
                {
                    "installed": {
                        "client_id": self._client_id,
                        "client_secret": self._client_secret,
                        "redirect_uris": [self._redirect_uri],
                        "auth_uri": GOOGLE_AUTH_URI,
                        "token_uri": GOOGLE_TOKEN_URI,
                    }
                },
                scopes=[self._scope],
                redirect_uri=self._redirect_uri,
                **kwargs,
            )
        except ValueError as exc:
            raise AuthUnavailableError(f"Invalid OAuth client configuration: {exc}") from exc


def identity_authority_from_config(config: AppConfig) -> GoogleIdentityAuthority:
    """Construct a GoogleIdentityAuthority from application configuration.

    Args:
        config: Application configuration instance.

    Returns:
        Configured GoogleIdentityAuthority instance.
    """
    return GoogleIdentityAuthority(
        client_id=config.google_client_id,
        client_secret=config.google_client_secret,
        redirect_uri=config.oauth_redirect_uri,
        scope=config.oauth_scope,
    )
