"""Application configuration loaded from environment variables."""

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class AppConfig:
    """Centralized application configuration.

    Required fields have no defaults and will cause a KeyError at startup
    if the corresponding environment variable is missing. Storage keys and
    endpoints have sensible defaults but can be overridden via environment
    variables.
    """

    # Required: no defaults, fail at startup if missing
    google_client_id: str
    google_client_secret: str
    storage_connection_string: str

    # Domain constants: defaults provided, overridable via env
    state_container: str = "drive-parents-state"
    credential_key: str = "accessToken"
    sign_in_key: str = "signInState"
    cache_prefix: str = "folderInfo_"
    drive_base_url: str = "https://www.googleapis.com/drive/v3"
    oauth_scope: str = "https://www.googleapis.com/auth/drive.readonly"
    oauth_redirect_uri: str = "http://localhost:7071/api/auth/callback"


def load_config() -> AppConfig:
    """Construct an AppConfig from environment variables.

    Required environment variables:
        DP_GOOGLE_CLIENT_ID: Google OAuth client ID.
        DP_GOOGLE_CLIENT_SECRET: Google OAuth client secret.
        AzureWebJobsStorage: Azure Storage account connection string.

    Optional environment variables (with defaults):
        DP_STATE_CONTAINER: Blob container holding the credential and cache entries.
        DP_CREDENTIAL_KEY: Store key of the persisted access credential.
        DP_SIGN_IN_KEY: Store key of the pending sign-in record.
        DP_CACHE_PREFIX: Store key prefix of resolution cache entries.
        DP_DRIVE_BASE_URL: Drive API base URL (default: https://www.googleapis.com/drive/v3).
        DP_OAUTH_SCOPE: OAuth scope requested during sign-in.
        DP_OAUTH_REDIRECT_URI: Public URL of the auth/callback route registered
            with Google (default: http://localhost:7071/api/auth/callback).

    Returns:
        Configured AppConfig instance.
    """
    return AppConfig(
        google_client_id=os.environ["DP_GOOGLE_CLIENT_ID"],
        google_client_secret=os.environ["DP_GOOGLE_CLIENT_SECRET"],
        storage_connection_string=os.environ["AzureWebJobsStorage"],  # noqa: SIM112
        state_container=os.environ.get("DP_STATE_CONTAINER", "drive-parents-state"),
        credential_key=os.environ.get("DP_CREDENTIAL_KEY", "accessToken"),
        sign_in_key=os.environ.get("DP_SIGN_IN_KEY", "signInState"),
        cache_prefix=os.environ.get("DP_CACHE_PREFIX", "folderInfo_"),
        drive_base_url=os.environ.get("DP_DRIVE_BASE_URL", "https://www.googleapis.com/drive/v3"),
        oauth_scope=os.environ.get(
            "DP_OAUTH_SCOPE", "https://www.googleapis.com/auth/drive.readonly"
        ),
        oauth_redirect_uri=os.environ.get(
            "DP_OAUTH_REDIRECT_URI", "http://localhost:7071/api/auth/callback"
        ),
    )
