"""
Service configuration.

Settings are read from environment variables (a .env file in the working
directory is loaded first when present). The serverless action builds the
same Settings object from its invocation parameters instead.

Environment variables
---------------------
PORT                        Port uvicorn listens on (default: 8000).
AEM_WEBHOOK_SECRET          Shared HMAC secret for x-adobe-signature.
                            Empty/unset disables signature verification.
MLE_API_URL                 Base URL of the MLE metadata API.
MLE_API_VERSION             API version path segment (default: "v1").
OAUTH_CLIENT_ID             OAuth2 client-credentials client id.
OAUTH_CLIENT_SECRET         OAuth2 client-credentials client secret.
OAUTH_TOKEN_URL             OAuth2 token endpoint.
OAUTH_SCOPE                 Requested scope (default: "api:write").
AEM_AUTHOR_URL              Base URL used to build assetUrl.
AEM_PUBLISH_URL             Base URL used to build publicUrl.
LOG_LEVEL                   debug / info / warning / error (default: info).
SYNC_TIMEOUT_SECONDS        Outbound HTTP timeout (default: 30).
SYNC_MAX_RETRIES            Extra attempts for retryable failures (default: 0).
SYNC_RETRY_BACKOFF_SECONDS  Base backoff between attempts (default: 0.5).
SYNC_UNMATCHED_EVENTS       "create" or "ignore": what to do with processable
                            events whose type names no operation (default: create).
"""

import logging
import os
from functools import lru_cache
from typing import Any, List, Mapping

from dotenv import load_dotenv
from pydantic import BaseModel

DEFAULT_MLE_API_URL = "https://your-mle-system.com/api"

# Keys the sync pipeline cannot run without
_REQUIRED_KEYS = {
    "mle_api_url": "MLE_API_URL",
    "oauth_client_id": "OAUTH_CLIENT_ID",
    "oauth_client_secret": "OAUTH_CLIENT_SECRET",
    "oauth_token_url": "OAUTH_TOKEN_URL",
}


class Settings(BaseModel):
    """Runtime configuration for the sync service."""

    port: int = 8000
    aem_webhook_secret: str = ""
    mle_api_url: str = DEFAULT_MLE_API_URL
    mle_api_version: str = "v1"
    oauth_client_id: str = ""
    oauth_client_secret: str = ""
    oauth_token_url: str = ""
    oauth_scope: str = "api:write"
    aem_author_url: str = ""
    aem_publish_url: str = ""
    log_level: str = "info"
    sync_timeout_seconds: float = 30.0
    sync_max_retries: int = 0
    sync_retry_backoff_seconds: float = 0.5
    sync_unmatched_events: str = "create"

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> "Settings":
        """
        Build settings from a mapping keyed by the environment variable names
        (os.environ, or the parameters of a serverless invocation).

        Unset or empty values fall back to the field defaults.
        """
        values = {}
        for field_name in cls.model_fields:
            raw = params.get(field_name.upper())
            if raw is None or raw == "":
                continue
            values[field_name] = raw
        return cls(**values)

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        return cls.from_params(os.environ)

    @property
    def signature_required(self) -> bool:
        return bool(self.aem_webhook_secret)

    @property
    def log_level_value(self) -> int:
        return getattr(logging, self.log_level.upper(), logging.INFO)

    def missing_required(self) -> List[str]:
        """Return the environment names of required settings that are unset."""
        missing: List[str] = []
        for field_name, env_name in _REQUIRED_KEYS.items():
            if not getattr(self, field_name):
                missing.append(env_name)
        return missing

    def summary(self) -> dict:
        """Non-secret view of the configuration for startup logging."""
        return {
            "mle_api_url": self.mle_api_url,
            "mle_api_version": self.mle_api_version,
            "aem_author_url": self.aem_author_url,
            "aem_publish_url": self.aem_publish_url,
            "oauth_token_url": self.oauth_token_url,
            "webhook_secret_configured": self.signature_required,
            "sync_max_retries": self.sync_max_retries,
        }


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()


def reset_settings_cache() -> None:
    """Clear the cached settings (used by tests after patching the environment)."""
    get_settings.cache_clear()
