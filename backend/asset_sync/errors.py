"""
Exception taxonomy for the sync pipeline.

Only AuthenticationError and SignatureError are meant to interrupt a request.
TargetAPIError never leaves the SyncClient: it is converted into a failed
SyncResult so the EventProcessor can aggregate it as data.
"""

from typing import Any, Optional


class AssetSyncError(Exception):
    """Base class for all sync service errors."""


class AuthenticationError(AssetSyncError):
    """The OAuth token endpoint was unreachable or rejected the credentials."""


class EventValidationError(AssetSyncError):
    """The inbound event payload is malformed."""


class ConfigurationError(EventValidationError):
    """Required configuration is missing."""

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(f"Missing required parameter: {', '.join(missing)}")


class SignatureError(AssetSyncError):
    """The webhook HMAC signature is missing or does not match."""


class TargetAPIError(AssetSyncError):
    """The MLE API answered with a non-2xx status, or never answered at all."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_body: Any = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body

    @property
    def retryable(self) -> bool:
        """
        Network failures (no status), server errors and rate limiting can
        succeed on a later attempt; any other 4xx is a caller error.
        """
        if self.status_code is None:
            return True
        return self.status_code >= 500 or self.status_code == 429
