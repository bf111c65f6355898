"""
OAuth2 client-credentials token management for the MLE API.

One TokenManager is constructed per process (or per serverless invocation)
and shared by every request. The cached token is the only shared mutable
state in the pipeline, so refreshing it is a critical section: concurrent
callers that find the cache empty or expired all await one in-flight refresh
task instead of each issuing their own token request.
"""

import asyncio
import logging
import time
from typing import Callable, Optional

import httpx

from asset_sync.errors import AuthenticationError

logger = logging.getLogger(__name__)

# Refresh this many seconds before the advertised expiry so a token never
# expires mid-flight.
EXPIRY_BUFFER_SECONDS = 60

# Used when the token endpoint omits expires_in
DEFAULT_EXPIRES_IN = 3600


class AccessToken:
    __slots__ = ("value", "expires_at")

    def __init__(self, value: str, expires_at: float):
        self.value = value
        self.expires_at = expires_at

    def is_valid(self, now: float) -> bool:
        return now < self.expires_at


class TokenManager:
    def __init__(
        self,
        http_client: httpx.AsyncClient,
        token_url: str,
        client_id: str,
        client_secret: str,
        scope: str = "api:write",
        timeout: float = 30.0,
        clock: Callable[[], float] = time.time,
    ):
        self._http = http_client
        self._token_url = token_url
        self._client_id = client_id
        self._client_secret = client_secret
        self._scope = scope
        self._timeout = timeout
        self._clock = clock

        self._token: Optional[AccessToken] = None
        self._refresh_task: Optional[asyncio.Task] = None

    @property
    def cached_token(self) -> Optional[AccessToken]:
        return self._token

    def invalidate(self) -> None:
        """Drop the cached token; the next caller triggers a refresh."""
        self._token = None

    async def get_access_token(self) -> str:
        """
        Return a valid access token, requesting a new one when needed.

        Raises:
            AuthenticationError: the token endpoint failed or rejected the
                credentials. Nothing is cached in that case.
        """
        token = self._token
        if token is not None and token.is_valid(self._clock()):
            return token.value

        if self._refresh_task is None:
            self._refresh_task = asyncio.ensure_future(self._refresh())
            self._refresh_task.add_done_callback(self._clear_refresh_task)

        # shield: one caller being cancelled must not cancel the refresh the
        # other callers are waiting on
        new_token = await asyncio.shield(self._refresh_task)
        return new_token.value

    def _clear_refresh_task(self, task: asyncio.Task) -> None:
        if self._refresh_task is task:
            self._refresh_task = None
        # Retrieve the exception so an unobserved failure is not logged as
        # "Task exception was never retrieved".
        if not task.cancelled():
            task.exception()

    async def _refresh(self) -> AccessToken:
        form = {
            "grant_type": "client_credentials",
            "client_id": self._client_id,
            "client_secret": self._client_secret,
            "scope": self._scope,
        }
        try:
            response = await self._http.post(
                self._token_url,
                data=form,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=self._timeout,
            )
        except httpx.HTTPError as exc:
            logger.error("Failed to obtain OAuth token: %s", exc)
            raise AuthenticationError(f"Failed to obtain access token: {exc}") from exc

        if not response.is_success:
            logger.error(
                "OAuth token request rejected: HTTP %s %s",
                response.status_code,
                response.text[:500],
            )
            raise AuthenticationError(
                f"OAuth request failed: HTTP {response.status_code}"
            )

        try:
            body = response.json()
            value = body["access_token"]
            expires_in = float(body.get("expires_in") or DEFAULT_EXPIRES_IN)
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            logger.error("OAuth token response was not usable")
            raise AuthenticationError("OAuth response did not contain a usable access_token") from exc

        token = AccessToken(
            value=value,
            expires_at=self._clock() + expires_in - EXPIRY_BUFFER_SECONDS,
        )
        self._token = token
        logger.info("OAuth token refreshed successfully")
        return token
