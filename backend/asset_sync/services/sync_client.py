"""
MLE API client.

Performs create / update / delete calls for asset metadata. Failures are
returned as data (SyncResult with success=False) together with a retryable
classification; this client never retries on its own. See
services/retry.py for the optional retry wrapper.
"""

import logging
from typing import Any, Optional
from urllib.parse import quote

import httpx

from asset_sync.errors import TargetAPIError
from asset_sync.models.asset import NormalizedMetadata
from asset_sync.models.sync import ErrorDetail, SyncResult
from asset_sync.services.token_manager import TokenManager

logger = logging.getLogger(__name__)

SOURCE_SYSTEM_HEADER = "AEM"
DEFAULT_TIMEOUT_SECONDS = 30.0


def _parse_body(response: httpx.Response) -> Any:
    """JSON body when there is one, raw text otherwise, None when empty."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


class SyncClient:
    def __init__(
        self,
        http_client: httpx.AsyncClient,
        token_manager: TokenManager,
        base_url: str,
        api_version: str = "v1",
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self._http = http_client
        self._tokens = token_manager
        self._base_url = base_url.rstrip("/")
        self._api_version = api_version
        self._timeout = timeout

    def assets_endpoint(self, asset_id: Optional[str] = None) -> str:
        endpoint = f"{self._base_url}/{self._api_version}/assets"
        if asset_id is not None:
            # Ids derived from file names may contain "#", "?" or "/"
            endpoint = f"{endpoint}/{quote(asset_id, safe='')}"
        return endpoint

    async def _headers(self, with_body: bool) -> dict:
        token = await self._tokens.get_access_token()
        headers = {
            "Authorization": f"Bearer {token}",
            "X-API-Version": self._api_version,
            "X-Source-System": SOURCE_SYSTEM_HEADER,
        }
        if with_body:
            headers["Content-Type"] = "application/json"
        return headers

    async def _send(self, method: str, endpoint: str, payload: Optional[dict]) -> Any:
        """
        Issue one request and return the parsed response body.

        Raises:
            TargetAPIError: non-2xx response, or no response at all.
            AuthenticationError: no access token could be obtained.
        """
        headers = await self._headers(with_body=payload is not None)
        try:
            response = await self._http.request(
                method,
                endpoint,
                json=payload,
                headers=headers,
                timeout=self._timeout,
            )
        except httpx.HTTPError as exc:
            raise TargetAPIError(str(exc) or exc.__class__.__name__) from exc

        body = _parse_body(response)
        if response.status_code == 401:
            # Token revoked or expired early; the next call fetches a new one
            self._tokens.invalidate()
        if not response.is_success:
            raise TargetAPIError(
                f"MLE API returned HTTP {response.status_code}",
                status_code=response.status_code,
                response_body=body,
            )
        return body

    def _failure(self, exc: TargetAPIError, asset_id: Optional[str], endpoint: str) -> SyncResult:
        detail = ErrorDetail(
            asset_id=asset_id,
            error=exc.response_body if exc.response_body is not None else str(exc),
            status=exc.status_code,
            endpoint=endpoint,
        )
        logger.error(
            "MLE API call failed for asset %s: status=%s endpoint=%s error=%s",
            asset_id, exc.status_code, endpoint, detail.error,
        )
        return SyncResult(success=False, error=detail, retryable=exc.retryable)

    @staticmethod
    def _success(body: Any, fallback_id: Optional[str]) -> SyncResult:
        data = body if isinstance(body, dict) else {}
        target_id = data.get("id") or data.get("assetId") or fallback_id
        return SyncResult(
            success=True,
            target_id=str(target_id) if target_id is not None else None,
            status=data.get("status"),
            message=data.get("message"),
            response_data=body,
        )

    async def create(self, data: NormalizedMetadata) -> SyncResult:
        endpoint = self.assets_endpoint()
        try:
            body = await self._send("POST", endpoint, data.to_payload())
        except TargetAPIError as exc:
            return self._failure(exc, data.asset_id, endpoint)

        logger.info(
            "Sent asset metadata to MLE: asset_id=%s media_type=%s",
            data.asset_id, data.media_type,
        )
        return self._success(body, None)

    async def update(self, asset_id: str, data: NormalizedMetadata) -> SyncResult:
        endpoint = self.assets_endpoint(asset_id)
        try:
            body = await self._send("PUT", endpoint, data.to_payload())
        except TargetAPIError as exc:
            return self._failure(exc, asset_id, endpoint)

        logger.info(
            "Updated asset metadata in MLE: asset_id=%s media_type=%s",
            asset_id, data.media_type,
        )
        return self._success(body, asset_id)

    async def remove(self, asset_id: str) -> SyncResult:
        endpoint = self.assets_endpoint(asset_id)
        try:
            body = await self._send("DELETE", endpoint, None)
        except TargetAPIError as exc:
            return self._failure(exc, asset_id, endpoint)

        logger.info("Deleted asset from MLE: asset_id=%s", asset_id)
        result = self._success(body, asset_id)
        result.message = result.message or "Asset deleted successfully"
        return result
