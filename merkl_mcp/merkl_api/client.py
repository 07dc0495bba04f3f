"""
Thin async HTTP client for the Merkl v4 opportunities and campaigns endpoints.

Every method performs exactly one GET. Failures are raised as internal
exceptions and propagate unchanged to the tool dispatcher; nothing is retried.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Mapping, Optional
from urllib.parse import quote

import httpx

from merkl_mcp.config import MerklConfig, default_config
from merkl_mcp.merkl_api.query import encode_query
from merkl_mcp.metrics import default_metrics

logger = logging.getLogger(__name__)


class MerklApiError(Exception):
    """Base exception for Merkl API errors."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RequestTimeout(MerklApiError):
    """Raised when the API does not answer within the configured duration."""

    def __init__(self, timeout_ms: int) -> None:
        super().__init__(f"Merkl request timed out after {timeout_ms}ms")
        self.timeout_ms = timeout_ms


class UpstreamError(MerklApiError):
    """Raised when the API answers with a non-2xx status."""

    def __init__(self, status_code: int, status_text: str = "") -> None:
        super().__init__(
            f"Merkl request failed: {status_code} {status_text}".rstrip(),
            status_code=status_code,
        )
        self.status_text = status_text


class UpstreamUnreachableError(MerklApiError):
    """Raised when the API cannot be reached at all."""


def _segment(value: str) -> str:
    return quote(str(value), safe="")


class MerklApiClient:
    """Async client for the Merkl opportunity catalog."""

    def __init__(
        self,
        config: MerklConfig | None = None,
        *,
        async_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.config = config or default_config
        self._client: Optional[httpx.AsyncClient] = async_client
        self._owns_client = async_client is None

    @property
    def base_url(self) -> str:
        return self.config.base_url.rstrip("/")

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.config.timeout_seconds)
            self._owns_client = True
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _build_headers(self) -> Dict[str, str]:
        headers = {"content-type": "application/json"}
        if self.config.api_key:
            headers["authorization"] = f"Bearer {self.config.api_key}"
        return headers

    async def fetch_json(self, url: str, *, allow_404: bool = False) -> Any:
        """
        GET ``url`` and return its decoded JSON body.

        Args:
            url: Absolute URL including any query string.
            allow_404: Return ``None`` instead of raising when the API answers 404.

        Raises:
            RequestTimeout: The deadline elapsed before a response arrived.
            UpstreamError: The API answered with a non-2xx status.
            UpstreamUnreachableError: The request never reached the API.
            MerklApiError: The body was not valid JSON.
        """
        client = await self._get_client()
        timeout_ms = self.config.timeout_ms
        logger.debug("GET %s", url)
        try:
            response = await asyncio.wait_for(
                client.get(url, headers=self._build_headers()),
                timeout=timeout_ms / 1000.0,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            default_metrics.record_upstream("timeout")
            logger.warning("Merkl request timed out after %sms for %s", timeout_ms, url)
            raise RequestTimeout(timeout_ms) from exc
        except httpx.RequestError as exc:
            default_metrics.record_upstream("unreachable")
            logger.warning("Merkl API unreachable for %s", url)
            raise UpstreamUnreachableError("Merkl API unreachable") from exc

        status = response.status_code
        default_metrics.record_upstream(str(status))
        if allow_404 and status == 404:
            return None
        if not 200 <= status < 300:
            raise UpstreamError(status, getattr(response, "reason_phrase", "") or "")

        try:
            return response.json()
        except ValueError as exc:
            raise MerklApiError("Unexpected response from Merkl API.", status_code=status) from exc

    def _url(self, path: str, query: Mapping[str, Any] | None = None) -> str:
        return f"{self.base_url}{path}{encode_query(query)}"

    async def list_opportunities(self, query: Mapping[str, Any] | None = None) -> Any:
        """Search opportunities."""
        return await self.fetch_json(self._url("/v4/opportunities/", query))

    async def get_opportunity(self, opportunity_id: str, query: Mapping[str, Any] | None = None) -> Any:
        """Fetch one opportunity; ``None`` when it does not exist."""
        if not opportunity_id:
            raise ValueError("id is required")
        return await self.fetch_json(
            self._url(f"/v4/opportunities/{_segment(opportunity_id)}", query), allow_404=True
        )

    async def get_opportunity_campaigns(
        self, opportunity_id: str, query: Mapping[str, Any] | None = None
    ) -> Any:
        """Fetch one opportunity with its campaigns; ``None`` when it does not exist."""
        if not opportunity_id:
            raise ValueError("id is required")
        return await self.fetch_json(
            self._url(f"/v4/opportunities/{_segment(opportunity_id)}/campaigns", query),
            allow_404=True,
        )

    async def count_opportunities(self, query: Mapping[str, Any] | None = None) -> Any:
        return await self.fetch_json(self._url("/v4/opportunities/count", query))

    async def bins_apr(self, query: Mapping[str, Any] | None = None) -> Any:
        return await self.fetch_json(self._url("/v4/opportunities/bins/apr", query))

    async def bins_tvl(self, query: Mapping[str, Any] | None = None) -> Any:
        return await self.fetch_json(self._url("/v4/opportunities/bins/tvl", query))

    async def aggregate(self, field: str, query: Mapping[str, Any] | None = None) -> Any:
        return await self.fetch_json(
            self._url(f"/v4/opportunities/aggregate/{_segment(field)}", query)
        )

    async def aggregate_max(self, field: str, query: Mapping[str, Any] | None = None) -> Any:
        return await self.fetch_json(
            self._url(f"/v4/opportunities/aggregate/max/{_segment(field)}", query)
        )

    async def aggregate_min(self, field: str, query: Mapping[str, Any] | None = None) -> Any:
        return await self.fetch_json(
            self._url(f"/v4/opportunities/aggregate/min/{_segment(field)}", query)
        )

    async def list_campaigns(self, query: Mapping[str, Any] | None = None) -> Any:
        """Search campaigns."""
        return await self.fetch_json(self._url("/v4/campaigns", query))

    async def get_campaign(self, campaign_id: str, query: Mapping[str, Any] | None = None) -> Any:
        """Fetch one campaign; ``None`` when it does not exist."""
        if not campaign_id:
            raise ValueError("id is required")
        return await self.fetch_json(
            self._url(f"/v4/campaigns/{_segment(campaign_id)}", query), allow_404=True
        )

    async def count_campaigns(self, query: Mapping[str, Any] | None = None) -> Any:
        return await self.fetch_json(self._url("/v4/campaigns/count", query))


default_client = MerklApiClient()
