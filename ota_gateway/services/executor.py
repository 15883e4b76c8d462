"""
RequestExecutor - Builds, signs and sends a single partner request.

No retries or gating here; OTAClient owns that policy.
"""

import time
import uuid
from collections.abc import Callable
from typing import Any

import httpx
from loguru import logger

from ota_gateway.services.errors import (
    PartnerUnconfiguredError,
    RequestTimeoutError,
    TransportError,
)
from ota_gateway.services.models import ResponseMetadata, StandardResponse
from ota_gateway.services.partners import PartnerAdapter, get_adapter
from ota_gateway.settings import PartnerConfig


class RequestExecutor:
    """
    Sends one request to a partner and normalizes the response.

    Usage:
        executor = RequestExecutor(source_tag="actyme-staging")
        response = await executor.execute(config, "/hotels", {"city": "Paris"})
    """

    def __init__(
        self,
        source_tag: str = "actyme-staging",
        http_client: httpx.AsyncClient | None = None,
        wall_clock: Callable[[], float] = time.time,
    ):
        self._source_tag = source_tag
        self._http_client = http_client
        self._owns_client = http_client is None
        self._wall_clock = wall_clock

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(follow_redirects=True)
        return self._http_client

    def build_request(
        self,
        config: PartnerConfig,
        endpoint: str,
        params: dict[str, Any] | None = None,
        method: str = "GET",
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """Assemble keyword arguments for httpx.AsyncClient.request."""
        adapter = self._resolve_adapter(config)
        method = method.upper()
        url = f"{config.base_url}{endpoint}"

        req_headers = {
            "Authorization": f"Bearer {config.api_key}",
            "Content-Type": "application/json",
            "X-Source": self._source_tag,
            "X-Request-ID": str(uuid.uuid4()),
        }
        if headers:
            req_headers.update(headers)

        timestamp_ms = int(self._wall_clock() * 1000)
        adapter.authenticate(config, method, url, req_headers, timestamp_ms)

        request: dict[str, Any] = {
            "method": method,
            "url": url,
            "headers": req_headers,
            "timeout": config.timeout,
        }
        if method == "GET":
            request["params"] = params or {}
        else:
            request["json"] = params or {}

        logger.debug(
            f"Prepared {method} {url} for {config.name} "
            f"(request id {req_headers['X-Request-ID']})"
        )
        return request

    async def execute(
        self,
        config: PartnerConfig,
        endpoint: str,
        params: dict[str, Any] | None = None,
        method: str = "GET",
        headers: dict[str, str] | None = None,
    ) -> StandardResponse:
        """
        Send the request and return the partner-transformed response.

        Raises:
            PartnerUnconfiguredError: Partner is unknown or has no API key
            RequestTimeoutError: Request timed out
            TransportError: Connection failure, non-2xx status, bad JSON or
                a payload the partner transform cannot read
        """
        request = self.build_request(config, endpoint, params, method, headers)
        client = await self._get_http_client()

        try:
            response = await client.request(**request)
            response.raise_for_status()
            raw_data = response.json()

        except httpx.TimeoutException as e:
            raise RequestTimeoutError(config.name, config.timeout) from e

        except httpx.HTTPStatusError as e:
            raise TransportError(
                f"HTTP {e.response.status_code}: {e.response.text[:200]}",
                service_id=config.name,
                status_code=e.response.status_code,
            ) from e

        except httpx.RequestError as e:
            raise TransportError(str(e), service_id=config.name) from e

        except ValueError as e:
            raise TransportError(
                f"Invalid JSON from {config.name}: {e}", service_id=config.name
            ) from e

        try:
            return self.transform_response(config, raw_data)
        except (TypeError, AttributeError, KeyError) as e:
            raise TransportError(
                f"Malformed {config.name} payload: {e}", service_id=config.name
            ) from e

    def transform_response(self, config: PartnerConfig, raw_data: Any) -> StandardResponse:
        """Wrap raw partner data as a live StandardResponse."""
        response = StandardResponse(
            partner=config.name,
            data=raw_data,
            metadata=ResponseMetadata(source="live", cached=False),
        )
        return self._resolve_adapter(config).transform(response)

    def _resolve_adapter(self, config: PartnerConfig) -> PartnerAdapter:
        adapter = get_adapter(config.name)
        if adapter is None or not config.is_configured:
            raise PartnerUnconfiguredError(config.name)
        return adapter

    async def close(self) -> None:
        """Close the HTTP client if this executor created it."""
        if self._http_client and self._owns_client:
            await self._http_client.aclose()
        self._http_client = None
