"""Shared HTTP session for the map providers."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping

import httpx

from ...config import settings
from ...errors import ProviderError

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


class ProviderSession:
    """Process-wide provider session injected into the geocoding and routing clients.

    Owns the connection pool, the API key and the retry policy. Create one at
    startup, pass it by reference, close it at shutdown.
    """

    def __init__(
        self,
        api_key: str | None = None,
        *,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.google_maps_api_key
        self.timeout = timeout if timeout is not None else settings.provider_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.provider_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.provider_backoff_seconds
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout, connect=min(self.timeout, 5.0)),
            transport=transport,
        )

    @property
    def is_closed(self) -> bool:
        return self._client.is_closed

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "ProviderSession":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    def require_api_key(self, provider: str) -> str:
        if not self.api_key:
            raise ProviderError(provider, "API key is not configured", status="NO_API_KEY")
        return self.api_key

    async def get_json(self, provider: str, url: str, params: Mapping[str, Any] | None = None) -> dict:
        """GET ``url`` and decode the JSON body, retrying transient failures.

        Timeouts, connection errors, 429 and 5xx responses are retried with
        exponential backoff; anything else fails immediately.
        """

        attempt = 0
        while True:
            try:
                response = await self._client.get(url, params=params)
                response.raise_for_status()
                data = response.json()
                if not isinstance(data, dict):
                    raise ProviderError(provider, "unexpected response body", status="BAD_RESPONSE")
                return data
            except httpx.HTTPStatusError as exc:
                code = exc.response.status_code
                if code not in RETRYABLE_STATUS_CODES or attempt >= self.max_retries:
                    raise ProviderError(provider, f"HTTP {code} from {url}", status=str(code)) from exc
            except (httpx.TimeoutException, httpx.TransportError) as exc:
                if attempt >= self.max_retries:
                    raise ProviderError(
                        provider,
                        f"request failed after {attempt + 1} attempts: {exc}",
                        status="UNREACHABLE",
                    ) from exc
            except ValueError as exc:
                raise ProviderError(provider, f"invalid JSON from {url}", status="BAD_RESPONSE") from exc

            attempt += 1
            wait_time = self.backoff_seconds * (2 ** (attempt - 1))
            logger.debug(f"{provider} request failed, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries})")
            await asyncio.sleep(wait_time)
