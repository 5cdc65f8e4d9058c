"""Async HTTP client for the Overpass geodata service."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..config import settings

logger = logging.getLogger(__name__)

HEALTH_QUERY = "[out:json][timeout:5];node(0,0,0,0);out ids;"


class GeodataServiceError(ConnectionError):
    """Timeout, transport failure or non-2xx status from the geodata service."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class MalformedPayloadError(GeodataServiceError):
    """The geodata service answered, but not with a usable Overpass payload."""

    user_message = "The map data service returned an unexpected response. Please try again later."


class OverpassClient:
    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        user_agent: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url or settings.overpass_url
        if not self.base_url:
            raise ValueError("Overpass URL is not configured.")
        self.timeout = timeout if timeout is not None else settings.overpass_timeout_seconds
        self.user_agent = user_agent or settings.overpass_user_agent
        self._transport = transport

    def _get_client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(timeout, connect=min(timeout, 10.0)),
            headers={"User-Agent": self.user_agent},
            transport=self._transport,
        )

    async def query(self, query: str, timeout: float | None = None) -> dict[str, Any]:
        """POST an Overpass QL query and return the decoded JSON payload.

        Raises:
            GeodataServiceError: on timeout, transport error or non-2xx status.
            MalformedPayloadError: when the body is not JSON with an ``elements`` list.
        """
        effective_timeout = timeout if timeout is not None else self.timeout
        async with self._get_client(effective_timeout) as client:
            try:
                response = await client.post(self.base_url, data={"data": query})
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                status_code = exc.response.status_code
                raise GeodataServiceError(f"Overpass API returned HTTP {status_code}", status_code=status_code) from exc
            except httpx.TimeoutException as exc:
                raise GeodataServiceError(f"Overpass request timed out after {effective_timeout:.0f}s") from exc
            except httpx.HTTPError as exc:
                raise GeodataServiceError(f"Failed to reach Overpass API at {self.base_url}: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise MalformedPayloadError("Overpass API returned a non-JSON body") from exc
        if not isinstance(payload, dict) or not isinstance(payload.get("elements"), list):
            raise MalformedPayloadError("Overpass payload is missing an elements list")
        return payload

    async def check_health(self) -> bool:
        try:
            await self.query(HEALTH_QUERY, timeout=10.0)
            return True
        except GeodataServiceError as exc:
            logger.warning(f"Overpass health check failed: {exc}")
            return False
