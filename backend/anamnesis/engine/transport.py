"""Async HTTP transport that unwraps ``{success, data, error}`` envelopes."""

import logging
from typing import Any, Optional

import httpx

from anamnesis.config import get_settings
from anamnesis.engine.errors import PersistenceError

logger = logging.getLogger(__name__)


class ApiTransport:
    """
    Thin wrapper around ``httpx.AsyncClient``.

    Every call returns the envelope's ``data`` or raises ``PersistenceError``
    (network failure, non-JSON body, HTTP error status or ``success: false``).
    Pass ``client`` to reuse a configured client, e.g. one bound to an
    in-process ASGI app.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        settings = get_settings()
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            base_url=base_url or settings.api_base_url,
            timeout=timeout or settings.request_timeout_seconds,
            headers={"Content-Type": "application/json"},
        )

    async def request(self, method: str, path: str, payload: Any = None) -> Any:
        logger.debug("%s %s", method, path)
        try:
            response = await self.client.request(method, path, json=payload)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise PersistenceError(f"Request failed: {exc}") from exc

        try:
            body = response.json()
        except ValueError as exc:
            raise PersistenceError(
                f"Invalid response from server (HTTP {response.status_code})",
                status_code=response.status_code,
            ) from exc

        if not isinstance(body, dict) or response.is_error or not body.get("success"):
            error = body.get("error") if isinstance(body, dict) else None
            raise PersistenceError(
                error or f"HTTP {response.status_code}",
                status_code=response.status_code,
            )

        return body.get("data")

    async def get(self, path: str) -> Any:
        return await self.request("GET", path)

    async def post(self, path: str, payload: Any = None) -> Any:
        return await self.request("POST", path, payload)

    async def patch(self, path: str, payload: Any = None) -> Any:
        return await self.request("PATCH", path, payload)

    async def delete(self, path: str) -> Any:
        return await self.request("DELETE", path)

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> "ApiTransport":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
