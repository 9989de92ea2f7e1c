"""
Transport protocol for XRPL JSON-RPC calls.

Defines the seam where concrete HTTP implementations plug in. The
JSON-RPC client depends on this protocol, not on httpx directly, so the
transport can be swapped without editing client logic.

Concrete implementations:
    - HttpxTransport (default, uses httpx.AsyncClient)
    - FakeTransport (tests, returns canned responses)

Transports translate their own failures into ``TransportError`` /
``LedgerTimeoutError`` / ``MalformedResponse`` so callers never see
library-specific exceptions.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol, runtime_checkable

import httpx

from nexus_ledger.errors import LedgerTimeoutError, MalformedResponse, TransportError

logger = logging.getLogger(__name__)


@runtime_checkable
class JsonRpcTransport(Protocol):
    """Async transport for JSON-RPC POST requests."""

    async def post_json(self, url: str, payload: dict[str, Any]) -> dict[str, Any]:
        """Send a JSON-RPC request and return the parsed response.

        Args:
            url: The JSON-RPC endpoint URL.
            payload: The JSON-RPC request body (method, params, id).

        Returns:
            Parsed JSON response as a dict.

        Raises:
            LedgerTimeoutError: The request timed out.
            TransportError: Connection, TLS, or HTTP status failure.
            MalformedResponse: The body is not a JSON object.
        """
        ...


class HttpxTransport:
    """Default transport using httpx.AsyncClient.

    A fresh client per call keeps the transport safe to share between
    concurrent reads; pass ``client`` to reuse a long-lived one.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._timeout = timeout
        self._client = client

    async def post_json(self, url: str, payload: dict[str, Any]) -> dict[str, Any]:
        """Send JSON-RPC request via httpx."""
        method = payload.get("method")
        try:
            if self._client is not None:
                response = await self._post(self._client, url, payload)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await self._post(client, url, payload)
        except httpx.TimeoutException as exc:
            logger.warning("JSON-RPC %s timed out after %.1fs", method, self._timeout)
            raise LedgerTimeoutError(f"{method} timed out: {exc}") from exc
        except httpx.HTTPStatusError as exc:
            raise TransportError(
                f"{method} failed with HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"{method} failed: {exc}") from exc

        try:
            result = response.json()
        except ValueError as exc:
            raise MalformedResponse(f"{method} returned a non-JSON body") from exc
        if not isinstance(result, dict):
            raise MalformedResponse(f"{method} returned {type(result).__name__}, not an object")
        return result

    async def _post(
        self, client: httpx.AsyncClient, url: str, payload: dict[str, Any]
    ) -> httpx.Response:
        response = await client.post(
            url,
            json=payload,
            headers={"Content-Type": "application/json"},
            timeout=self._timeout,
        )
        response.raise_for_status()
        return response
