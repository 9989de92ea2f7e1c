"""
XRPL JSON-RPC client.

Wraps a ``JsonRpcTransport`` with request framing and rippled error
mapping. ``submit`` / ``tx`` responses are turned into SubmitResult /
TxStatusResult by the pure parsers in ``nexus_ledger.models``.

No retry loops. No secrets. No XRPL logic beyond response parsing.

rippled JSON-RPC conventions:
    - Successful responses: {"result": {"status": "success", ...}}
    - Error responses: {"result": {"status": "error", "error": "...", ...}}
    - Submit responses include: engine_result, engine_result_message, tx_json
    - tx responses include: validated, ledger_index, meta, hash
"""

from __future__ import annotations

import itertools
import logging
from typing import Any

from nexus_ledger.errors import (
    AccountNotFound,
    MalformedResponse,
    TransportError,
    ValidationError,
)
from nexus_ledger.models import (
    SubmitResult,
    TxStatusResult,
    parse_submit_response,
    parse_tx_response,
)
from nexus_ledger.transport import HttpxTransport, JsonRpcTransport

logger = logging.getLogger(__name__)


class JsonRpcClient:
    """XRPL JSON-RPC client; also the pipeline's submission collaborator.

    Args:
        url: The rippled JSON-RPC endpoint URL (e.g. "https://xrplcluster.com/").
        transport: Injectable transport for HTTP POST. Defaults to
            HttpxTransport. Pass a FakeTransport for testing.
    """

    def __init__(
        self,
        url: str,
        transport: JsonRpcTransport | None = None,
    ) -> None:
        self._url = url
        self._transport = transport or HttpxTransport()
        self._ids = itertools.count(1)

    @property
    def url(self) -> str:
        """The JSON-RPC endpoint URL."""
        return self._url

    async def _call(self, method: str, params: dict[str, Any]) -> dict[str, Any]:
        payload = {"method": method, "params": [params], "id": next(self._ids)}
        logger.debug("JSON-RPC %s -> %s", method, self._url)
        response = await self._transport.post_json(self._url, payload)
        result = response.get("result")
        if not isinstance(result, dict):
            raise MalformedResponse(f"{method} response has no result object")
        return result

    async def request(self, method: str, params: dict[str, Any]) -> dict[str, Any]:
        """Call ``method`` and return its ``result`` object.

        Raises:
            AccountNotFound: rippled answered ``actNotFound``.
            ValidationError: rippled answered ``actMalformed``.
            TransportError: Any other server-level error, or transport failure.
            MalformedResponse: The response has no result object.
        """
        result = await self._call(method, params)
        if result.get("status") == "error":
            error = result.get("error", "unknown")
            if error == "actNotFound":
                raise AccountNotFound(str(params.get("account", "")))
            if error == "actMalformed":
                raise ValidationError("account", "malformed account address")
            message = result.get("error_message") or error
            raise TransportError(f"{method} server error: {message}")
        return result

    async def submit(self, signed_tx_blob_hex: str) -> SubmitResult:
        """Submit a signed transaction blob.

        Transport exceptions propagate to the caller.
        """
        result = await self._call("submit", {"tx_blob": signed_tx_blob_hex})
        return parse_submit_response({"result": result})

    async def get_tx(self, tx_hash: str) -> TxStatusResult:
        """Query transaction status. Transport exceptions propagate."""
        result = await self._call("tx", {"transaction": tx_hash, "binary": False})
        return parse_tx_response({"result": result})

