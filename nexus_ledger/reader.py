"""
Read-only ledger queries.

Every method is idempotent, holds no key material, and is safe to retry
or run concurrently. rippled responses are reduced to the frozen records
in ``nexus_ledger.models``; anything that does not fit the expected
shape raises ``MalformedResponse``.
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Any

from nexus_ledger.addresscodec import decode_classic_address
from nexus_ledger.amounts import (
    NATIVE_CURRENCY,
    CurrencyAmount,
    IssuedAmount,
    NativeAmount,
    drops_to_xrp,
)
from nexus_ledger.errors import AccountNotFound, MalformedResponse, ValidationError
from nexus_ledger.jsonrpc_client import JsonRpcClient
from nexus_ledger.models import (
    AccountInfo,
    CurrencySets,
    FeeInfo,
    FulfillmentDetails,
    TrustLine,
    TxStatusResult,
)

logger = logging.getLogger(__name__)

# Seconds between the Unix epoch and the XRPL epoch (2000-01-01T00:00:00Z).
RIPPLE_EPOCH_OFFSET = 946684800

# Hard stop for account_lines pagination.
_MAX_LINE_PAGES = 50


class LedgerReader:
    """Account, trust line, currency, fee, and transaction lookups.

    Args:
        client: JSON-RPC client bound to the target network.
    """

    def __init__(self, client: JsonRpcClient) -> None:
        self._client = client

    @property
    def client(self) -> JsonRpcClient:
        return self._client

    async def get_account_info(self, address: str) -> AccountInfo:
        """Current sequence and balance of ``address``.

        Raises:
            ValidationError: ``address`` fails checksum validation.
            AccountNotFound: The account does not exist on the ledger.
            TransportError: Network or timeout failure.
            MalformedResponse: Unexpected response shape.
        """
        decode_classic_address(address)
        logger.info("Getting account info for %s", address)
        result = await self._client.request(
            "account_info", {"account": address, "ledger_index": "current"}
        )
        data = result.get("account_data")
        if not isinstance(data, dict):
            raise MalformedResponse("account_info result has no account_data")
        try:
            return AccountInfo(
                account=data.get("Account", address),
                sequence=int(data["Sequence"]),
                balance=int(data["Balance"]),
                owner_count=int(data.get("OwnerCount", 0)),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise MalformedResponse(f"account_info account_data is malformed: {exc!r}") from exc

    async def account_exists(self, address: str) -> bool:
        try:
            await self.get_account_info(address)
        except AccountNotFound:
            return False
        return True

    async def get_account_lines(self, address: str) -> tuple[TrustLine, ...]:
        """All trust lines of ``address``, following pagination markers."""
        decode_classic_address(address)
        logger.info("Getting account lines for %s", address)
        params: dict[str, Any] = {"account": address, "ledger_index": "validated"}
        lines: list[TrustLine] = []
        for _ in range(_MAX_LINE_PAGES):
            result = await self._client.request("account_lines", params)
            raw_lines = result.get("lines")
            if not isinstance(raw_lines, list):
                raise MalformedResponse("account_lines result has no lines list")
            lines.extend(_parse_trust_line(line) for line in raw_lines)
            marker = result.get("marker")
            if marker is None:
                break
            params = {**params, "marker": marker}
        else:
            logger.warning("account_lines for %s truncated after %d pages", address, _MAX_LINE_PAGES)
        return tuple(lines)

    async def get_account_currencies(self, address: str) -> CurrencySets:
        """Currencies ``address`` can send and receive."""
        decode_classic_address(address)
        logger.info("Getting account currencies for %s", address)
        result = await self._client.request(
            "account_currencies", {"account": address, "ledger_index": "validated"}
        )
        send = result.get("send_currencies", [])
        receive = result.get("receive_currencies", [])
        if not isinstance(send, list) or not isinstance(receive, list):
            raise MalformedResponse("account_currencies lists are malformed")
        return CurrencySets(
            send_currencies=frozenset(str(c) for c in send),
            receive_currencies=tuple(str(c) for c in receive),
        )

    async def trust_line_exists(
        self,
        holder: str,
        issuer: str,
        currency: str | None = None,
    ) -> bool:
        """Whether ``holder`` has a trust line toward ``issuer``."""
        for line in await self.get_account_lines(holder):
            if line.account == issuer and (currency is None or line.currency == currency):
                return True
        return False

    async def get_fee(self) -> FeeInfo:
        """Network fee levels, read just before use. Values go stale quickly."""
        result = await self._client.request("fee", {})
        drops = result.get("drops")
        if not isinstance(drops, dict):
            raise MalformedResponse("fee result has no drops object")
        try:
            current_index = result.get("ledger_current_index")
            return FeeInfo(
                base_fee=int(drops["base_fee"]),
                open_ledger_fee=int(drops.get("open_ledger_fee", drops["base_fee"])),
                ledger_current_index=int(current_index) if current_index is not None else None,
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise MalformedResponse(f"fee drops are malformed: {exc!r}") from exc

    async def get_transaction(self, tx_hash: str) -> TxStatusResult:
        return await self._client.get_tx(tx_hash)

    async def balance_change(self, tx_hash: str) -> FulfillmentDetails:
        """What a validated swap Payment actually sent and delivered.

        Raises:
            ValidationError: The transaction is not a Payment.
            MalformedResponse: Required fields are missing.
        """
        result = await self._client.request(
            "tx", {"transaction": tx_hash, "binary": False}
        )
        tx = result.get("tx_json", result)
        if not isinstance(tx, dict):
            raise MalformedResponse("tx_json is not an object")
        if tx.get("TransactionType") != "Payment":
            logger.warning("Transaction %s is not a payment", tx_hash)
            raise ValidationError("tx_hash", "not a Payment transaction")

        meta = result.get("meta")
        if not isinstance(meta, dict):
            raise MalformedResponse("tx result has no meta")
        delivered = meta.get("delivered_amount", meta.get("DeliveredAmount"))
        sent = tx.get("SendMax", tx.get("Amount"))
        if delivered is None or sent is None:
            raise MalformedResponse("payment has no delivered amount or SendMax")

        token_in, amount_in = _describe(amount_from_json(sent))
        token_out, amount_out = _describe(amount_from_json(delivered))
        date = tx.get("date", result.get("date"))
        try:
            close_time = int(date) if date is not None else 0
        except (TypeError, ValueError) as exc:
            raise MalformedResponse(f"malformed close time: {date!r}") from exc
        return FulfillmentDetails(
            amount_in=amount_in,
            token_in=token_in,
            amount_out=amount_out,
            token_out=token_out,
            fee=str(tx.get("Fee", "0")),
            tx_signer=str(tx.get("Account", "")),
            tx_timestamp=RIPPLE_EPOCH_OFFSET + close_time,
        )


# =====================================================================
# Parsing helpers
# =====================================================================


def _parse_trust_line(line: Any) -> TrustLine:
    if not isinstance(line, dict):
        raise MalformedResponse("trust line entry is not an object")
    try:
        return TrustLine(
            account=line["account"],
            currency=line["currency"],
            balance=str(line["balance"]),
            limit=str(line["limit"]),
            limit_peer=str(line.get("limit_peer", "0")),
            no_ripple=bool(line.get("no_ripple", False)),
        )
    except KeyError as exc:
        raise MalformedResponse(f"trust line is missing {exc}") from exc


def amount_from_json(value: Any) -> CurrencyAmount:
    """Parse a rippled JSON amount: drops string or {currency, issuer, value}."""
    try:
        if isinstance(value, str):
            return NativeAmount(int(value))
        if isinstance(value, dict):
            return IssuedAmount(
                value=Decimal(str(value["value"])),
                currency=value["currency"],
                issuer=value["issuer"],
            )
    except (KeyError, ValueError, InvalidOperation) as exc:
        raise MalformedResponse(f"malformed amount: {value!r}") from exc
    raise MalformedResponse(f"malformed amount: {value!r}")


def _describe(amount: CurrencyAmount) -> tuple[str, str]:
    match amount:
        case NativeAmount(drops=drops):
            return NATIVE_CURRENCY, format(drops_to_xrp(drops), "f")
        case IssuedAmount(value=value, issuer=issuer):
            return issuer, format(value, "f")
    raise MalformedResponse(f"unsupported amount {amount!r}")
