"""
Data model for ledger reads, transaction requests, and results.

Requests (``SwapRequest``, ``TrustLineRequest``) are plain frozen
records. They are validated by ``nexus_ledger.builder``; constructing
one never raises.

``TransactionObject`` is the only mutable record: the builder creates
it, the pipeline fills ``signing_public_key`` and ``transaction_signature``,
and it is discarded after submission.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum, StrEnum
from typing import TYPE_CHECKING, Any

from nexus_ledger.errors import is_accepted_result

if TYPE_CHECKING:
    from nexus_ledger.amounts import CurrencyAmount


# =========================================================================
# Enums
# =========================================================================


class Algorithm(StrEnum):
    """Signing algorithm of a key pair."""

    SECP256K1 = "secp256k1"
    ED25519 = "ed25519"


class FeeStrategy(StrEnum):
    """Where the transaction fee comes from."""

    FIXED = "fixed"
    NETWORK = "network-suggested"


class TransactionType(IntEnum):
    """Supported transaction types, valued by their XRPL type code."""

    PAYMENT = 0
    TRUST_SET = 20


# Transaction flags (https://xrpl.org/docs/references/protocol/transactions)
TF_FULLY_CANONICAL_SIG = 0x80000000
TF_PARTIAL_PAYMENT = 0x00020000
TF_SET_NO_RIPPLE = 0x00020000
TF_CLEAR_NO_RIPPLE = 0x00040000


# =========================================================================
# Requests
# =========================================================================


@dataclass(frozen=True)
class SwapRequest:
    """Swap one currency for another through a Payment to self.

    Tokens are ``"XRP"`` for the native currency, ``"CUR.rIssuer"`` for
    an issued currency, or a bare ``"rIssuer"`` whose currency is looked
    up from the issuer before building.

    Attributes:
        token_in: Currency sent (becomes SendMax).
        token_out: Currency received (becomes Amount).
        amount_in: Maximum amount to spend, as a decimal string.
        amount_out_min: Amount to deliver, as a decimal string.
        partial: Allow partial delivery (tfPartialPayment + DeliverMin).
    """

    token_in: str
    token_out: str
    amount_in: str
    amount_out_min: str
    partial: bool = False


DEFAULT_TRUST_LIMIT = "1000000000"


@dataclass(frozen=True)
class TrustLineRequest:
    """Create or modify a trust line toward an issuer.

    ``currency`` may be left empty; the pipeline resolves it from the
    issuer's receivable currencies.
    """

    token_address: str
    limit: str | None = None
    currency: str | None = None
    no_ripple: bool = False

    @property
    def effective_limit(self) -> str:
        return self.limit if self.limit is not None else DEFAULT_TRUST_LIMIT


@dataclass(frozen=True)
class SendRequest:
    """Pay ``amount`` of ``token`` to another account.

    ``token`` follows the same grammar as SwapRequest. The amount is
    delivered exactly; no SendMax, no partial payment.
    """

    destination: str
    token: str
    amount: str
    destination_tag: int | None = None


# =========================================================================
# Transaction object
# =========================================================================


@dataclass
class TransactionObject:
    """A Payment or TrustSet transaction, field by field.

    Optional fields left as None are omitted from the wire encoding.
    """

    transaction_type: TransactionType
    account: str
    sequence: int
    fee: int
    flags: int = 0
    signing_public_key: bytes = b""
    transaction_signature: bytes | None = None
    last_ledger_sequence: int | None = None
    source_tag: int | None = None
    network_id: int | None = None
    # Payment
    destination: str | None = None
    destination_tag: int | None = None
    amount: CurrencyAmount | None = None
    send_max: CurrencyAmount | None = None
    deliver_min: CurrencyAmount | None = None
    # TrustSet
    limit_amount: CurrencyAmount | None = None
    quality_in: int | None = None
    quality_out: int | None = None


# =========================================================================
# Ledger read results
# =========================================================================


@dataclass(frozen=True)
class AccountInfo:
    """Subset of ``account_info`` needed to build transactions."""

    account: str
    sequence: int
    balance: int  # drops
    owner_count: int = 0


@dataclass(frozen=True)
class TrustLine:
    """One entry of ``account_lines``. Amounts stay as decimal strings."""

    account: str
    currency: str
    balance: str
    limit: str
    limit_peer: str = "0"
    no_ripple: bool = False


@dataclass(frozen=True)
class CurrencySets:
    """Currencies an account can send and receive."""

    send_currencies: frozenset[str] = field(default_factory=frozenset)
    receive_currencies: tuple[str, ...] = ()


@dataclass(frozen=True)
class FeeInfo:
    """Current fee levels in drops, from the ``fee`` method."""

    base_fee: int
    open_ledger_fee: int
    ledger_current_index: int | None = None


@dataclass(frozen=True)
class FulfillmentDetails:
    """What a validated swap Payment actually moved.

    Native amounts are expressed in XRP, issued amounts in their own
    units. ``token_in`` / ``token_out`` are "XRP" or the issuer address.
    """

    amount_in: str
    token_in: str
    amount_out: str
    token_out: str
    fee: str
    tx_signer: str
    tx_timestamp: int


# =========================================================================
# Submission results
# =========================================================================


@dataclass(frozen=True)
class SubmitResult:
    """Result of submitting a signed transaction blob.

    Attributes:
        accepted: Whether the node took the transaction for processing.
            True does NOT mean validated.
        tx_hash: Transaction hash (64 hex chars), when the node reports one.
        engine_result: XRPL engine result code.
        error_code: "SERVER_ERROR" when the node itself errored.
        detail: Engine result message or server error message.
    """

    accepted: bool
    tx_hash: str | None = None
    engine_result: str | None = None
    error_code: str | None = None
    detail: str | None = None


@dataclass(frozen=True)
class TxStatusResult:
    """Result of querying a transaction's ledger status."""

    found: bool
    validated: bool = False
    ledger_index: int | None = None
    engine_result: str | None = None
    ledger_close_time: str | None = None
    error_code: str | None = None
    detail: str | None = None


@dataclass(frozen=True)
class OperationResponse:
    """Outcome of one pipeline run."""

    success: bool
    transaction_hash: str | None = None
    ledger_result_code: str | None = None
    raw_detail: str | None = None


# =====================================================================
# Response parsing (pure functions, no I/O)
# =====================================================================


def parse_submit_response(response: dict[str, Any]) -> SubmitResult:
    """Parse a rippled submit JSON-RPC response into SubmitResult.

    Handles:
        - Successful submit (engine_result present)
        - Server-level errors (status == "error")
        - Missing engine_result (returns accepted=False with detail)

    Acceptance is decided by the engine result alone: only tesSUCCESS and
    terQUEUED count. The ``accepted`` flag rippled reports is ignored,
    since held transactions (terPRE_SEQ) can carry it too.
    """
    result = response.get("result", {})

    if result.get("status") == "error":
        return SubmitResult(
            accepted=False,
            error_code="SERVER_ERROR",
            detail=result.get("error_message") or result.get("error", "unknown server error"),
        )

    engine_result = result.get("engine_result")
    if engine_result is None:
        return SubmitResult(
            accepted=False,
            error_code="SERVER_ERROR",
            detail="no engine_result in submit response",
        )

    tx_hash = None
    tx_json = result.get("tx_json")
    if isinstance(tx_json, dict):
        tx_hash = tx_json.get("hash")

    return SubmitResult(
        accepted=is_accepted_result(engine_result),
        tx_hash=tx_hash,
        engine_result=engine_result,
        detail=result.get("engine_result_message"),
    )


def parse_tx_response(response: dict[str, Any]) -> TxStatusResult:
    """Parse a rippled tx JSON-RPC response into TxStatusResult.

    Handles:
        - Transaction found and validated
        - Transaction found but not yet validated
        - Transaction not found (txnNotFound error)
        - Server-level errors
    """
    result = response.get("result", {})

    if result.get("status") == "error":
        error = result.get("error", "")
        if error == "txnNotFound":
            return TxStatusResult(found=False)
        return TxStatusResult(
            found=False,
            error_code="SERVER_ERROR",
            detail=result.get("error_message") or error,
        )

    validated = bool(result.get("validated", False))
    ledger_index = result.get("ledger_index")

    engine_result = None
    meta = result.get("meta")
    if isinstance(meta, dict):
        engine_result = meta.get("TransactionResult")

    return TxStatusResult(
        found=True,
        validated=validated,
        ledger_index=ledger_index if validated else None,
        engine_result=engine_result,
        ledger_close_time=result.get("close_time_iso"),
    )
