"""
Canonical XRPL binary codec for Payment and TrustSet transactions.

The encoding is table-driven. Every field has a (type code, field code)
pair; fields are written in ascending (type code, field code) order,
never in insertion order. Each field is a 1-3 byte header followed by
its value:

    UInt16 / UInt32   fixed-width big-endian
    Amount            8 bytes (native) or 48 bytes (issued), see amounts.py
    Blob              length prefix + raw bytes
    AccountID         length prefix (always 20) + 20-byte account id

Signing bytes omit non-signing fields (TxnSignature), so two transactions
that differ only in their signature produce identical signing bytes.
The signer signs ``SIGNING_PREFIX || encode_for_signing(tx)``; the
transaction id is SHA512Half(``TXN_PREFIX`` || submission bytes).
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Any

from nexus_ledger.addresscodec import (
    ACCOUNT_ID_LENGTH,
    decode_classic_address,
    encode_classic_address,
)
from nexus_ledger.amounts import NativeAmount, decode_amount, encode_amount
from nexus_ledger.errors import EncodingError, ValidationError
from nexus_ledger.keys import sha512_half
from nexus_ledger.models import (
    OperationResponse,
    SubmitResult,
    TransactionObject,
    TransactionType,
    parse_submit_response,
)

SIGNING_PREFIX = bytes.fromhex("53545800")  # "STX\0"
TXN_PREFIX = bytes.fromhex("54584E00")  # "TXN\0"

# Type codes
UINT16 = 1
UINT32 = 2
AMOUNT = 6
BLOB = 7
ACCOUNT_ID = 8


# =========================================================================
# Field table
# =========================================================================


@dataclass(frozen=True)
class FieldDef:
    name: str
    type_code: int
    nth: int
    attribute: str
    is_signing: bool = True

    @property
    def sort_key(self) -> tuple[int, int]:
        return (self.type_code, self.nth)


FIELDS: tuple[FieldDef, ...] = (
    FieldDef("TransactionType", UINT16, 2, "transaction_type"),
    FieldDef("NetworkID", UINT32, 1, "network_id"),
    FieldDef("Flags", UINT32, 2, "flags"),
    FieldDef("SourceTag", UINT32, 3, "source_tag"),
    FieldDef("Sequence", UINT32, 4, "sequence"),
    FieldDef("DestinationTag", UINT32, 14, "destination_tag"),
    FieldDef("QualityIn", UINT32, 20, "quality_in"),
    FieldDef("QualityOut", UINT32, 21, "quality_out"),
    FieldDef("LastLedgerSequence", UINT32, 27, "last_ledger_sequence"),
    FieldDef("Amount", AMOUNT, 1, "amount"),
    FieldDef("LimitAmount", AMOUNT, 3, "limit_amount"),
    FieldDef("Fee", AMOUNT, 8, "fee"),
    FieldDef("SendMax", AMOUNT, 9, "send_max"),
    FieldDef("DeliverMin", AMOUNT, 10, "deliver_min"),
    FieldDef("SigningPubKey", BLOB, 3, "signing_public_key"),
    FieldDef("TxnSignature", BLOB, 4, "transaction_signature", is_signing=False),
    FieldDef("Account", ACCOUNT_ID, 1, "account"),
    FieldDef("Destination", ACCOUNT_ID, 3, "destination"),
)

_BY_CODE: dict[tuple[int, int], FieldDef] = {f.sort_key: f for f in FIELDS}
_CANONICAL_ORDER: tuple[FieldDef, ...] = tuple(sorted(FIELDS, key=lambda f: f.sort_key))

_REQUIRED: dict[TransactionType, tuple[str, ...]] = {
    TransactionType.PAYMENT: ("destination", "amount"),
    TransactionType.TRUST_SET: ("limit_amount",),
}
_FORBIDDEN: dict[TransactionType, tuple[str, ...]] = {
    TransactionType.PAYMENT: ("limit_amount", "quality_in", "quality_out"),
    TransactionType.TRUST_SET: (
        "destination", "destination_tag", "amount", "send_max", "deliver_min",
    ),
}


# =========================================================================
# Primitive encoders
# =========================================================================


def field_header(type_code: int, nth: int) -> bytes:
    if type_code < 16:
        if nth < 16:
            return bytes([(type_code << 4) | nth])
        return bytes([type_code << 4, nth])
    if nth < 16:
        return bytes([nth, type_code])
    return bytes([0, type_code, nth])


def encode_length(length: int) -> bytes:
    """Variable-length prefix for Blob and AccountID values."""
    if length <= 192:
        return bytes([length])
    if length <= 12480:
        length -= 193
        return bytes([193 + (length >> 8), length & 0xFF])
    if length <= 918744:
        length -= 12481
        return bytes([241 + (length >> 16), (length >> 8) & 0xFF, length & 0xFF])
    raise EncodingError(f"variable-length field too long: {length} bytes")


def decode_length(data: bytes, offset: int) -> tuple[int, int]:
    if offset >= len(data):
        raise EncodingError("truncated length prefix")
    b1 = data[offset]
    if b1 <= 192:
        return b1, offset + 1
    if b1 <= 240:
        if offset + 1 >= len(data):
            raise EncodingError("truncated length prefix")
        return 193 + (b1 - 193) * 256 + data[offset + 1], offset + 2
    if b1 <= 254:
        if offset + 2 >= len(data):
            raise EncodingError("truncated length prefix")
        b2, b3 = data[offset + 1], data[offset + 2]
        return 12481 + (b1 - 241) * 65536 + b2 * 256 + b3, offset + 3
    raise EncodingError(f"invalid length prefix byte 0x{b1:02x}")


def _encode_value(field: FieldDef, value: Any) -> bytes:
    try:
        if field.type_code == UINT16:
            return struct.pack(">H", int(value))
        if field.type_code == UINT32:
            return struct.pack(">I", value)
        if field.type_code == AMOUNT:
            if field.name == "Fee" and isinstance(value, int):
                value = NativeAmount(value)
            return encode_amount(value)
        if field.type_code == BLOB:
            raw = bytes(value)
            return encode_length(len(raw)) + raw
        if field.type_code == ACCOUNT_ID:
            account_id = decode_classic_address(value, field.name)
            return encode_length(ACCOUNT_ID_LENGTH) + account_id
    except struct.error as exc:
        raise EncodingError(f"{field.name}: {exc}") from exc
    except ValidationError as exc:
        raise EncodingError(str(exc)) from exc
    raise EncodingError(f"no encoder for type code {field.type_code}")


# =========================================================================
# Transaction encoding
# =========================================================================


def _check_shape(tx: TransactionObject) -> None:
    try:
        tx_type = TransactionType(tx.transaction_type)
    except ValueError:
        raise EncodingError(f"unsupported transaction type {tx.transaction_type!r}") from None
    for attribute in _REQUIRED[tx_type]:
        if getattr(tx, attribute) is None:
            raise EncodingError(f"{tx_type.name} requires {attribute}")
    for attribute in _FORBIDDEN[tx_type]:
        if getattr(tx, attribute) is not None:
            raise EncodingError(f"{tx_type.name} does not carry {attribute}")


def _serialize(tx: TransactionObject, *, signing: bool) -> bytes:
    _check_shape(tx)
    out = bytearray()
    for field in _CANONICAL_ORDER:
        if signing and not field.is_signing:
            continue
        value = getattr(tx, field.attribute)
        if value is None:
            continue
        out += field_header(field.type_code, field.nth)
        out += _encode_value(field, value)
    return bytes(out)


def encode_for_signing(tx: TransactionObject) -> bytes:
    """Canonical bytes of every signing field (TxnSignature excluded)."""
    return _serialize(tx, signing=True)


def signing_data(tx: TransactionObject) -> bytes:
    """The exact message handed to the signer: ``STX\\0`` + signing bytes."""
    return SIGNING_PREFIX + encode_for_signing(tx)


def encode_for_submission(tx: TransactionObject) -> bytes:
    """Canonical bytes including TxnSignature.

    Raises:
        EncodingError: If the transaction is not signed.
    """
    if not tx.transaction_signature:
        raise EncodingError("transaction must be signed before final encoding")
    return _serialize(tx, signing=False)


def transaction_id(blob: bytes) -> str:
    """Transaction hash of a final-encoded blob (64 upper-case hex chars)."""
    return sha512_half(TXN_PREFIX + blob).hex().upper()


# =========================================================================
# Decoding
# =========================================================================


def _read_header(data: bytes, offset: int) -> tuple[int, int, int]:
    first = data[offset]
    offset += 1
    type_code, nth = first >> 4, first & 0x0F
    try:
        if type_code == 0:
            type_code = data[offset]
            offset += 1
        if nth == 0:
            nth = data[offset]
            offset += 1
    except IndexError:
        raise EncodingError("truncated field header") from None
    return type_code, nth, offset


def _decode_value(field: FieldDef, data: bytes, offset: int) -> tuple[Any, int]:
    if field.type_code == UINT16:
        if offset + 2 > len(data):
            raise EncodingError(f"truncated {field.name}")
        return struct.unpack_from(">H", data, offset)[0], offset + 2
    if field.type_code == UINT32:
        if offset + 4 > len(data):
            raise EncodingError(f"truncated {field.name}")
        return struct.unpack_from(">I", data, offset)[0], offset + 4
    if field.type_code == AMOUNT:
        return decode_amount(data, offset)
    length, offset = decode_length(data, offset)
    end = offset + length
    if end > len(data):
        raise EncodingError(f"truncated {field.name}")
    raw = data[offset:end]
    if field.type_code == ACCOUNT_ID:
        if length != ACCOUNT_ID_LENGTH:
            raise EncodingError(f"{field.name} must be {ACCOUNT_ID_LENGTH} bytes")
        return encode_classic_address(raw), end
    return raw, end


def decode(blob: bytes) -> TransactionObject:
    """Parse canonical bytes back into a TransactionObject.

    Raises:
        EncodingError: Unknown field, out-of-order fields, truncation, or
            an unsupported transaction type.
    """
    values: dict[str, Any] = {}
    offset = 0
    previous: tuple[int, int] | None = None
    while offset < len(blob):
        type_code, nth, offset = _read_header(blob, offset)
        field = _BY_CODE.get((type_code, nth))
        if field is None:
            raise EncodingError(f"unknown field (type {type_code}, nth {nth})")
        if previous is not None and field.sort_key <= previous:
            raise EncodingError(f"{field.name} is out of canonical order")
        previous = field.sort_key
        values[field.attribute], offset = _decode_value(field, blob, offset)

    for required in ("transaction_type", "account", "sequence", "fee"):
        if required not in values:
            raise EncodingError(f"missing required field {required}")
    try:
        values["transaction_type"] = TransactionType(values["transaction_type"])
    except ValueError:
        raise EncodingError(
            f"unsupported transaction type {values['transaction_type']}"
        ) from None

    fee = values["fee"]
    if not isinstance(fee, NativeAmount):
        raise EncodingError("Fee must be a native amount")
    values["fee"] = fee.drops
    values.setdefault("signing_public_key", b"")

    tx = TransactionObject(**values)
    _check_shape(tx)
    return tx


def decode_response(response: SubmitResult | dict[str, Any]) -> OperationResponse:
    """Interpret a submission result as an OperationResponse.

    Accepts either a parsed SubmitResult or a raw rippled ``submit``
    JSON-RPC response dict.
    """
    if isinstance(response, dict):
        response = parse_submit_response(response)

    detail_parts: list[str] = []
    if response.error_code:
        detail_parts.append(response.error_code)
    if response.detail:
        detail_parts.append(response.detail)

    return OperationResponse(
        success=response.accepted,
        transaction_hash=response.tx_hash,
        ledger_result_code=response.engine_result,
        raw_detail="; ".join(detail_parts) if detail_parts else None,
    )
