"""
Currency amounts: parsing, validation, and the 8/48-byte wire form.

``CurrencyAmount`` is a closed union of ``NativeAmount`` (integral drops)
and ``IssuedAmount`` (decimal value + currency + issuer). Every site
that handles an amount matches on both variants explicitly.

Issued values follow the XRPL float rules: at most 16 significant
digits, mantissa normalised to [10^15, 10^16), exponent in [-96, 80].
"""

from __future__ import annotations

import re
import struct
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, localcontext

from nexus_ledger.addresscodec import (
    ACCOUNT_ID_LENGTH,
    decode_classic_address,
    encode_classic_address,
)
from nexus_ledger.errors import EncodingError, ValidationError

NATIVE_CURRENCY = "XRP"
DROPS_PER_XRP = 1_000_000
MAX_DROPS = 10**17
# Decimal exponents (adjusted) that can still be a whole number of drops.
_MIN_XRP_ADJUSTED = -6
_MAX_XRP_ADJUSTED = 11

MAX_SIGNIFICANT_DIGITS = 16
MIN_EXPONENT = -96
MAX_EXPONENT = 80
_MIN_MANTISSA = 10**15
_MAX_MANTISSA = 10**16 - 1
# Adjusted exponents of nonzero issued values: mantissa digits sit above the exponent.
_MIN_ISSUED_ADJUSTED = MIN_EXPONENT + MAX_SIGNIFICANT_DIGITS - 1
_MAX_ISSUED_ADJUSTED = MAX_EXPONENT + MAX_SIGNIFICANT_DIGITS - 1

_NOT_NATIVE_BIT = 0x8000000000000000
_POSITIVE_BIT = 0x4000000000000000
_MANTISSA_MASK = (1 << 54) - 1
_DROPS_MASK = (1 << 62) - 1

_ISO_CODE_RE = re.compile(r"^[A-Za-z0-9?!@#$%^&*<>(){}\[\]|]{3}$")
_HEX_CODE_RE = re.compile(r"^[0-9A-Fa-f]{40}$")


@dataclass(frozen=True)
class NativeAmount:
    drops: int


@dataclass(frozen=True)
class IssuedAmount:
    value: Decimal
    currency: str
    issuer: str


CurrencyAmount = NativeAmount | IssuedAmount


# =========================================================================
# Parsing / validation
# =========================================================================


def _parse_decimal(value: str, field: str) -> Decimal:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(field, "amount must be a non-empty decimal string")
    try:
        parsed = Decimal(value.strip())
    except InvalidOperation:
        raise ValidationError(field, f"not a decimal number: {value!r}") from None
    if not parsed.is_finite():
        raise ValidationError(field, f"not a finite number: {value!r}")
    if parsed < 0:
        raise ValidationError(field, f"amount must not be negative: {value!r}")
    return parsed


def xrp_to_drops(value: str, field: str = "amount") -> int:
    """Convert an XRP decimal string to integral drops.

    Raises:
        ValidationError: Negative, fractional drops, or above 10^17 drops.
    """
    parsed = _parse_decimal(value, field)
    if parsed == 0:
        return 0
    if parsed.adjusted() > _MAX_XRP_ADJUSTED:
        raise ValidationError(field, f"XRP amount exceeds {MAX_DROPS} drops")
    if parsed.adjusted() < _MIN_XRP_ADJUSTED:
        raise ValidationError(field, f"XRP amount finer than one drop: {value!r}")
    with localcontext() as ctx:
        # Enough precision for the product to be exact.
        ctx.prec = len(parsed.as_tuple().digits) + 8
        drops = parsed * DROPS_PER_XRP
    if drops != drops.to_integral_value():
        raise ValidationError(field, f"XRP amount finer than one drop: {value!r}")
    drops_int = int(drops)
    if drops_int > MAX_DROPS:
        raise ValidationError(field, f"XRP amount exceeds {MAX_DROPS} drops")
    return drops_int


def drops_to_xrp(drops: int) -> Decimal:
    return (Decimal(drops) / DROPS_PER_XRP).normalize()


def parse_issued_value(value: str, field: str = "amount") -> Decimal:
    """Parse an issued-currency value within protocol precision.

    Raises:
        ValidationError: More than 16 significant digits, or a magnitude
            outside the representable exponent range.
    """
    parsed = _parse_decimal(value, field)
    if parsed == 0:
        return Decimal(0)
    # Count on the raw digits; normalize() would round past 28 digits.
    digits = "".join(str(d) for d in parsed.as_tuple().digits).strip("0")
    if len(digits) > MAX_SIGNIFICANT_DIGITS:
        raise ValidationError(
            field,
            f"more than {MAX_SIGNIFICANT_DIGITS} significant digits: {value!r}",
        )
    if not _MIN_ISSUED_ADJUSTED <= parsed.adjusted() <= _MAX_ISSUED_ADJUSTED:
        raise ValidationError(field, f"magnitude out of range: {value!r}")
    normalized = parsed.normalize()
    try:
        _mantissa_exponent(normalized)
    except EncodingError:
        raise ValidationError(field, f"magnitude out of range: {value!r}") from None
    return normalized


def normalize_currency(code: str, field: str = "currency") -> str:
    """Validate a currency code; 3-char codes keep their case, hex is uppercased.

    A 40-hex code in the standard layout collapses to its 3-char form so
    that decoding gives back the same value.
    """
    if _ISO_CODE_RE.match(code or ""):
        if code.upper() == NATIVE_CURRENCY:
            raise ValidationError(field, "XRP cannot be used as an issued currency code")
        return code
    if _HEX_CODE_RE.match(code or ""):
        raw = bytes.fromhex(code)
        if raw[0] == 0:
            standard = _standard_code(raw)
            if standard is not None:
                return normalize_currency(standard, field)
            raise ValidationError(field, f"non-standard currency with zero prefix: {code!r}")
        return code.upper()
    raise ValidationError(field, f"malformed currency code: {code!r}")


# =========================================================================
# Wire encoding
# =========================================================================


def _mantissa_exponent(value: Decimal) -> tuple[int, int]:
    if not value.is_finite():
        raise EncodingError(f"not a finite amount: {value}")
    if not _MIN_ISSUED_ADJUSTED <= value.adjusted() <= _MAX_ISSUED_ADJUSTED:
        raise EncodingError(f"magnitude of {value} out of range")
    _, digits, exponent = value.normalize().as_tuple()
    if not isinstance(exponent, int):
        raise EncodingError(f"not a finite amount: {value}")
    mantissa = int("".join(str(d) for d in digits))
    while mantissa < _MIN_MANTISSA:
        mantissa *= 10
        exponent -= 1
    if mantissa > _MAX_MANTISSA:
        raise EncodingError(f"mantissa has more than {MAX_SIGNIFICANT_DIGITS} digits")
    if not MIN_EXPONENT <= exponent <= MAX_EXPONENT:
        raise EncodingError(f"exponent {exponent} out of range")
    return mantissa, exponent


def currency_to_bytes(code: str) -> bytes:
    if len(code) == 3:
        if code.upper() == NATIVE_CURRENCY:
            raise EncodingError("XRP is not an issued currency")
        return bytes(12) + code.encode("ascii") + bytes(5)
    if len(code) == 40:
        return bytes.fromhex(code)
    raise EncodingError(f"cannot encode currency code {code!r}")


def _standard_code(raw: bytes) -> str | None:
    if raw[:12] == bytes(12) and raw[15:] == bytes(5) and raw[12:15] != bytes(3):
        try:
            return raw[12:15].decode("ascii")
        except UnicodeDecodeError:
            return None
    return None


def currency_from_bytes(raw: bytes) -> str:
    return _standard_code(raw) or raw.hex().upper()


def encode_amount(amount: CurrencyAmount) -> bytes:
    """Serialize an amount: 8 bytes native, 48 bytes issued."""
    match amount:
        case NativeAmount(drops=drops):
            if not 0 <= drops <= MAX_DROPS:
                raise EncodingError(f"drops out of range: {drops}")
            return struct.pack(">Q", _POSITIVE_BIT | drops)
        case IssuedAmount(value=value, currency=currency, issuer=issuer):
            if value == 0:
                bits = _NOT_NATIVE_BIT
            else:
                mantissa, exponent = _mantissa_exponent(abs(value))
                bits = _NOT_NATIVE_BIT | ((exponent + 97) << 54) | mantissa
                if value > 0:
                    bits |= _POSITIVE_BIT
            try:
                issuer_id = decode_classic_address(issuer, "issuer")
            except ValidationError as exc:
                raise EncodingError(str(exc)) from exc
            return struct.pack(">Q", bits) + currency_to_bytes(currency) + issuer_id
    raise EncodingError(f"not a currency amount: {amount!r}")


def decode_amount(data: bytes, offset: int) -> tuple[CurrencyAmount, int]:
    """Parse an amount at ``offset``; returns (amount, new offset)."""
    if len(data) < offset + 8:
        raise EncodingError("truncated amount")
    (bits,) = struct.unpack_from(">Q", data, offset)
    offset += 8
    if not bits & _NOT_NATIVE_BIT:
        if not bits & _POSITIVE_BIT:
            raise EncodingError("negative native amount")
        return NativeAmount(bits & _DROPS_MASK), offset

    end = offset + 20 + ACCOUNT_ID_LENGTH
    if len(data) < end:
        raise EncodingError("truncated issued amount")
    currency = currency_from_bytes(data[offset:offset + 20])
    issuer = encode_classic_address(data[offset + 20:end])
    if bits == _NOT_NATIVE_BIT:
        value = Decimal(0)
    else:
        exponent = ((bits >> 54) & 0xFF) - 97
        value = Decimal(bits & _MANTISSA_MASK).scaleb(exponent).normalize()
        if not bits & _POSITIVE_BIT:
            value = -value
    return IssuedAmount(value, currency, issuer), end
