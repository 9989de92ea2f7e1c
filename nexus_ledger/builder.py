"""
Transaction builder: high-level requests to TransactionObjects.

Pure: no network, no secrets. Network-derived values (sequence, fee,
ledger bound) are passed in by the caller, who reads them just before
use. Every check runs before anything is constructed, so a failing
request leaves nothing behind.

Swaps are Payments to self:
    - Amount   = amount_out_min in token_out (what must arrive)
    - SendMax  = amount_in in token_in (the most that may be spent)
    - partial  = tfPartialPayment with DeliverMin = amount_out_min

Direct payments send ``amount`` of one token to another account, with
an optional DestinationTag.

Token grammar:
    "XRP"            native currency
    "USD.rIssuer"    issued currency, explicit code
    "rIssuer"        issued currency, code resolved before building
"""

from __future__ import annotations

from dataclasses import dataclass

from nexus_ledger.addresscodec import decode_classic_address
from nexus_ledger.amounts import (
    NATIVE_CURRENCY,
    CurrencyAmount,
    IssuedAmount,
    NativeAmount,
    normalize_currency,
    parse_issued_value,
    xrp_to_drops,
)
from nexus_ledger.errors import ValidationError
from nexus_ledger.models import (
    TF_PARTIAL_PAYMENT,
    TF_SET_NO_RIPPLE,
    SendRequest,
    SwapRequest,
    TransactionObject,
    TransactionType,
    TrustLineRequest,
)


@dataclass(frozen=True)
class TokenSpec:
    """A parsed token identifier. ``issuer`` is None for XRP."""

    currency: str | None = None
    issuer: str | None = None

    @property
    def is_native(self) -> bool:
        return self.issuer is None

    @property
    def is_resolved(self) -> bool:
        return self.is_native or self.currency is not None


NATIVE = TokenSpec()


def parse_token(token: str, field: str) -> TokenSpec:
    """Parse "XRP", "CUR.rIssuer", or a bare "rIssuer"."""
    if not token:
        raise ValidationError(field, "token cannot be empty")
    if token == NATIVE_CURRENCY:
        return NATIVE
    if "." in token:
        currency, _, issuer = token.partition(".")
        decode_classic_address(issuer, field)
        return TokenSpec(normalize_currency(currency, field), issuer)
    decode_classic_address(token, field)
    return TokenSpec(None, token)


def qualify_token(token: TokenSpec, currency: str) -> str:
    """Render a bare-issuer token with its resolved currency code."""
    return f"{currency}.{token.issuer}"


def amount_for(token: TokenSpec, value: str, field: str) -> CurrencyAmount:
    if token.is_native:
        return NativeAmount(xrp_to_drops(value, field))
    if token.currency is None:
        raise ValidationError(field, "issued currency code is not resolved")
    return IssuedAmount(parse_issued_value(value, field), token.currency, token.issuer or "")


def _require_positive(value: str, token: TokenSpec, field: str) -> None:
    if token.is_native:
        amount = xrp_to_drops(value, field)
    else:
        amount = parse_issued_value(value, field)
    if amount <= 0:
        raise ValidationError(field, "amount must be greater than zero")


# =========================================================================
# Validation
# =========================================================================


def validate_swap(request: SwapRequest) -> tuple[TokenSpec, TokenSpec]:
    """Pre-flight checks for a swap. Returns the parsed (token_in, token_out) pair.

    Raises:
        ValidationError: Same token on both sides, XRP-to-XRP, malformed
            token or issuer, or a non-positive / over-precise amount.
    """
    token_in = parse_token(request.token_in, "token_in")
    token_out = parse_token(request.token_out, "token_out")
    if request.token_in == request.token_out or token_in == token_out:
        raise ValidationError("token_out", "token_in and token_out must differ")
    if token_in.is_native and token_out.is_native:
        raise ValidationError("token_out", "cannot swap XRP to XRP")
    _require_positive(request.amount_in, token_in, "amount_in")
    _require_positive(request.amount_out_min, token_out, "amount_out_min")
    return token_in, token_out


def validate_trust_line(request: TrustLineRequest, account: str | None = None) -> TokenSpec:
    """Pre-flight checks for a trust line. Returns the parsed issuer token.

    ``account`` is the holder; an issuer equal to it is refused.
    """
    decode_classic_address(request.token_address, "token_address")
    if request.token_address == account:
        raise ValidationError("token_address", "cannot extend a trust line to yourself")
    parse_issued_value(request.effective_limit, "limit")
    currency = None
    if request.currency is not None:
        currency = normalize_currency(request.currency, "currency")
    return TokenSpec(currency, request.token_address)


def validate_send(request: SendRequest, account: str | None = None) -> TokenSpec:
    """Pre-flight checks for a direct payment. Returns the parsed token.

    Raises:
        ValidationError: Malformed or self destination, bad destination
            tag, malformed token, or a non-positive / over-precise amount.
    """
    decode_classic_address(request.destination, "destination")
    if request.destination == account:
        raise ValidationError("destination", "cannot send to yourself; use a swap")
    tag = request.destination_tag
    if tag is not None and (not isinstance(tag, int) or not 0 <= tag <= 0xFFFFFFFF):
        raise ValidationError("destination_tag", f"not a valid destination tag: {tag!r}")
    token = parse_token(request.token, "token")
    _require_positive(request.amount, token, "amount")
    return token


def _check_common(account: str, sequence: int, fee: int) -> None:
    decode_classic_address(account, "account")
    if not isinstance(sequence, int) or sequence < 0 or sequence > 0xFFFFFFFF:
        raise ValidationError("sequence", f"not a valid sequence number: {sequence!r}")
    if not isinstance(fee, int) or fee <= 0:
        raise ValidationError("fee", f"fee must be a positive number of drops: {fee!r}")


# =========================================================================
# Builders
# =========================================================================


def build_payment(
    account: str,
    request: SwapRequest,
    current_sequence: int,
    current_fee: int,
    *,
    last_ledger_sequence: int | None = None,
) -> TransactionObject:
    """Build the self-Payment that performs ``request``.

    Both tokens must be resolved ("XRP" or "CUR.rIssuer").

    Raises:
        ValidationError: On any request or parameter violation.
    """
    _check_common(account, current_sequence, current_fee)
    token_in, token_out = validate_swap(request)
    if not token_in.is_resolved:
        raise ValidationError("token_in", "issued currency code is not resolved")
    if not token_out.is_resolved:
        raise ValidationError("token_out", "issued currency code is not resolved")

    amount = amount_for(token_out, request.amount_out_min, "amount_out_min")
    tx = TransactionObject(
        transaction_type=TransactionType.PAYMENT,
        account=account,
        sequence=current_sequence,
        fee=current_fee,
        last_ledger_sequence=last_ledger_sequence,
        destination=account,
        amount=amount,
        send_max=amount_for(token_in, request.amount_in, "amount_in"),
    )
    if request.partial:
        tx.flags |= TF_PARTIAL_PAYMENT
        tx.deliver_min = amount
    return tx


def build_trust_set(
    account: str,
    request: TrustLineRequest,
    current_sequence: int,
    current_fee: int,
    *,
    last_ledger_sequence: int | None = None,
) -> TransactionObject:
    """Build a TrustSet toward ``request.token_address``.

    The limit defaults to "1000000000" when the request leaves it empty.

    Raises:
        ValidationError: On any request or parameter violation.
    """
    _check_common(account, current_sequence, current_fee)
    token = validate_trust_line(request, account)
    if token.currency is None:
        raise ValidationError("currency", "trust line currency is not resolved")

    tx = TransactionObject(
        transaction_type=TransactionType.TRUST_SET,
        account=account,
        sequence=current_sequence,
        fee=current_fee,
        last_ledger_sequence=last_ledger_sequence,
        limit_amount=IssuedAmount(
            parse_issued_value(request.effective_limit, "limit"),
            token.currency,
            request.token_address,
        ),
    )
    if request.no_ripple:
        tx.flags |= TF_SET_NO_RIPPLE
    return tx


def build_send(
    account: str,
    request: SendRequest,
    current_sequence: int,
    current_fee: int,
    *,
    last_ledger_sequence: int | None = None,
) -> TransactionObject:
    """Build a Payment of ``request.amount`` to ``request.destination``.

    The token must be resolved ("XRP" or "CUR.rIssuer").

    Raises:
        ValidationError: On any request or parameter violation.
    """
    _check_common(account, current_sequence, current_fee)
    token = validate_send(request, account)
    if not token.is_resolved:
        raise ValidationError("token", "issued currency code is not resolved")

    return TransactionObject(
        transaction_type=TransactionType.PAYMENT,
        account=account,
        sequence=current_sequence,
        fee=current_fee,
        last_ledger_sequence=last_ledger_sequence,
        destination=request.destination,
        destination_tag=request.destination_tag,
        amount=amount_for(token, request.amount, "amount"),
    )
