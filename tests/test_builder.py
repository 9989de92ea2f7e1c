"""
Tests for the transaction builder.

Test plan:
- Token grammar: XRP, CUR.rIssuer, bare issuer, bad issuer checksum
- Swap validation: same token, XRP to XRP, zero and negative amounts,
  over-precise amounts, all before anything is built
- build_payment: XRP → USD fields, destination is the sender,
  partial flag with DeliverMin, unresolved bare issuer refused,
  sequence / fee / account checks
- build_trust_set: default limit, explicit limit, no-ripple flag,
  unresolved currency and self-issuer refused, self-issuer caught by
  validate_trust_line alone
- build_send: native and issued payments to another account, destination
  tag, self destination and bad tags refused
"""

from decimal import Decimal

import pytest

from nexus_ledger.addresscodec import encode_classic_address
from nexus_ledger.amounts import IssuedAmount, NativeAmount
from nexus_ledger.builder import (
    NATIVE,
    TokenSpec,
    build_payment,
    build_send,
    build_trust_set,
    parse_token,
    qualify_token,
    validate_send,
    validate_swap,
    validate_trust_line,
)
from nexus_ledger.errors import ValidationError
from nexus_ledger.models import (
    TF_PARTIAL_PAYMENT,
    TF_SET_NO_RIPPLE,
    SendRequest,
    SwapRequest,
    TransactionType,
    TrustLineRequest,
)

ACCOUNT = "rHb9CJAWyB4rj91VRWn96DkukG4bwdtyTh"
ISSUER = encode_classic_address(bytes.fromhex("33" * 20))
OTHER_ISSUER = encode_classic_address(bytes.fromhex("44" * 20))
DESTINATION = encode_classic_address(bytes.fromhex("55" * 20))
USD = f"USD.{ISSUER}"


class TestParseToken:
    def test_native(self) -> None:
        assert parse_token("XRP", "token_in") is NATIVE
        assert NATIVE.is_native

    def test_qualified(self) -> None:
        token = parse_token(USD, "token_out")
        assert token == TokenSpec("USD", ISSUER)
        assert token.is_resolved

    def test_bare_issuer(self) -> None:
        token = parse_token(ISSUER, "token_out")
        assert token.currency is None
        assert not token.is_resolved

    def test_bad_issuer(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            parse_token("USD.rNotAnAddress", "token_out")
        assert exc_info.value.field == "token_out"

    def test_empty(self) -> None:
        with pytest.raises(ValidationError):
            parse_token("", "token_in")

    def test_qualify(self) -> None:
        assert qualify_token(TokenSpec(None, ISSUER), "USD") == USD


class TestValidateSwap:
    def test_same_token(self) -> None:
        with pytest.raises(ValidationError):
            validate_swap(SwapRequest(USD, USD, "1", "1"))

    def test_xrp_to_xrp(self) -> None:
        with pytest.raises(ValidationError):
            validate_swap(SwapRequest("XRP", "XRP", "1", "1"))

    def test_same_currency_different_issuer_allowed(self) -> None:
        validate_swap(SwapRequest(USD, f"USD.{OTHER_ISSUER}", "1", "1"))

    @pytest.mark.parametrize("amount_in", ["0", "-1", "0.0000001"])
    def test_bad_amount_in(self, amount_in: str) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_swap(SwapRequest("XRP", USD, amount_in, "1"))
        assert exc_info.value.field == "amount_in"

    def test_zero_amount_out(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_swap(SwapRequest("XRP", USD, "1", "0"))
        assert exc_info.value.field == "amount_out_min"

    def test_too_many_digits(self) -> None:
        with pytest.raises(ValidationError):
            validate_swap(SwapRequest("XRP", USD, "1", "1.2345678901234567"))

    @pytest.mark.parametrize(
        "request_",
        [
            SwapRequest("XRP", USD, "1e999999", "1"),
            SwapRequest("XRP", USD, "1", "1E+1000000"),
        ],
    )
    def test_extreme_exponent_is_a_validation_error(self, request_: SwapRequest) -> None:
        with pytest.raises(ValidationError):
            validate_swap(request_)


class TestBuildPayment:
    def test_xrp_to_usd(self) -> None:
        tx = build_payment(ACCOUNT, SwapRequest("XRP", USD, "1", "100"), 7, 12)
        assert tx.transaction_type is TransactionType.PAYMENT
        assert tx.account == ACCOUNT
        assert tx.destination == ACCOUNT
        assert tx.sequence == 7
        assert tx.fee == 12
        assert tx.send_max == NativeAmount(1_000_000)
        assert tx.amount == IssuedAmount(Decimal("100"), "USD", ISSUER)
        assert tx.flags == 0
        assert tx.deliver_min is None
        assert tx.transaction_signature is None

    def test_usd_to_xrp(self) -> None:
        tx = build_payment(ACCOUNT, SwapRequest(USD, "XRP", "5", "2.5"), 7, 12)
        assert tx.amount == NativeAmount(2_500_000)
        assert tx.send_max == IssuedAmount(Decimal("5"), "USD", ISSUER)

    def test_partial(self) -> None:
        tx = build_payment(ACCOUNT, SwapRequest("XRP", USD, "1", "100", partial=True), 7, 12)
        assert tx.flags & TF_PARTIAL_PAYMENT
        assert tx.deliver_min == tx.amount

    def test_last_ledger_sequence(self) -> None:
        tx = build_payment(
            ACCOUNT, SwapRequest("XRP", USD, "1", "100"), 7, 12, last_ledger_sequence=1020
        )
        assert tx.last_ledger_sequence == 1020

    def test_unresolved_issuer(self) -> None:
        with pytest.raises(ValidationError):
            build_payment(ACCOUNT, SwapRequest("XRP", ISSUER, "1", "100"), 7, 12)

    @pytest.mark.parametrize("sequence, fee", [(-1, 12), (2**32, 12), (7, 0), (7, -5)])
    def test_bad_network_fields(self, sequence: int, fee: int) -> None:
        with pytest.raises(ValidationError):
            build_payment(ACCOUNT, SwapRequest("XRP", USD, "1", "100"), sequence, fee)

    def test_bad_account(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            build_payment("rBogus", SwapRequest("XRP", USD, "1", "100"), 7, 12)
        assert exc_info.value.field == "account"


class TestBuildTrustSet:
    def test_default_limit(self) -> None:
        tx = build_trust_set(ACCOUNT, TrustLineRequest(ISSUER, currency="USD"), 3, 12)
        assert tx.transaction_type is TransactionType.TRUST_SET
        assert tx.limit_amount == IssuedAmount(Decimal("1000000000"), "USD", ISSUER)
        assert tx.destination is None
        assert tx.amount is None

    def test_explicit_limit(self) -> None:
        tx = build_trust_set(ACCOUNT, TrustLineRequest(ISSUER, "250.5", "USD"), 3, 12)
        assert tx.limit_amount == IssuedAmount(Decimal("250.5"), "USD", ISSUER)

    def test_no_ripple(self) -> None:
        tx = build_trust_set(
            ACCOUNT, TrustLineRequest(ISSUER, currency="USD", no_ripple=True), 3, 12
        )
        assert tx.flags & TF_SET_NO_RIPPLE

    def test_unresolved_currency(self) -> None:
        with pytest.raises(ValidationError):
            build_trust_set(ACCOUNT, TrustLineRequest(ISSUER), 3, 12)

    def test_self_issuer(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            build_trust_set(ACCOUNT, TrustLineRequest(ACCOUNT, currency="USD"), 3, 12)
        assert exc_info.value.field == "token_address"

    def test_negative_limit(self) -> None:
        with pytest.raises(ValidationError):
            build_trust_set(ACCOUNT, TrustLineRequest(ISSUER, "-1", "USD"), 3, 12)

    def test_self_issuer_caught_by_validation(self) -> None:
        request = TrustLineRequest(ACCOUNT, currency="USD")
        validate_trust_line(request)
        with pytest.raises(ValidationError) as exc_info:
            validate_trust_line(request, ACCOUNT)
        assert exc_info.value.field == "token_address"


class TestBuildSend:
    def test_native(self) -> None:
        tx = build_send(ACCOUNT, SendRequest(DESTINATION, "XRP", "2.5", 42), 7, 12)
        assert tx.transaction_type is TransactionType.PAYMENT
        assert tx.account == ACCOUNT
        assert tx.destination == DESTINATION
        assert tx.destination_tag == 42
        assert tx.amount == NativeAmount(2_500_000)
        assert tx.send_max is None
        assert tx.deliver_min is None
        assert tx.flags == 0

    def test_issued(self) -> None:
        tx = build_send(ACCOUNT, SendRequest(DESTINATION, USD, "10"), 7, 12,
                        last_ledger_sequence=1020)
        assert tx.amount == IssuedAmount(Decimal("10"), "USD", ISSUER)
        assert tx.destination_tag is None
        assert tx.last_ledger_sequence == 1020

    def test_unresolved_issuer(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            build_send(ACCOUNT, SendRequest(DESTINATION, ISSUER, "10"), 7, 12)
        assert exc_info.value.field == "token"

    def test_self_destination(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_send(SendRequest(ACCOUNT, "XRP", "1"), ACCOUNT)
        assert exc_info.value.field == "destination"

    @pytest.mark.parametrize(
        "request_, field",
        [
            (SendRequest("rNotAnAddress", "XRP", "1"), "destination"),
            (SendRequest(DESTINATION, "XRP", "1", -1), "destination_tag"),
            (SendRequest(DESTINATION, "XRP", "1", 2**32), "destination_tag"),
            (SendRequest(DESTINATION, "XRP", "0"), "amount"),
            (SendRequest(DESTINATION, "USD.rNotAnAddress", "1"), "token"),
        ],
    )
    def test_invalid(self, request_: SendRequest, field: str) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_send(request_, ACCOUNT)
        assert exc_info.value.field == field
