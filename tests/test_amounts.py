"""
Tests for amount parsing and wire encoding.

Test plan:
- xrp_to_drops: whole and fractional XRP, sub-drop precision rejected,
  negative rejected, ceiling enforced, extreme exponents refused
- parse_issued_value: 16 significant digits accepted, 17 rejected,
  exponent range enforced, extreme exponents are ValidationErrors
- normalize_currency: ISO codes, XRP forbidden, hex codes, standard-form
  hex collapses to its 3-char code
- encode_amount: native layout, 1 USD known bytes, zero issued value,
  non-finite and out-of-range issued values refused
- decode_amount: reads back what encode_amount wrote
"""

from decimal import Decimal

import pytest

from nexus_ledger.addresscodec import encode_classic_address
from nexus_ledger.amounts import (
    MAX_DROPS,
    IssuedAmount,
    NativeAmount,
    currency_to_bytes,
    decode_amount,
    drops_to_xrp,
    encode_amount,
    normalize_currency,
    parse_issued_value,
    xrp_to_drops,
)
from nexus_ledger.errors import EncodingError, ValidationError

ISSUER = encode_classic_address(bytes.fromhex("11" * 20))


class TestXrpToDrops:
    def test_one_xrp(self) -> None:
        assert xrp_to_drops("1") == 1_000_000

    def test_fractional(self) -> None:
        assert xrp_to_drops("0.000001") == 1

    def test_finer_than_a_drop(self) -> None:
        with pytest.raises(ValidationError):
            xrp_to_drops("0.0000001")

    def test_negative(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            xrp_to_drops("-1", "amount_in")
        assert exc_info.value.field == "amount_in"

    def test_ceiling(self) -> None:
        assert xrp_to_drops("100000000000") == MAX_DROPS
        with pytest.raises(ValidationError):
            xrp_to_drops("100000000000.000001")

    @pytest.mark.parametrize("value", ["", "abc", "NaN", "Infinity"])
    def test_not_a_number(self, value: str) -> None:
        with pytest.raises(ValidationError):
            xrp_to_drops(value)

    @pytest.mark.parametrize("value", ["1e999999", "1E+1000000", "1e-1000000", "0.1e-999999"])
    def test_extreme_exponents(self, value: str) -> None:
        with pytest.raises(ValidationError) as exc_info:
            xrp_to_drops(value, "amount_in")
        assert exc_info.value.field == "amount_in"

    def test_zero_with_large_exponent(self) -> None:
        assert xrp_to_drops("0E+999999") == 0

    def test_many_digits_stay_exact(self) -> None:
        with pytest.raises(ValidationError):
            xrp_to_drops("1." + "0" * 40 + "1")

    def test_drops_to_xrp(self) -> None:
        assert drops_to_xrp(1_500_000) == Decimal("1.5")


class TestParseIssuedValue:
    def test_sixteen_digits_accepted(self) -> None:
        assert parse_issued_value("1234567890123456") == Decimal("1234567890123456")

    def test_seventeen_digits_rejected(self) -> None:
        with pytest.raises(ValidationError):
            parse_issued_value("12345678901234567")

    def test_trailing_zeros_not_significant(self) -> None:
        assert parse_issued_value("100.000000000000000000") == Decimal(100)

    def test_zero(self) -> None:
        assert parse_issued_value("0") == 0

    def test_exponent_too_large(self) -> None:
        with pytest.raises(ValidationError):
            parse_issued_value("1e100")

    def test_exponent_too_small(self) -> None:
        with pytest.raises(ValidationError):
            parse_issued_value("1e-100")

    @pytest.mark.parametrize("value", ["1E+1000000", "1e999999", "1e-1000000"])
    def test_extreme_exponents(self, value: str) -> None:
        with pytest.raises(ValidationError) as exc_info:
            parse_issued_value(value, "amount_out_min")
        assert exc_info.value.field == "amount_out_min"

    def test_range_edges(self) -> None:
        assert parse_issued_value("1e-81") == Decimal("1e-81")
        assert parse_issued_value("9999999999999999e80") == Decimal("9999999999999999e80")
        with pytest.raises(ValidationError):
            parse_issued_value("1e-82")


class TestNormalizeCurrency:
    def test_iso_code(self) -> None:
        assert normalize_currency("USD") == "USD"

    def test_xrp_forbidden(self) -> None:
        with pytest.raises(ValidationError):
            normalize_currency("XRP")

    def test_hex_code_uppercased(self) -> None:
        code = "0158415500000000C1F76FF6ECB0BAC600000000"
        assert normalize_currency(code.lower()) == code

    def test_standard_hex_collapses(self) -> None:
        raw = currency_to_bytes("EUR")
        assert normalize_currency(raw.hex()) == "EUR"

    @pytest.mark.parametrize("code", ["US", "USDT", "", "ZZ Z"])
    def test_malformed(self, code: str) -> None:
        with pytest.raises(ValidationError):
            normalize_currency(code)


class TestEncodeAmount:
    def test_native(self) -> None:
        assert encode_amount(NativeAmount(1_000_000)).hex().upper() == "40000000000F4240"

    def test_native_zero(self) -> None:
        assert encode_amount(NativeAmount(0)).hex().upper() == "4000000000000000"

    def test_native_out_of_range(self) -> None:
        with pytest.raises(EncodingError):
            encode_amount(NativeAmount(MAX_DROPS + 1))

    def test_one_usd(self) -> None:
        encoded = encode_amount(IssuedAmount(Decimal("1"), "USD", ISSUER))
        assert len(encoded) == 48
        assert encoded[:8].hex().upper() == "D4838D7EA4C68000"
        assert encoded[8:28] == bytes(12) + b"USD" + bytes(5)
        assert encoded[28:] == bytes.fromhex("11" * 20)

    @pytest.mark.parametrize("value", ["Infinity", "NaN", "1E+1000000", "1E-1000000"])
    def test_unencodable_issued_value(self, value: str) -> None:
        with pytest.raises(EncodingError):
            encode_amount(IssuedAmount(Decimal(value), "USD", ISSUER))

    def test_scale_independent(self) -> None:
        a = encode_amount(IssuedAmount(Decimal("100"), "USD", ISSUER))
        b = encode_amount(IssuedAmount(Decimal("1E+2"), "USD", ISSUER))
        assert a == b

    def test_zero_issued(self) -> None:
        encoded = encode_amount(IssuedAmount(Decimal(0), "USD", ISSUER))
        assert encoded[:8].hex().upper() == "8000000000000000"


class TestDecodeAmount:
    def test_native(self) -> None:
        amount, offset = decode_amount(encode_amount(NativeAmount(12)), 0)
        assert amount == NativeAmount(12)
        assert offset == 8

    def test_issued(self) -> None:
        original = IssuedAmount(Decimal("0.0125"), "USD", ISSUER)
        amount, offset = decode_amount(encode_amount(original), 0)
        assert amount == original
        assert offset == 48

    def test_truncated(self) -> None:
        with pytest.raises(EncodingError):
            decode_amount(bytes(4), 0)
