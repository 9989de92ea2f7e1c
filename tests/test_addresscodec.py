"""
Tests for the base58check address and seed codec.

Test plan:
- Classic address: known account id round trip, genesis address decodes
  to 20 bytes, bad checksum / wrong prefix / empty rejected with the
  field name, wrong-length account id refused on encode
- Seeds: secp256k1 and ed25519 prefixes, round trip, bad checksum and
  unknown prefix raise InvalidSeed without echoing the seed
"""

import pytest

from nexus_ledger.addresscodec import (
    decode_classic_address,
    decode_seed,
    encode_classic_address,
    encode_seed,
    is_valid_classic_address,
)
from nexus_ledger.errors import InvalidSeed, ValidationError
from nexus_ledger.models import Algorithm

GENESIS_ADDRESS = "rHb9CJAWyB4rj91VRWn96DkukG4bwdtyTh"
GENESIS_SEED = "snoPBrXtMeMyMHUVTgbuqAfg1SUTb"
ED25519_SEED = "sEdSKaCy2JT7JaM7v95H9SxkhP9wS2r"


class TestClassicAddress:
    def test_round_trip(self) -> None:
        account_id = bytes(range(20))
        address = encode_classic_address(account_id)
        assert address.startswith("r")
        assert decode_classic_address(address) == account_id

    def test_zero_account(self) -> None:
        assert encode_classic_address(bytes(20)) == "rrrrrrrrrrrrrrrrrrrrrhoLvTp"

    def test_genesis_decodes(self) -> None:
        assert len(decode_classic_address(GENESIS_ADDRESS)) == 20
        assert is_valid_classic_address(GENESIS_ADDRESS)

    def test_bad_checksum(self) -> None:
        tampered = GENESIS_ADDRESS[:-1] + ("h" if GENESIS_ADDRESS[-1] != "h" else "j")
        with pytest.raises(ValidationError) as exc_info:
            decode_classic_address(tampered, "token_address")
        assert exc_info.value.field == "token_address"

    def test_wrong_leading_char(self) -> None:
        with pytest.raises(ValidationError):
            decode_classic_address("x" + GENESIS_ADDRESS[1:])

    def test_empty(self) -> None:
        assert is_valid_classic_address("") is False

    def test_seed_is_not_an_address(self) -> None:
        assert is_valid_classic_address(GENESIS_SEED) is False

    def test_encode_wrong_length(self) -> None:
        with pytest.raises(ValueError):
            encode_classic_address(bytes(19))


class TestSeeds:
    def test_secp256k1_seed_decodes(self) -> None:
        entropy, algorithm = decode_seed(GENESIS_SEED)
        assert len(entropy) == 16
        assert algorithm is Algorithm.SECP256K1

    def test_ed25519_seed_decodes(self) -> None:
        entropy, algorithm = decode_seed(ED25519_SEED)
        assert len(entropy) == 16
        assert algorithm is Algorithm.ED25519

    def test_round_trip(self) -> None:
        entropy, _ = decode_seed(GENESIS_SEED)
        assert encode_seed(entropy, Algorithm.SECP256K1) == GENESIS_SEED

    def test_ed25519_prefix(self) -> None:
        assert encode_seed(bytes(16), Algorithm.ED25519).startswith("sEd")

    def test_bad_checksum_does_not_echo_seed(self) -> None:
        tampered = GENESIS_SEED[:-1] + ("b" if GENESIS_SEED[-1] != "b" else "c")
        with pytest.raises(InvalidSeed) as exc_info:
            decode_seed(tampered)
        assert tampered not in str(exc_info.value)

    def test_address_is_not_a_seed(self) -> None:
        with pytest.raises(InvalidSeed):
            decode_seed(GENESIS_ADDRESS)

    def test_arbitrary_s_string(self) -> None:
        with pytest.raises(InvalidSeed):
            decode_seed(encode_classic_address(bytes(20)).replace("r", "s", 1))

    def test_entropy_length_checked(self) -> None:
        with pytest.raises(ValueError):
            encode_seed(bytes(15), Algorithm.SECP256K1)
