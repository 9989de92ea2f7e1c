"""
XRPL base58check codec for classic addresses and family seeds.

Uses the ``base58`` library with the XRPL dictionary. Checksums are the
first four bytes of a double SHA-256, which ``b58encode_check`` /
``b58decode_check`` handle for us.

Version prefixes:
    - 0x00: classic address (20-byte AccountID)
    - 0x21: secp256k1 family seed (16 bytes of entropy)
    - 0x01 0xE1 0x4B: ed25519 seed (16 bytes of entropy), renders as "sEd..."
"""

from __future__ import annotations

import hashlib

import base58

from nexus_ledger.errors import InvalidSeed, ValidationError
from nexus_ledger.models import Algorithm

XRPL_ALPHABET = b"rpshnaf39wBUDNEGHJKLM4PQRST7VWXYZ2bcdeCg65jkm8oFqi1tuvAxyz"

ACCOUNT_ID_LENGTH = 20
SEED_LENGTH = 16

_ADDRESS_PREFIX = b"\x00"
_SECP256K1_SEED_PREFIX = b"\x21"
_ED25519_SEED_PREFIX = b"\x01\xe1\x4b"


def _encode(prefix: bytes, payload: bytes) -> str:
    return base58.b58encode_check(prefix + payload, alphabet=XRPL_ALPHABET).decode("ascii")


# =========================================================================
# Classic addresses
# =========================================================================


def account_id_from_public_key(public_key: bytes) -> bytes:
    """AccountID = RIPEMD-160(SHA-256(public_key))."""
    sha = hashlib.sha256(public_key).digest()
    return hashlib.new("ripemd160", sha).digest()


def encode_classic_address(account_id: bytes) -> str:
    """Encode a 20-byte AccountID as an r-address."""
    if len(account_id) != ACCOUNT_ID_LENGTH:
        raise ValueError(
            f"account id must be {ACCOUNT_ID_LENGTH} bytes, got {len(account_id)}"
        )
    return _encode(_ADDRESS_PREFIX, account_id)


def decode_classic_address(address: str, field: str = "address") -> bytes:
    """Decode an r-address to its 20-byte AccountID.

    Raises:
        ValidationError: If the checksum, prefix, or length is wrong.
    """
    if not address or not address.startswith("r"):
        raise ValidationError(field, f"not a classic address: {address!r}")
    try:
        raw = base58.b58decode_check(address, alphabet=XRPL_ALPHABET)
    except ValueError:
        raise ValidationError(field, f"checksum mismatch in {address!r}") from None
    if len(raw) != ACCOUNT_ID_LENGTH + 1 or raw[:1] != _ADDRESS_PREFIX:
        raise ValidationError(field, f"not a classic address: {address!r}")
    return raw[1:]


def is_valid_classic_address(address: str) -> bool:
    try:
        decode_classic_address(address)
    except ValidationError:
        return False
    return True


# =========================================================================
# Seeds
# =========================================================================


def encode_seed(entropy: bytes, algorithm: Algorithm) -> str:
    """Encode 16 bytes of entropy as a family seed string."""
    if len(entropy) != SEED_LENGTH:
        raise ValueError(f"seed entropy must be {SEED_LENGTH} bytes")
    if algorithm is Algorithm.ED25519:
        return _encode(_ED25519_SEED_PREFIX, entropy)
    return _encode(_SECP256K1_SEED_PREFIX, entropy)


def decode_seed(seed: str) -> tuple[bytes, Algorithm]:
    """Decode a family seed into (entropy, algorithm).

    The seed itself is never echoed in the raised error.

    Raises:
        InvalidSeed: On bad alphabet, checksum, prefix, or length.
    """
    if not isinstance(seed, str) or not seed.startswith("s"):
        raise InvalidSeed("seed must be a base58 string starting with 's'")
    try:
        raw = base58.b58decode_check(seed, alphabet=XRPL_ALPHABET)
    except ValueError:
        raise InvalidSeed("seed checksum or alphabet is invalid") from None

    if len(raw) == len(_ED25519_SEED_PREFIX) + SEED_LENGTH and raw.startswith(
        _ED25519_SEED_PREFIX
    ):
        return raw[len(_ED25519_SEED_PREFIX):], Algorithm.ED25519
    if len(raw) == len(_SECP256K1_SEED_PREFIX) + SEED_LENGTH and raw.startswith(
        _SECP256K1_SEED_PREFIX
    ):
        return raw[len(_SECP256K1_SEED_PREFIX):], Algorithm.SECP256K1
    raise InvalidSeed("seed has an unknown version prefix or length")
