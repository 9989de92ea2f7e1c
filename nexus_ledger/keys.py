"""
Key derivation, addresses, and signatures for XRPL accounts.

Derivation follows the XRPL family-seed rules:

    ed25519:
        private = SHA512Half(entropy)
        public  = 0xED || Ed25519 public key (32 bytes)

    secp256k1:
        root         = first SHA512Half(entropy || i) in (0, n)
        intermediate = first SHA512Half(root_pub || 0x00000000 || j) in (0, n)
        private      = (root + intermediate) mod n
        public       = compressed point (33 bytes)

Signatures:
    - ed25519 signs the message bytes directly; signatures are deterministic.
    - secp256k1 signs SHA512Half(message) with an RFC 6979 nonce,
      DER-encoded with canonical low-S.

Private key bytes live in a ``bytearray`` owned by ``KeyPair``. Use the
pair as a context manager (or call ``release()``) to overwrite them with
zeros as soon as signing is done.
"""

from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass, field

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat
from ecdsa import SECP256k1, BadSignatureError, MalformedPointError, SigningKey, VerifyingKey
from ecdsa.der import UnexpectedDER
from ecdsa.util import sigdecode_der, sigencode_der_canonize

from nexus_ledger.addresscodec import (
    account_id_from_public_key,
    decode_seed,
    encode_seed,
    encode_classic_address,
)
from nexus_ledger.errors import SigningError
from nexus_ledger.models import Algorithm

_ED_PREFIX = b"\xed"
_SECP256K1_ORDER = SECP256k1.order


def sha512_half(data: bytes) -> bytes:
    """First 32 bytes of SHA-512."""
    return hashlib.sha512(data).digest()[:32]


# =========================================================================
# KeyPair
# =========================================================================


@dataclass(frozen=True)
class KeyPair:
    """A derived key pair. Private bytes are hidden from repr and compare.

    Attributes:
        public_key: 33-byte public key (0xED-prefixed for ed25519).
        private_key: 32-byte private scalar / seed, zeroed by release().
        algorithm: Signing algorithm.
    """

    public_key: bytes
    private_key: bytearray = field(repr=False, compare=False)
    algorithm: Algorithm = Algorithm.SECP256K1

    @property
    def released(self) -> bool:
        return not any(self.private_key)

    def release(self) -> None:
        """Overwrite the private key bytes with zeros."""
        for i in range(len(self.private_key)):
            self.private_key[i] = 0

    def __enter__(self) -> KeyPair:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()

    def _secret(self) -> bytes:
        if self.released:
            raise SigningError("key pair has been released")
        return bytes(self.private_key)


# =========================================================================
# Derivation
# =========================================================================


def _derive_scalar(data: bytes, phase: int | None = None) -> int:
    prefix = data if phase is None else data + phase.to_bytes(4, "big")
    for counter in range(2**32):
        candidate = int.from_bytes(
            sha512_half(prefix + counter.to_bytes(4, "big")), "big"
        )
        if 0 < candidate < _SECP256K1_ORDER:
            return candidate
    raise SigningError("could not derive a valid secp256k1 scalar")


def _compressed_public_key(secret_exponent: int) -> bytes:
    signing_key = SigningKey.from_secret_exponent(secret_exponent, curve=SECP256k1)
    return signing_key.get_verifying_key().to_string("compressed")


def _derive_secp256k1(entropy: bytes) -> KeyPair:
    root = _derive_scalar(entropy)
    intermediate = _derive_scalar(_compressed_public_key(root), phase=0)
    secret = (root + intermediate) % _SECP256K1_ORDER
    return KeyPair(
        public_key=_compressed_public_key(secret),
        private_key=bytearray(secret.to_bytes(32, "big")),
        algorithm=Algorithm.SECP256K1,
    )


def _derive_ed25519(entropy: bytes) -> KeyPair:
    private = bytearray(sha512_half(entropy))
    raw_public = (
        Ed25519PrivateKey.from_private_bytes(bytes(private))
        .public_key()
        .public_bytes(Encoding.Raw, PublicFormat.Raw)
    )
    return KeyPair(
        public_key=_ED_PREFIX + raw_public,
        private_key=private,
        algorithm=Algorithm.ED25519,
    )


def derive_keypair(seed: str) -> KeyPair:
    """Derive the key pair for a family seed. Same seed, same pair.

    The seed prefix selects the algorithm ("sEd..." is ed25519).

    Raises:
        InvalidSeed: If the seed fails checksum or format validation.
    """
    entropy, algorithm = decode_seed(seed)
    if algorithm is Algorithm.ED25519:
        return _derive_ed25519(entropy)
    return _derive_secp256k1(entropy)


def address_of(pair: KeyPair) -> str:
    """Classic r-address for a key pair."""
    return address_from_public_key(pair.public_key)


def address_from_public_key(public_key: bytes) -> str:
    return encode_classic_address(account_id_from_public_key(public_key))


def algorithm_of(public_key: bytes) -> Algorithm:
    """Infer the algorithm from a 33-byte public key."""
    if len(public_key) == 33 and public_key[:1] == _ED_PREFIX:
        return Algorithm.ED25519
    if len(public_key) == 33 and public_key[:1] in (b"\x02", b"\x03"):
        return Algorithm.SECP256K1
    raise SigningError("unrecognised public key format")


# =========================================================================
# Signing / verification
# =========================================================================


def sign(pair: KeyPair, message: bytes) -> bytes:
    """Sign ``message`` with the pair's private key.

    Raises:
        SigningError: If the pair was released or the key is unusable.
    """
    secret = pair._secret()
    try:
        if pair.algorithm is Algorithm.ED25519:
            return Ed25519PrivateKey.from_private_bytes(secret).sign(message)
        signing_key = SigningKey.from_string(secret, curve=SECP256k1)
        return signing_key.sign_digest_deterministic(
            sha512_half(message),
            hashfunc=hashlib.sha256,
            sigencode=sigencode_der_canonize,
        )
    except (ValueError, MalformedPointError) as exc:
        raise SigningError(f"{pair.algorithm} signing failed: {type(exc).__name__}") from None


def verify(public_key: bytes, message: bytes, signature: bytes) -> bool:
    """Check a signature against a 33-byte XRPL public key."""
    try:
        algorithm = algorithm_of(public_key)
    except SigningError:
        return False

    if algorithm is Algorithm.ED25519:
        try:
            Ed25519PublicKey.from_public_bytes(public_key[1:]).verify(signature, message)
        except (InvalidSignature, ValueError):
            return False
        return True

    try:
        verifying_key = VerifyingKey.from_string(public_key, curve=SECP256k1)
        return verifying_key.verify_digest(
            signature, sha512_half(message), sigdecode=sigdecode_der
        )
    except (BadSignatureError, UnexpectedDER, MalformedPointError, ValueError):
        return False


def sign_message(pair: KeyPair, message: str) -> str:
    """Sign UTF-8 text; returns the signature as upper-case hex."""
    return sign(pair, message.encode("utf-8")).hex().upper()


def verify_message(public_key: bytes, message: str, signature_hex: str) -> bool:
    try:
        signature = bytes.fromhex(signature_hex)
    except ValueError:
        return False
    return verify(public_key, message.encode("utf-8"), signature)


def generate_seed(algorithm: Algorithm = Algorithm.SECP256K1) -> str:
    """A new random family seed for ``algorithm``."""
    return encode_seed(secrets.token_bytes(16), algorithm)
