"""
Signer protocol: the secrets boundary.

The pipeline never touches private keys. It hands the signer the exact
bytes to sign and gets back a signature. The signer also exposes a
``key_id`` (the public key hex) that is safe to log and record.

Concrete implementations:
    - Wallet (local key pair derived from a family seed)
    - FakeSigner (tests)
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from nexus_ledger import keys
from nexus_ledger.models import Algorithm


@runtime_checkable
class Signer(Protocol):
    """Interface for signing transaction bytes.

    Properties:
        account: The XRPL r-address associated with this signer.
        public_key: 33-byte public key placed in SigningPubKey.
        key_id: Public identifier of the signing key (safe for logging).
    """

    @property
    def account(self) -> str:
        ...

    @property
    def public_key(self) -> bytes:
        ...

    @property
    def key_id(self) -> str:
        ...

    def sign_bytes(self, message: bytes) -> bytes:
        """Sign ``message`` and return the raw signature.

        Raises:
            SigningError: If key material is unavailable or unusable.
        """
        ...


class Wallet:
    """A local signer holding one derived key pair.

    The seed is consumed during construction and not retained. Use the
    wallet as a context manager (or call ``close()``) to zero the private
    key when done.

    Example:
        with Wallet.from_seed(seed) as wallet:
            response = await pipeline_for(wallet).swap(request)
    """

    def __init__(self, pair: keys.KeyPair) -> None:
        self._pair = pair
        self._account = keys.address_of(pair)

    @classmethod
    def from_seed(cls, seed: str) -> Wallet:
        """Derive a wallet from a family seed.

        Raises:
            InvalidSeed: If the seed fails checksum or format validation.
        """
        return cls(keys.derive_keypair(seed))

    @property
    def account(self) -> str:
        return self._account

    @property
    def public_key(self) -> bytes:
        return self._pair.public_key

    @property
    def key_id(self) -> str:
        return self._pair.public_key.hex().upper()

    @property
    def algorithm(self) -> Algorithm:
        return self._pair.algorithm

    @property
    def closed(self) -> bool:
        return self._pair.released

    def sign_bytes(self, message: bytes) -> bytes:
        return keys.sign(self._pair, message)

    def sign_message(self, message: str) -> str:
        return keys.sign_message(self._pair, message)

    def verify_message(self, message: str, signature_hex: str) -> bool:
        return keys.verify_message(self._pair.public_key, message, signature_hex)

    def close(self) -> None:
        """Zero the private key. Later signing raises SigningError."""
        self._pair.release()

    def __enter__(self) -> Wallet:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Wallet(account={self._account!r}, key_id={self.key_id!r})"
