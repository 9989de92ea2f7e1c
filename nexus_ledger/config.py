"""
Runtime configuration.

``LedgerConfig`` is immutable and validated on construction. It never
holds the secret seed; ``load_seed_from_env`` reads that separately so
the config object stays safe to log.

Environment variables (a ``.env`` file is honoured via python-dotenv):

    XRPL_ENDPOINT            JSON-RPC URL
    XRPL_ALGORITHM           secp256k1 | ed25519
    XRPL_FEE_STRATEGY        fixed | network-suggested
    XRPL_FIXED_FEE           drops, used with the fixed strategy
    XRPL_TIMEOUT             seconds per network call
    XRPL_LAST_LEDGER_OFFSET  ledgers until expiry, 0 disables
    XRPL_SEED                family seed (load_seed_from_env only)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from urllib.parse import urlparse

from dotenv import load_dotenv

from nexus_ledger.errors import InvalidSeed
from nexus_ledger.models import Algorithm, FeeStrategy

DEFAULT_ENDPOINT = "https://xrplcluster.com/"
DEFAULT_FIXED_FEE = 12
# Fee ceiling: the network-suggested fee is capped here.
MAX_FEE_DROPS = 2_000_000


@dataclass(frozen=True)
class LedgerConfig:
    """Network endpoint, signing defaults, and fee policy."""

    endpoint: str = DEFAULT_ENDPOINT
    algorithm: Algorithm = Algorithm.SECP256K1
    fee_strategy: FeeStrategy = FeeStrategy.FIXED
    fixed_fee_drops: int = DEFAULT_FIXED_FEE
    max_fee_drops: int = MAX_FEE_DROPS
    timeout: float = 30.0
    last_ledger_offset: int = 20

    def __post_init__(self) -> None:
        parsed = urlparse(self.endpoint)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"endpoint must be an http(s) URL, got {self.endpoint!r}")
        object.__setattr__(self, "algorithm", Algorithm(self.algorithm))
        object.__setattr__(self, "fee_strategy", FeeStrategy(self.fee_strategy))
        if self.fixed_fee_drops <= 0:
            raise ValueError("fixed_fee_drops must be positive")
        if self.max_fee_drops < self.fixed_fee_drops:
            raise ValueError("max_fee_drops must be at least fixed_fee_drops")
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")
        if self.last_ledger_offset < 0:
            raise ValueError("last_ledger_offset must not be negative")

    @classmethod
    def from_env(cls, dotenv_path: str | None = None) -> LedgerConfig:
        """Build a config from environment variables, after loading ``.env``."""
        load_dotenv(dotenv_path)
        return cls(
            endpoint=os.getenv("XRPL_ENDPOINT", DEFAULT_ENDPOINT),
            algorithm=Algorithm(os.getenv("XRPL_ALGORITHM", Algorithm.SECP256K1.value)),
            fee_strategy=FeeStrategy(os.getenv("XRPL_FEE_STRATEGY", FeeStrategy.FIXED.value)),
            fixed_fee_drops=int(os.getenv("XRPL_FIXED_FEE", str(DEFAULT_FIXED_FEE))),
            timeout=float(os.getenv("XRPL_TIMEOUT", "30")),
            last_ledger_offset=int(os.getenv("XRPL_LAST_LEDGER_OFFSET", "20")),
        )


def load_seed_from_env(var: str = "XRPL_SEED", dotenv_path: str | None = None) -> str:
    """Read the family seed from the environment.

    Raises:
        InvalidSeed: If the variable is unset or empty.
    """
    load_dotenv(dotenv_path)
    seed = os.getenv(var, "").strip()
    if not seed:
        raise InvalidSeed(f"{var} is not set")
    return seed
