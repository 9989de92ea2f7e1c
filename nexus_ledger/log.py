"""
Logging setup with secret redaction.

Modules log through ``logging.getLogger(__name__)``. ``configure_logging``
attaches a handler whose filter masks anything shaped like a family seed
or a raw private key, so a stray f-string can't leak key material.
"""

from __future__ import annotations

import logging
import re
import sys

# Family seeds: "s" + 28 base58 chars (secp256k1) or "sEd" + 28 (ed25519).
_SEED_RE = re.compile(r"\bs(?:Ed)?[rpshnaf39wBUDNEGHJKLM4PQRST7VWXYZ2bcdeCg65jkm8oFqi1tuvAxyz]{28}\b")
# 32-byte private keys as hex, optionally "00"/"ED" prefixed. Transaction
# hashes share the 64-hex shape, so only prefixed 66-char keys are masked.
_PRIVATE_HEX_RE = re.compile(r"\b(?:00|ED|ed)[0-9A-Fa-f]{64}\b")

REDACTED = "[REDACTED]"


def redact(text: str) -> str:
    """Mask seed-like and private-key-like substrings."""
    return _PRIVATE_HEX_RE.sub(REDACTED, _SEED_RE.sub(REDACTED, text))


class RedactingFilter(logging.Filter):
    """Rewrites each record's message with ``redact`` before formatting."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        cleaned = redact(message)
        if cleaned != message:
            record.msg = cleaned
            record.args = None
        return True


def configure_logging(level: int | str = logging.INFO) -> logging.Handler:
    """Send ``nexus_ledger`` logs to stdout through the redacting filter."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    )
    handler.addFilter(RedactingFilter())

    package_logger = logging.getLogger("nexus_ledger")
    package_logger.addHandler(handler)
    package_logger.setLevel(level)

    # Quiet noisy third-party loggers
    for name in ("httpcore", "httpx"):
        logging.getLogger(name).setLevel(logging.WARNING)
    return handler
