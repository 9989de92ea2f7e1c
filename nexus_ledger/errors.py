"""
Error taxonomy and XRPL engine-result classification.

Every failure surfaced by this package derives from ``LedgerError``.
Messages never carry seeds or private key material, not even in
``detail`` fields.

XRPL engine result prefixes:
    - tes: success (tesSUCCESS)
    - tec: claimed cost (tecPATH_DRY, tecUNFUNDED_PAYMENT), included but failed
    - tef: local failure (tefPAST_SEQ, tefMAX_LEDGER), not forwarded
    - tem: malformed (temBAD_FEE, temREDUNDANT), will never succeed
    - ter: retry (terQUEUED, terPRE_SEQ), may succeed later
    - tel: local error (telINSUF_FEE_P), node refused to relay

Reference:
    https://xrpl.org/docs/references/protocol/transactions/transaction-results
"""

from __future__ import annotations

from enum import StrEnum


class LedgerError(Exception):
    """Base class for all nexus_ledger errors.

    Attributes:
        blob_hex: Final-encoded bytes of the transaction in flight when the
            failure came after final encoding, else None. Safe to resubmit
            verbatim.
    """

    blob_hex: str | None = None


class InvalidSeed(LedgerError):
    """The secret seed failed format or checksum validation."""

    def __init__(self, reason: str = "seed failed checksum or format validation") -> None:
        super().__init__(reason)
        self.reason = reason


class ValidationError(LedgerError):
    """A request failed pre-flight checks.

    Attributes:
        field: Name of the offending request field.
        reason: Human-readable description of the violation.
    """

    def __init__(self, field: str, reason: str) -> None:
        super().__init__(f"{field}: {reason}")
        self.field = field
        self.reason = reason


class AccountNotFound(LedgerError):
    """The address is unknown to the network (rippled ``actNotFound``)."""

    def __init__(self, address: str) -> None:
        super().__init__(f"account not found: {address}")
        self.address = address


class TransportError(LedgerError):
    """Network-level failure: connection refused, TLS, HTTP status."""


class LedgerTimeoutError(TransportError):
    """A network call exceeded its timeout."""


class MalformedResponse(LedgerError):
    """The collaborator returned a response of an unexpected shape."""


class EncodingError(LedgerError):
    """Canonical serialization could not be produced or parsed."""


class SigningError(LedgerError):
    """Key material or signature algorithm failure."""


class ErrorClass(StrEnum):
    """How a caller should react to an engine result."""

    SUCCESS = "SUCCESS"
    RETRY = "RETRY"  # same bytes may succeed later
    REBUILD = "REBUILD"  # needs a fresh sequence and a new Built state
    TERMINAL = "TERMINAL"  # will not succeed; surface verbatim
    UNKNOWN = "UNKNOWN"


class SubmissionRejected(LedgerError):
    """The network answered, but rejected the transaction.

    Attributes:
        code: Engine result code (e.g. "terPRE_SEQ", "tecPATH_DRY").
        detail: Engine result message from the node, if any.
        tx_hash: Transaction id, if the node computed one.
        classification: ErrorClass for the code.
    """

    def __init__(
        self,
        code: str,
        detail: str | None = None,
        tx_hash: str | None = None,
    ) -> None:
        message = f"transaction rejected: {code}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)
        self.code = code
        self.detail = detail
        self.tx_hash = tx_hash
        self.classification = classify_engine_result(code)

    @property
    def needs_rebuild(self) -> bool:
        """True when resubmitting requires a freshly fetched sequence."""
        return self.classification is ErrorClass.REBUILD


# ---------------------------------------------------------------------------
# Engine result → ErrorClass
# ---------------------------------------------------------------------------

# Codes that mean the Sequence / LastLedgerSequence no longer fits the
# account state. The transaction must be rebuilt, never resubmitted.
_REBUILD_CODES = frozenset({
    "tefPAST_SEQ",
    "terPRE_SEQ",
    "tefMAX_LEDGER",
})

# Coarse prefix-based mapping. Checked after the exact-code table.
_PREFIX_MAP: dict[str, ErrorClass] = {
    "tem": ErrorClass.TERMINAL,
    "tef": ErrorClass.TERMINAL,
    "tec": ErrorClass.TERMINAL,
    "tel": ErrorClass.RETRY,
    "ter": ErrorClass.RETRY,
}


def classify_engine_result(engine_result: str | None) -> ErrorClass:
    """Map an XRPL engine result code to an ErrorClass.

    Args:
        engine_result: XRPL engine result string (e.g. "tesSUCCESS",
            "temBAD_FEE"). None means the engine never responded.

    Returns:
        ErrorClass. UNKNOWN for unrecognized codes or None.
    """
    if engine_result is None:
        return ErrorClass.UNKNOWN
    if engine_result == "tesSUCCESS":
        return ErrorClass.SUCCESS
    if engine_result in _REBUILD_CODES:
        return ErrorClass.REBUILD

    for prefix, code in _PREFIX_MAP.items():
        if engine_result.startswith(prefix):
            return code

    return ErrorClass.UNKNOWN


def is_accepted_result(engine_result: str) -> bool:
    """Whether the node took the transaction for processing.

    ``tesSUCCESS`` and ``terQUEUED`` mean the transaction entered the
    open ledger or the queue. Everything else is a rejection.
    """
    return engine_result in ("tesSUCCESS", "terQUEUED")
