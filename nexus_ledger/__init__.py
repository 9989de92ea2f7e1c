"""
XRPL transaction client: key handling, canonical encoding, ledger reads,
and a linear build/sign/submit pipeline for swaps, payments, and trust
lines.

Public API:

    Keys and addresses (no I/O):
        - ``derive_keypair()`` / ``generate_seed()``: family seed to key pair.
        - ``Wallet``: local signer; zeroes its private key on ``close()``.
        - ``encode_classic_address()`` / ``decode_classic_address()``.

    Encoding (no I/O):
        - ``encode_for_signing()`` / ``encode_for_submission()`` / ``decode()``.
        - ``transaction_id()``: hash of final-encoded bytes.
        - ``decode_response()``: submission result to OperationResponse.

    Building (no I/O):
        - ``build_payment()``: swap as a Payment to self.
        - ``build_trust_set()``: TrustSet toward an issuer.
        - ``build_send()``: Payment to another account.

    Network:
        - ``LedgerReader``: account, trust line, currency, fee, tx reads.
        - ``TransactionPipeline``: swap / send / create_trust_line end to end.
        - ``JsonRpcClient`` over an injectable ``JsonRpcTransport``.

    Protocols (for dependency injection):
        - ``Signer``: secrets boundary.
        - ``SubmissionClient``: submit blob, query tx status.
"""

from nexus_ledger.addresscodec import (
    decode_classic_address,
    encode_classic_address,
    is_valid_classic_address,
)
from nexus_ledger.amounts import CurrencyAmount, IssuedAmount, NativeAmount
from nexus_ledger.builder import build_payment, build_send, build_trust_set
from nexus_ledger.client import SubmissionClient
from nexus_ledger.codec import (
    decode,
    decode_response,
    encode_for_signing,
    encode_for_submission,
    transaction_id,
)
from nexus_ledger.config import LedgerConfig, load_seed_from_env
from nexus_ledger.errors import (
    AccountNotFound,
    EncodingError,
    ErrorClass,
    InvalidSeed,
    LedgerError,
    LedgerTimeoutError,
    MalformedResponse,
    SigningError,
    SubmissionRejected,
    TransportError,
    ValidationError,
    classify_engine_result,
)
from nexus_ledger.jsonrpc_client import JsonRpcClient
from nexus_ledger.keys import KeyPair, derive_keypair, generate_seed
from nexus_ledger.log import configure_logging
from nexus_ledger.models import (
    AccountInfo,
    Algorithm,
    CurrencySets,
    FeeInfo,
    FeeStrategy,
    FulfillmentDetails,
    OperationResponse,
    SendRequest,
    SubmitResult,
    SwapRequest,
    TransactionObject,
    TransactionType,
    TrustLine,
    TrustLineRequest,
    TxStatusResult,
)
from nexus_ledger.pipeline import PipelineState, TransactionPipeline
from nexus_ledger.reader import LedgerReader
from nexus_ledger.sequence import SequenceCoordinator
from nexus_ledger.signer import Signer, Wallet
from nexus_ledger.transport import HttpxTransport, JsonRpcTransport

__all__ = [
    "AccountInfo",
    "AccountNotFound",
    "Algorithm",
    "CurrencyAmount",
    "CurrencySets",
    "EncodingError",
    "ErrorClass",
    "FeeInfo",
    "FeeStrategy",
    "FulfillmentDetails",
    "HttpxTransport",
    "InvalidSeed",
    "IssuedAmount",
    "JsonRpcClient",
    "JsonRpcTransport",
    "KeyPair",
    "LedgerConfig",
    "LedgerError",
    "LedgerReader",
    "LedgerTimeoutError",
    "MalformedResponse",
    "NativeAmount",
    "OperationResponse",
    "PipelineState",
    "SendRequest",
    "SequenceCoordinator",
    "Signer",
    "SigningError",
    "SubmissionClient",
    "SubmissionRejected",
    "SubmitResult",
    "SwapRequest",
    "TransactionObject",
    "TransactionPipeline",
    "TransactionType",
    "TransportError",
    "TrustLine",
    "TrustLineRequest",
    "TxStatusResult",
    "ValidationError",
    "Wallet",
    "build_payment",
    "build_send",
    "build_trust_set",
    "classify_engine_result",
    "configure_logging",
    "decode",
    "decode_classic_address",
    "decode_response",
    "derive_keypair",
    "encode_classic_address",
    "encode_for_signing",
    "encode_for_submission",
    "generate_seed",
    "is_valid_classic_address",
    "load_seed_from_env",
    "transaction_id",
]
