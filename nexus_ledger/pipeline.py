"""
Transaction pipeline: build, encode, sign, submit, interpret.

State machine, linear, no branching back:

    BUILT → UNSIGNED_ENCODED → SIGNED → FINAL_ENCODED → SUBMITTED → ACCEPTED | REJECTED

Any failing transition aborts the run and the originating error
propagates. Nothing is ever resubmitted automatically:

    - Transport failure after FINAL_ENCODED: the raised error carries the
      final bytes on ``blob_hex``; the caller may ``submit_blob`` them
      verbatim (duplicate submissions of identical bytes are harmless).
    - Stale sequence (tefPAST_SEQ, terPRE_SEQ): ``SubmissionRejected`` with
      ``needs_rebuild``; the caller starts over from a fresh build.
    - Anything else (tecPATH_DRY, tecUNFUNDED_PAYMENT, tem*): terminal,
      surfaced verbatim.

Sequence numbers are reserved per account through ``SequenceCoordinator``
right after the account_info read; reservations are dropped when a run
fails before its bytes could have reached the network. Every run keeps
its own trace, so runs may overlap on one pipeline.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import StrEnum

from nexus_ledger import codec, keys
from nexus_ledger.builder import (
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
from nexus_ledger.client import SubmissionClient
from nexus_ledger.config import LedgerConfig
from nexus_ledger.errors import (
    LedgerError,
    SigningError,
    SubmissionRejected,
    ValidationError,
)
from nexus_ledger.models import (
    FeeStrategy,
    OperationResponse,
    SendRequest,
    SubmitResult,
    SwapRequest,
    TransactionObject,
    TrustLineRequest,
    TxStatusResult,
)
from nexus_ledger.reader import LedgerReader
from nexus_ledger.sequence import SequenceCoordinator
from nexus_ledger.signer import Signer

logger = logging.getLogger(__name__)


class PipelineState(StrEnum):
    BUILT = "BUILT"
    UNSIGNED_ENCODED = "UNSIGNED_ENCODED"
    SIGNED = "SIGNED"
    FINAL_ENCODED = "FINAL_ENCODED"
    SUBMITTED = "SUBMITTED"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


@dataclass
class PipelineRun:
    """Trace of one pipeline run.

    Attributes:
        states: States visited, in order.
        blob_hex: Final-encoded transaction bytes, once FINAL_ENCODED.
        tx_hash: Transaction id computed from ``blob_hex``.
        sequence: Sequence number the transaction was built with.
    """

    states: list[PipelineState] = field(default_factory=list)
    blob_hex: str | None = None
    tx_hash: str | None = None
    sequence: int | None = None

    @property
    def state(self) -> PipelineState | None:
        return self.states[-1] if self.states else None

    def reached(self, state: PipelineState) -> bool:
        return state in self.states

    def advance(self, state: PipelineState) -> None:
        logger.debug("Pipeline %s -> %s", self.state, state)
        self.states.append(state)


@dataclass(frozen=True)
class NetworkFields:
    """Values read from the network just before building. They go stale."""

    sequence: int
    fee: int
    last_ledger_sequence: int | None = None


class TransactionPipeline:
    """Builds, signs, and submits Payment (swap, send) and TrustSet transactions.

    Args:
        signer: Holds the key material; the pipeline only sees signatures.
        reader: Ledger queries for sequence, fee, and currency lookups.
        submitter: Submission collaborator (usually the reader's JsonRpcClient).
        config: Fee policy and ledger bound. Defaults to LedgerConfig().
        sequences: Shared coordinator when several pipelines use one account.
    """

    def __init__(
        self,
        signer: Signer,
        reader: LedgerReader,
        submitter: SubmissionClient,
        config: LedgerConfig | None = None,
        sequences: SequenceCoordinator | None = None,
    ) -> None:
        self._signer = signer
        self._reader = reader
        self._submitter = submitter
        self._config = config or LedgerConfig()
        self._sequences = sequences or SequenceCoordinator()
        self._last_run: PipelineRun | None = None

        algorithm = getattr(signer, "algorithm", None)
        if algorithm is not None and algorithm != self._config.algorithm:
            logger.warning(
                "Signer uses %s but config expects %s", algorithm, self._config.algorithm
            )

    @property
    def account(self) -> str:
        return self._signer.account

    @property
    def last_run(self) -> PipelineRun | None:
        """Trace of the run started most recently on this pipeline.

        With overlapping runs this may belong to another call; the error a
        run raises carries that run's own ``blob_hex``.
        """
        return self._last_run

    # -----------------------------------------------------------------
    # High-level operations
    # -----------------------------------------------------------------

    async def swap(self, request: SwapRequest) -> OperationResponse:
        """Swap ``token_in`` for ``token_out`` through a Payment to self.

        Raises:
            ValidationError: The request fails pre-flight checks.
            SubmissionRejected: The network rejected the transaction.
            TransportError: A network call failed.
        """
        token_in, token_out = validate_swap(request)
        logger.info(
            "Swap %s %s -> %s %s", request.amount_in, request.token_in,
            request.amount_out_min, request.token_out,
        )
        request = dataclasses.replace(
            request,
            token_in=await self._resolve(token_in, request.token_in, "token_in"),
            token_out=await self._resolve(token_out, request.token_out, "token_out"),
        )
        tx = await self._build_reserved(build_payment, request)
        return await self._run_reserved(tx)

    async def create_trust_line(
        self,
        token_address: str,
        limit: str | None = None,
        *,
        currency: str | None = None,
        no_ripple: bool = False,
    ) -> OperationResponse:
        """Create a trust line toward ``token_address``.

        The currency defaults to the issuer's first receivable currency;
        the limit defaults to "1000000000".
        """
        request = TrustLineRequest(token_address, limit, currency, no_ripple)
        token = validate_trust_line(request, self.account)
        if token.currency is None:
            qualified = await self._resolve(token, token_address, "token_address")
            request = dataclasses.replace(request, currency=qualified.partition(".")[0])

        logger.info("Trust line %s.%s limit %s", request.currency, token_address,
                    request.effective_limit)
        tx = await self._build_reserved(build_trust_set, request)
        return await self._run_reserved(tx)

    async def send(
        self,
        destination: str,
        token: str,
        amount: str,
        *,
        destination_tag: int | None = None,
    ) -> OperationResponse:
        """Pay ``amount`` of ``token`` to ``destination``.

        Raises:
            ValidationError: The request fails pre-flight checks.
            SubmissionRejected: The network rejected the transaction.
            TransportError: A network call failed.
        """
        request = await self._send_request(destination, token, amount, destination_tag)
        tx = await self._build_reserved(build_send, request)
        return await self._run_reserved(tx)

    async def prepare_send(
        self,
        destination: str,
        token: str,
        amount: str,
        *,
        destination_tag: int | None = None,
    ) -> PipelineRun:
        """Build and sign a payment without submitting it.

        The returned run holds the final bytes for ``submit_blob``. Its
        sequence stays reserved; bytes that are never submitted leave a
        gap that a later terPRE_SEQ rejection clears.
        """
        request = await self._send_request(destination, token, amount, destination_tag)
        tx = await self._build_reserved(build_send, request)
        with self._reservation(tx.sequence):
            return self.prepare(tx)

    # -----------------------------------------------------------------
    # State machine
    # -----------------------------------------------------------------

    def prepare(self, tx: TransactionObject) -> PipelineRun:
        """Run BUILT → FINAL_ENCODED without touching the network.

        The signature is verified against the signer's public key before
        the final bytes are produced.

        Raises:
            EncodingError: The transaction cannot be serialized.
            SigningError: Signing failed or the signature does not verify.
        """
        run = self._start_run()
        self._encode(tx, run)
        return run

    async def run(self, tx: TransactionObject) -> OperationResponse:
        """Prepare, submit once, and interpret the result."""
        return await self._execute(tx, self._start_run())

    async def submit_blob(self, blob_hex: str) -> OperationResponse:
        """Resubmit final-encoded bytes verbatim, e.g. after a timeout."""
        run = self._start_run()
        run.blob_hex = blob_hex
        run.tx_hash = codec.transaction_id(bytes.fromhex(blob_hex))
        run.advance(PipelineState.FINAL_ENCODED)
        result = await self._submitter.submit(blob_hex)
        run.advance(PipelineState.SUBMITTED)
        return self._interpret(result, run)

    async def wait_for_validation(
        self,
        tx_hash: str,
        *,
        attempts: int = 10,
        interval: float = 1.0,
    ) -> TxStatusResult:
        """Poll ``tx`` until validated or ``attempts`` run out. Never resubmits."""
        status = TxStatusResult(found=False)
        for attempt in range(attempts):
            status = await self._submitter.get_tx(tx_hash)
            if status.validated:
                logger.info("%s validated in ledger %s: %s", tx_hash,
                            status.ledger_index, status.engine_result)
                return status
            if attempt + 1 < attempts:
                await asyncio.sleep(interval)
        logger.warning("%s not validated after %d polls", tx_hash, attempts)
        return status

    # -----------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------

    def _start_run(self) -> PipelineRun:
        run = PipelineRun()
        self._last_run = run
        return run

    def _encode(self, tx: TransactionObject, run: PipelineRun) -> str:
        """BUILT → FINAL_ENCODED on ``run``; returns the final bytes as hex."""
        run.sequence = tx.sequence
        run.advance(PipelineState.BUILT)

        tx.signing_public_key = self._signer.public_key
        tx.transaction_signature = None
        message = codec.signing_data(tx)
        run.advance(PipelineState.UNSIGNED_ENCODED)

        signature = self._signer.sign_bytes(message)
        if not keys.verify(self._signer.public_key, message, signature):
            raise SigningError("signature failed verification against the signing key")
        tx.transaction_signature = signature
        run.advance(PipelineState.SIGNED)

        blob = codec.encode_for_submission(tx)
        blob_hex = blob.hex().upper()
        run.blob_hex = blob_hex
        run.tx_hash = codec.transaction_id(blob)
        run.advance(PipelineState.FINAL_ENCODED)
        return blob_hex

    async def _execute(self, tx: TransactionObject, run: PipelineRun) -> OperationResponse:
        blob_hex = self._encode(tx, run)
        logger.info("Submitting %s from %s (sequence %d)", run.tx_hash, tx.account, tx.sequence)
        try:
            result = await self._submitter.submit(blob_hex)
        except LedgerError as exc:
            exc.blob_hex = blob_hex
            raise
        run.advance(PipelineState.SUBMITTED)
        return self._interpret(result, run)

    def _interpret(self, result: SubmitResult, run: PipelineRun) -> OperationResponse:
        response = codec.decode_response(result)
        if response.transaction_hash is None:
            response = dataclasses.replace(response, transaction_hash=run.tx_hash)

        if response.success:
            run.advance(PipelineState.ACCEPTED)
            logger.info("%s accepted: %s", response.transaction_hash, response.ledger_result_code)
            return response

        run.advance(PipelineState.REJECTED)
        code = result.engine_result or result.error_code or "UNKNOWN"
        logger.warning("%s rejected: %s %s", response.transaction_hash, code, result.detail or "")
        raise SubmissionRejected(code, result.detail, response.transaction_hash)

    @contextmanager
    def _reservation(self, sequence: int) -> Iterator[None]:
        """Give ``sequence`` back if the enclosed step fails."""
        try:
            yield
        except LedgerError:
            self._sequences.release(self.account, sequence)
            raise

    async def _build_reserved(
        self,
        build: Callable[..., TransactionObject],
        request: SwapRequest | TrustLineRequest | SendRequest,
    ) -> TransactionObject:
        """Read network fields, reserve the sequence, and build."""
        fields = await self._network_fields()
        with self._reservation(fields.sequence):
            return build(
                self.account,
                request,
                fields.sequence,
                fields.fee,
                last_ledger_sequence=fields.last_ledger_sequence,
            )

    async def _run_reserved(self, tx: TransactionObject) -> OperationResponse:
        run = self._start_run()
        try:
            return await self._execute(tx, run)
        except SubmissionRejected as exc:
            if exc.needs_rebuild:
                self._sequences.reset(tx.account)
            elif not exc.code.startswith("tec"):
                # tec results are applied and consume the sequence; others do not.
                self._sequences.release(tx.account, tx.sequence)
            raise
        except BaseException:
            if not run.reached(PipelineState.FINAL_ENCODED):
                self._sequences.release(tx.account, tx.sequence)
            raise

    async def _send_request(
        self,
        destination: str,
        token: str,
        amount: str,
        destination_tag: int | None,
    ) -> SendRequest:
        request = SendRequest(destination, token, amount, destination_tag)
        spec = validate_send(request, self.account)
        logger.info("Send %s %s to %s", amount, token, destination)
        return dataclasses.replace(request, token=await self._resolve(spec, token, "token"))

    async def _resolve(self, token: TokenSpec, raw: str, field: str) -> str:
        """Qualify a bare-issuer token with the issuer's first receivable currency."""
        if token.is_resolved or token.issuer is None:
            return raw
        currencies = await self._reader.get_account_currencies(token.issuer)
        if not currencies.receive_currencies:
            raise ValidationError(field, f"no currencies found for issuer {token.issuer}")
        qualified = qualify_token(token, currencies.receive_currencies[0])
        parse_token(qualified, field)
        return qualified

    async def _network_fields(self) -> NetworkFields:
        info = await self._reader.get_account_info(self.account)

        fee = self._config.fixed_fee_drops
        last_ledger = None
        needs_fee_call = (
            self._config.fee_strategy is FeeStrategy.NETWORK
            or self._config.last_ledger_offset > 0
        )
        if needs_fee_call:
            fee_info = await self._reader.get_fee()
            if self._config.fee_strategy is FeeStrategy.NETWORK:
                suggested = max(fee_info.base_fee, fee_info.open_ledger_fee)
                fee = min(suggested, self._config.max_fee_drops)
            if self._config.last_ledger_offset and fee_info.ledger_current_index is not None:
                last_ledger = fee_info.ledger_current_index + self._config.last_ledger_offset

        sequence = self._sequences.reserve(self.account, info.sequence)
        return NetworkFields(sequence=sequence, fee=fee, last_ledger_sequence=last_ledger)
