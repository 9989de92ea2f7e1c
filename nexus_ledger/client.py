"""
Submission client protocol: the network boundary for writes.

The pipeline depends on this interface, not on a concrete client, which
keeps it testable and keeps HTTP calls out of transaction logic.

Concrete implementations:
    - JsonRpcClient (nexus_ledger.jsonrpc_client)
    - FakeSubmitter (tests)

Both methods return frozen dataclasses. Expected XRPL failures are
captured in the result objects; only transport failures raise.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from nexus_ledger.models import SubmitResult, TxStatusResult


@runtime_checkable
class SubmissionClient(Protocol):
    """Interface for submitting transactions and polling their status."""

    async def submit(self, signed_tx_blob_hex: str) -> SubmitResult:
        """Submit a signed transaction blob to the XRPL.

        Args:
            signed_tx_blob_hex: Hex-encoded final transaction bytes.

        Returns:
            SubmitResult with the engine result and transaction hash.

        Raises:
            TransportError: If the node could not be reached.
        """
        ...

    async def get_tx(self, tx_hash: str) -> TxStatusResult:
        """Query the status of a previously submitted transaction."""
        ...
