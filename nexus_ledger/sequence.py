"""
Per-account sequence number reservation.

Two concurrent submissions from one account must not share a Sequence.
The coordinator hands out numbers as ``max(network, last reserved + 1)``
inside a short critical section. The network read happens before the
lock is taken, so no lock is ever held across a network call.

    - ``release(account, sequence)`` gives back a number that never reached
      the network, if nothing was reserved after it.
    - ``reset(account)`` forgets local state after a stale-sequence
      rejection, so the next reservation trusts the network value again.
"""

from __future__ import annotations

import logging
import threading

logger = logging.getLogger(__name__)


class SequenceCoordinator:
    """Hands out non-overlapping sequence numbers per account."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._next: dict[str, int] = {}

    def reserve(self, account: str, network_sequence: int) -> int:
        """Reserve the sequence to use for the next transaction.

        Args:
            account: Sending account address.
            network_sequence: Sequence just read from account_info.

        Returns:
            The reserved sequence number.
        """
        with self._lock:
            sequence = max(network_sequence, self._next.get(account, 0))
            self._next[account] = sequence + 1
        if sequence != network_sequence:
            logger.debug(
                "Sequence for %s advanced past network value %d to %d",
                account, network_sequence, sequence,
            )
        return sequence

    def release(self, account: str, sequence: int) -> None:
        """Give back ``sequence`` if it is still the latest reservation."""
        with self._lock:
            if self._next.get(account) == sequence + 1:
                self._next[account] = sequence

    def reset(self, account: str) -> None:
        """Forget local reservations for ``account``."""
        with self._lock:
            self._next.pop(account, None)

    def peek(self, account: str) -> int | None:
        """Next sequence this coordinator would hand out, if any."""
        with self._lock:
            return self._next.get(account)
