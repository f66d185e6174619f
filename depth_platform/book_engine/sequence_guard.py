"""Sequence continuity tracking for snapshot/delta order-book feeds."""
from __future__ import annotations
import logging
from enum import Enum
from typing import Optional

LOGGER = logging.getLogger(__name__)

class SyncState(str, Enum):
    UNSYNCED = "unsynced"
    SYNCED = "synced"
    GAP_PENDING = "gap_pending"

class DeltaVerdict(str, Enum):
    """Outcome of checking a delta against the last accepted sequence."""
    ACCEPT = "accept"
    IGNORE = "ignore"
    GAP = "gap"

class SequenceGuard:
    """
    Decide whether a delta extends the book the engine currently holds.

    A snapshot always resets the sequence. A delta is accepted only when
    its previous sequence number equals the last accepted one; anything
    else is a gap and the feed must be resubscribed for a fresh snapshot.

    Attributes:
        state: Current synchronisation state
        last_accepted_seq_num: Sequence of the last applied message
        gap_count: Number of gaps detected since construction
    """
    def __init__(self) -> None:
        self.state = SyncState.UNSYNCED
        self.last_accepted_seq_num: Optional[int] = None
        self.gap_count = 0

    def on_snapshot(self, seq_num: int) -> None:
        """Accept a snapshot unconditionally."""
        self.last_accepted_seq_num = seq_num
        self.state = SyncState.SYNCED

    def check_delta(
        self, prev_seq_num: Optional[int], seq_num: int
    ) -> DeltaVerdict:
        """
        Classify a delta without applying it.

        Args:
            prev_seq_num: Sequence the delta claims to extend
            seq_num: Sequence the delta establishes

        Returns:
            ACCEPT when the delta is contiguous, IGNORE while unsynced,
            GAP otherwise (state moves to GAP_PENDING)
        """
        if self.state is not SyncState.SYNCED:
            return DeltaVerdict.IGNORE
        if prev_seq_num is not None and prev_seq_num == self.last_accepted_seq_num:
            return DeltaVerdict.ACCEPT
        self.state = SyncState.GAP_PENDING
        self.gap_count += 1
        LOGGER.warning(
            "Sequence gap: expected prevSeqNum %s, got %s (seqNum %s); "
            "resubscribing",
            self.last_accepted_seq_num, prev_seq_num, seq_num,
        )
        return DeltaVerdict.GAP

    def accept(self, seq_num: int) -> None:
        """Record a delta as applied."""
        self.last_accepted_seq_num = seq_num

    def resync_requested(self) -> None:
        """Leave GAP_PENDING once the resubscribe has been sent."""
        if self.state is SyncState.GAP_PENDING:
            self.state = SyncState.UNSYNCED
