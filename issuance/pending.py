"""
pending.py - Pending Effects Ledger

Records the provisional balance effect of every committed but unconfirmed
transaction, indexed by (address, property), so balance guards can see
spending the base ledger has not confirmed yet.

Key responsibilities:
    - record(): called once per successful commit; idempotent on txid
    - pending_outflow() / available_balance(): read side used by guards
    - retire(): called by the external reconciliation process once the
      transaction confirms or leaves the unconfirmed pool

The Coordinator never retires entries.
"""

from __future__ import annotations
from collections import defaultdict
import logging
import threading
from typing import Dict, List, Optional, Tuple

from .core import ConsensusView, PendingEntry, RecordResult


logger = logging.getLogger(__name__)


class PendingLedger:
    """
    Append-only store of pending entries with an outflow index.

    Thread Safety:
        All methods take an internal lock, so retire() may be called from a
        reconciliation thread while submissions run.

    Example:
        pending = PendingLedger()
        pending.record(entry)
        pending.available_balance(view, "1A1z...", 3)
    """

    def __init__(self):
        self._entries: Dict[str, PendingEntry] = {}
        # Inverted index: (address, property) -> summed outflow
        self._outflow: Dict[Tuple[str, int], int] = defaultdict(int)
        self._lock = threading.RLock()

    # ========================================================================
    # READ
    # ========================================================================

    def pending_outflow(self, address: str, property_id: int) -> int:
        with self._lock:
            return self._outflow.get((address, property_id), 0)

    def available_balance(self, view: ConsensusView, address: str, property_id: int) -> int:
        """Confirmed balance minus pending outflow."""
        with self._lock:
            return view.get_balance(address, property_id) - self.pending_outflow(address, property_id)

    def get(self, txid: str) -> Optional[PendingEntry]:
        with self._lock:
            return self._entries.get(txid)

    def entries(self) -> List[PendingEntry]:
        """All entries in the order they were recorded."""
        with self._lock:
            return list(self._entries.values())

    def entries_for(self, address: str) -> List[PendingEntry]:
        with self._lock:
            return [e for e in self._entries.values() if e.sender == address]

    def __contains__(self, txid: object) -> bool:
        with self._lock:
            return txid in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    # ========================================================================
    # WRITE
    # ========================================================================

    def record(self, entry: PendingEntry) -> RecordResult:
        """
        Add an entry for a committed transaction.

        Returns:
            RecordResult.RECORDED if added
            RecordResult.ALREADY_RECORDED if the txid is already present
        """
        with self._lock:
            if entry.txid in self._entries:
                logger.warning("pending entry for %s already recorded", entry.txid)
                return RecordResult.ALREADY_RECORDED
            self._entries[entry.txid] = entry
            if entry.outflow:
                self._outflow[(entry.sender, entry.property_id)] += entry.outflow
            logger.debug("recorded %r", entry)
            return RecordResult.RECORDED

    def retire(self, txid: str) -> Optional[PendingEntry]:
        """
        Remove the entry for a confirmed or evicted transaction.

        Returns the removed entry, or None if there was none.
        """
        with self._lock:
            entry = self._entries.pop(txid, None)
            if entry is None:
                return None
            key = (entry.sender, entry.property_id)
            if entry.outflow:
                remaining = self._outflow[key] - entry.outflow
                if remaining:
                    self._outflow[key] = remaining
                else:
                    del self._outflow[key]
            logger.debug("retired %r", entry)
            return entry

    def __repr__(self) -> str:
        return f"PendingLedger({len(self)} entries)"
