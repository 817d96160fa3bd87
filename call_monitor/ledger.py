"""Process-wide memory of call events that were already handled."""

import threading
from typing import Iterable, Optional


class DedupLedger:
    """Set of seen event ids, safe for concurrent check-then-mark.

    The ledger only grows. An id that is in the ledger is never processed
    again by this process.
    """

    def __init__(self, seen: Optional[Iterable[str]] = None):
        self._lock = threading.Lock()
        self._seen: set[str] = set(seen or ())

    def is_new(self, event_id: str) -> bool:
        """Return True if ``event_id`` has not been marked yet."""
        with self._lock:
            return event_id not in self._seen

    def mark_seen(self, event_id: str) -> None:
        """Record ``event_id`` as handled."""
        with self._lock:
            self._seen.add(event_id)

    def claim(self, event_id: str) -> bool:
        """Atomically mark ``event_id`` and report whether it was new.

        Returns True exactly once per id for the lifetime of the ledger.
        """
        with self._lock:
            if event_id in self._seen:
                return False
            self._seen.add(event_id)
            return True

    def __contains__(self, event_id: object) -> bool:
        with self._lock:
            return event_id in self._seen

    def __len__(self) -> int:
        with self._lock:
            return len(self._seen)
