"""
Results ledger: newest-first list of Result records, written to the store as a
full JSON snapshot on every append.
"""
import json
import logging
from typing import List, Optional, Sequence, Tuple

from db import RESULTS_SLOT, StoreError
from src.models import Result

logger = logging.getLogger(__name__)


class StorageWriteError(Exception):
    """The store rejected a ledger snapshot. The in-memory ledger is unchanged."""


class ResultsLedger:
    """Append-only results history over a key-value store slot. Single writer."""

    def __init__(self, store, slot: str = RESULTS_SLOT):
        self.store = store
        self.slot = slot
        self._results: Tuple[Result, ...] = ()

    def __len__(self) -> int:
        return len(self._results)

    def load(self) -> List[Result]:
        """
        Hydrate from the store.

        Anything unreadable (missing slot, bad JSON, non-list, a malformed record)
        yields an empty ledger instead of an error.
        """
        self._results = tuple(self._read())
        logger.info(f"Ledger loaded: {len(self._results)} results")
        return list(self._results)

    def _read(self) -> List[Result]:
        try:
            text = self.store.get_item(self.slot)
        except StoreError as e:
            logger.error(f"Could not read results ledger: {e}")
            return []
        if not text:
            return []
        try:
            records = json.loads(text)
        except (ValueError, RecursionError) as e:
            logger.warning(f"Results ledger is not valid JSON ({e}); starting empty")
            return []
        if not isinstance(records, list):
            logger.warning(f"Results ledger is a {type(records).__name__}, expected a list; starting empty")
            return []
        try:
            return [Result.from_record(r) for r in records]
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Results ledger has a malformed record ({e!r}); starting empty")
            return []

    def all(self) -> List[Result]:
        """All results, newest first."""
        return list(self._results)

    def for_learner(self, email: str) -> List[Result]:
        """Results whose learner email matches (trimmed, case-insensitive), newest first."""
        wanted = (email or "").strip().lower()
        return [r for r in self._results if r.learner_email.strip().lower() == wanted]

    def persist(self, results: Sequence[Result]) -> None:
        """Write the full snapshot. Raises StorageWriteError if the store refuses it."""
        payload = json.dumps([r.to_record() for r in results])
        try:
            self.store.set_item(self.slot, payload)
        except StoreError as e:
            logger.error(f"Could not persist results ledger ({len(results)} results): {e}")
            raise StorageWriteError(str(e)) from e

    def append(self, result: Result) -> None:
        """Prepend a result and persist. On failure nothing changes in memory."""
        updated = (result,) + self._results
        self.persist(updated)
        self._results = updated
        logger.info(f"Appended result {result.id} ({len(updated)} total)")

    def latest(self) -> Optional[Result]:
        return self._results[0] if self._results else None
