"""
PDU Storage

Exercise-partitioned store for captured PDUs. The recorder appends,
the replayer reads; callers only see the PduStorage interface so the
backend can be swapped at construction.
"""

import logging
import threading
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Dict, List, Set

from .constants import STORAGE_MEMORY
from .models import RecordedPdu

logger = logging.getLogger("DISRec.Storage")


class PduStorage(ABC):
    """Storage interface for recorded PDUs"""

    @abstractmethod
    def store_pdu(self, recorded_pdu: RecordedPdu) -> None:
        """Append a PDU to its exercise"""

    @abstractmethod
    def get_pdus_for_exercise(self, exercise_id: str) -> List[RecordedPdu]:
        """All PDUs of an exercise, ascending by timestamp; empty if unknown"""

    @abstractmethod
    def clear_exercise(self, exercise_id: str) -> None:
        """Remove an exercise; clearing an unknown exercise is a no-op"""

    @abstractmethod
    def get_exercise_ids(self) -> Set[str]:
        """Exercises holding at least one PDU"""

    def count(self, exercise_id: str) -> int:
        return len(self.get_pdus_for_exercise(exercise_id))


class MemoryPduStorage(PduStorage):
    """
    In-memory PduStorage

    PDUs are kept in arrival order and sorted by timestamp on read,
    so clock steps during capture never reorder the stored sequence.
    """

    def __init__(self):
        self._exercises: Dict[str, List[RecordedPdu]] = defaultdict(list)
        self._lock = threading.Lock()

    def store_pdu(self, recorded_pdu: RecordedPdu) -> None:
        with self._lock:
            self._exercises[recorded_pdu.exercise_id].append(recorded_pdu)

    def get_pdus_for_exercise(self, exercise_id: str) -> List[RecordedPdu]:
        with self._lock:
            pdus = list(self._exercises.get(exercise_id, ()))
        # sorted() is stable: equal timestamps keep arrival order
        return sorted(pdus, key=lambda p: p.timestamp)

    def clear_exercise(self, exercise_id: str) -> None:
        with self._lock:
            removed = self._exercises.pop(exercise_id, None)
        if removed is not None:
            logger.debug(f"[Storage] Cleared {len(removed)} PDUs from exercise {exercise_id}")

    def get_exercise_ids(self) -> Set[str]:
        with self._lock:
            return {exercise_id for exercise_id, pdus in self._exercises.items() if pdus}

    def count(self, exercise_id: str) -> int:
        with self._lock:
            return len(self._exercises.get(exercise_id, ()))


def create_storage(kind: str = STORAGE_MEMORY) -> PduStorage:
    """
    Create a storage backend by name

    Args:
        kind: Backend name ("memory")

    Returns:
        New PduStorage instance
    """
    kind = (kind or "").lower()
    if kind == STORAGE_MEMORY:
        return MemoryPduStorage()
    raise ValueError(f"Unknown storage type: {kind!r}")
