"""
PDU Analyzers

Analyzers observe every PDU the recorder captures. Each one keeps its
own state; the recorder isolates their failures from each other and
from capture.
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from collections import Counter
from typing import Any, Callable, Dict, Optional

from .models import RecordedPdu

logger = logging.getLogger("DISRec.Analysis")

ANALYZER_STATISTICS = "statistics"


class PduAnalyzer(ABC):
    """Interface for analysis components attached to a recorder"""

    @property
    @abstractmethod
    def name(self) -> str:
        """Analyzer name, used to find it again for removal"""

    @abstractmethod
    def analyze_pdu(self, recorded_pdu: RecordedPdu) -> None:
        """Called once per captured PDU, in capture order"""

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name}


class StatisticsAnalyzer(PduAnalyzer):
    """
    Collects PDU counts and rates

    Logs a summary every ``log_interval`` PDUs.
    """

    def __init__(self, log_interval: int = 100):
        self.log_interval = log_interval
        self._lock = threading.Lock()
        self._type_counts: Counter = Counter()
        self._total_pdus = 0
        self._total_bytes = 0
        self._first_pdu_time: Optional[int] = None
        self._last_pdu_time: Optional[int] = None
        self._start_time = time.time()

    @property
    def name(self) -> str:
        return "Statistics Analyzer"

    def analyze_pdu(self, recorded_pdu: RecordedPdu) -> None:
        with self._lock:
            self._type_counts[recorded_pdu.pdu_type] += 1
            self._total_pdus += 1
            self._total_bytes += recorded_pdu.size
            if self._first_pdu_time is None:
                self._first_pdu_time = recorded_pdu.timestamp
            self._last_pdu_time = recorded_pdu.timestamp
            total = self._total_pdus

        if self.log_interval and total % self.log_interval == 0:
            self.log_statistics()

    @property
    def total_pdus(self) -> int:
        return self._total_pdus

    @property
    def total_bytes(self) -> int:
        return self._total_bytes

    def get_pdu_type_counts(self) -> Dict[int, int]:
        with self._lock:
            return dict(self._type_counts)

    def get_duration_ms(self) -> int:
        """Span between the first and last analyzed PDU"""
        if self._first_pdu_time is None or self._last_pdu_time is None:
            return 0
        return self._last_pdu_time - self._first_pdu_time

    def pdus_per_second(self) -> float:
        elapsed = time.time() - self._start_time
        if elapsed <= 0:
            return 0.0
        return self._total_pdus / elapsed

    def log_statistics(self) -> None:
        logger.info("[Analysis] PDU Statistics:")
        logger.info(f"[Analysis]   Total PDUs: {self._total_pdus}")
        logger.info(f"[Analysis]   PDUs per second: {self.pdus_per_second():.2f}")
        logger.info("[Analysis]   PDU types:")
        for pdu_type, count in sorted(self.get_pdu_type_counts().items()):
            logger.info(f"[Analysis]     Type {pdu_type}: {count} PDUs")

    def reset(self) -> None:
        with self._lock:
            self._type_counts.clear()
            self._total_pdus = 0
            self._total_bytes = 0
            self._first_pdu_time = None
            self._last_pdu_time = None
            self._start_time = time.time()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "total_pdus": self._total_pdus,
            "total_bytes": self._total_bytes,
            "pdus_per_second": round(self.pdus_per_second(), 2),
            "duration_ms": self.get_duration_ms(),
            "pdu_types": {str(k): v for k, v in self.get_pdu_type_counts().items()},
        }


class CallbackAnalyzer(PduAnalyzer):
    """Adapts a plain callable to the analyzer interface"""

    def __init__(self, name: str, callback: Callable[[RecordedPdu], None]):
        self._name = name
        self._callback = callback

    @property
    def name(self) -> str:
        return self._name

    def analyze_pdu(self, recorded_pdu: RecordedPdu) -> None:
        self._callback(recorded_pdu)


_ANALYZER_TYPES: Dict[str, Callable[[], PduAnalyzer]] = {
    ANALYZER_STATISTICS: StatisticsAnalyzer,
}


def available_analyzers():
    return sorted(_ANALYZER_TYPES)


def create_analyzer(kind: str) -> PduAnalyzer:
    """
    Create an analyzer by type name

    Args:
        kind: Analyzer type ("statistics")

    Returns:
        New analyzer instance
    """
    factory = _ANALYZER_TYPES.get((kind or "").lower())
    if factory is None:
        raise ValueError(f"Unknown analyzer type: {kind!r}")
    return factory()
