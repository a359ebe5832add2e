"""
Recorder data model

Captured PDUs, recorder/replayer states and replay outcomes.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pdu import PduType


@dataclass(frozen=True)
class RecordedPdu:
    """
    A captured PDU

    Attributes:
        data: Raw datagram bytes, replayed unmodified
        pdu_type: PDU type code from the DIS header
        timestamp: Capture time in milliseconds since the epoch
        exercise_id: Exercise (session) the PDU was recorded under
    """
    data: bytes
    pdu_type: int
    timestamp: int
    exercise_id: str

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def type_name(self) -> str:
        try:
            return PduType(self.pdu_type).name
        except ValueError:
            return f"UNKNOWN_{self.pdu_type}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "exercise_id": self.exercise_id,
            "timestamp": self.timestamp,
            "pdu_type": self.pdu_type,
            "pdu_type_name": self.type_name,
            "size": self.size,
        }


class RecordingState(Enum):
    """Capture state machine"""
    IDLE = "idle"
    RECORDING = "recording"


class ReplayState(Enum):
    """Playback state machine"""
    IDLE = "idle"
    REPLAYING = "replaying"
    STOPPING = "stopping"


class ReplayStatus(Enum):
    """How a replay run ended"""
    COMPLETED = "completed"    # Every PDU was sent
    STOPPED = "stopped"        # Cancelled by stop()
    EMPTY = "empty"            # Nothing recorded for the exercise
    FAILED = "failed"          # Network error or refused start


@dataclass
class ReplayResult:
    """Outcome delivered through a replay completion handle"""
    exercise_id: Optional[str]
    status: ReplayStatus
    pdus_sent: int = 0
    pdus_total: int = 0
    error: Optional[str] = None
    finished_at: datetime = field(default_factory=datetime.now)

    @property
    def success(self) -> bool:
        return self.status != ReplayStatus.FAILED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "exercise_id": self.exercise_id,
            "status": self.status.value,
            "success": self.success,
            "pdus_sent": self.pdus_sent,
            "pdus_total": self.pdus_total,
            "error": self.error,
            "finished_at": self.finished_at.isoformat(),
        }


@dataclass
class RecorderStats:
    """Recorder Statistics"""
    pdus_received: int = 0
    pdus_recorded: int = 0
    pdus_dropped: int = 0
    receive_errors: int = 0
    analyzer_errors: int = 0
    recordings_started: int = 0
    started_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pdus_received": self.pdus_received,
            "pdus_recorded": self.pdus_recorded,
            "pdus_dropped": self.pdus_dropped,
            "receive_errors": self.receive_errors,
            "analyzer_errors": self.analyzer_errors,
            "recordings_started": self.recordings_started,
            "started_at": self.started_at.isoformat() if self.started_at else None,
        }


@dataclass
class ReplayerStats:
    """Replayer Statistics"""
    pdus_sent: int = 0
    replays_started: int = 0
    replays_completed: int = 0
    replays_stopped: int = 0
    replays_failed: int = 0
    started_at: Optional[datetime] = None

    def record(self, result: ReplayResult) -> None:
        """Count a finished replay run"""
        if result.status == ReplayStatus.FAILED:
            self.replays_failed += 1
        elif result.status == ReplayStatus.STOPPED:
            self.replays_stopped += 1
        else:
            self.replays_completed += 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pdus_sent": self.pdus_sent,
            "replays_started": self.replays_started,
            "replays_completed": self.replays_completed,
            "replays_stopped": self.replays_stopped,
            "replays_failed": self.replays_failed,
            "started_at": self.started_at.isoformat() if self.started_at else None,
        }
