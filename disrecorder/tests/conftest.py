"""
Pytest configuration file

Adds the project root to the Python path so tests can import modules,
and provides loopback fixtures shared by the recorder tests.
"""
import sys
import os

import pytest

# Add the project root to the path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from pdu import PduHeader, PduType, encode_pdu_header  # noqa: E402
from recorder import LoopbackNetwork, MemoryPduStorage, RecordedPdu  # noqa: E402

GROUP = "239.1.2.3"
PORT = 3000


def make_datagram(pdu_type: int = PduType.ENTITY_STATE, payload: bytes = b"") -> bytes:
    """Header-only DIS datagram with an optional body"""
    header = PduHeader(pdu_type=pdu_type, length=12 + len(payload))
    return encode_pdu_header(header) + payload


def make_recorded(exercise_id: str, timestamp: int, marker: int = 0) -> RecordedPdu:
    """Recorded Entity State PDU whose body carries a marker byte"""
    return RecordedPdu(
        data=make_datagram(PduType.ENTITY_STATE, bytes([marker])),
        pdu_type=int(PduType.ENTITY_STATE),
        timestamp=timestamp,
        exercise_id=exercise_id,
    )


@pytest.fixture
def network():
    return LoopbackNetwork()


@pytest.fixture
def storage():
    return MemoryPduStorage()
