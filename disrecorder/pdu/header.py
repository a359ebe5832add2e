"""
DIS PDU Header - IEEE 1278.1 Section 5.2.2

PDU Header Format (12 octets, network byte order):
    0               1               2               3
    +---------------+---------------+---------------+---------------+
    |Proto Version  |  Exercise ID  |   PDU Type    |Protocol Family|
    +---------------+---------------+---------------+---------------+
    |                          Timestamp                            |
    +---------------+---------------+---------------+---------------+
    |            Length             |            Padding            |
    +---------------+---------------+---------------+---------------+

The recorder only needs the PDU type to tag captured datagrams, so this
module stops at the header. Bodies are never decoded.
"""

import math
import random
import struct
import logging
import time
from dataclasses import dataclass
from typing import Optional

from .constants import (
    DEFAULT_PROTOCOL_VERSION,
    DIS_TIMESTAMP_UNITS_PER_HOUR,
    ENTITY_STATE_PDU_LEN,
    MS_PER_HOUR,
    PDU_HEADER_FORMAT,
    PDU_HEADER_LEN,
    PduType,
    ProtocolFamily,
)

logger = logging.getLogger("PDU.Header")


@dataclass
class PduHeader:
    """
    DIS PDU header

    Attributes:
        protocol_version: DIS protocol version (5, 6 or 7)
        exercise_id: DIS exercise number (0-255)
        pdu_type: PDU type code
        protocol_family: Protocol family code
        timestamp: DIS timestamp (relative or absolute units)
        length: Total PDU length in octets, header included
        padding: Padding / PDU status field
    """
    protocol_version: int = DEFAULT_PROTOCOL_VERSION
    exercise_id: int = 1
    pdu_type: int = PduType.ENTITY_STATE
    protocol_family: int = ProtocolFamily.ENTITY_INFORMATION
    timestamp: int = 0
    length: int = PDU_HEADER_LEN
    padding: int = 0

    @property
    def type_name(self) -> str:
        try:
            return PduType(self.pdu_type).name
        except ValueError:
            return f"UNKNOWN_{self.pdu_type}"

    def to_dict(self):
        return {
            "protocol_version": self.protocol_version,
            "exercise_id": self.exercise_id,
            "pdu_type": self.pdu_type,
            "pdu_type_name": self.type_name,
            "protocol_family": self.protocol_family,
            "timestamp": self.timestamp,
            "length": self.length,
        }


def encode_pdu_header(header: PduHeader) -> bytes:
    """
    Encode a PDU header to bytes

    Args:
        header: Header to encode

    Returns:
        12 header octets
    """
    return struct.pack(
        PDU_HEADER_FORMAT,
        header.protocol_version & 0xFF,
        header.exercise_id & 0xFF,
        int(header.pdu_type) & 0xFF,
        int(header.protocol_family) & 0xFF,
        header.timestamp & 0xFFFFFFFF,
        header.length & 0xFFFF,
        header.padding & 0xFFFF,
    )


def decode_pdu_header(data: bytes) -> Optional[PduHeader]:
    """
    Decode the PDU header from a raw datagram

    Args:
        data: Raw datagram bytes

    Returns:
        Decoded PduHeader or None if the datagram is too short
    """
    if len(data) < PDU_HEADER_LEN:
        logger.debug(f"PDU too short for header: {len(data)} bytes")
        return None

    try:
        version, exercise_id, pdu_type, family, timestamp, length, padding = struct.unpack(
            PDU_HEADER_FORMAT, data[:PDU_HEADER_LEN]
        )
    except struct.error as e:
        logger.debug(f"Failed to decode PDU header: {e}")
        return None

    return PduHeader(
        protocol_version=version,
        exercise_id=exercise_id,
        pdu_type=pdu_type,
        protocol_family=family,
        timestamp=timestamp,
        length=length,
        padding=padding,
    )


def classify(data: bytes) -> Optional[PduType]:
    """
    Classify a datagram by its PDU type

    Args:
        data: Raw datagram bytes

    Returns:
        PduType, or None when the datagram is unrecognized
    """
    header = decode_pdu_header(data)
    if header is None:
        return None

    try:
        return PduType(header.pdu_type)
    except ValueError:
        logger.debug(f"Unrecognized PDU type code: {header.pdu_type}")
        return None


def dis_timestamp(now: Optional[float] = None, absolute: bool = False) -> int:
    """
    Build a DIS timestamp from wall-clock time

    The value counts 2^31 units per hour past the top of the hour,
    shifted left one bit with the low bit set for absolute time.
    """
    if now is None:
        now = time.time()
    ms_past_hour = int(now * 1000) % MS_PER_HOUR
    units = (ms_past_hour * DIS_TIMESTAMP_UNITS_PER_HOUR) // MS_PER_HOUR
    return ((units << 1) | (1 if absolute else 0)) & 0xFFFFFFFF


def build_entity_state_pdu(
    entity_id: int,
    site: int = 1,
    application: int = 1,
    exercise_id: int = 1,
    location=(0.0, 0.0, 0.0),
    orientation=(0.0, 0.0, 0.0),
    velocity=(0.0, 0.0, 0.0),
    marking: str = "",
    timestamp: Optional[int] = None,
) -> bytes:
    """
    Build a DIS 6 Entity State PDU with no articulation parameters

    Args:
        entity_id: Entity number within site/application
        site: Site number
        application: Application number
        exercise_id: DIS exercise number
        location: World coordinates (x, y, z) in meters
        orientation: Euler angles (psi, theta, phi) in radians
        velocity: Linear velocity (x, y, z) in m/s
        marking: Up to 11 ASCII characters
        timestamp: DIS timestamp (default: now, relative)

    Returns:
        144 PDU octets
    """
    header = PduHeader(
        exercise_id=exercise_id,
        pdu_type=PduType.ENTITY_STATE,
        protocol_family=ProtocolFamily.ENTITY_INFORMATION,
        timestamp=dis_timestamp() if timestamp is None else timestamp,
        length=ENTITY_STATE_PDU_LEN,
    )

    body = struct.pack(
        "!HHHBB",
        site & 0xFFFF,
        application & 0xFFFF,
        entity_id & 0xFFFF,
        1,  # force id: friendly
        0,  # articulation parameter count
    )
    # Entity type and alternative entity type: platform / land / country 225
    body += struct.pack("!BBHBBBB", 1, 1, 225, 1, 1, 0, 0) * 2
    body += struct.pack("!fff", *velocity)
    body += struct.pack("!ddd", *location)
    body += struct.pack("!fff", *orientation)
    body += struct.pack("!I", 0)  # appearance
    # Dead reckoning: algorithm 2 (DRM_FPW), 15 other octets, accel, angular velocity
    body += struct.pack("!B15x", 2)
    body += struct.pack("!fff", 0.0, 0.0, 0.0)
    body += struct.pack("!fff", 0.0, 0.0, 0.0)
    body += struct.pack("!B11s", 1, marking.encode("ascii", "replace")[:11])
    body += struct.pack("!I", 0)  # capabilities

    return encode_pdu_header(header) + body


def random_entity_state_pdu(entity_id: int, rng: Optional[random.Random] = None) -> bytes:
    """Entity State PDU with a random location and orientation"""
    rng = rng or random.Random()
    return build_entity_state_pdu(
        entity_id=entity_id,
        location=(rng.random() * 1000, rng.random() * 1000, rng.random() * 100),
        orientation=(
            rng.random() * math.pi * 2,
            rng.random() * math.pi * 2,
            rng.random() * math.pi * 2,
        ),
        marking=f"ENT{entity_id}",
    )
