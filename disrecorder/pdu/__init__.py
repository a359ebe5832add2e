"""
PDU - DIS Protocol Data Unit codec boundary (IEEE 1278.1)

Classifies captured datagrams by their 12-octet DIS header and builds
test PDUs. PDU bodies pass through the recorder untouched.

Usage:
    from pdu import classify, PduType

    pdu_type = classify(datagram)
    if pdu_type is PduType.ENTITY_STATE:
        ...
"""

from .constants import (
    PduType,
    ProtocolFamily,
    PDU_HEADER_LEN,
    PDU_MAX_LEN,
    ENTITY_STATE_PDU_LEN,
    DEFAULT_PROTOCOL_VERSION,
)
from .header import (
    PduHeader,
    encode_pdu_header,
    decode_pdu_header,
    classify,
    dis_timestamp,
    build_entity_state_pdu,
    random_entity_state_pdu,
)
from .sender import PduSender

__all__ = [
    # Constants
    "PduType",
    "ProtocolFamily",
    "PDU_HEADER_LEN",
    "PDU_MAX_LEN",
    "ENTITY_STATE_PDU_LEN",
    "DEFAULT_PROTOCOL_VERSION",
    # Header
    "PduHeader",
    "encode_pdu_header",
    "decode_pdu_header",
    "classify",
    "dis_timestamp",
    "build_entity_state_pdu",
    "random_entity_state_pdu",
    # Sender
    "PduSender",
]
