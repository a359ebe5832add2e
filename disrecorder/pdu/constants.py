"""
DIS Constants - IEEE 1278.1

Protocol constants for Distributed Interactive Simulation PDUs.
Only the header is interpreted here; PDU bodies travel as opaque bytes.
"""

from enum import IntEnum

# Protocol versions
DIS_VERSION_5 = 5            # IEEE 1278.1-1995
DIS_VERSION_6 = 6            # IEEE 1278.1a-1998
DIS_VERSION_7 = 7            # IEEE 1278.1-2012
DEFAULT_PROTOCOL_VERSION = DIS_VERSION_6

# Header layout
PDU_HEADER_LEN = 12          # Every PDU starts with a 12-byte header
PDU_HEADER_FORMAT = "!BBBBIHH"
PDU_MAX_LEN = 8192           # Largest datagram the recorder buffers

# Entity State PDU (DIS 6) without articulation parameters
ENTITY_STATE_PDU_LEN = 144

# DIS timestamps count 2^31 units per hour; the low bit flags absolute time
DIS_TIMESTAMP_UNITS_PER_HOUR = 2 ** 31
MS_PER_HOUR = 3_600_000


class PduType(IntEnum):
    """DIS PDU type codes (header octet 2)"""
    ENTITY_STATE = 1
    FIRE = 2
    DETONATION = 3
    COLLISION = 4
    SERVICE_REQUEST = 5
    RESUPPLY_OFFER = 6
    RESUPPLY_RECEIVED = 7
    RESUPPLY_CANCEL = 8
    REPAIR_COMPLETE = 9
    REPAIR_RESPONSE = 10
    CREATE_ENTITY = 11
    REMOVE_ENTITY = 12
    START_RESUME = 13
    STOP_FREEZE = 14
    ACKNOWLEDGE = 15
    ACTION_REQUEST = 16
    ACTION_RESPONSE = 17
    DATA_QUERY = 18
    SET_DATA = 19
    DATA = 20
    EVENT_REPORT = 21
    COMMENT = 22
    ELECTROMAGNETIC_EMISSION = 23
    DESIGNATOR = 24
    TRANSMITTER = 25
    SIGNAL = 26
    RECEIVER = 27
    IFF = 28
    UNDERWATER_ACOUSTIC = 29
    SUPPLEMENTAL_EMISSION = 30
    INTERCOM_SIGNAL = 31
    INTERCOM_CONTROL = 32
    AGGREGATE_STATE = 33
    IS_GROUP_OF = 34
    TRANSFER_OWNERSHIP = 35
    IS_PART_OF = 36
    MINEFIELD_STATE = 37
    MINEFIELD_QUERY = 38
    MINEFIELD_DATA = 39
    MINEFIELD_RESPONSE_NACK = 40
    ENVIRONMENTAL_PROCESS = 41
    GRIDDED_DATA = 42
    POINT_OBJECT_STATE = 43
    LINEAR_OBJECT_STATE = 44
    AREAL_OBJECT_STATE = 45
    TSPI = 46
    APPEARANCE = 47
    ARTICULATED_PARTS = 48
    LE_FIRE = 49
    LE_DETONATION = 50
    CREATE_ENTITY_R = 51
    REMOVE_ENTITY_R = 52
    START_RESUME_R = 53
    STOP_FREEZE_R = 54
    ACKNOWLEDGE_R = 55
    ACTION_REQUEST_R = 56
    ACTION_RESPONSE_R = 57
    DATA_QUERY_R = 58
    SET_DATA_R = 59
    DATA_R = 60
    EVENT_REPORT_R = 61
    COMMENT_R = 62
    RECORD_R = 63
    SET_RECORD_R = 64
    RECORD_QUERY_R = 65
    COLLISION_ELASTIC = 66
    ENTITY_STATE_UPDATE = 67
    DIRECTED_ENERGY_FIRE = 68
    ENTITY_DAMAGE_STATUS = 69
    INFORMATION_OPERATIONS_ACTION = 70
    INFORMATION_OPERATIONS_REPORT = 71
    ATTRIBUTE = 72


class ProtocolFamily(IntEnum):
    """DIS protocol family codes (header octet 3)"""
    OTHER = 0
    ENTITY_INFORMATION = 1
    WARFARE = 2
    LOGISTICS = 3
    RADIO_COMMUNICATIONS = 4
    SIMULATION_MANAGEMENT = 5
    DISTRIBUTED_EMISSION_REGENERATION = 6
    ENTITY_MANAGEMENT = 7
    MINEFIELD = 8
    SYNTHETIC_ENVIRONMENT = 9
    SIMULATION_MANAGEMENT_RELIABLE = 10
    LIVE_ENTITY = 11
    NON_REAL_TIME = 12
    INFORMATION_OPERATIONS = 13
