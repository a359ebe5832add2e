"""
Recorder Constants

Network defaults and limits shared by the recorder and replayer.
"""

# Multicast defaults
DEFAULT_MULTICAST_GROUP = "239.1.2.3"
DEFAULT_PORT = 3000
DEFAULT_INTERFACE = "0.0.0.0"
DEFAULT_MULTICAST_TTL = 1            # Stay on the local segment
DEFAULT_MULTICAST_LOOP = True        # Let a local recorder hear local replays

# Receive buffer - larger than any DIS PDU
BUFFER_SIZE = 8192

# Replay
DEFAULT_SPEED_FACTOR = 1.0

# Storage backends
STORAGE_MEMORY = "memory"
DEFAULT_STORAGE = STORAGE_MEMORY

# Environment variable overrides
ENV_MULTICAST_GROUP = "DISREC_MULTICAST_GROUP"
ENV_PORT = "DISREC_PORT"
ENV_INTERFACE = "DISREC_INTERFACE"
ENV_TTL = "DISREC_TTL"
ENV_STORAGE = "DISREC_STORAGE"
