"""
DIS Recorder - capture and timed replay of multicast PDUs

Records DIS PDUs from a multicast group into exercise-keyed storage,
runs pluggable analyzers on every captured PDU, and replays an
exercise back onto the network with its original spacing scaled by a
speed factor.

Features:
- One active recording and one active replay, independently
- Drift-free replay schedule anchored to replay start
- Single completion future per replay for natural end and stop()
- Per-analyzer failure isolation
- Real multicast or in-process loopback transport

Usage:
    from recorder import create_default_controller, StatisticsAnalyzer

    controller = create_default_controller()
    controller.add_analyzer(StatisticsAnalyzer())
    await controller.start_recording("exercise-1")
    ...
    await controller.stop_recording()

    started, done = await controller.start_replay("exercise-1", speed_factor=2.0)
    result = await done
"""

from .analysis import (
    PduAnalyzer,
    StatisticsAnalyzer,
    CallbackAnalyzer,
    create_analyzer,
    available_analyzers,
)
from .config import RecorderConfig
from .constants import (
    DEFAULT_MULTICAST_GROUP,
    DEFAULT_PORT,
    BUFFER_SIZE,
    DEFAULT_SPEED_FACTOR,
)
from .controller import RecorderController
from .factory import (
    create_default_controller,
    create_custom_network_controller,
    create_custom_controller,
    create_loopback_controller,
)
from .models import (
    RecordedPdu,
    RecordingState,
    ReplayState,
    ReplayStatus,
    ReplayResult,
    RecorderStats,
    ReplayerStats,
)
from .recording import PduRecorder
from .replay import PduReplayer
from .storage import PduStorage, MemoryPduStorage, create_storage
from .transport import (
    PduChannel,
    ChannelClosedError,
    MulticastChannel,
    LoopbackNetwork,
    LoopbackChannel,
    multicast_channel_factory,
)

__all__ = [
    # Analysis
    "PduAnalyzer",
    "StatisticsAnalyzer",
    "CallbackAnalyzer",
    "create_analyzer",
    "available_analyzers",
    # Config
    "RecorderConfig",
    "DEFAULT_MULTICAST_GROUP",
    "DEFAULT_PORT",
    "BUFFER_SIZE",
    "DEFAULT_SPEED_FACTOR",
    # Controller
    "RecorderController",
    "create_default_controller",
    "create_custom_network_controller",
    "create_custom_controller",
    "create_loopback_controller",
    # Models
    "RecordedPdu",
    "RecordingState",
    "ReplayState",
    "ReplayStatus",
    "ReplayResult",
    "RecorderStats",
    "ReplayerStats",
    # Recorder / Replayer
    "PduRecorder",
    "PduReplayer",
    # Storage
    "PduStorage",
    "MemoryPduStorage",
    "create_storage",
    # Transport
    "PduChannel",
    "ChannelClosedError",
    "MulticastChannel",
    "LoopbackNetwork",
    "LoopbackChannel",
    "multicast_channel_factory",
]
