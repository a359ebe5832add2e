"""
Recorder Factory

Builds controllers from interchangeable storage, recorder and replayer
implementations.
"""

import logging
from typing import Optional

from .config import RecorderConfig
from .constants import DEFAULT_MULTICAST_GROUP, DEFAULT_PORT
from .controller import RecorderController
from .recording import PduRecorder
from .replay import PduReplayer
from .storage import PduStorage, create_storage
from .transport import LoopbackNetwork, multicast_channel_factory

logger = logging.getLogger("DISRec.Factory")


def create_default_controller(config: Optional[RecorderConfig] = None) -> RecorderController:
    """
    Create a multicast controller

    Args:
        config: Network and storage settings (default: from environment)

    Returns:
        Controller over a fresh storage backend
    """
    config = config or RecorderConfig.from_env()
    storage = create_storage(config.storage)
    channel_factory = multicast_channel_factory(config)

    recorder = PduRecorder(storage, channel_factory, config.multicast_group, config.port)
    replayer = PduReplayer(storage, channel_factory, config.multicast_group, config.port)

    logger.info(f"[Factory] Created multicast controller on {config.multicast_group}:{config.port}")
    return RecorderController(storage, recorder, replayer)


def create_custom_network_controller(multicast_group: str, port: int) -> RecorderController:
    """Create a multicast controller on a specific group and port"""
    config = RecorderConfig.from_env()
    config.multicast_group = multicast_group
    config.port = port
    return create_default_controller(config)


def create_custom_controller(
    storage: PduStorage,
    recorder: PduRecorder,
    replayer: PduReplayer,
) -> RecorderController:
    """Create a controller from caller-supplied components"""
    return RecorderController(storage, recorder, replayer)


def create_loopback_controller(
    network: LoopbackNetwork,
    multicast_group: str = DEFAULT_MULTICAST_GROUP,
    port: int = DEFAULT_PORT,
    storage: Optional[PduStorage] = None,
) -> RecorderController:
    """
    Create a controller on an in-process network

    Args:
        network: Loopback fabric shared with senders/listeners
        multicast_group: Group to record from and replay to
        port: Port to record from and replay to
        storage: Storage backend (default: in-memory)

    Returns:
        Controller whose channels never touch a real socket
    """
    storage = storage or create_storage()
    recorder = PduRecorder(storage, network.create_channel, multicast_group, port)
    replayer = PduReplayer(storage, network.create_channel, multicast_group, port)
    return RecorderController(storage, recorder, replayer)
