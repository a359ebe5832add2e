"""
Recorder Configuration

Network and storage settings for a recorder/replayer pair, with
environment-variable overrides for containerized deployments.
"""

import os
import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from .constants import (
    BUFFER_SIZE,
    DEFAULT_INTERFACE,
    DEFAULT_MULTICAST_GROUP,
    DEFAULT_MULTICAST_LOOP,
    DEFAULT_MULTICAST_TTL,
    DEFAULT_PORT,
    DEFAULT_STORAGE,
    ENV_INTERFACE,
    ENV_MULTICAST_GROUP,
    ENV_PORT,
    ENV_STORAGE,
    ENV_TTL,
)

logger = logging.getLogger("DISRec.Config")


@dataclass
class RecorderConfig:
    """Recorder/Replayer Configuration"""
    multicast_group: str = DEFAULT_MULTICAST_GROUP
    port: int = DEFAULT_PORT
    interface_address: str = DEFAULT_INTERFACE
    buffer_size: int = BUFFER_SIZE
    multicast_ttl: int = DEFAULT_MULTICAST_TTL
    multicast_loop: bool = DEFAULT_MULTICAST_LOOP
    storage: str = DEFAULT_STORAGE

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "RecorderConfig":
        """
        Build configuration from environment variables

        Args:
            environ: Mapping to read from (default: os.environ)

        Returns:
            RecorderConfig with defaults for unset variables
        """
        if environ is None:
            environ = os.environ

        config = cls()
        if environ.get(ENV_MULTICAST_GROUP):
            config.multicast_group = environ[ENV_MULTICAST_GROUP]
        if environ.get(ENV_INTERFACE):
            config.interface_address = environ[ENV_INTERFACE]
        if environ.get(ENV_STORAGE):
            config.storage = environ[ENV_STORAGE].lower()

        for name, attr in ((ENV_PORT, "port"), (ENV_TTL, "multicast_ttl")):
            value = environ.get(name)
            if not value:
                continue
            try:
                setattr(config, attr, int(value))
            except ValueError:
                logger.warning(f"[Config] Ignoring non-integer {name}={value!r}")

        return config

    def to_dict(self) -> Dict[str, Any]:
        return {
            "multicast_group": self.multicast_group,
            "port": self.port,
            "interface_address": self.interface_address,
            "buffer_size": self.buffer_size,
            "multicast_ttl": self.multicast_ttl,
            "multicast_loop": self.multicast_loop,
            "storage": self.storage,
        }
