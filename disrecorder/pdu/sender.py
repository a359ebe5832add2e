"""
PDU Sender - test traffic generator

Emits Entity State PDUs onto a channel at a fixed rate so a recording
can be exercised without a live simulation on the network.
"""

import asyncio
import logging
import random
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from .header import random_entity_state_pdu

logger = logging.getLogger("PDU.Sender")

DEFAULT_RATE = 1  # PDUs per second


class PduSender:
    """
    Periodic Entity State PDU sender

    Each PDU carries an incrementing entity number and a random
    location and orientation.
    """

    def __init__(
        self,
        channel_factory: Callable[[], Any],
        group: str,
        port: int,
        rate: float = DEFAULT_RATE,
        seed: Optional[int] = None,
    ):
        """
        Initialize PDU sender

        Args:
            channel_factory: Zero-argument callable returning a new channel
            group: Multicast group to send to
            port: Destination port
            rate: PDUs per second
            seed: Optional seed for reproducible entity data
        """
        if rate <= 0:
            raise ValueError(f"Send rate must be positive, got {rate}")

        self.group = group
        self.port = port
        self.rate = rate
        self._channel_factory = channel_factory
        self._channel = None
        self._rng = random.Random(seed)
        self._entity_counter = 1
        self._task: Optional[asyncio.Task] = None
        self._running = False

        self.pdus_sent = 0
        self.send_errors = 0
        self.started_at: Optional[datetime] = None

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> bool:
        """Start sending PDUs; returns False if already running"""
        if self._running:
            logger.warning("[Sender] PDU sender already running")
            return False

        self._channel = self._channel_factory()
        self._running = True
        self.started_at = datetime.now()
        self._task = asyncio.create_task(self._send_loop())

        logger.info(f"[Sender] Started sending PDUs to {self.group}:{self.port} at {self.rate} PDUs/second")
        return True

    async def stop(self) -> bool:
        """Stop sending PDUs; returns False if not running"""
        if not self._running:
            return False

        self._running = False

        caller_cancelled = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                caller_cancelled = asyncio.current_task().cancelling() > 0
            self._task = None

        if self._channel is not None:
            self._channel.close()
            self._channel = None

        logger.info(f"[Sender] Stopped sending PDUs ({self.pdus_sent} sent)")
        if caller_cancelled:
            raise asyncio.CancelledError()
        return True

    async def send_one(self) -> bytes:
        """Build and send one Entity State PDU"""
        data = random_entity_state_pdu(self._entity_counter, self._rng)
        await self._channel.send(data, self.group, self.port)
        logger.debug(f"[Sender] Sent PDU: entity {self._entity_counter}")
        self._entity_counter += 1
        self.pdus_sent += 1
        return data

    async def _send_loop(self) -> None:
        interval = 1.0 / self.rate
        while self._running:
            try:
                await self.send_one()
                await asyncio.sleep(interval)
            except Exception as e:
                self.send_errors += 1
                logger.error(f"[Sender] Error sending PDU: {e}")
                await asyncio.sleep(interval)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "running": self._running,
            "group": self.group,
            "port": self.port,
            "rate": self.rate,
            "pdus_sent": self.pdus_sent,
            "send_errors": self.send_errors,
            "started_at": self.started_at.isoformat() if self.started_at else None,
        }
