"""
PDU Transport

The recorder and replayer reach the network only through PduChannel:
join/leave a group, receive a datagram, send a datagram. Two channels
are provided:

- MulticastChannel: UDP multicast socket driven by the asyncio loop
- LoopbackChannel: in-process multicast fabric for tests and demos
"""

import asyncio
import logging
import socket
import struct
import time
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Callable, Dict, List, Optional, Set, Tuple

from .config import RecorderConfig
from .constants import BUFFER_SIZE, DEFAULT_INTERFACE, DEFAULT_MULTICAST_LOOP, DEFAULT_MULTICAST_TTL

logger = logging.getLogger("DISRec.Transport")


class ChannelClosedError(ConnectionError):
    """Raised by receive/send once a channel has been closed"""


class PduChannel(ABC):
    """Datagram channel used by the recorder and replayer"""

    @abstractmethod
    async def join(self, group: str, port: int) -> None:
        """Join a multicast group and start receiving on port"""

    @abstractmethod
    async def leave(self, group: str, port: int) -> None:
        """Leave a multicast group"""

    @abstractmethod
    async def receive(self) -> bytes:
        """Wait for the next datagram; raises ChannelClosedError once closed"""

    @abstractmethod
    async def send(self, data: bytes, group: str, port: int) -> None:
        """Send one datagram to group:port"""

    @abstractmethod
    def close(self) -> None:
        """Release the channel; idempotent"""

    @property
    @abstractmethod
    def closed(self) -> bool:
        """True once close() has been called"""


ChannelFactory = Callable[[], PduChannel]


class MulticastChannel(PduChannel):
    """
    UDP multicast channel

    The socket is created on first use: bound to the group port by
    join(), unbound when the channel only sends.
    """

    def __init__(
        self,
        interface_address: str = DEFAULT_INTERFACE,
        buffer_size: int = BUFFER_SIZE,
        ttl: int = DEFAULT_MULTICAST_TTL,
        loopback: bool = DEFAULT_MULTICAST_LOOP,
    ):
        self.interface_address = interface_address
        self.buffer_size = buffer_size
        self.ttl = ttl
        self.loopback = loopback
        self._socket: Optional[socket.socket] = None
        self._memberships: Set[Tuple[str, int]] = set()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _open_socket(self, bind_port: Optional[int] = None) -> socket.socket:
        if self._closed:
            raise ChannelClosedError("Channel is closed")
        if self._socket is not None:
            return self._socket

        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            if hasattr(socket, "SO_REUSEPORT"):
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEPORT, 1)

            sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_TTL, self.ttl)
            sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_LOOP, 1 if self.loopback else 0)
            if self.interface_address != DEFAULT_INTERFACE:
                sock.setsockopt(
                    socket.IPPROTO_IP,
                    socket.IP_MULTICAST_IF,
                    socket.inet_aton(self.interface_address),
                )

            if bind_port is not None:
                sock.bind(("", bind_port))
            sock.setblocking(False)
        except Exception:
            sock.close()
            raise

        self._socket = sock
        return sock

    def _membership_request(self, group: str) -> bytes:
        return struct.pack(
            "4s4s",
            socket.inet_aton(group),
            socket.inet_aton(self.interface_address),
        )

    async def join(self, group: str, port: int) -> None:
        sock = self._open_socket(bind_port=port)
        sock.setsockopt(socket.IPPROTO_IP, socket.IP_ADD_MEMBERSHIP, self._membership_request(group))
        self._memberships.add((group, port))
        logger.info(f"[Transport] Joined {group}:{port} on {self.interface_address}")

    async def leave(self, group: str, port: int) -> None:
        if self._socket is None or (group, port) not in self._memberships:
            return
        self._memberships.discard((group, port))
        self._socket.setsockopt(socket.IPPROTO_IP, socket.IP_DROP_MEMBERSHIP, self._membership_request(group))
        logger.info(f"[Transport] Left {group}:{port}")

    async def receive(self) -> bytes:
        if self._socket is None:
            raise ChannelClosedError("Channel has not joined a group")
        loop = asyncio.get_running_loop()
        try:
            data, _addr = await loop.sock_recvfrom(self._socket, self.buffer_size)
        except OSError as e:
            if self._closed:
                raise ChannelClosedError("Channel closed during receive") from e
            raise
        return data

    async def send(self, data: bytes, group: str, port: int) -> None:
        sock = self._open_socket()
        loop = asyncio.get_running_loop()
        await loop.sock_sendto(sock, data, (group, port))

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._memberships.clear()
        if self._socket is not None:
            self._socket.close()
            self._socket = None


_CLOSED = object()


class LoopbackNetwork:
    """
    In-process multicast fabric

    Every datagram sent to (group, port) is delivered to each channel
    joined to it, the sender included. The send log keeps the loop
    time of every datagram for timing checks.
    """

    def __init__(self):
        self._members: Dict[Tuple[str, int], Set["LoopbackChannel"]] = defaultdict(set)
        self.sent: List[Tuple[float, bytes, str, int]] = []

    def create_channel(self) -> "LoopbackChannel":
        return LoopbackChannel(self)

    def _register(self, channel: "LoopbackChannel", group: str, port: int) -> None:
        self._members[(group, port)].add(channel)

    def _unregister(self, channel: "LoopbackChannel", group: str, port: int) -> None:
        members = self._members.get((group, port))
        if members is not None:
            members.discard(channel)
            if not members:
                del self._members[(group, port)]

    def member_count(self, group: str, port: int) -> int:
        return len(self._members.get((group, port), ()))

    def deliver(self, data: bytes, group: str, port: int) -> int:
        """Fan a datagram out to the group; returns the receiver count"""
        try:
            now = asyncio.get_running_loop().time()
        except RuntimeError:
            now = time.monotonic()
        self.sent.append((now, data, group, port))

        members = list(self._members.get((group, port), ()))
        for channel in members:
            channel._enqueue(data)
        return len(members)

    def payloads(self, group: Optional[str] = None, port: Optional[int] = None) -> List[bytes]:
        return [
            data for _, data, g, p in self.sent
            if (group is None or g == group) and (port is None or p == port)
        ]


class LoopbackChannel(PduChannel):
    """Channel attached to a LoopbackNetwork"""

    def __init__(self, network: LoopbackNetwork):
        self.network = network
        self._queue: asyncio.Queue = asyncio.Queue()
        self._memberships: Set[Tuple[str, int]] = set()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def join(self, group: str, port: int) -> None:
        if self._closed:
            raise ChannelClosedError("Channel is closed")
        self.network._register(self, group, port)
        self._memberships.add((group, port))

    async def leave(self, group: str, port: int) -> None:
        self.network._unregister(self, group, port)
        self._memberships.discard((group, port))

    async def receive(self) -> bytes:
        if self._closed:
            raise ChannelClosedError("Channel is closed")
        item = await self._queue.get()
        if item is _CLOSED:
            raise ChannelClosedError("Channel closed during receive")
        return item

    async def send(self, data: bytes, group: str, port: int) -> None:
        if self._closed:
            raise ChannelClosedError("Channel is closed")
        self.network.deliver(data, group, port)

    def _enqueue(self, data: bytes) -> None:
        if not self._closed:
            self._queue.put_nowait(data)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for group, port in list(self._memberships):
            self.network._unregister(self, group, port)
        self._memberships.clear()
        self._queue.put_nowait(_CLOSED)


def multicast_channel_factory(config: Optional[RecorderConfig] = None) -> ChannelFactory:
    """Channel factory building MulticastChannels from a RecorderConfig"""
    config = config or RecorderConfig()

    def factory() -> PduChannel:
        return MulticastChannel(
            interface_address=config.interface_address,
            buffer_size=config.buffer_size,
            ttl=config.multicast_ttl,
            loopback=config.multicast_loop,
        )

    return factory
