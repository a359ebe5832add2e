"""
PDU Recorder - capture state machine

States: IDLE -> RECORDING -> IDLE

start_recording() joins the multicast group and spawns the receive
loop. Each datagram is classified by its DIS header, timestamped,
appended to storage and handed to every registered analyzer.
Unrecognized datagrams are dropped without stopping the loop.
"""

import asyncio
import logging
import threading
import time
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from pdu import PduType, classify

from .analysis import PduAnalyzer
from .constants import DEFAULT_MULTICAST_GROUP, DEFAULT_PORT
from .models import RecordedPdu, RecorderStats, RecordingState
from .storage import PduStorage
from .transport import ChannelClosedError, ChannelFactory, PduChannel

logger = logging.getLogger("DISRec.Recorder")


def current_time_ms() -> int:
    """Wall-clock milliseconds since the epoch"""
    return int(time.time() * 1000)


class PduRecorder:
    """
    Multicast PDU recorder

    At most one exercise is recorded at a time. Analyzers may be added
    or removed while recording; a change applies from the next PDU.
    """

    def __init__(
        self,
        storage: PduStorage,
        channel_factory: ChannelFactory,
        multicast_group: str = DEFAULT_MULTICAST_GROUP,
        port: int = DEFAULT_PORT,
        classifier: Callable[[bytes], Optional[PduType]] = classify,
        clock: Callable[[], int] = current_time_ms,
    ):
        """
        Initialize PDU recorder

        Args:
            storage: Where captured PDUs are appended
            channel_factory: Builds a fresh channel for each recording
            multicast_group: Group to join
            port: Port to receive on
            classifier: Maps a datagram to its PDU type, None to drop it
            clock: Capture timestamp source (ms since epoch)
        """
        self.storage = storage
        self.multicast_group = multicast_group
        self.port = port
        self._channel_factory = channel_factory
        self._classifier = classifier
        self._clock = clock

        self._state = RecordingState.IDLE
        self._exercise_id: Optional[str] = None
        self._channel: Optional[PduChannel] = None
        self._receive_task: Optional[asyncio.Task] = None
        self._lock = asyncio.Lock()

        # Copy-on-write analyzer registry
        self._analyzers: Tuple[PduAnalyzer, ...] = ()
        self._analyzers_lock = threading.Lock()

        self.stats = RecorderStats()

    @property
    def state(self) -> RecordingState:
        return self._state

    @property
    def is_recording(self) -> bool:
        return self._state == RecordingState.RECORDING

    @property
    def current_exercise_id(self) -> Optional[str]:
        return self._exercise_id

    @property
    def analyzers(self) -> List[PduAnalyzer]:
        return list(self._analyzers)

    async def start_recording(self, exercise_id: str) -> bool:
        """
        Start recording an exercise

        Args:
            exercise_id: Exercise the captured PDUs are stored under

        Returns:
            True if recording started, False if already recording or the
            channel could not be opened
        """
        async with self._lock:
            if self._state != RecordingState.IDLE:
                logger.warning(f"[Recorder] Already recording exercise: {self._exercise_id}")
                return False

            channel = None
            try:
                channel = self._channel_factory()
                await channel.join(self.multicast_group, self.port)
            except (OSError, ValueError, OverflowError) as e:
                if channel is not None:
                    channel.close()
                logger.error(
                    f"[Recorder] Failed to start recording on {self.multicast_group}:{self.port}: {e}"
                )
                return False

            self._channel = channel
            self._exercise_id = exercise_id
            self._state = RecordingState.RECORDING
            self._receive_task = asyncio.create_task(
                self._receive_loop(channel, exercise_id),
                name=f"pdu-recorder-{exercise_id}",
            )

            self.stats.recordings_started += 1
            self.stats.started_at = datetime.now()

            logger.info(
                f"[Recorder] Started recording exercise: {exercise_id} "
                f"on {self.multicast_group}:{self.port}"
            )
            return True

    async def stop_recording(self) -> bool:
        """
        Stop the active recording

        Waits for the receive loop to exit, then leaves the group and
        closes the channel.

        Returns:
            True if a recording was stopped, False if idle
        """
        async with self._lock:
            if self._state != RecordingState.RECORDING:
                logger.warning("[Recorder] Not currently recording")
                return False

            exercise_id = self._exercise_id
            channel = self._channel
            task = self._receive_task

            caller_cancelled = False
            if task is not None:
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    caller_cancelled = asyncio.current_task().cancelling() > 0

            if channel is not None:
                try:
                    await channel.leave(self.multicast_group, self.port)
                except OSError as e:
                    logger.warning(f"[Recorder] Error leaving multicast group: {e}")
                channel.close()

            self._channel = None
            self._receive_task = None
            self._exercise_id = None
            self._state = RecordingState.IDLE

            logger.info(
                f"[Recorder] Stopped recording exercise: {exercise_id} "
                f"({self.storage.count(exercise_id)} PDUs stored)"
            )
            if caller_cancelled:
                raise asyncio.CancelledError()
            return True

    def add_analyzer(self, analyzer: PduAnalyzer) -> bool:
        """Register an analyzer; returns False if it is already registered"""
        if analyzer is None:
            return False
        with self._analyzers_lock:
            if analyzer in self._analyzers:
                logger.warning(f"[Recorder] Analyzer already registered: {analyzer.name}")
                return False
            self._analyzers = self._analyzers + (analyzer,)
        logger.info(f"[Recorder] Added analyzer: {analyzer.name}")
        return True

    def remove_analyzer(self, analyzer: PduAnalyzer) -> bool:
        """Unregister an analyzer; returns False if it was not registered"""
        if analyzer is None:
            return False
        with self._analyzers_lock:
            if analyzer not in self._analyzers:
                return False
            self._analyzers = tuple(a for a in self._analyzers if a is not analyzer)
        logger.info(f"[Recorder] Removed analyzer: {analyzer.name}")
        return True

    def remove_analyzer_by_name(self, name: str) -> bool:
        """Unregister every analyzer with the given name"""
        with self._analyzers_lock:
            remaining = tuple(a for a in self._analyzers if a.name != name)
            removed = len(remaining) != len(self._analyzers)
            self._analyzers = remaining
        if removed:
            logger.info(f"[Recorder] Removed analyzer: {name}")
        return removed

    def get_analyzer(self, name: str) -> Optional[PduAnalyzer]:
        for analyzer in self._analyzers:
            if analyzer.name == name:
                return analyzer
        return None

    async def _receive_loop(self, channel: PduChannel, exercise_id: str) -> None:
        """Receive loop for the active recording"""
        while True:
            try:
                data = await channel.receive()
            except ChannelClosedError:
                logger.info(f"[Recorder] Channel closed, receive loop for {exercise_id} exiting")
                break
            except OSError as e:
                self.stats.receive_errors += 1
                logger.error(f"[Recorder] Error receiving PDU: {e}")
                await asyncio.sleep(0.1)
                continue

            try:
                self.process_datagram(data, exercise_id)
            except Exception as e:
                self.stats.pdus_dropped += 1
                logger.error(f"[Recorder] Error processing PDU: {e}")

    def process_datagram(self, data: bytes, exercise_id: str) -> Optional[RecordedPdu]:
        """
        Classify, store and analyze one datagram

        Args:
            data: Raw datagram
            exercise_id: Exercise to store it under

        Returns:
            The stored RecordedPdu, or None if the datagram was dropped
        """
        self.stats.pdus_received += 1

        try:
            pdu_type = self._classifier(data)
        except Exception as e:
            logger.warning(f"[Recorder] Error parsing PDU data: {e}")
            pdu_type = None

        if pdu_type is None:
            self.stats.pdus_dropped += 1
            logger.debug(f"[Recorder] Dropped unrecognized datagram ({len(data)} bytes)")
            return None

        recorded_pdu = RecordedPdu(
            data=bytes(data),
            pdu_type=int(pdu_type),
            timestamp=self._clock(),
            exercise_id=exercise_id,
        )
        self.storage.store_pdu(recorded_pdu)
        self.stats.pdus_recorded += 1

        self._run_analyzers(recorded_pdu)

        logger.debug(f"[Recorder] Recorded PDU type {recorded_pdu.type_name} for exercise {exercise_id}")
        return recorded_pdu

    def _run_analyzers(self, recorded_pdu: RecordedPdu) -> None:
        for analyzer in self._analyzers:
            try:
                analyzer.analyze_pdu(recorded_pdu)
            except Exception as e:
                self.stats.analyzer_errors += 1
                logger.warning(f"[Recorder] Error in analyzer {analyzer.name}: {e}")

    def get_status(self) -> Dict[str, Any]:
        return {
            "state": self._state.value,
            "recording": self.is_recording,
            "exercise_id": self._exercise_id,
            "multicast_group": self.multicast_group,
            "port": self.port,
            "analyzers": [a.name for a in self._analyzers],
            "statistics": self.stats.to_dict(),
        }
