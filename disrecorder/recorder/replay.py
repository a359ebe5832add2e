"""
PDU Replayer - timed playback state machine

States: IDLE -> REPLAYING (-> STOPPING) -> IDLE

Playback re-anchors every PDU to the wall-clock start of the replay:

    target_offset = (timestamp[i] - timestamp[0]) / speed_factor
    actual_offset = now - replay_start

and waits only for the difference, so per-PDU send time never
accumulates drift. The wait is the only suspension point and is cut
short by stop_replay().

Every run resolves exactly one completion future with a ReplayResult,
whether it drained, was stopped or hit a network error. Channel
release and the return to IDLE happen before the future resolves.
"""

import asyncio
import logging
import math
from datetime import datetime
from typing import Any, Dict, List, Optional

from .constants import DEFAULT_MULTICAST_GROUP, DEFAULT_PORT
from .models import RecordedPdu, ReplayerStats, ReplayResult, ReplayState, ReplayStatus
from .storage import PduStorage
from .transport import ChannelFactory, PduChannel

logger = logging.getLogger("DISRec.Replayer")


def compute_target_offset(first_timestamp: int, timestamp: int, speed_factor: float) -> float:
    """Seconds after replay start at which a PDU is due"""
    return (timestamp - first_timestamp) / speed_factor / 1000.0


class PduReplayer:
    """
    Multicast PDU replayer

    At most one exercise is replayed at a time. Replay is independent
    of recording; both may run together.
    """

    def __init__(
        self,
        storage: PduStorage,
        channel_factory: ChannelFactory,
        multicast_group: str = DEFAULT_MULTICAST_GROUP,
        port: int = DEFAULT_PORT,
    ):
        """
        Initialize PDU replayer

        Args:
            storage: Source of recorded PDUs
            channel_factory: Builds a fresh channel for each replay
            multicast_group: Group to send to
            port: Destination port
        """
        self.storage = storage
        self.multicast_group = multicast_group
        self.port = port
        self._channel_factory = channel_factory

        self._state = ReplayState.IDLE
        self._exercise_id: Optional[str] = None
        self._speed_factor = 0.0
        self._future: Optional[asyncio.Future] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._replay_task: Optional[asyncio.Task] = None
        self._last_result: Optional[ReplayResult] = None
        self._lock = asyncio.Lock()

        self.stats = ReplayerStats()

    @property
    def state(self) -> ReplayState:
        return self._state

    @property
    def is_replaying(self) -> bool:
        return self._state != ReplayState.IDLE

    @property
    def current_exercise_id(self) -> Optional[str]:
        return self._exercise_id

    @property
    def current_speed_factor(self) -> float:
        return self._speed_factor

    @property
    def last_result(self) -> Optional[ReplayResult]:
        return self._last_result

    async def start_replay(self, exercise_id: str, speed_factor: float) -> asyncio.Future:
        """
        Start replaying an exercise

        Args:
            exercise_id: Exercise to replay
            speed_factor: Playback rate (2.0 = twice as fast)

        Returns:
            Completion future resolving to a ReplayResult. If a replay is
            already running, its future is returned and nothing new starts.

        Raises:
            ValueError: speed_factor is not a positive finite number
        """
        if not _valid_speed_factor(speed_factor):
            raise ValueError(f"Speed factor must be positive, got {speed_factor!r}")

        async with self._lock:
            if self._state != ReplayState.IDLE and self._future is not None:
                logger.warning(f"[Replayer] Already replaying exercise: {self._exercise_id}")
                return self._future

            loop = asyncio.get_running_loop()
            future = loop.create_future()
            self._future = future

            pdus = self.storage.get_pdus_for_exercise(exercise_id)
            if not pdus:
                logger.warning(f"[Replayer] No PDUs found for exercise: {exercise_id}")
                self._finish(future, ReplayResult(exercise_id, ReplayStatus.EMPTY))
                return future

            try:
                channel = self._channel_factory()
            except OSError as e:
                logger.error(f"[Replayer] Failed to start replay: {e}")
                self._finish(future, ReplayResult(
                    exercise_id, ReplayStatus.FAILED, pdus_total=len(pdus), error=str(e)
                ))
                return future

            stop_event = asyncio.Event()
            self._stop_event = stop_event
            self._exercise_id = exercise_id
            self._speed_factor = float(speed_factor)
            self._state = ReplayState.REPLAYING
            self._replay_task = asyncio.create_task(
                self._replay_exercise(exercise_id, float(speed_factor), pdus, channel, stop_event, future),
                name=f"pdu-replayer-{exercise_id}",
            )

            self.stats.replays_started += 1
            self.stats.started_at = datetime.now()

            logger.info(
                f"[Replayer] Started replaying exercise: {exercise_id} at {speed_factor}x speed "
                f"on {self.multicast_group}:{self.port} ({len(pdus)} PDUs)"
            )
            return future

    def stop_replay(self) -> asyncio.Future:
        """
        Request the active replay to stop

        Does not wait. The returned future is the run's completion
        future and resolves once the playback task has exited. When no
        replay is running, the most recent run's (resolved) future is
        returned, or a resolved STOPPED result if nothing ever ran.
        """
        if self._state == ReplayState.IDLE or self._future is None or self._future.done():
            if self._future is not None and self._future.done():
                return self._future
            future = asyncio.get_running_loop().create_future()
            future.set_result(ReplayResult(None, ReplayStatus.STOPPED))
            return future

        if self._state == ReplayState.REPLAYING:
            logger.info(f"[Replayer] Stopping replay of exercise: {self._exercise_id}")
            self._state = ReplayState.STOPPING
            self._stop_event.set()

        return self._future

    async def shutdown(self) -> Optional[ReplayResult]:
        """Stop any active replay and wait for it to finish"""
        if not self.is_replaying:
            return None
        return await self.stop_replay()

    async def _replay_exercise(
        self,
        exercise_id: str,
        speed_factor: float,
        pdus: List[RecordedPdu],
        channel: PduChannel,
        stop_event: asyncio.Event,
        future: asyncio.Future,
    ) -> None:
        """Playback task for one replay run"""
        loop = asyncio.get_running_loop()
        sent = 0
        status = ReplayStatus.COMPLETED
        error: Optional[str] = None

        try:
            start_time = loop.time()
            first_timestamp = pdus[0].timestamp

            for recorded_pdu in pdus:
                if stop_event.is_set():
                    status = ReplayStatus.STOPPED
                    break

                target_offset = compute_target_offset(first_timestamp, recorded_pdu.timestamp, speed_factor)
                actual_offset = loop.time() - start_time
                if target_offset > actual_offset:
                    try:
                        await asyncio.wait_for(stop_event.wait(), timeout=target_offset - actual_offset)
                    except asyncio.TimeoutError:
                        pass

                if stop_event.is_set():
                    logger.info(f"[Replayer] Replay stopped for exercise: {exercise_id}")
                    status = ReplayStatus.STOPPED
                    break

                await channel.send(recorded_pdu.data, self.multicast_group, self.port)
                sent += 1
                self.stats.pdus_sent += 1
                logger.debug(f"[Replayer] Replayed PDU type {recorded_pdu.type_name} for exercise {exercise_id}")

        except asyncio.CancelledError:
            status = ReplayStatus.STOPPED
            raise
        except OSError as e:
            if stop_event.is_set():
                status = ReplayStatus.STOPPED
            else:
                status = ReplayStatus.FAILED
                error = str(e)
                logger.error(f"[Replayer] Error during replay of {exercise_id}: {e}")
        except Exception as e:
            status = ReplayStatus.FAILED
            error = str(e)
            logger.error(f"[Replayer] Unexpected error during replay of {exercise_id}: {e}")
        finally:
            channel.close()
            self._exercise_id = None
            self._speed_factor = 0.0
            self._stop_event = None
            self._replay_task = None
            self._state = ReplayState.IDLE

            logger.info(
                f"[Replayer] Finished replaying exercise: {exercise_id} "
                f"({status.value}, {sent}/{len(pdus)} PDUs sent)"
            )
            self._finish(future, ReplayResult(
                exercise_id, status, pdus_sent=sent, pdus_total=len(pdus), error=error
            ))

    def _finish(self, future: asyncio.Future, result: ReplayResult) -> None:
        """Record a run's result and resolve its future once"""
        if future.done():
            return
        self._last_result = result
        self.stats.record(result)
        future.set_result(result)

    def get_status(self) -> Dict[str, Any]:
        return {
            "state": self._state.value,
            "replaying": self.is_replaying,
            "exercise_id": self._exercise_id,
            "speed_factor": self._speed_factor,
            "multicast_group": self.multicast_group,
            "port": self.port,
            "last_result": self._last_result.to_dict() if self._last_result else None,
            "statistics": self.stats.to_dict(),
        }


def _valid_speed_factor(speed_factor: Any) -> bool:
    if isinstance(speed_factor, bool) or not isinstance(speed_factor, (int, float)):
        return False
    return math.isfinite(speed_factor) and speed_factor > 0
