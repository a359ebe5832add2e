"""
Recorder Controller

Single entry point for front ends. Validates arguments, enforces one
recording and one replay at a time, and delegates to the recorder,
replayer and storage. Every operation returns a definite result and
logs the reason when it refuses.
"""

import asyncio
import logging
import math
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from .analysis import PduAnalyzer
from .constants import DEFAULT_SPEED_FACTOR
from .models import ReplayResult
from .recording import PduRecorder
from .replay import PduReplayer
from .storage import PduStorage

logger = logging.getLogger("DISRec.Controller")

ReplayCallback = Callable[[ReplayResult], None]


class RecorderController:
    """Controller for PDU recording and replay"""

    def __init__(self, storage: PduStorage, recorder: PduRecorder, replayer: PduReplayer):
        self.storage = storage
        self.recorder = recorder
        self.replayer = replayer
        self._replay_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    async def start_recording(self, exercise_id: str) -> bool:
        """Start recording PDUs for an exercise"""
        if not _valid_exercise_id(exercise_id):
            logger.error("[Controller] Exercise ID cannot be empty")
            return False

        if self.recorder.is_recording:
            logger.warning(f"[Controller] Already recording exercise: {self.recorder.current_exercise_id}")
            return False

        try:
            started = await self.recorder.start_recording(exercise_id)
        except Exception as e:
            logger.error(f"[Controller] Failed to start recording: {e}")
            return False

        if started:
            logger.info(f"[Controller] Started recording exercise: {exercise_id}")
        return started

    async def stop_recording(self) -> bool:
        """Stop the active recording"""
        if not self.recorder.is_recording:
            logger.warning("[Controller] Not currently recording")
            return False

        exercise_id = self.recorder.current_exercise_id
        try:
            stopped = await self.recorder.stop_recording()
        except Exception as e:
            logger.error(f"[Controller] Failed to stop recording: {e}")
            return False

        if stopped:
            logger.info(f"[Controller] Stopped recording exercise: {exercise_id}")
        return stopped

    # ------------------------------------------------------------------
    # Replay
    # ------------------------------------------------------------------

    async def start_replay(
        self,
        exercise_id: str,
        speed_factor: float = DEFAULT_SPEED_FACTOR,
        on_complete: Optional[ReplayCallback] = None,
    ) -> Tuple[bool, Optional[asyncio.Future]]:
        """
        Start replaying an exercise

        Args:
            exercise_id: Exercise to replay
            speed_factor: Playback rate, must be positive
            on_complete: Called with the ReplayResult when the run ends

        Returns:
            (started, completion future). The future is None when the
            request was refused before reaching the replayer.
        """
        if not _valid_exercise_id(exercise_id):
            logger.error("[Controller] Exercise ID cannot be empty")
            return False, None

        if not _valid_speed_factor(speed_factor):
            logger.error(f"[Controller] Speed factor must be positive, got {speed_factor!r}")
            return False, None

        async with self._replay_lock:
            if self.replayer.is_replaying:
                logger.warning(f"[Controller] Already replaying exercise: {self.replayer.current_exercise_id}")
                return False, None

            try:
                future = await self.replayer.start_replay(exercise_id, speed_factor)
            except Exception as e:
                logger.error(f"[Controller] Failed to start replay: {e}")
                return False, None

        if on_complete is not None:
            future.add_done_callback(_result_callback(on_complete))

        if future.done() and not future.result().success:
            logger.error(f"[Controller] Replay of {exercise_id} failed to start: {future.result().error}")
            return False, future

        logger.info(f"[Controller] Started replaying exercise: {exercise_id} at {speed_factor}x speed")
        return True, future

    async def stop_replay(self, on_stopped: Optional[ReplayCallback] = None) -> asyncio.Future:
        """
        Stop the active replay

        Returns at once with the replay's completion future. When no
        replay is running the future is already resolved.
        """
        if not self.replayer.is_replaying:
            logger.warning("[Controller] Not currently replaying")
            future = self.replayer.stop_replay()
        else:
            exercise_id = self.replayer.current_exercise_id
            logger.info(f"[Controller] Initiating stop of replay for exercise: {exercise_id}")
            future = self.replayer.stop_replay()

        if on_stopped is not None:
            future.add_done_callback(_result_callback(on_stopped))
        return future

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    async def clear_exercise(self, exercise_id: str) -> bool:
        """Remove all PDUs recorded for an exercise"""
        if not _valid_exercise_id(exercise_id):
            logger.error("[Controller] Exercise ID cannot be empty")
            return False

        try:
            self.storage.clear_exercise(exercise_id)
        except Exception as e:
            logger.error(f"[Controller] Failed to clear exercise: {e}")
            return False

        logger.info(f"[Controller] Cleared exercise: {exercise_id}")
        return True

    def get_exercise_ids(self) -> Set[str]:
        return self.storage.get_exercise_ids()

    def get_exercise_summary(self) -> Dict[str, int]:
        """PDU count per exercise"""
        return {exercise_id: self.storage.count(exercise_id) for exercise_id in sorted(self.get_exercise_ids())}

    # ------------------------------------------------------------------
    # Analyzers
    # ------------------------------------------------------------------

    def add_analyzer(self, analyzer: PduAnalyzer) -> bool:
        if analyzer is None:
            logger.error("[Controller] Analyzer cannot be None")
            return False
        return self.recorder.add_analyzer(analyzer)

    def remove_analyzer(self, analyzer: PduAnalyzer) -> bool:
        if analyzer is None:
            logger.error("[Controller] Analyzer cannot be None")
            return False
        removed = self.recorder.remove_analyzer(analyzer)
        if not removed:
            logger.warning(f"[Controller] Analyzer not registered: {analyzer.name}")
        return removed

    def remove_analyzer_by_name(self, name: str) -> bool:
        removed = self.recorder.remove_analyzer_by_name(name)
        if not removed:
            logger.warning(f"[Controller] Analyzer not registered: {name}")
        return removed

    def get_analyzers(self) -> List[PduAnalyzer]:
        return self.recorder.analyzers

    def get_analyzer(self, name: str) -> Optional[PduAnalyzer]:
        return self.recorder.get_analyzer(name)

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    @property
    def is_recording(self) -> bool:
        return self.recorder.is_recording

    @property
    def current_recording_exercise_id(self) -> Optional[str]:
        return self.recorder.current_exercise_id

    @property
    def is_replaying(self) -> bool:
        return self.replayer.is_replaying

    @property
    def current_replay_exercise_id(self) -> Optional[str]:
        return self.replayer.current_exercise_id

    @property
    def current_replay_speed_factor(self) -> float:
        return self.replayer.current_speed_factor

    def get_status(self) -> Dict[str, Any]:
        return {
            "recording": self.recorder.get_status(),
            "replay": self.replayer.get_status(),
            "exercises": self.get_exercise_summary(),
        }

    async def shutdown(self) -> None:
        """Stop any active recording and replay"""
        if self.recorder.is_recording:
            await self.stop_recording()
        if self.replayer.is_replaying:
            await self.replayer.shutdown()


def _valid_exercise_id(exercise_id: Any) -> bool:
    return isinstance(exercise_id, str) and bool(exercise_id.strip())


def _valid_speed_factor(speed_factor: Any) -> bool:
    if isinstance(speed_factor, bool) or not isinstance(speed_factor, (int, float)):
        return False
    return math.isfinite(speed_factor) and speed_factor > 0


def _result_callback(callback: ReplayCallback) -> Callable[[asyncio.Future], None]:
    def done(future: asyncio.Future) -> None:
        try:
            callback(future.result())
        except Exception as e:
            logger.error(f"[Controller] Replay callback error: {e}")

    return done
