"""
Tests for the recorder controller.

Tests cover:
- Argument validation
- One recording and one replay at a time
- Completion callbacks
- Record then replay over the loopback network
"""

import asyncio

import pytest

from pdu import PduType
from recorder import (
    ReplayStatus,
    StatisticsAnalyzer,
    create_custom_controller,
    create_loopback_controller,
    PduRecorder,
    PduReplayer,
)

from .conftest import GROUP, PORT, make_datagram, make_recorded


@pytest.fixture
def controller(network, storage):
    return create_loopback_controller(network, GROUP, PORT, storage=storage)


async def settle():
    await asyncio.sleep(0.01)


class TestRecordingControl:
    """Tests for recording through the controller."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("exercise_id", ["", "   ", None])
    async def test_invalid_exercise_id(self, controller, exercise_id):
        assert not await controller.start_recording(exercise_id)
        assert not controller.is_recording

    @pytest.mark.asyncio
    async def test_start_stop(self, controller):
        assert await controller.start_recording("alpha")
        assert controller.is_recording
        assert controller.current_recording_exercise_id == "alpha"

        assert await controller.stop_recording()
        assert not controller.is_recording
        assert controller.current_recording_exercise_id is None

    @pytest.mark.asyncio
    async def test_second_recording_refused(self, controller):
        await controller.start_recording("alpha")

        assert not await controller.start_recording("bravo")
        assert controller.current_recording_exercise_id == "alpha"

        await controller.stop_recording()

    @pytest.mark.asyncio
    async def test_stop_while_idle(self, controller):
        assert not await controller.stop_recording()


class TestReplayControl:
    """Tests for replay through the controller."""

    @pytest.mark.asyncio
    async def test_invalid_arguments(self, controller, storage):
        storage.store_pdu(make_recorded("alpha", 0))

        assert await controller.start_replay("", 1.0) == (False, None)
        assert await controller.start_replay("alpha", 0) == (False, None)
        assert await controller.start_replay("alpha", -2.0) == (False, None)
        assert not controller.is_replaying

    @pytest.mark.asyncio
    async def test_replay_completes(self, controller, storage, network):
        for ts in (0, 10, 20):
            storage.store_pdu(make_recorded("alpha", ts))

        started, done = await controller.start_replay("alpha", 2.0)
        assert started
        assert controller.is_replaying
        assert controller.current_replay_exercise_id == "alpha"
        assert controller.current_replay_speed_factor == 2.0

        result = await done
        assert result.status == ReplayStatus.COMPLETED
        assert len(network.sent) == 3
        assert not controller.is_replaying

    @pytest.mark.asyncio
    async def test_second_replay_refused(self, controller, storage):
        storage.store_pdu(make_recorded("alpha", 0))
        storage.store_pdu(make_recorded("alpha", 5000))

        started, done = await controller.start_replay("alpha", 1.0)
        assert started

        assert await controller.start_replay("alpha", 1.0) == (False, None)
        assert controller.current_replay_exercise_id == "alpha"

        await controller.stop_replay()
        assert (await done).status == ReplayStatus.STOPPED

    @pytest.mark.asyncio
    async def test_concurrent_starts_one_wins(self, controller, storage):
        """Of two simultaneous starts exactly one succeeds."""
        storage.store_pdu(make_recorded("alpha", 0))
        storage.store_pdu(make_recorded("alpha", 5000))

        outcomes = await asyncio.gather(
            controller.start_replay("alpha", 1.0),
            controller.start_replay("alpha", 1.0),
        )

        assert sorted(started for started, _ in outcomes) == [False, True]
        await controller.stop_replay()

    @pytest.mark.asyncio
    async def test_empty_exercise(self, controller):
        """Replaying an unknown exercise succeeds with nothing sent."""
        started, done = await controller.start_replay("missing", 1.0)

        assert started
        assert done.done()
        assert done.result().status == ReplayStatus.EMPTY

    @pytest.mark.asyncio
    async def test_failed_start_reported(self, storage):
        def factory():
            raise OSError("no route")

        recorder = PduRecorder(storage, factory, GROUP, PORT)
        replayer = PduReplayer(storage, factory, GROUP, PORT)
        controller = create_custom_controller(storage, recorder, replayer)
        storage.store_pdu(make_recorded("alpha", 0))

        started, done = await controller.start_replay("alpha", 1.0)

        assert not started
        assert done.result().status == ReplayStatus.FAILED

    @pytest.mark.asyncio
    async def test_on_complete_called_once(self, controller, storage):
        storage.store_pdu(make_recorded("alpha", 0))
        storage.store_pdu(make_recorded("alpha", 10))
        results = []

        _, done = await controller.start_replay("alpha", 1.0, on_complete=results.append)
        await done
        await settle()

        assert len(results) == 1
        assert results[0].status == ReplayStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_stop_callback(self, controller, storage):
        storage.store_pdu(make_recorded("alpha", 0))
        storage.store_pdu(make_recorded("alpha", 5000))
        results = []

        await controller.start_replay("alpha", 1.0)
        done = await controller.stop_replay(on_stopped=results.append)
        await done
        await settle()

        assert [r.status for r in results] == [ReplayStatus.STOPPED]

    @pytest.mark.asyncio
    async def test_callback_error_is_contained(self, controller, storage):
        def broken(result):
            raise RuntimeError("callback bug")

        storage.store_pdu(make_recorded("alpha", 0))
        _, done = await controller.start_replay("alpha", 1.0, on_complete=broken)

        result = await done
        await settle()
        assert result.status == ReplayStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_stop_while_idle(self, controller):
        done = await controller.stop_replay()
        assert done.done()
        assert done.result().success


class TestExerciseManagement:
    """Tests for exercise listing and clearing."""

    @pytest.mark.asyncio
    async def test_summary_and_clear(self, controller, storage):
        storage.store_pdu(make_recorded("alpha", 0))
        storage.store_pdu(make_recorded("alpha", 1))
        storage.store_pdu(make_recorded("bravo", 0))

        assert controller.get_exercise_ids() == {"alpha", "bravo"}
        assert controller.get_exercise_summary() == {"alpha": 2, "bravo": 1}

        assert await controller.clear_exercise("alpha")
        assert controller.get_exercise_summary() == {"bravo": 1}

    @pytest.mark.asyncio
    async def test_clear_invalid_id(self, controller):
        assert not await controller.clear_exercise("")

    def test_analyzers(self, controller):
        analyzer = StatisticsAnalyzer()

        assert controller.add_analyzer(analyzer)
        assert not controller.add_analyzer(analyzer)
        assert not controller.add_analyzer(None)
        assert controller.get_analyzers() == [analyzer]
        assert controller.get_analyzer("Statistics Analyzer") is analyzer
        assert controller.get_analyzer("missing") is None
        assert controller.remove_analyzer(analyzer)
        assert not controller.remove_analyzer(analyzer)

    def test_status(self, controller, storage):
        storage.store_pdu(make_recorded("alpha", 0))
        status = controller.get_status()

        assert status["recording"]["state"] == "idle"
        assert status["replay"]["state"] == "idle"
        assert status["exercises"] == {"alpha": 1}


class TestRecordAndReplay:
    """End-to-end record then replay over the loopback network."""

    @pytest.mark.asyncio
    async def test_replay_is_heard_by_recorder(self, controller, network, storage):
        """A replayed exercise can be re-recorded byte for byte."""
        await controller.start_recording("alpha")
        for pdu_type in (PduType.ENTITY_STATE, PduType.FIRE, PduType.DETONATION):
            network.deliver(make_datagram(pdu_type), GROUP, PORT)
        await settle()
        await controller.stop_recording()

        await controller.start_recording("bravo")
        _, done = await controller.start_replay("alpha", 5.0)
        result = await done
        await settle()
        await controller.stop_recording()

        assert result.pdus_sent == 3
        original = [p.data for p in storage.get_pdus_for_exercise("alpha")]
        copy = [p.data for p in storage.get_pdus_for_exercise("bravo")]
        assert copy == original

    @pytest.mark.asyncio
    async def test_shutdown_stops_everything(self, controller, storage):
        storage.store_pdu(make_recorded("alpha", 0))
        storage.store_pdu(make_recorded("alpha", 5000))
        await controller.start_recording("bravo")
        await controller.start_replay("alpha", 1.0)

        await controller.shutdown()

        assert not controller.is_recording
        assert not controller.is_replaying
