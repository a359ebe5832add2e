"""
Tests for the Entity State PDU test sender.
"""

import asyncio

import pytest

from pdu import ENTITY_STATE_PDU_LEN, PduSender, PduType, classify

from .conftest import GROUP, PORT


class TestPduSender:
    """Tests for periodic PDU sending."""

    def test_rate_must_be_positive(self, network):
        with pytest.raises(ValueError):
            PduSender(network.create_channel, GROUP, PORT, rate=0)

    @pytest.mark.asyncio
    async def test_sends_entity_state(self, network):
        listener = network.create_channel()
        await listener.join(GROUP, PORT)
        sender = PduSender(network.create_channel, GROUP, PORT, rate=50, seed=1)

        assert await sender.start()
        data = await asyncio.wait_for(listener.receive(), timeout=1.0)
        assert await sender.stop()

        assert classify(data) is PduType.ENTITY_STATE
        assert len(data) == ENTITY_STATE_PDU_LEN
        assert sender.pdus_sent >= 1
        assert not sender.is_running
        listener.close()

    @pytest.mark.asyncio
    async def test_entity_ids_increment(self, network):
        sender = PduSender(network.create_channel, GROUP, PORT, rate=100)
        await sender.start()
        await asyncio.sleep(0.05)
        await sender.stop()

        ids = [int.from_bytes(data[16:18], "big") for data in network.payloads(GROUP, PORT)]
        assert ids == list(range(1, len(ids) + 1))

    @pytest.mark.asyncio
    async def test_start_twice(self, network):
        sender = PduSender(network.create_channel, GROUP, PORT, rate=10)
        await sender.start()
        assert not await sender.start()
        await sender.stop()
        assert not await sender.stop()

    @pytest.mark.asyncio
    async def test_cancelled_stop_propagates(self, network):
        """Cancelling the caller of stop is not swallowed."""
        sender = PduSender(network.create_channel, GROUP, PORT, rate=10)
        await sender.start()
        await asyncio.sleep(0)

        stopping = asyncio.create_task(sender.stop())
        await asyncio.sleep(0)
        stopping.cancel()

        with pytest.raises(asyncio.CancelledError):
            await stopping
        assert not sender.is_running
