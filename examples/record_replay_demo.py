"""
End-to-End DIS Record and Replay Demo

Records generated Entity State traffic, replays it at several speeds
and re-records the replay, all over an in-process network.
"""

import asyncio
import sys
import os

# Add project directory to path
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "disrecorder"))

from pdu import PduSender
from recorder import LoopbackNetwork, StatisticsAnalyzer, create_loopback_controller

GROUP = "239.1.2.3"
PORT = 3000


async def demo_recording(controller, network):
    """Demo: Record generated traffic"""
    print("\n" + "=" * 70)
    print("DEMO 1: Recording Entity State PDUs")
    print("=" * 70)

    stats = StatisticsAnalyzer(log_interval=0)
    controller.add_analyzer(stats)

    sender = PduSender(network.create_channel, GROUP, PORT, rate=20, seed=7)
    await controller.start_recording("demo-exercise")
    await sender.start()
    await asyncio.sleep(1.0)
    await sender.stop()
    await controller.stop_recording()

    print(f"\n  Sent:     {sender.pdus_sent} PDUs")
    print(f"  Recorded: {stats.total_pdus} PDUs, {stats.total_bytes} bytes")
    print(f"  Span:     {stats.get_duration_ms()} ms")
    return stats


async def demo_replay(controller, speed_factor):
    """Demo: Replay at a given speed"""
    print("\n" + "=" * 70)
    print(f"DEMO: Replay at {speed_factor}x")
    print("=" * 70)

    loop = asyncio.get_running_loop()
    started_at = loop.time()
    started, done = await controller.start_replay("demo-exercise", speed_factor)
    if not started:
        print("  Replay refused")
        return

    result = await done
    print(f"\n  Status:  {result.status.value}")
    print(f"  Sent:    {result.pdus_sent}/{result.pdus_total} PDUs")
    print(f"  Elapsed: {loop.time() - started_at:.2f} s")


async def demo_stop(controller):
    """Demo: Stop a replay part way through"""
    print("\n" + "=" * 70)
    print("DEMO: Stopping a replay")
    print("=" * 70)

    await controller.start_replay("demo-exercise", 0.5)
    await asyncio.sleep(0.5)
    result = await (await controller.stop_replay())

    print(f"\n  Status: {result.status.value}")
    print(f"  Sent:   {result.pdus_sent}/{result.pdus_total} PDUs before stop")


async def demo_rerecord(controller):
    """Demo: Record the replay of an exercise"""
    print("\n" + "=" * 70)
    print("DEMO: Re-recording a replay")
    print("=" * 70)

    await controller.start_recording("demo-copy")
    _, done = await controller.start_replay("demo-exercise", 4.0)
    await done
    await asyncio.sleep(0.05)
    await controller.stop_recording()

    summary = controller.get_exercise_summary()
    for exercise_id, count in summary.items():
        print(f"  {exercise_id}: {count} PDUs")


async def main():
    """Run complete demo"""
    print("=" * 70)
    print("           DIS Recorder: Record and Replay Demo")
    print("=" * 70)
    print("\nThis demo runs entirely in-process; no multicast route is needed.")

    network = LoopbackNetwork()
    controller = create_loopback_controller(network, GROUP, PORT)

    try:
        await demo_recording(controller, network)
        await demo_replay(controller, 1.0)
        await demo_replay(controller, 4.0)
        await demo_stop(controller)
        await demo_rerecord(controller)

        print("\n" + "=" * 70)
        print("                    Demo Complete!")
        print("=" * 70)
        print("\nNext Steps:")
        print("  1. Run the shell on a real group: python disrecorder/disrecorder.py --group 239.1.2.3")
        print("  2. Or start the API: python disrecorder/disrecorder.py --api")

    finally:
        await controller.shutdown()


if __name__ == "__main__":
    asyncio.run(main())
