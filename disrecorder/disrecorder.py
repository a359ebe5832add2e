#!/usr/bin/env python3
"""
DIS Recorder - multicast PDU record and replay

Usage - interactive shell on the default exercise group:
    python3 disrecorder.py --group 239.1.2.3 --port 3000

Usage - interactive shell on an in-process network (no sockets):
    python3 disrecorder.py --loopback

Usage - REST control API:
    python3 disrecorder.py --api --api-host 0.0.0.0 --api-port 8080
"""

import asyncio
import argparse
import logging
import sys
from typing import List, Optional

from pdu import PduSender
from recorder import (
    LoopbackNetwork,
    RecorderConfig,
    RecorderController,
    ReplayResult,
    create_analyzer,
    available_analyzers,
    create_default_controller,
    create_loopback_controller,
    multicast_channel_factory,
)

HELP_TEXT = """
Commands:
  record <exercise-id>              - Start recording an exercise
  stop-record                       - Stop the active recording
  replay <exercise-id> [speed]      - Replay an exercise (default speed 1.0)
  stop-replay                       - Stop the active replay
  list                              - List recorded exercises
  clear <exercise-id>               - Clear a recorded exercise
  status                            - Show recorder and replayer status
  add-analyzer <type>               - Add an analyzer (types: {types})
  remove-analyzer <type>            - Remove an analyzer
  start-sender [rate]               - Send test Entity State PDUs (PDUs/second)
  stop-sender                       - Stop the test sender
  help                              - Show this help
  exit                              - Exit the program
"""


def setup_logging(log_level: str = "INFO"):
    """
    Setup logging configuration

    Args:
        log_level: Logging level
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


class RecorderShell:
    """Interactive command shell over a RecorderController"""

    def __init__(self, controller: RecorderController, sender_factory):
        self.controller = controller
        self._sender_factory = sender_factory
        self.sender: Optional[PduSender] = None

    async def run(self):
        loop = asyncio.get_running_loop()
        print("DIS Recorder ready. Type 'help' for commands.")

        while True:
            try:
                line = await loop.run_in_executor(None, input, "> ")
            except EOFError:
                break

            args = line.strip().split()
            if not args:
                continue

            try:
                if not await self.execute(args[0].lower(), args[1:]):
                    break
            except Exception as e:
                print(f"Error executing command: {e}")

        await self.close()

    async def execute(self, command: str, args: List[str]) -> bool:
        """Run one command; returns False when the shell should exit"""
        controller = self.controller

        if command == "exit":
            return False

        if command == "help":
            print(HELP_TEXT.format(types=", ".join(available_analyzers())))

        elif command == "record":
            if not args:
                print("Usage: record <exercise-id>")
            elif await controller.start_recording(args[0]):
                print(f"Recording started for exercise: {args[0]}")
            else:
                print("Failed to start recording")

        elif command == "stop-record":
            if await controller.stop_recording():
                print("Recording stopped")
            else:
                print("Failed to stop recording")

        elif command == "replay":
            if not args:
                print("Usage: replay <exercise-id> [speed-factor]")
                return True
            try:
                speed = float(args[1]) if len(args) > 1 else 1.0
            except ValueError:
                print(f"Invalid speed factor: {args[1]}")
                return True

            started, _ = await controller.start_replay(args[0], speed, on_complete=_print_result)
            if started:
                print(f"Replay started for exercise: {args[0]} at {speed}x speed")
            else:
                print("Failed to start replay")

        elif command == "stop-replay":
            was_replaying = controller.is_replaying
            done = await controller.stop_replay()
            if was_replaying:
                result = await done
                print(f"Replay stopped ({result.pdus_sent}/{result.pdus_total} PDUs sent)")
            else:
                print("Not currently replaying")

        elif command == "list":
            summary = controller.get_exercise_summary()
            if not summary:
                print("No recorded exercises")
            else:
                print("Recorded exercises:")
                for exercise_id, count in summary.items():
                    print(f"  {exercise_id} ({count} PDUs)")

        elif command == "clear":
            if not args:
                print("Usage: clear <exercise-id>")
            elif await controller.clear_exercise(args[0]):
                print(f"Cleared exercise: {args[0]}")
            else:
                print("Failed to clear exercise")

        elif command == "status":
            self.print_status()

        elif command == "add-analyzer":
            if not args:
                print("Usage: add-analyzer <type>")
                return True
            try:
                analyzer = create_analyzer(args[0])
            except ValueError as e:
                print(e)
                return True
            if controller.get_analyzer(analyzer.name) is not None:
                print(f"Analyzer already registered: {analyzer.name}")
                return True
            if controller.add_analyzer(analyzer):
                print(f"Added analyzer: {analyzer.name}")
            else:
                print("Failed to add analyzer")

        elif command == "remove-analyzer":
            if not args:
                print("Usage: remove-analyzer <type>")
                return True
            try:
                name = create_analyzer(args[0]).name
            except ValueError as e:
                print(e)
                return True
            if controller.remove_analyzer_by_name(name):
                print(f"Removed analyzer: {name}")
            else:
                print(f"Analyzer not registered: {name}")

        elif command == "start-sender":
            await self.start_sender(args)

        elif command == "stop-sender":
            if self.sender is not None and await self.sender.stop():
                print(f"PDU sender stopped ({self.sender.pdus_sent} PDUs sent)")
            else:
                print("PDU sender is not running")

        else:
            print(f"Unknown command: {command}. Type 'help' for available commands.")

        return True

    async def start_sender(self, args: List[str]):
        if self.sender is not None and self.sender.is_running:
            print("PDU sender is already running")
            return
        try:
            rate = float(args[0]) if args else 1.0
            self.sender = self._sender_factory(rate)
        except ValueError as e:
            print(f"Invalid rate: {e}")
            return
        await self.sender.start()
        print(f"PDU sender started at {rate} PDUs/second")

    def print_status(self):
        controller = self.controller
        print("Status:")
        if controller.is_recording:
            print(f"  Recording: exercise {controller.current_recording_exercise_id}")
        else:
            print("  Recording: idle")
        if controller.is_replaying:
            print(
                f"  Replaying: exercise {controller.current_replay_exercise_id} "
                f"at {controller.current_replay_speed_factor}x speed"
            )
        else:
            print("  Replaying: idle")
        analyzers = controller.get_analyzers()
        print(f"  Analyzers: {', '.join(a.name for a in analyzers) if analyzers else 'none'}")
        print(f"  Sender: {'running' if self.sender and self.sender.is_running else 'stopped'}")

    async def close(self):
        if self.sender is not None:
            await self.sender.stop()
        await self.controller.shutdown()


def _print_result(result: ReplayResult):
    print(
        f"\nReplay of {result.exercise_id} {result.status.value} "
        f"({result.pdus_sent}/{result.pdus_total} PDUs sent)"
    )


async def run_api_server(controller: RecorderController, args: argparse.Namespace):
    """
    Serve the REST control API until interrupted

    Args:
        controller: Controller to expose
        args: Parsed command-line arguments
    """
    import uvicorn
    from api import create_api_server

    logger = logging.getLogger("DISRec.API")

    _api, server_config = create_api_server(controller, host=args.api_host, port=args.api_port)
    server_config["log_level"] = args.log_level.lower()

    logger.info(f"Starting DIS Recorder API on http://{args.api_host}:{args.api_port}")
    logger.info(f"  Docs: http://{args.api_host}:{args.api_port}/docs")

    server = uvicorn.Server(uvicorn.Config(**server_config))
    await server.serve()


async def run(args: argparse.Namespace):
    """
    Build the controller and run the selected front end

    Args:
        args: Parsed command-line arguments
    """
    logger = logging.getLogger("DISRec")

    if args.loopback:
        network = LoopbackNetwork()
        controller = create_loopback_controller(network, args.group, args.port)
        channel_factory = network.create_channel
        logger.info(f"Using in-process loopback network for {args.group}:{args.port}")
    else:
        config = RecorderConfig.from_env()
        config.multicast_group = args.group or config.multicast_group
        config.port = args.port or config.port
        config.interface_address = args.interface or config.interface_address
        args.group, args.port = config.multicast_group, config.port
        controller = create_default_controller(config)
        channel_factory = multicast_channel_factory(config)

    if args.api:
        await run_api_server(controller, args)
        return

    shell = RecorderShell(
        controller,
        lambda rate: PduSender(channel_factory, args.group, args.port, rate=rate),
    )
    await shell.run()


def main():
    """
    Main entry point
    """
    parser = argparse.ArgumentParser(
        description="DIS Recorder - record and replay DIS PDUs on a multicast group",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:

  # Interactive shell on the default group:
  python3 disrecorder.py

  # Specific group, port and interface:
  python3 disrecorder.py --group 239.1.2.3 --port 3000 --interface 192.168.1.10

  # REST API:
  python3 disrecorder.py --api --api-port 8080

Notes:
  - Defaults may also be set with DISREC_MULTICAST_GROUP, DISREC_PORT,
    DISREC_INTERFACE, DISREC_TTL and DISREC_STORAGE
  - --loopback runs everything in-process; start-sender then feeds the recorder
        """
    )

    parser.add_argument("--log-level", default="INFO",
                       choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                       help="Log level (default: INFO)")

    network_group = parser.add_argument_group('Network Options')
    network_group.add_argument("--group", default=None,
                              help="Multicast group (default: 239.1.2.3)")
    network_group.add_argument("--port", type=int, default=None,
                              help="UDP port (default: 3000)")
    network_group.add_argument("--interface", default=None,
                              help="Local interface address for multicast (default: 0.0.0.0)")
    network_group.add_argument("--loopback", action="store_true",
                              help="Use an in-process network instead of sockets")

    api_group = parser.add_argument_group('API Options')
    api_group.add_argument("--api", action="store_true",
                          help="Serve the REST control API instead of the interactive shell")
    api_group.add_argument("--api-host", default="0.0.0.0",
                          help="API host to bind to (default: 0.0.0.0)")
    api_group.add_argument("--api-port", type=int, default=8080,
                          help="API port (default: 8080)")

    args = parser.parse_args()

    setup_logging(args.log_level)

    if args.loopback:
        defaults = RecorderConfig()
        args.group = args.group or defaults.multicast_group
        args.port = args.port or defaults.port

    try:
        asyncio.run(run(args))
    except KeyboardInterrupt:
        print("\nShutting down...")
        sys.exit(0)
    except Exception as e:
        print(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
