"""Command-line interface for st24-bridge."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from . import constants
from .app import ST24BridgeApp
from .config import BridgeConfig, load_config, save_config
from .connection import LinkError
from .engine import TrackerEngine
from .logging import configure_logging

LOGGER = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=constants.APP_NAME, description="ST24 antenna tracker serial bridge"
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=constants.DEFAULT_CONFIG_PATH,
        help=f"Path to configuration file (default: {constants.DEFAULT_CONFIG_PATH})",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("start", help="Start the bridge and its HTTP API")
    subparsers.add_parser("ports", help="List candidate serial devices")

    poll_parser = subparsers.add_parser(
        "poll", help="Run one telemetry poll and print it as JSON"
    )
    poll_parser.add_argument("--device", help="Serial device (default: from config)")
    poll_parser.add_argument("--baudrate", type=int, help="Override the baud rate")

    monitor_parser = subparsers.add_parser(
        "monitor", help="Print every line received from the device"
    )
    monitor_parser.add_argument("--device", help="Serial device (default: from config)")
    monitor_parser.add_argument("--baudrate", type=int, help="Override the baud rate")

    init_parser = subparsers.add_parser(
        "init-config", help="Write a configuration file with default values"
    )
    init_parser.add_argument("--device", help="Serial device to open at startup")

    subparsers.add_parser(
        "show-config", help="Print the resolved configuration and exit"
    )

    return parser


async def _poll_once(config: BridgeConfig, device: str, baudrate: Optional[int]) -> int:
    engine = TrackerEngine(config)
    try:
        await engine.open_connection(device, baudrate=baudrate)
        result = await engine.run_poll()
    finally:
        await engine.close()
    print(json.dumps(result.as_dict(), indent=2))
    return 0


async def _monitor(config: BridgeConfig, device: str, baudrate: Optional[int]) -> int:
    engine = TrackerEngine(config)
    await engine.open_connection(device, baudrate=baudrate)
    channel = engine.connection.channel
    try:
        if channel is not None:
            async for line in channel.lines():
                print(line, flush=True)
    finally:
        await engine.close()
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config = load_config(args.config)

    if args.command == "start":
        ST24BridgeApp.start(config)
        return 0

    if args.command == "init-config":
        if args.device:
            config.raw.set("serial", "device", args.device)
        save_config(config)
        print(f"Configuration written to {config.path!s}")
        return 0

    if args.command == "show-config":
        print(f"Configuration loaded from {config.path!s}\n")
        for section in config.raw.sections():
            print(f"[{section}]")
            for key, value in config.raw[section].items():
                print(f"{key} = {value}")
            print()
        return 0

    configure_logging(config.logging.level, log_traffic=config.logging.log_traffic)

    if args.command == "ports":
        try:
            devices = TrackerEngine(config).list_candidate_devices()
        except LinkError as exc:
            LOGGER.error("%s", exc)
            return 1
        for device in devices:
            print(device)
        return 0

    if args.command in ("poll", "monitor"):
        device = args.device or config.serial.device
        if not device:
            LOGGER.error("No device given; pass --device or set [serial] device")
            return 2
        runner = _poll_once if args.command == "poll" else _monitor
        try:
            return asyncio.run(runner(config, device, args.baudrate))
        except LinkError as exc:
            LOGGER.error("%s", exc)
            return 1
        except KeyboardInterrupt:
            return 0

    LOGGER.error("Unknown command: %s", args.command)
    return 1


if __name__ == "__main__":
    sys.exit(main())
