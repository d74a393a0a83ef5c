#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
health_scale.py
Watches BLE advertisements for the bathroom scale at 34:03:DE:08:C7:B9 and
logs every settled weight reading (pounds) to health-scale.log and stdout.

Log lines look like:
  2026-01-04 07:12:55: scale,34:03:DE:08:C7:B9
  2026-01-04 07:13:02: weight,48.6

Usage examples:
  # Live, default adapter
  python3 health_scale.py

  # Second adapter, debug output, keep a capture of what the scale sent
  python3 health_scale.py --adapter hci1 --debug --capture scale_adv.txt

  # Re-run the decoder over a capture, no radio needed
  python3 health_scale.py --replay scale_adv.txt

The log level can also come from HEALTH_SCALE_LOG (debug, info, warning, ...).
"""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

from bleak.exc import BleakError

from scale_monitor import monitor
from scale_sources import BleakEventSource, CaptureWriter, ReplayEventSource

logger = logging.getLogger("health_scale")

DEFAULT_LOG_FILE = "health-scale.log"
LOG_LEVEL_ENV = "HEALTH_SCALE_LOG"
FILE_FORMAT = "%(asctime)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def level_from_env(default: str = "info") -> int:
    name = os.environ.get(LOG_LEVEL_ENV, default)
    level = logging.getLevelName(name.strip().upper())
    if not isinstance(level, int):
        return logging.INFO
    return level


def setup_logging(level: int, log_file: str = DEFAULT_LOG_FILE):
    """Append to log_file and duplicate every record to stdout."""
    root = logging.getLogger()
    root.setLevel(level)

    file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
    root.addHandler(file_handler)

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(logging.Formatter("%(levelname)s [%(name)s] %(message)s"))
    root.addHandler(console)

    # bleak's D-Bus chatter drowns out the readings at DEBUG
    logging.getLogger("bleak").setLevel(max(level, logging.INFO))

    logger.info("Log file: %s", Path(log_file).resolve())


async def run_monitor(args):
    capture = None
    if args.replay:
        source = ReplayEventSource(args.replay)
    else:
        if args.capture:
            capture = CaptureWriter(args.capture).open()
        source = BleakEventSource(adapter=args.adapter, capture=capture)

    try:
        async with source:
            session = await monitor(source.events(), source.resolve_address)
    finally:
        if capture is not None:
            capture.close()

    if session.matched is None:
        logger.info("event stream ended before the scale was seen")
    return session


def build_arg_parser():
    p = argparse.ArgumentParser(description="Log weight readings broadcast by a BLE bathroom scale")
    p.add_argument("--adapter", default=None, help="HCI adapter to scan on (e.g. hci0); default: first adapter")
    p.add_argument("--log-file", default=DEFAULT_LOG_FILE, help="File to append log records to")
    p.add_argument("--debug", action="store_true", help="Log at DEBUG (raw weight bytes included)")
    src = p.add_mutually_exclusive_group()
    src.add_argument("--replay", default=None, help="Read advertisements from a capture file instead of the radio")
    src.add_argument("--capture", default=None, help="Append received manufacturer-data adverts to this file")
    return p


def main(argv=None) -> int:
    args = build_arg_parser().parse_args(argv)
    level = logging.DEBUG if args.debug else level_from_env()
    setup_logging(level, args.log_file)

    try:
        asyncio.run(run_monitor(args))
    except KeyboardInterrupt:
        return 0
    except (BleakError, OSError) as e:
        logger.error("scan failed: %s", e)
        return 1
    return 0


def run():
    sys.exit(main())


if __name__ == "__main__":
    run()
