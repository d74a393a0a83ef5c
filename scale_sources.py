"""
Event sources feeding scale_monitor.monitor().

- BleakEventSource: live advertisements from the local adapter via bleak.
- ReplayEventSource: advertisements captured earlier with --capture.

Capture format, one advertisement per line:
    34:03:DE:08:C7:B9 0cff0000...
i.e. device address, then the raw AD structures as hex. '#' starts a comment.
"""

from __future__ import annotations
import asyncio
import logging
from pathlib import Path
from typing import AsyncIterator, Dict, Optional, Set

from bleak import BleakScanner
from bleak.backends.device import BLEDevice
from bleak.backends.scanner import AdvertisementData

from ble_scanrecord import build_scan_record, parse_scan_record
from scale_events import (
    AddressLookupError,
    DeviceDiscovered,
    DeviceUpdated,
    ManufacturerDataAdvertisement,
    ServiceDataAdvertisement,
    parse_address,
)

logger = logging.getLogger(__name__)


def _address_of(identifier) -> bytes:
    try:
        return parse_address(str(identifier))
    except ValueError as e:
        raise AddressLookupError(str(e)) from e


class CaptureWriter:
    def __init__(self, path: str):
        self.path = Path(path)
        self._fp = None

    def open(self):
        if self._fp is None:
            self._fp = self.path.open("a", buffering=1, encoding="utf-8")
        return self

    def write(self, address: str, manufacturer_data: Dict[int, bytes],
              local_name: Optional[str] = None):
        if self._fp is None:
            self.open()
        record = build_scan_record(manufacturer_data, local_name)
        self._fp.write(f"{address} {record.hex()}\n")

    def close(self):
        if self._fp is not None:
            self._fp.close()
            self._fp = None

    def __enter__(self):
        return self.open()

    def __exit__(self, *exc):
        self.close()


class BleakEventSource:
    """Turns BleakScanner detection callbacks into a sequential event stream.

    Use as an async context manager: entering starts the scan, leaving
    stops it. events() then yields until cancelled.
    """

    def __init__(self, adapter: Optional[str] = None, capture: Optional[CaptureWriter] = None):
        self.adapter = adapter
        self.capture = capture
        self._queue: asyncio.Queue = asyncio.Queue()
        self._devices: Dict[str, BLEDevice] = {}
        self._scanner: Optional[BleakScanner] = None

    def detection_callback(self, device: BLEDevice, adv: AdvertisementData):
        identifier = device.address
        if identifier not in self._devices:
            self._queue.put_nowait(DeviceDiscovered(identifier))
        self._devices[identifier] = device

        if adv.manufacturer_data:
            data = {cid: bytes(v) for cid, v in adv.manufacturer_data.items()}
            self._queue.put_nowait(ManufacturerDataAdvertisement(identifier, data))
            if self.capture is not None:
                self.capture.write(identifier, data, adv.local_name)
        elif adv.service_data:
            self._queue.put_nowait(ServiceDataAdvertisement(identifier, {str(k): bytes(v) for k, v in adv.service_data.items()}))
        else:
            self._queue.put_nowait(DeviceUpdated(identifier))

    async def __aenter__(self):
        kwargs = {}
        if self.adapter:
            kwargs["adapter"] = self.adapter
        self._scanner = BleakScanner(detection_callback=self.detection_callback, **kwargs)
        await self._scanner.start()
        logger.debug("scan started on %s", self.adapter or "default adapter")
        return self

    async def __aexit__(self, *exc):
        if self._scanner is not None:
            await self._scanner.stop()
            self._scanner = None
            logger.debug("scan stopped")

    async def events(self) -> AsyncIterator:
        while True:
            yield await self._queue.get()

    async def resolve_address(self, identifier) -> bytes:
        device = self._devices.get(identifier)
        if device is None:
            raise AddressLookupError(f"unknown device {identifier!r}")
        return _address_of(device.address)


class ReplayEventSource:
    def __init__(self, path: str):
        self.path = Path(path)
        self._seen: Set[str] = set()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        pass

    async def events(self) -> AsyncIterator:
        with self.path.open("r", encoding="utf-8") as f:
            for lineno, line in enumerate(f, 1):
                line = line.split("#", 1)[0].strip()
                if not line:
                    continue
                parts = line.split()
                if len(parts) != 2:
                    logger.warning("%s:%d: expected '<address> <hex>', skipping", self.path, lineno)
                    continue
                identifier, hex_ad = parts
                try:
                    record = parse_scan_record(bytes.fromhex(hex_ad))
                except ValueError:
                    logger.warning("%s:%d: bad hex payload, skipping", self.path, lineno)
                    continue

                if identifier not in self._seen:
                    self._seen.add(identifier)
                    yield DeviceDiscovered(identifier)

                if record.manufacturer_data:
                    yield ManufacturerDataAdvertisement(identifier, record.manufacturer_data)
                elif record.service_data:
                    yield ServiceDataAdvertisement(identifier, {str(u): v for u, v in record.service_data.items()})
                else:
                    yield DeviceUpdated(identifier)
                # let other tasks run between lines
                await asyncio.sleep(0)

    async def resolve_address(self, identifier) -> bytes:
        if identifier not in self._seen:
            raise AddressLookupError(f"unknown device {identifier!r}")
        return _address_of(identifier)
