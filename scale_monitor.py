"""
Health scale monitor core.

Filters the BLE event stream down to the one scale whose hardware address
matches HEALTH_SCALE_ADDR, then decodes the weight it broadcasts in its
manufacturer data:

- company code 0x0000 block, at least 11 bytes
- bytes 9..10: u16 little-endian, hundredths of a kg (0 = not settled yet)
- logged in pounds, one decimal
"""

from __future__ import annotations
import logging
import threading
from typing import AsyncIterable, Awaitable, Callable, Mapping, Optional

from scale_decode import (
    COMPANY_ID,
    HEALTH_SCALE_ADDR,
    hundredths_kg_to_lb,
    weight_field,
)
from scale_events import (
    AddressLookupError,
    DeviceDiscovered,
    DeviceIdentifier,
    ManufacturerDataAdvertisement,
    format_address,
)

logger = logging.getLogger(__name__)

ResolveAddress = Callable[[DeviceIdentifier], Awaitable[bytes]]


class ScaleSession:
    """Holds the identifier of the matched scale. Set at most once per run."""

    def __init__(self):
        self._matched: Optional[DeviceIdentifier] = None
        self._lock = threading.Lock()

    @property
    def matched(self) -> Optional[DeviceIdentifier]:
        return self._matched

    def match(self, identifier: DeviceIdentifier) -> bool:
        """Remember identifier; the first call wins, later calls do nothing."""
        with self._lock:
            if self._matched is not None:
                return False
            self._matched = identifier
            return True


class DeviceMatcher:
    def __init__(self, session: ScaleSession, target: bytes = HEALTH_SCALE_ADDR):
        if len(target) != 6:
            raise ValueError(f"target address must be 6 bytes, got {len(target)}")
        self.session = session
        self.target = bytes(target)

    def on_discovered(self, identifier: DeviceIdentifier,
                      resolved_address: Optional[bytes]) -> Optional[DeviceIdentifier]:
        if resolved_address is None:
            return None
        if bytes(resolved_address) != self.target:
            return None
        if not self.session.match(identifier):
            return None
        logger.info("scale,%s", format_address(self.target))
        return identifier


class PayloadDecoder:
    def __init__(self, session: ScaleSession):
        self.session = session

    def on_manufacturer_data(self, identifier: DeviceIdentifier,
                             manufacturer_data: Mapping[int, bytes]) -> Optional[float]:
        matched = self.session.matched
        if matched is None or identifier != matched:
            return None

        block = manufacturer_data.get(COMPANY_ID)
        if block is None:
            return None
        field = weight_field(block)
        if field is None:
            return None

        logger.debug("bytes,%s", list(field))

        raw = int.from_bytes(field, "little", signed=False)
        if raw == 0:
            return None

        weight_lb = hundredths_kg_to_lb(raw)
        logger.info("weight,%.1f", weight_lb)
        return weight_lb


async def monitor(events: AsyncIterable, resolve_address: ResolveAddress,
                  session: Optional[ScaleSession] = None,
                  target: bytes = HEALTH_SCALE_ADDR) -> ScaleSession:
    """Consume events one at a time until the stream ends.

    Only AddressLookupError from resolve_address is absorbed; anything else
    (adapter gone, scan failure) propagates to the caller.
    """
    session = session if session is not None else ScaleSession()
    matcher = DeviceMatcher(session, target)
    decoder = PayloadDecoder(session)

    async for event in events:
        if isinstance(event, DeviceDiscovered):
            if session.matched is not None:
                continue
            try:
                address = await resolve_address(event.identifier)
            except AddressLookupError:
                address = None
            matcher.on_discovered(event.identifier, address)
        elif isinstance(event, ManufacturerDataAdvertisement):
            decoder.on_manufacturer_data(event.identifier, event.manufacturer_data)
        else:
            # service data, device updates, anything newer: not ours
            continue

    return session
