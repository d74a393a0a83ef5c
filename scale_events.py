from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Hashable

# Identifiers are whatever the BLE stack hands out: a MAC string on BlueZ,
# a CoreBluetooth UUID string on macOS.
DeviceIdentifier = Hashable


class AddressLookupError(LookupError):
    """Identifier is unknown or its address is not a 6-byte MAC."""


@dataclass(frozen=True)
class DeviceDiscovered:
    identifier: DeviceIdentifier


@dataclass(frozen=True)
class ManufacturerDataAdvertisement:
    identifier: DeviceIdentifier
    manufacturer_data: Dict[int, bytes] = field(default_factory=dict)  # company_id -> payload


@dataclass(frozen=True)
class ServiceDataAdvertisement:
    identifier: DeviceIdentifier
    service_data: Dict[str, bytes] = field(default_factory=dict)  # uuid string -> payload


@dataclass(frozen=True)
class DeviceUpdated:
    identifier: DeviceIdentifier


def parse_address(text: str) -> bytes:
    """Turn '34:03:DE:08:C7:B9' (or '3403de08c7b9', '34-03-...') into 6 raw bytes."""
    norm = text.replace(":", "").replace("-", "").strip()
    if len(norm) != 12:
        raise ValueError(f"not a 6-byte hardware address: {text!r}")
    return bytes.fromhex(norm)


def format_address(addr: bytes) -> str:
    return ":".join(f"{b:02X}" for b in addr)
