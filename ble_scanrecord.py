from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional
import uuid
import struct

# AD Type constants
_AD_FLAGS                      = 0x01
_AD_LOCAL_NAME_SHORT           = 0x08
_AD_LOCAL_NAME_COMPLETE        = 0x09
_AD_TX_POWER                   = 0x0A
_AD_SERVICE_DATA_16            = 0x16
_AD_MANUFACTURER_SPECIFIC_DATA = 0xFF

_MAX_AD_VALUE = 254  # length byte covers type + value


@dataclass
class ScanRecord:
    manufacturer_data: Dict[int, bytes] = field(default_factory=dict)  # company_id -> payload
    service_data: Dict[uuid.UUID, bytes] = field(default_factory=dict)  # uuid -> payload
    flags: Optional[int] = None
    tx_power: Optional[int] = None
    local_name: Optional[str] = None
    raw: Optional[bytes] = None


def _uuid_from_16(v: int) -> uuid.UUID:
    # Build a 128-bit UUID from a 16-bit short using Bluetooth Base UUID
    return uuid.UUID(f"{v:04x}0000-0000-1000-8000-00805f9b34fb")


def parse_scan_record(ad: bytes) -> ScanRecord:
    """Parse a BLE advertisement (AdvData or ScanRsp payload) into a ScanRecord.

    A structure whose length runs past the end of the buffer ends parsing;
    everything decoded before it is kept.
    """
    i = 0
    sr = ScanRecord(raw=bytes(ad))
    while i < len(ad):
        length = ad[i]
        if length == 0:
            break
        if i + 1 + length > len(ad):
            break
        ad_type = ad[i+1]
        value = bytes(ad[i+2:i+1+length])

        if ad_type == _AD_MANUFACTURER_SPECIFIC_DATA:
            if len(value) >= 2:
                (company_id,) = struct.unpack("<H", value[:2])
                sr.manufacturer_data[company_id] = value[2:]
        elif ad_type == _AD_SERVICE_DATA_16:
            if len(value) >= 2:
                (svc16,) = struct.unpack("<H", value[:2])
                sr.service_data[_uuid_from_16(svc16)] = value[2:]
        elif ad_type in (_AD_LOCAL_NAME_SHORT, _AD_LOCAL_NAME_COMPLETE):
            sr.local_name = value.decode("utf-8", errors="ignore")
        elif ad_type == _AD_TX_POWER:
            if len(value) >= 1:
                sr.tx_power = struct.unpack("b", value[:1])[0]
        elif ad_type == _AD_FLAGS:
            if len(value) >= 1:
                sr.flags = value[0]

        i += 1 + length
    return sr


def _ad_structure(ad_type: int, value: bytes) -> bytes:
    if len(value) > _MAX_AD_VALUE:
        raise ValueError(f"AD value too long: {len(value)} bytes")
    return bytes([len(value) + 1, ad_type]) + value


def build_scan_record(manufacturer_data: Mapping[int, bytes],
                      local_name: Optional[str] = None) -> bytes:
    """Encode manufacturer data (and optionally a name) as AD structures."""
    out = bytearray()
    if local_name:
        out += _ad_structure(_AD_LOCAL_NAME_COMPLETE, local_name.encode("utf-8"))
    for company_id, payload in manufacturer_data.items():
        out += _ad_structure(_AD_MANUFACTURER_SPECIFIC_DATA,
                             struct.pack("<H", company_id) + bytes(payload))
    return bytes(out)
