from __future__ import annotations
from typing import Optional

# Bathroom scale this monitor listens for.
HEALTH_SCALE_ADDR = bytes.fromhex("3403DE08C7B9")

COMPANY_ID = 0          # the scale puts its block under company code 0x0000
WEIGHT_OFFSET = 9       # u16 LE at bytes 9..10, hundredths of a kg
MIN_PAYLOAD_LEN = WEIGHT_OFFSET + 2
LB_PER_KG = 2.2046


def weight_field(block: bytes) -> Optional[bytes]:
    """Return the 2-byte weight slice, or None for a truncated block."""
    if len(block) < MIN_PAYLOAD_LEN:
        return None
    return bytes(block[WEIGHT_OFFSET:WEIGHT_OFFSET + 2])


def hundredths_kg_to_lb(raw: int) -> float:
    return raw / 100.0 * LB_PER_KG

