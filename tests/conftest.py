import logging

import pytest

from scale_decode import HEALTH_SCALE_ADDR

SCALE_MAC = "34:03:DE:08:C7:B9"
OTHER_MAC = "AA:BB:CC:DD:EE:FF"


def scale_block(raw: int, length: int = 13) -> bytes:
    """Company-0 block with raw (hundredths of a kg) at bytes 9..10."""
    block = bytearray(length)
    block[9:11] = raw.to_bytes(2, "little")
    return bytes(block)


async def stream(events):
    for event in events:
        yield event


class AddressBook:
    """resolve_address stand-in: identifier -> address bytes, records lookups."""

    def __init__(self, table):
        self.table = table
        self.lookups = []

    async def __call__(self, identifier):
        from scale_events import AddressLookupError

        self.lookups.append(identifier)
        try:
            return self.table[identifier]
        except KeyError:
            raise AddressLookupError(identifier) from None


@pytest.fixture
def target():
    return HEALTH_SCALE_ADDR


@pytest.fixture
def restore_root_logging():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for h in list(root.handlers):
        if h not in handlers:
            root.removeHandler(h)
            h.close()
    for h in handlers:
        if h not in root.handlers:
            root.addHandler(h)
    root.setLevel(level)
