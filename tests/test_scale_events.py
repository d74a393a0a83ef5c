import pytest

from scale_events import (
    DeviceDiscovered,
    ManufacturerDataAdvertisement,
    format_address,
    parse_address,
)


class TestParseAddress:

    @pytest.mark.parametrize("text", [
        "34:03:DE:08:C7:B9",
        "34:03:de:08:c7:b9",
        "34-03-DE-08-C7-B9",
        "3403DE08C7B9",
    ])
    def test_accepted_forms(self, text):
        assert parse_address(text) == bytes.fromhex("3403DE08C7B9")

    def test_corebluetooth_uuid_rejected(self):
        with pytest.raises(ValueError):
            parse_address("5F2A8C1E-0B7D-4E43-9C1A-2D3B4C5D6E7F")

    def test_short_rejected(self):
        with pytest.raises(ValueError):
            parse_address("34:03:DE")

    def test_non_hex_rejected(self):
        with pytest.raises(ValueError):
            parse_address("ZZ:03:DE:08:C7:B9")


def test_format_address():
    assert format_address(bytes.fromhex("3403de08c7b9")) == "34:03:DE:08:C7:B9"


def test_events_compare_by_value():
    assert DeviceDiscovered("a") == DeviceDiscovered("a")
    assert ManufacturerDataAdvertisement("a", {0: b"\x01"}) == ManufacturerDataAdvertisement("a", {0: b"\x01"})
