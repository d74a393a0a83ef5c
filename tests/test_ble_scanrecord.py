import uuid

import pytest

from ble_scanrecord import build_scan_record, parse_scan_record


def test_manufacturer_data_company_zero():
    # len=0x0e, type=0xff, company 0x0000, 11 payload bytes
    ad = bytes.fromhex("0eff0000" + "00" * 9 + "9d08")
    sr = parse_scan_record(ad)
    assert sr.manufacturer_data == {0: bytes(9) + b"\x9d\x08"}
    assert sr.raw == ad


def test_mixed_structures():
    ad = bytes.fromhex(
        "020106"            # flags
        "0509" + "5343414c"  # complete local name "SCAL"
        "020af4"            # tx power -12
        "05164fe1aabb"      # service data 0xe14f
        "05ff5701cafe"      # manufacturer 0x0157
    )
    sr = parse_scan_record(ad)
    assert sr.flags == 0x06
    assert sr.local_name == "SCAL"
    assert sr.tx_power == -12
    assert sr.service_data == {uuid.UUID("0000e14f-0000-1000-8000-00805f9b34fb"): b"\xaa\xbb"}
    assert sr.manufacturer_data == {0x0157: b"\xca\xfe"}


def test_truncated_structure_stops_parsing():
    ad = bytes.fromhex("05ff5701cafe" + "0aff0000")
    sr = parse_scan_record(ad)
    assert sr.manufacturer_data == {0x0157: b"\xca\xfe"}


def test_zero_length_terminates():
    sr = parse_scan_record(bytes.fromhex("00" + "05ff5701cafe"))
    assert sr.manufacturer_data == {}


def test_build_then_parse():
    data = {0: bytes(range(13)), 0x0157: b"\x01"}
    sr = parse_scan_record(build_scan_record(data, local_name="Health Scale"))
    assert sr.manufacturer_data == data
    assert sr.local_name == "Health Scale"


def test_build_rejects_oversized_payload():
    with pytest.raises(ValueError):
        build_scan_record({0: bytes(300)})
