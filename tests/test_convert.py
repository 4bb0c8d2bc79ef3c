import pytest

from envbase.mbserver.convert import bytes_to_uint16, uint16_to_bytes


def test_bytes_to_uint16():
    assert bytes_to_uint16(bytes([1, 2, 3, 4])) == [258, 772]


def test_uint16_to_bytes():
    assert uint16_to_bytes([1, 2, 3]) == bytes([0, 1, 0, 2, 0, 3])


def test_odd_trailing_byte_dropped():
    assert bytes_to_uint16(bytes([1, 2, 3])) == [258]


def test_empty():
    assert bytes_to_uint16(b"") == []
    assert uint16_to_bytes([]) == b""


def test_round_trip():
    values = [0, 1, 255, 256, 65535]
    assert bytes_to_uint16(uint16_to_bytes(values)) == values


def test_out_of_range_value():
    with pytest.raises(OverflowError):
        uint16_to_bytes([65536])