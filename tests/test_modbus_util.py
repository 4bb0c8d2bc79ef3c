import struct

import pytest

from envbase import modbus_util as mu


def test_float32_round_trip():
    raw = struct.pack("<f", 3.14)
    assert mu.bytes_to_float32(raw) == pytest.approx(3.14, rel=1e-6)


def test_float32_too_short():
    with pytest.raises(ValueError):
        mu.bytes_to_float32(b"\x00\x01")


def test_bytes_to_int_from_uint16():
    assert mu.bytes_to_int(mu.uint16_to_bytes(1024)) == 1024


def test_bytes_to_int_negative_and_short():
    assert mu.bytes_to_int(b"\xff\xff") == -1
    assert mu.bytes_to_int(b"\x01") == 0
    assert mu.bytes_to_int(b"\x00\x00\x00\x80") == -(1 << 31)


def test_bytes_to_string_big_endian():
    assert mu.bytes_to_string(mu.int32_string_to_bytes("1024")) == "1024"


def test_bytes_to_string_little_endian():
    assert mu.bytes_to_string_le(mu.int32_to_bytes(1024)) == "1024"


def test_known_crc_vectors():
    assert mu.check_sum_value(b"123456789") == 0x4B37
    assert mu.check_sum_value(bytes([0x01, 0x04, 0x02, 0xFF, 0xFF])) == 0x80B8
    assert mu.check_sum(bytes([0x01, 0x04, 0x02, 0xFF, 0xFF])) == b"\xb8\x80"
    assert mu.check_sum(bytes([0x01, 0x03, 0x00, 0x00, 0x00, 0x01])) == b"\x84\x0a"


def test_check_crc_accepts_appended_checksum():
    body = bytes([0x01, 0x06, 0x00, 0x0A, 0x01, 0x10])
    frame = body + mu.check_sum(body)
    assert mu.check_crc(frame, 6) is True


def test_check_crc_rejects_corrupt():
    frame = bytes([0x01, 0x04, 0x02, 0xFF, 0xFF, 0xB8, 0x81])
    assert mu.check_crc(frame, 5) is False


def test_check_crc_too_short_returns_false():
    assert mu.check_crc(b"\x01", 6) is False


def test_check_crc_missing_crc_bytes_raises():
    with pytest.raises(IndexError):
        mu.check_crc(b"\x01\x02\x03\x04", 4)


def test_int16_string_to_bytes():
    assert mu.int16_string_to_bytes("1024") == b"\x04\x00"
    assert mu.int16_string_to_bytes("1") == b"\x00\x01"
    assert mu.int16_string_to_bytes("10") == b"\x00\x0a"
    assert mu.int16_string_to_bytes("4096") == b"\x10\x00"
    assert mu.int16_string_to_bytes("") == b"\x00\x00"
    assert mu.int16_string_to_bytes("A") == b"\x00\x00"


def test_int16_to_bytes():
    assert mu.int16_to_bytes(1024) == b"\x00\x04"
    assert mu.int16_to_bytes(1) == b"\x01\x00"
    assert mu.int16_to_bytes(-1) == b"\xff\xff"


def test_int32_to_bytes():
    assert mu.int32_to_bytes(1024) == b"\x00\x04\x00\x00"


def test_int32_string_to_bytes():
    assert mu.int32_string_to_bytes("1024") == b"\x00\x00\x04\x00"
    assert mu.int32_string_to_bytes("1") == b"\x00\x00\x00\x01"
    assert mu.int32_string_to_bytes("10") == b"\x00\x00\x00\x0a"
    assert mu.int32_string_to_bytes("2048") == b"\x00\x00\x08\x00"
    assert mu.int32_string_to_bytes("") == b"\x00\x00\x00\x00"
    assert mu.int32_string_to_bytes("A") == b"\x00\x00\x00\x00"


def test_string_to_bytes_with_spaces():
    assert mu.string_to_bytes("40 00") == b"\x40\x00"
    assert mu.string_to_bytes("1 ff") == b"\x01\xff"


def test_string_to_bytes_without_spaces():
    assert mu.string_to_bytes("0106000A") == b"\x01\x06\x00\x0a"
    assert mu.string_to_bytes("abc") == b"\xab"


def test_string_to_bytes_invalid_token_is_zero():
    assert mu.string_to_bytes("zz 01") == b"\x00\x01"


def test_uint16_to_bytes():
    assert mu.uint16_to_bytes(1024) == b"\x00\x04"


def test_demo_output(capsys):
    mu.demo()
    out = capsys.readouterr().out
    assert "string2byte   [64 0]" in out
    assert "int32tobytes   [0 4 0 0]" in out
    assert "bytetoint 1024" in out
    assert "bytetostring_L  1024" in out