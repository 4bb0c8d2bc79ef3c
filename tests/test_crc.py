from envbase.mbserver.crc import crc_modbus


def test_crc_known_value():
    assert crc_modbus(bytes([0x01, 0x04, 0x02, 0xFF, 0xFF])) == 0x80B8


def test_crc_accepts_list_of_ints():
    assert crc_modbus([0x01, 0x04, 0x02, 0xFF, 0xFF]) == 0x80B8


def test_crc_of_empty_is_initial_value():
    assert crc_modbus(b"") == 0xFFFF


def test_crc_over_message_with_crc_appended_is_zero():
    message = bytes([0x01, 0x06, 0x00, 0x0A, 0x01, 0x10])
    crc = crc_modbus(message)
    assert crc_modbus(message + crc.to_bytes(2, "little")) == 0


def test_crc_detects_single_bit_change():
    message = bytes([0x01, 0x04, 0x02, 0xFF, 0xFF])
    altered = bytes([0x01, 0x04, 0x02, 0xFF, 0xFE])
    assert crc_modbus(altered) != crc_modbus(message)
    assert 0 <= crc_modbus(altered) <= 0xFFFF