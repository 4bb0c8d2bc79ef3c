import pytest

from envbase.mbserver.exceptions import ExceptionCode
from envbase.mbserver.frames import (
    TCPFrame,
    set_data_with_register_and_number,
    set_data_with_register_and_number_and_bytes,
    set_data_with_register_and_number_and_values,
)
from envbase.mbserver.functions import (
    read_coils,
    read_discrete_inputs,
    read_holding_registers,
    read_input_registers,
    write_holding_register,
    write_holding_registers,
    write_multiple_coils,
    write_single_coil,
)
from envbase.mbserver.server import Server


def _frame(function, register, number):
    frame = TCPFrame(transaction_identifier=1, length=6, device=255, function=function)
    set_data_with_register_and_number(frame, register, number)
    return frame


@pytest.fixture
def server():
    return Server()


def test_read_coils(server):
    for index in (10, 11, 17, 18):
        server.coils[index] = 1
    data, code = read_coils(server, _frame(1, 10, 9))
    assert code == ExceptionCode.SUCCESS
    assert data == bytes([2, 131, 1])


def test_read_discrete_inputs(server):
    for index in (0, 7, 8, 9):
        server.discrete_inputs[index] = 1
    data, code = read_discrete_inputs(server, _frame(2, 0, 10))
    assert code == ExceptionCode.SUCCESS
    assert data == bytes([2, 129, 3])


def test_read_holding_registers(server):
    server.holding_registers[100] = 1
    server.holding_registers[101] = 2
    server.holding_registers[102] = 65535
    data, code = read_holding_registers(server, _frame(3, 100, 3))
    assert code == ExceptionCode.SUCCESS
    assert data == bytes([6, 0, 1, 0, 2, 255, 255])


def test_read_input_registers(server):
    server.input_registers[200] = 1
    server.input_registers[201] = 2
    server.input_registers[202] = 65535
    data, code = read_input_registers(server, _frame(4, 200, 3))
    assert code == ExceptionCode.SUCCESS
    assert data == bytes([6, 0, 1, 0, 2, 255, 255])


def test_write_single_coil(server):
    frame = _frame(5, 65535, 1024)
    data, code = write_single_coil(server, frame)
    assert code == ExceptionCode.SUCCESS
    assert server.coils[65535] == 1
    assert data == bytes([0xFF, 0xFF, 0x04, 0x00])


def test_write_single_coil_off(server):
    server.coils[7] = 1
    _, code = write_single_coil(server, _frame(5, 7, 0))
    assert code == ExceptionCode.SUCCESS
    assert server.coils[7] == 0


def test_write_holding_register(server):
    data, code = write_holding_register(server, _frame(6, 5, 6))
    assert code == ExceptionCode.SUCCESS
    assert server.holding_registers[5] == 6
    assert data == bytes([0, 5, 0, 6])


def test_write_multiple_coils(server):
    server.coils[3] = 1
    frame = TCPFrame(transaction_identifier=1, device=255, function=15)
    set_data_with_register_and_number_and_bytes(frame, 1, 2, bytes([3]))
    data, code = write_multiple_coils(server, frame)
    assert code == ExceptionCode.SUCCESS
    assert list(server.coils[1:3]) == [1, 1]
    assert server.coils[3] == 1
    assert data == bytes([0, 1, 0, 2])


def test_write_multiple_coils_spans_bytes(server):
    frame = TCPFrame(function=15)
    set_data_with_register_and_number_and_bytes(frame, 100, 9, bytes([255, 1]))
    _, code = write_multiple_coils(server, frame)
    assert code == ExceptionCode.SUCCESS
    assert list(server.coils[100:109]) == [1] * 9
    assert server.coils[109] == 0


def test_write_holding_registers(server):
    frame = TCPFrame(transaction_identifier=1, device=255, function=16)
    set_data_with_register_and_number_and_values(frame, 1, 2, [3, 4])
    data, code = write_holding_registers(server, frame)
    assert code == ExceptionCode.SUCCESS
    assert server.holding_registers[1:3] == [3, 4]
    assert data == bytes([0, 1, 0, 2])


def test_write_holding_registers_count_mismatch(server):
    frame = TCPFrame(function=16)
    set_data_with_register_and_number_and_values(frame, 1, 3, [1, 2])
    data, code = write_holding_registers(server, frame)
    assert code == ExceptionCode.ILLEGAL_DATA_ADDRESS
    assert data == b""


def test_write_holding_registers_at_end_stores_what_fits(server):
    frame = TCPFrame(function=16)
    set_data_with_register_and_number_and_values(frame, 65535, 2, [7, 8])
    _, code = write_holding_registers(server, frame)
    assert code == ExceptionCode.ILLEGAL_DATA_ADDRESS
    assert server.holding_registers[65535] == 7
    assert len(server.holding_registers) == 65536


@pytest.mark.parametrize(
    "handler",
    [read_coils, read_discrete_inputs, read_holding_registers, read_input_registers],
)
def test_reads_out_of_bounds(server, handler):
    data, code = handler(server, _frame(1, 65535, 2))
    assert code == ExceptionCode.ILLEGAL_DATA_ADDRESS
    assert data == b""


def test_write_multiple_coils_out_of_bounds(server):
    frame = TCPFrame(function=15)
    set_data_with_register_and_number_and_bytes(frame, 65535, 2, bytes([3]))
    _, code = write_multiple_coils(server, frame)
    assert code == ExceptionCode.ILLEGAL_DATA_ADDRESS


def test_write_holding_registers_out_of_bounds(server):
    frame = TCPFrame(function=16)
    set_data_with_register_and_number_and_values(frame, 65535, 2, [0, 0])
    _, code = write_holding_registers(server, frame)
    assert code == ExceptionCode.ILLEGAL_DATA_ADDRESS


def test_read_coils_up_to_bit_limit(server):
    server.coils[65533] = 1
    data, code = read_coils(server, _frame(1, 65533, 2))
    assert code == ExceptionCode.SUCCESS
    assert data == bytes([1, 1])