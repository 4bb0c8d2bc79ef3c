"""A Modbus server (slave) serving TCP connections and serial ports."""

from __future__ import annotations

import dataclasses
import logging
import socket
import threading
from collections.abc import Callable
from typing import Protocol

import serial

from envbase.mbserver import functions
from envbase.mbserver.exceptions import ExceptionCode
from envbase.mbserver.frames import FrameError, Framer, new_rtu_frame, new_tcp_frame

logger = logging.getLogger(__name__)

MEMORY_SIZE = 65536
_PACKET_SIZE = 512
_ACCEPT_POLL = 0.2

Handler = Callable[["Server", Framer], "tuple[bytes, ExceptionCode]"]

_DEFAULT_HANDLERS: dict[int, Handler] = {
    1: functions.read_coils,
    2: functions.read_discrete_inputs,
    3: functions.read_holding_registers,
    4: functions.read_input_registers,
    5: functions.write_single_coil,
    6: functions.write_holding_register,
    15: functions.write_multiple_coils,
    16: functions.write_holding_registers,
}


class _Writer(Protocol):
    def write(self, data: bytes) -> object: ...


@dataclasses.dataclass
class _SocketWriter:
    sock: socket.socket

    def write(self, data: bytes) -> None:
        self.sock.sendall(data)


@dataclasses.dataclass(frozen=True)
class SerialConfig:
    """Settings of a serial port; ``address`` is a device path or a pyserial URL."""

    address: str
    baud_rate: int = 19200
    data_bits: int = 8
    stop_bits: float = 1
    parity: str = "E"
    timeout: float = 1.0

    def __post_init__(self) -> None:
        if self.parity not in ("N", "E", "O"):
            raise ValueError(f"unsupported parity {self.parity!r}")
        if not self.timeout or self.timeout <= 0:
            raise ValueError("serial timeout must be a positive number of seconds")


@dataclasses.dataclass
class Request:
    """A received frame and the connection its response goes back to."""

    frame: Framer
    conn: _Writer | None = None


class Server:
    """A Modbus slave with memory for discrete inputs, coils and registers.

    Requests from all connections are handled one at a time so that the
    memory maps are never changed concurrently.
    """

    def __init__(self, debug: bool = False) -> None:
        self.debug = debug
        self.discrete_inputs = bytearray(MEMORY_SIZE)
        self.coils = bytearray(MEMORY_SIZE)
        self.holding_registers = [0] * MEMORY_SIZE
        self.input_registers = [0] * MEMORY_SIZE
        self._functions: dict[int, Handler] = dict(_DEFAULT_HANDLERS)
        self._request_lock = threading.Lock()
        self._closing = threading.Event()
        self._listeners: list[socket.socket] = []
        self._accept_threads: list[threading.Thread] = []
        self._connections: set[socket.socket] = set()
        self._connections_lock = threading.Lock()
        self._ports: list[serial.SerialBase] = []
        self._port_threads: list[threading.Thread] = []

    def __enter__(self) -> Server:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def register_function_handler(self, func_code: int, function: Handler) -> None:
        """Replace or add the handler for a Modbus function code."""
        if not 0 <= func_code <= 0xFF:
            raise ValueError(f"function code {func_code} is not a byte")
        self._functions[func_code] = function

    def handle(self, request: Request) -> Framer:
        """Run the handler for the request and return the response frame."""
        response = request.frame.copy()
        handler = self._functions.get(request.frame.function)
        if handler is None:
            exception = ExceptionCode.ILLEGAL_FUNCTION
        else:
            data, exception = handler(self, request.frame)
            response.set_data(data)
        if exception != ExceptionCode.SUCCESS:
            response.set_exception(exception)
        return response

    def _process(self, request: Request) -> None:
        with self._request_lock:
            response = self.handle(request)
            payload = response.to_bytes()
            if self.debug:
                logger.debug("request %s response %s", request.frame, payload.hex(" "))
            if request.conn is not None:
                try:
                    request.conn.write(payload)
                except OSError as exc:
                    logger.warning("write error %s", exc)

    # TCP

    def listen_tcp(self, address_port: str) -> tuple[str, int]:
        """Listen on "address:port" and return the address actually bound."""
        host, sep, port_text = address_port.rpartition(":")
        if not sep or not port_text.isdigit():
            raise ValueError(f"address {address_port!r} is not of the form host:port")
        try:
            listener = socket.create_server((host, int(port_text)))
        except OSError as exc:
            logger.error("Failed to Listen: %s", exc)
            raise
        listener.settimeout(_ACCEPT_POLL)
        self._listeners.append(listener)
        thread = threading.Thread(target=self._accept, args=(listener,), daemon=True)
        self._accept_threads.append(thread)
        thread.start()
        bound = listener.getsockname()
        return bound[0], bound[1]

    def _accept(self, listener: socket.socket) -> None:
        while not self._closing.is_set():
            try:
                conn, _ = listener.accept()
            except socket.timeout:
                continue
            except OSError as exc:
                if not self._closing.is_set():
                    logger.error("Unable to accept connections: %s", exc)
                return
            conn.settimeout(None)
            with self._connections_lock:
                self._connections.add(conn)
            threading.Thread(target=self._serve_connection, args=(conn,), daemon=True).start()

    def _serve_connection(self, conn: socket.socket) -> None:
        writer = _SocketWriter(conn)
        try:
            with conn:
                while not self._closing.is_set():
                    try:
                        packet = conn.recv(_PACKET_SIZE)
                    except OSError as exc:
                        if not self._closing.is_set():
                            logger.error("read error %s", exc)
                        return
                    if not packet:
                        return
                    try:
                        self._process(Request(new_tcp_frame(packet), writer))
                    except FrameError as exc:
                        logger.warning("bad packet error %s", exc)
                        return
        finally:
            with self._connections_lock:
                self._connections.discard(conn)

    # Serial

    def listen_rtu(self, config: SerialConfig) -> None:
        """Open a serial port and serve RTU requests arriving on it."""
        try:
            port = serial.serial_for_url(
                config.address,
                baudrate=config.baud_rate,
                bytesize=config.data_bits,
                parity=config.parity,
                stopbits=config.stop_bits,
                timeout=config.timeout,
            )
        except (serial.SerialException, ValueError) as exc:
            logger.error("failed to open %s: %s", config.address, exc)
            raise
        self._ports.append(port)
        thread = threading.Thread(target=self._serve_serial, args=(port,), daemon=True)
        self._port_threads.append(thread)
        thread.start()

    def _serve_serial(self, port: serial.SerialBase) -> None:
        while not self._closing.is_set():
            try:
                packet = port.read(1)
                if not packet:
                    continue
                waiting = min(port.in_waiting, _PACKET_SIZE - 1)
                if waiting:
                    packet += port.read(waiting)
            except OSError as exc:
                if not self._closing.is_set():
                    logger.error("serial read error %s", exc)
                return
            try:
                self._process(Request(new_rtu_frame(packet), port))
            except FrameError as exc:
                logger.warning("bad serial frame error %s", exc)
                logger.info("Keep the RTU server running")

    def close(self) -> None:
        """Stop listening, close serial ports and drop open connections."""
        self._closing.set()
        for listener in self._listeners:
            listener.close()
        for thread in self._accept_threads:
            thread.join()
        for thread in self._port_threads:
            thread.join()
        for port in self._ports:
            port.close()
        with self._connections_lock:
            connections = list(self._connections)
        for conn in connections:
            try:
                conn.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
            conn.close()
        self._listeners.clear()
        self._accept_threads.clear()
        self._port_threads.clear()
        self._ports.clear()