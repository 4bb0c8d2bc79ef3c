# envbase

Building blocks for collecting and storing environmental monitoring data:

- **Modbus byte helpers** (`envbase.modbus_util`): the Modbus CRC-16, hex
  string parsing, and conversions between integers, floats and little- or
  big-endian bytes.
- **A Modbus server** (`envbase.mbserver`): a slave device with in-memory
  coils, discrete inputs, holding registers and input registers, reachable
  over TCP or a serial line (RTU).
- **HJ212 naming rules** (`envbase.namerules`): table names for real-time,
  minute, hour and day data, and column names for pollutant factors.
- **Network lookups** (`envbase.netbase`): the local address, the MAC
  addresses of the network interfaces and the external address.
- **MySQL access** (`envbase.sqlbuild`, `envbase.mysqlcache`): SQL text
  builders for inserts, replaces and upserts, and a connection wrapper that
  runs them and returns query results as a `DataTable`.

Python 3.10 or later is required. The package depends on `pymysql`,
`pyserial` and `psutil`; install the `test` extra to run the tests with
`pytest`.

## Modbus helpers

```python
from envbase.modbus_util import check_crc, check_sum, int16_to_bytes, string_to_bytes

frame = string_to_bytes("01 04 02 FF FF B8 80")
assert check_crc(frame, 5)              # the two bytes after the first five are their CRC
assert check_sum(frame[:5]) == bytes([0xB8, 0x80])   # CRC, low byte first
assert int16_to_bytes(1024) == bytes([0x00, 0x04])   # little-endian
```

`string_to_bytes` accepts hex with or without separating spaces; tokens that
are not hex become zero bytes. `int32_to_bytes` and `uint16_to_bytes` encode
little-endian, `int16_string_to_bytes` and `int32_string_to_bytes` parse a
decimal string and encode it big-endian. `bytes_to_int`, `bytes_to_string`,
`bytes_to_string_le` and `bytes_to_float32` turn register bytes back into
numbers or their decimal text. `demo()` prints a short walk through these
helpers.

## Modbus server

```python
from envbase.mbserver.server import Server

with Server() as server:
    server.holding_registers[0] = 42
    host, port = server.listen_tcp("127.0.0.1:0")   # returns the address bound
    # ... clients read and write the register maps ...
```

Each memory map holds 65536 entries. Function codes 1–6, 15 and 16 are
handled out of the box; any other code gets an `ILLEGAL_FUNCTION` exception
response. A handler can be added or replaced with
`register_function_handler`: it takes the server and the request frame and
returns the response data and an `ExceptionCode`. Requests from all
connections are handled one at a time.

A serial line is served with `listen_rtu` and a `SerialConfig` (address,
baud rate, data bits, stop bits, parity `N`/`E`/`O`, timeout); the address
may be a device path or a pyserial URL. Frames with a bad CRC are logged and
skipped. `close()` stops the listeners, closes the serial ports and drops
open connections.

`Server.handle` can also be called directly with a `Request`, which is
handy for testing handlers without a network:

```python
from envbase.mbserver.exceptions import ExceptionCode
from envbase.mbserver.frames import TCPFrame, get_exception, set_data_with_register_and_number
from envbase.mbserver.server import Request, Server

server = Server()
server.coils[10] = 1
frame = TCPFrame(transaction_identifier=1, device=255, function=1)
set_data_with_register_and_number(frame, 10, 1)
response = server.handle(Request(frame))
assert get_exception(response) == ExceptionCode.SUCCESS
assert response.data == bytes([1, 1])
```

Frames can also be built and parsed on their own:

```python
from envbase.mbserver.crc import crc_modbus
from envbase.mbserver.frames import new_rtu_frame

assert crc_modbus(bytes([0x01, 0x04, 0x02, 0xFF, 0xFF])) == 0x80B8
frame = new_rtu_frame(bytes([0x01, 0x04, 0x02, 0xFF, 0xFF, 0xB8, 0x80]))
assert frame.to_bytes() == bytes([0x01, 0x04, 0x02, 0xFF, 0xFF, 0xB8, 0x80])
```

An RTU packet that is too short or whose CRC does not match, or a TCP packet
whose length field is wrong, raises `FrameError`.

## HJ212 naming rules

```python
from envbase.namerules import factor_to_split, table_name_hj212, table_name_hj212_month

table_name_hj212("abcdefg", "2011")                  # "T_REAL_ABCDEFG"
table_name_hj212_month("abcdefg", "2011", "202109")
# ("T_RAW_REAL_202109_abcdefg", "T_RMC_REAL_202109_abcdefg")
factor_to_split("abc-def")                           # ("def_abc", "abc", "def")
```

The command numbers 2011, 2051, 2061 and 2031 stand for real-time, minute,
hour and day data (`DataType`); any other number gives empty names. Without
a time, `table_name_hj212_month` and `table_name_hj212_year` use the current
month or year.

## Network lookups

- `get_local_addr()` connects to a well-known web host and returns the local
  address used, or `127.0.0.1` if that fails.
- `get_all_mac_addresses()` returns one dash-separated, lower-case MAC
  address per interface (an empty string for interfaces without one).
- `get_external_ip()` asks a web service for the external address and
  returns `""` if it cannot be reached.
- `get_public_ip()` returns the local address of the interface routed
  towards a public DNS server; no packet is sent.

## MySQL

```python
from envbase.mysqlcache import MysqlCache

password = "password"
with MysqlCache("127.0.0.1:3306", "monitoring", "user", password) as db:
    table = db.select_sql("select * from T_REAL_ABCDEFG")
    for row in table.row_data:
        print(row)
    sql, affected = db.insert_data("T_REAL_ABCDEFG", {"Rtd_S01": "1.5"})
```

The connection is opened when `MysqlCache` is created and runs in autocommit
mode. Query results are rows of strings keyed by upper-case column names;
NULL comes back as an empty string. Insert, replace and upsert helpers
return the statement they ran together with the number of rows affected;
database errors are raised as `pymysql` errors, except where a method says
it returns a fallback (`tab_exist`, `get_columns`, `get_column_list`,
`get_columns_all`, `get_count`).

The builders in `envbase.sqlbuild` produce the same statements without a
connection. Values are quoted as given (only `insert_ignore_sql` can double
single quotes), so they must not come from untrusted input. Empty strings
become NULL; an empty set of values raises `NoDataError`.

## What this package does not do

There is no Modbus client and no command-line program: the server is
started from your own code. The MySQL helpers only talk to MySQL through
`pymysql`; other databases are not supported.