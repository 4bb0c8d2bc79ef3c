"""A Modbus slave serving TCP and RTU, with its frames, CRC and function handlers."""