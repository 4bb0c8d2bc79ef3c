"""Modbus helpers and server, HJ212 naming, network lookups and MySQL helpers."""

__version__ = "0.1.0"