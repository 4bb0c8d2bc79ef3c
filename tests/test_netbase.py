import io
import urllib.error
from types import SimpleNamespace
from unittest import mock

import psutil
import pytest

from envbase import netbase


class _FakeSocket:
    def __init__(self, *args, **kwargs):
        self.connected_to = None

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def connect(self, address):
        self.connected_to = address

    def getsockname(self):
        return ("192.0.2.10", 54321)


class _FailingSocket(_FakeSocket):
    def connect(self, address):
        raise OSError("network unreachable")


def test_get_local_addr_fallback():
    with mock.patch("socket.create_connection", side_effect=OSError("down")):
        assert netbase.get_local_addr() == "127.0.0.1"


def test_get_local_addr_success():
    with mock.patch("socket.create_connection", return_value=_FakeSocket()):
        assert netbase.get_local_addr() == "192.0.2.10"


def test_get_all_mac_addresses():
    interfaces = {
        "eth0": [
            SimpleNamespace(family=psutil.AF_LINK, address="AA:BB:CC:00:00:01"),
            SimpleNamespace(family=2, address="192.0.2.1"),
        ],
        "tun0": [SimpleNamespace(family=2, address="198.51.100.1")],
    }
    with mock.patch("psutil.net_if_addrs", return_value=interfaces):
        assert netbase.get_all_mac_addresses() == ["aa-bb-cc-00-00-01", ""]


def test_get_external_ip_success():
    response = io.BytesIO(b"203.0.113.7")
    with mock.patch("urllib.request.urlopen", return_value=response):
        assert netbase.get_external_ip() == "203.0.113.7"


def test_get_external_ip_failure():
    with mock.patch("urllib.request.urlopen", side_effect=urllib.error.URLError("timeout")):
        assert netbase.get_external_ip() == ""


def test_get_public_ip():
    with mock.patch("socket.socket", _FakeSocket):
        assert netbase.get_public_ip() == "192.0.2.10"


def test_get_public_ip_error():
    with mock.patch("socket.socket", _FailingSocket):
        with pytest.raises(OSError):
            netbase.get_public_ip()