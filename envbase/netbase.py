"""Network helpers: local and public addresses, MAC addresses."""

from __future__ import annotations

import socket
import urllib.error
import urllib.request

import psutil

LOCAL_PROBE_HOST = ("www.baidu.com", 80)
PUBLIC_PROBE_HOST = ("8.8.8.8", 80)
EXTERNAL_IP_URL = "http://myexternalip.com/raw"

_TIMEOUT = 10.0


def get_local_addr() -> str:
    """Return the local address used to reach the internet, or 127.0.0.1."""
    try:
        with socket.create_connection(LOCAL_PROBE_HOST, timeout=_TIMEOUT) as conn:
            return conn.getsockname()[0]
    except OSError:
        return "127.0.0.1"


def get_all_mac_addresses() -> list[str]:
    """Return one dash-separated MAC address per interface ("" if it has none)."""
    macs = []
    for addresses in psutil.net_if_addrs().values():
        mac = next(
            (addr.address for addr in addresses if addr.family == psutil.AF_LINK),
            "",
        )
        macs.append(mac.replace(":", "-").lower())
    return macs


def get_external_ip() -> str:
    """Ask a web service for the external IP; return "" if it cannot be reached."""
    try:
        with urllib.request.urlopen(EXTERNAL_IP_URL, timeout=_TIMEOUT) as resp:
            content = resp.read()
    except urllib.error.HTTPError as exc:
        content = exc.read()
    except (urllib.error.URLError, OSError):
        return ""
    return content.decode("utf-8", errors="replace")


def get_public_ip() -> str:
    """Return the local address of the interface routed towards a public DNS server."""
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
        sock.connect(PUBLIC_PROBE_HOST)
        return sock.getsockname()[0]