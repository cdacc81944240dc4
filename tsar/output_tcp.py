"""Sending check output to TCP collectors."""

import re
import socket

from tsar.debug import LogLevel, do_debug

CONNECT_TIMEOUT = 2.0
INADDR_ANY = "0.0.0.0"

_LONG = re.compile(r"[ \t\n\v\f\r]*([+-]?[0-9]+)")


def _atol(text):
    match = _LONG.match(text)
    return int(match.group(1)) if match else 0


def str2sa(text):
    """Turn ``host:port`` into an ``(ipv4 address, port)`` pair.

    An empty host or ``*`` means any address; a missing port means 0.
    An unresolvable host name is fatal.
    """
    host, sep, port_text = text.rpartition(":")
    if not sep:
        host, port = text, 0
    else:
        port = _atol(port_text)

    if host in ("", "*"):
        address = INADDR_ANY
    else:
        try:
            socket.inet_pton(socket.AF_INET, host)
            address = host
        except OSError:
            try:
                address = socket.gethostbyname(host)
            except OSError:
                do_debug(LogLevel.FATAL, f"str2sa: Invalid server name, '{host}'")
                raise
    return address, port & 0xFFFF


def send_data_tcp(addr, data):
    """Connect to ``addr`` and write ``data``; return whether it got through."""
    payload = data.encode() if isinstance(data, str) else bytes(data)
    target = str2sa(addr)
    try:
        sock = socket.create_connection(target, timeout=CONNECT_TIMEOUT)
    except OSError:
        return False
    with sock:
        if payload:
            try:
                sock.sendall(payload)
            except OSError as err:
                do_debug(
                    LogLevel.ERR,
                    f"output_db write error:dst:{addr}\terrno:{err.strerror}",
                )
                return False
    return True


def output_multi_tcp(addresses, data):
    """Send ``data`` to every address; return how many received it."""
    return sum(1 for addr in addresses if send_data_tcp(addr, data))