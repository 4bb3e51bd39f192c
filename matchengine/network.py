"""UDP sockets used between the gateway, engine and market-data reader."""

from __future__ import annotations

import socket

MAX_UDP_PACKET_SIZE = 64


def multicast_udp_socket(port: int, bind: bool) -> socket.socket:
    """Create a UDP socket with address and port reuse, optionally bound to port."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        if hasattr(socket, "SO_REUSEPORT"):
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEPORT, 1)
        if bind:
            sock.bind(("0.0.0.0", port))
    except OSError:
        sock.close()
        raise
    return sock