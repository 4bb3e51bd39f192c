"""Market-data reader that prints the engine's published messages."""

from __future__ import annotations

import argparse
import sys
from typing import Optional, Sequence

from matchengine.codec import decode_message
from matchengine.domain import CancelOrderAck, EngineMessage, NewOrderAck, TradeExecution
from matchengine.network import MAX_UDP_PACKET_SIZE, multicast_udp_socket

ENGINE_MSG_OUT_PORT = 3500


def describe(message: EngineMessage) -> str:
    """Text form of an ack or trade; ValueError for anything else."""
    if isinstance(message, (NewOrderAck, CancelOrderAck, TradeExecution)):
        return repr(message)
    raise ValueError(f"market data does not report {type(message).__name__}")


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Listen on the engine's output port and print each message."""
    parser = argparse.ArgumentParser(prog="matchengine-market-data", description="Print engine output.")
    parser.add_argument("--port", type=int, default=ENGINE_MSG_OUT_PORT, help="engine MSG_OUT port")
    parser.add_argument("--count", type=int, default=None, help="stop after this many datagrams")
    args = parser.parse_args(argv)

    with multicast_udp_socket(args.port, True) as sock:
        print(f"Initialized MSG_OUT -> Market Data Reporter multicast on port {args.port}")
        handled = 0
        while args.count is None or handled < args.count:
            try:
                data, _ = sock.recvfrom(MAX_UDP_PACKET_SIZE)
            except OSError:
                continue
            handled += 1
            try:
                print(describe(decode_message(data).message), flush=True)
            except ValueError as exc:
                print(f"Error: {exc}", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())