"""Engine process: the match thread and its UDP inbound and outbound links."""

from __future__ import annotations

import argparse
import os
import queue
import random
import socket
import struct
import sys
import threading
from pathlib import Path
from typing import Mapping, Optional, Sequence, Tuple, Union

from matchengine.codec import decode_message, encode_message
from matchengine.config import load_engine_config
from matchengine.domain import (
    BookCancel,
    BookOrder,
    CancelOrder,
    EngineMessage,
    LimitOrder,
    NewOrder,
    SequencedEngineMessage,
)
from matchengine.engine import MatchEngine
from matchengine.network import MAX_UDP_PACKET_SIZE, multicast_udp_socket
from matchengine.timeutil import epoch_nanos, wait_50_milli

DEFAULT_MSG_IN_PORT = 3000
DEFAULT_MSG_OUT_PORT = 3500
MSG_OUT_ADDRESS = ("0.0.0.0", 3500)
_ACK = struct.Struct("<I")


def _port(text: str) -> int:
    port = int(text)
    if not 0 <= port <= 65535:
        raise ValueError(f"port out of range: {port}")
    return port


def engine_ports(env: Optional[Mapping[str, str]] = None) -> Tuple[int, int]:
    """The MSG_IN and MSG_OUT ports, both taken from ENGINE_PORT when it is set."""
    env = os.environ if env is None else env
    value = env.get("ENGINE_PORT")
    if value is None:
        return DEFAULT_MSG_IN_PORT, DEFAULT_MSG_OUT_PORT
    return _port(value), _port(value)


def initialize_match_thread(
    out_tx: "queue.Queue[SequencedEngineMessage]",
    order_rx: "queue.Queue[BookOrder]",
    config_path: Union[str, Path, None] = None,
) -> None:
    """Build an engine from the configuration file and run it forever."""
    config = load_engine_config() if config_path is None else load_engine_config(config_path)
    engine = MatchEngine(config["symbol"], config["isin"])
    engine.run(order_rx, out_tx, threading.Event())


def to_book_order(message: EngineMessage) -> BookOrder:
    """Turn an inbound new-order or cancel message into a book instruction."""
    if isinstance(message, NewOrder):
        return LimitOrder(
            client_id=message.client_id,
            id=random.getrandbits(32),
            action=message.order_action,
            px=message.px,
            qty=message.qty,
            placed_time=epoch_nanos(),
        )
    if isinstance(message, CancelOrder):
        return BookCancel(
            client_id=message.client_id,
            action=message.order_action,
            id=message.order_id,
        )
    raise ValueError(f"the engine does not accept {type(message).__name__} inbound")


def _closed(sock: socket.socket) -> bool:
    return sock.fileno() == -1


def receive_msg_in(sock: socket.socket, order_tx: "queue.Queue[BookOrder]") -> None:
    """Acknowledge and forward each inbound datagram until the socket is closed."""
    last_seen_seq = 0
    while True:
        try:
            data, address = sock.recvfrom(MAX_UDP_PACKET_SIZE)
        except socket.timeout:
            if _closed(sock):
                return
            continue
        except OSError:
            if _closed(sock):
                return
            raise

        inbound = decode_message(data)
        sock.sendto(_ACK.pack(inbound.sequence_number), address)

        if inbound.sequence_number != last_seen_seq + 1:
            print("Received out of order message", file=sys.stderr)
        last_seen_seq = inbound.sequence_number

        order_tx.put(to_book_order(inbound.message))


def send_msg_out(
    rx: "queue.Queue[Optional[SequencedEngineMessage]]",
    sock: socket.socket,
    address: Tuple[str, int] = MSG_OUT_ADDRESS,
) -> None:
    """Send every queued engine message to address; a None item ends the loop."""
    while True:
        message = rx.get()
        if message is None:
            return
        sock.sendto(encode_message(message), address)


def _msg_in_thread(port: int, order_tx: "queue.Queue[BookOrder]") -> None:
    print(f"Initializing Engine MSG_IN multicast on port {port}")
    with multicast_udp_socket(port, True) as sock:
        receive_msg_in(sock, order_tx)


def _msg_out_thread(port: int, rx: "queue.Queue[Optional[SequencedEngineMessage]]") -> None:
    print(f"Initializing Engine MSG_OUT multicast on port {port}")
    with multicast_udp_socket(port, False) as sock:
        send_msg_out(rx, sock)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Start the match, MSG_IN and MSG_OUT threads and wait on them."""
    parser = argparse.ArgumentParser(prog="matchengine-engine", description="Run the match engine.")
    parser.add_argument("--config", type=Path, default=None, help="path of the engine JSON config")
    args = parser.parse_args(argv)

    print("--- Initializing Match Engine ---")
    in_port, out_port = engine_ports()

    out_q: "queue.Queue[Optional[SequencedEngineMessage]]" = queue.Queue()
    order_q: "queue.Queue[BookOrder]" = queue.Queue()

    threads = []
    match_thread = threading.Thread(
        target=initialize_match_thread, args=(out_q, order_q, args.config), name="match", daemon=True
    )
    match_thread.start()
    threads.append(match_thread)
    wait_50_milli()

    in_thread = threading.Thread(target=_msg_in_thread, args=(in_port, order_q), name="msg-in", daemon=True)
    in_thread.start()
    threads.append(in_thread)
    wait_50_milli()

    out_thread = threading.Thread(target=_msg_out_thread, args=(out_port, out_q), name="msg-out", daemon=True)
    out_thread.start()
    threads.append(out_thread)

    for thread in threads:
        thread.join()
    return 0


if __name__ == "__main__":
    sys.exit(main())