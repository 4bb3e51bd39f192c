"""Interactive order-entry client that sends FIX orders to the gateway."""

from __future__ import annotations

import argparse
import os
import queue
import random
import socket
import sys
import threading
from dataclasses import dataclass
from typing import Optional, Sequence, TextIO, Union

from matchengine.fix import (
    ACCOUNT,
    CL_ORD_ID,
    MSG_SEQ_NUM,
    ORD_TYPE,
    ORD_TYPE_LIMIT,
    ORDER_CANCEL_REQUEST,
    ORDER_ID,
    ORDER_QTY,
    ORDER_SINGLE,
    PRICE,
    SENDER_COMP_ID,
    SIDE,
    SIDE_BUY,
    SIDE_SELL,
    TARGET_COMP_ID,
    TIME_IN_FORCE,
    TIME_IN_FORCE_DAY,
    encode_fix,
)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 3001
BEGIN_STRING = "FIX.4.2"
_U32_MAX = 0xFFFFFFFF

_BANNER = (
    "-----------------\n"
    "OE CLIENT\nBUY px qty\nSELL px qty\nPERF n_orders\nQUIT px qty\n"
    "-----------------"
)


@dataclass(frozen=True)
class Buy:
    """Place a buy limit order."""

    px: int
    qty: int


@dataclass(frozen=True)
class Sell:
    """Place a sell limit order."""

    px: int
    qty: int


@dataclass(frozen=True)
class Cancel:
    """Cancel a resting order."""

    is_buy: bool
    order_id: int


@dataclass(frozen=True)
class Perf:
    """Send a batch of random orders."""

    batch_size: int


@dataclass(frozen=True)
class Quit:
    """Leave the client."""


Command = Union[Buy, Sell, Cancel, Perf, Quit]


def _u32(token: str) -> int:
    digits = token[1:] if token.startswith("+") else token
    if not (digits.isascii() and digits.isdigit()) or int(digits) > _U32_MAX:
        raise ValueError(f"not an unsigned 32-bit integer: {token!r}")
    return int(digits)


def _arg(tokens: Sequence[str], index: int) -> str:
    try:
        return tokens[index]
    except IndexError:
        raise ValueError(f"{tokens[0]!r} needs more arguments") from None


def parse_command(text: str) -> Command:
    """Parse one line of user input into a command; raise ValueError if it is not one."""
    tokens = text.lower().split(" ")
    name = tokens[0]
    if name in ("buy", "b"):
        return Buy(_u32(_arg(tokens, 1)), _u32(_arg(tokens, 2)))
    if name in ("sell", "s"):
        return Sell(_u32(_arg(tokens, 1)), _u32(_arg(tokens, 2)))
    if name in ("cancel", "c"):
        side = _arg(tokens, 1)
        return Cancel(side == "b", _u32(_arg(tokens, 2)))
    if name in ("perf", "p"):
        return Perf(_u32(_arg(tokens, 1)))
    if name in ("quit", "q"):
        return Quit()
    raise ValueError(f"unknown command {name!r}")


def build_nos(is_buy: bool, px: int, qty: int) -> str:
    """Build a FIX NewOrderSingle for a limit order."""
    fields = [
        (MSG_SEQ_NUM, 215),
        (SENDER_COMP_ID, "CLIENT12"),
        (TARGET_COMP_ID, "B"),
        (ACCOUNT, "TestClient"),
        (CL_ORD_ID, "13346"),
        (ORD_TYPE, ORD_TYPE_LIMIT),
        (PRICE, px),
        (ORDER_QTY, qty),
        (SIDE, SIDE_BUY if is_buy else SIDE_SELL),
        (TIME_IN_FORCE, TIME_IN_FORCE_DAY),
    ]
    return encode_fix(BEGIN_STRING, ORDER_SINGLE, fields).decode("ascii")


def build_cancel(is_buy: bool, order_id: int) -> str:
    """Build a FIX OrderCancelRequest for a resting order."""
    fields = [
        (MSG_SEQ_NUM, 215),
        (SENDER_COMP_ID, "CLIENT12"),
        (TARGET_COMP_ID, "B"),
        (ACCOUNT, "TestClient"),
        (ORDER_ID, order_id),
        (ORD_TYPE, ORD_TYPE_LIMIT),
        (SIDE, SIDE_BUY if is_buy else SIDE_SELL),
        (TIME_IN_FORCE, TIME_IN_FORCE_DAY),
    ]
    return encode_fix(BEGIN_STRING, ORDER_CANCEL_REQUEST, fields).decode("ascii")


def _writer(sock: socket.socket, outbox: "queue.Queue[Optional[str]]") -> None:
    while (message := outbox.get()) is not None:
        try:
            sock.sendall(message.encode("ascii"))
        except OSError:
            return


def _reader(sock: socket.socket, closing: threading.Event) -> None:
    while True:
        try:
            data = sock.recv(4096)
        except OSError:
            data = b""
        if not data:
            if closing.is_set():
                return
            print("Client disconnected!", flush=True)
            os._exit(0)


def _random_order() -> str:
    px = random.getrandbits(32) % 100 + 1
    qty = random.getrandbits(32) % 100 + 1
    return build_nos(random.getrandbits(32) % 2 == 0, px, qty)


def _prompt_loop(outbox: "queue.Queue[Optional[str]]", stream: TextIO) -> None:
    while True:
        print("Enter input:")
        line = stream.readline()
        if not line:
            return
        try:
            command = parse_command(line.strip())
        except ValueError:
            print("Not a known command!")
            continue

        match command:
            case Buy(px, qty):
                outbox.put(build_nos(True, px, qty) + "\n")
            case Sell(px, qty):
                outbox.put(build_nos(False, px, qty) + "\n")
            case Cancel(is_buy, order_id):
                outbox.put(build_cancel(is_buy, order_id) + "\n")
            case Perf(batch_size):
                for _ in range(batch_size):
                    outbox.put(_random_order() + "\n")
                print("Perf done!")
            case Quit():
                return


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Connect to the gateway and send orders typed on standard input."""
    parser = argparse.ArgumentParser(prog="matchengine-client", description="Order-entry client.")
    parser.add_argument("--host", default=DEFAULT_HOST, help="gateway host")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help="gateway port")
    args = parser.parse_args(argv)

    try:
        sock = socket.create_connection((args.host, args.port))
    except OSError as exc:
        raise ConnectionError("Failed to connect to the gateway server") from exc

    outbox: "queue.Queue[Optional[str]]" = queue.Queue()
    closing = threading.Event()
    writer = threading.Thread(target=_writer, args=(sock, outbox), name="oe-writer", daemon=True)
    reader = threading.Thread(target=_reader, args=(sock, closing), name="oe-reader", daemon=True)
    writer.start()
    reader.start()

    print(_BANNER)
    try:
        _prompt_loop(outbox, sys.stdin)
    finally:
        outbox.put(None)
        writer.join()
        closing.set()
        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        sock.close()
        reader.join(timeout=1.0)
    return 0


if __name__ == "__main__":
    sys.exit(main())