"""Gateway process: FIX client sessions bridged to the engine over UDP."""

from __future__ import annotations

import argparse
import asyncio
import os
import queue
import random
import socket
import struct
import sys
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from matchengine.codec import CodecError, decode_message, encode_message
from matchengine.domain import (
    CancelOrderAck,
    EngineMessage,
    GatewayMessage,
    GatewayMessageKind,
    NewOrderAck,
    SequencedEngineMessage,
    TradeExecution,
)
from matchengine.engine_io import DEFAULT_MSG_IN_PORT, engine_ports
from matchengine.fix import FixDecodeError, MessageConverter
from matchengine.network import MAX_UDP_PACKET_SIZE, multicast_udp_socket

DEFAULT_GATEWAY_PORT = 3001
MSG_IN_ADDRESS = ("0.0.0.0", DEFAULT_MSG_IN_PORT)
_ACK = struct.Struct("<I")

Sessions = Dict[int, "queue.Queue[Optional[EngineMessage]]"]


def _random_client_id() -> int:
    return random.getrandbits(32)


@dataclass
class ClientSession:
    """State kept for one connected FIX client."""

    address: Optional[Tuple[Any, ...]]
    client_id: int = field(default_factory=_random_client_id)
    heartbeat_interval: float = 0.3
    initial_seq_number: int = 0
    last_seen_client_seq_number: int = 0
    last_seen_gateway_seq_number: int = 0
    logged_in: bool = False
    messages: List[str] = field(default_factory=list)


async def _read_requests(
    reader: asyncio.StreamReader,
    client_id: int,
    converter: MessageConverter,
    gateway_tx: "queue.Queue[GatewayMessage]",
) -> None:
    while True:
        try:
            line = await reader.readline()
        except ConnectionError:
            line = b""
        if not line:
            print("Client disconnected")
            return
        payload = line[:-1] if line.endswith(b"\n") else line
        try:
            message = converter.fix_to_in_msg(client_id, payload)
        except FixDecodeError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            continue
        gateway_tx.put(message)


async def _write_replies(
    writer: asyncio.StreamWriter, outbox: "queue.Queue[Optional[EngineMessage]]"
) -> None:
    loop = asyncio.get_running_loop()
    while True:
        message = await loop.run_in_executor(None, outbox.get)
        if message is None:
            return
        try:
            writer.write(f"{message!r}\n".encode("utf-8"))
            await writer.drain()
        except ConnectionError:
            return


async def handle_client(
    reader: asyncio.StreamReader,
    writer: asyncio.StreamWriter,
    converter: MessageConverter,
    gateway_tx: "queue.Queue[GatewayMessage]",
    sessions: Sessions,
) -> None:
    """Serve one client: forward its orders and write back the engine's replies."""
    print("Client connected!")
    session = ClientSession(writer.get_extra_info("peername"))
    while session.client_id in sessions:
        session.client_id = _random_client_id()

    outbox: "queue.Queue[Optional[EngineMessage]]" = queue.Queue()
    sessions[session.client_id] = outbox
    write_task = asyncio.create_task(_write_replies(writer, outbox))
    try:
        await _read_requests(reader, session.client_id, converter, gateway_tx)
    finally:
        sessions.pop(session.client_id, None)
        outbox.put(None)
        try:
            await write_task
        finally:
            writer.close()


async def serve_sessions(
    port: int, gateway_tx: "queue.Queue[GatewayMessage]", sessions: Sessions
) -> None:
    """Accept FIX client connections on port forever."""
    converter = MessageConverter()
    server = await asyncio.start_server(
        lambda r, w: handle_client(r, w, converter, gateway_tx, sessions), "0.0.0.0", port
    )
    print(f"Initialized Gateway FIX session handler {port}")
    async with server:
        await server.serve_forever()


def to_engine_message(message: GatewayMessage, sequence: int) -> SequencedEngineMessage:
    """Wrap a client request as the engine's inbound message with a sequence number."""
    if message.kind is GatewayMessageKind.LIMIT_ORDER:
        return SequencedEngineMessage(sequence, message.payload)
    if message.kind is GatewayMessageKind.CANCEL_ORDER:
        return SequencedEngineMessage(sequence, message.payload)
    raise ValueError("market orders are not supported by the engine")


def submit_to_engine(
    port: int,
    rx: "queue.Queue[Optional[GatewayMessage]]",
    address: Tuple[str, int] = MSG_IN_ADDRESS,
) -> None:
    """Send queued requests to the engine one at a time, waiting for each ack.

    A None item ends the loop.
    """
    with multicast_udp_socket(port, False) as sock:
        print(f"Initialized Gateway -> MSG_IN multicast on port {port}")
        sequence = 1
        while True:
            message = rx.get()
            if message is None:
                return
            sock.sendto(encode_message(to_engine_message(message, sequence)), address)
            ack, _ = sock.recvfrom(_ACK.size)
            if len(ack) != _ACK.size:
                raise RuntimeError(f"engine ack has {len(ack)} bytes, expected {_ACK.size}")
            (acked,) = _ACK.unpack(ack)
            if acked != sequence:
                raise RuntimeError(f"engine acked sequence {acked}, expected {sequence}")
            sequence += 1


def route_engine_message(message: EngineMessage, sessions: Sessions) -> List[int]:
    """Deliver an engine reply to the sessions it concerns; return their client ids."""
    if isinstance(message, (NewOrderAck, CancelOrderAck)):
        sessions[message.client_id].put(message)
        return [message.client_id]
    if isinstance(message, TradeExecution):
        sessions[message.bid_client_id].put(message)
        sessions[message.ask_client_id].put(message)
        return [message.bid_client_id, message.ask_client_id]
    raise ValueError(f"the gateway does not route {type(message).__name__}")


def receive_engine_out(port: int, sessions: Sessions) -> None:
    """Receive engine output on port forever and route it to client sessions."""
    with multicast_udp_socket(port, True) as sock:
        print(f"Initialized MSG_OUT -> Gateway multicast on port {port}")
        while True:
            try:
                data, _ = sock.recvfrom(MAX_UDP_PACKET_SIZE)
            except OSError:
                continue
            try:
                route_engine_message(decode_message(data).message, sessions)
            except (CodecError, KeyError, ValueError) as exc:
                print(f"Error: cannot deliver engine message: {exc!r}", file=sys.stderr)


def _gateway_port() -> int:
    port = int(os.environ.get("GATEWAY_PORT", str(DEFAULT_GATEWAY_PORT)))
    if not 0 <= port <= 65535:
        raise ValueError(f"port out of range: {port}")
    return port


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Start the engine links and serve FIX clients."""
    parser = argparse.ArgumentParser(prog="matchengine-gateway", description="Run the FIX gateway.")
    parser.parse_args(argv)

    print("--- Initializing Gateway ---")
    gateway_port = _gateway_port()
    in_port, out_port = engine_ports()

    gateway_q: "queue.Queue[Optional[GatewayMessage]]" = queue.Queue()
    sessions: Sessions = {}

    threading.Thread(
        target=submit_to_engine, args=(in_port, gateway_q), name="msg-in", daemon=True
    ).start()
    threading.Thread(
        target=receive_engine_out, args=(out_port, sessions), name="msg-out", daemon=True
    ).start()

    try:
        asyncio.run(serve_sessions(gateway_port, gateway_q, sessions))  # type: ignore[arg-type]
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())