import io
import socket
import sys
import threading

import pytest

from matchengine.client import (
    Buy,
    Cancel,
    Perf,
    Quit,
    Sell,
    build_cancel,
    build_nos,
    main,
    parse_command,
)
from matchengine.domain import CancelOrder, GatewayMessageKind, NewOrder, Side
from matchengine.fix import MessageConverter, decode_fix


@pytest.mark.parametrize(
    "text, expected",
    [
        ("buy 10 5", Buy(10, 5)),
        ("b 10 5", Buy(10, 5)),
        ("SELL 3 4", Sell(3, 4)),
        ("s 3 4", Sell(3, 4)),
        ("c b 7", Cancel(True, 7)),
        ("cancel s 7", Cancel(False, 7)),
        ("p 100", Perf(100)),
        ("perf 2", Perf(2)),
        ("q", Quit()),
        ("QUIT", Quit()),
    ],
)
def test_parse_command(text, expected):
    assert parse_command(text) == expected


@pytest.mark.parametrize(
    "text",
    ["hello", "", "buy x 5", "buy 10", "buy -1 5", "buy 4294967296 1", "perf", "c b"],
)
def test_parse_command_rejects(text):
    with pytest.raises(ValueError):
        parse_command(text)


def test_build_nos_fields():
    fields = decode_fix(build_nos(True, 10, 5))
    assert fields[8] == "FIX.4.2"
    assert fields[35] == "D"
    assert fields[49] == "CLIENT12"
    assert fields[44] == "10"
    assert fields[38] == "5"
    assert fields[54] == "1"


def test_build_nos_sell_side():
    assert decode_fix(build_nos(False, 1, 1))[54] == "2"


def test_build_cancel_fields():
    fields = decode_fix(build_cancel(False, 7))
    assert fields[35] == "F"
    assert fields[37] == "7"
    assert fields[54] == "2"
    assert 44 not in fields


def test_nos_round_trip_through_converter():
    message = MessageConverter().fix_to_in_msg(3, build_nos(False, 12, 9).encode())
    assert message.kind is GatewayMessageKind.LIMIT_ORDER
    assert isinstance(message.payload, NewOrder)
    assert (message.payload.client_id, message.payload.px, message.payload.qty) == (3, 12, 9)
    assert message.payload.order_action is Side.SELL


def test_cancel_round_trip_through_converter():
    message = MessageConverter().fix_to_in_msg(4, build_cancel(True, 77).encode())
    assert message.payload == CancelOrder(client_id=4, order_action=Side.BUY, order_id=77)


@pytest.fixture
def gateway():
    server = socket.create_server(("127.0.0.1", 0))
    received = bytearray()
    done = threading.Event()

    def serve():
        conn, _ = server.accept()
        with conn:
            while chunk := conn.recv(4096):
                received.extend(chunk)
        done.set()

    thread = threading.Thread(target=serve, daemon=True)
    thread.start()
    yield server.getsockname()[1], received, done
    server.close()


def test_main_sends_orders(gateway, monkeypatch):
    port, received, done = gateway
    monkeypatch.setattr(sys, "stdin", io.StringIO("b 10 5\nc s 8\nq\n"))
    assert main(["--port", str(port)]) == 0
    assert done.wait(5)
    expected = build_nos(True, 10, 5) + "\n" + build_cancel(False, 8) + "\n"
    assert bytes(received) == expected.encode()


def test_main_perf_sends_batch(gateway, monkeypatch):
    port, received, done = gateway
    monkeypatch.setattr(sys, "stdin", io.StringIO("p 3\nq\n"))
    assert main(["--port", str(port)]) == 0
    assert done.wait(5)
    lines = bytes(received).decode().splitlines()
    assert len(lines) == 3
    for line in lines:
        fields = decode_fix(line)
        assert 1 <= int(fields[44]) <= 100
        assert 1 <= int(fields[38]) <= 100
        assert fields[54] in ("1", "2")


def test_main_reports_unknown_command(gateway, monkeypatch, capsys):
    port, received, done = gateway
    monkeypatch.setattr(sys, "stdin", io.StringIO("xyz\n"))
    assert main(["--port", str(port)]) == 0
    assert done.wait(5)
    assert "Not a known command!" in capsys.readouterr().out
    assert bytes(received) == b""


def test_main_fails_without_gateway():
    probe = socket.create_server(("127.0.0.1", 0))
    port = probe.getsockname()[1]
    probe.close()
    with pytest.raises(ConnectionError):
        main(["--port", str(port)])