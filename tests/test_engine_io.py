import json
import queue
import socket
import threading

import pytest

from matchengine.codec import decode_message, encode_message
from matchengine.domain import (
    BookCancel,
    CancelOrder,
    LimitOrder,
    NewOrder,
    NewOrderAck,
    SequencedEngineMessage,
    Side,
)
from matchengine.engine_io import (
    engine_ports,
    initialize_match_thread,
    main,
    receive_msg_in,
    send_msg_out,
    to_book_order,
)


def test_default_ports():
    assert engine_ports({}) == (3000, 3500)


def test_engine_port_sets_both():
    assert engine_ports({"ENGINE_PORT": "4100"}) == (4100, 4100)


@pytest.mark.parametrize("value", ["abc", "70000", "-1"])
def test_invalid_port_raises(value):
    with pytest.raises(ValueError):
        engine_ports({"ENGINE_PORT": value})


def test_to_book_order_new():
    order = to_book_order(NewOrder(client_id=4, order_action=Side.SELL, px=12, qty=3, timestamp=0))
    assert isinstance(order, LimitOrder)
    assert (order.client_id, order.action, order.px, order.qty) == (4, Side.SELL, 12, 3)
    assert 0 <= order.id < 2**32
    assert order.placed_time > 0


def test_to_book_order_cancel():
    order = to_book_order(CancelOrder(client_id=4, order_action=Side.BUY, order_id=77))
    assert order == BookCancel(client_id=4, action=Side.BUY, id=77)


def test_to_book_order_rejects_other_messages():
    ack = NewOrderAck(client_id=1, action=Side.BUY, order_id=1, px=1, qty=1, ack_time=0)
    with pytest.raises(ValueError):
        to_book_order(ack)


def test_initialize_match_thread_requires_isin(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"symbol": "SYM"}), encoding="utf-8")
    with pytest.raises(KeyError):
        initialize_match_thread(queue.Queue(), queue.Queue(), path)


def test_initialize_match_thread_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        initialize_match_thread(queue.Queue(), queue.Queue(), tmp_path / "absent.json")


def _udp(timeout=2.0):
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind(("127.0.0.1", 0))
    sock.settimeout(timeout)
    return sock


def test_send_msg_out_delivers_encoded_messages():
    receiver = _udp()
    sender = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    message = SequencedEngineMessage(
        9, NewOrderAck(client_id=1, action=Side.BUY, order_id=2, px=3, qty=4, ack_time=5)
    )
    rx = queue.Queue()
    rx.put(message)
    rx.put(None)
    try:
        send_msg_out(rx, sender, receiver.getsockname())
        data, _ = receiver.recvfrom(1024)
    finally:
        sender.close()
        receiver.close()
    assert decode_message(data) == message
    assert rx.empty()


def test_receive_msg_in_acks_and_forwards():
    engine_sock = _udp(timeout=0.05)
    client = _udp()
    order_q = queue.Queue()
    worker = threading.Thread(target=receive_msg_in, args=(engine_sock, order_q))
    worker.start()
    try:
        inbound = SequencedEngineMessage(
            1, NewOrder(client_id=8, order_action=Side.BUY, px=20, qty=5, timestamp=0)
        )
        client.sendto(encode_message(inbound), engine_sock.getsockname())
        ack, _ = client.recvfrom(16)
        order = order_q.get(timeout=2)
    finally:
        engine_sock.close()
        worker.join(timeout=5)
        client.close()
    assert ack == (1).to_bytes(4, "little")
    assert (order.client_id, order.action, order.px, order.qty) == (8, Side.BUY, 20, 5)
    assert not worker.is_alive()


def test_main_help_exits():
    with pytest.raises(SystemExit) as info:
        main(["--help"])
    assert info.value.code == 0