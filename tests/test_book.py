import pytest

from matchengine.book import HalfBook, OrderBook
from matchengine.domain import BookCancel, LimitOrder, Side


def order(order_id, side, px, qty, client_id=0):
    return LimitOrder(client_id=client_id, id=order_id, action=side, px=px, qty=qty, placed_time=0)


def test_add_orders_updates_volumes_and_counts():
    book = OrderBook()
    book.add_order(order(1, Side.BUY, 5, 10))
    book.add_order(order(2, Side.BUY, 6, 7))
    book.add_order(order(3, Side.SELL, 8, 4))
    assert book.orders_on_book() == 3
    assert book.bid_volume() == 10 + 7
    assert book.ask_volume() == 4
    assert book.total_volume() == book.bid_volume() + book.ask_volume()


def test_levels_are_sorted_and_fifo():
    half = HalfBook()
    half.add_order(order(1, Side.SELL, 9, 1))
    half.add_order(order(2, Side.SELL, 3, 1))
    half.add_order(order(3, Side.SELL, 9, 2))
    assert half.prices == [3, 9]
    assert half.lowest_price() == 3
    assert half.highest_price() == 9
    assert [o.id for o in half.orders_at(9)] == [1, 3]


def test_empty_half_book_has_no_prices():
    half = HalfBook()
    assert half.lowest_price() is None
    assert half.highest_price() is None
    assert half.orders_at(1) == ()


def test_added_order_is_copied():
    half = HalfBook()
    original = order(1, Side.BUY, 5, 10)
    half.add_order(original)
    original.qty = 99
    assert half.orders_at(5)[0].qty == 10
    assert half.volume == 10


def test_duplicate_id_is_rejected():
    half = HalfBook()
    half.add_order(order(1, Side.BUY, 5, 10))
    with pytest.raises(ValueError):
        half.add_order(order(1, Side.BUY, 6, 3))


def test_modify_changes_quantity_and_volume():
    book = OrderBook()
    book.add_order(order(1, Side.BUY, 5, 10))
    book.add_order(order(2, Side.BUY, 5, 3))
    assert book.modify_order(Side.BUY, 1, 4) is True
    assert book.bids.orders_at(5)[0].qty == 4
    assert book.bids.orders[1].qty == 4
    assert book.bid_volume() == 4 + 3


def test_modify_missing_order_returns_false():
    book = OrderBook()
    assert book.modify_order(Side.SELL, 42, 1) is False
    assert book.ask_volume() == 0


def test_modify_rejects_negative_quantity():
    half = HalfBook()
    half.add_order(order(1, Side.BUY, 5, 10))
    with pytest.raises(ValueError):
        half.modify_order(1, -1)


def test_remove_keeps_other_orders_at_level():
    book = OrderBook()
    book.add_order(order(1, Side.SELL, 5, 10))
    book.add_order(order(2, Side.SELL, 5, 6))
    assert book.remove_order(BookCancel(client_id=0, action=Side.SELL, id=1)) is True
    assert [o.id for o in book.asks.orders_at(5)] == [2]
    assert book.ask_volume() == 6
    assert book.orders_on_book() == 1


def test_remove_last_order_drops_level():
    book = OrderBook()
    book.add_order(order(1, Side.BUY, 5, 10))
    book.remove_order(BookCancel(client_id=0, action=Side.BUY, id=1))
    assert book.bids.price_exists(5) is False
    assert book.bids.prices == []
    assert book.total_volume() == 0


def test_remove_missing_or_wrong_side_returns_false():
    book = OrderBook()
    book.add_order(order(1, Side.BUY, 5, 10))
    assert book.remove_order(BookCancel(client_id=0, action=Side.SELL, id=1)) is False
    assert book.remove_order(BookCancel(client_id=0, action=Side.BUY, id=2)) is False
    assert book.orders_on_book() == 1


def test_remove_price_drops_its_orders():
    half = HalfBook()
    half.add_order(order(1, Side.BUY, 5, 10))
    half.add_order(order(2, Side.BUY, 5, 2))
    half.add_order(order(3, Side.BUY, 7, 1))
    half.remove_price(5)
    assert half.prices == [7]
    assert 1 not in half and 2 not in half
    assert half.volume == 1
    assert len(half) == 1


def test_add_price_creates_empty_level_once():
    half = HalfBook()
    half.add_price(5)
    half.add_price(5)
    assert half.price_exists(5) is True
    assert half.prices == [5]
    assert half.orders_at(5) == ()