"""Price-level order book with one side for bids and one for asks."""

from __future__ import annotations

import bisect
from collections import deque
from dataclasses import replace
from typing import Deque, Dict, List, Optional, Tuple

from matchengine.domain import BookCancel, LimitOrder, Side


class HalfBook:
    """One side of the book: FIFO queues of orders keyed by price."""

    def __init__(self) -> None:
        self._levels: Dict[int, Deque[LimitOrder]] = {}
        self._prices: List[int] = []
        self.orders: Dict[int, LimitOrder] = {}
        self.volume = 0

    @property
    def num_orders(self) -> int:
        """Number of orders resting on this side."""
        return len(self.orders)

    def __len__(self) -> int:
        return len(self.orders)

    def __contains__(self, order_id: object) -> bool:
        return order_id in self.orders

    @property
    def prices(self) -> List[int]:
        """Prices that have a level, in ascending order."""
        return list(self._prices)

    def lowest_price(self) -> Optional[int]:
        """The lowest price with a level, or None when the side is empty."""
        return self._prices[0] if self._prices else None

    def highest_price(self) -> Optional[int]:
        """The highest price with a level, or None when the side is empty."""
        return self._prices[-1] if self._prices else None

    def orders_at(self, px: int) -> Tuple[LimitOrder, ...]:
        """The orders at a price in time priority; empty if there is no level."""
        return tuple(self._levels.get(px, ()))

    def add_price(self, px: int) -> None:
        """Create an empty level at px if there is none."""
        if px not in self._levels:
            self._levels[px] = deque()
            bisect.insort(self._prices, px)

    def remove_price(self, px: int) -> None:
        """Drop the level at px together with every order on it."""
        level = self._levels.pop(px, None)
        if level is None:
            return
        self._prices.remove(px)
        for order in level:
            del self.orders[order.id]
            self.volume -= order.qty

    def price_exists(self, px: int) -> bool:
        """Whether a level exists at px."""
        return px in self._levels

    def add_order(self, order: LimitOrder) -> None:
        """Append a copy of order to the back of its price level."""
        if order.id in self.orders:
            raise ValueError(f"order {order.id} is already on the book")
        resting = replace(order)
        self.add_price(resting.px)
        self._levels[resting.px].append(resting)
        self.orders[resting.id] = resting
        self.volume += resting.qty

    def modify_order(self, order_id: int, new_qty: int) -> bool:
        """Set the quantity of a resting order; False if it is not on the book."""
        if new_qty < 0:
            raise ValueError("quantity must not be negative")
        order = self.orders.get(order_id)
        if order is None:
            return False
        self.volume += new_qty - order.qty
        order.qty = new_qty
        return True

    def remove_order(self, order_id: int) -> bool:
        """Take an order off the book; False if it is not on the book."""
        order = self.orders.pop(order_id, None)
        if order is None:
            return False
        level = self._levels[order.px]
        level.remove(order)
        if not level:
            del self._levels[order.px]
            self._prices.remove(order.px)
        self.volume -= order.qty
        return True


class OrderBook:
    """A limit order book made of a bid side and an ask side."""

    def __init__(self) -> None:
        self.bids = HalfBook()
        self.asks = HalfBook()

    def side(self, side: Side) -> HalfBook:
        """The half of the book that holds orders of the given side."""
        return self.bids if side is Side.BUY else self.asks

    def add_order(self, order: LimitOrder) -> None:
        """Rest an order on the side named by its action."""
        self.side(order.action).add_order(order)

    def modify_order(self, side: Side, order_id: int, new_qty: int) -> bool:
        """Change the quantity of a resting order on the given side."""
        return self.side(side).modify_order(order_id, new_qty)

    def remove_order(self, cancel: BookCancel) -> bool:
        """Remove the order a cancel names; False if it was not found."""
        return self.side(cancel.action).remove_order(cancel.id)

    def orders_on_book(self) -> int:
        """Number of orders resting on both sides."""
        return self.asks.num_orders + self.bids.num_orders

    def bid_volume(self) -> int:
        """Total quantity resting on the bid side."""
        return self.bids.volume

    def ask_volume(self) -> int:
        """Total quantity resting on the ask side."""
        return self.asks.volume

    def total_volume(self) -> int:
        """Total quantity resting on the book."""
        return self.bid_volume() + self.ask_volume()