"""Matching algorithms that cross orders on an order book."""

from __future__ import annotations

import abc
import random
from dataclasses import replace
from typing import List, Sequence

from matchengine.book import OrderBook
from matchengine.domain import Execution, LimitOrder
from matchengine.timeutil import epoch_nanos

MAX_EXECUTIONS_PER_CYCLE = 4096


def _execution(ask: LimitOrder, bid: LimitOrder, fill_qty: int) -> Execution:
    return Execution(
        id=random.getrandbits(32),
        ask=replace(ask),
        bid=replace(bid),
        fill_qty=fill_qty,
        execution_time=epoch_nanos(),
    )


class MatchStrategy(abc.ABC):
    """Crosses resting orders and reports the fills."""

    @abc.abstractmethod
    def match_orders(self, book: OrderBook) -> List[Execution]:
        """Match what can be matched on book, updating it, and return the fills."""


class FifoMatchStrategy(MatchStrategy):
    """Pairs orders at the best bid and best ask in time priority."""

    def match_orders(self, book: OrderBook) -> List[Execution]:
        executions: List[Execution] = []
        while True:
            bid_px = book.bids.highest_price()
            ask_px = book.asks.lowest_price()
            if bid_px is None or ask_px is None or ask_px > bid_px:
                return executions

            pairs = list(zip(book.asks.orders_at(ask_px), book.bids.orders_at(bid_px)))
            for ask, bid in pairs:
                fill = min(ask.qty, bid.qty)
                executions.append(_execution(ask, bid, fill))
                book.bids.remove_order(bid.id)
                book.asks.remove_order(ask.id)
                if ask.qty > fill:
                    book.asks.add_order(replace(ask, qty=ask.qty - fill))
                elif bid.qty > fill:
                    book.bids.add_order(replace(bid, qty=bid.qty - fill))


def allocate_fills(quantities: Sequence[int], total_qty: int, matched_qty: int) -> List[int]:
    """Give each order its floored pro-rata share of matched_qty."""
    if total_qty <= 0:
        raise ValueError("total quantity must be positive")
    return [qty * matched_qty // total_qty for qty in quantities]


def distribute_rounding_remainder(
    quantities: Sequence[int],
    total_qty: int,
    matched_qty: int,
    allocation: Sequence[int],
) -> List[int]:
    """Hand the units lost to flooring to the orders with the largest remainders."""
    if total_qty <= 0:
        raise ValueError("total quantity must be positive")
    if len(quantities) != len(allocation):
        raise ValueError("quantities and allocation differ in length")
    leftover = matched_qty - sum(allocation)
    if leftover < 0 or leftover > len(allocation):
        raise ValueError("allocation does not fit the matched quantity")

    ranked = sorted(
        enumerate(zip(quantities, allocation)),
        key=lambda item: -(item[1][0] * matched_qty - item[1][1] * total_qty),
    )
    result = list(allocation)
    for index, _ in ranked[:leftover]:
        result[index] += 1
    return result


def _allocate(orders: Sequence[LimitOrder], matched_qty: int) -> List[int]:
    quantities = [o.qty for o in orders]
    total = sum(quantities)
    return distribute_rounding_remainder(
        quantities, total, matched_qty, allocate_fills(quantities, total, matched_qty)
    )


class ProRataMatchStrategy(MatchStrategy):
    """Shares the matched quantity at the top price in proportion to order size."""

    def match_orders(self, book: OrderBook) -> List[Execution]:
        executions: List[Execution] = []
        while True:
            ask_px = book.asks.highest_price()
            bid_px = book.bids.highest_price()
            if ask_px is None or bid_px is None or ask_px != bid_px:
                return executions

            bids = book.bids.orders_at(bid_px)
            asks = book.asks.orders_at(ask_px)
            matched = min(sum(o.qty for o in bids), sum(o.qty for o in asks))
            if matched == 0:
                return executions
            if len(executions) + len(asks) * len(bids) >= MAX_EXECUTIONS_PER_CYCLE:
                return executions

            bid_allocs = _allocate(bids, matched)
            ask_allocs = _allocate(asks, matched)
            remaining_bids = list(bid_allocs)
            remaining_asks = list(ask_allocs)

            for bi, bid in enumerate(bids):
                for ai, ask in enumerate(asks):
                    fill = min(remaining_bids[bi], remaining_asks[ai])
                    if fill > 0:
                        executions.append(_execution(ask, bid, fill))
                        remaining_bids[bi] -= fill
                        remaining_asks[ai] -= fill

            for half, orders, allocs in ((book.bids, bids, bid_allocs), (book.asks, asks, ask_allocs)):
                for resting, alloc in zip(orders, allocs):
                    left = resting.qty - alloc
                    if left == 0:
                        half.remove_order(resting.id)
                    else:
                        half.modify_order(resting.id, left)