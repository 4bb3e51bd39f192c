"""The matching engine: order entry followed by a match phase, cycle after cycle."""

from __future__ import annotations

import queue
import threading
from typing import List, Optional

from matchengine.book import OrderBook
from matchengine.domain import (
    BookCancel,
    BookOrder,
    CancelOrderAck,
    LimitOrder,
    NewOrderAck,
    SequencedEngineMessage,
    TradeExecution,
)
from matchengine.strategy import MatchStrategy, ProRataMatchStrategy
from matchengine.timeutil import epoch_nanos

_STATS_INTERVAL_NANOS = 1_000_000_000


class MatchEngine:
    """Owns one instrument's order book and publishes acks and trades."""

    def __init__(self, symbol: str, isin: str, strategy: Optional[MatchStrategy] = None) -> None:
        self.symbol = symbol
        self.isin = isin
        self.book = OrderBook()
        self.strategy: MatchStrategy = strategy if strategy is not None else ProRataMatchStrategy()
        self.msg_out_seq = 1
        self.order_seq = 1
        self.execution_seq = 1
        print(f"--- Initializing engine instance for {symbol} (ISIN:{isin}) ---")

    def handle_order(self, order: BookOrder) -> SequencedEngineMessage:
        """Apply a new order or a cancel to the book and return its sequenced ack."""
        if isinstance(order, LimitOrder):
            self.book.add_order(order)
            ack: object = NewOrderAck(
                client_id=order.client_id,
                action=order.action,
                order_id=order.id,
                px=order.px,
                qty=order.qty,
                ack_time=epoch_nanos(),
            )
        elif isinstance(order, BookCancel):
            found = self.book.remove_order(order)
            ack = CancelOrderAck(
                client_id=order.client_id,
                order_id=order.id,
                found=found,
                ack_time=epoch_nanos(),
            )
        else:
            raise TypeError(f"cannot handle {type(order).__name__}")

        out = SequencedEngineMessage(self.msg_out_seq, ack)  # type: ignore[arg-type]
        self.msg_out_seq += 1
        self.order_seq += 1
        return out

    def order_entry_cycle(
        self,
        order_rx: "queue.Queue[BookOrder]",
        out_tx: "queue.Queue[SequencedEngineMessage]",
    ) -> bool:
        """Take at most one waiting order, apply it and publish the ack.

        Returns whether an order was processed.
        """
        try:
            order = order_rx.get_nowait()
        except queue.Empty:
            return False
        out_tx.put(self.handle_order(order))
        return True

    def match_cycle(
        self, out_tx: "queue.Queue[SequencedEngineMessage]"
    ) -> List[SequencedEngineMessage]:
        """Run the match strategy and publish a trade message for each fill."""
        published: List[SequencedEngineMessage] = []
        for execution in self.strategy.match_orders(self.book):
            message = SequencedEngineMessage(
                self.msg_out_seq,
                TradeExecution(
                    trade_id=execution.id,
                    trade_seq=self.execution_seq,
                    bid_client_id=execution.bid.client_id,
                    ask_client_id=execution.ask.client_id,
                    bid_order_id=execution.bid.id,
                    ask_order_id=execution.ask.id,
                    fill_qty=execution.fill_qty,
                    px=execution.bid.px,
                    execution_time=execution.execution_time,
                ),
            )
            out_tx.put(message)
            published.append(message)
            self.msg_out_seq += 1
            self.execution_seq += 1
        return published

    def run(
        self,
        order_rx: "queue.Queue[BookOrder]",
        out_tx: "queue.Queue[SequencedEngineMessage]",
        stop_event: threading.Event,
    ) -> None:
        """Alternate order entry and matching until stop_event is set."""
        timer_epoch = epoch_nanos()
        orders_mark = self.order_seq
        executions_mark = self.execution_seq

        while not stop_event.is_set():
            cycle_start = epoch_nanos()
            self.order_entry_cycle(order_rx, out_tx)
            self.match_cycle(out_tx)

            now = epoch_nanos()
            if now - timer_epoch > _STATS_INTERVAL_NANOS:
                print(
                    f"nanos: {now - cycle_start} "
                    f"ord: {self.order_seq - orders_mark} "
                    f"exe: {self.execution_seq - executions_mark} "
                    f"book: {self.book.orders_on_book()} "
                    f"bid_v: {self.book.bid_volume()} "
                    f"ask_v: {self.book.ask_volume()} "
                    f"volume: {self.book.total_volume()}"
                )
                timer_epoch = now
                orders_mark = self.order_seq
                executions_mark = self.execution_seq