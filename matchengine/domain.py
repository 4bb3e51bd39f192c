"""Order, message and execution types shared by the engine, gateway and clients."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional, Union


class Side(enum.Enum):
    """Which side of the book an order rests on."""

    BUY = 0
    SELL = 1


@dataclass(frozen=True)
class NewOrder:
    """A new limit order as submitted by a client."""

    client_id: int
    order_action: Side
    px: int
    qty: int
    timestamp: int


@dataclass(frozen=True)
class CancelOrder:
    """A client's request to cancel a resting order."""

    client_id: int
    order_action: Side
    order_id: int


@dataclass(frozen=True)
class NewOrderAck:
    """The engine's acknowledgement of a new order."""

    client_id: int
    action: Side
    order_id: int
    px: int
    qty: int
    ack_time: int


@dataclass(frozen=True)
class CancelOrderAck:
    """The engine's acknowledgement of a cancel request."""

    client_id: int
    order_id: int
    found: bool
    ack_time: int


@dataclass(frozen=True)
class RejectionMessage:
    """A rejection carrying a numeric reason."""

    reject_reason: int


@dataclass(frozen=True)
class TradeExecution:
    """A fill between a bid and an ask, as published by the engine."""

    trade_id: int
    trade_seq: int
    bid_client_id: int
    ask_client_id: int
    bid_order_id: int
    ask_order_id: int
    fill_qty: int
    px: int
    execution_time: int


class EngineError(enum.Enum):
    """Errors the engine can report."""

    GENERAL_ERROR = 0


EngineMessage = Union[
    NewOrder,
    NewOrderAck,
    CancelOrder,
    CancelOrderAck,
    TradeExecution,
    RejectionMessage,
    EngineError,
]


@dataclass(frozen=True)
class SequencedEngineMessage:
    """An engine message tagged with its stream sequence number."""

    sequence_number: int
    message: EngineMessage


@dataclass
class LimitOrder:
    """An order resting on the book."""

    client_id: int
    id: int
    action: Side
    px: int
    qty: int
    placed_time: int

    def compare(self, other: LimitOrder) -> Optional[int]:
        """Rank two orders of the same side by price priority.

        Returns a positive number if this order has better priority, a
        negative one if worse, zero if equal, and None when the sides differ.
        A better bid has a higher price; a better ask has a lower price.
        """
        if self.action is not other.action:
            return None
        if self.action is Side.BUY:
            mine, theirs = self.px, other.px
        else:
            mine, theirs = other.px, self.px
        return (mine > theirs) - (mine < theirs)


@dataclass(frozen=True)
class BookCancel:
    """A cancel request addressed to the book."""

    client_id: int
    action: Side
    id: int


BookOrder = Union[LimitOrder, BookCancel]


_EXEC_TOP = "-----------------------------------Full Exec.-----------------------------------"
_EXEC_BOTTOM = "--------------------------------------------------------------------------------"


def _row(*cells: object) -> str:
    return " | ".join(f"{cell:<10}" for cell in cells)


@dataclass
class Execution:
    """A match between a resting ask and bid."""

    id: int
    ask: LimitOrder
    bid: LimitOrder
    fill_qty: int
    execution_time: int

    def report(self) -> str:
        """Render the execution as a small text table."""
        lines = [
            _EXEC_TOP,
            _row("Ask id", "Bid", "Px", "Fill", "Ex Time"),
            _row(self.ask.id, self.bid.id, self.ask.px, self.fill_qty, self.execution_time),
            _EXEC_BOTTOM,
        ]
        return "".join(line + "\n" for line in lines)


class GatewayMessageKind(enum.Enum):
    """The kinds of request a gateway forwards to the engine."""

    LIMIT_ORDER = "limit_order"
    MARKET_ORDER = "market_order"
    CANCEL_ORDER = "cancel_order"


@dataclass(frozen=True)
class GatewayMessage:
    """A client request decoded by the gateway."""

    kind: GatewayMessageKind
    payload: Union[NewOrder, CancelOrder]

    def __post_init__(self) -> None:
        expected = CancelOrder if self.kind is GatewayMessageKind.CANCEL_ORDER else NewOrder
        if not isinstance(self.payload, expected):
            raise TypeError(
                f"{self.kind.name} requires a {expected.__name__} payload, "
                f"got {type(self.payload).__name__}"
            )