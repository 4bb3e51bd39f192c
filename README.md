# matchengine

A small exchange stack built around a limit order book. It has four
processes that talk to each other over TCP and UDP:

- **engine** (`matchengine-engine`): keeps the order book for one
  instrument and matches orders with the pro-rata strategy. Orders come
  in as UDP datagrams on the MSG_IN port (3000); each datagram is
  acknowledged to its sender with its 4-byte little-endian sequence
  number. New order acks, cancel acks and trade executions are sent out
  as datagrams to `0.0.0.0:3500`.
- **gateway** (`matchengine-gateway`): accepts client connections over
  TCP on port 3001. Each line a client sends is read as a `|`-separated
  FIX message; `NewOrderSingle` (`35=D`) and `OrderCancelRequest`
  (`35=F`) become engine messages, which are sent one at a time to
  `0.0.0.0:3000`, waiting for the engine's ack before the next. The
  gateway listens on the MSG_OUT port and routes acks to the client that
  placed the order and executions to both the buying and selling client.
- **client** (`matchengine-client`): an interactive order entry console
  that connects to the gateway.
- **market data** (`matchengine-market-data`): listens on the MSG_OUT
  port and prints every new order ack, cancel ack and trade execution.

## Installation

```
pip install .
```

The package needs only the standard library. To run the tests, install
the `test` extra and run `pytest`:

```
pip install ".[test]"
pytest
```

## Running the stack

Start each process in its own terminal, in this order:

```
matchengine-engine
matchengine-gateway
matchengine-market-data
matchengine-client
```

### Engine

The engine reads its instrument from a JSON config file, by default
`config/config.json` relative to the working directory; pass
`--config PATH` to use another file. The file holds a flat object whose
values are strings, numbers or booleans, and must include `symbol` and
`isin`:

```json
{"symbol": "ACME", "isin": "XX0000000000"}
```

### Ports

Ports come from the environment. `GATEWAY_PORT` sets the gateway's TCP
port (default 3001). `ENGINE_PORT`, when it is set, is used for both the
MSG_IN and MSG_OUT ports (see `matchengine.engine_io.engine_ports`);
otherwise MSG_IN is 3000 and MSG_OUT is 3500. The ports a process binds
follow these settings, but the addresses datagrams are sent to are fixed
at `0.0.0.0:3000` (gateway to engine) and `0.0.0.0:3500` (engine output).

### Client

`matchengine-client` connects to `127.0.0.1:3001` unless given
`--host` and `--port`. It prints a prompt, reads commands from standard
input and sends the resulting FIX messages to the gateway. If the
gateway closes the connection, the client prints `Client disconnected!`
and exits.

Commands are not case sensitive, and each one has a one-letter short form:

| Command                 | Short | Effect                                                  |
|-------------------------|-------|---------------------------------------------------------|
| `buy <px> <qty>`        | `b`   | send a limit buy order                                  |
| `sell <px> <qty>`       | `s`   | send a limit sell order                                 |
| `cancel <b\|s> <id>`    | `c`   | cancel an order; `b` means the bid side, anything else the ask side |
| `perf <n>`              | `p`   | send `n` random orders on a random side, priced and sized 1–100 |
| `quit`                  | `q`   | exit                                                    |

Prices, quantities and order ids must be unsigned 32-bit integers.
Anything else prints `Not a known command!`.

### Market data

`matchengine-market-data` listens on port 3500 unless given `--port`,
and with `--count N` stops after `N` datagrams.

## Using the library

The order book and the matching strategies can be used on their own:

```python
from matchengine.book import OrderBook
from matchengine.domain import LimitOrder, Side
from matchengine.strategy import ProRataMatchStrategy

book = OrderBook()
book.add_order(LimitOrder(client_id=1, id=10, action=Side.BUY, px=100, qty=30, placed_time=0))
book.add_order(LimitOrder(client_id=2, id=11, action=Side.SELL, px=100, qty=20, placed_time=0))

for execution in ProRataMatchStrategy().match_orders(book):
    print(execution.report())

print(book.bid_volume(), book.ask_volume())
```

`OrderBook` holds a `HalfBook` for bids and one for asks; each keeps
FIFO queues of orders per price, with `add_order`, `modify_order`,
`remove_order` and volume totals.

`FifoMatchStrategy` pairs orders at the best bid and best ask in time
order while the ask price does not exceed the bid price; any unfilled
remainder goes back to the end of its price level.
`ProRataMatchStrategy` matches when both sides' highest price levels are
equal, shares the matched quantity out in proportion to each order's
size, and gives any units lost to rounding to the orders with the
largest fractional remainders (see `allocate_fills` and
`distribute_rounding_remainder`). It stops early rather than produce
4096 or more executions in one call.

`MatchEngine` in `matchengine.engine` wraps a book and a strategy.
`handle_order` answers each `LimitOrder` with a `NewOrderAck` and each
`BookCancel` with a `CancelOrderAck`; `match_cycle` turns each fill into
a `TradeExecution`. All of these are wrapped in a
`SequencedEngineMessage` with a running sequence number. `run` alternates
order entry and matching until its stop event is set, printing
throughput statistics about once a second.

`matchengine.codec` turns these messages into the bytes sent over UDP
(`encode_message`, `decode_message`, raising `CodecError` on bad
input), and `matchengine.fix` handles the `|`-separated FIX text used
between the client and the gateway (`encode_fix`, `decode_fix`,
`MessageConverter`), checking body length and checksum when decoding.

## What it does not do

- The gateway writes replies back to clients as the Python text form of
  each engine message, one per line, not as FIX. `MessageConverter.engine_msg_out_to_fix`
  exists but the gateway does not use it.
- There is no FIX session layer: no logon, heartbeats or sequence number
  checks on client messages.
- Market orders are not supported; only limit orders and cancels reach
  the engine.
- The engine handles a single instrument and keeps its book in memory
  only; nothing is stored or recorded to disk.