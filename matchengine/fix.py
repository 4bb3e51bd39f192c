"""FIX tag-value encoding with a '|' separator, and conversion to gateway messages."""

from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Tuple, Union

from matchengine.domain import (
    CancelOrder,
    EngineError,
    EngineMessage,
    GatewayMessage,
    GatewayMessageKind,
    NewOrder,
    NewOrderAck,
    RejectionMessage,
    Side,
)
from matchengine.timeutil import epoch_nanos

SEPARATOR = b"|"

BEGIN_STRING = 8
BODY_LENGTH = 9
CHECKSUM = 10
MSG_TYPE = 35

ACCOUNT = 1
CL_ORD_ID = 11
MSG_SEQ_NUM = 34
ORDER_ID = 37
ORDER_QTY = 38
ORD_TYPE = 40
PRICE = 44
SENDER_COMP_ID = 49
SIDE = 54
TARGET_COMP_ID = 56
TIME_IN_FORCE = 59
SESSION_REJECT_REASON = 373

ORDER_SINGLE = "D"
ORDER_CANCEL_REQUEST = "F"
EXECUTION_REPORT = "8"
REJECT = "3"

SIDE_BUY = "1"
SIDE_SELL = "2"
ORD_TYPE_LIMIT = "2"
TIME_IN_FORCE_DAY = "0"

_RESERVED_TAGS = frozenset({BEGIN_STRING, BODY_LENGTH, CHECKSUM, MSG_TYPE})
_U32_MAX = 0xFFFFFFFF

FixValue = Union[str, int, bool, bytes]
FixFields = Union[Mapping[int, FixValue], Iterable[Tuple[int, FixValue]]]


class FixDecodeError(ValueError):
    """Raised when bytes are not a well-formed FIX message or lack what is needed."""


def _value_bytes(value: FixValue) -> bytes:
    if isinstance(value, bool):
        return b"Y" if value else b"N"
    if isinstance(value, int):
        return str(value).encode("ascii")
    if isinstance(value, bytes):
        return value
    if isinstance(value, str):
        return value.encode("ascii")
    raise TypeError(f"unsupported FIX value type {type(value).__name__}")


def _field(tag: int, value: FixValue) -> bytes:
    raw = _value_bytes(value)
    if not raw:
        raise ValueError(f"tag {tag} has an empty value")
    if SEPARATOR in raw:
        raise ValueError(f"value of tag {tag} contains the field separator")
    return str(tag).encode("ascii") + b"=" + raw + SEPARATOR


def encode_fix(begin_string: str, msg_type: str, fields: FixFields = ()) -> bytes:
    """Build a complete FIX message with body length and checksum."""
    pairs = fields.items() if isinstance(fields, Mapping) else fields
    parts: List[bytes] = [_field(MSG_TYPE, msg_type)]
    for tag, value in pairs:
        if tag in _RESERVED_TAGS:
            raise ValueError(f"tag {tag} is written by the encoder itself")
        parts.append(_field(tag, value))
    body = b"".join(parts)
    message = _field(BEGIN_STRING, begin_string) + _field(BODY_LENGTH, len(body)) + body
    return message + _field(CHECKSUM, f"{sum(message) % 256:03d}")


def decode_fix(data: Union[bytes, bytearray, str]) -> Dict[int, str]:
    """Parse and validate a FIX message, returning its fields in wire order."""
    raw = data.encode("ascii") if isinstance(data, str) else bytes(data)
    if not raw.endswith(SEPARATOR):
        raise FixDecodeError("message does not end with a field separator")

    chunks = raw[:-1].split(SEPARATOR)
    parsed: List[Tuple[int, bytes]] = []
    for chunk in chunks:
        tag_text, sep, value = chunk.partition(b"=")
        if not sep or not tag_text.isdigit() or not value:
            raise FixDecodeError(f"malformed field {chunk!r}")
        parsed.append((int(tag_text), value))

    if len(parsed) < 4:
        raise FixDecodeError("message has too few fields")
    if parsed[0][0] != BEGIN_STRING:
        raise FixDecodeError("message does not start with BeginString")
    if parsed[1][0] != BODY_LENGTH:
        raise FixDecodeError("BodyLength is not the second field")
    if parsed[2][0] != MSG_TYPE:
        raise FixDecodeError("MsgType is not the third field")
    if parsed[-1][0] != CHECKSUM:
        raise FixDecodeError("message does not end with CheckSum")

    body_start = len(chunks[0]) + len(chunks[1]) + 2
    checksum_start = len(raw) - len(chunks[-1]) - 1

    length_text = parsed[1][1]
    if not length_text.isdigit() or int(length_text) != checksum_start - body_start:
        raise FixDecodeError("BodyLength does not match the body")

    checksum_text = parsed[-1][1]
    if len(checksum_text) != 3 or not checksum_text.isdigit():
        raise FixDecodeError("CheckSum must be three digits")
    if int(checksum_text) != sum(raw[:checksum_start]) % 256:
        raise FixDecodeError("CheckSum does not match the message")

    result: Dict[int, str] = {}
    for tag, value in parsed:
        if tag in result:
            raise FixDecodeError(f"tag {tag} appears more than once")
        try:
            result[tag] = value.decode("ascii")
        except UnicodeDecodeError as exc:
            raise FixDecodeError(f"tag {tag} is not ASCII") from exc
    return result


def _u32(fields: Mapping[int, str], tag: int) -> int:
    text = fields.get(tag)
    if text is None:
        raise FixDecodeError(f"missing tag {tag}")
    if not text.isdigit() or int(text) > _U32_MAX:
        raise FixDecodeError(f"tag {tag} is not an unsigned 32-bit integer: {text!r}")
    return int(text)


def _side(fields: Mapping[int, str]) -> Side:
    text = fields.get(SIDE)
    if text is None:
        raise FixDecodeError(f"missing tag {SIDE}")
    return Side.SELL if text == SIDE_SELL else Side.BUY


class MessageConverter:
    """Turns client FIX messages into gateway messages and engine replies into FIX."""

    def __init__(self, begin_string: str = "FIX.4.4") -> None:
        self.begin_string = begin_string

    def fix_to_in_msg(self, client_id: int, buffer: Union[bytes, bytearray, str]) -> GatewayMessage:
        """Decode a NewOrderSingle or OrderCancelRequest for the given client."""
        fields = decode_fix(buffer)
        msg_type = fields[MSG_TYPE]

        if msg_type == ORDER_SINGLE:
            px = _u32(fields, PRICE)
            qty = _u32(fields, ORDER_QTY)
            return GatewayMessage(
                GatewayMessageKind.LIMIT_ORDER,
                NewOrder(
                    client_id=client_id,
                    order_action=_side(fields),
                    px=px,
                    qty=qty,
                    timestamp=epoch_nanos(),
                ),
            )
        if msg_type == ORDER_CANCEL_REQUEST:
            side = _side(fields)
            return GatewayMessage(
                GatewayMessageKind.CANCEL_ORDER,
                CancelOrder(client_id=client_id, order_action=side, order_id=_u32(fields, ORDER_ID)),
            )
        raise FixDecodeError(f"unsupported message type {msg_type!r}")

    def engine_msg_out_to_fix(self, message: EngineMessage) -> bytes:
        """Encode an engine reply as a FIX message for the client."""
        if isinstance(message, NewOrderAck):
            return encode_fix(self.begin_string, EXECUTION_REPORT)
        if isinstance(message, RejectionMessage):
            return encode_fix(self.begin_string, REJECT, [(SESSION_REJECT_REASON, 7)])
        if isinstance(message, EngineError):
            return encode_fix(self.begin_string, REJECT, [(SESSION_REJECT_REASON, 99)])
        raise ValueError(f"no FIX form for {type(message).__name__}")