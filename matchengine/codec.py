"""Compact binary encoding of sequenced engine messages for UDP transport."""

from __future__ import annotations

import struct
from dataclasses import fields

from matchengine.domain import (
    CancelOrder,
    CancelOrderAck,
    EngineError,
    NewOrder,
    NewOrderAck,
    RejectionMessage,
    SequencedEngineMessage,
    Side,
    TradeExecution,
)


class CodecError(ValueError):
    """Raised when a message cannot be encoded or decoded."""


_HEADER = struct.Struct("<IB")

# In these layouts the "B" code always carries a Side.
_LAYOUTS = {
    NewOrder: (0, struct.Struct("<IBIIQ")),
    NewOrderAck: (1, struct.Struct("<IBIIIQ")),
    CancelOrder: (2, struct.Struct("<IBI")),
    CancelOrderAck: (3, struct.Struct("<II?Q")),
    TradeExecution: (4, struct.Struct("<IIIIIIIIQ")),
    RejectionMessage: (5, struct.Struct("<I")),
}
_ENGINE_ERROR_TAG = 6
_ENGINE_ERROR_LAYOUT = struct.Struct("<B")
_BY_TAG = {tag: (cls, layout) for cls, (tag, layout) in _LAYOUTS.items()}


def _encode_body(payload: object) -> tuple[int, bytes]:
    if isinstance(payload, EngineError):
        return _ENGINE_ERROR_TAG, _ENGINE_ERROR_LAYOUT.pack(payload.value)
    entry = _LAYOUTS.get(type(payload))
    if entry is None:
        raise CodecError(f"cannot encode {type(payload).__name__}")
    tag, layout = entry
    values = [getattr(payload, field.name) for field in fields(payload)]
    return tag, layout.pack(*(v.value if isinstance(v, Side) else v for v in values))


def encode_message(message: SequencedEngineMessage) -> bytes:
    """Encode a sequenced engine message to bytes."""
    try:
        tag, body = _encode_body(message.message)
        return _HEADER.pack(message.sequence_number, tag) + body
    except struct.error as exc:
        raise CodecError(str(exc)) from exc


def decode_message(data: bytes) -> SequencedEngineMessage:
    """Decode bytes produced by encode_message."""
    data = bytes(data)
    if len(data) < _HEADER.size:
        raise CodecError("message shorter than its header")
    sequence_number, tag = _HEADER.unpack_from(data)
    body = data[_HEADER.size:]

    if tag == _ENGINE_ERROR_TAG:
        if len(body) != _ENGINE_ERROR_LAYOUT.size:
            raise CodecError("engine error body has the wrong length")
        (code,) = _ENGINE_ERROR_LAYOUT.unpack(body)
        try:
            return SequencedEngineMessage(sequence_number, EngineError(code))
        except ValueError as exc:
            raise CodecError(f"unknown engine error {code}") from exc

    entry = _BY_TAG.get(tag)
    if entry is None:
        raise CodecError(f"unknown message tag {tag}")
    cls, layout = entry
    if len(body) != layout.size:
        raise CodecError(f"{cls.__name__} body has the wrong length")
    raw = layout.unpack(body)
    try:
        values = [
            Side(value) if code == "B" else value
            for code, value in zip(layout.format[1:], raw)
        ]
    except ValueError as exc:
        raise CodecError("invalid side value") from exc
    return SequencedEngineMessage(sequence_number, cls(*values))