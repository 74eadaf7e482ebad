# iems/protocol/codec.py
"""
Text codec for the IEMS switch protocol.

Wire form: "<outTag>--src--<sourceTag>", e.g. "outA--src--solar". There is no
terminator or length prefix; the receive side decodes each received chunk as
one message.
"""
from __future__ import annotations

from .defs import DELIMITER, WIRE_ENCODING, OutputId, SourceChoice
from .types import (
    Command,
    InboundEvent,
    RawText,
    Switched,
    UnknownOutput,
    UnknownSource,
)


def encode(command: Command) -> str:
    return f"{command.output.tag}{DELIMITER}{command.source.tag}"


def encode_command(command: Command) -> bytes:
    return encode(command).encode(WIRE_ENCODING)


def decode(raw: str) -> InboundEvent:
    """
    Decode one received message. Total: every string maps to exactly one event.

    The first delimiter splits the message; anything after it (including further
    delimiters) is the source text, so "outA--src--solar--src--grid" decodes to
    UnknownSource(A, "solar--src--grid").
    """
    idx = raw.find(DELIMITER)
    if idx < 0:
        return RawText(raw)

    out_tag = raw[:idx]
    src_tag = raw[idx + len(DELIMITER):]

    output = OutputId.from_tag(out_tag)
    if output is None:
        return UnknownOutput(out_tag)

    source = SourceChoice.from_tag(src_tag)
    if source is None:
        return UnknownSource(output, src_tag)

    return Switched(output, source)


def decode_chunk(data: bytes) -> InboundEvent:
    """Decode raw bytes from one receive(); undecodable bytes become U+FFFD."""
    return decode(data.decode("utf-8", errors="replace"))
