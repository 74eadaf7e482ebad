# iems/protocol/types.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from .defs import OutputId, SourceChoice


@dataclass(frozen=True)
class Command:
    """Intent to route one output to one source. Not retained after send."""
    output: OutputId
    source: SourceChoice


@dataclass(frozen=True)
class Switched:
    """The device reports that `output` now draws from `source`."""
    output: OutputId
    source: SourceChoice


@dataclass(frozen=True)
class UnknownOutput:
    """Delimiter found, but the output tag is not one we know."""
    raw: str


@dataclass(frozen=True)
class UnknownSource:
    """Known output, unknown source tag."""
    output: OutputId
    raw: str


@dataclass(frozen=True)
class RawText:
    """Received text without a delimiter."""
    raw: str


InboundEvent = Union[Switched, UnknownOutput, UnknownSource, RawText]
