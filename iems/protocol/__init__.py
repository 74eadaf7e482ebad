# protocol/__init__.py

from .defs import DELIMITER, DEVICE_NAME, SPP_UUID, OutputId, SourceChoice
from .types import Command, InboundEvent, RawText, Switched, UnknownOutput, UnknownSource
from .codec import decode, decode_chunk, encode, encode_command

__all__ = [
    "DELIMITER", "DEVICE_NAME", "SPP_UUID",
    "OutputId", "SourceChoice",
    "Command", "InboundEvent", "Switched", "UnknownOutput", "UnknownSource", "RawText",
    "encode", "encode_command", "decode", "decode_chunk",
]
