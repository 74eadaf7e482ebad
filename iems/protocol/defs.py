# iems/protocol/defs.py
from __future__ import annotations

from enum import Enum

#: Marker separating the output tag from the source tag on the wire.
DELIMITER = "--src--"

#: Standard Serial Port Profile UUID the ESP32 SPP server registers under.
SPP_UUID = "00001101-0000-1000-8000-00805F9B34FB"

#: Name every IEMS controller advertises.
DEVICE_NAME = "IEMS-LomTechnology"

WIRE_ENCODING = "ascii"


class OutputId(Enum):
    """The two independently switched power outputs."""
    A = "outA"
    B = "outB"

    @property
    def tag(self) -> str:
        return self.value

    @property
    def title(self) -> str:
        return f"Output {self.name}"

    @classmethod
    def from_tag(cls, tag: str) -> "OutputId | None":
        for o in cls:
            if o.value == tag:
                return o
        return None


class SourceChoice(Enum):
    """Power origin an output can be routed to."""
    SOLAR = "solar"
    GRID = "grid"

    @property
    def tag(self) -> str:
        return self.value

    @property
    def title(self) -> str:
        return self.value.capitalize()

    @property
    def other(self) -> "SourceChoice":
        return SourceChoice.GRID if self is SourceChoice.SOLAR else SourceChoice.SOLAR

    @classmethod
    def from_tag(cls, tag: str) -> "SourceChoice | None":
        for s in cls:
            if s.value == tag:
                return s
        return None
