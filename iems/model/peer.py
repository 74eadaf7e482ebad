# iems/model/peer.py
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Peer:
    """
    A paired remote device reachable over a transport.

    Attributes:
        address: Opaque transport address (Bluetooth MAC for RFCOMM, port path for serial SPP).
        name: Display name advertised by the device (e.g. "IEMS-LomTechnology").
    """
    address: str
    name: str = ""

    @property
    def label(self) -> str:
        """Name for display/logging, falling back to the address."""
        return self.name or self.address

    def as_dict(self) -> dict:
        return {"address": self.address, "name": self.name}

    def __str__(self) -> str:
        if self.name:
            return f"{self.name} ({self.address})"
        return self.address
