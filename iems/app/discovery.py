# iems/app/discovery.py
from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

from serial.tools import list_ports

from iems.core.errors import PeerNotFoundError
from iems.model.peer import Peer

#: Substrings identifying serial ports backed by a Bluetooth SPP link.
SPP_PORT_HINTS = ("bluetooth", "rfcomm")


class PeerDirectory:
    """
    Device discovery: which paired peers may be offered to the link session.

    Paired peers come from the config file; only those whose display name equals
    the expected device name are returned. Pairing itself is done by the OS.
    """

    def __init__(self, paired: Iterable[Peer], *, device_name: str):
        self._paired = tuple(paired)
        self.device_name = device_name

    def paired(self) -> List[Peer]:
        return [p for p in self._paired if p.name == self.device_name]

    def resolve(self, token: str, candidates: Optional[Sequence[Peer]] = None) -> Peer:
        """
        Pick one peer by address (case-insensitive) or by display name.

        `candidates` defaults to paired(). Raises PeerNotFoundError when nothing or
        more than one peer matches.
        """
        peers = list(candidates) if candidates is not None else self.paired()
        want = token.strip()

        by_address = [p for p in peers if p.address.lower() == want.lower()]
        if by_address:
            return by_address[0]

        by_name = [p for p in peers if p.name == want]
        if len(by_name) == 1:
            return by_name[0]

        if len(by_name) > 1:
            raise PeerNotFoundError(
                f"Several paired devices are named '{token}'.",
                hint="Select the device by address instead.",
                details={"addresses": [p.address for p in by_name]},
            )

        known = ", ".join(str(p) for p in peers) or "(none)"
        raise PeerNotFoundError(
            f"No paired device matches '{token}'.",
            hint=f"Pair the device and add it to the config 'peers' list (known: {known}).",
        )


def scan_serial_ports(hints: Sequence[str] = SPP_PORT_HINTS) -> List[Peer]:
    """
    Serial ports that look like Bluetooth SPP links (for the 'serial' transport).

    Names come from the port description, e.g. "Standard Serial over Bluetooth link (COM7)".
    """
    found: List[Peer] = []
    for p in list_ports.comports():
        desc = " ".join(filter(None, [p.device, p.manufacturer, p.product, p.description]))
        if any(h.lower() in desc.lower() for h in hints):
            found.append(Peer(address=p.device, name=p.description or ""))
    return found
