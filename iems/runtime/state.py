# iems/runtime/state.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from iems.model.peer import Peer


class ConnectionStatus(Enum):
    CONNECTED = "connected"
    CONNECTING = "connecting"
    OFFLINE = "offline"
    NOT_PAIRED = "not_paired"


@dataclass(frozen=True)
class LinkStatus:
    """
    A snapshot of the link session, safe to share across threads.
    """
    status: ConnectionStatus
    peer: Optional[Peer] = None
    last_error: Optional[str] = None

    @property
    def connected(self) -> bool:
        return self.status is ConnectionStatus.CONNECTED
