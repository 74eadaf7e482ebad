# iems/interfaces/subscriber.py
from __future__ import annotations

from typing import Protocol

from iems.core.errors import IemsError
from iems.protocol.types import InboundEvent
from iems.runtime.state import ConnectionStatus


class LinkSubscriber(Protocol):
    """
    Receiver of link session notifications.

    on_status and on_error may be called from the caller's thread or from the
    receive thread; on_event is always called from the receive thread, in the
    order the bytes arrived.
    """
    def on_status(self, status: ConnectionStatus) -> None: ...
    def on_event(self, event: InboundEvent) -> None: ...
    def on_error(self, error: IemsError) -> None: ...
