# iems/runtime/rx_worker.py
from __future__ import annotations

import threading
from typing import TYPE_CHECKING

from iems.transport.errors import TransportIOError

if TYPE_CHECKING:
    from iems.runtime.link_session import LinkSession


class RxWorker(threading.Thread):
    """Thread that continuously reads from the transport and feeds LinkSession."""

    def __init__(self, session: "LinkSession"):
        super().__init__(daemon=True, name="iems-rx")
        self.session = session
        self._stop_event = threading.Event()

    @property
    def stopping(self) -> bool:
        return self._stop_event.is_set()

    def run(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.session._pump_rx(self)
            except TransportIOError as e:
                if not self._stop_event.is_set():
                    self.session._on_rx_failed(self, e)
                return
            except Exception:
                self.session._log.exception("RX_WORKER_EXCEPTION")
                self._stop_event.wait(0.01)

    def stop(self) -> None:
        self._stop_event.set()
