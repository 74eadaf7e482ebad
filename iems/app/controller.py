# iems/app/controller.py
from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Optional

from iems.app.config import IemsConfig
from iems.core.errors import IemsError, NotConnectedError
from iems.interfaces.subscriber import LinkSubscriber
from iems.model.peer import Peer
from iems.protocol.defs import OutputId, SourceChoice
from iems.protocol.types import Command, InboundEvent, Switched
from iems.runtime.link_session import LinkSession
from iems.runtime.state import ConnectionStatus, LinkStatus
from iems.transport.factory import DeviceTransport, TransportFactory


class IemsController:
    """
    App-level controller: builds the transport for a peer, owns the LinkSession,
    remembers the last known source of each output and fans notifications out to
    any number of sinks.
    """

    def __init__(
        self,
        config: IemsConfig,
        *,
        transport_label: Optional[str] = None,
        transport_overrides: Optional[Dict[str, Any]] = None,
        factory: Optional[TransportFactory] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._config = config
        self._transport_label = transport_label
        self._overrides = dict(transport_overrides or {})
        self._factory = factory or TransportFactory(config.transports)
        self._log = logger or logging.getLogger(__name__)

        self._session: Optional[LinkSession] = None
        self._device_transport: Optional[DeviceTransport] = None

        self._sinks: List[LinkSubscriber] = []
        self._lock = threading.Lock()
        self._sources: Dict[OutputId, Optional[SourceChoice]] = {o: None for o in OutputId}

    @property
    def config(self) -> IemsConfig:
        return self._config

    @property
    def device_transport(self) -> Optional[DeviceTransport]:
        return self._device_transport

    def add_sink(self, sink: LinkSubscriber) -> None:
        if sink not in self._sinks:
            self._sinks.append(sink)

    def remove_sink(self, sink: LinkSubscriber) -> None:
        if sink in self._sinks:
            self._sinks.remove(sink)

    # ---------------- Link ----------------
    def connect(self, peer: Peer) -> Peer:
        if self._session is not None and self._session.is_connected:
            self._log.info("CONTROLLER_RECONNECT old=%s new=%s", self._session.peer, peer)
            self._session.disconnect()

        label = self._config.transport_for(peer, self._transport_label)
        if self._device_transport is None or self._device_transport.meta.label != label:
            self._device_transport = self._factory.create(label, self._overrides)
            self._session = LinkSession(
                self._device_transport.transport,
                subscriber=self,
                join_timeout_s=self._config.join_timeout_s,
                logger=self._log,
            )
            self._log.info(
                "CONTROLLER_TRANSPORT label=%s driver=%s params=%s",
                label,
                self._device_transport.meta.driver,
                self._device_transport.params,
            )

        assert self._session is not None
        return self._session.connect(peer)

    def disconnect(self) -> None:
        if self._session is not None:
            self._session.disconnect()

    def status(self) -> LinkStatus:
        if self._session is None:
            return LinkStatus(status=ConnectionStatus.NOT_PAIRED)
        return self._session.status_snapshot()

    # ---------------- Outputs ----------------
    def sources(self) -> Dict[OutputId, Optional[SourceChoice]]:
        """Last known source per output (None until sent or reported)."""
        with self._lock:
            return dict(self._sources)

    def switch(self, output: OutputId, source: SourceChoice) -> Command:
        if self._session is None:
            raise NotConnectedError(
                "Cannot send while link is not_paired.",
                hint="Connect to the device first.",
            )
        command = Command(output, source)
        self._session.send(command)
        with self._lock:
            self._sources[output] = source
        self._log.info("OUTPUT_SWITCH output=%s source=%s", output.tag, source.tag)
        return command

    def toggle(self, output: OutputId, *, assumed: SourceChoice = SourceChoice.GRID) -> Command:
        """
        Flip `output` to the other source. When the current source is unknown,
        `assumed` is taken as current (the switch starts in the grid position).
        """
        with self._lock:
            current = self._sources[output] or assumed
        return self.switch(output, current.other)

    # ---------------- LinkSubscriber (fan-out) ----------------
    def on_status(self, status: ConnectionStatus) -> None:
        for s in list(self._sinks):
            try:
                s.on_status(status)
            except Exception:
                self._log.exception("SINK_ON_STATUS_ERROR")

    def on_event(self, event: InboundEvent) -> None:
        if isinstance(event, Switched):
            with self._lock:
                self._sources[event.output] = event.source

        for s in list(self._sinks):
            try:
                s.on_event(event)
            except Exception:
                self._log.exception("SINK_ON_EVENT_ERROR")

    def on_error(self, error: IemsError) -> None:
        for s in list(self._sinks):
            try:
                s.on_error(error)
            except Exception:
                self._log.exception("SINK_ON_ERROR_ERROR")

    def close(self) -> None:
        try:
            self.disconnect()
        finally:
            self._sinks.clear()

    def __enter__(self) -> "IemsController":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
