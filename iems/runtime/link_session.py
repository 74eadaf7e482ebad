# iems/runtime/link_session.py
from __future__ import annotations

import logging
import threading
from typing import Optional

from iems.core.errors import (
    DeviceConnectError,
    DeviceDisconnectedError,
    IemsError,
    LinkBusyError,
    NotConnectedError,
    PeerNotFoundError,
)
from iems.interfaces.subscriber import LinkSubscriber
from iems.model.peer import Peer
from iems.protocol.codec import decode_chunk, encode, encode_command
from iems.protocol.types import Command, InboundEvent
from iems.runtime.rx_worker import RxWorker
from iems.runtime.state import ConnectionStatus, LinkStatus
from iems.transport.base import Transport
from iems.transport.errors import TransportConnectError, TransportError, TransportIOError


class LinkSession:
    """
    Host/device link over one transport: connection status, command send and the
    receive loop.

    Responsibilities:
      - connect/disconnect the transport and track ConnectionStatus
      - run exactly one RxWorker while CONNECTED
      - decode received chunks and deliver them to the subscriber in order
      - translate transport failures into status transitions and IemsErrors

    The session is the only reader and writer of its transport. State changes are
    made under a lock; subscriber callbacks run outside it.
    """

    def __init__(
        self,
        transport: Transport,
        *,
        subscriber: Optional[LinkSubscriber] = None,
        peer: Optional[Peer] = None,
        join_timeout_s: float = 2.0,
        logger: Optional[logging.Logger] = None,
    ):
        self._transport = transport
        self._subscriber = subscriber
        self._peer = peer
        self._join_timeout_s = float(join_timeout_s)
        self._log = logger or logging.getLogger(__name__)

        self._lock = threading.Lock()
        # held while an event is delivered; disconnect() waits on it
        self._deliver_lock = threading.RLock()

        self._status = ConnectionStatus.NOT_PAIRED
        self._rx: Optional[RxWorker] = None
        self._last_error: Optional[str] = None

    # ---------------- State ----------------
    @property
    def status(self) -> ConnectionStatus:
        with self._lock:
            return self._status

    @property
    def peer(self) -> Optional[Peer]:
        with self._lock:
            return self._peer

    @property
    def is_connected(self) -> bool:
        return self.status is ConnectionStatus.CONNECTED

    def status_snapshot(self) -> LinkStatus:
        with self._lock:
            return LinkStatus(status=self._status, peer=self._peer, last_error=self._last_error)

    def subscribe(self, subscriber: LinkSubscriber) -> None:
        with self._lock:
            if self._subscriber is not None:
                raise LinkBusyError(
                    "A subscriber is already registered on this link session.",
                    hint="Fan out from a single subscriber instead.",
                )
            self._subscriber = subscriber

    # ---------------- Connect / disconnect ----------------
    def connect(self, peer: Optional[Peer] = None) -> Peer:
        """
        Connect to `peer` (or the peer given at construction) and start the receive loop.

        Returns the connected peer. On failure the previous status is restored and
        DeviceConnectError is raised.
        """
        with self._lock:
            target = peer or self._peer
            if target is None:
                raise PeerNotFoundError(
                    "No peer selected.",
                    hint="Pass a peer to connect() or to the session constructor.",
                )
            if self._status in (ConnectionStatus.CONNECTING, ConnectionStatus.CONNECTED):
                raise LinkBusyError(
                    f"Link is already {self._status.value}.",
                    hint="Call disconnect() first.",
                    details={"peer": str(self._peer)},
                )
            previous = self._status
            self._status = ConnectionStatus.CONNECTING

        self._log.info("LINK_CONNECT peer=%s driver=%s", target, type(self._transport).__name__)
        self._notify_status(ConnectionStatus.CONNECTING)

        try:
            self._transport.connect(target)
        except TransportConnectError as e:
            self._log.warning("LINK_CONNECT_FAILED peer=%s reason=%s err=%s", target, e.reason.value, e)
            self._restore_status(previous, str(e))
            raise DeviceConnectError(
                f"Could not connect to {target.label}.",
                reason=e.reason,
                hint=str(e),
                details={"address": target.address, "driver": type(self._transport).__name__},
            ) from None
        except TransportError as e:
            self._log.warning("LINK_CONNECT_ERROR peer=%s err=%s", target, e)
            self._restore_status(previous, str(e))
            raise DeviceConnectError(
                "Transport error while connecting to device.",
                hint=str(e),
                details={"address": target.address, "driver": type(self._transport).__name__},
            ) from None
        except Exception as e:
            self._log.exception("LINK_CONNECT_UNEXPECTED peer=%s", target)
            self._restore_status(previous, str(e))
            raise

        # deliveries wait until the CONNECTED notification has gone out
        with self._deliver_lock:
            rx = RxWorker(self)
            with self._lock:
                self._status = ConnectionStatus.CONNECTED
                self._peer = target
                self._last_error = None
                self._rx = rx
                rx.start()

            self._log.info("LINK_CONNECTED peer=%s", target)
            self._notify_status(ConnectionStatus.CONNECTED)
        return target

    def disconnect(self) -> None:
        """
        Close the link. No event is delivered once this returns. No-op unless CONNECTED.
        """
        with self._lock:
            if self._status is not ConnectionStatus.CONNECTED:
                return
            rx, self._rx = self._rx, None
            self._status = ConnectionStatus.OFFLINE
            if rx is not None:
                rx.stop()

        self._log.info("LINK_DISCONNECT peer=%s", self._peer)
        self._close_transport()

        with self._deliver_lock:
            pass

        if rx is not None and rx is not threading.current_thread():
            rx.join(timeout=self._join_timeout_s)
            if rx.is_alive():
                self._log.warning("RX_THREAD_JOIN_TIMEOUT timeout_s=%.2f", self._join_timeout_s)
            else:
                self._log.info("RX_THREAD_STOPPED")

        self._notify_status(ConnectionStatus.OFFLINE)

    # ---------------- Send ----------------
    def send(self, command: Command) -> None:
        with self._lock:
            if self._status is not ConnectionStatus.CONNECTED:
                raise NotConnectedError(
                    f"Cannot send while link is {self._status.value}.",
                    hint="Connect to the device first.",
                    details={"command": encode(command)},
                )

        data = encode_command(command)
        self._log.debug("LINK_SEND len=%d data=%r", len(data), data)

        try:
            self._transport.send(data)
        except TransportIOError as e:
            self._log.warning("LINK_SEND_FAILED reason=%s err=%s", e.reason.value, e)
            self._go_offline(None, str(e))
            raise DeviceDisconnectedError(
                "Could not send command to device.",
                reason=e.reason,
                hint=str(e),
                details={"command": encode(command)},
            ) from None

    # ---------------- RX (called from RxWorker) ----------------
    def _pump_rx(self, worker: RxWorker) -> None:
        data = self._transport.receive()
        if not data:
            return

        with self._deliver_lock:
            if worker.stopping:
                return
            event = decode_chunk(data)
            self._log.debug("RX_DATA len=%d event=%s", len(data), event)
            self._notify_event(event)

    def _on_rx_failed(self, worker: RxWorker, error: TransportIOError) -> None:
        if not self._go_offline(worker, str(error)):
            return
        self._log.warning("LINK_RX_FAILED reason=%s err=%s", error.reason.value, error)
        self._notify_error(
            DeviceDisconnectedError(
                "Lost connection to device.",
                reason=error.reason,
                hint=str(error),
                details={"peer": str(self.peer)},
            )
        )

    # ---------------- Internals ----------------
    def _go_offline(self, worker: Optional[RxWorker], error: str) -> bool:
        """CONNECTED -> OFFLINE after an I/O failure. Returns False if already handled."""
        with self._lock:
            if self._status is not ConnectionStatus.CONNECTED:
                return False
            if worker is not None and worker is not self._rx:
                return False
            rx, self._rx = self._rx, None
            self._status = ConnectionStatus.OFFLINE
            self._last_error = error
            if rx is not None:
                rx.stop()

        self._log.info("LINK_OFFLINE peer=%s err=%s", self._peer, error)
        self._close_transport()
        self._notify_status(ConnectionStatus.OFFLINE)
        return True

    def _restore_status(self, status: ConnectionStatus, error: str) -> None:
        with self._lock:
            self._status = status
            self._last_error = error
        self._notify_status(status)

    def _close_transport(self) -> None:
        try:
            self._transport.close()
        except Exception:
            self._log.exception("Failed to close transport")

    def _notify_status(self, status: ConnectionStatus) -> None:
        sub = self._subscriber
        if sub is None:
            return
        try:
            sub.on_status(status)
        except Exception:
            self._log.exception("SUBSCRIBER_CALLBACK_ERROR cb=on_status")

    def _notify_event(self, event: InboundEvent) -> None:
        sub = self._subscriber
        if sub is None:
            return
        try:
            sub.on_event(event)
        except Exception:
            self._log.exception("SUBSCRIBER_CALLBACK_ERROR cb=on_event")

    def _notify_error(self, error: IemsError) -> None:
        sub = self._subscriber
        if sub is None:
            return
        try:
            sub.on_error(error)
        except Exception:
            self._log.exception("SUBSCRIBER_CALLBACK_ERROR cb=on_error")

    def __enter__(self) -> "LinkSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.disconnect()
