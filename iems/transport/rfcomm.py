# iems/transport/rfcomm.py
from __future__ import annotations

import errno
import socket
from typing import Callable, Optional

from iems.core.errors import ConnectFailure, IoFailure
from iems.model.peer import Peer

from .base import DEFAULT_CHUNK_SIZE, Transport
from .errors import TransportConnectError, TransportError, TransportIOError

_REFUSED_ERRNOS = {errno.ECONNREFUSED, errno.EACCES, errno.EPERM, errno.EBUSY}
_TIMEOUT_ERRNOS = {errno.ETIMEDOUT}


def _connect_reason(e: OSError) -> ConnectFailure:
    if isinstance(e, socket.timeout) or e.errno in _TIMEOUT_ERRNOS:
        return ConnectFailure.TIMEOUT
    if e.errno in _REFUSED_ERRNOS:
        return ConnectFailure.REFUSED
    # EHOSTDOWN / EHOSTUNREACH / ENOENT: device off, out of range or not paired
    return ConnectFailure.NOT_FOUND


def _default_socket() -> socket.socket:
    family = getattr(socket, "AF_BLUETOOTH", None)
    proto = getattr(socket, "BTPROTO_RFCOMM", None)
    if family is None or proto is None:
        raise TransportError("RFCOMM sockets are not supported by this Python build")
    return socket.socket(family, socket.SOCK_STREAM, proto)


class RfcommTransport(Transport):
    """
    Bluetooth Classic RFCOMM transport over a stdlib stream socket.

    The ESP32 SPP server listens on a fixed RFCOMM channel (1 by default), which is
    the service identifier used here instead of an SDP lookup of the SPP UUID.

    timeout_s applies to reads and writes once connected. With a timeout, receive()
    returns b"" when it elapses; with None it blocks until data or close().
    """

    def __init__(
        self,
        channel: int = 1,
        connect_timeout_s: float = 10.0,
        timeout_s: Optional[float] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        socket_factory: Optional[Callable[[], socket.socket]] = None,
    ):
        self.channel = channel
        self.connect_timeout_s = connect_timeout_s
        self.timeout_s = timeout_s
        self.chunk_size = chunk_size
        self._socket_factory = socket_factory or _default_socket
        self.sock: Optional[socket.socket] = None
        self._closing = False

    def connect(self, peer: Peer) -> None:
        if self.sock is not None:
            raise TransportError("connect while transport already open")

        try:
            sock = self._socket_factory()
        except OSError as e:
            raise TransportConnectError(f"could not create RFCOMM socket: {e}") from None

        try:
            sock.settimeout(self.connect_timeout_s)
            sock.connect((peer.address, self.channel))
            sock.settimeout(self.timeout_s)
        except ValueError as e:
            sock.close()
            raise TransportError(f"invalid RFCOMM settings: {e}") from None
        except OSError as e:
            sock.close()
            raise TransportConnectError(
                f"could not connect to {peer.address} channel {self.channel}: {e}",
                _connect_reason(e),
            ) from None

        self._closing = False
        self.sock = sock

    def close(self) -> None:
        sock = self.sock
        if sock is None:
            return
        self._closing = True
        self.sock = None
        try:
            # shutdown() wakes a recv() blocked in another thread; close() alone does not
            sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass  # peer already gone
        finally:
            sock.close()

    def is_open(self) -> bool:
        return self.sock is not None

    def _drop(self) -> None:
        sock, self.sock = self.sock, None
        if sock is not None:
            sock.close()

    def receive(self) -> bytes:
        sock = self.sock
        if sock is None:
            raise TransportIOError("receive while transport not open", IoFailure.CLOSED)

        try:
            data = sock.recv(self.chunk_size)
        except socket.timeout:
            return b""
        except OSError as e:
            if self._closing:
                raise TransportIOError("transport closed during receive", IoFailure.CLOSED) from None
            self._drop()
            raise TransportIOError(f"RFCOMM receive failed: {e}") from None

        if not data:
            if self._closing:
                raise TransportIOError("transport closed during receive", IoFailure.CLOSED)
            # end-of-stream: the peer closed the link
            self._drop()
            raise TransportIOError("RFCOMM link closed by peer")
        return data

    def send(self, data: bytes) -> int:
        sock = self.sock
        if sock is None:
            raise TransportIOError("send while transport not open", IoFailure.CLOSED)

        try:
            sock.sendall(data)
        except socket.timeout:
            raise TransportIOError("RFCOMM send timed out", IoFailure.TIMEOUT) from None
        except OSError as e:
            if self._closing:
                raise TransportIOError("transport closed during send", IoFailure.CLOSED) from None
            self._drop()
            raise TransportIOError(f"RFCOMM send failed: {e}") from None
        return len(data)
