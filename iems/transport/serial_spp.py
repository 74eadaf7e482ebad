# iems/transport/serial_spp.py
from __future__ import annotations

import errno
import sys
from typing import Optional

import serial
from serial import SerialException, SerialTimeoutException

from iems.core.errors import ConnectFailure, IoFailure
from iems.model.peer import Peer

from .base import DEFAULT_CHUNK_SIZE, Transport
from .errors import TransportConnectError, TransportError, TransportIOError


def _open_reason(e: SerialException) -> ConnectFailure:
    if getattr(e, "errno", None) in (errno.EACCES, errno.EBUSY, errno.EPERM):
        return ConnectFailure.REFUSED
    if getattr(e, "errno", None) == errno.ETIMEDOUT:
        return ConnectFailure.TIMEOUT
    return ConnectFailure.NOT_FOUND


class SerialSppTransport(Transport):
    """
    Bluetooth SPP transport through an OS serial port, implemented via pyserial.

    The peer address is the port bound to the paired device: /dev/rfcomm0 after
    `rfcomm bind`, or the "Standard Serial over Bluetooth link" COM port on Windows.
    The baudrate is ignored by the Bluetooth stack; pyserial requires one.

    receive() waits up to `timeout` for the first byte, then takes whatever else is
    already buffered (up to chunk_size). It returns b"" when the timeout elapses.
    """

    def __init__(
        self,
        baudrate: int = 115200,
        timeout: float = 0.5,
        write_timeout: float = 2.0,
        exclusive: bool = True,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ):
        self.baudrate = baudrate
        self.timeout = timeout
        self.write_timeout = write_timeout
        self.exclusive = exclusive
        self.chunk_size = chunk_size
        self.ser: Optional[serial.Serial] = None
        self._closing = False

    def connect(self, peer: Peer) -> None:
        if self.ser is not None:
            raise TransportError("connect while transport already open")

        kwargs = dict(baudrate=self.baudrate, timeout=self.timeout, write_timeout=self.write_timeout)
        if self.exclusive and sys.platform != "win32":
            # Windows doesn't support this flag.
            kwargs["exclusive"] = True

        try:
            ser = serial.Serial(peer.address, **kwargs)
            ser.reset_input_buffer()
            ser.reset_output_buffer()
        except SerialException as e:
            self.ser = None
            raise TransportConnectError(
                f"could not open SPP port {peer.address!r}: {e}", _open_reason(e)
            ) from None
        except ValueError as e:
            # pyserial rejects out-of-range settings (timeout, baudrate) on open
            raise TransportError(f"invalid serial settings for {peer.address!r}: {e}") from None

        self._closing = False
        self.ser = ser

    def close(self) -> None:
        ser = self.ser
        if ser is None:
            return
        self._closing = True
        self.ser = None
        try:
            cancel = getattr(ser, "cancel_read", None)
            if cancel is not None:
                cancel()
        finally:
            ser.close()

    def is_open(self) -> bool:
        return self.ser is not None and self.ser.is_open

    def _drop(self) -> None:
        ser, self.ser = self.ser, None
        if ser is not None:
            ser.close()

    def receive(self) -> bytes:
        ser = self.ser
        if ser is None:
            raise TransportIOError("receive while transport not open", IoFailure.CLOSED)

        try:
            buf = ser.read(1)
            if buf:
                waiting = ser.in_waiting
                if waiting:
                    buf += ser.read(min(waiting, self.chunk_size - 1))
        except SerialException as e:
            if self._closing:
                raise TransportIOError("transport closed during receive", IoFailure.CLOSED) from None
            self._drop()
            raise TransportIOError(f"SPP read failed (device disconnected?): {e}") from None
        except (OSError, ValueError, TypeError) as e:
            # port torn down under a pending select()/read()
            if self._closing:
                raise TransportIOError("transport closed during receive", IoFailure.CLOSED) from None
            self._drop()
            raise TransportIOError(f"SPP read failed: {e}", IoFailure.DISCONNECTED) from None

        if self._closing:
            raise TransportIOError("transport closed during receive", IoFailure.CLOSED)
        return buf

    def send(self, data: bytes) -> int:
        ser = self.ser
        if ser is None:
            raise TransportIOError("send while transport not open", IoFailure.CLOSED)

        try:
            n = ser.write(data)
            ser.flush()
        except SerialTimeoutException:
            raise TransportIOError("SPP write timed out", IoFailure.TIMEOUT) from None
        except SerialException as e:
            if self._closing:
                raise TransportIOError("transport closed during send", IoFailure.CLOSED) from None
            self._drop()
            raise TransportIOError(f"SPP write failed (device disconnected?): {e}") from None
        return n
