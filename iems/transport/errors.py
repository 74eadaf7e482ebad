# iems/transport/errors.py
from __future__ import annotations

from iems.core.errors import ConnectFailure, IoFailure


class TransportError(Exception):
    """Base class for transport-layer failures."""


class TransportConnectError(TransportError):
    def __init__(self, message: str, reason: ConnectFailure = ConnectFailure.NOT_FOUND):
        super().__init__(message)
        self.reason = reason


class TransportIOError(TransportError):
    def __init__(self, message: str, reason: IoFailure = IoFailure.DISCONNECTED):
        super().__init__(message)
        self.reason = reason
