# iems/app/messages.py
"""
Human-readable texts for link notifications, as shown to the operator.
"""
from __future__ import annotations

from functools import singledispatch

from iems.core.errors import DeviceConnectError, DeviceDisconnectedError, IemsError, NotConnectedError
from iems.protocol.types import RawText, Switched, UnknownOutput, UnknownSource
from iems.runtime.state import ConnectionStatus

_STATUS_TEXT = {
    ConnectionStatus.CONNECTED: "Connected",
    ConnectionStatus.CONNECTING: "Connecting...",
    ConnectionStatus.OFFLINE: "Device Offline",
    ConnectionStatus.NOT_PAIRED: "No Paired Device",
}


@singledispatch
def describe_event(event) -> str:
    raise TypeError(f"not an inbound event: {event!r}")


@describe_event.register
def _(event: Switched) -> str:
    return f"{event.output.title} switched to {event.source.title}"


@describe_event.register
def _(event: UnknownSource) -> str:
    return f"Unknown source for {event.output.title}: {event.raw}"


@describe_event.register
def _(event: UnknownOutput) -> str:
    return f"Unknown output: {event.raw}"


@describe_event.register
def _(event: RawText) -> str:
    return f"Received raw data: {event.raw}"


def describe_status(status: ConnectionStatus) -> str:
    return _STATUS_TEXT[status]


def describe_error(error: IemsError) -> str:
    if isinstance(error, DeviceConnectError):
        return f"Failed to connect ({error.reason.value})"
    if isinstance(error, DeviceDisconnectedError):
        return f"Connection lost ({error.reason.value})"
    if isinstance(error, NotConnectedError):
        return "Not connected"
    return error.message
