# iems/core/errors.py
from __future__ import annotations

from enum import Enum


class ConnectFailure(str, Enum):
    """Why a transport could not be connected."""
    NOT_FOUND = "not_found"
    REFUSED = "refused"
    TIMEOUT = "timeout"


class IoFailure(str, Enum):
    """Why a read or write on an open transport failed."""
    CLOSED = "closed"
    DISCONNECTED = "disconnected"
    TIMEOUT = "timeout"


class IemsError(Exception):
    """
    Base class for all expected operational errors in IEMS.
    """

    #: Stable machine-readable identifier (for CLI exit mapping, subscribers, etc.)
    code: str = "unknown"

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.hint = hint
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Configuration / setup errors (no device access yet)
# ---------------------------------------------------------------------------

class ConfigError(IemsError):
    """
    Configuration file is missing or malformed.

    Examples:
      - YAML syntax error
      - missing 'device' section
      - peer entry without an address
    """
    code = "config_error"


class TransportConfigError(IemsError):
    """
    Transport configuration is invalid or inconsistent with the catalog.

    Examples:
      - unknown transport label
      - unknown driver key
      - invalid / missing transport parameters
    """
    code = "transport_config_error"


class PeerNotFoundError(IemsError):
    """No paired peer matches the requested address or name."""
    code = "peer_not_found"


# ---------------------------------------------------------------------------
# Link lifecycle errors
# ---------------------------------------------------------------------------

class DeviceConnectError(IemsError):
    """
    Transport could not be connected to the peer.

    Examples:
      - device switched off or out of range (not_found)
      - device rejected the RFCOMM connection (refused)
      - no answer within connect_timeout_s (timeout)
    """
    code = "device_connect_error"

    def __init__(
        self,
        message: str,
        *,
        reason: ConnectFailure = ConnectFailure.NOT_FOUND,
        hint: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(message, hint=hint, details=details)
        self.reason = reason


class DeviceDisconnectedError(IemsError):
    """
    Device was connected but the link failed during send or receive.

    Examples:
      - device powered off mid-session
      - link closed locally while a read was pending
      - write timed out
    """
    code = "device_disconnected"

    def __init__(
        self,
        message: str,
        *,
        reason: IoFailure = IoFailure.DISCONNECTED,
        hint: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(message, hint=hint, details=details)
        self.reason = reason


class NotConnectedError(IemsError):
    """A command was sent while the link is not connected. No I/O was attempted."""
    code = "not_connected"


class LinkBusyError(IemsError):
    """
    The link session cannot accept the request in its current state.

    Examples:
      - connect() while already connecting or connected
      - registering a second subscriber on the same session
    """
    code = "link_busy"
