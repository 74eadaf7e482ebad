# iems/cli/commands.py
from __future__ import annotations

import argparse
import logging
import sys
import threading
import time
from pathlib import Path
from typing import Optional

from iems.app.config import IemsConfig
from iems.app.controller import IemsController
from iems.app.discovery import PeerDirectory, scan_serial_ports
from iems.app.messages import describe_error, describe_event, describe_status
from iems.core.errors import IemsError
from iems.model.peer import Peer
from iems.protocol.types import InboundEvent
from iems.runtime.state import ConnectionStatus

from iems.cli.args import params_to_overrides

_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


# ---------------- Print sink ----------------

class PrintSink:
    """Print link notifications to stdout; remembers whether the link was lost."""

    def __init__(self) -> None:
        self.lost = threading.Event()

    def on_status(self, status: ConnectionStatus) -> None:
        print(f"[status] {describe_status(status)}")

    def on_event(self, event: InboundEvent) -> None:
        print(describe_event(event))

    def on_error(self, error: IemsError) -> None:
        print(f"[error] {describe_error(error)}")
        self.lost.set()


# ---------------- Logging ----------------

def configure_logging(*, verbosity: int = 0, log_file: Optional[str] = None) -> None:
    """
    Console handler on stderr plus an optional file handler (both idempotent).
    Kept in CLI (presentation-layer concern).
    """
    root = logging.getLogger()
    level = logging.WARNING if verbosity <= 0 else logging.INFO if verbosity == 1 else logging.DEBUG

    if not any(getattr(h, "_iems_console", False) for h in root.handlers):
        ch = logging.StreamHandler(sys.stderr)
        ch.setFormatter(logging.Formatter(_LOG_FORMAT))
        ch._iems_console = True  # type: ignore[attr-defined]
        root.addHandler(ch)
    for h in root.handlers:
        if getattr(h, "_iems_console", False):
            h.setLevel(level)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        target = str(path.resolve())
        if not any(
            isinstance(h, logging.FileHandler) and getattr(h, "baseFilename", None) == target
            for h in root.handlers
        ):
            fh = logging.FileHandler(path, encoding="utf-8", delay=True)
            fh.setLevel(logging.INFO)
            fh.setFormatter(logging.Formatter(_LOG_FORMAT))
            root.addHandler(fh)

    floor = min(level, logging.INFO) if log_file else level
    if root.level == logging.NOTSET or root.level > floor:
        root.setLevel(floor)


# ---------------- Commands ----------------

def cmd_peers(config: IemsConfig, *, scan_serial: bool = False) -> int:
    directory = PeerDirectory(config.peers, device_name=config.device_name)
    paired = directory.paired()

    print(f"Paired devices named '{config.device_name}':")
    if not paired:
        print("  (none) - pair the device and list it under 'peers' in the config file")
    for p in paired:
        print(f"  {p.address}  {p.name}  transport={config.transport_for(p)}")

    if scan_serial:
        ports = scan_serial_ports()
        print("\nBluetooth serial ports:")
        if not ports:
            print("  (none)")
        for p in ports:
            print(f"  {p.address}  {p.name}")

    return 0


def _resolve_peer(args: argparse.Namespace, config: IemsConfig) -> Peer:
    directory = PeerDirectory(config.peers, device_name=config.device_name)
    candidates = directory.paired()

    label = args.transport or config.default_transport
    meta = config.transports.get(label)
    if meta is not None and meta.driver == "serial":
        candidates += scan_serial_ports()

    return directory.resolve(args.peer, candidates)


def _open(args: argparse.Namespace, config: IemsConfig) -> tuple[IemsController, PrintSink]:
    controller = IemsController(
        config,
        transport_label=args.transport,
        transport_overrides=params_to_overrides(args.param),
    )
    sink = PrintSink()
    controller.add_sink(sink)
    return controller, sink


def _wait(sink: PrintSink, secs: Optional[float]) -> bool:
    """Wait for `secs` (forever if None). False if the link was lost meanwhile."""
    deadline = None if secs is None else time.monotonic() + secs
    try:
        while deadline is None or time.monotonic() < deadline:
            if sink.lost.wait(0.2):
                return False
    except KeyboardInterrupt:
        pass
    return True


def cmd_switch(args: argparse.Namespace, config: IemsConfig) -> int:
    peer = _resolve_peer(args, config)
    controller, sink = _open(args, config)

    with controller:
        controller.connect(peer)
        command = controller.switch(args.output, args.source)
        print(f"Sent: {command.output.title} -> {command.source.title}")
        if args.wait > 0 and not _wait(sink, args.wait):
            return 1
    return 0


def cmd_toggle(args: argparse.Namespace, config: IemsConfig) -> int:
    peer = _resolve_peer(args, config)
    controller, sink = _open(args, config)

    with controller:
        controller.connect(peer)
        command = controller.toggle(args.output, assumed=args.current)
        print(f"Sent: {command.output.title} -> {command.source.title}")
        if args.wait > 0 and not _wait(sink, args.wait):
            return 1
    return 0


def cmd_listen(args: argparse.Namespace, config: IemsConfig) -> int:
    peer = _resolve_peer(args, config)
    controller, sink = _open(args, config)

    with controller:
        connected = controller.connect(peer)
        print(f"Listening to {connected}... Press Ctrl+C to quit")
        if not _wait(sink, args.secs):
            return 1
    return 0
