from __future__ import annotations

import logging
import queue
import time

import pytest

from iems.app.config import IemsConfig
from iems.app.controller import IemsController
from iems.core.errors import IoFailure, NotConnectedError
from iems.model.peer import Peer
from iems.model.transport import TransportType
from iems.protocol import OutputId, SourceChoice, Switched
from iems.runtime.state import ConnectionStatus
from iems.transport.base import Transport
from iems.transport.errors import TransportIOError
from iems.transport.factory import TransportFactory

PEER = Peer("24:6F:28:00:00:01", "IEMS-LomTechnology")
PORT_PEER = Peer("/dev/rfcomm0", "IEMS-LomTechnology")


class FakeTransport(Transport):
    def __init__(self, tag: str = ""):
        self.tag = tag
        self.sent = []
        self._open = False
        self._rx = queue.Queue()

    def connect(self, peer):
        self._rx = queue.Queue()
        self._open = True

    def close(self):
        if self._open:
            self._open = False
            self._rx.put(TransportIOError("closed", IoFailure.CLOSED))

    def is_open(self):
        return self._open

    def receive(self):
        item = self._rx.get()
        if isinstance(item, Exception):
            raise item
        return item

    def send(self, data):
        self.sent.append(data)
        return len(data)


class ListSink:
    def __init__(self):
        self.statuses = []
        self.events = []
        self.errors = []

    def on_status(self, status):
        self.statuses.append(status)

    def on_event(self, event):
        self.events.append(event)

    def on_error(self, error):
        self.errors.append(error)


def _controller(**kw) -> IemsController:
    transports = {
        "fake": TransportType("fake", "fake", params={"tag": {"type": "str", "default": "a"}}),
        "other": TransportType("other", "fake", params={"tag": {"type": "str", "default": "b"}}),
    }
    cfg = IemsConfig(
        default_transport="fake",
        transports=transports,
        peers=(PEER, PORT_PEER),
        peer_transports={PORT_PEER.address: "other"},
        join_timeout_s=0.5,
    )
    factory = TransportFactory(transports, {"fake": FakeTransport})
    return IemsController(cfg, factory=factory, logger=logging.getLogger("test"), **kw)


def wait_until(pred, timeout=1.0):
    deadline = time.monotonic() + timeout
    while not pred():
        if time.monotonic() > deadline:
            return False
        time.sleep(0.005)
    return True


def test_status_before_connect_is_not_paired():
    c = _controller()
    assert c.status().status is ConnectionStatus.NOT_PAIRED


def test_switch_before_connect_raises():
    c = _controller()
    with pytest.raises(NotConnectedError):
        c.switch(OutputId.A, SourceChoice.SOLAR)


def test_connect_and_switch_records_source():
    c = _controller()
    sink = ListSink()
    c.add_sink(sink)

    with c:
        c.connect(PEER)
        c.switch(OutputId.A, SourceChoice.SOLAR)

        t = c.device_transport.transport
        assert t.sent == [b"outA--src--solar"]
        assert c.sources() == {OutputId.A: SourceChoice.SOLAR, OutputId.B: None}
        assert c.status().peer == PEER

    assert sink.statuses == [
        ConnectionStatus.CONNECTING,
        ConnectionStatus.CONNECTED,
        ConnectionStatus.OFFLINE,
    ]
    assert c.status().status is ConnectionStatus.OFFLINE


def test_toggle_flips_from_assumed_then_known_source():
    c = _controller()
    c.connect(PEER)

    first = c.toggle(OutputId.B)
    second = c.toggle(OutputId.B)

    assert first.source is SourceChoice.SOLAR
    assert second.source is SourceChoice.GRID
    assert c.device_transport.transport.sent == [b"outB--src--solar", b"outB--src--grid"]
    c.close()


def test_device_reports_update_sources_and_reach_sinks():
    c = _controller()
    sink = ListSink()
    c.add_sink(sink)
    c.connect(PEER)

    c.device_transport.transport._rx.put(b"outB--src--solar")

    assert wait_until(lambda: sink.events == [Switched(OutputId.B, SourceChoice.SOLAR)])
    assert c.sources()[OutputId.B] is SourceChoice.SOLAR
    c.close()


def test_failing_sink_does_not_block_others():
    class Broken(ListSink):
        def on_event(self, event):
            raise RuntimeError("sink failed")

    c = _controller()
    good = ListSink()
    c.add_sink(Broken())
    c.add_sink(good)
    c.connect(PEER)

    c.device_transport.transport._rx.put(b"outA--src--grid")

    assert wait_until(lambda: len(good.events) == 1)
    c.close()


def test_peer_pinned_transport_is_used():
    c = _controller()
    c.connect(PORT_PEER)
    assert c.device_transport.meta.label == "other"
    assert c.device_transport.transport.tag == "b"

    c.connect(PEER)
    assert c.device_transport.meta.label == "fake"
    assert c.status().peer == PEER
    c.close()


def test_explicit_transport_label_and_overrides():
    c = _controller(transport_label="other", transport_overrides={"tag": "zz"})
    c.connect(PEER)
    assert c.device_transport.meta.label == "other"
    assert c.device_transport.transport.tag == "zz"
    c.close()


def test_connect_while_connected_reconnects(caplog):
    caplog.set_level(logging.INFO, logger="test")
    c = _controller()
    sink = ListSink()
    c.add_sink(sink)

    c.connect(PEER)
    first = c.device_transport.transport
    assert c.connect(PEER) == PEER

    assert c.device_transport.transport is first
    assert first.is_open() is True
    assert sink.statuses == [
        ConnectionStatus.CONNECTING,
        ConnectionStatus.CONNECTED,
        ConnectionStatus.OFFLINE,
        ConnectionStatus.CONNECTING,
        ConnectionStatus.CONNECTED,
    ]
    assert any("CONTROLLER_RECONNECT" in r.getMessage() for r in caplog.records)

    c.switch(OutputId.A, SourceChoice.GRID)
    assert first.sent == [b"outA--src--grid"]
    c.close()
