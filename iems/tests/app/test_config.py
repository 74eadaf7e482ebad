from __future__ import annotations

import textwrap

import pytest

from iems.app.config import IemsConfig, default_config_path
from iems.core.errors import ConfigError
from iems.model.peer import Peer
from iems.protocol.defs import DEVICE_NAME, SPP_UUID


def _write(tmp_path, text: str):
    p = tmp_path / "config.yml"
    p.write_text(textwrap.dedent(text), encoding="utf-8")
    return p


def test_shipped_default_config_loads():
    cfg = IemsConfig.load()

    assert default_config_path().name == "config.yml"
    assert cfg.device_name == DEVICE_NAME
    assert cfg.service_uuid == SPP_UUID
    assert cfg.default_transport == "rfcomm"
    assert set(cfg.transports) == {"rfcomm", "serial"}
    assert cfg.transports["rfcomm"].params["channel"]["default"] == 1


def test_load_peers_and_pins(tmp_path):
    p = _write(
        tmp_path,
        """
        device:
          name: IEMS-LomTechnology
        link:
          join_timeout_s: 0.5
        default_transport: rfcomm
        transports:
          rfcomm: {driver: rfcomm, params: {channel: {type: int, default: 1}}}
          serial: {driver: serial}
        peers:
          - address: "24:6F:28:00:00:01"
            name: IEMS-LomTechnology
          - address: /dev/rfcomm0
            name: IEMS-LomTechnology
            transport: serial
        """,
    )
    cfg = IemsConfig.load(p)

    assert cfg.join_timeout_s == 0.5
    assert cfg.peers == (
        Peer("24:6F:28:00:00:01", "IEMS-LomTechnology"),
        Peer("/dev/rfcomm0", "IEMS-LomTechnology"),
    )
    assert cfg.transport_for(cfg.peers[0]) == "rfcomm"
    assert cfg.transport_for(cfg.peers[1]) == "serial"
    assert cfg.transport_for(cfg.peers[1], "rfcomm") == "rfcomm"


def test_default_transport_falls_back_to_first(tmp_path):
    p = _write(
        tmp_path,
        """
        transports:
          serial: {driver: serial}
        """,
    )
    cfg = IemsConfig.load(p)
    assert cfg.default_transport == "serial"
    assert cfg.device_name == DEVICE_NAME
    assert cfg.peers == ()


def test_missing_file_is_config_error(tmp_path):
    with pytest.raises(ConfigError) as ei:
        IemsConfig.load(tmp_path / "nope.yml")
    assert "nope.yml" in ei.value.hint


@pytest.mark.parametrize(
    "text,needle",
    [
        ("device: [1, 2]\ntransports: {rfcomm: {driver: rfcomm}}\n", "device"),
        ("transports: {}\n", "transports"),
        ("transports: {rfcomm: {params: {}}}\n", "driver"),
        ("transports: {rfcomm: {driver: rfcomm}}\ndefault_transport: usb\n", "usb"),
        ("transports: {rfcomm: {driver: rfcomm}}\npeers: [{name: x}]\n", "address"),
        ("transports: {rfcomm: {driver: rfcomm}}\npeers: [{address: a, transport: usb}]\n", "usb"),
        ("transports: {rfcomm: {driver: rfcomm}\n", ""),
    ],
)
def test_invalid_config_is_config_error(tmp_path, text, needle):
    p = tmp_path / "bad.yml"
    p.write_text(text, encoding="utf-8")

    with pytest.raises(ConfigError) as ei:
        IemsConfig.load(p)
    assert needle in ei.value.hint


@pytest.mark.parametrize(
    "text,needle",
    [
        ("transports: {rfcomm: {driver: rfcomm}}\nlink: {join_timeout_s: [1]}\n", "join_timeout_s"),
        ("transports: {rfcomm: {driver: rfcomm}}\nlink: {join_timeout_s: 0}\n", "join_timeout_s"),
        ("transports: {rfcomm: {driver: rfcomm}}\npeers: [{address: a, transport: [r]}]\n", "unknown transport"),
        ("transports: {rfcomm: {driver: rfcomm, params: {channel: {type: complex}}}}\n", "complex"),
        ("transports: {rfcomm: {driver: rfcomm, params: {channel: {type: int, min: low}}}}\n", "min"),
    ],
)
def test_wrongly_typed_values_are_config_errors(tmp_path, text, needle):
    p = tmp_path / "bad.yml"
    p.write_text(text, encoding="utf-8")

    with pytest.raises(ConfigError) as ei:
        IemsConfig.load(p)
    assert needle in ei.value.hint


def test_directory_path_is_config_error(tmp_path):
    with pytest.raises(ConfigError) as ei:
        IemsConfig.load(tmp_path)
    assert ei.value.details["path"] == str(tmp_path)


def test_shipped_config_declares_param_bounds():
    cfg = IemsConfig.load()

    channel = cfg.transports["rfcomm"].params["channel"]
    assert (channel["min"], channel["max"]) == (1, 30)
    assert cfg.transports["serial"].params["timeout"]["min"] > 0
