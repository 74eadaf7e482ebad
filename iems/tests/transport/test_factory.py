from __future__ import annotations

import pytest

from iems.app.config import IemsConfig
from iems.core.errors import TransportConfigError
from iems.model.transport import TransportType
from iems.transport.base import Transport
from iems.transport.factory import DRIVERS, TransportFactory
from iems.transport.params import ParamSpec, resolve_params
from iems.transport.rfcomm import RfcommTransport
from iems.transport.serial_spp import SerialSppTransport


class DummyTransport(Transport):
    def __init__(self, channel: int = 1, timeout_s=None, verbose: bool = False):
        self.channel = channel
        self.timeout_s = timeout_s
        self.verbose = verbose

    def connect(self, peer) -> None: ...
    def close(self) -> None: ...
    def receive(self) -> bytes: return b""
    def send(self, data: bytes) -> int: return len(data)
    def is_open(self) -> bool: return False


CATALOG = {
    "dummy": TransportType(
        "dummy",
        "dummy",
        params={
            "channel": {"type": "int", "default": 1, "min": 1, "max": 30},
            "timeout_s": {"type": "float", "default": None, "min": 0.01},
            "verbose": {"type": "bool", "default": False},
        },
    ),
    "needs": TransportType("needs", "dummy", params={"channel": {"type": "int", "required": True}}),
    "ghost": TransportType("ghost", "nope"),
    "extra": TransportType("extra", "dummy", params={"speed": {"type": "int", "default": 1}}),
}


def _factory() -> TransportFactory:
    return TransportFactory(CATALOG, {"dummy": DummyTransport})


def test_default_drivers():
    assert DRIVERS == {"rfcomm": RfcommTransport, "serial": SerialSppTransport}


def test_create_uses_defaults():
    dt = _factory().create("dummy")

    assert isinstance(dt.transport, DummyTransport)
    assert dt.params == {"channel": 1, "timeout_s": None, "verbose": False}
    assert dt.meta is CATALOG["dummy"]


def test_create_casts_string_overrides():
    dt = _factory().create("dummy", {"channel": "3", "timeout_s": "0.5", "verbose": "true"})

    assert dt.transport.channel == 3
    assert dt.transport.timeout_s == 0.5
    assert dt.transport.verbose is True


def test_float_override_none_literal():
    dt = _factory().create("dummy", {"timeout_s": "none"})
    assert dt.transport.timeout_s is None


def test_unknown_label_raises():
    with pytest.raises(TransportConfigError) as ei:
        _factory().create("usb")
    assert "dummy" in ei.value.hint


def test_unknown_param_raises():
    with pytest.raises(TransportConfigError) as ei:
        _factory().create("dummy", {"baud": 9600})
    assert ei.value.details["param"] == "baud"


def test_missing_required_param_raises():
    with pytest.raises(TransportConfigError):
        _factory().create("needs")


def test_bad_value_raises():
    with pytest.raises(TransportConfigError) as ei:
        _factory().create("dummy", {"channel": "one"})
    assert ei.value.details["expected_type"] == "int"


@pytest.mark.parametrize(
    "overrides,param",
    [
        ({"channel": "0"}, "channel"),
        ({"channel": "31"}, "channel"),
        ({"timeout_s": "-1"}, "timeout_s"),
        ({"timeout_s": "0"}, "timeout_s"),
    ],
)
def test_out_of_range_override_is_config_error(overrides, param):
    with pytest.raises(TransportConfigError) as ei:
        _factory().create("dummy", overrides)

    assert ei.value.details["param"] == param
    assert "must be" in ei.value.hint


def test_non_nullable_param_rejects_none():
    with pytest.raises(TransportConfigError) as ei:
        _factory().create("dummy", {"channel": "none"})
    assert ei.value.details["param"] == "channel"


def test_unknown_driver_is_config_error():
    with pytest.raises(TransportConfigError) as ei:
        _factory().create("ghost")
    assert ei.value.details["driver"] == "nope"
    assert "dummy" in ei.value.hint


def test_constructor_mismatch_is_config_error():
    with pytest.raises(TransportConfigError) as ei:
        _factory().create("extra")
    assert ei.value.details["params"] == {"speed": 1}


def test_bad_schema_is_config_error():
    meta = TransportType("odd", "dummy", params={"channel": {"type": "complex"}})
    with pytest.raises(TransportConfigError) as ei:
        resolve_params(meta)
    assert "complex" in ei.value.hint


@pytest.mark.parametrize(
    "raw",
    [
        {"type": "int", "default": 1, "step": 2},
        {"type": "bool", "min": 0},
        {"type": "float", "max": "10"},
    ],
)
def test_param_spec_rejects_malformed_schema(raw):
    with pytest.raises(ValueError):
        ParamSpec.parse("p", raw)


def test_param_spec_coercion():
    as_int = ParamSpec.parse("n", {"type": "int"})
    as_bool = ParamSpec.parse("b", {"type": "bool"})

    assert as_int.coerce("0x10") == 16
    assert as_bool.coerce("on") is True
    assert as_bool.coerce(0) is False
    with pytest.raises(TypeError):
        as_int.coerce(True)
    with pytest.raises(ValueError):
        as_bool.coerce("maybe")


def test_shipped_bounds_reject_negative_serial_timeout():
    cfg = IemsConfig.load()
    with pytest.raises(TransportConfigError) as ei:
        TransportFactory(cfg.transports).create("serial", {"timeout": "-1"})
    assert ei.value.details["param"] == "timeout"
