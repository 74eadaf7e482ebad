# iems/transport/factory.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Type

from iems.core.errors import TransportConfigError
from iems.model.transport import TransportType

from .base import Transport
from .params import resolve_params
from .rfcomm import RfcommTransport
from .serial_spp import SerialSppTransport

#: driver key (the `driver:` of a catalog entry) -> transport class
DRIVERS: Dict[str, Type[Transport]] = {
    "rfcomm": RfcommTransport,
    "serial": SerialSppTransport,
}


@dataclass(frozen=True)
class DeviceTransport:
    transport: Transport
    params: Dict[str, Any]
    meta: TransportType


class TransportFactory:
    """
    Builds an unconnected transport for a catalog label. The peer is given later,
    to LinkSession.connect().
    """

    def __init__(
        self,
        transports: Mapping[str, TransportType],
        drivers: Optional[Mapping[str, Type[Transport]]] = None,
    ):
        self._transports = dict(transports)
        self._drivers = dict(DRIVERS if drivers is None else drivers)

    def transports(self) -> Mapping[str, TransportType]:
        return dict(self._transports)

    def create(self, label: str, overrides: Optional[Dict[str, Any]] = None) -> DeviceTransport:
        meta = self._transports.get(label)
        if meta is None:
            raise TransportConfigError(
                f"No transport named '{label}'.",
                hint=f"Known transports: {sorted(self._transports)}",
                details={"label": label},
            )

        driver_cls = self._drivers.get(meta.driver)
        if driver_cls is None:
            raise TransportConfigError(
                f"Transport '{label}' uses unknown driver '{meta.driver}'.",
                hint=f"Available drivers: {sorted(self._drivers)}",
                details={"label": label, "driver": meta.driver},
            )

        params = resolve_params(meta, overrides)
        try:
            transport = driver_cls(**params)
        except (TypeError, ValueError) as e:
            # schema names a kwarg the driver does not take
            raise TransportConfigError(
                f"Failed to construct transport '{label}' (driver='{meta.driver}').",
                hint=str(e),
                details={"label": label, "driver": meta.driver, "params": params},
            ) from None
        return DeviceTransport(transport=transport, params=params, meta=meta)
