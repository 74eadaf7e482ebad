# iems/model/transport.py
from __future__ import annotations

from typing import Any, Dict, Optional


class TransportType:
    """
    Static model of a transport type (catalog entry from the config file).

    Contains only metadata, no runtime state. The peer address is not a param:
    it is supplied at connect time.

    Attributes:
        label: Unique human-readable label, used on the CLI (--transport rfcomm).
        driver: Driver key, looked up in iems.transport.factory.DRIVERS (e.g. "rfcomm", "serial").
        params: Parameter schema: param_name -> {type, default, required, nullable, min, max}
    """

    def __init__(
        self,
        label: str,
        driver: str,
        params: Optional[Dict[str, Dict[str, Any]]] = None,
    ):
        self.label: str = str(label)
        self.driver: str = str(driver)
        self.params: Dict[str, Dict[str, Any]] = params or {}

    def as_dict(self) -> dict:
        return {
            "label": self.label,
            "driver": self.driver,
            "params": self.params,
        }

    def __repr__(self) -> str:
        return f"TransportType(label='{self.label}', driver='{self.driver}')"
