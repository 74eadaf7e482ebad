# iems/app/config.py
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from iems.core.errors import ConfigError
from iems.model.peer import Peer
from iems.model.transport import TransportType
from iems.protocol.defs import DEVICE_NAME, SPP_UUID
from iems.transport.params import parse_schema


def default_config_path() -> Path:
    # <repo>/iems/metadata/config.yml, based on this file's location
    return Path(__file__).resolve().parents[1] / "metadata" / "config.yml"


@dataclass(frozen=True)
class IemsConfig:
    device_name: str = DEVICE_NAME
    service_uuid: str = SPP_UUID
    join_timeout_s: float = 2.0
    default_transport: str = "rfcomm"
    transports: Dict[str, TransportType] = field(default_factory=dict)
    peers: Tuple[Peer, ...] = ()
    #: peer address -> transport label, for peers pinned to a transport
    peer_transports: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def load(cls, path: str | Path | None = None) -> "IemsConfig":
        """
        Load and validate a config file (the shipped default when `path` is None).
        Any problem is reported as ConfigError.
        """
        path = Path(path) if path is not None else default_config_path()
        loader = ConfigLoader(path)
        try:
            return loader.load()
        except (OSError, TypeError, ValueError, yaml.YAMLError) as e:
            raise ConfigError(
                "Failed to load configuration.",
                hint=str(e),
                details={"path": str(path)},
            ) from None

    def transport_for(self, peer: Peer, label: Optional[str] = None) -> str:
        """Transport label for `peer`: explicit label, else the peer's pin, else the default."""
        return label or self.peer_transports.get(peer.address) or self.default_transport


class ConfigLoader:
    """
    Loads the YAML config file into an IemsConfig.

    Raises OSError / TypeError / ValueError / yaml.YAMLError; IemsConfig.load()
    turns those into ConfigError.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def _load_yaml(self) -> dict:
        if not self.path.exists():
            raise FileNotFoundError(f"Missing config file: {self.path}")

        with open(self.path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{self.path.name} root must be a mapping")
        return data

    def load(self) -> IemsConfig:
        data = self._load_yaml()

        device = data.get("device") or {}
        if not isinstance(device, dict):
            raise ValueError("'device' must be a mapping")

        link = data.get("link") or {}
        if not isinstance(link, dict):
            raise ValueError("'link' must be a mapping")

        transports = self._load_transports(data.get("transports"))
        default_transport = str(data.get("default_transport") or next(iter(transports)))
        if default_transport not in transports:
            raise ValueError(f"default_transport '{default_transport}' is not defined in 'transports'")

        peers, pins = self._load_peers(data.get("peers"), transports)

        return IemsConfig(
            device_name=str(device.get("name", DEVICE_NAME)),
            service_uuid=str(device.get("service_uuid", SPP_UUID)),
            join_timeout_s=self._join_timeout(link),
            default_transport=default_transport,
            transports=transports,
            peers=peers,
            peer_transports=pins,
        )

    @staticmethod
    def _join_timeout(link: dict) -> float:
        value = link.get("join_timeout_s", 2.0)
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
            raise ValueError(f"'link.join_timeout_s' must be a positive number, got {value!r}")
        return float(value)

    @staticmethod
    def _load_transports(raw: Any) -> Dict[str, TransportType]:
        if not isinstance(raw, dict) or not raw:
            raise ValueError("config is missing a non-empty 'transports' mapping")

        out: Dict[str, TransportType] = {}
        for label, tinfo in raw.items():
            if not isinstance(tinfo, dict):
                raise ValueError(f"Transport '{label}' entry must be a mapping")

            driver = tinfo.get("driver")
            if not driver:
                raise ValueError(f"Transport '{label}' is missing 'driver'")

            params = tinfo.get("params") or {}
            if not isinstance(params, dict):
                raise ValueError(f"Transport '{label}' 'params' must be a mapping")
            for name, spec in params.items():
                if not isinstance(spec, dict):
                    raise ValueError(f"Transport '{label}' param '{name}' must be a mapping")

            meta = TransportType(label=str(label), driver=str(driver), params=params)
            try:
                parse_schema(meta)
            except ValueError as e:
                raise ValueError(f"Transport '{label}': {e}") from None
            out[meta.label] = meta
        return out

    @staticmethod
    def _load_peers(raw: Any, transports: Dict[str, TransportType]) -> Tuple[Tuple[Peer, ...], Dict[str, str]]:
        if raw is None:
            return (), {}
        if not isinstance(raw, list):
            raise ValueError("'peers' must be a list")

        peers = []
        pins: Dict[str, str] = {}
        for i, pinfo in enumerate(raw):
            if not isinstance(pinfo, dict):
                raise ValueError(f"Peer #{i} entry must be a mapping")

            address = pinfo.get("address")
            if not address:
                raise ValueError(f"Peer #{i} is missing 'address'")

            peer = Peer(address=str(address), name=str(pinfo.get("name", "")))
            peers.append(peer)

            label = pinfo.get("transport")
            if label is not None:
                if not isinstance(label, str) or label not in transports:
                    raise ValueError(f"Peer '{peer.label}' uses unknown transport '{label}'")
                pins[peer.address] = str(label)

        return tuple(peers), pins
