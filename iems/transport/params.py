# iems/transport/params.py
"""
Constructor params of a catalog transport.

Each transport in the config file declares its params as a small schema:

    channel:   {type: int, default: 1, min: 1, max: 30}
    timeout_s: {type: float, default: 1.0, min: 0.01, nullable: true}

Values from YAML arrive typed, values from `--param name=value` arrive as
strings. Both are coerced and bounds-checked here, so a driver is never built
with a value its socket or serial port would reject at connect time.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional

from iems.core.errors import TransportConfigError
from iems.model.transport import TransportType

_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off")
_NULL = ("", "none", "null")

_SCHEMA_KEYS = {"type", "default", "required", "nullable", "min", "max"}


def _as_int(value: Any) -> int:
    if isinstance(value, str):
        return int(value.strip(), 0)
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"expected int, got {type(value).__name__}")
    return value


def _as_float(value: Any) -> float:
    if isinstance(value, str):
        return float(value.strip())
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"expected float, got {type(value).__name__}")
    return float(value)


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower() if isinstance(value, (int, str)) else None
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ValueError(f"expected a boolean, got {value!r}")


def _as_str(value: Any) -> str:
    if not isinstance(value, str):
        raise TypeError(f"expected str, got {type(value).__name__}")
    return value


_COERCE: Dict[str, Callable[[Any], Any]] = {
    "int": _as_int,
    "float": _as_float,
    "bool": _as_bool,
    "str": _as_str,
}


@dataclass(frozen=True)
class ParamSpec:
    name: str
    type: str
    default: Any = None
    has_default: bool = False
    required: bool = False
    nullable: bool = False
    min: Optional[float] = None
    max: Optional[float] = None

    @classmethod
    def parse(cls, name: str, raw: Mapping[str, Any]) -> "ParamSpec":
        """Build a spec from its config-file mapping. Raises ValueError if malformed."""
        type_name = raw.get("type")
        if type_name not in _COERCE:
            raise ValueError(f"param '{name}' has unknown type {type_name!r} (use one of {sorted(_COERCE)})")

        extra = sorted(set(raw) - _SCHEMA_KEYS)
        if extra:
            raise ValueError(f"param '{name}' has unknown schema keys {extra}")

        bounds = {}
        for key in ("min", "max"):
            bound = raw.get(key)
            if bound is None:
                continue
            if type_name not in ("int", "float"):
                raise ValueError(f"param '{name}': '{key}' only applies to int and float params")
            if isinstance(bound, bool) or not isinstance(bound, (int, float)):
                raise ValueError(f"param '{name}': '{key}' must be a number")
            bounds[key] = bound

        has_default = "default" in raw
        default = raw.get("default")
        return cls(
            name=name,
            type=type_name,
            default=default,
            has_default=has_default,
            required=bool(raw.get("required", False)),
            # a null default implies the driver accepts None
            nullable=bool(raw.get("nullable", has_default and default is None)),
            min=bounds.get("min"),
            max=bounds.get("max"),
        )

    def coerce(self, value: Any) -> Any:
        if value is None or (
            self.type != "str" and isinstance(value, str) and value.strip().lower() in _NULL
        ):
            if self.nullable:
                return None
            raise ValueError("a value is required")

        out = _COERCE[self.type](value)
        if self.min is not None and out < self.min:
            raise ValueError(f"must be >= {self.min}, got {out}")
        if self.max is not None and out > self.max:
            raise ValueError(f"must be <= {self.max}, got {out}")
        return out


def parse_schema(meta: TransportType) -> Dict[str, ParamSpec]:
    return {name: ParamSpec.parse(name, raw) for name, raw in meta.params.items()}


def resolve_params(meta: TransportType, overrides: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    """
    Constructor kwargs for `meta`: overrides first, then schema defaults.
    Any problem is raised as TransportConfigError naming the param.
    """
    overrides = dict(overrides or {})
    where = {"label": meta.label, "driver": meta.driver}

    try:
        schema = parse_schema(meta)
    except ValueError as e:
        raise TransportConfigError(
            f"Transport '{meta.label}' has an invalid param schema.",
            hint=str(e),
            details=where,
        ) from None

    unknown = sorted(set(overrides) - set(schema))
    if unknown:
        raise TransportConfigError(
            f"Unknown transport param '{unknown[0]}' for transport '{meta.label}'.",
            hint=f"Valid params: {sorted(schema)}",
            details={**where, "param": unknown[0]},
        )

    resolved: Dict[str, Any] = {}
    for name, spec in schema.items():
        if name in overrides:
            value = overrides[name]
        elif spec.has_default:
            value = spec.default
        elif spec.required:
            raise TransportConfigError(
                f"Missing required transport param '{name}' for transport '{meta.label}'.",
                hint="Provide it in the config file or with --param name=value.",
                details={**where, "param": name},
            )
        else:
            continue

        try:
            resolved[name] = spec.coerce(value)
        except (TypeError, ValueError) as e:
            raise TransportConfigError(
                f"Invalid value {value!r} for transport '{meta.label}' param '{name}'.",
                hint=f"{name}: {e}",
                details={**where, "param": name, "value": value, "expected_type": spec.type},
            ) from None

    return resolved
