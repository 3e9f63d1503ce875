from __future__ import annotations

import dataclasses
from typing import Any, Dict, Optional, Tuple

from .errors import ConfigError
from .util import as_list

PRESENT = "present"
ABSENT = "absent"


@dataclasses.dataclass(frozen=True)
class CertificateRecord:
    """One entry of the getcert tracking catalog, as reported by `getcert list`."""

    name: str
    status: Optional[str] = None
    ensure: str = PRESENT
    keybackend: Optional[str] = None
    keyfile: Optional[str] = None
    certbackend: Optional[str] = None
    certfile: Optional[str] = None
    ca: Optional[str] = None
    hostname: Optional[str] = None
    dnsname: Optional[Tuple[str, ...]] = None
    principal: Optional[Tuple[str, ...]] = None
    eku: Optional[Tuple[str, ...]] = None
    ca_error: Optional[str] = None
    presave_cmd: Optional[str] = None
    postsave_cmd: Optional[str] = None
    key_size: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for f in dataclasses.fields(self):
            v = getattr(self, f.name)
            if v is None:
                continue
            out[f.name] = list(v) if isinstance(v, tuple) else v
        return out


_STR_FIELDS = (
    "certfile",
    "keyfile",
    "ca",
    "hostname",
    "presave_cmd",
    "postsave_cmd",
    "profile",
    "cacertfile",
)
_LIST_FIELDS = ("principal", "dnsname", "eku")
_BOOL_FIELDS = ("wait", "cleanup_on_error", "ignore_ca_errors")


@dataclasses.dataclass(frozen=True)
class DesiredState:
    """Declared intent for one tracking request; read-only to the engine."""

    name: str
    ensure: str = PRESENT
    certfile: Optional[str] = None
    keyfile: Optional[str] = None
    ca: Optional[str] = None
    hostname: Optional[str] = None
    principal: Optional[Tuple[str, ...]] = None
    dnsname: Optional[Tuple[str, ...]] = None
    eku: Optional[Tuple[str, ...]] = None
    presave_cmd: Optional[str] = None
    postsave_cmd: Optional[str] = None
    profile: Optional[str] = None
    cacertfile: Optional[str] = None
    key_size: Optional[int] = None
    wait: bool = False
    cleanup_on_error: bool = False
    ignore_ca_errors: bool = False

    @classmethod
    def from_mapping(cls, entry: Any) -> "DesiredState":
        if not isinstance(entry, dict):
            raise ConfigError(f"Invalid certificate entry: {entry!r}")
        name = entry.get("name")
        if not isinstance(name, str) or not name.strip():
            raise ConfigError(f"Certificate entry without a name: {entry!r}")
        label = f"certificates[{name}]"

        known = {"name", "ensure", "key_size"}
        known.update(_STR_FIELDS, _LIST_FIELDS, _BOOL_FIELDS)
        unknown = sorted(set(entry) - known)
        if unknown:
            raise ConfigError(f"{label}: unknown keys {', '.join(unknown)}")

        ensure = entry.get("ensure", PRESENT)
        if ensure not in (PRESENT, ABSENT):
            raise ConfigError(f"{label}.ensure must be present or absent, got {ensure!r}")

        kwargs: Dict[str, Any] = {"name": name, "ensure": ensure}
        for key in _STR_FIELDS:
            v = entry.get(key)
            if v is not None and not isinstance(v, str):
                raise ConfigError(f"{label}.{key} must be a string, got {v!r}")
            kwargs[key] = v
        for key in _LIST_FIELDS:
            kwargs[key] = as_list(entry.get(key), f"{label}.{key}")
        for key in _BOOL_FIELDS:
            v = entry.get(key, False)
            if not isinstance(v, bool):
                raise ConfigError(f"{label}.{key} must be true or false, got {v!r}")
            kwargs[key] = v

        key_size = entry.get("key_size")
        if key_size is not None:
            try:
                if isinstance(key_size, bool):
                    raise TypeError(key_size)
                key_size = int(key_size)
            except (TypeError, ValueError) as ex:
                raise ConfigError(
                    f"{label}.key_size must be an integer, got {key_size!r}"
                ) from ex
        kwargs["key_size"] = key_size
        return cls(**kwargs)
