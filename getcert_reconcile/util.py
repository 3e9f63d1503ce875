"""
getcert-reconcile - shared helpers

Process runner, YAML config access and the findings reporter used by the
reconcile engine and its CLI.
"""

from __future__ import annotations

import dataclasses
import shlex
import subprocess
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .errors import ConfigError

# -------------------------
# Utilities
# -------------------------


def eprint(*args: Any) -> None:
    print(*args, file=sys.stderr)


def run(
    cmd: List[str], *, check: bool = False, timeout: Optional[int] = None
) -> subprocess.CompletedProcess:
    return subprocess.run(
        cmd,
        check=check,
        capture_output=True,
        text=True,
        timeout=timeout,
    )


def format_cmd(cmd: List[str]) -> str:
    return " ".join(shlex.quote(c) for c in cmd)


def _yaml() -> Any:
    try:
        import yaml  # type: ignore
    except Exception as ex:
        raise RuntimeError(
            "PyYAML is required. Install with: python3 -m pip install pyyaml "
            "or your distro package (python3-pyyaml)."
        ) from ex
    return yaml


def load_yaml(path: str) -> Dict[str, Any]:
    yaml = _yaml()
    p = Path(path).expanduser()
    if not p.exists():
        raise ConfigError(f"Config not found: {p}")
    try:
        text = p.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as ex:
        raise ConfigError(f"Cannot read config {p}: {ex}") from ex
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as ex:
        raise ConfigError(f"Invalid YAML in {p}: {ex}") from ex
    if not isinstance(data, dict):
        raise ConfigError("Config root must be a mapping/dict")
    return data


def dump_yaml(data: Any) -> str:
    return _yaml().safe_dump(data, default_flow_style=False, sort_keys=False)


def cfg_get(cfg: Dict[str, Any], path: str, default: Any = None) -> Any:
    cur: Any = cfg
    for part in path.split("."):
        if not isinstance(cur, dict) or part not in cur:
            return default
        cur = cur[part]
    return cur


def as_list(value: Any, label: str) -> Optional[Tuple[str, ...]]:
    # A plain string is a single entry, never comma-split.
    if value is None:
        return None
    if isinstance(value, str):
        return (value,)
    if isinstance(value, (list, tuple)) and all(isinstance(x, str) for x in value):
        return tuple(value)
    raise ConfigError(f"{label} must be a string or a list of strings, got {value!r}")


# -------------------------
# Reporting
# -------------------------


@dataclasses.dataclass
class Finding:
    target: str
    severity: str  # "INFO" | "WARN" | "FAIL"
    action: str
    details: str


class Reporter:
    def __init__(self) -> None:
        self.items: List[Finding] = []

    def info(self, target: str, action: str, details: str) -> None:
        self.items.append(Finding(target, "INFO", action, details))

    def warn(self, target: str, action: str, details: str) -> None:
        self.items.append(Finding(target, "WARN", action, details))

    def fail(self, target: str, action: str, details: str) -> None:
        self.items.append(Finding(target, "FAIL", action, details))

    def summarize(self) -> Tuple[int, int, int]:
        i = sum(1 for x in self.items if x.severity == "INFO")
        w = sum(1 for x in self.items if x.severity == "WARN")
        f = sum(1 for x in self.items if x.severity == "FAIL")
        return i, w, f

    def print(self) -> None:
        by_target: Dict[str, List[Finding]] = {}
        for x in self.items:
            by_target.setdefault(x.target, []).append(x)

        # Within a target, keep the order actions happened in.
        sev_order = {"FAIL": 0, "WARN": 1, "INFO": 2}
        for tgt in sorted(by_target.keys()):
            print(f"\n== {tgt} ==")
            for it in sorted(by_target[tgt], key=lambda z: sev_order.get(z.severity, 9)):
                prefix = {"INFO": "[..] ", "WARN": "[!!] ", "FAIL": "[XX] "}.get(
                    it.severity, "[?] "
                )
                print(f"{prefix}{it.action}: {it.details}")
