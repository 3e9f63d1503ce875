"""
getcert-reconcile - external command runners

Thin wrappers around the two black-box tools the engine talks to:

- getcert: the certmonger control/listing interface
- openssl: used only to read the bit length of an RSA key file

Every invocation blocks until the tool exits and its whole output has been
read. There is no timeout unless one is configured.
"""

from __future__ import annotations

import subprocess
from typing import Callable, List, Optional, Type

from .errors import DaemonCommandFailed
from .util import run

Runner = Callable[[List[str]], subprocess.CompletedProcess]


def _default_runner(timeout: Optional[int]) -> Runner:
    def runner(cmd: List[str]) -> subprocess.CompletedProcess:
        return run(cmd, check=False, timeout=timeout)

    return runner


class Getcert:
    def __init__(
        self,
        command: str = "/usr/bin/getcert",
        *,
        runner: Optional[Runner] = None,
        timeout: Optional[int] = None,
    ) -> None:
        self.command = command
        self.runner = runner or _default_runner(timeout)

    def argv(self, args: List[str]) -> List[str]:
        return [self.command] + list(args)

    def __call__(
        self, args: List[str], *, error: Type[DaemonCommandFailed] = DaemonCommandFailed
    ) -> str:
        full = self.argv(args)
        try:
            cp = self.runner(full)
        except subprocess.TimeoutExpired:
            raise error(full, 124, "timeout")
        if cp.returncode != 0:
            out = (cp.stderr or "").strip() or (cp.stdout or "").strip()
            raise error(full, cp.returncode, out)
        return cp.stdout or ""

    def listing(self, name: Optional[str] = None) -> str:
        if name is None:
            return self(["list"])
        return self(["list", "-i", name])


class Openssl:
    def __init__(
        self,
        command: str = "/usr/bin/openssl",
        *,
        runner: Optional[Runner] = None,
        timeout: Optional[int] = None,
    ) -> None:
        self.command = command
        self.runner = runner or _default_runner(timeout)

    def rsa_text(self, keyfile: str) -> subprocess.CompletedProcess:
        return self.runner([self.command, "rsa", "-in", keyfile, "-text", "-noout"])
