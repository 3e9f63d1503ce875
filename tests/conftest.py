"""Shared fixtures for the getcert-reconcile test suite."""

from __future__ import annotations

import subprocess
import sys
from pathlib import Path
from typing import Callable, Dict, List, Tuple, Union

import pytest

# ---------------------------------------------------------------------------
# Make the package importable without installing it
# ---------------------------------------------------------------------------
_ROOT = str(Path(__file__).resolve().parent.parent)
if _ROOT not in sys.path:
    sys.path.insert(0, _ROOT)

from getcert_reconcile.commands import Getcert, Openssl  # noqa: E402
from getcert_reconcile.listing import KeySizeResolver  # noqa: E402
from getcert_reconcile.util import Reporter  # noqa: E402

Reply = Union[Tuple[int, str, str], Callable[[List[str]], Tuple[int, str, str]]]


def block(name: str, *, key_size: Union[int, None] = 2048, extra: Tuple[str, ...] = ()) -> str:
    """Render one `getcert list` block the way certmonger prints it."""
    lines = [
        f"Request ID '{name}':",
        "\tstatus: MONITORING",
        f"\tkey pair storage: type=FILE,location='/etc/pki/tls/private/{name}.key'",
        f"\tcertificate: type=FILE,location='/etc/pki/tls/certs/{name}.crt'",
        "\tCA: IPA",
        "\tissuer: CN=Certificate Authority,O=EXAMPLE.COM",
        f"\tsubject: CN={name}.example.com,O=EXAMPLE.COM",
        "\texpires: 2027-01-01 00:00:00 UTC",
        f"\tdns: {name}.example.com",
        f"\tprincipal name: HTTP/{name}.example.com@EXAMPLE.COM",
        "\teku: id-kp-serverAuth,id-kp-clientAuth",
        "\ttrack: yes",
        "\tauto-renew: yes",
    ]
    lines += [f"\t{x}" for x in extra]
    if key_size is not None:
        lines.append(f"\tkey_size: {key_size}")
    return "\n".join(lines) + "\n"


def listing(*blocks: str) -> str:
    return (
        f"Number of certificates and requests being tracked: {len(blocks)}.\n"
        + "".join(blocks)
    )


class FakeRunner:
    """Records argv and replays canned results keyed on the argv after the program."""

    def __init__(self) -> None:
        self.calls: List[List[str]] = []
        self.replies: Dict[Tuple[str, ...], List[Reply]] = {}
        self.default: Reply = (0, "", "")

    def on(self, *args: str, rc: int = 0, out: str = "", err: str = "") -> "FakeRunner":
        self.replies.setdefault(tuple(args), []).append((rc, out, err))
        return self

    def on_call(self, *args: str, fn: Callable[[List[str]], Tuple[int, str, str]]) -> "FakeRunner":
        self.replies.setdefault(tuple(args), []).append(fn)
        return self

    def _reply(self, cmd: List[str]) -> Reply:
        # Longest registered prefix wins; the last reply for a key repeats.
        tail = tuple(cmd[1:])
        for n in range(len(tail), 0, -1):
            queue = self.replies.get(tail[:n])
            if queue:
                return queue.pop(0) if len(queue) > 1 else queue[0]
        return self.default

    def __call__(self, cmd: List[str]) -> subprocess.CompletedProcess:
        self.calls.append(list(cmd))
        reply = self._reply(cmd)
        if callable(reply):
            reply = reply(cmd)
        rc, out, err = reply
        return subprocess.CompletedProcess(cmd, rc, stdout=out, stderr=err)

    def argvs(self, program: str) -> List[List[str]]:
        return [c[1:] for c in self.calls if c[0] == program]


@pytest.fixture()
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture()
def getcert(runner: FakeRunner) -> Getcert:
    return Getcert("getcert", runner=runner)


@pytest.fixture()
def openssl(runner: FakeRunner) -> Openssl:
    return Openssl("openssl", runner=runner)


@pytest.fixture()
def resolver(openssl: Openssl) -> KeySizeResolver:
    return KeySizeResolver(openssl)


@pytest.fixture()
def rep() -> Reporter:
    return Reporter()
