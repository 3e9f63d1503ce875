"""
getcert-reconcile - argument builders

The token order below is what gets passed to getcert verbatim:

  base:    -f CERTFILE -c CA [-N CN=HOSTNAME] [-K PRINCIPAL]...
           [(-A|-D) SAN]... [-U EKU]... [-B PRESAVE] [-C POSTSAVE] [-w]
  request: -k KEYFILE [-T PROFILE] [-F CACERTFILE] [-g KEY_SIZE]

`getcert request` gets base + request, `getcert resubmit` only base.
Both builders validate before returning so nothing is spawned for an
incomplete desired state.
"""

from __future__ import annotations

import ipaddress
from typing import List

from .errors import MissingCA, MissingCertfile, MissingKeyfile
from .model import DesiredState


def is_ip_literal(value: str) -> bool:
    try:
        ipaddress.ip_address(value)
    except ValueError:
        return False
    return True


def build_base_args(desired: DesiredState) -> List[str]:
    if not desired.certfile:
        raise MissingCertfile()
    if not desired.ca:
        raise MissingCA()

    args = ["-f", desired.certfile, "-c", desired.ca]
    if desired.hostname:
        args += ["-N", f"CN={desired.hostname}"]
    for principal in desired.principal or ():
        args += ["-K", principal]
    for san in desired.dnsname or ():
        args += ["-A" if is_ip_literal(san) else "-D", san]
    for eku in desired.eku or ():
        args += ["-U", eku]
    if desired.presave_cmd:
        args += ["-B", desired.presave_cmd]
    if desired.postsave_cmd:
        args += ["-C", desired.postsave_cmd]
    if desired.wait:
        args.append("-w")
    return args


def build_request_args(desired: DesiredState) -> List[str]:
    if not desired.keyfile:
        raise MissingKeyfile()

    args = ["-k", desired.keyfile]
    if desired.profile:
        args += ["-T", desired.profile]
    if desired.cacertfile:
        args += ["-F", desired.cacertfile]
    if desired.key_size:
        args += ["-g", str(desired.key_size)]
    return args
