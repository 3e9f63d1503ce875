"""
getcert-reconcile - CLI

Config-driven reconciliation of certmonger tracking requests on the local
host. Lists the getcert catalog once, then requests, resubmits or stops
tracking each configured certificate as needed.

Exit codes:
  0 = reconcile completed (may include warnings)
  2 = failures found (some certificates could not be reconciled)
  3 = runtime/config error
"""

from __future__ import annotations

import argparse
import sys
import textwrap
from typing import Any, Dict, List, Optional

from .commands import Getcert, Openssl
from .errors import ConfigError, ReconcileError
from .listing import KeySizeResolver
from .model import DesiredState
from .reconcile import Reconciler, reconcile_all
from .util import Reporter, cfg_get, dump_yaml, eprint, load_yaml


def load_desired(cfg: Dict[str, Any], only: Optional[str] = None) -> List[DesiredState]:
    entries = cfg_get(cfg, "certificates", [])
    if not isinstance(entries, list):
        raise ConfigError("config.certificates must be a list")

    desired = [DesiredState.from_mapping(e) for e in entries]
    seen = set()
    for d in desired:
        if d.name in seen:
            raise ConfigError(f"Duplicate certificate name: {d.name}")
        seen.add(d.name)

    if only is not None:
        desired = [d for d in desired if d.name == only]
        if not desired:
            raise ConfigError(f"Certificate not found in config: {only}")
    return desired


def build_reconciler(cfg: Dict[str, Any], rep: Reporter, *, dry_run: bool) -> Reconciler:
    timeout = cfg_get(cfg, "getcert.timeout_seconds", None)
    if timeout is not None and (isinstance(timeout, bool) or not isinstance(timeout, int)):
        raise ConfigError(f"getcert.timeout_seconds must be an integer, got {timeout!r}")
    getcert = Getcert(cfg_get(cfg, "getcert.command", "/usr/bin/getcert"), timeout=timeout)
    openssl = Openssl(cfg_get(cfg, "openssl.command", "/usr/bin/openssl"))
    return Reconciler(
        getcert, rep, resolve_key_size=KeySizeResolver(openssl), dry_run=dry_run
    )


def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(
        prog="getcert-reconcile",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        description="Reconcile certmonger (getcert) tracking requests against a config.",
        epilog=textwrap.dedent("""\
        Examples:
          getcert-reconcile --config /etc/getcert-reconcile.yml
          getcert-reconcile --config /etc/getcert-reconcile.yml --name httpd
          getcert-reconcile --config /etc/getcert-reconcile.yml --dry-run
          getcert-reconcile --config /etc/getcert-reconcile.yml --list
        """),
    )
    ap.add_argument("--config", required=True, help="Path to certificates config YAML")
    ap.add_argument("--name", help="Limit to a single tracking request ID")
    ap.add_argument(
        "--dry-run",
        action="store_true",
        help="Do not change anything; print intended getcert commands",
    )
    ap.add_argument("--fail-fast", action="store_true", help="Stop on first failure")
    ap.add_argument(
        "--list", action="store_true", help="Print the current getcert catalog as YAML"
    )
    args = ap.parse_args(argv)

    rep = Reporter()
    try:
        cfg = load_yaml(args.config)
        desired = [] if args.list else load_desired(cfg, args.name)
        reconciler = build_reconciler(cfg, rep, dry_run=args.dry_run)
    except RuntimeError as ex:
        eprint(f"ERROR: {ex}")
        return 3

    if args.list:
        try:
            catalog = reconciler.fetch_catalog()
        except (ReconcileError, OSError) as ex:
            eprint(f"ERROR: {ex}")
            return 3
        print(dump_yaml([r.to_dict() for r in catalog.records.values()]), end="")
        return 0

    try:
        reconcile_all(reconciler, desired, fail_fast=args.fail_fast)
    except (ReconcileError, OSError) as ex:
        # Per-certificate errors are findings; an unreadable catalog ends the run.
        eprint(f"ERROR: {ex}")
        return 3

    rep.print()
    i, w, f = rep.summarize()
    print(f"\nSummary: INFO={i} WARN={w} FAIL={f}")
    return 2 if f > 0 else 0


if __name__ == "__main__":
    sys.exit(main())
