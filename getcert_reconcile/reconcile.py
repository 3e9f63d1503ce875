"""
getcert-reconcile - reconcile engine

Converges each DesiredState against the certmonger catalog:

  desired present, not tracked  -> getcert request -I ID <base> <request>
  desired present, tracked      -> getcert resubmit -i ID <base>  (only on drift)
  desired absent, tracked       -> getcert stop-tracking -i ID

After a request/resubmit the single affected ID is listed again and the
cleanup policy runs against what the daemon now reports. A failing
`request` is only a warning (the next run retries); a failing `resubmit`
or `stop-tracking` is fatal for that resource.

The full catalog is listed once per run (Catalog.fetch) and passed to every
resource; flushes only ever list their own ID.
"""

from __future__ import annotations

import dataclasses
from typing import Dict, Iterable, List, Optional, Type

from .args import build_base_args, build_request_args
from .commands import Getcert
from .errors import (
    CAError,
    DaemonCommandFailed,
    DaemonRequestFailed,
    RecordNotFound,
    ReconcileError,
)
from .listing import KeySizeResolver, Resolver, parse_listing
from .model import ABSENT, PRESENT, CertificateRecord, DesiredState
from .util import Reporter, format_cmd

# Fields carried by the base arguments; drift in any of them triggers resubmit.
_RESUBMIT_FIELDS = ("certfile", "ca", "hostname", "principal", "presave_cmd", "postsave_cmd")
_RESUBMIT_SET_FIELDS = ("dnsname", "eku")


@dataclasses.dataclass(frozen=True)
class Catalog:
    """Snapshot of `getcert list`, scoped to one convergence run."""

    records: Dict[str, CertificateRecord]

    @classmethod
    def fetch(
        cls,
        getcert: Getcert,
        resolve_key_size: Optional[Resolver] = None,
        rep: Optional[Reporter] = None,
    ) -> "Catalog":
        records = parse_listing(getcert.listing(), resolve_key_size, rep)
        return cls({r.name: r for r in records})

    def get(self, name: str) -> Optional[CertificateRecord]:
        return self.records.get(name)

    def exists(self, name: str) -> bool:
        record = self.get(name)
        return record is not None and record.ensure == PRESENT


def drift(desired: DesiredState, observed: CertificateRecord) -> List[str]:
    """Names of managed fields whose observed value differs from the desired one."""
    changed = []
    for field in _RESUBMIT_FIELDS:
        want = getattr(desired, field)
        if want is not None and want != getattr(observed, field):
            changed.append(field)
    for field in _RESUBMIT_SET_FIELDS:
        want = getattr(desired, field)
        if want is not None and set(want) != set(getattr(observed, field) or ()):
            changed.append(field)
    return changed


def plan(desired: DesiredState, observed: Optional[CertificateRecord]) -> Optional[str]:
    """Return the pending flush (PRESENT or ABSENT) for a resource, or None when in sync."""
    if desired.ensure == ABSENT:
        return ABSENT if observed is not None else None
    if observed is None:
        return PRESENT
    return PRESENT if drift(desired, observed) else None


class Reconciler:
    def __init__(
        self,
        getcert: Getcert,
        rep: Reporter,
        *,
        resolve_key_size: Optional[Resolver] = None,
        dry_run: bool = False,
    ) -> None:
        self.getcert = getcert
        self.rep = rep
        self.resolve_key_size = resolve_key_size or KeySizeResolver()
        self.dry_run = dry_run

    def fetch_catalog(self) -> Catalog:
        return Catalog.fetch(self.getcert, self.resolve_key_size, self.rep)

    def converge(
        self, desired: DesiredState, catalog: Catalog
    ) -> Optional[CertificateRecord]:
        observed = catalog.get(desired.name) if catalog.exists(desired.name) else None
        pending = plan(desired, observed)
        if pending is None:
            self.rep.info(desired.name, "in-sync", f"ensure={desired.ensure}")
            return observed
        if observed is not None and pending == PRESENT:
            self.rep.info(
                desired.name, "drift", ", ".join(drift(desired, observed))
            )
        return self.flush(desired, observed, pending)

    def flush(
        self,
        desired: DesiredState,
        observed: Optional[CertificateRecord],
        pending: str,
    ) -> Optional[CertificateRecord]:
        name = desired.name
        if pending == ABSENT:
            self._mutate(name, "stop-tracking", ["stop-tracking", "-i", name])
            return None

        if observed is not None:
            args = build_base_args(desired)
            self._mutate(name, "resubmit", ["resubmit", "-i", name] + args)
        else:
            args = build_base_args(desired) + build_request_args(desired)
            try:
                self._mutate(
                    name,
                    "request",
                    ["request", "-I", name] + args,
                    error=DaemonRequestFailed,
                )
            except DaemonRequestFailed as ex:
                self.rep.warn(name, "request", f"Could not get certificate: {ex}")

        if self.dry_run:
            return observed

        record = self.refresh(name)
        self.cleanup(desired, record)
        return record

    def refresh(self, name: str) -> CertificateRecord:
        try:
            output = self.getcert.listing(name)
        except DaemonCommandFailed as ex:
            raise RecordNotFound(name) from ex
        records = parse_listing(output, self.resolve_key_size, self.rep)
        for record in records:
            if record.name == name:
                return record
        raise RecordNotFound(name)

    def cleanup(self, desired: DesiredState, record: CertificateRecord) -> None:
        if not record.ca_error:
            return
        if desired.cleanup_on_error:
            try:
                self._mutate(
                    desired.name, "cleanup", ["stop-tracking", "-i", desired.name]
                )
            except DaemonCommandFailed as ex:
                # Surface the CA message; the cleanup failure stays as the cause.
                if desired.ignore_ca_errors:
                    raise
                raise CAError(desired.name, record.ca_error) from ex
        if not desired.ignore_ca_errors:
            raise CAError(desired.name, record.ca_error)
        self.rep.warn(desired.name, "ca-error", f"ignored: {record.ca_error}")

    def _mutate(
        self,
        name: str,
        action: str,
        args: List[str],
        *,
        error: Type[DaemonCommandFailed] = DaemonCommandFailed,
    ) -> None:
        cmd = format_cmd(self.getcert.argv(args))
        if self.dry_run:
            self.rep.info(name, action, f"would run: {cmd}")
            return
        self.getcert(args, error=error)
        self.rep.info(name, action, cmd)


def reconcile_all(
    reconciler: Reconciler,
    desired: Iterable[DesiredState],
    *,
    fail_fast: bool = False,
) -> Dict[str, Optional[CertificateRecord]]:
    """Converge every desired state against one prefetched catalog."""
    catalog = reconciler.fetch_catalog()
    results: Dict[str, Optional[CertificateRecord]] = {}
    for d in desired:
        try:
            results[d.name] = reconciler.converge(d, catalog)
        except ReconcileError as ex:
            reconciler.rep.fail(d.name, type(ex).__name__, str(ex))
            if fail_fast:
                break
    return results
