"""
getcert-reconcile - listing parser

Turns the human-readable output of `getcert list` (or `getcert list -i ID`)
into CertificateRecord values:

  Number of certificates and requests being tracked: 1.
  Request ID 'httpd':
          status: MONITORING
          key pair storage: type=FILE,location='/etc/pki/tls/private/httpd.key'
          certificate: type=FILE,location='/etc/pki/tls/certs/httpd.crt'
          CA: IPA
          subject: CN=www.example.com,O=EXAMPLE.COM
          dns: www.example.com,10.0.0.1
          ...

Each line is classified into one of a fixed set of line kinds. Lines of a
kind the parser does not know are ignored, so new fields in future getcert
releases do not break parsing. A block is only turned into a record once it
is complete, and a record never leaves the parser without key_size: when
the listing omits it, the key file is inspected with openssl.
"""

from __future__ import annotations

import dataclasses
import enum
import re
import subprocess
from typing import Any, Callable, Dict, List, Optional, Tuple

from .commands import Openssl
from .errors import KeyInspectionFailed, MalformedListing
from .model import PRESENT, CertificateRecord
from .util import Reporter

Resolver = Callable[[CertificateRecord], CertificateRecord]


class LineKind(enum.Enum):
    PREAMBLE = "preamble"
    HEADER = "header"
    BLANK = "blank"
    STATUS = "status"
    KEY_STORAGE = "key pair storage"
    CERT_STORAGE = "certificate"
    CA = "CA"
    SUBJECT = "subject"
    DNS = "dns"
    PRINCIPAL = "principal name"
    EKU = "eku"
    CA_ERROR = "ca-error"
    PRESAVE = "pre-save command"
    POSTSAVE = "post-save command"
    KEY_SIZE = "key_size"
    UNKNOWN = "unknown"


def _field(label: str) -> re.Pattern[str]:
    return re.compile(r"^\s+" + re.escape(label) + r":\s?(.*)$")


_LINE_PATTERNS: Tuple[Tuple[LineKind, re.Pattern[str]], ...] = (
    (LineKind.PREAMBLE, re.compile(r"^Number of certificates and requests")),
    (LineKind.HEADER, re.compile(r"^Request ID '(.+)':")),
    (LineKind.BLANK, re.compile(r"^\s*$")),
) + tuple(
    (kind, _field(kind.value))
    for kind in (
        LineKind.STATUS,
        LineKind.KEY_STORAGE,
        LineKind.CERT_STORAGE,
        LineKind.CA,
        LineKind.SUBJECT,
        LineKind.DNS,
        LineKind.PRINCIPAL,
        LineKind.EKU,
        LineKind.CA_ERROR,
        LineKind.PRESAVE,
        LineKind.POSTSAVE,
        LineKind.KEY_SIZE,
    )
)

_STORAGE_TYPE = re.compile(r"type=([A-Z]+)")
_STORAGE_LOCATION = re.compile(r"location='(.+?)'")
# One RDN: everything up to the next unescaped comma.
_RDN = re.compile(r"(?:\\.|[^,\\])+")
_ESCAPE = re.compile(r"\\(.)")
_KEY_BITS = re.compile(r"(?:RSA )?Private-Key: \((\d+)")


def classify(line: str) -> Tuple[LineKind, Optional[str]]:
    for kind, pattern in _LINE_PATTERNS:
        m = pattern.match(line)
        if m:
            return kind, (m.group(1) if pattern.groups else None)
    return LineKind.UNKNOWN, None


def split_values(raw: str) -> Tuple[str, ...]:
    return tuple(x.strip() for x in raw.split(",") if x.strip())


def common_name(subject: str) -> Optional[str]:
    """Return the CN of a subject DN, "" for an empty subject, None when there is no CN."""
    subject = subject.strip()
    if not subject:
        return ""
    for rdn in _RDN.findall(subject):
        rdn = rdn.strip()
        if rdn.startswith("CN="):
            return _ESCAPE.sub(r"\1", rdn[3:])
    return None


def _storage(raw: str, prefix: str) -> Dict[str, Any]:
    fields: Dict[str, Any] = {}
    t = _STORAGE_TYPE.search(raw)
    if t:
        fields[f"{prefix}backend"] = t.group(1)
    loc = _STORAGE_LOCATION.search(raw)
    if loc:
        fields[f"{prefix}file"] = loc.group(1)
    return fields


def _fields_for(
    kind: LineKind, value: str, name: str, rep: Optional[Reporter]
) -> Dict[str, Any]:
    if kind is LineKind.STATUS:
        return {"status": value}
    if kind is LineKind.KEY_STORAGE:
        return _storage(value, "key")
    if kind is LineKind.CERT_STORAGE:
        return _storage(value, "cert")
    if kind is LineKind.CA:
        return {"ca": value}
    if kind is LineKind.SUBJECT:
        cn = common_name(value)
        if cn is None and rep is not None:
            rep.warn(name, "subject", f"no CN component in subject {value.strip()!r}")
        return {"hostname": cn}
    if kind is LineKind.DNS:
        return {"dnsname": split_values(value)}
    if kind is LineKind.PRINCIPAL:
        return {"principal": split_values(value)}
    if kind is LineKind.EKU:
        return {"eku": split_values(value)}
    if kind is LineKind.CA_ERROR:
        return {"ca_error": value}
    if kind is LineKind.PRESAVE:
        return {"presave_cmd": value}
    if kind is LineKind.POSTSAVE:
        return {"postsave_cmd": value}
    if kind is LineKind.KEY_SIZE:
        # An empty value leaves key_size unset for the resolver.
        if not value.strip():
            return {}
        try:
            return {"key_size": int(value.strip())}
        except ValueError as ex:
            raise MalformedListing(
                f"Request ID '{name}': key_size is not a number: {value!r}"
            ) from ex
    # UNKNOWN
    return {}


def _close(acc: Dict[str, Any], resolve_key_size: Resolver) -> CertificateRecord:
    record = CertificateRecord(ensure=PRESENT, **acc)
    if record.key_size is None:
        record = resolve_key_size(record)
    return record


class KeySizeResolver:
    """Fill in key_size by running `openssl rsa -text` against the record's key file."""

    def __init__(self, openssl: Optional[Openssl] = None) -> None:
        self.openssl = openssl or Openssl()

    def __call__(self, record: CertificateRecord) -> CertificateRecord:
        return self.resolve(record)

    def resolve(self, record: CertificateRecord) -> CertificateRecord:
        if not record.keyfile:
            raise KeyInspectionFailed(
                f"Request ID '{record.name}': no key file to read key_size from"
            )
        try:
            cp = self.openssl.rsa_text(record.keyfile)
        except (OSError, subprocess.SubprocessError) as ex:
            raise KeyInspectionFailed(
                f"Could not run {self.openssl.command} on {record.keyfile}: {ex}"
            ) from ex
        if cp.returncode != 0:
            raise KeyInspectionFailed(
                f"Could not read {record.keyfile} (rc={cp.returncode}): "
                f"{(cp.stderr or '').strip() or 'no output'}"
            )
        m = _KEY_BITS.search(cp.stdout or "")
        if not m:
            raise KeyInspectionFailed(
                f"No RSA key size found in openssl output for {record.keyfile}"
            )
        return dataclasses.replace(record, key_size=int(m.group(1)))


def parse_listing(
    text: str,
    resolve_key_size: Optional[Resolver] = None,
    rep: Optional[Reporter] = None,
) -> List[CertificateRecord]:
    resolver = resolve_key_size or KeySizeResolver()
    records: List[CertificateRecord] = []
    seen = set()
    acc: Optional[Dict[str, Any]] = None

    for lineno, line in enumerate(text.splitlines(), start=1):
        kind, value = classify(line)
        if kind in (LineKind.PREAMBLE, LineKind.BLANK):
            continue
        if kind is LineKind.HEADER:
            if acc is not None:
                records.append(_close(acc, resolver))
            if value in seen:
                raise MalformedListing(f"Duplicate Request ID '{value}' in listing")
            seen.add(value)
            acc = {"name": value}
            continue
        if acc is None:
            raise MalformedListing(
                f"Invalid data coming from 'getcert list' (line {lineno} "
                f"before any Request ID): {line.strip()!r}"
            )
        acc = {**acc, **_fields_for(kind, value or "", acc["name"], rep)}

    if acc is not None:
        records.append(_close(acc, resolver))
    return records
