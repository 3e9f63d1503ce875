"""Reconcile certmonger (getcert) tracking requests against declared intent."""

from .errors import (
    CAError,
    ConfigError,
    DaemonCommandFailed,
    DaemonRequestFailed,
    KeyInspectionFailed,
    MalformedListing,
    MissingCA,
    MissingCertfile,
    MissingKeyfile,
    RecordNotFound,
    ReconcileError,
)
from .model import ABSENT, PRESENT, CertificateRecord, DesiredState

__version__ = "0.1.0"

__all__ = [
    "ABSENT",
    "PRESENT",
    "CAError",
    "CertificateRecord",
    "ConfigError",
    "DaemonCommandFailed",
    "DaemonRequestFailed",
    "DesiredState",
    "KeyInspectionFailed",
    "MalformedListing",
    "MissingCA",
    "MissingCertfile",
    "MissingKeyfile",
    "RecordNotFound",
    "ReconcileError",
]
