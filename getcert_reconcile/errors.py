from __future__ import annotations

from typing import List


class ReconcileError(RuntimeError):
    """Base class for every failure raised by the reconcile engine."""


class ConfigError(ReconcileError):
    pass


class MalformedListing(ReconcileError):
    pass


class KeyInspectionFailed(ReconcileError):
    pass


class MissingField(ReconcileError):
    field = ""


class MissingCertfile(MissingField):
    field = "certfile"

    def __init__(self) -> None:
        super().__init__("An empty value for the certfile is not allowed")


class MissingCA(MissingField):
    field = "ca"

    def __init__(self) -> None:
        super().__init__("You need to specify a CA")


class MissingKeyfile(MissingField):
    field = "keyfile"

    def __init__(self) -> None:
        super().__init__("An empty value for the keyfile is not allowed")


class DaemonCommandFailed(ReconcileError):
    def __init__(self, cmd: List[str], returncode: int, output: str) -> None:
        self.cmd = list(cmd)
        self.returncode = returncode
        self.output = output
        super().__init__(
            f"{' '.join(self.cmd)} failed (rc={returncode}): {output or 'no output'}"
        )


class DaemonRequestFailed(DaemonCommandFailed):
    pass


class RecordNotFound(ReconcileError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"The certificate '{name}' wasn't found in the list.")


class CAError(ReconcileError):
    def __init__(self, name: str, message: str) -> None:
        self.name = name
        self.message = message
        super().__init__(f"Could not get certificate: {message}")
