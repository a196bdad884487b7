from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum
from typing import List


class Severity(str, Enum):
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"


_PREFIX = {Severity.INFO: "", Severity.WARN: "WARNING: ", Severity.ERROR: "ERROR: "}


@dataclass(frozen=True)
class Finding:
    seq: int
    severity: Severity
    message: str
    heading: bool = False

    def as_dict(self) -> dict:
        return {
            "seq": self.seq,
            "severity": self.severity.value,
            "message": self.message,
            "heading": self.heading,
        }


class DiagnosticsReport:
    """Append-only, ordered sequence of findings.

    Appends are serialized on a lock so endpoint checks may report from worker
    threads; nothing is ever filtered or dropped.
    """

    def __init__(self) -> None:
        self._findings: List[Finding] = []
        self._lock = threading.Lock()

    def _append(self, severity: Severity, message: str, *, heading: bool = False) -> Finding:
        with self._lock:
            f = Finding(seq=len(self._findings) + 1, severity=severity, message=message, heading=heading)
            self._findings.append(f)
            return f

    def heading(self, text: str) -> Finding:
        return self._append(Severity.INFO, text, heading=True)

    def info(self, text: str) -> Finding:
        return self._append(Severity.INFO, text)

    def warn(self, text: str) -> Finding:
        return self._append(Severity.WARN, text)

    def error(self, text: str) -> Finding:
        return self._append(Severity.ERROR, text)

    @property
    def findings(self) -> List[Finding]:
        with self._lock:
            return list(self._findings)

    def count(self, severity: Severity) -> int:
        return sum(1 for f in self.findings if f.severity == severity and not f.heading)

    def has_errors(self) -> bool:
        return self.count(Severity.ERROR) > 0

    def render(self) -> str:
        lines: List[str] = []
        for f in self.findings:
            if f.heading:
                lines.append("")
                lines.append(f.message)
                lines.append("=" * len(f.message))
                lines.append("")
            else:
                lines.append(_PREFIX[f.severity] + f.message)
        return "\n".join(lines) + "\n"

    def as_dict(self) -> dict:
        return {
            "ok": not self.has_errors(),
            "errors": self.count(Severity.ERROR),
            "warnings": self.count(Severity.WARN),
            "findings": [f.as_dict() for f in self.findings],
        }
