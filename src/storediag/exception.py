"""Centralized customized exceptions for storediag.

All project-specific exceptions live in this module. Internal code should
prefer explicit imports:

    from storediag.exception import FatalIOError

Only UsageError and FatalIOError (and its subclasses) stop a diagnostics run;
every other problem is recorded as a finding in the report.
"""

from __future__ import annotations

__all__ = [
    "E_SUCCESS",
    "E_DIAGNOSTICS_FAILED",
    "E_USAGE",
    "E_NOT_FOUND",
    "StoreDiagError",
    "UsageError",
    "FatalIOError",
    "UnknownConnectorError",
    "ConnectorError",
]

# Process exit codes.
E_SUCCESS = 0
E_DIAGNOSTICS_FAILED = 2
E_USAGE = 42
E_NOT_FOUND = 44


class StoreDiagError(Exception):
    """Base error carrying the exit code the CLI should terminate with."""

    exit_code: int = E_DIAGNOSTICS_FAILED


class UsageError(StoreDiagError):
    """Raised on a malformed command line; no diagnostics are run."""

    exit_code = E_USAGE


class FatalIOError(StoreDiagError):
    """Raised when the configuration snapshot or target URI cannot be built."""

    exit_code = E_NOT_FOUND


class UnknownConnectorError(FatalIOError):
    """Raised when no connector is registered for a URI scheme."""

    def __init__(self, scheme: str, known: list[str]):
        super().__init__(f"No connector registered for scheme '{scheme}'. Known: {known}")
        self.scheme = scheme
        self.known = list(known)


class ConnectorError(RuntimeError):
    """Base error for live connector failures."""
