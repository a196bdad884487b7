"""storediag: storage connector diagnostics.

Public entrypoints:
- storediag.api: stable API surface for integrations/plugins
- storediag.diagnostics.run_diagnostics: run a diagnostics pass programmatically

Internal modules may change without notice.
"""

from __future__ import annotations

# Ensure built-in connectors are registered on import.
from storediag import builtins as _builtins  # noqa: F401

from storediag.diagnostics import run_diagnostics

__all__ = ["run_diagnostics"]
