"""Built-in connector descriptors; importing this package registers them."""

from __future__ import annotations

from storediag.builtins import connectors  # noqa: F401
