"""Connector plugins.

A plugin registers descriptors with ``storediag.api.register_connector``. It is
found either through the ``storediag.connectors`` entry-point group (the entry
point may be a module, a registration function or a decorated descriptor
class) or as a ``.py`` file under one of ``Settings.plugin_paths``. Files whose
name starts with ``_`` are skipped.

With ``plugin_strict`` (the default) any failure is fatal; otherwise it is
logged and the remaining plugins still load.
"""

from __future__ import annotations

import importlib.util
import logging
from importlib.metadata import entry_points
from pathlib import Path
from typing import Iterator, List

from storediag.exception import FatalIOError
from storediag.registry.connectors import REGISTRY

log = logging.getLogger("storediag.plugins")

ENTRY_POINT_GROUP = "storediag.connectors"


def _fail(message: str, *, strict: bool, cause: BaseException | None = None) -> None:
    if strict:
        raise FatalIOError(message) from cause
    log.warning("%s; continuing", message, exc_info=cause is not None)


def _new_schemes(before: set[str]) -> List[str]:
    return [s for s in REGISTRY.list() if s not in before]


def load_entry_point_plugins(group: str = ENTRY_POINT_GROUP, *, strict: bool = True) -> List[str]:
    """Load every entry point of ``group``; returns the schemes they added."""
    before = set(REGISTRY.list())
    for ep in entry_points().select(group=group):
        try:
            obj = ep.load()
            # decorated classes register on import; functions register when called
            if callable(obj) and not isinstance(obj, type):
                obj()
        except Exception as e:
            _fail(f"Unable to load connector plugin {ep.name} ({ep.value}): {e}", strict=strict, cause=e)
    added = _new_schemes(before)
    if added:
        log.info("entry point plugins registered schemes %s", added)
    return added


def _plugin_files(root: Path) -> Iterator[Path]:
    for p in sorted(root.rglob("*.py")):
        if not p.name.startswith("_"):
            yield p


def _module_name(root: Path, py: Path) -> str:
    rel = py.relative_to(root).with_suffix("")
    return "storediag_plugin_" + "_".join(rel.parts)


def load_path_plugins(paths: List[str], *, strict: bool = True) -> List[str]:
    """Execute plugin files found under ``paths``; returns the schemes they added."""
    before = set(REGISTRY.list())
    for raw in paths:
        if not raw:
            continue
        root = Path(raw).expanduser().resolve()
        if not root.is_dir():
            _fail(f"Plugin path not found: {root}", strict=strict)
            continue
        for py in _plugin_files(root):
            spec = importlib.util.spec_from_file_location(_module_name(root, py), py)
            if spec is None or spec.loader is None:
                continue
            try:
                spec.loader.exec_module(importlib.util.module_from_spec(spec))
            except Exception as e:
                _fail(f"Unable to load connector plugin file {py}: {e}", strict=strict, cause=e)
            else:
                log.debug("loaded plugin file %s", py)
    added = _new_schemes(before)
    if added:
        log.info("path plugins registered schemes %s", added)
    return added


def load_all_plugins(*, settings) -> List[str]:
    added = load_entry_point_plugins(strict=settings.plugin_strict)
    return added + load_path_plugins(settings.plugin_paths, strict=settings.plugin_strict)
