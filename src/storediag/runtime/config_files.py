"""Readers for configuration resources.

Every reader returns a flat, ordered ``{key: value}`` mapping of strings.
Supported formats:
  - Hadoop property XML (``<configuration><property><name/><value/>``)
  - YAML / JSON (nested mappings flatten with dots: ``fs: {s3a: {endpoint: x}}``)
  - properties / dotenv style ``key=value`` lines
"""

from __future__ import annotations

import json
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Any, Dict

import yaml

CONFIG_SUFFIXES = (".xml", ".yaml", ".yml", ".json", ".properties")


def _flatten(obj: Any, prefix: str, out: Dict[str, str]) -> None:
    if isinstance(obj, dict):
        for k, v in obj.items():
            key = f"{prefix}.{k}" if prefix else str(k)
            _flatten(v, key, out)
        return
    if obj is None:
        return
    if isinstance(obj, bool):
        out[prefix] = "true" if obj else "false"
    elif isinstance(obj, list):
        out[prefix] = ",".join(str(x) for x in obj)
    else:
        out[prefix] = str(obj)


def _read_properties(p: Path) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for raw in p.read_text(encoding="utf-8").splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        k, v = line.split("=", 1)
        k = k.strip()
        v = v.strip()
        # strip simple quotes
        if (v.startswith('"') and v.endswith('"')) or (v.startswith("'") and v.endswith("'")):
            v = v[1:-1]
        if k:
            out[k] = v
    return out


def _read_mapping(p: Path, obj: Any) -> Dict[str, str]:
    if obj is None:
        return {}
    if not isinstance(obj, dict):
        raise TypeError(f"{p}: configuration file must contain a mapping")
    out: Dict[str, str] = {}
    _flatten(obj, "", out)
    return out


def _read_yaml(p: Path) -> Dict[str, str]:
    return _read_mapping(p, yaml.safe_load(p.read_text(encoding="utf-8")))


def _read_json(p: Path) -> Dict[str, str]:
    return _read_mapping(p, json.loads(p.read_text(encoding="utf-8")))


def _read_xml(p: Path) -> Dict[str, str]:
    root = ET.parse(p).getroot()
    out: Dict[str, str] = {}
    for prop in root.iter("property"):
        name = (prop.findtext("name") or "").strip()
        if not name:
            continue
        out[name] = (prop.findtext("value") or "").strip()
    return out


def read_config_file(path: Path) -> Dict[str, str]:
    """Read one configuration resource, choosing the reader by file suffix."""
    suffix = path.suffix.lower()
    if suffix == ".xml":
        return _read_xml(path)
    if suffix in (".yaml", ".yml"):
        return _read_yaml(path)
    if suffix == ".json":
        return _read_json(path)
    if suffix in (".properties", ".env", ".conf", ""):
        return _read_properties(path)
    raise ValueError(f"Unsupported configuration file type: {path}")


def find_resource(conf_dir: Path, name: str) -> Path | None:
    """Locate a named default resource (``core-site`` -> ``core-site.xml`` ...)."""
    for suffix in CONFIG_SUFFIXES:
        candidate = conf_dir / f"{name}{suffix}"
        if candidate.is_file():
            return candidate
    return None
