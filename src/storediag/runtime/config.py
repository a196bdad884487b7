"""Configuration snapshot used by a diagnostics run.

A StoreConfig is an ordered ``str -> str`` mapping with typed accessors. It is
built once by ConfigBuilder and read-only afterwards; transformations such as
per-bucket option propagation return a new snapshot.

Merge order (later wins):
  1) default resources in DEFAULT_RESOURCES order, found in the conf dir
  2) explicit files, in the order they were added
  3) ``key=value`` defines
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Dict, Iterator, List, Mapping, Optional, Tuple

import yaml

from storediag.exception import FatalIOError, UsageError
from storediag.runtime.config_files import find_resource, read_config_file

log = logging.getLogger("storediag.runtime.config")

# this order is what the hadoop tools load: core first, then the service sites.
DEFAULT_RESOURCES = ("core-default", "core-site", "hdfs-site", "mapred-site", "yarn-site")

SOURCE_DEFINE = "-D"

_TRUE = {"true", "yes", "1", "on"}
_FALSE = {"false", "no", "0", "off"}


class StoreConfig(Mapping[str, str]):
    """Read-only configuration snapshot."""

    def __init__(self, values: Optional[Mapping[str, str]] = None, sources: Optional[Mapping[str, str]] = None):
        self._values: Dict[str, str] = dict(values or {})
        self._sources: Dict[str, str] = dict(sources or {})

    def __getitem__(self, key: str) -> str:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"StoreConfig({len(self._values)} keys)"

    def get_trimmed(self, key: str, default: str = "") -> str:
        v = self._values.get(key)
        if v is None:
            return default
        v = v.strip()
        return v if v else default

    def get_bool(self, key: str, default: bool = False) -> bool:
        v = self.get_trimmed(key).lower()
        if v in _TRUE:
            return True
        if v in _FALSE:
            return False
        return default

    def get_int(self, key: str, default: int | None = None) -> int | None:
        """Typed integer lookup; raises ValueError when the value does not parse."""
        v = self.get_trimmed(key)
        if not v:
            return default
        return int(v)

    def source_of(self, key: str) -> str | None:
        return self._sources.get(key)

    def with_overrides(self, overrides: Mapping[str, str], *, source: str) -> "StoreConfig":
        values = dict(self._values)
        sources = dict(self._sources)
        for k, v in overrides.items():
            values[k] = v
            sources[k] = source
        return StoreConfig(values, sources)


def split_define(text: str, default_value: str = "true") -> Tuple[str, str]:
    """Split ``key=value``; a bare ``key`` gets ``default_value``."""
    if "=" in text:
        k, v = text.split("=", 1)
    else:
        k, v = text, default_value
    k = k.strip()
    if not k:
        raise UsageError(f"Invalid definition: '{text}'")
    return k, v.strip()


class ConfigBuilder:
    """Explicit builder merging configuration resources in a documented order."""

    def __init__(self, *, conf_dir: str | Path | None = None, default_resources: Tuple[str, ...] = DEFAULT_RESOURCES):
        self.conf_dir = Path(conf_dir).expanduser() if conf_dir else None
        self.default_resources = tuple(default_resources)
        self._files: List[Path] = []
        self._defines: List[Tuple[str, str]] = []
        self.loaded: List[str] = []

    def add_file(self, path: str | Path) -> "ConfigBuilder":
        p = Path(path).expanduser()
        if not p.is_file():
            raise FatalIOError(f"Configuration file not found: {p}")
        self._files.append(p)
        return self

    def define(self, text: str) -> "ConfigBuilder":
        self._defines.append(split_define(text))
        return self

    def set(self, key: str, value: str) -> "ConfigBuilder":
        self._defines.append((key, value))
        return self

    def _load(self, path: Path, values: Dict[str, str], sources: Dict[str, str]) -> None:
        try:
            data = read_config_file(path)
        except (OSError, ValueError, TypeError) as e:
            raise FatalIOError(f"Unable to read configuration file {path}: {e}") from e
        except (yaml.YAMLError, ET.ParseError) as e:
            raise FatalIOError(f"Unable to parse configuration file {path}: {e}") from e
        log.debug("loaded %d keys from %s", len(data), path)
        self.loaded.append(str(path))
        for k, v in data.items():
            values[k] = v
            sources[k] = str(path)

    def build(self) -> StoreConfig:
        values: Dict[str, str] = {}
        sources: Dict[str, str] = {}
        self.loaded = []
        if self.conf_dir is not None:
            if not self.conf_dir.is_dir():
                log.warning("configuration directory %s does not exist", self.conf_dir)
            else:
                for name in self.default_resources:
                    found = find_resource(self.conf_dir, name)
                    if found is not None:
                        self._load(found, values, sources)
        for p in self._files:
            self._load(p, values, sources)
        for k, v in self._defines:
            values[k] = v
            sources[k] = SOURCE_DEFINE
        return StoreConfig(values, sources)


def propagate_bucket_options(config: StoreConfig, bucket: str, *, prefix: str) -> Tuple[StoreConfig, List[str]]:
    """Copy ``<prefix>bucket.<bucket>.<option>`` onto ``<prefix><option>``.

    Returns the patched snapshot and the list of base keys that were overridden.
    Nested ``bucket.`` keys are never propagated.
    """
    bucket_prefix = f"{prefix}bucket.{bucket}."
    overrides: Dict[str, str] = {}
    for key, value in config.items():
        if not key.startswith(bucket_prefix):
            continue
        stripped = key[len(bucket_prefix):]
        if not stripped or stripped.startswith("bucket."):
            continue
        overrides[prefix + stripped] = value
    if not overrides:
        return config, []
    return config.with_overrides(overrides, source=f"bucket {bucket}"), list(overrides)
