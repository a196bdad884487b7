from __future__ import annotations

import os
from importlib import import_module
from typing import List

from pydantic import BaseModel, Field, ValidationError

from storediag.exception import UsageError


def _flag(value: str | None, default: str) -> bool:
    return (value or default).strip().lower() in ("true", "1", "yes")


class Settings(BaseModel):
    # Defaults are static. Use load_settings(env=...) to read from an env snapshot.
    log_level: str = "WARNING"

    # - log_format: "text" (default) or "json". When json, storediag logs emit a single
    #   JSON object per line, suitable for log aggregation.
    log_format: str = "text"

    # Directory searched for the default configuration resources.
    conf_dir: str | None = None

    # Endpoint reachability checks
    probe_timeout: float = Field(5.0, gt=0)
    probe_workers: int = Field(4, ge=1)
    probe_retries: int = Field(0, ge=0)

    # Show sensitive options partially masked (False prints them in full).
    mask_sensitive: bool = True

    plugin_paths: List[str] = Field(default_factory=list)
    plugin_strict: bool = True

    @classmethod
    def from_env(cls, env: dict[str, str], overrides: dict | None = None) -> "Settings":
        """Build Settings from an explicit env snapshot (does not read os.environ)."""
        def g(key: str, default: str | None = None) -> str | None:
            return env.get(key, default)  # type: ignore[return-value]

        data = {
            "log_level": g("STOREDIAG_LOG_LEVEL", "WARNING"),
            "log_format": g("STOREDIAG_LOG_FORMAT", "text"),
            "conf_dir": g("STOREDIAG_CONF_DIR") or g("HADOOP_CONF_DIR") or None,
            # numbers stay strings here; the field types parse and bound them
            "probe_timeout": g("STOREDIAG_PROBE_TIMEOUT") or "5",
            "probe_workers": g("STOREDIAG_PROBE_WORKERS") or "4",
            "probe_retries": g("STOREDIAG_PROBE_RETRIES") or "0",
            "mask_sensitive": _flag(g("STOREDIAG_MASK_SENSITIVE"), "true"),
            "plugin_paths": [p for p in (g("STOREDIAG_PLUGIN_PATHS", "") or "").split(",") if p],
            "plugin_strict": _flag(g("STOREDIAG_PLUGIN_STRICT"), "true"),
        }
        if overrides:
            data.update(overrides)
        return cls(**data)


def _describe(e: ValidationError) -> str:
    return "; ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors())


def load_settings(overrides: dict | None = None, *, env: dict[str, str] | None = None) -> Settings:
    """Load settings from (1) env snapshot, (2) optional settings module, (3) explicit overrides.

    If env is not provided, a snapshot is taken from os.environ.
    """
    env2 = {k: str(v) for k, v in os.environ.items()} if env is None else env
    try:
        s = Settings.from_env(env2)
        mod = env2.get("STOREDIAG_SETTINGS_MODULE")
        if mod:
            data = getattr(import_module(mod), "SETTINGS", {})
            if not isinstance(data, dict):
                raise UsageError(f"STOREDIAG_SETTINGS_MODULE {mod} must expose SETTINGS: dict")
            s = Settings(**{**s.model_dump(), **data})
        if overrides:
            s = Settings(**{**s.model_dump(), **overrides})
    except ValidationError as e:
        raise UsageError(f"Invalid storediag settings: {_describe(e)}") from e
    except ImportError as e:
        raise UsageError(f"Unable to import STOREDIAG_SETTINGS_MODULE: {e}") from e
    return s
