from __future__ import annotations

from typing import Optional

from pydantic import BaseModel
from pydantic.config import ConfigDict

# ---------------------------------------------------------------------------
# Connector declarations
# ---------------------------------------------------------------------------


class ConfigOption(BaseModel):
    """A configuration key a connector cares about.

    sensitive options are shown masked unless the invocation turns masking off;
    always_redact options are never printed when set.
    """

    model_config = ConfigDict(frozen=True)

    key: str
    sensitive: bool = False
    always_redact: bool = False


class EnvVarOption(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    sensitive: bool = False


class EndpointSpec(BaseModel):
    """A network endpoint derived from configuration."""

    model_config = ConfigDict(frozen=True)

    label: str
    uri: str
    # Configuration key (or "default") the URI was derived from.
    source: Optional[str] = None


def options(*rows: tuple[str, bool, bool]) -> tuple[ConfigOption, ...]:
    """Build an option catalog from (key, sensitive, always_redact) rows."""
    return tuple(ConfigOption(key=k, sensitive=s, always_redact=r) for k, s, r in rows)


def env_vars(*rows: tuple[str, bool]) -> tuple[EnvVarOption, ...]:
    return tuple(EnvVarOption(name=n, sensitive=s) for n, s in rows)
