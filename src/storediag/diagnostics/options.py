from __future__ import annotations

from typing import Mapping, Optional, Sequence

from storediag.report import DiagnosticsReport
from storediag.runtime.config import StoreConfig
from storediag.spec import ConfigOption, EnvVarOption

UNSET = "<unset>"
REDACTED = "<redacted>"


def mask_value(value: str) -> str:
    """Partially mask a sensitive value: ``AKIAXXXXEXAMPLE`` -> ``AK***********LE``."""
    if len(value) < 8:
        return "*" * 4
    return value[:2] + "*" * (len(value) - 4) + value[-2:]


def display_value(value: Optional[str], *, sensitive: bool, always_redact: bool, mask_sensitive: bool) -> str:
    if value is None:
        return UNSET
    if always_redact:
        return REDACTED
    if sensitive and mask_sensitive:
        return f'"{mask_value(value)}"'
    return f'"{value}"'


def report_options(
    report: DiagnosticsReport,
    config: StoreConfig,
    catalog: Sequence[ConfigOption],
    *,
    mask_sensitive: bool,
) -> None:
    for opt in catalog:
        if not opt.key:
            continue
        value = config.get(opt.key)
        shown = display_value(value, sensitive=opt.sensitive, always_redact=opt.always_redact, mask_sensitive=mask_sensitive)
        source = config.source_of(opt.key)
        suffix = f" [{source}]" if value is not None and source else ""
        report.info(f"{opt.key} = {shown}{suffix}")


def report_env_vars(
    report: DiagnosticsReport,
    env: Mapping[str, str],
    variables: Sequence[EnvVarOption],
    *,
    mask_sensitive: bool,
) -> None:
    for var in variables:
        shown = display_value(env.get(var.name), sensitive=var.sensitive, always_redact=False, mask_sensitive=mask_sensitive)
        report.info(f"{var.name} = {shown}")
