"""Diagnostics pipeline.

One pass over one connector descriptor:

  patch config -> options/env -> required/optional classes -> endpoints
  -> semantic validation -> (optional) live connection, smoke test and
  post-connect checks

Every stage runs even if an earlier one reported errors; only FatalIOError and
UsageError (raised while selecting the descriptor) stop the run.
"""

from __future__ import annotations

import contextlib
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional

import httpx

from storediag.connectors.base import ConnectorDescriptor, TargetURI
from storediag.diagnostics.classpath import probe, report_probe_results
from storediag.diagnostics.endpoints import check_endpoints, report_endpoint_results
from storediag.diagnostics.options import report_env_vars, report_options
from storediag.exception import E_DIAGNOSTICS_FAILED, E_SUCCESS
from storediag.observability import duration, log_event
from storediag.registry.connectors import REGISTRY
from storediag.report import DiagnosticsReport, Severity
from storediag.runtime.config import StoreConfig
from storediag.runtime.settings import Settings, load_settings

log = logging.getLogger('storediag.diagnostics')


def build_env_snapshot() -> Dict[str, str]:
    return {k: str(v) for k, v in os.environ.items()}


@dataclass
class DiagnosticsResult:
    descriptor: ConnectorDescriptor
    config: StoreConfig
    report: DiagnosticsReport

    @property
    def ok(self) -> bool:
        return not self.report.has_errors()

    @property
    def exit_code(self) -> int:
        return E_SUCCESS if self.ok else E_DIAGNOSTICS_FAILED


@contextlib.contextmanager
def _stage(report: DiagnosticsReport, stage: str, *, settings: Settings, severity: Severity = Severity.ERROR) -> Iterator[None]:
    """Record an unexpected failure of a stage as a finding and carry on."""
    with duration(log, stage, settings=settings):
        try:
            yield
        except Exception as e:
            log.warning("stage %s failed; continuing", stage, exc_info=True)
            msg = f"{stage} failed: {type(e).__name__}: {e}"
            if severity is Severity.WARN:
                report.warn(msg)
            else:
                report.error(msg)


def _check_classes(report: DiagnosticsReport, descriptor: ConnectorDescriptor, config: StoreConfig, settings: Settings) -> None:
    with _stage(report, "Required classes", settings=settings):
        report.heading("Required Classes")
        report.info("All these classes must be on the runtime path")
        report_probe_results(report, probe(descriptor.list_required_classes(config), required=True))
    with _stage(report, "Optional classes", settings=settings):
        report.heading("Optional Classes")
        report.info("These classes are needed in some versions of the connector")
        report_probe_results(report, probe(descriptor.list_optional_classes(config), required=False))


def _check_endpoints(
    report: DiagnosticsReport,
    descriptor: ConnectorDescriptor,
    config: StoreConfig,
    settings: Settings,
    transport: httpx.BaseTransport | None,
) -> None:
    with _stage(report, "Endpoints", settings=settings):
        report.heading("Endpoints")
        mandatory = descriptor.resolve_mandatory_endpoints(config)
        if not mandatory:
            report.info("No endpoints to probe")
        for ep in mandatory:
            report.info(f"{ep.label}: {ep.uri} (from {ep.source or 'configuration'})")
        report_endpoint_results(report, check_endpoints(mandatory, mandatory=True, settings=settings, transport=transport))
    # optional endpoints are best effort; a failure here never fails the run
    with _stage(report, "Optional endpoints", settings=settings, severity=Severity.WARN):
        optional = descriptor.resolve_optional_endpoints(config)
        if optional:
            report.heading("Optional Endpoints")
            report_endpoint_results(report, check_endpoints(optional, mandatory=False, settings=settings, transport=transport))


def _check_live(report: DiagnosticsReport, descriptor: ConnectorDescriptor, config: StoreConfig, settings: Settings) -> None:
    report.heading("Filesystem connection")
    try:
        filesystem: Any = descriptor.connect(config, settings)
    except Exception as e:
        log.warning("connection failed", exc_info=True)
        report.error(f"Unable to connect to {descriptor.uri.raw}: {type(e).__name__}: {e}")
        return
    with _stage(report, "Smoke test", settings=settings):
        descriptor.smoke_test(filesystem, report)
    # identity mismatches do not break functional behavior
    with _stage(report, "Post-connect check", settings=settings, severity=Severity.WARN):
        descriptor.post_connect_check(filesystem, config, report)


def run_diagnostics(
    uri: str | TargetURI,
    config: StoreConfig,
    *,
    settings: Optional[Settings] = None,
    env: Optional[Dict[str, str]] = None,
    connect: bool = True,
    transport: httpx.BaseTransport | None = None,
) -> DiagnosticsResult:
    """Run every diagnostic stage against ``uri`` and return the report."""
    env = build_env_snapshot() if env is None else env
    settings = settings or load_settings(env=env)
    descriptor = REGISTRY.create(uri)
    report = DiagnosticsReport()
    log_event(log, settings=settings, level=logging.INFO, event="diagnostics_start", uri=descriptor.uri.raw, connector=descriptor.name)

    report.heading(f"Diagnostics for filesystem {descriptor.uri.raw}")
    report.info(descriptor.name)
    report.info(descriptor.description)
    report.info(descriptor.homepage)
    if descriptor.uri.had_credentials:
        report.warn("Credentials embedded in the filesystem URI were ignored; set them in the configuration instead")

    with _stage(report, "Configuration patch", settings=settings):
        if descriptor.supports_bucket_option_propagation():
            config = descriptor.patch_config(config, report)
        else:
            report.info("Per-bucket option propagation: feature not available for this connector")

    with _stage(report, "Options", settings=settings):
        report.heading("Selected and Sensitive Configuration Options")
        report_options(report, config, descriptor.list_options(), mask_sensitive=settings.mask_sensitive)
    with _stage(report, "Environment variables", settings=settings):
        variables = descriptor.list_env_vars()
        if variables:
            report.heading("Environment Variables")
            report_env_vars(report, env, variables, mask_sensitive=settings.mask_sensitive)

    _check_classes(report, descriptor, config, settings)
    _check_endpoints(report, descriptor, config, settings, transport)

    with _stage(report, "Config validation", settings=settings):
        report.heading(f"{descriptor.name}: config validation")
        descriptor.validate(config, report)

    if connect:
        _check_live(report, descriptor, config, settings)
    else:
        report.heading("Filesystem connection")
        report.info("Live connection skipped")

    result = DiagnosticsResult(descriptor=descriptor, config=config, report=report)
    log_event(
        log,
        settings=settings,
        level=logging.INFO,
        event="diagnostics_end",
        uri=descriptor.uri.raw,
        errors=report.count(Severity.ERROR),
        warnings=report.count(Severity.WARN),
    )
    return result
