"""Network reachability checks for resolved endpoints.

Each endpoint gets an HTTP HEAD through httpx: DNS resolution, TCP connect and
(for https) the TLS handshake all have to succeed. Any HTTP response, even a
403, means the endpoint is reachable.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

import httpx
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from storediag.concurrency import run_thread_pool
from storediag.report import DiagnosticsReport
from storediag.runtime.settings import Settings
from storediag.spec import EndpointSpec

log = logging.getLogger("storediag.diagnostics.endpoints")


@dataclass(frozen=True)
class EndpointResult:
    endpoint: EndpointSpec
    mandatory: bool
    reachable: bool
    status: Optional[int] = None
    cause: Optional[str] = None


def check_endpoint(
    endpoint: EndpointSpec,
    *,
    mandatory: bool,
    timeout: float = 5.0,
    retries: int = 0,
    transport: httpx.BaseTransport | None = None,
) -> EndpointResult:
    log.info("probing %s at %s", endpoint.label, endpoint.uri)
    try:
        with httpx.Client(timeout=timeout, transport=transport, follow_redirects=False) as client:
            for attempt in Retrying(
                stop=stop_after_attempt(max(0, int(retries)) + 1),
                wait=wait_exponential(multiplier=0.2, max=2),
                retry=retry_if_exception_type(httpx.ConnectError),
                reraise=True,
            ):
                with attempt:
                    resp = client.head(endpoint.uri)
    except httpx.TimeoutException as e:
        log.debug("timeout probing %s", endpoint.uri, exc_info=True)
        return EndpointResult(endpoint, mandatory, reachable=False, cause=f"timed out after {timeout}s ({type(e).__name__})")
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        log.debug("failed probing %s", endpoint.uri, exc_info=True)
        return EndpointResult(endpoint, mandatory, reachable=False, cause=f"{type(e).__name__}: {e}")
    return EndpointResult(endpoint, mandatory, reachable=True, status=resp.status_code)


def check_endpoints(
    endpoints: Sequence[EndpointSpec],
    *,
    mandatory: bool,
    settings: Settings,
    transport: httpx.BaseTransport | None = None,
) -> List[EndpointResult]:
    """Check endpoints in parallel; results are in declaration order."""
    timeout = float(settings.probe_timeout)
    retries = max(0, int(settings.probe_retries))

    def _check(ep: EndpointSpec) -> EndpointResult:
        return check_endpoint(ep, mandatory=mandatory, timeout=timeout, retries=retries, transport=transport)

    def _timed_out(ep: EndpointSpec) -> EndpointResult:
        return EndpointResult(ep, mandatory, reachable=False, cause=f"timed out after {timeout}s")

    return run_thread_pool(
        endpoints,
        _check,
        workers=settings.probe_workers,
        # per-endpoint bound covers every attempt plus backoff
        task_timeout=timeout * (retries + 1) + 2 * retries + 1.0,
        on_timeout=_timed_out,
    )


def report_endpoint_results(report: DiagnosticsReport, results: Sequence[EndpointResult]) -> None:
    for r in results:
        ep = r.endpoint
        if r.reachable:
            report.info(f"{ep.label}: {ep.uri} is reachable (HTTP {r.status})")
        elif r.mandatory:
            report.error(f"Unable to connect to {ep.label} at {ep.uri}: {r.cause}")
        else:
            report.info(f"{ep.label}: {ep.uri} is not reachable: {r.cause}")
            report.info("This is only an issue if the store is running in that infrastructure")
