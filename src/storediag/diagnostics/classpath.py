"""Runtime dependency probe.

A probe entry names a module (``boto3``) or an attribute inside a module
(``botocore.config:Config``). Resolution imports the module and looks the
attribute up; "not found" is only the probed module (or one of its parent
packages) being absent, or the attribute missing. Anything else raised while
importing is recorded as an error so a broken install is not mistaken for a
missing one.
"""

from __future__ import annotations

import importlib
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from storediag.report import DiagnosticsReport

log = logging.getLogger("storediag.diagnostics.classpath")

MISSING_HINT = "library not on the runtime path"


@dataclass(frozen=True)
class ClassProbeEntry:
    classname: str
    required: bool


@dataclass(frozen=True)
class ProbeResult:
    classname: str
    required: bool
    found: bool
    error: Optional[str] = None
    location: Optional[str] = None


def _is_not_found(exc: ModuleNotFoundError, module_name: str) -> bool:
    missing = exc.name or ""
    return missing == module_name or module_name.startswith(missing + ".")


def _resolve(entry: ClassProbeEntry) -> ProbeResult:
    classname, required = entry.classname, entry.required
    module_name, _, attr = classname.partition(":")
    try:
        mod = importlib.import_module(module_name)
    except ModuleNotFoundError as e:
        if _is_not_found(e, module_name):
            return ProbeResult(classname, required, found=False)
        log.debug("dependency of %s missing", classname, exc_info=True)
        return ProbeResult(classname, required, found=False, error=f"dependency {e.name} is missing: {e}")
    except Exception as e:
        log.debug("failed to load %s", classname, exc_info=True)
        return ProbeResult(classname, required, found=False, error=f"{type(e).__name__}: {e}")

    location = getattr(mod, "__file__", None)
    if attr:
        try:
            getattr(mod, attr)
        except AttributeError:
            return ProbeResult(classname, required, found=False, location=location)
    return ProbeResult(classname, required, found=True, location=location)


def probe(classnames: Sequence[str], required: bool) -> List[ProbeResult]:
    """Resolve each classname; blank entries are skipped."""
    results: List[ProbeResult] = []
    for name in classnames:
        name = (name or "").strip()
        if not name:
            continue
        r = _resolve(ClassProbeEntry(name, required))
        log.debug("probe %s found=%s", name, r.found)
        results.append(r)
    return results


def report_probe_results(report: DiagnosticsReport, results: Sequence[ProbeResult]) -> None:
    for r in results:
        if r.found:
            suffix = f" ({r.location})" if r.location else ""
            report.info(f"       {r.classname}{suffix}")
        elif r.error:
            report.error(f"Failed to load {r.classname}: {r.error}")
        elif r.required:
            report.error(f"Class {r.classname} not found: {MISSING_HINT}")
        else:
            report.info(f"       {r.classname} not found (optional)")
