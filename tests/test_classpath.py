from __future__ import annotations

from pathlib import Path

from storediag.diagnostics.classpath import probe, report_probe_results
from storediag.report import DiagnosticsReport, Severity


def test_found_module_and_attribute():
    results = probe(["json", "collections:OrderedDict"], required=True)
    assert [r.found for r in results] == [True, True]
    assert all(r.error is None for r in results)


def test_blank_entries_are_skipped():
    results = probe(["", "  ", "json"], required=False)
    assert [r.classname for r in results] == ["json"]


def test_missing_module_and_missing_attribute_are_not_found():
    results = probe(["storediag_no_such_module", "json:NoSuchThing"], required=True)
    assert [r.found for r in results] == [False, False]
    assert [r.error for r in results] == [None, None]


def test_broken_module_is_an_error_not_a_missing_class(tmp_path: Path, monkeypatch):
    (tmp_path / "storediag_broken_mod.py").write_text("raise RuntimeError('boom')\n", encoding="utf-8")
    (tmp_path / "storediag_bad_dep.py").write_text("import storediag_really_absent_dep\n", encoding="utf-8")
    monkeypatch.syspath_prepend(str(tmp_path))

    broken, bad_dep = probe(["storediag_broken_mod", "storediag_bad_dep"], required=False)
    assert not broken.found and "boom" in broken.error
    assert not bad_dep.found and "storediag_really_absent_dep" in bad_dep.error

    report = DiagnosticsReport()
    report_probe_results(report, [broken, bad_dep])
    # optional or not, a load failure is an error
    assert report.count(Severity.ERROR) == 2
    assert report.findings[0].message.startswith("Failed to load storediag_broken_mod")


def test_missing_required_is_error_and_missing_optional_is_info():
    report = DiagnosticsReport()
    report_probe_results(report, probe(["storediag_absent_required"], required=True))
    report_probe_results(report, probe(["storediag_absent_optional"], required=False))

    sev = [f.severity for f in report.findings]
    assert sev == [Severity.ERROR, Severity.INFO]
    assert "storediag_absent_required" in report.findings[0].message
    assert "not on the runtime path" in report.findings[0].message
    assert "optional" in report.findings[1].message
