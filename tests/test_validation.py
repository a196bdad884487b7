from __future__ import annotations

from pathlib import Path

import pytest

from storediag.builtins.connectors import S3ADescriptor
from storediag.connectors.base import TargetURI
from storediag.report import DiagnosticsReport, Severity
from storediag.runtime.config import StoreConfig
from storediag.validation import EncryptionMethod, check_buffer_dir, check_encryption, check_int_options, resolve_buffer_dir

ALG = "fs.s3a.server-side-encryption-algorithm"
KEY = "fs.s3a.server-side-encryption.key"


def _encryption(values):
    report = DiagnosticsReport()
    method = check_encryption(StoreConfig(values), report, algorithm_key=ALG, key_key=KEY)
    return method, report


def test_no_encryption_is_info_only():
    method, report = _encryption({})
    assert method is EncryptionMethod.NONE
    assert [f.message for f in report.findings] == ["Encryption method: none"]


def test_sse_c_without_key_is_one_error_naming_mode_and_key():
    _, report = _encryption({ALG: "SSE-C"})
    errors = [f for f in report.findings if f.severity is Severity.ERROR]
    assert len(errors) == 1
    assert "SSE-C" in errors[0].message
    assert KEY in errors[0].message


def test_sse_c_with_key_is_clean():
    _, report = _encryption({ALG: "SSE-C", KEY: "base64key=="})
    assert not report.has_errors()
    assert report.count(Severity.WARN) == 0


def test_sse_kms_without_key_is_one_warning():
    _, report = _encryption({ALG: "SSE-KMS"})
    assert report.count(Severity.ERROR) == 0
    assert report.count(Severity.WARN) == 1


def test_sse_kms_key_without_arn_is_one_warning():
    _, report = _encryption({ALG: "sse-kms", KEY: "alias/mine"})
    assert report.count(Severity.ERROR) == 0
    assert report.count(Severity.WARN) == 1
    _, report = _encryption({ALG: "SSE-KMS", KEY: "arn:aws:kms:eu-west-1:123:key/abc"})
    assert report.count(Severity.WARN) == 0


def test_unknown_method_is_error_without_echoing_value():
    method, report = _encryption({ALG: "ROT13-with-a-key"})
    assert method is None
    assert report.count(Severity.ERROR) == 1
    assert "ROT13-with-a-key" not in report.render()
    assert ALG in report.findings[0].message


@pytest.mark.parametrize("raw,expected", [("AES256", EncryptionMethod.SSE_S3), ("none", EncryptionMethod.NONE), (" ", EncryptionMethod.NONE)])
def test_encryption_parse(raw, expected):
    assert EncryptionMethod.parse(raw) is expected


def test_buffer_dir_fallback_order(tmp_path: Path):
    assert resolve_buffer_dir(StoreConfig({"hadoop.tmp.dir": f"{tmp_path}/h"}), "fs.s3a.buffer.dir") == ("hadoop.tmp.dir", f"{tmp_path}/h")
    cfg = StoreConfig({"fs.s3a.buffer.dir": f" {tmp_path}/a , {tmp_path}/b", "hadoop.tmp.dir": "/ignored"})
    assert resolve_buffer_dir(cfg, "fs.s3a.buffer.dir") == ("fs.s3a.buffer.dir", f"{tmp_path}/a")
    assert resolve_buffer_dir(StoreConfig(), "fs.s3a.buffer.dir")[0] == "(system temp)"


def test_buffer_dir_is_created_and_probe_file_removed(tmp_path: Path):
    target = tmp_path / "buf" / "nested"
    report = DiagnosticsReport()
    assert check_buffer_dir(StoreConfig({"fs.s3a.buffer.dir": str(target)}), report, buffer_key="fs.s3a.buffer.dir")
    assert not report.has_errors()
    assert target.is_dir()
    assert list(target.iterdir()) == []


def test_buffer_dir_failure_names_path(tmp_path: Path):
    blocker = tmp_path / "a-file"
    blocker.write_text("x", encoding="utf-8")
    report = DiagnosticsReport()
    ok = check_buffer_dir(StoreConfig({"fs.s3a.buffer.dir": str(blocker)}), report, buffer_key="fs.s3a.buffer.dir")
    assert ok is False
    errors = [f for f in report.findings if f.severity is Severity.ERROR]
    assert len(errors) == 1
    assert str(blocker) in errors[0].message


def test_int_options_warn_on_garbage():
    report = DiagnosticsReport()
    check_int_options(StoreConfig({"a": "12", "b": "twelve"}), report, ["a", "b", "c"])
    assert report.count(Severity.WARN) == 1
    assert "b" in report.findings[0].message


def test_s3a_validate_runs_rules_in_order(tmp_path: Path):
    descriptor = S3ADescriptor(TargetURI.parse("s3a://mybucket/"))
    report = DiagnosticsReport()
    descriptor.validate(
        StoreConfig({ALG: "SSE-C", "fs.s3a.buffer.dir": str(tmp_path), "fs.s3a.threads.max": "many"}),
        report,
    )
    messages = [f.message for f in report.findings]
    assert messages[0] == "Encryption method: SSE-C"
    assert report.count(Severity.ERROR) == 1
    assert report.count(Severity.WARN) == 1
    assert messages[-1].startswith("Option fs.s3a.threads.max")
