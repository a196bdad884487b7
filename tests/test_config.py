from __future__ import annotations

from pathlib import Path

import pytest

from storediag.exception import FatalIOError, UsageError
from storediag.runtime.config import ConfigBuilder, StoreConfig, propagate_bucket_options, split_define


def _write(p: Path, txt: str) -> Path:
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(txt, encoding="utf-8")
    return p


def test_default_resources_merge_in_documented_order(tmp_path: Path):
    conf = tmp_path / "conf"
    _write(
        conf / "core-site.xml",
        """<?xml version="1.0"?>
<configuration>
  <property><name>fs.s3a.endpoint</name><value> s3.eu-west-2.amazonaws.com </value></property>
  <property><name>fs.s3a.path.style.access</name><value>false</value></property>
</configuration>
""",
    )
    # later resource wins
    _write(conf / "hdfs-site.yaml", "fs:\n  s3a:\n    path.style.access: true\n")

    cfg = ConfigBuilder(conf_dir=conf).build()
    assert cfg.get_trimmed("fs.s3a.endpoint") == "s3.eu-west-2.amazonaws.com"
    assert cfg.get_bool("fs.s3a.path.style.access") is True
    assert cfg.source_of("fs.s3a.path.style.access").endswith("hdfs-site.yaml")


def test_files_then_defines_override(tmp_path: Path):
    js = _write(tmp_path / "a.json", '{"fs.s3a.threads.max": 10, "fs.s3a.endpoint": "a"}')
    props = _write(tmp_path / "b.properties", "# comment\nfs.s3a.endpoint = 'b'\n")

    cfg = (
        ConfigBuilder()
        .add_file(js)
        .add_file(props)
        .define("fs.s3a.threads.max=20")
        .define("fs.s3a.path.style.access")
        .build()
    )
    assert cfg["fs.s3a.endpoint"] == "b"
    assert cfg.get_int("fs.s3a.threads.max") == 20
    assert cfg.get_bool("fs.s3a.path.style.access") is True
    assert cfg.source_of("fs.s3a.threads.max") == "-D"
    # insertion order is kept
    assert list(cfg) == ["fs.s3a.threads.max", "fs.s3a.endpoint", "fs.s3a.path.style.access"]


def test_missing_file_is_fatal(tmp_path: Path):
    with pytest.raises(FatalIOError):
        ConfigBuilder().add_file(tmp_path / "nope.xml")


def test_unparseable_file_is_fatal(tmp_path: Path):
    bad = _write(tmp_path / "bad.yaml", "a: [unclosed\n")
    with pytest.raises(FatalIOError):
        ConfigBuilder().add_file(bad).build()


def test_split_define():
    assert split_define("a=b=c") == ("a", "b=c")
    assert split_define("flag") == ("flag", "true")
    with pytest.raises(UsageError):
        split_define("=x")


def test_typed_accessors_defaults():
    cfg = StoreConfig({"b": "maybe", "s": "   ", "n": "x"})
    assert cfg.get_bool("b", True) is True
    assert cfg.get_bool("missing", False) is False
    assert cfg.get_trimmed("s", "dflt") == "dflt"
    assert cfg.get_int("missing", 3) == 3
    with pytest.raises(ValueError):
        cfg.get_int("n")


def test_bucket_options_propagate_without_mutating():
    cfg = StoreConfig(
        {
            "fs.s3a.endpoint": "s3.amazonaws.com",
            "fs.s3a.bucket.logs.endpoint": "minio:9000",
            "fs.s3a.bucket.logs.bucket.other.x": "ignored",
            "fs.s3a.bucket.other.endpoint": "elsewhere",
        }
    )
    patched, keys = propagate_bucket_options(cfg, "logs", prefix="fs.s3a.")
    assert keys == ["fs.s3a.endpoint"]
    assert patched["fs.s3a.endpoint"] == "minio:9000"
    assert patched.source_of("fs.s3a.endpoint") == "bucket logs"
    assert cfg["fs.s3a.endpoint"] == "s3.amazonaws.com"
    assert "fs.s3a.x" not in patched


def test_builder_records_loaded_files_and_explicit_sets(tmp_path: Path):
    conf = tmp_path / "conf"
    _write(conf / "core-site.properties", "fs.defaultFS=s3a://data\n")
    builder = ConfigBuilder(conf_dir=conf).set("fs.defaultFS", "file:///")

    cfg = builder.build()

    assert builder.loaded == [str(conf / "core-site.properties")]
    assert cfg["fs.defaultFS"] == "file:///"


def test_missing_conf_dir_is_not_fatal(tmp_path: Path):
    assert len(ConfigBuilder(conf_dir=tmp_path / "absent").build()) == 0
