from __future__ import annotations

from pathlib import Path

import pytest

from storediag.runtime.config_files import find_resource, read_config_file


def test_yaml_nesting_flattens_with_dots(tmp_path: Path):
    p = tmp_path / "c.yaml"
    p.write_text("fs:\n  s3a:\n    endpoint: minio\n    ssl: false\n    dirs: [a, b]\n    empty:\n", encoding="utf-8")
    assert read_config_file(p) == {"fs.s3a.endpoint": "minio", "fs.s3a.ssl": "false", "fs.s3a.dirs": "a,b"}


def test_properties_skip_comments_and_junk(tmp_path: Path):
    p = tmp_path / "c.env"
    p.write_text('# c\n\nnot a pair\nA = "x"\nB=y=z\n', encoding="utf-8")
    assert read_config_file(p) == {"A": "x", "B": "y=z"}


def test_non_mapping_document_is_rejected(tmp_path: Path):
    p = tmp_path / "c.json"
    p.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(TypeError):
        read_config_file(p)


def test_unsupported_suffix(tmp_path: Path):
    p = tmp_path / "c.toml"
    p.write_text("a = 1", encoding="utf-8")
    with pytest.raises(ValueError):
        read_config_file(p)


def test_find_resource_prefers_xml(tmp_path: Path):
    (tmp_path / "core-site.yaml").write_text("a: 1\n", encoding="utf-8")
    assert find_resource(tmp_path, "core-site") == tmp_path / "core-site.yaml"
    (tmp_path / "core-site.xml").write_text("<configuration/>", encoding="utf-8")
    assert find_resource(tmp_path, "core-site") == tmp_path / "core-site.xml"
    assert find_resource(tmp_path, "yarn-site") is None
