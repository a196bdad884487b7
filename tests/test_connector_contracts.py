from __future__ import annotations

import pytest

from storediag.connectors.base import ConnectorDescriptor, TargetURI
from storediag.registry.connectors import REGISTRY
from storediag.runtime.config import StoreConfig

BUILTIN = {"s3a": "s3a://bucket/", "s3": "s3://bucket/", "s3n": "s3n://bucket/", "file": "file:///tmp"}


@pytest.mark.contract
@pytest.mark.parametrize("scheme,uri", sorted(BUILTIN.items()))
def test_builtin_descriptor_contract(scheme, uri):
    descriptor = REGISTRY.create(uri)
    assert isinstance(descriptor, ConnectorDescriptor)
    assert descriptor.name and descriptor.description and descriptor.homepage
    assert scheme in descriptor.schemes

    first = [o.key for o in descriptor.list_options()]
    assert first, "option catalog must not be empty"
    assert first == [o.key for o in descriptor.list_options()]
    assert len(first) == len(set(first))

    cfg = StoreConfig()
    assert list(descriptor.list_required_classes(cfg))
    assert isinstance(descriptor.supports_bucket_option_propagation(), bool)
    assert isinstance(descriptor.resolve_mandatory_endpoints(cfg), list)
    assert isinstance(descriptor.resolve_optional_endpoints(cfg), list)


@pytest.mark.contract
def test_always_redacted_options_are_sensitive():
    for scheme in ("s3a", "file"):
        descriptor = REGISTRY.create(BUILTIN[scheme])
        for opt in descriptor.list_options():
            if opt.always_redact:
                assert opt.sensitive, opt.key


def test_s3_aliases_share_descriptor():
    assert REGISTRY.get("s3") is REGISTRY.get("s3a") is REGISTRY.get("S3N")


@pytest.mark.parametrize("raw", ["", "   "])
def test_empty_uri_is_usage_error(raw):
    from storediag.exception import UsageError

    with pytest.raises(UsageError):
        TargetURI.parse(raw)


def test_uri_without_bucket_is_fatal():
    from storediag.exception import FatalIOError

    with pytest.raises(FatalIOError):
        TargetURI.parse("s3a:///path")


def test_uri_parts():
    t = TargetURI.parse("S3A://Bucket-1/a/b")
    assert (t.scheme, t.bucket, t.path) == ("s3a", "Bucket-1", "/a/b")
    assert TargetURI.parse("/just/a/path").scheme == "file"


def test_require_resolves_module_and_attribute():
    from storediag.connectors import require

    assert require("json").dumps is require("json:dumps")


def test_require_names_distribution_to_install():
    from storediag.connectors import install_hint, require
    from storediag.exception import ConnectorError

    assert install_hint("botocore.config") == "pip install boto3"
    with pytest.raises(ConnectorError, match="pip install storediag_absent_sdk"):
        require("storediag_absent_sdk.client")
    with pytest.raises(ConnectorError, match="no attribute Nope"):
        require("json:Nope")
