from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Protocol, Sequence, runtime_checkable
from urllib.parse import urlsplit, urlunsplit

from storediag.exception import FatalIOError, UsageError
from storediag.report import DiagnosticsReport
from storediag.runtime.config import StoreConfig
from storediag.runtime.settings import Settings
from storediag.spec import ConfigOption, EndpointSpec, EnvVarOption


@dataclass(frozen=True)
class TargetURI:
    """The store URI a diagnostics run targets, e.g. ``s3a://bucket/path``."""

    raw: str
    scheme: str
    bucket: str
    path: str
    # user info was present in the given URI and has been dropped from raw
    had_credentials: bool = False

    @classmethod
    def parse(cls, raw: str) -> "TargetURI":
        text = (raw or "").strip()
        if not text:
            raise UsageError("No filesystem URI given")
        try:
            parts = urlsplit(text)
        except ValueError as e:
            raise FatalIOError(f"Invalid URI {text}: {e}") from e
        scheme = (parts.scheme or "file").lower()
        userinfo, _, hostport = parts.netloc.rpartition("@")
        if userinfo:
            text = urlunsplit((parts.scheme, hostport, parts.path, parts.query, parts.fragment))
        # the bucket is the host alone, as in s3a://bucket:port/
        bucket = hostport.partition(":")[0]
        if scheme != "file" and not bucket:
            raise FatalIOError(f"URI {text} has no bucket/host component")
        return cls(raw=text, scheme=scheme, bucket=bucket, path=parts.path or "/", had_credentials=bool(userinfo))


@runtime_checkable
class ConnectorDescriptor(Protocol):
    """
    Public connector diagnostics contract.

    One descriptor describes one storage connector: which options matter and
    how to redact them, which modules must be importable, which endpoints must
    be reachable, and which semantic rules the configuration must satisfy.

    Descriptors should:
      - be constructed once per run from the target URI
      - never mutate the configuration snapshot (return a new one instead)
      - record problems on the report rather than raise
    """

    name: str
    description: str
    homepage: str
    schemes: tuple[str, ...]
    uri: TargetURI

    def list_options(self) -> Sequence[ConfigOption]: ...

    def list_env_vars(self) -> Sequence[EnvVarOption]: ...

    def list_required_classes(self, config: StoreConfig) -> Sequence[str]: ...

    def list_optional_classes(self, config: StoreConfig) -> Sequence[str]: ...

    def supports_bucket_option_propagation(self) -> bool: ...

    def patch_config(self, config: StoreConfig, report: DiagnosticsReport) -> StoreConfig: ...

    def resolve_mandatory_endpoints(self, config: StoreConfig) -> List[EndpointSpec]: ...

    def resolve_optional_endpoints(self, config: StoreConfig) -> List[EndpointSpec]: ...

    def validate(self, config: StoreConfig, report: DiagnosticsReport) -> None: ...

    def connect(self, config: StoreConfig, settings: Settings) -> Any: ...

    def smoke_test(self, filesystem: Any, report: DiagnosticsReport) -> None: ...

    def post_connect_check(self, filesystem: Any, config: StoreConfig, report: DiagnosticsReport) -> None: ...
