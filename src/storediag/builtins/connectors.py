from __future__ import annotations

import logging
from typing import Any, Dict, List, Sequence, Tuple

from storediag.connectors import require
from storediag.connectors.base import TargetURI
from storediag.registry.connectors import register_connector
from storediag.report import DiagnosticsReport
from storediag.runtime.config import StoreConfig, propagate_bucket_options
from storediag.runtime.settings import Settings
from storediag.spec import ConfigOption, EndpointSpec, EnvVarOption, env_vars, options
from storediag.validation import HADOOP_TMP_DIR, check_buffer_dir, check_encryption, check_int_options

log = logging.getLogger("storediag.builtins.connectors")

# Entries shown by the smoke test listing.
LIST_LIMIT = 10


def _strip_scheme(endpoint: str) -> str:
    """``https://host:9000/`` -> ``host:9000``."""
    if "://" in endpoint:
        endpoint = endpoint.split("://", 1)[1]
    return endpoint.rstrip("/")


def _class_name(obj: Any) -> str:
    cls = type(obj)
    return f"{cls.__module__}.{cls.__qualname__}"


class _Base:
    """Small concrete base for built-in descriptors (keeps defaults consistent)."""

    name = ""
    description = ""
    homepage = ""
    # filled in by the registry decorator
    schemes: Tuple[str, ...] = ()
    # fully qualified class of the expected live filesystem
    filesystem_class = ""

    OPTIONS: Tuple[ConfigOption, ...] = ()
    ENV_VARS: Tuple[EnvVarOption, ...] = ()
    REQUIRED_CLASSES: Tuple[str, ...] = ()
    OPTIONAL_CLASSES: Tuple[str, ...] = ()

    def __init__(self, uri: TargetURI):
        self.uri = uri

    def list_options(self) -> Sequence[ConfigOption]:
        return self.OPTIONS

    def list_env_vars(self) -> Sequence[EnvVarOption]:
        return self.ENV_VARS

    def list_required_classes(self, config: StoreConfig) -> Sequence[str]:
        return self.REQUIRED_CLASSES

    def list_optional_classes(self, config: StoreConfig) -> Sequence[str]:
        return self.OPTIONAL_CLASSES

    def supports_bucket_option_propagation(self) -> bool:
        return False

    def patch_config(self, config: StoreConfig, report: DiagnosticsReport) -> StoreConfig:
        return config

    def resolve_mandatory_endpoints(self, config: StoreConfig) -> List[EndpointSpec]:
        return []

    def resolve_optional_endpoints(self, config: StoreConfig) -> List[EndpointSpec]:
        return []

    def validate(self, config: StoreConfig, report: DiagnosticsReport) -> None:
        return None

    def fs_path(self) -> str:
        return self.uri.path

    def smoke_test(self, filesystem: Any, report: DiagnosticsReport) -> None:
        path = self.fs_path()
        entries = sorted(str(e) for e in filesystem.ls(path, detail=False))
        report.info(f"Listing {self.uri.raw}: {len(entries)} entries")
        for e in entries[:LIST_LIMIT]:
            report.info(f"  {e}")
        if len(entries) > LIST_LIMIT:
            report.info(f"  ... ({len(entries) - LIST_LIMIT} more)")

    def post_connect_check(self, filesystem: Any, config: StoreConfig, report: DiagnosticsReport) -> None:
        actual = _class_name(filesystem)
        report.info(f"Filesystem implementation: {actual}")
        if self.filesystem_class and actual != self.filesystem_class:
            report.warn(f"The filesystem class {actual} is not the expected {self.filesystem_class}")


ASSUMED_ROLE_STS_ENDPOINT = "fs.s3a.assumed.role.sts.endpoint"
ENDPOINT = "fs.s3a.endpoint"
ENDPOINT_REGION = "fs.s3a.endpoint.region"
PATH_STYLE_ACCESS = "fs.s3a.path.style.access"
SECURE_CONNECTIONS = "fs.s3a.connection.ssl.enabled"
SERVER_SIDE_ENCRYPTION_ALGORITHM = "fs.s3a.server-side-encryption-algorithm"
SERVER_SIDE_ENCRYPTION_KEY = "fs.s3a.server-side-encryption.key"
BUFFER_DIR = "fs.s3a.buffer.dir"
ACCESS_KEY = "fs.s3a.access.key"
SECRET_KEY = "fs.s3a.secret.key"
SESSION_TOKEN = "fs.s3a.session.token"
CREDENTIALS_PROVIDER = "fs.s3a.aws.credentials.provider"

DEFAULT_ENDPOINT = "s3.amazonaws.com"
EC2_METADATA_URI = "http://169.254.169.254"
ANONYMOUS_PROVIDER = "org.apache.hadoop.fs.s3a.AnonymousAWSCredentialsProvider"


@register_connector("s3a", "s3", "s3n")
class S3ADescriptor(_Base):
    """
    S3 and S3-compatible object stores.

    Configuration uses the fs.s3a.* vocabulary; the live connection is made
    through fsspec/s3fs and account lookups through boto3.
    """

    name = "S3A FileSystem connector"
    description = "Filesystem connector to Amazon S3 Storage and compatible stores"
    homepage = "https://hadoop.apache.org/docs/current/hadoop-aws/tools/hadoop-aws/index.html"
    filesystem_class = "s3fs.core.S3FileSystem"

    OPTIONS = options(
        (ACCESS_KEY, True, False),
        (SECRET_KEY, True, True),
        (SESSION_TOKEN, True, True),
        (SERVER_SIDE_ENCRYPTION_ALGORITHM, True, False),
        (SERVER_SIDE_ENCRYPTION_KEY, True, True),
        (CREDENTIALS_PROVIDER, False, False),
        (ENDPOINT, False, False),
        (ENDPOINT_REGION, False, False),
        (PATH_STYLE_ACCESS, False, False),
        ("fs.s3a.proxy.host", False, False),
        ("fs.s3a.proxy.port", False, False),
        ("fs.s3a.proxy.username", False, False),
        ("fs.s3a.proxy.password", True, True),
        ("fs.s3a.proxy.domain", False, False),
        ("fs.s3a.proxy.workstation", False, False),
        (SECURE_CONNECTIONS, False, False),
        ("fs.s3a.connection.maximum", False, False),
        ("fs.s3a.multipart.size", False, False),
        (BUFFER_DIR, False, False),
        ("fs.s3a.block.size", False, False),
        ("fs.s3a.signing-algorithm", False, False),
        ("fs.s3a.fast.upload.buffer", False, False),
        ("fs.s3a.fast.upload.active.blocks", False, False),
        ("fs.s3a.experimental.input.fadvise", False, False),
        ("fs.s3a.user.agent.prefix", False, False),
        ("fs.s3a.threads.max", False, False),
        ("fs.s3a.threads.keepalivetime", False, False),
        ("fs.s3a.max.total.tasks", False, False),
        # assumed role
        ("fs.s3a.assumed.role.arn", False, False),
        (ASSUMED_ROLE_STS_ENDPOINT, False, False),
        ("fs.s3a.assumed.role.sts.endpoint.region", False, False),
        ("fs.s3a.assumed.role.session.name", False, False),
        ("fs.s3a.assumed.role.session.duration", False, False),
        ("fs.s3a.assumed.role.credentials.provider", False, False),
        ("fs.s3a.assumed.role.policy", False, False),
        # committer
        ("fs.s3a.committer.magic.enabled", False, False),
        ("fs.s3a.committer.staging.tmp.path", False, False),
        ("fs.s3a.committer.threads", False, False),
        ("fs.s3a.committer.name", False, False),
        ("fs.s3a.committer.staging.conflict-mode", False, False),
        # misc
        ("fs.s3a.etag.checksum.enabled", False, False),
        ("fs.s3a.retry.interval", False, False),
        ("fs.s3a.retry.throttle.limit", False, False),
        ("fs.s3a.retry.throttle.interval", False, False),
        ("fs.s3a.attempts.maximum", False, False),
        ("fs.s3a.delegation.token.binding", False, False),
    )

    ENV_VARS = env_vars(
        ("AWS_ACCESS_KEY_ID", False),
        ("AWS_SECRET_ACCESS_KEY", True),
        ("AWS_SESSION_TOKEN", True),
        ("AWS_PROFILE", False),
        ("AWS_REGION", False),
        ("AWS_DEFAULT_REGION", False),
        ("AWS_ENDPOINT_URL", False),
    )

    REQUIRED_CLASSES = (
        "fsspec",
        "s3fs:S3FileSystem",
        "boto3",
        "botocore.config:Config",
    )

    OPTIONAL_CLASSES = (
        # async client used by s3fs
        "aiobotocore.session:AioSession",
        # multipart transfers
        "s3transfer.manager:TransferManager",
        "boto3.s3.transfer:TransferConfig",
        # CRT transfer client, needed for the faster upload path
        "awscrt",
        # assumed role / STS
        "botocore.credentials:AssumeRoleProvider",
        # arrow-native access
        "pyarrow.fs:S3FileSystem",
    )

    INT_OPTIONS = ("fs.s3a.connection.maximum", "fs.s3a.threads.max", "fs.s3a.attempts.maximum")

    @property
    def bucket(self) -> str:
        return self.uri.bucket

    def supports_bucket_option_propagation(self) -> bool:
        return True

    def patch_config(self, config: StoreConfig, report: DiagnosticsReport) -> StoreConfig:
        patched, keys = propagate_bucket_options(config, self.bucket, prefix="fs.s3a.")
        for k in keys:
            report.info(f"Propagating bucket option fs.s3a.bucket.{self.bucket}.{k[len('fs.s3a.'):]} to {k}")
        return patched

    def resolve_mandatory_endpoints(self, config: StoreConfig) -> List[EndpointSpec]:
        """Determine the S3 endpoints if set (or default)."""
        explicit = config.get_trimmed(ENDPOINT)
        endpoint = _strip_scheme(explicit) if explicit else DEFAULT_ENDPOINT
        source = ENDPOINT if explicit else "default"
        bucket = self.bucket
        if "." in bucket:
            log.info("URI appears to be FQDN; using as endpoint")
            fqdn = bucket
            source = "bucket name"
        else:
            fqdn = f"{bucket}.{endpoint}"
        path_style = config.get_bool(PATH_STYLE_ACCESS, False)
        scheme = "https" if config.get_bool(SECURE_CONNECTIONS, True) else "http"
        if path_style:
            log.info("Enabling path style access")
            bucket_uri = f"{scheme}://{endpoint}/{bucket}"
        else:
            bucket_uri = f"{scheme}://{fqdn}/"
        endpoints = [EndpointSpec(label="Bucket URI", uri=bucket_uri, source=source)]
        # If the STS endpoint is set, work out the URI
        sts = config.get_trimmed(ASSUMED_ROLE_STS_ENDPOINT)
        if sts:
            endpoints.append(
                EndpointSpec(label=ASSUMED_ROLE_STS_ENDPOINT, uri=f"https://{_strip_scheme(sts)}/", source=ASSUMED_ROLE_STS_ENDPOINT)
            )
        return endpoints

    def resolve_optional_endpoints(self, config: StoreConfig) -> List[EndpointSpec]:
        return [EndpointSpec(label="EC2 instance metadata service", uri=EC2_METADATA_URI, source="default")]

    def validate(self, config: StoreConfig, report: DiagnosticsReport) -> None:
        check_encryption(
            config,
            report,
            algorithm_key=SERVER_SIDE_ENCRYPTION_ALGORITHM,
            key_key=SERVER_SIDE_ENCRYPTION_KEY,
        )
        check_buffer_dir(config, report, buffer_key=BUFFER_DIR)
        check_int_options(config, report, self.INT_OPTIONS)

    # ---- live connection ----

    def storage_options(self, config: StoreConfig, settings: Settings) -> Dict[str, Any]:
        """Translate fs.s3a.* options into s3fs keyword arguments."""
        opts: Dict[str, Any] = {}
        if ANONYMOUS_PROVIDER in config.get_trimmed(CREDENTIALS_PROVIDER):
            opts["anon"] = True
        else:
            for key, arg in ((ACCESS_KEY, "key"), (SECRET_KEY, "secret"), (SESSION_TOKEN, "token")):
                value = config.get_trimmed(key)
                if value:
                    opts[arg] = value
        secure = config.get_bool(SECURE_CONNECTIONS, True)
        opts["use_ssl"] = secure
        client_kwargs: Dict[str, Any] = {}
        endpoint = config.get_trimmed(ENDPOINT)
        if endpoint:
            client_kwargs["endpoint_url"] = f"{'https' if secure else 'http'}://{_strip_scheme(endpoint)}"
        region = config.get_trimmed(ENDPOINT_REGION)
        if region:
            client_kwargs["region_name"] = region
        if client_kwargs:
            opts["client_kwargs"] = client_kwargs
        config_kwargs: Dict[str, Any] = {
            "connect_timeout": settings.probe_timeout,
            "read_timeout": settings.probe_timeout,
        }
        if config.get_bool(PATH_STYLE_ACCESS, False):
            config_kwargs["s3"] = {"addressing_style": "path"}
        opts["config_kwargs"] = config_kwargs
        return opts

    def connect(self, config: StoreConfig, settings: Settings) -> Any:
        fsspec = require("fsspec")
        require("s3fs")
        return fsspec.filesystem("s3", skip_instance_cache=True, **self.storage_options(config, settings))

    def fs_path(self) -> str:
        return f"{self.bucket}{self.uri.path}"

    def s3_client(self, config: StoreConfig, settings: Settings | None = None):
        """boto3 S3 client built from the same options as the filesystem."""
        boto3 = require("boto3")
        Config = require("botocore.config:Config")
        opts = self.storage_options(config, settings or Settings())
        kwargs: Dict[str, Any] = dict(opts.get("client_kwargs") or {})
        if opts.get("anon"):
            UNSIGNED = require("botocore:UNSIGNED")
            cfg = Config(signature_version=UNSIGNED, **opts["config_kwargs"])
        else:
            cfg = Config(**opts["config_kwargs"])
            kwargs.update(
                aws_access_key_id=opts.get("key"),
                aws_secret_access_key=opts.get("secret"),
                aws_session_token=opts.get("token"),
            )
        return boto3.client("s3", use_ssl=opts["use_ssl"], config=cfg, **kwargs)

    def post_connect_check(self, filesystem: Any, config: StoreConfig, report: DiagnosticsReport) -> None:
        super().post_connect_check(filesystem, config, report)
        try:
            owner = self.s3_client(config).list_buckets().get("Owner") or {}
        except Exception as e:
            log.warning("account lookup failed; continuing", exc_info=True)
            report.warn(f"Unable to look up the account owner: {e}")
            return
        report.info(f"Bucket owner is {owner.get('DisplayName') or '(unknown)'} (ID={owner.get('ID') or '(unknown)'})")

    def bucket_state(self, config: StoreConfig, settings: Settings, report: DiagnosticsReport) -> None:
        """Print the bucket owner and the bucket policy."""
        ClientError = require("botocore.exceptions:ClientError")
        client = self.s3_client(config, settings)
        owner = client.list_buckets().get("Owner") or {}
        report.info(f"Bucket owner is {owner.get('DisplayName') or '(unknown)'} (ID={owner.get('ID') or '(unknown)'})")
        try:
            policy = client.get_bucket_policy(Bucket=self.bucket).get("Policy")
        except ClientError as e:
            if (e.response.get("Error") or {}).get("Code") != "NoSuchBucketPolicy":
                raise
            policy = None
        report.info("Bucket policy:")
        report.info(policy if policy else "NONE")


@register_connector("file")
class LocalDescriptor(_Base):
    """Local filesystem; useful to check the buffer/tmp configuration on a host."""

    name = "Local filesystem"
    description = "Local filesystem access through fsspec"
    homepage = "https://filesystem-spec.readthedocs.io/"
    filesystem_class = "fsspec.implementations.local.LocalFileSystem"

    OPTIONS = options(
        ("fs.defaultFS", False, False),
        (HADOOP_TMP_DIR, False, False),
        ("fs.file.impl", False, False),
        ("io.file.buffer.size", False, False),
    )

    REQUIRED_CLASSES = (
        "fsspec",
        "fsspec.implementations.local:LocalFileSystem",
    )

    def validate(self, config: StoreConfig, report: DiagnosticsReport) -> None:
        check_buffer_dir(config, report, buffer_key=HADOOP_TMP_DIR)
        check_int_options(config, report, ("io.file.buffer.size",))

    def connect(self, config: StoreConfig, settings: Settings) -> Any:
        fsspec = require("fsspec")
        return fsspec.filesystem("file")
