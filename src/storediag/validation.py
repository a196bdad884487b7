"""Reusable semantic configuration rules.

Connector descriptors compose these rules in their ``validate()``. Each rule
records findings on the report and never raises; rules are independent and
run in the order the descriptor declares them.
"""

from __future__ import annotations

import contextlib
import logging
import os
import tempfile
from enum import Enum
from pathlib import Path
from typing import Iterator, Optional, Sequence

from storediag.diagnostics.options import mask_value
from storediag.report import DiagnosticsReport
from storediag.runtime.config import StoreConfig

log = logging.getLogger("storediag.validation")

HADOOP_TMP_DIR = "hadoop.tmp.dir"


class EncryptionMethod(str, Enum):
    NONE = ""
    SSE_S3 = "AES256"
    SSE_KMS = "SSE-KMS"
    SSE_C = "SSE-C"

    @classmethod
    def parse(cls, text: str) -> "EncryptionMethod":
        """Resolve a configured algorithm name; raises ValueError if unknown."""
        value = (text or "").strip()
        if not value or value.lower() == "none":
            return cls.NONE
        for m in cls:
            if m.value and m.value.lower() == value.lower():
                return m
        raise ValueError(f"Unknown encryption method '{value}'")

    @property
    def label(self) -> str:
        return self.value or "none"


def check_encryption(
    config: StoreConfig,
    report: DiagnosticsReport,
    *,
    algorithm_key: str,
    key_key: str,
    kms_key_prefix: str = "arn:aws:kms:",
) -> Optional[EncryptionMethod]:
    """Validate the encryption method and its companion key.

    - unknown method: ERROR
    - SSE-C without a key: ERROR
    - SSE-KMS without a key: WARN (the default key is used)
    - SSE-KMS key without a full ``arn:aws:kms:`` reference: WARN
    """
    raw = config.get_trimmed(algorithm_key)
    try:
        method = EncryptionMethod.parse(raw)
    except ValueError:
        # the option is sensitive; never echo what was configured
        report.error(f"Unknown encryption method \"{mask_value(raw)}\" in {algorithm_key}")
        return None

    key = config.get_trimmed(key_key)
    report.info(f"Encryption method: {method.label}")
    if method is EncryptionMethod.SSE_C:
        if not key:
            report.error(f"Encryption method {method.label} requires a key in {key_key}")
    elif method is EncryptionMethod.SSE_KMS:
        if not key:
            report.warn(
                f"SSE-KMS is enabled in {algorithm_key} but there is no key set in {key_key}; "
                "the default key will be used and the current user MUST have permissions to use it"
            )
        elif not key.startswith(kms_key_prefix):
            report.warn(f"The SSE-KMS key in {key_key} does not contain a full key reference of {kms_key_prefix}...")
    return method


def resolve_buffer_dir(config: StoreConfig, buffer_key: str) -> tuple[str, str]:
    """Return (option used, directory) with fallback to hadoop.tmp.dir then the system temp dir."""
    for key in (buffer_key, HADOOP_TMP_DIR):
        value = config.get_trimmed(key)
        if value:
            first = [p.strip() for p in value.split(",") if p.strip()]
            if first:
                return key, first[0]
    return "(system temp)", tempfile.gettempdir()


@contextlib.contextmanager
def _probe_file(directory: Path) -> Iterator[Path]:
    directory.mkdir(parents=True, exist_ok=True)
    fd, name = tempfile.mkstemp(prefix="storediag-", suffix=".tmp", dir=str(directory))
    os.close(fd)
    path = Path(name)
    try:
        yield path
    finally:
        path.unlink(missing_ok=True)


def check_buffer_dir(config: StoreConfig, report: DiagnosticsReport, *, buffer_key: str) -> bool:
    """Create and delete a zero-byte file in the buffer directory."""
    option, directory = resolve_buffer_dir(config, buffer_key)
    report.info(f"Buffer configuration option {option} = {directory}")
    try:
        with _probe_file(Path(directory).expanduser()) as p:
            log.debug("created probe file %s", p)
            report.info(f"Temporary files created in {p.parent}")
    except OSError as e:
        report.error(f"Unable to create temporary files in {directory} (from {option}): {e}")
        return False
    return True


def check_int_options(config: StoreConfig, report: DiagnosticsReport, keys: Sequence[str]) -> None:
    for key in keys:
        try:
            config.get_int(key)
        except ValueError:
            report.warn(f"Option {key} is not an integer: \"{config.get(key)}\"")
