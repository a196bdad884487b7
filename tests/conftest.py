import tempfile
import shutil
from pathlib import Path

import sys

# Allow running tests without installing the package.
sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

import httpx
import pytest
from storediag.runtime.settings import Settings


@pytest.fixture()
def temp_dir():
    d = Path(tempfile.mkdtemp(prefix="storediag_test_"))
    try:
        yield d
    finally:
        shutil.rmtree(d, ignore_errors=True)


@pytest.fixture()
def settings():
    return Settings(
        log_level="INFO",
        probe_timeout=1.0,
        probe_workers=2,
        probe_retries=0,
        mask_sensitive=True,
        plugin_paths=[],
        plugin_strict=True,
    )


def _ok_handler(request: httpx.Request) -> httpx.Response:
    return httpx.Response(403, request=request)


def _refusing_handler(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("connection refused", request=request)


@pytest.fixture()
def reachable_transport():
    return httpx.MockTransport(_ok_handler)


@pytest.fixture()
def unreachable_transport():
    return httpx.MockTransport(_refusing_handler)
