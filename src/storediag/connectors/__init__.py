from __future__ import annotations

import importlib
from typing import Any

from storediag.exception import ConnectorError

# import name -> distribution to install, where they differ
DISTRIBUTIONS = {
    "botocore": "boto3",
    "aiobotocore": "s3fs",
    "yaml": "pyyaml",
}


def install_hint(module_name: str) -> str:
    top = module_name.split(".", 1)[0]
    return f"pip install {DISTRIBUTIONS.get(top, top)}"


def require(target: str) -> Any:
    """Import a store SDK lazily for a live connection.

    ``"s3fs"`` returns the module, ``"botocore.config:Config"`` the attribute.
    Raises ConnectorError naming the distribution to install.
    """
    module_name, _, attr = target.partition(":")
    try:
        mod = importlib.import_module(module_name)
    except ImportError as e:
        raise ConnectorError(f"Module {module_name} is required to connect to this store ({install_hint(module_name)})") from e
    if not attr:
        return mod
    try:
        return getattr(mod, attr)
    except AttributeError as e:
        raise ConnectorError(f"{module_name} has no attribute {attr}; the installed version is not supported") from e
