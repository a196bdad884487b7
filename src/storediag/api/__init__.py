"""Public, stable API surface for storediag.

If you're writing connector plugins or embedding storediag in your own
tooling, import from **`storediag.api`**.

Everything outside this package is considered internal and may change without
notice, even in minor releases.
"""

from __future__ import annotations

# Connector contracts
from storediag.connectors import require
from storediag.connectors.base import ConnectorDescriptor, TargetURI
# Pipeline
from storediag.diagnostics import DiagnosticsResult, run_diagnostics
# Common exceptions
from storediag.exception import ConnectorError, FatalIOError, UnknownConnectorError, UsageError
# Registry
from storediag.registry.connectors import create_connector, get_connector, list_connectors, register_connector
# Report
from storediag.report import DiagnosticsReport, Finding, Severity
# Configuration + settings
from storediag.runtime.config import ConfigBuilder, StoreConfig
from storediag.runtime.settings import Settings, load_settings
# Declarations
from storediag.spec import ConfigOption, EndpointSpec, EnvVarOption, env_vars, options
# Reusable rules
from storediag.validation import EncryptionMethod, check_buffer_dir, check_encryption, check_int_options

__all__ = [
    # connectors
    "ConnectorDescriptor",
    "TargetURI",
    "require",
    # pipeline
    "run_diagnostics",
    "DiagnosticsResult",
    # exceptions
    "ConnectorError",
    "FatalIOError",
    "UnknownConnectorError",
    "UsageError",
    # registry
    "register_connector",
    "get_connector",
    "list_connectors",
    "create_connector",
    # report
    "DiagnosticsReport",
    "Finding",
    "Severity",
    # config
    "ConfigBuilder",
    "StoreConfig",
    "Settings",
    "load_settings",
    # spec
    "ConfigOption",
    "EnvVarOption",
    "EndpointSpec",
    "options",
    "env_vars",
    # rules
    "EncryptionMethod",
    "check_encryption",
    "check_buffer_dir",
    "check_int_options",
]
