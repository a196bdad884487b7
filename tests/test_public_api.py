import storediag
import storediag.api as api


def test_public_api_exports_exist():
    for name in api.__all__:
        assert hasattr(api, name), name


def test_importing_package_registers_builtins():
    assert {"file", "s3", "s3a", "s3n"} <= set(api.list_connectors())
    assert storediag.run_diagnostics is api.run_diagnostics
