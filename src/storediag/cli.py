import argparse
import json
import logging
import sys

from storediag.diagnostics import run_diagnostics
from storediag.exception import E_DIAGNOSTICS_FAILED, E_SUCCESS, StoreDiagError, UsageError
from storediag.observability import ensure_logging
from storediag.plugins import load_all_plugins
from storediag.registry.connectors import REGISTRY, create_connector
from storediag.report import DiagnosticsReport
from storediag.runtime.config import ConfigBuilder
from storediag.runtime.settings import load_settings

log = logging.getLogger("storediag.cli")


class _Parser(argparse.ArgumentParser):
    def error(self, message):
        raise UsageError(f"{self.prog}: {message}\n{self.format_usage()}")


def _add_config_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("-D", dest="defines", action="append", default=[], metavar="key=value", help="Define a property")
    p.add_argument("--conf", dest="conf_files", action="append", default=[], metavar="FILE",
                   help="Configuration file to load (xml, yaml, json, properties)")
    p.add_argument("--conf-dir", default=None, help="Directory holding the default site files (defaults to STOREDIAG_CONF_DIR)")
    p.add_argument("--timeout", type=float, default=None, help="Endpoint probe timeout in seconds")
    p.add_argument("-v", "--verbose", action="store_true", help="Verbose logging to stderr")
    p.add_argument("uri", help="Filesystem URI, e.g. s3a://bucket/path")


def _build_config(args, settings):
    builder = ConfigBuilder(conf_dir=args.conf_dir or settings.conf_dir)
    for f in args.conf_files:
        builder.add_file(f)
    for d in args.defines:
        builder.define(d)
    return builder.build()


def _settings_for(args):
    overrides = {}
    if getattr(args, "timeout", None) is not None:
        if args.timeout <= 0:
            raise UsageError("--timeout must be positive")
        overrides["probe_timeout"] = args.timeout
    if getattr(args, "show_sensitive", False):
        overrides["mask_sensitive"] = False
    if getattr(args, "verbose", False):
        overrides["log_level"] = "DEBUG"
    settings = load_settings(overrides)
    ensure_logging(settings)
    load_all_plugins(settings=settings)
    return settings


def _run(argv) -> int:
    parser = _Parser(prog="storediag", description="Storage connector diagnostics")
    sp = parser.add_subparsers(dest="cmd", required=True)

    storep = sp.add_parser("store", help="Diagnose the connector configuration for a filesystem URI")
    _add_config_args(storep)
    storep.add_argument("--no-connect", action="store_true", help="Skip the live connection and smoke test")
    storep.add_argument("--show-sensitive", action="store_true", help="Print sensitive options unmasked")
    storep.add_argument("--json", action="store_true", help="Output machine-readable JSON")

    listp = sp.add_parser("connectors", help="List the registered connectors")
    listp.add_argument("--json", action="store_true", help="Output machine-readable JSON")

    bucketp = sp.add_parser("bucket-state", help="Print the owner and policy of a bucket")
    _add_config_args(bucketp)

    args = parser.parse_args(argv)

    if args.cmd == "store":
        settings = _settings_for(args)
        config = _build_config(args, settings)
        result = run_diagnostics(args.uri, config, settings=settings, connect=not args.no_connect)
        if args.json:
            payload = {"uri": args.uri, "connector": result.descriptor.name, **result.report.as_dict()}
            print(json.dumps(payload, ensure_ascii=False))
        else:
            sys.stdout.write(result.report.render())
            print("\nFAILED" if result.report.has_errors() else "\nOK")
        return result.exit_code

    if args.cmd == "connectors":
        settings = _settings_for(args)
        out = []
        for scheme in REGISTRY.list():
            cls = REGISTRY.get(scheme)
            out.append({"scheme": scheme, "name": cls.name, "description": cls.description})
        if args.json:
            print(json.dumps(out, ensure_ascii=False))
        else:
            for it in out:
                print(f"{it['scheme']}: {it['name']} - {it['description']}")
        return E_SUCCESS

    if args.cmd == "bucket-state":
        settings = _settings_for(args)
        config = _build_config(args, settings)
        descriptor = create_connector(args.uri)
        if not hasattr(descriptor, "bucket_state"):
            raise UsageError(f"Connector {descriptor.name} does not support bucket-state")
        config = descriptor.patch_config(config, DiagnosticsReport())
        report = DiagnosticsReport()
        report.heading(f"Bucket state of {descriptor.uri.raw}")
        try:
            descriptor.bucket_state(config, settings, report)
        except Exception as e:
            log.debug("bucket-state failed", exc_info=True)
            report.error(f"{type(e).__name__}: {e}")
        sys.stdout.write(report.render())
        return E_DIAGNOSTICS_FAILED if report.has_errors() else E_SUCCESS

    return 1


def main(argv=None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    try:
        return _run(argv)
    except StoreDiagError as e:
        print(str(e), file=sys.stderr)
        return e.exit_code


if __name__ == "__main__":
    raise SystemExit(main())
