"""CLI interface for snort_perfmon."""

from __future__ import annotations

import argparse
import json
import logging
import signal
import sys
import time

from . import __version__
from .config import SnortPerfmonConfig, load_config


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def _load(args: argparse.Namespace) -> SnortPerfmonConfig:
    cfg = load_config(args.config)
    _setup_logging(args.log_level or cfg.log_level)
    return cfg


def _cmd_run(args: argparse.Namespace) -> None:
    """Poll every configured instance until interrupted."""
    cfg = _load(args)

    from .collector.engine import SubmissionEngine
    from .collector.manager import ThreadedScheduler
    from .exporter.local import LocalExporter
    from .plugin import SnortPlugin

    exporters = []

    if cfg.local_exporter.enabled:
        exporters.append(LocalExporter(cfg.local_exporter))

    if cfg.mode == "online":
        from .exporter.otel import OtelExporter
        exporters.append(OtelExporter(cfg.otel))

    engine = SubmissionEngine(hostname=cfg.hostname or None)
    for exp in exporters:
        engine.add_sink(exp.submit)

    scheduler = ThreadedScheduler()
    plugin = SnortPlugin(scheduler, engine)
    plugin.configure(cfg.snort)
    plugin.init()

    if not len(plugin.registry):
        print("No instances configured, nothing to do.", file=sys.stderr)
        plugin.shutdown()
        for exp in exporters:
            exp.shutdown()
        sys.exit(1)

    stop = False

    def _handle_signal(_sig: int, _frame: object) -> None:
        nonlocal stop
        stop = True

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    scheduler.start()
    print(f"snort-perfmon running (mode={cfg.mode}, instances={len(plugin.registry)})")
    print("Press Ctrl+C to stop.\n")
    try:
        while not stop:
            time.sleep(0.5)
    finally:
        plugin.shutdown()
        for exp in exporters:
            exp.shutdown()
    print("\nCollection stopped.")


def _cmd_poll(args: argparse.Namespace) -> None:
    """Poll every configured instance once and print the samples."""
    cfg = _load(args)

    from .collector.engine import SubmissionEngine
    from .collector.manager import ManualScheduler
    from .plugin import SnortPlugin

    engine = SubmissionEngine(hostname=cfg.hostname or None)
    engine.add_sink(lambda sample: print(json.dumps(sample.to_dict())))

    scheduler = ManualScheduler()
    plugin = SnortPlugin(scheduler, engine)
    plugin.configure(cfg.snort)
    plugin.init()
    try:
        results = scheduler.tick()
    finally:
        plugin.shutdown()

    if not results or not all(results.values()):
        sys.exit(1)


def _cmd_last_row(args: argparse.Namespace) -> None:
    """Print the fields of the last data row of a perfmon file."""
    _setup_logging(args.log_level or "WARNING")

    from .collector.perfmon import read_last_row
    from .errors import SnortPerfmonError

    try:
        fields = read_last_row(args.path)
    except SnortPerfmonError as exc:
        print(f"error: {exc}", file=sys.stderr)
        sys.exit(1)

    for idx, value in enumerate(fields):
        print(f"{idx:4d}  {value}")


def _cmd_check(args: argparse.Namespace) -> None:
    """Load the configuration and list what was accepted."""
    cfg = _load(args)

    from .collector.manager import ManualScheduler
    from .plugin import SnortPlugin

    plugin = SnortPlugin(ManualScheduler())
    plugin.configure(cfg.snort)
    plugin.init()

    print(f"Metrics ({len(plugin.catalog)}):")
    for metric in plugin.catalog:
        print(f"  {metric.name:<24} index={metric.index:<4} {metric.ds_type.name:<8} {metric.type_instance}")
    print(f"Instances ({len(plugin.registry)}):")
    for instance in plugin.registry:
        names = ", ".join(m.name for m in instance.metrics)
        print(f"  {instance.name:<24} every {instance.interval:g}s  {instance.path}  [{names}]")

    ok = len(plugin.registry) > 0
    plugin.shutdown()
    if not ok:
        sys.exit(1)


def _cmd_version(_args: argparse.Namespace) -> None:
    print(f"snort_perfmon {__version__}")


def main(argv: list[str] | None = None) -> None:
    """Entry point for the snort-perfmon CLI."""
    parser = argparse.ArgumentParser(
        prog="snort-perfmon",
        description="Extract metrics from Snort perfmon files at a fixed interval",
    )
    parser.add_argument("--config", "-c", default=None, help="Path to snort_perfmon.yaml")
    parser.add_argument("--log-level", default=None, help="Logging level (default from config)")
    sub = parser.add_subparsers(dest="command")

    # run
    run_p = sub.add_parser("run", help="Poll configured instances until interrupted")
    run_p.set_defaults(func=_cmd_run)

    # poll
    poll_p = sub.add_parser("poll", help="Poll every instance once and print samples as JSON")
    poll_p.set_defaults(func=_cmd_poll)

    # last-row
    row_p = sub.add_parser("last-row", help="Print the last data row of a perfmon file")
    row_p.add_argument("path", help="Perfmon file")
    row_p.set_defaults(func=_cmd_last_row)

    # check
    check_p = sub.add_parser("check", help="Validate the configuration")
    check_p.set_defaults(func=_cmd_check)

    # version
    ver_p = sub.add_parser("version", help="Print version")
    ver_p.set_defaults(func=_cmd_version)

    args = parser.parse_args(argv)
    if not hasattr(args, "func"):
        parser.print_help()
        sys.exit(1)

    args.func(args)


if __name__ == "__main__":
    main()
