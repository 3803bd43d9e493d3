from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
from typing import Any

from netactivity.consumer.poller import ActivityPoller
from netactivity.core.config import AppConfig, load_config
from netactivity.core.exceptions import ConfigError
from netactivity.core.utils import platform_summary, setup_logging
from netactivity.diagnostics import FAIL, run_checks
from netactivity.engine.loop import ActivityDaemon
from netactivity.publishing.link import install_link
from netactivity.publishing.publisher import AtomicPublisher
from netactivity.sampling.sampler import Sampler, build_source

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2
EXIT_FATAL = 3


def _parse_args(argv: list[str]) -> argparse.Namespace:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", type=str, default=None, help="Path to config.yaml")
    common.add_argument("--log-level", type=str, default=None)
    common.add_argument("-o", "--output", type=str, default=None, help="Published record path")

    p = argparse.ArgumentParser(prog="netactivity")
    sub = p.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", parents=[common], help="Sample an interface and publish its activity")
    run.add_argument("-i", "--interface", type=str, default=None, help="Interface to monitor")
    run.add_argument("--interval", type=float, default=None, help="Seconds between ticks")

    watch = sub.add_parser("watch", parents=[common], help="Poll the published record and print activity")
    watch.add_argument("--threshold", type=int, default=None)
    watch.add_argument("--interval", type=float, default=None, help="Seconds between polls")
    watch.add_argument("--once", action="store_true", help="Print the current state and exit")

    link = sub.add_parser("link", parents=[common], help="Expose the record through a symlink")
    link.add_argument("--path", type=str, default=None, help="Where to create the link")
    link.add_argument("--replace", action="store_true", help="Replace an existing entry")

    doctor = sub.add_parser("doctor", parents=[common], help="Check sampling and publishing prerequisites")
    doctor.add_argument("-i", "--interface", type=str, default=None)
    return p.parse_args(argv)


def _cli_overrides(args: argparse.Namespace) -> dict[str, Any]:
    out: dict[str, Any] = {}
    if args.log_level:
        out.setdefault("logging", {})["level"] = args.log_level
    if args.output:
        out.setdefault("publish", {})["path"] = args.output
    if getattr(args, "interface", None):
        out.setdefault("sampling", {})["interface"] = args.interface
    if args.command == "run" and args.interval is not None:
        out.setdefault("loop", {})["interval_seconds"] = args.interval
    if args.command == "watch":
        if args.threshold is not None:
            out.setdefault("consumer", {})["threshold"] = args.threshold
        if args.interval is not None:
            out.setdefault("consumer", {})["poll_interval_seconds"] = args.interval
    if args.command == "link" and args.path:
        out.setdefault("link", {})["path"] = args.path
    return out


def build_daemon(config: AppConfig) -> ActivityDaemon:
    sc = config.sampling
    sampler = Sampler(sc.interface, build_source(sc.source, sc.stats_path))
    publisher = AtomicPublisher(
        config.publish.path,
        file_mode=config.publish.file_mode,
        fsync=config.publish.fsync,
    )
    return ActivityDaemon(config=config, sampler=sampler, publisher=publisher)


def _cmd_run(config: AppConfig, log: logging.Logger) -> int:
    daemon = build_daemon(config)
    stop_requested = False

    def _handle_sig(signum: int, _frame: object) -> None:
        nonlocal stop_requested
        if stop_requested:
            return
        stop_requested = True
        log.warning("shutdown requested", extra={"signal": signum})
        daemon.request_stop()

    signal.signal(signal.SIGINT, _handle_sig)
    signal.signal(signal.SIGTERM, _handle_sig)

    daemon.start()
    daemon.join()

    if daemon.fatal_error is not None:
        log.critical("exiting: %s", daemon.fatal_error)
        return EXIT_FATAL
    if daemon.crash_error is not None:
        log.critical("exiting after unexpected error: %r", daemon.crash_error)
        return EXIT_FATAL
    log.info("stopped")
    return EXIT_OK


def _cmd_watch(config: AppConfig, once: bool) -> int:
    poller = ActivityPoller(
        config.publish.path,
        threshold=config.consumer.threshold,
        interval=config.consumer.poll_interval_seconds,
    )
    if once:
        state = poller.poll_once()
        print("unknown" if state is None else ("active" if state else "inactive"))
        return EXIT_OK if state is not None else EXIT_FAILED

    stop = threading.Event()
    signal.signal(signal.SIGINT, lambda *_: stop.set())
    signal.signal(signal.SIGTERM, lambda *_: stop.set())
    poller.run(lambda active: print("active" if active else "inactive", flush=True), stop)
    return EXIT_OK


def _cmd_link(config: AppConfig, replace: bool) -> int:
    if not config.link.path:
        raise ConfigError("no link path configured (link.path or --path)")
    changed = install_link(config.publish.path, config.link.path, replace=replace)
    print(f"{config.link.path} -> {config.publish.path}" + ("" if changed else " (unchanged)"))
    return EXIT_OK


def _cmd_doctor(config: AppConfig) -> int:
    results = run_checks(config)
    for r in results:
        print(f"[{r.status}] {r.message}")
    return EXIT_FAILED if any(r.status == FAIL for r in results) else EXIT_OK


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(sys.argv[1:] if argv is None else argv)
    try:
        config = load_config(args.config, overrides=_cli_overrides(args))
    except ConfigError as exc:
        print(f"config error: {exc}", file=sys.stderr)
        return EXIT_CONFIG

    setup_logging(config.logging.log_dir, level=config.logging.level, json_logs=config.logging.json_logs)
    log = logging.getLogger("netactivity")

    try:
        if args.command == "run":
            log.info("starting", extra={"platform": dict(platform_summary())})
            return _cmd_run(config, log)
        if args.command == "watch":
            return _cmd_watch(config, once=args.once)
        if args.command == "link":
            return _cmd_link(config, replace=args.replace)
        return _cmd_doctor(config)
    except ConfigError as exc:
        log.error("config error: %s", exc)
        return EXIT_CONFIG


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
