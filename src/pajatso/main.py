import argparse
import logging
import signal
import threading
from typing import Any, Dict, List

from .config.config_parser import (
    DEFAULT_LISTEN,
    apply_cli_overrides,
    build_zone_config,
    listen_settings,
    parse_config_file,
)
from .config.logging_config import init_logging
from .handler import DNSHandler
from .servers.server import DNSServer


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pajatso",
        description="Authoritative DNS server for ACME DNS-01 challenge records",
    )
    parser.add_argument("--config", default=None, help="Path to YAML config")
    parser.add_argument("--zone", default=None, help="Zone apex, e.g. example.com")
    parser.add_argument("--ns", default=None, help="Authoritative nameserver name")
    parser.add_argument("--tsig-name", default=None, help="TSIG key name")
    parser.add_argument("--tsig-secret", default=None, help="Base64 TSIG secret")
    parser.add_argument(
        "--listen",
        default=None,
        help=f"Listen address HOST:PORT (default {DEFAULT_LISTEN})",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["debug", "info", "warn", "error", "crit"],
        help="Log level (default info)",
    )
    return parser


def main(argv: List[str] | None = None) -> int:
    """
    Main entry point for the DNS server.
    Parses arguments, loads configuration, binds the listeners and serves
    until SIGINT or SIGTERM.

    Args:
        argv: Command-line arguments.

    Returns:
        An exit code: 0 after a clean shutdown, 1 for configuration or bind
        errors.

    Example use:
        CLI:
            pajatso --zone example.com --ns ns1.example.com \\
                --tsig-name acme-update --tsig-secret "$SECRET" --listen :5353
    """
    args = _build_parser().parse_args(argv)

    cfg: Dict[str, Any] = {}
    try:
        if args.config:
            cfg = parse_config_file(args.config)
        apply_cli_overrides(
            cfg,
            zone=args.zone,
            nameserver=args.ns,
            tsig_name=args.tsig_name,
            tsig_secret=args.tsig_secret,
            listen=args.listen,
            log_level=args.log_level,
        )
        zone = build_zone_config(cfg)
        listen = listen_settings(cfg)
    except OSError as exc:
        print(f"Failed to read configuration: {exc}")
        return 1
    except ValueError as exc:
        print(str(exc))
        return 1

    # Initialize logging before any other operations
    init_logging(cfg.get("logging"))
    logger = logging.getLogger("pajatso.main")
    if args.config:
        logger.info("Loaded config from %s", args.config)

    handler = DNSHandler(zone)
    try:
        server = DNSServer(
            handler,
            listen["host"],
            listen["port"],
            udp=listen["udp"],
            tcp=listen["tcp"],
            tcp_idle_timeout=listen["tcp_idle_timeout"],
        )
    except OSError as exc:
        logger.error("Failed to bind %s:%d: %s", listen["host"], listen["port"], exc)
        return 1

    shutdown_event = threading.Event()

    def _request_shutdown(signum, frame):  # type: ignore[no-untyped-def]
        if shutdown_event.is_set():
            return
        logger.info("Received %s, shutting down", signal.Signals(signum).name)
        shutdown_event.set()

    signal.signal(signal.SIGINT, _request_shutdown)
    signal.signal(signal.SIGTERM, _request_shutdown)

    server.start()
    logger.info(
        "Serving zone %s (challenge %s) on %s:%d",
        zone.zone,
        zone.challenge_name,
        listen["host"],
        listen["port"],
    )

    try:
        while not shutdown_event.wait(1.0):
            pass
    finally:
        server.stop()
        logger.info("Shutdown complete")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
