"""Command line entry point serving the exporter over HTTP."""

from __future__ import annotations

import argparse
import logging
import threading
from pathlib import Path
from typing import Sequence

from prometheus_client import REGISTRY, start_http_server

from .config import CONFIG_FILE, ExporterConfig, load_config
from .connections import ConnectionManager
from .exporter import Exporter
from .prometheus import PrometheusCollector
from .scrapers import Scraper, builtin_scrapers

LOG = logging.getLogger(__name__)


def build_exporter(config: ExporterConfig) -> Exporter:
    """Wire an `Exporter` from configuration and the enabled built-in scrapers."""

    scrapers: list[Scraper] = [
        scraper for scraper in builtin_scrapers(config.namespace) if config.is_scraper_enabled(scraper.name)
    ]
    return Exporter(
        config.dsn,
        scrapers,
        config.custom_queries(),
        namespace=config.namespace,
        lock_wait_timeout=config.lock_wait_timeout,
        log_slow_filter=config.log_slow_filter,
        scrape_timeout=config.scrape_timeout,
        connections=ConnectionManager(connect_timeout=config.connect_timeout),
    )


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Export PostgreSQL metrics for Prometheus.")
    parser.add_argument("--config", type=Path, default=CONFIG_FILE, help="Path to config.toml")
    parser.add_argument("--dsn", help="PostgreSQL connection URI (overrides config)")
    parser.add_argument("--listen-address", dest="listen_address", help="Address to serve metrics on")
    parser.add_argument("--port", type=int, help="Port to serve metrics on")
    parser.add_argument("--log-level", dest="log_level", help="Logging level (DEBUG, INFO, ...)")
    parser.add_argument(
        "--log-slow-filter",
        dest="log_slow_filter",
        action="store_true",
        default=None,
        help="Keep scrape statements out of the slow query log (requires superuser)",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> None:
    """Load configuration, register the collector and serve until interrupted."""

    args = parse_args(argv)
    config = load_config(args.config).with_overrides(
        dsn=args.dsn,
        listen_address=args.listen_address,
        port=args.port,
        log_level=args.log_level,
        log_slow_filter=args.log_slow_filter,
    )
    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    exporter = build_exporter(config)
    REGISTRY.register(PrometheusCollector(exporter))
    start_http_server(config.port, addr=config.listen_address)
    LOG.info(
        "Serving metrics",
        extra={"target": exporter.target, "address": config.listen_address, "port": config.port},
    )
    try:
        threading.Event().wait()
    except KeyboardInterrupt:
        LOG.info("Shutting down")
