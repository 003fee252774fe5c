from __future__ import annotations

import argparse
import logging
import os
import signal
import sys

import requests
from apscheduler.schedulers.background import BackgroundScheduler

from microblog_inbound.client import HttpMicroblogClient, RemoteClient
from microblog_inbound.config import AppConfig, ConfigError, load_config
from microblog_inbound.logging_config import setup_logging
from microblog_inbound.models import DirectMessage, Post, RemoteItem
from microblog_inbound.service import PollingService
from microblog_inbound.sources import (
    DeduplicatingPollSource,
    SourceDependencies,
    create_source,
)
from microblog_inbound.store import MetadataStore, SimpleMetadataStore, SQLiteMetadataStore
from microblog_inbound.utils.datetime_utils import format_datetime

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="microblog-inbound",
        description="Poll microblog feeds and forward each new item exactly once.",
    )
    parser.add_argument(
        "-c",
        "--config",
        default="config.yaml",
        help="Path to config YAML file (default: config.yaml)",
    )
    parser.add_argument(
        "--log-level",
        help="Override config log level (e.g. INFO, DEBUG)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("run", help="Poll on the rate-limit schedule until interrupted")
    subparsers.add_parser("poll-once", help="Poll every source once and print new items")
    subparsers.add_parser("show-markers", help="Print the stored marker of every source")
    subparsers.add_parser("init-db", help="Initialize SQLite marker schema")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        app_config = load_config(args.config)
    except ConfigError as exc:
        print(f"Config error: {exc}", file=sys.stderr)
        return 2

    log_level = args.log_level or app_config.log_level
    setup_logging(log_level)

    store = _build_store(app_config)

    if args.command == "init-db":
        if isinstance(store, SQLiteMetadataStore):
            store.init_db()
            logger.info("Initialized SQLite database at %s", app_config.storage.path)
        else:
            logger.info("Storage type %s needs no initialization", app_config.storage.type)
        return 0

    if isinstance(store, SQLiteMetadataStore):
        store.init_db()

    token = os.getenv(app_config.api.token_env_var, "").strip()
    if not token:
        logger.error("Missing API token in environment variable %s", app_config.api.token_env_var)
        return 2

    client = HttpMicroblogClient(
        base_url=app_config.api.base_url,
        token=token,
        timeout_seconds=app_config.api.timeout_seconds,
    )
    scheduler = BackgroundScheduler()

    try:
        sources = _build_sources(app_config, client=client, scheduler=scheduler, store=store)
    except ValueError as exc:
        logger.error("Invalid source configuration: %s", exc)
        return 2

    if args.command == "show-markers":
        return _show_markers(sources)
    if args.command == "poll-once":
        return _poll_once(sources)

    service = PollingService(sources=sources, scheduler=scheduler, handler=_log_item)
    signal.signal(signal.SIGTERM, lambda signum, frame: service.request_shutdown())
    try:
        service.run_forever()
    except KeyboardInterrupt:
        logger.info("Interrupted; shutting down")
    except ConfigError as exc:
        logger.error("Startup failed: %s", exc)
        return 2
    except (requests.RequestException, ValueError) as exc:
        logger.error("Polling stopped on error: %s", exc)
        return 1
    return 0


def _build_store(app_config: AppConfig) -> MetadataStore:
    if app_config.storage.type == "memory":
        return SimpleMetadataStore()
    return SQLiteMetadataStore(app_config.storage.path)


def _build_sources(
    app_config: AppConfig,
    *,
    client: RemoteClient,
    scheduler: BackgroundScheduler,
    store: MetadataStore,
) -> list[DeduplicatingPollSource]:
    dependencies = SourceDependencies(
        client=client,
        scheduler=scheduler,
        metadata_store=store,
        polling=app_config.polling,
    )
    return [create_source(source_config, dependencies) for source_config in app_config.sources]


def _poll_once(sources: list[DeduplicatingPollSource]) -> int:
    errors = 0
    for source in sources:
        try:
            source.initialize()
            forwarded = source.poll_once()
        except Exception as exc:  # noqa: BLE001
            errors += 1
            logger.exception("poll failed for %s: %s", source.name, exc)
            continue

        logger.info("Source %s forwarded %d new items", source.name, forwarded)
        while True:
            item = source.receive()
            if item is None:
                break
            print(render_item(source, item))

    return 0 if errors == 0 else 1


def _show_markers(sources: list[DeduplicatingPollSource]) -> int:
    errors = 0
    for source in sources:
        try:
            source.initialize()
        except Exception as exc:  # noqa: BLE001
            errors += 1
            logger.exception("failed to initialize %s: %s", source.name, exc)
            continue
        marker = source.marker_id if source.has_marked_item() else "none"
        print(f"{source.metadata_key}: {marker}")
    return 0 if errors == 0 else 1


def _log_item(source: DeduplicatingPollSource, item: RemoteItem) -> None:
    logger.info("%s", render_item(source, item))


def render_item(source: DeduplicatingPollSource, item: RemoteItem) -> str:
    if isinstance(item, DirectMessage):
        who = f"from @{item.sender}" if item.sender else "from unknown sender"
    elif isinstance(item, Post):
        who = f"by @{item.author}" if item.author else "by unknown author"
    else:
        who = "by unknown"
    text = getattr(item, "text", "")
    if len(text) > 140:
        text = f"{text[:137]}..."
    return f"[{source.name}] {item.kind} {item.id} {who} at {format_datetime(item.created_at)}: {text}"


if __name__ == "__main__":
    raise SystemExit(main())
