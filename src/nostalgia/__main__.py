"""CLI entry point for the Nostalgia client.

Runs the feed continuously (with an optional Prometheus metrics server) or
performs one-shot actions: print the feed once, publish a note, upload a
file, or publish the relay list.

Examples:
    ```bash
    python -m nostalgia feed --once
    python -m nostalgia feed --log-level DEBUG
    NOSTR_SECRET_KEY=nsec1... python -m nostalgia publish "gm" --attach cat.png
    NOSTR_SECRET_KEY=nsec1... python -m nostalgia upload cat.png
    NOSTR_SECRET_KEY=nsec1... python -m nostalgia sync-relays
    ```
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import mimetypes
import signal
import sys
from pathlib import Path
from typing import Any

from nostalgia.core import Session, SessionConfig, start_metrics_server
from nostalgia.core.logger import Logger, StructuredFormatter
from nostalgia.core.yaml import load_yaml
from nostalgia.exceptions import NostalgiaError
from nostalgia.services import (
    Composer,
    FeedAssembler,
    FeedConfig,
    MediaUploader,
    Publisher,
    UploaderConfig,
)


DEFAULT_CONFIG = Path("config") / "nostalgia.yaml"
_CONTENT_PREVIEW = 280

logger = Logger("cli")


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


def _load_config(path: Path) -> dict[str, Any]:
    """Load the YAML config, returning ``{}`` if the file does not exist."""
    if not path.exists():
        logger.warning("config_not_found", path=str(path))
        return {}
    return load_yaml(path)


def build_session(config: dict[str, Any]) -> Session:
    return Session.from_config(SessionConfig(**config.get("session", {})))


def build_feed(session: Session, config: dict[str, Any]) -> FeedAssembler:
    return FeedAssembler(session=session, config=FeedConfig(**config.get("feed", {})))


def build_uploader(config: dict[str, Any]) -> MediaUploader:
    return MediaUploader(UploaderConfig(**config.get("uploader", {})))


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def print_feed(feed: FeedAssembler) -> None:
    for note in feed.notes:
        event = note.event
        content = event.content.replace("\n", " ")
        if len(content) > _CONTENT_PREVIEW:
            content = content[:_CONTENT_PREVIEW] + "..."
        print(f"[{event.created_at}] {feed.metadata.label(event.pubkey)}: {content}")  # noqa: T201


async def run_feed(session: Session, config: dict[str, Any], *, once: bool) -> int:
    """Refresh the feed once and print it, or keep it refreshed until a signal."""
    feed = build_feed(session, config)

    if once:
        async with feed:
            await feed.refresh()
        print_feed(feed)
        return 0

    metrics_config = feed.config.metrics
    metrics_server = await start_metrics_server(metrics_config)
    if metrics_config.enabled:
        logger.info(
            "metrics_server_started",
            host=metrics_config.host,
            port=metrics_config.port,
            path=metrics_config.path,
        )

    def handle_signal(sig: signal.Signals) -> None:
        logger.info("shutdown_signal", signal=sig.name)
        feed.request_shutdown()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, handle_signal, sig)

    try:
        async with feed:
            await feed.run_forever()
        return 0
    finally:
        await metrics_server.stop()


async def run_publish(
    session: Session,
    config: dict[str, Any],
    content: str,
    attach: list[Path],
) -> int:
    """Upload each attachment, then publish the note."""
    composer = Composer(build_uploader(config))
    composer.content = content
    for path in attach:
        payload = await asyncio.to_thread(path.read_bytes)
        content_type, _ = mimetypes.guess_type(path.name)
        await composer.attach(payload, session, name=path.name, content_type=content_type)

    event = await Publisher(session).publish_composed(composer)
    print(event.id)  # noqa: T201
    return 0


async def run_upload(session: Session, config: dict[str, Any], path: Path) -> int:
    payload = await asyncio.to_thread(path.read_bytes)
    content_type, _ = mimetypes.guess_type(path.name)
    url = await build_uploader(config).upload(
        payload, session.signer, name=path.name, content_type=content_type
    )
    print(url)  # noqa: T201
    return 0


async def run_sync_relays(session: Session) -> int:
    event = await Publisher(session).publish_relay_list()
    print(event.id)  # noqa: T201
    return 0


# ---------------------------------------------------------------------------
# Entry Point
# ---------------------------------------------------------------------------


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(prog="nostalgia", description="Nostalgia Nostr client")
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG,
        help=f"Config path (default: {DEFAULT_CONFIG})",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Log level (default: INFO)",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    feed = commands.add_parser("feed", help="Show the global feed")
    feed.add_argument(
        "--once",
        action="store_true",
        help="Refresh once, print and exit (default: refresh continuously)",
    )

    publish = commands.add_parser("publish", help="Publish a text note")
    publish.add_argument("content", help="Note text")
    publish.add_argument(
        "--attach",
        type=Path,
        action="append",
        default=[],
        help="File to upload and link from the note (repeatable)",
    )

    upload = commands.add_parser("upload", help="Upload a file to the media server")
    upload.add_argument("path", type=Path, help="File to upload")

    commands.add_parser("sync-relays", help="Publish the relay list (NIP-65)")

    return parser.parse_args(argv)


def setup_logging(level: str) -> None:
    """Install [StructuredFormatter][nostalgia.core.logger.StructuredFormatter] on the root logger."""
    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter())
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level))


async def dispatch(args: argparse.Namespace, session: Session, config: dict[str, Any]) -> int:
    if args.command == "feed":
        return await run_feed(session, config, once=args.once)
    if args.command == "publish":
        return await run_publish(session, config, args.content, args.attach)
    if args.command == "upload":
        return await run_upload(session, config, args.path)
    return await run_sync_relays(session)


async def main(argv: list[str] | None = None) -> int:
    """Parse args, build the session and run the command."""
    args = parse_args(argv)
    setup_logging(args.log_level)

    try:
        config = _load_config(args.config)
        session = build_session(config)
    except (NostalgiaError, ValueError) as e:
        logger.error("config_invalid", error=str(e))
        return 2

    try:
        async with session:
            return await dispatch(args, session, config)
    except NostalgiaError as e:
        logger.error(f"{args.command}_failed", error=str(e), error_type=type(e).__name__)
        return 1
    except OSError as e:
        logger.error(f"{args.command}_failed", error=str(e))
        return 1
    except KeyboardInterrupt:
        logger.info("interrupted")
        return 130


def cli() -> None:
    """Synchronous entry point for console_scripts."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
