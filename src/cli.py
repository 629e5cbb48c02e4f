#!/usr/bin/env python3
"""
CLI for the upload watcher.

Usage:
    python -m src.cli watch /srv/uploads --timeout 30 --image
    python -m src.cli history
    python -m src.cli sign-all
    python -m src.cli config set completion_timeout 60
"""

import argparse
import json
import logging
import signal
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from src.uploadwatch import (
    HistoryStore,
    LoggingListener,
    SettingsError,
    SettingsManager,
    WatchEngine,
    WatchStartError,
    WatcherConfig,
    enabled_extensions,
    format_size,
)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

logger = logging.getLogger("cli")


def setup_logging(verbose: bool = False, log_file: Optional[str] = None) -> None:
    """Configure console logging, plus a DEBUG file log when requested."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
    )
    if log_file:
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
        root_logger = logging.getLogger()
        root_logger.setLevel(logging.DEBUG)
        root_logger.addHandler(file_handler)


class GracefulShutdown:
    """Handle graceful shutdown on SIGINT/SIGTERM."""

    def __init__(self):
        self.should_exit = False
        signal.signal(signal.SIGINT, self._handler)
        signal.signal(signal.SIGTERM, self._handler)

    def _handler(self, signum, frame):
        logger.info("Received shutdown signal, stopping...")
        self.should_exit = True


def _settings(args) -> SettingsManager:
    return SettingsManager(Path(args.db).resolve() if args.db else None)


def _format_time(ts: Optional[float]) -> str:
    if ts is None:
        return "-"
    return datetime.fromtimestamp(ts).strftime("%Y-%m-%d %H:%M:%S")


def _apply_watch_overrides(config: WatcherConfig, args) -> None:
    """CLI flags override persisted settings only when given."""
    for category in ("video", "image", "audio", "doc", "archive"):
        if getattr(args, category):
            setattr(config, f"{category}_enabled", True)
    if args.only:
        for category in ("video", "image", "audio", "doc", "archive"):
            setattr(config, f"{category}_enabled", category in args.only)
    if args.custom_exts is not None:
        config.custom_exts = args.custom_exts
    if args.timeout is not None:
        config.completion_timeout = args.timeout
    if args.no_subdirs:
        config.monitor_subdirs = False
    if args.no_history:
        config.save_history = False


def cmd_watch(args):
    """Run a watch session until interrupted."""
    settings = _settings(args)
    config = settings.load_config()
    _apply_watch_overrides(config, args)

    root = Path(args.folder).resolve()
    if not root.is_dir():
        logger.error(f"Folder does not exist or is not a directory: {root}")
        sys.exit(1)

    if not enabled_extensions(config):
        logger.error("No file types enabled. Enable a category or pass --custom-exts")
        sys.exit(1)

    history = HistoryStore(settings.db_path)
    shutdown = GracefulShutdown()

    with WatchEngine(config=config, listener=LoggingListener(), history=history) as engine:
        try:
            engine.start(root)
        except WatchStartError as e:
            logger.error(str(e))
            sys.exit(1)

        logger.info(f"Completion timeout: {config.effective_completion_timeout():.0f}s")
        logger.info(f"Database: {settings.db_path}")
        logger.info("Press Ctrl+C to stop")

        while not shutdown.should_exit:
            time.sleep(0.5)

    logger.info("Watcher stopped")


def _print_batches(views) -> None:
    if not views:
        print("No upload batches.")
        return

    print(f"\n{len(views)} batch(es):\n")
    for view in views:
        print(f"[{view.status.value:>9}] {view.id}  {view.folder}")
        print(
            f"            started {_format_time(view.start_time)} · "
            f"{view.file_count} file(s) · {format_size(view.total_size)}"
        )
        if view.completed_at:
            print(f"            completed {_format_time(view.completed_at)}")
        if view.signed_at:
            print(f"            signed {_format_time(view.signed_at)}")
    print()


def _history_engine(args) -> WatchEngine:
    settings = _settings(args)
    config = settings.load_config()
    config.save_history = True
    return WatchEngine(config=config, history=HistoryStore(settings.db_path))


def cmd_history(args):
    """Show stored upload batches."""
    engine = _history_engine(args)
    _print_batches(engine.snapshot())


def cmd_sign(args):
    """Sign one completed batch."""
    engine = _history_engine(args)
    if engine.sign_batch(args.batch_id):
        print(f"Signed batch {args.batch_id}")
    else:
        print(f"Batch {args.batch_id} not found or not completed")
        sys.exit(1)


def cmd_sign_all(args):
    """Sign every completed batch."""
    engine = _history_engine(args)
    print(f"Signed {engine.sign_all()} batch(es)")


def cmd_clear_signed(args):
    """Remove signed batches from the history."""
    engine = _history_engine(args)
    print(f"Removed {engine.clear_signed()} signed batch(es)")


def _parse_value(raw: str):
    try:
        return json.loads(raw)
    except ValueError:
        return raw


def cmd_config(args):
    """Show or change persisted settings."""
    settings = _settings(args)

    if args.action == "show":
        for key, value in settings.load_config().to_dict().items():
            print(f"{key} = {json.dumps(value)}")
        return

    if args.key is None or args.value is None:
        logger.error("Usage: config set KEY VALUE")
        sys.exit(1)

    try:
        config = settings.update_config(**{args.key: _parse_value(args.value)})
    except SettingsError as e:
        logger.error(str(e))
        sys.exit(1)
    print(f"{args.key} = {json.dumps(getattr(config, args.key))}")


def main(argv: Optional[List[str]] = None):
    load_dotenv()

    parser = argparse.ArgumentParser(
        description="Detect upload batches landing in a folder",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Watch a folder for video uploads (the default category)
  python -m src.cli watch /srv/uploads

  # Watch images and PDFs only, 60 s completion timeout
  python -m src.cli watch /srv/uploads --only image --custom-exts .pdf --timeout 60

  # Review and sign completed batches
  python -m src.cli history
  python -m src.cli sign-all
  python -m src.cli clear-signed
        """,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--log-file", default=None, help="Also write DEBUG logs to this file")
    parser.add_argument("--db", default=None, help="Settings/history database (default: platform app data dir)")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # Watch command
    watch_parser = subparsers.add_parser("watch", help="Watch a folder for upload batches")
    watch_parser.add_argument("folder", help="Folder to watch")
    for category in ("video", "image", "audio", "doc", "archive"):
        watch_parser.add_argument(f"--{category}", action="store_true", help=f"Also accept {category} files")
    watch_parser.add_argument("--only", nargs="+", choices=["video", "image", "audio", "doc", "archive"],
                              help="Accept exactly these categories")
    watch_parser.add_argument("--custom-exts", default=None, help="Comma-separated extra extensions")
    watch_parser.add_argument("--timeout", type=int, default=None, help="Completion timeout in seconds")
    watch_parser.add_argument("--no-subdirs", action="store_true", help="Do not watch subdirectories")
    watch_parser.add_argument("--no-history", action="store_true", help="Do not persist batches")
    watch_parser.set_defaults(func=cmd_watch)

    # History command
    history_parser = subparsers.add_parser("history", help="Show stored upload batches")
    history_parser.set_defaults(func=cmd_history)

    # Sign command
    sign_parser = subparsers.add_parser("sign", help="Sign a completed batch")
    sign_parser.add_argument("batch_id", help="Batch ID")
    sign_parser.set_defaults(func=cmd_sign)

    # Sign-all command
    sign_all_parser = subparsers.add_parser("sign-all", help="Sign every completed batch")
    sign_all_parser.set_defaults(func=cmd_sign_all)

    # Clear-signed command
    clear_parser = subparsers.add_parser("clear-signed", help="Remove signed batches")
    clear_parser.set_defaults(func=cmd_clear_signed)

    # Config command
    config_parser = subparsers.add_parser("config", help="Show or change settings")
    config_parser.add_argument("action", choices=["show", "set"])
    config_parser.add_argument("key", nargs="?", default=None)
    config_parser.add_argument("value", nargs="?", default=None)
    config_parser.set_defaults(func=cmd_config)

    args = parser.parse_args(argv)

    setup_logging(args.verbose, args.log_file)

    args.func(args)


if __name__ == "__main__":
    main()
