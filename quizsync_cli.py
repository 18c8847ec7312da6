"""Command line entry point for QuizSync."""

from __future__ import annotations

import argparse
import logging
import sys

import settings
from quizsync import __version__
from quizsync.google_credentials import CredentialsFileInvalidError
from quizsync.logging_config import configure_logging, get_log_path
from quizsync.metadata_store import StorageError
from quizsync.orchestrator import run_sync
from quizsync.quizlet_client import RemoteError
from quizsync.sheets_client import SheetsClientError

logger = logging.getLogger("quizsync")


def _failed() -> int:
    print(f"Sync failed. Details were written to {get_log_path()}", file=sys.stderr)
    return 1


def command_sync(args: argparse.Namespace) -> int:
    try:
        sync_settings = settings.load_sync_settings(
            args.settings,
            persistence_mode=args.persistence,
            google_token_path=args.token_file,
        )
    except settings.ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        print(
            "Please provide CLIENT_ID, CLIENT_SECRET and ACCESS_TOKEN in the environment "
            "or in the settings file.",
            file=sys.stderr,
        )
        return 1

    try:
        report = run_sync(sync_settings, args.sheet_id)
    except CredentialsFileInvalidError as exc:
        logger.error("Google credentials error: %s", exc)
        return _failed()
    except (StorageError, RemoteError, SheetsClientError) as exc:
        logger.error("Sync of %s failed: %s", args.sheet_id, exc)
        return _failed()
    except Exception:
        logger.exception("Unexpected error while synchronising %s", args.sheet_id)
        return _failed()

    print(f"Tabs synchronised : {len(report.tabs)}")
    print(f"Sets updated      : {len(report.keys)}")
    print(f"Sets created      : {len(report.created)}")
    if report.healed:
        print(f"Sets recreated    : {', '.join(report.healed)}")
    if report.skipped_tabs:
        print(f"Empty tabs skipped: {', '.join(report.skipped_tabs)}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="quizsync",
        description="Copy every tab of a Google spreadsheet into romaji and kana Quizlet sets",
    )
    parser.add_argument("sheet_id", help="Google spreadsheet id to synchronise")
    parser.add_argument(
        "--settings",
        default=settings.DEFAULT_SETTINGS_PATH,
        help="Optional JSON settings file (default: %(default)s)",
    )
    parser.add_argument(
        "--persistence",
        choices=settings.PERSISTENCE_MODES,
        default=None,
        help="How set ids are persisted when a run fails part way",
    )
    parser.add_argument(
        "--token-file",
        default=None,
        help="Stored Google OAuth token file (default: credentials.json)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.set_defaults(func=command_sync)
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(logging.DEBUG if args.verbose else logging.INFO)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
