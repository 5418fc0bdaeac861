"""Command-line interface for Mail Provenance.

This module provides the main entry point for the CLI application.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

import structlog

from mail_provenance import __version__
from mail_provenance.analysis import describe_hop
from mail_provenance.config import get_settings
from mail_provenance.exceptions import MailProvenanceError
from mail_provenance.models import EmailRecord
from mail_provenance.pipeline import IngestionPipeline
from mail_provenance.storage import EmailRecordRepository
from mail_provenance.utils import configure_logging

logger = structlog.get_logger()


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid int value: {value!r}") from None
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mail-provenance", description="Mail Provenance")
    subparsers = parser.add_subparsers(dest="command", required=True)

    fetch_parser = subparsers.add_parser(
        "fetch",
        help="Fetch, analyse and store the newest unread message",
    )
    fetch_parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help="Path to the SQLite record database (default: settings db_path)",
    )

    history_parser = subparsers.add_parser("history", help="List recently analysed messages")
    history_parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help="Path to the SQLite record database (default: settings db_path)",
    )
    history_parser.add_argument(
        "--limit",
        type=_positive_int,
        default=None,
        help="Max records (default: settings history_limit)",
    )

    return parser


def _pipeline(db: Path | None) -> IngestionPipeline:
    settings = get_settings()
    repo = EmailRecordRepository(db or settings.db_path)
    repo.initialize()
    return IngestionPipeline(repo, settings=settings)


def _print_record(record: EmailRecord) -> None:
    print(f"Subject: {record.subject}")
    print(f"From:    {record.sender}")
    print(f"To:      {record.recipient}")
    print(f"Date:    {record.date.isoformat()}")
    print(f"ESP:     {record.esp.value}")
    print(f"Hops:    {record.hops}")
    for index, line in enumerate(record.receiving_chain, start=1):
        hop = describe_hop(line)
        parts = [
            f"from {hop.from_host}" if hop.from_host else None,
            f"by {hop.by_host}" if hop.by_host else None,
            f"with {hop.protocol}" if hop.protocol else None,
            f"ip {hop.ip}" if hop.ip else None,
        ]
        summary = " ".join(p for p in parts if p) or hop.raw
        print(f"  {index}. {summary}")
    if record.snippet:
        print(f"\n{record.snippet}")


async def _cmd_fetch(args: argparse.Namespace) -> int:
    pipeline = _pipeline(args.db)
    record = await pipeline.ingest_latest_unread()
    if record is None:
        print("No unread message found.")
        return 0

    _print_record(record)
    return 0


def _cmd_history(args: argparse.Namespace) -> int:
    pipeline = _pipeline(args.db)
    for record in pipeline.history(limit=args.limit):
        created = record.created_at.isoformat() if record.created_at else "(unsaved)"
        print(f"{created}\t{record.esp.value}\t{record.hops} hops\t{record.sender}\t{record.subject}")
    return 0


def main(args: list[str] | None = None) -> int:
    """Main entry point for the Mail Provenance CLI.

    Args:
        args: Command-line arguments. If None, uses sys.argv.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    if args is None:
        args = sys.argv[1:]

    settings = get_settings()
    configure_logging(settings.log_level)

    logger.info("mail_provenance_started", version=__version__, debug=settings.debug)

    parser = _build_parser()
    parsed = parser.parse_args(args)

    try:
        if parsed.command == "fetch":
            return asyncio.run(_cmd_fetch(parsed))
        if parsed.command == "history":
            return _cmd_history(parsed)
    except MailProvenanceError as exc:
        logger.error("command_failed", command=parsed.command, error=str(exc))
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    logger.error("unknown_command", command=parsed.command)
    return 2


if __name__ == "__main__":
    sys.exit(main())
