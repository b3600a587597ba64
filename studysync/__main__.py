"""Command-line entry for studysync.

``serve`` (the default) starts the API server; ``import``, ``slots`` and
``conflicts`` work directly against the configured event store.
"""

from __future__ import annotations

import argparse
import asyncio
import datetime
import sys
from pathlib import Path
from typing import TYPE_CHECKING, NoReturn

from . import _init_logging, run_server

if TYPE_CHECKING:
    from studysync.calendar.models import ImportResult
    from studysync.core.config_manager import StudySyncSettings
    from studysync.domain.event_store import EventStore


def _create_parser() -> argparse.ArgumentParser:
    """Create argument parser for the studysync CLI.

    Returns:
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        prog="studysync",
        description="StudySync - calendar import, conflict detection and free-slot lookup",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  studysync                                        # Start API server on default port (3001)
  studysync serve --port 8000                      # Start API server on port 8000
  studysync import https://example.edu/cal.ics --source canvas
  studysync import --file calendar.ics
  studysync slots 2025-08-05
  studysync conflicts 2025-08-05 14:00
        """,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    sub = parser.add_subparsers(dest="command")

    serve = sub.add_parser("serve", help="Run the HTTP API server")
    serve.add_argument(
        "--port",
        type=int,
        metavar="PORT",
        help="Port number for the web server (default: 3001, or from STUDYSYNC_WEB_PORT env var)",
    )
    serve.add_argument("--host", metavar="HOST", help="Address to bind (default: 127.0.0.1)")

    imp = sub.add_parser("import", help="Import an ICS calendar into the event store")
    imp.add_argument("url", nargs="?", help="Direct link to an .ics file")
    imp.add_argument("--file", type=Path, help="Read ICS text from a local file instead")
    imp.add_argument(
        "--source",
        choices=["imported", "canvas"],
        default="imported",
        help="Source tag for the imported events (default: imported)",
    )

    slots = sub.add_parser("slots", help="List free working-hour slots on a date")
    slots.add_argument("date", type=datetime.date.fromisoformat, help="YYYY-MM-DD")

    conflicts = sub.add_parser("conflicts", help="Check a candidate time for conflicts")
    conflicts.add_argument("date", type=datetime.date.fromisoformat, help="YYYY-MM-DD")
    conflicts.add_argument("time", help="HH:MM or 'All Day'")
    conflicts.add_argument("--duration", type=int, help="Candidate duration in minutes")

    return parser


def _open_store() -> tuple[StudySyncSettings, EventStore]:
    from studysync.core.config_manager import ConfigManager
    from studysync.domain.event_store import EventStore

    settings = ConfigManager().load_settings()
    return settings, EventStore(settings.user_id, settings.store_path)


def _cmd_import(args: argparse.Namespace) -> int:
    from studysync.calendar.models import EventSource
    from studysync.core.http_client import close_all_clients
    from studysync.domain.import_service import ImportService

    settings, store = _open_store()
    service = ImportService(store, settings)
    source = EventSource(args.source)

    if args.file is not None:
        try:
            text = args.file.read_text(encoding="utf-8")
        except OSError as exc:
            print(f"Cannot read {args.file}: {exc.strerror or exc}", file=sys.stderr)
            return 2
        result = service.import_from_text(text, source)
    elif args.url:

        async def _run() -> ImportResult:
            try:
                return await service.import_from_url(args.url, source)
            finally:
                await close_all_clients()

        result = asyncio.run(_run())
    else:
        print("Provide a calendar URL or --file", file=sys.stderr)
        return 2

    print(result.message)
    for event in result.events:
        print(f"  {event.date.isoformat()} {event.time:>7}  {event.title}")
    return 0 if result.success else 1


def _cmd_slots(args: argparse.Namespace) -> int:
    from studysync.domain.slot_finder import find_available_slots

    _settings, store = _open_store()
    slots = find_available_slots(args.date, store.all())
    if not slots:
        print(f"No available slots on {args.date.isoformat()}")
        return 1
    print(" ".join(slots))
    return 0


def _cmd_conflicts(args: argparse.Namespace) -> int:
    from studysync.domain.conflicts import find_conflicts
    from studysync.domain.slot_finder import find_available_slots

    settings, store = _open_store()
    duration = args.duration or settings.default_duration_minutes
    try:
        found = find_conflicts(args.date, args.time, store.all(), duration_minutes=duration)
    except ValueError as exc:
        print(f"Invalid candidate: {exc}", file=sys.stderr)
        return 2

    if not found:
        print("No conflicts")
        return 0
    for event in found:
        print(f"Conflicts with: {event.time} {event.title}")
    slots = find_available_slots(args.date, store.all())
    print("Available: " + (" ".join(slots) if slots else "none"))
    return 1


def main(argv: list[str] | None = None) -> NoReturn:
    """Run the studysync CLI."""
    parser = _create_parser()
    args = parser.parse_args(argv)

    if args.command in (None, "serve"):
        run_server(args)
        sys.exit(0)

    _init_logging("DEBUG" if args.verbose else "WARNING")
    handlers = {
        "import": _cmd_import,
        "slots": _cmd_slots,
        "conflicts": _cmd_conflicts,
    }
    sys.exit(handlers[args.command](args))


if __name__ == "__main__":
    main()
