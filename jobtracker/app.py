import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Optional

from . import __version__
from .database import SqliteBackend
from .env import get_settings, load_env
from .errors import StoreError
from .logger import get_logger
from .models import STATUS_VALUES
from .prefill import PrefillError, draft_from_file, draft_from_url
from .schema import validate_record
from .session import Notice, TrackerSession
from .store import JobRecordStore


def _open_session(args: argparse.Namespace) -> TrackerSession:
    db_path = Path(args.db) if args.db else get_settings().db_path
    return TrackerSession(JobRecordStore(SqliteBackend(db_path)))


def _confirm_with(args: argparse.Namespace):
    def confirm(message: str) -> bool:
        if getattr(args, "yes", False):
            return True
        try:
            answer = input(f"{message} [y/N] ")
        except EOFError:
            return False
        return answer.strip().lower() in {"y", "yes"}
    return confirm


def _show(notice: Optional[Notice]) -> None:
    if notice is None:
        return
    if notice.is_error:
        print(f"[error] {notice.text}", file=sys.stderr)
        raise SystemExit(1)
    print(notice.text)


async def _list(args: argparse.Namespace) -> None:
    session = _open_session(args)
    try:
        _show(await session.refresh())
        records = session.records
        if args.status:
            records = [r for r in records if r.status.value == args.status]
        if not records:
            print("No applications yet.")
            return
        print(f"Found {len(records)} applications:\n")
        for r in records:
            print(f"ID: {r.id}")
            print(f"  Company: {r.company}")
            print(f"  Position: {r.position}")
            print(f"  Status: {r.status.value}")
            if r.url:
                print(f"  URL: {r.url}")
            print()
    finally:
        session.close()


async def _add(args: argparse.Namespace) -> None:
    session = _open_session(args)
    try:
        _show(await session.add({
            "company": args.company,
            "position": args.position,
            "url": args.url or "",
            "status": args.status,
        }))
    finally:
        session.close()


async def _status(args: argparse.Namespace) -> None:
    session = _open_session(args)
    try:
        _show(await session.set_status(args.id, args.to))
    finally:
        session.close()


async def _delete(args: argparse.Namespace) -> None:
    session = _open_session(args)
    try:
        notice = await session.remove(args.id, _confirm_with(args))
        if notice is None:
            print("Cancelled.")
        _show(notice)
    finally:
        session.close()


async def _export(args: argparse.Namespace) -> None:
    session = _open_session(args)
    try:
        _show(await session.refresh())
        _show(session.export_to(Path(args.output) if args.output else None))
    finally:
        session.close()


async def _import(args: argparse.Namespace) -> None:
    input_path = Path(args.input)
    if not input_path.exists():
        raise SystemExit(f"Input file not found: {input_path}")
    session = _open_session(args)
    try:
        _show(await session.refresh())
        notice = await session.import_from(input_path, _confirm_with(args))
        if notice is None:
            print("Cancelled.")
        else:
            get_logger().log_metrics_summary()
        _show(notice)
    finally:
        session.close()


async def _draft(args: argparse.Namespace) -> None:
    try:
        if args.file:
            draft = draft_from_file(Path(args.file))
        else:
            draft = draft_from_url(args.url)
    except PrefillError as e:
        raise SystemExit(e.message)

    if draft is None:
        raise SystemExit("No details found. Please enter them manually with 'add'.")

    print(f"Company: {draft.company}")
    print(f"Position: {draft.position}")
    print(f"URL: {draft.url}")
    if not args.save:
        return

    session = _open_session(args)
    try:
        _show(await session.add(draft))
    finally:
        session.close()


def cmd_validate(args: argparse.Namespace) -> None:
    input_path = Path(args.input)
    if not input_path.exists():
        raise SystemExit(f"Input file not found: {input_path}")
    with input_path.open("r", encoding="utf-8") as f:
        try:
            record = json.load(f)
        except json.JSONDecodeError as e:
            raise SystemExit(f"Invalid JSON: {e}")
    errors = validate_record(record)
    if errors:
        print("Invalid:")
        for e in errors:
            print(f" - {e}")
        raise SystemExit(2)
    print("Valid")


def _async_command(handler):
    def run(args: argparse.Namespace) -> None:
        try:
            asyncio.run(handler(args))
        except StoreError as e:
            raise SystemExit(e.message)
    return run


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="jobtracker", description="Job application tracker")
    parser.add_argument("--version", action="store_true", help="Show version")
    parser.add_argument("--db", help="Path to SQLite store (default: $JOBTRACKER_DB or data/jobs.db)")

    subparsers = parser.add_subparsers(dest="command")

    lst = subparsers.add_parser("list", help="List applications, newest first")
    lst.add_argument("--status", choices=STATUS_VALUES, help="Only show this status")
    lst.set_defaults(func=_async_command(_list))

    add = subparsers.add_parser("add", help="Add an application")
    add.add_argument("--company", required=True, help="Company name (max 100 chars)")
    add.add_argument("--position", required=True, help="Position title (max 100 chars)")
    add.add_argument("--url", help="Job posting URL (http/https)")
    add.add_argument("--status", choices=STATUS_VALUES, help="Initial status (default: Applied)")
    add.set_defaults(func=_async_command(_add))

    st = subparsers.add_parser("status", help="Change the status of an application")
    st.add_argument("--id", required=True, help="Application id")
    st.add_argument("--to", required=True, help=f"New status: {', '.join(STATUS_VALUES)}")
    st.set_defaults(func=_async_command(_status))

    dl = subparsers.add_parser("delete", help="Delete an application")
    dl.add_argument("--id", required=True, help="Application id")
    dl.add_argument("--yes", action="store_true", help="Do not ask for confirmation")
    dl.set_defaults(func=_async_command(_delete))

    exp = subparsers.add_parser("export", help="Export all applications to a JSON bundle")
    exp.add_argument("--output", help="Output path (default: job-applications-YYYY-MM-DD.json)")
    exp.set_defaults(func=_async_command(_export))

    imp = subparsers.add_parser("import", help="Import applications from a JSON bundle")
    imp.add_argument("--input", required=True, help="Bundle file (export or legacy list)")
    imp.add_argument("--yes", action="store_true", help="Merge without asking when the store is not empty")
    imp.set_defaults(func=_async_command(_import))

    val = subparsers.add_parser("validate", help="Validate an application JSON file")
    val.add_argument("--input", required=True, help="Path to application JSON")
    val.set_defaults(func=cmd_validate)

    drf = subparsers.add_parser("draft", help="Prefill an application from a file or posting URL")
    src = drf.add_mutually_exclusive_group(required=True)
    src.add_argument("--file", help="PDF or text file (first line company, second position)")
    src.add_argument("--url", help="Job posting URL to read")
    drf.add_argument("--save", action="store_true", help="Add the draft as an application")
    drf.set_defaults(func=_async_command(_draft))

    return parser


def main(argv=None):
    # Load .env if present (JOBTRACKER_DB, JOBTRACKER_LOG_LEVEL, etc.)
    load_env()
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(__version__)
        return

    if hasattr(args, "func"):
        args.func(args)
        return

    parser.print_help()


if __name__ == "__main__":
    main()
