"""
CLI entry point for quick checks against an Engage pod.

Usage:
    python -m engage_pod check                 # Log in and out
    python -m engage_pod lists [--type N]      # Print list ids and names
    python -m engage_pod job-status JOB_ID     # Print a data job status

Connection settings are read from ENGAGE_* environment variables or .env.
"""
from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence

from engage_pod.client import EngagePod
from engage_pod.enums.lists import ListType
from engage_pod.errors import EngageError
from engage_pod.settings.main import EngageSettings
from engage_pod.utilities.log import create_logger
from engage_pod.utilities.session import FileSessionStore


def _connect(settings: EngageSettings) -> EngagePod:
    """Create a client, reusing a stored session when a session file is configured."""
    store = FileSessionStore(settings.session_file) if settings.session_file else None
    return EngagePod(settings, session_store=store)


def _run(args: argparse.Namespace) -> int:
    settings = EngageSettings()
    pod = _connect(settings)

    if args.command == "check":
        print(f"Logged in, endpoint: {pod.endpoint}")
        if settings.session_file:
            return 0
        if pod.log_out():
            print("Logged out.")
            return 0
        print("Logout was rejected by the server.", file=sys.stderr)
        return 1

    if args.command == "lists":
        for item in pod.get_lists(list_type=args.type, is_private=not args.shared):
            print(f"{item.get('ID', '')}\t{item.get('NAME', '')}")
        return 0

    if args.command == "job-status":
        result = pod.get_job_status(args.job_id)
        print(result.text("JOB_STATUS", ""))
        return 0

    return 1


def main(argv: Sequence[str] | None = None) -> int:
    """Parse CLI arguments and dispatch commands."""
    parser = argparse.ArgumentParser(
        prog="python -m engage_pod",
        description="Engage XML API checks",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("check", help="Log in and log out")

    parser_lists = subparsers.add_parser("lists", help="Print lists of the given type")
    parser_lists.add_argument(
        "--type",
        type=int,
        default=int(ListType.DATABASES_AND_QUERIES),
        choices=[int(member) for member in ListType],
        help="LIST_TYPE code (default: 2, databases and queries)",
    )
    parser_lists.add_argument("--shared", action="store_true", help="List shared instead of private lists")

    parser_job = subparsers.add_parser("job-status", help="Print the status of a data job")
    parser_job.add_argument("job_id", help="Data job id")

    args = parser.parse_args(argv)
    # stdout carries command output
    create_logger(stream=sys.stderr)

    try:
        return _run(args)
    except EngageError as exc:
        print(str(exc), file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
