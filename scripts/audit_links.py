#!/usr/bin/env python3
"""Health check listing object map links stuck on a temporary identifier.

Usage:
    uv run python scripts/audit_links.py
    uv run python scripts/audit_links.py --database-url sqlite+aiosqlite:///sync.db --verbose

Connects to DATABASE_URL from environment or .env file (or --database-url).
Exit code 0 when no link is stuck, 1 otherwise.
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys

# Ensure project root is on sys.path so we can import src.object_sync
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from dotenv import load_dotenv  # noqa: E402

# Load .env from project root
load_dotenv(os.path.join(os.path.dirname(__file__), "..", ".env"))


def print_links(title: str, links: list) -> None:
    """Print a formatted table of stuck links."""
    separator = "-" * 70
    print()
    print(f"{title} ({len(links)})")
    print(separator)
    print(f"{'ID':<8} {'LOCAL TYPE':<20} {'LOCAL ID':<20} {'REMOTE ID'}")
    print(separator)
    for link in links:
        print(f"{link.id:<8} {link.local_object_type:<20} {link.local_id:<20} {link.remote_id}")
    print(separator)


async def audit(verbose: bool) -> int:
    """Run the reconciliation scan and return the number of stuck links."""
    from src.object_sync.core.database import close_db, get_sessionmaker
    from src.object_sync.core.logging import configure_structlog
    from src.object_sync.mapping import ObjectMapRepository, ReconciliationAuditor
    from src.object_sync.mapping.store import SqlRecordStore

    configure_structlog()
    try:
        repository = ObjectMapRepository(SqlRecordStore(get_sessionmaker()))
        failed = await ReconciliationAuditor(repository).scan()
    finally:
        await close_db()

    if verbose or failed.has_failures:
        print_links("Push pending (remote id never returned)", failed.push_errors)
        print_links("Pull pending (local id never returned)", failed.pull_errors)
        print()

    return failed.total


def main() -> None:
    parser = argparse.ArgumentParser(
        description="List object map links whose create never resolved"
    )
    parser.add_argument(
        "--database-url",
        help="Override DATABASE_URL for this run",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Print the link tables even when nothing is stuck",
    )
    args = parser.parse_args()

    if args.database_url:
        os.environ["DATABASE_URL"] = args.database_url

    stuck = asyncio.run(audit(args.verbose))
    if stuck:
        print(f"{stuck} stuck link(s) found.")
    else:
        print("No stuck links.")

    sys.exit(0 if stuck == 0 else 1)


if __name__ == "__main__":
    main()
