"""
Run the on-demand batch jobs outside the API.

Usage:
    python -m hrm.scripts.run_batch monthly-summary --year 2024 --month 5
    python -m hrm.scripts.run_batch init-balances --year 2025
    python -m hrm.scripts.run_batch sync-leave-status [--today 2025-01-31]

Exit code is 1 when any employee failed; the others are still written.
"""

import argparse
import asyncio
import sys
from datetime import date

from hrm.api.v1.attendance.summary import generate_monthly_summary
from hrm.api.v1.leaves.balances import initialize_leave_balances_for_year
from hrm.api.v1.leaves.service import sync_leave_progress
from hrm.core.logging_config import configure_logging
from hrm.db.session import AsyncSessionLocal


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="run_batch", description="HRM batch jobs")
    sub = parser.add_subparsers(dest="command", required=True)

    summary = sub.add_parser("monthly-summary", help="Recompute attendance summaries for a month")
    summary.add_argument("--year", type=int, required=True)
    summary.add_argument("--month", type=int, required=True, choices=range(1, 13))

    balances = sub.add_parser("init-balances", help="Create missing leave balances for a year")
    balances.add_argument("--year", type=int, required=True)

    sync = sub.add_parser("sync-leave-status", help="Move approved leave to IN_PROGRESS / COMPLETED")
    sync.add_argument("--today", type=date.fromisoformat, default=None)
    return parser


async def run(args: argparse.Namespace) -> int:
    async with AsyncSessionLocal() as session:
        if args.command == "monthly-summary":
            result = await generate_monthly_summary(session, args.year, args.month)
        elif args.command == "init-balances":
            result = await initialize_leave_balances_for_year(session, args.year)
        else:
            progress = await sync_leave_progress(session, args.today)
            print(f"Started: {progress.started}, completed: {progress.completed}")
            return 0

    print(
        f"Processed: {result.processed}, created: {result.created}, "
        f"updated: {result.updated}, skipped: {result.skipped}, failed: {len(result.failures)}"
    )
    for failure in result.failures:
        print(f"  FAILED {failure.employee_id}: {failure.error}", file=sys.stderr)
    return 0 if result.ok else 1


def main(argv=None) -> None:
    configure_logging()
    args = build_parser().parse_args(argv)
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
