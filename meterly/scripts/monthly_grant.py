"""Run the monthly credit grant from the command line.

Usage:
    python -m meterly.scripts.monthly_grant [--period YYYY-MM] [--limit N] [--dry]

Builds the same services as the API, grants every account its plan's monthly
credits for the period and prints the run as JSON. Exits with status 1 when
any account failed. Safe to run repeatedly for the same period.
"""

import argparse
import asyncio
import sys
from typing import Optional, Sequence

from meterly import schemas
from meterly.core.config import Settings, settings
from meterly.core.container import build_runtime
from meterly.core.logging import logger


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Grant monthly plan credits to every account",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Grant the current month
  python -m meterly.scripts.monthly_grant

  # Preview a specific month for the newest 100 accounts
  python -m meterly.scripts.monthly_grant --period 2025-01 --limit 100 --dry
        """,
    )
    parser.add_argument(
        "--period",
        default=None,
        help="Grant period YYYY-MM (default: current UTC month)",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Maximum number of accounts to process (default: MONTHLY_GRANT_BATCH_LIMIT)",
    )
    parser.add_argument(
        "--dry",
        action="store_true",
        help="Compute results without writing anything",
    )
    return parser.parse_args(argv)


async def run(args: argparse.Namespace, app_settings: Settings) -> schemas.GrantRun:
    """Build the runtime, run the batch grant and dispose the engine."""
    engine, services = build_runtime(app_settings)
    try:
        return await services.grants.run_monthly_grant_for_all_users(
            period=args.period, limit=args.limit, dry_run=args.dry
        )
    finally:
        await engine.dispose()


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Entry point. Returns the process exit code."""
    args = parse_args(argv)
    grant_run = asyncio.run(run(args, settings))
    print(grant_run.model_dump_json(by_alias=True, indent=2))

    if grant_run.summary.failed:
        logger.error(f"Monthly grant for {grant_run.period}: {grant_run.summary.failed} failed")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
