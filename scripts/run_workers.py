#!/usr/bin/env python3
"""Run the due-reminder batch job from a terminal or cron.

Examples:
    python scripts/run_workers.py --once
    python scripts/run_workers.py --once --as-of 2026-01-31T09:00:00
    python scripts/run_workers.py --loop --interval 30 --max-iterations 5

DATABASE_URL, WORKER_BATCH_SIZE and WORKER_POLL_INTERVAL_SECONDS are read
from the environment (or .env).
"""

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path

# Allow running from a checkout without installing the package
sys.path.insert(0, str(Path(__file__).parent.parent))

from idmonitor.workers import (  # noqa: E402
    RunnerResult,
    configure_worker_logging,
    run_worker_loop,
    run_worker_once,
)

logger = logging.getLogger("idmonitor.workers.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Dispatch due document expiry reminders",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument("--once", action="store_true", help="Process one batch and exit")
    mode.add_argument("--loop", action="store_true", help="Keep processing batches")

    parser.add_argument("--batch-size", type=int, help="Reminders per batch")
    parser.add_argument(
        "--as-of",
        type=datetime.fromisoformat,
        help="UTC timestamp to treat as now (--once only)",
    )
    parser.add_argument("--interval", type=int, help="Seconds between batches (--loop only)")
    parser.add_argument("--max-iterations", type=int, help="Stop after N batches (--loop only)")

    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="DEBUG logging")
    verbosity.add_argument("-q", "--quiet", action="store_true", help="WARNING logging")
    return parser


def print_summary(result: RunnerResult) -> None:
    print(f"\n--- Due reminders as of {result.now.isoformat(timespec='seconds')} ---")
    if result.batch is not None:
        batch = result.batch
        print(
            f"{batch.status.value}: dispatched={batch.processed_count} "
            f"failed={batch.failed_count} already_claimed={batch.skipped_count}"
        )
        for item in batch.errors:
            print(f"  {item['item_id']}: {item['error']}")
    if result.error:
        print(f"error: {result.error}")


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    level = logging.INFO
    if args.verbose:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.WARNING
    configure_worker_logging(level)

    if args.loop:
        run_worker_loop(
            interval_seconds=args.interval,
            max_iterations=args.max_iterations,
            batch_size=args.batch_size,
        )
        return 0

    result = run_worker_once(batch_size=args.batch_size, now=args.as_of)
    print_summary(result)
    # Non-zero on any fetch or item failure
    return 0 if result.ok else 1


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        logger.info("Interrupted")
        sys.exit(130)
