"""Utility script to notify borrowers about upcoming and overdue due dates."""

from __future__ import annotations

import argparse
import logging
from datetime import timedelta

import anyio

from shelfnote.application.use_cases.notifications import FanOutDispatcher
from shelfnote.domain.entities import BorrowDueSoon, BorrowOverdue, FanOutReport
from shelfnote.infrastructure.database import initialize_database
from shelfnote.utils import now_utc


def parse_args() -> argparse.Namespace:
    """Parse command line arguments for the reminder run."""

    parser = argparse.ArgumentParser(
        description="Send due date reminders to library borrowers.",
    )
    parser.add_argument(
        "--hours",
        type=float,
        default=24.0,
        help="Remind about borrows due within this many hours (default: 24)",
    )
    parser.add_argument(
        "--overdue",
        action="store_true",
        help="Also warn borrowers whose books are already overdue.",
    )
    return parser.parse_args()


def _print_report(label: str, report: FanOutReport) -> None:
    if report.deduplicated:
        print(f"{label}: already sent today, skipped")
        return
    print(
        f"{label}: {report.ok} notified, {len(report.failed)} failed"
        + (" (cancelled)" if report.cancelled else "")
    )
    for failure in report.failed:
        print(f"  {failure.user_id}: {failure.error_kind} {failure.detail or ''}".rstrip())


async def run(hours: float, include_overdue: bool) -> int:
    dispatcher = FanOutDispatcher()
    day = now_utc().strftime("%Y-%m-%d")
    failures = 0

    report = await dispatcher.fan_out(
        BorrowDueSoon(horizon=timedelta(hours=hours)),
        trigger_key=f"borrow-due-soon:{day}:{hours:g}",
    )
    _print_report("Due soon", report)
    failures += len(report.failed)

    if include_overdue:
        report = await dispatcher.fan_out(
            BorrowOverdue(), trigger_key=f"borrow-overdue:{day}"
        )
        _print_report("Overdue", report)
        failures += len(report.failed)
    return failures


def main() -> None:
    """Run the reminder fan-outs using the provided command line arguments."""

    args = parse_args()
    if args.hours <= 0:
        raise SystemExit("--hours must be positive.")

    logging.basicConfig(level=logging.INFO)
    initialize_database()

    failures = anyio.run(run, args.hours, args.overdue)
    if failures:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
