"""Standalone runner for the profile reconciliation job.

Replays the watch ledger for every profile, logs drift and repairs it.
Runs every WE_RECONCILE_INTERVAL_SECONDS until stopped, or once with --once.

Usage: python -m watchearn.workers.reconcile_runner [--once] [--dry-run]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal

from watchearn.config import get_settings
from watchearn.database import close_db, get_session_factory, init_db
from watchearn.ledger.reconcile import ReconcileReport, reconcile_all
from watchearn.middleware.logging import setup_logging

logger = logging.getLogger(__name__)

_running = True


async def run_once(*, repair: bool = True) -> list[ReconcileReport]:
    """One full pass over all profiles."""
    async with get_session_factory()() as db:
        drifted = await reconcile_all(db, repair=repair)
    for report in drifted:
        logger.warning(
            "Profile %s drifted (%s)%s",
            report.user_id,
            ", ".join(sorted(report.drift)),
            " - repaired" if report.repaired else "",
        )
    return drifted


async def run_forever(interval: int, *, repair: bool = True) -> None:
    while _running:
        try:
            await run_once(repair=repair)
        except Exception:
            logger.exception("Reconciliation pass failed")

        # Sleep in short steps so a stop signal is honoured promptly
        waited = 0.0
        while _running and waited < interval:
            await asyncio.sleep(1)
            waited += 1


async def main(argv: list[str] | None = None) -> None:
    """Run the reconciliation job."""
    parser = argparse.ArgumentParser(prog="watchearn.workers.reconcile_runner")
    parser.add_argument("--once", action="store_true", help="run a single pass and exit")
    parser.add_argument("--dry-run", action="store_true", help="report drift without repairing")
    args = parser.parse_args(argv)

    settings = get_settings()
    setup_logging(settings)
    await init_db(settings.database_url)

    loop = asyncio.get_running_loop()

    def _stop() -> None:
        global _running  # noqa: PLW0603
        _running = False

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _stop)

    logger.info(
        "Starting reconciliation (interval=%ss, once=%s, dry_run=%s)",
        settings.reconcile_interval_seconds,
        args.once,
        args.dry_run,
    )
    try:
        if args.once:
            await run_once(repair=not args.dry_run)
        else:
            await run_forever(settings.reconcile_interval_seconds, repair=not args.dry_run)
    finally:
        await close_db()
        logger.info("Reconciliation stopped")


def cli() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    cli()
