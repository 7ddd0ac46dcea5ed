"""Expiry cleanup worker for the storefront domain.

Runs a cleanup pass immediately and then every ``--interval`` seconds until
the process receives SIGINT or SIGTERM. A pass that is already running is
allowed to finish before the worker exits.

Usage:
    python src/worker.py                  # Every 5 minutes (CLEANUP_INTERVAL_SECONDS overrides)
    python src/worker.py --interval 60    # Every minute
    python src/worker.py --once           # Single pass; exit status 1 if it had errors
"""

import argparse
import asyncio
import signal
import sys

import structlog

from storefront.cleanup.orchestrator import CleanupOrchestrator
from storefront.cleanup.report import CleanupIncompleteError
from storefront.cleanup.scheduler import run_cleanup_scheduler
from storefront.config import CleanupSettings

logger = structlog.get_logger(__name__)


def _get_domain():
    from storefront.domain import storefront

    storefront.init()
    return storefront


def run_once(domain, settings) -> int:
    with domain.domain_context():
        report = CleanupOrchestrator(settings=settings).run_cleanup()
    try:
        report.raise_for_errors()
    except CleanupIncompleteError as e:
        logger.error(str(e), run_id=report.run_id, failed_stages=e.failed_stages)
        return 1
    return 0


async def run(domain, settings):
    stop_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    await run_cleanup_scheduler(
        CleanupOrchestrator(settings=settings),
        stop_event,
        interval=settings.interval_seconds,
        domain=domain,
    )


def main():
    parser = argparse.ArgumentParser(description="Storefront expiry cleanup worker")
    parser.add_argument(
        "--interval",
        type=float,
        help="Seconds between cleanup passes (default: CLEANUP_INTERVAL_SECONDS or 300)",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single cleanup pass and exit",
    )
    args = parser.parse_args()

    settings = CleanupSettings.from_env()
    if args.interval is not None:
        settings = settings.model_copy(update={"interval_seconds": args.interval})

    domain = _get_domain()

    if args.once:
        sys.exit(run_once(domain, settings))

    asyncio.run(run(domain, settings))


if __name__ == "__main__":
    main()
