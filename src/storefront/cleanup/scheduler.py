"""Cleanup scheduler: run a cleanup pass now and then every ``interval`` seconds.

Ticks are fixed-rate: the next tick is due ``interval`` seconds after the
previous one was due, not after the previous pass finished. Ticks missed while
a slow pass was running are dropped rather than replayed back to back.

A pass runs to completion on the event loop, so passes never overlap and a
stop request only takes effect between passes. A pass that raises is logged
and the loop carries on with the next tick.
"""

import asyncio
import time

import structlog

from storefront.config import DEFAULT_INTERVAL_SECONDS

logger = structlog.get_logger(__name__)


def _run_pass(orchestrator, domain=None):
    try:
        if domain is not None:
            with domain.domain_context():
                return orchestrator.run_cleanup()
        return orchestrator.run_cleanup()
    except Exception as e:
        logger.exception("Cleanup pass raised", error=str(e))
        return None


async def run_cleanup_scheduler(orchestrator, stop_event: asyncio.Event, interval=DEFAULT_INTERVAL_SECONDS, domain=None):
    """Drive ``orchestrator.run_cleanup`` until ``stop_event`` is set."""
    if interval <= 0:
        raise ValueError("interval must be positive")

    logger.info("Cleanup scheduler started", interval_seconds=interval)
    next_tick = time.monotonic()

    while not stop_event.is_set():
        _run_pass(orchestrator, domain)

        next_tick += interval
        now = time.monotonic()
        if next_tick <= now:
            skipped = int((now - next_tick) // interval) + 1
            next_tick += skipped * interval
            logger.warning("Cleanup pass overran its interval, skipping ticks", skipped=skipped)

        try:
            await asyncio.wait_for(stop_event.wait(), timeout=next_tick - now)
        except TimeoutError:
            continue

    logger.info("Cleanup scheduler stopped")
