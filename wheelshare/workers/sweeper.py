"""
Background Reservation Sweeper
==============================

Runs every ``RESERVATION_SWEEP_INTERVAL_SECONDS`` (default 60 s).

Reservations expire by the clock, but their rows stay ACTIVE (and keep
their vehicles RESERVED) until something writes the EXPIRED status.  Each
cycle flips every overdue hold to EXPIRED and releases its vehicle in a
single unit of work.

Concurrency safety
------------------
* **Redis distributed lock** ensures only one API process sweeps per cycle.
* **Version column** on ``vehicles``: if a user's request touches the same
  vehicle concurrently, one of the two commits fails cleanly and the sweep
  is retried on the next cycle.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from wheelshare.application.reservations import expire_reservations
from wheelshare.config import settings
from wheelshare.infrastructure.locks import DistributedLock
from wheelshare.infrastructure.redis_client import get_redis
from wheelshare.infrastructure.unit_of_work import UnitOfWorkContext

logger = logging.getLogger(__name__)

_task: Optional[asyncio.Task] = None
_stop_event: Optional[asyncio.Event] = None


# ── Public API ────────────────────────────────────────────────────────


async def start_sweeper() -> None:
    global _task, _stop_event
    _stop_event = asyncio.Event()
    _task = asyncio.create_task(_loop())
    logger.info(
        "Reservation sweeper started (interval=%ds)",
        settings.reservation_sweep_interval_seconds,
    )


async def stop_sweeper() -> None:
    if _stop_event:
        _stop_event.set()
    if _task:
        _task.cancel()
        try:
            await _task
        except asyncio.CancelledError:
            pass
    logger.info("Reservation sweeper stopped")


# ── Internals ─────────────────────────────────────────────────────────


async def _loop() -> None:
    """Periodic loop: run a sweep then sleep."""
    assert _stop_event is not None
    while not _stop_event.is_set():
        try:
            await run_sweep_cycle()
        except Exception:
            logger.exception("Unhandled error in reservation sweep")
        try:
            await asyncio.wait_for(
                _stop_event.wait(),
                timeout=settings.reservation_sweep_interval_seconds,
            )
            break
        except asyncio.TimeoutError:
            pass  # next cycle


async def run_sweep_cycle(uow_context=UnitOfWorkContext) -> int:
    """Execute one sweep.  Returns the number of reservations expired."""
    redis = await get_redis()
    lock = DistributedLock(
        redis,
        "reservation_sweeper",
        ttl_seconds=settings.reservation_sweep_lock_ttl_seconds,
    )

    if not await lock.acquire():
        logger.debug("Lock held by another worker, skipping sweep")
        return 0

    try:
        async with uow_context() as uow:
            result = await expire_reservations(uow)
    finally:
        await lock.release()

    if result.is_failure:
        logger.warning("Reservation sweep skipped (%s); retrying next cycle", result.error)
        return 0
    return result.value
