"""
Background task that zeroes periodic points.

Weekly points reset every Monday at 00:00 and monthly points on the 1st at
00:00, both in RESET_TIMEZONE. When both boundaries fall on the same
instant both resets run.
"""

import asyncio
import logging
from datetime import datetime, time, timedelta, timezone
from typing import Awaitable, Callable, List, Optional
from zoneinfo import ZoneInfo

from progression.config import RESET_TIMEZONE
from progression.models.account import PointsPeriod

logger = logging.getLogger(__name__)


def next_weekly_reset(now: datetime, tz: ZoneInfo) -> datetime:
    """First Monday 00:00 strictly after `now`"""
    local = now.astimezone(tz)
    days_ahead = (7 - local.weekday()) % 7 or 7
    return datetime.combine(local.date() + timedelta(days=days_ahead), time.min, tzinfo=tz)


def next_monthly_reset(now: datetime, tz: ZoneInfo) -> datetime:
    """First day of the next month, 00:00"""
    local = now.astimezone(tz)
    if local.month == 12:
        return datetime(local.year + 1, 1, 1, tzinfo=tz)
    return datetime(local.year, local.month + 1, 1, tzinfo=tz)


def next_boundary(now: datetime, tz: ZoneInfo) -> tuple[datetime, List[PointsPeriod]]:
    """
    Earliest upcoming reset and the periods due at that instant

    Returns:
        (boundary, [PointsPeriod, ...])
    """
    candidates = {
        PointsPeriod.WEEKLY: next_weekly_reset(now, tz),
        PointsPeriod.MONTHLY: next_monthly_reset(now, tz),
    }
    boundary = min(candidates.values())
    due = [period for period, moment in candidates.items() if moment == boundary]
    return boundary, due


class PeriodResetScheduler:
    """
    Sleeps until the next weekly/monthly boundary and resets the counters.

    Args:
        reset: Coroutine function taking a PointsPeriod (ProgressionService.reset_period)
        tz_name: Timezone that defines week and month boundaries
        clock: Current aware datetime
        sleep: Awaitable sleep, replaceable in tests
    """

    def __init__(
        self,
        reset: Callable[[PointsPeriod], Awaitable[dict]],
        tz_name: str = RESET_TIMEZONE,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.reset = reset
        self.tz = ZoneInfo(tz_name)
        self.clock = clock
        self.sleep = sleep
        self._running = False
        self._task: Optional[asyncio.Task] = None
        self._last_boundary: Optional[datetime] = None

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the background reset task."""
        if self._running:
            logger.warning("Period reset scheduler is already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._reset_loop())
        logger.info(f"Period reset scheduler started (timezone: {self.tz.key})")

    async def stop(self) -> None:
        """Stop the background reset task."""
        if not self._running:
            return

        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

        logger.info("Period reset scheduler stopped")

    async def run_once(self) -> List[dict]:
        """Wait for the next boundary, then run the resets due at it"""
        now = self.clock()
        if self._last_boundary is not None and now < self._last_boundary:
            # Clock stepped back after the previous round; never run a boundary twice
            now = self._last_boundary

        boundary, due = next_boundary(now, self.tz)
        logger.debug(f"Next period reset at {boundary.isoformat()} ({', '.join(p.value for p in due)})")
        # sleep may return early; resets only run once the boundary has passed
        delay = (boundary - self.clock()).total_seconds()
        while delay > 0:
            await self.sleep(delay)
            delay = (boundary - self.clock()).total_seconds()

        self._last_boundary = boundary
        results = []
        for period in due:
            try:
                results.append(await self.reset(period))
            except Exception as e:
                logger.error(f"Scheduled {period.value} reset failed: {e}", exc_info=True)
        return results

    async def _reset_loop(self) -> None:
        """Main scheduling loop."""
        while self._running:
            await self.run_once()
