"""Hero point countdown: persisted start/budget, scheduled fire, elapsed time.

The stored start instant and budget are the source of truth. The scheduled
handle only wakes the workflow up and can always be rebuilt from them.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable

from herokeeper.models import TimerRecord

from .types import ExpireCallback, FlagStore, HandlerContext, Scheduler, SettingsSource

logger = logging.getLogger(__name__)

ONE_MINUTE_IN_MS = 60 * 1000

FLAG_PREFIX = "heroPointHandler"
START_TIME_KEY = f"{FLAG_PREFIX}.startTime"
REMAINING_MINUTES_KEY = f"{FLAG_PREFIX}.remainingMinutes"


def now_ms() -> int:
    return int(time.time() * 1000)


def _call_later(delay: float, callback: Callable[[], None]) -> asyncio.Handle:
    return asyncio.get_running_loop().call_later(delay, callback)


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))


def remaining_minutes(
    saved_minutes: int | None,
    saved_start: int | None,
    now: int,
    default_minutes: int,
    use_default: bool,
) -> int:
    """Minutes left on a countdown, negative once it has run out.

    A missing budget counts as ``default_minutes`` when *use_default* is set
    and as 0 otherwise. A missing start instant counts as *now*.
    """
    if saved_minutes is None:
        saved_minutes = default_minutes if use_default else 0
    budget = clamp(saved_minutes, 0, max(default_minutes, 0))
    start = saved_start if saved_start is not None else now
    return budget - (now - start) // ONE_MINUTE_IN_MS


class HeroPointTimer:
    """Timer store and elapsed-time calculator for every user's countdown."""

    def __init__(
        self,
        flags: FlagStore,
        settings: SettingsSource,
        *,
        clock: Callable[[], int] = now_ms,
        scheduler: Scheduler | None = None,
    ) -> None:
        self.flags = flags
        self.settings = settings
        self.clock = clock
        self._schedule = scheduler or _call_later
        self._handles: dict[HandlerContext, asyncio.Handle] = {}
        self._fire_tasks: set[asyncio.Task] = set()
        self.on_expire: ExpireCallback | None = None

    # ==================== Store ====================

    async def load(self, ctx: HandlerContext) -> TimerRecord | None:
        """Return the stored countdown of *ctx*, or None when there is none."""
        flags = await self.flags.get_flags(ctx, FLAG_PREFIX)
        start = flags.get(START_TIME_KEY)
        minutes = flags.get(REMAINING_MINUTES_KEY)
        if start is None and minutes is None:
            return None
        return TimerRecord(
            start_time=int(start) if start is not None else None,
            remaining_minutes=int(minutes) if minutes is not None else None,
            scheduled_fire=self._handles.get(ctx),
        )

    async def stop(self, ctx: HandlerContext) -> None:
        """Delete the countdown of *ctx*. Safe when none exists."""
        self._cancel(ctx)
        await self.flags.unset_flags(ctx, START_TIME_KEY, REMAINING_MINUTES_KEY)
        logger.info(f"Hero point timer stopped for {ctx.user_id} in {ctx.campaign_id}")

    async def start(self, ctx: HandlerContext, remaining: int) -> None:
        """(Re)start the countdown with *remaining* minutes, replacing any prior one."""
        if remaining <= 0:
            await self.stop(ctx)
            return

        settings = await self.settings.get(ctx.campaign_id)
        budget = clamp(remaining, 0, settings.default_timeout_minutes)
        if budget <= 0:
            await self.stop(ctx)
            return

        self._cancel(ctx)
        now = self.clock()
        fire_at = now + budget * ONE_MINUTE_IN_MS
        self._handles[ctx] = self._schedule_fire(ctx, fire_at - now)
        await self.flags.set_flags(
            ctx,
            {START_TIME_KEY: now, REMAINING_MINUTES_KEY: budget},
        )
        logger.info(
            f"Hero point timer started for {ctx.user_id} in {ctx.campaign_id}: {budget} min"
        )

    async def resume(self, ctx: HandlerContext) -> bool:
        """Reschedule a stored countdown whose handle was lost.

        The record is left untouched. An overdue countdown fires right away.
        Returns True when a fire was scheduled.
        """
        if ctx in self._handles:
            return False
        record = await self.load(ctx)
        if record is None or record.start_time is None or record.remaining_minutes is None:
            return False

        settings = await self.settings.get(ctx.campaign_id)
        budget = clamp(record.remaining_minutes, 0, settings.default_timeout_minutes)
        if budget <= 0:
            return False
        fire_at = record.start_time + budget * ONE_MINUTE_IN_MS
        delay = max(fire_at - self.clock(), 0)
        self._handles[ctx] = self._schedule_fire(ctx, delay)
        logger.info(
            f"Hero point timer resumed for {ctx.user_id} in {ctx.campaign_id}, "
            f"fires in {delay // 1000}s"
        )
        return True

    def cancel_all(self) -> None:
        for handle in self._handles.values():
            handle.cancel()
        self._handles.clear()

    def has_scheduled_fire(self, ctx: HandlerContext) -> bool:
        return ctx in self._handles

    @property
    def scheduled_count(self) -> int:
        return len(self._handles)

    # ==================== Elapsed time ====================

    async def calc_remaining_minutes(self, ctx: HandlerContext, use_default: bool) -> int:
        record = await self.load(ctx)
        settings = await self.settings.get(ctx.campaign_id)
        return remaining_minutes(
            record.remaining_minutes if record else None,
            record.start_time if record else None,
            self.clock(),
            settings.default_timeout_minutes,
            use_default,
        )

    async def is_running(self, ctx: HandlerContext) -> bool:
        return await self.calc_remaining_minutes(ctx, False) > 0

    # ==================== Scheduling ====================

    def _cancel(self, ctx: HandlerContext) -> None:
        handle = self._handles.pop(ctx, None)
        if handle is not None:
            handle.cancel()

    def _schedule_fire(self, ctx: HandlerContext, delay_ms: int) -> asyncio.Handle:
        def fire() -> None:
            self._handles.pop(ctx, None)
            task = asyncio.create_task(self._expire(ctx))
            self._fire_tasks.add(task)
            task.add_done_callback(self._fire_tasks.discard)

        return self._schedule(delay_ms / 1000, fire)

    async def _expire(self, ctx: HandlerContext) -> None:
        if self.on_expire is None:
            logger.warning(f"Hero point timer fired for {ctx.user_id} with no handler bound")
            return
        logger.info(f"Hero point timer expired for {ctx.user_id} in {ctx.campaign_id}")
        try:
            await self.on_expire(ctx)
        except Exception:
            logger.exception(f"Hero point handler failed after timer fire for {ctx.user_id}")
