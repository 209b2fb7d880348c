"""The hero point workflow controller.

Three triggers open the same confirmation workflow:

* session start: countdown reset to the campaign default, no pre-filled pick
* manual check: shows the countdown as it is, no pre-filled pick
* timer expired: countdown reset to the default, random pre-filled pick

At most one workflow per user is open at a time; overlapping triggers are
dropped.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from herokeeper.models import HeroPointSettings

from .awards import HeroPointAwarder
from .messages import HeroPointMessages
from .resolver import TIMER_BUTTON, resolve_response
from .selector import CandidateSelector
from .timer import HeroPointTimer
from .types import (
    ALL_CHARACTERS,
    ConfirmationPresenter,
    HandlerContext,
    Notifier,
    Resolution,
    SettingsSource,
    TriggerState,
    WorkflowSeed,
)

logger = logging.getLogger(__name__)


class HeroPointHandler:
    def __init__(
        self,
        timer: HeroPointTimer,
        selector: CandidateSelector,
        awarder: HeroPointAwarder,
        presenter: ConfirmationPresenter,
        notifier: Notifier,
        settings: SettingsSource,
        messages: HeroPointMessages | None = None,
    ) -> None:
        self.timer = timer
        self.selector = selector
        self.awarder = awarder
        self.presenter = presenter
        self.notifier = notifier
        self.settings = settings
        self.messages = messages or HeroPointMessages()
        self._open: set[HandlerContext] = set()
        self.timer.on_expire = self.call_hero_point_handler

    @property
    def clock(self) -> Callable[[], int]:
        return self.timer.clock

    def is_open(self, ctx: HandlerContext) -> bool:
        return ctx in self._open

    async def _seed_minutes(
        self, ctx: HandlerContext, state: TriggerState, settings: HeroPointSettings
    ) -> int:
        if state is TriggerState.MANUAL_CHECK:
            return await self.timer.calc_remaining_minutes(ctx, True)
        return settings.default_timeout_minutes

    async def hero_point_handler(
        self, ctx: HandlerContext, state: TriggerState
    ) -> Resolution | None:
        """Run one confirmation workflow for *ctx*.

        Returns the resolved outcome, or None when a workflow for *ctx* was
        already open and this trigger was dropped.
        """
        if ctx in self._open:
            logger.info(
                f"Hero point workflow already open for {ctx.user_id}, dropping {state.value}"
            )
            return None
        self._open.add(ctx)

        try:
            settings = await self.settings.get(ctx.campaign_id)
            remaining = await self._seed_minutes(ctx, state, settings)
            candidates = await self.selector.candidates(ctx.campaign_id)
            seed = WorkflowSeed(
                state=state,
                title=self.messages.workflow_title(remaining),
                remaining_minutes=remaining,
                timer_minutes=remaining if remaining > 0 else settings.default_timeout_minutes,
                candidates=candidates,
                default_selection=self.selector.default_selection(state, candidates),
                max_hero_points=settings.max_hero_points,
                max_timer_minutes=settings.default_timeout_minutes,
            )

            result = await self.presenter.present(ctx, seed)
            resolution = resolve_response(
                result, max_minutes=settings.default_timeout_minutes
            )

            if result.button == TIMER_BUTTON:
                await self.timer.start(ctx, resolution.new_timer_minutes)
            else:
                await self.timer.stop(ctx)

            await self.notifier.publish(
                ctx,
                self.messages.remaining_time(
                    await self.timer.calc_remaining_minutes(ctx, False), self.clock()
                ),
                whisper_to=[ctx.user_id],
            )
            await self.awarder.apply(ctx, resolution)
            return resolution
        finally:
            self._open.discard(ctx)

    async def call_hero_point_handler(self, ctx: HandlerContext) -> Resolution | None:
        return await self.hero_point_handler(ctx, TriggerState.TIMER_EXPIRED)

    # Entry points for the surrounding application

    async def start_timer(self, ctx: HandlerContext, remaining_minutes: int) -> None:
        await self.timer.start(ctx, remaining_minutes)

    async def stop_timer(self, ctx: HandlerContext) -> None:
        await self.timer.stop(ctx)

    async def calc_remaining_minutes(self, ctx: HandlerContext, use_default: bool) -> int:
        return await self.timer.calc_remaining_minutes(ctx, use_default)

    async def reset_hero_points(self, ctx: HandlerContext, amount: int) -> None:
        await self.awarder.reset_hero_points(ctx.campaign_id, amount)
        await self.notifier.publish(ctx, self.messages.reset_for_all(amount))

    async def add_hero_points(
        self, ctx: HandlerContext, amount: int, target: str = ALL_CHARACTERS
    ) -> None:
        updated = await self.awarder.add_hero_points(ctx.campaign_id, amount, target)
        if target == ALL_CHARACTERS:
            await self.notifier.publish(ctx, self.messages.added_for_all(amount))
        elif updated:
            await self.notifier.publish(
                ctx, self.messages.added_for_character(updated[0].name, amount)
            )
