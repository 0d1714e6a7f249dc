from __future__ import annotations

"""
TV Wall • Kiosk Player Loop
===========================

Drives a `PlayerSequencer` against one asset store:

- refreshes the clip list every `PLAYER_REFRESH_SECONDS`
- runs the one-second standby countdown while there is nothing to play
- turns sequencer `Command`s into calls on a pluggable `Display`
- feeds display events (`loaded`, `ended`, `failed`) back into the sequencer

A real screen implements `Display`; `LogDisplay` only logs, which is what the
headless `scripts/player.py` uses.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Protocol

from tvwall.console.client import StoreClient, StoreClientError
from tvwall.core.config import settings
from tvwall.player.sequencer import Action, Command, PlayerSequencer
from tvwall.schemas import AssetOut

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class Display(Protocol):
    async def load(self, item: AssetOut, label: str) -> None: ...

    async def play(self, item: AssetOut) -> None: ...

    async def replay(self, item: AssetOut) -> None: ...

    async def standby(self, message: str, countdown: int) -> None: ...


class LogDisplay:
    """Headless display: every instruction becomes a log line."""

    async def load(self, item: AssetOut, label: str) -> None:
        logger.info("▶ Loading %s (%s)", label, item.url)

    async def play(self, item: AssetOut) -> None:
        logger.info("▶ Playing %s", item.filename)

    async def replay(self, item: AssetOut) -> None:
        logger.info("🔁 Looping %s", item.filename)

    async def standby(self, message: str, countdown: int) -> None:
        logger.info("⏳ %s | restarting in %ss", message, countdown)


class KioskPlayer:
    def __init__(
        self,
        client: StoreClient,
        display: Display,
        *,
        sequencer: Optional[PlayerSequencer] = None,
        refresh_seconds: float = settings.PLAYER_REFRESH_SECONDS,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.client = client
        self.display = display
        self.sequencer = sequencer or PlayerSequencer(
            countdown_seconds=settings.PLAYER_COUNTDOWN_SECONDS,
            retry_delay=settings.PLAYER_RETRY_DELAY_SECONDS,
        )
        self.refresh_seconds = refresh_seconds
        self._sleep = sleep

    # ── Store ───────────────────────────────────────────────────────────────
    async def refresh(self) -> Command:
        try:
            listing = await self.client.list_assets()
        except StoreClientError as e:
            logger.warning("Clip list unavailable from %s: %s", self.client.base_url, e)
            return await self.apply(self.sequencer.refresh_failed("Cannot reach the video server"))
        return await self.apply(self.sequencer.refresh(listing.videos))

    # ── Display events ──────────────────────────────────────────────────────
    async def loaded(self) -> Command:
        return await self.apply(self.sequencer.on_loaded())

    async def ended(self) -> Command:
        return await self.apply(self.sequencer.on_ended())

    async def failed(self) -> Command:
        logger.warning("Playback failed for %s", self.sequencer.label or "<none>")
        return await self.apply(self.sequencer.on_error())

    async def countdown_step(self) -> Command:
        return await self.apply(self.sequencer.tick())

    # ── Command dispatch ────────────────────────────────────────────────────
    async def apply(self, command: Command) -> Command:
        action = command.action
        if action == Action.LOAD and command.item is not None:
            await self.display.load(command.item, self.sequencer.label)
        elif action == Action.PLAY and command.item is not None:
            await self.display.play(command.item)
        elif action == Action.REPLAY and command.item is not None:
            await self.display.replay(command.item)
        elif action == Action.RETRY_LATER and command.item is not None:
            await self._sleep(command.delay)
            current = self.sequencer.current
            if current is not None:
                await self.display.load(current, self.sequencer.label)
        elif action == Action.STANDBY:
            await self.display.standby(command.message or "", command.countdown or 0)
        elif action == Action.RESET:
            logger.info("Player reset; fetching the clip list again")
            await self.refresh()
        return command

    # ── Loop ────────────────────────────────────────────────────────────────
    async def _stopped_within(self, stop: asyncio.Event, seconds: float) -> bool:
        try:
            await asyncio.wait_for(stop.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return False
        return True

    async def run(self, stop: Optional[asyncio.Event] = None) -> None:
        """Refresh and countdown loops until `stop` is set."""
        stop = stop or asyncio.Event()
        await self.refresh()

        async def _refresh_loop() -> None:
            while not await self._stopped_within(stop, self.refresh_seconds):
                await self.refresh()

        async def _countdown_loop() -> None:
            while not await self._stopped_within(stop, 1):
                await self.countdown_step()

        await asyncio.gather(_refresh_loop(), _countdown_loop())


__all__ = ["Display", "KioskPlayer", "LogDisplay"]
