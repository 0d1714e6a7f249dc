from __future__ import annotations

"""
TV Wall • Player Sequencer
==========================

Pure, index-based playback state over a list that can change under it. The
sequencer never does I/O: every transition returns a `Command` telling the
display what to do next (load a clip, replay it, wait and retry, show the
standby countdown, or reset).

States
------
    loading ──loaded──▶ playing ──ended──▶ loading[next]   (2+ clips)
                           │  └───ended──▶ playing (replay) (1 clip)
                           └─error──▶ loading[next] | retry same after delay
    empty / error ──countdown hits 0──▶ reset (fresh start)

Index rules
-----------
- Advancing uses the list length at the moment of advancing.
- After a refresh, a clip that is still listed keeps playing (the index
  follows it). A clip that disappeared forces a reload at the same index,
  or at 0 when that index is now out of range.
"""

from dataclasses import dataclass
from enum import Enum as PyEnum
from typing import List, Optional, Sequence

from tvwall.schemas import AssetOut

DEFAULT_COUNTDOWN_SECONDS = 10
DEFAULT_RETRY_DELAY_SECONDS = 3.0

EMPTY_MESSAGE = "No videos found"


class PlayerState(str, PyEnum):
    LOADING = "loading"
    PLAYING = "playing"
    EMPTY = "empty"
    ERROR = "error"


class Action(str, PyEnum):
    LOAD = "load"
    PLAY = "play"
    REPLAY = "replay"
    RETRY_LATER = "retry_later"
    STANDBY = "standby"
    RESET = "reset"
    NONE = "none"


@dataclass(frozen=True)
class Command:
    action: Action
    item: Optional[AssetOut] = None
    delay: float = 0.0
    message: Optional[str] = None
    countdown: Optional[int] = None


NOTHING = Command(Action.NONE)


class PlayerSequencer:
    def __init__(
        self,
        *,
        countdown_seconds: int = DEFAULT_COUNTDOWN_SECONDS,
        retry_delay: float = DEFAULT_RETRY_DELAY_SECONDS,
    ) -> None:
        self.countdown_seconds = countdown_seconds
        self.retry_delay = retry_delay
        self.reset()

    # ── Introspection ───────────────────────────────────────────────────────
    @property
    def current(self) -> Optional[AssetOut]:
        if 0 <= self.index < len(self.items):
            return self.items[self.index]
        return None

    @property
    def label(self) -> str:
        """Overlay text, e.g. `2/5 - video7.mp4`."""
        item = self.current
        if item is None:
            return ""
        return f"{self.index + 1}/{len(self.items)} - {item.filename}"

    def _standby(self) -> Command:
        return Command(Action.STANDBY, message=self.error or EMPTY_MESSAGE, countdown=self.countdown)

    def _load(self) -> Command:
        self.state = PlayerState.LOADING
        return Command(Action.LOAD, item=self.current)

    # ── Transitions ─────────────────────────────────────────────────────────
    def reset(self) -> Command:
        """Back to a fresh start: no clips, index 0, full countdown."""
        self.items: List[AssetOut] = []
        self.index = 0
        self.state = PlayerState.LOADING
        self.error: Optional[str] = None
        self.countdown = self.countdown_seconds
        return Command(Action.RESET)

    def refresh(self, items: Sequence[AssetOut]) -> Command:
        """Adopt a freshly fetched list."""
        items = list(items)
        if not items:
            was_waiting = self.state in (PlayerState.EMPTY, PlayerState.ERROR)
            self.items, self.index = [], 0
            self.state, self.error = PlayerState.EMPTY, None
            if not was_waiting:
                self.countdown = self.countdown_seconds
            return self._standby()

        previous = self.current
        self.items = items
        self.error = None
        self.countdown = self.countdown_seconds

        if previous is None or self.state in (PlayerState.EMPTY, PlayerState.ERROR):
            self.index = 0
            return self._load()

        names = [i.filename for i in items]
        if previous.filename in names:
            self.index = names.index(previous.filename)
            return NOTHING

        if self.index >= len(items):
            self.index = 0
        return self._load()

    def refresh_failed(self, reason: str) -> Command:
        """
        The list could not be fetched. While clips are playing the last list
        is kept; with nothing to play the standby countdown runs.
        """
        if self.items and self.state in (PlayerState.LOADING, PlayerState.PLAYING):
            return NOTHING
        was_waiting = self.state in (PlayerState.EMPTY, PlayerState.ERROR)
        self.state, self.error = PlayerState.ERROR, reason
        if not was_waiting:
            self.countdown = self.countdown_seconds
        return self._standby()

    def on_loaded(self) -> Command:
        if self.state != PlayerState.LOADING or self.current is None:
            return NOTHING
        self.state = PlayerState.PLAYING
        return Command(Action.PLAY, item=self.current)

    def on_ended(self) -> Command:
        if not self.items:
            return NOTHING
        if len(self.items) == 1:
            self.index = 0
            self.state = PlayerState.PLAYING
            return Command(Action.REPLAY, item=self.current)
        self.index = (self.index + 1) % len(self.items)
        return self._load()

    def on_error(self) -> Command:
        """Playback failed: skip ahead, or retry the only clip after a delay."""
        if not self.items:
            return NOTHING
        if len(self.items) == 1:
            self.index = 0
            self.state = PlayerState.LOADING
            return Command(Action.RETRY_LATER, item=self.current, delay=self.retry_delay)
        self.index = (self.index + 1) % len(self.items)
        return self._load()

    def tick(self) -> Command:
        """One countdown second; only meaningful while empty or in error."""
        if self.state not in (PlayerState.EMPTY, PlayerState.ERROR):
            return NOTHING
        self.countdown -= 1
        if self.countdown <= 0:
            return self.reset()
        return self._standby()


__all__ = ["Action", "Command", "PlayerSequencer", "PlayerState"]
