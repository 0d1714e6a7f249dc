"""Kiosk player: playback sequencing over a store's clip list."""

from tvwall.player.runner import KioskPlayer, LogDisplay
from tvwall.player.sequencer import Action, Command, PlayerSequencer, PlayerState

__all__ = ["Action", "Command", "KioskPlayer", "LogDisplay", "PlayerSequencer", "PlayerState"]
