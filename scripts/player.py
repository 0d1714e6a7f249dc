#!/usr/bin/env python3
"""
Headless kiosk player.

Follows one store's clip list with the same sequencing a screen uses and
logs every instruction (load / play / loop / standby countdown).

Run:
  python scripts/player.py [--store http://localhost:3000]
"""

import argparse
import asyncio

from tvwall.core import logger as _logsetup  # noqa: F401
from tvwall.core.config import settings
from tvwall.console.client import StoreClient
from tvwall.player import KioskPlayer, LogDisplay


async def run(store: str) -> None:
    async with StoreClient(store) as client:
        await KioskPlayer(client, LogDisplay()).run()


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--store", default=settings.PLAYER_STORE_URL, help="Store address")
    args = ap.parse_args()
    try:
        asyncio.run(run(args.store))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
