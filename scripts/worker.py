from __future__ import annotations

"""
Console sync worker.

Responsibilities:
- Load the display registry (`REGISTRY_FILE`)
- Poll every registered store on the APScheduler tick; each endpoint is
  refreshed every `POLL_INTERVAL_SECONDS` and persisted back to the file

Env:
  REGISTRY_FILE=televisions.json
  POLL_INTERVAL_SECONDS=30
  POLL_TICK_SECONDS=1

Run:
  python scripts/worker.py [--registry path] [--once]
"""

import argparse
import asyncio
import logging
from pathlib import Path

from tvwall.core import logger as _logsetup  # noqa: F401
from tvwall.core.config import settings
from tvwall.console.poller import SyncPoller, start_sync_scheduler
from tvwall.console.registry import TelevisionRegistry

log = logging.getLogger("tvwall.worker")


async def run(registry_path: Path, *, once: bool = False) -> None:
    registry = TelevisionRegistry(registry_path)
    poller = SyncPoller(registry)
    registry.load()

    if once:
        await poller.tick()
        await poller.wait_idle()
        for e in registry.list():
            log.info("%s | %s | %s asset(s)", e.caption, e.server_status.value if e.server_status else "unknown", len(e.cached_assets))
        return

    scheduler = start_sync_scheduler(poller)
    try:
        await asyncio.Event().wait()
    finally:
        scheduler.shutdown(wait=False)
        await poller.wait_idle()


def main() -> None:
    ap = argparse.ArgumentParser(description="Poll registered TV stores")
    ap.add_argument("--registry", type=Path, default=settings.REGISTRY_FILE, help="Registry JSON file")
    ap.add_argument("--once", action="store_true", help="Poll every endpoint once and exit")
    args = ap.parse_args()

    try:
        asyncio.run(run(args.registry, once=args.once))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
