from __future__ import annotations

"""
TV Wall • Sync Poller
=====================

Keeps every registered display's cached asset list in step with its remote
store and tracks reachability.

Per endpoint, one poll cycle is:

    checking → GET /status → online | offline
             → (online) GET /list → per-asset GET /xml/… → remaining days

- An unreachable store flips the endpoint `offline` and leaves its cached
  list untouched (stale-but-present beats empty).
- A successful listing replaces the cached list wholesale.
- A metadata document that cannot be fetched or decoded only costs that
  asset its remaining-validity value.

Scheduling
----------
`PollSchedule` holds `endpoint id → last polled` (monotonic seconds) and says
which endpoints are due; it is pure and driven by an injected clock.
`SyncPoller.tick()` starts one task per due endpoint without awaiting them, so
a slow store never holds up the others. A registry count change resets the
schedule: every endpoint is due on the next tick.

`start_sync_scheduler` runs `tick()` on an APScheduler interval job.
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional

from tvwall.console.client import StoreClient, StoreClientError
from tvwall.console.registry import (
    CachedAsset,
    DisplayEndpoint,
    EndpointStatus,
    TelevisionRegistry,
    UnknownEndpoint,
)
from tvwall.core.config import normalize_store_url, settings
from tvwall.expiration import metadata as codec
from tvwall.expiration.evaluator import remaining_days, utcnow
from tvwall.schemas import AssetOut

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str], StoreClient]


# ─────────────────────────────────────────────────────────────────────────────
# ⏰ Schedule (pure)
# ─────────────────────────────────────────────────────────────────────────────
class PollSchedule:
    """`(endpoint, last polled)` bookkeeping for a fixed interval."""

    def __init__(self, interval: float) -> None:
        self.interval = interval
        self._last: Dict[str, float] = {}

    def due(self, endpoint_ids: Iterable[str], now: float) -> List[str]:
        """Ids never polled, or polled at least `interval` ago, in input order."""
        out = []
        for eid in endpoint_ids:
            last = self._last.get(eid)
            if last is None or now - last >= self.interval:
                out.append(eid)
        return out

    def mark(self, endpoint_id: str, now: float) -> None:
        self._last[endpoint_id] = now

    def forget(self, endpoint_id: str) -> None:
        self._last.pop(endpoint_id, None)

    def prune(self, endpoint_ids: Iterable[str]) -> None:
        keep = set(endpoint_ids)
        for eid in [e for e in self._last if e not in keep]:
            del self._last[eid]

    def reset(self) -> None:
        self._last.clear()

    def last_polled(self, endpoint_id: str) -> Optional[float]:
        return self._last.get(endpoint_id)


# ─────────────────────────────────────────────────────────────────────────────
# 🔁 Poller
# ─────────────────────────────────────────────────────────────────────────────
class SyncPoller:
    def __init__(
        self,
        registry: TelevisionRegistry,
        *,
        client_factory: Optional[ClientFactory] = None,
        interval: float = settings.POLL_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        today: Callable[[], datetime] = utcnow,
    ) -> None:
        self.registry = registry
        self.schedule = PollSchedule(interval)
        self._client_factory = client_factory or StoreClient
        self._clock = clock
        self._today = today
        self._in_flight: Dict[str, asyncio.Task] = {}
        self._resolved: Dict[str, EndpointStatus] = {}
        registry.subscribe(self.on_registry_change)

    # ── Registry hook ───────────────────────────────────────────────────────
    def on_registry_change(self, count: int) -> None:
        logger.debug("Registry now holds %s endpoint(s); polling all on next tick", count)
        self.schedule.reset()

    def _update(self, endpoint_id: str, **changes) -> Optional[DisplayEndpoint]:
        try:
            return self.registry.update(endpoint_id, **changes)
        except UnknownEndpoint:
            # removed while its poll was in flight
            return None
        except OSError:
            # in-memory state is updated before the file is written
            logger.warning("Registry file not written after updating %s", endpoint_id, exc_info=True)
            return self.registry.get(endpoint_id) if endpoint_id in self.registry else None

    def _set_status(self, endpoint: DisplayEndpoint, status: EndpointStatus) -> None:
        """Record a resolved status; transitions are logged."""
        if self._update(endpoint.id, server_status=status) is None:
            return
        previous = self._resolved.get(endpoint.id)
        self._resolved[endpoint.id] = status
        if previous != status:
            logger.info("Endpoint %s (%s) is %s", endpoint.caption, endpoint.store_address, status.value)

    # ── Reachability ────────────────────────────────────────────────────────
    async def poll_reachability(self, endpoint_id: str) -> EndpointStatus:
        """Liveness probe; never raises. Unknown ids report `offline`."""
        try:
            endpoint = self.registry.get(endpoint_id)
        except UnknownEndpoint:
            return EndpointStatus.OFFLINE

        try:
            async with self._client_factory(endpoint.store_address) as client:
                await client.status()
        except StoreClientError as e:
            logger.info("Store %s unreachable: %s", endpoint.store_address, e)
            status = EndpointStatus.OFFLINE
        else:
            status = EndpointStatus.ONLINE

        self._set_status(endpoint, status)
        return status

    # ── Assets ──────────────────────────────────────────────────────────────
    async def _remaining_days(self, client: StoreClient, asset: AssetOut) -> Optional[int]:
        if not asset.xmlUrl:
            return None
        try:
            document = codec.decode(await client.fetch_metadata(asset.xmlUrl))
        except (StoreClientError, codec.MetadataError) as e:
            logger.debug("No validity for %s: %s", asset.filename, e)
            return None
        if document.expiration is None:
            return None
        return remaining_days(document.expiration, self._today())

    async def poll_assets(self, endpoint_id: str) -> bool:
        """
        Refresh one endpoint's cached list. Returns False (endpoint `offline`,
        cache untouched) when the listing cannot be fetched.
        """
        try:
            endpoint = self.registry.get(endpoint_id)
        except UnknownEndpoint:
            return False

        async with self._client_factory(endpoint.store_address) as client:
            try:
                listing = await client.list_assets()
            except StoreClientError as e:
                logger.info("Listing %s failed, keeping %s cached asset(s): %s",
                            endpoint.store_address, len(endpoint.cached_assets), e)
                self._set_status(endpoint, EndpointStatus.OFFLINE)
                return False

            days = await asyncio.gather(*(self._remaining_days(client, a) for a in listing.videos))

        assets = [
            CachedAsset(
                filename=a.filename,
                url=a.url,
                download_url=a.downloadUrl,
                size=a.size,
                created=a.created,
                expiration_days=d,
            )
            for a, d in zip(listing.videos, days)
        ]
        if self._update(endpoint_id, cached_assets=assets, server_status=EndpointStatus.ONLINE) is None:
            return False
        logger.debug("Endpoint %s: %s asset(s) synced", endpoint.caption, len(assets))
        return True

    # ── Cycle ───────────────────────────────────────────────────────────────
    async def poll(self, endpoint_id: str) -> EndpointStatus:
        """One full cycle: checking → reachability → (online) assets."""
        try:
            endpoint = self.registry.get(endpoint_id)
        except UnknownEndpoint:
            return EndpointStatus.OFFLINE
        self._update(endpoint_id, server_status=EndpointStatus.CHECKING)

        try:
            status = await self.poll_reachability(endpoint_id)
            if status == EndpointStatus.ONLINE and not await self.poll_assets(endpoint_id):
                status = EndpointStatus.OFFLINE
        except Exception:
            logger.exception("Poll of %s crashed", endpoint.store_address)
            self._update(endpoint_id, server_status=EndpointStatus.OFFLINE)
            status = EndpointStatus.OFFLINE
        return status

    async def tick(self) -> List[asyncio.Task]:
        """Start a poll task for each due endpoint that has none in flight."""
        now = self._clock()
        ids = [e.id for e in self.registry.list()]
        self.schedule.prune(ids)

        started: List[asyncio.Task] = []
        for eid in self.schedule.due(ids, now):
            if eid in self._in_flight:
                continue
            started.append(self._start(eid, now))
        return started

    def _start(self, endpoint_id: str, now: float) -> asyncio.Task:
        self.schedule.mark(endpoint_id, now)
        task = asyncio.create_task(self.poll(endpoint_id), name=f"poll:{endpoint_id}")
        self._in_flight[endpoint_id] = task
        task.add_done_callback(lambda _t, eid=endpoint_id: self._in_flight.pop(eid, None))
        return task

    async def _poll_after_running(self, endpoint_id: str) -> EndpointStatus:
        # a running poll may have listed before the change being refreshed for
        running = self._in_flight.get(endpoint_id)
        while running is not None:
            await asyncio.wait([running])
            running = self._in_flight.get(endpoint_id)
        return await self._start(endpoint_id, self._clock())

    async def refresh_store(self, store_address: str) -> List[EndpointStatus]:
        """
        Poll now every endpoint backed by `store_address` (e.g. after an upload
        batch). An endpoint with a poll already running is polled again once
        that one finishes, never alongside it.
        """
        address = normalize_store_url(store_address)
        endpoints = self.registry.sharing_address(address)
        return list(await asyncio.gather(*(self._poll_after_running(e.id) for e in endpoints)))

    async def wait_idle(self) -> None:
        """Wait for every in-flight poll to finish."""
        while self._in_flight:
            await asyncio.gather(*list(self._in_flight.values()))

    @property
    def in_flight(self) -> List[str]:
        return list(self._in_flight)


# ─────────────────────────────────────────────────────────────────────────────
# ⏱️ Scheduler (APScheduler)
# ─────────────────────────────────────────────────────────────────────────────
def start_sync_scheduler(
    poller: SyncPoller,
    *,
    tick_seconds: Optional[float] = None,
):
    """
    Run `poller.tick()` every `tick_seconds` (default POLL_TICK_SECONDS) on an
    AsyncIOScheduler. Must be called with an event loop running.
    """
    from apscheduler.schedulers.asyncio import AsyncIOScheduler
    from apscheduler.triggers.interval import IntervalTrigger

    seconds = float(tick_seconds if tick_seconds is not None else settings.POLL_TICK_SECONDS)

    scheduler = AsyncIOScheduler(timezone=timezone.utc)
    scheduler.add_job(
        poller.tick,
        IntervalTrigger(seconds=seconds, timezone=timezone.utc),
        id="tvwall_sync_tick",
        max_instances=1,
        coalesce=True,
        next_run_time=datetime.now(timezone.utc),
    )
    scheduler.start()
    logger.info("Sync scheduler started | tick=%ss, interval=%ss", seconds, poller.schedule.interval)
    return scheduler


__all__ = ["ClientFactory", "PollSchedule", "SyncPoller", "start_sync_scheduler"]
