# tests/test_console/test_sync_poller.py

import asyncio
import io

import httpx
import pytest

from tvwall.console.client import StoreClient
from tvwall.console.poller import PollSchedule, SyncPoller
from tvwall.console.registry import CachedAsset, EndpointStatus, TelevisionRegistry

from tests.helpers import FIXED_NOW, MP4_BYTES, STORE_BASE_URL


# ─────────────────────────────────────────────────────────────
# Fakes & helpers
# ─────────────────────────────────────────────────────────────

class FakeClock:
    def __init__(self, t: float = 1000.0):
        self.t = t

    def __call__(self) -> float:
        return self.t


def _poller(registry, handler_or_transport, clock=None):
    transport = (
        handler_or_transport
        if isinstance(handler_or_transport, httpx.AsyncBaseTransport)
        else httpx.MockTransport(handler_or_transport)
    )
    return SyncPoller(
        registry,
        client_factory=lambda base: StoreClient(base, transport=transport),
        interval=30,
        clock=clock or FakeClock(),
        today=lambda: FIXED_NOW,
    )


def _status_ok():
    return httpx.Response(200, json={"success": True, "status": "online", "server": "Video Server"})


def _listing(*names, base="http://tv9.local"):
    videos = [
        {
            "filename": n,
            "url": f"{base}/videos/{n}",
            "downloadUrl": f"{base}/download/{n}",
            "xmlFile": n.replace(".mp4", ".xml"),
            "xmlUrl": f"{base}/xml/{n.replace('.mp4', '.xml')}",
            "size": 10,
            "created": "2025-02-01T10:00:00Z",
        }
        for n in names
    ]
    return httpx.Response(200, json={"success": True, "videos": videos, "count": len(videos), "exists": bool(videos)})


def _refused(request):
    raise httpx.ConnectError("connection refused", request=request)


def _cached(*names):
    return [CachedAsset(filename=n, expiration_days=3) for n in names]


# ─────────────────────────────────────────────────────────────
# PollSchedule (pure)
# ─────────────────────────────────────────────────────────────

def test_schedule_due_and_reset():
    s = PollSchedule(30)
    assert s.due(["a", "b"], 0) == ["a", "b"]
    s.mark("a", 0)
    s.mark("b", 10)
    assert s.due(["a", "b"], 29) == []
    assert s.due(["a", "b"], 30) == ["a"]
    assert s.due(["a", "b"], 40) == ["a", "b"]
    s.forget("a")
    assert s.last_polled("a") is None
    s.prune(["c"])
    assert s.last_polled("b") is None
    s.mark("c", 5)
    s.reset()
    assert s.due(["c"], 6) == ["c"]


# ─────────────────────────────────────────────────────────────
# A single poll against a real in-process store
# ─────────────────────────────────────────────────────────────

@pytest.mark.anyio
async def test_poll_computes_remaining_days(app, store):
    store.upload(io.BytesIO(MP4_BYTES), filename_hint="a.mp4", content_type="video/mp4", raw_policy="5")
    store.upload(io.BytesIO(MP4_BYTES), filename_hint="b.mp4", content_type="video/mp4")
    (store.root / "video3.mp4").write_bytes(MP4_BYTES)  # no metadata at all
    store.upload(io.BytesIO(MP4_BYTES), filename_hint="d.mp4", content_type="video/mp4", raw_policy="2020-01-01")

    reg = TelevisionRegistry()
    e = reg.add(STORE_BASE_URL)
    poller = _poller(reg, httpx.ASGITransport(app=app))

    assert await poller.poll(e.id) == EndpointStatus.ONLINE

    tv = reg.get(e.id)
    assert tv.server_status == EndpointStatus.ONLINE
    assert [(a.filename, a.expiration_days) for a in tv.cached_assets] == [
        ("video1.mp4", 5),
        ("video2.mp4", 30),
        ("video3.mp4", None),
        ("video4.mp4", -1886),
    ]
    assert tv.cached_assets[0].download_url == f"{STORE_BASE_URL}/download/video1.mp4"
    assert [a.band for a in tv.cached_assets] == ["expiring", "valid", "unknown", "expired"]


# ─────────────────────────────────────────────────────────────
# Failure handling
# ─────────────────────────────────────────────────────────────

@pytest.mark.anyio
async def test_unreachable_store_keeps_cached_list_and_goes_offline():
    reg = TelevisionRegistry()
    e = reg.add("tv9.local")
    reg.update(e.id, cached_assets=_cached("video1.mp4", "video2.mp4"), server_status=EndpointStatus.ONLINE)

    poller = _poller(reg, _refused)
    assert await poller.poll(e.id) == EndpointStatus.OFFLINE

    tv = reg.get(e.id)
    assert tv.server_status == EndpointStatus.OFFLINE
    assert [a.filename for a in tv.cached_assets] == ["video1.mp4", "video2.mp4"]
    assert tv.cached_assets[0].expiration_days == 3


@pytest.mark.anyio
async def test_listing_failure_after_status_ok_keeps_cache():
    def handler(request):
        if request.url.path == "/status":
            return _status_ok()
        return httpx.Response(500, json={"error": "boom"})

    reg = TelevisionRegistry()
    e = reg.add("tv9.local")
    reg.update(e.id, cached_assets=_cached("video1.mp4"))

    assert await _poller(reg, handler).poll(e.id) == EndpointStatus.OFFLINE
    assert [a.filename for a in reg.get(e.id).cached_assets] == ["video1.mp4"]


@pytest.mark.anyio
async def test_listing_replaces_cache_wholesale_and_bad_metadata_only_costs_that_asset():
    def handler(request):
        path = request.url.path
        if path == "/status":
            return _status_ok()
        if path == "/list":
            return _listing("video1.mp4", "video2.mp4", "video3.mp4")
        if path == "/xml/video1.xml":
            return httpx.Response(200, text="<video><nome>video1.mp4</nome>")
        if path == "/xml/video2.xml":
            return httpx.Response(
                200, text="<video><nome>video2.mp4</nome><prazoValidade>2025-03-11</prazoValidade></video>"
            )
        return httpx.Response(404, json={"error": "Metadata file not found"})

    reg = TelevisionRegistry()
    e = reg.add("tv9.local")
    reg.update(e.id, cached_assets=_cached("video8.mp4", "video9.mp4"))

    assert await _poller(reg, handler).poll(e.id) == EndpointStatus.ONLINE
    assert [(a.filename, a.expiration_days) for a in reg.get(e.id).cached_assets] == [
        ("video1.mp4", None),
        ("video2.mp4", 10),
        ("video3.mp4", None),
    ]


@pytest.mark.anyio
async def test_assets_without_metadata_link_are_not_fetched():
    fetched = []

    def handler(request):
        if request.url.path == "/status":
            return _status_ok()
        if request.url.path == "/list":
            resp = _listing("video1.mp4")
            body = resp.json()
            body["videos"][0]["xmlUrl"] = None
            return httpx.Response(200, json=body)
        fetched.append(request.url.path)
        return httpx.Response(404)

    reg = TelevisionRegistry()
    e = reg.add("tv9.local")
    await _poller(reg, handler).poll(e.id)
    assert fetched == []
    assert reg.get(e.id).cached_assets[0].expiration_days is None


@pytest.mark.anyio
async def test_poll_enters_checking_before_probing():
    reg = TelevisionRegistry()
    e = reg.add("tv9.local")
    seen = []

    def handler(request):
        seen.append((request.url.path, reg.get(e.id).server_status))
        if request.url.path == "/status":
            return _status_ok()
        return _listing()

    await _poller(reg, handler).poll(e.id)
    assert seen[0] == ("/status", EndpointStatus.CHECKING)
    assert seen[1][0] == "/list"
    assert reg.get(e.id).server_status == EndpointStatus.ONLINE


@pytest.mark.anyio
async def test_endpoint_removed_mid_poll_is_ignored():
    reg = TelevisionRegistry()
    e = reg.add("tv9.local")

    def handler(request):
        if e.id in reg:
            reg.remove(e.id)
        return _status_ok()

    # nothing left to sync into
    assert await _poller(reg, handler).poll(e.id) == EndpointStatus.OFFLINE
    assert len(reg) == 0


# ─────────────────────────────────────────────────────────────
# Scheduling & concurrency
# ─────────────────────────────────────────────────────────────

@pytest.mark.anyio
async def test_slow_endpoint_does_not_block_others():
    gate = asyncio.Event()

    async def handler(request):
        if request.url.host == "slow.local":
            await gate.wait()
        if request.url.path == "/status":
            return _status_ok()
        return _listing()

    reg = TelevisionRegistry()
    slow = reg.add("slow.local")
    fast = reg.add("fast.local")
    poller = _poller(reg, handler)

    tasks = await poller.tick()
    assert len(tasks) == 2
    fast_task = next(t for t in tasks if t.get_name() == f"poll:{fast.id}")
    await asyncio.wait_for(fast_task, timeout=5)

    assert reg.get(fast.id).server_status == EndpointStatus.ONLINE
    assert reg.get(slow.id).server_status == EndpointStatus.CHECKING
    assert poller.in_flight == [slow.id]

    # still in flight → not started twice even when everything is due
    poller.schedule.reset()
    again = await poller.tick()
    assert [t.get_name() for t in again] == [f"poll:{fast.id}"]

    gate.set()
    await asyncio.wait_for(poller.wait_idle(), timeout=5)
    assert reg.get(slow.id).server_status == EndpointStatus.ONLINE
    assert poller.in_flight == []


@pytest.mark.anyio
async def test_tick_respects_interval_and_registry_changes():
    def handler(request):
        if request.url.path == "/status":
            return _status_ok()
        return _listing()

    clock = FakeClock(100)
    reg = TelevisionRegistry()
    reg.add("tv1.local")
    poller = _poller(reg, handler, clock=clock)

    assert len(await poller.tick()) == 1
    await poller.wait_idle()

    clock.t = 110
    assert await poller.tick() == []

    # a new endpoint makes everything due immediately
    reg.add("tv2.local")
    assert len(await poller.tick()) == 2
    await poller.wait_idle()

    clock.t = 139
    assert await poller.tick() == []
    clock.t = 140
    assert len(await poller.tick()) == 2
    await poller.wait_idle()


@pytest.mark.anyio
async def test_refresh_store_polls_every_endpoint_sharing_the_address():
    polled = []

    def handler(request):
        if request.url.path == "/status":
            polled.append(request.url.host)
            return _status_ok()
        return _listing()

    reg = TelevisionRegistry()
    reg.add("tv1.local")
    reg.add("http://tv1.local/")
    reg.add("tv2.local")

    statuses = await _poller(reg, handler).refresh_store("tv1.local")
    assert statuses == [EndpointStatus.ONLINE, EndpointStatus.ONLINE]
    assert polled == ["tv1.local", "tv1.local"]


@pytest.mark.anyio
async def test_refresh_store_waits_for_a_running_poll():
    gate = asyncio.Event()
    active = 0
    concurrent = []

    async def handler(request):
        nonlocal active
        if request.url.path == "/status":
            active += 1
            concurrent.append(active)
            await gate.wait()
            active -= 1
            return _status_ok()
        return _listing("video1.mp4")

    reg = TelevisionRegistry()
    e = reg.add("tv1.local")
    poller = _poller(reg, handler)

    await poller.tick()

    async def _first_request_sent():
        while not concurrent:
            await asyncio.sleep(0)

    await asyncio.wait_for(_first_request_sent(), timeout=5)
    refresh = asyncio.create_task(poller.refresh_store("tv1.local"))
    for _ in range(10):
        await asyncio.sleep(0)
    assert concurrent == [1]

    gate.set()
    assert await asyncio.wait_for(refresh, timeout=5) == [EndpointStatus.ONLINE]
    assert concurrent == [1, 1]
    assert poller.in_flight == []
    assert [a.filename for a in reg.get(e.id).cached_assets] == ["video1.mp4"]


@pytest.mark.anyio
async def test_poll_survives_registry_write_failures(tmp_path, monkeypatch):
    def handler(request):
        if request.url.path == "/status":
            return _status_ok()
        return _listing("video1.mp4")

    reg = TelevisionRegistry(tmp_path / "televisions.json")
    e = reg.add("tv9.local")

    def _disk_full():
        raise OSError("No space left on device")

    monkeypatch.setattr(reg, "save", _disk_full)

    assert await _poller(reg, handler).poll(e.id) == EndpointStatus.ONLINE
    tv = reg.get(e.id)
    assert tv.server_status == EndpointStatus.ONLINE
    assert [a.filename for a in tv.cached_assets] == ["video1.mp4"]
