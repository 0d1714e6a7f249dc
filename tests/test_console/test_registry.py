# tests/test_console/test_registry.py

import json

import pytest
from pydantic import ValidationError

from tvwall.console.registry import (
    CachedAsset,
    EndpointStatus,
    TelevisionRegistry,
    UnknownEndpoint,
)


def test_add_normalizes_address_and_numbers_displays():
    reg = TelevisionRegistry()
    a = reg.add("192.168.1.10:3000/", city="Recife", region="PE", coordinates={"lat": -8.05, "lng": -34.9})
    b = reg.add("https://tv2.example.com", caption="Lobby")

    assert a.store_address == "http://192.168.1.10:3000"
    assert (a.display_number, b.display_number) == (1, 2)
    assert a.caption == "TV 1"
    assert a.coordinates.lat == -8.05
    assert b.caption == "Lobby"
    assert a.server_status is None
    assert [e.id for e in reg.list()] == [a.id, b.id]


def test_blank_address_is_rejected():
    with pytest.raises(ValidationError):
        TelevisionRegistry().add("   ")


def test_update_and_remove():
    reg = TelevisionRegistry()
    e = reg.add("tv1.local")

    updated = reg.update(e.id, caption="Hall", store_address="tv1.local:8080", server_status="online")
    assert updated.caption == "Hall"
    assert updated.store_address == "http://tv1.local:8080"
    assert updated.server_status is EndpointStatus.ONLINE
    assert reg.get(e.id).caption == "Hall"

    reg.remove(e.id)
    assert len(reg) == 0
    with pytest.raises(UnknownEndpoint):
        reg.get(e.id)
    with pytest.raises(UnknownEndpoint):
        reg.update(e.id, caption="gone")


def test_subscribers_see_count_changes_only():
    reg = TelevisionRegistry()
    counts = []
    reg.subscribe(counts.append)

    e = reg.add("tv1.local")
    reg.add("tv2.local")
    reg.update(e.id, caption="no count change")
    reg.remove(e.id)

    assert counts == [1, 2, 1]


def test_sharing_address():
    reg = TelevisionRegistry()
    a = reg.add("tv1.local:3000")
    b = reg.add("http://tv1.local:3000/")
    reg.add("tv2.local:3000")
    assert [e.id for e in reg.sharing_address("tv1.local:3000")] == [a.id, b.id]


def test_cached_asset_band():
    assert CachedAsset(filename="video1.mp4", expiration_days=3).band == "expiring"
    assert CachedAsset(filename="video1.mp4").band == "unknown"


def test_json_persistence_roundtrip(tmp_path):
    path = tmp_path / "televisions.json"
    reg = TelevisionRegistry(path)
    e = reg.add("tv1.local:3000", caption="Hall", city="Natal", region="RN")
    reg.update(
        e.id,
        cached_assets=[CachedAsset(filename="video1.mp4", download_url="http://x/download/video1.mp4", expiration_days=4)],
        server_status=EndpointStatus.OFFLINE,
    )

    raw = json.loads(path.read_text(encoding="utf-8"))
    assert raw[0]["displayNumber"] == 1
    assert raw[0]["storeAddress"] == "http://tv1.local:3000"
    assert raw[0]["serverStatus"] == "offline"
    assert raw[0]["cachedAssets"][0]["expirationDays"] == 4
    assert raw[0]["cachedAssets"][0]["downloadUrl"] == "http://x/download/video1.mp4"

    counts = []
    again = TelevisionRegistry(path)
    again.subscribe(counts.append)
    assert again.load() == 1
    assert counts == [1]
    loaded = again.get(e.id)
    assert loaded.caption == "Hall"
    assert loaded.cached_assets[0].expiration_days == 4
    assert loaded.server_status is EndpointStatus.OFFLINE


def test_load_missing_file_is_empty(tmp_path):
    reg = TelevisionRegistry(tmp_path / "none.json")
    assert reg.load() == 0
