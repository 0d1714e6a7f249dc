# tests/test_api/test_asset_routes.py

from datetime import date

import pytest

from tvwall.expiration import metadata as codec

from tests.helpers import MP4_BYTES, STORE_BASE_URL


# ─────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────

def _upload(client, *, name="clip.mp4", ctype="video/mp4", data=MP4_BYTES, policy=None):
    form = {} if policy is None else {"prazoValidade": policy}
    return client.post("/upload", files={"video": (name, data, ctype)}, data=form)


def _assert_problem(r, status_code):
    assert r.status_code == status_code
    assert r.headers["content-type"].startswith("application/problem+json")
    body = r.json()
    assert body["status"] == status_code
    assert body["success"] is False
    assert body["error"] == body["detail"]
    return body


# ─────────────────────────────────────────────────────────────
# Upload
# ─────────────────────────────────────────────────────────────

def test_upload_returns_links_and_resolved_expiration(client, store):
    r = _upload(client, policy="15")
    assert r.status_code == 200, r.text
    assert r.headers.get("Cache-Control") == "no-store"
    assert r.headers.get("Pragma") == "no-cache"
    assert "location" not in r.headers
    body = r.json()
    assert body == {
        "success": True,
        "videoUrl": f"{STORE_BASE_URL}/videos/video1.mp4",
        "filename": "video1.mp4",
        "originalName": "clip.mp4",
        "size": len(MP4_BYTES),
        "xmlFile": "video1.xml",
        "prazoValidade": "2025-03-16",
    }
    assert (store.root / "video1.mp4").read_bytes() == MP4_BYTES


def test_upload_assigns_next_identity(client, store):
    (store.root / "video1.mp4").write_bytes(b"a")
    (store.root / "video2.mp4").write_bytes(b"b")
    assert _upload(client).json()["filename"] == "video3.mp4"


def test_upload_without_file_is_400(client):
    body = _assert_problem(client.post("/upload", data={"prazoValidade": "5"}), 400)
    assert body["error"] == "No file was sent"


def test_upload_with_huge_day_count_is_400_and_stores_nothing(client, store):
    _assert_problem(_upload(client, policy="99999999"), 400)
    assert list(store.root.iterdir()) == []
    _assert_problem(client.post("/update-validity", json={"filename": "video1.mp4", "expirationDays": 10**8}), 400)


def test_upload_wrong_type_is_400(client, store):
    body = _assert_problem(_upload(client, name="cat.gif", ctype="image/gif", data=b"GIF89a"), 400)
    assert body["code"] == 400
    assert list(store.root.iterdir()) == []


def test_upload_accepts_mp4_extension_with_generic_type(client):
    assert _upload(client, name="clip.MP4", ctype="application/octet-stream").status_code == 200


# ─────────────────────────────────────────────────────────────
# List / check
# ─────────────────────────────────────────────────────────────

def test_list_and_check(client, store):
    _upload(client)
    (store.root / "video2.mp4").write_bytes(b"1234")  # no metadata

    body = client.get("/list").json()
    assert body["success"] is True
    assert body["count"] == 2 and body["exists"] is True
    first, second = body["videos"]
    assert first["filename"] == "video1.mp4"
    assert first["url"] == f"{STORE_BASE_URL}/videos/video1.mp4"
    assert first["downloadUrl"] == f"{STORE_BASE_URL}/download/video1.mp4"
    assert first["xmlFile"] == "video1.xml"
    assert first["xmlUrl"] == f"{STORE_BASE_URL}/xml/video1.xml"
    assert second["xmlUrl"] is None
    assert second["size"] == 4
    assert "created" in second

    check = client.get("/check").json()
    assert check["exists"] is True
    assert [v["filename"] for v in check["videos"]] == ["video1.mp4", "video2.mp4"]
    assert check["videos"][0]["xmlUrl"] is None


def test_empty_store_listing(client):
    body = client.get("/check").json()
    assert body == {"success": True, "videos": [], "count": 0, "exists": False}


def test_public_base_url_overrides_request_host(client, monkeypatch):
    from tvwall.api import http_utils

    monkeypatch.setattr(http_utils.settings, "PUBLIC_BASE_URL", "https://tv.example.com")
    _upload(client)
    assert client.get("/list").json()["videos"][0]["url"] == "https://tv.example.com/videos/video1.mp4"


# ─────────────────────────────────────────────────────────────
# Delete
# ─────────────────────────────────────────────────────────────

def test_delete(client, store):
    _upload(client)
    r = client.delete("/delete/video1.mp4")
    assert r.status_code == 200
    assert r.json() == {"success": True, "message": "Video deleted", "filename": "video1.mp4"}
    assert list(store.root.iterdir()) == []


def test_delete_missing_is_404(client):
    _assert_problem(client.delete("/delete/video3.mp4"), 404)


@pytest.mark.parametrize("name", ["video1.xml", "movie.mp4", "video1.mp4.bak"])
def test_delete_bad_name_is_400(client, name):
    _assert_problem(client.delete(f"/delete/{name}"), 400)


# ─────────────────────────────────────────────────────────────
# Fetch
# ─────────────────────────────────────────────────────────────

def test_download_is_attachment_and_videos_is_inline(client):
    _upload(client)

    r = client.get("/download/video1.mp4")
    assert r.status_code == 200
    assert r.content == MP4_BYTES
    assert r.headers["content-type"] == "video/mp4"
    assert r.headers["content-disposition"].startswith("attachment")

    r = client.get("/videos/video1.mp4")
    assert r.status_code == 200
    assert r.content == MP4_BYTES
    assert "content-disposition" not in r.headers


def test_download_errors(client):
    _assert_problem(client.get("/download/video1.mp4"), 404)
    _assert_problem(client.get("/download/passwd"), 400)
    _assert_problem(client.get("/videos/video1.xml"), 400)


def test_metadata_routes(client):
    _upload(client, policy="2025-12-31")

    r = client.get("/xml/video1.xml")
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("application/xml")
    assert codec.decode(r.content).expiration == date(2025, 12, 31)

    r = client.get("/download/xml/video1.xml")
    assert r.status_code == 200
    assert r.headers["content-disposition"].startswith("attachment")

    _assert_problem(client.get("/xml/video2.xml"), 404)
    _assert_problem(client.get("/xml/video1.mp4"), 400)


# ─────────────────────────────────────────────────────────────
# Update validity
# ─────────────────────────────────────────────────────────────

def test_update_validity(client, store):
    _upload(client)
    r = client.post("/update-validity", json={"filename": "video1.mp4", "expirationDays": 5})
    assert r.status_code == 200
    assert r.json() == {
        "success": True,
        "filename": "video1.mp4",
        "xmlFile": "video1.xml",
        "prazoValidade": "2025-03-06",
        "xmlUrl": f"{STORE_BASE_URL}/xml/video1.xml",
    }
    doc = codec.decode((store.root / "video1.xml").read_text(encoding="utf-8"))
    assert doc.expiration == date(2025, 3, 6)


def test_update_validity_accepts_numeric_text(client):
    r = client.post("/update-validity", json={"filename": "video1.mp4", "expirationDays": "7"})
    assert r.status_code == 200
    assert r.json()["prazoValidade"] == "2025-03-08"


@pytest.mark.parametrize(
    "payload",
    [
        {"filename": "video1.mp4", "expirationDays": 0},
        {"filename": "video1.mp4", "expirationDays": -3},
        {"filename": "video1.mp4", "expirationDays": "soon"},
        {"filename": "video1.mp4"},
        {"filename": "../video1.mp4", "expirationDays": 5},
        {"expirationDays": 5},
    ],
)
def test_update_validity_rejects_bad_input(client, payload):
    _assert_problem(client.post("/update-validity", json=payload), 400)


def test_update_validity_without_body_is_400(client):
    _assert_problem(client.post("/update-validity"), 400)
