import json

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from igshelf.api.client import InstagramAPIClient
from igshelf.core.download_manager import DownloadManager
from igshelf.core.iterator import collect
from igshelf.exceptions import (
    InstagramAPIError,
    ItemFetchError,
    ListingError,
    error_code,
)
from igshelf.models.media import MediaType
from igshelf.sources.instagram import InstagramSource
from igshelf.storage.timeline import JSONTimelineStore

TOKEN = "IGQVJtest"
TIMESTAMP = "2020-10-07T15:55:33+0000"


def first_page(origin):
    return {
        "data": [
            {
                "id": "1",
                "media_type": "IMAGE",
                "caption": "Still jumping",
                "media_url": f"{origin}/files/1.jpg",
                "permalink": "https://www.instagram.com/p/1/",
                "timestamp": TIMESTAMP,
            },
            {
                "id": "2",
                "media_type": "VIDEO",
                "media_url": f"{origin}/files/2.mp4",
                "thumbnail_url": f"{origin}/files/2_cover.jpg",
                "permalink": "https://www.instagram.com/p/2/",
                "timestamp": TIMESTAMP,
            },
            {
                "id": "3",
                "media_type": "CAROUSEL_ALBUM",
                "caption": "Album",
                "media_url": f"{origin}/files/31.jpg",
                "permalink": "https://www.instagram.com/p/3/",
                "timestamp": TIMESTAMP,
                "children": {
                    "data": [
                        {
                            "id": "31",
                            "media_type": "IMAGE",
                            "media_url": f"{origin}/files/31.jpg",
                        },
                        {
                            "id": "32",
                            "media_type": "VIDEO",
                            "media_url": f"{origin}/files/32.mp4",
                            "thumbnail_url": f"{origin}/files/32_cover.jpg",
                        },
                    ]
                },
            },
        ],
        "paging": {
            "cursors": {"before": "QVFA", "after": "QVFH"},
            "next": f"{origin}/me/media?after=QVFH",
        },
    }


def last_page(origin):
    return {
        "data": [
            {
                "id": "4",
                "media_type": "IMAGE",
                "media_url": f"{origin}/files/4.jpg",
                "timestamp": "2019-01-02T10:00:00+0000",
            },
            {"id": "5", "media_type": "REEL", "timestamp": TIMESTAMP},
        ],
        "paging": {"cursors": {"before": "QVFI", "after": "QVFJ"}},
    }


async def media_handler(request):
    if request.headers.get("Authorization") != f"Bearer {TOKEN}":
        return web.json_response(
            {
                "error": {
                    "message": "Invalid OAuth access token.",
                    "type": "OAuthException",
                    "code": 190,
                    "fbtrace_id": "AbCdEf",
                }
            },
            status=400,
        )

    user = request.match_info["user"]
    if user == "broken":
        return web.Response(status=500, text="<html>Server Error</html>")
    if user == "garbled":
        return web.Response(status=200, text="{garbled")

    origin = str(request.url.origin())
    assert "children{id,media_type,media_url,thumbnail_url}" in request.query["fields"]
    if request.query.get("after") == "QVFH":
        return web.json_response(last_page(origin))
    return web.json_response(first_page(origin))


async def file_handler(request):
    name = request.match_info["name"]
    if name.startswith("missing"):
        raise web.HTTPNotFound()
    return web.Response(body=f"bytes of {name}".encode())


@pytest.fixture
async def server():
    app = web.Application()
    app.router.add_get("/{user}/media", media_handler)
    app.router.add_get("/files/{name}", file_handler)
    srv = TestServer(app)
    await srv.start_server()
    yield srv
    await srv.close()


@pytest.fixture
async def client(server):
    async with InstagramAPIClient(TOKEN, base_url=str(server.make_url("/"))) as c:
        yield c


async def test_fetch_media_page_returns_next_cursor(client):
    items, next_cursor = await client.fetch_media_page("me")
    assert [m.id for m in items] == ["1", "2", "3"]
    assert next_cursor == "QVFH"
    assert [c.id for c in items[2].children] == ["31", "32"]

    items, next_cursor = await client.fetch_media_page("me", "QVFH")
    assert [m.id for m in items] == ["4", "5"]
    # No link to the next page, so the "after" cursor is not followed.
    assert next_cursor == ""


async def test_error_envelope_is_decoded(server):
    async with InstagramAPIClient("expired", base_url=str(server.make_url("/"))) as c:
        with pytest.raises(InstagramAPIError) as exc_info:
            await c.api_call("me/media")

    err = exc_info.value
    assert err.status == 400
    assert err.code == 190
    assert err.type == "OAuthException"
    assert err.fbtrace_id == "AbCdEf"
    assert err.message == "Invalid OAuth access token."
    assert str(err) == "OAuthException 190: Invalid OAuth access token."
    assert json.loads(err.body)["error"]["code"] == 190


async def test_undecodable_error_body(client):
    with pytest.raises(InstagramAPIError) as exc_info:
        await client.api_call("broken/media")

    err = exc_info.value
    assert err.status == 500
    assert err.code == 0
    assert isinstance(err.inner, json.JSONDecodeError)
    assert str(err) == str(err.inner)
    assert err.body == "<html>Server Error</html>"


async def test_undecodable_success_body(client):
    with pytest.raises(InstagramAPIError) as exc_info:
        await client.api_call("garbled/media")
    assert isinstance(exc_info.value.inner, json.JSONDecodeError)
    assert exc_info.value.status == 200


async def test_source_normalizes_timeline(client):
    timeline = await collect(InstagramSource(client).list())
    assert [m.id for m in timeline] == ["1", "2", "3", "4", "5"]
    image, video, album, old, unknown = timeline

    assert image.type == MediaType.IMAGE
    assert image.filename == "202010_1.jpg"
    assert image.thumbnail_filename == ""
    assert image.caption == "Still jumping"
    assert image.permalink == "https://www.instagram.com/p/1/"

    assert video.type == MediaType.VIDEO
    assert video.filename == "202010_2.mp4"
    assert video.thumbnail_filename == "202010_2_cover.jpg"
    assert video.thumbnail_location.endswith("/files/2_cover.jpg")

    assert album.type == MediaType.ALBUM
    assert album.filename == "202010_3.jpg"
    assert [c.filename for c in album.children] == ["202010_31.jpg", "202010_32.mp4"]
    for child in album.children:
        assert child.thumbnail_location == ""
        assert child.thumbnail_filename == ""
        assert child.caption == "Album"
        assert child.taken_at == album.taken_at

    assert old.filename == "201901_4.jpg"
    assert unknown.filename == ""


async def test_listing_fails_with_api_error_code(server):
    async with InstagramAPIClient("expired", base_url=str(server.make_url("/"))) as c:
        with pytest.raises(ListingError) as exc_info:
            await collect(InstagramSource(c).list())
    assert error_code(exc_info.value) == 190


async def test_download_with_thumbnail(client):
    timeline = await collect(InstagramSource(client).list())
    content, thumbnail = await InstagramSource(client).download(timeline[1])
    assert content == b"bytes of 2.mp4"
    assert thumbnail == b"bytes of 2_cover.jpg"

    content, thumbnail = await InstagramSource(client).download(timeline[0])
    assert content == b"bytes of 1.jpg"
    assert thumbnail is None


async def test_download_failure_is_item_fetch_error(client, server):
    timeline = await collect(InstagramSource(client).list())
    missing = timeline[0].model_copy(
        update={"location": str(server.make_url("/files/missing.jpg"))}
    )
    with pytest.raises(ItemFetchError):
        await InstagramSource(client).download(missing)


async def test_copy_timeline_from_api(client, tmp_path):
    store = JSONTimelineStore(tmp_path / "timeline.json")
    manager = DownloadManager(InstagramSource(client), store, max_workers=3)
    stats = await manager.download(tmp_path / "content")

    content = tmp_path / "content"
    assert sorted(p.name for p in content.iterdir()) == [
        "201901_4.jpg",
        "202010_1.jpg",
        "202010_2.mp4",
        "202010_2_cover.jpg",
        "202010_3.jpg",
        "202010_31.jpg",
        "202010_32.mp4",
    ]
    assert (content / "202010_2_cover.jpg").read_bytes() == b"bytes of 2_cover.jpg"
    assert stats.media_downloaded == 6
    assert stats.thumbnails_downloaded == 1
    assert stats.media_failed == 0
    assert [m.id for m in store.list()] == ["1", "2", "3", "4", "5"]
