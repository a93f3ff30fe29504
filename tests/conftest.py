import json
from typing import Any, Callable, Dict, List

import httpx
import pytest

from cache import AlbumCache
from icloud_client import SharedStreamsClient
from main import app, get_resolver
from resolver import AlbumResolver


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeSharedStreams:
    """Stands in for the iCloud shared streams host behind an httpx.MockTransport"""

    def __init__(self, stream: Any = None, asset_urls: Any = None):
        self.stream = stream if stream is not None else {"photos": []}
        self.asset_urls = asset_urls if asset_urls is not None else {"items": {}}
        self.stream_status = 200
        self.asset_status = 200
        self.stream_error: Callable[[httpx.Request], Exception] | None = None
        self.asset_error: Callable[[httpx.Request], Exception] | None = None
        self.requests: List[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path.endswith("/webstream"):
            if self.stream_error:
                raise self.stream_error(request)
            return httpx.Response(self.stream_status, json=self.stream)
        if request.url.path.endswith("/webasseturls"):
            if self.asset_error:
                raise self.asset_error(request)
            return httpx.Response(self.asset_status, json=self.asset_urls)
        return httpx.Response(404)

    def bodies(self, suffix: str) -> List[Dict[str, Any]]:
        return [
            json.loads(request.content)
            for request in self.requests
            if request.url.path.endswith(suffix)
        ]


def asset_item(path: str, host: str = "cvws.icloud-content.com", scheme: str = "https") -> dict:
    return {"url_scheme": scheme, "url_location": host, "url_path": path}


@pytest.fixture
def upstream() -> FakeSharedStreams:
    return FakeSharedStreams()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def album_cache(clock) -> AlbumCache:
    return AlbumCache(ttl_seconds=600, max_entries=100, clock=clock)


@pytest.fixture
async def resolver(upstream, album_cache):
    client = SharedStreamsClient(timeout=10, transport=httpx.MockTransport(upstream.handler))
    yield AlbumResolver(album_cache, client)
    await client.close()


@pytest.fixture
async def api_client(resolver):
    app.dependency_overrides[get_resolver] = lambda: resolver
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
