"""Shared fixtures: an in-memory cluster API behind httpx.MockTransport."""

from __future__ import annotations

import itertools
from urllib.parse import unquote

import httpx
import pytest

from greenops.client import ApiClient
from greenops.context import Context
from greenops.provider import Provider

ADDRESS = "http://greenops.test"
ORG = "acme"
TOKEN = "s3cret"


class FakeService:
    """Minimal stand-in for the cluster API, keyed by cluster name."""

    def __init__(self, org: str = ORG) -> None:
        self.org = org
        self.keys: dict[str, str] = {}
        self.requests: list[httpx.Request] = []
        self._serial = itertools.count(1)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def _next_key(self, name: str) -> str:
        return f"{name}-key-{next(self._serial)}"

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        raw = request.url.raw_path.decode().split("?")[0]
        segs = [unquote(s) for s in raw.strip("/").split("/")]
        if segs[:2] != ["api", "cluster"] or segs[2] != self.org:
            return httpx.Response(404, text="unknown org")

        if request.method == "GET" and segs[3:] == ["apikeys", "cluster"]:
            return httpx.Response(200, json=[{"name": n, "apiKey": k} for n, k in self.keys.items()])

        name = segs[3]
        if request.method == "POST" and segs[4:] == ["apikeys", "generate"]:
            self.keys[name] = self._next_key(name)
            return httpx.Response(200, json={"apiKey": self.keys[name]})
        if request.method == "POST" and segs[4:] == ["apikeys", "rotate"]:
            if name not in self.keys:
                return httpx.Response(404, text=f"cluster {name} not found")
            self.keys[name] = self._next_key(name)
            return httpx.Response(200, json={"apiKey": self.keys[name]})
        if request.method == "DELETE" and segs[4:] == ["apikeys"]:
            if name not in self.keys:
                return httpx.Response(404, text=f"cluster {name} not found")
            del self.keys[name]
            return httpx.Response(200)
        return httpx.Response(405, text="unsupported")

    @property
    def mutations(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.method != "GET"]


@pytest.fixture
def service() -> FakeService:
    return FakeService()


@pytest.fixture
def provider() -> Provider:
    return Provider(address=ADDRESS, org=ORG, token=TOKEN)


@pytest.fixture
def client(service):
    with ApiClient(ADDRESS, ORG, TOKEN, transport=service.transport) as api:
        yield api


@pytest.fixture
def ctx(provider, client) -> Context[Provider]:
    return Context(target=provider, client=client)
