"""Shared fixtures: sitemap XML builders and an in-memory HTTP site."""

from __future__ import annotations

from typing import Callable, Dict, List, Optional, Tuple, Union

import httpx
import pytest

from sitemap_audit.status import build_client

SITEMAP_NS = "http://www.sitemaps.org/schemas/sitemap/0.9"

Route = Union[str, Tuple[int, str], Exception]


def build_urlset(*locs: str, namespace: Optional[str] = SITEMAP_NS, body: str = "") -> str:
    xmlns = f' xmlns="{namespace}"' if namespace else ""
    urls = "".join(f"<url><loc>{loc}</loc></url>" for loc in locs)
    return f'<?xml version="1.0" encoding="UTF-8"?><urlset{xmlns}>{urls}{body}</urlset>'


def build_index(*locs: str, namespace: Optional[str] = SITEMAP_NS) -> str:
    xmlns = f' xmlns="{namespace}"' if namespace else ""
    entries = "".join(f"<sitemap><loc>{loc}</loc></sitemap>" for loc in locs)
    return (
        f'<?xml version="1.0" encoding="UTF-8"?>'
        f"<sitemapindex{xmlns}>{entries}</sitemapindex>"
    )


class FakeSite:
    """Route table served through ``httpx.MockTransport``.

    A route is either XML text (served with 200), a ``(status, text)`` pair,
    or an exception instance raised for that URL. Unknown URLs get a 404.
    """

    def __init__(self, routes: Optional[Dict[str, Route]] = None):
        self.routes: Dict[str, Route] = dict(routes or {})
        self.requests: List[Tuple[str, str]] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append((request.method, url))
        route = self.routes.get(url)
        if route is None:
            return httpx.Response(404, text="not found")
        if isinstance(route, Exception):
            raise route
        if isinstance(route, tuple):
            status, text = route
            return httpx.Response(status, text=text)
        return httpx.Response(200, text=route)

    def client(self) -> httpx.AsyncClient:
        return build_client(timeout=5.0, transport=httpx.MockTransport(self.handler))

    @property
    def requested_urls(self) -> List[str]:
        return [url for _, url in self.requests]


@pytest.fixture
def urlset_xml() -> Callable[..., str]:
    return build_urlset


@pytest.fixture
def index_xml() -> Callable[..., str]:
    return build_index


@pytest.fixture
def fake_site() -> Callable[..., FakeSite]:
    return FakeSite


@pytest.fixture
def url_list_csv(tmp_path):
    """Factory writing a source URL list with a header row; returns its path."""

    def _write(urls: List[str], header: str = "URL"):
        path = tmp_path / "urls.csv"
        path.write_text("\n".join([header, *urls]) + "\n", encoding="utf-8")
        return path

    return _write
