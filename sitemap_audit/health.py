"""Sampling health sweep over a site's sitemaps.

The sweep reads the main sitemap (and the URL sets of its children), then
checks the known per-state candidate and election sitemaps, looking for
broken or empty sitemaps, suspicious URL patterns and, for a random sample
of URLs, their HTTP status.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set
from urllib.parse import urlsplit

import httpx

from .document import SitemapIndex, SitemapDocument, UrlEntry, UrlSet
from .settings import DEFAULT_BASE_URL
from .status import DEFAULT_TIMEOUT, build_client
from .validator import SitemapParseError, parse_sitemap
from .walker import DEFAULT_FETCH_TIMEOUT

LOGGER = logging.getLogger(__name__)

DEFAULT_SAMPLE_RATE = 0.1
DEFAULT_SAMPLE_SIZE = 10

# State codes whose sitemaps are swept directly; a code's position is the
# numeric suffix of its sitemap files.
HEALTH_STATES: List[str] = [
    "ak", "al", "ar", "co", "ct", "dc", "de", "fl", "ga", "hi",
    "ia", "id", "il", "in", "ky", "la", "md", "me", "mn", "mo",
    "mt", "nc", "nd", "nh", "nj", "nm", "nv", "oh", "ri", "sc",
    "va", "vt", "wi", "wv", "wy",
]


@dataclass(frozen=True, slots=True)
class BrokenSitemap:
    url: str
    error: str
    identifier: str


@dataclass(frozen=True, slots=True)
class EmptySitemap:
    url: str
    identifier: str
    reason: Optional[str] = None


@dataclass(frozen=True, slots=True)
class SuspiciousUrl:
    url: str
    sitemap: str
    reason: str


@dataclass(frozen=True, slots=True)
class RedirectedUrl:
    url: str
    status: int
    location: Optional[str] = None


@dataclass(slots=True)
class HealthReport:
    """Everything one health sweep observed."""

    base_url: str
    main_sitemap_ok: bool = True
    total_urls: int = 0
    unique_urls: Set[str] = field(default_factory=set)
    urls_by_status: Counter = field(default_factory=Counter)
    broken_sitemaps: List[BrokenSitemap] = field(default_factory=list)
    empty_sitemaps: List[EmptySitemap] = field(default_factory=list)
    suspicious_urls: List[SuspiciousUrl] = field(default_factory=list)
    urls_with_404s: List[str] = field(default_factory=list)
    urls_with_redirects: List[RedirectedUrl] = field(default_factory=list)

    @property
    def duplicate_count(self) -> int:
        return self.total_urls - len(self.unique_urls)

    @property
    def suspicious_by_reason(self) -> Dict[str, int]:
        return dict(Counter(item.reason for item in self.suspicious_urls))

    @property
    def recommendations(self) -> List[str]:
        tips = []
        if self.broken_sitemaps:
            tips.append("Fix broken sitemaps immediately")
        if self.empty_sitemaps:
            tips.append("Remove or populate empty sitemaps")
        if self.suspicious_urls:
            tips.append("Clean up URLs with suspicious patterns")
        if self.urls_with_404s:
            tips.append("Remove 404 URLs from sitemaps")
        if self.urls_with_redirects:
            tips.append("Update redirected URLs to their final destinations")
        return tips


def suspicious_reason(url: str) -> Optional[str]:
    """Name the suspicious pattern in *url*, or None when it looks fine."""
    if "/elections/position/" in url and "-(joint)" in url:
        return "Malformed position name"
    if "//" in urlsplit(url).path:
        return "Double slashes in path"
    if " " in url or "%20" in url:
        return "Contains spaces"
    return None


class SitemapHealthCheck:
    """Run a sampling health sweep against one site.

    ``sample_rate`` is the probability that a sampled URL also gets a status
    check; pass ``rng`` (anything with ``random()``) for reproducible runs.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        sample_rate: float = DEFAULT_SAMPLE_RATE,
        sample_size: int = DEFAULT_SAMPLE_SIZE,
        rng: Optional[random.Random] = None,
        states: Optional[Sequence[str]] = None,
        client: Optional[httpx.AsyncClient] = None,
        fetch_timeout: float = DEFAULT_FETCH_TIMEOUT,
        check_timeout: float = DEFAULT_TIMEOUT,
    ):
        if not 0.0 <= sample_rate <= 1.0:
            raise ValueError(f"sample_rate must be within [0, 1], got {sample_rate}")
        self.base_url = base_url.rstrip("/")
        self.sample_rate = sample_rate
        self.sample_size = sample_size
        self.rng = rng or random.Random()
        self.states = list(states) if states is not None else list(HEALTH_STATES)
        self.client = client
        self.fetch_timeout = fetch_timeout
        self.check_timeout = check_timeout

    async def run_full_check_async(self) -> HealthReport:
        """Sweep the main sitemap and the per-state sitemaps."""
        if self.client is not None:
            return await self._run(self.client)
        async with build_client(timeout=self.fetch_timeout) as client:
            return await self._run(client)

    def run_full_check(self) -> HealthReport:
        """Synchronous wrapper for run_full_check_async."""
        return asyncio.run(self.run_full_check_async())

    async def _run(self, client: httpx.AsyncClient) -> HealthReport:
        report = HealthReport(base_url=self.base_url)
        main_url = f"{self.base_url}/sitemap.xml"
        LOGGER.info("Checking main sitemap: %s", main_url)

        main = await self._fetch_and_parse(client, main_url)
        if main is None:
            LOGGER.error("Failed to fetch main sitemap!")
            report.main_sitemap_ok = False
            return report

        if isinstance(main, SitemapIndex):
            for entry in main.entries:
                if not entry.loc:
                    continue
                child = await self._fetch_and_parse(client, entry.loc)
                if isinstance(child, UrlSet):
                    self._tally_urlset(report, entry.loc, child)
        else:
            self._tally_urlset(report, main_url, main)

        LOGGER.info("Checking state-specific sitemaps...")
        for index, state in enumerate(self.states):
            base = f"{self.base_url}/sitemaps"
            await self._check_single_sitemap(
                client, report, f"{base}/candidates/{state}/sitemap/{index}.xml", f"candidates-{state}"
            )
            await self._check_single_sitemap(
                client, report, f"{base}/state/{state}/sitemap/{index}.xml", f"elections-{state}"
            )

        return report

    async def _fetch_and_parse(
        self, client: httpx.AsyncClient, url: str
    ) -> Optional[SitemapDocument]:
        try:
            response = await client.get(url, timeout=self.fetch_timeout, follow_redirects=True)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            LOGGER.error("Error fetching %s: %s", url, exc)
            return None
        if not response.is_success:
            return None
        try:
            return parse_sitemap(response.text)
        except SitemapParseError as exc:
            LOGGER.error("Error parsing %s: %s", url, exc)
            return None

    def _tally_urlset(self, report: HealthReport, sitemap_url: str, urlset: UrlSet) -> None:
        LOGGER.info("Processing %d URLs from %s", len(urlset.entries), sitemap_url)
        for entry in urlset.entries:
            if not entry.loc:
                continue
            if entry.loc in report.unique_urls:
                LOGGER.debug("Duplicate URL found: %s", entry.loc)
            report.total_urls += 1
            report.unique_urls.add(entry.loc)

    async def _check_single_sitemap(
        self,
        client: httpx.AsyncClient,
        report: HealthReport,
        url: str,
        identifier: str,
    ) -> None:
        LOGGER.info("  Checking %s...", identifier)
        try:
            response = await client.get(url, timeout=self.fetch_timeout, follow_redirects=True)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            report.broken_sitemaps.append(
                BrokenSitemap(url=url, error=str(exc) or type(exc).__name__, identifier=identifier)
            )
            return

        if not response.is_success:
            error = "404 Not Found" if response.status_code == 404 else f"HTTP {response.status_code}"
            report.broken_sitemaps.append(BrokenSitemap(url=url, error=error, identifier=identifier))
            return

        content = response.text
        if not content.strip():
            report.empty_sitemaps.append(EmptySitemap(url=url, identifier=identifier))
            return

        try:
            document = parse_sitemap(content)
        except SitemapParseError as exc:
            report.broken_sitemaps.append(BrokenSitemap(url=url, error=str(exc), identifier=identifier))
            return

        if not isinstance(document, UrlSet):
            return
        if not document.entries:
            report.empty_sitemaps.append(
                EmptySitemap(url=url, identifier=identifier, reason="No URLs in urlset")
            )
            return

        LOGGER.info("    Found %d URLs", len(document.entries))
        await self._sample_check_urls(
            client, report, document.entries[: self.sample_size], identifier
        )

    async def _sample_check_urls(
        self,
        client: httpx.AsyncClient,
        report: HealthReport,
        entries: Sequence[UrlEntry],
        identifier: str,
    ) -> None:
        for entry in entries:
            loc = entry.loc
            if not loc:
                continue

            reason = suspicious_reason(loc)
            if reason:
                report.suspicious_urls.append(SuspiciousUrl(url=loc, sitemap=identifier, reason=reason))

            report.total_urls += 1
            report.unique_urls.add(loc)

            if self.rng.random() < self.sample_rate:
                await self._check_url_status(client, report, loc)

    async def _check_url_status(
        self, client: httpx.AsyncClient, report: HealthReport, url: str
    ) -> None:
        try:
            response = await client.head(url, timeout=self.check_timeout, follow_redirects=False)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            LOGGER.debug("Status check failed for %s: %s", url, exc)
            report.urls_by_status["error"] += 1
            return

        status = response.status_code
        report.urls_by_status[str(status)] += 1
        if status == 404:
            report.urls_with_404s.append(url)
        elif 300 <= status < 400:
            report.urls_with_redirects.append(
                RedirectedUrl(url=url, status=status, location=response.headers.get("location"))
            )
