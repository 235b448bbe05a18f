"""Tests for sitemap_audit.sweep (bounded-concurrency status sweep)."""

from __future__ import annotations

import asyncio

import pytest

from sitemap_audit.document import CheckOutcome
from sitemap_audit.sweep import sweep_urls_async


def _classify(url: str) -> CheckOutcome:
    if url.endswith("/missing"):
        return CheckOutcome(url=url, kind="http_status", status=404)
    if url.endswith("/gone"):
        return CheckOutcome(url=url, kind="http_status", status=500)
    if url.endswith("/down"):
        return CheckOutcome(url=url, kind="transport_failure", error="No response received")
    return CheckOutcome(url=url, kind="ok", status=200)


class InFlightChecker:
    """Fake checker that records how many checks overlap."""

    def __init__(self, delay: float = 0.01):
        self.delay = delay
        self.in_flight = 0
        self.max_in_flight = 0
        self.calls = []

    async def __call__(self, client, url, *, timeout):
        self.calls.append(url)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            return _classify(url)
        finally:
            self.in_flight -= 1


class TestConcurrencyBound:
    @pytest.mark.asyncio
    async def test_never_more_than_concurrency_in_flight(self):
        checker = InFlightChecker()
        urls = [f"https://example.com/{i}" for i in range(25)]

        result = await sweep_urls_async(urls, concurrency=3, checker=checker)

        assert checker.max_in_flight == 3
        assert result.checked == 25
        assert sorted(checker.calls) == sorted(urls)

    @pytest.mark.asyncio
    async def test_concurrency_of_one_is_sequential(self):
        checker = InFlightChecker(delay=0)
        urls = [f"https://example.com/{i}" for i in range(5)]

        await sweep_urls_async(urls, concurrency=1, checker=checker)

        assert checker.max_in_flight == 1
        assert checker.calls == urls

    @pytest.mark.asyncio
    async def test_invalid_concurrency(self):
        with pytest.raises(ValueError, match="concurrency"):
            await sweep_urls_async(["https://example.com"], concurrency=0, checker=InFlightChecker())


class TestAccounting:
    @pytest.mark.asyncio
    async def test_counts_match_outcomes_and_skip_200s(self):
        urls = [
            "https://example.com/ok",
            "https://example.com/missing",
            "https://example.com/gone",
            "https://example.com/down",
            "https://example.com/missing",
        ]

        result = await sweep_urls_async(urls, concurrency=2, checker=InFlightChecker(delay=0))

        assert result.count_404 == 2
        assert result.non_404_error_count == 2
        assert result.count_404 + result.non_404_error_count == len(result.outcomes)
        assert all(outcome.url != "https://example.com/ok" for outcome in result.outcomes)
        assert result.checked == 5
        assert not result.stopped_early

    @pytest.mark.asyncio
    async def test_outcome_shapes(self):
        urls = ["https://example.com/gone", "https://example.com/down"]

        result = await sweep_urls_async(urls, concurrency=1, checker=InFlightChecker(delay=0))

        by_url = {outcome.url: outcome for outcome in result.outcomes}
        assert by_url["https://example.com/gone"].status == 500
        assert by_url["https://example.com/gone"].error is None
        assert by_url["https://example.com/down"].status is None
        assert by_url["https://example.com/down"].error == "No response received"

    @pytest.mark.asyncio
    async def test_empty_input(self):
        result = await sweep_urls_async([], checker=InFlightChecker())
        assert result.outcomes == []
        assert result.checked == 0
        assert result.summary.count_404 == 0

    @pytest.mark.asyncio
    async def test_crashing_checker_becomes_transport_failure(self):
        async def checker(client, url, *, timeout):
            raise RuntimeError("boom")

        result = await sweep_urls_async(["https://example.com/x"], checker=checker)

        assert result.non_404_error_count == 1
        assert result.outcomes[0].error == "boom"

    @pytest.mark.asyncio
    async def test_lazy_iterable(self):
        def generate():
            for i in range(4):
                yield f"https://example.com/{i}"

        result = await sweep_urls_async(generate(), concurrency=2, checker=InFlightChecker(delay=0))
        assert result.checked == 4

    @pytest.mark.asyncio
    async def test_source_error_leaves_no_checks_running(self):
        checker = InFlightChecker(delay=0.05)
        finished = []

        async def tracking_checker(client, url, *, timeout):
            outcome = await checker(client, url, timeout=timeout)
            finished.append(url)
            return outcome

        def broken_source():
            yield "https://example.com/1"
            yield "https://example.com/2"
            raise UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte")

        with pytest.raises(UnicodeDecodeError):
            await sweep_urls_async(broken_source(), concurrency=5, checker=tracking_checker)

        current = asyncio.current_task()
        assert [task for task in asyncio.all_tasks() if task is not current and not task.done()] == []
        await asyncio.sleep(0.1)
        assert finished == []
        assert checker.in_flight == 0


class TestEarlyStop:
    @pytest.mark.asyncio
    async def test_stops_dispatching_at_threshold(self):
        checker = InFlightChecker(delay=0)
        urls = [f"https://example.com/{i}/down" for i in range(10)]

        result = await sweep_urls_async(
            urls, concurrency=1, max_non_404_results=3, checker=checker
        )

        assert result.stopped_early
        assert result.non_404_error_count == 3
        assert len(checker.calls) == 3

    @pytest.mark.asyncio
    async def test_in_flight_checks_still_count(self):
        checker = InFlightChecker()
        urls = [f"https://example.com/{i}/down" for i in range(20)]

        result = await sweep_urls_async(
            urls, concurrency=4, max_non_404_results=2, checker=checker
        )

        assert result.stopped_early
        assert 2 <= result.non_404_error_count <= 2 + 4 - 1
        assert result.checked == len(checker.calls)
        assert len(result.outcomes) == result.checked

    @pytest.mark.asyncio
    async def test_404s_do_not_trigger_early_stop(self):
        urls = [f"https://example.com/{i}/missing" for i in range(6)]

        result = await sweep_urls_async(
            urls, concurrency=2, max_non_404_results=1, checker=InFlightChecker(delay=0)
        )

        assert not result.stopped_early
        assert result.count_404 == 6

    @pytest.mark.asyncio
    async def test_zero_threshold_disables_early_stop(self):
        urls = [f"https://example.com/{i}/down" for i in range(5)]

        result = await sweep_urls_async(
            urls, concurrency=2, max_non_404_results=0, checker=InFlightChecker(delay=0)
        )

        assert not result.stopped_early
        assert result.non_404_error_count == 5
