"""Bounded-concurrency status sweep over an ordered sequence of URLs."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Iterable, List, Optional

import httpx

from .document import AuditOutcome, AuditSummary, CheckOutcome
from .status import DEFAULT_TIMEOUT, build_client, check_url_async

LOGGER = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 10

Checker = Callable[..., Awaitable[CheckOutcome]]


@dataclass(slots=True)
class SweepResult:
    """Accumulated non-200 outcomes and counters of one sweep."""

    outcomes: List[AuditOutcome] = field(default_factory=list)
    count_404: int = 0
    non_404_error_count: int = 0
    checked: int = 0
    stopped_early: bool = False

    @property
    def summary(self) -> AuditSummary:
        return AuditSummary(
            count_404=self.count_404,
            non_404_error_count=self.non_404_error_count,
        )


async def sweep_urls_async(
    urls: Iterable[str],
    *,
    concurrency: int = DEFAULT_CONCURRENCY,
    timeout: float = DEFAULT_TIMEOUT,
    max_non_404_results: int = 0,
    client: Optional[httpx.AsyncClient] = None,
    checker: Optional[Checker] = None,
) -> SweepResult:
    """
    Check every URL with at most *concurrency* requests in flight.

    Args:
        urls: URLs in dispatch order. May be a lazy iterable.
        concurrency: Maximum number of outstanding checks (>= 1).
        timeout: Per-request timeout in seconds.
        max_non_404_results: Stop dispatching once this many non-404 errors
            were counted (0 disables early stop). Checks already in flight
            still complete and count.
        client: Optional shared client; one is created and closed otherwise.
        checker: Optional replacement for ``check_url_async``.

    Returns:
        SweepResult with outcomes in completion order.
    """
    if concurrency < 1:
        raise ValueError(f"concurrency must be >= 1, got {concurrency}")

    check = checker or check_url_async
    result = SweepResult()
    semaphore = asyncio.Semaphore(concurrency)
    tasks: List[asyncio.Task] = []

    def threshold_reached() -> bool:
        return 0 < max_non_404_results <= result.non_404_error_count

    def account(outcome: CheckOutcome) -> None:
        result.checked += 1
        if outcome.is_ok:
            return
        result.outcomes.append(AuditOutcome.from_check(outcome))
        if outcome.is_404:
            result.count_404 += 1
        else:
            result.non_404_error_count += 1

    async def run_one(http: httpx.AsyncClient, url: str) -> None:
        try:
            outcome = await check(http, url, timeout=timeout)
        except Exception as exc:
            LOGGER.warning("Status check crashed for %s: %s", url, exc)
            outcome = CheckOutcome(url=url, kind="transport_failure", error=str(exc))
        finally:
            semaphore.release()
        account(outcome)

    async def dispatch(http: httpx.AsyncClient) -> None:
        try:
            for url in urls:
                if threshold_reached():
                    break
                await semaphore.acquire()
                if threshold_reached():
                    semaphore.release()
                    break
                tasks.append(asyncio.create_task(run_one(http, url)))
        except BaseException:
            # Source iteration failed: no check may outlive the sweep or its client.
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        await asyncio.gather(*tasks)

    if client is not None:
        await dispatch(client)
    else:
        async with build_client(timeout=timeout) as owned:
            await dispatch(owned)

    result.stopped_early = threshold_reached()
    if result.stopped_early:
        LOGGER.info(
            "Stopped early after %d non-404 errors (%d URLs checked)",
            result.non_404_error_count,
            result.checked,
        )
    return result
