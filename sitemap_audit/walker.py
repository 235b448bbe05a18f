"""Fetch-and-validate traversal of sitemap indexes.

Example usage:

    from sitemap_audit.walker import validate_url_async

    result = await validate_url_async(
        "https://example.com/sitemap.xml",
        recursive=True,
        max_depth=2,
    )
    for child_url, child in (result.child_results or {}).items():
        print(child_url, child.valid)
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import httpx

from .document import ValidationResult
from .status import build_client
from .validator import validate_content, validate_file_async

LOGGER = logging.getLogger(__name__)

DEFAULT_FETCH_TIMEOUT = 30.0
DEFAULT_MAX_DEPTH = 3
# Children walked per index below the top level.
MAX_CHILD_SITEMAPS = 10

# State/territory codes of the per-state sitemap pairs. A code's position is
# also the numeric suffix of its sitemap files.
PROBLEM_STATES: List[str] = [
    "ak", "al", "ar", "az", "ca", "co", "ct", "de", "dc", "fl",
    "ga", "hi", "ia", "id", "il", "in", "ks", "ky", "la", "ma",
    "md", "me", "mi", "mn", "mo", "ms", "mt", "nc", "nd", "ne",
    "nh", "nj", "nm", "nv", "ny", "oh", "ok", "or", "pa", "ri",
    "sc", "sd", "tn", "tx", "ut", "va", "vt", "wa", "wi", "wv",
    "wy",
]


@dataclass(slots=True)
class MultiValidationReport:
    """Per-target results plus totals over targets and their direct children."""

    results: Dict[str, ValidationResult] = field(default_factory=dict)
    total_errors: int = 0
    total_warnings: int = 0
    total_child_sitemaps: int = 0


@dataclass(slots=True)
class ProblemSitemapReport:
    """Candidate/state sitemap results keyed by state code."""

    results: Dict[str, Dict[str, ValidationResult]] = field(default_factory=dict)
    valid_count: int = 0
    invalid_count: int = 0

    @property
    def states_with_errors(self) -> List[str]:
        return [
            state
            for state, pair in self.results.items()
            if not all(result.valid for result in pair.values())
        ]


def is_url_target(target: str) -> bool:
    return target.startswith("http://") or target.startswith("https://")


async def _fetch_text(
    client: httpx.AsyncClient, url: str, timeout: float
) -> Tuple[Optional[str], Optional[str]]:
    """Return ``(text, None)`` on a 2xx response, ``(None, error)`` otherwise."""
    try:
        response = await client.get(url, timeout=timeout, follow_redirects=True)
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        return None, f"Failed to fetch URL: {str(exc) or type(exc).__name__}"
    if not response.is_success:
        return None, f"HTTP {response.status_code}: {response.reason_phrase}"
    return response.text, None


async def _walk_children(
    result: ValidationResult,
    *,
    depth: int,
    max_depth: int,
    client: httpx.AsyncClient,
    timeout: float,
) -> ValidationResult:
    children = result.child_sitemaps or []
    limit = len(children) if depth == 0 else MAX_CHILD_SITEMAPS
    selected = children[:limit]
    indent = "  " * depth
    LOGGER.info("%s  Found %d child sitemaps", indent, len(children))

    child_results: Dict[str, ValidationResult] = {}
    for child_url in selected:
        if child_url in child_results:
            LOGGER.debug("%s  Skipping repeated child sitemap %s", indent, child_url)
            continue
        child_results[child_url] = await validate_url_async(
            child_url,
            recursive=True,
            depth=depth + 1,
            max_depth=max_depth,
            client=client,
            timeout=timeout,
        )

    warnings = list(result.warnings)
    if len(selected) < len(children):
        LOGGER.info("%s  Processed first %d child sitemaps", indent, limit)
        warnings.append(f"Only validated {limit} of {len(children)} child sitemaps")

    return dataclasses.replace(result, warnings=warnings, child_results=child_results)


async def validate_url_async(
    url: str,
    *,
    recursive: bool = False,
    depth: int = 0,
    max_depth: int = DEFAULT_MAX_DEPTH,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = DEFAULT_FETCH_TIMEOUT,
) -> ValidationResult:
    """
    Fetch a sitemap and validate it, walking child sitemaps when asked.

    Args:
        url: Sitemap URL.
        recursive: Walk the children of a sitemap index.
        depth: Depth of *url* in the walk (0 for the starting sitemap).
        max_depth: Indexes at this depth are validated but not walked.
        client: Optional shared client; one is created and closed otherwise.
        timeout: Fetch timeout in seconds.

    Returns:
        ValidationResult; for a walked index, ``child_results`` maps each
        walked child URL to its own independent result.
    """
    if client is None:
        async with build_client(timeout=timeout) as owned:
            return await validate_url_async(
                url,
                recursive=recursive,
                depth=depth,
                max_depth=max_depth,
                client=owned,
                timeout=timeout,
            )

    LOGGER.info("%sValidating URL: %s", "  " * depth, url)
    content, error = await _fetch_text(client, url, timeout)
    if error is not None:
        return ValidationResult(errors=[error])

    result = validate_content(content or "", url)
    if recursive and result.is_index and result.child_sitemaps and depth < max_depth:
        result = await _walk_children(
            result,
            depth=depth,
            max_depth=max_depth,
            client=client,
            timeout=timeout,
        )
    return result


async def validate_target_async(
    target: str,
    *,
    recursive: bool = False,
    max_depth: int = DEFAULT_MAX_DEPTH,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = DEFAULT_FETCH_TIMEOUT,
) -> ValidationResult:
    """Validate a URL or a local file path. Local files are never walked."""
    if is_url_target(target):
        return await validate_url_async(
            target,
            recursive=recursive,
            max_depth=max_depth,
            client=client,
            timeout=timeout,
        )
    return await validate_file_async(target)


async def validate_many_async(
    targets: Sequence[str],
    *,
    recursive: bool = False,
    max_depth: int = DEFAULT_MAX_DEPTH,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = DEFAULT_FETCH_TIMEOUT,
) -> MultiValidationReport:
    """Validate each target in order and total up errors and warnings."""
    if client is None:
        async with build_client(timeout=timeout) as owned:
            return await validate_many_async(
                targets,
                recursive=recursive,
                max_depth=max_depth,
                client=owned,
                timeout=timeout,
            )

    report = MultiValidationReport()
    for target in targets:
        result = await validate_target_async(
            target,
            recursive=recursive,
            max_depth=max_depth,
            client=client,
            timeout=timeout,
        )
        report.results[target] = result
        report.total_errors += len(result.errors)
        report.total_warnings += len(result.warnings)

        if recursive and result.child_results:
            report.total_child_sitemaps += len(result.child_results)
            for child in result.child_results.values():
                report.total_errors += len(child.errors)
                report.total_warnings += len(child.warnings)

    return report


async def validate_site_async(
    base_url: str,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = DEFAULT_FETCH_TIMEOUT,
) -> MultiValidationReport:
    """Recursively validate every sitemap reachable from ``<base>/sitemap.xml``."""
    main_sitemap = f"{base_url.rstrip('/')}/sitemap.xml"
    LOGGER.info("Starting recursive validation from %s", main_sitemap)
    return await validate_many_async(
        [main_sitemap],
        recursive=True,
        max_depth=max_depth,
        client=client,
        timeout=timeout,
    )


def problem_sitemap_urls(base_url: str, state: str, index: int) -> Dict[str, str]:
    base = base_url.rstrip("/")
    return {
        "candidates": f"{base}/sitemaps/candidates/{state}/sitemap/{index}.xml",
        "state": f"{base}/sitemaps/state/{state}/sitemap/{index}.xml",
    }


async def validate_problem_sitemaps_async(
    base_url: str,
    *,
    states: Optional[Sequence[str]] = None,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = DEFAULT_FETCH_TIMEOUT,
) -> ProblemSitemapReport:
    """
    Validate the candidate and state sitemap of every known state code.

    Args:
        base_url: Site root, e.g. ``https://goodparty.org``.
        states: Subset of ``PROBLEM_STATES`` to check (default: all). The
            sitemap index of a state is always its position in
            ``PROBLEM_STATES``.
    """
    if client is None:
        async with build_client(timeout=timeout) as owned:
            return await validate_problem_sitemaps_async(
                base_url, states=states, client=owned, timeout=timeout
            )

    report = ProblemSitemapReport()
    for state in states or PROBLEM_STATES:
        if state not in PROBLEM_STATES:
            LOGGER.warning("Unknown state code '%s'; skipping.", state)
            continue
        index = PROBLEM_STATES.index(state)
        pair: Dict[str, ValidationResult] = {}
        for label, url in problem_sitemap_urls(base_url, state, index).items():
            LOGGER.info("Checking %s %s sitemap (index %d)...", state.upper(), label, index)
            result = await validate_url_async(url, client=client, timeout=timeout)
            if result.valid:
                report.valid_count += 1
            else:
                report.invalid_count += 1
            pair[label] = result
        report.results[state] = pair

    return report


def validate_url(
    url: str,
    *,
    recursive: bool = False,
    max_depth: int = DEFAULT_MAX_DEPTH,
    timeout: float = DEFAULT_FETCH_TIMEOUT,
) -> ValidationResult:
    """Synchronous wrapper for validate_url_async."""
    return asyncio.run(
        validate_url_async(url, recursive=recursive, max_depth=max_depth, timeout=timeout)
    )
