"""Range auditor: sweep one inclusive row range of the source URL list."""

from __future__ import annotations

import asyncio
import logging
from typing import Iterator, Optional

import httpx

from .document import AuditRange, AuditSummary
from .status import DEFAULT_TIMEOUT
from .sweep import DEFAULT_CONCURRENCY, Checker, sweep_urls_async
from .tables import PathLike, iter_url_records, write_outcomes

LOGGER = logging.getLogger(__name__)

DEFAULT_INPUT_CSV = "goodparty_sitemap_urls.csv"


class AuditConfigError(ValueError):
    """Raised when a range audit is missing its bounds or output target."""


def build_audit_range(
    output_csv: Optional[str],
    first_row: Optional[int],
    last_row: Optional[int],
) -> AuditRange:
    """Validate the raw range arguments and build an ``AuditRange``.

    Raises:
        AuditConfigError: If any value is missing, zero, negative or the
            bounds are inverted.
    """
    if not output_csv or not first_row or not last_row:
        raise AuditConfigError("output_csv, first_row and last_row are required parameters")
    if first_row < 1 or last_row < 1:
        raise AuditConfigError(
            f"first_row and last_row must be >= 1 (got {first_row}, {last_row})"
        )
    if first_row > last_row:
        raise AuditConfigError(
            f"first_row ({first_row}) must not be greater than last_row ({last_row})"
        )
    return AuditRange(first_row=first_row, last_row=last_row, output_csv=str(output_csv))


def _urls_in_range(input_csv: PathLike, audit_range: AuditRange) -> Iterator[str]:
    for record in iter_url_records(input_csv):
        if record.row > audit_range.last_row:
            return
        if audit_range.contains(record.row):
            yield record.url


async def audit_range_async(
    *,
    output_csv: Optional[str],
    first_row: Optional[int],
    last_row: Optional[int],
    input_csv: PathLike = DEFAULT_INPUT_CSV,
    concurrency: int = DEFAULT_CONCURRENCY,
    timeout: float = DEFAULT_TIMEOUT,
    max_non_404_results: int = 0,
    client: Optional[httpx.AsyncClient] = None,
    checker: Optional[Checker] = None,
) -> AuditSummary:
    """
    Audit rows ``first_row..last_row`` (inclusive, header excluded).

    Every non-200 outcome is written to *output_csv*.

    Returns:
        AuditSummary with the 404 and non-404 error counts.

    Raises:
        AuditConfigError: Before any I/O when the range arguments are invalid.
        OSError: When the source list cannot be read or the output written.
    """
    audit_range = build_audit_range(output_csv, first_row, last_row)

    LOGGER.info(
        "Processing rows %d to %d (%d URLs) of %s...",
        audit_range.first_row,
        audit_range.last_row,
        audit_range.size,
        input_csv,
    )
    result = await sweep_urls_async(
        _urls_in_range(input_csv, audit_range),
        concurrency=concurrency,
        timeout=timeout,
        max_non_404_results=max_non_404_results,
        client=client,
        checker=checker,
    )
    write_outcomes(audit_range.output_csv, result.outcomes)

    LOGGER.info(
        "Completed with %d 404 responses and %d non-404 error responses.",
        result.count_404,
        result.non_404_error_count,
    )
    return result.summary


def audit_range(
    *,
    output_csv: Optional[str],
    first_row: Optional[int],
    last_row: Optional[int],
    input_csv: PathLike = DEFAULT_INPUT_CSV,
    concurrency: int = DEFAULT_CONCURRENCY,
    timeout: float = DEFAULT_TIMEOUT,
    max_non_404_results: int = 0,
) -> AuditSummary:
    """Synchronous wrapper for audit_range_async."""
    return asyncio.run(
        audit_range_async(
            output_csv=output_csv,
            first_row=first_row,
            last_row=last_row,
            input_csv=input_csv,
            concurrency=concurrency,
            timeout=timeout,
            max_non_404_results=max_non_404_results,
        )
    )
