"""Batch orchestrator: audit every pending range of the range tracking store.

A range is pending while its ``404s`` cell is blank. Failed ranges keep blank
counts so that the next run retries them; completed ranges are never
re-audited.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional

from .audit import DEFAULT_INPUT_CSV, audit_range_async
from .document import AuditSummary
from .tables import PathLike, read_table, write_table_atomic

LOGGER = logging.getLogger(__name__)

DEFAULT_GROUPINGS_CSV = "election_groupings.csv"
DEFAULT_OUTPUT_DIR = "csv_output"

COUNT_404_COLUMN = "404s"
NON_404_COLUMN = "Non-404 Errors"
FIRST_ROW_COLUMN = "First Row"
LAST_ROW_COLUMN = "Last Row"

Auditor = Callable[..., Awaitable[AuditSummary]]


class AuditStorageError(RuntimeError):
    """Raised when the range store or the source URL list is unusable."""


@dataclass(slots=True)
class BatchReport:
    """Range labels grouped by what happened to them in one batch run."""

    processed: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)


def is_pending(row: Dict[str, str]) -> bool:
    """Return True when the row has no recorded 404 count yet."""
    return not (row.get(COUNT_404_COLUMN) or "").strip()


def build_output_filename(row: Dict[str, str], output_dir: PathLike = DEFAULT_OUTPUT_DIR) -> str:
    """Per-range outcome CSV, e.g. ``csv_output/07_ca_elections_counties_non_200_responses.csv``."""
    number = (row.get("Number") or "").strip().rjust(2, "0")
    state = (row.get("State") or "").strip()
    kind = (row.get("Type") or "").strip()
    filename = f"{number}_{state}_elections_{kind}_non_200_responses.csv"
    return str(Path(output_dir) / filename)


def _parse_row_bound(row: Dict[str, str], column: str) -> Optional[int]:
    raw = (row.get(column) or "").strip()
    if not raw:
        return None
    try:
        return int(float(raw))
    except (ValueError, OverflowError):
        return None


async def run_pending_audits_async(
    *,
    groupings_csv: PathLike = DEFAULT_GROUPINGS_CSV,
    input_csv: PathLike = DEFAULT_INPUT_CSV,
    output_dir: PathLike = DEFAULT_OUTPUT_DIR,
    auditor: Optional[Auditor] = None,
    **audit_options: Any,
) -> BatchReport:
    """
    Audit each pending range in list order and persist the updated counts.

    Args:
        groupings_csv: Range tracking store (``First Row``, ``Last Row``,
            ``404s``, ``Non-404 Errors`` and labelling columns).
        input_csv: Source URL list shared by all ranges.
        output_dir: Directory receiving one outcome CSV per range.
        auditor: Optional replacement for ``audit_range_async``.
        **audit_options: Forwarded to the auditor (concurrency, timeout, ...).

    Returns:
        BatchReport naming processed, failed and skipped ranges.

    Raises:
        AuditStorageError: If the store cannot be read or written back, or
            the source URL list is missing while ranges are pending.
    """
    audit = auditor or audit_range_async

    try:
        headers, rows = read_table(groupings_csv)
    except (OSError, UnicodeDecodeError) as exc:
        raise AuditStorageError(f"Cannot read {groupings_csv}: {exc}") from exc

    if any(is_pending(row) for row in rows) and not Path(input_csv).is_file():
        raise AuditStorageError(f"Source URL list not found: {input_csv}")

    for column in (COUNT_404_COLUMN, NON_404_COLUMN):
        if column not in headers:
            headers.append(column)

    report = BatchReport()

    for row in rows:
        output_csv = build_output_filename(row, output_dir)
        if not is_pending(row):
            report.skipped.append(output_csv)
            continue

        first_row = _parse_row_bound(row, FIRST_ROW_COLUMN)
        last_row = _parse_row_bound(row, LAST_ROW_COLUMN)
        LOGGER.info("=== Auditing %s (rows %s-%s) ===", output_csv, first_row, last_row)

        try:
            summary = await audit(
                input_csv=input_csv,
                output_csv=output_csv,
                first_row=first_row,
                last_row=last_row,
                **audit_options,
            )
        except Exception as exc:
            LOGGER.error("Error processing %s: %s", output_csv, exc)
            row[COUNT_404_COLUMN] = ""
            row[NON_404_COLUMN] = ""
            report.failed.append(output_csv)
            continue

        row[COUNT_404_COLUMN] = str(summary.count_404)
        row[NON_404_COLUMN] = str(summary.non_404_error_count)
        report.processed.append(output_csv)
        LOGGER.info(
            "Finished %s: %d 404s, %d other errors.",
            output_csv,
            summary.count_404,
            summary.non_404_error_count,
        )

    try:
        write_table_atomic(groupings_csv, headers, rows)
    except OSError as exc:
        raise AuditStorageError(f"Cannot write {groupings_csv}: {exc}") from exc

    LOGGER.info(
        "Updated %s: %d processed, %d failed, %d already complete",
        groupings_csv,
        len(report.processed),
        len(report.failed),
        len(report.skipped),
    )
    return report


def run_pending_audits(
    *,
    groupings_csv: PathLike = DEFAULT_GROUPINGS_CSV,
    input_csv: PathLike = DEFAULT_INPUT_CSV,
    output_dir: PathLike = DEFAULT_OUTPUT_DIR,
    **audit_options: Any,
) -> BatchReport:
    """Synchronous wrapper for run_pending_audits_async."""
    return asyncio.run(
        run_pending_audits_async(
            groupings_csv=groupings_csv,
            input_csv=input_csv,
            output_dir=output_dir,
            **audit_options,
        )
    )
