"""Row-range groupings of the source URL list.

Election URLs are sorted by state and page type, so each consecutive run of
``/elections/<st>/...`` (counties) or ``/elections/position/<st>/...``
(positions) rows becomes one auditable range.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from .batch import COUNT_404_COLUMN, FIRST_ROW_COLUMN, LAST_ROW_COLUMN, NON_404_COLUMN
from .document import UrlRecord
from .tables import PathLike, iter_url_records, write_table_atomic

LOGGER = logging.getLogger(__name__)

DEFAULT_START_ROW = 949

GROUPING_COLUMNS: List[str] = [
    "Number",
    "State",
    "Type",
    FIRST_ROW_COLUMN,
    LAST_ROW_COLUMN,
    COUNT_404_COLUMN,
    NON_404_COLUMN,
]


def parse_election_url(url: str) -> Optional[Tuple[str, str]]:
    """Return ``(state, type)`` for an election URL, None otherwise."""
    parts = url.split("/")
    if len(parts) < 5 or parts[3] != "elections":
        return None
    if parts[4] == "position":
        if len(parts) >= 6 and len(parts[5]) == 2:
            return parts[5], "positions"
        return None
    if len(parts[4]) == 2 and parts[4].isalpha():
        return parts[4], "counties"
    return None


def compute_groupings(
    records: Iterable[UrlRecord],
    start_row: int = DEFAULT_START_ROW,
) -> List[Dict[str, str]]:
    """
    Group consecutive rows sharing state and type into ranges.

    Rows before *start_row* and rows that are not election URLs are skipped;
    a range ends on the row before the next group starts, or on the last
    data row.
    """
    ranges: List[Dict[str, str]] = []
    current: Optional[Tuple[str, str]] = None
    first_row = start_row
    last_seen = start_row

    def close(last_row: int) -> None:
        state, kind = current
        ranges.append(
            {
                "Number": str(len(ranges) + 1),
                "State": state,
                "Type": kind,
                FIRST_ROW_COLUMN: str(first_row),
                LAST_ROW_COLUMN: str(last_row),
                COUNT_404_COLUMN: "",
                NON_404_COLUMN: "",
            }
        )

    for record in records:
        if record.row < start_row:
            continue
        last_seen = record.row
        parsed = parse_election_url(record.url)
        if parsed is None:
            continue
        if parsed != current:
            if current is not None:
                close(record.row - 1)
            current = parsed
            first_row = record.row

    if current is not None:
        close(last_seen)
    return ranges


def write_groupings(
    input_csv: PathLike,
    output_csv: PathLike,
    start_row: int = DEFAULT_START_ROW,
) -> List[Dict[str, str]]:
    """Compute groupings from *input_csv* and write them as a range store."""
    ranges = compute_groupings(iter_url_records(input_csv), start_row=start_row)
    write_table_atomic(output_csv, GROUPING_COLUMNS, ranges)
    LOGGER.info("Wrote %d ranges to %s", len(ranges), output_csv)
    return ranges
