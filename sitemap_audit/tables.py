"""CSV sources and sinks: the URL list, outcome tables and the range store."""

from __future__ import annotations

import csv
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Tuple, Union

from .document import AuditOutcome, UrlRecord

LOGGER = logging.getLogger(__name__)

PathLike = Union[str, Path]

OUTCOME_COLUMNS: List[str] = ["URL", "Status", "Error"]


def iter_url_records(path: PathLike) -> Iterator[UrlRecord]:
    """Stream ``UrlRecord`` objects from the first column of a CSV.

    The first line is a header and is skipped; rows are numbered from 1 over
    data rows only. Blank lines are ignored and not numbered.
    """
    with open(path, newline="", encoding="utf-8") as handle:
        reader = csv.reader(handle)
        header_seen = False
        row_number = 0
        for raw in reader:
            if not raw or not any(cell.strip() for cell in raw):
                continue
            if not header_seen:
                header_seen = True
                continue
            row_number += 1
            yield UrlRecord(row=row_number, url=raw[0].strip())


def write_outcomes(path: PathLike, outcomes: Iterable[AuditOutcome]) -> int:
    """Write non-200 outcomes as ``URL,Status,Error`` rows. Returns row count."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    count = 0
    with open(target, "w", newline="", encoding="utf-8") as handle:
        writer = csv.DictWriter(handle, fieldnames=OUTCOME_COLUMNS)
        writer.writeheader()
        for outcome in outcomes:
            writer.writerow(outcome.to_row())
            count += 1
    LOGGER.debug("Wrote %d outcomes to %s", count, target)
    return count


def read_table(path: PathLike) -> Tuple[List[str], List[Dict[str, str]]]:
    """Read a headed CSV preserving the column order."""
    with open(path, newline="", encoding="utf-8") as handle:
        reader = csv.DictReader(handle)
        rows = [dict(row) for row in reader]
        headers = list(reader.fieldnames or [])
    return headers, rows


def write_table_atomic(
    path: PathLike,
    headers: List[str],
    rows: Iterable[Dict[str, str]],
) -> None:
    """Write a headed CSV through a temporary file and ``os.replace``."""
    target = Path(path)
    directory = target.parent if str(target.parent) else Path(".")
    directory.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{target.name}.", suffix=".tmp", dir=str(directory)
    )
    try:
        with os.fdopen(fd, "w", newline="", encoding="utf-8") as handle:
            writer = csv.DictWriter(handle, fieldnames=headers, extrasaction="ignore")
            writer.writeheader()
            for row in rows:
                writer.writerow({key: row.get(key, "") for key in headers})
        os.replace(tmp_name, target)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise
