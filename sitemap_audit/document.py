"""Data structures shared by the URL auditor and the sitemap validator."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union


# ---------------------------------------------------------------------------
# URL auditing
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class UrlRecord:
    """A URL and its 1-based data-row position in the source list."""

    row: int
    url: str


@dataclass(frozen=True, slots=True)
class AuditRange:
    """Inclusive 1-based row bounds plus the CSV receiving non-200 outcomes."""

    first_row: int
    last_row: int
    output_csv: str

    @property
    def size(self) -> int:
        return self.last_row - self.first_row + 1

    def contains(self, row: int) -> bool:
        return self.first_row <= row <= self.last_row


@dataclass(frozen=True, slots=True)
class CheckOutcome:
    """Classification of a single status check.

    ``kind`` is one of ``ok``, ``http_status`` or ``transport_failure``.
    """

    url: str
    kind: str
    status: Optional[int] = None
    error: Optional[str] = None

    @property
    def is_ok(self) -> bool:
        return self.kind == "ok"

    @property
    def is_404(self) -> bool:
        return self.kind == "http_status" and self.status == 404


@dataclass(frozen=True, slots=True)
class AuditOutcome:
    """A recorded non-200 result: exactly one of ``status``/``error`` is set."""

    url: str
    status: Optional[int] = None
    error: Optional[str] = None

    @classmethod
    def from_check(cls, outcome: CheckOutcome) -> "AuditOutcome":
        if outcome.kind == "http_status":
            return cls(url=outcome.url, status=outcome.status)
        return cls(url=outcome.url, error=outcome.error or "Unknown error")

    def to_row(self) -> Dict[str, str]:
        return {
            "URL": self.url,
            "Status": "" if self.status is None else str(self.status),
            "Error": self.error or "",
        }


@dataclass(frozen=True, slots=True)
class AuditSummary:
    """Final counters of one range audit."""

    count_404: int
    non_404_error_count: int


# ---------------------------------------------------------------------------
# Sitemap documents
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class SitemapEntry:
    """A ``<sitemap>`` child of a sitemap index."""

    loc: Optional[str]
    lastmod: Optional[str] = None


@dataclass(frozen=True, slots=True)
class UrlEntry:
    """A ``<url>`` child of a URL set."""

    loc: Optional[str]
    lastmod: Optional[str] = None
    changefreq: Optional[str] = None
    priority: Optional[str] = None


@dataclass(slots=True)
class SitemapIndex:
    namespace: Optional[str]
    entries: List[SitemapEntry] = field(default_factory=list)


@dataclass(slots=True)
class UrlSet:
    namespace: Optional[str]
    entries: List[UrlEntry] = field(default_factory=list)


SitemapDocument = Union[SitemapIndex, UrlSet]


# ---------------------------------------------------------------------------
# Validation results
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class ValidationResult:
    """Outcome of validating one sitemap document.

    ``valid`` only reflects this node's own ``errors``. Children walked during
    recursive validation live in ``child_results`` and carry their own
    ``valid`` flag; a parent index stays valid even when a child is not.
    """

    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    kind: Optional[str] = None  # index, urlset
    child_sitemaps: Optional[List[str]] = None
    child_results: Optional[Dict[str, "ValidationResult"]] = None

    @property
    def valid(self) -> bool:
        return not self.errors

    @property
    def is_index(self) -> bool:
        return self.kind == "index"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        data: Dict[str, Any] = {
            "valid": self.valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
        }
        if self.child_sitemaps is not None:
            data["childSitemaps"] = list(self.child_sitemaps)
        if self.child_results is not None:
            data["childResults"] = {
                url: child.to_dict() for url, child in self.child_results.items()
            }
        return data
