"""Sitemap URL auditing and sitemap validation.

This package checks the health of a site's sitemaps. It supports:

- Auditing a row range of a sitemap URL list for non-200 responses
- Batch auditing every pending range of a range tracking CSV
- Validating sitemap XML (files or URLs), recursively through indexes
- A sampling health sweep over a site's sitemaps

Example usage:

    from sitemap_audit import audit_range, validate_url, run_pending_audits

    # One range of the URL list
    summary = audit_range(
        output_csv="csv_output/01_ak_elections_counties_non_200_responses.csv",
        first_row=949,
        last_row=1200,
        input_csv="goodparty_sitemap_urls.csv",
    )
    print(summary.count_404, summary.non_404_error_count)

    # Every range still missing its counts
    report = run_pending_audits(groupings_csv="election_groupings.csv")

    # Recursive sitemap validation
    result = validate_url("https://example.com/sitemap.xml", recursive=True)
    print(result.valid, result.errors)
    for child_url, child in (result.child_results or {}).items():
        print(child_url, child.valid)
"""

from __future__ import annotations

from .audit import AuditConfigError, audit_range, audit_range_async, build_audit_range
from .batch import AuditStorageError, BatchReport, run_pending_audits, run_pending_audits_async
from .document import (
    AuditOutcome,
    AuditRange,
    AuditSummary,
    CheckOutcome,
    SitemapEntry,
    SitemapIndex,
    UrlEntry,
    UrlRecord,
    UrlSet,
    ValidationResult,
)
from .groupings import compute_groupings, write_groupings
from .health import HealthReport, SitemapHealthCheck
from .status import build_client, check_url_async
from .sweep import SweepResult, sweep_urls_async
from .validator import SitemapParseError, parse_sitemap, validate_content, validate_file_async
from .walker import (
    MultiValidationReport,
    ProblemSitemapReport,
    validate_many_async,
    validate_problem_sitemaps_async,
    validate_site_async,
    validate_url,
    validate_url_async,
)

__all__ = [
    # Data types
    "UrlRecord",
    "AuditRange",
    "CheckOutcome",
    "AuditOutcome",
    "AuditSummary",
    "SitemapEntry",
    "UrlEntry",
    "SitemapIndex",
    "UrlSet",
    "ValidationResult",
    # Status checks
    "build_client",
    "check_url_async",
    "SweepResult",
    "sweep_urls_async",
    # Range audits
    "AuditConfigError",
    "build_audit_range",
    "audit_range",
    "audit_range_async",
    # Batch audits
    "AuditStorageError",
    "BatchReport",
    "run_pending_audits",
    "run_pending_audits_async",
    "compute_groupings",
    "write_groupings",
    # Validation
    "SitemapParseError",
    "parse_sitemap",
    "validate_content",
    "validate_file_async",
    "MultiValidationReport",
    "ProblemSitemapReport",
    "validate_url",
    "validate_url_async",
    "validate_many_async",
    "validate_site_async",
    "validate_problem_sitemaps_async",
    # Health
    "HealthReport",
    "SitemapHealthCheck",
]
