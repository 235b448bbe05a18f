"""Output and formatting helpers for CLI commands."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from .batch import BatchReport
from .document import ValidationResult
from .health import HealthReport
from .walker import MultiValidationReport, ProblemSitemapReport


def format_validation_result(result: ValidationResult, indent: str = "  ") -> str:
    """Validity line followed by the error and warning lists."""
    lines = [f"{indent}✓ Valid" if result.valid else f"{indent}✗ Invalid"]
    if result.errors:
        lines.append(f"{indent}Errors:")
        lines.extend(f"{indent}  - {error}" for error in result.errors)
    if result.warnings:
        lines.append(f"{indent}Warnings:")
        lines.extend(f"{indent}  - {warning}" for warning in result.warnings)
    return "\n".join(lines)


def format_validation_tree(results: Dict[str, ValidationResult], indent: str = "") -> str:
    """Render recursive results as an indented tree."""
    lines: List[str] = []
    for url, result in results.items():
        lines.append(f"{indent}{url}")
        lines.append(f"{indent}  ✓ Valid" if result.valid else f"{indent}  ✗ Invalid")
        if result.errors:
            lines.append(f"{indent}  Errors: {len(result.errors)}")
            lines.extend(f"{indent}    - {error}" for error in result.errors)
        if result.warnings:
            lines.append(f"{indent}  Warnings: {len(result.warnings)}")
        if result.child_results:
            lines.append(f"{indent}  Child sitemaps:")
            lines.append(format_validation_tree(result.child_results, indent + "    "))
    return "\n".join(lines)


def format_multi_report(report: MultiValidationReport, recursive: bool = False) -> str:
    lines: List[str] = []
    for target, result in report.results.items():
        lines.append(target)
        lines.append(format_validation_result(result))
    lines.append("")
    lines.append("=== SUMMARY ===")
    lines.append(f"Total files validated: {len(report.results)}")
    if report.total_child_sitemaps:
        lines.append(f"Total child sitemaps validated: {report.total_child_sitemaps}")
    lines.append(f"Total errors: {report.total_errors}")
    lines.append(f"Total warnings: {report.total_warnings}")
    if recursive and report.results:
        lines.append("")
        lines.append("=== DETAILED RESULTS ===")
        lines.append(format_validation_tree(report.results))
    return "\n".join(lines)


def format_problem_report(report: ProblemSitemapReport) -> str:
    lines = [
        "=== PROBLEM SITEMAPS SUMMARY ===",
        f"Valid: {report.valid_count}",
        f"Invalid: {report.invalid_count}",
        "",
        "States with errors:",
    ]
    for state in report.states_with_errors:
        lines.append(f"  {state.upper()}:")
        for label, result in report.results[state].items():
            if not result.valid:
                lines.append(f"    {label.capitalize()}: {', '.join(result.errors)}")
    return "\n".join(lines)


def format_health_report(report: HealthReport) -> str:
    lines = ["=== SITEMAP HEALTH CHECK REPORT ===", ""]
    if not report.main_sitemap_ok:
        lines.append(f"Main sitemap unavailable: {report.base_url}/sitemap.xml")
        lines.append("")

    lines.append("Overview:")
    lines.append(f"  Total URLs found: {report.total_urls}")
    lines.append(f"  Unique URLs: {len(report.unique_urls)}")
    lines.append(f"  Duplicate URLs: {report.duplicate_count}")

    lines.append("")
    lines.append("Broken Sitemaps:")
    if not report.broken_sitemaps:
        lines.append("  None found")
    for broken in report.broken_sitemaps:
        lines.append(f"  {broken.identifier}: {broken.error}")
        lines.append(f"    {broken.url}")

    lines.append("")
    lines.append("Empty Sitemaps:")
    if not report.empty_sitemaps:
        lines.append("  None found")
    for empty in report.empty_sitemaps:
        suffix = f": {empty.reason}" if empty.reason else ""
        lines.append(f"  {empty.identifier}{suffix}")

    lines.append("")
    lines.append("Suspicious URLs:")
    by_reason = report.suspicious_by_reason
    if not by_reason:
        lines.append("  None found")
    for reason, count in by_reason.items():
        lines.append(f"  {reason}: {count} URLs")

    lines.append("")
    lines.append("URL Status Summary (from samples):")
    for status, count in report.urls_by_status.items():
        lines.append(f"  {status}: {count}")

    recommendations = report.recommendations
    if recommendations:
        lines.append("")
        lines.append("Recommendations:")
        lines.extend(f"  {i}. {tip}" for i, tip in enumerate(recommendations, 1))
    return "\n".join(lines)


def format_batch_report(report: BatchReport) -> str:
    lines = [
        f"Processed: {len(report.processed)}",
        f"Failed: {len(report.failed)}",
        f"Already complete: {len(report.skipped)}",
    ]
    for name in report.failed:
        lines.append(f"  failed: {name}")
    return "\n".join(lines)


def write_json(data: Any, output: Optional[str]) -> None:
    """Print *data* as JSON, or write it to *output* when given."""
    text = json.dumps(data, indent=2, ensure_ascii=False)
    if output is None:
        print(text)
        return
    path = Path(output)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    logging.info("Wrote %s", path)
