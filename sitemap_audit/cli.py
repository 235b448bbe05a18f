"""Command-line interface for range audits, sitemap validation and health sweeps."""

from __future__ import annotations

import argparse
import asyncio
import logging
import random
import shutil
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from .cli_config import CONFIG_DIR, CONFIG_ENV_FILE, load_config


def _load_config() -> None:
    load_config(
        config_dir=CONFIG_DIR,
        config_env_file=CONFIG_ENV_FILE,
        cwd=Path.cwd(),
        load_env=load_dotenv,
        copy_file=shutil.copy,
    )


_load_config()

from .audit import AuditConfigError, audit_range_async, build_audit_range
from .batch import AuditStorageError, run_pending_audits_async
from .cli_output import (
    format_batch_report,
    format_health_report,
    format_multi_report,
    format_problem_report,
    write_json,
)
from .groupings import DEFAULT_START_ROW, write_groupings
from .health import DEFAULT_SAMPLE_RATE, DEFAULT_SAMPLE_SIZE, SitemapHealthCheck
from .settings import AuditSettings, load_settings
from .status import build_client
from .walker import (
    DEFAULT_MAX_DEPTH,
    PROBLEM_STATES,
    validate_many_async,
    validate_problem_sitemaps_async,
    validate_site_async,
)


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


def _add_http_args(parser: argparse.ArgumentParser, settings: AuditSettings) -> None:
    parser.add_argument(
        "--concurrency",
        type=int,
        default=settings.concurrency,
        help=f"Maximum concurrent requests (default: {settings.concurrency})",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=settings.timeout,
        help=f"Per-request timeout in seconds (default: {settings.timeout:g})",
    )
    parser.add_argument(
        "--max-non-404",
        type=int,
        default=0,
        dest="max_non_404_results",
        help="Stop after this many non-404 errors (default: 0 = never)",
    )


def _add_verbose_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )


def _run(coro_factory, args: argparse.Namespace) -> int:
    """Run an async command with the shared interrupt/error handling."""
    try:
        return asyncio.run(coro_factory(args))
    except KeyboardInterrupt:
        logging.info("Interrupted")
        return 130
    except Exception as exc:
        logging.error("Error: %s", exc)
        if args.verbose:
            logging.exception("Full traceback:")
        return 1


# =============================================================================
# AUDIT COMMAND (single range)
# =============================================================================


def _parse_audit_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    settings = load_settings()
    parser = argparse.ArgumentParser(
        prog="sitemap-audit",
        description="Audit one row range of the sitemap URL list for non-200 responses.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
Examples:
  # Audit data rows 1-500 of the default URL list
  sitemap-audit csv_output/01_ak_elections_counties_non_200_responses.csv 1 500

  # Use another URL list and stop after 25 non-404 errors
  sitemap-audit out.csv 501 900 urls.csv --max-non-404 25
""",
    )
    parser.add_argument("output_csv", help="Destination CSV for non-200 responses")
    parser.add_argument("first_row", type=int, help="First 1-based data row to audit")
    parser.add_argument("last_row", type=int, help="Last data row to audit (inclusive)")
    parser.add_argument(
        "input_csv",
        nargs="?",
        default=settings.input_csv,
        help=f"CSV with all sitemap URLs (default: {settings.input_csv})",
    )
    _add_http_args(parser, settings)
    _add_verbose_arg(parser)

    args = parser.parse_args(argv)
    try:
        build_audit_range(args.output_csv, args.first_row, args.last_row)
    except AuditConfigError as exc:
        parser.error(str(exc))
    if args.concurrency < 1:
        parser.error("--concurrency must be >= 1")
    args.user_agent = settings.user_agent
    return args


async def _run_audit_async(args: argparse.Namespace) -> int:
    async with build_client(timeout=args.timeout, user_agent=args.user_agent) as client:
        summary = await audit_range_async(
            output_csv=args.output_csv,
            first_row=args.first_row,
            last_row=args.last_row,
            input_csv=args.input_csv,
            concurrency=args.concurrency,
            timeout=args.timeout,
            max_non_404_results=args.max_non_404_results,
            client=client,
        )
    print(f"404s: {summary.count_404}")
    print(f"Non-404 errors: {summary.non_404_error_count}")
    return 0


def audit_main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for auditing a single row range."""
    args = _parse_audit_args(argv)
    _setup_logging(args.verbose)
    return _run(_run_audit_async, args)


# =============================================================================
# AUDIT-ALL COMMAND (pending ranges)
# =============================================================================


def _parse_audit_all_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    settings = load_settings()
    parser = argparse.ArgumentParser(
        prog="sitemap-audit-all",
        description=(
            "Audit every pending range of the groupings CSV and write the "
            "404 / non-404 counts back. Ranges with counts are skipped."
        ),
    )
    parser.add_argument(
        "--groupings",
        default=settings.groupings_csv,
        help=f"Range tracking CSV (default: {settings.groupings_csv})",
    )
    parser.add_argument(
        "--input",
        dest="input_csv",
        default=settings.input_csv,
        help=f"CSV with all sitemap URLs (default: {settings.input_csv})",
    )
    parser.add_argument(
        "--output-dir",
        default=settings.output_dir,
        help=f"Directory for per-range outcome CSVs (default: {settings.output_dir})",
    )
    _add_http_args(parser, settings)
    _add_verbose_arg(parser)

    args = parser.parse_args(argv)
    if args.concurrency < 1:
        parser.error("--concurrency must be >= 1")
    args.user_agent = settings.user_agent
    return args


async def _run_audit_all_async(args: argparse.Namespace) -> int:
    async with build_client(timeout=args.timeout, user_agent=args.user_agent) as client:
        try:
            report = await run_pending_audits_async(
                groupings_csv=args.groupings,
                input_csv=args.input_csv,
                output_dir=args.output_dir,
                concurrency=args.concurrency,
                timeout=args.timeout,
                max_non_404_results=args.max_non_404_results,
                client=client,
            )
        except AuditStorageError as exc:
            logging.error("Fatal error: %s", exc)
            return 1
    print(format_batch_report(report))
    return 0


def audit_all_main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for sweeping all pending ranges."""
    args = _parse_audit_all_args(argv)
    _setup_logging(args.verbose)
    return _run(_run_audit_all_async, args)


# =============================================================================
# VALIDATE COMMAND
# =============================================================================


def _parse_validate_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    settings = load_settings()
    parser = argparse.ArgumentParser(
        prog="sitemap-validate",
        description="Validate sitemap XML files or URLs against the sitemap protocol.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
Examples:
  sitemap-validate https://example.com/sitemap.xml
  sitemap-validate --recursive https://example.com/sitemap.xml
  sitemap-validate ./public/sitemap.xml ./public/sitemap-0.xml
  sitemap-validate --site
  sitemap-validate --site https://staging.example.com
  sitemap-validate --problem-sitemaps --states ca tx
""",
    )
    parser.add_argument("targets", nargs="*", help="Sitemap files or URLs")
    parser.add_argument(
        "--recursive",
        action="store_true",
        help="Follow and validate child sitemaps in sitemap indexes",
    )
    parser.add_argument(
        "--max-depth",
        type=int,
        default=DEFAULT_MAX_DEPTH,
        help=f"Maximum index depth to walk (default: {DEFAULT_MAX_DEPTH})",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--site",
        nargs="?",
        const=settings.base_url,
        default=None,
        metavar="BASE_URL",
        help=f"Recursively validate BASE_URL/sitemap.xml (default: {settings.base_url})",
    )
    mode.add_argument(
        "--problem-sitemaps",
        nargs="?",
        const=settings.base_url,
        default=None,
        metavar="BASE_URL",
        help="Validate the per-state candidate and election sitemap pairs",
    )
    parser.add_argument(
        "--states",
        nargs="+",
        default=None,
        choices=PROBLEM_STATES,
        metavar="CODE",
        help="Restrict --problem-sitemaps to these state codes",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        dest="json_output",
        help="Output results as JSON",
    )
    parser.add_argument(
        "-o",
        "--output",
        type=str,
        default=None,
        help="Write JSON output to this file",
    )
    _add_verbose_arg(parser)

    args = parser.parse_args(argv)
    if args.site is None and args.problem_sitemaps is None and not args.targets:
        parser.error("at least one sitemap file or URL is required")
    if (args.site is not None or args.problem_sitemaps is not None) and args.targets:
        parser.error("targets cannot be combined with --site or --problem-sitemaps")
    if args.max_depth < 0:
        parser.error("--max-depth must be >= 0")
    args.fetch_timeout = settings.fetch_timeout
    args.user_agent = settings.user_agent
    return args


async def _run_validate_async(args: argparse.Namespace) -> int:
    async with build_client(timeout=args.fetch_timeout, user_agent=args.user_agent) as client:
        if args.problem_sitemaps is not None:
            problems = await validate_problem_sitemaps_async(
                args.problem_sitemaps,
                states=args.states,
                client=client,
                timeout=args.fetch_timeout,
            )
            if args.json_output:
                write_json(
                    {
                        state: {label: result.to_dict() for label, result in pair.items()}
                        for state, pair in problems.results.items()
                    },
                    args.output,
                )
            else:
                print(format_problem_report(problems))
            return 0 if problems.invalid_count == 0 else 1

        recursive = args.recursive
        if args.site is not None:
            recursive = True
            report = await validate_site_async(
                args.site,
                max_depth=args.max_depth,
                client=client,
                timeout=args.fetch_timeout,
            )
        else:
            logging.info(
                "Validating %d sitemap(s) with recursive=%s", len(args.targets), recursive
            )
            report = await validate_many_async(
                args.targets,
                recursive=recursive,
                max_depth=args.max_depth,
                client=client,
                timeout=args.fetch_timeout,
            )

    if args.json_output:
        write_json(
            {target: result.to_dict() for target, result in report.results.items()},
            args.output,
        )
    else:
        print(format_multi_report(report, recursive=recursive))
    return 0 if all(result.valid for result in report.results.values()) else 1


def validate_main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for sitemap validation."""
    args = _parse_validate_args(argv)
    _setup_logging(args.verbose)
    return _run(_run_validate_async, args)


# =============================================================================
# HEALTH COMMAND
# =============================================================================


def _sample_rate(value: str) -> float:
    rate = float(value)
    if not 0.0 <= rate <= 1.0:
        raise argparse.ArgumentTypeError("sample rate must be within [0, 1]")
    return rate


def _parse_health_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    settings = load_settings()
    parser = argparse.ArgumentParser(
        prog="sitemap-health",
        description="Sampling health sweep over a site's sitemaps.",
    )
    parser.add_argument(
        "base_url",
        nargs="?",
        default=settings.base_url,
        help=f"Site root (default: {settings.base_url})",
    )
    parser.add_argument(
        "--sample-rate",
        type=_sample_rate,
        default=DEFAULT_SAMPLE_RATE,
        help=f"Share of sampled URLs that get a status check (default: {DEFAULT_SAMPLE_RATE})",
    )
    parser.add_argument(
        "--sample-size",
        type=int,
        default=DEFAULT_SAMPLE_SIZE,
        help=f"URLs sampled per state sitemap (default: {DEFAULT_SAMPLE_SIZE})",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for reproducible sampling",
    )
    _add_verbose_arg(parser)

    args = parser.parse_args(argv)
    args.settings = settings
    return args


async def _run_health_async(args: argparse.Namespace) -> int:
    settings: AuditSettings = args.settings
    async with build_client(timeout=settings.fetch_timeout, user_agent=settings.user_agent) as client:
        check = SitemapHealthCheck(
            args.base_url,
            sample_rate=args.sample_rate,
            sample_size=args.sample_size,
            rng=random.Random(args.seed),
            client=client,
            fetch_timeout=settings.fetch_timeout,
            check_timeout=settings.timeout,
        )
        report = await check.run_full_check_async()
    print(format_health_report(report))
    return 0 if report.main_sitemap_ok else 1


def health_main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for the sitemap health sweep."""
    args = _parse_health_args(argv)
    _setup_logging(args.verbose)
    return _run(_run_health_async, args)


# =============================================================================
# GROUPINGS COMMAND
# =============================================================================


def _parse_groupings_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    settings = load_settings()
    parser = argparse.ArgumentParser(
        prog="sitemap-groupings",
        description="Compute per-state row ranges of the sitemap URL list.",
    )
    parser.add_argument(
        "--input",
        dest="input_csv",
        default=settings.input_csv,
        help=f"CSV with all sitemap URLs (default: {settings.input_csv})",
    )
    parser.add_argument(
        "--output",
        default=settings.groupings_csv,
        help=f"Range tracking CSV to write (default: {settings.groupings_csv})",
    )
    parser.add_argument(
        "--start-row",
        type=int,
        default=DEFAULT_START_ROW,
        help=f"First 1-based data row to group (default: {DEFAULT_START_ROW})",
    )
    _add_verbose_arg(parser)

    args = parser.parse_args(argv)
    if args.start_row < 1:
        parser.error("--start-row must be >= 1")
    return args


def groupings_main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for computing the range tracking CSV."""
    args = _parse_groupings_args(argv)
    _setup_logging(args.verbose)

    try:
        ranges = write_groupings(args.input_csv, args.output, start_row=args.start_row)
    except Exception as exc:
        logging.error("Error: %s", exc)
        if args.verbose:
            logging.exception("Full traceback:")
        return 1
    print(f"Wrote {len(ranges)} ranges to {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(validate_main())
