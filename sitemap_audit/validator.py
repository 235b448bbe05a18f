"""Structural validation of sitemap XML against the sitemap protocol.

Each call builds its own findings and returns a fresh ``ValidationResult``;
nothing is kept on module or instance state between documents.
"""

from __future__ import annotations

import asyncio
import logging
import re
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Set, Tuple, Union
from urllib.parse import urlsplit
from xml.etree.ElementTree import Element

from defusedxml import DefusedXmlException
from defusedxml.ElementTree import ParseError, fromstring

from .document import (
    SitemapDocument,
    SitemapEntry,
    SitemapIndex,
    UrlEntry,
    UrlSet,
    ValidationResult,
)

LOGGER = logging.getLogger(__name__)

SITEMAP_NAMESPACE = "http://www.sitemaps.org/schemas/sitemap/0.9"
# Scheme-agnostic form accepted in namespace declarations.
_NAMESPACE_MARKER = "sitemaps.org/schemas/sitemap/0.9"

VALID_CHANGEFREQ = ("always", "hourly", "daily", "weekly", "monthly", "yearly", "never")
MAX_URLS_PER_SITEMAP = 50_000
MAX_SITEMAP_SIZE = 50 * 1024 * 1024

ROOT_ERROR = "Root element must be either <urlset> or <sitemapindex>"
NAMESPACE_ERROR = "Missing or invalid xmlns namespace"

# (pattern, strptime format) pairs for W3C datetime values.
_DATE_FORMATS: List[Tuple[re.Pattern, str]] = [
    (re.compile(r"^\d{4}-\d{2}-\d{2}$"), "%Y-%m-%d"),
    (re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}[+-]\d{2}:\d{2}$"), "%Y-%m-%dT%H:%M:%S%z"),
    (re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z$"), "%Y-%m-%dT%H:%M:%SZ"),
    (re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$"), "%Y-%m-%dT%H:%M:%S.%fZ"),
]


class SitemapParseError(ValueError):
    """Raised by ``parse_sitemap`` for malformed XML or an unknown root."""


# ---------------------------------------------------------------------------
# Value checks
# ---------------------------------------------------------------------------


def is_valid_url(value: Optional[str]) -> bool:
    """Absolute http(s) URL with a host."""
    if not value:
        return False
    try:
        parts = urlsplit(value)
        parts.port  # raises ValueError on a malformed port
    except ValueError:
        return False
    return parts.scheme in ("http", "https") and bool(parts.hostname)


def is_valid_date(value: Optional[str]) -> bool:
    """W3C datetime in one of the four accepted shapes and a real instant."""
    if not value:
        return False
    for pattern, fmt in _DATE_FORMATS:
        if pattern.match(value):
            try:
                datetime.strptime(value, fmt)
            except ValueError:
                return False
            return True
    return False


def is_valid_priority(value: str) -> bool:
    try:
        priority = float(value)
    except ValueError:
        return False
    return 0.0 <= priority <= 1.0


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def _split_tag(tag: str) -> Tuple[Optional[str], str]:
    if tag.startswith("{"):
        namespace, _, local = tag[1:].partition("}")
        return namespace, local
    return None, tag


def _children(element: Element, name: str) -> List[Element]:
    return [child for child in element if _split_tag(child.tag)[1] == name]


def _child_text(element: Element, name: str) -> Optional[str]:
    for child in element:
        if _split_tag(child.tag)[1] == name:
            text = (child.text or "").strip()
            return text or None
    return None


def _parse_root(content: str) -> Element:
    try:
        return fromstring(content)
    except (ParseError, DefusedXmlException) as exc:
        raise SitemapParseError(f"Invalid XML: {exc}") from exc


def _build_document(root: Element) -> Optional[SitemapDocument]:
    namespace, local = _split_tag(root.tag)
    if local == "sitemapindex":
        return SitemapIndex(
            namespace=namespace,
            entries=[
                SitemapEntry(
                    loc=_child_text(node, "loc"),
                    lastmod=_child_text(node, "lastmod"),
                )
                for node in _children(root, "sitemap")
            ],
        )
    if local == "urlset":
        return UrlSet(
            namespace=namespace,
            entries=[
                UrlEntry(
                    loc=_child_text(node, "loc"),
                    lastmod=_child_text(node, "lastmod"),
                    changefreq=_child_text(node, "changefreq"),
                    priority=_child_text(node, "priority"),
                )
                for node in _children(root, "url")
            ],
        )
    return None


def parse_sitemap(content: str) -> SitemapDocument:
    """Parse sitemap XML into a ``SitemapIndex`` or ``UrlSet``.

    Raises:
        SitemapParseError: If the XML is malformed or the root is neither
            ``<urlset>`` nor ``<sitemapindex>``.
    """
    document = _build_document(_parse_root(content))
    if document is None:
        raise SitemapParseError(ROOT_ERROR)
    return document


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def _has_sitemap_namespace(namespace: Optional[str]) -> bool:
    return bool(namespace) and _NAMESPACE_MARKER in namespace


def _validate_index(index: SitemapIndex, result: ValidationResult) -> None:
    LOGGER.debug("Type: Sitemap Index, %d sitemaps", len(index.entries))
    if not _has_sitemap_namespace(index.namespace):
        result.errors.append(NAMESPACE_ERROR)

    if not index.entries:
        result.warnings.append("Sitemap index contains no sitemaps")

    children: List[str] = []
    for position, entry in enumerate(index.entries, start=1):
        if not entry.loc:
            result.errors.append(f"Sitemap {position}: Missing required <loc> element")
        else:
            children.append(entry.loc)
            if not is_valid_url(entry.loc):
                result.errors.append(f"Sitemap {position}: Invalid URL: {entry.loc}")

        if entry.lastmod and not is_valid_date(entry.lastmod):
            result.warnings.append(
                f"Sitemap {position}: Invalid lastmod date: {entry.lastmod}"
            )

    result.kind = "index"
    result.child_sitemaps = children


def _validate_urlset(urlset: UrlSet, result: ValidationResult) -> None:
    LOGGER.debug("Type: URL Sitemap, %d URLs", len(urlset.entries))
    if not _has_sitemap_namespace(urlset.namespace):
        result.errors.append(NAMESPACE_ERROR)

    count = len(urlset.entries)
    if count == 0:
        result.warnings.append("Sitemap contains no URLs")
    if count > MAX_URLS_PER_SITEMAP:
        result.errors.append(
            f"Too many URLs ({count}). Maximum is {MAX_URLS_PER_SITEMAP}"
        )

    seen: Set[str] = set()
    for position, entry in enumerate(urlset.entries, start=1):
        loc = entry.loc
        if not loc:
            result.errors.append(f"URL {position}: Missing required <loc> element")
            continue

        if not is_valid_url(loc):
            result.errors.append(f"URL {position}: Invalid URL format: {loc}")

        if loc in seen:
            result.warnings.append(f"URL {position}: Duplicate URL: {loc}")
        seen.add(loc)

        if entry.lastmod and not is_valid_date(entry.lastmod):
            result.warnings.append(f"URL {position}: Invalid lastmod date: {entry.lastmod}")

        if entry.changefreq and entry.changefreq not in VALID_CHANGEFREQ:
            result.warnings.append(f"URL {position}: Invalid changefreq: {entry.changefreq}")

        if entry.priority is not None and not is_valid_priority(entry.priority):
            result.warnings.append(f"URL {position}: Invalid priority: {entry.priority}")

        if " " in loc:
            result.errors.append(
                f"URL {position}: Contains spaces (should be encoded): {loc}"
            )

        if "&" in loc and "&amp;" not in loc:
            result.errors.append(f"URL {position}: Unescaped ampersand: {loc}")

    result.kind = "urlset"


def validate_content(content: str, source: Optional[str] = None) -> ValidationResult:
    """
    Validate one sitemap document.

    Args:
        content: Raw XML text.
        source: File path or URL, used for logging only.

    Returns:
        A new ValidationResult. For a sitemap index ``child_sitemaps`` lists
        the child ``<loc>`` values in document order.
    """
    result = ValidationResult()

    size = len(content.encode("utf-8"))
    if size > MAX_SITEMAP_SIZE:
        result.errors.append(
            f"File size ({size / 1024 / 1024:.2f}MB) exceeds 50MB limit"
        )

    try:
        root = _parse_root(content)
    except SitemapParseError as exc:
        result.errors.append(str(exc))
        return result

    document = _build_document(root)
    if isinstance(document, SitemapIndex):
        _validate_index(document, result)
    elif isinstance(document, UrlSet):
        _validate_urlset(document, result)
    else:
        result.errors.append(ROOT_ERROR)

    if source:
        LOGGER.debug(
            "Validated %s: %d errors, %d warnings",
            source,
            len(result.errors),
            len(result.warnings),
        )
    return result


async def validate_file_async(path: Union[str, Path]) -> ValidationResult:
    """Validate a sitemap stored on disk. Read failures become errors."""
    LOGGER.info("Validating: %s", path)
    try:
        content = await asyncio.to_thread(Path(path).read_text, encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        return ValidationResult(errors=[f"Failed to read file: {exc}"])
    return validate_content(content, str(path))
