"""Runtime settings read from the environment.

Variables are read at call time (inside ``load_settings``) so tests can
monkeypatch them freely and late ``.env`` loading works correctly.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

LOGGER = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://goodparty.org"
DEFAULT_USER_AGENT = "GoodParty-Sitemap-Validator/1.0"


@dataclass(slots=True)
class AuditSettings:
    """Defaults for the CLI entry points."""

    base_url: str = DEFAULT_BASE_URL
    input_csv: str = "goodparty_sitemap_urls.csv"
    groupings_csv: str = "election_groupings.csv"
    output_dir: str = "csv_output"
    concurrency: int = 10
    timeout: float = 10.0
    fetch_timeout: float = 30.0
    user_agent: str = DEFAULT_USER_AGENT


def _int_env(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        LOGGER.warning("Invalid %s '%s'; falling back to %s.", name, raw, default)
        return default


def _float_env(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        LOGGER.warning("Invalid %s '%s'; falling back to %s.", name, raw, default)
        return default


def load_settings(environ: Optional[Mapping[str, str]] = None) -> AuditSettings:
    """Build ``AuditSettings`` from ``SITEMAP_AUDIT_*`` variables."""
    env = os.environ if environ is None else environ
    defaults = AuditSettings()
    return AuditSettings(
        base_url=env.get("SITEMAP_AUDIT_BASE_URL") or defaults.base_url,
        input_csv=env.get("SITEMAP_AUDIT_INPUT_CSV") or defaults.input_csv,
        groupings_csv=env.get("SITEMAP_AUDIT_GROUPINGS_CSV") or defaults.groupings_csv,
        output_dir=env.get("SITEMAP_AUDIT_OUTPUT_DIR") or defaults.output_dir,
        concurrency=_int_env(env, "SITEMAP_AUDIT_CONCURRENCY", defaults.concurrency),
        timeout=_float_env(env, "SITEMAP_AUDIT_TIMEOUT", defaults.timeout),
        fetch_timeout=_float_env(env, "SITEMAP_AUDIT_FETCH_TIMEOUT", defaults.fetch_timeout),
        user_agent=env.get("SITEMAP_AUDIT_USER_AGENT") or defaults.user_agent,
    )
