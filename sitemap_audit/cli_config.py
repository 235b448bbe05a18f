"""Configuration loading helpers for CLI entrypoints."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

CONFIG_DIR = Path.home() / ".config" / "sitemap-audit"
CONFIG_ENV_FILE = CONFIG_DIR / ".env"


def load_config(
    *,
    config_dir: Path,
    config_env_file: Path,
    cwd: Path,
    load_env: Callable[[Path], bool],
    copy_file: Callable[[Path, Path], str],
) -> None:
    """Load .env configuration with fallback to user config directory.

    Search order:
    1. .env in the current working directory
    2. ``config_env_file`` (``~/.config/sitemap-audit/.env`` by default)

    When neither exists, the packaged .env.example is copied to
    ``config_env_file`` as a starting point.
    """
    local_env = cwd / ".env"
    if local_env.is_file():
        load_env(local_env)
        return

    if config_env_file.is_file():
        load_env(config_env_file)
        return

    package_dir = Path(__file__).parent.parent
    example_file = package_dir / ".env.example"

    if example_file.is_file():
        try:
            config_dir.mkdir(parents=True, exist_ok=True)
            copy_file(example_file, config_env_file)
            logging.info(
                "Created config file at %s from .env.example. "
                "Edit it to point SITEMAP_AUDIT_BASE_URL at your site.",
                config_env_file,
            )
            load_env(config_env_file)
        except OSError as exc:
            logging.debug("Could not seed %s: %s", config_env_file, exc)
