"""
Configuration loader — reads reconcile.yml into a ReconcileConfig.

The file is optional. Without one, the built-in defaults describe
the usual wasm-pack layout (``pkg/`` with package.json and README.md
kept by hand, ``.gitignore`` rewritten).
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from reconciler.core.models.config import ReconcileConfig

logger = logging.getLogger(__name__)

# Default config filename
CONFIG_FILE = "reconcile.yml"


class ConfigError(Exception):
    """Raised when the reconcile configuration is invalid or unreadable."""


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Search for reconcile.yml starting from the given directory, walking up.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to reconcile.yml, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / CONFIG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    return None


def load_config(path: Path) -> ReconcileConfig:
    """Load and validate a reconcile configuration file.

    Args:
        path: Path to reconcile.yml.

    Returns:
        Validated ReconcileConfig.

    Raises:
        ConfigError: If the file is missing, unreadable, or invalid.
    """
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading reconcile config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    # An empty file means "all defaults"
    if data is None:
        data = {}

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    try:
        config = ReconcileConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid reconcile configuration: {e}") from e

    logger.info(
        "Loaded config: output_dir=%s, %d managed file(s)",
        config.output_dir,
        len(config.managed_files),
    )
    return config


def resolve_config(config_path: Path | None = None) -> tuple[ReconcileConfig, Path]:
    """Resolve configuration and project root for an entry point.

    An explicit path must exist. Otherwise reconcile.yml is searched
    upward from the cwd; if none is found, defaults are used and the
    cwd becomes the project root.

    Returns:
        (config, project_root)

    Raises:
        ConfigError: If an explicit or discovered file is invalid.
    """
    if config_path is None:
        config_path = find_config_file()

    if config_path is None:
        logger.info("No %s found — using defaults", CONFIG_FILE)
        return ReconcileConfig(), Path.cwd().resolve()

    config = load_config(config_path)
    root = project_root(config_path)
    try:
        config.output_path(root)
    except ValueError as e:
        raise ConfigError(f"Invalid reconcile configuration: {e}") from e
    return config, root


def project_root(config_path: Path) -> Path:
    """Get the project root directory from a config file path."""
    return config_path.parent.resolve()
