"""
Config check use case — validate reconcile.yml and report issues.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from reconciler.core.config.loader import (
    ConfigError,
    find_config_file,
    load_config,
    project_root,
)
from reconciler.core.models.config import ReconcileConfig
from reconciler.core.use_cases.build import default_registry


@dataclass
class ConfigCheckResult:
    """Result of configuration validation."""

    valid: bool = False
    config: ReconcileConfig | None = None
    config_path: Path | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    adapters: dict[str, dict] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "config_path": str(self.config_path) if self.config_path else None,
            "errors": self.errors,
            "warnings": self.warnings,
            "adapters": self.adapters,
            "output_dir": self.config.output_dir if self.config else None,
            "managed_files": self.config.managed_files if self.config else [],
            "generated_files": sorted(self.config.generated_files) if self.config else [],
        }


def check_config(config_path: Path | None = None) -> ConfigCheckResult:
    """Validate configuration and report issues.

    A missing reconcile.yml is not an error: defaults apply, with a
    warning so the user knows nothing was read.
    """
    result = ConfigCheckResult()

    if config_path is None:
        config_path = find_config_file()

    if config_path is None:
        result.config = ReconcileConfig()
        result.warnings.append("No reconcile.yml found; using built-in defaults.")
    else:
        result.config_path = config_path
        try:
            result.config = load_config(config_path)
        except ConfigError as e:
            result.errors.append(str(e))
            return result
        try:
            result.config.output_path(project_root(config_path))
        except ValueError as e:
            result.errors.append(f"Invalid reconcile configuration: {e}")
            return result

    config = result.config
    assert config is not None

    if not config.managed_files:
        result.warnings.append("No managed files: every build keeps only generated output.")

    if not config.generated_files:
        result.warnings.append("No generated files: the backend's .gitignore is kept as-is.")

    result.adapters = default_registry(config).adapter_status()
    for name, info in result.adapters.items():
        if not info["available"]:
            result.warnings.append(
                f"Adapter '{name}' unavailable: '{config.backend.executable}' not found on PATH."
                if name == "wasm-pack"
                else f"Adapter '{name}' unavailable."
            )

    result.valid = len(result.errors) == 0
    return result
