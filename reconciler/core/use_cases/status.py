"""
Status use case — what the output directory looks like right now.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from reconciler.core.config.loader import ConfigError, resolve_config
from reconciler.core.models.config import ReconcileConfig
from reconciler.core.services.backup_slots import SlotInfo, inspect_slots


@dataclass
class GeneratedFileState:
    """A generated-only file and whether it holds the fixed content."""

    name: str
    exists: bool = False
    matches: bool = False

    def to_dict(self) -> dict:
        return {"name": self.name, "exists": self.exists, "matches": self.matches}


@dataclass
class StatusResult:
    """Snapshot of managed files, slots, and generated files."""

    config: ReconcileConfig | None = None
    project_root: Path | None = None
    output_dir: Path | None = None
    output_exists: bool = False
    managed: list[SlotInfo] = field(default_factory=list)
    generated: list[GeneratedFileState] = field(default_factory=list)
    error: str | None = None

    @property
    def stale_slots(self) -> list[SlotInfo]:
        return [m for m in self.managed if m.slot_exists]

    @property
    def clean(self) -> bool:
        return self.error is None and not self.stale_slots

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error}
        return {
            "project_root": str(self.project_root),
            "output_dir": str(self.output_dir),
            "output_exists": self.output_exists,
            "managed": [m.to_dict() for m in self.managed],
            "generated": [g.to_dict() for g in self.generated],
            "stale_slots": len(self.stale_slots),
            "clean": self.clean,
        }


def get_status(config_path: Path | None = None) -> StatusResult:
    """Inspect the output directory without changing anything."""
    result = StatusResult()

    try:
        config, project_root = resolve_config(config_path)
    except ConfigError as e:
        result.error = str(e)
        return result

    output_dir = config.output_path(project_root)
    result.config = config
    result.project_root = project_root
    result.output_dir = output_dir
    result.output_exists = output_dir.is_dir()
    result.managed = inspect_slots(config, output_dir)

    for name, content in config.generated_files.items():
        path = output_dir / name
        state = GeneratedFileState(name=name, exists=path.is_file())
        if state.exists:
            state.matches = path.read_bytes() == content.encode("utf-8")
        result.generated.append(state)

    return result
