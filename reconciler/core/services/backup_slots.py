"""
Backup slots — where a managed file waits while the backend runs.

A slot is a sibling of the output directory, never inside it, so a
backend that wipes and recreates the directory cannot take the slot
with it:

    pkg/package.json   →   pkg.package.json.backup
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from reconciler.core.models.config import ReconcileConfig


def slot_path(output_dir: Path, name: str, suffix: str = ".backup") -> Path:
    """Deterministic backup slot path for managed file ``name``."""
    return output_dir.parent / f"{output_dir.name}.{name}{suffix}"


@dataclass
class SlotInfo:
    """Where one managed file and its slot live, and what exists right now."""

    name: str
    file_path: Path
    slot_path: Path
    file_exists: bool = False
    slot_exists: bool = False

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "file": str(self.file_path),
            "slot": str(self.slot_path),
            "file_exists": self.file_exists,
            "slot_exists": self.slot_exists,
        }


def inspect_slots(config: ReconcileConfig, output_dir: Path) -> list[SlotInfo]:
    """Snapshot of every managed file and its slot, in config order."""
    infos = []
    for name in config.managed_files:
        file_path = output_dir / name
        slot = slot_path(output_dir, name, config.backup_suffix)
        infos.append(
            SlotInfo(
                name=name,
                file_path=file_path,
                slot_path=slot,
                file_exists=file_path.is_file(),
                slot_exists=slot.exists(),
            )
        )
    return infos


def stale_slots(config: ReconcileConfig, output_dir: Path) -> list[SlotInfo]:
    """Slots left behind by an earlier run that never reached restore."""
    return [info for info in inspect_slots(config, output_dir) if info.slot_exists]
