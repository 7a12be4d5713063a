"""
Recover use case — put stale backup slots back after a failed build.

A build that fails in the backend step leaves its backup slots on disk.
Recovery moves each of them back to its managed file, the same way a
successful build's restore step would, without running the backend.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path

from reconciler.adapters.registry import AdapterRegistry
from reconciler.core.config.loader import ConfigError, resolve_config
from reconciler.core.engine.pipeline import (
    PipelineReport,
    PipelineStage,
    StepResult,
    generate_operation_id,
)
from reconciler.core.models.action import Action
from reconciler.core.persistence.audit import AuditWriter
from reconciler.core.services.backup_slots import stale_slots
from reconciler.core.use_cases.build import default_registry, write_audit_entry

logger = logging.getLogger(__name__)


@dataclass
class RecoverResult:
    """Result of a recovery run."""

    step: StepResult | None = None
    project_root: Path | None = None
    restored: list[str] | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.step is not None and self.step.ok

    @property
    def exit_code(self) -> int:
        if self.error or self.step is None:
            return 1
        return self.step.exit_code

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error}
        return {
            "project_root": str(self.project_root),
            "restored": self.restored or [],
            "step": self.step.to_dict() if self.step else None,
        }


def run_recover(
    config_path: Path | None = None,
    registry: AdapterRegistry | None = None,
) -> RecoverResult:
    """Move every existing backup slot back into the output directory."""
    result = RecoverResult(restored=[])

    try:
        config, project_root = resolve_config(config_path)
    except ConfigError as e:
        result.error = str(e)
        return result

    result.project_root = project_root
    output_dir = config.output_path(project_root)

    if registry is None:
        registry = default_registry(config)

    operation_id = generate_operation_id()
    step = StepResult(step="recover")
    start = time.monotonic()

    for info in stale_slots(config, output_dir):
        action = Action(
            id=f"{operation_id}:recover:{info.name}",
            name=f"recover {info.name}",
            adapter="filesystem",
            step="recover",
            params={
                "operation": "move",
                "path": str(info.slot_path),
                "dest": str(info.file_path),
            },
        )
        receipt = registry.execute_action(action, project_root=str(project_root))
        step.receipts.append(receipt)
        if receipt.failed:
            logger.error("✗ recover %s: %s", info.name, receipt.error)
            break
        logger.info("✓ recovered %s", info.name)
        result.restored.append(info.name)

    result.step = step

    if config.audit and step.receipts:
        report = PipelineReport(
            operation_id=operation_id,
            output_dir=str(output_dir),
            stage=PipelineStage.FAILED if step.failed else PipelineStage.RESTORED,
            steps=[step],
        )
        write_audit_entry(
            report,
            AuditWriter(project_root=project_root),
            duration_ms=int((time.monotonic() - start) * 1000),
            operation_type="recover",
        )

    return result
