"""
Build use case — rebuild the package and reconcile its output directory.

This is the top-level orchestrator: it resolves config, wires the
adapter registry, runs the pipeline, and records the run in the audit
ledger. The full vertical slice from ``reconciler build`` to a
reconciled ``pkg/``.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path

from reconciler.adapters.registry import AdapterRegistry
from reconciler.core.config.loader import ConfigError, resolve_config
from reconciler.core.engine.pipeline import PipelineReport, ReconcilePipeline
from reconciler.core.models.config import ReconcileConfig, StaleBackupPolicy
from reconciler.core.persistence.audit import AuditEntry, AuditWriter

logger = logging.getLogger(__name__)


@dataclass
class BuildResult:
    """Result of a build run."""

    report: PipelineReport | None = None
    config: ReconcileConfig | None = None
    project_root: Path | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.report is not None and self.report.ok

    @property
    def exit_code(self) -> int:
        if self.error:
            return 1
        if self.report is None:
            return 1
        return self.report.exit_code

    def to_dict(self) -> dict:
        result: dict = {}
        if self.error:
            result["error"] = self.error
            return result

        result["project_root"] = str(self.project_root)
        if self.report:
            result["report"] = self.report.to_dict()
        if self.config and self.ok:
            result["next_steps"] = self.config.next_steps
        return result


def default_registry(config: ReconcileConfig, mock_mode: bool = False) -> AdapterRegistry:
    """Registry with the filesystem and wasm-pack adapters."""
    from reconciler.adapters.backend.wasm_pack import WasmPackAdapter
    from reconciler.adapters.shell.filesystem import FilesystemAdapter

    registry = AdapterRegistry(mock_mode=mock_mode)
    registry.register(FilesystemAdapter())
    registry.register(WasmPackAdapter(executable=config.backend.executable))
    return registry


def run_build(
    config_path: Path | None = None,
    config: ReconcileConfig | None = None,
    project_root: Path | None = None,
    dry_run: bool = False,
    mock_mode: bool = False,
    stale_backups: StaleBackupPolicy | None = None,
    registry: AdapterRegistry | None = None,
) -> BuildResult:
    """Run one reconcile build.

    Args:
        config_path: Optional explicit path to reconcile.yml.
        config: Pre-built config; takes precedence over config_path.
        project_root: Required with ``config``; the crate directory.
        dry_run: If True, plan and validate but don't execute.
        mock_mode: If True, every action succeeds without running.
        stale_backups: Override the configured stale backup policy.
        registry: Optional pre-configured adapter registry.

    Returns:
        BuildResult with the pipeline report.
    """
    result = BuildResult()

    if config is None:
        try:
            config, project_root = resolve_config(config_path)
        except ConfigError as e:
            result.error = str(e)
            return result
    elif project_root is None:
        project_root = Path.cwd()

    if stale_backups is not None:
        config = config.model_copy(update={"stale_backups": stale_backups})

    result.config = config
    result.project_root = project_root.resolve()

    try:
        config.output_path(result.project_root)
    except ValueError as e:
        result.error = f"Invalid reconcile configuration: {e}"
        return result

    if registry is None:
        registry = default_registry(config, mock_mode=mock_mode)

    pipeline = ReconcilePipeline(
        config=config,
        project_root=result.project_root,
        registry=registry,
        dry_run=dry_run,
    )

    start = time.monotonic()
    report = pipeline.run()
    elapsed_ms = int((time.monotonic() - start) * 1000)
    result.report = report

    if report.ok:
        logger.info("Package reconciled at %s", report.output_dir)
    else:
        logger.warning("Build halted at stage '%s'", report.stage.value)

    # Dry and mock runs leave no ledger entry
    if config.audit and not (dry_run or registry.mock_mode):
        write_audit_entry(report, AuditWriter(project_root=result.project_root), elapsed_ms)

    return result


def write_audit_entry(
    report: PipelineReport,
    audit_writer: AuditWriter,
    duration_ms: int = 0,
    operation_type: str = "build",
) -> None:
    """Write one run to the audit ledger."""
    failed = report.failed_step
    entry = AuditEntry(
        operation_id=report.operation_id,
        operation_type=operation_type,
        output_dir=report.output_dir,
        status=report.status,
        failed_step=failed.step if failed else None,
        exit_code=report.exit_code,
        duration_ms=duration_ms,
        steps={s.step: s.status for s in report.steps},
        errors=[s.error for s in report.steps if s.error],
    )
    audit_writer.write(entry)
