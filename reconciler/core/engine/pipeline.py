"""
Reconcile pipeline — preserve, build, fix, restore.

The pipeline rebuilds one wasm-pack output directory while keeping the
hand-written files in it. Every side effect goes through the adapter
registry as an Action and comes back as a Receipt.

Flow:
    preserve managed files → invoke backend → fix generated files → restore

The order is enforced by an explicit stage machine rather than by call
order in a script:

    PENDING → PRESERVED → BUILT → FIXED → RESTORED

Any step may instead end in FAILED, which is terminal. Backup slots
written by preserve stay on disk; ``reconciler recover`` puts them back.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path

from reconciler.adapters.registry import AdapterRegistry
from reconciler.core.models.action import Action, ErrorKind, Receipt
from reconciler.core.models.config import ReconcileConfig, StaleBackupPolicy
from reconciler.core.services.backup_slots import inspect_slots, slot_path

logger = logging.getLogger(__name__)

# Adapter name on receipts the pipeline produces itself (skips, refusals)
PIPELINE_ADAPTER = "pipeline"


class PipelineStage(str, Enum):
    PENDING = "pending"
    PRESERVED = "preserved"
    BUILT = "built"
    FIXED = "fixed"
    RESTORED = "restored"
    FAILED = "failed"


class PipelineOrderError(Exception):
    """Raised when a step is called out of order or after a failure."""


@dataclass
class StepResult:
    """Outcome of one pipeline step: every receipt it produced."""

    step: str
    receipts: list[Receipt] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        return any(r.failed for r in self.receipts)

    @property
    def ok(self) -> bool:
        return not self.failed

    @property
    def failure(self) -> Receipt | None:
        """First failing receipt, if any."""
        for r in self.receipts:
            if r.failed:
                return r
        return None

    @property
    def error(self) -> str | None:
        f = self.failure
        return f.error if f else None

    @property
    def error_kind(self) -> ErrorKind | None:
        f = self.failure
        return f.error_kind if f else None

    @property
    def exit_code(self) -> int:
        f = self.failure
        return f.exit_code if f else 0

    @property
    def status(self) -> str:
        if self.failed:
            return "failed"
        if self.receipts and all(r.status == "skipped" for r in self.receipts):
            return "skipped"
        return "ok"

    def to_dict(self) -> dict:
        return {
            "step": self.step,
            "status": self.status,
            "error": self.error,
            "error_kind": self.error_kind.value if self.error_kind else None,
            "receipts": [r.model_dump(mode="json") for r in self.receipts],
        }


@dataclass
class PipelineReport:
    """Result of a full pipeline run."""

    operation_id: str = ""
    output_dir: str = ""
    stage: PipelineStage = PipelineStage.PENDING
    steps: list[StepResult] = field(default_factory=list)
    dry_run: bool = False

    @property
    def ok(self) -> bool:
        return self.stage == PipelineStage.RESTORED

    @property
    def failed_step(self) -> StepResult | None:
        for step in self.steps:
            if step.failed:
                return step
        return None

    @property
    def exit_code(self) -> int:
        step = self.failed_step
        return step.exit_code if step else 0

    @property
    def status(self) -> str:
        return "ok" if self.ok else "failed"

    def to_dict(self) -> dict:
        failed = self.failed_step
        return {
            "operation_id": self.operation_id,
            "output_dir": self.output_dir,
            "status": self.status,
            "stage": self.stage.value,
            "dry_run": self.dry_run,
            "exit_code": self.exit_code,
            "failed_step": failed.step if failed else None,
            "steps": [s.to_dict() for s in self.steps],
        }


class ReconcilePipeline:
    """One reconcile run against one output directory.

    Args:
        config: What to build, keep, and rewrite.
        project_root: Crate directory; relative config paths resolve here.
        registry: Adapter registry with 'filesystem' and 'wasm-pack' adapters.
        dry_run: Validate and plan every action without executing it.
        operation_id: Optional fixed id (default: generated).
    """

    def __init__(
        self,
        config: ReconcileConfig,
        project_root: Path,
        registry: AdapterRegistry,
        dry_run: bool = False,
        operation_id: str | None = None,
    ):
        self._config = config
        self._project_root = project_root.resolve()
        self._registry = registry
        self._dry_run = dry_run
        self._stage = PipelineStage.PENDING
        self._preserved: list[str] = []
        self.report = PipelineReport(
            operation_id=operation_id or generate_operation_id(),
            output_dir=str(self.output_dir),
            dry_run=dry_run,
        )

    @property
    def stage(self) -> PipelineStage:
        return self._stage

    @property
    def output_dir(self) -> Path:
        return self._config.output_path(self._project_root)

    @property
    def preserved(self) -> list[str]:
        """Managed files that have a slot waiting to be restored."""
        return list(self._preserved)

    # ── Steps ──────────────────────────────────────────────────

    def preserve(self) -> StepResult:
        """Copy every existing managed file into its backup slot.

        Missing files and a missing output directory are no-ops. Slots
        left by an earlier run are handled by the stale backup policy.
        """
        self._enter(PipelineStage.PENDING, "preserve")
        result = StepResult(step="preserve")
        policy = self._config.stale_backups
        infos = inspect_slots(self._config, self.output_dir)

        stale = [i for i in infos if i.slot_exists]
        if stale and policy == StaleBackupPolicy.REFUSE:
            names = ", ".join(str(i.slot_path) for i in stale)
            result.receipts.append(
                Receipt.failure(
                    adapter=PIPELINE_ADAPTER,
                    action_id=self._action_id("preserve", "stale"),
                    error=(
                        f"Backup slot(s) from an earlier run still exist: {names}. "
                        "Run 'reconciler recover' to put them back, or remove them."
                    ),
                    error_kind=ErrorKind.STALE_BACKUP,
                    metadata={"slots": [str(i.slot_path) for i in stale]},
                )
            )
            return self._leave(result, PipelineStage.PRESERVED)

        for info in infos:
            if info.slot_exists and policy == StaleBackupPolicy.REUSE:
                logger.warning("Reusing stale backup slot %s", info.slot_path)
                result.receipts.append(
                    self._skip("preserve", info.name, f"Reusing existing slot {info.slot_path}")
                )
                self._preserved.append(info.name)
            elif info.file_exists:
                if info.slot_exists:
                    logger.warning("Overwriting stale backup slot %s", info.slot_path)
                receipt = self._dispatch(
                    "preserve",
                    info.name,
                    {
                        "operation": "copy",
                        "path": str(info.file_path),
                        "dest": str(info.slot_path),
                    },
                )
                result.receipts.append(receipt)
                if receipt.failed:
                    break
                self._preserved.append(info.name)
            elif info.slot_exists:
                # OVERWRITE with nothing to preserve: drop the stale slot
                receipt = self._dispatch(
                    "preserve",
                    info.name,
                    {"operation": "remove", "path": str(info.slot_path)},
                )
                result.receipts.append(receipt)
                if receipt.failed:
                    break
            else:
                result.receipts.append(
                    self._skip("preserve", info.name, f"No {info.name} to preserve")
                )

        return self._leave(result, PipelineStage.PRESERVED)

    def invoke_backend(self) -> StepResult:
        """Run the compiler backend. Replaces the whole output directory."""
        self._enter(PipelineStage.PRESERVED, "build")
        backend = self._config.backend
        receipt = self._dispatch(
            "build",
            backend.executable,
            {
                "argv": backend.argv(self.output_dir),
                "cwd": str(self._project_root),
                "timeout": backend.timeout,
            },
            adapter="wasm-pack",
        )
        return self._leave(StepResult(step="build", receipts=[receipt]), PipelineStage.BUILT)

    def fix_generated_files(self) -> StepResult:
        """Overwrite each generated-only file with its fixed content."""
        self._enter(PipelineStage.BUILT, "fix")
        result = StepResult(step="fix")
        for name, content in self._config.generated_files.items():
            receipt = self._dispatch(
                "fix",
                name,
                {
                    "operation": "write",
                    "path": str(self.output_dir / name),
                    "content": content,
                },
            )
            result.receipts.append(receipt)
            if receipt.failed:
                break
        return self._leave(result, PipelineStage.FIXED)

    def restore(self) -> StepResult:
        """Move every backup slot back over the backend's version."""
        self._enter(PipelineStage.FIXED, "restore")
        result = StepResult(step="restore")
        for name in self._config.managed_files:
            slot = slot_path(self.output_dir, name, self._config.backup_suffix)
            if name not in self._preserved and not slot.exists():
                result.receipts.append(
                    self._skip("restore", name, f"No backup of {name}; keeping generated file")
                )
                continue
            receipt = self._dispatch(
                "restore",
                name,
                {
                    "operation": "move",
                    "path": str(slot),
                    "dest": str(self.output_dir / name),
                },
            )
            result.receipts.append(receipt)
            if receipt.failed:
                break
        return self._leave(result, PipelineStage.RESTORED)

    def run(self) -> PipelineReport:
        """Run every remaining step in order, stopping at the first failure."""
        steps = (
            self.preserve,
            self.invoke_backend,
            self.fix_generated_files,
            self.restore,
        )
        for step in steps:
            if step().failed:
                break
        return self.report

    # ── Internals ──────────────────────────────────────────────

    def _enter(self, expected: PipelineStage, step: str) -> None:
        if self._stage == PipelineStage.FAILED:
            failed = self.report.failed_step
            raise PipelineOrderError(
                f"Cannot run '{step}': pipeline already failed at "
                f"'{failed.step if failed else '?'}'"
            )
        if self._stage != expected:
            raise PipelineOrderError(
                f"Cannot run '{step}' in stage '{self._stage.value}' "
                f"(requires '{expected.value}')"
            )
        logger.info("▶ %s", step)

    def _leave(self, result: StepResult, next_stage: PipelineStage) -> StepResult:
        self.report.steps.append(result)
        if result.failed:
            self._stage = PipelineStage.FAILED
            logger.error("✗ %s: %s", result.step, result.error)
        else:
            self._stage = next_stage
            logger.info("✓ %s", result.step)
        self.report.stage = self._stage
        return result

    def _action_id(self, step: str, target: str) -> str:
        return f"{self.report.operation_id}:{step}:{target}"

    def _dispatch(
        self,
        step: str,
        target: str,
        params: dict,
        adapter: str = "filesystem",
    ) -> Receipt:
        action = Action(
            id=self._action_id(step, target),
            name=f"{step} {target}",
            adapter=adapter,
            step=step,
            params=params,
        )
        return self._registry.execute_action(
            action=action,
            project_root=str(self._project_root),
            dry_run=self._dry_run,
        )

    def _skip(self, step: str, target: str, reason: str) -> Receipt:
        return Receipt.skip(
            adapter=PIPELINE_ADAPTER,
            action_id=self._action_id(step, target),
            reason=reason,
        )


def generate_operation_id() -> str:
    """Generate a unique operation ID."""
    now = datetime.now(UTC).strftime("%Y%m%d-%H%M%S")
    short = uuid.uuid4().hex[:6]
    return f"op-{now}-{short}"
