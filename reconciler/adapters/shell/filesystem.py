"""
Filesystem adapter — file operations used around a backend build.

Provides a receipt-returning interface for the copy / move / write
operations the pipeline needs, so they can be audited and dry-run.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from reconciler.adapters.base import Adapter, ExecutionContext
from reconciler.core.models.action import ErrorKind, Receipt

logger = logging.getLogger(__name__)

VALID_OPERATIONS = {"copy", "move", "write", "remove"}


class FilesystemAdapter(Adapter):
    """File operations with receipts.

    Action params:
        operation (str): One of 'copy', 'move', 'write', 'remove'.
        path (str): Source / target path (relative to working_dir or absolute).
        dest (str): Destination path (for 'copy' and 'move').
        content (str): Exact content to write (for 'write').
    """

    @property
    def name(self) -> str:
        return "filesystem"

    def is_available(self) -> bool:
        return True  # filesystem is always available

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        operation = context.action.params.get("operation", "")
        if not operation:
            return False, "Missing required param: 'operation'"

        if operation not in VALID_OPERATIONS:
            return False, (
                f"Unknown operation '{operation}'. "
                f"Valid: {', '.join(sorted(VALID_OPERATIONS))}"
            )

        if not context.action.params.get("path", ""):
            return False, "Missing required param: 'path'"

        if operation in ("copy", "move") and not context.action.params.get("dest"):
            return False, f"Missing required param: 'dest' for {operation} operation"

        if operation == "write" and "content" not in context.action.params:
            return False, "Missing required param: 'content' for write operation"

        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        operation = context.action.params["operation"]
        target = context.resolve(context.action.params["path"])

        try:
            if operation == "copy":
                return self._copy(context, target)
            elif operation == "move":
                return self._move(context, target)
            elif operation == "write":
                return self._write(context, target)
            elif operation == "remove":
                return self._remove(context, target)
            else:
                return Receipt.failure(
                    adapter=self.name,
                    action_id=context.action.id,
                    error=f"Unknown operation: {operation}",
                    error_kind=ErrorKind.VALIDATION,
                )
        except OSError as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Filesystem error: {e}",
                error_kind=ErrorKind.FILESYSTEM,
                metadata={"operation": operation, "path": str(target)},
            )

    def _copy(self, ctx: ExecutionContext, source: Path) -> Receipt:
        dest = ctx.resolve(ctx.action.params["dest"])
        if not source.is_file():
            return Receipt.failure(
                adapter=self.name,
                action_id=ctx.action.id,
                error=f"File not found: {source}",
                error_kind=ErrorKind.FILESYSTEM,
            )
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, dest)
        logger.debug("Copied %s → %s", source, dest)
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=f"Copied {source} to {dest}",
            metadata={"path": str(source), "dest": str(dest)},
        )

    def _move(self, ctx: ExecutionContext, source: Path) -> Receipt:
        dest = ctx.resolve(ctx.action.params["dest"])
        if not source.is_file():
            return Receipt.failure(
                adapter=self.name,
                action_id=ctx.action.id,
                error=f"File not found: {source}",
                error_kind=ErrorKind.FILESYSTEM,
            )
        dest.parent.mkdir(parents=True, exist_ok=True)
        # replace() overwrites an existing dest on every platform
        source.replace(dest)
        logger.debug("Moved %s → %s", source, dest)
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=f"Moved {source} to {dest}",
            metadata={"path": str(source), "dest": str(dest)},
        )

    def _write(self, ctx: ExecutionContext, target: Path) -> Receipt:
        content = ctx.action.params["content"]
        data = content.encode("utf-8")
        target.parent.mkdir(parents=True, exist_ok=True)
        # bytes, so no newline translation
        target.write_bytes(data)
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=f"Written {len(data)} bytes to {target}",
            metadata={"path": str(target), "size": len(data)},
        )

    def _remove(self, ctx: ExecutionContext, target: Path) -> Receipt:
        existed = target.exists()
        target.unlink(missing_ok=True)
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=f"Removed {target}" if existed else f"Nothing to remove at {target}",
            metadata={"path": str(target), "existed": existed},
        )
