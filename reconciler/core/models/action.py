"""
Action and Receipt models — the execution contract.

Actions represent requested file or backend operations. Receipts
represent their results. The pipeline sends Actions through the
adapter registry and gets Receipts back. Never exceptions.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class ErrorKind(str, Enum):
    """Why a receipt failed. Drives the CLI message and exit code."""

    BACKEND = "backend_failure"
    FILESYSTEM = "filesystem_failure"
    STALE_BACKUP = "stale_backup"
    VALIDATION = "validation"


class Action(BaseModel):
    """A requested operation to be executed by an adapter."""

    id: str                         # unique action identifier
    name: str = ""                  # human-readable name
    adapter: str                    # which adapter handles this
    step: str = ""                  # pipeline step that planned it
    params: dict[str, Any] = Field(default_factory=dict)


class Receipt(BaseModel):
    """Result of an adapter execution.

    Adapters NEVER raise. Failures are captured here, together with
    an ``error_kind`` and the exit code the process should report.
    """

    adapter: str
    action_id: str
    status: Literal["ok", "skipped", "failed"] = "ok"

    started_at: str = Field(default_factory=_now_iso)
    ended_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    output: str = ""
    error: str | None = None
    error_kind: ErrorKind | None = None
    exit_code: int = 0

    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """Whether the action succeeded."""
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        """Whether the action failed."""
        return self.status == "failed"

    @classmethod
    def success(
        cls,
        adapter: str,
        action_id: str,
        output: str = "",
        **kwargs: Any,
    ) -> Receipt:
        """Create a success receipt."""
        return cls(
            adapter=adapter,
            action_id=action_id,
            status="ok",
            output=output,
            **kwargs,
        )

    @classmethod
    def failure(
        cls,
        adapter: str,
        action_id: str,
        error: str,
        error_kind: ErrorKind = ErrorKind.FILESYSTEM,
        exit_code: int = 1,
        **kwargs: Any,
    ) -> Receipt:
        """Create a failure receipt.

        ``exit_code`` is never allowed to be zero on a failure.
        """
        return cls(
            adapter=adapter,
            action_id=action_id,
            status="failed",
            error=error,
            error_kind=error_kind,
            exit_code=exit_code or 1,
            **kwargs,
        )

    @classmethod
    def skip(
        cls,
        adapter: str,
        action_id: str,
        reason: str = "",
        **kwargs: Any,
    ) -> Receipt:
        """Create a skip receipt."""
        return cls(
            adapter=adapter,
            action_id=action_id,
            status="skipped",
            output=reason,
            **kwargs,
        )
