"""
Mock adapter — test double for filesystem and backend operations.

Used in mock mode and in tests to stand in for wasm-pack. A
``side_effect`` callable lets a test play the backend's part, e.g.
wipe the output directory and write a fresh package.json.
"""

from __future__ import annotations

from collections.abc import Callable

from reconciler.adapters.base import Adapter, ExecutionContext
from reconciler.core.models.action import ErrorKind, Receipt


class MockAdapter(Adapter):
    """Universal mock adapter for testing.

    By default, returns success for everything. Individual action IDs
    can be configured to fail.
    """

    def __init__(
        self,
        adapter_name: str = "mock",
        available: bool = True,
        default_output: str = "[mock] executed",
        side_effect: Callable[[ExecutionContext], None] | None = None,
    ):
        self._name = adapter_name
        self._available = available
        self._default_output = default_output
        self._side_effect = side_effect
        self._failures: dict[str, Receipt] = {}
        self._call_log: list[ExecutionContext] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_log(self) -> list[ExecutionContext]:
        """All execution contexts this mock has received."""
        return self._call_log

    @property
    def call_count(self) -> int:
        """Number of times execute has been called."""
        return len(self._call_log)

    def is_available(self) -> bool:
        return self._available

    def set_failure(
        self,
        action_id: str,
        error: str = "Mock failure",
        error_kind: ErrorKind = ErrorKind.BACKEND,
        exit_code: int = 1,
    ) -> None:
        """Configure a specific action to fail."""
        self._failures[action_id] = Receipt.failure(
            adapter=self._name,
            action_id=action_id,
            error=error,
            error_kind=error_kind,
            exit_code=exit_code,
        )

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        self._call_log.append(context)

        if context.action.id in self._failures:
            return self._failures[context.action.id]

        if self._side_effect is not None:
            self._side_effect(context)

        return Receipt.success(
            adapter=self._name,
            action_id=context.action.id,
            output=self._default_output,
            metadata={"mock": True},
        )

    def reset(self) -> None:
        """Clear call log and configured failures."""
        self._call_log.clear()
        self._failures.clear()
