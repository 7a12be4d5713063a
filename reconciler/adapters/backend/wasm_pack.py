"""
wasm-pack adapter — run the compiler backend once and capture the result.

Built on the same subprocess pattern as a plain shell command: run,
time it, turn the exit status into a Receipt.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import time
from pathlib import Path

from reconciler.adapters.base import Adapter, ExecutionContext
from reconciler.core.models.action import ErrorKind, Receipt

logger = logging.getLogger(__name__)

# Conventional shell exit codes for "not found" and "timed out"
EXIT_NOT_FOUND = 127
EXIT_TIMEOUT = 124


class WasmPackAdapter(Adapter):
    """Invoke ``wasm-pack build`` and capture its output.

    Action params:
        argv (list[str]): Full command line, executable first.
        cwd (str): Crate directory to build in (default: context.working_dir).
        timeout (int): Timeout in seconds (default: 1800).
    """

    failure_kind = ErrorKind.BACKEND

    def __init__(self, executable: str = "wasm-pack"):
        self._executable = executable

    @property
    def name(self) -> str:
        return "wasm-pack"

    def is_available(self) -> bool:
        return shutil.which(self._executable) is not None

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        argv = context.action.params.get("argv") or []
        if not argv:
            return False, "Missing required param: 'argv'"

        cwd = context.action.params.get("cwd", context.working_dir)
        if cwd and not Path(cwd).is_dir():
            return False, f"Working directory does not exist: {cwd}"

        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        argv = [str(a) for a in context.action.params["argv"]]
        timeout = context.action.params.get("timeout", 1800)
        cwd = context.action.params.get("cwd", context.working_dir)
        command = " ".join(argv)

        logger.info("Running backend: %s (cwd=%s)", command, cwd)
        start = time.monotonic()

        try:
            result = subprocess.run(
                argv,
                cwd=cwd,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except FileNotFoundError:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Backend executable not found: {argv[0]}",
                error_kind=ErrorKind.BACKEND,
                exit_code=EXIT_NOT_FOUND,
                metadata={"command": command},
            )
        except subprocess.TimeoutExpired:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Backend timed out after {timeout}s",
                error_kind=ErrorKind.BACKEND,
                exit_code=EXIT_TIMEOUT,
                metadata={"command": command, "timeout": timeout},
            )
        except OSError as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Backend execution error: {e}",
                error_kind=ErrorKind.BACKEND,
                metadata={"command": command},
            )

        elapsed_ms = int((time.monotonic() - start) * 1000)
        output = result.stdout.strip()
        stderr = result.stderr.strip()
        if output:
            logger.debug("wasm-pack stdout:\n%s", output)

        if result.returncode == 0:
            return Receipt.success(
                adapter=self.name,
                action_id=context.action.id,
                output=output,
                duration_ms=elapsed_ms,
                metadata={
                    "command": command,
                    "return_code": result.returncode,
                    "stderr": stderr,
                },
            )

        return Receipt.failure(
            adapter=self.name,
            action_id=context.action.id,
            error=stderr or f"Backend exited with code {result.returncode}",
            error_kind=ErrorKind.BACKEND,
            # negative = killed by signal
            exit_code=result.returncode if result.returncode > 0 else 1,
            duration_ms=elapsed_ms,
            metadata={
                "command": command,
                "return_code": result.returncode,
                "stdout": output,
            },
        )
