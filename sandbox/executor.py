"""
Subprocess-based sandbox executor for untrusted code.
"""

from __future__ import annotations

import json
import logging
import math
import os
import subprocess
import sys
import time
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import cast

from sandbox import policy
from sandbox import protocol
from sandbox.console import split_mirrored_logs

logger = logging.getLogger(__name__)


@dataclass
class ExecutionResult:
    ok: bool
    results: list[dict[str, object]] | None
    error: str | None
    runtime_ms: float
    logs: list[str] = field(default_factory=list)
    timed_out: bool = False

    def to_response(self) -> dict[str, object]:
        """Wire form of the result: ``{ok, results, logs}`` or ``{ok, error, logs}``."""
        if self.ok:
            return {"ok": True, "results": list(self.results or []), "logs": list(self.logs)}
        return {"ok": False, "error": self.error or "Unknown sandbox error", "logs": list(self.logs)}


def _failure(error: str, runtime_ms: float, logs: list[str] | None = None) -> ExecutionResult:
    return ExecutionResult(False, None, error, runtime_ms, logs=list(logs or []))


def _decode_stream(value: str | bytes | None) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


def _coerce_logs(value: object) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(line) for line in value]


class SandboxExecutor:
    """
    Execute untrusted code in a subprocess with best-effort limits.

    On Unix platforms, CPU and memory limits are enforced via resource.setrlimit.
    On Windows, these limits degrade gracefully and only wall-clock timeout applies.
    The child is killed once the wall-clock timeout expires.
    """

    DEFAULT_MEMORY_LIMIT_MB: int = 256
    DEFAULT_TIMEOUT_SECONDS: float = 5.0

    def __init__(
        self,
        memory_limit_mb: int | None = None,
        timeout_seconds: float | None = None,
        allowed_modules: Iterable[str] | None = None,
    ) -> None:
        self.memory_limit_mb: int = memory_limit_mb or self.DEFAULT_MEMORY_LIMIT_MB
        self.timeout_seconds: float = timeout_seconds or self.DEFAULT_TIMEOUT_SECONDS
        self.allowed_modules: list[str] = list(allowed_modules or policy.ALLOWED_MODULES)

    def execute(
        self,
        code: str,
        cases: Sequence[Mapping[str, object]],
        timeout_seconds: float | None = None,
    ) -> ExecutionResult:
        """Run ``code`` against ``cases`` in a fresh child process.

        Args:
            code: Python source declaring ``solution`` (or assigning ``module.exports``)
            cases: Wire-form cases, ``{"name", "args", "expected"}``
            timeout_seconds: Wall-clock cap for the whole batch; defaults to the executor's

        Returns:
            ExecutionResult; sandbox and protocol problems are reported as failures, never raised
        """
        timeout = timeout_seconds or self.timeout_seconds
        payload = {
            "code": code,
            "cases": [dict(case) for case in cases],
            "allowed_modules": self.allowed_modules,
        }

        start = time.perf_counter()
        try:
            completed = subprocess.run(
                [sys.executable, "-c", protocol.CHILD_TEMPLATE],
                input=json.dumps(payload),
                text=True,
                capture_output=True,
                timeout=timeout,
                env=self._child_env(),
                preexec_fn=self._limit_resources(timeout) if os.name != "nt" else None,
            )
        except subprocess.TimeoutExpired as exc:
            runtime_ms = (time.perf_counter() - start) * 1000
            logger.warning(f"Sandbox run killed after {timeout}s")
            # Console lines written before the kill survive on stderr.
            timeout_logs, _ = split_mirrored_logs(_decode_stream(exc.stderr))
            return ExecutionResult(
                ok=False,
                results=None,
                error=f"Timeout after {timeout}s",
                runtime_ms=runtime_ms,
                logs=timeout_logs,
                timed_out=True,
            )
        except OSError as exc:
            runtime_ms = (time.perf_counter() - start) * 1000
            logger.warning(f"Failed to start sandbox process: {exc}")
            return _failure(f"Failed to start sandbox: {exc}", runtime_ms)

        runtime_ms = (time.perf_counter() - start) * 1000
        if not completed.stdout:
            stderr_logs, stderr_text = split_mirrored_logs(completed.stderr or "")
            error = stderr_text.strip() or "Empty response from sandbox"
            logger.warning(f"Sandbox exited with code {completed.returncode} and no response")
            return _failure(error, runtime_ms, stderr_logs)

        try:
            loaded = cast(object, json.loads(completed.stdout))
        except json.JSONDecodeError as exc:
            logger.warning(f"Invalid JSON from sandbox: {exc}")
            return _failure(f"Invalid JSON from sandbox: {exc}", runtime_ms)

        if not isinstance(loaded, dict):
            return _failure("Invalid response type from sandbox", runtime_ms)
        data = cast(dict[str, object], loaded)

        logs = _coerce_logs(data.get("logs"))
        runtime_value = data.get("runtime_ms")
        if isinstance(runtime_value, (int, float)):
            runtime_ms = float(runtime_value)

        if data.get("ok") is True:
            results_value = data.get("results")
            if not isinstance(results_value, list):
                return _failure("Invalid results from sandbox", runtime_ms, logs)
            results = [cast(dict[str, object], item) for item in results_value if isinstance(item, dict)]
            return ExecutionResult(True, results, None, runtime_ms, logs=logs)

        error_value = data.get("error")
        error = str(error_value) if error_value else "Unknown sandbox error"
        return _failure(error, runtime_ms, logs)

    def _child_env(self) -> dict[str, str]:
        """Minimal environment for the child; host variables such as API keys are not passed."""
        project_root = str(Path(__file__).resolve().parents[1])
        existing_pythonpath = os.environ.get("PYTHONPATH", "")
        env = {
            "PYTHONPATH": (
                f"{project_root}{os.pathsep}{existing_pythonpath}"
                if existing_pythonpath
                else project_root
            ),
            "PYTHONIOENCODING": "utf-8",
            "PATH": os.environ.get("PATH", ""),
        }
        if os.name == "nt" and "SYSTEMROOT" in os.environ:
            env["SYSTEMROOT"] = os.environ["SYSTEMROOT"]
        return env

    def _limit_resources(self, timeout_seconds: float):
        """Return a preexec_fn to enforce resource limits on Unix."""
        def _apply_limits():
            try:
                import resource
            except ImportError:
                return
            cpu_seconds = max(1, math.ceil(timeout_seconds) + 1)
            memory_bytes = int(self.memory_limit_mb * 1024 * 1024)
            resource.setrlimit(resource.RLIMIT_CPU, (cpu_seconds, cpu_seconds + 1))
            if hasattr(resource, "RLIMIT_AS"):
                resource.setrlimit(resource.RLIMIT_AS, (memory_bytes, memory_bytes))
            elif hasattr(resource, "RLIMIT_DATA"):
                resource.setrlimit(resource.RLIMIT_DATA, (memory_bytes, memory_bytes))

        return _apply_limits
