"""
Sandbox Module

Isolated execution of untrusted program text against input/output examples.

This module provides:
- Subprocess-based execution with a wall-clock timeout
- Memory and CPU limits (platform-dependent)
- Import restrictions and allowlisting, scoped builtins
- Console capture for the program's log output
- Structural comparison of returned vs. expected values

WARNING: This sandbox is NOT cryptographically secure. The subprocess boundary
and resource limits are the real isolation; the builtin and import guards are
best-effort.
"""

__version__ = "0.1.0"

from .executor import ExecutionResult, SandboxExecutor
from .values import deep_equal, serialize_value

__all__ = [
    "ExecutionResult",
    "SandboxExecutor",
    "deep_equal",
    "serialize_value",
]
