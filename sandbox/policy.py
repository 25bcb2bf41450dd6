"""
Sandbox policy definitions and import/builtin guards.
"""

from __future__ import annotations

import builtins
from collections.abc import Callable, Iterable, Sequence
from types import ModuleType
from typing import cast

BLOCKED_MODULES = [
    "os",
    "sys",
    "subprocess",
    "socket",
    "urllib",
    "requests",
    "http",
    "ctypes",
    "importlib",
    "shutil",
    "pathlib",
    "multiprocessing",
    "threading",
    "signal",
    "__import__",
    "eval",
    "exec",
    "compile",
    "open",
    "file",
    "input",
    "raw_input",
    "breakpoint",
    "globals",
    "vars",
]

ALLOWED_MODULES = [
    "math",
    "cmath",
    "random",
    "itertools",
    "functools",
    "operator",
    "collections",
    "heapq",
    "bisect",
    "string",
    "re",
    "statistics",
    "fractions",
    "decimal",
    "typing",
    "dataclasses",
    "json",
]

# Disabled for the whole child process. Must not include exec/compile:
# stdlib modules such as dataclasses call them internally.
PROCESS_BLOCKED_BUILTINS = [
    "open",
    "input",
    "breakpoint",
]

ImportHook = Callable[
    [str, dict[str, object] | None, dict[str, object] | None, Sequence[str], int],
    ModuleType,
]


def _normalize_modules(modules: Iterable[str] | None) -> set[str]:
    return {name for name in (modules or [])}


def _blocked(*_args: object, **_kwargs: object) -> None:
    raise RuntimeError("Blocked by sandbox policy")


def build_import_guard(
    allowed_modules: Iterable[str] | None = None,
    blocked_modules: Iterable[str] | None = None,
) -> ImportHook:
    """
    Build a restricted __import__ hook that only allows allowlisted modules
    and explicitly blocks denied modules.
    """
    allowed = _normalize_modules(allowed_modules or ALLOWED_MODULES)
    blocked = _normalize_modules(blocked_modules or BLOCKED_MODULES)
    original_import = cast(ImportHook, builtins.__import__)

    def guarded_import(
        name: str,
        globals: dict[str, object] | None = None,
        locals: dict[str, object] | None = None,
        fromlist: Sequence[str] = (),
        level: int = 0,
    ) -> ModuleType:
        if level:
            raise ImportError("Relative imports are not available in the sandbox")
        root = name.split(".")[0]
        if root in blocked or name in blocked:
            raise ImportError(f"Import of '{root}' blocked by sandbox policy")
        if root not in allowed:
            raise ImportError(f"Import of '{root}' is not allowlisted")
        return original_import(name, globals, locals, fromlist, level)

    return guarded_import


def build_sandbox_builtins(
    print_fn: Callable[..., None],
    allowed_modules: Iterable[str] | None = None,
    blocked_names: Iterable[str] | None = None,
) -> dict[str, object]:
    """
    Build the ``__builtins__`` mapping handed to sandboxed program text.

    The real builtins module is left untouched; the returned dict is a copy
    with blocked names stubbed out, ``__import__`` guarded and ``print``
    redirected to ``print_fn``.
    """
    blocked = _normalize_modules(blocked_names or BLOCKED_MODULES)
    scoped: dict[str, object] = dict(vars(builtins))
    for name in blocked:
        if name in scoped and name != "__import__":
            scoped[name] = _blocked
    scoped["__import__"] = build_import_guard(
        allowed_modules=allowed_modules,
        blocked_modules=blocked,
    )
    scoped["print"] = print_fn
    return scoped


def disable_blocked_builtins(blocked_names: Iterable[str] | None = None) -> None:
    """Disable builtins process-wide. Only call this inside the child process."""
    blocked = _normalize_modules(blocked_names or PROCESS_BLOCKED_BUILTINS)
    blocked.discard("__import__")

    for name in blocked:
        if hasattr(builtins, name):
            setattr(builtins, name, _blocked)
