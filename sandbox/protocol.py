"""
Child process protocol for sandbox execution.

The child reads one request from stdin, loads the program text, runs every
case against its ``solution`` entry point and writes one response to stdout:

    request:  {"code": str, "cases": [{"name", "args", "expected"}], "allowed_modules": [...]}
    response: {"ok": true, "results": [...], "logs": [...]}
              {"ok": false, "error": str, "logs": [...]}
"""

from __future__ import annotations

import builtins
import contextlib
import json
import sys
import time
from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import TextIO, cast

from sandbox import policy
from sandbox.console import CapturedConsole
from sandbox.values import deep_equal, serialize_value

CHILD_TEMPLATE = """
from sandbox.protocol import child_main
child_main()
""".strip()

ENTRY_POINT = "solution"
SOURCE_FILENAME = "<solution>"
MISMATCH_ERROR = "Output mismatch."


class EntryPointError(RuntimeError):
    """Raised when program text does not yield a callable entry point."""


class ModuleShim:
    """Stand-in for a module object; program text may assign ``module.exports``."""

    def __init__(self) -> None:
        self.exports: object = {}


def _load_payload() -> dict[str, object]:
    raw = sys.stdin.read()
    if not raw:
        return {}
    try:
        loaded = json.loads(raw)
    except json.JSONDecodeError:
        return {}
    return cast(dict[str, object], loaded) if isinstance(loaded, dict) else {}


def _format_error(exc: BaseException) -> str:
    try:
        message = str(exc)
    except Exception:  # noqa: BLE001 - user exceptions may raise from __str__
        message = ""
    return message or exc.__class__.__name__


def load_entry_point(
    code: str,
    console: CapturedConsole,
    allowed_modules: Iterable[str] | None = None,
) -> Callable[..., object]:
    """
    Evaluate program text in a fresh namespace and resolve its entry point.

    The namespace exposes only ``module``, ``exports`` and ``console`` on top
    of the restricted builtins. ``solution`` wins over ``module.exports``.
    """
    exec_fn = builtins.exec
    module = ModuleShim()
    namespace: dict[str, object] = {
        "__name__": "__sandbox__",
        "__builtins__": policy.build_sandbox_builtins(
            console.print,
            allowed_modules=allowed_modules,
        ),
        "module": module,
        "exports": module.exports,
        "console": console,
    }
    compiled = compile(code, SOURCE_FILENAME, "exec")
    exec_fn(compiled, namespace, namespace)

    entry = namespace[ENTRY_POINT] if ENTRY_POINT in namespace else module.exports
    if not callable(entry):
        raise EntryPointError(f"{ENTRY_POINT} must be callable")
    return cast(Callable[..., object], entry)


def _coerce_args(value: object) -> list[object]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def run_cases(
    entry: Callable[..., object],
    cases: Sequence[Mapping[str, object]],
) -> list[dict[str, object]]:
    """Invoke the entry point once per case, in order, folding every failure into its result."""
    results: list[dict[str, object]] = []
    for case in cases:
        name = str(case.get("name", ""))
        expected = case.get("expected")
        result: dict[str, object]
        try:
            actual = entry(*_coerce_args(case.get("args")))
            if deep_equal(actual, expected):
                result = {"name": name, "pass": True}
            else:
                result = {
                    "name": name,
                    "pass": False,
                    "error": MISMATCH_ERROR,
                    "expected": serialize_value(expected),
                    "actual": serialize_value(actual),
                }
        except BaseException as exc:  # noqa: BLE001 - user code may raise anything
            result = {"name": name, "pass": False, "error": _format_error(exc)}
        results.append(result)
    return results


def execute(
    request: Mapping[str, object],
    allowed_modules: Iterable[str] | None = None,
    log_stream: TextIO | None = None,
) -> dict[str, object]:
    """Run one request to completion. Allocates a fresh console and namespace per call.

    Console lines are mirrored to ``log_stream`` as they are written when one is given.
    """
    code = str(request.get("code", ""))
    cases_value = request.get("cases") or []
    cases = cast(list[Mapping[str, object]], cases_value if isinstance(cases_value, list) else [])
    console = CapturedConsole(mirror=log_stream)

    try:
        entry = load_entry_point(code, console, allowed_modules=allowed_modules)
    except BaseException as exc:  # noqa: BLE001 - capture all load errors
        return {"ok": False, "error": _format_error(exc), "logs": console.logs}

    results = run_cases(entry, cases)
    return {"ok": True, "results": results, "logs": console.logs}


def child_main() -> None:
    """Entry point for the sandbox child process."""
    start = time.perf_counter()
    payload = _load_payload()
    allowed_modules = cast(
        list[str],
        payload.get("allowed_modules", list(policy.ALLOWED_MODULES)),
    )
    stdout = sys.stdout
    stderr = sys.stderr

    policy.disable_blocked_builtins(policy.PROCESS_BLOCKED_BUILTINS)
    with contextlib.redirect_stdout(stderr):
        response = execute(payload, allowed_modules=allowed_modules, log_stream=stderr)

    response["runtime_ms"] = (time.perf_counter() - start) * 1000
    _ = stdout.write(json.dumps(response))
    stdout.flush()


if __name__ == "__main__":
    child_main()
