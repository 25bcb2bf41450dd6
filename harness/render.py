"""Plain-text rendering of a run verdict."""

from __future__ import annotations

from collections.abc import Sequence

from harness.controller import RunView
from harness.schemas import TestResult


def format_summary(view: RunView) -> str:
    if view.status == "running":
        return "Running…"
    if view.error:
        return view.error
    if not view.results:
        return "No results yet."
    return f"{view.pass_count}/{len(view.results)} passing"


def format_result(result: TestResult) -> list[str]:
    lines = [f"{result.name}: {'pass' if result.passed else 'fail'}"]
    if result.passed:
        return lines
    if result.error:
        lines.append(f"  {result.error}")
    if result.expected is not None:
        lines.append(f"  expected: {result.expected}")
    if result.actual is not None:
        lines.append(f"  actual: {result.actual}")
    return lines


def format_logs(logs: Sequence[str]) -> list[str]:
    if not logs:
        return []
    return ["Console output", *(f"  {line}" for line in logs)]
