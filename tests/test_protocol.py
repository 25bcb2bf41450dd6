"""In-process tests for the child-side execute() operation."""

from __future__ import annotations

import io

from sandbox.console import split_mirrored_logs
from sandbox.protocol import MISMATCH_ERROR, execute

SQRT_CODE = """
import math

def solution(n):
    return math.sqrt(n)
"""


def _case(name: str, args: list, expected: object) -> dict[str, object]:
    return {"name": name, "args": args, "expected": expected}


def test_square_root_passes():
    response = execute({"code": SQRT_CODE, "cases": [_case("c1", [9], 3)]})

    assert response == {"ok": True, "results": [{"name": "c1", "pass": True}], "logs": []}


def test_inexact_expected_reports_mismatch():
    response = execute({"code": SQRT_CODE, "cases": [_case("c1", [2], 1.41421356237)]})

    assert response["ok"] is True
    assert response["results"] == [
        {
            "name": "c1",
            "pass": False,
            "error": MISMATCH_ERROR,
            "expected": "1.41421356237",
            "actual": "1.4142135623730951",
        }
    ]


def test_console_output_is_captured():
    code = """
def solution():
    console.log("hi")
    return 1
"""
    response = execute({"code": code, "cases": [_case("c1", [], 1)]})

    assert response["results"] == [{"name": "c1", "pass": True}]
    assert response["logs"] == ["hi"]


def test_console_serializes_non_strings_and_print_is_captured():
    code = """
def solution(x):
    console.info("value", {"a": [1, 2]}, None)
    console.warn(3.5)
    print("plain", 1, sep="-")
    return x
"""
    response = execute({"code": code, "cases": [_case("c1", [1], 1)]})

    assert response["logs"] == ['value {"a":[1,2]} null', "3.5", "plain-1"]


def test_syntax_error_is_a_load_failure():
    response = execute({"code": "x = ", "cases": [_case("c1", [], 1)]})

    assert response["ok"] is False
    assert response["error"]
    assert "<solution>" in response["error"]
    assert "results" not in response


def test_logs_before_load_failure_are_kept():
    code = """
console.log("loading")
raise ValueError("boom")
"""
    response = execute({"code": code, "cases": []})

    assert response == {"ok": False, "error": "boom", "logs": ["loading"]}


def test_non_callable_solution_is_a_load_failure():
    response = execute({"code": "solution = 42", "cases": [_case("c1", [], 42)]})

    assert response["ok"] is False
    assert "solution must be callable" in response["error"]


def test_missing_entry_point_is_a_load_failure():
    response = execute({"code": "def helper():\n    return 1\n", "cases": []})

    assert response["ok"] is False
    assert "solution must be callable" in response["error"]


def test_module_exports_is_used_when_solution_is_absent():
    code = "module.exports = lambda a, b: a + b\n"
    response = execute({"code": code, "cases": [_case("c1", [2, 3], 5)]})

    assert response["results"] == [{"name": "c1", "pass": True}]


def test_solution_takes_precedence_over_module_exports():
    code = """
module.exports = lambda: "exports"

def solution():
    return "solution"
"""
    response = execute({"code": code, "cases": [_case("c1", [], "solution")]})

    assert response["results"][0]["pass"] is True


def test_throwing_case_does_not_abort_the_batch():
    code = """
def solution(n):
    if n == 0:
        raise ZeroDivisionError("n must not be zero")
    return 10 // n
"""
    cases = [_case("a", [5], 2), _case("b", [0], 0), _case("c", [2], 5), _case("d", [3], 4)]
    response = execute({"code": code, "cases": cases})

    results = response["results"]
    assert [result["name"] for result in results] == ["a", "b", "c", "d"]
    assert results[0] == {"name": "a", "pass": True}
    assert results[1] == {"name": "b", "pass": False, "error": "n must not be zero"}
    assert results[2] == {"name": "c", "pass": True}
    assert results[3]["pass"] is False
    assert results[3]["error"] == MISMATCH_ERROR


def test_mapping_result_ignores_key_order():
    code = """
def solution():
    return {"a": 1, "b": [1, 2]}
"""
    response = execute({"code": code, "cases": [_case("c1", [], {"b": [1, 2], "a": 1})]})

    assert response["results"] == [{"name": "c1", "pass": True}]


def test_unserializable_actual_falls_back_to_str():
    code = """
def solution():
    return {1, 2}
"""
    response = execute({"code": code, "cases": [_case("c1", [], [1, 2])]})

    result = response["results"][0]
    assert result["pass"] is False
    assert result["actual"] == "{1, 2}"


def test_blocked_import_is_reported():
    response = execute({"code": "import os\n\ndef solution():\n    return 1\n", "cases": []})

    assert response["ok"] is False
    assert "blocked" in response["error"]


def test_import_outside_allowlist_is_reported():
    response = execute(
        {"code": "import math\n\ndef solution():\n    return 1\n", "cases": []},
        allowed_modules=["random"],
    )

    assert response["ok"] is False
    assert "not allowlisted" in response["error"]


def test_blocked_builtin_fails_only_the_calling_case():
    code = """
def solution(path):
    return open(path).read()
"""
    response = execute({"code": code, "cases": [_case("c1", ["/etc/hostname"], "")]})

    assert response["ok"] is True
    assert response["results"][0]["pass"] is False
    assert "Blocked by sandbox policy" in response["results"][0]["error"]


def test_no_state_leaks_between_runs():
    first = execute({"code": "counter = 1\n\ndef solution():\n    return counter\n", "cases": []})
    second = execute({"code": "def solution():\n    return counter\n", "cases": [_case("c1", [], 1)]})

    assert first["ok"] is True
    assert second["results"][0]["pass"] is False
    assert "is not defined" in second["results"][0]["error"]


def test_raising_comparison_fails_only_that_case():
    code = """
class Sticky(str):
    def __eq__(self, other):
        raise RuntimeError("cannot compare")

    __hash__ = str.__hash__

def solution(flag):
    console.log("called", flag)
    return Sticky("x") if flag else "x"
"""
    cases = [_case("a", [True], "x"), _case("b", [False], "x")]
    response = execute({"code": code, "cases": cases})

    assert response["ok"] is True
    assert [result["name"] for result in response["results"]] == ["a", "b"]
    assert response["results"][0]["pass"] is False
    assert response["results"][1] == {"name": "b", "pass": True}
    assert response["logs"] == ["called true", "called false"]


def test_exception_with_broken_str_reports_its_type():
    code = """
class Opaque(Exception):
    def __str__(self):
        raise RuntimeError("no message")

def solution(n):
    if n == 0:
        raise Opaque()
    return n
"""
    cases = [_case("a", [0], 0), _case("b", [2], 2)]
    response = execute({"code": code, "cases": cases})

    assert response["results"] == [
        {"name": "a", "pass": False, "error": "Opaque"},
        {"name": "b", "pass": True},
    ]


def test_console_lines_are_mirrored_as_they_are_written():
    stream = io.StringIO()
    code = """
console.log("loading", [1])

def solution():
    print("called")
    return 1
"""
    response = execute({"code": code, "cases": [_case("c1", [], 1)]}, log_stream=stream)

    logs, rest = split_mirrored_logs(stream.getvalue())
    assert logs == response["logs"] == ["loading [1]", "called"]
    assert rest == ""
