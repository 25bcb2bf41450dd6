import os
from unittest.mock import patch

from sandbox.executor import SandboxExecutor


def _cases():
    return [
        {"name": "Case 1 (9)", "args": [9], "expected": 3},
        {"name": "Case 2 (2)", "args": [2], "expected": 1.41421356237},
    ]


def test_infinite_loop_times_out():
    executor = SandboxExecutor()
    code = """
def solution(n):
    while True:
        pass
"""
    result = executor.execute(code, _cases(), timeout_seconds=1)
    assert result.timed_out is True
    assert result.ok is False
    assert result.error == "Timeout after 1s"
    assert result.to_response() == {"ok": False, "error": "Timeout after 1s", "logs": []}


def test_logs_written_before_a_timeout_are_kept():
    executor = SandboxExecutor()
    code = """
console.log("loaded")

def solution(n):
    console.log("started", n)
    while True:
        pass
"""
    result = executor.execute(code, _cases(), timeout_seconds=1)
    assert result.timed_out is True
    assert result.logs == ["loaded", "started 9"]
    assert result.to_response() == {"ok": False, "error": "Timeout after 1s", "logs": ["loaded", "started 9"]}


def test_import_socket_fails():
    executor = SandboxExecutor()
    code = """
import socket

def solution(n):
    return 1.0
"""
    result = executor.execute(code, _cases(), timeout_seconds=5)
    assert result.ok is False
    assert result.error
    assert "Import" in result.error or "allowlist" in result.error or "blocked" in result.error


def test_open_fails_per_case():
    executor = SandboxExecutor()
    code = """
def solution(n):
    open('x', 'w')
    return 1.0
"""
    result = executor.execute(code, _cases(), timeout_seconds=5)
    assert result.ok is True
    assert result.results is not None
    assert all(item["pass"] is False for item in result.results)
    assert all("Blocked" in str(item["error"]) for item in result.results)


def test_valid_solution_reports_per_case_verdicts():
    executor = SandboxExecutor()
    code = """
import math

def solution(n):
    console.log("sqrt of", n)
    return math.sqrt(n)
"""
    result = executor.execute(code, _cases(), timeout_seconds=5)
    assert result.ok is True
    assert result.timed_out is False
    assert result.runtime_ms >= 0
    assert result.logs == ["sqrt of 9", "sqrt of 2"]
    assert result.to_response() == {
        "ok": True,
        "results": [
            {"name": "Case 1 (9)", "pass": True},
            {
                "name": "Case 2 (2)",
                "pass": False,
                "error": "Output mismatch.",
                "expected": "1.41421356237",
                "actual": "1.4142135623730951",
            },
        ],
        "logs": ["sqrt of 9", "sqrt of 2"],
    }


def test_syntax_error_is_caught():
    executor = SandboxExecutor()
    code = """
def solution(n)
    return 1.0
"""
    result = executor.execute(code, _cases(), timeout_seconds=5)
    assert result.ok is False
    assert result.error
    assert "<solution>" in result.error


def test_print_does_not_corrupt_the_protocol():
    executor = SandboxExecutor()
    code = """
print("not json")

def solution(n):
    print("called with", n)
    return n * n
"""
    result = executor.execute(code, [{"name": "sq", "args": [4], "expected": 16}], timeout_seconds=5)
    assert result.ok is True
    assert result.results == [{"name": "sq", "pass": True}]
    assert result.logs == ["not json", "called with 4"]


def test_host_secrets_are_not_visible_to_the_child():
    executor = SandboxExecutor()
    with patch.dict(os.environ, {"LLM_API_KEY": "sk-secret"}):
        env = executor._child_env()
    assert "LLM_API_KEY" not in env
    assert "PYTHONPATH" in env


def test_executor_uses_default_timeout():
    executor = SandboxExecutor(timeout_seconds=1)
    code = """
def solution(n):
    while True:
        pass
"""
    result = executor.execute(code, _cases())
    assert result.timed_out is True


def test_empty_case_list_succeeds():
    executor = SandboxExecutor()
    result = executor.execute("def solution():\n    return 1\n", [], timeout_seconds=5)
    assert result.ok is True
    assert result.results == []
