"""
Harness Module

Host side of the spec interpreter: turns user-authored case text into
structured cases, dispatches runs to the sandbox and renders verdicts.

This module provides:
- Wire schemas for requests, per-case results and run responses
- Case parsing (JSON with plain-text fallback)
- A controller that dispatches runs on a worker thread and keeps the latest verdict
- YAML configuration and a typer CLI
"""

__version__ = "0.1.0"

from .schemas import (
    Case,
    CaseDraft,
    RunFailure,
    RunRequest,
    RunResponse,
    RunSuccess,
    TestResult,
    parse_response,
)

__all__ = [
    "Case",
    "CaseDraft",
    "RunFailure",
    "RunRequest",
    "RunResponse",
    "RunSuccess",
    "TestResult",
    "parse_response",
]
