"""
Host-side controller: owns program text and case drafts, dispatches runs to
the sandbox on a worker thread and keeps only the latest verdict.
"""

from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Literal
from uuid import uuid4

from harness.cases import build_cases, new_draft
from harness.schemas import (
    CaseDraft,
    RunFailure,
    RunRequest,
    RunResponse,
    RunSuccess,
    TestResult,
    parse_response,
)
from sandbox.executor import SandboxExecutor

logger = logging.getLogger(__name__)

Runner = Callable[[RunRequest], RunResponse]
Status = Literal["idle", "running", "error"]


class SandboxChannel:
    """Runner that sends each request to a fresh sandbox child process."""

    def __init__(self, executor: SandboxExecutor | None = None) -> None:
        self.executor = executor or SandboxExecutor()

    def __call__(self, request: RunRequest) -> RunResponse:
        result = self.executor.execute(
            request.code,
            [case.to_dict() for case in request.cases],
        )
        return parse_response(result.to_response())


@dataclass
class RunView:
    status: Status = "idle"
    results: list[TestResult] = field(default_factory=list)
    logs: list[str] = field(default_factory=list)
    error: str | None = None
    request_id: str | None = None

    @property
    def pass_count(self) -> int:
        return sum(1 for result in self.results if result.passed)


class HostController:
    """
    Dispatches one RunRequest per call to ``dispatch`` and renders the latest response.

    Requests are handed to a single worker thread; the caller never blocks.
    Each dispatch gets a request id, and a response is only accepted if its id
    is still the latest one. Older responses are dropped.
    """

    def __init__(
        self,
        code: str = "",
        drafts: Iterable[CaseDraft] | None = None,
        runner: Runner | None = None,
        on_update: Callable[[RunView], None] | None = None,
    ) -> None:
        self.code = code
        self.drafts: list[CaseDraft] = list(drafts or [])
        self.runner: Runner = runner or SandboxChannel()
        self.on_update = on_update
        self._queue: queue.Queue[tuple[str, RunRequest] | None] = queue.Queue()
        self._lock = threading.Lock()
        self._settled = threading.Event()
        self._settled.set()
        self._latest_id: str | None = None
        self._view = RunView()
        self._worker: threading.Thread | None = None

    def __enter__(self) -> "HostController":
        self.start()
        return self

    def __exit__(self, *_exc: object) -> None:
        self.stop()

    @property
    def view(self) -> RunView:
        with self._lock:
            return self._view

    def start(self) -> None:
        if self._worker is not None:
            return
        self._worker = threading.Thread(
            target=self._worker_loop,
            name="sandbox-dispatch",
            daemon=True,
        )
        self._worker.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        if self._worker is None:
            return
        self._queue.put(None)
        self._worker.join(timeout=timeout)
        self._worker = None

    def add_case(self, args: str = "", expected: str = "") -> CaseDraft:
        draft = new_draft(self.drafts, args=args, expected=expected)
        self.drafts.append(draft)
        return draft

    def update_case(self, case_id: str, args: str | None = None, expected: str | None = None) -> CaseDraft:
        for index, draft in enumerate(self.drafts):
            if draft.id != case_id:
                continue
            patch: dict[str, str] = {}
            if args is not None:
                patch["args"] = args
            if expected is not None:
                patch["expected"] = expected
            updated = draft.model_copy(update=patch)
            self.drafts[index] = updated
            return updated
        raise KeyError(case_id)

    def remove_case(self, case_id: str) -> None:
        self.drafts = [draft for draft in self.drafts if draft.id != case_id]

    def build_request(self) -> RunRequest:
        return RunRequest(code=self.code, cases=build_cases(self.drafts))

    def dispatch(self) -> str:
        """Queue a run of the current code and drafts; returns its request id."""
        self.start()
        request = self.build_request()
        request_id = uuid4().hex
        with self._lock:
            self._latest_id = request_id
            self._view = RunView(status="running", request_id=request_id)
            self._settled.clear()
        logger.debug(f"Dispatching run {request_id} with {len(request.cases)} case(s)")
        self._queue.put((request_id, request))
        return request_id

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the latest dispatch has a response. Returns False on timeout."""
        return self._settled.wait(timeout)

    def run(self, timeout: float | None = None) -> RunView:
        self.dispatch()
        self.wait(timeout)
        return self.view

    def _worker_loop(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is None:
                    break
                request_id, request = item
                self._deliver(request_id, self._run_request(request))
            finally:
                self._queue.task_done()

    def _run_request(self, request: RunRequest) -> RunResponse:
        try:
            return self.runner(request)
        except Exception as exc:  # noqa: BLE001
            logger.error(f"Sandbox runner failed: {exc}", exc_info=True)
            return RunFailure(error=f"{exc.__class__.__name__}: {exc}", logs=[])

    def _deliver(self, request_id: str, response: RunResponse) -> None:
        with self._lock:
            if request_id != self._latest_id:
                logger.debug(f"Discarding stale response for run {request_id}")
                return
            if isinstance(response, RunSuccess):
                view = RunView(
                    status="idle",
                    results=list(response.results),
                    logs=list(response.logs),
                    request_id=request_id,
                )
            else:
                view = RunView(
                    status="error",
                    logs=list(response.logs),
                    error=response.error,
                    request_id=request_id,
                )
            self._view = view

        try:
            if self.on_update is not None:
                self.on_update(view)
        except Exception as exc:  # noqa: BLE001
            logger.error(f"on_update callback failed: {exc}", exc_info=True)
        finally:
            with self._lock:
                if request_id == self._latest_id:
                    self._settled.set()
