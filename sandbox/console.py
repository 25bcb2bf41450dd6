"""
Console capture injected into sandboxed program text.
"""

from __future__ import annotations

import json
from typing import TextIO

from sandbox.values import serialize_value

# Prefix of mirrored log records on the child's stderr; one JSON string per line.
LOG_MARKER = "\x1esandbox-log "


class CapturedConsole:
    """
    Console-like object bound as ``console`` inside the sandbox.

    Every call appends one line to ``logs`` in call order. Lines are never
    truncated or deduplicated. When ``mirror`` is given, each line is also
    written there as it happens, so a killed child still leaves its logs behind.
    """

    def __init__(self, mirror: TextIO | None = None) -> None:
        self.logs: list[str] = []
        self.mirror = mirror

    def _record(self, line: str) -> None:
        self.logs.append(line)
        if self.mirror is not None:
            self.mirror.write(f"{LOG_MARKER}{json.dumps(line)}\n")
            self.mirror.flush()

    def _append(self, *args: object) -> None:
        self._record(" ".join(serialize_value(arg) for arg in args))

    def log(self, *args: object) -> None:
        self._append(*args)

    def info(self, *args: object) -> None:
        self._append(*args)

    def warn(self, *args: object) -> None:
        self._append(*args)

    warning = warn

    def error(self, *args: object) -> None:
        self._append(*args)

    def debug(self, *args: object) -> None:
        self._append(*args)

    def print(
        self,
        *args: object,
        sep: str | None = " ",
        end: str | None = "\n",
        file: object = None,
        flush: bool = False,
    ) -> None:
        """Drop-in for builtins.print; ``end``, ``file`` and ``flush`` are ignored."""
        separator = " " if sep is None else sep
        self._record(separator.join(str(arg) for arg in args))


def split_mirrored_logs(stderr: str) -> tuple[list[str], str]:
    """Separate mirrored log records from the rest of a child's stderr."""
    logs: list[str] = []
    other: list[str] = []
    for line in stderr.splitlines():
        if not line.startswith(LOG_MARKER):
            other.append(line)
            continue
        try:
            logs.append(str(json.loads(line[len(LOG_MARKER):])))
        except json.JSONDecodeError:
            other.append(line)
    return logs, "\n".join(other)
