"""Turn free-form case text into structured cases."""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterable, Sequence
from pathlib import Path

import yaml

from harness.schemas import Case, CaseDraft

logger = logging.getLogger(__name__)

_CASE_ID = re.compile(r"case-(\d+)")


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"


MISSING = _Missing()


def _reject_constant(name: str) -> object:
    raise ValueError(f"Invalid JSON constant: {name}")


def parse_value(raw: str) -> object:
    """Parse JSON text, falling back to the trimmed text; blank input yields MISSING.

    ``NaN`` and ``Infinity`` are not JSON and stay plain strings.
    """
    trimmed = raw.strip()
    if not trimmed:
        return MISSING
    try:
        return json.loads(trimmed, parse_constant=_reject_constant)
    except ValueError:
        return trimmed


def build_case(index: int, draft: CaseDraft) -> Case:
    """Build the case sent to the sandbox for the draft at 0-based ``index``.

    A JSON array in ``args`` is spread positionally; any other value becomes a
    single argument. ``expected`` is never spread.
    """
    args_value = parse_value(draft.args)
    expected_value = parse_value(draft.expected)

    if isinstance(args_value, list):
        args = args_value
    elif args_value is MISSING:
        args = []
    else:
        args = [args_value]

    label = f"({draft.args})" if draft.args.strip() else ""
    return Case(
        name=f"Case {index + 1} {label}".strip(),
        args=args,
        expected=None if expected_value is MISSING else expected_value,
    )


def build_cases(drafts: Sequence[CaseDraft]) -> list[Case]:
    return [build_case(index, draft) for index, draft in enumerate(drafts)]


def next_case_id(drafts: Iterable[CaseDraft]) -> int:
    max_id = 0
    for draft in drafts:
        match = _CASE_ID.fullmatch(draft.id)
        if match:
            max_id = max(max_id, int(match.group(1)))
    return max_id + 1


def new_draft(drafts: Iterable[CaseDraft], args: str = "", expected: str = "") -> CaseDraft:
    return CaseDraft(id=f"case-{next_case_id(drafts)}", args=args, expected=expected)


def _as_text(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return json.dumps(value)


def load_drafts(path: str | Path) -> list[CaseDraft]:
    """Load case drafts from a YAML (or JSON) file.

    The file holds a list of ``{args, expected}`` entries. Non-string values
    are re-encoded as JSON text, so ``args: [2, 3]`` and ``args: "[2, 3]"``
    are equivalent.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file isn't a list of mappings
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Cases file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid cases file {path}: {e}") from e

    if data is None:
        return []
    if not isinstance(data, list):
        raise ValueError(f"Cases file must contain a list: {path}")

    drafts: list[CaseDraft] = []
    for position, entry in enumerate(data, start=1):
        if not isinstance(entry, dict):
            raise ValueError(f"Case #{position} in {path} is not a mapping")
        if "args" not in entry and "expected" not in entry:
            logger.warning(f"Skipping case #{position} in {path}: no args or expected")
            continue
        drafts.append(
            new_draft(
                drafts,
                args=_as_text(entry.get("args")),
                expected=_as_text(entry.get("expected")),
            )
        )
    return drafts
