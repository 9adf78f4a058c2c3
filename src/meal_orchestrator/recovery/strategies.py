"""Named recovery strategies, each `(text, expected_key) -> dict | None`."""

from __future__ import annotations

import logging
import re
from typing import Any, Callable

from meal_orchestrator.recovery.scanner import decode_object, find_balanced, scan_structure

logger = logging.getLogger(__name__)

Strategy = Callable[[str, str], dict[str, Any] | None]

_FENCE_OPEN = re.compile(r"```json\s*", re.IGNORECASE)
_FENCE_ANY = re.compile(r"```\s*")


def strip_code_fences(text: str) -> str:
    return _FENCE_ANY.sub("", _FENCE_OPEN.sub("", text))


def balanced_extraction(text: str, expected_key: str) -> dict[str, Any] | None:
    """Try each `{` in turn; prose before the object may contain braces of its own."""
    start = text.find("{")
    while start != -1:
        candidate = find_balanced(text, start)
        if candidate is not None and f'"{expected_key}"' not in candidate:
            # Nothing nested inside a keyless object can hold the key either.
            start = text.find("{", start + len(candidate))
            continue
        if candidate is not None:
            parsed = decode_object(candidate, expected_key)
            if parsed is not None:
                return parsed
        start = text.find("{", start + 1)
    return None


def regex_candidates(text: str, expected_key: str) -> dict[str, Any] | None:
    for match in candidate_pattern(expected_key).finditer(text):
        chunk = match.group(0)
        parsed = decode_object(chunk, expected_key)
        if parsed is not None:
            return parsed

        balanced = find_balanced(chunk, 0)
        if balanced is not None:
            parsed = decode_object(balanced, expected_key)
            if parsed is not None:
                return parsed

        repaired = repair_truncated(chunk)
        if repaired is not None:
            parsed = decode_object(repaired, expected_key)
            if parsed is not None:
                return parsed
            logger.debug("Truncation repair of regex candidate failed tail=%r", repaired[-200:])
    return None


def truncation_repair(text: str, expected_key: str) -> dict[str, Any] | None:
    """Close a document that was cut off, starting from the object that holds the key."""
    for start in repair_anchors(text, expected_key):
        repaired = repair_truncated(text, start)
        if repaired is None:
            continue
        parsed = decode_object(repaired, expected_key)
        if parsed is not None:
            return parsed
    return None


def repair_anchors(text: str, expected_key: str) -> list[int]:
    """Offsets of `{"expected_key"` first, then every `{` before the key's first mention."""
    key_at = text.find(f'"{expected_key}"')
    if key_at == -1:
        return []
    anchored = [match.start() for match in key_anchor_pattern(expected_key).finditer(text)]
    enclosing = [
        index for index, char in enumerate(text[:key_at]) if char == "{" and index not in anchored
    ]
    return anchored + enclosing


def repair_truncated(text: str, start: int | None = None) -> str | None:
    """Close the structure of truncated JSON without inventing values.

    Anything after the last complete element (a `}` or `]` followed by a comma)
    is dropped, an open string is terminated, then every open bracket is closed
    in reverse nesting order. Balanced input is returned unchanged. Repair begins
    at `start`, or at the first `{` when no offset is given.
    """
    if start is None:
        start = text.find("{")
    if start == -1 or not text.startswith("{", start):
        return None

    document = text[start:]
    scan = scan_structure(document)
    if scan.balanced:
        return document

    if scan.safe_cuts:
        document = document[: scan.safe_cuts[-1]]
        scan = scan_structure(document)
        logger.debug(
            "Truncated to last complete element at=%d open_brackets=%d",
            len(document),
            len(scan.open_stack),
        )

    if scan.in_string:
        document += '"'
        scan = scan_structure(document)

    return document + scan.closers()


def candidate_pattern(expected_key: str) -> re.Pattern[str]:
    return re.compile(r"\{[\s\S]*\"" + re.escape(expected_key) + r"\"[\s\S]*\}")


def key_anchor_pattern(expected_key: str) -> re.Pattern[str]:
    return re.compile(r"\{\s*\"" + re.escape(expected_key) + r"\"")


STRATEGIES: tuple[tuple[str, Strategy], ...] = (
    ("balanced_extraction", balanced_extraction),
    ("regex_candidates", regex_candidates),
    ("truncation_repair", truncation_repair),
)
