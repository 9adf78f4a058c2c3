"""String-aware structural scanning over JSON-ish model text."""

from __future__ import annotations

from dataclasses import dataclass, field
import json
from typing import Any

_CLOSERS = {"{": "}", "[": "]"}
_RAW_STRING_ESCAPES = {"\n": "\\n", "\r": "\\r", "\t": "\\t"}


@dataclass
class ScanResult:
    open_stack: list[str] = field(default_factory=list)
    in_string: bool = False
    # Offsets just past a closing `}`/`]` that is followed (ignoring whitespace) by a comma.
    safe_cuts: list[int] = field(default_factory=list)

    @property
    def balanced(self) -> bool:
        return not self.open_stack and not self.in_string

    def closers(self) -> str:
        return "".join(_CLOSERS[opener] for opener in reversed(self.open_stack))


def scan_structure(text: str) -> ScanResult:
    """Walk `text` tracking open brackets outside string literals."""
    result = ScanResult()
    escaped = False
    for index, char in enumerate(text):
        if result.in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                result.in_string = False
            continue

        if char == '"':
            result.in_string = True
        elif char in _CLOSERS:
            result.open_stack.append(char)
        elif char in ("}", "]"):
            expected = "{" if char == "}" else "["
            if result.open_stack and result.open_stack[-1] == expected:
                result.open_stack.pop()
            if _followed_by_comma(text, index + 1):
                result.safe_cuts.append(index + 1)
    return result


def find_balanced(text: str, start: int = 0) -> str | None:
    """Return the object starting at `text[start]` up to its matching brace, if any."""
    if start >= len(text) or text[start] != "{":
        return None

    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start : index + 1]
    return None


def apply_common_fixes(text: str) -> str:
    """Drop trailing commas and escape raw control characters inside strings."""
    output: list[str] = []
    in_string = False
    escaped = False
    index = 0
    length = len(text)
    while index < length:
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
                output.append(char)
            elif char == "\\":
                escaped = True
                output.append(char)
            elif char == '"':
                in_string = False
                output.append(char)
            else:
                output.append(_RAW_STRING_ESCAPES.get(char, char))
            index += 1
            continue

        if char == '"':
            in_string = True
        elif char == ",":
            lookahead = index + 1
            while lookahead < length and text[lookahead].isspace():
                lookahead += 1
            if lookahead < length and text[lookahead] in "}]":
                index += 1
                continue
        output.append(char)
        index += 1
    return "".join(output)


def decode_object(candidate: str, expected_key: str) -> dict[str, Any] | None:
    """Decode `candidate`, retrying with common fixes; accept only objects holding the key."""
    for text in (candidate, apply_common_fixes(candidate)):
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict) and expected_key in parsed:
            return parsed
        return None
    return None


def _followed_by_comma(text: str, index: int) -> bool:
    while index < len(text) and text[index].isspace():
        index += 1
    return index < len(text) and text[index] == ","
