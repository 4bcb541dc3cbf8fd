"""
Attribute scanner - source-ordered attribute occurrences of an opening tag.

Structural parsers collapse repeated attributes into one map entry and
often mangle binding-prefixed names, so diagnostics scan the raw opening
tag text instead. Fragments that cannot be read as an attribute are
skipped; the scan always continues to the end of the tag.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, List, Optional

_NAME_STOP = set(" \t\r\n\f=>\"'<")
_QUOTES = "\"'"


@dataclass(frozen=True)
class AttributeOccurrence:
    """
    One attribute as written in an opening tag.

    Offsets are absolute document offsets. ``raw_value`` keeps the quotes
    as written; ``value`` has them stripped. ``raw_value`` is None for a
    bare attribute.
    """

    name: str
    name_start: int
    name_end: int
    raw_value: Optional[str] = None
    value_start: Optional[int] = None
    value_end: Optional[int] = None

    @property
    def has_value(self) -> bool:
        return self.raw_value is not None

    @property
    def value(self) -> str:
        return remove_quotes(self.raw_value or "")

    @property
    def end(self) -> int:
        return self.value_end if self.value_end is not None else self.name_end


def remove_quotes(value: str) -> str:
    """Strip one pair of matching literal quotes."""
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in _QUOTES + "`":
        return value[1:-1]
    return value


def _skip_braces(text: str, i: int, end: int) -> int:
    """Index just past the brace group opening at ``i``, never past ``end``."""
    depth = 0
    quote = None
    while i < end:
        ch = text[i]
        if quote:
            if ch == quote:
                quote = None
        elif ch in _QUOTES + "`":
            quote = ch
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i + 1
        i += 1
    return i


def iter_attributes(text: str, start: int = 0, end: Optional[int] = None) -> Iterator[AttributeOccurrence]:
    """
    Scan the opening tag ``text[start:end]`` for attribute occurrences.

    Args:
        text: Document text
        start: Offset of the tag's ``<``
        end: Offset just past the tag's ``>`` (defaults to end of text)

    Yields:
        AttributeOccurrence in source order
    """
    end = len(text) if end is None else min(end, len(text))
    i = start

    # Tag name
    if i < end and text[i] == "<":
        i += 1
    while i < end and text[i] not in _NAME_STOP and text[i] != "/":
        i += 1

    while i < end:
        ch = text[i]

        if ch.isspace():
            i += 1
            continue
        if ch == ">":
            return
        if ch == "/":
            i += 1
            continue
        if ch in _QUOTES or ch in "=<":
            # Stray fragment: skip a quoted run, or one character.
            if ch in _QUOTES:
                close = text.find(ch, i + 1, end)
                i = close + 1 if close >= 0 else end
            else:
                i += 1
            continue
        if ch == "{" or text.startswith("${", i):
            # Spread or expression without a name, e.g. {...props}
            i = _skip_braces(text, i, end)
            continue

        name_start = i
        while i < end and text[i] not in _NAME_STOP:
            if text[i] == "/" and i + 1 < end and text[i + 1] == ">":
                break
            i += 1
        name_end = i
        name = text[name_start:name_end]

        j = i
        while j < end and text[j].isspace():
            j += 1
        if j >= end or text[j] != "=":
            if name:
                yield AttributeOccurrence(name=name, name_start=name_start, name_end=name_end)
            continue

        # Value
        j += 1
        while j < end and text[j].isspace():
            j += 1
        if j >= end:
            return

        value_start = j
        if text[j] in _QUOTES:
            close = text.find(text[j], j + 1, end)
            if close < 0:
                # Unterminated quote: nothing after it can be read reliably.
                return
            value_end = close + 1
        elif text[j] == "{" or text.startswith("${", j):
            value_end = _skip_braces(text, j, end)
        else:
            value_end = j
            while value_end < end and not text[value_end].isspace() and text[value_end] != ">":
                value_end += 1

        yield AttributeOccurrence(
            name=name,
            name_start=name_start,
            name_end=name_end,
            raw_value=text[value_start:value_end],
            value_start=value_start,
            value_end=value_end,
        )
        i = value_end


def scan_attributes(text: str, start: int = 0, end: Optional[int] = None) -> List[AttributeOccurrence]:
    return list(iter_attributes(text, start, end))
