"""
Markup adapter - element trees and document positions.

The diagnostic, hover and completion layers only need a small view of a
parsed document: for every element its tag, the offsets of its opening
tag and its end, plus children. ``parse_markup`` builds that view on top
of the standard library's tolerant ``html.parser``; hosts that already
have a parse tree can hand in their own nodes of the same shape.
"""

from __future__ import annotations

import bisect
import re
from dataclasses import dataclass, field
from html.parser import HTMLParser
from typing import Iterator, List, Optional

from lsprotocol import types as lsp


VOID_ELEMENTS = frozenset({
    "area", "base", "br", "col", "embed", "hr", "img", "input",
    "link", "meta", "param", "source", "track", "wbr",
})

_RAW_TAG_NAME = re.compile(r"<\s*([^\s/>]+)")


def utf16_length(text: str) -> int:
    """Length of ``text`` in UTF-16 code units, the LSP default position encoding."""
    if text.isascii():
        return len(text)
    return len(text.encode("utf-16-le")) // 2


def utf16_index(text: str, units: int) -> int:
    """Code point index in ``text`` reached after ``units`` UTF-16 code units."""
    if text.isascii():
        return min(units, len(text))
    consumed = 0
    for index, ch in enumerate(text):
        if consumed >= units:
            return index
        consumed += 2 if ord(ch) > 0xFFFF else 1
    return len(text)


@dataclass
class MarkupNode:
    """
    One element of a parsed document.

    Offsets are character offsets into the document text:
    ``start`` is the ``<`` of the opening tag, ``start_tag_end`` is just
    past its ``>``, ``end`` is just past the closing tag (or the opening
    tag for void and self-closing elements).
    """

    tag: str
    start: int
    start_tag_end: int
    end: int
    children: List["MarkupNode"] = field(default_factory=list)
    parent: Optional["MarkupNode"] = field(default=None, repr=False, compare=False)

    def walk(self) -> Iterator["MarkupNode"]:
        yield self
        for child in self.children:
            yield from child.walk()

    def contains(self, offset: int) -> bool:
        return self.start <= offset < max(self.end, self.start_tag_end)


@dataclass
class MarkupComment:
    data: str
    start: int
    end: int


@dataclass
class MarkupDocument:
    text: str
    roots: List[MarkupNode] = field(default_factory=list)
    comments: List[MarkupComment] = field(default_factory=list)

    def walk(self) -> Iterator[MarkupNode]:
        for root in self.roots:
            yield from root.walk()

    def node_at(self, offset: int) -> Optional[MarkupNode]:
        """Innermost element whose span contains ``offset``."""
        found = None
        candidates = self.roots
        while True:
            match = next((n for n in candidates if n.contains(offset)), None)
            if match is None:
                return found
            found = match
            candidates = match.children


class _TreeBuilder(HTMLParser):
    """html.parser subclass that records element offsets."""

    def __init__(self, text: str):
        super().__init__(convert_charrefs=False)
        self.text = text
        self.document = MarkupDocument(text=text)
        self._stack: List[MarkupNode] = []
        self._line_starts = [0] + [m.end() for m in re.finditer("\n", text)]

    def _offset(self) -> int:
        line, column = self.getpos()
        return self._line_starts[line - 1] + column

    def _append(self, node: MarkupNode) -> None:
        if self._stack:
            node.parent = self._stack[-1]
            self._stack[-1].children.append(node)
        else:
            self.document.roots.append(node)

    def _open(self, tag: str, self_closing: bool) -> None:
        start = self._offset()
        raw = self.get_starttag_text() or ""
        match = _RAW_TAG_NAME.match(raw)
        name = match.group(1) if match else tag
        start_tag_end = start + len(raw)

        node = MarkupNode(tag=name, start=start, start_tag_end=start_tag_end, end=start_tag_end)
        self._append(node)
        if not self_closing and tag.lower() not in VOID_ELEMENTS:
            self._stack.append(node)

    def handle_starttag(self, tag, attrs):
        self._open(tag, self_closing=False)

    def handle_startendtag(self, tag, attrs):
        self._open(tag, self_closing=True)

    def handle_endtag(self, tag):
        start = self._offset()
        close = self.text.find(">", start)
        end = close + 1 if close >= 0 else len(self.text)

        for index in range(len(self._stack) - 1, -1, -1):
            if self._stack[index].tag.lower() == tag.lower():
                # Close everything opened after the match as well.
                for node in self._stack[index:]:
                    node.end = end if node is self._stack[index] else start
                del self._stack[index:]
                return

    def handle_comment(self, data):
        start = self._offset()
        self.document.comments.append(
            MarkupComment(data=data, start=start, end=start + len(data) + 7)
        )

    def finish(self) -> MarkupDocument:
        self.close()
        for node in self._stack:
            node.end = len(self.text)
        self._stack.clear()
        return self.document


def parse_markup(text: str) -> MarkupDocument:
    """Parse markup text into a MarkupDocument. Never raises on bad markup."""
    builder = _TreeBuilder(text)
    builder.feed(text)
    return builder.finish()


class TextDocument:
    """
    Text with offset <-> LSP position conversion.

    Offsets are Python string indexes; position characters are UTF-16
    code units.
    """

    def __init__(self, text: str, uri: str = ""):
        self.text = text
        self.uri = uri
        self._line_starts = [0] + [m.end() for m in re.finditer("\n", text)]

    def position_at(self, offset: int) -> lsp.Position:
        offset = max(0, min(offset, len(self.text)))
        line = bisect.bisect_right(self._line_starts, offset) - 1
        line_start = self._line_starts[line]
        return lsp.Position(line=line, character=utf16_length(self.text[line_start:offset]))

    def offset_at(self, position: lsp.Position) -> int:
        if position.line >= len(self._line_starts):
            return len(self.text)
        line_start = self._line_starts[position.line]
        next_start = (
            self._line_starts[position.line + 1]
            if position.line + 1 < len(self._line_starts)
            else len(self.text) + 1
        )
        line_end = min(next_start - 1, len(self.text))
        return line_start + utf16_index(self.text[line_start:line_end], position.character)

    def range_of(self, start: int, end: int) -> lsp.Range:
        return lsp.Range(start=self.position_at(start), end=self.position_at(end))
