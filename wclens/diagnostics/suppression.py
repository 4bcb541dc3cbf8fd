"""
Suppression directives in markup comments.

    <!-- wctools-ignore -->                         all rules, whole document
    <!-- wctools-ignore unknownAttribute -->        one rule, whole document
    <!-- wctools-ignore-next-line a, b -->          two rules, next element only

``wctools-disable`` and ``wctools-disable-next-line`` are accepted as
aliases. Rule lists are comma and/or space separated; an empty list means
every rule.
"""

from __future__ import annotations

import bisect
import re
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List, Optional

from ..markup import MarkupComment, MarkupDocument, MarkupNode

_DIRECTIVE = re.compile(
    r"^\s*wctools-(?:ignore|disable)(?P<next>-next-line)?(?:\s+(?P<rules>.*?))?\s*$",
    re.DOTALL,
)

FILE = "file"
NEXT_ELEMENT = "next"


@dataclass(frozen=True)
class Directive:
    scope: str
    rules: FrozenSet[str]
    start: int
    end: int

    def covers(self, rule: str) -> bool:
        return not self.rules or rule in self.rules


def parse_directive(comment: str, start: int = 0, end: int = 0) -> Optional[Directive]:
    """Parse the body of one comment, or None when it is not a directive."""
    match = _DIRECTIVE.match(comment)
    if not match:
        return None
    rules = frozenset(r for r in re.split(r"[\s,]+", match.group("rules") or "") if r)
    return Directive(
        scope=NEXT_ELEMENT if match.group("next") else FILE,
        rules=rules,
        start=start,
        end=end,
    )


def find_directives(comments: Iterable[MarkupComment]) -> List[Directive]:
    """
    Directives among parsed comments.

    Only real comments count; comment-like text inside ``<script>`` or
    ``<style>`` content is not a directive.
    """
    directives = []
    for comment in comments:
        directive = parse_directive(comment.data, comment.start, comment.end)
        if directive is not None:
            directives.append(directive)
    return directives


class SuppressionIndex:
    """
    Answers "is rule R suppressed for element N" for one document.

    A next-line directive binds to the first element that starts after
    the comment ends, wherever that element sits in the tree.
    """

    def __init__(self, directives: Iterable[Directive], nodes: Iterable[MarkupNode] = ()):
        self.directives = list(directives)
        self._file = [d for d in self.directives if d.scope == FILE]
        self._next: Dict[int, List[Directive]] = {}

        starts = sorted({node.start for node in nodes})
        for directive in self.directives:
            if directive.scope != NEXT_ELEMENT:
                continue
            index = bisect.bisect_left(starts, directive.end)
            if index < len(starts):
                self._next.setdefault(starts[index], []).append(directive)

    @classmethod
    def from_document(cls, document: MarkupDocument, nodes: Iterable[MarkupNode] = ()) -> "SuppressionIndex":
        return cls(find_directives(document.comments), nodes)

    def __bool__(self) -> bool:
        return bool(self.directives)

    def suppresses_all(self) -> bool:
        return any(not d.rules for d in self._file)

    def is_suppressed(self, rule: str, node: Optional[MarkupNode] = None) -> bool:
        if any(d.covers(rule) for d in self._file):
            return True
        if node is None:
            return False
        return any(d.covers(rule) for d in self._next.get(node.start, ()))
