"""
Position locator - best-effort manifest positions.

Maps a literal search key (for example ``"tagName": "my-button"``) to a
line/column pair in raw manifest text. The lookup is a plain substring
search: when the same fragment occurs more than once in a manifest the
first occurrence wins, which can point at the wrong entry (two elements
sharing an attribute name, say). There is no schema-aware lookup.
"""

from typing import Optional, Tuple

from lsprotocol import types as lsp

from .markup import utf16_length

# Highlighted width when the caller does not give one.
DEFAULT_SPAN = 10


def find_offset(text: Optional[str], key: str, *, start: int = 0, default: Optional[int] = 0) -> Optional[int]:
    """
    Return the offset of the first occurrence of ``key`` at or after
    ``start``, else ``default`` (start of file unless told otherwise).
    """
    if not text or not key:
        return default
    position = text.find(key, max(start, 0))
    return position if position >= 0 else default


def offset_to_position(text: str, offset: int) -> Tuple[int, int]:
    """
    Convert a character offset to a zero-based (line, column) pair, the
    column counted in UTF-16 code units.

    Walks newline-delimited lines once; offsets past the end clamp to the
    end of the text.
    """
    offset = max(0, min(offset, len(text)))
    consumed = 0
    lines = text.split("\n")
    for line_no, line in enumerate(lines):
        line_end = consumed + len(line)
        if offset <= line_end:
            return line_no, utf16_length(line[:offset - consumed])
        consumed = line_end + 1  # newline
    return len(lines) - 1, utf16_length(lines[-1])


def locate(
    text: str,
    key: str,
    *,
    start: int = 0,
    span: int = DEFAULT_SPAN,
    default: Optional[int] = 0,
) -> Optional[lsp.Range]:
    """
    Find ``key`` in ``text`` and return the range it starts.

    Args:
        text: Raw manifest text
        key: Literal search key
        start: Offset to start searching from
        span: Number of characters to highlight
        default: Offset used when the key is absent (None returns None)

    Returns:
        Range covering ``span`` characters on the key's line
    """
    offset = find_offset(text, key, start=start, default=default)
    if offset is None:
        return None
    line, column = offset_to_position(text, offset)
    return lsp.Range(
        start=lsp.Position(line=line, character=column),
        end=lsp.Position(line=line, character=column + span),
    )
