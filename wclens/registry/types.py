"""
Registry types - typed component metadata.

Everything here is frozen: a registry built from these records is never
patched in place, a reload builds new records.

Value kinds form a closed union matched exhaustively by consumers:
- BooleanKind: presence toggles the attribute, values are invalid
- NumberKind: value must parse as a number
- StringKind: unrestricted (optionally marked open-ended)
- EnumKind: closed set of string literals
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple, Union


# ============================================================================
# Value kinds
# ============================================================================

@dataclass(frozen=True)
class BooleanKind:
    label = "boolean"


@dataclass(frozen=True)
class NumberKind:
    label = "number"


@dataclass(frozen=True)
class StringKind:
    """
    Unrestricted string.

    ``open_ended`` marks unions such as ``'a' | 'b' | (string & {})`` that
    suggest literals but accept anything. Neither kind of string is ever
    validated or offered value completions.
    """
    open_ended: bool = False
    label = "string"


@dataclass(frozen=True)
class EnumKind:
    options: Tuple[str, ...] = ()
    label = "enum"

    def __contains__(self, value: str) -> bool:
        return value in self.options


ValueKind = Union[BooleanKind, NumberKind, StringKind, EnumKind]

BOOLEAN = BooleanKind()
NUMBER = NumberKind()
STRING = StringKind()
OPEN_STRING = StringKind(open_ended=True)


def describe_kind(kind: ValueKind) -> str:
    """Render a value kind as type text for hovers and completion details."""
    if isinstance(kind, EnumKind):
        return " | ".join(f"'{option}'" for option in kind.options)
    if isinstance(kind, BooleanKind):
        return "boolean"
    if isinstance(kind, NumberKind):
        return "number"
    if isinstance(kind, StringKind):
        return "string"
    raise TypeError(f"Unknown value kind: {kind!r}")


# Absent (None), flagged (True) or flagged with a message (str).
Deprecation = Union[None, bool, str]


def deprecation_message(deprecated: Deprecation, fallback: str) -> Optional[str]:
    """Message for a deprecation flag, ``fallback`` when it carries none."""
    if deprecated is None or deprecated is False:
        return None
    if isinstance(deprecated, str) and deprecated.strip():
        return deprecated
    return fallback


# ============================================================================
# Member metadata
# ============================================================================

@dataclass(frozen=True)
class AttributeMetadata:
    """Attribute of a custom element."""

    name: str
    description: str = ""
    deprecated: Deprecation = None
    value_kind: ValueKind = STRING
    type_text: str = ""
    field_name: Optional[str] = None
    source_offset: Optional[int] = None

    @property
    def is_deprecated(self) -> bool:
        return self.deprecated not in (None, False)


@dataclass(frozen=True)
class PropertyMetadata:
    """Public instance field of a custom element."""

    name: str
    description: str = ""
    deprecated: Deprecation = None
    value_kind: ValueKind = STRING
    type_text: str = ""
    attribute: Optional[str] = None
    readonly: bool = False

    @property
    def is_deprecated(self) -> bool:
        return self.deprecated not in (None, False)


@dataclass(frozen=True)
class EventMetadata:
    name: str
    description: str = ""
    deprecated: Deprecation = None
    type_text: str = ""

    @property
    def is_deprecated(self) -> bool:
        return self.deprecated not in (None, False)


@dataclass(frozen=True)
class CssHook:
    """
    CSS custom property, part or state exposed by an element.

    ``kind`` is one of ``property``, ``part``, ``state``.
    """

    kind: str
    name: str
    description: str = ""
    deprecated: Deprecation = None
    syntax: Optional[str] = None
    default: Optional[str] = None
    tag: Optional[str] = None


@dataclass(frozen=True)
class SlotMetadata:
    name: str
    description: str = ""


# ============================================================================
# Component
# ============================================================================

@dataclass(frozen=True)
class ComponentMetadata:
    """
    Normalized custom element.

    ``tag`` is the exposed key (after any tag-name transform);
    ``original_tag`` is the name as written in the manifest and is what
    navigation searches for in the manifest text.
    """

    tag: str
    original_tag: str
    source_id: str
    package: Optional[str] = None
    description: str = ""
    summary: str = ""
    deprecated: Deprecation = None
    class_name: Optional[str] = None
    attributes: Tuple[AttributeMetadata, ...] = ()
    properties: Tuple[PropertyMetadata, ...] = ()
    events: Tuple[EventMetadata, ...] = ()
    css_properties: Tuple[CssHook, ...] = ()
    css_parts: Tuple[CssHook, ...] = ()
    css_states: Tuple[CssHook, ...] = ()
    slots: Tuple[SlotMetadata, ...] = ()
    source_offset: Optional[int] = field(default=None, compare=False)

    @property
    def is_deprecated(self) -> bool:
        return self.deprecated not in (None, False)

    @property
    def documentation(self) -> str:
        return self.description or self.summary

    def css_hooks(self) -> Tuple[CssHook, ...]:
        return self.css_properties + self.css_parts + self.css_states
