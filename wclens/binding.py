"""
Binding resolver - maps prefixed attribute tokens to metadata.

Templating syntaxes put a marker in front of attribute-like tokens to
bind something other than a plain attribute:

    .value=${x}        property binding
    ?disabled=${x}     boolean attribute toggle
    @click=${fn}       event listener
    :label="x"         generic binding (attribute, else property)
    [value]="x"        property binding
    [attr.role]="x"    attribute binding inside bracket syntax
    (click)="fn()"     event binding

Resolution is pure and deterministic for a given registry snapshot.
Unknown names resolve to a Binding without metadata; nothing raises.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union

from .registry import (
    AttributeMetadata,
    BooleanKind,
    EventMetadata,
    PropertyMetadata,
    Registry,
)

# Character class of every recognized prefix marker (regex form).
BINDING_PREFIX_CLASS = r"[.:?@\[\(]"

FORCE_ATTRIBUTE_MARKER = "attr."


class BindingKind(str, Enum):
    NONE = ""
    PROPERTY = "."
    BOOLEAN = "?"
    EVENT = "@"
    GENERIC = ":"
    BRACKET = "["
    PAREN = "("


class Category(str, Enum):
    ATTRIBUTE = "attribute"
    PROPERTY = "property"
    EVENT = "event"


_PREFIXES = {kind.value: kind for kind in BindingKind if kind.value}

Metadata = Union[AttributeMetadata, PropertyMetadata, EventMetadata]


@dataclass(frozen=True)
class Binding:
    """
    Outcome of resolving one token.

    ``category`` is the category the syntax asks for (the one matched,
    when there is a match). ``metadata`` is None for unknown names.
    """

    raw: str
    kind: BindingKind
    base_name: str
    category: Category
    metadata: Optional[Metadata] = None
    force_attribute: bool = False

    @property
    def prefix(self) -> str:
        return self.kind.value

    @property
    def matched(self) -> bool:
        return self.metadata is not None

    @property
    def targets_attribute(self) -> bool:
        """Whether the token names an attribute, as opposed to a property or event."""
        return self.category is Category.ATTRIBUTE


def parse_token(raw: str) -> Tuple[BindingKind, str, bool]:
    """
    Split a raw token into (prefix kind, base name, force-attribute flag).

    Closing ``]`` / ``)`` of bracket and paren syntax are dropped.
    """
    token = (raw or "").strip()
    if not token:
        return BindingKind.NONE, "", False

    kind = _PREFIXES.get(token[0], BindingKind.NONE)
    base = token[1:] if kind is not BindingKind.NONE else token
    force_attribute = False

    if kind is BindingKind.BRACKET:
        base = base.rstrip("]")
        if base.startswith(FORCE_ATTRIBUTE_MARKER):
            base = base[len(FORCE_ATTRIBUTE_MARKER):]
            force_attribute = True
    elif kind is BindingKind.PAREN:
        base = base.rstrip(")")

    return kind, base, force_attribute


def intended_category(kind: BindingKind, force_attribute: bool = False) -> Category:
    """Category a prefix asks for before any metadata lookup."""
    if kind in (BindingKind.EVENT, BindingKind.PAREN):
        return Category.EVENT
    if kind is BindingKind.PROPERTY:
        return Category.PROPERTY
    if kind is BindingKind.BRACKET:
        return Category.ATTRIBUTE if force_attribute else Category.PROPERTY
    return Category.ATTRIBUTE


def resolve(registry: Registry, tag: str, raw: str) -> Binding:
    """
    Resolve ``raw`` on element ``tag`` to its metadata category.

    - no prefix or ``:`` -> attribute, else property
    - ``.`` or ``[name]`` -> property
    - ``[attr.name]`` -> attribute
    - ``?`` -> attribute, Boolean kind only
    - ``@`` or ``(name)`` -> event

    Args:
        registry: Registry snapshot
        tag: Exposed tag name
        raw: Attribute-like token as written in markup

    Returns:
        Binding (metadata is None when nothing matches)
    """
    kind, base, force_attribute = parse_token(raw)
    category = intended_category(kind, force_attribute)

    def binding(metadata: Optional[Metadata], resolved: Category = category) -> Binding:
        return Binding(
            raw=raw,
            kind=kind,
            base_name=base,
            category=resolved,
            metadata=metadata,
            force_attribute=force_attribute,
        )

    if not base:
        return binding(None)

    if category is Category.EVENT:
        return binding(registry.get_event(tag, base))

    if category is Category.PROPERTY:
        return binding(registry.get_property(tag, base))

    attribute = registry.get_attribute(tag, base)
    if kind is BindingKind.BOOLEAN:
        if attribute is not None and isinstance(attribute.value_kind, BooleanKind):
            return binding(attribute)
        return binding(None)

    if attribute is not None:
        return binding(attribute)

    if kind in (BindingKind.NONE, BindingKind.GENERIC):
        prop = registry.get_property(tag, base)
        if prop is not None:
            return binding(prop, Category.PROPERTY)

    return binding(None)
