"""
Completion engine - tag, attribute, value and CSS hook suggestions.

An engine is bound to one registry snapshot. Completion items for a tag
are built lazily on first request and cached for the life of the engine;
a reload creates a new engine, which drops the whole cache at once.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import attrs
from lsprotocol import types as lsp

from .binding import BINDING_PREFIX_CLASS, BindingKind, Category, intended_category, parse_token
from .hover import (
    attribute_markdown,
    component_markdown,
    css_hook_markdown,
    event_markdown,
    property_markdown,
)
from .registry import (
    AttributeMetadata,
    BooleanKind,
    CssHook,
    EnumKind,
    EventMetadata,
    PropertyMetadata,
    Registry,
    describe_kind,
    deprecation_message,
)

logger = logging.getLogger("wclens.completion")


TRIGGER_SUGGEST = lsp.Command(title="Suggest", command="editor.action.triggerSuggest")

# Before-cursor patterns, applied to the text after the last "<".
_TAG_CONTEXT = re.compile(r"<([a-zA-Z0-9-]*)$")
_VALUE_CONTEXT = re.compile(
    r"<([a-zA-Z0-9-]+)(?:\s+[^>]*?)?\s+("
    + BINDING_PREFIX_CLASS
    + r"?[a-zA-Z0-9_.:-]+[\])]?)=[\"']?([^\"']*)$"
)
_NAME_CONTEXT = re.compile(
    r"<([a-zA-Z0-9-]+)(?:\s+[^>]*?)?\s+(" + BINDING_PREFIX_CLASS + r"?)([a-zA-Z0-9_.-]*)$"
)
_BARE_TAG_CONTEXT = re.compile(r"(?:^|\s)([a-zA-Z0-9-]+)$")
_PREFIX_CONTEXT = re.compile(r"(?:^|\s)(" + BINDING_PREFIX_CLASS + r")[\w.-]*$")


def extract_prefix(context_text: Optional[str]) -> str:
    """Binding prefix of the token being typed at the end of ``context_text``."""
    if not context_text:
        return ""
    match = _PREFIX_CONTEXT.search(context_text)
    return match.group(1) if match else ""


def _documentation(markdown: str) -> lsp.MarkupContent:
    return lsp.MarkupContent(kind=lsp.MarkupKind.Markdown, value=markdown)


def _deprecated_tags(deprecated) -> Optional[List[lsp.CompletionItemTag]]:
    return [lsp.CompletionItemTag.Deprecated] if deprecated not in (None, False) else None


@dataclass
class _TagCompletions:
    """Cached items of one tag."""

    attributes: List[lsp.CompletionItem] = field(default_factory=list)
    attribute_values: Dict[str, List[lsp.CompletionItem]] = field(default_factory=dict)
    properties: List[lsp.CompletionItem] = field(default_factory=list)
    events: List[lsp.CompletionItem] = field(default_factory=list)
    boolean_attributes: List[str] = field(default_factory=list)


class CompletionEngine:
    """
    Suggestion source for one registry snapshot.

    Produces ``lsprotocol`` CompletionItems and does no I/O.
    """

    def __init__(self, registry: Registry):
        self.registry = registry
        self._tags: Optional[List[lsp.CompletionItem]] = None
        self._css: Optional[List[lsp.CompletionItem]] = None
        self._cache: Dict[str, _TagCompletions] = {}

    def invalidate(self) -> None:
        """Drop every cached item."""
        self._tags = None
        self._css = None
        self._cache.clear()

    # ── Tags ─────────────────────────────────────────────────────────

    def _tag_items(self) -> List[lsp.CompletionItem]:
        if self._tags is None:
            self._tags = [
                lsp.CompletionItem(
                    label=component.tag,
                    kind=lsp.CompletionItemKind.Snippet,
                    detail="Custom Element",
                    documentation=_documentation(component_markdown(component)),
                    insert_text=f"<{component.tag}>$0</{component.tag}>",
                    insert_text_format=lsp.InsertTextFormat.Snippet,
                    sort_text=f"0{component.tag}",
                    deprecated=component.is_deprecated,
                    tags=_deprecated_tags(component.deprecated),
                )
                for component in self.registry
            ]
        return self._tags

    def tag_completions(self, include_open_bracket: bool = False) -> List[lsp.CompletionItem]:
        """
        One snippet per registry tag.

        Args:
            include_open_bracket: Whether the snippet starts with ``<``
                (the user has not typed it yet)
        """
        items = self._tag_items()
        if include_open_bracket:
            return list(items)
        return [
            _replace(item, insert_text=f"{item.label}>$0</{item.label}>")
            for item in items
        ]

    # ── Attributes ───────────────────────────────────────────────────

    def _for_tag(self, tag: str) -> Optional[_TagCompletions]:
        cached = self._cache.get(tag)
        if cached is not None:
            return cached
        component = self.registry.get(tag)
        if component is None:
            return None

        cached = _TagCompletions()
        for attribute in component.attributes:
            cached.attributes.append(self._attribute_item(attribute))
            if isinstance(attribute.value_kind, BooleanKind):
                cached.boolean_attributes.append(attribute.name)
            if isinstance(attribute.value_kind, EnumKind) and attribute.value_kind.options:
                cached.attribute_values[attribute.name] = [
                    lsp.CompletionItem(
                        label=option,
                        kind=lsp.CompletionItemKind.Value,
                        detail=f"Attribute value for {attribute.name}",
                        insert_text=option,
                        filter_text=option,
                        sort_text=f"0{option}",
                    )
                    for option in attribute.value_kind.options
                ]
        cached.properties = [self._property_item(p) for p in component.properties]
        cached.events = [self._event_item(e) for e in component.events]

        self._cache[tag] = cached
        return cached

    def _attribute_item(self, attribute: AttributeMetadata) -> lsp.CompletionItem:
        kind = attribute.value_kind
        has_values = isinstance(kind, EnumKind) and bool(kind.options)
        if has_values:
            insert_text = f'{attribute.name}="$1"$0'
        elif isinstance(kind, BooleanKind):
            insert_text = attribute.name
        else:
            insert_text = f'{attribute.name}="$0"'

        return lsp.CompletionItem(
            label=attribute.name,
            kind=lsp.CompletionItemKind.Property,
            detail=attribute.type_text or describe_kind(kind),
            documentation=_documentation(attribute_markdown(attribute)),
            insert_text=insert_text,
            insert_text_format=lsp.InsertTextFormat.Snippet,
            filter_text=attribute.name,
            sort_text=f"0{attribute.name}",
            command=TRIGGER_SUGGEST if has_values else None,
            deprecated=attribute.is_deprecated,
            tags=_deprecated_tags(attribute.deprecated),
            data=_deprecation_data(attribute.deprecated, "This attribute is deprecated."),
        )

    def _property_item(self, prop: PropertyMetadata) -> lsp.CompletionItem:
        return lsp.CompletionItem(
            label=prop.name,
            kind=lsp.CompletionItemKind.Property,
            detail=prop.type_text or "any",
            documentation=_documentation(property_markdown(prop)),
            insert_text=f'{prop.name}="$0"',
            insert_text_format=lsp.InsertTextFormat.Snippet,
            sort_text=f"0{prop.name}",
            deprecated=prop.is_deprecated,
            tags=_deprecated_tags(prop.deprecated),
            data=_deprecation_data(prop.deprecated, "This property is deprecated."),
        )

    def _event_item(self, event: EventMetadata) -> lsp.CompletionItem:
        return lsp.CompletionItem(
            label=event.name,
            kind=lsp.CompletionItemKind.Event,
            detail=event.type_text or "Event",
            documentation=_documentation(event_markdown(event)),
            insert_text=f'{event.name}="$0"',
            insert_text_format=lsp.InsertTextFormat.Snippet,
            sort_text=f"0{event.name}",
            deprecated=event.is_deprecated,
            tags=_deprecated_tags(event.deprecated),
            data=_deprecation_data(event.deprecated, "This event is deprecated."),
        )

    def attribute_completions(
        self,
        tag: str,
        prefix: Optional[str] = None,
        context_text: Optional[str] = None,
    ) -> List[lsp.CompletionItem]:
        """
        Attribute-like completions for ``tag``, shaped by the binding prefix.

        - no prefix: attributes
        - ``?``: Boolean attributes with a value placeholder
        - ``.``: properties
        - ``@``: events
        - ``(``: events, closing the parenthesis
        - ``:``: attributes, then properties without a same-named attribute
        - ``[``: properties closing the bracket, plus ``attr.``-prefixed attributes

        Args:
            tag: Exposed tag name
            prefix: Binding prefix marker (extracted from ``context_text``
                when not given)
            context_text: Text before the cursor

        Returns:
            Completion items (empty for unknown tags)
        """
        cached = self._for_tag(tag)
        if cached is None:
            return []

        if prefix is None:
            prefix = extract_prefix(context_text)
        kind, _, _ = parse_token(prefix)
        if prefix and kind is BindingKind.NONE:
            logger.debug(f"Ignoring unrecognized binding prefix {prefix!r}")

        if kind is BindingKind.NONE:
            return list(cached.attributes)

        if kind is BindingKind.BOOLEAN:
            return [
                _replace(item, insert_text=f'{item.label}="$1"$0', command=None)
                for item in cached.attributes
                if item.label in cached.boolean_attributes
            ]

        if kind is BindingKind.PROPERTY:
            return list(cached.properties)

        if kind is BindingKind.EVENT:
            return list(cached.events)

        if kind is BindingKind.PAREN:
            return [_replace(item, insert_text=f'{item.label})="$1"$0') for item in cached.events]

        if kind is BindingKind.GENERIC:
            names = {item.label for item in cached.attributes}
            return list(cached.attributes) + [p for p in cached.properties if p.label not in names]

        # Bracket binding
        return [
            _replace(item, insert_text=f'{item.label}]="$1"$0') for item in cached.properties
        ] + [
            _replace(
                item,
                label=f"attr.{item.label}",
                filter_text=f"attr.{item.label}",
                insert_text=f'attr.{item.label}]="$1"$0',
                command=None,
            )
            for item in cached.attributes
        ]

    def attribute_value_completions(self, tag: str, attribute: str) -> List[lsp.CompletionItem]:
        """
        Value suggestions for an attribute.

        Only Enum attributes have any; Boolean, Number and String kinds
        yield an empty list. ``attribute`` may carry a binding prefix.
        """
        cached = self._for_tag(tag)
        if cached is None:
            return []
        kind, base, force_attribute = parse_token(attribute)
        if intended_category(kind, force_attribute) is not Category.ATTRIBUTE:
            return []
        return list(cached.attribute_values.get(base, ()))

    # ── CSS ──────────────────────────────────────────────────────────

    def css_completions(self) -> List[lsp.CompletionItem]:
        """Workspace-wide CSS hook suggestions (not scoped to a tag)."""
        if self._css is not None:
            return list(self._css)

        items: List[lsp.CompletionItem] = []
        variables = [self._css_item(hook) for hook in self.registry.css_properties]
        items.extend(variables)
        items.extend(
            _replace(
                item,
                label=f"var({item.label})",
                insert_text=f"var({item.label})",
                filter_text=f"var {item.label}",
                sort_text=f"xxvar({item.label})",
            )
            for item in variables
        )
        items.extend(self._css_item(hook) for hook in self.registry.css_parts)
        items.extend(self._css_item(hook) for hook in self.registry.css_states)

        self._css = items
        return list(items)

    def _css_item(self, hook: CssHook) -> lsp.CompletionItem:
        if hook.kind == "property":
            label = hook.name
            kind = lsp.CompletionItemKind.Variable
            sort_text = f"aa{hook.name}"
            filter_text = hook.name
            detail = "CSS Variable"
        else:
            label = f"{hook.kind}({hook.name})"
            kind = lsp.CompletionItemKind.Function
            sort_text = f"xx{hook.name}"
            filter_text = f"{hook.kind} {hook.name}"
            detail = "CSS Part" if hook.kind == "part" else "CSS State"

        return lsp.CompletionItem(
            label=label,
            kind=kind,
            detail=detail,
            documentation=_documentation(css_hook_markdown(hook)),
            insert_text=label,
            filter_text=filter_text,
            sort_text=sort_text,
            deprecated=hook.deprecated not in (None, False),
            tags=_deprecated_tags(hook.deprecated),
            data=_deprecation_data(hook.deprecated, f"This {detail} is deprecated."),
        )

    # ── Context dispatch ─────────────────────────────────────────────

    def complete(self, text: str, offset: int) -> List[lsp.CompletionItem]:
        """
        Completions for the cursor at ``offset`` in markup ``text``.

        Dispatches between tag, attribute-value and attribute-name
        completion from the text before the cursor.
        """
        before = text[:max(0, min(offset, len(text)))]
        open_index = before.rfind("<")
        if open_index >= 0 and ">" not in before[open_index:]:
            fragment = before[open_index:]

            if _TAG_CONTEXT.search(fragment):
                return self.tag_completions(include_open_bracket=False)

            match = _VALUE_CONTEXT.search(fragment)
            if match:
                return self.attribute_value_completions(match.group(1), match.group(2))

            match = _NAME_CONTEXT.search(fragment)
            if match:
                return self.attribute_completions(match.group(1), prefix=match.group(2))
            return []

        match = _BARE_TAG_CONTEXT.search(before)
        if match and before[-1:] not in ('"', "'", "<", "="):
            return self.tag_completions(include_open_bracket=True)
        return []


def _deprecation_data(deprecated, fallback: str) -> Optional[Dict[str, str]]:
    message = deprecation_message(deprecated, fallback)
    return {"deprecationMessage": message} if message else None


def _replace(item: lsp.CompletionItem, **changes) -> lsp.CompletionItem:
    """Copy of a cached item with some fields changed."""
    return attrs.evolve(item, **changes)
