"""
Hover documentation for custom elements, their members and CSS hooks.
"""

from __future__ import annotations

import re
from typing import List, Optional, Union

from lsprotocol import types as lsp

from .binding import resolve
from .diagnostics.scanner import iter_attributes
from .markup import MarkupDocument, TextDocument, parse_markup
from .registry import (
    AttributeMetadata,
    ComponentMetadata,
    CssHook,
    EventMetadata,
    PropertyMetadata,
    Registry,
    describe_kind,
    deprecation_message,
)

CSS_HOOK_DETAILS = {
    "property": "CSS Variable",
    "part": "CSS Part",
    "state": "CSS State",
}

_WORD_BEFORE = re.compile(r"(--[\w-]+|[\w-]+)$")
_WORD_AFTER = re.compile(r"^[\w-]*")
_PART = re.compile(r"::part\(\s*([^)\s]+)\s*\)")
_STATE = re.compile(r":state\(\s*([^)\s]+)\s*\)")


def _with_deprecation(content: str, deprecated, fallback: str) -> str:
    message = deprecation_message(deprecated, fallback)
    if message is None:
        return content
    return f"⚠️ **Deprecated:** {message}\n\n{content}"


def _entry(name: str, description: str) -> str:
    return f"- `{name}`: {description}" if description else f"- `{name}`"


def _markup(value: str) -> lsp.MarkupContent:
    return lsp.MarkupContent(kind=lsp.MarkupKind.Markdown, value=value)


# ============================================================================
# Markdown
# ============================================================================

def component_markdown(component: ComponentMetadata) -> str:
    """Full documentation block for an element."""
    lines = [f"### `<{component.tag}>`"]
    if component.documentation:
        lines += ["", component.documentation]
    if component.class_name:
        lines += ["", f"**Class:** `{component.class_name}`"]

    def section(title: str, entries: List[str]) -> None:
        if entries:
            lines.extend(["", f"**{title}:**"])
            lines.extend(entries)

    section("Attributes", [
        _entry(a.name, a.description) + f" _({a.type_text or describe_kind(a.value_kind)})_"
        for a in component.attributes
    ])
    section("Properties", [
        _entry(p.name, p.description) + (f" _({p.type_text})_" if p.type_text else "")
        for p in component.properties
    ])
    section("Events", [
        _entry(e.name, e.description) for e in component.events
    ])
    section("Slots", [
        _entry(s.name or "default", s.description) for s in component.slots
    ])
    section("CSS Properties", [
        _entry(h.name, h.description) for h in component.css_properties
    ])
    section("CSS Parts", [
        _entry(h.name, h.description) for h in component.css_parts
    ])
    section("CSS States", [
        _entry(h.name, h.description) for h in component.css_states
    ])

    return _with_deprecation(
        "\n".join(lines),
        component.deprecated,
        f'The element "{component.tag}" is deprecated.',
    )


def attribute_markdown(attribute: AttributeMetadata) -> str:
    type_text = attribute.type_text or describe_kind(attribute.value_kind)
    content = f"{attribute.description}\n\n**Type:** `{type_text}`"
    if attribute.field_name:
        content += f"\n\n**Property:** `{attribute.field_name}`"
    return _with_deprecation(content, attribute.deprecated, "This attribute is deprecated.")


def property_markdown(prop: PropertyMetadata) -> str:
    content = f"{prop.description}\n\n**Type:** `{prop.type_text or 'any'}`"
    if prop.readonly:
        content += "\n\n_Read-only_"
    return _with_deprecation(content, prop.deprecated, "This property is deprecated.")


def event_markdown(event: EventMetadata) -> str:
    content = f"{event.description}\n\n**Type:** `{event.type_text or 'Event'}`"
    return _with_deprecation(content, event.deprecated, "This event is deprecated.")


def css_hook_markdown(hook: CssHook) -> str:
    detail = hook.syntax or CSS_HOOK_DETAILS.get(hook.kind, "CSS")
    content = f"{hook.description}\n\n**Type:** `{detail}`"
    if hook.default:
        content += f"\n\n**Default:** `{hook.default}`"
    return _with_deprecation(content, hook.deprecated, f"This {CSS_HOOK_DETAILS[hook.kind]} is deprecated.")


def member_markdown(metadata: Union[AttributeMetadata, PropertyMetadata, EventMetadata]) -> str:
    if isinstance(metadata, AttributeMetadata):
        return attribute_markdown(metadata)
    if isinstance(metadata, PropertyMetadata):
        return property_markdown(metadata)
    return event_markdown(metadata)


# ============================================================================
# Providers
# ============================================================================

def markup_hover(
    registry: Registry,
    text: str,
    offset: int,
    document: Optional[MarkupDocument] = None,
) -> Optional[lsp.Hover]:
    """
    Hover for the element or attribute under ``offset`` in markup.

    Returns None outside known custom elements and over unknown
    attributes.
    """
    document = document or parse_markup(text)
    node = document.node_at(offset)
    if node is None:
        return None
    component = registry.get(node.tag)
    if component is None:
        return None

    positions = TextDocument(text)
    if offset < node.start_tag_end:
        for occurrence in iter_attributes(text, node.start, node.start_tag_end):
            if occurrence.name_start <= offset <= occurrence.end:
                binding = resolve(registry, node.tag, occurrence.name)
                if binding.metadata is None:
                    return None
                return lsp.Hover(
                    contents=_markup(member_markdown(binding.metadata)),
                    range=positions.range_of(occurrence.name_start, occurrence.name_end),
                )

    name_start = node.start + 1
    return lsp.Hover(
        contents=_markup(component_markdown(component)),
        range=positions.range_of(name_start, name_start + len(node.tag)),
    )


def css_hover(registry: Registry, text: str, offset: int) -> Optional[lsp.Hover]:
    """Hover for ``--custom-property``, ``::part(name)`` and ``:state(name)``."""
    before = _WORD_BEFORE.search(text[:offset])
    if not before:
        return None
    after = _WORD_AFTER.match(text[offset:])
    start = before.start()
    end = offset + (after.end() if after else 0)
    word = text[start:end]
    positions = TextDocument(text)

    hook = None
    if word.startswith("--"):
        hook = registry.css_hook("property", word)
    else:
        window_start = max(0, offset - 50)
        window = text[window_start:offset + 50]
        for kind, pattern in (("part", _PART), ("state", _STATE)):
            for match in pattern.finditer(window):
                name_start = window_start + match.start(1)
                if name_start <= offset <= window_start + match.end(1):
                    hook = registry.css_hook(kind, match.group(1))
                    break
            if hook is not None:
                break

    if hook is None:
        return None
    return lsp.Hover(contents=_markup(css_hook_markdown(hook)), range=positions.range_of(start, end))
