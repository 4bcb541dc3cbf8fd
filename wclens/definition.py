"""
Go-to-definition into component manifests.

Locations are found by literal text search in the owning manifest (see
``wclens.locator``), so they are best effort.
"""

from __future__ import annotations

import logging
from typing import Optional

from lsprotocol import types as lsp

from .binding import resolve
from .diagnostics.scanner import iter_attributes
from .locator import find_offset, locate
from .markup import MarkupDocument, parse_markup
from .registry import ComponentMetadata, Registry

logger = logging.getLogger("wclens.definition")


def tag_search_key(tag: str) -> str:
    return f'"tagName": "{tag}"'


def member_search_key(name: str) -> str:
    return f'"name": "{name}"'


def component_location(
    registry: Registry,
    component: ComponentMetadata,
    member: Optional[str] = None,
) -> Optional[lsp.Location]:
    """
    Manifest location of a component, or of one of its members.

    The member key is searched after the component's ``tagName`` entry;
    when it is not found the component location is returned.

    Returns:
        Location, or None when the manifest text is unavailable
    """
    source = registry.source(component.source_id)
    text = registry.manifest_text(component.source_id)
    if source is None or text is None:
        logger.debug(f"No manifest text for <{component.tag}> ({component.source_id})")
        return None

    tag_offset = find_offset(text, tag_search_key(component.original_tag))
    search_start = tag_offset
    key = tag_search_key(component.original_tag)

    if member:
        member_offset = find_offset(text, member_search_key(member), start=tag_offset, default=None)
        if member_offset is not None:
            key = member_search_key(member)
            search_start = member_offset

    return lsp.Location(uri=source.uri, range=locate(text, key, start=search_start))


def find_definition(
    registry: Registry,
    text: str,
    offset: int,
    document: Optional[MarkupDocument] = None,
) -> Optional[lsp.Location]:
    """
    Definition for the element or attribute under ``offset`` in markup.

    Returns None outside known custom elements.
    """
    document = document or parse_markup(text)
    node = document.node_at(offset)
    if node is None:
        return None
    component = registry.get(node.tag)
    if component is None:
        return None

    member = None
    if offset < node.start_tag_end:
        for occurrence in iter_attributes(text, node.start, node.start_tag_end):
            if occurrence.name_start <= offset <= occurrence.name_end:
                binding = resolve(registry, node.tag, occurrence.name)
                if binding.metadata is not None:
                    member = binding.metadata.name
                break

    return component_location(registry, component, member)
