"""
Metadata indexer - normalizes raw manifest records into typed metadata.

Handles:
- custom element discovery inside ``modules[].declarations[]``
- value-kind inference from the configured type field
- public property extraction from class members
- per-package tag-name transforms
- manifest offsets for navigation
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, Iterator, List, Optional, Tuple, TYPE_CHECKING

from ..faults import MalformedComponentFault
from ..locator import find_offset
from .types import (
    BOOLEAN,
    NUMBER,
    OPEN_STRING,
    STRING,
    AttributeMetadata,
    ComponentMetadata,
    CssHook,
    EnumKind,
    EventMetadata,
    PropertyMetadata,
    SlotMetadata,
    ValueKind,
)

if TYPE_CHECKING:
    from ..config import ProjectConfig
    from .errors import LoadReport
    from .loader import ManifestSource

logger = logging.getLogger("wclens.registry.indexer")


_NULLISH = {"undefined", "null"}
_OPEN_STRING_MARKERS = ("string & {}", "string&{}", "(string & {})")
_QUOTED = re.compile(r"""^(['"`])(.*)\1$""", re.DOTALL)


# ============================================================================
# Value-kind inference
# ============================================================================

def split_union(type_text: str) -> List[str]:
    """
    Split a type expression on top-level ``|``.

    Bars inside string literals, parentheses, brackets or braces do not
    split.
    """
    parts: List[str] = []
    depth = 0
    quote: Optional[str] = None
    current: List[str] = []

    for ch in type_text:
        if quote:
            current.append(ch)
            if ch == quote:
                quote = None
            continue
        if ch in "'\"`":
            quote = ch
        elif ch in "([{<":
            depth += 1
        elif ch in ")]}>":
            depth = max(depth - 1, 0)
        elif ch == "|" and depth == 0:
            parts.append("".join(current).strip())
            current = []
            continue
        current.append(ch)

    parts.append("".join(current).strip())
    return [p for p in parts if p]


def infer_value_kind(type_text: Optional[str]) -> ValueKind:
    """
    Infer the value kind of a type expression.

    - ``boolean`` -> Boolean
    - ``number`` -> Number
    - a union made only of string literals -> Enum (declaration order)
    - a union mentioning ``string & {}`` -> open-ended String
    - anything else, or no type at all -> String

    ``undefined`` and ``null`` members are ignored.
    """
    if not type_text or not type_text.strip():
        return STRING

    text = type_text.strip()
    if any(marker in text for marker in _OPEN_STRING_MARKERS):
        return OPEN_STRING

    parts = [p for p in split_union(text) if p not in _NULLISH]
    if not parts:
        return STRING

    if all(p in ("boolean", "true", "false") for p in parts):
        return BOOLEAN
    if all(p == "number" for p in parts):
        return NUMBER

    literals: List[str] = []
    for part in parts:
        match = _QUOTED.match(part)
        if not match:
            return STRING
        if match.group(2) not in literals:
            literals.append(match.group(2))

    return EnumKind(options=tuple(literals))


def select_type_text(record: Dict[str, Any], type_src: str) -> str:
    """
    Pick the type text of a record.

    The configured field is tried first, then ``type``. Both may be a
    ``{"text": ...}`` object or a bare string.
    """
    for key in (type_src, "type"):
        value = record.get(key)
        if isinstance(value, dict):
            value = value.get("text")
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _deprecation(value: Any):
    if value is True or (isinstance(value, str) and value):
        return value
    return None


def _records(raw: Dict[str, Any], key: str, origin: str, tag: str) -> List[Dict[str, Any]]:
    value = raw.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise MalformedComponentFault(origin, f"'{key}' must be an array", tag=tag)
    return [r for r in value if isinstance(r, dict)]


# ============================================================================
# Indexer
# ============================================================================

class ManifestIndexer:
    """
    Turns parsed manifests into ComponentMetadata records.

    One indexer is created per load cycle with that cycle's configuration.
    """

    def __init__(self, config: "ProjectConfig"):
        self.config = config

    def apply_tag_transform(self, tag: str, package: Optional[str] = None) -> str:
        """Exposed registry key for a manifest tag name."""
        try:
            return self.config.format_tag(tag, package)
        except Exception as exc:
            logger.warning(f"Tag formatter failed for <{tag}>, keeping original name: {exc}")
            return tag

    def iter_declarations(self, manifest: Dict[str, Any]) -> Iterator[Dict[str, Any]]:
        """Yield every declaration that defines a custom element tag."""
        modules = manifest.get("modules") if isinstance(manifest, dict) else None
        if not isinstance(modules, list):
            return
        for module in modules:
            if not isinstance(module, dict):
                continue
            declarations = module.get("declarations")
            if not isinstance(declarations, list):
                continue
            for declaration in declarations:
                if not isinstance(declaration, dict):
                    continue
                if "tagName" in declaration or declaration.get("customElement") is True:
                    yield declaration

    def index(
        self,
        manifest: Dict[str, Any],
        source: "ManifestSource",
        report: "LoadReport",
        text: Optional[str] = None,
    ) -> List[ComponentMetadata]:
        """
        Normalize every custom element of one manifest.

        A malformed component is recorded and skipped; the rest of the
        manifest still indexes.

        Args:
            manifest: Parsed manifest document
            source: Source the manifest came from
            report: Load report collecting faults
            text: Raw manifest text, used to compute navigation offsets

        Returns:
            Components in manifest order
        """
        components: List[ComponentMetadata] = []
        for declaration in self.iter_declarations(manifest):
            if declaration.get("customElement") is True and "tagName" not in declaration:
                # Base classes flagged as custom elements without a tag
                continue
            try:
                components.append(
                    self.normalize(declaration, source.package, source.id, text=text)
                )
            except MalformedComponentFault as fault:
                report.record(fault, source_id=source.id, logger=logger)

        logger.debug(f"Indexed {len(components)} component(s) from {source.id}")
        return components

    def normalize(
        self,
        raw: Dict[str, Any],
        package: Optional[str],
        source_id: str,
        *,
        text: Optional[str] = None,
    ) -> ComponentMetadata:
        """
        Normalize one raw custom element declaration.

        Args:
            raw: Declaration record
            package: Owning package label (None for the local project)
            source_id: Identifier of the owning source
            text: Raw manifest text for navigation offsets

        Returns:
            ComponentMetadata

        Raises:
            MalformedComponentFault: If the record has an unusable shape
        """
        tag = raw.get("tagName")
        if not isinstance(tag, str) or not tag.strip():
            raise MalformedComponentFault(source_id, "missing or invalid 'tagName'")
        tag = tag.strip()

        type_src = self.config.type_src_for(package)
        tag_offset = find_offset(text, f'"tagName": "{tag}"', default=None) if text else None

        attributes = self._attributes(raw, type_src, source_id, tag, text, tag_offset)
        properties = self._properties(raw, type_src, source_id, tag)
        events = self._events(raw, type_src, source_id, tag)

        exposed = self.apply_tag_transform(tag, package)

        return ComponentMetadata(
            tag=exposed,
            original_tag=tag,
            source_id=source_id,
            package=package,
            description=_text(raw.get("description")),
            summary=_text(raw.get("summary")),
            deprecated=_deprecation(raw.get("deprecated")),
            class_name=raw.get("name") if isinstance(raw.get("name"), str) else None,
            attributes=attributes,
            properties=properties,
            events=events,
            css_properties=self._css_hooks(raw, "cssProperties", "property", source_id, tag, exposed),
            css_parts=self._css_hooks(raw, "cssParts", "part", source_id, tag, exposed),
            css_states=self._css_hooks(raw, "cssStates", "state", source_id, tag, exposed),
            slots=self._slots(raw, source_id, tag),
            source_offset=tag_offset,
        )

    # ── Members ───────────────────────────────────────────────────────

    def _attributes(
        self,
        raw: Dict[str, Any],
        type_src: str,
        origin: str,
        tag: str,
        text: Optional[str],
        tag_offset: Optional[int],
    ) -> Tuple[AttributeMetadata, ...]:
        seen: Dict[str, AttributeMetadata] = {}
        for record in _records(raw, "attributes", origin, tag):
            name = record.get("name")
            if not isinstance(name, str) or not name:
                logger.debug(f"Skipping unnamed attribute on <{tag}> in {origin}")
                continue
            if name in seen:
                continue

            type_text = select_type_text(record, type_src)
            offset = None
            if text is not None:
                offset = find_offset(text, f'"name": "{name}"', start=tag_offset or 0, default=None)

            seen[name] = AttributeMetadata(
                name=name,
                description=_text(record.get("description")),
                deprecated=_deprecation(record.get("deprecated")),
                value_kind=infer_value_kind(type_text),
                type_text=type_text,
                field_name=record.get("fieldName") if isinstance(record.get("fieldName"), str) else None,
                source_offset=offset,
            )
        return tuple(seen.values())

    def _properties(
        self, raw: Dict[str, Any], type_src: str, origin: str, tag: str
    ) -> Tuple[PropertyMetadata, ...]:
        seen: Dict[str, PropertyMetadata] = {}
        for member in _records(raw, "members", origin, tag):
            name = member.get("name")
            if member.get("kind") != "field" or not isinstance(name, str) or not name:
                continue
            if name.startswith("#") or member.get("static"):
                continue
            if member.get("privacy") not in (None, "public"):
                continue
            if name in seen:
                continue

            type_text = select_type_text(member, type_src)
            seen[name] = PropertyMetadata(
                name=name,
                description=_text(member.get("description")),
                deprecated=_deprecation(member.get("deprecated")),
                value_kind=infer_value_kind(type_text),
                type_text=type_text,
                attribute=member.get("attribute") if isinstance(member.get("attribute"), str) else None,
                readonly=bool(member.get("readonly", False)),
            )
        return tuple(seen.values())

    def _events(
        self, raw: Dict[str, Any], type_src: str, origin: str, tag: str
    ) -> Tuple[EventMetadata, ...]:
        seen: Dict[str, EventMetadata] = {}
        for record in _records(raw, "events", origin, tag):
            name = record.get("name")
            if not isinstance(name, str) or not name or name in seen:
                continue
            seen[name] = EventMetadata(
                name=name,
                description=_text(record.get("description")),
                deprecated=_deprecation(record.get("deprecated")),
                type_text=select_type_text(record, type_src),
            )
        return tuple(seen.values())

    def _css_hooks(
        self,
        raw: Dict[str, Any],
        key: str,
        kind: str,
        origin: str,
        tag: str,
        exposed: str,
    ) -> Tuple[CssHook, ...]:
        hooks: Dict[str, CssHook] = {}
        for record in _records(raw, key, origin, tag):
            name = record.get("name")
            if not isinstance(name, str) or not name or name in hooks:
                continue
            hooks[name] = CssHook(
                kind=kind,
                name=name,
                description=_text(record.get("description")),
                deprecated=_deprecation(record.get("deprecated")),
                syntax=record.get("syntax") if isinstance(record.get("syntax"), str) else None,
                default=record.get("default") if isinstance(record.get("default"), str) else None,
                tag=exposed,
            )
        return tuple(hooks.values())

    def _slots(self, raw: Dict[str, Any], origin: str, tag: str) -> Tuple[SlotMetadata, ...]:
        slots: List[SlotMetadata] = []
        for record in _records(raw, "slots", origin, tag):
            name = record.get("name")
            if not isinstance(name, str):
                continue
            slots.append(SlotMetadata(name=name, description=_text(record.get("description"))))
        return tuple(slots)
