"""
Core registry types.

A Registry is the read model shared by completion, hover, definition and
diagnostics. It is built once per load cycle by a RegistryBuilder and
never mutated afterwards; a reload swaps in a brand-new instance.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple, TYPE_CHECKING

from .errors import LoadReport
from .fingerprint import FingerprintGenerator
from .types import (
    AttributeMetadata,
    ComponentMetadata,
    CssHook,
    EventMetadata,
    PropertyMetadata,
)

if TYPE_CHECKING:
    from .loader import ManifestSource

logger = logging.getLogger("wclens.registry")


CSS_KINDS = ("property", "part", "state")


class Registry:
    """
    Immutable index of every known component for one load cycle.

    Holds:
    - tag -> ComponentMetadata (exposed tag names are unique)
    - (tag, name) lookup maps for attributes, properties and events
    - workspace-wide CSS hook pools (first writer wins)
    - raw manifest text per source, for navigation

    All accessors return None (or an empty tuple) rather than raising.
    """

    __slots__ = (
        "fingerprint",
        "generation",
        "report",
        "_components",
        "_attributes",
        "_properties",
        "_events",
        "_css",
        "_sources",
        "_texts",
    )

    def __init__(
        self,
        components: Dict[str, ComponentMetadata],
        *,
        css_pools: Optional[Dict[str, Dict[str, CssHook]]] = None,
        sources: Optional[Dict[str, "ManifestSource"]] = None,
        texts: Optional[Dict[str, str]] = None,
        report: Optional[LoadReport] = None,
        fingerprint: str = "",
        generation: int = 0,
    ):
        self._components: Mapping[str, ComponentMetadata] = MappingProxyType(dict(components))
        self._attributes: Mapping[Tuple[str, str], AttributeMetadata] = MappingProxyType({
            (tag, a.name): a for tag, c in components.items() for a in c.attributes
        })
        self._properties: Mapping[Tuple[str, str], PropertyMetadata] = MappingProxyType({
            (tag, p.name): p for tag, c in components.items() for p in c.properties
        })
        self._events: Mapping[Tuple[str, str], EventMetadata] = MappingProxyType({
            (tag, e.name): e for tag, c in components.items() for e in c.events
        })
        pools = css_pools or {}
        self._css: Mapping[str, Mapping[str, CssHook]] = MappingProxyType({
            kind: MappingProxyType(dict(pools.get(kind, {}))) for kind in CSS_KINDS
        })
        self._sources = MappingProxyType(dict(sources or {}))
        self._texts = MappingProxyType(dict(texts or {}))
        self.report = report or LoadReport()
        self.fingerprint = fingerprint
        self.generation = generation

    @classmethod
    def empty(cls, generation: int = 0) -> "Registry":
        return cls({}, fingerprint=FingerprintGenerator().generate([]), generation=generation)

    def __len__(self) -> int:
        return len(self._components)

    def __contains__(self, tag: object) -> bool:
        return tag in self._components

    def __iter__(self) -> Iterator[ComponentMetadata]:
        return iter(self._components.values())

    def __repr__(self) -> str:
        return f"<Registry generation={self.generation} components={len(self)}>"

    # ── Components ───────────────────────────────────────────────────

    def tags(self) -> List[str]:
        return list(self._components)

    def get(self, tag: str) -> Optional[ComponentMetadata]:
        return self._components.get(tag)

    def has(self, tag: str) -> bool:
        return tag in self._components

    # ── Members ──────────────────────────────────────────────────────

    def get_attribute(self, tag: str, name: str) -> Optional[AttributeMetadata]:
        return self._attributes.get((tag, name))

    def get_property(self, tag: str, name: str) -> Optional[PropertyMetadata]:
        return self._properties.get((tag, name))

    def get_event(self, tag: str, name: str) -> Optional[EventMetadata]:
        return self._events.get((tag, name))

    def attributes(self, tag: str) -> Tuple[AttributeMetadata, ...]:
        component = self.get(tag)
        return component.attributes if component else ()

    def properties(self, tag: str) -> Tuple[PropertyMetadata, ...]:
        component = self.get(tag)
        return component.properties if component else ()

    def events(self, tag: str) -> Tuple[EventMetadata, ...]:
        component = self.get(tag)
        return component.events if component else ()

    # ── CSS hooks ────────────────────────────────────────────────────

    def css_pool(self, kind: str) -> Tuple[CssHook, ...]:
        """All hooks of one kind (``property``, ``part`` or ``state``)."""
        return tuple(self._css.get(kind, {}).values())

    def css_hook(self, kind: str, name: str) -> Optional[CssHook]:
        return self._css.get(kind, {}).get(name)

    @property
    def css_properties(self) -> Tuple[CssHook, ...]:
        return self.css_pool("property")

    @property
    def css_parts(self) -> Tuple[CssHook, ...]:
        return self.css_pool("part")

    @property
    def css_states(self) -> Tuple[CssHook, ...]:
        return self.css_pool("state")

    # ── Sources ──────────────────────────────────────────────────────

    def source(self, source_id: str) -> Optional["ManifestSource"]:
        return self._sources.get(source_id)

    def manifest_text(self, source_id: str) -> Optional[str]:
        return self._texts.get(source_id)

    def sources(self) -> List["ManifestSource"]:
        return list(self._sources.values())

    def inspect(self) -> Dict[str, Any]:
        """
        Get a diagnostics summary of the registry.

        Returns:
            Dictionary with fingerprint, generation, tags and load report
        """
        return {
            "fingerprint": self.fingerprint,
            "generation": self.generation,
            "component_count": len(self),
            "components": [
                {
                    "tag": c.tag,
                    "package": c.package,
                    "source": c.source_id,
                    "attributes": len(c.attributes),
                    "properties": len(c.properties),
                    "events": len(c.events),
                }
                for c in self
            ],
            "css": {kind: len(self._css[kind]) for kind in CSS_KINDS},
            "report": self.report.to_dict(),
        }


@dataclass
class _SourceEntry:
    source: "ManifestSource"
    components: List[ComponentMetadata]
    text: Optional[str] = None
    order: int = 0


@dataclass
class RegistryBuilder:
    """
    Collects indexed sources for one load cycle and builds a Registry.

    Precedence when the same exposed tag appears in more than one source:
    the local project (sources without a package label) wins over every
    labeled source, and among labeled sources the first one added wins.
    """

    report: LoadReport = field(default_factory=LoadReport)
    _entries: List[_SourceEntry] = field(default_factory=list)

    def add_source(
        self,
        source: "ManifestSource",
        components: List[ComponentMetadata],
        text: Optional[str] = None,
    ) -> None:
        self._entries.append(
            _SourceEntry(source=source, components=list(components), text=text, order=len(self._entries))
        )
        self.report.mark_loaded(source.id)

    def _ordered(self) -> List[_SourceEntry]:
        return sorted(self._entries, key=lambda e: (e.source.package is not None, e.order))

    def build(self, generation: int = 0) -> Registry:
        """
        Merge every collected source into a new Registry.

        Args:
            generation: Load cycle number stamped on the registry

        Returns:
            Registry instance
        """
        components: Dict[str, ComponentMetadata] = {}
        pools: Dict[str, Dict[str, CssHook]] = {kind: {} for kind in CSS_KINDS}
        sources: Dict[str, "ManifestSource"] = {}
        texts: Dict[str, str] = {}

        for entry in self._ordered():
            sources[entry.source.id] = entry.source
            if entry.text is not None:
                texts[entry.source.id] = entry.text

            for component in entry.components:
                existing = components.get(component.tag)
                if existing is not None:
                    logger.debug(
                        f"<{component.tag}> from {entry.source.id} shadowed by {existing.source_id}"
                    )
                    continue
                components[component.tag] = component

                for hook in component.css_hooks():
                    pools[hook.kind].setdefault(hook.name, hook)

        fingerprint = FingerprintGenerator().generate(components.values())
        registry = Registry(
            components,
            css_pools=pools,
            sources=sources,
            texts=texts,
            report=self.report,
            fingerprint=fingerprint,
            generation=generation,
        )
        logger.info(
            f"Built registry generation {generation}: {len(registry)} component(s) "
            f"from {len(sources)} source(s)"
        )
        return registry
