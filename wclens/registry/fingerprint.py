"""
Registry fingerprinting for change detection.
"""

from typing import Any, Dict, Iterable, List
import hashlib
import json

from .types import ComponentMetadata, describe_kind


class FingerprintGenerator:
    """
    Generates deterministic fingerprints for registry content.

    Fingerprint includes:
    - Exposed and original tag names, owning package
    - Attribute/property/event names, value kinds and deprecation
    - CSS hooks and slots

    Excludes:
    - Source paths and manifest offsets (environment specific)
    - Generation numbers
    """

    def generate(self, components: Iterable[ComponentMetadata]) -> str:
        """
        Generate fingerprint from registry components.

        Args:
            components: Components of one registry

        Returns:
            SHA-256 hex digest string
        """
        canonical = self._build_canonical_repr(components)
        json_str = json.dumps(canonical, sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(json_str.encode("utf-8")).hexdigest()

    def _build_canonical_repr(self, components: Iterable[ComponentMetadata]) -> List[Dict[str, Any]]:
        return [
            self._component_repr(component)
            for component in sorted(components, key=lambda c: c.tag)
        ]

    def _component_repr(self, component: ComponentMetadata) -> Dict[str, Any]:
        return {
            "tag": component.tag,
            "original_tag": component.original_tag,
            "package": component.package,
            "deprecated": component.deprecated,
            "description": component.documentation,
            "attributes": [
                [a.name, describe_kind(a.value_kind), a.deprecated, a.description]
                for a in component.attributes
            ],
            "properties": [
                [p.name, p.type_text, p.deprecated] for p in component.properties
            ],
            "events": [[e.name, e.type_text, e.deprecated] for e in component.events],
            "css": [[h.kind, h.name, h.description] for h in component.css_hooks()],
            "slots": [[s.name, s.description] for s in component.slots],
        }

    def verify(self, components: Iterable[ComponentMetadata], expected: str) -> bool:
        """Check whether components still match a known fingerprint."""
        return self.generate(components) == expected
