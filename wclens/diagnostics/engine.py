"""
Diagnostic engine - validates markup against the registry.

Per element:
- unknown custom element (attribute checks are then skipped)
- deprecated element

Per attribute occurrence, scanned from the raw opening tag:
- duplicate attribute (second and later occurrences)
- unknown attribute (known elements only)
- deprecated attribute
- invalid value (Boolean, Number and Enum kinds)

Severities resolve per package; ``off`` drops the rule entirely.
Suppression directives in comments are honored.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Optional, Sequence, TYPE_CHECKING

from lsprotocol import types as lsp

from ..binding import BindingKind, Category, intended_category, parse_token
from ..markup import TextDocument, parse_markup
from ..registry import Registry
from . import rules
from .scanner import iter_attributes
from .suppression import SuppressionIndex

if TYPE_CHECKING:
    from ..config import ProjectConfig

logger = logging.getLogger("wclens.diagnostics")


def _is_dynamic(value: str) -> bool:
    """Template expressions are evaluated at runtime and cannot be checked."""
    return "${" in value or "{{" in value or value.lstrip("\"'").startswith("{")


def _walk(nodes: Iterable[Any]) -> List[Any]:
    """Flatten a node tree in document order."""
    ordered = []
    for node in nodes:
        ordered.append(node)
        ordered.extend(_walk(getattr(node, "children", None) or ()))
    return ordered


class DiagnosticEngine:
    """
    Produces diagnostics for one registry snapshot and configuration.

    Nodes may come from ``wclens.markup.parse_markup`` or from a host
    parser; anything with ``tag``, ``start``, ``start_tag_end`` and
    ``children`` attributes works.
    """

    def __init__(self, registry: Registry, config: Optional["ProjectConfig"] = None):
        if config is None:
            from ..config import ProjectConfig
            config = ProjectConfig()
        self.registry = registry
        self.config = config

    def validate(self, text: str, roots: Optional[Sequence[Any]] = None) -> List[lsp.Diagnostic]:
        """
        Validate a document.

        Args:
            text: Document text
            roots: Pre-parsed root nodes (parsed from ``text`` when omitted)

        Returns:
            Diagnostics in document order
        """
        document = parse_markup(text)
        if roots is None:
            roots = document.roots

        nodes = _walk(roots)
        suppressions = SuppressionIndex.from_document(document, nodes)
        if suppressions.suppresses_all():
            logger.debug("Document suppresses every rule")
            return []

        run = _ValidationRun(self, text, suppressions)
        for node in nodes:
            run.visit(node)
        return run.diagnostics


class _ValidationRun:
    """State of one ``validate`` call."""

    def __init__(self, engine: DiagnosticEngine, text: str, suppressions: SuppressionIndex):
        self.registry = engine.registry
        self.config = engine.config
        self.text = text
        self.document = TextDocument(text)
        self.suppressions = suppressions
        self.diagnostics: List[lsp.Diagnostic] = []

    def emit(
        self,
        rule: str,
        message: str,
        start: int,
        end: int,
        *,
        package: Optional[str],
        node: Any,
    ) -> None:
        severity = self.config.severity_for(rule, package)
        if severity == "off" or self.suppressions.is_suppressed(rule, node):
            return
        self.diagnostics.append(
            lsp.Diagnostic(
                range=self.document.range_of(start, end),
                message=message,
                severity=rules.LSP_SEVERITIES.get(severity, lsp.DiagnosticSeverity.Error),
                source=rules.DIAGNOSTIC_SOURCE,
                code=rule,
            )
        )

    def visit(self, node: Any) -> None:
        tag = getattr(node, "tag", None)
        if not tag:
            return

        name_start = node.start + 1
        name_end = name_start + len(tag)

        component = self.registry.get(tag)
        if component is None:
            if rules.is_custom_element_name(tag):
                self.emit(
                    rules.UNKNOWN_ELEMENT,
                    rules.unknown_element_message(tag),
                    name_start,
                    name_end,
                    package=None,
                    node=node,
                )
            return

        package = component.package
        if component.is_deprecated:
            self.emit(
                rules.DEPRECATED_ELEMENT,
                rules.deprecated_element_message(tag, component.deprecated),
                name_start,
                name_end,
                package=package,
                node=node,
            )

        seen = set()
        for occurrence in iter_attributes(self.text, node.start, node.start_tag_end):
            self.check_attribute(tag, package, occurrence, seen, node)

    def check_attribute(self, tag: str, package: Optional[str], occurrence, seen: set, node: Any) -> None:
        name = occurrence.name
        if name in seen:
            self.emit(
                rules.DUPLICATE_ATTRIBUTE,
                rules.duplicate_attribute_message(name),
                occurrence.name_start,
                occurrence.name_end,
                package=package,
                node=node,
            )
        seen.add(name)

        kind, base, force_attribute = parse_token(name)
        if not base or intended_category(kind, force_attribute) is not Category.ATTRIBUTE:
            return

        attribute = self.registry.get_attribute(tag, base)
        if attribute is None:
            if kind is BindingKind.GENERIC and self.registry.get_property(tag, base) is not None:
                return
            if not rules.is_global_attribute(base):
                self.emit(
                    rules.UNKNOWN_ATTRIBUTE,
                    rules.unknown_attribute_message(base, tag),
                    occurrence.name_start,
                    occurrence.name_end,
                    package=package,
                    node=node,
                )
            return

        if attribute.is_deprecated:
            self.emit(
                rules.DEPRECATED_ATTRIBUTE,
                rules.deprecated_attribute_message(base, attribute.deprecated),
                occurrence.name_start,
                occurrence.name_end,
                package=package,
                node=node,
            )

        if kind is not BindingKind.NONE or not occurrence.has_value:
            return
        if _is_dynamic(occurrence.raw_value):
            return

        finding = rules.check_value(attribute, name, occurrence.raw_value)
        if finding is not None:
            self.emit(
                finding.rule,
                finding.message,
                occurrence.name_start,
                occurrence.end,
                package=package,
                node=node,
            )
