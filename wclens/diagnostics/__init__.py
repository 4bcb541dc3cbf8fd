"""
wclens diagnostics - markup validation against component metadata.
"""

from .engine import DiagnosticEngine
from .rules import (
    ALL_RULES,
    DIAGNOSTIC_SOURCE,
    DEPRECATED_ATTRIBUTE,
    DEPRECATED_ELEMENT,
    DUPLICATE_ATTRIBUTE,
    INVALID_ATTRIBUTE_VALUE,
    INVALID_BOOLEAN,
    INVALID_NUMBER,
    UNKNOWN_ATTRIBUTE,
    UNKNOWN_ELEMENT,
    check_value,
    is_global_attribute,
)
from .scanner import AttributeOccurrence, iter_attributes, remove_quotes, scan_attributes
from .suppression import Directive, SuppressionIndex, find_directives, parse_directive

__all__ = [
    "DiagnosticEngine",
    # Rules
    "ALL_RULES",
    "DIAGNOSTIC_SOURCE",
    "DEPRECATED_ATTRIBUTE",
    "DEPRECATED_ELEMENT",
    "DUPLICATE_ATTRIBUTE",
    "INVALID_ATTRIBUTE_VALUE",
    "INVALID_BOOLEAN",
    "INVALID_NUMBER",
    "UNKNOWN_ATTRIBUTE",
    "UNKNOWN_ELEMENT",
    "check_value",
    "is_global_attribute",
    # Scanning
    "AttributeOccurrence",
    "iter_attributes",
    "remove_quotes",
    "scan_attributes",
    # Suppression
    "Directive",
    "SuppressionIndex",
    "find_directives",
    "parse_directive",
]
