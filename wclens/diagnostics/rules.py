"""
Diagnostic rules - identifiers, messages and value checks.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from lsprotocol import types as lsp

from ..registry import (
    AttributeMetadata,
    BooleanKind,
    EnumKind,
    NumberKind,
    StringKind,
    deprecation_message,
)
from .scanner import remove_quotes

DIAGNOSTIC_SOURCE = "web-components"

INVALID_BOOLEAN = "invalidBoolean"
INVALID_NUMBER = "invalidNumber"
INVALID_ATTRIBUTE_VALUE = "invalidAttributeValue"
DEPRECATED_ATTRIBUTE = "deprecatedAttribute"
DEPRECATED_ELEMENT = "deprecatedElement"
DUPLICATE_ATTRIBUTE = "duplicateAttribute"
UNKNOWN_ELEMENT = "unknownElement"
UNKNOWN_ATTRIBUTE = "unknownAttribute"

ALL_RULES = (
    INVALID_BOOLEAN,
    INVALID_NUMBER,
    INVALID_ATTRIBUTE_VALUE,
    DEPRECATED_ATTRIBUTE,
    DEPRECATED_ELEMENT,
    DUPLICATE_ATTRIBUTE,
    UNKNOWN_ELEMENT,
    UNKNOWN_ATTRIBUTE,
)

LSP_SEVERITIES = {
    "error": lsp.DiagnosticSeverity.Error,
    "warning": lsp.DiagnosticSeverity.Warning,
    "info": lsp.DiagnosticSeverity.Information,
    "hint": lsp.DiagnosticSeverity.Hint,
}

# Attributes every HTML element accepts.
GLOBAL_ATTRIBUTES = frozenset({
    "accesskey", "autocapitalize", "autocorrect", "autofocus", "class",
    "contenteditable", "dir", "draggable", "enterkeyhint", "exportparts",
    "hidden", "id", "inert", "inputmode", "is", "itemid", "itemprop",
    "itemref", "itemscope", "itemtype", "lang", "nonce", "part", "popover",
    "role", "slot", "spellcheck", "style", "tabindex", "title", "translate",
    "writingsuggestions", "xml:lang", "xmlns",
})

_GLOBAL_PATTERN = re.compile(r"^(aria-|data-)[\w.:-]+$|^on[a-z]+$")


def is_global_attribute(name: str) -> bool:
    lowered = name.lower()
    return lowered in GLOBAL_ATTRIBUTES or bool(_GLOBAL_PATTERN.match(lowered))


def is_custom_element_name(tag: str) -> bool:
    """Custom element names must contain a hyphen."""
    return "-" in tag


def is_number(value: str) -> bool:
    """Numeric check with the leniency of ``Number(value)`` in a browser."""
    text = value.strip()
    if "_" in text:
        return False
    unsigned = text.lstrip("+-")
    if unsigned.lower() in ("nan", "inf", "infinity"):
        return unsigned == "Infinity"
    try:
        float(text)
        return True
    except ValueError:
        pass
    try:
        int(text, 0)
        return True
    except ValueError:
        return False


@dataclass(frozen=True)
class Finding:
    rule: str
    message: str


# ── Messages ─────────────────────────────────────────────────────────

def unknown_element_message(tag: str) -> str:
    return f"Unknown custom element '{tag}'. No metadata found in the loaded manifests."


def unknown_attribute_message(name: str, tag: str) -> str:
    return f"Unknown attribute '{name}' on element '{tag}'."


def duplicate_attribute_message(name: str) -> str:
    return f"Duplicate attribute '{name}'."


def deprecated_element_message(tag: str, deprecated) -> str:
    return deprecation_message(deprecated, f'The element "{tag}" is deprecated.') or ""


def deprecated_attribute_message(name: str, deprecated) -> str:
    return deprecation_message(deprecated, f'The attribute "{name}" is deprecated.') or ""


# ── Value checks ─────────────────────────────────────────────────────

def check_value(attribute: AttributeMetadata, name: str, raw_value: str) -> Optional[Finding]:
    """
    Validate an attribute value against its value kind.

    Empty values are never validated. Unrestricted strings, including
    open-ended literal unions, are always accepted.

    Args:
        attribute: Attribute metadata
        name: Attribute name as written
        raw_value: Value as written, quotes included

    Returns:
        Finding, or None when the value is acceptable
    """
    value = remove_quotes(raw_value)
    if not value:
        return None

    kind = attribute.value_kind
    if isinstance(kind, BooleanKind):
        return Finding(
            INVALID_BOOLEAN,
            f'The attribute "{name}" is boolean and should not have a value.',
        )
    if isinstance(kind, NumberKind):
        if is_number(value):
            return None
        return Finding(INVALID_NUMBER, f'The value for "{name}" must be a valid number.')
    if isinstance(kind, EnumKind):
        if value in kind.options:
            return None
        return Finding(INVALID_ATTRIBUTE_VALUE, f'"{value}" is not a valid value for "{name}".')
    if isinstance(kind, StringKind):
        return None
    raise TypeError(f"Unknown value kind: {kind!r}")
