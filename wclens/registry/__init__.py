"""
wclens registry - component metadata ingestion and indexing.

Pipeline:
- ManifestLoader discovers and reads manifests (local, library, dependency, remote)
- ManifestIndexer normalizes raw records into typed metadata
- RegistryBuilder merges indexed sources into an immutable Registry
"""

from .types import (
    BOOLEAN,
    NUMBER,
    STRING,
    OPEN_STRING,
    BooleanKind,
    NumberKind,
    StringKind,
    EnumKind,
    ValueKind,
    AttributeMetadata,
    PropertyMetadata,
    EventMetadata,
    CssHook,
    SlotMetadata,
    ComponentMetadata,
    describe_kind,
    deprecation_message,
)
from .errors import ErrorSpan, LoadReport
from .fingerprint import FingerprintGenerator
from .indexer import ManifestIndexer, infer_value_kind, select_type_text, split_union
from .core import Registry, RegistryBuilder
from .loader import LoadedManifest, ManifestLoader, ManifestSource, is_url

__all__ = [
    # Value kinds
    "BOOLEAN",
    "NUMBER",
    "STRING",
    "OPEN_STRING",
    "BooleanKind",
    "NumberKind",
    "StringKind",
    "EnumKind",
    "ValueKind",
    "describe_kind",
    "deprecation_message",

    # Metadata
    "AttributeMetadata",
    "PropertyMetadata",
    "EventMetadata",
    "CssHook",
    "SlotMetadata",
    "ComponentMetadata",

    # Pipeline
    "ManifestIndexer",
    "infer_value_kind",
    "select_type_text",
    "split_union",
    "ManifestLoader",
    "ManifestSource",
    "LoadedManifest",
    "is_url",
    "Registry",
    "RegistryBuilder",
    "FingerprintGenerator",

    # Reporting
    "ErrorSpan",
    "LoadReport",
]
