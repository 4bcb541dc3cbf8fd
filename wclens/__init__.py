"""
wclens - Editor intelligence for web components, driven by Custom Elements Manifests

Complete integration of:
- Registry: Manifest discovery, indexing and first-writer-wins merging
- Binding: Template binding prefixes resolved to attributes, properties and events
- Completion: Tag, attribute, value and CSS completions
- Diagnostics: Markup validation with configurable severities and suppression comments
- Hover / Definition: Markdown documentation and manifest locations
- Project: Per-root context with coalesced, debounced reloads
"""

__version__ = "0.1.0"

# ============================================================================
# Configuration & Faults
# ============================================================================

from .config import ConfigLoader, LibraryConfig, ProjectConfig, coerce_severities
from .faults import (
    Fault,
    FaultDomain,
    Severity,
    SourceFault,
    SourceNotFoundFault,
    ManifestParseFault,
    NetworkFault,
    MalformedComponentFault,
    ConfigFault,
    ConfigInvalidFault,
    InvalidSeverityFault,
)

# ============================================================================
# Registry
# ============================================================================

from .registry import (
    ComponentMetadata,
    AttributeMetadata,
    PropertyMetadata,
    EventMetadata,
    CssHook,
    SlotMetadata,
    ManifestIndexer,
    ManifestLoader,
    ManifestSource,
    Registry,
    RegistryBuilder,
    LoadReport,
)

# ============================================================================
# Language Features
# ============================================================================

from .binding import Binding, BindingKind, Category, resolve
from .completion import CompletionEngine
from .diagnostics import DiagnosticEngine
from .hover import css_hover, markup_hover
from .definition import component_location, find_definition
from .markup import MarkupDocument, TextDocument, parse_markup
from .project import ProjectContext, ProjectSnapshot

__all__ = [
    "__version__",
    # Configuration
    "ConfigLoader",
    "LibraryConfig",
    "ProjectConfig",
    "coerce_severities",
    # Faults
    "Fault",
    "FaultDomain",
    "Severity",
    "SourceFault",
    "SourceNotFoundFault",
    "ManifestParseFault",
    "NetworkFault",
    "MalformedComponentFault",
    "ConfigFault",
    "ConfigInvalidFault",
    "InvalidSeverityFault",
    # Registry
    "ComponentMetadata",
    "AttributeMetadata",
    "PropertyMetadata",
    "EventMetadata",
    "CssHook",
    "SlotMetadata",
    "ManifestIndexer",
    "ManifestLoader",
    "ManifestSource",
    "Registry",
    "RegistryBuilder",
    "LoadReport",
    # Language features
    "Binding",
    "BindingKind",
    "Category",
    "resolve",
    "CompletionEngine",
    "DiagnosticEngine",
    "css_hover",
    "markup_hover",
    "component_location",
    "find_definition",
    "MarkupDocument",
    "TextDocument",
    "parse_markup",
    # Project
    "ProjectContext",
    "ProjectSnapshot",
]
