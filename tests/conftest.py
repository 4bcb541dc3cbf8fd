"""
Shared test fixtures and helpers for the wclens test suite.
"""

import copy
import json
from pathlib import Path
from typing import Any, Dict, Optional

import pytest

from wclens.config import ProjectConfig
from wclens.registry import (
    LoadReport,
    ManifestIndexer,
    ManifestSource,
    Registry,
    RegistryBuilder,
)


# ============================================================================
# Manifests
# ============================================================================

BUTTON_MANIFEST: Dict[str, Any] = {
    "schemaVersion": "1.0.0",
    "modules": [
        {
            "kind": "javascript-module",
            "path": "src/my-button.js",
            "declarations": [
                {
                    "kind": "class",
                    "name": "MyButton",
                    "tagName": "my-button",
                    "customElement": True,
                    "description": "A clickable button.",
                    "attributes": [
                        {
                            "name": "variant",
                            "description": "Visual style.",
                            "type": {"text": "'primary' | 'secondary' | 'danger'"},
                        },
                        {
                            "name": "disabled",
                            "description": "Disables the button.",
                            "type": {"text": "boolean"},
                        },
                        {"name": "size", "type": {"text": "number"}},
                        {"name": "label", "type": {"text": "string"}},
                        {"name": "tone", "type": {"text": "'warm' | 'cool' | (string & {})"}},
                        {
                            "name": "mode",
                            "type": {"text": "ButtonMode"},
                            "parsedType": {"text": "'light' | 'dark'"},
                        },
                        {
                            "name": "legacy",
                            "deprecated": "Use variant instead.",
                            "type": {"text": "string"},
                        },
                    ],
                    "members": [
                        {
                            "kind": "field",
                            "name": "value",
                            "description": "Current value.",
                            "type": {"text": "string"},
                        },
                        {"kind": "field", "name": "variant", "attribute": "variant", "type": {"text": "string"}},
                        {"kind": "field", "name": "#secret"},
                        {"kind": "field", "name": "internal", "privacy": "private"},
                        {"kind": "field", "name": "styles", "static": True},
                        {"kind": "method", "name": "focus"},
                    ],
                    "events": [
                        {
                            "name": "my-click",
                            "description": "Fired on click.",
                            "type": {"text": "CustomEvent"},
                        },
                    ],
                    "slots": [
                        {"name": "", "description": "Button content."},
                        {"name": "icon", "description": "Leading icon."},
                    ],
                    "cssProperties": [
                        {"name": "--button-color", "description": "Text color.", "default": "black"},
                    ],
                    "cssParts": [{"name": "control", "description": "The native button."}],
                    "cssStates": [{"name": "pressed", "description": "While pressed."}],
                },
                {
                    "kind": "class",
                    "name": "OldCard",
                    "tagName": "old-card",
                    "deprecated": True,
                    "attributes": [{"name": "heading", "type": {"text": "string"}}],
                },
                {
                    "kind": "class",
                    "name": "BaseElement",
                    "customElement": True,
                },
            ],
        },
    ],
}

LIBRARY_MANIFEST: Dict[str, Any] = {
    "schemaVersion": "1.0.0",
    "modules": [
        {
            "kind": "javascript-module",
            "path": "index.js",
            "declarations": [
                {
                    "kind": "class",
                    "name": "LibBadge",
                    "tagName": "lib-badge",
                    "attributes": [{"name": "count", "type": {"text": "number"}}],
                    "cssProperties": [{"name": "--badge-color", "description": "Badge color."}],
                },
                {
                    "kind": "class",
                    "name": "LibButton",
                    "tagName": "my-button",
                    "attributes": [{"name": "shadowed", "type": {"text": "string"}}],
                    "cssProperties": [{"name": "--button-color", "description": "Library color."}],
                },
            ],
        },
    ],
}


def dump_manifest(data: Dict[str, Any]) -> str:
    return json.dumps(data, indent=2)


def write_json(path: Path, data: Any) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    return path


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def button_manifest() -> Dict[str, Any]:
    return copy.deepcopy(BUTTON_MANIFEST)


@pytest.fixture
def library_manifest() -> Dict[str, Any]:
    return copy.deepcopy(LIBRARY_MANIFEST)


@pytest.fixture
def config(tmp_path) -> ProjectConfig:
    return ProjectConfig(root=tmp_path)


@pytest.fixture
def build_registry(tmp_path):
    """Factory building a Registry from (manifest, package) pairs without I/O."""

    def build(*manifests, config: Optional[ProjectConfig] = None, generation: int = 1) -> Registry:
        config = config or ProjectConfig(root=tmp_path)
        report = LoadReport()
        builder = RegistryBuilder(report=report)
        indexer = ManifestIndexer(config)
        for index, entry in enumerate(manifests):
            data, package = entry if isinstance(entry, tuple) else (entry, None)
            source = ManifestSource(
                kind="local" if package is None else "dependency",
                location=str(tmp_path / f"manifest-{index}" / "custom-elements.json"),
                package=package,
            )
            text = dump_manifest(data)
            builder.add_source(source, indexer.index(data, source, report, text=text), text)
        return builder.build(generation)

    return build


@pytest.fixture
def registry(build_registry, button_manifest) -> Registry:
    return build_registry(button_manifest)


@pytest.fixture
def project_dir(tmp_path, button_manifest) -> Path:
    """Project root with a local manifest at the conventional location."""
    write_json(tmp_path / "custom-elements.json", button_manifest)
    return tmp_path


@pytest.fixture
def write_file():
    return write_json
