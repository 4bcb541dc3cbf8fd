"""
Binding resolver tests.
"""

import pytest

from wclens.binding import (
    BindingKind,
    Category,
    intended_category,
    parse_token,
    resolve,
)
from wclens.registry import AttributeMetadata, EventMetadata, PropertyMetadata


# ============================================================================
# Token parsing
# ============================================================================

class TestParseToken:

    @pytest.mark.parametrize("raw, kind, base, force", [
        ("variant", BindingKind.NONE, "variant", False),
        (".value", BindingKind.PROPERTY, "value", False),
        ("?disabled", BindingKind.BOOLEAN, "disabled", False),
        ("@my-click", BindingKind.EVENT, "my-click", False),
        (":label", BindingKind.GENERIC, "label", False),
        ("[value]", BindingKind.BRACKET, "value", False),
        ("[attr.variant]", BindingKind.BRACKET, "variant", True),
        ("(my-click)", BindingKind.PAREN, "my-click", False),
        ("", BindingKind.NONE, "", False),
    ])
    def test_parse(self, raw, kind, base, force):
        assert parse_token(raw) == (kind, base, force)

    def test_intended_category(self):
        assert intended_category(BindingKind.NONE) is Category.ATTRIBUTE
        assert intended_category(BindingKind.BOOLEAN) is Category.ATTRIBUTE
        assert intended_category(BindingKind.PROPERTY) is Category.PROPERTY
        assert intended_category(BindingKind.BRACKET) is Category.PROPERTY
        assert intended_category(BindingKind.BRACKET, True) is Category.ATTRIBUTE
        assert intended_category(BindingKind.EVENT) is Category.EVENT
        assert intended_category(BindingKind.PAREN) is Category.EVENT


# ============================================================================
# Resolution
# ============================================================================

class TestResolve:

    def test_plain_attribute(self, registry):
        binding = resolve(registry, "my-button", "variant")
        assert isinstance(binding.metadata, AttributeMetadata)
        assert binding.targets_attribute
        assert binding.prefix == ""

    def test_plain_falls_back_to_property(self, registry):
        binding = resolve(registry, "my-button", "value")
        assert isinstance(binding.metadata, PropertyMetadata)
        assert binding.category is Category.PROPERTY

    def test_property_prefix(self, registry):
        binding = resolve(registry, "my-button", ".value")
        assert isinstance(binding.metadata, PropertyMetadata)
        assert resolve(registry, "my-button", ".disabled").metadata is None

    def test_boolean_prefix_requires_boolean_kind(self, registry):
        assert isinstance(resolve(registry, "my-button", "?disabled").metadata, AttributeMetadata)
        assert resolve(registry, "my-button", "?variant").metadata is None

    def test_event_prefixes(self, registry):
        assert isinstance(resolve(registry, "my-button", "@my-click").metadata, EventMetadata)
        assert isinstance(resolve(registry, "my-button", "(my-click)").metadata, EventMetadata)
        assert resolve(registry, "my-button", "@variant").metadata is None

    def test_generic_prefix(self, registry):
        assert isinstance(resolve(registry, "my-button", ":variant").metadata, AttributeMetadata)
        binding = resolve(registry, "my-button", ":value")
        assert isinstance(binding.metadata, PropertyMetadata)
        assert binding.category is Category.PROPERTY

    def test_bracket_syntax(self, registry):
        assert isinstance(resolve(registry, "my-button", "[value]").metadata, PropertyMetadata)
        binding = resolve(registry, "my-button", "[attr.variant]")
        assert isinstance(binding.metadata, AttributeMetadata)
        assert binding.force_attribute

    def test_unknown(self, registry):
        binding = resolve(registry, "my-button", "nope")
        assert not binding.matched
        assert binding.base_name == "nope"
        assert resolve(registry, "other-el", "variant").metadata is None

    def test_deterministic(self, registry):
        assert resolve(registry, "my-button", ":value") == resolve(registry, "my-button", ":value")
