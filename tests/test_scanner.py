"""
Attribute scanner tests.
"""

from wclens.diagnostics import iter_attributes, remove_quotes, scan_attributes


def _names(text):
    return [o.name for o in scan_attributes(text)]


# ============================================================================
# Scanning
# ============================================================================

class TestScanAttributes:

    def test_source_order_with_duplicates(self):
        assert _names('<my-button variant="a" size=3 variant="b">') == ["variant", "size", "variant"]

    def test_bare_attributes(self):
        occurrences = scan_attributes("<my-button disabled hidden>")
        assert [o.name for o in occurrences] == ["disabled", "hidden"]
        assert not occurrences[0].has_value
        assert occurrences[0].value == ""

    def test_offsets(self):
        text = '<x-a variant="primary">'
        occurrence = scan_attributes(text)[0]
        assert text[occurrence.name_start:occurrence.name_end] == "variant"
        assert text[occurrence.value_start:occurrence.value_end] == '"primary"'
        assert occurrence.end == occurrence.value_end
        assert occurrence.value == "primary"

    def test_offsets_with_start(self):
        text = '<div></div><x-a size=2>'
        start = text.index("<x-a")
        occurrence = scan_attributes(text, start)[0]
        assert text[occurrence.name_start:occurrence.name_end] == "size"
        assert occurrence.raw_value == "2"

    def test_binding_prefixes_preserved(self):
        text = '<x-a .value=${v} ?disabled=${d} @click=${fn} [attr.role]="x" (change)="f()">'
        assert _names(text) == [".value", "?disabled", "@click", "[attr.role]", "(change)"]

    def test_expression_values(self):
        occurrences = scan_attributes('<x-a .items=${[1, 2]} label="ok">')
        assert occurrences[0].raw_value == "${[1, 2]}"
        assert occurrences[1].name == "label"

    def test_spread_skipped(self):
        assert _names("<x-a {...props} label='x'>") == ["label"]

    def test_stray_quotes_skipped(self):
        assert _names('<x-a "junk" label="x">') == ["label"]

    def test_spaces_around_equals(self):
        occurrence = scan_attributes('<x-a label = "x">')[0]
        assert occurrence.value == "x"

    def test_unterminated_quote_stops(self):
        assert _names('<x-a label="oops size=3>') == []

    def test_unclosed_brace_stays_inside_tag(self):
        text = '<x-a foo={ ><x-b bar="1"></x-b>'
        occurrence = scan_attributes(text, 0, 11)[0]
        assert occurrence.name == "foo"
        assert occurrence.raw_value == "{ "
        assert occurrence.value_end == 11

    def test_unclosed_spread_stays_inside_tag(self):
        text = '<x-a {...p ><x-b bar="1"></x-b>'
        assert scan_attributes(text, 0, text.index(">") + 1) == []

    def test_self_closing(self):
        assert _names("<x-a disabled/>") == ["disabled"]

    def test_stops_at_end_of_tag(self):
        assert _names('<x-a one><x-b two="2">') == ["one"]

    def test_iter_is_lazy(self):
        iterator = iter_attributes('<x-a one two>')
        assert next(iterator).name == "one"


class TestRemoveQuotes:

    def test_quotes(self):
        assert remove_quotes('"a"') == "a"
        assert remove_quotes("'a'") == "a"
        assert remove_quotes("`a`") == "a"

    def test_unbalanced(self):
        assert remove_quotes('"a') == '"a'
        assert remove_quotes("a") == "a"
