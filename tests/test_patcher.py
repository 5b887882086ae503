"""Tests for wardley/patcher.py: minimal in-place edits of map text."""
from __future__ import annotations

import pytest
from wardley.parser import parse
from wardley.patcher import (
    apply_evolve_edit,
    apply_position_edit,
    matching_lines,
    update_evolve_maturity,
    update_position,
)


def _changed_lines(before: str, after: str):
    a, b = before.split("\n"), after.split("\n")
    assert len(a) == len(b)
    return [i for i, (x, y) in enumerate(zip(a, b)) if x != y]


class TestUpdatePosition:

    def test_component(self):
        text = "component Cup [0.73, 0.78]"
        assert update_position(text, "Cup", 0.5, 0.25) == "component Cup [0.50, 0.25]"

    def test_keeps_surrounding_tokens(self):
        text = "  component Kettle [0.43,0.35] label [-57, 4] inertia (buy) // note"
        patched = update_position(text, "Kettle", 0.4, 0.6)
        assert patched == "  component Kettle [0.40, 0.60] label [-57, 4] inertia (buy) // note"

    def test_only_target_line_changes(self, tea_shop):
        patched = update_position(tea_shop, "Hot Water", 0.55, 0.7)
        assert _changed_lines(tea_shop, patched) == [6]
        assert patched.split("\n")[6] == "component Hot Water [0.55, 0.70]"

    def test_exact_name_match(self):
        text = "component Tea Cup [0.1, 0.2]\ncomponent Tea [0.3, 0.4]"
        patched = update_position(text, "Tea", 0.9, 0.9)
        assert patched.split("\n") == ["component Tea Cup [0.1, 0.2]", "component Tea [0.90, 0.90]"]

    def test_first_declaration_wins(self):
        text = "component A [0.1, 0.1]\ncomponent A [0.2, 0.2]"
        patched = update_position(text, "A", 0.5, 0.5)
        assert patched.split("\n") == ["component A [0.50, 0.50]", "component A [0.2, 0.2]"]

    def test_anchor_and_submap(self):
        text = "anchor Business [0.95, 0.63]\nsubmap Shop [0.6, 0.5] url(http://x.org)"
        patched = update_position(text, "Shop", 0.1, 0.2)
        assert patched.split("\n")[1] == "submap Shop [0.10, 0.20] url(http://x.org)"
        patched = update_position(text, "Business", 0.9, 0.6)
        assert patched.split("\n")[0] == "anchor Business [0.90, 0.60]"

    def test_note_substring_match(self):
        text = "note +a generic note appeared [0.23, 0.33]"
        patched = update_position(text, "generic note", 0.3, 0.4)
        assert patched == "note +a generic note appeared [0.30, 0.40]"

    def test_name_with_regex_characters(self):
        text = "component C++ (Legacy) [0.1, 0.2]"
        # Decorator-like parentheses before the bracket are part of the name here
        assert update_position(text, "C++ (Legacy)", 0.3, 0.4) == "component C++ (Legacy) [0.30, 0.40]"

    def test_commented_declaration_is_skipped(self):
        text = "// component A [0.1, 0.1]\n/*\ncomponent A [0.2, 0.2]\n*/\ncomponent A [0.3, 0.3]"
        patched = update_position(text, "A", 0.5, 0.5)
        assert _changed_lines(text, patched) == [4]

    def test_pipeline_child_is_not_moved(self):
        text = "pipeline P\n{\n  component A [0.5]\n}"
        assert update_position(text, "A", 0.1, 0.2) is None

    def test_no_match_returns_none(self):
        assert update_position("component Cup [0.5, 0.5]", "Mug", 0.1, 0.1) is None

    def test_precision(self):
        text = "component Cup [0.5, 0.5]"
        assert update_position(text, "Cup", 0.12345, 0.5, precision=3) == "component Cup [0.123, 0.500]"

    def test_crlf_preserved(self):
        text = "title T\r\ncomponent Cup [0.5, 0.5]\r\n"
        assert update_position(text, "Cup", 0.1, 0.2) == "title T\r\ncomponent Cup [0.10, 0.20]\r\n"


class TestApplyPositionEdit:

    def test_no_match_returns_text_unchanged(self):
        text = "component Cup [0.5, 0.5]"
        assert apply_position_edit(text, "Mug", 0.1, 0.1) == text

    def test_reparse_sees_new_position(self, tea_shop):
        patched = apply_position_edit(tea_shop, "Kettle", 0.45, 0.4)
        wmap, errors = parse(patched)
        assert errors == []
        kettle = wmap.element_named("Kettle")
        assert (kettle.visibility, kettle.maturity) == (0.45, 0.4)
        assert kettle.label.x == -57

    def test_same_coordinates_are_idempotent(self, tea_shop):
        before, _ = parse(tea_shop)
        text = tea_shop
        for el in before.elements:
            text = apply_position_edit(text, el.name, el.visibility, el.maturity)
        after, _ = parse(text)
        assert len(after.elements) == len(before.elements)
        for old, new in zip(before.elements, after.elements):
            assert new.name == old.name
            assert new.visibility == pytest.approx(old.visibility, abs=1e-9)
            assert new.maturity == pytest.approx(old.maturity, abs=1e-9)
        assert after.links == before.links


class TestEvolveEdit:

    def test_update_maturity(self):
        text = "evolve Kettle->Electric Kettle 0.62 label [16, 5]"
        assert update_evolve_maturity(text, "Kettle", 0.7) == "evolve Kettle->Electric Kettle 0.70 label [16, 5]"

    def test_plain_evolve(self, tea_shop):
        patched = update_evolve_maturity(tea_shop, "Power", 0.95)
        assert _changed_lines(tea_shop, patched) == [11]
        assert patched.split("\n")[11] == "evolve Power 0.95 label [-12, 21]"

    def test_name_must_match_whole(self):
        text = "evolve Kettles 0.5\nevolve Kettle 0.6"
        patched = update_evolve_maturity(text, "Kettle", 0.8)
        assert patched.split("\n") == ["evolve Kettles 0.5", "evolve Kettle 0.80"]

    def test_no_match(self):
        assert update_evolve_maturity("component Kettle [0.4, 0.3]", "Kettle", 0.5) is None
        assert apply_evolve_edit("evolve Power 0.89", "Kettle", 0.5) == "evolve Power 0.89"


class TestMatchingLines:

    def test_reports_all_declarations(self):
        text = "component A [0.1, 0.1]\nanchor A [0.2, 0.2]\nA->B"
        assert matching_lines(text, "A") == [1, 2]
