# tests/test_scanner.py
"""
Tests for candidate discovery.
"""

import pytest

from overridegen.config import GeneratorConfig
from overridegen.scanner import attribute_class_names, find_candidates, is_candidate, resolve_target
from overridegen.symbols import TypeKind
from tests.conftest import make_compilation, make_declaration, make_type


class TestSyntacticFilter:

    def test_class_with_attributes(self):
        decl = make_declaration(make_type("A"), ["Anything"])
        assert is_candidate(decl)

    def test_class_without_attributes(self):
        assert not is_candidate(make_declaration(make_type("A")))

    @pytest.mark.parametrize("kind", [TypeKind.STRUCT, TypeKind.RECORD, TypeKind.INTERFACE])
    def test_non_class_kinds(self, kind):
        decl = make_declaration(make_type("A", kind=kind), ["GenerateOverride"])
        assert not is_candidate(decl)


class TestAttributeBinding:

    @pytest.mark.parametrize("written, expected", [
        ("GenerateOverride", ["GenerateOverrideAttribute", "GenerateOverride"]),
        ("GenerateOverrideAttribute",
         ["GenerateOverrideAttributeAttribute", "GenerateOverrideAttribute"]),
        ("global::GenerateOverride", ["GenerateOverrideAttribute", "GenerateOverride"]),
        ("@GenerateOverride", ["GenerateOverride"]),
    ])
    def test_class_names(self, written, expected):
        assert attribute_class_names(written) == expected

    @pytest.mark.parametrize("written", [
        "GenerateOverride",
        "GenerateOverrideAttribute",
        "global::GenerateOverrideAttribute",
        "Generators.GenerateOverride",
    ])
    def test_trigger_spellings(self, written):
        symbol = make_type("A")
        assert resolve_target(make_declaration(symbol, [written])) is symbol

    def test_other_attribute(self):
        assert resolve_target(make_declaration(make_type("A"), ["Serializable"])) is None

    def test_verbatim_name_needs_full_spelling(self):
        assert resolve_target(make_declaration(make_type("A"), ["@GenerateOverride"])) is None

    def test_custom_trigger(self):
        config = GeneratorConfig(trigger_attribute="ForwardCallerInfoAttribute")
        symbol = make_type("A")
        assert resolve_target(make_declaration(symbol, ["ForwardCallerInfo"]), config) is symbol
        assert resolve_target(make_declaration(symbol, ["GenerateOverride"]), config) is None


class TestFindCandidates:

    def test_trigger_in_second_list(self):
        symbol = make_type("A")
        comp = make_compilation(make_declaration(symbol, ["Serializable"], ["GenerateOverride"]))
        assert find_candidates(comp) == [symbol]

    def test_partial_parts_reported_once(self):
        symbol = make_type("A")
        decls = [
            make_declaration(symbol, ["GenerateOverride"]),
            make_declaration(symbol, ["GenerateOverride"]),
        ]
        assert find_candidates(decls) == [symbol]

    def test_declaration_order_kept(self):
        a, b, c = make_type("A"), make_type("B"), make_type("C")
        comp = make_compilation(
            make_declaration(b, ["GenerateOverride"]),
            make_declaration(c, ["Obsolete"]),
            make_declaration(a, ["GenerateOverride"]),
        )
        assert find_candidates(comp) == [b, a]

    def test_unmarked_compilation(self):
        comp = make_compilation(make_declaration(make_type("A"), ["Obsolete"]))
        assert find_candidates(comp) == []
