# tests/test_loader.py
"""
Tests for reading the JSON symbol dump into a Compilation.
"""

import json
import logging

import pytest

from overridegen.errors import ErrorCodes, SymbolLoadError
from overridegen.loader import load_compilation, load_compilation_from_mapping
from overridegen.symbols import Accessibility, TypeKind, Virtuality
from overridegen.typeref import OpaqueType, PointerType, display
from tests.conftest import BUG_REPRO_DUMP, NATIVE_DUMP


def _dump(*types, declarations=()):
    return {"assembly": "T", "types": list(types), "declarations": list(declarations)}


class TestLoadBugRepro:

    def test_types_indexed_by_full_name(self):
        comp = load_compilation(BUG_REPRO_DUMP)
        assert comp.assembly_name == "SourceGenBugTest"
        assert comp.get_type("BaseLibrary.BaseClass") is not None
        assert comp.get_type("SourceGenBugTest.BrokenClass") is not None

    def test_missing_base_becomes_external(self):
        comp = load_compilation(BUG_REPRO_DUMP)
        obj = comp.get_type("BaseLibrary.BaseClass").base_type
        assert obj.full_name == "System.Object"
        assert obj.is_external
        assert obj.base_type is None

    def test_base_chain_linked_by_identity(self):
        comp = load_compilation(BUG_REPRO_DUMP)
        broken = comp.get_type("SourceGenBugTest.BrokenClass")
        assert broken.base_type is comp.get_type("BaseLibrary.BaseClass")

    def test_method_fields(self):
        comp = load_compilation(BUG_REPRO_DUMP)
        method = comp.get_type("BaseLibrary.BaseClass").methods[0]
        assert method.name == "DoSomethingAsync"
        assert method.accessibility is Accessibility.PROTECTED
        assert method.virtuality is Virtuality.VIRTUAL
        assert method.is_async
        assert display(method.return_type) == "Task"

    def test_parameter_defaults(self):
        comp = load_compilation(BUG_REPRO_DUMP)
        params = comp.get_type("BaseLibrary.BaseClass").methods[0].parameters
        assert params[0].default is None
        assert params[1].default is not None and params[1].default.value is None
        assert params[2].default.value == 0

    def test_declaration_from_attribute_lists(self):
        comp = load_compilation(BUG_REPRO_DUMP)
        assert len(comp.declarations) == 1
        decl = comp.declarations[0]
        assert decl.symbol.name == "BrokenClass"
        assert decl.attribute_lists == (("GenerateOverride",),)


class TestLinking:

    def test_same_name_different_arity(self):
        comp = load_compilation_from_mapping(_dump(
            {"name": "Box", "namespace": "N"},
            {"name": "Box", "namespace": "N", "type_parameters": ["T"], "base": "Box"},
        ))
        generic = comp.get_type("N.Box`1")
        assert generic.base_type is comp.get_type("N.Box")

    def test_unqualified_base_prefers_own_namespace(self, generic_dump):
        comp = load_compilation_from_mapping(generic_dump)
        order = comp.get_type("Data.OrderRepository`1")
        assert order.base_type.full_name == "Data.Repository`1"
        assert order.base_type.base_type.full_name == "Core.Repository`1"
        assert [display(a) for a in order.base_type_arguments] == ["TOrder"]

    def test_types_may_appear_before_their_base(self):
        comp = load_compilation_from_mapping(_dump(
            {"name": "Child", "base": "Parent"},
            {"name": "Parent", "base": "object"},
        ))
        assert comp.get_type("Child").base_type is comp.get_type("Parent")

    def test_ambiguous_unqualified_base(self):
        data = _dump(
            {"name": "Base", "namespace": "A"},
            {"name": "Base", "namespace": "B"},
            {"name": "Child", "namespace": "C", "base": "Base"},
        )
        with pytest.raises(SymbolLoadError) as info:
            load_compilation_from_mapping(data)
        assert "ambiguous" in str(info.value)

    def test_cycle_rejected(self):
        data = _dump({"name": "A", "base": "B"}, {"name": "B", "base": "A"})
        with pytest.raises(SymbolLoadError) as info:
            load_compilation_from_mapping(data)
        assert info.value.code == ErrorCodes.CIRCULAR_BASE

    def test_duplicate_type_rejected(self):
        data = _dump({"name": "A"}, {"name": "A"})
        with pytest.raises(SymbolLoadError) as info:
            load_compilation_from_mapping(data)
        assert info.value.code == ErrorCodes.DUPLICATE_TYPE

    def test_explicit_declarations(self):
        comp = load_compilation_from_mapping(_dump(
            {"name": "Widget", "namespace": "App"},
            declarations=[
                {"type": "App.Widget", "attribute_lists": [["Serializable"]]},
                {"type": "App.Widget", "attribute_lists": [["GenerateOverride"]]},
            ],
        ))
        assert len(comp.declarations) == 2
        assert comp.declarations[0].symbol is comp.declarations[1].symbol

    def test_declaration_kind_defaults_to_type_kind(self):
        comp = load_compilation_from_mapping(_dump(
            {"name": "Point", "kind": "struct"},
            declarations=[{"type": "Point", "attribute_lists": [["GenerateOverride"]]}],
        ))
        assert comp.declarations[0].kind is TypeKind.STRUCT


class TestMemberTypes:

    def test_pointer_types_load(self):
        peek = load_compilation_from_mapping(NATIVE_DUMP).get_type("App.Native").methods[0]
        assert isinstance(peek.return_type, PointerType)
        assert display(peek.parameters[0].type) == "delegate*<int, void>"

    def test_unparsable_member_type_kept_as_text(self, caplog):
        with caplog.at_level(logging.WARNING, logger="overridegen.loader"):
            comp = load_compilation_from_mapping(NATIVE_DUMP)
        odd = comp.get_type("App.Native").methods[1]
        assert odd.return_type == OpaqueType("int<<")
        assert "types[1].methods[1].return_type" in caplog.text

    def test_rest_of_dump_unaffected(self):
        comp = load_compilation_from_mapping(NATIVE_DUMP)
        assert comp.get_type("App.Widget").base_type is comp.get_type("App.Base")


class TestMalformedDumps:

    def test_not_an_object(self):
        with pytest.raises(SymbolLoadError) as info:
            load_compilation_from_mapping([])
        assert info.value.code == ErrorCodes.INVALID_DUMP

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(SymbolLoadError) as info:
            load_compilation(path)
        assert info.value.code == ErrorCodes.INVALID_DUMP

    def test_unreadable_file(self, tmp_path):
        with pytest.raises(SymbolLoadError) as info:
            load_compilation(tmp_path / "missing.json")
        assert info.value.code == ErrorCodes.UNREADABLE_DUMP

    def test_missing_name(self):
        with pytest.raises(SymbolLoadError) as info:
            load_compilation_from_mapping(_dump({"namespace": "X"}))
        assert info.value.code == ErrorCodes.MISSING_FIELD
        assert "types[0]" in str(info.value)

    def test_bad_base_type_names_location(self):
        data = _dump({"name": "A", "base": "List<"})
        with pytest.raises(SymbolLoadError) as info:
            load_compilation_from_mapping(data)
        assert info.value.code == ErrorCodes.TYPE_SYNTAX
        assert "types[0].base" in str(info.value)

    def test_unknown_modifier(self):
        data = _dump({"name": "A", "methods": [{"name": "M", "modifiers": ["virtaul"]}]})
        with pytest.raises(SymbolLoadError) as info:
            load_compilation_from_mapping(data)
        assert info.value.code == ErrorCodes.INVALID_FIELD

    def test_unknown_declaration_type(self):
        data = _dump({"name": "A"}, declarations=[{"type": "Nope", "attribute_lists": []}])
        with pytest.raises(SymbolLoadError) as info:
            load_compilation_from_mapping(data)
        assert info.value.code == ErrorCodes.UNKNOWN_TYPE

    def test_dump_round_trips_through_file(self, tmp_path):
        path = tmp_path / "dump.json"
        path.write_text(json.dumps(_dump({"name": "A"})), encoding="utf-8")
        assert load_compilation(path).get_type("A") is not None
