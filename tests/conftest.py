# tests/conftest.py
"""
Shared builders and sample dumps for the overridegen test suite.
"""

from __future__ import annotations

import copy
from pathlib import Path

import pytest

from overridegen.symbols import (
    Accessibility,
    ClassDeclaration,
    Compilation,
    DefaultValue,
    MethodKind,
    MethodSymbol,
    ParameterSymbol,
    TypeKind,
    TypeSymbol,
    Virtuality,
)
from overridegen.typeref import parse_type

FIXTURES = Path(__file__).resolve().parent / "fixtures"
BUG_REPRO_DUMP = FIXTURES / "bug_repro.json"

CALLER_FILE = "CallerFilePathAttribute"
CALLER_LINE = "CallerLineNumberAttribute"

_NO_DEFAULT = object()


# ─────────────────────────────────────────────────────────────────────────
#  Symbol builders
# ─────────────────────────────────────────────────────────────────────────

def make_param(name, type_text="int", default=_NO_DEFAULT, attributes=(), modifier=""):
    return ParameterSymbol(
        name=name,
        type=parse_type(type_text),
        default=None if default is _NO_DEFAULT else DefaultValue(default),
        attributes=tuple(attributes),
        modifier=modifier,
    )


def file_path_param(name="filePath"):
    return make_param(name, "string?", default=None, attributes=[CALLER_FILE])


def line_number_param(name="lineNumber"):
    return make_param(name, "int", default=0, attributes=[CALLER_LINE])


def make_method(
    name="Run",
    return_type="void",
    parameters=(),
    accessibility=Accessibility.PUBLIC,
    virtuality=Virtuality.VIRTUAL,
    is_async=False,
    is_sealed=False,
    is_static=False,
    kind=MethodKind.ORDINARY,
    type_parameters=(),
):
    return MethodSymbol(
        name=name,
        return_type=parse_type(return_type),
        accessibility=accessibility,
        virtuality=virtuality,
        is_sealed=is_sealed,
        is_static=is_static,
        is_async=is_async,
        method_kind=kind,
        type_parameters=tuple(type_parameters),
        parameters=tuple(parameters),
    )


def caller_method(name="Log", return_type="void", **kwargs):
    """A virtual method with a message and both caller-context parameters."""
    params = [make_param("message", "string"), file_path_param(), line_number_param()]
    return make_method(name, return_type, parameters=params, **kwargs)


def make_type(name, namespace="", base=None, methods=(), type_parameters=(), kind=TypeKind.CLASS):
    return TypeSymbol(
        name=name,
        namespace=namespace,
        kind=kind,
        type_parameters=tuple(type_parameters),
        base_type=base,
        methods=tuple(methods),
    )


def object_type():
    return make_type("Object", "System")


def make_chain(methods=(), source_parameters=(), candidate_parameters=(), namespace="App"):
    """Object <- Base(methods) <- Widget, returning the candidate."""
    base = make_type(
        "Base", namespace, base=object_type(), methods=methods,
        type_parameters=source_parameters,
    )
    return make_type("Widget", namespace, base=base, type_parameters=candidate_parameters)


def make_declaration(symbol, *attribute_lists, kind=None):
    return ClassDeclaration(
        symbol=symbol,
        kind=kind or symbol.kind,
        attribute_lists=tuple(tuple(a) for a in attribute_lists),
    )


def make_compilation(*declarations):
    types = {d.symbol.full_name: d.symbol for d in declarations}
    return Compilation(types=types, declarations=tuple(declarations), assembly_name="Tests")


# ─────────────────────────────────────────────────────────────────────────
#  Raw dumps
# ─────────────────────────────────────────────────────────────────────────

GENERIC_DUMP = {
    "assembly": "Data",
    "types": [
        {
            "name": "Repository",
            "namespace": "Core",
            "type_parameters": ["TEntity"],
            "base": "object",
            "methods": [
                {
                    "name": "Save",
                    "accessibility": "public",
                    "modifiers": ["virtual"],
                    "return_type": "TEntity",
                    "parameters": [
                        {"name": "entity", "type": "TEntity"},
                        {"name": "filePath", "type": "string",
                         "attributes": ["CallerFilePathAttribute"], "default": ""},
                    ],
                },
            ],
        },
        {
            "name": "Repository",
            "namespace": "Data",
            "type_parameters": ["T"],
            "base": "Core.Repository<T>",
        },
        {
            "name": "OrderRepository",
            "namespace": "Data",
            "type_parameters": ["TOrder"],
            "base": "Repository<TOrder>",
            "attribute_lists": [["GenerateOverride"]],
        },
    ],
}


NATIVE_DUMP = {
    "assembly": "Interop",
    "types": [
        {"name": "Object", "namespace": "System"},
        {
            "name": "Native",
            "namespace": "App",
            "base": "System.Object",
            "methods": [
                {"name": "Peek", "modifiers": ["virtual", "unsafe"], "return_type": "int*",
                 "parameters": [{"name": "callback", "type": "delegate*<int, void>"}]},
                {"name": "Odd", "modifiers": ["virtual"], "return_type": "int<<"},
            ],
        },
        {
            "name": "Base",
            "namespace": "App",
            "base": "System.Object",
            "methods": [
                {
                    "name": "Write",
                    "accessibility": "public",
                    "modifiers": ["virtual", "unsafe"],
                    "parameters": [
                        {"name": "buffer", "type": "byte*"},
                        {"name": "filePath", "type": "string",
                         "attributes": ["CallerFilePathAttribute"], "default": ""},
                    ],
                },
            ],
        },
        {
            "name": "Widget",
            "namespace": "App",
            "base": "Base",
            "attribute_lists": [["GenerateOverride"]],
        },
    ],
}


@pytest.fixture
def bug_repro_path():
    return BUG_REPRO_DUMP


@pytest.fixture
def generic_dump():
    return copy.deepcopy(GENERIC_DUMP)
