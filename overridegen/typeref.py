"""
typeref.py — type references as the symbol dump spells them
===========================================================

The host writes every type as text (``System.Threading.Tasks.Task<int>``,
``Dictionary<string, List<T>>?``, ``(int Id, string? Name)``,
``byte*``, ``delegate* unmanaged[Cdecl]<int, void>``).  This module
parses that text with a Parsimonious PEG grammar into immutable nodes and
renders them back in the compiler's *minimally qualified* display format:
namespaces are dropped, nullable annotations are kept, and special types
use their keyword (``System.Int32`` → ``int``).

Usage::

    from overridegen.typeref import parse_type, display, substitute

    ref = parse_type("System.Collections.Generic.List<T>?")
    display(ref)                      # 'List<T>?'
    display(substitute(ref, {"T": "U"}))  # 'List<U>?'

Depends on:
    - parsimonious (PEG parser)
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Iterator, Mapping, Optional, Tuple, Union

from parsimonious.exceptions import ParseError, VisitationError
from parsimonious.grammar import Grammar
from parsimonious.nodes import Node, NodeVisitor

from overridegen.errors import TypeSyntaxError

__all__ = [
    "TYPE_GRAMMAR",
    "NameSegment",
    "NamedType",
    "NullableType",
    "ArrayType",
    "PointerType",
    "FunctionPointerType",
    "OpaqueType",
    "TupleElement",
    "TupleType",
    "TypeRef",
    "parse_type",
    "display",
    "substitute",
    "mentions",
    "has_nullable_parameter",
    "iter_nodes",
    "requires_unsafe",
]


# ═══════════════════════════════════════════════════════════════════
#  PART 1 — TYPE GRAMMAR (Parsimonious PEG)
# ═══════════════════════════════════════════════════════════════════

TYPE_GRAMMAR = Grammar(r'''
    type_ref            = _ type _

    type                = core suffix*
    core                = tuple_type / function_pointer / named_type
    suffix              = nullable / array_rank / pointer
    nullable            = "?"
    pointer             = "*"
    array_rank          = "[" _ rank_comma* "]"
    rank_comma          = "," _

    # ─────────────────────────────────────────────────────────────
    # Function pointers: delegate*<int, void> / delegate* unmanaged[Cdecl]<...>
    # ─────────────────────────────────────────────────────────────

    function_pointer    = "delegate" _ "*" _ convention? _ "<" _ type more_types* _ ">"
    convention          = identifier convention_list?
    convention_list     = _ "[" _ identifier more_identifiers* _ "]"
    more_identifiers    = _ "," _ identifier

    # ─────────────────────────────────────────────────────────────
    # Named types: [global::]Ns.Outer<T>.Inner
    # ─────────────────────────────────────────────────────────────

    named_type          = global_prefix? name_segment dotted_segment*
    global_prefix       = "global::"
    dotted_segment      = _ "." _ name_segment
    name_segment        = identifier type_args?
    type_args           = _ "<" _ type more_types* _ ">"
    more_types          = _ "," _ type

    # ─────────────────────────────────────────────────────────────
    # Tuples: (int, string) / (int Id, string? Name)
    # ─────────────────────────────────────────────────────────────

    tuple_type          = "(" _ tuple_element more_elements+ _ ")"
    more_elements       = _ "," _ tuple_element
    tuple_element       = type element_name?
    element_name        = ~r"\s+" identifier

    identifier          = ~r"@?[A-Za-z_][A-Za-z0-9_]*"
    _                   = ~r"\s*"
''')


# ═══════════════════════════════════════════════════════════════════
#  PART 2 — TYPE NODES
# ═══════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class NameSegment:
    """One dotted component of a named type, with its type arguments."""

    name: str
    type_arguments: Tuple["TypeRef", ...] = ()


@dataclass(frozen=True)
class NamedType:
    """A (possibly qualified, possibly generic) named type."""

    segments: Tuple[NameSegment, ...]
    global_qualified: bool = False

    @property
    def name(self) -> str:
        return self.segments[-1].name

    @property
    def type_arguments(self) -> Tuple["TypeRef", ...]:
        return self.segments[-1].type_arguments

    @property
    def qualified_name(self) -> str:
        """Dotted name without type arguments, e.g. ``System.Int32``."""
        return ".".join(seg.name for seg in self.segments)

    @property
    def is_simple(self) -> bool:
        """True for a bare identifier such as a type parameter ``T``."""
        return len(self.segments) == 1 and not self.segments[0].type_arguments

    @classmethod
    def simple(cls, name: str) -> "NamedType":
        return cls((NameSegment(name),))


@dataclass(frozen=True)
class NullableType:
    element: "TypeRef"


@dataclass(frozen=True)
class ArrayType:
    element: "TypeRef"
    rank: int = 1


@dataclass(frozen=True)
class PointerType:
    element: "TypeRef"


@dataclass(frozen=True)
class FunctionPointerType:
    """``delegate*<...>``; the last type is the return type."""

    types: Tuple["TypeRef", ...]
    convention: str = ""


@dataclass(frozen=True)
class OpaqueType:
    """Type text kept verbatim because the grammar does not cover it."""

    text: str


@dataclass(frozen=True)
class TupleElement:
    type: "TypeRef"
    name: Optional[str] = None


@dataclass(frozen=True)
class TupleType:
    elements: Tuple[TupleElement, ...]


TypeRef = Union[
    NamedType, NullableType, ArrayType, PointerType, TupleType, FunctionPointerType, OpaqueType
]


# ═══════════════════════════════════════════════════════════════════
#  PART 3 — PARSE TREE → NODES
# ═══════════════════════════════════════════════════════════════════

def _items(visited) -> list:
    """Children of a ``*``/``?`` match; an empty match visits to a bare Node."""
    if isinstance(visited, Node):
        return []
    return list(visited)


class _TypeBuilder(NodeVisitor):
    """Builds ``TypeRef`` nodes from a ``TYPE_GRAMMAR`` parse tree."""

    unwrapped_exceptions = (TypeSyntaxError,)

    def generic_visit(self, node, visited_children):
        return visited_children or node

    def visit_type_ref(self, node, visited_children):
        _, type_, _ = visited_children
        return type_

    def visit_type(self, node, visited_children):
        result, suffixes = visited_children
        for suffix in _items(suffixes):
            if suffix == "?":
                result = NullableType(result)
            elif suffix == "*":
                result = PointerType(result)
            else:
                result = ArrayType(result, rank=suffix)
        return result

    def visit_core(self, node, visited_children):
        return visited_children[0]

    def visit_suffix(self, node, visited_children):
        return visited_children[0]

    def visit_nullable(self, node, visited_children):
        return "?"

    def visit_pointer(self, node, visited_children):
        return "*"

    def visit_function_pointer(self, node, visited_children):
        convention = _items(visited_children[4])
        first, more = visited_children[8], visited_children[9]
        return FunctionPointerType(
            (first,) + tuple(_items(more)),
            convention=convention[0] if convention else "",
        )

    def visit_convention(self, node, visited_children):
        name, names = visited_children
        names = _items(names)
        if names:
            return f"{name}[{', '.join(names[0])}]"
        return name

    def visit_convention_list(self, node, visited_children):
        _, _, _, first, more, _, _ = visited_children
        return [first] + _items(more)

    def visit_more_identifiers(self, node, visited_children):
        return visited_children[-1]

    def visit_array_rank(self, node, visited_children):
        _, _, commas, _ = visited_children
        return 1 + len(_items(commas))

    def visit_named_type(self, node, visited_children):
        prefix, first, rest = visited_children
        segments = (first,) + tuple(_items(rest))
        return NamedType(segments, global_qualified=bool(_items(prefix)))

    def visit_dotted_segment(self, node, visited_children):
        return visited_children[-1]

    def visit_name_segment(self, node, visited_children):
        name, args = visited_children
        args = _items(args)
        return NameSegment(name, args[0] if args else ())

    def visit_type_args(self, node, visited_children):
        _, _, _, first, more, _, _ = visited_children
        return (first,) + tuple(_items(more))

    def visit_more_types(self, node, visited_children):
        return visited_children[-1]

    def visit_tuple_type(self, node, visited_children):
        _, _, first, more, _, _ = visited_children
        return TupleType((first,) + tuple(more))

    def visit_more_elements(self, node, visited_children):
        return visited_children[-1]

    def visit_tuple_element(self, node, visited_children):
        type_, name = visited_children
        name = _items(name)
        return TupleElement(type_, name[0] if name else None)

    def visit_element_name(self, node, visited_children):
        return visited_children[-1]

    def visit_identifier(self, node, visited_children):
        return node.text


@lru_cache(maxsize=4096)
def parse_type(text: str) -> TypeRef:
    """Parse type text into a ``TypeRef``.

    Raises ``TypeSyntaxError`` when *text* is not a well-formed type.
    """
    try:
        tree = TYPE_GRAMMAR.parse(text)
    except ParseError as exc:
        raise TypeSyntaxError(text, column=exc.pos, cause=exc) from exc
    try:
        return _TypeBuilder().visit(tree)
    except VisitationError as exc:
        raise TypeSyntaxError(text, cause=exc) from exc


# ═══════════════════════════════════════════════════════════════════
#  PART 4 — DISPLAY (minimally qualified, special types, nullability)
# ═══════════════════════════════════════════════════════════════════

SPECIAL_TYPES: Mapping[str, str] = {
    "System.Object": "object",
    "System.String": "string",
    "System.Boolean": "bool",
    "System.Char": "char",
    "System.SByte": "sbyte",
    "System.Byte": "byte",
    "System.Int16": "short",
    "System.UInt16": "ushort",
    "System.Int32": "int",
    "System.UInt32": "uint",
    "System.Int64": "long",
    "System.UInt64": "ulong",
    "System.Single": "float",
    "System.Double": "double",
    "System.Decimal": "decimal",
    "System.Void": "void",
}

_NULLABLE_NAMES = frozenset({"System.Nullable", "Nullable"})


def _display_named(ref: NamedType) -> str:
    qualified = ref.qualified_name
    if qualified in SPECIAL_TYPES and not ref.type_arguments:
        return SPECIAL_TYPES[qualified]
    if qualified in _NULLABLE_NAMES and len(ref.type_arguments) == 1:
        return display(ref.type_arguments[0]) + "?"

    # Keep trailing segments that are clearly types (generic containers);
    # everything before them is treated as namespace and dropped.
    kept = [ref.segments[-1]]
    for seg in reversed(ref.segments[:-1]):
        if not seg.type_arguments:
            break
        kept.insert(0, seg)

    parts = []
    for seg in kept:
        if seg.type_arguments:
            args = ", ".join(display(a) for a in seg.type_arguments)
            parts.append(f"{seg.name}<{args}>")
        else:
            parts.append(seg.name)
    return ".".join(parts)


def display(ref: TypeRef) -> str:
    """Render *ref* in minimally qualified form."""
    if isinstance(ref, NamedType):
        return _display_named(ref)
    if isinstance(ref, NullableType):
        return display(ref.element) + "?"
    if isinstance(ref, ArrayType):
        return display(ref.element) + "[" + "," * (ref.rank - 1) + "]"
    if isinstance(ref, TupleType):
        elements = []
        for element in ref.elements:
            text = display(element.type)
            if element.name:
                text += f" {element.name}"
            elements.append(text)
        return "(" + ", ".join(elements) + ")"
    if isinstance(ref, PointerType):
        return display(ref.element) + "*"
    if isinstance(ref, FunctionPointerType):
        convention = f" {ref.convention}" if ref.convention else ""
        return f"delegate*{convention}<" + ", ".join(display(t) for t in ref.types) + ">"
    if isinstance(ref, OpaqueType):
        return ref.text
    raise TypeError(f"not a type reference: {ref!r}")


# ═══════════════════════════════════════════════════════════════════
#  PART 5 — QUERIES AND REWRITES
# ═══════════════════════════════════════════════════════════════════

def iter_nodes(ref: TypeRef) -> Iterator[TypeRef]:
    """Yield *ref* and every type nested inside it, depth first."""
    yield ref
    if isinstance(ref, NamedType):
        for seg in ref.segments:
            for arg in seg.type_arguments:
                yield from iter_nodes(arg)
    elif isinstance(ref, (NullableType, ArrayType, PointerType)):
        yield from iter_nodes(ref.element)
    elif isinstance(ref, TupleType):
        for element in ref.elements:
            yield from iter_nodes(element.type)
    elif isinstance(ref, FunctionPointerType):
        for type_ in ref.types:
            yield from iter_nodes(type_)


def substitute(ref: TypeRef, mapping: Mapping[str, str]) -> TypeRef:
    """Rename type-parameter references in *ref* according to *mapping*."""
    if not mapping:
        return ref
    if isinstance(ref, NamedType):
        if ref.is_simple and ref.name in mapping:
            return NamedType.simple(mapping[ref.name])
        segments = tuple(
            NameSegment(seg.name, tuple(substitute(a, mapping) for a in seg.type_arguments))
            for seg in ref.segments
        )
        return NamedType(segments, ref.global_qualified)
    if isinstance(ref, NullableType):
        return NullableType(substitute(ref.element, mapping))
    if isinstance(ref, ArrayType):
        return ArrayType(substitute(ref.element, mapping), ref.rank)
    if isinstance(ref, TupleType):
        return TupleType(tuple(
            TupleElement(substitute(e.type, mapping), e.name) for e in ref.elements
        ))
    if isinstance(ref, PointerType):
        return PointerType(substitute(ref.element, mapping))
    if isinstance(ref, FunctionPointerType):
        return FunctionPointerType(
            tuple(substitute(t, mapping) for t in ref.types), ref.convention
        )
    if isinstance(ref, OpaqueType):
        return ref
    raise TypeError(f"not a type reference: {ref!r}")


def mentions(ref: TypeRef, name: str) -> bool:
    """True when the bare identifier *name* occurs anywhere in *ref*."""
    return any(
        isinstance(node, NamedType) and node.is_simple and node.name == name
        for node in iter_nodes(ref)
    )


def has_nullable_parameter(ref: TypeRef, name: str) -> bool:
    """True when ``name?`` (a nullable type-parameter use) occurs in *ref*."""
    for node in iter_nodes(ref):
        if isinstance(node, NullableType):
            inner = node.element
            if isinstance(inner, NamedType) and inner.is_simple and inner.name == name:
                return True
    return False


def requires_unsafe(ref: TypeRef) -> bool:
    """True when *ref* contains a pointer or function pointer."""
    return any(isinstance(node, (PointerType, FunctionPointerType)) for node in iter_nodes(ref))
