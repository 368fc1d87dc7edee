"""
Symbol model consumed by the generator.

A read-only snapshot of the host compilation: types with their ancestry
chain, declared methods, parameters and attributes, plus the syntactic
class declarations the scanner walks.  Everything here is a frozen
dataclass; the loader builds the graph once and no later stage mutates it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, Mapping, Optional, Tuple

from overridegen.typeref import TypeRef, display, substitute

__all__ = [
    "Accessibility",
    "Virtuality",
    "MethodKind",
    "TypeKind",
    "DefaultValue",
    "ParameterSymbol",
    "MethodSymbol",
    "TypeSymbol",
    "ClassDeclaration",
    "Compilation",
    "PARAMETER_MODIFIERS",
    "attribute_simple_name",
]


class Accessibility(Enum):
    """Declared accessibility; values are the C# keyword spelling."""

    PUBLIC = "public"
    PROTECTED = "protected"
    INTERNAL = "internal"
    PROTECTED_INTERNAL = "protected internal"
    PRIVATE_PROTECTED = "private protected"
    PRIVATE = "private"

    @property
    def keyword(self) -> str:
        return self.value


class Virtuality(Enum):
    NON_VIRTUAL = "non-virtual"
    VIRTUAL = "virtual"
    ABSTRACT = "abstract"
    OVERRIDE = "override"


class MethodKind(Enum):
    ORDINARY = "ordinary"
    CONSTRUCTOR = "constructor"
    STATIC_CONSTRUCTOR = "static-constructor"
    DESTRUCTOR = "destructor"
    PROPERTY_GET = "property-get"
    PROPERTY_SET = "property-set"
    EVENT_ADD = "event-add"
    EVENT_REMOVE = "event-remove"
    OPERATOR = "operator"
    CONVERSION = "conversion"
    EXPLICIT_INTERFACE = "explicit-interface"


class TypeKind(Enum):
    CLASS = "class"
    STRUCT = "struct"
    RECORD = "record"
    INTERFACE = "interface"


def attribute_simple_name(name: str) -> str:
    """Strip ``global::`` and any namespace qualifier from an attribute name."""
    if name.startswith("global::"):
        name = name[len("global::"):]
    return name.rsplit(".", 1)[-1]


@dataclass(frozen=True)
class DefaultValue:
    """An explicit parameter default; ``value=None`` is the null literal."""

    value: Any = None


PARAMETER_MODIFIERS = frozenset({"ref", "out", "in", "params"})


@dataclass(frozen=True)
class ParameterSymbol:
    name: str
    type: TypeRef
    default: Optional[DefaultValue] = None
    attributes: Tuple[str, ...] = ()
    modifier: str = ""

    @property
    def passes_by_reference(self) -> bool:
        return self.modifier in ("ref", "out", "in")

    @property
    def has_explicit_default(self) -> bool:
        return self.default is not None

    def markers(self, names: Iterable[str]) -> Tuple[str, ...]:
        """Attribute class names on this parameter that appear in *names*.

        Matching ignores namespace qualification, so
        ``System.Runtime.CompilerServices.CallerFilePathAttribute`` matches
        ``CallerFilePathAttribute``.
        """
        wanted = {attribute_simple_name(n) for n in names}
        return tuple(
            simple for simple in (attribute_simple_name(a) for a in self.attributes)
            if simple in wanted
        )

    def is_caller_context(self, names: Iterable[str]) -> bool:
        return bool(self.markers(names))


@dataclass(frozen=True)
class MethodSymbol:
    name: str
    return_type: TypeRef
    accessibility: Accessibility = Accessibility.PUBLIC
    virtuality: Virtuality = Virtuality.NON_VIRTUAL
    is_sealed: bool = False
    is_static: bool = False
    is_async: bool = False
    method_kind: MethodKind = MethodKind.ORDINARY
    type_parameters: Tuple[str, ...] = ()
    parameters: Tuple[ParameterSymbol, ...] = ()

    @property
    def is_virtual(self) -> bool:
        """Overridable: virtual, abstract or a non-sealed override."""
        return self.virtuality is not Virtuality.NON_VIRTUAL and not self.is_sealed

    def signature_key(
        self, type_map: Optional[Mapping[str, str]] = None
    ) -> Tuple[str, int, Tuple[str, ...]]:
        """Name, generic arity and parameter type display; overload identity.

        *type_map* renames type parameters first, so an ancestor method keyed
        with the descendant's map compares equal to the descendant's override.
        """
        # method type parameters shadow the class ones
        mapping = {
            k: v for k, v in (type_map or {}).items() if k not in self.type_parameters
        }
        return (
            self.name,
            len(self.type_parameters),
            tuple(
                f"{p.modifier} {display(substitute(p.type, mapping))}".lstrip()
                for p in self.parameters
            ),
        )


@dataclass(frozen=True, eq=False)
class TypeSymbol:
    """A type definition.

    Compared by identity: two symbols are the same type only if they are
    the same object, which is what candidate deduplication relies on.
    """

    name: str
    namespace: str = ""
    kind: TypeKind = TypeKind.CLASS
    type_parameters: Tuple[str, ...] = ()
    base_type: Optional["TypeSymbol"] = None
    base_type_arguments: Tuple[TypeRef, ...] = ()
    methods: Tuple[MethodSymbol, ...] = ()
    is_external: bool = False

    @property
    def metadata_name(self) -> str:
        if self.type_parameters:
            return f"{self.name}`{len(self.type_parameters)}"
        return self.name

    @property
    def full_name(self) -> str:
        if self.namespace:
            return f"{self.namespace}.{self.metadata_name}"
        return self.metadata_name

    @property
    def display_name(self) -> str:
        """``Name<T, U>`` as written in a declaration."""
        if self.type_parameters:
            return f"{self.name}<{', '.join(self.type_parameters)}>"
        return self.name

    def __repr__(self) -> str:
        return f"TypeSymbol({self.full_name!r})"


@dataclass(frozen=True)
class ClassDeclaration:
    """One syntactic declaration of a type (partial types have several).

    ``attribute_lists`` holds attribute names exactly as written, grouped
    by bracket list: ``[A, B] [C]`` is ``(("A", "B"), ("C",))``.
    """

    symbol: TypeSymbol
    kind: TypeKind = TypeKind.CLASS
    attribute_lists: Tuple[Tuple[str, ...], ...] = ()

    @property
    def attribute_names(self) -> Iterator[str]:
        for attribute_list in self.attribute_lists:
            yield from attribute_list


@dataclass(frozen=True)
class Compilation:
    """Everything one generation pass sees."""

    types: Dict[str, TypeSymbol] = field(default_factory=dict)
    declarations: Tuple[ClassDeclaration, ...] = ()
    assembly_name: str = ""

    def get_type(self, full_name: str) -> Optional[TypeSymbol]:
        return self.types.get(full_name)
