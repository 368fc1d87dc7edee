"""Ancestor → descendant type-parameter mapping.

The map is positional: the source type's i-th type parameter maps to the
candidate's i-th.  When the candidate declares fewer, the extra source
parameters have no entry and anything that refers to them is emitted
unchanged.

How the map is applied depends on ``ForwardingStrategy``:

``PARAMETER_NAME``
    Types are rendered as declared; a forwarded *argument* is renamed when
    the parameter's name happens to equal a mapped type-parameter name.
``DECLARED_TYPE``
    Parameter and return *types* have their type-parameter references
    remapped; arguments are always forwarded under their own names.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping, Sequence

from overridegen.config import ForwardingStrategy
from overridegen.symbols import ParameterSymbol
from overridegen.typeref import TypeRef, substitute

__all__ = [
    "GenericMap",
    "build_generic_map",
    "forward_argument",
    "remap_type",
]

GenericMap = Mapping[str, str]


def build_generic_map(
    source_parameters: Sequence[str], candidate_parameters: Sequence[str]
) -> GenericMap:
    """Positional map truncated to the shorter list."""
    mapping = {
        source: candidate
        for source, candidate in zip(source_parameters, candidate_parameters)
    }
    return MappingProxyType(mapping)


def forward_argument(
    parameter: ParameterSymbol,
    generic_map: GenericMap,
    strategy: ForwardingStrategy = ForwardingStrategy.PARAMETER_NAME,
) -> str:
    """The argument expression passing *parameter* on to the base call."""
    name = parameter.name
    if strategy is ForwardingStrategy.PARAMETER_NAME:
        name = generic_map.get(name, name)
    if parameter.passes_by_reference:
        return f"{parameter.modifier} {name}"
    return name


def remap_type(
    type_ref: TypeRef,
    generic_map: GenericMap,
    strategy: ForwardingStrategy = ForwardingStrategy.PARAMETER_NAME,
) -> TypeRef:
    """The type to write in the override signature."""
    if strategy is ForwardingStrategy.DECLARED_TYPE:
        return substitute(type_ref, generic_map)
    return type_ref
