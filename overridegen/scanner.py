"""Candidate discovery.

Two phases, the way an incremental generator's syntax provider works:

1. ``is_candidate``: a cheap syntactic test that keeps class declarations
   with at least one attribute list.
2. ``resolve_target``: bind each written attribute name to its attribute
   class and keep the declaration only if one of them is the trigger.

The same class reached through several declarations (partial parts) is
reported once.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from overridegen.config import GeneratorConfig
from overridegen.symbols import ClassDeclaration, Compilation, TypeKind, TypeSymbol, attribute_simple_name

__all__ = [
    "is_candidate",
    "attribute_class_names",
    "resolve_target",
    "find_candidates",
]

_log = logging.getLogger(__name__)


def is_candidate(declaration: ClassDeclaration) -> bool:
    return declaration.kind is TypeKind.CLASS and len(declaration.attribute_lists) > 0


def attribute_class_names(written: str) -> List[str]:
    """Attribute classes a written attribute name may bind to, in lookup order.

    ``[Foo]`` binds to ``FooAttribute`` first and ``Foo`` second; a name
    already ending in ``Attribute`` is also tried verbatim.
    """
    simple = attribute_simple_name(written.strip())
    if written.strip().startswith("@"):
        return [simple.lstrip("@")]
    return [f"{simple}Attribute", simple]


def resolve_target(
    declaration: ClassDeclaration, config: Optional[GeneratorConfig] = None
) -> Optional[TypeSymbol]:
    """Return the declared class if it carries the trigger attribute."""
    config = config or GeneratorConfig()
    trigger = attribute_simple_name(config.trigger_attribute)
    for written in declaration.attribute_names:
        if trigger in attribute_class_names(written):
            return declaration.symbol
    return None


def find_candidates(
    source: "Compilation | Iterable[ClassDeclaration]",
    config: Optional[GeneratorConfig] = None,
) -> List[TypeSymbol]:
    """Classes marked with the trigger attribute, deduplicated by identity."""
    config = config or GeneratorConfig()
    declarations = source.declarations if isinstance(source, Compilation) else source

    seen: set = set()
    candidates: List[TypeSymbol] = []
    for declaration in declarations:
        if not is_candidate(declaration):
            continue
        symbol = resolve_target(declaration, config)
        if symbol is None or symbol in seen:
            continue
        seen.add(symbol)
        candidates.append(symbol)

    _log.debug("Found %d candidate class(es)", len(candidates))
    return candidates
