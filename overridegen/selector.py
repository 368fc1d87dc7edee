"""Eligible-method selection.

Only methods with at least one caller-context parameter are forwarded:
those are the ones whose ``[CallerFilePath]`` / ``[CallerLineNumber]``
values must be re-captured at the override.  Every other virtual method
is left to the ordinary override mechanism.
"""

from __future__ import annotations

import logging
from typing import List, Mapping, Optional

from overridegen.config import GeneratorConfig
from overridegen.symbols import Accessibility, MethodKind, MethodSymbol, TypeSymbol, Virtuality

__all__ = [
    "ELIGIBLE_ACCESSIBILITY",
    "is_forwardable",
    "select_methods",
]

_log = logging.getLogger(__name__)

ELIGIBLE_ACCESSIBILITY = frozenset({Accessibility.PUBLIC, Accessibility.PROTECTED})


def is_forwardable(method: MethodSymbol, config: GeneratorConfig) -> bool:
    """All per-method rules; ``False`` if any one of them fails."""
    if method.method_kind is not MethodKind.ORDINARY:
        return False
    if method.is_static or not method.is_virtual:
        return False
    if method.accessibility not in ELIGIBLE_ACCESSIBILITY:
        return False
    if method.name in config.excluded_methods:
        return False
    return any(p.is_caller_context(config.caller_attributes) for p in method.parameters)


def select_methods(
    source: TypeSymbol,
    config: Optional[GeneratorConfig] = None,
    candidate: Optional[TypeSymbol] = None,
    generic_map: Optional[Mapping[str, str]] = None,
) -> List[MethodSymbol]:
    """Methods of *source* to forward, in declaration order.

    When *candidate* is given and ``skip_existing_overrides`` is on, methods
    the candidate already overrides with the same signature are left out.
    *generic_map* (source type parameter to candidate type parameter) is
    applied to the source signatures before that comparison.
    """
    config = config or GeneratorConfig()

    existing = set()
    if candidate is not None and config.skip_existing_overrides:
        existing = {
            m.signature_key() for m in candidate.methods
            if m.virtuality is Virtuality.OVERRIDE
        }

    selected: List[MethodSymbol] = []
    seen = set()
    for method in source.methods:
        if not is_forwardable(method, config):
            continue
        key = method.signature_key()
        if key in seen:
            _log.debug("%s.%s: duplicate signature ignored", source.full_name, method.name)
            continue
        seen.add(key)
        if method.signature_key(generic_map) in existing:
            _log.debug(
                "%s.%s: already overridden by %s",
                source.full_name, method.name, candidate.full_name,
            )
            continue
        selected.append(method)
    return selected
