"""Source-type resolution.

Picks the ancestor whose methods are mirrored onto a candidate.  The
direct base is used unless its own base carries the same name, which is
the shape of a generic base reintroduced with different type arguments
(``Repository<T> : Core.Repository<T>``); then the upper one is the true
common ancestor and is used instead.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Union

from overridegen.symbols import TypeSymbol

__all__ = [
    "SkipReason",
    "Resolution",
    "resolve_source",
]

_log = logging.getLogger(__name__)


class SkipReason(Enum):
    """Why a candidate produced no artifact."""

    NO_BASE_TYPE = "candidate has no base type"
    NO_GRANDPARENT = "base type has no base type"
    NO_ELIGIBLE_METHODS = "source type has no method with caller-context parameters"


@dataclass(frozen=True)
class Resolution:
    candidate: TypeSymbol
    source: TypeSymbol
    # 1 for the direct base, 2 when the same-name tie-break skipped a level
    depth: int

    @property
    def collapsed(self) -> bool:
        return self.depth == 2


def resolve_source(candidate: TypeSymbol) -> Union[Resolution, SkipReason]:
    """Resolve the ancestor to mirror, or the reason there is none."""
    direct = candidate.base_type
    if direct is None:
        _log.debug("%s: no base type", candidate.full_name)
        return SkipReason.NO_BASE_TYPE

    grandparent = direct.base_type
    if grandparent is None:
        _log.debug("%s: base %s has no base type", candidate.full_name, direct.full_name)
        return SkipReason.NO_GRANDPARENT

    if grandparent.name == direct.name:
        _log.debug(
            "%s: %s and %s share a name, using the upper one",
            candidate.full_name, direct.full_name, grandparent.full_name,
        )
        return Resolution(candidate, grandparent, depth=2)
    return Resolution(candidate, direct, depth=1)
